"""Version resolution cascade for a single step.

Strategies run in a fixed order and the first one to select a package wins:

1. exact override: the exact ``[version]`` the caller asked for, if the feed
   has it;
2. primary tag: the newest package matching the pre-release tag (or simply
   the newest package when no tag is given);
3. fallback tags: the same search for each fallback tag in turn.

A step nothing can resolve is marked unresolved and reported; the only
build-aborting failure here is a feed that does not exist.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from relplan.core.result import Err, Ok, Result
from relplan.output.console import ConsoleProtocol
from relplan.release.errors import ReleaseError
from relplan.release.filters import (
    PACKAGE_ID,
    PRERELEASE_TAG,
    TAKE,
    VERSION_RANGE,
    Filters,
    build_channel_filters,
)
from relplan.release.model import (
    CandidatePackage,
    Channel,
    Feed,
    Resolved,
    StepPlan,
    VersionSource,
)
from relplan.release.repository import ReleaseRepository
from relplan.release.selector import (
    MAX_CANDIDATES,
    is_prerelease_filter,
    orders_by_publish_date,
    select_candidate,
)


@dataclass(frozen=True, slots=True)
class ResolutionOptions:
    """Caller-supplied knobs for the cascade.

    Attributes:
        prerelease_tag: Pre-release tag to search first.
        prerelease_tag_fallbacks: Comma-separated tags tried in order when the
            primary search finds nothing.
        exact_version: Version to use when the feed has exactly it.
        latest_by_publish_date: Prefer the most recently published package
            over the highest version for pre-release searches.
        max_candidates: Page size requested when ordering by publish date.
    """

    prerelease_tag: str | None = None
    prerelease_tag_fallbacks: str | None = None
    exact_version: str | None = None
    latest_by_publish_date: bool = False
    max_candidates: int = MAX_CANDIDATES


def parse_fallback_tags(text: str | None) -> list[str]:
    """Split a comma-separated tag list: trimmed, no blanks, first occurrence kept."""
    if not text:
        return []
    tags: list[str] = []
    for part in text.split(","):
        tag = part.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


@dataclass(frozen=True, slots=True)
class CascadeContext:
    step: StepPlan
    feed: Feed
    base_filters: Filters
    options: ResolutionOptions
    repository: ReleaseRepository
    console: ConsoleProtocol

    def search(self, filters: Filters) -> list[CandidatePackage]:
        """Query the feed; a failed query counts as no candidates."""
        result = self.repository.search_packages(self.feed, filters)
        if isinstance(result, Err):
            self.console.warning(
                f"step '{self.step.display_name}': search in feed '{self.feed.name}' failed: "
                f"{result.error.pretty()}"
            )
            return []
        return result.value

    def select(self, filters: Filters, tag: str | None) -> CandidatePackage | None:
        by_date = orders_by_publish_date(
            latest_by_publish_date=self.options.latest_by_publish_date, tag=tag
        )
        filters.pop(TAKE, None)
        if by_date:
            filters[TAKE] = self.options.max_candidates

        selected = select_candidate(
            self.search(filters),
            latest_by_publish_date=self.options.latest_by_publish_date,
            prerelease_filter=is_prerelease_filter(tag),
        )
        if selected is not None and by_date:
            self.console.debug(
                f"step '{self.step.display_name}': chose '{selected.version}' by latest publish date "
                "instead of highest version"
            )
        return selected


Strategy = Callable[[CascadeContext], Resolved | None]


def exact_override(ctx: CascadeContext) -> Resolved | None:
    version = (ctx.options.exact_version or "").strip()
    if not version:
        return None

    filters = dict(ctx.base_filters)
    filters.pop(PRERELEASE_TAG, None)
    filters[VERSION_RANGE] = f"[{version}]"
    candidates = ctx.search(filters)
    if candidates:
        ctx.console.debug(
            f"step '{ctx.step.display_name}': found exact version '{candidates[0].version}', "
            "skipping pre-release tag search"
        )
        return Resolved(version=candidates[0].version, source=VersionSource.EXACT_OVERRIDE)

    ctx.console.debug(
        f"step '{ctx.step.display_name}': exact version '{version}' not in feed '{ctx.feed.name}', "
        "falling back to tag search"
    )
    return None


def primary_tag(ctx: CascadeContext) -> Resolved | None:
    filters = dict(ctx.base_filters)
    tag = (ctx.options.prerelease_tag or "").strip() or None
    source = VersionSource.LATEST_AVAILABLE
    if tag is not None:
        filters[PRERELEASE_TAG] = tag
        source = VersionSource.PRIMARY_TAG
        ctx.console.debug(f"step '{ctx.step.display_name}': looking for latest package tagged '{tag}'")

    selected = ctx.select(filters, tag)
    if selected is None:
        return None
    return Resolved(version=selected.version, source=source)


def fallback_tags(ctx: CascadeContext) -> Resolved | None:
    tags = parse_fallback_tags(ctx.options.prerelease_tag_fallbacks)
    if not tags:
        return None

    ctx.console.debug(
        f"step '{ctx.step.display_name}': nothing found for the primary search, "
        f"trying fallback tags {', '.join(tags)}"
    )
    filters = dict(ctx.base_filters)
    for tag in tags:
        filters[PRERELEASE_TAG] = tag
        selected = ctx.select(filters, tag)
        if selected is not None:
            ctx.console.debug(f"step '{ctx.step.display_name}': fallback tag '{tag}' matched")
            return Resolved(version=selected.version, source=VersionSource.FALLBACK_TAG)
    return None


STRATEGIES: tuple[Strategy, ...] = (exact_override, primary_tag, fallback_tags)


def _lookup_feed(step: StepPlan, repository: ReleaseRepository) -> Result[Feed, ReleaseError]:
    result = repository.get_feed(step.feed_id)
    if isinstance(result, Err):
        return Err(
            ReleaseError(
                kind="feed_unavailable",
                message=f"could not load feed {step.feed_id} used by step '{step.action_name}'",
                hint=result.error.message,
            )
        )
    if result.value is None:
        return Err(
            ReleaseError(
                kind="feed_not_found",
                message=f"could not find a feed with ID {step.feed_id}, which is used by step '{step.action_name}'",
                hint="Check the step's package feed in the deployment process.",
            )
        )
    return Ok(result.value)


def resolve_step(
    step: StepPlan,
    *,
    repository: ReleaseRepository,
    channel: Channel | None,
    options: ResolutionOptions,
    console: ConsoleProtocol,
    strategies: tuple[Strategy, ...] = STRATEGIES,
) -> Result[None, ReleaseError]:
    """Resolve one step in place.

    Returns Err only for a missing feed; every other failure leaves the step
    marked unresolved and returns Ok.
    """
    if not step.is_resolvable:
        console.error(
            f"the version for step '{step.display_name}' cannot be resolved automatically "
            "because the feed or package ID is dynamic"
        )
        step.mark_unresolved("feed or package ID is dynamic")
        return Ok(None)

    feed_result = _lookup_feed(step, repository)
    if isinstance(feed_result, Err):
        return feed_result
    feed = feed_result.value

    base_filters = build_channel_filters(step.action_name, step.package_reference_name, channel)
    base_filters[PACKAGE_ID] = step.package_id
    console.debug(f"step '{step.display_name}': resolving package '{step.package_id}' from feed '{feed.name}'")

    ctx = CascadeContext(
        step=step,
        feed=feed,
        base_filters=base_filters,
        options=options,
        repository=repository,
        console=console,
    )
    for strategy in strategies:
        outcome = strategy(ctx)
        if outcome is not None:
            step.resolve(outcome.version, outcome.source)
            console.debug(f"step '{step.display_name}': selected '{outcome.version}' ({outcome.source})")
            return Ok(None)

    console.error(
        f"step '{step.display_name}': could not find any package '{step.package_id}' "
        f"in feed '{feed.name}'"
    )
    step.mark_unresolved(f"no matching package '{step.package_id}' in feed '{feed.name}'")
    return Ok(None)
