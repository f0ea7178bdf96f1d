from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone

from relplan.release.model import CandidatePackage

# Page size requested when candidates are ordered by publish date. The feed
# only sorts by version server-side, so date ordering needs the whole list.
MAX_CANDIDATES = 10000

# Pre-release filter meaning "no pre-release suffix allowed".
NO_PRERELEASE = "^$"

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def is_prerelease_filter(tag: str | None) -> bool:
    """True when ``tag`` actually selects pre-release packages."""
    if tag is None or not tag.strip():
        return False
    return tag.strip() != NO_PRERELEASE


def orders_by_publish_date(*, latest_by_publish_date: bool, tag: str | None) -> bool:
    return latest_by_publish_date and is_prerelease_filter(tag)


def _published_key(candidate: CandidatePackage) -> datetime:
    published = candidate.published
    if published is None:
        return _EPOCH
    if published.tzinfo is None:
        return published.replace(tzinfo=timezone.utc)
    return published


def select_candidate(
    candidates: Sequence[CandidatePackage],
    *,
    latest_by_publish_date: bool,
    prerelease_filter: bool,
) -> CandidatePackage | None:
    """Pick the package to use from a feed query result.

    Latest-by-publish-date (first seen on tie) when both flags are set,
    otherwise the first candidate: the feed returns highest version first.
    Publish-date ordering is limited to pre-release searches because hotfix
    releases of older versions can be published after newer stable ones.
    """
    if not candidates:
        return None
    if latest_by_publish_date and prerelease_filter:
        # max() keeps the first of equal keys.
        return max(candidates, key=_published_key)
    return candidates[0]
