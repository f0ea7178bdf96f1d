"""Plan command - resolve package versions for a release and check channel rules."""

from __future__ import annotations

from pathlib import Path

import typer

from relplan.cli.commands._helpers import exit_with_code, unwrap_or_exit
from relplan.cli.context import build_context
from relplan.core.config import ResolutionConfig
from relplan.core.errors import ErrorCode
from relplan.output.plan import render_plan
from relplan.release.builder import ReleasePlanBuilder
from relplan.release.cascade import ResolutionOptions
from relplan.release.pins import parse_pins
from relplan.release.selector import MAX_CANDIDATES


def resolution_options(
    config: ResolutionConfig,
    *,
    prerelease_tag: str | None,
    prerelease_tag_fallbacks: str | None,
    exact_version: str | None,
    latest_by_publish_date: bool,
) -> ResolutionOptions:
    """Merge command-line flags over the [resolution] config table."""
    return ResolutionOptions(
        prerelease_tag=prerelease_tag if prerelease_tag is not None else config.prerelease_tag,
        prerelease_tag_fallbacks=(
            prerelease_tag_fallbacks
            if prerelease_tag_fallbacks is not None
            else config.prerelease_tag_fallbacks
        ),
        exact_version=exact_version,
        latest_by_publish_date=latest_by_publish_date or config.latest_by_publish_date,
        max_candidates=config.max_candidates or MAX_CANDIDATES,
    )


def plan(
    project: str = typer.Argument(..., help="Project ID or slug"),
    channel: str | None = typer.Option(
        None, "--channel", help="Channel name (default: the project's default channel)", show_default=False
    ),
    package: list[str] = typer.Option(
        [],
        "--package",
        help="Explicit version: StepNameOrPackageId:Version or StepNameOrPackageId:Reference:Version",
    ),
    package_version: str | None = typer.Option(
        None, "--package-version", help="Version used for every step not pinned by --package", show_default=False
    ),
    prerelease_tag: str | None = typer.Option(
        None, "--prerelease-tag", help="Pre-release tag to look for first ('^$' for stable only)", show_default=False
    ),
    prerelease_tag_fallbacks: str | None = typer.Option(
        None,
        "--prerelease-tag-fallbacks",
        help="Comma-separated tags tried in order when --prerelease-tag finds nothing",
        show_default=False,
    ),
    soft_default_package_version: str | None = typer.Option(
        None,
        "--soft-default-package-version",
        help="Use exactly this version where the feed has it, otherwise resolve as usual",
        show_default=False,
    ),
    latest_by_publish_date: bool = typer.Option(
        False,
        "--latest-by-publish-date",
        help="For pre-release searches, pick the most recently published package instead of the highest version",
    ),
    ignore_channel_rules: bool = typer.Option(
        False, "--ignore-channel-rules", help="Do not fail when versions violate channel rules"
    ),
    server: str | None = typer.Option(None, "--server", help="Deployment server URL", show_default=False),
    api_key: str | None = typer.Option(
        None, "--api-key", help="API key (default: from the configured environment variable)", show_default=False
    ),
    config_path: Path | None = typer.Option(
        None, "--config", help="Path to relplan.toml (default: ./relplan.toml)", show_default=False
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show resolution diagnostics"),
) -> None:
    """Resolve the package version of every step and test it against the channel."""
    ctx = build_context(config_path=config_path, server=server, api_key=api_key, verbose=verbose)

    pins = unwrap_or_exit(parse_pins(package, default=package_version), ctx)
    proj = unwrap_or_exit(ctx.repository.get_project(project), ctx)
    chan = unwrap_or_exit(ctx.repository.get_channel(proj, channel), ctx)

    options = resolution_options(
        ctx.config.resolution,
        prerelease_tag=prerelease_tag,
        prerelease_tag_fallbacks=prerelease_tag_fallbacks,
        exact_version=soft_default_package_version,
        latest_by_publish_date=latest_by_publish_date,
    )

    builder = ReleasePlanBuilder(ctx.repository, ctx.console)
    release_plan = unwrap_or_exit(builder.build(proj, chan, options, pins), ctx)

    render_plan(release_plan, ctx.console, ignore_channel_rules=ignore_channel_rules)
    if not release_plan.is_viable(ignore_channel_rules=ignore_channel_rules):
        exit_with_code(int(ErrorCode.RESOLUTION_ERROR))
