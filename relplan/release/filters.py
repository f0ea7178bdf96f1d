from __future__ import annotations

from relplan.release.model import Channel, VersionRule

# Query parameters understood by the feed search endpoint.
PACKAGE_ID = "packageId"
VERSION_RANGE = "versionRange"
PRERELEASE_TAG = "preReleaseTag"
TAKE = "take"

type Filters = dict[str, str | int]


def find_filter_rule(
    action_name: str,
    package_reference_name: str | None,
    channel: Channel | None,
) -> VersionRule | None:
    """First channel rule governing the step, in channel order."""
    if channel is None:
        return None
    for rule in channel.rules:
        if rule.applies_to(action_name, package_reference_name):
            return rule
    return None


def build_channel_filters(
    action_name: str,
    package_reference_name: str | None,
    channel: Channel | None,
) -> Filters:
    """Feed search filters implied by the channel rule for a step.

    Returns an empty mapping when there is no channel or no rule applies.
    """
    filters: Filters = {}
    rule = find_filter_rule(action_name, package_reference_name, channel)
    if rule is None:
        return filters

    if rule.version_range and rule.version_range.strip():
        filters[VERSION_RANGE] = rule.version_range.strip()
    if rule.tag and rule.tag.strip():
        filters[PRERELEASE_TAG] = rule.tag.strip()
    return filters
