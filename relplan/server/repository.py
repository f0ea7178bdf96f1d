"""ReleaseRepository backed by the deployment server's REST API.

Endpoints (relative to the server URL):

    GET /api/projects/{idOrSlug}
    GET /api/projects/{id}/channels
    GET /api/deploymentprocesses/{id}
    GET /api/deploymentprocesses/{id}/template?channel={channelId}
    GET /api/feeds/{id}
    GET /api/feeds/{id}/packages/search?packageId=...&versionRange=...&preReleaseTag=...&take=...
    GET /api/channels/rule-test?version=...&versionRange=...&preReleaseTag=...

Resource documents use PascalCase keys. Collections are wrapped as
``{"Items": [...]}``.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any
from urllib.parse import quote

from relplan.core.result import Err, Ok, Result
from relplan.core.structured import StrDict, get_bool, get_str, iter_tables
from relplan.release.errors import ReleaseError, ReleaseErrorKind
from relplan.release.filters import Filters
from relplan.release.model import (
    ActionPackage,
    CandidatePackage,
    Channel,
    DeploymentProcess,
    DeploymentStep,
    Feed,
    Project,
    ReleaseTemplate,
    RuleTestResult,
    TemplatePackage,
    VersionRule,
)
from relplan.server.http import HttpClient, HttpError

__all__ = ["ServerRepository"]


class _MalformedResource(ValueError):
    pass


def _required(data: Mapping[str, object], key: str, what: str) -> str:
    value = get_str(data, key)
    if value is None:
        raise _MalformedResource(f"{what} is missing '{key}'")
    return value


def _parse_published(value: object) -> datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        return None


def parse_project(data: StrDict) -> Project:
    return Project(
        id=_required(data, "Id", "project"),
        name=get_str(data, "Name") or _required(data, "Id", "project"),
        deployment_process_id=_required(data, "DeploymentProcessId", "project"),
    )


def parse_rule(data: StrDict) -> VersionRule:
    return VersionRule(
        id=_required(data, "Id", "channel rule"),
        version_range=get_str(data, "VersionRange"),
        tag=get_str(data, "Tag"),
        action_packages=tuple(
            ActionPackage(
                deployment_action=_required(p, "DeploymentAction", "channel rule package"),
                package_reference=get_str(p, "PackageReference"),
            )
            for p in iter_tables(data, "ActionPackages")
        ),
    )


def parse_channel(data: StrDict) -> Channel:
    return Channel(
        id=_required(data, "Id", "channel"),
        name=get_str(data, "Name") or _required(data, "Id", "channel"),
        rules=tuple(parse_rule(r) for r in iter_tables(data, "Rules")),
        is_default=get_bool(data, "IsDefault") or False,
    )


def parse_process(data: StrDict) -> DeploymentProcess:
    return DeploymentProcess(
        id=_required(data, "Id", "deployment process"),
        project_id=get_str(data, "ProjectId") or "",
        steps=tuple(DeploymentStep(name=_required(s, "Name", "step")) for s in iter_tables(data, "Steps")),
    )


def parse_template(data: StrDict) -> ReleaseTemplate:
    packages: list[TemplatePackage] = []
    for p in iter_tables(data, "Packages"):
        resolvable = get_bool(p, "IsResolvable")
        packages.append(
            TemplatePackage(
                action_name=_required(p, "ActionName", "template package"),
                package_id=get_str(p, "PackageId") or "",
                feed_id=get_str(p, "FeedId") or "",
                package_reference_name=get_str(p, "PackageReferenceName"),
                is_resolvable=True if resolvable is None else resolvable,
            )
        )
    return ReleaseTemplate(packages=tuple(packages))


def parse_candidates(data: StrDict) -> list[CandidatePackage]:
    return [
        CandidatePackage(
            version=_required(item, "Version", "package"),
            published=_parse_published(item.get("Published")),
        )
        for item in iter_tables(data, "Items")
    ]


def _parse_resource[T](
    parse: Callable[[StrDict], T],
    data: StrDict,
    kind: ReleaseErrorKind,
    what: str,
) -> Result[T, ReleaseError]:
    try:
        return Ok(parse(data))
    except _MalformedResource as e:
        return Err(ReleaseError(kind=kind, message=f"malformed {what} returned by server: {e}"))


class ServerRepository:
    """Reads release planning inputs from the deployment server."""

    def __init__(self, base_url: str, http: HttpClient) -> None:
        self._base = base_url.rstrip("/")
        self._http = http

    def _url(self, *parts: str) -> str:
        return self._base + "/api/" + "/".join(quote(p, safe="") for p in parts)

    def _get(
        self,
        url: str,
        *,
        kind: ReleaseErrorKind,
        message: str,
        params: Mapping[str, str | int] | None = None,
    ) -> Result[dict[str, Any], ReleaseError]:
        result = self._http.get_json(url, params)
        if isinstance(result, Err):
            return Err(self._error(result.error, kind=kind, message=message))
        return result

    @staticmethod
    def _error(error: HttpError, *, kind: ReleaseErrorKind, message: str) -> ReleaseError:
        if error.is_not_found:
            return ReleaseError(kind=kind, message=message, hint=str(error))
        return ReleaseError(
            kind="server_unavailable",
            message=f"{message}: {error.message}",
            hint="Check the server URL, API key and network connectivity.",
        )

    def get_project(self, ref: str) -> Result[Project, ReleaseError]:
        result = self._get(self._url("projects", ref), kind="project_not_found", message=f"project not found: {ref}")
        if isinstance(result, Err):
            return result
        return _parse_resource(parse_project, result.value, "project_not_found", "project")

    def get_channel(self, project: Project, name: str | None) -> Result[Channel | None, ReleaseError]:
        result = self._get(
            self._url("projects", project.id, "channels"),
            kind="channel_not_found",
            message=f"could not list channels of project '{project.name}'",
        )
        if isinstance(result, Err):
            return result

        try:
            channels = [parse_channel(c) for c in iter_tables(result.value, "Items")]
        except _MalformedResource as e:
            return Err(ReleaseError(kind="channel_not_found", message=f"malformed channel returned by server: {e}"))

        if name is None:
            return Ok(next((c for c in channels if c.is_default), None))
        for channel in channels:
            if channel.name.casefold() == name.casefold():
                return Ok(channel)
        return Err(
            ReleaseError(
                kind="channel_not_found",
                message=f"channel '{name}' not found for project '{project.name}'",
                hint="Available: " + (", ".join(c.name for c in channels) or "(none)"),
            )
        )

    def get_deployment_process(self, project: Project) -> Result[DeploymentProcess, ReleaseError]:
        result = self._get(
            self._url("deploymentprocesses", project.deployment_process_id),
            kind="process_not_found",
            message=f"deployment process not found for project '{project.name}'",
        )
        if isinstance(result, Err):
            return result
        return _parse_resource(parse_process, result.value, "process_not_found", "deployment process")

    def get_template(
        self, process: DeploymentProcess, channel: Channel | None
    ) -> Result[ReleaseTemplate, ReleaseError]:
        params = {"channel": channel.id} if channel is not None else None
        result = self._get(
            self._url("deploymentprocesses", process.id, "template"),
            kind="template_failed",
            message=f"release template not found for deployment process {process.id}",
            params=params,
        )
        if isinstance(result, Err):
            return result
        return _parse_resource(parse_template, result.value, "template_failed", "release template")

    def get_feed(self, feed_id: str) -> Result[Feed | None, ReleaseError]:
        result = self._http.get_json(self._url("feeds", feed_id))
        if isinstance(result, Err):
            if result.error.is_not_found:
                return Ok(None)
            return Err(self._error(result.error, kind="feed_unavailable", message=f"could not load feed {feed_id}"))

        data = result.value
        return Ok(Feed(id=get_str(data, "Id") or feed_id, name=get_str(data, "Name") or feed_id))

    def search_packages(self, feed: Feed, filters: Filters) -> Result[list[CandidatePackage], ReleaseError]:
        result = self._get(
            self._url("feeds", feed.id, "packages", "search"),
            kind="feed_unavailable",
            message=f"package search failed in feed '{feed.name}'",
            params=filters,
        )
        if isinstance(result, Err):
            return result
        return _parse_resource(parse_candidates, result.value, "feed_unavailable", "package list")

    def test_rule(self, rule: VersionRule, version: str) -> Result[RuleTestResult, ReleaseError]:
        params: dict[str, str | int] = {"version": version}
        if rule.version_range:
            params["versionRange"] = rule.version_range
        if rule.tag:
            params["preReleaseTag"] = rule.tag
        result = self._get(
            self._url("channels", "rule-test"),
            kind="rule_test_failed",
            message=f"rule test endpoint unavailable for rule {rule.id}",
            params=params,
        )
        if isinstance(result, Err):
            return result

        data = result.value
        return Ok(
            RuleTestResult(
                satisfies_version_range=get_bool(data, "SatisfiesVersionRange") or False,
                satisfies_prerelease_tag=get_bool(data, "SatisfiesPreReleaseTag") or False,
            )
        )
