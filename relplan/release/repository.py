"""Collaborator contract for release planning.

ReleaseRepository is everything the planner needs from the deployment
server: project, channel, process and template lookup, feed search, and
channel rule testing. ServerRepository (relplan.server) talks to the REST
API; InMemoryRepository serves fixed data for tests and dry runs.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from relplan.core.result import Err, Ok, Result
from relplan.release.errors import ReleaseError
from relplan.release.filters import Filters
from relplan.release.model import (
    CandidatePackage,
    Channel,
    DeploymentProcess,
    Feed,
    Project,
    ReleaseTemplate,
    RuleTestResult,
    VersionRule,
)

__all__ = [
    "ReleaseRepository",
    "InMemoryRepository",
    "SearchCall",
]


@runtime_checkable
class ReleaseRepository(Protocol):
    def get_project(self, ref: str) -> Result[Project, ReleaseError]:
        """Look up a project by ID or name."""
        ...

    def get_channel(self, project: Project, name: str | None) -> Result[Channel | None, ReleaseError]:
        """Look up a project channel by name; None selects the default channel.

        Ok(None) means the project has no channel to apply.
        """
        ...

    def get_deployment_process(self, project: Project) -> Result[DeploymentProcess, ReleaseError]: ...

    def get_template(
        self, process: DeploymentProcess, channel: Channel | None
    ) -> Result[ReleaseTemplate, ReleaseError]: ...

    def get_feed(self, feed_id: str) -> Result[Feed | None, ReleaseError]:
        """Ok(None) when the feed does not exist."""
        ...

    def search_packages(self, feed: Feed, filters: Filters) -> Result[list[CandidatePackage], ReleaseError]:
        """Search a feed. An empty list is a normal "no match" answer."""
        ...

    def test_rule(self, rule: VersionRule, version: str) -> Result[RuleTestResult, ReleaseError]: ...


@dataclass(frozen=True, slots=True)
class SearchCall:
    feed_id: str
    filters: dict[str, str | int]


PackageSearch = Callable[[Feed, Filters], list[CandidatePackage]]
RuleTest = Callable[[VersionRule, str], RuleTestResult]


def _accept_all(rule: VersionRule, version: str) -> RuleTestResult:
    return RuleTestResult(satisfies_version_range=True, satisfies_prerelease_tag=True)


@dataclass
class InMemoryRepository:
    """Repository over fixed data.

    ``packages`` maps a package ID to candidates in feed order (highest
    version first). Searching ignores range and tag filters unless a
    ``search`` callable is provided, which then answers every query. Every
    search is recorded in ``searches`` in call order.
    """

    projects: list[Project] = field(default_factory=list)
    channels: Mapping[str, list[Channel]] = field(default_factory=dict)
    processes: Mapping[str, DeploymentProcess] = field(default_factory=dict)
    templates: Mapping[str, ReleaseTemplate] = field(default_factory=dict)
    feeds: Mapping[str, Feed] = field(default_factory=dict)
    packages: Mapping[str, list[CandidatePackage]] = field(default_factory=dict)
    search: PackageSearch | None = None
    rule_test: RuleTest = _accept_all
    searches: list[SearchCall] = field(default_factory=list)
    rule_tests: list[tuple[str, str]] = field(default_factory=list)

    def get_project(self, ref: str) -> Result[Project, ReleaseError]:
        wanted = ref.casefold()
        for project in self.projects:
            if project.id.casefold() == wanted or project.name.casefold() == wanted:
                return Ok(project)
        return Err(ReleaseError(kind="project_not_found", message=f"project not found: {ref}"))

    def get_channel(self, project: Project, name: str | None) -> Result[Channel | None, ReleaseError]:
        channels = self.channels.get(project.id, [])
        if name is None:
            return Ok(next((c for c in channels if c.is_default), None))
        for channel in channels:
            if channel.name.casefold() == name.casefold():
                return Ok(channel)
        return Err(
            ReleaseError(
                kind="channel_not_found",
                message=f"channel '{name}' not found for project '{project.name}'",
            )
        )

    def get_deployment_process(self, project: Project) -> Result[DeploymentProcess, ReleaseError]:
        process = self.processes.get(project.deployment_process_id)
        if process is None:
            return Err(
                ReleaseError(
                    kind="process_not_found",
                    message=f"deployment process not found: {project.deployment_process_id}",
                )
            )
        return Ok(process)

    def get_template(
        self, process: DeploymentProcess, channel: Channel | None
    ) -> Result[ReleaseTemplate, ReleaseError]:
        template = self.templates.get(process.id)
        if template is None:
            return Err(
                ReleaseError(
                    kind="template_failed",
                    message=f"no release template for deployment process {process.id}",
                )
            )
        return Ok(template)

    def get_feed(self, feed_id: str) -> Result[Feed | None, ReleaseError]:
        return Ok(self.feeds.get(feed_id))

    def search_packages(self, feed: Feed, filters: Filters) -> Result[list[CandidatePackage], ReleaseError]:
        self.searches.append(SearchCall(feed_id=feed.id, filters=dict(filters)))
        if self.search is not None:
            return Ok(list(self.search(feed, filters)))
        package_id = str(filters.get("packageId", ""))
        return Ok(list(self.packages.get(package_id, [])))

    def test_rule(self, rule: VersionRule, version: str) -> Result[RuleTestResult, ReleaseError]:
        self.rule_tests.append((rule.id, version))
        return Ok(self.rule_test(rule, version))
