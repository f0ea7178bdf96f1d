from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class VersionSource(StrEnum):
    """Which resolution strategy supplied a step's version."""

    EXPLICIT = "explicit"
    LATEST_AVAILABLE = "latest-available"
    EXACT_OVERRIDE = "exact-override"
    PRIMARY_TAG = "primary-tag"
    FALLBACK_TAG = "fallback-tag"


# --- Server-side resources (read-only inputs) -------------------------------


@dataclass(frozen=True, slots=True)
class Project:
    id: str
    name: str
    deployment_process_id: str


@dataclass(frozen=True, slots=True)
class Feed:
    id: str
    name: str


@dataclass(frozen=True, slots=True)
class ActionPackage:
    """A (step, package reference) pair a version rule governs.

    A missing package reference means the step's primary package, which has
    an empty reference name.
    """

    deployment_action: str
    package_reference: str | None = None

    def matches(self, action_name: str, package_reference_name: str | None) -> bool:
        if self.deployment_action.casefold() != action_name.casefold():
            return False
        return (self.package_reference or "").casefold() == (package_reference_name or "").casefold()


@dataclass(frozen=True, slots=True)
class VersionRule:
    id: str
    version_range: str | None
    tag: str | None
    action_packages: tuple[ActionPackage, ...]

    def applies_to(self, action_name: str, package_reference_name: str | None) -> bool:
        return any(p.matches(action_name, package_reference_name) for p in self.action_packages)


@dataclass(frozen=True, slots=True)
class Channel:
    id: str
    name: str
    rules: tuple[VersionRule, ...] = ()
    is_default: bool = False


@dataclass(frozen=True, slots=True)
class DeploymentStep:
    name: str


@dataclass(frozen=True, slots=True)
class DeploymentProcess:
    id: str
    project_id: str
    steps: tuple[DeploymentStep, ...] = ()


@dataclass(frozen=True, slots=True)
class TemplatePackage:
    """One package reference of one step, as the release template lists it.

    ``is_resolvable`` is False when the feed or package ID is computed at
    deploy time, so no feed can be queried while planning.
    """

    action_name: str
    package_id: str
    feed_id: str
    package_reference_name: str | None = None
    is_resolvable: bool = True


@dataclass(frozen=True, slots=True)
class ReleaseTemplate:
    packages: tuple[TemplatePackage, ...] = ()


@dataclass(frozen=True, slots=True)
class CandidatePackage:
    version: str
    published: datetime | None = None


@dataclass(frozen=True, slots=True)
class RuleTestResult:
    satisfies_version_range: bool
    satisfies_prerelease_tag: bool

    @property
    def passed(self) -> bool:
        return self.satisfies_version_range and self.satisfies_prerelease_tag


# --- Resolution outcome ------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Resolved:
    version: str
    source: VersionSource


@dataclass(frozen=True, slots=True)
class Unresolved:
    reason: str


type ResolutionOutcome = Resolved | Unresolved


# --- Channel rule verdict ----------------------------------------------------


@dataclass(frozen=True, slots=True)
class Unconstrained:
    """No channel rule governs the step; anything goes."""

    @property
    def passed(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class RulePassed:
    rule: VersionRule

    @property
    def passed(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class RuleFailed:
    rule: VersionRule
    satisfies_version_range: bool
    satisfies_prerelease_tag: bool

    @property
    def passed(self) -> bool:
        return False

    def describe(self) -> str:
        problems: list[str] = []
        if not self.satisfies_version_range:
            problems.append(f"outside range {self.rule.version_range!r}")
        if not self.satisfies_prerelease_tag:
            problems.append(f"tag does not match {self.rule.tag!r}")
        return ", ".join(problems) or "rejected"


@dataclass(frozen=True, slots=True)
class NotTested:
    reason: str

    @property
    def passed(self) -> bool:
        return False


type RuleVerdict = Unconstrained | RulePassed | RuleFailed | NotTested


# --- Plan --------------------------------------------------------------------


@dataclass(slots=True)
class StepPlan:
    """Resolution state for one step/package-reference pair.

    Owned by a ReleasePlan; the cascade sets ``resolution`` and the validator
    sets ``verdict``.
    """

    action_name: str
    package_id: str
    feed_id: str
    package_reference_name: str | None = None
    is_resolvable: bool = True
    resolution: ResolutionOutcome | None = None
    verdict: RuleVerdict | None = None

    @property
    def version(self) -> str | None:
        if isinstance(self.resolution, Resolved):
            return self.resolution.version
        return None

    @property
    def source(self) -> VersionSource | None:
        if isinstance(self.resolution, Resolved):
            return self.resolution.source
        return None

    @property
    def is_resolved(self) -> bool:
        return self.version is not None

    @property
    def display_name(self) -> str:
        if self.package_reference_name:
            return f"{self.action_name}/{self.package_reference_name}"
        return self.action_name

    def resolve(self, version: str, source: VersionSource) -> None:
        if not version.strip():
            raise ValueError(f"empty version for step '{self.display_name}'")
        self.resolution = Resolved(version=version.strip(), source=source)

    def mark_unresolved(self, reason: str) -> None:
        self.resolution = Unresolved(reason=reason)

    def set_verdict(self, verdict: RuleVerdict) -> None:
        self.verdict = verdict


def _empty_steps() -> list[StepPlan]:
    return []


@dataclass(slots=True)
class ReleasePlan:
    project: Project
    channel: Channel | None
    steps: list[StepPlan] = field(default_factory=_empty_steps)
    _unresolved: tuple[StepPlan, ...] = ()

    @classmethod
    def create(
        cls,
        *,
        project: Project,
        channel: Channel | None,
        steps: list[StepPlan],
    ) -> ReleasePlan:
        """Build a plan, capturing which steps still lack a version."""
        unresolved = tuple(s for s in steps if not s.is_resolved)
        return cls(project=project, channel=channel, steps=steps, _unresolved=unresolved)

    @property
    def unresolved_steps(self) -> tuple[StepPlan, ...]:
        """Steps that had no version when the plan was created."""
        return self._unresolved

    @property
    def package_steps(self) -> tuple[StepPlan, ...]:
        return tuple(self.steps)

    @property
    def has_unresolved_steps(self) -> bool:
        return any(not s.is_resolved for s in self.steps)

    @property
    def violating_steps(self) -> tuple[StepPlan, ...]:
        return tuple(s for s in self.steps if isinstance(s.verdict, RuleFailed))

    def is_viable(self, *, ignore_channel_rules: bool = False) -> bool:
        if self.has_unresolved_steps:
            return False
        if ignore_channel_rules:
            return True
        return not self.violating_steps
