from __future__ import annotations

from relplan.core.result import Err, Ok, Result
from relplan.output.console import ConsoleProtocol
from relplan.release.cascade import ResolutionOptions, resolve_step
from relplan.release.errors import ReleaseError
from relplan.release.model import (
    Channel,
    Project,
    ReleasePlan,
    ReleaseTemplate,
    StepPlan,
    VersionSource,
)
from relplan.release.pins import PackageVersionPins
from relplan.release.repository import ReleaseRepository
from relplan.release.validator import validate_plan


def plan_steps(template: ReleaseTemplate, pins: PackageVersionPins | None) -> list[StepPlan]:
    """One StepPlan per template package, explicit pins already applied."""
    steps: list[StepPlan] = []
    for package in template.packages:
        step = StepPlan(
            action_name=package.action_name,
            package_id=package.package_id,
            feed_id=package.feed_id,
            package_reference_name=package.package_reference_name,
            is_resolvable=package.is_resolvable,
        )
        if pins is not None:
            version = pins.resolve(package.action_name, package.package_id, package.package_reference_name)
            if version:
                step.resolve(version, VersionSource.EXPLICIT)
        steps.append(step)
    return steps


class ReleasePlanBuilder:
    """Builds and validates the release plan for a project.

    Usage:
        builder = ReleasePlanBuilder(repository, console)
        result = builder.build(project, channel, ResolutionOptions(prerelease_tag="beta"))
        if isinstance(result, Ok) and result.value.is_viable():
            ...
    """

    def __init__(self, repository: ReleaseRepository, console: ConsoleProtocol) -> None:
        self._repository = repository
        self._console = console

    def build(
        self,
        project: Project,
        channel: Channel | None,
        options: ResolutionOptions | None = None,
        pins: PackageVersionPins | None = None,
    ) -> Result[ReleasePlan, ReleaseError]:
        """Resolve every unpinned step, then test all steps against the channel.

        Returns Err for errors that make the plan meaningless (missing process,
        template or feed, ambiguous channel rules). Steps that merely could not
        be resolved are left unresolved in the returned plan.
        """
        options = options or ResolutionOptions()

        self._console.debug("finding deployment process...")
        process = self._repository.get_deployment_process(project)
        if isinstance(process, Err):
            return process

        self._console.debug("finding release template...")
        template = self._repository.get_template(process.value, channel)
        if isinstance(template, Err):
            return template

        plan = ReleasePlan.create(
            project=project,
            channel=channel,
            steps=plan_steps(template.value, pins),
        )

        if plan.unresolved_steps:
            self._console.debug(
                "the package version for some steps was not specified, resolving them automatically..."
            )
        for step in plan.unresolved_steps:
            resolved = resolve_step(
                step,
                repository=self._repository,
                channel=channel,
                options=options,
                console=self._console,
            )
            if isinstance(resolved, Err):
                return resolved

        validated = validate_plan(plan, repository=self._repository)
        if isinstance(validated, Err):
            return validated
        return Ok(plan)
