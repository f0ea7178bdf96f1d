from __future__ import annotations

from relplan.core.result import Err, Ok, Result
from relplan.release.errors import ReleaseError
from relplan.release.model import (
    Channel,
    NotTested,
    ReleasePlan,
    RuleFailed,
    RulePassed,
    RuleVerdict,
    StepPlan,
    Unconstrained,
    VersionRule,
)
from relplan.release.repository import ReleaseRepository


def matching_rules(step: StepPlan, channel: Channel | None) -> list[VersionRule]:
    if channel is None:
        return []
    return [r for r in channel.rules if r.applies_to(step.action_name, step.package_reference_name)]


def validate_step(
    step: StepPlan,
    *,
    channel: Channel | None,
    repository: ReleaseRepository,
) -> Result[RuleVerdict, ReleaseError]:
    """Test a step's version against the single channel rule governing it.

    More than one governing rule is a channel configuration error.
    """
    rules = matching_rules(step, channel)
    if not rules:
        return Ok(Unconstrained())
    if len(rules) > 1:
        ids = ", ".join(r.id for r in rules)
        return Err(
            ReleaseError(
                kind="ambiguous_channel_rules",
                message=f"step '{step.display_name}' matches more than one channel version rule ({ids})",
                hint="Each step/package reference may appear in at most one rule of a channel.",
            )
        )

    rule = rules[0]
    version = step.version
    if version is None:
        return Ok(NotTested(reason="unresolved"))

    tested = repository.test_rule(rule, version)
    if isinstance(tested, Err):
        return Err(
            ReleaseError(
                kind="rule_test_failed",
                message=f"could not test version '{version}' of step '{step.display_name}' against rule {rule.id}",
                hint=tested.error.message,
            )
        )

    outcome = tested.value
    if outcome.passed:
        return Ok(RulePassed(rule=rule))
    return Ok(
        RuleFailed(
            rule=rule,
            satisfies_version_range=outcome.satisfies_version_range,
            satisfies_prerelease_tag=outcome.satisfies_prerelease_tag,
        )
    )


def validate_plan(plan: ReleasePlan, *, repository: ReleaseRepository) -> Result[None, ReleaseError]:
    """Stamp every package step with a channel rule verdict."""
    for step in plan.package_steps:
        verdict = validate_step(step, channel=plan.channel, repository=repository)
        if isinstance(verdict, Err):
            return verdict
        step.set_verdict(verdict.value)
    return Ok(None)
