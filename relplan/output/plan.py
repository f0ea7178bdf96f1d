"""Release plan rendering."""

from __future__ import annotations

from relplan.output.console import ConsoleProtocol, Style
from relplan.release.model import (
    NotTested,
    ReleasePlan,
    RuleFailed,
    RulePassed,
    RuleVerdict,
    StepPlan,
    Unconstrained,
    Unresolved,
)

PLAN_COLUMNS = ("Step", "Package", "Version", "Source", "Channel rule")


def describe_verdict(verdict: RuleVerdict | None) -> str:
    match verdict:
        case None:
            return "-"
        case Unconstrained():
            return "unconstrained"
        case RulePassed(rule=rule):
            return f"passed ({rule.id})"
        case RuleFailed(rule=rule):
            return f"FAILED ({rule.id}: {verdict.describe()})"
        case NotTested(reason=reason):
            return f"not tested ({reason})"
    return "-"


def plan_row(step: StepPlan) -> tuple[str, ...]:
    if isinstance(step.resolution, Unresolved):
        version = "UNRESOLVED"
        source = step.resolution.reason
    else:
        version = step.version or "-"
        source = str(step.source) if step.source is not None else "-"
    return (step.display_name, step.package_id or "(dynamic)", version, source, describe_verdict(step.verdict))


def render_plan(plan: ReleasePlan, console: ConsoleProtocol, *, ignore_channel_rules: bool = False) -> None:
    title = f"Release plan for {plan.project.name}"
    if plan.channel is not None:
        title += f" (channel: {plan.channel.name})"

    if not plan.steps:
        console.header(title)
        console.print("There are no packages to resolve.", Style.DIM)
        return

    console.table(title, PLAN_COLUMNS, [plan_row(s) for s in plan.steps])

    unresolved = [s for s in plan.steps if not s.is_resolved]
    if unresolved:
        names = ", ".join(f"'{s.display_name}'" for s in unresolved)
        console.error(f"{len(unresolved)} step(s) could not be resolved: {names}")

    violating = plan.violating_steps
    if violating:
        names = ", ".join(f"'{s.display_name}'" for s in violating)
        if ignore_channel_rules:
            console.warning(f"channel rules ignored for: {names}")
        else:
            console.error(f"{len(violating)} step(s) violate the channel version rules: {names}")

    if plan.is_viable(ignore_channel_rules=ignore_channel_rules):
        console.success("release plan is viable")
