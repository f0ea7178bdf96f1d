from __future__ import annotations

from relplan.output.console import MockConsole
from relplan.output.plan import describe_verdict, plan_row, render_plan
from relplan.release.model import (
    ActionPackage,
    Channel,
    NotTested,
    Project,
    ReleasePlan,
    RuleFailed,
    RulePassed,
    StepPlan,
    Unconstrained,
    VersionRule,
    VersionSource,
)

PROJECT = Project(id="Projects-1", name="Web", deployment_process_id="dp-1")
RULE = VersionRule(
    id="rule-1",
    version_range="[1.0,2.0)",
    tag="^$",
    action_packages=(ActionPackage("Deploy web"),),
)


def _step(name: str, version: str | None = None) -> StepPlan:
    step = StepPlan(action_name=name, package_id=f"Acme.{name}", feed_id="feeds-1")
    if version is not None:
        step.resolve(version, VersionSource.LATEST_AVAILABLE)
    return step


def test_describe_verdict_variants() -> None:
    assert describe_verdict(None) == "-"
    assert describe_verdict(Unconstrained()) == "unconstrained"
    assert describe_verdict(RulePassed(rule=RULE)) == "passed (rule-1)"
    assert describe_verdict(NotTested(reason="unresolved")) == "not tested (unresolved)"
    failed = RuleFailed(rule=RULE, satisfies_version_range=False, satisfies_prerelease_tag=True)
    assert describe_verdict(failed) == "FAILED (rule-1: outside range '[1.0,2.0)')"


def test_plan_row_for_unresolved_step_shows_reason() -> None:
    step = _step("Deploy web")
    step.mark_unresolved("feed or package ID is dynamic")
    assert plan_row(step) == (
        "Deploy web",
        "Acme.Deploy web",
        "UNRESOLVED",
        "feed or package ID is dynamic",
        "-",
    )


def test_render_viable_plan() -> None:
    step = _step("Deploy web", "1.2.0")
    step.set_verdict(Unconstrained())
    plan = ReleasePlan.create(project=PROJECT, channel=None, steps=[step])
    console = MockConsole()

    render_plan(plan, console)

    assert "Release plan for Web" in console.messages
    assert "Deploy web | Acme.Deploy web | 1.2.0 | latest-available | unconstrained" in console.messages
    assert console.has_error() is False
    assert console.find("release plan is viable")


def test_render_reports_unresolved_and_violations() -> None:
    bad = _step("Deploy web", "3.0.0")
    bad.set_verdict(RuleFailed(rule=RULE, satisfies_version_range=False, satisfies_prerelease_tag=True))
    missing = _step("Deploy api")
    missing.mark_unresolved("no matching package")
    channel = Channel(id="Channels-1", name="Stable", rules=(RULE,))
    plan = ReleasePlan.create(project=PROJECT, channel=channel, steps=[bad, missing])
    console = MockConsole()

    render_plan(plan, console)

    assert console.messages[0] == "Release plan for Web (channel: Stable)"
    assert console.find("1 step(s) could not be resolved: 'Deploy api'")
    assert console.find("1 step(s) violate the channel version rules: 'Deploy web'")
    assert not console.find("viable")


def test_render_ignored_channel_rules_are_warnings() -> None:
    bad = _step("Deploy web", "3.0.0")
    bad.set_verdict(RuleFailed(rule=RULE, satisfies_version_range=False, satisfies_prerelease_tag=True))
    plan = ReleasePlan.create(project=PROJECT, channel=None, steps=[bad])
    console = MockConsole()

    render_plan(plan, console, ignore_channel_rules=True)

    assert console.has_error() is False
    assert console.has_warning()
    assert console.find("release plan is viable")


def test_render_empty_plan() -> None:
    console = MockConsole()
    render_plan(ReleasePlan.create(project=PROJECT, channel=None, steps=[]), console)
    assert console.find("There are no packages to resolve.")
