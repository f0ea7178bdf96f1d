from __future__ import annotations

from relplan.core.result import Err, Ok
from relplan.output.console import MockConsole, Style
from relplan.release.builder import ReleasePlanBuilder, plan_steps
from relplan.release.cascade import ResolutionOptions
from relplan.release.filters import Filters
from relplan.release.model import (
    ActionPackage,
    CandidatePackage,
    Channel,
    DeploymentProcess,
    DeploymentStep,
    Feed,
    NotTested,
    Project,
    ReleaseTemplate,
    Resolved,
    RulePassed,
    TemplatePackage,
    Unconstrained,
    Unresolved,
    VersionRule,
    VersionSource,
)
from relplan.release.pins import PackageVersionPins
from relplan.release.repository import InMemoryRepository

PROJECT = Project(id="Projects-1", name="Shop", deployment_process_id="dp-1")
FEED = Feed(id="F", name="Feed F")


def _repo(*packages: TemplatePackage, **kwargs: object) -> InMemoryRepository:
    process = DeploymentProcess(
        id="dp-1",
        project_id=PROJECT.id,
        steps=tuple(DeploymentStep(name=p.action_name) for p in packages),
    )
    return InMemoryRepository(
        projects=[PROJECT],
        processes={"dp-1": process},
        templates={"dp-1": ReleaseTemplate(packages=packages)},
        feeds={FEED.id: FEED},
        **kwargs,  # type: ignore[arg-type]
    )


def test_pinned_and_unpinned_steps() -> None:
    repo = _repo(
        TemplatePackage(action_name="Deploy db", package_id="Bar", feed_id="F"),
        TemplatePackage(action_name="Deploy app", package_id="Foo", feed_id="F"),
        packages={"Foo": [CandidatePackage("2.0.0"), CandidatePackage("1.9.0-beta")]},
    )
    pins = PackageVersionPins()
    pins.add("Deploy db:1.0.0")

    result = ReleasePlanBuilder(repo, MockConsole()).build(PROJECT, None, ResolutionOptions(), pins)

    assert isinstance(result, Ok)
    plan = result.value
    assert [s.resolution for s in plan.steps] == [
        Resolved(version="1.0.0", source=VersionSource.EXPLICIT),
        Resolved(version="2.0.0", source=VersionSource.LATEST_AVAILABLE),
    ]
    assert [s.action_name for s in plan.unresolved_steps] == ["Deploy app"]
    assert [c.filters["packageId"] for c in repo.searches] == ["Foo"]
    assert plan.is_viable()


def test_pinned_steps_never_enter_the_cascade() -> None:
    repo = _repo(
        TemplatePackage(action_name="Deploy app", package_id="Foo", feed_id="missing-feed"),
    )

    result = ReleasePlanBuilder(repo, MockConsole()).build(
        PROJECT,
        None,
        ResolutionOptions(prerelease_tag="beta"),
        PackageVersionPins(default="7.0.0"),
    )

    assert isinstance(result, Ok)
    assert result.value.steps[0].resolution == Resolved(version="7.0.0", source=VersionSource.EXPLICIT)
    assert repo.searches == []


def test_fallback_tags_end_to_end() -> None:
    def search(feed: Feed, filters: Filters) -> list[CandidatePackage]:
        if filters.get("preReleaseTag") == "alpha":
            return [CandidatePackage("3.0.0-alpha.1")]
        return []

    repo = _repo(TemplatePackage(action_name="Deploy app", package_id="Foo", feed_id="F"), search=search)

    result = ReleasePlanBuilder(repo, MockConsole()).build(
        PROJECT,
        None,
        ResolutionOptions(prerelease_tag="beta", prerelease_tag_fallbacks="rc,alpha"),
    )

    assert isinstance(result, Ok)
    assert result.value.steps[0].resolution == Resolved(
        version="3.0.0-alpha.1", source=VersionSource.FALLBACK_TAG
    )


def test_failed_steps_do_not_stop_the_build() -> None:
    repo = _repo(
        TemplatePackage(action_name="Dynamic", package_id="#{Pkg}", feed_id="F", is_resolvable=False),
        TemplatePackage(action_name="Empty", package_id="Nothing", feed_id="F"),
        TemplatePackage(action_name="Good", package_id="Foo", feed_id="F"),
        packages={"Foo": [CandidatePackage("1.2.3")]},
    )
    console = MockConsole()

    result = ReleasePlanBuilder(repo, console).build(PROJECT, None)

    assert isinstance(result, Ok)
    plan = result.value
    assert [s.action_name for s in plan.steps] == ["Dynamic", "Empty", "Good"]
    assert isinstance(plan.steps[0].resolution, Unresolved)
    assert isinstance(plan.steps[1].resolution, Unresolved)
    assert plan.steps[2].version == "1.2.3"
    assert plan.has_unresolved_steps
    assert not plan.is_viable()
    assert console.count(Style.ERROR) == 2


def test_every_step_ends_resolved_or_unresolved() -> None:
    repo = _repo(
        TemplatePackage(action_name="A", package_id="Foo", feed_id="F"),
        TemplatePackage(action_name="B", package_id="Bar", feed_id="F"),
        TemplatePackage(action_name="C", package_id="", feed_id="", is_resolvable=False),
        packages={"Foo": [CandidatePackage("1.0.0")]},
    )

    result = ReleasePlanBuilder(repo, MockConsole()).build(PROJECT, None)

    assert isinstance(result, Ok)
    for step in result.value.package_steps:
        assert isinstance(step.resolution, (Resolved, Unresolved))
        assert step.verdict is not None


def test_missing_feed_aborts_the_build() -> None:
    repo = _repo(
        TemplatePackage(action_name="First", package_id="Foo", feed_id="nope"),
        TemplatePackage(action_name="Second", package_id="Foo", feed_id="F"),
        packages={"Foo": [CandidatePackage("1.0.0")]},
    )

    result = ReleasePlanBuilder(repo, MockConsole()).build(PROJECT, None)

    assert isinstance(result, Err)
    assert result.error.kind == "feed_not_found"
    assert "First" in result.error.message
    assert repo.searches == []


def test_missing_process_and_template_are_fatal() -> None:
    repo = InMemoryRepository(projects=[PROJECT])
    result = ReleasePlanBuilder(repo, MockConsole()).build(PROJECT, None)
    assert isinstance(result, Err)
    assert result.error.kind == "process_not_found"

    repo = InMemoryRepository(projects=[PROJECT], processes={"dp-1": DeploymentProcess(id="dp-1", project_id="x")})
    result = ReleasePlanBuilder(repo, MockConsole()).build(PROJECT, None)
    assert isinstance(result, Err)
    assert result.error.kind == "template_failed"


def test_channel_rules_filter_and_validate() -> None:
    rule = VersionRule(
        id="rule-1",
        version_range="[2.0,3.0)",
        tag=None,
        action_packages=(ActionPackage("Deploy app"),),
    )
    channel = Channel(id="Channels-1", name="Release", rules=(rule,))
    repo = _repo(
        TemplatePackage(action_name="Deploy app", package_id="Foo", feed_id="F"),
        TemplatePackage(action_name="Deploy db", package_id="Bar", feed_id="F"),
        TemplatePackage(action_name="Deploy cache", package_id="Baz", feed_id="F"),
        packages={"Foo": [CandidatePackage("2.4.0")], "Bar": [CandidatePackage("0.3.0")]},
    )

    result = ReleasePlanBuilder(repo, MockConsole()).build(PROJECT, channel)

    assert isinstance(result, Ok)
    plan = result.value
    assert repo.searches[0].filters == {"versionRange": "[2.0,3.0)", "packageId": "Foo"}
    assert repo.searches[1].filters == {"packageId": "Bar"}
    assert [s.verdict for s in plan.steps] == [RulePassed(rule=rule), Unconstrained(), Unconstrained()]
    assert repo.rule_tests == [("rule-1", "2.4.0")]


def test_unresolved_step_under_rule_is_not_tested() -> None:
    rule = VersionRule(id="rule-1", version_range="[2.0,3.0)", tag=None, action_packages=(ActionPackage("Deploy app"),))
    channel = Channel(id="Channels-1", name="Release", rules=(rule,))
    repo = _repo(TemplatePackage(action_name="Deploy app", package_id="Foo", feed_id="F"))

    result = ReleasePlanBuilder(repo, MockConsole()).build(PROJECT, channel)

    assert isinstance(result, Ok)
    assert result.value.steps[0].verdict == NotTested(reason="unresolved")


def test_ambiguous_rules_fail_the_build() -> None:
    rules = tuple(
        VersionRule(id=f"rule-{i}", version_range=None, tag=None, action_packages=(ActionPackage("Deploy app"),))
        for i in (1, 2)
    )
    channel = Channel(id="Channels-1", name="Release", rules=rules)
    repo = _repo(
        TemplatePackage(action_name="Deploy app", package_id="Foo", feed_id="F"),
        packages={"Foo": [CandidatePackage("1.0.0")]},
    )

    result = ReleasePlanBuilder(repo, MockConsole()).build(PROJECT, channel)

    assert isinstance(result, Err)
    assert result.error.kind == "ambiguous_channel_rules"


def test_plan_steps_applies_pins_per_reference() -> None:
    template = ReleaseTemplate(
        packages=(
            TemplatePackage(action_name="Deploy web", package_id="Acme.Web", feed_id="F"),
            TemplatePackage(
                action_name="Deploy web",
                package_id="Acme.Sidecar",
                feed_id="F",
                package_reference_name="sidecar",
            ),
        )
    )
    pins = PackageVersionPins()
    pins.add("Deploy web:sidecar:4.0.0")

    steps = plan_steps(template, pins)

    assert [s.version for s in steps] == [None, "4.0.0"]
    assert steps[1].display_name == "Deploy web/sidecar"
