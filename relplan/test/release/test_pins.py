from __future__ import annotations

from relplan.core.result import Err, Ok
from relplan.release.pins import PackageVersionPins, parse_pins


def test_step_name_pin() -> None:
    pins = PackageVersionPins()
    assert pins.add("Deploy web:1.4.2") == Ok(None)
    assert pins.resolve("Deploy web", "Acme.Web") == "1.4.2"
    assert pins.resolve("Deploy api", "Acme.Api") is None


def test_package_id_pin_and_alternative_separators() -> None:
    pins = PackageVersionPins()
    pins.add("Acme.Web=2.0.0")
    pins.add("Acme.Api/3.1.0")
    assert pins.resolve("Deploy web", "Acme.Web") == "2.0.0"
    assert pins.resolve("Deploy api", "acme.api") == "3.1.0"


def test_step_name_takes_precedence_over_package_id() -> None:
    pins = PackageVersionPins()
    pins.add("Acme.Web:2.0.0")
    pins.add("Deploy web:1.0.0")
    assert pins.resolve("Deploy web", "Acme.Web") == "1.0.0"


def test_reference_pins_only_apply_to_that_reference() -> None:
    pins = PackageVersionPins()
    pins.add("Deploy web:sidecar:5.0.0")
    assert pins.resolve("Deploy web", "Acme.Sidecar", "sidecar") == "5.0.0"
    assert pins.resolve("Deploy web", "Acme.Web") is None


def test_default_applies_when_nothing_matches() -> None:
    pins = PackageVersionPins(default="0.1.0")
    pins.add("Deploy web:1.0.0")
    assert pins.resolve("Deploy web", "Acme.Web") == "1.0.0"
    assert pins.resolve("Deploy api", "Acme.Api") == "0.1.0"


def test_invalid_pins_are_rejected() -> None:
    pins = PackageVersionPins()
    for text in ("1.0.0", "Deploy web:", ":1.0.0", "a:b:c:d"):
        result = pins.add(text)
        assert isinstance(result, Err)
        assert result.error.kind == "invalid_input"
    assert len(pins) == 0


def test_parse_pins() -> None:
    result = parse_pins(["Deploy web:1.0.0", "Acme.Api:2.0.0"], default="  ")
    assert isinstance(result, Ok)
    assert len(result.value) == 2
    assert result.value.default is None


def test_parse_pins_stops_at_first_invalid() -> None:
    result = parse_pins(["Deploy web:1.0.0", "broken"])
    assert isinstance(result, Err)
    assert "broken" in result.error.message
