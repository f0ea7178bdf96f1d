"""Explicit package versions supplied by the caller.

A pin names a step or a package ID, optionally a package reference, and a
version:

    Deploy web:1.4.2
    Acme.Web:1.4.2
    Deploy web:sidecar:2.0.0

``:``, ``=`` and ``/`` are accepted as separators. A default version applies
to every step that no pin matches. Pinned steps skip the resolution cascade.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from relplan.core.result import Err, Ok, Result
from relplan.release.errors import ReleaseError

_SEPARATORS = re.compile(r"[:=/]")


def _key(name: str, reference: str | None) -> tuple[str, str]:
    return (name.strip().casefold(), (reference or "").strip().casefold())


def _empty_pins() -> dict[tuple[str, str], str]:
    return {}


@dataclass(slots=True)
class PackageVersionPins:
    default: str | None = None
    _pins: dict[tuple[str, str], str] = field(default_factory=_empty_pins)

    def __len__(self) -> int:
        return len(self._pins)

    def set(self, name: str, version: str, *, reference: str | None = None) -> None:
        self._pins[_key(name, reference)] = version.strip()

    def add(self, text: str) -> Result[None, ReleaseError]:
        """Parse and record one ``name[:reference]:version`` pin."""
        parts = [p.strip() for p in _SEPARATORS.split(text)]
        if len(parts) not in (2, 3) or not all(parts):
            return Err(
                ReleaseError(
                    kind="invalid_input",
                    message=f"invalid package pin: {text!r}",
                    hint="Expected StepNameOrPackageId:Version or StepNameOrPackageId:Reference:Version",
                )
            )
        if len(parts) == 2:
            self.set(parts[0], parts[1])
        else:
            self.set(parts[0], parts[2], reference=parts[1])
        return Ok(None)

    def resolve(
        self,
        action_name: str,
        package_id: str,
        package_reference_name: str | None = None,
    ) -> str | None:
        """Explicit version for a step, or None if nothing pins it.

        Lookup order: step name, then package ID (both paired with the
        step's package reference), then the default.
        """
        candidates = [
            _key(action_name, package_reference_name),
            _key(package_id, package_reference_name),
        ]
        for key in candidates:
            version = self._pins.get(key)
            if version:
                return version
        return self.default or None


def parse_pins(items: list[str], *, default: str | None = None) -> Result[PackageVersionPins, ReleaseError]:
    pins = PackageVersionPins(default=(default or "").strip() or None)
    for item in items:
        result = pins.add(item)
        if isinstance(result, Err):
            return result
    return Ok(pins)
