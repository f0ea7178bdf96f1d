from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReleaseErrorKind = Literal[
    "invalid_input",
    "project_not_found",
    "channel_not_found",
    "process_not_found",
    "template_failed",
    "feed_not_found",
    "feed_unavailable",
    "ambiguous_channel_rules",
    "rule_test_failed",
    "server_unavailable",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Build-aborting error.

    Per-step problems are recorded on the StepPlan instead; only errors that
    make the whole plan meaningless travel as ReleaseError.
    """

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message
