"""Error presentation utilities.

Centralized release error formatting and exit code mapping.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from relplan.core.errors import ErrorCode
from relplan.output.console import Style
from relplan.release.errors import ReleaseError

if TYPE_CHECKING:
    from relplan.output.console import ConsoleProtocol

__all__ = ["print_release_error", "release_error_exit_code"]


def print_release_error(error: ReleaseError, console: ConsoleProtocol) -> None:
    console.error(error.message)
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)


def release_error_exit_code(error: ReleaseError) -> int:
    match error.kind:
        case "invalid_input":
            return int(ErrorCode.USER_ERROR)
        case "server_unavailable" | "feed_unavailable" | "rule_test_failed":
            return int(ErrorCode.NETWORK_ERROR)
        case (
            "project_not_found"
            | "channel_not_found"
            | "process_not_found"
            | "template_failed"
            | "feed_not_found"
            | "ambiguous_channel_rules"
        ):
            return int(ErrorCode.CONFIG_ERROR)
    return int(ErrorCode.CONFIG_ERROR)
