"""Error codes for CLI exit status.

These values are used as process exit codes and should remain stable:
- 0: Success (plan is viable)
- 1: User error (bad arguments, malformed package pins)
- 2: Configuration error (missing feed, ambiguous channel rules, bad config)
- 3: Resolution error (plan has unresolved steps or channel rule violations)
- 4: Network error (server unreachable, unexpected response)
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands."""

    OK = 0
    USER_ERROR = 1
    CONFIG_ERROR = 2
    RESOLUTION_ERROR = 3
    NETWORK_ERROR = 4

    def __str__(self) -> str:
        """Return human-readable name."""
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK

    @property
    def is_error(self) -> bool:
        return self != ErrorCode.OK
