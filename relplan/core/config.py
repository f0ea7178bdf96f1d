"""Typed configuration loading and access.

relplan reads an optional ``relplan.toml``:

    [server]
    url = "https://deploy.example.com"
    api_key_env = "RELPLAN_API_KEY"
    timeout = 30

    [resolution]
    prerelease_tag = "beta"
    prerelease_tag_fallbacks = "rc,alpha"
    latest_by_publish_date = false
    max_candidates = 10000

Command-line flags take precedence over every value here.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_int, get_str, get_table

__all__ = [
    "Config",
    "ConfigError",
    "ResolutionConfig",
    "ServerConfig",
    "CONFIG_FILENAME",
    "DEFAULT_API_KEY_ENV",
    "DEFAULT_TIMEOUT_SECONDS",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILENAME = "relplan.toml"
DEFAULT_API_KEY_ENV = "RELPLAN_API_KEY"
DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ServerConfig:
    url: str | None = None
    api_key_env: str = DEFAULT_API_KEY_ENV
    timeout: float = DEFAULT_TIMEOUT_SECONDS


@dataclass(frozen=True, slots=True)
class ResolutionConfig:
    """Defaults for the version resolution cascade.

    ``max_candidates`` of None means the resolver's built-in page size.
    """

    prerelease_tag: str | None = None
    prerelease_tag_fallbacks: str | None = None
    latest_by_publish_date: bool = False
    max_candidates: int | None = None


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    server: ServerConfig = field(default_factory=ServerConfig)
    resolution: ResolutionConfig = field(default_factory=ResolutionConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML)."""
        server: StrDict = get_table(data, "server") or {}
        resolution: StrDict = get_table(data, "resolution") or {}

        timeout = server.get("timeout")
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            timeout = DEFAULT_TIMEOUT_SECONDS

        max_candidates = get_int(resolution, "max_candidates")
        if max_candidates is not None and max_candidates < 1:
            raise ValueError(f"resolution.max_candidates must be >= 1, got {max_candidates}")

        return cls(
            server=ServerConfig(
                url=get_str(server, "url"),
                api_key_env=get_str(server, "api_key_env") or DEFAULT_API_KEY_ENV,
                timeout=float(timeout),
            ),
            resolution=ResolutionConfig(
                prerelease_tag=get_str(resolution, "prerelease_tag"),
                prerelease_tag_fallbacks=get_str(resolution, "prerelease_tag_fallbacks"),
                latest_by_publish_date=get_bool(resolution, "latest_by_publish_date") or False,
                max_candidates=max_candidates,
            ),
        )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to relplan.toml

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config_or_default(path: Path) -> Result[Config, ConfigError]:
    """Like load_config, but a missing file yields the default Config."""
    if not path.exists():
        return Ok(Config())
    return load_config(path)
