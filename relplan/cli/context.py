from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from relplan.core.config import CONFIG_FILENAME, Config, load_config_or_default
from relplan.core.errors import ErrorCode
from relplan.core.result import Err
from relplan.output.console import ConsoleProtocol, RichConsole
from relplan.release.repository import ReleaseRepository
from relplan.server.http import RealHttpClient
from relplan.server.repository import ServerRepository


@dataclass(frozen=True, slots=True)
class CLIContext:
    config: Config
    console: ConsoleProtocol
    repository: ReleaseRepository


def build_context(
    *,
    config_path: Path | None = None,
    server: str | None = None,
    api_key: str | None = None,
    verbose: bool = False,
) -> CLIContext:
    path = config_path if config_path is not None else Path.cwd() / CONFIG_FILENAME
    config_result = load_config_or_default(path)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.CONFIG_ERROR))
    config = config_result.value

    url = server or config.server.url
    if not url:
        typer.echo("error: no server URL (use --server or [server].url in relplan.toml)", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    key = api_key or os.environ.get(config.server.api_key_env)
    http = RealHttpClient(api_key=key, timeout=config.server.timeout)

    return CLIContext(
        config=config,
        console=RichConsole(verbose=verbose),
        repository=ServerRepository(url, http),
    )
