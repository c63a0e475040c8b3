"""Typer アプリケーション定義。

serve: スクリプトをサービスとして実行する。
check: スクリプトの読み込みと run/stop 契約の検証のみ行う。
--version: バージョン番号を出力する。

診断・ログは stderr に出力する。
"""

from __future__ import annotations

import importlib.metadata
import os
import sys
import tomllib
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError

from scriptsvc.cli._logging import configure_logging
from scriptsvc.cli._supervisor import (
    SupervisorError,
    daemonize,
    remove_pidfile,
    write_pidfile,
)
from scriptsvc.config import config_start_dir, resolve_config
from scriptsvc.engine import check_script, run_service
from scriptsvc.models.config import CheckpointGranularity, LogLevel, ServiceConfig
from scriptsvc.models.exit_code import ExitCode

PROGNAME = "scriptsvc"

_SCRIPT_CONTEXT_SETTINGS: dict[str, object] = {
    # SCRIPT 以降の引数はオプションとして解釈せずスクリプトに渡す
    "allow_interspersed_args": False,
    "ignore_unknown_options": True,
}

app = typer.Typer(
    name=PROGNAME,
    help=(
        "Run a Python script as a long-running service.\n\n"
        "The script must provide callable 'run' and 'stop' entry points, either as\n"
        "top-level functions or on a module-level 'service' object."
    ),
    add_completion=False,
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    """--version 指定時にバージョン番号を出力して終了する。"""
    if value:
        print(importlib.metadata.version("scriptsvc"))
        raise typer.Exit()


def main() -> None:
    """CLI エントリポイント。pyproject.toml の [project.scripts] から呼び出される。"""
    app(prog_name=PROGNAME)


@app.callback()
def _main_callback(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=_version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Run a Python script as a long-running service."""


ScriptArgument = Annotated[
    str, typer.Argument(help="Service script path ('-' reads standard input).")
]
ScriptArgsArgument = Annotated[
    list[str] | None, typer.Argument(help="Arguments passed to the script.")
]
LibraryOption = Annotated[
    list[str] | None,
    typer.Option(
        "-l", "--library", help="Import library NAME before the script (repeatable)."
    ),
]
TracebackOption = Annotated[
    bool | None,
    typer.Option(
        "--traceback/--no-traceback", help="Print tracebacks under error reports."
    ),
]
LogLevelOption = Annotated[
    LogLevel | None, typer.Option("--log-level", help="Logging level.")
]


@app.command(context_settings=_SCRIPT_CONTEXT_SETTINGS)
def serve(
    script: ScriptArgument,
    script_args: ScriptArgsArgument = None,
    library: LibraryOption = None,
    pidfile: Annotated[
        Path | None,
        typer.Option("-p", "--pidfile", help="Write the service pid to this file."),
    ] = None,
    daemon: Annotated[
        bool | None,
        typer.Option("--daemon/--no-daemon", help="Fork and detach before running."),
    ] = None,
    traceback: TracebackOption = None,
    checkpoint_interval: Annotated[
        int | None,
        typer.Option(
            "--checkpoint-interval",
            help="Ticks between safe-point checks (positive integer).",
            min=1,
        ),
    ] = None,
    checkpoint_granularity: Annotated[
        CheckpointGranularity | None,
        typer.Option("--checkpoint-granularity", help="Tick unit: line or opcode."),
    ] = None,
    max_iterations: Annotated[
        int | None,
        typer.Option(
            "--max-iterations",
            help="Stop after this many run() calls (positive integer).",
            min=1,
        ),
    ] = None,
    log_level: LogLevelOption = None,
) -> None:
    """Run SCRIPT as a service until SIGINT/SIGTERM.

    The first SIGINT/SIGTERM calls the script's stop() at the next safe point.
    A second one aborts the running run() call.
    """
    config = _load_config(
        script,
        {
            "libraries": tuple(library) if library else None,
            "pidfile": pidfile,
            "daemon": daemon,
            "traceback": traceback,
            "max_iterations": max_iterations,
            "log_level": log_level,
            "checkpoint": {
                "interval": checkpoint_interval,
                "granularity": checkpoint_granularity,
            },
        },
    )
    configure_logging(config.log_level.value)

    if config.daemon:
        try:
            is_child = daemonize()
        except SupervisorError as e:
            print(f"{PROGNAME}: {e}", file=sys.stderr)
            raise typer.Exit(code=ExitCode.EXECUTION_ERROR) from None
        if not is_child:
            raise typer.Exit(code=ExitCode.SUCCESS)

    pid = os.getpid()
    pidfile_written = _write_pidfile(config.pidfile, pid)
    try:
        result = run_service(script, script_args or [], config)
    finally:
        if pidfile_written and config.pidfile is not None:
            remove_pidfile(config.pidfile, pid)

    raise typer.Exit(code=result.exit_code)


@app.command(context_settings=_SCRIPT_CONTEXT_SETTINGS)
def check(
    script: ScriptArgument,
    script_args: ScriptArgsArgument = None,
    library: LibraryOption = None,
    traceback: TracebackOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Load SCRIPT and validate its run/stop entry points without serving."""
    config = _load_config(
        script,
        {
            "libraries": tuple(library) if library else None,
            "traceback": traceback,
            "log_level": log_level,
        },
    )
    configure_logging(config.log_level.value)

    result = check_script(script, script_args or [], config)
    if result.exit_code == ExitCode.SUCCESS:
        print(f"{script}: ok", file=sys.stderr)
    raise typer.Exit(code=result.exit_code)


def _load_config(script: str, overrides: dict[str, object]) -> ServiceConfig:
    """スクリプトのディレクトリを起点に設定を解決する。失敗時は INPUT_ERROR で終了する。"""
    try:
        return resolve_config(
            start_dir=config_start_dir(script), cli_overrides=overrides
        )
    except (ValidationError, tomllib.TOMLDecodeError, TypeError) as e:
        print(
            f"Error: Invalid configuration: {e}\n"
            "Check .scriptsvc/config.toml for syntax errors or invalid values.",
            file=sys.stderr,
        )
        raise typer.Exit(code=ExitCode.INPUT_ERROR) from None
    except PermissionError as e:
        print(
            f"Error: Cannot read configuration file: {e}\n"
            "Check file permissions for .scriptsvc/config.toml.",
            file=sys.stderr,
        )
        raise typer.Exit(code=ExitCode.INPUT_ERROR) from None


def _write_pidfile(path: Path | None, pid: int) -> bool:
    """pidfile を書き出す。失敗は警告のみでサービスは継続する。"""
    if path is None:
        return False
    try:
        write_pidfile(path, pid)
    except OSError as e:
        print(f"{PROGNAME}: cannot write pidfile: {e}", file=sys.stderr)
        return False
    return True
