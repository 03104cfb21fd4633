"""Typer CLI for kubeterm."""

from __future__ import annotations

import dataclasses
import getpass
import json
import logging
import time
from pathlib import Path
from typing import Annotated, NoReturn

import typer

from kubeterm import __version__
from kubeterm.config import ConfigError, TerminalConfig, detect_config, parse_config
from kubeterm.terminal import (
    Caller,
    Forbidden,
    TargetKind,
    TerminalError,
    UnknownTarget,
)
from kubeterm.terminal.service import TerminalService

app = typer.Typer(
    name="kubeterm",
    help="Provision and reuse terminal sessions on a Gardener landscape.",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version information and exit."""
    if value:
        typer.echo(f"kubeterm {__version__}")
        raise typer.Exit()


def _parse_target(value: str) -> TargetKind:
    try:
        return TargetKind.parse(value)
    except UnknownTarget as e:
        raise typer.BadParameter(str(e)) from None


def _caller(user: str | None, groups: list[str] | None) -> Caller:
    return Caller(id=user or getpass.getuser(), groups=tuple(groups or []))


def _fail(error: TerminalError) -> NoReturn:
    typer.echo(f"Error: {error}", err=True)
    raise typer.Exit(3 if isinstance(error, Forbidden) else 1)


def _load_config(ctx: typer.Context) -> TerminalConfig:
    config_file = ctx.obj.get("config_file") or detect_config(Path.cwd())
    try:
        return parse_config(config_file)
    except ConfigError as e:
        typer.echo(f"Error parsing config: {e}", err=True)
        raise typer.Exit(1) from None


def _service(ctx: typer.Context) -> TerminalService:
    config = _load_config(ctx)
    try:
        return TerminalService.from_config(config)
    except TerminalError as e:
        _fail(e)


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show kubeterm version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log debug output to stderr."),
    ] = False,
    config_file: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Configuration file (default: kubeterm.json or "
            "~/.config/kubeterm/config.json).",
        ),
    ] = None,
) -> None:
    """Provision and reuse terminal sessions on a Gardener landscape."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file


NamespaceOption = Annotated[
    str,
    typer.Option("--namespace", "-n", help="Project namespace."),
]
NameOption = Annotated[
    str,
    typer.Option("--name", help="Shoot name (not needed for garden terminals)."),
]
TargetOption = Annotated[
    str,
    typer.Option(
        "--target",
        "-t",
        help="garden (control-plane), cp (infrastructure-seed) or "
        "shoot (managed-cluster).",
    ),
]
UserOption = Annotated[
    str | None,
    typer.Option(
        "--user",
        envvar="KUBETERM_USER",
        help="Caller id (default: the local user name).",
    ),
]
GroupOption = Annotated[
    list[str] | None,
    typer.Option("--group", help="Group of the caller, may be repeated."),
]


@app.command()
def create(
    ctx: typer.Context,
    namespace: NamespaceOption,
    name: NameOption = "",
    target: TargetOption = TargetKind.CONTROL_PLANE.value,
    user: UserOption = None,
    group: GroupOption = None,
) -> None:
    """Create a terminal session, or reuse the running one."""
    kind = _parse_target(target)
    if kind is not TargetKind.CONTROL_PLANE and not name:
        raise typer.BadParameter(f"--name is required for {kind.value} terminals")

    service = _service(ctx)
    try:
        descriptor = service.create(_caller(user, group), namespace, name, kind)
    except TerminalError as e:
        _fail(e)
    typer.echo(json.dumps(descriptor.to_dict(), indent=2))


@app.command()
def heartbeat(
    ctx: typer.Context,
    namespace: NamespaceOption,
    name: NameOption = "",
    target: TargetOption = TargetKind.CONTROL_PLANE.value,
    user: UserOption = None,
    group: GroupOption = None,
    interval: Annotated[
        float,
        typer.Option(
            "--interval",
            help="Repeat the heartbeat every INTERVAL seconds (0: once).",
        ),
    ] = 0,
    count: Annotated[
        int,
        typer.Option("--count", help="Stop after COUNT heartbeats (0: never)."),
    ] = 0,
) -> None:
    """Stamp the liveness annotation of a running terminal session."""
    kind = _parse_target(target)
    caller = _caller(user, group)
    service = _service(ctx)

    sent = 0
    while True:
        try:
            result = service.heartbeat(caller, namespace, name, kind)
        except TerminalError as e:
            _fail(e)
        typer.echo(json.dumps(result.to_dict()))
        sent += 1
        if interval <= 0 or (count and sent >= count):
            break
        time.sleep(interval)


@app.command("config")
def show_config(ctx: typer.Context) -> None:
    """Show the effective configuration."""
    config = _load_config(ctx)
    typer.echo(json.dumps(dataclasses.asdict(config), indent=2))
