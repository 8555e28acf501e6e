"""Typer CLI for inspecting command configuration."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import click
import typer
from rich.console import Console
from rich.json import JSON
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from chatbus.bootstrap import configure_logging, load_command_bus
from chatbus.commands.bus import CommandBus, CommandOutcome, OutcomeStatus
from chatbus.commands.parser import between, is_regex_param
from chatbus.commands.types import Parameter
from chatbus.config import CommandsConfigError
from chatbus.errors import CommandError
from chatbus.updates import text_update

app = typer.Typer(help="Chatbus command inspection CLI")
_CONSOLE = Console()

ConfigOption = Annotated[
    Path,
    typer.Option(
        "--config",
        file_okay=True,
        dir_okay=False,
        help="Path to command config YAML/JSON file.",
    ),
]
LogLevelOption = Annotated[
    str,
    typer.Option(
        "--log-level",
        click_type=click.Choice(
            ["debug", "info", "warning", "error"], case_sensitive=False
        ),
        help="Logging level for registration and dispatch diagnostics.",
    ),
]


def _load_bus(config_file: Path) -> CommandBus:
    """Build bus from config, exiting with a rendered error on failure.

    Args:
        config_file: Command config path.

    Returns:
        Bus with registered commands.

    Raises:
        Exit: When config or command registration is invalid.
    """
    try:
        return load_command_bus(config_file)
    except CommandsConfigError as exc:
        _CONSOLE.print(
            Panel(escape(str(exc)), title="Config Error", border_style="bold red")
        )
        raise typer.Exit(code=2) from exc
    except CommandError as exc:
        _CONSOLE.print(
            Panel(
                escape(str(exc)),
                title=f"Command Error ({exc.code})",
                border_style="bold red",
            )
        )
        raise typer.Exit(code=1) from exc


def _usage(param: Parameter) -> str:
    if param.is_variadic:
        return f"[{param.name}...]"
    if is_regex_param(param):
        return f"[{param.name}:{between(param.default, '{', '}')}]"
    if param.has_default:
        return f"[{param.name}]"
    return f"<{param.name}>"


def _render_outcome(outcome: CommandOutcome) -> None:
    ok = outcome.status is not OutcomeStatus.MISSING_ARGUMENTS
    payload: dict[str, object] = {"arguments": outcome.arguments}
    if outcome.missing:
        payload["missing"] = list(outcome.missing)
    _CONSOLE.print(
        Panel(
            JSON.from_data(payload),
            title=f"/{outcome.command.name} ({outcome.status.value})",
            border_style="green" if ok else "bold yellow",
            expand=True,
        )
    )


@app.command("list")
def list_command(
    config_file: ConfigOption, log_level: LogLevelOption = "warning"
) -> None:
    """List registered commands with their argument usage.

    Args:
        config_file: Command config path.
        log_level: Logging level name.
    """
    configure_logging(getattr(logging, log_level.upper()))
    bus = _load_bus(config_file)
    table = Table(title="Commands", show_header=True, header_style="bold cyan")
    table.add_column("Command", style="bold")
    table.add_column("Usage")
    table.add_column("Handler")
    table.add_column("Description")
    for descriptor in bus.commands.values():
        params = bus.parser_for(descriptor).all_params()
        table.add_row(
            f"/{descriptor.name}",
            escape(" ".join(_usage(param) for param in params)),
            descriptor.handler.label,
            escape(descriptor.description),
        )
    _CONSOLE.print(table)


@app.command("parse")
def parse_command(
    text: Annotated[str, typer.Argument(help="Message text to parse.")],
    config_file: ConfigOption,
    log_level: LogLevelOption = "warning",
) -> None:
    """Parse message text against registered commands without invoking them.

    Args:
        text: Raw message text.
        config_file: Command config path.
        log_level: Logging level name.

    Raises:
        Exit: Non-zero when nothing matched or arguments are missing.
    """
    configure_logging(getattr(logging, log_level.upper()))
    bus = _load_bus(config_file)
    outcomes = bus.process_update(text_update(text), invoke=False)
    if not outcomes:
        _CONSOLE.print(
            Panel("No registered command matched.", title="No Match", border_style="dim")
        )
        raise typer.Exit(code=1)
    for outcome in outcomes:
        _render_outcome(outcome)
    missing = any(o.status is OutcomeStatus.MISSING_ARGUMENTS for o in outcomes)
    raise typer.Exit(code=1 if missing else 0)
