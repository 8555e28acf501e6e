"""Bot-side bootstrap helpers: logging and bus construction."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.logging import RichHandler

from chatbus.commands.bus import CommandBus
from chatbus.config import CommandsConfig, load_commands_config
from chatbus.container import Container

_LOGGING_CONFIGURED = False


def configure_logging(level: int = logging.INFO) -> None:
    """Configure Rich-backed logging once per process."""
    global _LOGGING_CONFIGURED  # noqa: PLW0603
    if _LOGGING_CONFIGURED:
        return
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(show_path=False, rich_tracebacks=True)],
    )
    _LOGGING_CONFIGURED = True


def build_command_bus(
    config: CommandsConfig, *, container: Container | None = None
) -> CommandBus:
    """Create a command bus and register every configured command.

    Args:
        config: Validated command configuration.
        container: Optional dependency container.

    Returns:
        Bus with a validated, registered command list.
    """
    bus = CommandBus(container=container, bot_username=config.bot_username)
    bus.build_commands_list(**config.command_sources())
    return bus


def load_command_bus(
    path: Path, *, container: Container | None = None
) -> CommandBus:
    """Load command config from ``path`` and build the bus."""
    return build_command_bus(load_commands_config(path), container=container)
