"""Command configuration loading."""

from chatbus.config.commands_config import (
    CommandsConfig,
    CommandsConfigError,
    load_commands_config,
)

__all__ = [
    "CommandsConfig",
    "CommandsConfigError",
    "load_commands_config",
]
