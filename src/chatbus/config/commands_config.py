"""Command configuration models and loading helpers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

HandlerPath = str
CommandTable = dict[str, HandlerPath] | list[HandlerPath | dict[str, HandlerPath]]


class CommandsConfig(BaseModel):
    """Root command configuration model."""

    model_config = ConfigDict(extra="forbid")

    bot_username: str | None = None
    global_commands: CommandTable = Field(default_factory=dict)
    commands: CommandTable = Field(default_factory=dict)
    command_groups: dict[str, CommandTable] = Field(default_factory=dict)
    command_repository: dict[str, HandlerPath] = Field(default_factory=dict)

    @field_validator("bot_username")
    @classmethod
    def _strip_at(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped = value.strip().lstrip("@")
        return stripped or None

    def command_sources(self) -> dict[str, Any]:
        """Return keyword arguments for ``CommandBus.build_commands_list``."""
        return {
            "commands": self.commands,
            "global_commands": self.global_commands,
            "groups": self.command_groups,
            "repository": self.command_repository,
        }


class CommandsConfigError(RuntimeError):
    """Raised when command config cannot be decoded or validated."""


def _decode_config_payload(path: Path) -> dict[str, object]:
    """Decode command config payload from JSON or YAML.

    Args:
        path: Config file path.

    Returns:
        Parsed mapping payload.

    Raises:
        CommandsConfigError: If decode fails or payload is not an object.
    """
    raw = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        try:
            payload = json.loads(raw) if raw.strip() else None
        except json.JSONDecodeError as exc:
            raise CommandsConfigError(f"Invalid command config JSON: {exc}") from exc
    else:
        try:
            payload = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise CommandsConfigError(f"Invalid command config YAML: {exc}") from exc
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise CommandsConfigError(
            "Invalid command config payload: root must be an object"
        )
    return payload


def load_commands_config(path: Path) -> CommandsConfig:
    """Load command config from disk, defaulting when missing.

    Args:
        path: Config file path.

    Returns:
        Parsed config, or defaults when the file does not exist.

    Raises:
        CommandsConfigError: If payload decode or validation fails.
    """
    if not path.exists():
        return CommandsConfig()
    payload = _decode_config_payload(path)
    try:
        return CommandsConfig.model_validate(payload)
    except ValidationError as exc:
        raise CommandsConfigError(f"Invalid command config payload: {exc}") from exc
