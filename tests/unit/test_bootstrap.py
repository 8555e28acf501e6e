"""Unit tests for bus bootstrap helpers."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from chatbus import bootstrap
from chatbus.bootstrap import build_command_bus, load_command_bus
from chatbus.config import CommandsConfig
from chatbus.container import SimpleContainer
from chatbus.updates import text_update
from tests.unit.handler_fixtures import Greeter


@pytest.mark.unit
def test_build_command_bus_registers_configured_commands() -> None:
    """Config sources are expanded and registered on the bus."""
    config = CommandsConfig(
        bot_username="mybot",
        global_commands={"help": "tests.unit.handler_fixtures:HelpCommand"},
        commands=["tools", {"go": "start"}],
        command_groups={"tools": ["tests.unit.handler_fixtures:Toolbox"]},
        command_repository={"start": "tests.unit.handler_fixtures:StartCommand"},
    )

    bus = build_command_bus(config)

    assert list(bus.commands) == ["help", "echo", "say", "add", "go"]
    assert bus.process_update(text_update("/add@otherbot 1 2")) == []
    (outcome,) = bus.process_update(text_update("/go 1 two"))
    assert outcome.result == {"id": "1", "name": "two"}


@pytest.mark.unit
def test_load_command_bus_reads_yaml_and_uses_container(tmp_path: Path) -> None:
    """The loader reads config from disk and keeps the given container."""
    path = tmp_path / "commands.yaml"
    path.write_text(
        "commands:\n  - tests.unit.handler_fixtures:ping\n", encoding="utf-8"
    )
    container = SimpleContainer({Greeter: Greeter()})

    bus = load_command_bus(path, container=container)

    assert set(bus.commands) == {"ping", "p"}
    (outcome,) = bus.process_update(text_update("/p"))
    assert outcome.result == "pong"


@pytest.mark.unit
def test_configure_logging_runs_once(monkeypatch: pytest.MonkeyPatch) -> None:
    """Repeated calls configure handlers only once."""
    calls: list[dict[str, object]] = []
    monkeypatch.setattr(bootstrap, "_LOGGING_CONFIGURED", False)
    monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.append(kw))

    bootstrap.configure_logging(logging.DEBUG)
    bootstrap.configure_logging()

    assert len(calls) == 1
    assert calls[0]["level"] == logging.DEBUG
