"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from chatbus import CommandBus, SimpleContainer


@pytest.fixture
def container() -> SimpleContainer:
    """Empty container per test."""
    return SimpleContainer()


@pytest.fixture
def bus(container: SimpleContainer) -> CommandBus:
    """Bus bound to the test container and the ``mybot`` username."""
    return CommandBus(container=container, bot_username="mybot")
