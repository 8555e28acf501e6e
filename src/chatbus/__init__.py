"""Command dispatch layer for chat-bot updates."""

from chatbus.commands.attributes import command
from chatbus.commands.bus import CommandBus, CommandOutcome, OutcomeStatus
from chatbus.commands.parser import CommandParser
from chatbus.commands.registry import CommandRegistry, build_commands
from chatbus.commands.types import CommandDescriptor, Parameter
from chatbus.container import Container, SimpleContainer
from chatbus.errors import (
    CommandError,
    CommandErrorCode,
    CommandNameNotSetError,
    DependencyResolutionError,
    DuplicateCommandError,
    HandlerMethodMissingError,
    HandlerResolutionError,
)
from chatbus.updates import Message, MessageEntity, Update

__all__ = [
    "CommandBus",
    "CommandDescriptor",
    "CommandError",
    "CommandErrorCode",
    "CommandNameNotSetError",
    "CommandOutcome",
    "CommandParser",
    "CommandRegistry",
    "Container",
    "DependencyResolutionError",
    "DuplicateCommandError",
    "HandlerMethodMissingError",
    "HandlerResolutionError",
    "Message",
    "MessageEntity",
    "OutcomeStatus",
    "Parameter",
    "SimpleContainer",
    "Update",
    "build_commands",
    "command",
]
