"""Command bus: resolve updates to registered command handlers."""

from __future__ import annotations

import inspect
import logging
import types
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any, Union, get_args, get_origin

from chatbus.commands.parser import CommandParser
from chatbus.commands.registry import (
    CommandEntries,
    CommandRegistry,
    build_commands,
    make_descriptor,
)
from chatbus.commands.types import BoundMethod, CommandDescriptor, Parameter
from chatbus.container import Container, SimpleContainer
from chatbus.errors import DependencyResolutionError
from chatbus.updates import (
    Message,
    MessageEntity,
    Update,
    command_entities,
    entity_text,
    has_text,
    message_text,
)

_LOGGER = logging.getLogger(__name__)


class OutcomeStatus(StrEnum):
    """Result of dispatching one command occurrence."""

    INVOKED = "invoked"
    MATCHED = "matched"
    MISSING_ARGUMENTS = "missing_arguments"


@dataclass(frozen=True)
class CommandOutcome:
    """Dispatch result for one bot-command entity."""

    command: CommandDescriptor
    entity: MessageEntity
    status: OutcomeStatus
    arguments: dict[str, str | None] = field(default_factory=dict)
    missing: tuple[str, ...] = ()
    result: Any = None


def _annotation_matches(annotation: Any, cls: type) -> bool:
    if isinstance(annotation, str):
        return cls.__name__ in {part.strip() for part in annotation.split("|")}
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        return cls in get_args(annotation)
    return annotation is cls


class CommandBus:
    """Dispatch bot-command entities of an update to registered handlers."""

    def __init__(
        self,
        *,
        container: Container | None = None,
        bot_username: str | None = None,
    ) -> None:
        """Create an empty bus scoped to one bot.

        Args:
            container: Resolver for injectable parameters and handler classes.
            bot_username: Bot username; commands addressed to others are ignored.
        """
        self._container: Container = container or SimpleContainer()
        self._bot_username = (
            bot_username.lstrip("@").casefold() if bot_username else None
        )
        self._registry = CommandRegistry()
        self._parsers: dict[str, CommandParser] = {}
        self._instances: dict[type, object] = {}

    @property
    def commands(self) -> dict[str, CommandDescriptor]:
        """Registered descriptors keyed by command name."""
        return self._registry.as_dict()

    @property
    def registry(self) -> CommandRegistry:
        """Underlying command registry."""
        return self._registry

    def register_command(self, name: str, handler: object) -> CommandDescriptor:
        """Register one handler under ``name``.

        Args:
            name: Command name (without leading slash).
            handler: Handler class, instance, bound method or callable.

        Returns:
            Registered descriptor.
        """
        return self._registry.add(self._instantiate(make_descriptor(name, handler)))

    def add_commands(
        self, commands: Mapping[str, CommandDescriptor]
    ) -> dict[str, CommandDescriptor]:
        """Register already-validated descriptors.

        Returns:
            Registered descriptors keyed by command name.
        """
        registered: dict[str, CommandDescriptor] = {}
        for descriptor in commands.values():
            added = self._registry.add(self._instantiate(descriptor))
            registered[added.name] = added
        return registered

    def _instantiate(self, descriptor: CommandDescriptor) -> CommandDescriptor:
        """Replace a class-owned handler with one bound to a shared instance.

        Each handler class is built through the container once per bus, so
        every command declared on it shares one instance.

        Raises:
            DependencyResolutionError: If the class cannot be constructed.
        """
        handler = descriptor.handler
        if not isinstance(handler, BoundMethod) or not handler.needs_instance():
            return descriptor
        instance = self._instances.get(handler.owner)
        if instance is None:
            _LOGGER.debug("Instantiating command handler %s", handler.label)
            instance = self._container.make(handler.owner)
            self._instances[handler.owner] = instance
        return replace(descriptor, handler=BoundMethod(instance, handler.method))

    def build_commands_list(
        self,
        commands: CommandEntries,
        *,
        global_commands: CommandEntries = (),
        groups: Mapping[str, CommandEntries] | None = None,
        repository: Mapping[str, Any] | None = None,
    ) -> dict[str, CommandDescriptor]:
        """Build, validate and register commands from configuration.

        Args:
            commands: Bot-local command entries.
            global_commands: Shared command entries.
            groups: Named groups of command entries.
            repository: Handler lookup table.

        Returns:
            Validated descriptors keyed by command name.
        """
        built = build_commands(
            commands,
            global_commands=global_commands,
            groups=groups,
            repository=repository,
        )
        return self.add_commands(built)

    def parser_for(self, descriptor: CommandDescriptor) -> CommandParser:
        """Return the cached parser for a registered descriptor."""
        key = descriptor.name.casefold()
        parser = self._parsers.get(key)
        if parser is None or parser.handler != descriptor.handler:
            parser = CommandParser(descriptor.handler)
            self._parsers[key] = parser
        return parser

    def required_params_not_provided(
        self, name: str, provided: Iterable[str]
    ) -> list[str]:
        """Return required parameters of command ``name`` absent from ``provided``.

        Raises:
            KeyError: If ``name`` is not registered.
        """
        descriptor = self._registry.get(name)
        if descriptor is None:
            raise KeyError(name)
        return self.parser_for(descriptor).required_params_not_provided(provided)

    def process_update(
        self, update: Update, *, invoke: bool = True
    ) -> list[CommandOutcome]:
        """Dispatch every bot-command entity of ``update`` in text order.

        Args:
            update: Inbound update.
            invoke: When False, parse and validate only (status ``matched``).

        Returns:
            One outcome per recognized command; empty when nothing matched.
        """
        if not has_text(update):
            return []
        entities = command_entities(update)
        if not entities:
            return []
        text = message_text(update)
        offsets = [entity.offset for entity in entities]
        outcomes: list[CommandOutcome] = []
        for entity in entities:
            outcome = self._dispatch(update, text, offsets, entity, invoke=invoke)
            if outcome is not None:
                outcomes.append(outcome)
        return outcomes

    def _dispatch(
        self,
        update: Update,
        text: str,
        offsets: list[int],
        entity: MessageEntity,
        *,
        invoke: bool,
    ) -> CommandOutcome | None:
        token = entity_text(text, entity).removeprefix("/")
        name, _, target = token.partition("@")
        if target and self._bot_username and target.casefold() != self._bot_username:
            _LOGGER.debug("Skipping /%s addressed to @%s", name, target)
            return None
        descriptor = self._registry.get(name)
        if descriptor is None:
            _LOGGER.debug("No command registered for /%s", name)
            return None

        parser = self.parser_for(descriptor)
        arguments = parser.arguments(text, offsets, entity.offset)
        missing = parser.required_params_not_provided(arguments)
        if missing:
            _LOGGER.info("Command /%s missing arguments: %s", descriptor.name, missing)
            return CommandOutcome(
                command=descriptor,
                entity=entity,
                status=OutcomeStatus.MISSING_ARGUMENTS,
                arguments=arguments,
                missing=tuple(missing),
            )
        if not invoke:
            return CommandOutcome(
                command=descriptor,
                entity=entity,
                status=OutcomeStatus.MATCHED,
                arguments=arguments,
            )

        context: dict[type, object] = {
            Update: update,
            Message: update.effective_message,
            MessageEntity: entity,
            CommandDescriptor: descriptor,
            CommandBus: self,
        }
        _LOGGER.debug("Invoking /%s with %s", descriptor.name, arguments)
        handler = descriptor.handler.bind(self._container)
        args, kwargs = self._call_arguments(parser.signature(), arguments, context)
        return CommandOutcome(
            command=descriptor,
            entity=entity,
            status=OutcomeStatus.INVOKED,
            arguments=arguments,
            result=handler(*args, **kwargs),
        )

    def _call_arguments(
        self,
        params: list[Parameter],
        arguments: Mapping[str, str | None],
        context: Mapping[type, object],
    ) -> tuple[list[Any], dict[str, Any]]:
        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        positional = True
        for param in params:
            if param.kind is inspect.Parameter.VAR_KEYWORD:
                continue
            if param.is_variadic:
                value = arguments.get(param.name)
                if positional and value is not None:
                    args.append(value)
                continue
            if param.injectable:
                value = self._inject(param, context)
            elif param.name in arguments:
                value = arguments[param.name]
            elif param.has_default and param.kind is not inspect.Parameter.KEYWORD_ONLY:
                value = param.default
            else:
                if param.kind is not inspect.Parameter.KEYWORD_ONLY:
                    positional = False
                continue
            if positional and param.kind is not inspect.Parameter.KEYWORD_ONLY:
                args.append(value)
            else:
                kwargs[param.name] = value
        return args, kwargs

    def _inject(self, param: Parameter, context: Mapping[type, object]) -> Any:
        for cls, value in context.items():
            if _annotation_matches(param.annotation, cls):
                return value
        try:
            return self._container.resolve(param.annotation)
        except LookupError as exc:
            if param.has_default:
                return param.default
            raise DependencyResolutionError(param.name, param.annotation) from exc
