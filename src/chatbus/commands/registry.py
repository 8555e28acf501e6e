"""Command list assembly, validation and the name registry."""

from __future__ import annotations

import importlib
import inspect
import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Any

from chatbus.commands.attributes import command_metadata, declared_commands
from chatbus.commands.types import BoundMethod, CommandDescriptor, make_handler_ref
from chatbus.errors import (
    CommandNameNotSetError,
    DuplicateCommandError,
    HandlerResolutionError,
)

_LOGGER = logging.getLogger(__name__)

CommandKey = str | int
CommandEntries = Mapping[Any, Any] | Sequence[Any]


def resolve_handler_path(path: str) -> object:
    """Import a handler from ``package.module:attr`` or ``package.module.attr``.

    Args:
        path: Dotted import path.

    Returns:
        Imported object.

    Raises:
        HandlerResolutionError: If the module or attribute cannot be loaded.
    """
    if ":" in path:
        module_path, _, attr_path = path.partition(":")
    else:
        module_path, _, attr_path = path.rpartition(".")
    if not module_path or not attr_path:
        raise HandlerResolutionError(path, "not a group, repository key or import path")
    try:
        target: object = importlib.import_module(module_path)
    except ImportError as exc:
        raise HandlerResolutionError(path, f"import failed: {exc}") from exc
    for part in attr_path.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise HandlerResolutionError(path, f"missing attribute {part!r}") from exc
    return target


def command_entries(commands: CommandEntries) -> list[tuple[CommandKey, Any]]:
    """Normalize configured commands into ordered ``(key, value)`` pairs.

    Mappings contribute their items. Sequence items that are mappings
    contribute their items; any other item is positional and keyed by its
    integer index, which marks it as unnamed.

    Args:
        commands: Mapping or sequence of command entries.

    Returns:
        Ordered key/value pairs.
    """
    if isinstance(commands, Mapping):
        return list(commands.items())
    if isinstance(commands, (str, bytes)):
        raise HandlerResolutionError(commands, "command list must be a mapping or sequence")
    pairs: list[tuple[CommandKey, Any]] = []
    for index, item in enumerate(commands):
        if isinstance(item, Mapping):
            pairs.extend(item.items())
        else:
            pairs.append((index, item))
    return pairs


def _description(value: object) -> str:
    metadata = command_metadata(value)
    if metadata is not None:
        return metadata.description
    description = getattr(value, "description", "")
    return description if isinstance(description, str) else ""


def _is_plain_callable(value: object) -> bool:
    return (
        inspect.isfunction(value) or inspect.ismethod(value) or inspect.isbuiltin(value)
    )


class _CommandListBuilder:
    """Expand groups, repository keys and multi-command containers."""

    def __init__(
        self,
        groups: Mapping[str, CommandEntries],
        repository: Mapping[str, Any],
    ) -> None:
        self._groups = groups
        self._repository = repository

    def expand(
        self, commands: CommandEntries, trail: tuple[str, ...] = ()
    ) -> list[tuple[CommandKey, Any]]:
        pairs: list[tuple[CommandKey, Any]] = []
        for key, value in command_entries(commands):
            if isinstance(value, str) and value in self._groups:
                if value in trail:
                    raise HandlerResolutionError(value, "command group cycle")
                _LOGGER.debug("Expanding command group %r", value)
                pairs.extend(self.expand(self._groups[value], (*trail, value)))
                continue
            if isinstance(value, str) and value in self._repository:
                name = key if isinstance(key, str) else value
                pairs.append((name, self._resolve(self._repository[value])))
                continue
            value = self._resolve(value)
            if isinstance(key, int):
                pairs.extend(self._unnamed(key, value))
                continue
            pairs.append((key, value))
        return pairs

    @staticmethod
    def _resolve(value: Any) -> Any:
        if isinstance(value, str):
            return resolve_handler_path(value)
        return value

    @staticmethod
    def _unnamed(index: int, value: Any) -> list[tuple[CommandKey, Any]]:
        if not _is_plain_callable(value):
            declared = declared_commands(value)
            if declared:
                return list(_container_commands(value, declared))
        metadata = command_metadata(value)
        if metadata is not None and _is_plain_callable(value):
            name = value.__name__
            return [(alias, value) for alias in (name, *metadata.aliases)]
        name = getattr(value, "name", None)
        if isinstance(name, str) and name.strip():
            aliases = tuple(getattr(value, "aliases", ()) or ())
            return [(alias, value) for alias in (name, *aliases)]
        return [(index, value)]


def _container_commands(
    owner: Any, declared: Iterable[Any]
) -> Iterator[tuple[str, CommandDescriptor]]:
    for item in declared:
        handler = BoundMethod(owner, item.method)
        for name in (item.method, *item.aliases):
            _LOGGER.debug("Declared command %r -> %s", name, handler.label)
            yield name, CommandDescriptor(
                name=name,
                handler=handler,
                description=item.description,
                aliases=item.aliases,
            )


def make_descriptor(name: str, value: Any) -> CommandDescriptor:
    """Return a descriptor for ``value`` registered under ``name``."""
    if isinstance(value, CommandDescriptor):
        return value
    metadata = command_metadata(value)
    aliases = metadata.aliases if metadata is not None else getattr(value, "aliases", ())
    return CommandDescriptor(
        name=name,
        handler=make_handler_ref(value),
        description=_description(value),
        aliases=tuple(aliases) if isinstance(aliases, (list, tuple)) else (),
    )


def validate_commands(
    pairs: Iterable[tuple[CommandKey, Any]],
) -> dict[str, CommandDescriptor]:
    """Validate expanded pairs into descriptors keyed by case-folded name.

    Exact duplicates (same name, same handler) collapse into one entry.

    Args:
        pairs: Expanded ``(key, value)`` pairs.

    Returns:
        Descriptors keyed by case-folded command name.

    Raises:
        CommandNameNotSetError: If a key is positional or blank.
        DuplicateCommandError: If a name maps to two different handlers.
    """
    validated: dict[str, CommandDescriptor] = {}
    for key, value in pairs:
        if not isinstance(key, str) or not key.strip():
            raise CommandNameNotSetError(value)
        descriptor = make_descriptor(key, value)
        folded = key.casefold()
        existing = validated.get(folded)
        if existing is not None:
            if existing.handler != descriptor.handler:
                raise DuplicateCommandError(key)
            continue
        validated[folded] = descriptor
    return validated


def build_commands(
    commands: CommandEntries,
    *,
    global_commands: CommandEntries = (),
    groups: Mapping[str, CommandEntries] | None = None,
    repository: Mapping[str, Any] | None = None,
) -> dict[str, CommandDescriptor]:
    """Build the validated command list from configuration.

    Global commands are built first; local commands with the same name
    override them.

    Args:
        commands: Bot-local command entries.
        global_commands: Shared command entries.
        groups: Named groups of command entries.
        repository: Handler lookup table keyed by repository key.

    Returns:
        Descriptors keyed by command name, in registration order.
    """
    builder = _CommandListBuilder(groups or {}, repository or {})
    merged: dict[str, CommandDescriptor] = {}
    for scope in (global_commands, commands):
        merged.update(validate_commands(builder.expand(scope)))
    return {descriptor.name: descriptor for descriptor in merged.values()}


class CommandRegistry:
    """Case-insensitive mapping of command names to descriptors."""

    def __init__(self, descriptors: Iterable[CommandDescriptor] = ()) -> None:
        """Create registry from descriptors.

        Args:
            descriptors: Initial descriptors; duplicates follow ``add`` rules.
        """
        self._commands: dict[str, CommandDescriptor] = {}
        for descriptor in descriptors:
            self.add(descriptor)

    def add(self, descriptor: CommandDescriptor) -> CommandDescriptor:
        """Register descriptor under its name.

        Args:
            descriptor: Descriptor to register.

        Returns:
            The registered descriptor (existing one for exact duplicates).

        Raises:
            CommandNameNotSetError: If the name is blank.
            DuplicateCommandError: If the name is bound to another handler.
        """
        if not descriptor.name.strip():
            raise CommandNameNotSetError(descriptor.handler)
        folded = descriptor.name.casefold()
        existing = self._commands.get(folded)
        if existing is not None:
            if existing.handler != descriptor.handler:
                raise DuplicateCommandError(descriptor.name)
            return existing
        _LOGGER.debug("Registered command %r -> %s", descriptor.name, descriptor.handler.label)
        self._commands[folded] = descriptor
        return descriptor

    def get(self, name: str) -> CommandDescriptor | None:
        """Return descriptor for ``name`` (case-insensitive), if registered."""
        return self._commands.get(name.casefold())

    def as_dict(self) -> dict[str, CommandDescriptor]:
        """Return descriptors keyed by their registered names."""
        return {descriptor.name: descriptor for descriptor in self._commands.values()}

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.casefold() in self._commands

    def __iter__(self) -> Iterator[CommandDescriptor]:
        return iter(self._commands.values())

    def __len__(self) -> int:
        return len(self._commands)
