"""Decorator-declared command metadata and its pre-scan."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, TypeVar

_METADATA_ATTRIBUTE = "__chatbus_command__"

_F = TypeVar("_F", bound=Callable[..., Any])


@dataclass(frozen=True)
class CommandMetadata:
    """Description and aliases declared on a command method or function."""

    description: str = ""
    aliases: tuple[str, ...] = ()


@dataclass(frozen=True)
class DeclaredCommand:
    """One decorated public method found on a multi-command container."""

    method: str
    description: str
    aliases: tuple[str, ...]


def command(description: str = "", aliases: Iterable[str] = ()) -> Callable[[_F], _F]:
    """Mark a method or function as a command handler.

    Args:
        description: Human-readable command description.
        aliases: Additional names resolving to the same handler.

    Returns:
        Decorator storing command metadata on the target.
    """
    metadata = CommandMetadata(description=description, aliases=tuple(aliases))

    def decorate(func: _F) -> _F:
        setattr(func, _METADATA_ATTRIBUTE, metadata)
        return func

    return decorate


def command_metadata(target: object) -> CommandMetadata | None:
    """Return command metadata declared on ``target``, if any."""
    metadata = getattr(target, _METADATA_ATTRIBUTE, None)
    if metadata is None and isinstance(target, (staticmethod, classmethod)):
        metadata = getattr(target.__func__, _METADATA_ATTRIBUTE, None)
    return metadata if isinstance(metadata, CommandMetadata) else None


def declared_commands(owner: type | object) -> list[DeclaredCommand]:
    """Scan public methods of a class (or an instance's class) for metadata.

    Subclass declarations come first; methods are listed in definition order.

    Args:
        owner: Multi-command container class or instance.

    Returns:
        Declared commands in discovery order.
    """
    cls = owner if isinstance(owner, type) else type(owner)
    seen: set[str] = set()
    declared: list[DeclaredCommand] = []
    for klass in cls.__mro__:
        for name, value in vars(klass).items():
            if name.startswith("_") or name in seen:
                continue
            seen.add(name)
            metadata = command_metadata(value)
            if metadata is None:
                continue
            declared.append(
                DeclaredCommand(
                    method=name,
                    description=metadata.description,
                    aliases=metadata.aliases,
                )
            )
    return declared
