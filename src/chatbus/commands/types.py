"""Shared command-domain types."""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from chatbus.errors import HandlerMethodMissingError, HandlerResolutionError

if TYPE_CHECKING:
    from chatbus.container import Container

HANDLE_METHOD = "handle"


@dataclass(frozen=True)
class Parameter:
    """One handler parameter as seen by argument parsing."""

    name: str
    kind: Any = inspect.Parameter.POSITIONAL_OR_KEYWORD
    annotation: Any = inspect.Parameter.empty
    default: Any = inspect.Parameter.empty
    injectable: bool = False

    @property
    def has_default(self) -> bool:
        """Whether the parameter declares a default value."""
        return self.default is not inspect.Parameter.empty

    @property
    def is_variadic(self) -> bool:
        """Whether the parameter collects extra positional arguments."""
        return self.kind is inspect.Parameter.VAR_POSITIONAL


@dataclass(frozen=True)
class BoundMethod:
    """Handler implemented as a named method on a class or instance."""

    owner: Any
    method: str

    def target(self) -> Callable[..., Any]:
        """Return the unbound attribute used for signature reflection."""
        return getattr(self.owner, self.method)

    def needs_instance(self) -> bool:
        """Whether invocation requires instantiating ``owner`` first."""
        if not isinstance(self.owner, type):
            return False
        raw = inspect.getattr_static(self.owner, self.method)
        return not isinstance(raw, (staticmethod, classmethod))

    def bind(self, container: Container) -> Callable[..., Any]:
        """Return a callable ready for invocation.

        Args:
            container: Container used to instantiate class owners.

        Returns:
            Bound callable.
        """
        if self.needs_instance():
            return getattr(container.make(self.owner), self.method)
        return self.target()

    @property
    def label(self) -> str:
        """Dotted label used in logs and listings."""
        owner = self.owner if isinstance(self.owner, type) else type(self.owner)
        return f"{owner.__module__}.{owner.__qualname__}.{self.method}"


@dataclass(frozen=True)
class FreeCallable:
    """Handler implemented as a plain function, lambda or callable object."""

    func: Callable[..., Any]

    def target(self) -> Callable[..., Any]:
        """Return the callable used for signature reflection."""
        return self.func

    def bind(self, container: Container) -> Callable[..., Any]:  # noqa: ARG002
        """Return the callable itself."""
        return self.func

    @property
    def label(self) -> str:
        """Dotted label used in logs and listings."""
        module = getattr(self.func, "__module__", None) or "<unknown>"
        name = getattr(self.func, "__qualname__", None) or repr(self.func)
        return f"{module}.{name}"


HandlerRef = BoundMethod | FreeCallable


def make_handler_ref(value: object) -> HandlerRef:
    """Normalize a handler value into a ``HandlerRef`` once at registration.

    Accepted shapes: an existing ref, a class or instance exposing ``handle``,
    an ``(owner, "method")`` pair, a bound method, or any other callable.

    Args:
        value: Raw handler value.

    Returns:
        Normalized handler reference.

    Raises:
        HandlerMethodMissingError: If a class-based handler lacks its method.
        HandlerResolutionError: If the value is not a usable handler.
    """
    if isinstance(value, (BoundMethod, FreeCallable)):
        return value
    if isinstance(value, tuple):
        if len(value) != 2 or not isinstance(value[1], str):
            raise HandlerResolutionError(value, "expected an (owner, 'method') pair")
        owner, method = value
        if not callable(getattr(owner, method, None)):
            raise HandlerMethodMissingError(owner, method)
        return BoundMethod(owner, method)
    if isinstance(value, type):
        if not callable(getattr(value, HANDLE_METHOD, None)):
            raise HandlerMethodMissingError(value, HANDLE_METHOD)
        return BoundMethod(value, HANDLE_METHOD)
    if inspect.ismethod(value):
        return BoundMethod(value.__self__, value.__name__)
    if inspect.isfunction(value) or inspect.isbuiltin(value):
        return FreeCallable(value)
    if callable(getattr(value, HANDLE_METHOD, None)):
        return BoundMethod(value, HANDLE_METHOD)
    if callable(value):
        return FreeCallable(value)
    if isinstance(value, str):
        raise HandlerResolutionError(value, "unresolved handler string")
    raise HandlerMethodMissingError(value, HANDLE_METHOD)


@dataclass(frozen=True)
class CommandDescriptor:
    """Registered command: name plus normalized handler reference."""

    name: str
    handler: HandlerRef
    description: str = ""
    aliases: tuple[str, ...] = ()
