"""Dependency container contract and a small default implementation."""

from __future__ import annotations

import inspect
import types
from collections.abc import Callable
from typing import Any, Protocol, TypeVar, Union, get_args, get_origin

from chatbus.commands.signature import is_injectable_annotation
from chatbus.errors import DependencyResolutionError

_T = TypeVar("_T")


class Container(Protocol):
    """Collaborator resolving injectable handler dependencies."""

    def resolve(self, annotation: Any) -> Any:
        """Return an instance for ``annotation``.

        Raises:
            LookupError: If nothing is bound for the annotation.
        """

    def make(self, cls: type[_T]) -> _T:
        """Return an instance of ``cls``, building it when unbound."""


class SimpleContainer:
    """Type-keyed container with instance and factory bindings."""

    def __init__(self, instances: dict[Any, object] | None = None) -> None:
        """Create container seeded with instance bindings.

        Args:
            instances: Optional mapping of type to shared instance.
        """
        self._instances: dict[Any, object] = dict(instances or {})
        self._factories: dict[Any, Callable[[], object]] = {}

    def instance(self, key: Any, value: object) -> None:
        """Bind a shared instance to ``key``."""
        self._instances[key] = value

    def factory(self, key: Any, factory: Callable[[], object]) -> None:
        """Bind a factory called on every resolution of ``key``."""
        self._factories[key] = factory

    def has(self, key: Any) -> bool:
        """Return whether ``key`` has a binding."""
        return key in self._instances or key in self._factories

    def resolve(self, annotation: Any) -> Any:
        """Resolve a bound annotation; unions try each non-None alternative.

        Args:
            annotation: Type (or union of types) to resolve.

        Returns:
            Bound instance.

        Raises:
            LookupError: If no alternative has a binding.
        """
        origin = get_origin(annotation)
        if origin is Union or origin is types.UnionType:
            for alternative in get_args(annotation):
                if alternative is not type(None) and self.has(alternative):
                    return self.resolve(alternative)
            raise LookupError(annotation)
        if annotation in self._instances:
            return self._instances[annotation]
        if annotation in self._factories:
            return self._factories[annotation]()
        raise LookupError(annotation)

    def make(self, cls: type[_T]) -> _T:
        """Return bound instance of ``cls`` or construct it.

        Constructor parameters with injectable annotations and no default are
        resolved from bindings.

        Args:
            cls: Class to instantiate.

        Returns:
            Instance of ``cls``.

        Raises:
            DependencyResolutionError: If a constructor dependency is unbound.
        """
        if self.has(cls):
            return self.resolve(cls)
        kwargs: dict[str, Any] = {}
        signature = inspect.signature(cls, eval_str=True)
        for param in signature.parameters.values():
            if param.default is not inspect.Parameter.empty:
                continue
            if not is_injectable_annotation(param.annotation):
                continue
            try:
                kwargs[param.name] = self.resolve(param.annotation)
            except LookupError as exc:
                raise DependencyResolutionError(param.name, param.annotation) from exc
        return cls(**kwargs)
