"""Handler signature reflection for argument parsing."""

from __future__ import annotations

import builtins
import inspect
import logging
import types
from collections.abc import Callable
from typing import Annotated, Any, Literal, Union, get_args, get_origin

from chatbus.commands.types import BoundMethod, HandlerRef, Parameter
from chatbus.errors import HandlerResolutionError

_LOGGER = logging.getLogger(__name__)
_NONE_TYPE = type(None)
_STRING_BUILTIN_EXTRAS = frozenset({"Any", "Optional", "Literal"})


def _is_builtin(annotation: Any) -> bool:
    """Return whether annotation names a built-in (parseable) type."""
    if annotation is Any:
        return True
    origin = get_origin(annotation)
    if origin is Annotated:
        return _is_builtin(get_args(annotation)[0])
    if origin is Literal:
        return True
    if origin is not None:
        annotation = origin
    return isinstance(annotation, type) and annotation.__module__ == "builtins"


def _is_builtin_name(name: str) -> bool:
    base = name.split("[", 1)[0].strip().rsplit(".", 1)[-1]
    return base in _STRING_BUILTIN_EXTRAS or isinstance(
        getattr(builtins, base, None), type
    )


def _string_annotation_injectable(annotation: str) -> bool:
    alternatives = [
        part.strip() for part in annotation.split("|") if part.strip() != "None"
    ]
    if not alternatives:
        return False
    return not any(_is_builtin_name(part) for part in alternatives)


def is_injectable_annotation(annotation: Any) -> bool:
    """Return whether a parameter annotation should be resolved by injection.

    Unannotated parameters, built-in types and unions with at least one
    built-in alternative are parsed from text. ``None`` is ignored when
    classifying unions, so ``Service | None`` stays injectable.

    Args:
        annotation: Declared parameter annotation.

    Returns:
        True when the container, not the message text, supplies the value.
    """
    if annotation is inspect.Parameter.empty:
        return False
    if isinstance(annotation, str):
        return _string_annotation_injectable(annotation)
    origin = get_origin(annotation)
    if origin is Annotated:
        return is_injectable_annotation(get_args(annotation)[0])
    if origin is Union or origin is types.UnionType:
        alternatives = [a for a in get_args(annotation) if a is not _NONE_TYPE]
        if not alternatives:
            return False
        return not any(_is_builtin(a) for a in alternatives)
    return not _is_builtin(annotation)


def _signature(ref: HandlerRef) -> inspect.Signature:
    func: Callable[..., Any] = ref.target()
    try:
        signature = inspect.signature(func, eval_str=True)
    except NameError:
        _LOGGER.debug("Unresolvable annotations on %s; using raw strings", ref.label)
        signature = inspect.signature(func)
    except (TypeError, ValueError) as exc:
        raise HandlerResolutionError(ref.label, f"signature unavailable: {exc}") from exc
    if isinstance(ref, BoundMethod) and ref.needs_instance():
        params = list(signature.parameters.values())[1:]
        signature = signature.replace(parameters=params)
    return signature


def describe_parameters(ref: HandlerRef) -> list[Parameter]:
    """Return the full ordered handler signature as ``Parameter`` records.

    Args:
        ref: Normalized handler reference.

    Returns:
        Parameters in declaration order, injectables included.
    """
    return [
        Parameter(
            name=param.name,
            kind=param.kind,
            annotation=param.annotation,
            default=param.default,
            injectable=is_injectable_annotation(param.annotation),
        )
        for param in _signature(ref).parameters.values()
    ]


def text_parameters(ref: HandlerRef) -> list[Parameter]:
    """Return parameters parsed from message text (injectables excluded)."""
    return [
        param
        for param in describe_parameters(ref)
        if not param.injectable and param.kind is not inspect.Parameter.VAR_KEYWORD
    ]
