"""Deterministic command error contracts."""

from __future__ import annotations

from enum import StrEnum


class CommandErrorCode(StrEnum):
    """Stable command registry/dispatch error codes."""

    NAME_NOT_SET = "command_name_not_set"
    DUPLICATE = "command_duplicate"
    HANDLER_METHOD_MISSING = "handler_method_missing"
    HANDLER_UNRESOLVABLE = "handler_unresolvable"
    DEPENDENCY_UNRESOLVED = "dependency_unresolved"
    UPDATE_WITHOUT_TEXT = "update_without_text"


class CommandError(RuntimeError):
    """Command failure with stable deterministic code."""

    def __init__(
        self,
        code: CommandErrorCode,
        message: str,
        *,
        data: dict[str, object] | None = None,
    ) -> None:
        """Create command failure.

        Args:
            code: Stable command error code.
            message: Human-readable error message.
            data: Optional structured payload for diagnostics.
        """
        super().__init__(message)
        self.code = code
        self.data = data or {}


class CommandNameNotSetError(CommandError):
    """Raised when a configured handler has no usable command name."""

    def __init__(self, handler: object) -> None:
        """Create error for the offending handler.

        Args:
            handler: Handler value that was supplied without a name.
        """
        super().__init__(
            CommandErrorCode.NAME_NOT_SET,
            f"Command name not set for handler {handler!r}.",
            data={"handler": handler},
        )


class DuplicateCommandError(CommandError):
    """Raised when two different handlers claim the same command name."""

    def __init__(self, name: str) -> None:
        """Create error for the conflicting name.

        Args:
            name: Command name claimed twice.
        """
        super().__init__(
            CommandErrorCode.DUPLICATE,
            f"Command name already registered to a different handler: {name!r}",
            data={"name": name},
        )


class HandlerMethodMissingError(CommandError):
    """Raised when a class-based handler lacks its designated method."""

    def __init__(self, owner: object, method: str) -> None:
        """Create error for the owner missing ``method``.

        Args:
            owner: Class or instance inspected.
            method: Method name that could not be located.
        """
        owner_name = owner.__name__ if isinstance(owner, type) else type(owner).__name__
        super().__init__(
            CommandErrorCode.HANDLER_METHOD_MISSING,
            f"Command handler {owner_name!r} has no callable {method!r} method.",
            data={"owner": owner_name, "method": method},
        )


class HandlerResolutionError(CommandError):
    """Raised when a configured handler reference cannot be resolved."""

    def __init__(self, reference: object, reason: str) -> None:
        """Create error for an unresolvable handler reference.

        Args:
            reference: Raw handler reference from configuration.
            reason: Short explanation of the failure.
        """
        super().__init__(
            CommandErrorCode.HANDLER_UNRESOLVABLE,
            f"Cannot resolve command handler {reference!r}: {reason}",
            data={"reference": reference, "reason": reason},
        )


class DependencyResolutionError(CommandError):
    """Raised when an injectable handler parameter cannot be resolved."""

    def __init__(self, parameter: str, annotation: object) -> None:
        """Create error for the unresolved parameter.

        Args:
            parameter: Handler parameter name.
            annotation: Declared parameter annotation.
        """
        super().__init__(
            CommandErrorCode.DEPENDENCY_UNRESOLVED,
            f"No binding available for parameter {parameter!r} ({annotation!r}).",
            data={"parameter": parameter, "annotation": repr(annotation)},
        )
