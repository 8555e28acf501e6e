"""Command argument parsing driven by handler signatures."""

from __future__ import annotations

import inspect
import logging
import re
from collections.abc import Iterable, Sequence

from chatbus.commands.signature import describe_parameters
from chatbus.commands.types import HandlerRef, Parameter, make_handler_ref
from chatbus.updates import utf16_slice

_LOGGER = logging.getLogger(__name__)

_TOKEN_PATTERN = r"\S++"
_ARGUMENT_SEPARATOR = r"(?:\s+)?"
# Ex: /start@Somebot <arg> ...<arg>
# Ex: /start <arg> ...<arg>
_COMMAND_PREFIX = r"/[\w]+(?:@\S+)?(?:\s+)?"
_PATTERN_FLAGS = re.IGNORECASE | re.DOTALL


def between(subject: str, before: str, after: str) -> str:
    """Return the portion of ``subject`` after ``before`` and before the last ``after``.

    A missing or empty delimiter leaves that side untouched, so a malformed
    value degrades to itself instead of failing.

    Args:
        subject: Source string.
        before: Leading delimiter.
        after: Trailing delimiter (last occurrence is used).

    Returns:
        Extracted portion.
    """
    if not before or not after:
        return subject
    _, found, rest = subject.partition(before)
    if not found:
        _LOGGER.debug("Delimiter %r absent in %r; using value verbatim", before, subject)
        rest = subject
    head, found, _ = rest.rpartition(after)
    if not found:
        _LOGGER.debug("Delimiter %r absent in %r; using value verbatim", after, rest)
        return rest
    return head


def is_regex_param(param: Parameter) -> bool:
    """Return whether the parameter's default is a ``{...}`` regex placeholder."""
    default = param.default
    return (
        param.has_default
        and isinstance(default, str)
        and len(default) >= 2
        and default.startswith("{")
        and default.endswith("}")
    )


def _sub_pattern(param: Parameter) -> str:
    if not is_regex_param(param):
        return _TOKEN_PATTERN
    body = between(param.default, "{", "}")
    try:
        re.compile(body)
    except re.error as exc:
        _LOGGER.warning(
            "Regex parameter %r has invalid pattern %r (%s); matching literally",
            param.name,
            body,
            exc,
        )
        return re.escape(body)
    return body


def arguments_pattern(params: Sequence[Parameter]) -> str:
    """Build the regex matching one command invocation and its arguments.

    Each parameter becomes an optional named group; groups are joined by
    optional whitespace in declaration order.

    Args:
        params: Text parameters of the handler.

    Returns:
        Regex source, to be compiled case-insensitive with DOTALL.
    """
    groups = _ARGUMENT_SEPARATOR.join(
        f"(?P<{param.name}>{_sub_pattern(param)})?" for param in params
    )
    return f"{_COMMAND_PREFIX}{groups}"


def relevant_substring(full_text: str, offsets: Sequence[int], offset: int) -> str:
    """Cut the part of the text belonging to the command at ``offset``.

    The slice runs up to the next command entity or, for the last command,
    to the end of the text. Offsets are UTF-16 code units.

    Args:
        full_text: Complete message text.
        offsets: Ordered offsets of all bot-command entities.
        offset: Offset of the command being parsed.

    Returns:
        Text scoped to this command occurrence.
    """
    try:
        index = list(offsets).index(offset)
    except ValueError:
        return utf16_slice(full_text, offset)
    window = list(offsets[index : index + 2])
    if len(window) == 2:
        return utf16_slice(full_text, window[0], window[1])
    return utf16_slice(full_text, window[0])


class CommandParser:
    """Signature-driven argument parser for one command handler.

    Parameters and the compiled pattern are computed once per handler and
    reused; nothing update-specific is retained between calls.
    """

    def __init__(self, handler: HandlerRef) -> None:
        """Bind parser to a normalized handler reference.

        Args:
            handler: Handler whose signature drives parsing.
        """
        self._handler = handler
        self._signature: list[Parameter] | None = None
        self._params: list[Parameter] | None = None
        self._pattern: re.Pattern[str] | None = None

    @classmethod
    def parse(cls, handler: object) -> CommandParser:
        """Create a parser from any accepted handler value."""
        return cls(make_handler_ref(handler))

    @property
    def handler(self) -> HandlerRef:
        """Handler reference this parser describes."""
        return self._handler

    def signature(self) -> list[Parameter]:
        """Return the full handler signature, injectables included."""
        if self._signature is None:
            self._signature = describe_parameters(self._handler)
        return self._signature

    def all_params(self) -> list[Parameter]:
        """Return text parameters, excluding injectable ones."""
        if self._params is None:
            self._params = [
                param
                for param in self.signature()
                if not param.injectable
                and param.kind is not inspect.Parameter.VAR_KEYWORD
            ]
        return self._params

    def pattern(self) -> re.Pattern[str]:
        """Return the compiled arguments pattern."""
        if self._pattern is None:
            self._pattern = re.compile(
                arguments_pattern(self.all_params()), _PATTERN_FLAGS
            )
        return self._pattern

    def required_params(self) -> list[str]:
        """Return names of parameters with no default that are not variadic."""
        return [
            param.name
            for param in self.all_params()
            if not param.has_default and not param.is_variadic
        ]

    def required_params_not_provided(self, provided: Iterable[str]) -> list[str]:
        """Return required parameter names missing from ``provided``.

        Args:
            provided: Parameter names that received a value.

        Returns:
            Missing names in declaration order.
        """
        given = set(provided)
        return [name for name in self.required_params() if name not in given]

    def nullified_regex_params(self) -> dict[str, str | None]:
        """Return every regex parameter mapped to ``None``."""
        return {param.name: None for param in self.all_params() if is_regex_param(param)}

    def arguments(
        self, full_text: str, offsets: Sequence[int], offset: int
    ) -> dict[str, str | None]:
        """Parse arguments for the command occurrence at ``offset``.

        Regex parameters that did not match are present with ``None``;
        other unmatched parameters are omitted.

        Args:
            full_text: Complete message text.
            offsets: Ordered offsets of all bot-command entities.
            offset: Offset of the command being parsed.

        Returns:
            Mapping of parameter name to captured text.
        """
        text = relevant_substring(full_text, offsets, offset)
        arguments = self.nullified_regex_params()
        match = self.pattern().search(text)
        if match is not None:
            for name, value in match.groupdict().items():
                if value is not None:
                    arguments[name] = value
        return arguments
