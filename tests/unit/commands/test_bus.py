"""Unit tests for update dispatch through the command bus."""

from __future__ import annotations

import pytest

from chatbus.commands.attributes import command
from chatbus.commands.bus import CommandBus, OutcomeStatus
from chatbus.commands.types import CommandDescriptor
from chatbus.container import SimpleContainer
from chatbus.errors import (
    CommandErrorCode,
    DependencyResolutionError,
    DuplicateCommandError,
)
from chatbus.updates import Message, MessageEntity, Update, text_update
from tests.unit.handler_fixtures import Greeter, StartCommand, Toolbox, ping, plain

_CALLS: list[tuple[str, str]] = []


def record(a: str, b: str) -> None:
    """Handler recording its invocations."""
    _CALLS.append((a, b))


def greet(greeter: Greeter, name: str) -> str:
    """Handler depending on an injected service."""
    return greeter.greet(name)


def maybe(greeter: Greeter | None = None) -> bool:
    """Handler whose optional service may be unbound."""
    return greeter is None


def collect(first: str, *rest: str) -> tuple[str, tuple[str, ...]]:
    """Handler with a variadic tail."""
    return first, rest


def boom() -> None:
    """Handler that always fails."""
    raise ValueError("boom")


def context(
    message: Message,
    entity: MessageEntity,
    descriptor: CommandDescriptor,
    current: CommandBus,
) -> tuple[str | None, int, str, CommandBus]:
    """Handler receiving per-dispatch context objects."""
    return message.text, entity.offset, descriptor.name, current


class Counter:
    """Class handler keeping state between updates."""

    def __init__(self) -> None:
        self.count = 0

    def handle(self) -> int:
        """Return the number of calls so far."""
        self.count += 1
        return self.count


class Notes:
    """Multi-command container sharing state across its commands."""

    def __init__(self) -> None:
        self.items: list[str] = []

    @command("Remember an item")
    def remember(self, item: str) -> list[str]:
        """Store ``item`` and return everything stored."""
        self.items.append(item)
        return list(self.items)

    @command("Forget everything")
    def forget(self) -> int:
        """Drop stored items and return how many there were."""
        dropped = len(self.items)
        self.items.clear()
        return dropped


class NeedsGreeter:
    """Class handler with a constructor dependency."""

    def __init__(self, greeter: Greeter) -> None:
        self.greeter = greeter

    def handle(self, name: str) -> str:
        """Greet ``name``."""
        return self.greeter.greet(name)


def ordered(a: str = "x", b: str = "{.*}", /) -> tuple[str, str | None]:
    """Handler with positional-only parameters."""
    return a, b


@pytest.fixture(autouse=True)
def _reset_calls() -> None:
    _CALLS.clear()


@pytest.mark.unit
def test_class_handler_receives_update_and_parsed_arguments(bus: CommandBus) -> None:
    """Class handlers are built by the container and called with arguments."""
    bus.build_commands_list([StartCommand])

    (outcome,) = bus.process_update(text_update("/start@mybot 42 hello"))

    assert outcome.status is OutcomeStatus.INVOKED
    assert outcome.command.name == "start"
    assert outcome.arguments == {"id": "42", "name": "hello"}
    assert outcome.result == {"id": "42", "name": "hello"}


@pytest.mark.unit
def test_alias_dispatches_to_same_handler(bus: CommandBus) -> None:
    """Aliases resolve to the handler of their primary name."""
    bus.build_commands_list([StartCommand])

    (outcome,) = bus.process_update(text_update("/begin 1 x"))

    assert outcome.command.name == "begin"
    assert outcome.result == {"id": "1", "name": "x"}


@pytest.mark.unit
def test_commands_addressed_to_other_bots_are_ignored(bus: CommandBus) -> None:
    """A ``@suffix`` naming a different bot skips the entity."""
    bus.register_command("ping", ping)

    assert bus.process_update(text_update("/ping@otherbot")) == []
    assert [o.result for o in bus.process_update(text_update("/ping@MyBot"))] == [
        "pong"
    ]


@pytest.mark.unit
def test_bus_without_username_accepts_any_suffix() -> None:
    """Without a configured username every suffix is accepted."""
    bus = CommandBus()
    bus.register_command("ping", ping)

    (outcome,) = bus.process_update(text_update("/ping@anybot"))

    assert outcome.result == "pong"


@pytest.mark.unit
def test_unknown_commands_and_plain_text_yield_nothing(bus: CommandBus) -> None:
    """Unregistered names, text without commands and empty updates are no-ops."""
    bus.register_command("ping", ping)

    assert bus.process_update(text_update("/unknown 1")) == []
    assert bus.process_update(text_update("just chatting")) == []
    assert bus.process_update(Update(update_id=3)) == []


@pytest.mark.unit
def test_missing_required_arguments_skip_invocation(bus: CommandBus) -> None:
    """Handlers are not called when required arguments are absent."""
    bus.register_command("record", record)

    (outcome,) = bus.process_update(text_update("/record 1"))

    assert outcome.status is OutcomeStatus.MISSING_ARGUMENTS
    assert outcome.missing == ("b",)
    assert outcome.arguments == {"a": "1"}
    assert outcome.result is None
    assert _CALLS == []


@pytest.mark.unit
def test_multiple_commands_dispatch_in_text_order(bus: CommandBus) -> None:
    """Each command gets only the text up to the next command."""
    bus.build_commands_list([Toolbox])

    outcomes = bus.process_update(text_update("/add 1 2 /say hi there"))

    assert [o.command.name for o in outcomes] == ["add", "say"]
    assert [o.result for o in outcomes] == [3, "hi there"]


@pytest.mark.unit
def test_unmatched_regex_argument_is_passed_as_none(bus: CommandBus) -> None:
    """Optional regex parameters receive None rather than their placeholder."""
    bus.build_commands_list([Toolbox])

    (outcome,) = bus.process_update(text_update("/echo"))

    assert outcome.status is OutcomeStatus.INVOKED
    assert outcome.arguments == {"msg": None}
    assert outcome.result is None


@pytest.mark.unit
def test_injectable_parameters_come_from_container(
    bus: CommandBus, container: SimpleContainer
) -> None:
    """Non-builtin annotations are resolved from the container."""
    container.instance(Greeter, Greeter())
    bus.register_command("greet", greet)

    (outcome,) = bus.process_update(text_update("/greet bob"))

    assert outcome.result == "hello bob"


@pytest.mark.unit
def test_unbound_dependency_fails_dispatch(bus: CommandBus) -> None:
    """A required injectable with no binding raises."""
    bus.register_command("greet", greet)

    with pytest.raises(DependencyResolutionError) as excinfo:
        bus.process_update(text_update("/greet bob"))

    assert excinfo.value.code == CommandErrorCode.DEPENDENCY_UNRESOLVED
    assert excinfo.value.data["parameter"] == "greeter"


@pytest.mark.unit
def test_unbound_optional_dependency_uses_default(bus: CommandBus) -> None:
    """Injectables with defaults fall back when the container has no binding."""
    bus.register_command("maybe", maybe)

    (outcome,) = bus.process_update(text_update("/maybe"))

    assert outcome.result is True


@pytest.mark.unit
def test_context_objects_are_injected(bus: CommandBus) -> None:
    """Message, entity, descriptor and bus are available to handlers."""
    bus.register_command("ctx", context)

    (outcome,) = bus.process_update(text_update("hi /ctx"))

    assert outcome.result == ("hi /ctx", 3, "ctx", bus)


@pytest.mark.unit
def test_variadic_parameter_takes_one_token(bus: CommandBus) -> None:
    """A ``*args`` parameter receives the next token when present."""
    bus.register_command("collect", collect)

    (first,) = bus.process_update(text_update("/collect a b c"))
    (second,) = bus.process_update(text_update("/collect a"))

    assert first.result == ("a", ("b",))
    assert second.result == ("a", ())


@pytest.mark.unit
def test_dry_run_matches_without_invoking(bus: CommandBus) -> None:
    """``invoke=False`` reports matches and leaves handlers untouched."""
    bus.register_command("record", record)

    (outcome,) = bus.process_update(text_update("/record 1 2"), invoke=False)

    assert outcome.status is OutcomeStatus.MATCHED
    assert outcome.arguments == {"a": "1", "b": "2"}
    assert _CALLS == []


@pytest.mark.unit
def test_register_command_rejects_conflicts(bus: CommandBus) -> None:
    """Re-registering a name is idempotent only for the same handler."""
    first = bus.register_command("ping", ping)

    assert bus.register_command("ping", ping) is first
    with pytest.raises(DuplicateCommandError):
        bus.register_command("PING", plain)
    assert list(bus.commands) == ["ping"]


@pytest.mark.unit
def test_required_params_not_provided_by_command_name(bus: CommandBus) -> None:
    """Missing-argument checks are available per registered name."""
    bus.build_commands_list([Toolbox])

    assert bus.required_params_not_provided("add", ["a"]) == ["b"]
    assert bus.required_params_not_provided("ADD", ["a", "b"]) == []
    with pytest.raises(KeyError):
        bus.required_params_not_provided("nope", [])


@pytest.mark.unit
def test_command_names_match_case_insensitively(bus: CommandBus) -> None:
    """Upper-case commands resolve to lower-case registrations."""
    bus.register_command("ping", ping)

    (outcome,) = bus.process_update(text_update("/PING"))

    assert outcome.result == "pong"


@pytest.mark.unit
def test_caption_commands_are_dispatched(bus: CommandBus) -> None:
    """Media captions are parsed like message text."""
    bus.register_command("plain", plain)
    update = Update(
        message=Message(
            caption="/plain",
            caption_entities=(MessageEntity(type="bot_command", offset=0, length=6),),
        )
    )

    (outcome,) = bus.process_update(update)

    assert outcome.status is OutcomeStatus.INVOKED
    assert outcome.result == ""


@pytest.mark.unit
def test_handler_exceptions_propagate(bus: CommandBus) -> None:
    """Handler failures surface to the caller."""
    bus.register_command("boom", boom)

    with pytest.raises(ValueError, match="boom"):
        bus.process_update(text_update("/boom"))


@pytest.mark.unit
def test_parsers_are_cached_per_command(bus: CommandBus) -> None:
    """Repeated dispatch reuses the same parser."""
    descriptor = bus.register_command("record", record)

    assert bus.parser_for(descriptor) is bus.parser_for(descriptor)


@pytest.mark.unit
def test_class_handler_state_survives_between_updates(bus: CommandBus) -> None:
    """Class handlers are instantiated once, at registration."""
    bus.register_command("count", Counter)

    results = [
        outcome.result
        for text in ("/count", "/count")
        for outcome in bus.process_update(text_update(text))
    ]

    assert results == [1, 2]


@pytest.mark.unit
def test_container_commands_share_one_instance(bus: CommandBus) -> None:
    """Every command declared on a container class uses the same instance."""
    commands = bus.build_commands_list([Notes])

    bus.process_update(text_update("/remember a"))
    (outcome,) = bus.process_update(text_update("/remember b"))
    (forgot,) = bus.process_update(text_update("/forget"))

    assert commands["remember"].handler.owner is commands["forget"].handler.owner
    assert isinstance(commands["remember"].handler.owner, Notes)
    assert outcome.result == ["a", "b"]
    assert forgot.result == 2


@pytest.mark.unit
def test_registering_same_class_twice_reuses_instance(bus: CommandBus) -> None:
    """Repeat registration of one class stays an exact duplicate."""
    first = bus.register_command("count", Counter)

    assert bus.register_command("count", Counter) is first


@pytest.mark.unit
def test_unbuildable_handler_class_fails_at_build_time(bus: CommandBus) -> None:
    """Constructor dependencies are resolved while building the command list."""
    with pytest.raises(DependencyResolutionError) as excinfo:
        bus.build_commands_list({"svc": NeedsGreeter})

    assert excinfo.value.data["parameter"] == "greeter"
    assert "svc" not in bus.registry


@pytest.mark.unit
def test_handler_class_dependencies_come_from_container(
    bus: CommandBus, container: SimpleContainer
) -> None:
    """Handler constructors are autowired from the container."""
    container.instance(Greeter, Greeter())
    bus.build_commands_list({"svc": NeedsGreeter})

    (outcome,) = bus.process_update(text_update("/svc ann"))

    assert outcome.result == "hello ann"


@pytest.mark.unit
def test_unmatched_positional_only_parameters_use_defaults(bus: CommandBus) -> None:
    """Skipped positional-only parameters keep later values positional."""
    bus.register_command("ordered", ordered)

    (bare,) = bus.process_update(text_update("/ordered"))
    (full,) = bus.process_update(text_update("/ordered y rest of it"))

    assert bare.result == ("x", "")
    assert full.result == ("y", "rest of it")
