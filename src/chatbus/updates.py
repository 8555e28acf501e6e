"""Inbound update models and bot-command entity extraction."""

from __future__ import annotations

import re
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from chatbus.errors import CommandError, CommandErrorCode

_COMMAND_TOKEN = re.compile(r"(?<!\S)/[A-Za-z0-9_]{1,32}(?:@[A-Za-z0-9_]+)?")


class EntityType(StrEnum):
    """Entity types relevant to command dispatch."""

    BOT_COMMAND = "bot_command"
    MENTION = "mention"
    URL = "url"


class MessageEntity(BaseModel):
    """Typed span inside message text, offsets in UTF-16 code units."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: str
    offset: int = Field(ge=0)
    length: int = Field(ge=0)


class Message(BaseModel):
    """Received chat message."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    message_id: int = 0
    text: str | None = None
    entities: tuple[MessageEntity, ...] = ()
    caption: str | None = None
    caption_entities: tuple[MessageEntity, ...] = ()


class Update(BaseModel):
    """Immutable inbound update record."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    update_id: int = 0
    message: Message | None = None
    edited_message: Message | None = None
    channel_post: Message | None = None
    edited_channel_post: Message | None = None

    @property
    def effective_message(self) -> Message | None:
        """Return the first message-like payload carried by this update."""
        return (
            self.message
            or self.edited_message
            or self.channel_post
            or self.edited_channel_post
        )


def utf16_slice(text: str, start: int, end: int | None = None) -> str:
    """Slice text by UTF-16 code-unit offsets.

    Args:
        text: Source text.
        start: Inclusive start offset in UTF-16 code units.
        end: Exclusive end offset in UTF-16 code units, or None for end of text.

    Returns:
        Substring between the offsets.
    """
    encoded = text.encode("utf-16-le")
    stop = None if end is None else end * 2
    return encoded[start * 2 : stop].decode("utf-16-le")


def _text_and_entities(update: Update) -> tuple[str, tuple[MessageEntity, ...]]:
    message = update.effective_message
    if message is None:
        raise CommandError(
            CommandErrorCode.UPDATE_WITHOUT_TEXT,
            "Update carries no message.",
            data={"update_id": update.update_id},
        )
    if message.text is not None:
        return message.text, message.entities
    if message.caption is not None:
        return message.caption, message.caption_entities
    raise CommandError(
        CommandErrorCode.UPDATE_WITHOUT_TEXT,
        "Update message carries no text or caption.",
        data={"update_id": update.update_id},
    )


def has_text(update: Update) -> bool:
    """Return whether the update carries message text or a caption."""
    message = update.effective_message
    return message is not None and (
        message.text is not None or message.caption is not None
    )


def message_text(update: Update) -> str:
    """Return message text (or caption) of the update.

    Raises:
        CommandError: If the update has no text-bearing message.
    """
    return _text_and_entities(update)[0]


def command_entities(update: Update) -> list[MessageEntity]:
    """Return bot-command entities ordered by position in text.

    Args:
        update: Inbound update.

    Returns:
        Bot-command entities sorted by offset.

    Raises:
        CommandError: If the update has no text-bearing message.
    """
    _, entities = _text_and_entities(update)
    found = [e for e in entities if e.type == EntityType.BOT_COMMAND]
    return sorted(found, key=lambda entity: entity.offset)


def command_offsets(update: Update) -> list[int]:
    """Return ordered offsets of all bot-command entities."""
    return [entity.offset for entity in command_entities(update)]


def entity_text(text: str, entity: MessageEntity) -> str:
    """Return the span of ``text`` covered by ``entity``."""
    return utf16_slice(text, entity.offset, entity.offset + entity.length)


def utf16_length(text: str) -> int:
    """Return the length of ``text`` in UTF-16 code units."""
    return len(text.encode("utf-16-le")) // 2


def detect_command_entities(text: str) -> tuple[MessageEntity, ...]:
    """Mark ``/command`` tokens the way the platform does for received text.

    Args:
        text: Message text.

    Returns:
        Bot-command entities with UTF-16 offsets.
    """
    return tuple(
        MessageEntity(
            type=EntityType.BOT_COMMAND,
            offset=utf16_length(text[: match.start()]),
            length=utf16_length(match.group(0)),
        )
        for match in _COMMAND_TOKEN.finditer(text)
    )


def text_update(text: str, *, update_id: int = 0) -> Update:
    """Build a text-message update with detected command entities."""
    return Update(
        update_id=update_id,
        message=Message(text=text, entities=detect_command_entities(text)),
    )
