"""Block Kit message types.

Only the block and element kinds this service emits are modelled. Every
value serialises through ``to_dict()`` into the JSON shape Slack expects;
optional parts that are absent are left out of the payload entirely.

See https://api.slack.com/block-kit
"""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from typing import Any, ClassVar, Literal, Union

from .truncate import MAX_MESSAGE_LENGTH, truncate_message_text

TextType = Literal["plain_text", "mrkdwn"]


@dataclass(frozen=True)
class TextObject:
    text: str
    type: TextType = "mrkdwn"
    emoji: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type, "text": self.text}
        if self.emoji is not None:
            data["emoji"] = self.emoji
        return data


def plain_text(text: str) -> TextObject:
    """Plain text with emoji shortcodes enabled."""
    return TextObject(text=text, type="plain_text", emoji=True)


def mrkdwn(text: str) -> TextObject:
    return TextObject(text=text, type="mrkdwn")


@dataclass(frozen=True)
class ImageElement:
    image_url: str
    alt_text: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "image", "image_url": self.image_url, "alt_text": self.alt_text}


@dataclass(frozen=True)
class LinkButton:
    """A button that opens *url*; ``primary`` renders it highlighted."""

    label: str
    url: str
    primary: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": "button",
            "text": plain_text(self.label).to_dict(),
            "url": self.url,
        }
        if self.primary:
            data["style"] = "primary"
        return data


# -- blocks ----------------------------------------------------------------


@dataclass(frozen=True)
class HeaderBlock:
    type: ClassVar[str] = "header"

    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "text": plain_text(self.text).to_dict()}


@dataclass(frozen=True)
class SectionBlock:
    type: ClassVar[str] = "section"

    text: TextObject
    accessory: ImageElement | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type, "text": self.text.to_dict()}
        if self.accessory is not None:
            data["accessory"] = self.accessory.to_dict()
        return data


@dataclass(frozen=True)
class ActionsBlock:
    type: ClassVar[str] = "actions"

    elements: tuple[LinkButton, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "elements": [e.to_dict() for e in self.elements]}


@dataclass(frozen=True)
class ContextBlock:
    type: ClassVar[str] = "context"

    elements: tuple[TextObject, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "elements": [e.to_dict() for e in self.elements]}


Block = Union[HeaderBlock, SectionBlock, ActionsBlock, ContextBlock]


@dataclass(frozen=True)
class Message:
    """An ordered list of blocks plus the plain-text notification fallback."""

    blocks: tuple[Block, ...]
    text: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"blocks": [b.to_dict() for b in self.blocks]}
        if self.text:
            data["text"] = self.text
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))

    def payload_size(self) -> int:
        """Size in bytes of the UTF-8 JSON payload sent to Slack."""
        return len(self.to_json().encode("utf-8"))

    def truncated(self, max_length: int = MAX_MESSAGE_LENGTH) -> Message:
        """Return a copy with every section text cut to *max_length*."""
        blocks = tuple(
            dataclasses.replace(
                b,
                text=dataclasses.replace(
                    b.text, text=truncate_message_text(b.text.text, max_length),
                ),
            )
            if isinstance(b, SectionBlock)
            else b
            for b in self.blocks
        )
        return Message(blocks=blocks, text=self.text)
