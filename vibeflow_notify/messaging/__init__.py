"""Slack message formatting and delivery."""

from .blocks import Message
from .content import CONTENT_TYPES, PUBLISH_CONTENT_TYPES, ContentRecord, parse_record
from .formatters import format_message
from .truncate import MAX_MESSAGE_LENGTH, truncate_message_text

__all__ = [
    "CONTENT_TYPES",
    "ContentRecord",
    "MAX_MESSAGE_LENGTH",
    "Message",
    "PUBLISH_CONTENT_TYPES",
    "format_message",
    "parse_record",
    "truncate_message_text",
]
