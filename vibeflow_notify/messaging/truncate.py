"""Slack text-length enforcement."""

from __future__ import annotations

MAX_MESSAGE_LENGTH = 3000

_ELLIPSIS = "..."
# How far back from the cut point a word boundary may be.
_WORD_BOUNDARY_WINDOW = 50


def truncate_message_text(text: str, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    """Truncate *text* to at most *max_length* characters.

    Text that already fits is returned as-is. Otherwise the text is cut
    ``len("...")`` characters before the limit, backing up to the last
    space if one occurs within the final 50 characters, and ``...`` is
    appended. The kept part is always a literal prefix of *text*, and
    truncating a result again returns it unchanged.
    """
    if len(text) <= max_length:
        return text
    if max_length < len(_ELLIPSIS):
        return text[:max(max_length, 0)]

    cut = max_length - len(_ELLIPSIS)
    head = text[:cut]
    for i in range(len(head) - 1, max(cut - _WORD_BOUNDARY_WINDOW, 0), -1):
        if head[i] == " ":
            head = head[:i]
            break
    return head + _ELLIPSIS
