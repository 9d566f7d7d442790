"""Composer input rules (core domain).

Lengths are counted in code points so a full-width character counts as one,
matching how the web composer counts.
"""

from __future__ import annotations

from itanavi_chat.core.errors import ValidationError

MESSAGE_MAX_CHARS = 1000
EMOJI_MAX_CHARS = 10


def count_chars(text: str) -> int:
    return len(text)


def clip_message(text: str, limit: int = MESSAGE_MAX_CHARS) -> str:
    """Clip composer input to the limit instead of rejecting it later."""

    if len(text) <= limit:
        return text
    return text[:limit]


def format_counter(text: str, limit: int = MESSAGE_MAX_CHARS) -> str:
    return f"{count_chars(text)} / {limit}文字"


def validate_message(text: str) -> str:
    """Return the content to send, or raise ValidationError."""

    content = text.strip()
    if not content:
        raise ValidationError("メッセージを入力してください")
    if count_chars(text) > MESSAGE_MAX_CHARS:
        raise ValidationError(f"メッセージは{MESSAGE_MAX_CHARS}文字以内で入力してください")
    return content


def validate_emoji(emoji: str) -> str:
    value = emoji.strip()
    if not value:
        raise ValidationError("Emoji is required")
    if count_chars(value) > EMOJI_MAX_CHARS:
        raise ValidationError("Emoji is too long")
    return value
