from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional
from xml.sax.saxutils import escape

from guide_bot.messages import USER_ROW_TEMPLATE
from guide_bot.models import Guide, RegisteredUser


def escape_html(text: str) -> str:
    """Escape ``&``, ``<`` and ``>`` for Telegram's HTML parse mode."""
    return escape(text)


def format_guide_listing(guides: Iterable[Guide]) -> str:
    return "\n".join(escape_html(f"{guide.guide_id} | {guide.title}") for guide in guides)


def format_timestamp(value: Optional[str]) -> str:
    if not value:
        return "дата неизвестна"
    try:
        moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return moment.strftime("%d.%m.%Y %H:%M")


def format_user_row(user: RegisteredUser, order: int) -> str:
    return USER_ROW_TEMPLATE.format(
        order=order,
        user_id=user.user_id,
        username=f"@{user.username}" if user.username else "нет username",
        name=user.display_name,
        registered=format_timestamp(user.registered_at),
    )


def format_users(users: Iterable[RegisteredUser]) -> list[str]:
    return [format_user_row(user, index) for index, user in enumerate(users, start=1)]


def chunk_lines(lines: Iterable[str], limit: int) -> list[str]:
    """Join ``lines`` into newline-separated blocks of at most ``limit`` characters.

    A single line longer than ``limit`` is cut into pieces.
    """

    chunks: list[str] = []
    current = ""
    for line in lines:
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > limit:
            chunks.append(current)
            candidate = line
        current = candidate
    if current:
        chunks.append(current)
    return chunks


def describe_actor(user_id: Optional[int], username: Optional[str]) -> str:
    if username:
        return f"@{username}"
    return f"ID {user_id if user_id else 'неизвестен'}"


__all__ = [
    "chunk_lines",
    "describe_actor",
    "escape_html",
    "format_guide_listing",
    "format_timestamp",
    "format_user_row",
    "format_users",
]
