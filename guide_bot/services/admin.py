from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any, Optional

from telegram.constants import ParseMode

from guide_bot import messages

LOGGER = logging.getLogger(__name__)


class AdminService:
    """Admin membership checks and notifications to the admin list."""

    def __init__(self, admin_ids: Iterable[int], *, admin_only_message: str = messages.ADMIN_ONLY) -> None:
        self.admin_ids: tuple[int, ...] = tuple(dict.fromkeys(int(item) for item in admin_ids))
        self.admin_only_message = admin_only_message
        self._bot: Any = None

    def attach_bot(self, bot: Any) -> None:
        """Remember the bot used to deliver notifications."""
        self._bot = bot

    def is_admin(self, user_id: Optional[int]) -> bool:
        if not user_id:
            return False
        return user_id in self.admin_ids

    async def ensure_admin(self, update: Any) -> bool:
        """Reply with the admin-only notice unless the sender is an admin."""

        user = getattr(update, "effective_user", None)
        if self.is_admin(getattr(user, "id", None)):
            return True
        LOGGER.debug("Rejected admin command from %s", getattr(user, "id", None))
        message = getattr(update, "effective_message", None)
        if message is not None:
            await message.reply_text(self.admin_only_message)
        return False

    async def _notify_one(self, admin_id: int, text: str) -> bool:
        try:
            await self._bot.send_message(chat_id=admin_id, text=text, parse_mode=ParseMode.HTML)
        except Exception as exc:
            LOGGER.warning("Failed to send admin notification to user %s: %s", admin_id, exc)
            return False
        return True

    async def notify_admins(self, text: str, *, exclude: Iterable[int] = ()) -> int:
        """Send ``text`` to every admin not in ``exclude``; returns delivered count."""

        if self._bot is None:
            LOGGER.warning("Admin notification dropped, no bot attached: %s", text)
            return 0

        excluded = set(exclude)
        targets = [admin_id for admin_id in self.admin_ids if admin_id not in excluded]
        results = await asyncio.gather(*(self._notify_one(admin_id, text) for admin_id in targets))
        failed = results.count(False)
        if failed:
            LOGGER.warning("%s of %s admin notifications failed", failed, len(targets))
        return len(targets) - failed


__all__ = ["AdminService"]
