from __future__ import annotations

import logging
from typing import Any

from telegram import LinkPreviewOptions
from telegram.constants import ChatMemberStatus, ParseMode
from telegram.error import BadRequest, TelegramError

from guide_bot import messages
from guide_bot.keyboards.user import subscription_keyboard

LOGGER = logging.getLogger(__name__)

ACTIVE_STATUSES = frozenset(
    {ChatMemberStatus.OWNER, ChatMemberStatus.ADMINISTRATOR, ChatMemberStatus.MEMBER}
)
MISSING_USER_MARKERS = ("user not found", "user_not_participant")
NO_PREVIEW = LinkPreviewOptions(is_disabled=True)


def is_active_member(member: Any) -> bool:
    """Return ``True`` when a ``ChatMember`` counts as a channel subscriber."""

    status = getattr(member, "status", None)
    if status is None:
        return False
    if status == ChatMemberStatus.RESTRICTED:
        return bool(getattr(member, "is_member", False))
    return status in ACTIVE_STATUSES


def is_user_missing_error(error: BaseException) -> bool:
    """Telegram reports "not a member" as a ``BadRequest`` with one of a few texts."""

    if not isinstance(error, BadRequest):
        return False
    description = (getattr(error, "message", None) or str(error)).lower()
    return any(marker in description for marker in MISSING_USER_MARKERS)


class SubscriptionService:
    """Gate guide access behind membership in a Telegram channel."""

    CALLBACK_DATA = "subscription_check"

    def __init__(
        self,
        *,
        channel_username: str = "",
        prompt_message: str = messages.SUBSCRIPTION_PROMPT,
        reminder_message: str = "",
        button_text: str = messages.SUBSCRIPTION_BUTTON,
    ) -> None:
        self.channel_username = channel_username
        self.prompt_message = prompt_message
        self.reminder_message = reminder_message or prompt_message
        self.button_text = button_text

    def is_enabled(self) -> bool:
        return bool(self.channel_username and self.prompt_message and self.button_text)

    async def is_user_subscribed(self, bot: Any, user_id: int) -> bool:
        if not self.channel_username:
            LOGGER.error("Subscription channel username is not configured.")
            return True
        try:
            member = await bot.get_chat_member(self.channel_username, user_id)
        except TelegramError as exc:
            if is_user_missing_error(exc):
                return False
            raise
        return is_active_member(member)

    async def send_prompt(self, message: Any, *, reminder: bool = False) -> None:
        if not self.is_enabled():
            return
        text = self.reminder_message if reminder else self.prompt_message
        await message.reply_text(
            text,
            parse_mode=ParseMode.HTML,
            link_preview_options=NO_PREVIEW,
            reply_markup=subscription_keyboard(self.button_text, self.CALLBACK_DATA),
        )

    async def require_subscription(self, update: Any, bot: Any, *, reminder: bool = True) -> bool:
        """Return ``True`` when the sender may receive guides.

        Sends the subscription prompt when the sender is not subscribed: the
        first-time invitation, or the reminder when ``reminder`` is set.
        """

        if not self.is_enabled():
            return True

        message = update.effective_message
        user = update.effective_user
        if user is None:
            LOGGER.error("Unable to determine user id for subscription check.")
            if message is not None:
                await message.reply_text(messages.SUBSCRIPTION_UNKNOWN_USER)
            return False

        try:
            subscribed = await self.is_user_subscribed(bot, user.id)
        except TelegramError as exc:
            LOGGER.error("Failed to verify subscription status for %s: %s", user.id, exc)
            if message is not None:
                await message.reply_text(messages.SUBSCRIPTION_CHECK_FAILED)
            return False

        if subscribed:
            return True

        if message is not None:
            await self.send_prompt(message, reminder=reminder)
        return False


__all__ = ["SubscriptionService", "is_active_member", "is_user_missing_error"]
