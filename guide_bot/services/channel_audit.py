from __future__ import annotations

import logging
import re
from typing import Any

from telegram.error import TelegramError

from guide_bot import messages
from guide_bot.services.subscription import SubscriptionService
from guide_bot.services.users import UserService

LOGGER = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{5,32}$")
LINK_PREFIX = re.compile(r"^https?://t\.me/", re.IGNORECASE)


def extract_usernames(text: str) -> list[str]:
    """One username per line; ``@`` and ``https://t.me/`` prefixes are dropped."""

    usernames: list[str] = []
    for line in text.splitlines():
        candidate = line.strip()
        if not candidate:
            continue
        if candidate.startswith("@"):
            candidate = candidate[1:]
        candidate = LINK_PREFIX.sub("", candidate)
        if USERNAME_PATTERN.match(candidate):
            usernames.append(candidate)
    return usernames


class ChannelAuditService:
    """Checks which registered users are subscribed to the channel."""

    def __init__(
        self,
        *,
        user_service: UserService,
        subscription_service: SubscriptionService,
        channel_link: str = "",
    ) -> None:
        self.user_service = user_service
        self.subscription_service = subscription_service
        self.channel_link = channel_link or subscription_service.channel_username

    def is_configured(self) -> bool:
        return bool(self.subscription_service.channel_username)

    async def build_report(self, bot: Any, usernames: list[str]) -> str:
        users = await self.user_service.list_users()
        lookup = {user.username.lower(): user for user in users if user.username}

        rows: list[str] = []
        for username in usernames:
            stored = lookup.get(username.lower())
            if stored is None:
                rows.append(messages.CHANNEL_AUDIT_NOT_REGISTERED.format(username=username))
                continue
            try:
                subscribed = await self.subscription_service.is_user_subscribed(bot, stored.user_id)
            except TelegramError as exc:
                LOGGER.error(
                    "Failed to check subscription of user %s (@%s): %s", stored.user_id, username, exc
                )
                rows.append(messages.CHANNEL_AUDIT_ERROR.format(username=username))
                continue
            template = (
                messages.CHANNEL_AUDIT_SUBSCRIBED if subscribed else messages.CHANNEL_AUDIT_NOT_SUBSCRIBED
            )
            rows.append(template.format(username=username))

        if not rows:
            return messages.CHANNEL_AUDIT_EMPTY
        header = messages.CHANNEL_AUDIT_HEADER_TEMPLATE.format(channel=self.channel_link)
        return "\n".join([header, *rows])


__all__ = ["ChannelAuditService", "extract_usernames"]
