"""Telegram application for the guide bot.

:class:`GuideTelegramBot` wires the JSON-backed services, the admin flow
coordinator and the command objects into a python-telegram-bot
``Application``.  Plain text, documents and photos/videos each go through a
single router that offers the message to the pending flows in order and
stops at the first one that consumes it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from telegram import Update
from telegram.ext import AIORateLimiter, Application, ApplicationBuilder, ContextTypes, MessageHandler, filters

from guide_bot.admin_flow import AdminFlowCoordinator
from guide_bot.config import BotConfig
from guide_bot.handlers.admin import (
    AdminMenuCommand,
    CheckChannelCommand,
    ImageMenuCommand,
    ListUsersCommand,
    ShowGuidesCommand,
)
from guide_bot.handlers.base import BotCommand
from guide_bot.handlers.flow import (
    AddGuideCommand,
    CancelCommand,
    ConfirmCommand,
    DeleteGuideCommand,
    offer_document,
    offer_text,
)
from guide_bot.handlers.user import GetGuidesCommand, StartCommand
from guide_bot.services.admin import AdminService
from guide_bot.services.channel_audit import ChannelAuditService
from guide_bot.services.guides import GuideService
from guide_bot.services.menu_media import MenuMediaService
from guide_bot.services.subscription import SubscriptionService
from guide_bot.services.users import UserService
from guide_bot.sessions import InMemorySessionStore, SessionStore
from guide_bot.storage import list_store, object_store

LOGGER = logging.getLogger(__name__)


@dataclass
class GuideTelegramBot:
    """Light-weight wrapper around the PTB application builder."""

    config: BotConfig
    sessions: SessionStore = field(default_factory=InMemorySessionStore)

    def __post_init__(self) -> None:
        config = self.config
        self.guide_service = GuideService(list_store(config.guides_path))
        self.user_service = UserService(list_store(config.users_path))
        self.menu_media_service = MenuMediaService(object_store(config.menu_media_path))
        self.admin_service = AdminService(config.admin_ids)
        self.subscription_service = SubscriptionService(
            channel_username=config.channel_username,
            prompt_message=config.subscription_prompt,
            reminder_message=config.subscription_reminder,
            button_text=config.subscription_button,
        )
        self.audit_service = ChannelAuditService(
            user_service=self.user_service,
            subscription_service=self.subscription_service,
            channel_link=config.channel_link,
        )
        self.coordinator = AdminFlowCoordinator(
            guide_service=self.guide_service,
            admin_service=self.admin_service,
            sessions=self.sessions,
        )

        self.image_menu = ImageMenuCommand(self.admin_service, self.menu_media_service, self.sessions)
        self.check_channel = CheckChannelCommand(self.admin_service, self.audit_service, self.sessions)
        self.commands: list[BotCommand] = [
            StartCommand(self.user_service),
            GetGuidesCommand(
                guide_service=self.guide_service,
                user_service=self.user_service,
                menu_media_service=self.menu_media_service,
                subscription_service=self.subscription_service,
            ),
            AdminMenuCommand(self.admin_service),
            ShowGuidesCommand(self.admin_service, self.guide_service),
            ListUsersCommand(self.admin_service, self.user_service),
            AddGuideCommand(self.coordinator),
            DeleteGuideCommand(self.coordinator),
            ConfirmCommand(self.coordinator),
            CancelCommand(self.coordinator),
            self.image_menu,
            self.check_channel,
        ]

        if not config.admin_ids:
            LOGGER.warning("BOT_ADMIN_IDS is empty; admin commands will be refused for everyone.")

    def build_application(self) -> Application:
        """Construct the PTB application."""

        builder = ApplicationBuilder().token(self.config.token).post_init(self._post_init)

        limiter = self._build_rate_limiter()
        if limiter is not None:
            builder = builder.rate_limiter(limiter)

        application = builder.build()
        self.admin_service.attach_bot(application.bot)
        self._register_handlers(application)
        return application

    def _build_rate_limiter(self) -> Optional[AIORateLimiter]:
        """Return an ``AIORateLimiter`` instance when possible."""

        try:
            return AIORateLimiter()
        except RuntimeError as exc:  # pragma: no cover - depends on installation
            LOGGER.warning(
                "Failed to initialise the AIORateLimiter: %s. Running without a rate limiter.",
                exc,
            )
            return None

    async def _post_init(self, application: Application) -> None:
        me = await application.bot.get_me()
        LOGGER.info("Bot started as @%s.", me.username)

    # ------------------------------------------------------------------
    # Handler registration helpers

    def _register_handlers(self, application: Application) -> None:
        """Attach all command and message handlers to ``application``."""

        for command in self.commands:
            command.register(application)

        application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, self._handle_text))
        application.add_handler(MessageHandler(filters.Document.ALL, self._handle_document))
        application.add_handler(MessageHandler(filters.PHOTO | filters.VIDEO, self._handle_media))
        application.add_error_handler(self._handle_error)

    async def _handle_text(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if await offer_text(self.coordinator, update):
            return
        if await self.check_channel.handle_text(update, context):
            return
        LOGGER.debug("Ignoring text message in chat %s", update.effective_chat and update.effective_chat.id)

    async def _handle_document(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if await offer_document(self.coordinator, update):
            return
        LOGGER.debug("Ignoring document in chat %s", update.effective_chat and update.effective_chat.id)

    async def _handle_media(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await self.image_menu.handle_media(update, context)

    async def _handle_error(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        LOGGER.error("Unhandled error while processing update %s", update, exc_info=context.error)


__all__ = ["GuideTelegramBot"]
