from __future__ import annotations

import logging
from typing import Any

from telegram import Update
from telegram.error import TelegramError
from telegram.ext import Application, CallbackQueryHandler, ContextTypes

from guide_bot import messages
from guide_bot.handlers.base import BotCommand
from guide_bot.keyboards.user import (
    CONSENT_CALLBACK_DATA,
    GUIDE_CALLBACK_PREFIX,
    consent_keyboard,
    guides_keyboard,
)
from guide_bot.services.guides import GuideService
from guide_bot.services.menu_media import MenuMediaService
from guide_bot.services.subscription import SubscriptionService
from guide_bot.services.users import UserService
from guide_bot.storage import StorageError

LOGGER = logging.getLogger(__name__)


class StartCommand(BotCommand):
    command = "start"

    def __init__(self, user_service: UserService) -> None:
        self.user_service = user_service

    async def execute(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Register the sender and greet them, asking for consent once."""

        message = update.effective_message
        user = update.effective_user
        if message is None or user is None:
            return

        consented = False
        try:
            if await self.user_service.register_user(user):
                LOGGER.info("Registered new user %s", user.id)
            consented = await self.user_service.has_consented(user.id)
        except StorageError:
            LOGGER.exception("Failed to register user %s", user.id)

        await message.reply_text(messages.WELCOME_MESSAGE)
        if not consented:
            await message.reply_text(messages.CONSENT_PROMPT, reply_markup=consent_keyboard())


class GetGuidesCommand(BotCommand):
    """``/get`` and the callbacks that lead to a guide being sent."""

    command = "get"

    def __init__(
        self,
        *,
        guide_service: GuideService,
        user_service: UserService,
        menu_media_service: MenuMediaService,
        subscription_service: SubscriptionService,
    ) -> None:
        self.guide_service = guide_service
        self.user_service = user_service
        self.menu_media_service = menu_media_service
        self.subscription_service = subscription_service

    def register(self, application: Application) -> None:
        super().register(application)
        application.add_handler(
            CallbackQueryHandler(self.handle_guide_selection, pattern=rf"^{GUIDE_CALLBACK_PREFIX}(.+)$")
        )
        application.add_handler(
            CallbackQueryHandler(self.handle_consent, pattern=rf"^{CONSENT_CALLBACK_DATA}$")
        )
        application.add_handler(
            CallbackQueryHandler(
                self.handle_subscription_check,
                pattern=rf"^{SubscriptionService.CALLBACK_DATA}$",
            )
        )

    async def execute(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        user = update.effective_user
        if message is None or user is None:
            return

        try:
            if not await self.user_service.has_consented(user.id):
                await message.reply_text(messages.CONSENT_PROMPT, reply_markup=consent_keyboard())
                return
        except StorageError:
            LOGGER.exception("Unable to read consent of user %s", user.id)
            await message.reply_text(messages.GENERIC_FAILURE)
            return

        if not await self.subscription_service.require_subscription(update, context.bot, reminder=False):
            return

        await self.send_guides_menu(message)

    async def send_guides_menu(self, message: Any) -> None:
        try:
            guides = await self.guide_service.list_available()
        except StorageError:
            LOGGER.exception("Unable to provide guides for /get command.")
            await message.reply_text(messages.NO_GUIDES)
            return

        if not guides:
            await message.reply_text(messages.NO_GUIDES)
            return

        keyboard = guides_keyboard(guides)
        if not await self.menu_media_service.send_menu_media(message, reply_markup=keyboard):
            await message.reply_text(messages.GUIDES_MENU_PROMPT, reply_markup=keyboard)

    async def handle_guide_selection(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        query = update.callback_query
        if query is None:
            return

        try:
            if not await self.subscription_service.require_subscription(update, context.bot):
                await query.answer(messages.SUBSCRIPTION_REQUIRED_ALERT, show_alert=True)
                return

            match = context.match
            guide_id = match.group(1) if match else None
            if not guide_id:
                await query.answer(messages.GUIDE_SELECTION_INVALID, show_alert=True)
                return

            guide = await self.guide_service.get_by_id(guide_id, available_only=True)
            if guide is None:
                await query.answer(messages.GUIDE_UNAVAILABLE, show_alert=True)
                return

            await query.answer()
            await update.effective_message.reply_document(guide.file_id, caption=guide.title)
        except StorageError:
            LOGGER.exception("Failed to send guide to user.")
            await query.answer(messages.GENERIC_FAILURE, show_alert=True)
        except TelegramError as exc:
            # the callback may already be answered; report in the chat
            LOGGER.error(
                "Failed to deliver guide to user %s: %s",
                getattr(update.effective_user, "id", None),
                exc,
            )
            await update.effective_message.reply_text(messages.GENERIC_FAILURE)

    async def handle_consent(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        query = update.callback_query
        user = update.effective_user
        if query is None or user is None:
            return
        await query.answer()

        try:
            await self.user_service.record_consent(user)
        except StorageError:
            LOGGER.exception("Failed to record consent of user %s", user.id)
            await update.effective_message.reply_text(messages.GENERIC_FAILURE)
            return

        await update.effective_message.reply_text(messages.CONSENT_ACCEPTED)
        await self.execute(update, context)

    async def handle_subscription_check(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        query = update.callback_query
        if query is None:
            return
        await query.answer()
        if await self.subscription_service.require_subscription(update, context.bot):
            await self.send_guides_menu(update.effective_message)


__all__ = ["GetGuidesCommand", "StartCommand"]
