from __future__ import annotations

import logging

from telegram import Update
from telegram.constants import MessageLimit, ParseMode
from telegram.error import TelegramError
from telegram.ext import ContextTypes

from guide_bot import messages
from guide_bot.handlers.base import AdminCommand, conversation_id
from guide_bot.models import utc_now_iso
from guide_bot.services.admin import AdminService
from guide_bot.services.channel_audit import ChannelAuditService, extract_usernames
from guide_bot.services.guides import GuideService
from guide_bot.services.menu_media import MenuMediaService
from guide_bot.services.subscription import NO_PREVIEW
from guide_bot.services.users import UserService
from guide_bot.sessions import MenuMediaFlow, SessionStore, SubscriptionAudit
from guide_bot.storage import StorageError
from guide_bot.utils.formatting import chunk_lines, format_guide_listing, format_users

LOGGER = logging.getLogger(__name__)


class AdminMenuCommand(AdminCommand):
    command = "admin"

    async def execute(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await update.effective_message.reply_text(messages.ADMIN_HELP)


class ShowGuidesCommand(AdminCommand):
    """Every guide in the catalog, including ones without a file yet."""

    command = "show_guides"

    def __init__(self, admin_service: AdminService, guide_service: GuideService) -> None:
        super().__init__(admin_service)
        self.guide_service = guide_service

    async def execute(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        try:
            guides = await self.guide_service.list_all()
        except StorageError:
            LOGGER.exception("Failed to list guides for /show_guides")
            await message.reply_text(messages.GENERIC_FAILURE)
            return

        if not guides:
            await message.reply_text(messages.NO_GUIDES)
            return

        budget = MessageLimit.MAX_TEXT_LENGTH - len(messages.SHOW_GUIDES_TEMPLATE.format(listing=""))
        lines = format_guide_listing(guides).split("\n")
        try:
            for chunk in chunk_lines(lines, budget):
                await message.reply_text(
                    messages.SHOW_GUIDES_TEMPLATE.format(listing=chunk),
                    parse_mode=ParseMode.HTML,
                )
        except TelegramError as exc:
            LOGGER.error("Failed to send guide listing: %s", exc)
            await message.reply_text(messages.GENERIC_FAILURE)


class ListUsersCommand(AdminCommand):
    command = "users"

    def __init__(self, admin_service: AdminService, user_service: UserService) -> None:
        super().__init__(admin_service)
        self.user_service = user_service

    async def execute(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        try:
            users = await self.user_service.list_users()
        except StorageError:
            LOGGER.exception("Failed to list registered users.")
            await message.reply_text(messages.USERS_FAILED)
            return

        if not users:
            await message.reply_text(messages.USERS_EMPTY)
            return

        try:
            rows = [messages.USERS_HEADER, *format_users(users)]
            for chunk in chunk_lines(rows, MessageLimit.MAX_TEXT_LENGTH):
                await message.reply_text(chunk)
        except TelegramError as exc:
            LOGGER.error("Failed to send user roster: %s", exc)
            await message.reply_text(messages.USERS_FAILED)


class ImageMenuCommand(AdminCommand):
    """``/image_menu``: the admin's next photo or video becomes the menu banner."""

    command = "image_menu"

    def __init__(
        self,
        admin_service: AdminService,
        menu_media_service: MenuMediaService,
        sessions: SessionStore,
    ) -> None:
        super().__init__(admin_service)
        self.menu_media_service = menu_media_service
        self.sessions = sessions

    async def execute(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        chat_id = conversation_id(update)
        if chat_id is None:
            return
        session = self.sessions.get(chat_id)
        session.menu_media_flow = MenuMediaFlow(initiator_id=update.effective_user.id)
        self.sessions.set(chat_id, session)
        await update.effective_message.reply_text(messages.MENU_MEDIA_PROMPT)

    def _is_awaiting_media(self, update: Update) -> bool:
        chat_id = conversation_id(update)
        user = update.effective_user
        if chat_id is None or user is None:
            return False
        flow = self.sessions.get(chat_id).menu_media_flow
        return flow is not None and flow.initiator_id == user.id

    async def handle_media(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> bool:
        """Consume a photo or video when the sender is uploading menu media."""

        if not self._is_awaiting_media(update):
            return False

        message = update.effective_message
        if message.photo:
            kind, file_id = "photo", message.photo[-1].file_id
        elif message.video:
            kind, file_id = "video", message.video.file_id
        else:
            await message.reply_text(messages.MENU_MEDIA_MISSING_FILE)
            return True

        chat_id = conversation_id(update)
        try:
            await self.menu_media_service.update_menu_media(
                kind=kind,
                file_id=file_id,
                caption=message.caption,
                updated_by=update.effective_user.id,
            )
        except StorageError:
            LOGGER.exception("Failed to save menu media.")
            await message.reply_text(messages.MENU_MEDIA_FAILED)
        else:
            await message.reply_text(messages.MENU_MEDIA_SAVED)
        finally:
            session = self.sessions.get(chat_id)
            session.menu_media_flow = None
            self.sessions.set(chat_id, session)
        return True


class CheckChannelCommand(AdminCommand):
    """``/check_channel``: report channel membership for a list of usernames."""

    command = "check_channel"

    def __init__(
        self,
        admin_service: AdminService,
        audit_service: ChannelAuditService,
        sessions: SessionStore,
    ) -> None:
        super().__init__(admin_service)
        self.audit_service = audit_service
        self.sessions = sessions

    async def execute(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        chat_id = conversation_id(update)
        if chat_id is None:
            return
        if not self.audit_service.is_configured():
            await message.reply_text(messages.CHANNEL_AUDIT_NOT_CONFIGURED)
            return

        session = self.sessions.get(chat_id)
        session.subscription_audit = SubscriptionAudit(
            initiator_id=update.effective_user.id,
            requested_at=utc_now_iso(),
        )
        self.sessions.set(chat_id, session)
        await message.reply_text(
            messages.CHANNEL_AUDIT_PROMPT_TEMPLATE.format(channel=self.audit_service.channel_link)
        )

    async def handle_text(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> bool:
        """Consume the username list that follows ``/check_channel``."""

        chat_id = conversation_id(update)
        user = update.effective_user
        if chat_id is None or user is None:
            return False
        session = self.sessions.get(chat_id)
        audit = session.subscription_audit
        if audit is None or audit.initiator_id != user.id:
            return False

        session.subscription_audit = None
        self.sessions.set(chat_id, session)

        message = update.effective_message
        usernames = extract_usernames(message.text or "")
        if not usernames:
            await message.reply_text(messages.CHANNEL_AUDIT_NO_USERNAMES)
            return True

        await message.reply_text(messages.CHANNEL_AUDIT_IN_PROGRESS)
        try:
            report = await self.audit_service.build_report(context.bot, usernames)
        except StorageError:
            LOGGER.exception("Failed to build channel audit report.")
            await message.reply_text(messages.GENERIC_FAILURE)
            return True
        await message.reply_text(report, link_preview_options=NO_PREVIEW)
        return True


__all__ = [
    "AdminMenuCommand",
    "CheckChannelCommand",
    "ImageMenuCommand",
    "ListUsersCommand",
    "ShowGuidesCommand",
]
