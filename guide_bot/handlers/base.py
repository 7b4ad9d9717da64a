from __future__ import annotations

import abc
from collections.abc import Iterable
from typing import Any, Optional

from telegram import Update
from telegram.ext import Application, CommandHandler, ContextTypes

from guide_bot.admin_flow import Actor, IncomingDocument, Reply
from guide_bot.services.admin import AdminService


def actor_from_update(update: Update) -> Optional[Actor]:
    user = update.effective_user
    if user is None:
        return None
    return Actor(id=user.id, username=user.username)


def conversation_id(update: Update) -> Optional[int]:
    chat = update.effective_chat
    return chat.id if chat is not None else None


def document_from_message(message: Any) -> Optional[IncomingDocument]:
    document = getattr(message, "document", None)
    if document is None:
        return None
    return IncomingDocument(
        file_id=document.file_id,
        file_name=document.file_name,
        mime_type=document.mime_type,
    )


async def send_replies(message: Any, replies: Iterable[Reply]) -> None:
    if message is None:
        return
    for reply in replies:
        await message.reply_text(reply.text, parse_mode=reply.parse_mode)


class BotCommand(abc.ABC):
    """A slash command that knows how to attach itself to an application."""

    command: str

    def register(self, application: Application) -> None:
        application.add_handler(CommandHandler(self.command, self.execute))

    @abc.abstractmethod
    async def execute(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        ...


class AdminCommand(BotCommand):
    """Command that only runs for configured administrators."""

    def __init__(self, admin_service: AdminService) -> None:
        self.admin_service = admin_service

    def register(self, application: Application) -> None:
        application.add_handler(CommandHandler(self.command, self._guarded))

    async def _guarded(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not await self.admin_service.ensure_admin(update):
            return
        await self.execute(update, context)


__all__ = [
    "AdminCommand",
    "BotCommand",
    "actor_from_update",
    "conversation_id",
    "document_from_message",
    "send_replies",
]
