from __future__ import annotations

import abc

from telegram import Update
from telegram.ext import ContextTypes

from guide_bot.admin_flow import Actor, AdminFlowCoordinator, FlowOutcome, Reply
from guide_bot.handlers.base import (
    BotCommand,
    actor_from_update,
    conversation_id,
    document_from_message,
    send_replies,
)


class FlowCommand(BotCommand):
    """Command forwarded to the coordinator, which does its own admin check."""

    def __init__(self, coordinator: AdminFlowCoordinator) -> None:
        self.coordinator = coordinator

    async def execute(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        actor = actor_from_update(update)
        chat_id = conversation_id(update)
        if actor is None or chat_id is None:
            return
        replies = await self.run(chat_id, actor)
        await send_replies(update.effective_message, replies)

    @abc.abstractmethod
    async def run(self, chat_id: int, actor: Actor) -> list[Reply]:
        ...


class AddGuideCommand(FlowCommand):
    command = "add"

    async def run(self, chat_id: int, actor: Actor) -> list[Reply]:
        return await self.coordinator.start_add_flow(chat_id, actor)


class DeleteGuideCommand(FlowCommand):
    command = "delete"

    async def run(self, chat_id: int, actor: Actor) -> list[Reply]:
        return await self.coordinator.start_delete_flow(chat_id, actor)


class ConfirmCommand(FlowCommand):
    command = "confirm"

    async def run(self, chat_id: int, actor: Actor) -> list[Reply]:
        return await self.coordinator.confirm(chat_id, actor)


class CancelCommand(FlowCommand):
    command = "cancel"

    async def run(self, chat_id: int, actor: Actor) -> list[Reply]:
        return await self.coordinator.cancel(chat_id, actor)


async def offer_text(coordinator: AdminFlowCoordinator, update: Update) -> bool:
    """Let the coordinator consume a text message; ``True`` when it did."""

    actor = actor_from_update(update)
    chat_id = conversation_id(update)
    if actor is None or chat_id is None:
        return False
    message = update.effective_message
    outcome = await coordinator.handle_text(chat_id, actor, message.text if message else None)
    return await _deliver(update, outcome)


async def offer_document(coordinator: AdminFlowCoordinator, update: Update) -> bool:
    actor = actor_from_update(update)
    chat_id = conversation_id(update)
    if actor is None or chat_id is None:
        return False
    document = document_from_message(update.effective_message)
    outcome = await coordinator.handle_document(chat_id, actor, document)
    return await _deliver(update, outcome)


async def _deliver(update: Update, outcome: FlowOutcome) -> bool:
    if outcome.consumed:
        await send_replies(update.effective_message, outcome.replies)
    return outcome.consumed


__all__ = [
    "AddGuideCommand",
    "CancelCommand",
    "ConfirmCommand",
    "DeleteGuideCommand",
    "offer_document",
    "offer_text",
]
