"""Multi-step admin flows for adding and deleting guides.

Each conversation holds at most one :class:`FlowState` in its session.  The
coordinator never talks to Telegram directly: it receives the sender as an
:class:`Actor`, the conversation id and the message content, and returns the
:class:`Reply` objects the transport layer should send.  Only the admin who
started a flow can advance, confirm or cancel it; messages from anyone else
are left for the regular handlers.

Add:    AWAITING_TITLE -> AWAITING_DOCUMENT -> AWAITING_CONFIRMATION -> commit
Delete: AWAITING_ID -> AWAITING_CONFIRMATION -> commit
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from telegram.constants import ParseMode

from guide_bot import messages
from guide_bot.services.admin import AdminService
from guide_bot.services.guides import GuideService
from guide_bot.sessions import SessionStore
from guide_bot.storage import StorageError
from guide_bot.utils.formatting import describe_actor, escape_html, format_guide_listing

LOGGER = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
PDF_EXTENSION = ".pdf"


class FlowMode(str, Enum):
    ADD = "add"
    DELETE = "delete"


class FlowStep(str, Enum):
    AWAITING_TITLE = "awaiting_title"
    AWAITING_DOCUMENT = "awaiting_document"
    AWAITING_ID = "awaiting_id"
    AWAITING_CONFIRMATION = "awaiting_confirmation"


@dataclass(slots=True)
class AddPayload:
    title: Optional[str] = None
    file_id: Optional[str] = None
    file_name: Optional[str] = None


@dataclass(slots=True)
class DeletePayload:
    guide_id: Optional[str] = None
    guide_title: Optional[str] = None


@dataclass(slots=True)
class FlowState:
    initiator_id: int
    mode: FlowMode
    step: FlowStep
    payload: Union[AddPayload, DeletePayload]

    @classmethod
    def add(cls, initiator_id: int) -> "FlowState":
        return cls(initiator_id, FlowMode.ADD, FlowStep.AWAITING_TITLE, AddPayload())

    @classmethod
    def delete(cls, initiator_id: int) -> "FlowState":
        return cls(initiator_id, FlowMode.DELETE, FlowStep.AWAITING_ID, DeletePayload())


@dataclass(frozen=True, slots=True)
class Actor:
    id: int
    username: Optional[str] = None


@dataclass(frozen=True, slots=True)
class IncomingDocument:
    file_id: str
    file_name: Optional[str] = None
    mime_type: Optional[str] = None

    @property
    def is_pdf(self) -> bool:
        if self.mime_type == PDF_MIME_TYPE:
            return True
        return bool(self.file_name) and self.file_name.lower().endswith(PDF_EXTENSION)


@dataclass(frozen=True, slots=True)
class Reply:
    text: str
    parse_mode: Optional[str] = None


@dataclass(slots=True)
class FlowOutcome:
    """Result of offering a message to the coordinator."""

    consumed: bool
    replies: list[Reply] = field(default_factory=list)

    @classmethod
    def passed(cls) -> "FlowOutcome":
        return cls(consumed=False)

    @classmethod
    def handled(cls, *replies: Reply) -> "FlowOutcome":
        return cls(consumed=True, replies=list(replies))


class AdminFlowCoordinator:
    def __init__(
        self,
        *,
        guide_service: GuideService,
        admin_service: AdminService,
        sessions: SessionStore,
    ) -> None:
        self.guide_service = guide_service
        self.admin_service = admin_service
        self.sessions = sessions

    # ------------------------------------------------------------------
    # Session helpers

    def get_flow(self, conversation_id: int, actor: Actor) -> Optional[FlowState]:
        """Return the conversation's flow only when ``actor`` started it."""

        flow = self.sessions.get(conversation_id).admin_flow
        if flow is None or not actor.id or flow.initiator_id != actor.id:
            return None
        return flow

    def _store_flow(self, conversation_id: int, flow: Optional[FlowState]) -> None:
        session = self.sessions.get(conversation_id)
        session.admin_flow = flow
        self.sessions.set(conversation_id, session)

    def _admin_only(self) -> Reply:
        return Reply(self.admin_service.admin_only_message)

    # ------------------------------------------------------------------
    # Entry points

    async def start_add_flow(self, conversation_id: int, actor: Actor) -> list[Reply]:
        if not self.admin_service.is_admin(actor.id):
            return [self._admin_only()]
        self._store_flow(conversation_id, FlowState.add(actor.id))
        return [Reply(messages.ADD_TITLE_PROMPT, ParseMode.HTML)]

    async def start_delete_flow(self, conversation_id: int, actor: Actor) -> list[Reply]:
        if not self.admin_service.is_admin(actor.id):
            return [self._admin_only()]
        try:
            guides = await self.guide_service.list_all()
        except StorageError:
            LOGGER.exception("Unable to list guides for delete flow started by %s", actor.id)
            return [Reply(messages.GENERIC_FAILURE)]

        if not guides:
            return [Reply(messages.NO_GUIDES)]

        self._store_flow(conversation_id, FlowState.delete(actor.id))
        listing = format_guide_listing(guides)
        return [Reply(messages.DELETE_LISTING_TEMPLATE.format(listing=listing), ParseMode.HTML)]

    # ------------------------------------------------------------------
    # Inbound messages

    async def handle_text(self, conversation_id: int, actor: Actor, text: Optional[str]) -> FlowOutcome:
        flow = self.get_flow(conversation_id, actor)
        if flow is None:
            return FlowOutcome.passed()
        if not self.admin_service.is_admin(actor.id):
            return FlowOutcome.handled(self._admin_only())
        if text is None or text.startswith("/"):
            return FlowOutcome.passed()

        if flow.mode is FlowMode.ADD and flow.step is FlowStep.AWAITING_TITLE:
            return FlowOutcome.handled(self._process_add_title(conversation_id, flow, text))
        if flow.mode is FlowMode.ADD and flow.step is FlowStep.AWAITING_DOCUMENT:
            return FlowOutcome.handled(Reply(messages.ADD_DOCUMENT_PROMPT))
        if flow.mode is FlowMode.DELETE and flow.step is FlowStep.AWAITING_ID:
            reply = await self._process_delete_id(conversation_id, flow, text)
            return FlowOutcome.handled(reply)
        return FlowOutcome.passed()

    async def handle_document(
        self, conversation_id: int, actor: Actor, document: Optional[IncomingDocument]
    ) -> FlowOutcome:
        flow = self.get_flow(conversation_id, actor)
        if flow is None:
            return FlowOutcome.passed()
        if not self.admin_service.is_admin(actor.id):
            return FlowOutcome.handled(self._admin_only())

        if flow.mode is FlowMode.ADD and flow.step is FlowStep.AWAITING_DOCUMENT:
            return FlowOutcome.handled(self._process_add_document(conversation_id, flow, document))
        return FlowOutcome.passed()

    def _process_add_title(self, conversation_id: int, flow: FlowState, text: str) -> Reply:
        title = text.strip()
        if not title:
            return Reply(messages.ADD_TITLE_EMPTY)

        assert isinstance(flow.payload, AddPayload)
        flow.payload.title = title
        flow.step = FlowStep.AWAITING_DOCUMENT
        self._store_flow(conversation_id, flow)
        return Reply(messages.ADD_DOCUMENT_PROMPT)

    def _process_add_document(
        self, conversation_id: int, flow: FlowState, document: Optional[IncomingDocument]
    ) -> Reply:
        if document is None or not document.file_id or not document.is_pdf:
            return Reply(messages.ADD_DOCUMENT_WRONG_TYPE)

        assert isinstance(flow.payload, AddPayload)
        flow.payload.file_id = document.file_id
        flow.payload.file_name = document.file_name
        flow.step = FlowStep.AWAITING_CONFIRMATION
        self._store_flow(conversation_id, flow)
        return Reply(
            messages.ADD_CONFIRMATION_TEMPLATE.format(
                title=escape_html(flow.payload.title or ""),
                file_name=escape_html(document.file_name or "PDF"),
            ),
            ParseMode.HTML,
        )

    async def _process_delete_id(self, conversation_id: int, flow: FlowState, text: str) -> Reply:
        guide_id = text.strip()
        if not guide_id:
            return Reply(messages.DELETE_ID_INVALID)

        try:
            guide = await self.guide_service.get_by_id(guide_id)
        except StorageError:
            LOGGER.exception("Unable to look up guide %r for delete flow", guide_id)
            return Reply(messages.GENERIC_FAILURE)
        if guide is None:
            return Reply(messages.DELETE_NOT_FOUND)

        assert isinstance(flow.payload, DeletePayload)
        flow.payload.guide_id = guide.guide_id
        flow.payload.guide_title = guide.title
        flow.step = FlowStep.AWAITING_CONFIRMATION
        self._store_flow(conversation_id, flow)
        return Reply(
            messages.DELETE_CONFIRMATION_TEMPLATE.format(
                guide_id=escape_html(guide.guide_id),
                title=escape_html(guide.title),
            ),
            ParseMode.HTML,
        )

    # ------------------------------------------------------------------
    # Confirm / cancel

    async def confirm(self, conversation_id: int, actor: Actor) -> list[Reply]:
        if not self.admin_service.is_admin(actor.id):
            return [self._admin_only()]

        flow = self.get_flow(conversation_id, actor)
        if flow is None or flow.step is not FlowStep.AWAITING_CONFIRMATION:
            return [Reply(messages.NOTHING_TO_CONFIRM)]

        try:
            if flow.mode is FlowMode.ADD:
                return await self._commit_add(conversation_id, flow)
            return await self._commit_delete(conversation_id, flow, actor)
        except StorageError:
            # The flow stays in the session so /confirm can be retried.
            LOGGER.exception(
                "Failed to commit %s flow for admin %s", flow.mode.value, flow.initiator_id
            )
            return [Reply(messages.COMMIT_FAILED)]

    async def _commit_add(self, conversation_id: int, flow: FlowState) -> list[Reply]:
        payload = flow.payload
        assert isinstance(payload, AddPayload)
        if not payload.title or not payload.file_id:
            return [Reply(messages.NOTHING_TO_CONFIRM)]

        await self.guide_service.create(payload.title, payload.file_id)
        self._store_flow(conversation_id, None)
        return [Reply(messages.GUIDE_ADDED)]

    async def _commit_delete(self, conversation_id: int, flow: FlowState, actor: Actor) -> list[Reply]:
        payload = flow.payload
        assert isinstance(payload, DeletePayload)
        if not payload.guide_id:
            return [Reply(messages.NOTHING_TO_CONFIRM)]

        removed = await self.guide_service.delete_by_id(payload.guide_id)
        if removed is None:
            self._store_flow(conversation_id, None)
            return [Reply(messages.DELETE_ALREADY_REMOVED)]

        notification = messages.DELETE_NOTIFICATION_TEMPLATE.format(
            actor=escape_html(describe_actor(actor.id, actor.username)),
            title=escape_html(removed.title),
        )
        await self.admin_service.notify_admins(notification)

        self._store_flow(conversation_id, None)
        return [Reply(messages.GUIDE_DELETED)]

    async def cancel(self, conversation_id: int, actor: Actor) -> list[Reply]:
        """Drop whatever the sender has pending in this conversation."""

        if not self.admin_service.is_admin(actor.id):
            return [self._admin_only()]

        session = self.sessions.get(conversation_id)
        if self.get_flow(conversation_id, actor) is not None:
            session.admin_flow = None
        elif session.menu_media_flow and session.menu_media_flow.initiator_id == actor.id:
            session.menu_media_flow = None
        elif session.subscription_audit and session.subscription_audit.initiator_id == actor.id:
            session.subscription_audit = None
        else:
            return [Reply(messages.NOTHING_TO_CONFIRM)]

        self.sessions.set(conversation_id, session)
        return [Reply(messages.FLOW_CANCELLED)]


__all__ = [
    "Actor",
    "AddPayload",
    "AdminFlowCoordinator",
    "DeletePayload",
    "FlowMode",
    "FlowOutcome",
    "FlowState",
    "FlowStep",
    "IncomingDocument",
    "Reply",
]
