from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Protocol

if TYPE_CHECKING:
    from guide_bot.admin_flow import FlowState


@dataclass(slots=True)
class MenuMediaFlow:
    initiator_id: int


@dataclass(slots=True)
class SubscriptionAudit:
    initiator_id: int
    requested_at: str


@dataclass(slots=True)
class Session:
    """Per-conversation state; every field is optional and independent."""

    admin_flow: Optional["FlowState"] = None
    menu_media_flow: Optional[MenuMediaFlow] = None
    subscription_audit: Optional[SubscriptionAudit] = None


class SessionStore(Protocol):
    def get(self, conversation_id: int) -> Session: ...

    def set(self, conversation_id: int, session: Session) -> None: ...


class InMemorySessionStore:
    """Sessions keyed by chat id, kept for the lifetime of the process."""

    def __init__(self) -> None:
        self._sessions: dict[int, Session] = {}

    def get(self, conversation_id: int) -> Session:
        session = self._sessions.get(conversation_id)
        if session is None:
            return Session()
        return session

    def set(self, conversation_id: int, session: Session) -> None:
        self._sessions[conversation_id] = session


__all__ = ["InMemorySessionStore", "MenuMediaFlow", "Session", "SessionStore", "SubscriptionAudit"]
