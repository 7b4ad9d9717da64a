from __future__ import annotations

import logging
from typing import Any, Optional

from guide_bot.models import RegisteredUser, utc_now_iso
from guide_bot.storage import JsonFileStore

LOGGER = logging.getLogger(__name__)


class UserService:
    """Keeps the roster of everyone who has started the bot."""

    def __init__(self, store: JsonFileStore[list[Any]]) -> None:
        self.store = store

    @staticmethod
    def _find(records: list[Any], user_id: int) -> Optional[dict[str, Any]]:
        for record in records:
            if isinstance(record, dict) and record.get("id") == user_id:
                return record
        return None

    @staticmethod
    def _record_from_user(user: Any) -> dict[str, Any]:
        return RegisteredUser(
            user_id=user.id,
            username=getattr(user, "username", None),
            first_name=getattr(user, "first_name", None),
            last_name=getattr(user, "last_name", None),
            language_code=getattr(user, "language_code", None),
            registered_at=utc_now_iso(),
        ).to_record()

    async def register_user(self, user: Any | None) -> bool:
        """Add ``user`` to the roster; returns ``True`` when it was new."""

        if user is None or not getattr(user, "id", None):
            LOGGER.error("Attempted to register user without id.")
            return False

        def _register(records: list[Any]) -> bool:
            if self._find(records, user.id) is not None:
                return False
            records.append(self._record_from_user(user))
            return True

        return await self.store.update(_register)

    async def record_consent(self, user: Any) -> None:
        def _consent(records: list[Any]) -> None:
            record = self._find(records, user.id)
            if record is None:
                record = self._record_from_user(user)
                records.append(record)
            if not record.get("consentedAt"):
                record["consentedAt"] = utc_now_iso()

        await self.store.update(_consent)

    async def has_consented(self, user_id: int) -> bool:
        record = self._find(await self.store.read(), user_id)
        return bool(record and record.get("consentedAt"))

    async def list_users(self) -> list[RegisteredUser]:
        users: list[RegisteredUser] = []
        for record in await self.store.read():
            if not isinstance(record, dict):
                continue
            try:
                users.append(RegisteredUser.from_record(record))
            except (KeyError, TypeError, ValueError):
                LOGGER.warning("Skipping malformed user record: %r", record)
        return users


__all__ = ["UserService"]
