from __future__ import annotations

import logging
import random
from typing import Any, Optional

from guide_bot.models import Guide, utc_now_iso
from guide_bot.storage import JsonFileStore

LOGGER = logging.getLogger(__name__)


class GuideService:
    """CRUD over the guide catalog stored as a JSON list."""

    ID_PREFIX = "guide"

    def __init__(self, store: JsonFileStore[list[Any]]) -> None:
        self.store = store

    @staticmethod
    def _parse(records: list[Any]) -> list[Guide]:
        guides: list[Guide] = []
        for record in records:
            if not isinstance(record, dict) or not record.get("id"):
                continue
            guides.append(Guide.from_record(record))
        return guides

    def _generate_id(self, existing: set[str]) -> str:
        while True:
            candidate = f"{self.ID_PREFIX}-{random.randint(100000, 999999)}"
            if candidate not in existing:
                return candidate

    async def list_all(self) -> list[Guide]:
        return self._parse(await self.store.read())

    async def list_available(self) -> list[Guide]:
        """Guides that can be sent right now, i.e. have a file attached."""
        return [guide for guide in await self.list_all() if guide.is_available]

    async def get_by_id(self, guide_id: str, *, available_only: bool = False) -> Optional[Guide]:
        guides = await (self.list_available() if available_only else self.list_all())
        for guide in guides:
            if guide.guide_id == guide_id:
                return guide
        return None

    async def create(self, title: str, file_id: str) -> Guide:
        trimmed = title.strip()
        if not trimmed:
            raise ValueError("Guide title must not be empty")

        def _append(records: list[Any]) -> Guide:
            existing = {
                str(record.get("id"))
                for record in records
                if isinstance(record, dict) and record.get("id")
            }
            guide = Guide(
                guide_id=self._generate_id(existing),
                title=trimmed,
                file_id=file_id,
                created_at=utc_now_iso(),
            )
            records.append(guide.to_record())
            return guide

        guide = await self.store.update(_append)
        LOGGER.info("Guide %s (%s) added to the catalog", guide.guide_id, guide.title)
        return guide

    async def delete_by_id(self, guide_id: str) -> Optional[Guide]:
        def _remove(records: list[Any]) -> Optional[Guide]:
            for index, record in enumerate(records):
                if isinstance(record, dict) and str(record.get("id")) == guide_id:
                    return Guide.from_record(records.pop(index))
            return None

        removed = await self.store.update(_remove)
        if removed is not None:
            LOGGER.info("Guide %s (%s) removed from the catalog", removed.guide_id, removed.title)
        return removed


__all__ = ["GuideService"]
