from __future__ import annotations

import logging
from typing import Any, Optional

from guide_bot.models import MenuMedia, utc_now_iso
from guide_bot.storage import JsonFileStore, StorageError

LOGGER = logging.getLogger(__name__)


class MenuMediaService:
    """Banner photo or video shown above the guide menu."""

    def __init__(self, store: JsonFileStore[Any]) -> None:
        self.store = store

    async def get_menu_media(self) -> Optional[MenuMedia]:
        return MenuMedia.from_record(await self.store.read())

    async def update_menu_media(
        self,
        *,
        kind: str,
        file_id: str,
        caption: Optional[str] = None,
        updated_by: Optional[int] = None,
    ) -> MenuMedia:
        media = MenuMedia(
            kind=kind,
            file_id=file_id,
            caption=caption or None,
            updated_at=utc_now_iso(),
            updated_by=updated_by,
        )
        await self.store.write(media.to_record())
        LOGGER.info("Menu media replaced with %s by %s", kind, updated_by)
        return media

    async def send_menu_media(self, message: Any, *, reply_markup: Any = None) -> bool:
        """Reply to ``message`` with the stored media; ``False`` when nothing was sent."""

        try:
            media = await self.get_menu_media()
            if media is None:
                return False
            if media.kind == "video":
                await message.reply_video(media.file_id, caption=media.caption, reply_markup=reply_markup)
            else:
                await message.reply_photo(media.file_id, caption=media.caption, reply_markup=reply_markup)
            return True
        except StorageError:
            LOGGER.exception("Failed to load menu media.")
            return False
        except Exception as exc:  # pragma: no cover - network dependent
            LOGGER.warning("Failed to send menu media to user: %s", exc)
            return False


__all__ = ["MenuMediaService"]
