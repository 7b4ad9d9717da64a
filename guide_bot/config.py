from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from guide_bot import messages


@dataclass(slots=True)
class BotConfig:
    """Configuration container for the guide bot."""

    token: str
    admin_ids: List[int] = field(default_factory=list)
    guides_path: Path = field(default=Path("data/guides.json"))
    users_path: Path = field(default=Path("data/users.json"))
    menu_media_path: Path = field(default=Path("data/menu_media.json"))
    channel_username: str = ""
    channel_link: str = ""
    subscription_prompt: str = messages.SUBSCRIPTION_PROMPT
    subscription_reminder: str = messages.SUBSCRIPTION_REMINDER
    subscription_button: str = messages.SUBSCRIPTION_BUTTON

    @classmethod
    def load(cls, env_path: str | os.PathLike[str] | None = ".env") -> "BotConfig":
        """Load configuration from environment variables."""
        if env_path is not None:
            load_dotenv(env_path)

        admin_ids = parse_admin_ids(os.getenv("BOT_ADMIN_IDS", ""))

        token = os.getenv("BOT_TOKEN")
        if not token:
            raise RuntimeError(
                "BOT_TOKEN is not defined. Please add it to your .env file before running the bot."
            )

        data_dir = Path(os.getenv("BOT_DATA_DIR", "data")).expanduser()

        def _path(key: str, filename: str) -> Path:
            override = os.getenv(key)
            if override:
                return Path(override).expanduser()
            return data_dir / filename

        channel_username = os.getenv("CHANNEL_USERNAME", "").strip()
        channel_link = os.getenv("CHANNEL_LINK", "").strip() or _default_channel_link(
            channel_username
        )

        return cls(
            token=token,
            admin_ids=admin_ids,
            guides_path=_path("GUIDES_STORAGE_PATH", "guides.json"),
            users_path=_path("USERS_STORAGE_PATH", "users.json"),
            menu_media_path=_path("MENU_MEDIA_STORAGE_PATH", "menu_media.json"),
            channel_username=channel_username,
            channel_link=channel_link,
            subscription_prompt=os.getenv("SUBSCRIPTION_PROMPT", messages.SUBSCRIPTION_PROMPT),
            subscription_reminder=os.getenv(
                "SUBSCRIPTION_REMINDER", messages.SUBSCRIPTION_REMINDER
            ),
            subscription_button=os.getenv("SUBSCRIPTION_BUTTON", messages.SUBSCRIPTION_BUTTON),
        )


def _default_channel_link(channel_username: str) -> str:
    if not channel_username:
        return ""
    return "t.me/" + channel_username.lstrip("@")


def parse_admin_ids(raw: Optional[str]) -> List[int]:
    """Split a comma separated id list, ignoring anything that is not a number."""

    if not raw:
        return []
    return [int(value) for chunk in raw.split(",") if (value := chunk.strip()).isdigit()]


__all__ = ["BotConfig", "parse_admin_ids"]
