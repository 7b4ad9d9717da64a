from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _text(record: dict[str, Any], key: str) -> str:
    value = record.get(key)
    return str(value) if value is not None else ""


def _optional_text(record: dict[str, Any], key: str) -> Optional[str]:
    value = record.get(key)
    if value is None or value == "":
        return None
    return str(value)


@dataclass(slots=True)
class Guide:
    guide_id: str
    title: str
    file_id: str
    created_at: str = ""

    @property
    def is_available(self) -> bool:
        return bool(self.file_id)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Guide":
        return cls(
            guide_id=_text(record, "id"),
            title=_text(record, "title"),
            file_id=_text(record, "fileId"),
            created_at=_text(record, "createdAt"),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.guide_id,
            "title": self.title,
            "fileId": self.file_id,
            "createdAt": self.created_at,
        }


@dataclass(slots=True)
class RegisteredUser:
    user_id: int
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    language_code: Optional[str] = None
    registered_at: Optional[str] = None
    consented_at: Optional[str] = None

    @property
    def display_name(self) -> str:
        parts = [part for part in (self.first_name, self.last_name) if part]
        return " ".join(parts) if parts else "—"

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "RegisteredUser":
        return cls(
            user_id=int(record["id"]),
            username=_optional_text(record, "username"),
            first_name=_optional_text(record, "firstName"),
            last_name=_optional_text(record, "lastName"),
            language_code=_optional_text(record, "languageCode"),
            registered_at=_optional_text(record, "registeredAt"),
            consented_at=_optional_text(record, "consentedAt"),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.user_id,
            "username": self.username,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "languageCode": self.language_code,
            "registeredAt": self.registered_at,
            "consentedAt": self.consented_at,
        }


@dataclass(slots=True)
class MenuMedia:
    kind: str
    file_id: str
    caption: Optional[str] = None
    updated_at: Optional[str] = None
    updated_by: Optional[int] = None

    @classmethod
    def from_record(cls, record: Any) -> Optional["MenuMedia"]:
        if not isinstance(record, dict):
            return None
        kind = record.get("type")
        file_id = record.get("fileId")
        if kind not in {"photo", "video"} or not file_id:
            return None
        return cls(
            kind=str(kind),
            file_id=str(file_id),
            caption=_optional_text(record, "caption"),
            updated_at=_optional_text(record, "updatedAt"),
            updated_by=record.get("updatedBy"),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "fileId": self.file_id,
            "caption": self.caption,
            "updatedAt": self.updated_at,
            "updatedBy": self.updated_by,
        }


__all__ = ["Guide", "MenuMedia", "RegisteredUser", "utc_now_iso"]
