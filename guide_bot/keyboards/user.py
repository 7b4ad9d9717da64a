from __future__ import annotations

from collections.abc import Iterable

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from guide_bot import messages
from guide_bot.models import Guide

GUIDE_CALLBACK_PREFIX = "guide:"
CONSENT_CALLBACK_DATA = "consent:accept"


def guides_keyboard(guides: Iterable[Guide]) -> InlineKeyboardMarkup:
    buttons = [
        [InlineKeyboardButton(guide.title, callback_data=f"{GUIDE_CALLBACK_PREFIX}{guide.guide_id}")]
        for guide in guides
    ]
    return InlineKeyboardMarkup(buttons)


def consent_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        [[InlineKeyboardButton(messages.CONSENT_BUTTON, callback_data=CONSENT_CALLBACK_DATA)]]
    )


def subscription_keyboard(button_text: str, callback_data: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([[InlineKeyboardButton(button_text, callback_data=callback_data)]])


__all__ = [
    "CONSENT_CALLBACK_DATA",
    "GUIDE_CALLBACK_PREFIX",
    "consent_keyboard",
    "guides_keyboard",
    "subscription_keyboard",
]
