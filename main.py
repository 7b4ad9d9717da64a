"""Console entry point for the guide distribution bot."""

from __future__ import annotations

import asyncio
import logging
import sys

from telegram.error import InvalidToken, NetworkError, TimedOut

from guide_bot.bot import GuideTelegramBot
from guide_bot.config import BotConfig

LOGGER = logging.getLogger(__name__)


def main() -> None:  # pragma: no cover - thin wrapper
    if sys.platform.startswith("win"):
        # run_polling hangs on shutdown with the default proactor loop.
        try:  # pragma: no cover - specific to Windows runtime
            asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
        except AttributeError:
            pass

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("telegram.ext").setLevel(logging.WARNING)

    try:
        config = BotConfig.load()
    except RuntimeError as exc:
        LOGGER.error("%s", exc)
        raise SystemExit(1) from exc

    application = GuideTelegramBot(config).build_application()
    try:
        application.run_polling()
    except InvalidToken as exc:  # pragma: no cover - network dependent
        LOGGER.error("Telegram отклонил переданный токен. Проверьте значение BOT_TOKEN.")
        raise SystemExit(1) from exc
    except TimedOut as exc:  # pragma: no cover - network dependent
        LOGGER.error("Не удалось подключиться к Telegram: истекло время ожидания (%s).", exc)
        LOGGER.error("Проверьте интернет-соединение, настройки прокси или доступ к api.telegram.org.")
        raise SystemExit(1) from exc
    except NetworkError as exc:  # pragma: no cover - network dependent
        LOGGER.error("Сетевой сбой при обращении к Telegram: %s", exc)
        raise SystemExit(1) from exc


if __name__ == "__main__":  # pragma: no cover - module executable guard
    main()
