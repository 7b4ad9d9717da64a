from __future__ import annotations

WELCOME_MESSAGE = (
    "\U0001F3D7 Здравствуйте! Это бот с полезными гайдами о строительстве дома.\n\n"
    "Чтобы получить гайд, отправьте команду /get."
)

CONSENT_PROMPT = (
    "Прежде чем продолжить, подтвердите согласие на обработку ваших данных "
    "(ID и имени пользователя Telegram) для рассылки гайдов."
)
CONSENT_BUTTON = "✅ Согласен"
CONSENT_ACCEPTED = "Спасибо! Теперь вы можете получать гайды."

NO_GUIDES = (
    "Пока гайдов нет, но дух стройки жив! Уже завозим контент, ставим леса "
    "и натягиваем сетку полезных советов"
)
GUIDES_MENU_PROMPT = "Какой гайд вы бы хотели получить?"
GUIDE_UNAVAILABLE = "Гайд недоступен. Попробуйте позже."
GUIDE_SELECTION_INVALID = "Не удалось определить выбранный гайд. Попробуйте снова."
GENERIC_FAILURE = "Произошла ошибка. Попробуйте позже."

ADMIN_ONLY = "Эта команда доступна только администраторам."
GUIDE_ADDED = "Гайд успешно добавлен."
GUIDE_DELETED = "Гайд удалён."
NOTHING_TO_CONFIRM = "Нет действий, ожидающих подтверждения."
FLOW_CANCELLED = "Действие отменено."
COMMIT_FAILED = (
    "Не удалось сохранить изменения. Попробуйте ещё раз командой /confirm "
    "или отмените через /cancel."
)

ADD_TITLE_PROMPT = (
    "Введите название гайда.\n\nОтправьте /cancel, если хотите прекратить добавление."
)
ADD_TITLE_EMPTY = "Название не должно быть пустым. Попробуйте снова или используйте /cancel."
ADD_DOCUMENT_PROMPT = (
    "Отправьте PDF-файл гайда в качестве документа.\n\n"
    "Когда документ будет загружен, подтвердите действие командой /confirm "
    "или отмените через /cancel."
)
ADD_DOCUMENT_WRONG_TYPE = (
    "Поддерживаются только PDF-файлы. Загрузите корректный документ или отмените /cancel."
)
ADD_CONFIRMATION_TEMPLATE = (
    "Проверьте данные:\n"
    "Название: <b>{title}</b>\n"
    "Файл: <code>{file_name}</code>\n"
    "\n"
    "Подтвердить — /confirm\n"
    "Отменить — /cancel"
)

DELETE_LISTING_TEMPLATE = (
    "Текущий список гайдов:\n"
    "<pre>{listing}</pre>\n"
    "\n"
    "Отправьте ID гайда, который требуется удалить, или /cancel."
)
DELETE_ID_INVALID = "Некорректный идентификатор. Попробуйте снова или используйте /cancel."
DELETE_NOT_FOUND = "Гайд не найден. Проверьте ID и попробуйте ещё раз или отмените /cancel."
DELETE_CONFIRMATION_TEMPLATE = (
    "Подтвердите удаление гайда:\n"
    "ID: <code>{guide_id}</code>\n"
    "Название: <b>{title}</b>\n"
    "\n"
    "Подтвердить — /confirm\n"
    "Отменить — /cancel"
)
DELETE_ALREADY_REMOVED = "Гайд не найден. Возможно, он уже был удалён."
DELETE_NOTIFICATION_TEMPLATE = "Админ {actor} удалил гайд «{title}»."

ADMIN_HELP = "\n".join(
    [
        "Админские команды:",
        "/admin — список админских команд.",
        "/show_guides — показать список всех гайдов.",
        "/add — добавить новый гайд.",
        "/image_menu — загрузить медиа перед меню с гайдами.",
        "/delete — удалить гайд.",
        "/users — список зарегистрированных пользователей.",
        "/check_channel — проверить подписку пользователей на канал.",
        "/confirm — подтвердить текущее действие.",
        "/cancel — отменить текущее действие.",
    ]
)
SHOW_GUIDES_TEMPLATE = "Список гайдов:\n<pre>{listing}</pre>"

MENU_MEDIA_PROMPT = "\n".join(
    [
        "Пожалуйста, отправьте изображение или видео, которое будет отображаться перед меню с гайдами.",
        "Можно добавить подпись к медиасообщению — она сохранится вместе с файлом.",
        "Для отмены отправьте команду /cancel.",
    ]
)
MENU_MEDIA_SAVED = "Медиа успешно сохранено и будет показываться перед меню с гайдами."
MENU_MEDIA_FAILED = (
    "Не удалось сохранить медиафайл. Попробуйте позже или обратитесь к разработчику."
)
MENU_MEDIA_MISSING_FILE = "Не удалось получить файл. Попробуйте отправить его ещё раз."

USERS_EMPTY = "Пока ни один пользователь не зарегистрировался в боте."
USERS_HEADER = "Зарегистрированные пользователи:"
USERS_FAILED = "Не удалось получить список пользователей. Попробуйте позже."
USER_ROW_TEMPLATE = "{order}. ID {user_id} ({username}) — {name}; зарегистрирован: {registered}"

SUBSCRIPTION_PROMPT = (
    "Гайды доступны подписчикам нашего канала. Подпишитесь и нажмите кнопку ниже."
)
SUBSCRIPTION_REMINDER = (
    "Похоже, вы ещё не подписаны на канал. Подпишитесь и нажмите кнопку ниже ещё раз."
)
SUBSCRIPTION_BUTTON = "Я подписался"
SUBSCRIPTION_REQUIRED_ALERT = "Подписка на канал необходима для доступа к гайдам."
SUBSCRIPTION_CHECK_FAILED = "Не удалось проверить подписку. Пожалуйста, попробуйте еще раз позже."
SUBSCRIPTION_UNKNOWN_USER = "Не удалось определить пользователя для проверки подписки."

CHANNEL_AUDIT_PROMPT_TEMPLATE = "\n".join(
    [
        "Пришли список никнеймов, каждый с новой строки. Пример:",
        "@nickname1",
        "@nickname2",
        "@nickname3",
        "",
        "После получения списка я проверю, подписан ли каждый из них на канал {channel}.",
    ]
)
CHANNEL_AUDIT_NOT_CONFIGURED = "Канал для проверки подписки не настроен."
CHANNEL_AUDIT_NO_USERNAMES = (
    "Не удалось распознать ни одного никнейма. Пожалуйста, вызови /check_channel ещё раз "
    "и пришли список, где каждый ник начинается с символа @ и размещён на отдельной строке."
)
CHANNEL_AUDIT_IN_PROGRESS = "Проверяю подписку, это может занять несколько секунд…"
CHANNEL_AUDIT_HEADER_TEMPLATE = "Результаты проверки подписки на канал {channel}:"
CHANNEL_AUDIT_SUBSCRIBED = "@{username} — подписан ✅"
CHANNEL_AUDIT_NOT_SUBSCRIBED = "@{username} — не подписан ❌"
CHANNEL_AUDIT_NOT_REGISTERED = "@{username} — пользователь не найден среди зарегистрированных в боте."
CHANNEL_AUDIT_ERROR = "@{username} — ошибка проверки, см. логи"
CHANNEL_AUDIT_EMPTY = "Не удалось собрать результаты проверки."
