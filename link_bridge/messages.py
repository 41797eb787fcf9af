"""User-facing texts for notifications and callback pages."""

from html import escape

SUCCESS_PAGE = "<h2>Авторизация успешна. Можно вернуться в Telegram.</h2>"

TOKEN_ERROR = "Ошибка: не удалось получить access token от Discord."
PROFILE_ERROR = "Ошибка: не удалось получить данные Discord пользователя."
SHEET_ERROR = "Ошибка при обновлении таблицы. Попробуйте ещё раз позже или свяжитесь с администратором."


def _code(value: str, message_format: str) -> str:
    if message_format == "html":
        return f"<code>{escape(value)}</code>"
    return value


def success_message(discord_id: str, message_format: str = "html") -> str:
    """Confirmation sent after the Telegram id was written to the sheet."""
    return (
        f"✅ Успешно! Ваш Discord ID {_code(discord_id, message_format)} "
        "привязан к Telegram."
    )


def not_found_message(discord_id: str, message_format: str = "html") -> str:
    """Sent when no sheet row carries the Discord id."""
    return (
        f"❌ В базе не найден саппорт с Discord ID {_code(discord_id, message_format)}. "
        "Свяжитесь с администратором."
    )
