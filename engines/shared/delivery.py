"""
Отправка ответов модели в Telegram.

render() → split_rendered() → send_message по частям.
Если Telegram не принял разметку (TelegramBadRequest),
часть отправляется ещё раз обычным текстом.
"""

import html
import re
from typing import Optional

from aiogram import Bot
from aiogram.exceptions import TelegramBadRequest

from config import get_logger, TELEGRAM_MESSAGE_LIMIT, TELEGRAM_CAPTION_LIMIT
from config.features import flags
from core.markup import Dialect, render, split_rendered, escape_html, escape_markdown

logger = get_logger(__name__)

_HTML_TAG_RE = re.compile(r"</?[a-z]+[^<>]*>")
_MD_ESCAPE_RE = re.compile(r"\\(.)")


def current_dialect() -> Dialect:
    """Диалект из флага render.dialect (по умолчанию HTML)"""
    value = str(flags.get("render.dialect", Dialect.HTML.value)).lower()
    try:
        return Dialect(value)
    except ValueError:
        logger.warning(f"Unknown render.dialect '{value}', using html")
        return Dialect.HTML


def bold(text: str, dialect: Dialect) -> str:
    """Жирный заголовок в разметке диалекта"""
    if dialect is Dialect.HTML:
        return f"<b>{escape_html(text)}</b>"
    return f"*{escape_markdown(text)}*"


def to_plain(chunk: str, dialect: Dialect) -> str:
    """Убирает разметку из отрендеренной части"""
    if dialect is Dialect.HTML:
        return html.unescape(_HTML_TAG_RE.sub("", chunk))
    return _MD_ESCAPE_RE.sub(r"\1", chunk)


async def send_chunk(bot: Bot, chat_id: int, chunk: str, dialect: Dialect, **kwargs) -> None:
    """Отправляет одну часть; при отказе Telegram — обычным текстом"""
    try:
        await bot.send_message(chat_id, chunk, parse_mode=dialect.parse_mode, **kwargs)
    except TelegramBadRequest as e:
        logger.warning(f"Telegram rejected {dialect.parse_mode} markup for {chat_id}: {e}. Resending as plain text")
        await bot.send_message(chat_id, to_plain(chunk, dialect), parse_mode=None, **kwargs)


async def send_rendered(
    bot: Bot,
    chat_id: int,
    raw: str,
    dialect: Optional[Dialect] = None,
    prefix: str = "",
) -> int:
    """
    Рендерит ответ модели и отправляет его частями.

    Args:
        bot: Бот
        chat_id: ID чата
        raw: Текст от модели
        dialect: Диалект (None — из feature flags)
        prefix: Уже отрендеренный заголовок перед текстом

    Returns:
        Количество отправленных сообщений
    """
    dialect = dialect or current_dialect()
    text = prefix + render(raw, dialect)
    chunks = split_rendered(text, dialect, TELEGRAM_MESSAGE_LIMIT)

    for chunk in chunks:
        await send_chunk(bot, chat_id, chunk, dialect)
    return len(chunks)


async def send_card_photo(bot: Bot, chat_id: int, url: str, caption: str) -> bool:
    """
    Отправляет картинку карты.

    Ошибка отправки не прерывает гадание: толкование всё равно
    придёт текстом.

    Returns:
        True, если картинка отправлена
    """
    try:
        await bot.send_photo(chat_id, url, caption=caption[:TELEGRAM_CAPTION_LIMIT])
        return True
    except TelegramBadRequest as e:
        logger.warning(f"Card image not sent to {chat_id} ({url}): {e}")
        return False
