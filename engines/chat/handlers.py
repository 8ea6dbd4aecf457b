"""
Обработчики Telegram для обычного диалога с моделью.

Содержит:
- /start, /help
- /clear, /history - история диалога
- Текст → системный промпт + история + вопрос → модель → ответ
"""

from aiogram import Bot, Router, F
from aiogram.enums import ChatAction
from aiogram.filters import Command, CommandStart
from aiogram.types import Message

from clients import llm, BackendError
from config import get_logger, SYSTEM_PROMPT
from core.history import HistoryStore, Role
from core.markup import Dialect, split_rendered, strip_reasoning
from core.models import ModelSelector
from engines.shared.delivery import bold, send_chunk, send_rendered
from locales import t, detect_language

logger = get_logger(__name__)

# Создаём роутер для диалога
chat_router = Router(name="chat")


def build_messages(history: HistoryStore, user_id: int, text: str) -> list[dict]:
    """Системный промпт + история + новая реплика, именно в таком порядке"""
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        *history.messages(user_id),
        {"role": "user", "content": text},
    ]


# ==================== КОМАНДЫ ====================

@chat_router.message(CommandStart())
async def cmd_start(message: Message):
    lang = detect_language(message.from_user.language_code)
    await message.answer(t("start.welcome", lang))


@chat_router.message(Command("help"))
async def cmd_help(message: Message, history: HistoryStore):
    lang = detect_language(message.from_user.language_code)
    await message.answer(t("help.text", lang, pairs=history.max_pairs))


@chat_router.message(Command("clear"))
async def cmd_clear(message: Message, history: HistoryStore):
    """Команда /clear - очистка истории"""
    lang = detect_language(message.from_user.language_code)
    history.clear(message.from_user.id)
    await message.answer(t("history.cleared", lang))


@chat_router.message(Command("history"))
async def cmd_history(message: Message, bot: Bot, history: HistoryStore):
    """Команда /history - расшифровка истории (всегда HTML)"""
    lang = detect_language(message.from_user.language_code)
    labels = {
        Role.USER: t("history.user", lang),
        Role.ASSISTANT: t("history.assistant", lang),
    }
    transcript = history.render_readable(message.from_user.id, labels)
    if not transcript:
        await message.answer(t("history.empty", lang))
        return

    text = bold(t("history.title", lang), Dialect.HTML) + "\n\n" + transcript
    for chunk in split_rendered(text, Dialect.HTML):
        await send_chunk(bot, message.chat.id, chunk, Dialect.HTML)


# ==================== ДИАЛОГ ====================

@chat_router.message(F.text, ~F.text.startswith("/"))
async def on_text(message: Message, bot: Bot, history: HistoryStore, models: ModelSelector):
    """Вопрос пользователя → ответ модели"""
    user_id = message.from_user.id
    lang = detect_language(message.from_user.language_code)
    text = message.text

    await bot.send_chat_action(message.chat.id, ChatAction.TYPING)
    try:
        answer = await llm.complete_chat(models.current(), build_messages(history, user_id, text))
    except BackendError as e:
        logger.error(f"Chat completion failed for {user_id}: {e}")
        await message.answer(t("chat.error", lang))
        return

    history.append(user_id, text, strip_reasoning(answer))
    await send_rendered(bot, message.chat.id, answer)


@chat_router.message(~F.text)
async def on_other(message: Message):
    """Стикеры, фото и прочее"""
    lang = detect_language(message.from_user.language_code if message.from_user else None)
    await message.answer(t("chat.empty", lang))
