"""
Обработчики Telegram для гадания на Таро.

Содержит:
- Команда /tarot - начало гадания
- Команда /cancel - отмена
- Выбор расклада (inline-кнопки)
- Текст во время гадания: вопрос, номера карт

Роутер подключается раньше чата: пока идёт гадание,
текст пользователя не уходит в обычный диалог.
"""

from itertools import count

from aiogram import Bot, Router, F
from aiogram.enums import ChatAction
from aiogram.filters import BaseFilter, Command
from aiogram.types import Message, CallbackQuery, InlineKeyboardMarkup, InlineKeyboardButton

from clients import llm
from config import get_logger, TAROT_IMAGE_BASE_URL
from config.features import flags
from core.machine import InvalidTransition
from core.models import ModelSelector
from engines.shared.delivery import bold, current_dialect, send_card_photo, send_rendered
from locales import t, detect_language

from .deck import DECK_SIZE
from .engine import (
    TarotEngine,
    ReadingState,
    CardReading,
    AlreadyActive,
    InvalidSelection,
    InterpretationFailed,
    ReadingCancelled,
)
from .prompts import SpreadKind

logger = get_logger(__name__)

# Создаём роутер для гадания
tarot_router = Router(name="tarot")

SPREAD_CALLBACK_PREFIX = "tarot_spread_"


class ActiveReading(BaseFilter):
    """Пропускает сообщения пользователей, у которых идёт гадание"""

    async def __call__(self, message: Message, tarot: TarotEngine) -> bool:
        return message.from_user is not None and tarot.is_active(message.from_user.id)


def kb_spreads(lang: str) -> InlineKeyboardMarkup:
    """Кнопки выбора расклада"""
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(
            text=f"{t(f'tarot.spreads.{kind.value}', lang)} ({kind.draw_count})",
            callback_data=f"{SPREAD_CALLBACK_PREFIX}{kind.value}",
        )]
        for kind in SpreadKind
    ])


# ==================== КОМАНДЫ ====================

@tarot_router.message(Command("tarot"))
async def cmd_tarot(message: Message, tarot: TarotEngine):
    """Команда /tarot - начало гадания"""
    lang = detect_language(message.from_user.language_code)

    if not flags.is_enabled("tarot.enabled", default=True):
        await message.answer(t("tarot.disabled", lang))
        return

    try:
        result = tarot.start(message.from_user.id, lang)
    except AlreadyActive:
        await message.answer(t("tarot.already_active", lang))
        return

    await message.answer(result.text)


@tarot_router.message(Command("cancel"))
async def cmd_cancel(message: Message, tarot: TarotEngine):
    """Команда /cancel - отмена гадания"""
    lang = detect_language(message.from_user.language_code)
    if tarot.cancel(message.from_user.id):
        await message.answer(t("tarot.cancelled", lang))
    else:
        await message.answer(t("tarot.nothing_to_cancel", lang))


# ==================== ВЫБОР РАСКЛАДА ====================

@tarot_router.callback_query(F.data.startswith(SPREAD_CALLBACK_PREFIX))
async def on_spread_chosen(callback: CallbackQuery, tarot: TarotEngine):
    """Нажата кнопка расклада"""
    lang = detect_language(callback.from_user.language_code)
    value = callback.data[len(SPREAD_CALLBACK_PREFIX):]

    try:
        result = tarot.select_spread(callback.from_user.id, SpreadKind(value))
    except (ValueError, InvalidTransition):
        await callback.answer(t("tarot.stale_button", lang), show_alert=True)
        return

    if not result.accepted:
        await callback.answer(result.text, show_alert=True)
        return

    await callback.message.edit_reply_markup(reply_markup=None)
    await callback.message.answer(result.text)
    await callback.answer()


# ==================== ТЕКСТ ВО ВРЕМЯ ГАДАНИЯ ====================

@tarot_router.message(F.text, ~F.text.startswith("/"), ActiveReading())
async def on_reading_text(message: Message, bot: Bot, tarot: TarotEngine, models: ModelSelector):
    """Текст пользователя, у которого идёт гадание"""
    user_id = message.from_user.id
    lang = detect_language(message.from_user.language_code)
    state = tarot.current_state(user_id)

    if state is ReadingState.AWAITING_QUESTION:
        result = tarot.submit_question(user_id, message.text)
        markup = kb_spreads(lang) if result.accepted else None
        await message.answer(result.text, reply_markup=markup)

    elif state is ReadingState.AWAITING_SPREAD_CHOICE:
        await message.answer(t("tarot.use_buttons", lang), reply_markup=kb_spreads(lang))

    elif state is ReadingState.AWAITING_SELECTION:
        await run_reading(message, bot, tarot, models, lang)

    elif state is ReadingState.INTERPRETING:
        await message.answer(t("tarot.interpreting", lang))


async def run_reading(message: Message, bot: Bot, tarot: TarotEngine, models: ModelSelector, lang: str):
    """Толкует выбранные карты и отправляет результат по мере готовности"""
    chat_id = message.chat.id
    dialect = current_dialect()
    show_images = flags.is_enabled("tarot.show_images", default=True) and bool(TAROT_IMAGE_BASE_URL)
    numbers = count(1)

    async def on_card(reading: CardReading):
        header = t(
            "tarot.card_header", lang,
            number=next(numbers),
            position=reading.position,
            card=reading.card.display_name(lang),
        )
        if show_images:
            await send_card_photo(bot, chat_id, reading.card.image_url(TAROT_IMAGE_BASE_URL), header)
        await send_rendered(bot, chat_id, reading.interpretation, dialect, prefix=bold(header, dialect) + "\n\n")
        await bot.send_chat_action(chat_id, ChatAction.TYPING)

    await bot.send_chat_action(chat_id, ChatAction.TYPING)
    try:
        reading = await tarot.submit_selection(
            message.from_user.id,
            message.text,
            llm.interpreter(models.current()),
            on_card=on_card,
        )
    except InvalidSelection as e:
        await message.answer(t(f"tarot.invalid.{e.reason}", lang, count=e.expected, size=DECK_SIZE))
        return
    except ReadingCancelled:
        logger.info(f"Reading for {message.from_user.id} stopped after cancel")
        return
    except InterpretationFailed:
        await message.answer(t("tarot.failed", lang))
        return

    await send_rendered(
        bot, chat_id, reading.overall, dialect,
        prefix=bold(t("tarot.overall_header", lang), dialect) + "\n\n",
    )
