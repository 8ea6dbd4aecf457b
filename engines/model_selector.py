"""
UI для выбора модели LLM.

- /setmodel — кнопка на каждую разрешённую модель (или /setmodel <имя>)
- /listmodels — список моделей, активная отмечена
"""

from aiogram import Router, F
from aiogram.filters import Command, CommandObject
from aiogram.types import Message, CallbackQuery, InlineKeyboardMarkup, InlineKeyboardButton

from config import get_logger
from core.models import ModelSelector, UnknownModel
from locales import t, detect_language

logger = get_logger(__name__)

# Создаём роутер для выбора модели
model_router = Router(name="model_selector")

SETMODEL_PREFIX = "setmodel_"


def kb_models(models: ModelSelector) -> InlineKeyboardMarkup:
    """Кнопки моделей: callback setmodel_<номер>"""
    current = models.current()
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(
            text=name + (" ✓" if name == current else ""),
            callback_data=f"{SETMODEL_PREFIX}{i}",
        )]
        for i, name in enumerate(models.available())
    ])


def models_text(models: ModelSelector, lang: str) -> str:
    """Список моделей для /listmodels"""
    current = models.current()
    lines = [t("models.list_title", lang)]
    for name in models.available():
        mark = t("models.current_mark", lang) if name == current else ""
        lines.append(f"• {name}{mark}")
    return "\n".join(lines)


@model_router.message(Command("setmodel"))
async def cmd_setmodel(message: Message, command: CommandObject, models: ModelSelector):
    """Команда /setmodel - выбор модели"""
    lang = detect_language(message.from_user.language_code)

    if command.args:
        try:
            name = models.set(command.args.strip())
        except UnknownModel as e:
            await message.answer(t("models.unknown", lang, models="\n".join(e.allowed)))
            return
        await message.answer(t("models.switched", lang, model=name))
        return

    await message.answer(t("models.choose", lang), reply_markup=kb_models(models))


@model_router.callback_query(F.data.startswith(SETMODEL_PREFIX))
async def on_model_chosen(callback: CallbackQuery, models: ModelSelector):
    """Нажата кнопка модели"""
    lang = detect_language(callback.from_user.language_code)

    try:
        index = int(callback.data[len(SETMODEL_PREFIX):])
        name = models.set_by_index(index)
    except (ValueError, UnknownModel):
        logger.warning(f"Invalid model callback from {callback.from_user.id}: {callback.data}")
        await callback.message.answer(t("models.unknown", lang, models="\n".join(models.available())))
        await callback.answer()
        return

    await callback.message.edit_text(t("models.switched", lang, model=name))
    await callback.answer()


@model_router.message(Command("listmodels"))
async def cmd_listmodels(message: Message, models: ModelSelector):
    """Команда /listmodels - список моделей"""
    lang = detect_language(message.from_user.language_code)
    await message.answer(models_text(models, lang))
