"""
Telegram-бот: диалог с LLM (Groq) и гадание на Таро.

Хранилища (история, сеансы гадания, активная модель) живут в памяти
процесса и передаются в обработчики через workflow data диспетчера.
"""

import asyncio
from datetime import timedelta

from aiogram import Bot, Dispatcher
from aiogram.exceptions import TelegramAPIError
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from config import (
    get_logger,
    validate_env,
    BOT_TOKEN,
    GROQ_MODELS,
    MAX_HISTORY_PAIRS,
    TAROT_SESSION_TTL_MINUTES,
    DEFAULT_LANGUAGE,
)
from core.history import HistoryStore
from core.models import ModelSelector
from engines import setup_routers, get_commands_list
from engines.tarot import TarotEngine
from locales import t

logger = get_logger(__name__)

# ============= ПЛАНИРОВЩИК =============

scheduler = AsyncIOScheduler()


async def expire_readings(bot: Bot, tarot: TarotEngine):
    """Каждую минуту: отмена простаивающих гаданий"""
    expired = tarot.expire_idle(timedelta(minutes=TAROT_SESSION_TTL_MINUTES))

    for user_id, lang in expired.items():
        try:
            await bot.send_message(user_id, t("tarot.expired", lang))
            logger.info(f"Reading expired for {user_id}")
        except TelegramAPIError as e:
            logger.error(f"Failed to notify {user_id} about expired reading: {e}")


# ============= ЗАПУСК =============

def create_dispatcher(history: HistoryStore, tarot: TarotEngine, models: ModelSelector) -> Dispatcher:
    """Диспетчер с роутерами; хранилища доступны обработчикам как аргументы"""
    dp = Dispatcher(history=history, tarot=tarot, models=models)
    setup_routers(dp)
    return dp


async def main():
    validate_env()

    history = HistoryStore(max_pairs=MAX_HISTORY_PAIRS)
    tarot = TarotEngine()
    models = ModelSelector(GROQ_MODELS)

    bot = Bot(token=BOT_TOKEN)
    dp = create_dispatcher(history, tarot, models)

    # Установка команд бота (Menu-кнопка)
    await bot.set_my_commands(get_commands_list(DEFAULT_LANGUAGE))
    await bot.set_my_commands(get_commands_list("en"), language_code="en")

    # Запуск планировщика
    scheduler.add_job(expire_readings, 'cron', minute='*', args=[bot, tarot])
    scheduler.start()

    logger.info(f"🚀 Бот запущен, модель: {models.current()}")
    try:
        await dp.start_polling(bot)
    finally:
        scheduler.shutdown(wait=False)
        await bot.session.close()


if __name__ == "__main__":
    asyncio.run(main())
