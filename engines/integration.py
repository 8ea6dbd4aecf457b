"""
Интеграция движков в основной бот.

Этот файл содержит функцию для подключения всех роутеров.
В bot.py после создания диспетчера:

    from engines.integration import setup_routers
    setup_routers(dp)

Порядок важен: роутер гадания идёт раньше чата, чтобы текст
во время гадания не уходил модели как обычный вопрос.
"""

from aiogram import Dispatcher
from aiogram.types import BotCommand

from config import get_logger
from locales import t

logger = get_logger(__name__)


def setup_routers(dp: Dispatcher):
    """Подключает все роутеры движков к диспетчеру

    Args:
        dp: Dispatcher aiogram
    """
    # Роутер выбора модели
    from .model_selector import model_router
    dp.include_router(model_router)
    logger.info("✓ Подключен model_router (/setmodel, /listmodels)")

    # Роутер гадания
    from .tarot import tarot_router
    dp.include_router(tarot_router)
    logger.info("✓ Подключен tarot_router (/tarot, /cancel)")

    # Роутер диалога подключается последним, он принимает любой текст
    from .chat import chat_router
    dp.include_router(chat_router)
    logger.info("✓ Подключен chat_router (/start, /help, /clear, /history)")

    logger.info("✅ Все роутеры движков подключены")


COMMANDS = ["start", "help", "tarot", "cancel", "clear", "history", "setmodel", "listmodels"]


def get_commands_list(lang: str = "zh") -> list[BotCommand]:
    """Возвращает список команд для регистрации в боте"""
    return [BotCommand(command=name, description=t(f"commands.{name}", lang)) for name in COMMANDS]
