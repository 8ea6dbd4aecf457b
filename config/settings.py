"""
Настройки бота: токены, параметры LLM, лимиты и пути.

Все значения читаются из переменных окружения при импорте.
Обязательные токены проверяются отдельно через validate_env(),
чтобы модули (и тесты) можно было импортировать без .env.
"""

import logging
import os
from pathlib import Path

# ============= ТОКЕНЫ =============

BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN")
GROQ_API_KEY = os.getenv("GROQ_API_KEY")

# OpenAI-совместимый endpoint (по умолчанию Groq)
LLM_BASE_URL = os.getenv("LLM_BASE_URL", "https://api.groq.com/openai/v1").rstrip("/")


def validate_env() -> None:
    """Проверяет обязательные переменные окружения.

    Raises:
        ValueError: если токен не установлен
    """
    if not BOT_TOKEN:
        raise ValueError("TELEGRAM_BOT_TOKEN не установлен!")
    if not GROQ_API_KEY:
        raise ValueError("GROQ_API_KEY не установлен!")


# ============= ЛОГИРОВАНИЕ =============

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


def get_logger(name: str) -> logging.Logger:
    """Возвращает логгер модуля"""
    return logging.getLogger(name)


# ============= ПУТИ =============

BASE_DIR = Path(__file__).resolve().parent.parent
CONFIG_DIR = Path(__file__).resolve().parent
TRANSITIONS_PATH = CONFIG_DIR / "transitions.yaml"
FEATURES_PATH = CONFIG_DIR / "features.yaml"

# ============= МОДЕЛИ =============

# Список разрешённых моделей через запятую; первая из них активная по умолчанию
GROQ_MODELS = [
    m.strip() for m in os.getenv("GROQ_MODELS", "deepseek-r1-distill-llama-70b").split(",")
    if m.strip()
]

SYSTEM_PROMPT = os.getenv("SYSTEM_PROMPT", "使用繁體中文回答")

LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.5"))
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "1024"))
LLM_TOP_P = float(os.getenv("LLM_TOP_P", "1"))
LLM_TIMEOUT_SECONDS = int(os.getenv("LLM_TIMEOUT_SECONDS", "120"))

# ============= ЛИМИТЫ =============

# Сколько пар (вопрос, ответ) держим в контексте диалога
MAX_HISTORY_PAIRS = int(os.getenv("MAX_HISTORY_PAIRS", "5"))

# Лимит длины сообщения Telegram
TELEGRAM_MESSAGE_LIMIT = 4096
TELEGRAM_CAPTION_LIMIT = 1024

# ============= ТАРО =============

TAROT_SESSION_TTL_MINUTES = int(os.getenv("TAROT_SESSION_TTL_MINUTES", "30"))

# Базовый URL картинок карт (m00.jpg, w01.jpg, ...). Если пусто, картинки не отправляются
TAROT_IMAGE_BASE_URL = os.getenv("TAROT_IMAGE_BASE_URL", "")

# ============= ЯЗЫК =============

DEFAULT_LANGUAGE = os.getenv("DEFAULT_LANGUAGE", "zh")
