"""
Модуль конфигурации бота.

Содержит:
- settings.py: все константы, токены, настройки
- features.py: feature flags (features.yaml)
- transitions.yaml: таблица переходов сеанса гадания
"""

from .settings import (
    # Токены
    BOT_TOKEN,
    GROQ_API_KEY,
    LLM_BASE_URL,
    validate_env,

    # Логирование
    get_logger,

    # Пути
    BASE_DIR,
    TRANSITIONS_PATH,
    FEATURES_PATH,

    # Модели
    GROQ_MODELS,
    SYSTEM_PROMPT,
    LLM_TEMPERATURE,
    LLM_MAX_TOKENS,
    LLM_TOP_P,
    LLM_TIMEOUT_SECONDS,

    # Лимиты
    MAX_HISTORY_PAIRS,
    TELEGRAM_MESSAGE_LIMIT,
    TELEGRAM_CAPTION_LIMIT,

    # Таро
    TAROT_SESSION_TTL_MINUTES,
    TAROT_IMAGE_BASE_URL,

    # Язык
    DEFAULT_LANGUAGE,
)

__all__ = [
    'BOT_TOKEN',
    'GROQ_API_KEY',
    'LLM_BASE_URL',
    'validate_env',
    'get_logger',
    'BASE_DIR',
    'TRANSITIONS_PATH',
    'FEATURES_PATH',
    'GROQ_MODELS',
    'SYSTEM_PROMPT',
    'LLM_TEMPERATURE',
    'LLM_MAX_TOKENS',
    'LLM_TOP_P',
    'LLM_TIMEOUT_SECONDS',
    'MAX_HISTORY_PAIRS',
    'TELEGRAM_MESSAGE_LIMIT',
    'TELEGRAM_CAPTION_LIMIT',
    'TAROT_SESSION_TTL_MINUTES',
    'TAROT_IMAGE_BASE_URL',
    'DEFAULT_LANGUAGE',
]
