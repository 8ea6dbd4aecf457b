"""
Модуль локализации бота.
Поддерживает китайский (zh, традиционные иероглифы) и английский (en) языки.
"""

import yaml
from pathlib import Path
from typing import Any

# Загружаем переводы при импорте модуля
_translations: dict[str, dict] = {}
_locales_dir = Path(__file__).parent

SUPPORTED_LANGUAGES = ['zh', 'en']
DEFAULT_LANGUAGE = 'zh'
FALLBACK_CHAIN = {'en': 'zh', 'zh': 'zh'}


def _load_translations():
    """Загрузить все файлы переводов"""
    global _translations
    for lang in SUPPORTED_LANGUAGES:
        file_path = _locales_dir / f"{lang}.yaml"
        if file_path.exists():
            with open(file_path, 'r', encoding='utf-8') as f:
                _translations[lang] = yaml.safe_load(f) or {}
        else:
            _translations[lang] = {}


def _get_nested(data: dict, keys: list[str]) -> Any:
    """Получить вложенное значение по списку ключей"""
    for key in keys:
        if isinstance(data, dict) and key in data:
            data = data[key]
        else:
            return None
    return data


def t(key: str, lang: str = DEFAULT_LANGUAGE, **kwargs) -> str:
    """
    Получить перевод по ключу.

    Args:
        key: Ключ перевода (например, 'tarot.ask_question')
        lang: Код языка ('zh', 'en')
        **kwargs: Переменные для подстановки в строку

    Returns:
        Переведённая строка или ключ, если перевод не найден

    Example:
        t('tarot.ask_question', 'en')          # "What would you like to ask..."
        t('tarot.choose_cards', 'zh', count=3, size=78)
    """
    if not _translations:
        _load_translations()

    lang = normalize_language(lang)
    keys = key.split('.')

    # Пробуем получить перевод с fallback
    current_lang = lang
    while current_lang:
        value = _get_nested(_translations.get(current_lang, {}), keys)
        if value is not None:
            # Подставляем переменные
            if kwargs and isinstance(value, str):
                try:
                    return value.format(**kwargs)
                except KeyError:
                    return value
            return value
        # Переходим к fallback языку
        next_lang = FALLBACK_CHAIN.get(current_lang)
        if next_lang == current_lang:
            break
        current_lang = next_lang

    # Перевод не найден - возвращаем ключ
    return key


def normalize_language(lang: str | None) -> str:
    """Приводит код языка к поддерживаемому ('zh-hant' → 'zh')"""
    if not lang:
        return DEFAULT_LANGUAGE
    lang = lang[:2].lower()
    return lang if lang in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE


def detect_language(language_code: str | None) -> str:
    """
    Определить язык по коду из Telegram.

    Args:
        language_code: Код языка из message.from_user.language_code

    Returns:
        Поддерживаемый код языка или DEFAULT_LANGUAGE
    """
    return normalize_language(language_code)


# Загружаем переводы при импорте
_load_translations()
