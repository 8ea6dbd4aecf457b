"""
Feature Flags для управления функциональностью бота.

Позволяет:
- Включать/выключать гадание и отдельные расклады без изменения кода
- Выбирать диалект разметки ответов (HTML / MarkdownV2)
- Переопределять флаги через переменные окружения

Использование:
    from config.features import flags

    if flags.is_enabled("tarot.celtic_cross"):
        ...
    dialect = flags.get("render.dialect", "html")
"""

import os
from pathlib import Path
from typing import Any

import yaml


class FeatureFlags:
    """
    Класс для работы с feature flags.

    Загружает конфигурацию из features.yaml.
    Переменные окружения имеют приоритет над значениями в файле.

    Формат env переменных: путь с точками заменяется на подчёркивания в верхнем регистре.
    Пример: "tarot.celtic_cross" → "TAROT_CELTIC_CROSS"
    """

    def __init__(self, config_path: str = None):
        """
        Args:
            config_path: Путь к features.yaml. По умолчанию ищет в папке config/
        """
        if config_path is None:
            config_path = Path(__file__).parent / "features.yaml"

        self._config: dict = {}
        self._load_config(config_path)

    def _load_config(self, path: Path) -> None:
        """Загружает конфигурацию из YAML файла."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                self._config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            self._config = {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in features.yaml: {e}")

    @staticmethod
    def _env_name(path: str) -> str:
        return path.upper().replace(".", "_")

    def is_enabled(self, path: str, default: bool = False) -> bool:
        """
        Проверяет, включён ли флаг.

        Env переменные имеют приоритет над значениями в файле.

        Args:
            path: Путь к флагу через точку (например, "tarot.celtic_cross")
            default: Значение, если флага нет ни в env, ни в файле

        Returns:
            True если флаг включён
        """
        env_value = os.getenv(self._env_name(path))
        if env_value is not None:
            return env_value.lower() in ("true", "1", "yes", "on")

        value = self._get_value(path)
        if value is None:
            return default
        return bool(value)

    def get(self, path: str, default: Any = None) -> Any:
        """
        Получает значение флага (не только boolean).

        Args:
            path: Путь к значению через точку
            default: Значение по умолчанию

        Returns:
            Значение из env, конфига или default
        """
        env_value = os.getenv(self._env_name(path))
        if env_value is not None:
            try:
                return int(env_value)
            except ValueError:
                return env_value

        value = self._get_value(path)
        return value if value is not None else default

    def _get_value(self, path: str) -> Any:
        """Получает значение по пути через точку."""
        value = self._config
        for key in path.split("."):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return None
        return value


# Глобальный экземпляр для использования во всём приложении
flags = FeatureFlags()
