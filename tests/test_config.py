"""
Тесты конфигурации: feature flags, локализация, список команд.

Запуск: python -m pytest tests/test_config.py -v
"""

import os
import sys

# Добавляем путь к проекту
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.features import FeatureFlags
from engines.integration import get_commands_list, COMMANDS
from locales import t, detect_language, _translations


def test_flags_from_file(tmp_path):
    path = tmp_path / "features.yaml"
    path.write_text("tarot:\n  enabled: false\n  celtic_cross: true\nrender:\n  dialect: markdown_v2\n", encoding="utf-8")
    flags = FeatureFlags(path)

    assert not flags.is_enabled("tarot.enabled", default=True)
    assert flags.is_enabled("tarot.celtic_cross")
    assert flags.is_enabled("tarot.missing", default=True)
    assert flags.get("render.dialect") == "markdown_v2"
    assert flags.get("render.missing", "html") == "html"


def test_env_overrides_file(tmp_path, monkeypatch):
    """Переменные окружения важнее features.yaml"""
    path = tmp_path / "features.yaml"
    path.write_text("tarot:\n  celtic_cross: true\n", encoding="utf-8")
    flags = FeatureFlags(path)

    monkeypatch.setenv("TAROT_CELTIC_CROSS", "false")
    assert not flags.is_enabled("tarot.celtic_cross")

    monkeypatch.setenv("TAROT_CELTIC_CROSS", "yes")
    assert flags.is_enabled("tarot.celtic_cross")

    monkeypatch.setenv("RENDER_LIMIT", "100")
    assert flags.get("render.limit") == 100


def test_missing_flags_file(tmp_path):
    flags = FeatureFlags(tmp_path / "nope.yaml")
    assert not flags.is_enabled("tarot.enabled")


def test_translation_with_params():
    assert t("tarot.choose_cards", "en", count=3, size=78) == \
        "Pick 3 numbers (1-78, separated by spaces, e.g. 7 23 45)"
    assert t("models.switched", "zh", model="llama") == "模型已更改為 llama"


def test_unknown_key_returns_key():
    assert t("no.such.key", "en") == "no.such.key"


def test_detect_language():
    assert detect_language("zh-hant") == "zh"
    assert detect_language("en-US") == "en"
    assert detect_language("ru") == "zh"
    assert detect_language(None) == "zh"


def _keys(data: dict, prefix: str = "") -> set[str]:
    keys = set()
    for key, value in data.items():
        path = f"{prefix}{key}"
        if isinstance(value, dict):
            keys |= _keys(value, path + ".")
        else:
            keys.add(path)
    return keys


def test_locales_have_same_keys():
    """В zh.yaml и en.yaml одинаковый набор ключей"""
    assert _keys(_translations["zh"]) == _keys(_translations["en"])


def test_commands_list():
    commands = get_commands_list("en")
    assert [c.command for c in commands] == COMMANDS
    assert commands[0].description == "Start"
    assert all(c.description != f"commands.{c.command}" for c in get_commands_list("zh"))
