"""
StateMachine — таблица переходов между состояниями сеанса.

Управляет:
- Загрузкой таблицы переходов из YAML
- Проверкой, допустимо ли событие в текущем состоянии
- Глобальными событиями (/cancel, истечение сеанса)

Сама машина ничего не хранит: текущее состояние живёт в сессии
пользователя (core.storage), машина только отвечает на вопрос
"куда переходим из state по event".

Использование:
    from core.machine import StateMachine

    machine = StateMachine("config/transitions.yaml")
    machine.next_state("awaiting_question", "question")
    # -> "awaiting_spread_choice"
"""

from pathlib import Path
from typing import Optional

import yaml

from config import get_logger

logger = get_logger(__name__)

SAME = "_same"
IDLE = "idle"

# Таблица по умолчанию, если transitions.yaml не найден
DEFAULT_TRANSITIONS = {
    "states": {
        "idle": {"events": {"start": "awaiting_question"}},
        "awaiting_question": {
            "allow_global": ["cancel", "expire"],
            "events": {"question": "awaiting_spread_choice", "empty_question": SAME},
        },
        "awaiting_spread_choice": {
            "allow_global": ["cancel", "expire"],
            "events": {"spread": "awaiting_selection", "spread_unsupported": SAME},
        },
        "awaiting_selection": {
            "allow_global": ["cancel", "expire"],
            "events": {"selection": "interpreting", "invalid_selection": SAME},
        },
        "interpreting": {
            "allow_global": ["cancel"],
            "events": {"done": IDLE, "failed": IDLE},
        },
    },
    "global_events": {
        "cancel": {"target": IDLE},
        "expire": {"target": IDLE},
    },
}


class InvalidTransition(Exception):
    """Недопустимый переход между состояниями."""

    def __init__(self, state: str, event: str):
        self.state = state
        self.event = event
        super().__init__(f"Event '{event}' is not allowed in state '{state}'")


class StateMachine:
    """
    Таблица переходов сеанса.

    Таблица загружается из YAML файла; при его отсутствии используется
    встроенная DEFAULT_TRANSITIONS.
    """

    def __init__(self, transitions_path: str = None):
        """
        Args:
            transitions_path: Путь к transitions.yaml (None — встроенная таблица)
        """
        self.transitions: dict = {}
        self.global_events: dict = {}

        config = self._load_transitions(transitions_path) if transitions_path else None
        if not config:
            config = DEFAULT_TRANSITIONS

        self.transitions = config.get("states", {})
        self.global_events = config.get("global_events", {})
        logger.info(f"Loaded {len(self.transitions)} state transitions")

    def _load_transitions(self, path: str) -> Optional[dict]:
        """Загружает таблицу переходов из YAML файла."""
        path = Path(path)
        if not path.exists():
            logger.warning(f"Transitions file not found: {path}. Using built-in table.")
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                return yaml.safe_load(f) or None
        except yaml.YAMLError as e:
            logger.error(f"Invalid YAML in transitions file: {e}")
            return None

    def next_state(self, current: str, event: str) -> str:
        """
        Определяет следующее состояние.

        Args:
            current: Имя текущего состояния
            event: Событие

        Returns:
            Имя следующего состояния ("_same" разворачивается в current)

        Raises:
            InvalidTransition: если событие недопустимо в текущем состоянии
        """
        state_config = self.transitions.get(current, {})

        # Глобальные события проходят только если разрешены в этом состоянии
        if event in self.global_events and event in state_config.get("allow_global", []):
            target = self.global_events[event].get("target", IDLE)
        else:
            target = state_config.get("events", {}).get(event)

        if not target:
            raise InvalidTransition(current, event)

        if target == SAME:
            return current
        return target

    def can(self, current: str, event: str) -> bool:
        """Проверяет, допустимо ли событие в состоянии."""
        try:
            self.next_state(current, event)
            return True
        except InvalidTransition:
            return False
