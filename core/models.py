"""
ModelSelector — активная модель LLM из разрешённого списка.
"""

from typing import Optional

from config import get_logger

logger = get_logger(__name__)


class UnknownModel(Exception):
    """Модели нет в списке разрешённых."""

    def __init__(self, name: str, allowed: list[str]):
        self.name = name
        self.allowed = allowed
        super().__init__(f"Unknown model: {name}")


class ModelSelector:
    """Хранит имя активной модели"""

    def __init__(self, allowed: list[str], default: Optional[str] = None):
        if not allowed:
            raise ValueError("Model allow-list is empty")
        self._allowed = list(allowed)
        self._current = self._allowed[0]
        if default is not None:
            self.set(default)

    def current(self) -> str:
        return self._current

    def available(self) -> list[str]:
        return list(self._allowed)

    def set(self, name: str) -> str:
        """Переключает модель.

        Raises:
            UnknownModel: если модели нет в списке
        """
        if name not in self._allowed:
            raise UnknownModel(name, self.available())
        if name != self._current:
            logger.info(f"Model switched: {self._current} -> {name}")
        self._current = name
        return name

    def set_by_index(self, index: int) -> str:
        """Переключает модель по номеру в списке (для inline-кнопок)"""
        if not 0 <= index < len(self._allowed):
            raise UnknownModel(str(index), self.available())
        return self.set(self._allowed[index])
