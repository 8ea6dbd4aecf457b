"""
HistoryStore — ограниченная история диалога для каждого пользователя.

Храним только полные пары (вопрос пользователя, ответ ассистента).
Когда пар больше max_pairs, самая старая пара вытесняется целиком.
Неудачные запросы к модели в историю не попадают: пара добавляется
только после получения ответа.
"""

import html
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from config import get_logger

logger = get_logger(__name__)


class Role(str, Enum):
    """Роль реплики в диалоге"""
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ConversationTurn:
    """Одна реплика диалога"""
    role: Role
    content: str

    def as_message(self) -> dict:
        """Формат сообщения для chat completions API"""
        return {"role": self.role.value, "content": self.content}


DEFAULT_LABELS = {
    Role.USER: "👤 You",
    Role.ASSISTANT: "🤖 Assistant",
}


class HistoryStore:
    """
    История диалогов всех пользователей.

    Отдельный deque на пользователя, maxlen = 2 * max_pairs.
    Пары добавляются одним extend, поэтому вытеснение всегда
    снимает ровно одну старую пару.
    """

    def __init__(self, max_pairs: int = 5):
        if max_pairs < 0:
            raise ValueError("max_pairs must be >= 0")
        self.max_pairs = max_pairs
        self._turns: dict[int, deque] = {}

    def append(self, user_id: int, user_text: str, assistant_text: str) -> None:
        """Добавляет пару реплик и обрезает историю с начала"""
        turns = self._turns.get(user_id)
        if turns is None:
            turns = deque(maxlen=2 * self.max_pairs)
            self._turns[user_id] = turns

        turns.extend((
            ConversationTurn(Role.USER, user_text),
            ConversationTurn(Role.ASSISTANT, assistant_text),
        ))

    def get(self, user_id: int) -> list[ConversationTurn]:
        """История пользователя, от старых к новым"""
        return list(self._turns.get(user_id, ()))

    def messages(self, user_id: int) -> list[dict]:
        """История в формате сообщений для модели"""
        return [turn.as_message() for turn in self._turns.get(user_id, ())]

    def clear(self, user_id: int) -> None:
        """Удаляет историю пользователя"""
        if self._turns.pop(user_id, None) is not None:
            logger.info(f"History cleared for user {user_id}")

    def render_readable(self, user_id: int, labels: Optional[dict] = None) -> str:
        """
        Читаемая расшифровка истории (HTML для Telegram).

        Содержимое реплик всегда экранируется, поэтому любая разметка
        внутри ответов модели показывается как обычный текст.

        Args:
            user_id: ID пользователя
            labels: подписи ролей {Role: str}

        Returns:
            Текст расшифровки или пустая строка, если истории нет
        """
        labels = {**DEFAULT_LABELS, **(labels or {})}
        blocks = []
        for turn in self._turns.get(user_id, ()):
            label = html.escape(labels[turn.role], quote=False)
            content = html.escape(turn.content, quote=False)
            blocks.append(f"<b>{label}</b>\n{content}")
        return "\n\n".join(blocks)

    def users(self) -> list[int]:
        return list(self._turns.keys())

    def __len__(self) -> int:
        return len(self._turns)
