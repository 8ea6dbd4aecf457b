"""
SessionStorage — хранение сеансов пользователей в памяти процесса.

Один сеанс на пользователя; наличие сеанса и есть признак "активен".
Между перезапусками бота сеансы не сохраняются.

Сеанс — любой объект с атрибутами `state` и `updated_at`.

Использование:
    from core.storage import SessionStorage

    storage = SessionStorage()
    storage.save(user_id, session)
    session = storage.load(user_id)
    storage.delete(user_id)
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Iterable

from config import get_logger

logger = get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStorage:
    """
    Хранение сеансов пользователей.

    Словарь user_id → сеанс. Каждый пользователь изменяет только
    свою запись, поэтому общий lock не нужен.
    """

    def __init__(self):
        self._sessions: dict[int, Any] = {}

    def load(self, user_id: int) -> Optional[Any]:
        """Возвращает сеанс пользователя или None"""
        return self._sessions.get(user_id)

    def save(self, user_id: int, session: Any) -> None:
        """Сохраняет сеанс и обновляет отметку активности"""
        session.updated_at = utcnow()
        self._sessions[user_id] = session
        logger.debug(f"Session saved for user {user_id}: {session.state}")

    def delete(self, user_id: int) -> Optional[Any]:
        """Удаляет сеанс. Возвращает удалённый сеанс или None"""
        return self._sessions.pop(user_id, None)

    def has(self, user_id: int) -> bool:
        return user_id in self._sessions

    def expire_stale(
        self,
        max_idle: timedelta,
        now: datetime = None,
        skip_states: Iterable[Any] = (),
    ) -> dict[int, Any]:
        """
        Удаляет сеансы, неактивные дольше max_idle.

        Args:
            max_idle: Допустимое время простоя
            now: Текущее время (для тестов)
            skip_states: Состояния, которые не истекают

        Returns:
            Словарь user_id → удалённый сеанс
        """
        now = now or utcnow()
        skip = set(skip_states)
        expired = [
            uid for uid, s in self._sessions.items()
            if s.state not in skip and now - s.updated_at > max_idle
        ]
        removed = {uid: self._sessions.pop(uid) for uid in expired}

        if removed:
            logger.info(f"Expired {len(removed)} idle sessions")
        return removed

    def __len__(self) -> int:
        return len(self._sessions)
