"""
Движок гадания на Таро.

Жизненный цикл сеанса:
1. /tarot → ожидание вопроса
2. Вопрос → колода тасуется → выбор расклада
3. Расклад (1 / 3 / 10 карт) → выбор номеров карт
4. Номера карт → толкование каждой карты по очереди + общее толкование
5. Сеанс удаляется (успех, ошибка, /cancel или простой)

Переходы берутся из config/transitions.yaml (core.machine.StateMachine),
сеансы хранятся в core.storage.SessionStorage.
"""

import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Awaitable, Callable, Optional

from config import get_logger, TRANSITIONS_PATH
from config.features import flags as feature_flags
from core.machine import StateMachine, InvalidTransition
from core.storage import SessionStorage, utcnow
from locales import t

from .deck import Card, DECK_SIZE, shuffle_deck
from .prompts import SpreadKind, positions, card_messages, overall_messages

logger = get_logger(__name__)

Interpret = Callable[[list[dict]], Awaitable[str]]


class ReadingState(str, Enum):
    """Состояния сеанса гадания"""
    IDLE = "idle"
    AWAITING_QUESTION = "awaiting_question"
    AWAITING_SPREAD_CHOICE = "awaiting_spread_choice"
    AWAITING_SELECTION = "awaiting_selection"
    INTERPRETING = "interpreting"


# ============= ОШИБКИ =============

class AlreadyActive(Exception):
    """У пользователя уже идёт гадание."""

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"User {user_id} already has an active reading")


class InvalidSelection(Exception):
    """Номера карт не прошли проверку. Сеанс не меняется."""

    NOT_NUMBERS = "not_numbers"
    COUNT = "count"
    RANGE = "range"
    DUPLICATE = "duplicate"

    def __init__(self, reason: str, expected: int):
        self.reason = reason
        self.expected = expected
        super().__init__(f"Invalid selection ({reason}), expected {expected} numbers")


class InterpretationFailed(Exception):
    """Модель не смогла истолковать карты. Сеанс удалён."""


class ReadingCancelled(Exception):
    """Гадание отменено во время толкования."""


# ============= ДАННЫЕ =============

@dataclass
class ReadingSession:
    """Сеанс гадания одного пользователя"""
    state: ReadingState
    lang: str = "zh"
    question: Optional[str] = None
    deck: list[Card] = field(default_factory=list)
    spread: Optional[SpreadKind] = None
    drawn_cards: list[Card] = field(default_factory=list)
    cancelled: bool = False
    updated_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class StepResult:
    """Результат шага: новое состояние и текст для пользователя"""
    state: ReadingState
    text: str
    accepted: bool = True


@dataclass(frozen=True)
class CardReading:
    """Толкование одной карты"""
    card: Card
    position: str
    interpretation: str


@dataclass(frozen=True)
class TarotReading:
    """Итог гадания"""
    question: str
    spread: SpreadKind
    cards: list[CardReading]
    overall: str


def parse_selection(raw: str, count: int) -> list[int]:
    """
    Разбирает номера карт.

    Разделители — пробелы и запятые. Номера должны быть
    целыми, в диапазоне [1, 78], без повторов, ровно count штук.

    Raises:
        InvalidSelection: с причиной not_numbers / count / range / duplicate
    """
    tokens = (raw or "").replace(",", " ").replace("，", " ").split()
    try:
        numbers = [int(token) for token in tokens]
    except ValueError:
        raise InvalidSelection(InvalidSelection.NOT_NUMBERS, count)

    if len(numbers) != count:
        raise InvalidSelection(InvalidSelection.COUNT, count)
    if any(n < 1 or n > DECK_SIZE for n in numbers):
        raise InvalidSelection(InvalidSelection.RANGE, count)
    if len(set(numbers)) != len(numbers):
        raise InvalidSelection(InvalidSelection.DUPLICATE, count)
    return numbers


class TarotEngine:
    """Движок гадания: сеансы всех пользователей"""

    def __init__(
        self,
        machine: StateMachine = None,
        storage: SessionStorage = None,
        flags=None,
        rng: random.Random = None,
    ):
        self.machine = machine or StateMachine(TRANSITIONS_PATH)
        self.storage = storage or SessionStorage()
        self.flags = flags or feature_flags
        self._rng = rng

    # ==================== ВНУТРЕННЕЕ ====================

    def _require(self, user_id: int, state: ReadingState, event: str) -> ReadingSession:
        """Сеанс пользователя в нужном состоянии или InvalidTransition"""
        session = self.storage.load(user_id)
        current = session.state if session else ReadingState.IDLE
        if current is not state:
            raise InvalidTransition(current.value, event)
        return session

    def _advance(self, user_id: int, session: ReadingSession, event: str) -> ReadingState:
        session.state = ReadingState(self.machine.next_state(session.state.value, event))
        self.storage.save(user_id, session)
        return session.state

    def _finish(self, user_id: int, session: ReadingSession) -> None:
        # Пока шло толкование, пользователь мог отменить и начать заново
        if self.storage.load(user_id) is session:
            self.storage.delete(user_id)

    # ==================== ШАГИ ====================

    def start(self, user_id: int, lang: str = "zh") -> StepResult:
        """Начинает гадание.

        Raises:
            AlreadyActive: если сеанс уже есть
        """
        if self.storage.has(user_id):
            raise AlreadyActive(user_id)

        state = ReadingState(self.machine.next_state(ReadingState.IDLE.value, "start"))
        self.storage.save(user_id, ReadingSession(state=state, lang=lang))
        logger.info(f"🔮 Tarot reading started for user {user_id}")
        return StepResult(state, t("tarot.ask_question", lang))

    def submit_question(self, user_id: int, text: str) -> StepResult:
        """Принимает вопрос и тасует колоду"""
        session = self._require(user_id, ReadingState.AWAITING_QUESTION, "question")
        question = (text or "").strip()

        if not question:
            state = self._advance(user_id, session, "empty_question")
            return StepResult(state, t("tarot.empty_question", session.lang), accepted=False)

        session.question = question
        session.deck = shuffle_deck(self._rng)
        state = self._advance(user_id, session, "question")
        return StepResult(state, t("tarot.choose_spread", session.lang))

    def select_spread(self, user_id: int, kind: SpreadKind) -> StepResult:
        """Выбирает расклад.

        Кельтский крест можно выключить флагом tarot.celtic_cross:
        тогда состояние не меняется и accepted=False.
        """
        session = self._require(user_id, ReadingState.AWAITING_SPREAD_CHOICE, "spread")
        kind = SpreadKind(kind)

        if kind is SpreadKind.CELTIC and not self.flags.is_enabled("tarot.celtic_cross", default=True):
            state = self._advance(user_id, session, "spread_unsupported")
            return StepResult(state, t("tarot.spread_unsupported", session.lang), accepted=False)

        session.spread = kind
        state = self._advance(user_id, session, "spread")
        return StepResult(
            state,
            t("tarot.choose_cards", session.lang, count=kind.draw_count, size=DECK_SIZE),
        )

    async def submit_selection(
        self,
        user_id: int,
        raw: str,
        interpret: Interpret,
        on_card: Callable[[CardReading], Awaitable[None]] = None,
    ) -> TarotReading:
        """
        Принимает номера карт и толкует расклад.

        Толкования запрашиваются строго по очереди: карта 1, карта 2, ...,
        затем общее. Отмена проверяется между запросами.

        Args:
            user_id: ID пользователя
            raw: Номера карт через пробел
            interpret: Асинхронная функция messages → текст
            on_card: Вызывается после толкования каждой карты

        Returns:
            TarotReading

        Raises:
            InvalidSelection: номера не прошли проверку, сеанс не изменён
            InterpretationFailed: ошибка модели, сеанс удалён
            ReadingCancelled: гадание отменено во время толкования
        """
        session = self._require(user_id, ReadingState.AWAITING_SELECTION, "selection")
        try:
            numbers = parse_selection(raw, session.spread.draw_count)
        except InvalidSelection:
            # Состояние прежнее, но отметка активности обновляется
            self._advance(user_id, session, "invalid_selection")
            raise

        session.drawn_cards = [session.deck[n - 1] for n in numbers]
        self._advance(user_id, session, "selection")

        lang = session.lang
        names = positions(session.spread, lang)
        readings = []
        logger.info(f"🔮 Interpreting {len(numbers)} cards for user {user_id}: {numbers}")

        try:
            for index, card in enumerate(session.drawn_cards):
                text = await self._interpret(
                    session, interpret, card_messages(session.question, session.drawn_cards, index, session.spread, lang)
                )
                reading = CardReading(card=card, position=names[index], interpretation=text)
                readings.append(reading)
                if on_card is not None:
                    await on_card(reading)

            overall = await self._interpret(
                session, interpret, overall_messages(session.question, session.drawn_cards, lang)
            )
            session.state = ReadingState(self.machine.next_state(session.state.value, "done"))
        except InterpretationFailed:
            session.state = ReadingState(self.machine.next_state(session.state.value, "failed"))
            raise
        finally:
            self._finish(user_id, session)

        logger.info(f"✅ Tarot reading completed for user {user_id}")
        return TarotReading(
            question=session.question,
            spread=session.spread,
            cards=readings,
            overall=overall,
        )

    async def _interpret(self, session: ReadingSession, interpret: Interpret, messages: list[dict]) -> str:
        if session.cancelled:
            raise ReadingCancelled()
        try:
            text = await interpret(messages)
        except Exception as e:
            logger.error(f"Interpretation failed: {e}")
            raise InterpretationFailed(str(e)) from e
        if session.cancelled:
            raise ReadingCancelled()
        return text

    def cancel(self, user_id: int) -> bool:
        """Отменяет гадание. Повторный вызов ничего не делает.

        Returns:
            True, если сеанс был
        """
        session = self.storage.load(user_id)
        if session is None:
            return False

        self.machine.next_state(session.state.value, "cancel")
        session.cancelled = True
        self.storage.delete(user_id)
        logger.info(f"Tarot reading cancelled for user {user_id} (was {session.state.value})")
        return True

    def current_state(self, user_id: int) -> Optional[ReadingState]:
        """Состояние сеанса или None (нет сеанса, т.е. IDLE)"""
        session = self.storage.load(user_id)
        return session.state if session else None

    def is_active(self, user_id: int) -> bool:
        return self.storage.has(user_id)

    def expire_idle(self, max_idle: timedelta, now: datetime = None) -> dict[int, str]:
        """
        Удаляет сеансы, простаивающие дольше max_idle.

        Истекают только состояния, где таблица переходов разрешает expire
        (идущее толкование не истекает).

        Returns:
            Словарь user_id → язык сеанса
        """
        skip = [state for state in ReadingState if not self.machine.can(state.value, "expire")]
        removed = self.storage.expire_stale(max_idle, now=now, skip_states=skip)
        for session in removed.values():
            session.cancelled = True
        return {uid: session.lang for uid, session in removed.items()}
