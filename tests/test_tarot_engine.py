"""
Тесты движка гадания без Telegram и без модели.

Запуск: python -m pytest tests/test_tarot_engine.py -v
"""

import asyncio
import copy
import os
import random
import sys
from datetime import timedelta

import pytest
import yaml

# Добавляем путь к проекту
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import TRANSITIONS_PATH
from core.machine import StateMachine, InvalidTransition, DEFAULT_TRANSITIONS
from core.storage import SessionStorage, utcnow
from engines.tarot import (
    TarotEngine,
    ReadingState,
    SpreadKind,
    AlreadyActive,
    InvalidSelection,
    InterpretationFailed,
    ReadingCancelled,
    parse_selection,
)


class FakeInterpret:
    """Запоминает все запросы и отвечает по порядку"""

    def __init__(self, fail_on: int = None):
        self.calls: list[list[dict]] = []
        self.fail_on = fail_on

    async def __call__(self, messages: list[dict]) -> str:
        self.calls.append(messages)
        if self.fail_on is not None and len(self.calls) == self.fail_on:
            raise RuntimeError("backend is down")
        return f"interpretation {len(self.calls)}"


def make_engine() -> TarotEngine:
    return TarotEngine(
        machine=StateMachine(TRANSITIONS_PATH),
        storage=SessionStorage(),
        rng=random.Random(42),
    )


def prepare(engine: TarotEngine, user_id: int, spread: SpreadKind = SpreadKind.THREE) -> None:
    engine.start(user_id, "zh")
    engine.submit_question(user_id, "career")
    engine.select_spread(user_id, spread)


def test_single_spread_flow():
    """Пример целиком: start → question → SINGLE → одна карта + общее толкование"""
    engine = make_engine()
    interpret = FakeInterpret()

    assert engine.start(1).state is ReadingState.AWAITING_QUESTION
    assert engine.submit_question(1, "career").state is ReadingState.AWAITING_SPREAD_CHOICE

    result = engine.select_spread(1, SpreadKind.SINGLE)
    assert result.state is ReadingState.AWAITING_SELECTION
    assert SpreadKind.SINGLE.draw_count == 1

    reading = asyncio.run(engine.submit_selection(1, "42", interpret))

    assert len(reading.cards) == 1
    assert reading.cards[0].interpretation == "interpretation 1"
    assert reading.overall == "interpretation 2"
    assert reading.question == "career"
    assert len(interpret.calls) == 2, "Ожидалось 2 запроса: карта + общее"
    assert engine.current_state(1) is None, "После гадания сеанс должен удаляться"
    print("✅ Пример SINGLE прошёл")


def test_three_cards_in_selection_order():
    """Карты возвращаются в порядке выбора, запросы идут по очереди"""
    engine = make_engine()
    prepare(engine, 7)
    deck = engine.storage.load(7).deck
    interpret = FakeInterpret()
    streamed = []

    async def on_card(reading):
        streamed.append(reading)

    reading = asyncio.run(engine.submit_selection(7, "7 23 45", interpret, on_card=on_card))

    assert [c.card for c in reading.cards] == [deck[6], deck[22], deck[44]]
    assert [c.interpretation for c in reading.cards] == [
        "interpretation 1", "interpretation 2", "interpretation 3",
    ]
    assert reading.overall == "interpretation 4"
    assert streamed == reading.cards, "on_card вызывается после каждой карты"
    assert reading.cards[0].position == "當前的狀況或是問題的根源"
    # Последний запрос: общий
    assert "3張牌" in interpret.calls[-1][-1]["content"]


def test_commas_are_accepted():
    """Номера можно разделять запятыми"""
    assert parse_selection("7, 23,45", 3) == [7, 23, 45]
    assert parse_selection("1，2，3", 3) == [1, 2, 3]


@pytest.mark.parametrize("raw, reason", [
    ("5 5 12", InvalidSelection.DUPLICATE),
    ("1 2", InvalidSelection.COUNT),
    ("1 2 3 4", InvalidSelection.COUNT),
    ("", InvalidSelection.COUNT),
    ("0 1 2", InvalidSelection.RANGE),
    ("1 2 79", InvalidSelection.RANGE),
    ("one two three", InvalidSelection.NOT_NUMBERS),
    ("1.5 2 3", InvalidSelection.NOT_NUMBERS),
])
def test_invalid_selection_keeps_session(raw, reason):
    """Ошибочный ввод не меняет сеанс и не вызывает модель"""
    engine = make_engine()
    prepare(engine, 3)
    session = engine.storage.load(3)
    interpret = FakeInterpret()

    with pytest.raises(InvalidSelection) as exc:
        asyncio.run(engine.submit_selection(3, raw, interpret))

    assert exc.value.reason == reason
    assert exc.value.expected == 3
    assert engine.current_state(3) is ReadingState.AWAITING_SELECTION
    assert engine.storage.load(3) is session
    assert session.drawn_cards == []
    assert interpret.calls == []


def test_retry_after_invalid_selection():
    """После ошибки можно повторить ввод"""
    engine = make_engine()
    prepare(engine, 3)

    with pytest.raises(InvalidSelection):
        asyncio.run(engine.submit_selection(3, "5 5 12", FakeInterpret()))

    reading = asyncio.run(engine.submit_selection(3, "5 6 12", FakeInterpret()))
    assert len(reading.cards) == 3


def test_start_twice_fails():
    """Второй /tarot во время гадания — AlreadyActive"""
    engine = make_engine()
    engine.start(1)

    with pytest.raises(AlreadyActive):
        engine.start(1)
    assert engine.current_state(1) is ReadingState.AWAITING_QUESTION


def test_empty_question_reprompts():
    """Пустой вопрос не меняет состояние"""
    engine = make_engine()
    engine.start(1)

    result = engine.submit_question(1, "   ")
    assert not result.accepted
    assert result.state is ReadingState.AWAITING_QUESTION
    assert engine.storage.load(1).question is None
    assert engine.storage.load(1).deck == []


def test_question_shuffles_full_deck():
    """После вопроса в сеансе полная перетасованная колода"""
    engine = make_engine()
    engine.start(1)
    engine.submit_question(1, "love")

    session = engine.storage.load(1)
    assert session.question == "love"
    assert len(session.deck) == 78
    assert len({c.identifier for c in session.deck}) == 78


def test_wrong_state_raises():
    """Шаг не в своём состоянии — InvalidTransition"""
    engine = make_engine()

    with pytest.raises(InvalidTransition):
        engine.submit_question(1, "career")

    engine.start(1)
    with pytest.raises(InvalidTransition):
        engine.select_spread(1, SpreadKind.THREE)
    with pytest.raises(InvalidTransition):
        asyncio.run(engine.submit_selection(1, "1 2 3", FakeInterpret()))


def test_cancel_from_every_state_is_idempotent():
    """Отмена из любого состояния удаляет сеанс, повторная — no-op"""
    engine = make_engine()
    steps = [
        lambda: engine.start(1),
        lambda: engine.submit_question(1, "career"),
        lambda: engine.select_spread(1, SpreadKind.THREE),
    ]

    for done in range(1, len(steps) + 1):
        for step in steps[:done]:
            step()
        assert engine.current_state(1) is not None

        assert engine.cancel(1) is True
        assert engine.current_state(1) is None
        assert engine.cancel(1) is False, "Повторная отмена ничего не делает"


def test_celtic_cross_disabled(monkeypatch):
    """Выключенный кельтский крест возвращает к выбору расклада"""
    monkeypatch.setenv("TAROT_CELTIC_CROSS", "false")
    engine = make_engine()
    engine.start(1)
    engine.submit_question(1, "career")

    result = engine.select_spread(1, SpreadKind.CELTIC)
    assert not result.accepted
    assert result.state is ReadingState.AWAITING_SPREAD_CHOICE

    result = engine.select_spread(1, SpreadKind.THREE)
    assert result.accepted
    assert result.state is ReadingState.AWAITING_SELECTION


def test_celtic_cross_draws_ten(monkeypatch):
    """Кельтский крест — 10 карт и 11 запросов"""
    monkeypatch.setenv("TAROT_CELTIC_CROSS", "true")
    engine = make_engine()
    prepare(engine, 1, SpreadKind.CELTIC)
    interpret = FakeInterpret()

    reading = asyncio.run(engine.submit_selection(1, "1 2 3 4 5 6 7 8 9 10", interpret))

    assert len(reading.cards) == 10
    assert reading.cards[-1].position == "結果"
    assert len(interpret.calls) == 11


def test_interpretation_failure_discards_session():
    """Ошибка модели → InterpretationFailed, сеанс удалён, больше запросов нет"""
    engine = make_engine()
    prepare(engine, 1)
    interpret = FakeInterpret(fail_on=2)

    with pytest.raises(InterpretationFailed):
        asyncio.run(engine.submit_selection(1, "1 2 3", interpret))

    assert len(interpret.calls) == 2
    assert engine.current_state(1) is None


def test_cancel_during_interpretation():
    """Отмена во время толкования останавливает следующие запросы"""
    engine = make_engine()
    prepare(engine, 1)
    interpret = FakeInterpret()

    async def on_card(reading):
        assert engine.current_state(1) is ReadingState.INTERPRETING
        engine.cancel(1)

    with pytest.raises(ReadingCancelled):
        asyncio.run(engine.submit_selection(1, "1 2 3", interpret, on_card=on_card))

    assert len(interpret.calls) == 1, "После отмены модель больше не вызывается"
    assert engine.current_state(1) is None


def test_new_reading_survives_old_cancelled_one():
    """Отменённое толкование не удаляет новый сеанс пользователя"""
    engine = make_engine()
    prepare(engine, 1)

    async def on_card(reading):
        engine.cancel(1)
        engine.start(1)

    with pytest.raises(ReadingCancelled):
        asyncio.run(engine.submit_selection(1, "1 2 3", FakeInterpret(), on_card=on_card))

    assert engine.current_state(1) is ReadingState.AWAITING_QUESTION


def test_users_are_isolated():
    """Сеансы разных пользователей независимы"""
    engine = make_engine()
    prepare(engine, 1)
    engine.start(2)

    engine.cancel(2)
    assert engine.current_state(1) is ReadingState.AWAITING_SELECTION
    assert engine.current_state(2) is None


def test_expire_idle():
    """Простаивающие сеансы удаляются, свежие остаются"""
    engine = make_engine()
    engine.start(1, "en")
    engine.start(2, "zh")
    engine.storage.load(1).updated_at = utcnow() - timedelta(hours=1)

    expired = engine.expire_idle(timedelta(minutes=30))

    assert expired == {1: "en"}
    assert engine.current_state(1) is None
    assert engine.current_state(2) is ReadingState.AWAITING_QUESTION


def test_expire_skips_interpreting():
    """Идущее толкование не истекает"""
    engine = make_engine()
    prepare(engine, 1)
    session = engine.storage.load(1)
    session.state = ReadingState.INTERPRETING
    session.updated_at = utcnow() - timedelta(hours=1)

    assert engine.expire_idle(timedelta(minutes=30)) == {}
    assert engine.current_state(1) is ReadingState.INTERPRETING


def test_invalid_selection_refreshes_activity():
    """Повторяющий ввод пользователь не теряет сеанс по таймауту"""
    engine = make_engine()
    prepare(engine, 1)
    engine.storage.load(1).updated_at = utcnow() - timedelta(hours=1)

    with pytest.raises(InvalidSelection):
        asyncio.run(engine.submit_selection(1, "1 2", FakeInterpret()))

    assert engine.expire_idle(timedelta(minutes=30)) == {}
    assert engine.current_state(1) is ReadingState.AWAITING_SELECTION


# ==================== ТАБЛИЦА ПЕРЕХОДОВ ====================

def engine_with_table(tmp_path, edit) -> TarotEngine:
    """Движок с таблицей переходов, изменённой функцией edit"""
    table = copy.deepcopy(DEFAULT_TRANSITIONS)
    edit(table["states"])
    path = tmp_path / "transitions.yaml"
    path.write_text(yaml.safe_dump(table, allow_unicode=True), encoding="utf-8")
    return TarotEngine(machine=StateMachine(path), storage=SessionStorage(), rng=random.Random(42))


def test_expire_follows_transition_table(tmp_path):
    """Без expire в allow_global состояние не истекает"""
    engine = engine_with_table(
        tmp_path, lambda states: states["awaiting_question"]["allow_global"].remove("expire")
    )
    engine.start(1, "en")
    prepare(engine, 2)
    for user_id in (1, 2):
        engine.storage.load(user_id).updated_at = utcnow() - timedelta(hours=1)

    assert engine.expire_idle(timedelta(minutes=30)) == {2: "zh"}
    assert engine.current_state(1) is ReadingState.AWAITING_QUESTION


def test_interpretation_failure_uses_failed_event(tmp_path):
    """Ошибка модели проходит через событие failed таблицы"""
    engine = engine_with_table(
        tmp_path, lambda states: states["interpreting"]["events"].pop("failed")
    )
    prepare(engine, 1)

    with pytest.raises(InvalidTransition):
        asyncio.run(engine.submit_selection(1, "1 2 3", FakeInterpret(fail_on=1)))

    assert engine.current_state(1) is None


def test_invalid_selection_uses_table_event(tmp_path):
    engine = engine_with_table(
        tmp_path, lambda states: states["awaiting_selection"]["events"].pop("invalid_selection")
    )
    prepare(engine, 1)

    with pytest.raises(InvalidTransition):
        asyncio.run(engine.submit_selection(1, "1 1 1", FakeInterpret()))
