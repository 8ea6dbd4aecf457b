"""
Движок гадания на Таро.

Содержит:
- deck.py: колода из 78 карт и тасование
- prompts.py: расклады и промпты для толкования
- engine.py: TarotEngine - шаги гадания и сеансы
- handlers.py: обработчики Telegram
"""

from .deck import Card, CardTemplate, Orientation, CATALOG, DECK_SIZE, shuffle_deck
from .prompts import SpreadKind, positions, card_messages, overall_messages
from .engine import (
    TarotEngine,
    ReadingSession,
    ReadingState,
    StepResult,
    CardReading,
    TarotReading,
    AlreadyActive,
    InvalidSelection,
    InterpretationFailed,
    ReadingCancelled,
    parse_selection,
)
from .handlers import tarot_router

__all__ = [
    'Card',
    'CardTemplate',
    'Orientation',
    'CATALOG',
    'DECK_SIZE',
    'shuffle_deck',
    'SpreadKind',
    'positions',
    'card_messages',
    'overall_messages',
    'TarotEngine',
    'ReadingSession',
    'ReadingState',
    'StepResult',
    'CardReading',
    'TarotReading',
    'AlreadyActive',
    'InvalidSelection',
    'InterpretationFailed',
    'ReadingCancelled',
    'parse_selection',
    'tarot_router',
]
