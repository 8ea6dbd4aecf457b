"""
Ядро бота: общие компоненты.

Содержит:
- history.py: HistoryStore — ограниченная история диалога
- markup.py: рендеринг ответов модели в HTML / MarkdownV2
- machine.py: StateMachine — таблица переходов сеанса
- models.py: ModelSelector — активная модель LLM
- storage.py: SessionStorage — сеансы пользователей в памяти
"""

from .history import HistoryStore, ConversationTurn, Role
from .markup import (
    Dialect,
    render,
    strip_reasoning,
    split_rendered,
    escape_html,
    escape_markdown,
)
from .machine import StateMachine, InvalidTransition
from .models import ModelSelector, UnknownModel
from .storage import SessionStorage

__all__ = [
    # history
    'HistoryStore',
    'ConversationTurn',
    'Role',
    # markup
    'Dialect',
    'render',
    'strip_reasoning',
    'split_rendered',
    'escape_html',
    'escape_markdown',
    # machine
    'StateMachine',
    'InvalidTransition',
    # models
    'ModelSelector',
    'UnknownModel',
    # storage
    'SessionStorage',
]
