"""
Обычный диалог с моделью.

Содержит:
- handlers.py: /start, /help, /clear, /history и ответы на текст
"""

from .handlers import chat_router, build_messages

__all__ = [
    'chat_router',
    'build_messages',
]
