"""
Общие компоненты для всех движков.

Содержит:
- delivery.py: рендеринг и отправка ответов модели частями
"""

from .delivery import (
    bold,
    current_dialect,
    send_card_photo,
    send_chunk,
    send_rendered,
    to_plain,
)

__all__ = [
    'bold',
    'current_dialect',
    'send_card_photo',
    'send_chunk',
    'send_rendered',
    'to_plain',
]
