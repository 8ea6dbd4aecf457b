"""
Движки бота.

Содержит:
- tarot/: гадание на Таро
- chat/: обычный диалог с моделью
- shared/: общие компоненты (отправка ответов)
- model_selector.py: UI выбора модели
- integration.py: подключение роутеров
"""

from .integration import setup_routers, get_commands_list

__all__ = [
    'setup_routers',
    'get_commands_list',
]
