"""
Клиенты для внешних API.

Содержит:
- llm.py: LLMClient для OpenAI-совместимого chat completions API (Groq)
"""

from .llm import LLMClient, BackendError, llm

__all__ = [
    'LLMClient',
    'BackendError',
    'llm',
]
