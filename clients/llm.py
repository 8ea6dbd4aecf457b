"""
Клиент для OpenAI-совместимого chat completions API (по умолчанию Groq).

LLMClient - асинхронный клиент:
- complete_chat(model, messages) — ответ модели на диалог
- interpreter(model) — функция messages → текст для движка Таро
"""

from typing import Awaitable, Callable

import aiohttp

from config import (
    get_logger,
    GROQ_API_KEY,
    LLM_BASE_URL,
    LLM_TEMPERATURE,
    LLM_MAX_TOKENS,
    LLM_TOP_P,
    LLM_TIMEOUT_SECONDS,
)

logger = get_logger(__name__)


class BackendError(Exception):
    """Ошибка запроса к модели (сеть, HTTP статус, формат ответа)."""


class LLMClient:
    """Клиент для работы с chat completions API"""

    def __init__(
        self,
        api_key: str = None,
        base_url: str = None,
        timeout: int = LLM_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key or GROQ_API_KEY
        self.base_url = f"{(base_url or LLM_BASE_URL).rstrip('/')}/chat/completions"
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    def _payload(self, model: str, messages: list[dict]) -> dict:
        return {
            "model": model,
            "messages": messages,
            "temperature": LLM_TEMPERATURE,
            "max_tokens": LLM_MAX_TOKENS,
            "top_p": LLM_TOP_P,
            "stream": False,
        }

    async def complete_chat(self, model: str, messages: list[dict]) -> str:
        """Отправляет диалог модели

        Args:
            model: имя модели
            messages: системный промпт, история и новая реплика — именно в таком порядке

        Returns:
            Текст ответа (может содержать <think>...</think>)

        Raises:
            BackendError: при любой ошибке запроса
        """
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.base_url, headers=headers, json=self._payload(model, messages)) as resp:
                    if resp.status != 200:
                        error = await resp.text()
                        logger.error(f"LLM API error ({resp.status}, {model}): {error}")
                        raise BackendError(f"HTTP {resp.status}")
                    data = await resp.json()
        except BackendError:
            raise
        except Exception as e:
            logger.error(f"LLM API exception ({model}): {e}")
            raise BackendError(str(e)) from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error(f"LLM API unexpected payload ({model}): {data}")
            raise BackendError("Unexpected response format") from e

        if content is None:
            logger.error(f"LLM API returned empty content ({model})")
            raise BackendError("Empty response")

        usage = data.get("usage") or {}
        logger.info(f"LLM response from {model}: {len(content)} chars, {usage.get('total_tokens', '?')} tokens")
        return content

    def interpreter(self, model: str) -> Callable[[list[dict]], Awaitable[str]]:
        """Функция толкования для TarotEngine.submit_selection"""
        async def interpret(messages: list[dict]) -> str:
            return await self.complete_chat(model, messages)
        return interpret


# Глобальный клиент
llm = LLMClient()
