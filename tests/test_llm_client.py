"""
Тесты клиента LLM на локальном aiohttp-сервере.

Запуск: python -m pytest tests/test_llm_client.py -v
"""

import asyncio
import os
import sys

import pytest
from aiohttp import web, test_utils

# Добавляем путь к проекту
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from clients.llm import LLMClient, BackendError
from config import LLM_TEMPERATURE, LLM_MAX_TOKENS, LLM_TOP_P

MESSAGES = [
    {"role": "system", "content": "使用繁體中文回答"},
    {"role": "user", "content": "hi"},
]


def run_with_server(handler, action):
    """Поднимает сервер с /chat/completions и выполняет action(client)"""
    async def runner():
        app = web.Application()
        app.router.add_post("/chat/completions", handler)
        server = test_utils.TestServer(app)
        await server.start_server()
        try:
            client = LLMClient(api_key="test-key", base_url=str(server.make_url("")))
            return await action(client)
        finally:
            await server.close()

    return asyncio.run(runner())


def test_complete_chat_sends_payload():
    """Запрос содержит модель, сообщения и параметры генерации"""
    captured = {}

    async def handler(request):
        captured["auth"] = request.headers.get("Authorization")
        captured["payload"] = await request.json()
        return web.json_response({
            "choices": [{"message": {"role": "assistant", "content": "<think>x</think>你好"}}],
            "usage": {"total_tokens": 12},
        })

    answer = run_with_server(handler, lambda client: client.complete_chat("deepseek", MESSAGES))

    assert answer == "<think>x</think>你好", "Рассуждения убирает рендерер, не клиент"
    assert captured["auth"] == "Bearer test-key"
    payload = captured["payload"]
    assert payload["model"] == "deepseek"
    assert payload["messages"] == MESSAGES
    assert payload["temperature"] == LLM_TEMPERATURE
    assert payload["max_tokens"] == LLM_MAX_TOKENS
    assert payload["top_p"] == LLM_TOP_P


def test_http_error_raises_backend_error():
    async def handler(request):
        return web.json_response({"error": {"message": "rate limited"}}, status=429)

    with pytest.raises(BackendError):
        run_with_server(handler, lambda client: client.complete_chat("deepseek", MESSAGES))


def test_bad_payload_raises_backend_error():
    async def handler(request):
        return web.json_response({"choices": []})

    with pytest.raises(BackendError):
        run_with_server(handler, lambda client: client.complete_chat("deepseek", MESSAGES))


def test_connection_error_raises_backend_error():
    """Недоступный сервер — BackendError, а не исключение aiohttp"""
    client = LLMClient(api_key="test-key", base_url="http://127.0.0.1:1", timeout=5)

    with pytest.raises(BackendError):
        asyncio.run(client.complete_chat("deepseek", MESSAGES))


def test_interpreter_uses_model():
    """interpreter(model) — функция messages → текст для движка Таро"""
    models = []

    async def handler(request):
        models.append((await request.json())["model"])
        return web.json_response({"choices": [{"message": {"content": "ok"}}]})

    async def action(client):
        interpret = client.interpreter("llama")
        return await interpret(MESSAGES)

    assert run_with_server(handler, action) == "ok"
    assert models == ["llama"]
