from __future__ import annotations

import asyncio
from types import SimpleNamespace

import httpx
import openai
import pytest

from dialogue import DialogueEngine
from errors import DialogueEngineError
from models import Turn, TurnRole


class _FakeCompletions:
    def __init__(self, content="Hola", delay=0.0, error=None, choices=True) -> None:
        self.content = content
        self.delay = delay
        self.error = error
        self.choices = choices
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if not self.choices:
            return SimpleNamespace(choices = [])
        return SimpleNamespace(choices = [SimpleNamespace(message = SimpleNamespace(content = self.content))])


class _FakeClient:
    def __init__(self, completions: _FakeCompletions) -> None:
        self.chat = SimpleNamespace(completions = completions)
        self.closed = False

    async def close(self) -> None:
        self.closed = True


HISTORY = [
    Turn(role = TurnRole.MODEL, text = "Hola, quisiera hacer un pedido."),
    Turn(role = TurnRole.USER, text = "Claro, dígame."),
]


def test_maps_history_to_chat_messages() -> None:
    completions = _FakeCompletions(content = "  Necesitamos 5 cajas.  ")
    engine = DialogueEngine(client = _FakeClient(completions))

    reply = asyncio.run(engine.generate_reply(HISTORY, "system text"))

    assert reply == "Necesitamos 5 cajas."
    assert completions.kwargs["messages"] == [
        {"role": "system", "content": "system text"},
        {"role": "assistant", "content": "Hola, quisiera hacer un pedido."},
        {"role": "user", "content": "Claro, dígame."},
    ]


def test_timeout_becomes_dialogue_error() -> None:
    engine = DialogueEngine(client = _FakeClient(_FakeCompletions(delay = 1.0)))
    engine._timeout = 0.01
    with pytest.raises(DialogueEngineError):
        asyncio.run(engine.generate_reply(HISTORY, "system text"))


def test_provider_error_becomes_dialogue_error() -> None:
    request = httpx.Request("POST", "https://example.invalid/chat/completions")
    error = openai.APIConnectionError(request = request)
    engine = DialogueEngine(client = _FakeClient(_FakeCompletions(error = error)))
    with pytest.raises(DialogueEngineError):
        asyncio.run(engine.generate_reply(HISTORY, "system text"))


@pytest.mark.parametrize("completions", [
    _FakeCompletions(content = "   "),
    _FakeCompletions(content = None),
    _FakeCompletions(choices = False),
])
def test_empty_reply_is_an_error(completions) -> None:
    engine = DialogueEngine(client = _FakeClient(completions))
    with pytest.raises(DialogueEngineError):
        asyncio.run(engine.generate_reply(HISTORY, "system text"))


def test_close_closes_client() -> None:
    client = _FakeClient(_FakeCompletions())
    asyncio.run(DialogueEngine(client = client).close())
    assert client.closed
