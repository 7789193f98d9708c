from __future__ import annotations

import asyncio
from typing import List, Optional

import pytest

from errors import ProviderError
from interface import FollowUp
from models import OrderItem, Supplier
from orchestrator import CallOrchestrator
from state_manager import JobStateManager

MARKER = "[END_CALL]"


class FakeTelephony:
    def __init__(self, fail_place: bool = False, fail_speak: bool = False, fail_hang_up: bool = False) -> None:
        self.fail_place = fail_place
        self.fail_speak = fail_speak
        self.fail_hang_up = fail_hang_up
        self.placed: list = []
        self.spoken: list = []
        self.listening: list = []
        self.hung_up: list = []

    async def place_call(self, phone, conference):
        if self.fail_place:
            raise ProviderError("invalid credentials")
        self.placed.append((phone, conference))
        return f"call-{len(self.placed)}"

    async def speak(self, call_reference, text, conference, follow_up, language):
        if self.fail_speak:
            raise ProviderError("play rejected")
        self.spoken.append((call_reference, text, conference, follow_up))

    async def listen(self, call_reference, phone, conference, language):
        self.listening.append((call_reference, phone, conference))

    async def hang_up(self, call_reference):
        if self.fail_hang_up:
            raise ProviderError("call already gone")
        self.hung_up.append(call_reference)

    def follow_ups(self) -> List[FollowUp]:
        return [entry[3] for entry in self.spoken]


class FakeDialogue:
    def __init__(self, replies: Optional[list] = None, error: Optional[Exception] = None) -> None:
        self.replies = list(replies or [])
        self.error = error
        self.calls: list = []

    async def generate_reply(self, history, instruction):
        self.calls.append((list(history), instruction))
        if self.error is not None:
            raise self.error
        return self.replies.pop(0)


class SlowDialogue(FakeDialogue):
    """Yields to the event loop before answering, so tests can race events."""

    def __init__(self, replies=None, delay: float = 0.01) -> None:
        super().__init__(replies)
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0

    async def generate_reply(self, history, instruction):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            return await super().generate_reply(history, instruction)
        finally:
            self.in_flight -= 1


@pytest.fixture
def produce_supplier() -> Supplier:
    return Supplier(id = "S1", name = "Huerta Norte", phone = "+15550100", specialty = "Produce")


@pytest.fixture
def items() -> List[OrderItem]:
    return [OrderItem(product = "P1", quantity = 5)]


@pytest.fixture
def telephony() -> FakeTelephony:
    return FakeTelephony()


@pytest.fixture
def make_orchestrator(telephony):
    def _make(dialogue=None, telephony_override=None, language="es"):
        return CallOrchestrator(
            jobs = JobStateManager(),
            telephony = telephony_override or telephony,
            dialogue = dialogue or FakeDialogue(),
            marker = MARKER,
            default_language = language,
        )
    return _make
