from enum import Enum
from typing import List, Protocol

from models import Language, Turn

class FollowUp(str, Enum):
    LISTEN = "listen"
    HANG_UP = "hangup"


class TelephonyInterface(Protocol):
    async def place_call(self, phone: str, conference: str) -> str:
        ...
    async def speak(self, call_reference: str, text: str, conference: str, follow_up: FollowUp, language: Language) -> None:
        ...
    async def listen(self, call_reference: str, phone: str, conference: str, language: Language) -> None:
        ...
    async def hang_up(self, call_reference: str) -> None:
        ...

class DialogueInterface(Protocol):
    async def generate_reply(self, history: List[Turn], instruction: str) -> str:
        ...
