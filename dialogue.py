import asyncio
from typing import Dict, List, Optional

from openai import AsyncAzureOpenAI, OpenAIError

from errors import DialogueEngineError
from interface import DialogueInterface
from models import Turn, TurnRole
from settings import settings
from utils import print_debug

class DialogueEngine(DialogueInterface):
    """
    Produces the agent's next utterance with an Azure OpenAI chat deployment.

    Every call is bounded by DIALOGUE_TIMEOUT_SECONDS and never retried:
    the supplier is waiting on a live line.
    """

    ROLE_MAP = {
        TurnRole.MODEL: "assistant",
        TurnRole.USER: "user",
    }

    def __init__(self, client: Optional[AsyncAzureOpenAI] = None) -> None:
        self._aoai_service_endpoint = settings.AZURE_OPENAI_SERVICE_ENDPOINT
        self._aoai_deployment_name = settings.AZURE_OPENAI_DEPLOYMENT_NAME
        self._aoai_service_key = settings.AZURE_OPENAI_SERVICE_KEY
        self._aoai_api_version = settings.AZURE_OPENAI_API_VERSION
        self._timeout = settings.DIALOGUE_TIMEOUT_SECONDS
        self._max_tokens = settings.DIALOGUE_MAX_TOKENS
        self._temperature = settings.DIALOGUE_TEMPERATURE
        self._client = client or self._init_client()

    def _init_client(self) -> AsyncAzureOpenAI:
        client = AsyncAzureOpenAI(
            azure_endpoint = self._aoai_service_endpoint,
            api_key = self._aoai_service_key,
            api_version = self._aoai_api_version,
            max_retries = 0,
        )
        return client

    async def generate_reply(self, history: List[Turn], instruction: str) -> str:
        messages = self._messages(history, instruction)
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model = self._aoai_deployment_name,
                    messages = messages,
                    max_tokens = self._max_tokens,
                    temperature = self._temperature,
                ),
                timeout = self._timeout,
            )
        except asyncio.TimeoutError as e:
            raise DialogueEngineError(f"Dialogue model did not answer within {self._timeout}s") from e
        except OpenAIError as e:
            raise DialogueEngineError(f"Dialogue model request failed: {e}") from e

        if not response.choices:
            raise DialogueEngineError("Dialogue model returned no choices")
        content = response.choices[0].message.content
        if not content or not content.strip():
            raise DialogueEngineError("Dialogue model returned an empty reply")
        print_debug(f"Dialogue reply: {content}", log_level = "debug")
        return content.strip()

    def _messages(self, history: List[Turn], instruction: str) -> List[Dict[str, str]]:
        messages = [{"role": "system", "content": instruction}]
        for turn in history:
            messages.append({"role": self.ROLE_MAP[turn.role], "content": turn.text})
        return messages

    async def close(self) -> None:
        await self._client.close()
