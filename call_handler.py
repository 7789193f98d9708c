from typing import Optional

from azure.communication.callautomation import (
    PhoneNumberIdentifier,
    RecognizeInputType,
    TextSource,
)
from azure.communication.callautomation.aio import CallAutomationClient, CallConnectionClient
from azure.core.exceptions import AzureError

from call_context import build_operation_context
from errors import ProviderError
from interface import FollowUp, TelephonyInterface
from models import Language
from settings import settings
from utils import print_debug

class CallHandler(TelephonyInterface):
    """Azure Communication Services Call Automation adapter."""

    def __init__(self, automation_client: Optional[CallAutomationClient] = None) -> None:
        self._callback_baseurl = settings.CALLBACK_BASEURL
        self._source_phone_number = settings.ACS_PHONE_NUMBER
        self._cognitive_services_endpoint = settings.COGNITIVE_SERVICES_ENDPOINT
        self._voice_names = settings.VOICE_NAMES
        self._speech_locales = settings.SPEECH_LOCALES
        self._initial_silence_timeout = settings.INITIAL_SILENCE_TIMEOUT_SECONDS
        self._end_silence_timeout = settings.END_SILENCE_TIMEOUT_SECONDS
        self._automation_client: CallAutomationClient = (
            automation_client or CallAutomationClient.from_connection_string(settings.ACS_CONNECTION_STRING)
        )

    async def place_call(self, phone: str, conference: str) -> str:
        try:
            call_properties = await self._automation_client.create_call(
                target_participant = PhoneNumberIdentifier(phone),
                callback_url = self._callback_url(conference),
                source_caller_id_number = PhoneNumberIdentifier(self._source_phone_number),
                operation_context = conference,
                cognitive_services_endpoint = self._cognitive_services_endpoint,
            )
        except AzureError as e:
            raise ProviderError(f"Failed to place call to {phone}: {e}") from e
        print_debug(f"Call placed to {phone} for {conference}: {call_properties.call_connection_id}")
        return call_properties.call_connection_id

    async def speak(
        self,
        call_reference: str,
        text: str,
        conference: str,
        follow_up: FollowUp,
        language: Language,
    ) -> None:
        try:
            await self.get_call_connection(call_reference).play_media(
                play_source = self._text_source(text, language),
                operation_context = build_operation_context(conference, follow_up),
            )
        except AzureError as e:
            raise ProviderError(f"Failed to play prompt on {call_reference}: {e}") from e

    async def listen(self, call_reference: str, phone: str, conference: str, language: Language) -> None:
        try:
            await self.get_call_connection(call_reference).start_recognizing_media(
                input_type = RecognizeInputType.SPEECH,
                target_participant = PhoneNumberIdentifier(phone),
                initial_silence_timeout = self._initial_silence_timeout,
                end_silence_timeout = self._end_silence_timeout,
                speech_language = self._speech_locales.get(language.value),
                operation_context = build_operation_context(conference, FollowUp.LISTEN),
            )
        except AzureError as e:
            raise ProviderError(f"Failed to start speech recognition on {call_reference}: {e}") from e

    async def hang_up(self, call_reference: str) -> None:
        try:
            await self.get_call_connection(call_reference).hang_up(is_for_everyone = True)
        except AzureError as e:
            raise ProviderError(f"Failed to hang up {call_reference}: {e}") from e

    def get_call_connection(self, call_reference: str) -> CallConnectionClient:
        return self._automation_client.get_call_connection(call_reference)

    def _text_source(self, text: str, language: Language) -> TextSource:
        return TextSource(
            text = text,
            voice_name = self._voice_names.get(language.value),
        )

    def _callback_url(self, conference: str) -> str:
        return f"{self._callback_baseurl.rstrip('/')}/{conference}"

    async def close(self) -> None:
        await self._automation_client.close()
