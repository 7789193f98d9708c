from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from fastapi import Request
from azure.core.messaging import CloudEvent
from pydantic import BaseModel, ConfigDict

from interface import FollowUp
from models import ProviderCallState, conference_to_job_id
from utils import print_debug

EVENT_PREFIX = "Microsoft.Communication."

# CreateCallFailed の SIP コード
FAILURE_CODE_STATES: Dict[int, ProviderCallState] = {
    408: ProviderCallState.NO_ANSWER,
    480: ProviderCallState.NO_ANSWER,
    486: ProviderCallState.BUSY,
    600: ProviderCallState.BUSY,
    487: ProviderCallState.CANCELED,
}


class CallbackKind(str, Enum):
    PARTICIPANT_JOINED = "participantJoined"
    PROMPT_PLAYED = "promptPlayed"
    PROMPT_FAILED = "promptFailed"
    SPEECH_RECEIVED = "speechReceived"
    REPLY_TIMEOUT = "replyTimeout"
    PROVIDER_STATUS = "providerStatus"


class CallbackEvent(BaseModel):
    model_config = ConfigDict(frozen = True)

    kind: CallbackKind
    job_id: str
    text: Optional[str] = None
    follow_up: Optional[FollowUp] = None
    provider_state: Optional[ProviderCallState] = None


class CallbackContext(BaseModel):
    conference: str
    job_id: Optional[str]
    events: List[CallbackEvent]


def build_operation_context(conference: str, follow_up: FollowUp) -> str:
    return f"{conference}:{follow_up.value}"

def parse_operation_context(operation_context: Optional[str]) -> Tuple[Optional[str], Optional[FollowUp]]:
    if not operation_context:
        return None, None
    conference, _, follow_up = operation_context.rpartition(":")
    try:
        return conference or None, FollowUp(follow_up)
    except ValueError:
        return operation_context, None

def decode_event(event_dict: Dict[str, Any], job_id: str) -> Optional[CallbackEvent]:
    """
    Translate one Call Automation CloudEvent into a CallbackEvent.

    Returns None for event types the orchestrator does not consume.
    """
    event = CloudEvent.from_dict(event_dict)
    event_type = event.type[len(EVENT_PREFIX):] if event.type.startswith(EVENT_PREFIX) else event.type
    data = event.data or {}

    # 通話が接続された時
    if event_type == "CallConnected":
        return CallbackEvent(kind = CallbackKind.PARTICIPANT_JOINED, job_id = job_id)

    elif event_type == "PlayCompleted":
        _, follow_up = parse_operation_context(data.get("operationContext"))
        if follow_up is None:
            print_debug(f"PlayCompleted without follow-up for job {job_id}: {data.get('operationContext')}")
            return None
        return CallbackEvent(kind = CallbackKind.PROMPT_PLAYED, job_id = job_id, follow_up = follow_up)

    elif event_type == "PlayFailed":
        _, follow_up = parse_operation_context(data.get("operationContext"))
        return CallbackEvent(kind = CallbackKind.PROMPT_FAILED, job_id = job_id, follow_up = follow_up)

    # 音声認識の結果
    elif event_type == "RecognizeCompleted":
        speech = (data.get("speechResult") or {}).get("speech")
        if data.get("recognitionType") not in (None, "speech") or not speech or not speech.strip():
            return CallbackEvent(kind = CallbackKind.REPLY_TIMEOUT, job_id = job_id)
        return CallbackEvent(kind = CallbackKind.SPEECH_RECEIVED, job_id = job_id, text = speech.strip())

    elif event_type == "RecognizeFailed":
        return CallbackEvent(kind = CallbackKind.REPLY_TIMEOUT, job_id = job_id)

    elif event_type == "CallDisconnected":
        return CallbackEvent(
            kind = CallbackKind.PROVIDER_STATUS,
            job_id = job_id,
            provider_state = ProviderCallState.COMPLETED,
        )

    elif event_type == "CreateCallFailed":
        code = (data.get("resultInformation") or {}).get("code")
        return CallbackEvent(
            kind = CallbackKind.PROVIDER_STATUS,
            job_id = job_id,
            provider_state = FAILURE_CODE_STATES.get(code, ProviderCallState.FAILED),
        )

    print_debug(f"Unhandled callback event {event.type} for job {job_id}", log_level = "debug")
    return None


class CallContextFactory:
    def __init__(self, request: Request, conference: str):
        self.request = request
        self.conference = conference

    async def build(self) -> CallbackContext:
        payload = await self.request.json()
        job_id = conference_to_job_id(self.conference)
        events: List[CallbackEvent] = []
        if job_id:
            # ACS は配列で送ってくる
            event_dicts = payload if isinstance(payload, list) else [payload]
            for event_dict in event_dicts:
                callback_event = decode_event(event_dict, job_id)
                if callback_event:
                    events.append(callback_event)
        return CallbackContext(
            conference = self.conference,
            job_id = job_id,
            events = events,
        )
