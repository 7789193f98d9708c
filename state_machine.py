from enum import Enum
from typing import Dict, Tuple

from errors import IllegalTransitionError
from models import JobStatus

class JobEvent(str, Enum):
    RINGING = "ringing"
    ANSWERED = "answered"
    PARTICIPANT_JOINED = "participantJoined"
    PROMPT_PLAYED = "promptPlayed"
    SPEECH_RECEIVED = "speechReceived"
    REPLY_READY = "replyReady"
    CONVERSATION_FINISHED = "conversationFinished"
    CALL_TERMINATED = "callTerminated"
    FAILURE = "failure"


_S = JobStatus
_E = JobEvent

TRANSITIONS: Dict[Tuple[JobStatus, JobEvent], JobStatus] = {
    (_S.CONNECTING, _E.RINGING): _S.CONNECTING,
    (_S.CONNECTING, _E.ANSWERED): _S.AGENT_SPEAKING,
    (_S.CONNECTING, _E.PARTICIPANT_JOINED): _S.AGENT_SPEAKING,
    (_S.AGENT_SPEAKING, _E.ANSWERED): _S.AGENT_SPEAKING,
    (_S.AGENT_SPEAKING, _E.PARTICIPANT_JOINED): _S.AGENT_SPEAKING,
    (_S.AGENT_SPEAKING, _E.PROMPT_PLAYED): _S.LISTENING_FOR_RESPONSE,
    # ガザー結果が再生完了通知より先に届くプロバイダーもある
    (_S.AGENT_SPEAKING, _E.SPEECH_RECEIVED): _S.PROCESSING_RESPONSE,
    (_S.LISTENING_FOR_RESPONSE, _E.ANSWERED): _S.LISTENING_FOR_RESPONSE,
    (_S.LISTENING_FOR_RESPONSE, _E.SPEECH_RECEIVED): _S.PROCESSING_RESPONSE,
    (_S.PROCESSING_RESPONSE, _E.ANSWERED): _S.PROCESSING_RESPONSE,
    (_S.PROCESSING_RESPONSE, _E.REPLY_READY): _S.AGENT_SPEAKING,
    (_S.PROCESSING_RESPONSE, _E.CONVERSATION_FINISHED): _S.CALL_ENDED,
}

for _status in JobStatus:
    if not _status.is_terminal:
        TRANSITIONS[(_status, _E.CALL_TERMINATED)] = _S.CALL_ENDED
        TRANSITIONS[(_status, _E.FAILURE)] = _S.ERROR


def transition(status: JobStatus, event: JobEvent) -> JobStatus:
    """
    Return the status a job moves to when ``event`` happens in ``status``.

    Raises IllegalTransitionError for any pair not in the table, which
    includes every event on a terminal status.
    """
    try:
        return TRANSITIONS[(status, event)]
    except KeyError:
        raise IllegalTransitionError(status, event) from None


def can_transition(status: JobStatus, event: JobEvent) -> bool:
    return (status, event) in TRANSITIONS
