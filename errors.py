class ProcurementCallError(Exception):
    """Base class for every error raised by the call orchestrator."""


class ValidationError(ProcurementCallError):
    """A job request is missing items, a specialty or a supplier pool."""


class NoMatchError(ProcurementCallError):
    """No supplier in the pool carries the requested specialty."""


class NotFoundError(ProcurementCallError):
    """An operation referenced a job id that is not in the store."""


class ProviderError(ProcurementCallError):
    """The telephony provider rejected a placement, prompt or hang-up."""


class DialogueEngineError(ProcurementCallError):
    """The dialogue model failed or did not answer in time."""


class ExtractionParseError(ProcurementCallError):
    """The termination marker was present but its payload was malformed."""


class IllegalTransitionError(ProcurementCallError):
    def __init__(self, status, event) -> None:
        super().__init__(f"Illegal transition: {event} while {status}")
        self.status = status
        self.event = event
