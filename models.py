import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from utils import utc_now

class JobStatus(str, Enum):
    CONNECTING = "connecting"
    AGENT_SPEAKING = "agentSpeaking"
    LISTENING_FOR_RESPONSE = "listeningForResponse"
    PROCESSING_RESPONSE = "processingResponse"
    CALL_ENDED = "callEnded"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.CALL_ENDED, JobStatus.ERROR)


class Language(str, Enum):
    ES = "es"
    EN = "en"


class TurnRole(str, Enum):
    MODEL = "model"
    USER = "user"


class Speaker(str, Enum):
    AGENT = "agent"
    SUPPLIER = "supplier"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator = to_camel, populate_by_name = True)


class Supplier(CamelModel):
    id: str = Field(validation_alias = AliasChoices("id", "SupplierID", "supplierId"))
    name: str = Field("", validation_alias = AliasChoices("name", "SupplierName", "supplierName"))
    phone: str = Field(validation_alias = AliasChoices("phone", "PhoneNumber", "phoneNumber", "phone_number"))
    specialty: str = Field(validation_alias = AliasChoices("specialty", "Specialty"))
    contact_person: Optional[str] = Field(
        None,
        validation_alias = AliasChoices("contact_person", "ContactPerson", "contactPerson"),
        serialization_alias = "contactPerson",
    )


class Product(CamelModel):
    id: str = Field("", validation_alias = AliasChoices("id", "ProductID", "productId"))
    name: str = Field("", validation_alias = AliasChoices("name", "ProductName", "productName"))
    description_for_ai: Optional[str] = Field(
        None,
        validation_alias = AliasChoices(
            "description_for_ai", "ProductDescription_for_AI", "descriptionForAi"
        ),
        serialization_alias = "descriptionForAi",
    )
    unit_of_measure: Optional[str] = Field(
        None,
        validation_alias = AliasChoices("unit_of_measure", "UnitOfMeasure", "unitOfMeasure"),
        serialization_alias = "unitOfMeasure",
    )


class OrderItem(CamelModel):
    product: Union[Product, str]
    quantity: Optional[int] = None
    notes: Optional[str] = None

    @property
    def product_name(self) -> str:
        if isinstance(self.product, Product):
            return self.product.name or self.product.id
        return self.product

    @property
    def unit_of_measure(self) -> Optional[str]:
        if isinstance(self.product, Product):
            return self.product.unit_of_measure
        return None

    @property
    def description(self) -> Optional[str]:
        if isinstance(self.product, Product):
            return self.product.description_for_ai
        return None


class Turn(BaseModel):
    role: TurnRole
    text: str


class TranscriptEntry(CamelModel):
    speaker: Speaker
    text: str
    timestamp: datetime = Field(default_factory = utc_now)


class ExtractedData(CamelModel):
    confirmation_id: Optional[str] = None
    delivery_estimate: Optional[str] = None

    @field_validator("confirmation_id", "delivery_estimate", mode = "before")
    @classmethod
    def _stringify(cls, value):
        # モデルが数値で返すことがある
        if value is None or isinstance(value, str):
            return value
        return str(value)


class Job(BaseModel):
    id: str = Field(default_factory = lambda: uuid.uuid4().hex)
    status: JobStatus = JobStatus.CONNECTING
    supplier: Supplier
    items: List[OrderItem]
    language: Language = Language.ES
    conversation_history: List[Turn] = []
    transcript: List[TranscriptEntry] = []
    extracted_data: Optional[ExtractedData] = None
    call_provider_reference: Optional[str] = None
    has_agent_joined: bool = False
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory = utc_now)

    @property
    def conference(self) -> str:
        return f"Job_{self.id}"

    def add_agent_turn(self, text: str) -> None:
        self.conversation_history.append(Turn(role = TurnRole.MODEL, text = text))
        self.transcript.append(TranscriptEntry(speaker = Speaker.AGENT, text = text))

    def add_supplier_turn(self, text: str) -> None:
        self.conversation_history.append(Turn(role = TurnRole.USER, text = text))
        self.transcript.append(TranscriptEntry(speaker = Speaker.SUPPLIER, text = text))

    def record_extracted_data(self, data: ExtractedData) -> None:
        if self.extracted_data is not None:
            raise ValueError(f"Extracted data already recorded for job {self.id}")
        self.extracted_data = data


def conference_to_job_id(conference: str) -> Optional[str]:
    prefix, _, job_id = conference.partition("_")
    if prefix != "Job" or not job_id:
        return None
    return job_id


class JobView(CamelModel):
    """
    Point-in-time snapshot of a job for polling clients.

    A reader may catch a job between two steps of a turn, so every field
    besides id and status is allowed to be empty.
    """
    id: str
    status: JobStatus
    supplier: Supplier
    transcript: List[TranscriptEntry] = []
    extracted_data: Optional[ExtractedData] = None
    error_message: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_job(cls, job: Job) -> "JobView":
        return cls(
            id = job.id,
            status = job.status,
            supplier = job.supplier,
            transcript = [entry.model_copy() for entry in list(job.transcript)],
            extracted_data = job.extracted_data.model_copy() if job.extracted_data else None,
            error_message = job.error_message,
            created_at = job.created_at,
        )


class JobRequest(CamelModel):
    items: List[OrderItem] = []
    specialty: str = ""
    suppliers: List[Supplier] = Field(
        default_factory = list,
        validation_alias = AliasChoices("suppliers", "supplierPool", "supplier_pool"),
    )
    language: Optional[Language] = None


class JobCreatedResponse(CamelModel):
    job_id: str
    status: JobStatus


class ProviderCallState(str, Enum):
    RINGING = "ringing"
    ANSWERED = "answered"
    COMPLETED = "completed"
    CANCELED = "canceled"
    FAILED = "failed"
    NO_ANSWER = "no-answer"
    BUSY = "busy"

    @property
    def is_terminal(self) -> bool:
        return self not in (ProviderCallState.RINGING, ProviderCallState.ANSWERED)
