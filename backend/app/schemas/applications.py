from dataclasses import dataclass, field
from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from ..models.enums import FileType


class _CamelBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ApproveRequest(_CamelBody):
    # Kept as raw strings; the lifecycle engine owns parsing so errors name the field.
    interview_date: str | None = Field(default=None, alias="interviewDate")
    notes: str | None = None


class RejectRequest(_CamelBody):
    notes: str | None = None


class InterviewResultRequest(_CamelBody):
    result: str | None = None
    feedback: str | None = None


class StatusUpdateRequest(_CamelBody):
    status: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class Attachment:
    """One validated upload held in memory until it is relayed."""
    field: str  # "photo" | "cv"
    filename: str
    content_type: str
    data: bytes

    @property
    def file_type(self) -> str:
        return FileType.CV.value if self.field == "cv" else FileType.PHOTO.value

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class SubmissionCommand:
    full_name: str
    email: str
    position: str
    phone: str | None = None
    date_of_birth: date | None = None
    cv: Attachment | None = None
    photo: Attachment | None = None

    @property
    def attachments(self) -> list[Attachment]:
        return [a for a in (self.photo, self.cv) if a is not None]


@dataclass
class RelayResult:
    stored: dict[str, dict] = field(default_factory=dict)  # field -> public file payload
    failed: dict[str, str] = field(default_factory=dict)  # field -> reason
