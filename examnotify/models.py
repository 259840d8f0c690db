"""
Notification data models.

Pydantic models for the notification entity and the request/response shapes
of the notification REST resource. Field names are snake_case in Python and
camelCase on the wire.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# ============================================================================
# Enumerations
# ============================================================================


class NotificationType(str, Enum):
    """Notification categories emitted by the server."""

    MISSING_SHEET = "MISSING_SHEET"
    ABSENT_STUDENT = "ABSENT_STUDENT"
    AI_CORRECTION_COMPLETE = "AI_CORRECTION_COMPLETE"
    AI_CORRECTION_STARTED = "AI_CORRECTION_STARTED"
    AI_CORRECTION_FAILED = "AI_CORRECTION_FAILED"
    MANUAL_REVIEW_REQUIRED = "MANUAL_REVIEW_REQUIRED"
    SYSTEM_ALERT = "SYSTEM_ALERT"


class NotificationPriority(str, Enum):
    """Display priority. Not enforced by the client."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class NotificationStatus(str, Enum):
    """Lifecycle state, owned by the server."""

    UNREAD = "UNREAD"
    READ = "READ"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    DISMISSED = "DISMISSED"


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )

    def to_wire(self) -> Dict[str, Any]:
        """Serialize to the camelCase JSON shape the server expects."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ============================================================================
# Notification
# ============================================================================


class Notification(_WireModel):
    """
    A server-emitted notification addressed to one recipient.

    Extra fields sent by the server are kept so that newer payloads survive a
    round trip through the client.
    """

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1, description="Unique ID; deduplication key")
    type: NotificationType
    priority: NotificationPriority = NotificationPriority.MEDIUM
    status: NotificationStatus = NotificationStatus.UNREAD
    title: str = ""
    message: str = ""
    recipient_id: Optional[str] = None
    related_entity_id: Optional[str] = None
    related_entity_type: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    read_at: Optional[datetime] = None
    acknowledged_at: Optional[datetime] = None
    dismissed_at: Optional[datetime] = None

    @field_validator("id", "recipient_id", "related_entity_id", mode="before")
    @classmethod
    def coerce_identifier(cls, v: Any) -> Any:
        # Some backends send numeric IDs
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("metadata", mode="before")
    @classmethod
    def metadata_default(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def is_urgent(self) -> bool:
        return self.priority in (NotificationPriority.HIGH, NotificationPriority.URGENT)


# ============================================================================
# Filters and Counts
# ============================================================================


class NotificationFilters(_WireModel):
    """Query filters for listing notifications."""

    type: Optional[NotificationType] = None
    priority: Optional[NotificationPriority] = None
    status: Optional[NotificationStatus] = None
    recipient_id: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None

    def to_query_params(self) -> Dict[str, str]:
        """Return only the non-empty filters, keyed by their wire names."""
        return {key: str(value) for key, value in self.to_wire().items() if value}


class NotificationCounts(_WireModel):
    """Notification counters for the current user."""

    unread: int = 0
    urgent: int = 0
    total: int = 0


# ============================================================================
# Creation payloads
# ============================================================================


class StudentExamDetails(_WireModel):
    """Details for missing-sheet and absent-student notifications."""

    student_id: str
    student_name: str
    roll_number: str
    exam_id: str
    exam_title: str
    class_name: str
    reason: str = ""


class AICorrectionDetails(_WireModel):
    """Details for an AI-correction-complete notification."""

    exam_id: str
    exam_title: str
    processed_sheets: int = Field(..., ge=0)
    average_confidence: float = Field(..., ge=0)


class NotificationCreate(_WireModel):
    """Body of a create request."""

    type: NotificationType
    priority: NotificationPriority
    title: str
    message: str
    recipient_id: Optional[str] = None
    related_entity_id: Optional[str] = None
    related_entity_type: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def missing_sheet(cls, details: StudentExamDetails) -> "NotificationCreate":
        return cls(
            type=NotificationType.MISSING_SHEET,
            priority=NotificationPriority.HIGH,
            title="Missing Answer Sheet",
            message=_student_message(details),
            related_entity_id=details.exam_id,
            related_entity_type="exam",
            metadata=_student_metadata(details),
        )

    @classmethod
    def absent_student(cls, details: StudentExamDetails) -> "NotificationCreate":
        return cls(
            type=NotificationType.ABSENT_STUDENT,
            priority=NotificationPriority.MEDIUM,
            title="Student Absent",
            message=_student_message(details),
            related_entity_id=details.exam_id,
            related_entity_type="exam",
            metadata=_student_metadata(details),
        )

    @classmethod
    def ai_correction_complete(cls, details: AICorrectionDetails) -> "NotificationCreate":
        return cls(
            type=NotificationType.AI_CORRECTION_COMPLETE,
            priority=NotificationPriority.LOW,
            title="AI Correction Complete",
            message=f"{details.exam_title} - {details.processed_sheets} sheets processed",
            related_entity_id=details.exam_id,
            related_entity_type="exam",
            metadata={
                "examTitle": details.exam_title,
                "processedSheets": details.processed_sheets,
                "averageConfidence": details.average_confidence,
            },
        )


def _student_message(details: StudentExamDetails) -> str:
    return f"{details.student_name} (Roll: {details.roll_number}) - {details.exam_title}"


def _student_metadata(details: StudentExamDetails) -> Dict[str, Any]:
    return {
        "studentName": details.student_name,
        "rollNumber": details.roll_number,
        "examTitle": details.exam_title,
        "className": details.class_name,
        "reason": details.reason,
    }
