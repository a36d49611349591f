"""Pydantic models for confidential incident reports.

This module defines the request/response shapes of the reporting API
and the record handed to the report store. Mention candidates and alias
assignments are plain dataclasses living next to the code that builds
them (extraction and anonymization); they never leave one submission.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enumerations
# =============================================================================


class IncidentType(str, Enum):
    """Category of the reported incident."""

    PHYSICAL = "physical"
    VERBAL = "verbal"
    PSYCHOLOGICAL = "psychological"


class ReportStatus(str, Enum):
    """Case status of a report.

    Only PENDING is ever written by this service; the other transitions
    belong to downstream case management, which may also use values not
    listed here. Stored and returned statuses are therefore plain strings.
    """

    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    ESCALATED = "escalated"
    CLOSED = "closed"


class MentionSourceFormat(str, Enum):
    """Syntax a subject reference was written in."""

    STRUCTURED = "structured"  # @[Display Name](12345) from autocomplete
    PLAIN = "plain"  # @handle typed by hand


# Relief options offered by the reporting form. Submissions may carry ids
# outside this list; they are stored as given.
INTERIM_RELIEF_OPTIONS: dict[str, str] = {
    "transfer": "Transfer to different department",
    "paid_leave": "Paid leave during investigation",
    "schedule_change": "Schedule/shift change",
    "remote_work": "Remote work arrangement",
    "other": "Other relief measures",
}


# =============================================================================
# Submission
# =============================================================================


class SubmitReportRequest(BaseModel):
    """Raw submission as received from the reporting form.

    Fields are deliberately loose; presence and enumeration checks happen
    in the submission orchestrator so every caller (API, CLI) gets the
    same categorized ReportValidationError.
    """

    email: str | None = Field(default=None, description="Reporter contact address")
    content: str | None = Field(default=None, description="Incident narrative")
    incident_type: str | None = Field(
        default=None, description="physical, verbal or psychological"
    )
    interim_relief: list[str] | None = Field(
        default=None, description="Requested interim relief option ids"
    )
    organization_id: str | None = Field(default=None, description="Organization identifier")


class ValidatedSubmission(BaseModel):
    """A submission that passed field validation."""

    email: str = Field(repr=False)
    content: str = Field(repr=False)
    incident_type: IncidentType
    interim_relief: list[str] = Field(default_factory=list)
    organization_id: str


class SubmissionReceipt(BaseModel):
    """What the reporter gets back: the case token and nothing else."""

    case_token: str
    created_at: datetime


class SubmitReportResponse(BaseModel):
    """API response for a successful submission."""

    message: str = "Report submitted successfully"
    case_token: str
    created_at: datetime


# =============================================================================
# Persistence
# =============================================================================


class ReportRecord(BaseModel):
    """A report ready to be written by the store."""

    victim_uin: str = Field(repr=False)
    subject_uins: list[str] = Field(default_factory=list, repr=False)
    content: str = Field(repr=False, description="Anonymized narrative")
    incident_type: IncidentType
    interim_relief: list[str] = Field(default_factory=list)
    organization_id: str
    case_token: str
    status: ReportStatus = ReportStatus.PENDING

    model_config = ConfigDict(use_enum_values=True)


class PersistedReport(BaseModel):
    """Identifiers assigned by the store on insert."""

    id: UUID
    case_token: str
    created_at: datetime


class StoredReport(BaseModel):
    """The status-relevant columns of a stored report."""

    status: str = Field(..., description="Case status, usually a ReportStatus value")
    incident_type: IncidentType
    created_at: datetime
    closed_at: datetime | None = None

    model_config = ConfigDict(use_enum_values=True)


# =============================================================================
# Status lookup
# =============================================================================


class ReportStatusResponse(BaseModel):
    """Token-gated status view of a report."""

    status: str = Field(
        ..., description="Case status: pending, under_review, escalated, closed, or a downstream value"
    )
    incident_type: IncidentType
    created_at: datetime
    closed_at: datetime | None = None

    model_config = ConfigDict(use_enum_values=True)


# =============================================================================
# Mention preview
# =============================================================================


class MentionPreviewRequest(BaseModel):
    """Narrative draft to check for resolvable mentions."""

    content: str = Field(..., max_length=100_000)


class MentionPreviewItem(BaseModel):
    """Resolvability of one extracted mention."""

    source_format: MentionSourceFormat
    key: str = Field(..., description="Internal id (structured) or lowercased handle (plain)")
    display_text: str
    resolved: bool

    model_config = ConfigDict(use_enum_values=True)


class MentionPreviewResponse(BaseModel):
    """Result of a mention preview."""

    mentions: list[MentionPreviewItem] = Field(default_factory=list)

    @property
    def has_resolvable_subject(self) -> bool:
        return any(m.resolved for m in self.mentions)


class InterimReliefOption(BaseModel):
    """A relief option offered by the reporting form."""

    id: str
    label: str
