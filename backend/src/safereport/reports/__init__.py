"""Confidential incident reporting core.

Takes a reporter's narrative, finds the people it names, resolves them to
internal identities, replaces each reference with a SUBJECT_<n> alias and
stores the anonymized report under an unguessable case token.

Main components:
- MentionExtractor: Finds @[Name](UIN) and @handle mentions
- IdentityResolver: Resolves reporters and mentions to UINs
- AnonymizationEngine: Rewrites the narrative with alias labels
- CaseTokenService: Issues and format-checks case tokens
- ReportSubmissionOrchestrator: The end-to-end submission flow
- ReportStatusQuery: Token-gated status lookup

Usage:
    from safereport.reports import SubmitReportRequest
    from safereport.reports.submission import get_submission_orchestrator

    receipt = await get_submission_orchestrator().submit(
        SubmitReportRequest(
            email="reporter@example.org",
            content="@[Jane Doe](42) shouted at me in the hallway.",
            incident_type="verbal",
            organization_id="org-1",
        )
    )
    print(receipt.case_token)
"""

from .errors import (
    CaseTokenCollisionError,
    InvalidCaseTokenError,
    NoSubjectError,
    ReportError,
    ReporterNotFoundError,
    ReportNotFoundError,
    ReportValidationError,
    SchedulingFault,
    StorageFault,
)
from .models import (
    INTERIM_RELIEF_OPTIONS,
    IncidentType,
    MentionSourceFormat,
    ReportStatus,
    ReportStatusResponse,
    SubmissionReceipt,
    SubmitReportRequest,
)

__all__ = [
    # Models
    "INTERIM_RELIEF_OPTIONS",
    "IncidentType",
    "MentionSourceFormat",
    "ReportStatus",
    "ReportStatusResponse",
    "SubmissionReceipt",
    "SubmitReportRequest",
    # Errors
    "CaseTokenCollisionError",
    "InvalidCaseTokenError",
    "NoSubjectError",
    "ReportError",
    "ReporterNotFoundError",
    "ReportNotFoundError",
    "ReportValidationError",
    "SchedulingFault",
    "StorageFault",
]
