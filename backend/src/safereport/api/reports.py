"""API endpoints for confidential incident reports.

Provides report submission, token-gated status lookup, and the helpers
the reporting form uses while a reporter is typing.
"""

from fastapi import APIRouter, Depends

from ..reports.errors import ReportError
from ..reports.models import (
    INTERIM_RELIEF_OPTIONS,
    InterimReliefOption,
    MentionPreviewRequest,
    MentionPreviewResponse,
    ReportStatusResponse,
    SubmitReportRequest,
    SubmitReportResponse,
)
from ..reports.status import ReportStatusQuery, get_status_query
from ..reports.submission import ReportSubmissionOrchestrator, get_submission_orchestrator
from . import report_error_to_api_error

router = APIRouter(prefix="/reports", tags=["reports"])


# =============================================================================
# Form Helpers
# =============================================================================


@router.get("/interim-relief-options", response_model=list[InterimReliefOption])
async def list_interim_relief_options() -> list[InterimReliefOption]:
    """List the interim relief options offered by the reporting form."""
    return [
        InterimReliefOption(id=option_id, label=label)
        for option_id, label in INTERIM_RELIEF_OPTIONS.items()
    ]


@router.post("/mentions/preview", response_model=MentionPreviewResponse)
async def preview_mentions(
    request: MentionPreviewRequest,
    orchestrator: ReportSubmissionOrchestrator = Depends(get_submission_orchestrator),
) -> MentionPreviewResponse:
    """Check which @mentions in a draft narrative resolve to a person."""
    return await orchestrator.preview(request.content)


# =============================================================================
# Submission and Status
# =============================================================================


@router.post("", response_model=SubmitReportResponse, status_code=201)
async def submit_report(
    request: SubmitReportRequest,
    orchestrator: ReportSubmissionOrchestrator = Depends(get_submission_orchestrator),
) -> SubmitReportResponse:
    """Submit a confidential incident report.

    The narrative is anonymized before it is stored. Only the case token
    and creation time are returned.
    """
    try:
        receipt = await orchestrator.submit(request)
    except ReportError as e:
        raise report_error_to_api_error(e) from e

    return SubmitReportResponse(
        case_token=receipt.case_token,
        created_at=receipt.created_at,
    )


@router.get("/{case_token}", response_model=ReportStatusResponse)
async def get_report_status(
    case_token: str,
    query: ReportStatusQuery = Depends(get_status_query),
) -> ReportStatusResponse:
    """Get the status of a report. The case token is the only credential."""
    try:
        return await query.get_status(case_token)
    except ReportError as e:
        raise report_error_to_api_error(e) from e
