"""Token-gated report status lookup.

Possession of the case token is the only credential. The token format is
checked before the store is queried, so malformed tokens never cost a
database round trip.
"""

from .errors import InvalidCaseTokenError, ReportNotFoundError
from .models import ReportStatusResponse
from .store import ReportStore, get_report_store
from .tokens import CaseTokenService, get_case_token_service


class ReportStatusQuery:
    """Reads the status of a report by case token."""

    def __init__(self, store: ReportStore, tokens: CaseTokenService | None = None):
        self._store = store
        self._tokens = tokens or get_case_token_service()

    async def get_status(self, case_token: str | None) -> ReportStatusResponse:
        """Look up a report's status.

        Raises:
            InvalidCaseTokenError: The token is malformed
            ReportNotFoundError: No report has this token
            StorageFault: The lookup failed
        """
        if not self._tokens.is_valid(case_token):
            raise InvalidCaseTokenError()

        report = await self._store.get_report_by_token(case_token)
        if report is None:
            raise ReportNotFoundError()

        return ReportStatusResponse(
            status=report.status,
            incident_type=report.incident_type,
            created_at=report.created_at,
            closed_at=report.closed_at,
        )


_status_query: ReportStatusQuery | None = None


def get_status_query() -> ReportStatusQuery:
    """Get the status query singleton."""
    global _status_query
    if _status_query is None:
        _status_query = ReportStatusQuery(get_report_store())
    return _status_query
