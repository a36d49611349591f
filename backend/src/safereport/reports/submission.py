"""End-to-end report submission.

ReportSubmissionOrchestrator composes extraction, resolution,
anonymization and token issuance into one pass:

1. Validate required fields
2. Resolve the reporter (unregistered -> ReporterNotFoundError)
3. Extract mentions (none -> NoSubjectError)
4. Resolve mentions and assign aliases, structured before plain
5. Anonymize the narrative
6. Issue a case token
7. Persist the report in one transaction, status pending
8. Dispatch alert scheduling in the background

Nothing is written before step 7. Reporter resolution and the two
mention lookups are independent reads and run concurrently.
"""

import asyncio
import logging

from ..config import get_settings
from ..logging import get_context_logger, log_report_submitted
from .alerts import AlertDispatcher, get_alert_dispatcher
from .anonymize import (
    AliasAssignment,
    AnonymizationEngine,
    assign_aliases,
    get_anonymization_engine,
)
from .errors import (
    CaseTokenCollisionError,
    ErrorField,
    NoSubjectError,
    ReporterNotFoundError,
    ReportValidationError,
    StorageFault,
)
from .extraction.mentions import MentionExtractor, get_mention_extractor
from .models import (
    IncidentType,
    MentionPreviewItem,
    MentionPreviewResponse,
    PersistedReport,
    ReportRecord,
    ReportStatus,
    SubmissionReceipt,
    SubmitReportRequest,
    ValidatedSubmission,
)
from .resolution.identity import IdentityResolver
from .store import ReportStore, get_report_store
from .tokens import CaseTokenService, get_case_token_service

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("email", "content", "incident_type", "organization_id")


async def _gather_or_cancel(*aws):
    """Await all of ``aws`` concurrently; if one fails, cancel the rest first."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class ReportSubmissionOrchestrator:
    """Turns a raw submission into a stored, anonymized report."""

    def __init__(
        self,
        store: ReportStore,
        alerts: AlertDispatcher,
        resolver: IdentityResolver | None = None,
        extractor: MentionExtractor | None = None,
        anonymizer: AnonymizationEngine | None = None,
        tokens: CaseTokenService | None = None,
        max_token_attempts: int | None = None,
    ):
        self._store = store
        self._alerts = alerts
        self._resolver = resolver or IdentityResolver(store)
        self._extractor = extractor or get_mention_extractor()
        self._anonymizer = anonymizer or get_anonymization_engine()
        self._tokens = tokens or get_case_token_service()
        self._max_token_attempts = (
            max_token_attempts or get_settings().case_token_max_attempts
        )

    def validate(self, request: SubmitReportRequest) -> ValidatedSubmission:
        """Check required fields and the incident type.

        Raises:
            ReportValidationError: A field is missing or invalid
        """
        missing = [
            ErrorField(name, "This field is required")
            for name in REQUIRED_FIELDS
            if not (getattr(request, name) or "").strip()
        ]
        if missing:
            raise ReportValidationError("Missing required fields", missing)

        try:
            incident_type = IncidentType(request.incident_type)
        except ValueError:
            allowed = ", ".join(t.value for t in IncidentType)
            raise ReportValidationError(
                "Invalid incident type",
                [ErrorField("incident_type", f"Must be one of: {allowed}")],
            )

        relief: list[str] = []
        for option in request.interim_relief or []:
            if not option.strip():
                raise ReportValidationError(
                    "Invalid interim relief option",
                    [ErrorField("interim_relief", "Option ids must be non-empty strings")],
                )
            if option not in relief:
                relief.append(option)

        return ValidatedSubmission(
            email=request.email,
            content=request.content,
            incident_type=incident_type,
            interim_relief=relief,
            organization_id=request.organization_id.strip(),
        )

    async def submit(self, request: SubmitReportRequest) -> SubmissionReceipt:
        """Run the full submission flow.

        Returns:
            The case token and creation time, nothing else

        Raises:
            ReportValidationError: Invalid input
            ReporterNotFoundError: Contact address is not registered
            NoSubjectError: No mention in the narrative resolved
            StorageFault: Reporter lookup or persistence failed
        """
        submission = self.validate(request)
        log = get_context_logger(__name__, organization_id=submission.organization_id)

        mentions = self._extractor.extract(submission.content)

        if mentions.is_empty:
            # Reporter status still takes precedence over the missing subject.
            if await self._resolver.resolve_reporter(submission.email) is None:
                raise ReporterNotFoundError()
            raise NoSubjectError()

        reporter_uin, resolved = await _gather_or_cancel(
            self._resolver.resolve_reporter(submission.email),
            self._resolver.resolve_mentions(mentions),
        )
        if reporter_uin is None:
            raise ReporterNotFoundError()

        assignment = assign_aliases(resolved)
        if not assignment:
            log.info(f"None of {len(mentions.candidates)} mentions resolved")
            raise NoSubjectError(
                "None of the mentioned people could be found. "
                "Please @mention the person you are reporting."
            )

        content = self._anonymizer.anonymize(submission.content, assignment)

        report = await self._persist(submission, reporter_uin, assignment, content)

        log_report_submitted(
            report_id=str(report.id),
            organization_id=submission.organization_id,
            subject_count=len(assignment.subject_uins),
            incident_type=submission.incident_type.value,
        )

        self._alerts.dispatch(report.id, submission.organization_id, report.created_at)

        return SubmissionReceipt(case_token=report.case_token, created_at=report.created_at)

    async def _persist(
        self,
        submission: ValidatedSubmission,
        reporter_uin: str,
        assignment: AliasAssignment,
        content: str,
    ) -> PersistedReport:
        """Insert the report, drawing a fresh token on each collision."""
        for attempt in range(1, self._max_token_attempts + 1):
            record = ReportRecord(
                victim_uin=reporter_uin,
                subject_uins=assignment.subject_uins,
                content=content,
                incident_type=submission.incident_type,
                interim_relief=submission.interim_relief,
                organization_id=submission.organization_id,
                case_token=self._tokens.generate(),
                status=ReportStatus.PENDING,
            )
            try:
                return await self._store.insert_report(record)
            except CaseTokenCollisionError:
                logger.warning(
                    f"Case token collision (attempt {attempt}/{self._max_token_attempts})"
                )

        raise StorageFault("Could not allocate a unique case token")

    async def preview(self, content: str) -> MentionPreviewResponse:
        """Report which mentions in a draft would resolve.

        Used by the reporting form's live check. Nothing is stored, and plain
        handles are never mapped back to the identifier they resolve to.
        """
        mentions = self._extractor.extract(content)
        resolved = await self._resolver.resolve_mentions(mentions)
        resolved_keys = {(r.source_format, r.key) for r in resolved}

        return MentionPreviewResponse(
            mentions=[
                MentionPreviewItem(
                    source_format=m.source_format,
                    key=m.key,
                    display_text=m.display_text,
                    resolved=(m.source_format, m.key) in resolved_keys,
                )
                for m in mentions.candidates
            ]
        )


_orchestrator: ReportSubmissionOrchestrator | None = None


def get_submission_orchestrator() -> ReportSubmissionOrchestrator:
    """Get the submission orchestrator singleton."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = ReportSubmissionOrchestrator(
            store=get_report_store(),
            alerts=get_alert_dispatcher(),
        )
    return _orchestrator
