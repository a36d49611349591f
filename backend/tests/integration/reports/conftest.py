"""Pytest fixtures for report flow integration tests."""

import pytest
import pytest_asyncio

from fixtures import REPORTER, FakeReportStore, RecordingObserver, RecordingScheduler
from safereport.reports.alerts import AlertDispatcher
from safereport.reports.models import SubmitReportRequest
from safereport.reports.resolution import IdentityResolver
from safereport.reports.status import ReportStatusQuery
from safereport.reports.submission import ReportSubmissionOrchestrator
from safereport.reports.tokens import CaseTokenService


@pytest.fixture
def token_service() -> CaseTokenService:
    return CaseTokenService(prefix="CASE")


@pytest_asyncio.fixture
async def alert_dispatcher(alert_scheduler: RecordingScheduler, alert_observer: RecordingObserver):
    """Dispatcher over the recording scheduler; drained on teardown."""
    dispatcher = AlertDispatcher(alert_scheduler, alert_observer)
    yield dispatcher
    await dispatcher.drain()


@pytest.fixture
def make_orchestrator(alert_dispatcher, token_service):
    """Build an orchestrator over a given store."""

    def _make(store: FakeReportStore, max_token_attempts: int = 3) -> ReportSubmissionOrchestrator:
        return ReportSubmissionOrchestrator(
            store=store,
            alerts=alert_dispatcher,
            resolver=IdentityResolver(store, hash_salt=""),
            tokens=token_service,
            max_token_attempts=max_token_attempts,
        )

    return _make


@pytest.fixture
def orchestrator(make_orchestrator, report_store) -> ReportSubmissionOrchestrator:
    return make_orchestrator(report_store)


@pytest.fixture
def status_query(report_store, token_service) -> ReportStatusQuery:
    return ReportStatusQuery(report_store, tokens=token_service)


@pytest.fixture
def make_request():
    """Build a valid submission, overriding any field."""

    def _make(**overrides) -> SubmitReportRequest:
        data = {
            "email": REPORTER.email,
            "content": "He did this. @[Jane Doe](42) was there.",
            "incident_type": "verbal",
            "interim_relief": ["transfer"],
            "organization_id": "org-1",
        }
        data.update(overrides)
        return SubmitReportRequest(**data)

    return _make
