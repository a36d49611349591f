"""Integration tests for the report submission flow.

Tests the complete flow:
1. Validate the submission
2. Resolve the reporter and the mentioned subjects
3. Anonymize the narrative and persist it under a case token
4. Hand off alert scheduling without waiting for it

Run with: pytest backend/tests/integration/reports/test_submission_flow.py -v
"""

import asyncio

import pytest

from fixtures import FakeReportStore
from safereport.reports.errors import (
    NoSubjectError,
    ReporterNotFoundError,
    ReportValidationError,
    StorageFault,
)
from safereport.reports.models import IncidentType, MentionSourceFormat


class TestSubmissionValidation:
    """Tests for field validation before any lookup."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["email", "content", "incident_type", "organization_id"])
    async def test_missing_field(self, orchestrator, make_request, report_store, field):
        """Test that each required field is enforced with no storage access."""
        with pytest.raises(ReportValidationError) as exc_info:
            await orchestrator.submit(make_request(**{field: None}))

        assert exc_info.value.message == "Missing required fields"
        assert [f.field for f in exc_info.value.fields] == [field]
        assert report_store.total_calls == 0

    @pytest.mark.asyncio
    async def test_blank_field_counts_as_missing(self, orchestrator, make_request):
        """Test that whitespace-only values are missing."""
        with pytest.raises(ReportValidationError, match="Missing required fields"):
            await orchestrator.submit(make_request(content="   "))

    @pytest.mark.asyncio
    async def test_invalid_incident_type(self, orchestrator, make_request, report_store):
        """Test that incident types outside the enumeration are rejected."""
        with pytest.raises(ReportValidationError) as exc_info:
            await orchestrator.submit(make_request(incident_type="sexual"))

        assert exc_info.value.message == "Invalid incident type"
        assert report_store.total_calls == 0

    @pytest.mark.asyncio
    async def test_relief_options_are_deduplicated(self, orchestrator, make_request):
        """Test that relief ids keep first-seen order without repeats."""
        submission = orchestrator.validate(
            make_request(interim_relief=["transfer", "remote_work", "transfer"])
        )

        assert submission.interim_relief == ["transfer", "remote_work"]
        assert submission.incident_type == IncidentType.VERBAL

    @pytest.mark.asyncio
    async def test_blank_relief_option(self, orchestrator, make_request):
        """Test that an empty relief id is rejected."""
        with pytest.raises(ReportValidationError, match="interim relief"):
            await orchestrator.submit(make_request(interim_relief=["transfer", " "]))


class TestSuccessfulSubmission:
    """Tests for submissions that create a report."""

    @pytest.mark.asyncio
    async def test_structured_mention(self, orchestrator, make_request, report_store, token_service):
        """Test the single structured mention case end to end."""
        receipt = await orchestrator.submit(make_request())

        assert token_service.is_valid(receipt.case_token)
        (record,) = report_store.inserted
        assert record.subject_uins == ["42"]
        assert record.content == "He did this. SUBJECT_1 was there."
        assert record.victim_uin == "100"
        assert record.status == "pending"
        assert record.case_token == receipt.case_token

    @pytest.mark.asyncio
    async def test_structured_precedes_plain(self, orchestrator, make_request, report_store):
        """Test alias order and subject order with both formats."""
        await orchestrator.submit(
            make_request(content="@jane harassed me and @[John](7) watched.")
        )

        (record,) = report_store.inserted
        assert record.subject_uins == ["7", "9"]
        assert record.content == "SUBJECT_2 harassed me and SUBJECT_1 watched."

    @pytest.mark.asyncio
    async def test_unresolved_mentions_stay_verbatim(self, orchestrator, make_request, report_store):
        """Test that only resolved mentions are replaced."""
        await orchestrator.submit(
            make_request(content="@[Jane Doe](42) and @nobody and @[Ghost](999)")
        )

        (record,) = report_store.inserted
        assert record.content == "SUBJECT_1 and @nobody and @[Ghost](999)"
        assert record.subject_uins == ["42"]

    @pytest.mark.asyncio
    async def test_stored_fields(self, orchestrator, make_request, report_store):
        """Test the non-narrative fields of the stored record."""
        await orchestrator.submit(
            make_request(incident_type="physical", interim_relief=["paid_leave"], organization_id=" org-9 ")
        )

        (record,) = report_store.inserted
        assert record.incident_type == "physical"
        assert record.interim_relief == ["paid_leave"]
        assert record.organization_id == "org-9"

    @pytest.mark.asyncio
    async def test_reporter_address_is_case_insensitive(self, orchestrator, make_request):
        """Test that the reporter's address is normalized before hashing."""
        receipt = await orchestrator.submit(make_request(email="  REPORTER@example.org "))

        assert receipt.case_token.startswith("CASE-")

    @pytest.mark.asyncio
    async def test_alert_scheduling_attempted(
        self, orchestrator, make_request, alert_dispatcher, alert_scheduler, alert_observer
    ):
        """Test that alerts are handed off for the committed report."""
        receipt = await orchestrator.submit(make_request(organization_id="org-7"))
        await alert_dispatcher.drain()

        assert len(alert_observer.attempts) == 1
        ((_, organization_id, created_at),) = alert_scheduler.requests
        assert organization_id == "org-7"
        assert created_at == receipt.created_at

    @pytest.mark.asyncio
    async def test_alert_failure_does_not_fail_submission(
        self, make_orchestrator, make_request, alert_dispatcher, alert_scheduler, alert_observer
    ):
        """Test that a scheduler fault is observed but the report stands."""
        alert_scheduler.error = RuntimeError("scheduler down")
        store = FakeReportStore()

        receipt = await make_orchestrator(store).submit(make_request())
        await alert_dispatcher.drain()

        assert receipt.case_token in store.reports
        assert len(alert_observer.failures) == 1

    @pytest.mark.asyncio
    async def test_plain_lookup_fault_degrades(self, make_orchestrator, make_request):
        """Test that a failed username lookup does not block structured subjects."""
        store = FakeReportStore(failing={"lookup_by_usernames"})

        await make_orchestrator(store).submit(
            make_request(content="@jane and @[Jane Doe](42) did it")
        )

        (record,) = store.inserted
        assert record.subject_uins == ["42"]
        assert record.content == "@jane and SUBJECT_1 did it"


class TestRejectedSubmission:
    """Tests for submissions that create nothing."""

    @pytest.mark.asyncio
    async def test_unregistered_reporter(self, orchestrator, make_request, report_store, alert_observer):
        """Test that an unknown reporter is rejected and nothing is stored."""
        with pytest.raises(ReporterNotFoundError) as exc_info:
            await orchestrator.submit(make_request(email="stranger@example.org"))

        assert exc_info.value.message == "User not found. Please register first."
        assert report_store.inserted == []
        assert alert_observer.attempts == []

    @pytest.mark.asyncio
    async def test_no_mentions(self, orchestrator, make_request, report_store):
        """Test that a narrative without any @ reference is rejected."""
        with pytest.raises(NoSubjectError):
            await orchestrator.submit(make_request(content="Someone shouted at me."))

        assert report_store.inserted == []
        assert report_store.calls["lookup_by_usernames"] == 0

    @pytest.mark.asyncio
    async def test_unregistered_reporter_wins_over_no_mentions(self, orchestrator, make_request):
        """Test that the reporter check is reported first."""
        with pytest.raises(ReporterNotFoundError):
            await orchestrator.submit(
                make_request(email="stranger@example.org", content="No mentions here.")
            )

    @pytest.mark.asyncio
    async def test_no_mention_resolves(self, orchestrator, make_request, report_store):
        """Test that mentions that all fail to resolve are a missing subject."""
        with pytest.raises(NoSubjectError, match="None of the mentioned people"):
            await orchestrator.submit(make_request(content="@nobody and @[Ghost](999)"))

        assert report_store.inserted == []

    @pytest.mark.asyncio
    async def test_reporter_lookup_fault_is_fatal(self, make_orchestrator, make_request):
        """Test that a failed reporter lookup surfaces as a storage fault."""
        store = FakeReportStore(failing={"lookup_by_hash"})

        with pytest.raises(StorageFault):
            await make_orchestrator(store).submit(make_request())

        assert store.inserted == []

    @pytest.mark.asyncio
    async def test_reporter_lookup_fault_cancels_mention_lookup(self, make_orchestrator, make_request):
        """Test that a fatal reporter fault does not leave the mention lookup running."""

        class SlowUsernameStore(FakeReportStore):
            cancelled = False

            async def lookup_by_usernames(self, handles):
                try:
                    await asyncio.sleep(10)
                except asyncio.CancelledError:
                    self.cancelled = True
                    raise
                return await super().lookup_by_usernames(handles)

        store = SlowUsernameStore(failing={"lookup_by_hash"})

        with pytest.raises(StorageFault):
            await make_orchestrator(store).submit(make_request(content="@jane did it"))

        assert store.cancelled is True

    @pytest.mark.asyncio
    async def test_insert_fault_is_fatal(self, make_orchestrator, make_request, alert_observer):
        """Test that a failed insert surfaces and schedules nothing."""
        store = FakeReportStore(failing={"insert_report"})

        with pytest.raises(StorageFault):
            await make_orchestrator(store).submit(make_request())

        assert alert_observer.attempts == []


class TestCaseTokenCollisions:
    """Tests for token collision handling."""

    @pytest.mark.asyncio
    async def test_collision_retries_with_new_token(self, make_orchestrator, make_request):
        """Test that a collision draws a fresh token."""
        store = FakeReportStore(collisions=1)

        receipt = await make_orchestrator(store).submit(make_request())

        assert store.calls["insert_report"] == 2
        assert store.attempted_tokens[-1] == receipt.case_token
        assert len(store.inserted) == 1

    @pytest.mark.asyncio
    async def test_collisions_exhaust_attempts(self, make_orchestrator, make_request):
        """Test that repeated collisions surface as a storage fault."""
        store = FakeReportStore(collisions=10)

        with pytest.raises(StorageFault, match="unique case token"):
            await make_orchestrator(store, max_token_attempts=3).submit(make_request())

        assert store.calls["insert_report"] == 3
        assert store.inserted == []


class TestMentionPreview:
    """Tests for the draft mention check."""

    @pytest.mark.asyncio
    async def test_preview_marks_resolvable_mentions(self, orchestrator, report_store):
        """Test resolvability per candidate, with nothing written."""
        preview = await orchestrator.preview("@jane and @[John](7) and @nobody")

        assert [(m.source_format, m.key, m.resolved) for m in preview.mentions] == [
            (MentionSourceFormat.STRUCTURED.value, "7", True),
            ("plain", "jane", True),
            ("plain", "nobody", False),
        ]
        assert preview.has_resolvable_subject
        assert report_store.calls["insert_report"] == 0

    @pytest.mark.asyncio
    async def test_preview_without_mentions(self, orchestrator):
        preview = await orchestrator.preview("nothing to see")

        assert preview.mentions == []
        assert not preview.has_resolvable_subject
