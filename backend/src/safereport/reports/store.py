"""Identity and report storage.

The submission core talks to storage only through the ReportStore
protocol below. SqlReportStore implements it on PostgreSQL with raw SQL
through the shared async session factory; every method is one short
transaction.

Tables (see migrations/versions/001_initial.py):
- identity_mapping: registered reporters and their usernames
- public_directory: people selectable from the mention autocomplete
- reports: submitted reports, unique on case_token
"""

from typing import Protocol, Sequence
from uuid import uuid4

from sqlalchemy import bindparam, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db import get_db_session, get_session_factory
from .errors import CaseTokenCollisionError, StorageFault
from .models import PersistedReport, ReportRecord, StoredReport


class ReportStore(Protocol):
    """Narrow storage contract used by the reporting core."""

    async def lookup_by_hash(self, email_hash: str) -> str | None:
        """Return the UIN registered for a contact-address hash."""
        ...

    async def lookup_by_usernames(self, handles: Sequence[str]) -> list[tuple[str, str]]:
        """Return (lowercased username, UIN) pairs for matching handles."""
        ...

    async def verify_identifiers(self, ids: Sequence[str]) -> list[str]:
        """Return the subset of ids present in the directory."""
        ...

    async def insert_report(self, record: ReportRecord) -> PersistedReport:
        """Insert a report atomically."""
        ...

    async def get_report_by_token(self, case_token: str) -> StoredReport | None:
        """Fetch a report by case token."""
        ...


class SqlReportStore:
    """ReportStore backed by PostgreSQL.

    Raises StorageFault for any database error, and CaseTokenCollisionError
    when an insert hits the case_token unique constraint.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None):
        self._session_factory = session_factory

    def _session(self):
        return get_db_session(self._session_factory or get_session_factory())

    async def lookup_by_hash(self, email_hash: str) -> str | None:
        try:
            async with self._session() as session:
                result = await session.execute(
                    text("SELECT uin FROM identity_mapping WHERE email_hash = :email_hash LIMIT 1"),
                    {"email_hash": email_hash},
                )
                row = result.fetchone()
        except SQLAlchemyError as e:
            raise StorageFault("Identity lookup failed") from e

        return str(row.uin) if row else None

    async def lookup_by_usernames(self, handles: Sequence[str]) -> list[tuple[str, str]]:
        if not handles:
            return []

        query = text("""
            SELECT lower(username) AS username, uin
            FROM identity_mapping
            WHERE lower(username) IN :handles
            ORDER BY uin
        """).bindparams(bindparam("handles", expanding=True))

        try:
            async with self._session() as session:
                result = await session.execute(
                    query, {"handles": [h.lower() for h in handles]}
                )
                rows = result.fetchall()
        except SQLAlchemyError as e:
            raise StorageFault("Username lookup failed") from e

        return [(row.username, str(row.uin)) for row in rows]

    async def verify_identifiers(self, ids: Sequence[str]) -> list[str]:
        if not ids:
            return []

        query = text(
            "SELECT uin FROM public_directory WHERE uin IN :ids"
        ).bindparams(bindparam("ids", expanding=True))

        try:
            async with self._session() as session:
                result = await session.execute(query, {"ids": list(ids)})
                rows = result.fetchall()
        except SQLAlchemyError as e:
            raise StorageFault("Directory lookup failed") from e

        return [str(row.uin) for row in rows]

    async def insert_report(self, record: ReportRecord) -> PersistedReport:
        try:
            async with self._session() as session:
                result = await session.execute(
                    text("""
                    INSERT INTO reports (
                        id, victim_uin, subject_uins, content, incident_type,
                        interim_relief, organization_id, case_token, status
                    ) VALUES (
                        :id, :victim_uin, :subject_uins, :content, :incident_type,
                        :interim_relief, :organization_id, :case_token, :status
                    )
                    RETURNING id, case_token, created_at
                    """),
                    {
                        "id": uuid4(),
                        "victim_uin": record.victim_uin,
                        "subject_uins": record.subject_uins,
                        "content": record.content,
                        "incident_type": record.incident_type,
                        "interim_relief": record.interim_relief,
                        "organization_id": record.organization_id,
                        "case_token": record.case_token,
                        "status": record.status,
                    },
                )
                row = result.fetchone()
        except IntegrityError as e:
            if "case_token" in str(e.orig):
                raise CaseTokenCollisionError("Case token already in use") from e
            raise StorageFault("Report insert rejected") from e
        except SQLAlchemyError as e:
            raise StorageFault("Report insert failed") from e

        return PersistedReport(id=row.id, case_token=row.case_token, created_at=row.created_at)

    async def get_report_by_token(self, case_token: str) -> StoredReport | None:
        try:
            async with self._session() as session:
                result = await session.execute(
                    text("""
                    SELECT status, incident_type, created_at, closed_at
                    FROM reports
                    WHERE case_token = :case_token
                    """),
                    {"case_token": case_token},
                )
                row = result.fetchone()
        except SQLAlchemyError as e:
            raise StorageFault("Report lookup failed") from e

        if row is None:
            return None
        return StoredReport(
            status=row.status,
            incident_type=row.incident_type,
            created_at=row.created_at,
            closed_at=row.closed_at,
        )


_store: SqlReportStore | None = None


def get_report_store() -> SqlReportStore:
    """Get the report store singleton."""
    global _store
    if _store is None:
        _store = SqlReportStore()
    return _store
