"""CLI commands for development utilities.

Provides command-line tools for local development:
- Checking that PostgreSQL and Redis are reachable
- Applying the database migrations
- Seeding sample identities for manual testing

Usage:
    safereport dev check
    safereport dev migrate [--revision REV]
    safereport dev seed
"""

import asyncio
import sys
from pathlib import Path

import click
from sqlalchemy import text

from ..config import get_settings
from ..db import close_all_connections, get_db_session, get_redis
from ..reports.resolution import hash_contact_address

# backend/alembic.ini in the source tree
ALEMBIC_INI = Path(__file__).resolve().parents[3] / "alembic.ini"

SAMPLE_ORGANIZATION = "org-sample"

# (uin, contact address, username, display name)
SAMPLE_PEOPLE = [
    ("1001", "jane.doe@example.org", "jane", "Jane Doe"),
    ("1002", "sam.lee@example.org", "sam.lee", "Sam Lee"),
    ("1003", "alex.kim@example.org", "alex_k", "Alex Kim"),
    ("1004", "reporter@example.org", "reporter", "Riley Reporter"),
    ("1005", "morgan.shaw@example.org", "m-shaw", "Morgan Shaw"),
]


@click.group(name="dev")
def cli():
    """Development utility commands."""
    pass


async def check_postgres() -> tuple[bool, str]:
    """Check PostgreSQL connectivity and whether the schema is migrated."""
    try:
        async with get_db_session() as session:
            result = await session.execute(
                text("SELECT to_regclass('public.reports') IS NOT NULL")
            )
            migrated = bool(result.scalar())
    except Exception as e:
        return False, str(e)
    return True, "schema present" if migrated else "connected, schema not migrated"


async def check_redis() -> tuple[bool, str]:
    """Check Redis connectivity (rate limits and the Celery broker)."""
    try:
        client = await get_redis()
        pong = await client.ping()
    except Exception as e:
        return False, str(e)
    if not pong:
        return False, "No PONG response"
    return True, "PONG received"


@cli.command("check")
def check():
    """Check that PostgreSQL and Redis are reachable."""

    async def _check() -> list[tuple[str, bool, str]]:
        try:
            return [
                ("PostgreSQL", *await check_postgres()),
                ("Redis", *await check_redis()),
            ]
        finally:
            await close_all_connections()

    results = asyncio.run(_check())

    for name, ok, message in results:
        mark = click.style("[OK]", fg="green") if ok else click.style("[FAIL]", fg="red")
        click.echo(f"  {mark} {name}: {message}")

    if not all(ok for _, ok, _ in results):
        click.echo("")
        click.echo("Check POSTGRES_* and REDIS_URL in .env", err=True)
        sys.exit(1)


@cli.command("migrate")
@click.option("--revision", "-r", default="head", help="Target revision")
def migrate(revision: str):
    """Apply database migrations up to REVISION."""
    from alembic import command
    from alembic.config import Config

    click.echo(f"Migrating database to {revision}...")
    command.upgrade(Config(str(ALEMBIC_INI)), revision)
    click.echo("Migrations applied.")


async def seed_sample_people() -> int:
    """Insert the sample identities and directory entries.

    Existing rows are left alone, so seeding twice is harmless.

    Returns:
        Number of people seeded
    """
    salt = get_settings().identity_hash_salt

    async with get_db_session() as session:
        for uin, address, username, display_name in SAMPLE_PEOPLE:
            await session.execute(
                text("""
                    INSERT INTO identity_mapping (uin, email_hash, username)
                    VALUES (:uin, :email_hash, :username)
                    ON CONFLICT (uin) DO NOTHING
                """),
                {
                    "uin": uin,
                    "email_hash": hash_contact_address(address, salt),
                    "username": username,
                },
            )
            await session.execute(
                text("""
                    INSERT INTO public_directory (uin, display_name, username, organization_id)
                    VALUES (:uin, :display_name, :username, :organization_id)
                    ON CONFLICT (uin) DO NOTHING
                """),
                {
                    "uin": uin,
                    "display_name": display_name,
                    "username": username,
                    "organization_id": SAMPLE_ORGANIZATION,
                },
            )

    return len(SAMPLE_PEOPLE)


@cli.command("seed")
def seed():
    """Load sample identities for manual testing."""

    async def _seed() -> int:
        try:
            return await seed_sample_people()
        finally:
            await close_all_connections()

    count = asyncio.run(_seed())

    click.echo(f"Seeded {count} people into {SAMPLE_ORGANIZATION}.")
    click.echo("")
    click.echo("Submit a report as reporter@example.org:")
    click.echo(
        f"  safereport report submit -e reporter@example.org -o {SAMPLE_ORGANIZATION} -t verbal \\\n"
        "    -c \"@[Jane Doe](1001) and @sam.lee shouted at me\""
    )
