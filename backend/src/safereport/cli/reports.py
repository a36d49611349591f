"""CLI commands for confidential incident reports.

Provides commands for report submission, status lookup and an offline
preview of how a narrative would be anonymized.
"""

import asyncio
import json
import sys

import click

from ..reports.anonymize import assign_aliases, get_anonymization_engine
from ..reports.errors import ReportError
from ..reports.extraction import get_mention_extractor
from ..reports.models import IncidentType, SubmitReportRequest
from ..reports.resolution import ResolvedMention


@click.group("report")
def report_group() -> None:
    """Submit and track incident reports."""
    pass


@report_group.command("submit")
@click.option("--email", "-e", required=True, help="Reporter contact address")
@click.option("--org", "-o", "organization_id", required=True, help="Organization identifier")
@click.option(
    "--type",
    "-t",
    "incident_type",
    required=True,
    type=click.Choice([t.value for t in IncidentType]),
    help="Incident type",
)
@click.option("--content", "-c", help="Narrative text (read from stdin if omitted)")
@click.option("--relief", "-r", multiple=True, help="Interim relief option id (repeatable)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def submit_report(
    email: str,
    organization_id: str,
    incident_type: str,
    content: str | None,
    relief: tuple[str, ...],
    as_json: bool,
) -> None:
    """Submit a report and print its case token."""
    from ..db import close_all_connections
    from ..reports.alerts import get_alert_dispatcher
    from ..reports.submission import get_submission_orchestrator

    if content is None:
        content = click.get_text_stream("stdin").read()

    request = SubmitReportRequest(
        email=email,
        content=content,
        incident_type=incident_type,
        interim_relief=list(relief),
        organization_id=organization_id,
    )

    async def _submit() -> None:
        try:
            receipt = await get_submission_orchestrator().submit(request)
        except ReportError as e:
            click.echo(f"Error: {e.message}", err=True)
            sys.exit(1)
        finally:
            await get_alert_dispatcher().drain()
            await close_all_connections()

        if as_json:
            click.echo(json.dumps(receipt.model_dump(mode="json"), indent=2))
        else:
            click.echo("Report submitted successfully")
            click.echo(f"  Case token: {receipt.case_token}")
            click.echo(f"  Created: {receipt.created_at}")
            click.echo("")
            click.echo("Keep the case token. It is the only way to check this report.")

    asyncio.run(_submit())


@report_group.command("status")
@click.argument("case_token")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def report_status(case_token: str, as_json: bool) -> None:
    """Get report status by case token."""
    from ..db import close_all_connections
    from ..reports.status import get_status_query

    async def _status() -> None:
        try:
            status = await get_status_query().get_status(case_token)
        except ReportError as e:
            click.echo(f"Error: {e.message}", err=True)
            sys.exit(1)
        finally:
            await close_all_connections()

        if as_json:
            click.echo(json.dumps(status.model_dump(mode="json"), indent=2))
        else:
            click.echo(f"Report: {case_token}")
            click.echo(f"  Status: {status.status}")
            click.echo(f"  Type: {status.incident_type}")
            click.echo(f"  Created: {status.created_at}")
            if status.closed_at:
                click.echo(f"  Closed: {status.closed_at}")

    asyncio.run(_status())


@report_group.command("preview")
@click.argument("text")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def preview_report(text: str, as_json: bool) -> None:
    """Show the mentions found in TEXT and how it would be anonymized.

    Runs offline: every candidate is treated as resolved, so the output
    shows the most that could be replaced.
    """
    mentions = get_mention_extractor().extract(text)
    assignment = assign_aliases(
        ResolvedMention(mention=m, internal_id=m.key) for m in mentions.candidates
    )
    anonymized = get_anonymization_engine().anonymize(text, assignment)

    if as_json:
        data = {
            "mentions": [
                {
                    "source_format": entry.source_format.value,
                    "key": entry.key,
                    "label": entry.label,
                }
                for entry in assignment
            ],
            "anonymized": anonymized,
        }
        click.echo(json.dumps(data, indent=2))
        return

    if mentions.is_empty:
        click.echo("No mentions found.")
        return

    click.echo(f"Mentions ({len(assignment)}):")
    for entry in assignment:
        click.echo(f"  {entry.label}: {entry.mention.display_text} ({entry.source_format.value})")
    click.echo("")
    click.echo("Anonymized:")
    click.echo(f"  {anonymized}")
