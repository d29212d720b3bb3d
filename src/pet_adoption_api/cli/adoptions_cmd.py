"""Adoption request housekeeping: ``pet-adoption-api adoptions ...``."""

import asyncio
from datetime import UTC, datetime

import typer

adoptions_app = typer.Typer()


@adoptions_app.command("follow-ups")
def follow_ups(
    limit: int = typer.Option(100, "--limit", min=1, help="Maximum number of requests to list"),
) -> None:
    """List live adoption requests whose follow-up date has passed."""
    asyncio.run(_follow_ups(limit))


async def _follow_ups(limit: int) -> None:
    from pet_adoption_api.core.config import get_settings
    from pet_adoption_api.core.database import standalone_session
    from pet_adoption_api.services.adoption_service import list_due_follow_ups

    now = datetime.now(UTC)
    async with standalone_session(get_settings().database_url) as session:
        due = await list_due_follow_ups(session, now=now, limit=limit)

    if not due:
        typer.echo("No follow-ups due")
        return

    row = "{:<38} {:<25} {:<20} {:<20} {}"
    typer.echo(row.format("Request", "Applicant", "Status", "Due", "Overdue"))
    typer.echo("-" * 115)
    for request in due:
        follow_up = request.follow_up_date or now
        typer.echo(
            row.format(
                str(request.id),
                request.applicant_name,
                request.status,
                f"{follow_up:%Y-%m-%d %H:%M}",
                f"{(now - follow_up).days}d",
            )
        )
    typer.echo(f"\nTotal: {len(due)}")
