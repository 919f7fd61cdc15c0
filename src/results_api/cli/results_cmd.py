"""CLI commands for results ingestion.

Runs a single ingestion cycle on demand and prints what the store holds.
"""

import asyncio
from typing import Annotated

import typer
from loguru import logger

results_app = typer.Typer()


@results_app.command("refresh")
def refresh(
    url: Annotated[
        str | None,
        typer.Option("--url", help="Results feed URL (defaults to RESULTS_SOURCE_URL)"),
    ] = None,
) -> None:
    """Run one fetch -> detect -> persist cycle against the results feed."""
    ok = asyncio.run(_refresh_impl(url))
    if not ok:
        raise typer.Exit(code=1)


async def _refresh_impl(url: str | None) -> bool:
    """Async implementation of the refresh command."""
    from results_api.core.config import get_settings
    from results_api.core.database import dispose_engine, get_session_factory, init_engine
    from results_api.services.refresh_service import CycleStatus, build_source_fetcher, run_ingestion_cycle
    from results_api.services.snapshot_store import SnapshotStore

    settings = get_settings()
    if url:
        settings = settings.model_copy(update={"results_source_url": url})
    try:
        fetch = build_source_fetcher(settings)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        return False
    init_engine(settings.database_url, echo=False, schema=settings.database_schema)

    try:
        store = SnapshotStore(get_session_factory())
        outcome = await run_ingestion_cycle(store, fetch)
    finally:
        await dispose_engine()

    if outcome.status is CycleStatus.CHANGED:
        typer.echo(f"Wrote snapshot {outcome.snapshot_id} ({outcome.total_votes} total votes)")
    elif outcome.status is CycleStatus.UNCHANGED:
        typer.echo(f"No change ({outcome.total_votes} total votes); nothing written")
    else:
        typer.echo(f"Refresh failed: {outcome.error}", err=True)
        return False
    return True


@results_app.command("latest")
def latest() -> None:
    """Print a summary of the latest stored snapshot."""
    found = asyncio.run(_latest_impl())
    if not found:
        raise typer.Exit(code=1)


async def _latest_impl() -> bool:
    """Async implementation of the latest command."""
    from results_api.core.config import get_settings
    from results_api.core.database import dispose_engine, get_session_factory, init_engine
    from results_api.services.snapshot_store import SnapshotStore

    settings = get_settings()
    init_engine(settings.database_url, echo=False, schema=settings.database_schema)

    try:
        store = SnapshotStore(get_session_factory())
        snapshot = await store.latest()
        count = await store.count()
    finally:
        await dispose_engine()

    if snapshot is None:
        typer.echo("No data available")
        return False

    logger.debug("Store holds {} snapshot(s)", count)
    typer.echo(
        f"Snapshot {snapshot.id} at {snapshot.timestamp.isoformat()}: "
        f"{len(snapshot.contests)} contest(s), {snapshot.total_votes} total votes "
        f"({count} snapshot(s) stored)"
    )
    for contest in snapshot.contests:
        leader = contest.ranked_candidates()[0] if contest.candidates else None
        leader_text = f"{leader.name} {leader.percentage:.2f}%" if leader else "no candidates"
        typer.echo(f"  [{contest.natural_id}] {contest.ballot_title} ({contest.district.name}): {leader_text}")
    return True
