"""Refresh service — scheduled ingestion of the results feed into the snapshot store.

One ingestion cycle is fetch -> normalize -> detect change -> write a
snapshot only if the total-votes fingerprint moved. Cycle failures are
logged and abandoned; the next tick starts from scratch.
"""

import asyncio
import enum
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from loguru import logger

from results_api.core.config import Settings
from results_api.lib.results_feed import (
    FetchError,
    MalformedRecordError,
    ResultRecord,
    detect_change,
    fetch_results_csv,
    normalize_records,
)
from results_api.services.snapshot_store import SnapshotStore, SnapshotWriteError, StoreUnavailableError

SourceFetcher = Callable[[], Awaitable[list[ResultRecord]]]


class CycleStatus(enum.StrEnum):
    """Outcome of one ingestion cycle."""

    CHANGED = "changed"
    UNCHANGED = "unchanged"
    FAILED = "failed"


@dataclass(frozen=True)
class CycleOutcome:
    """What one ingestion cycle did."""

    status: CycleStatus
    total_votes: int | None = None
    snapshot_id: uuid.UUID | None = None
    error: str | None = None


def build_source_fetcher(settings: Settings) -> SourceFetcher:
    """Bind the configured feed URL and fetch options into a zero-argument fetcher.

    Raises:
        ValueError: If no results source URL is configured.
    """
    url = settings.results_source_url
    if not url:
        msg = "RESULTS_SOURCE_URL is not configured."
        raise ValueError(msg)

    async def fetch() -> list[ResultRecord]:
        return await fetch_results_csv(
            url,
            settings.results_fetch_timeout,
            allowed_domains=settings.results_allowed_domain_list,
            skip_malformed=settings.results_skip_malformed_rows,
        )

    return fetch


async def run_ingestion_cycle(store: SnapshotStore, fetch: SourceFetcher) -> CycleOutcome:
    """Run one fetch -> normalize -> detect -> persist cycle.

    Args:
        store: Snapshot store to compare against and write into.
        fetch: Zero-argument coroutine function returning parsed rows.

    Returns:
        A CycleOutcome. Fetch, parse, and store failures are reported as
        ``FAILED`` rather than raised.
    """
    try:
        records = await fetch()
    except (FetchError, MalformedRecordError) as exc:
        logger.error("Results fetch failed, abandoning cycle: {}", exc)
        return CycleOutcome(status=CycleStatus.FAILED, error=str(exc))

    contests = normalize_records(records)

    try:
        previous_total = await store.latest_total_votes()
    except StoreUnavailableError as exc:
        logger.error("Could not read latest snapshot fingerprint, abandoning cycle: {}", exc)
        return CycleOutcome(status=CycleStatus.FAILED, error=str(exc))

    decision = detect_change(contests, previous_total)
    if not decision.changed:
        logger.info("Results unchanged at {} total votes; no snapshot written", decision.total_votes)
        return CycleOutcome(status=CycleStatus.UNCHANGED, total_votes=decision.total_votes)

    try:
        snapshot_id = await store.write_snapshot(contests, decision.total_votes)
    except SnapshotWriteError as exc:
        logger.error("Snapshot write failed, will retry next cycle: {}", exc)
        return CycleOutcome(status=CycleStatus.FAILED, total_votes=decision.total_votes, error=str(exc))

    logger.info(
        "Results changed ({} -> {} total votes); wrote snapshot {}",
        previous_total,
        decision.total_votes,
        snapshot_id,
    )
    return CycleOutcome(status=CycleStatus.CHANGED, total_votes=decision.total_votes, snapshot_id=snapshot_id)


async def results_refresh_loop(
    store: SnapshotStore,
    fetch: SourceFetcher,
    interval: int,
) -> None:
    """Background asyncio loop that ingests the results feed.

    Runs a cycle immediately, then one per ``interval`` seconds. Cycles
    never overlap: a slow cycle pushes the next tick back.

    Args:
        store: Snapshot store to write into.
        fetch: Zero-argument coroutine function returning parsed rows.
        interval: Seconds to wait after a cycle finishes.
    """
    logger.info("Results refresh loop started (interval={}s)", interval)

    while True:
        try:
            await run_ingestion_cycle(store, fetch)
        except Exception:
            logger.exception("Results refresh cycle error")

        try:
            await asyncio.sleep(interval)
        except asyncio.CancelledError:
            logger.info("Results refresh loop cancelled")
            break
