"""Results API endpoints.

GET /results/latest — latest snapshot (cached)
GET /results/latest/by-ballot-title — latest contests grouped by ballot title
GET /results/latest/contests/{natural_id} — one contest, candidates ranked
GET /results/history — snapshot timestamps, newest first
GET /results/at?timestamp=... — snapshot written at exactly that timestamp
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from results_api.lib.snapshot_cache import ReadThroughCache
from results_api.schemas.results import BallotTitleGroup, ContestView, SnapshotView, group_by_ballot_title
from results_api.services.results_service import get_latest_snapshot_cache, get_snapshot_store
from results_api.services.snapshot_store import SnapshotStore, StoreUnavailableError

results_router = APIRouter(prefix="/results", tags=["results"])

NO_DATA_DETAIL = "No data available"
STORE_UNAVAILABLE_DETAIL = "No data available: results store unavailable"

LatestCache = Annotated[ReadThroughCache[SnapshotView], Depends(get_latest_snapshot_cache)]
Store = Annotated[SnapshotStore, Depends(get_snapshot_store)]


def _store_unavailable() -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=STORE_UNAVAILABLE_DETAIL)


async def _latest_or_404(cache: ReadThroughCache[SnapshotView], response: Response) -> SnapshotView:
    try:
        snapshot = await cache.get()
    except StoreUnavailableError as exc:
        raise _store_unavailable() from exc
    if snapshot is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NO_DATA_DETAIL)
    response.headers["Cache-Control"] = f"public, max-age={cache.ttl_seconds}"
    return snapshot


@results_router.get("/latest", response_model=SnapshotView)
async def get_latest_results(response: Response, cache: LatestCache) -> SnapshotView:
    """Latest snapshot with every contest. Public endpoint."""
    return await _latest_or_404(cache, response)


@results_router.get("/latest/by-ballot-title", response_model=list[BallotTitleGroup])
async def get_latest_by_ballot_title(response: Response, cache: LatestCache) -> list[BallotTitleGroup]:
    """Latest contests grouped by ballot title. Public endpoint."""
    snapshot = await _latest_or_404(cache, response)
    return group_by_ballot_title(snapshot)


@results_router.get("/latest/contests/{natural_id}", response_model=ContestView)
async def get_latest_contest(natural_id: int, response: Response, cache: LatestCache) -> ContestView:
    """One contest from the latest snapshot, candidates ranked by percentage. Public endpoint."""
    snapshot = await _latest_or_404(cache, response)
    contest = snapshot.contest(natural_id)
    if contest is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No data available for this contest.")
    return contest.model_copy(update={"candidates": contest.ranked_candidates()})


@results_router.get("/history", response_model=list[datetime])
async def list_snapshot_timestamps(
    store: Store,
    limit: int = Query(default=100, ge=1, le=1000, description="Maximum timestamps to return"),
) -> list[datetime]:
    """Timestamps of stored snapshots, newest first. Public endpoint."""
    try:
        return await store.list_timestamps(limit)
    except StoreUnavailableError as exc:
        raise _store_unavailable() from exc


@results_router.get("/at", response_model=SnapshotView)
async def get_results_at(
    store: Store,
    timestamp: datetime = Query(description="Exact snapshot timestamp (ISO 8601)"),
) -> SnapshotView:
    """Snapshot written at exactly ``timestamp``. Public endpoint."""
    try:
        snapshot = await store.at(timestamp)
    except StoreUnavailableError as exc:
        raise _store_unavailable() from exc
    if snapshot is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{NO_DATA_DETAIL} at {timestamp.isoformat()}",
        )
    return snapshot
