"""Snapshot store — append-only, versioned persistence of results snapshots.

The only way in or out of the snapshot tables. Each operation checks a
session out of the pooled session factory for its own duration; writes
run inside a single transaction so readers see either the complete
previous snapshot or the complete new one.
"""

import uuid
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

from loguru import logger
from sqlalchemy import Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from results_api.lib.results_feed.normalizer import ContestTree
from results_api.models.snapshot import CandidateRecord, ContestRecord, DistrictRecord, Snapshot
from results_api.schemas.results import SnapshotView


# asyncpg connect failures (refused, unreachable host) surface as OSError, unwrapped by SQLAlchemy
_STORE_ERRORS = (SQLAlchemyError, OSError)


class StoreUnavailableError(Exception):
    """Raised when the snapshot store cannot be read."""


class SnapshotWriteError(Exception):
    """Raised when a snapshot could not be written; nothing from it was kept."""


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _as_utc(timestamp: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=UTC)
    return timestamp.astimezone(UTC)


class SnapshotStore:
    """Durable snapshot persistence with latest and point-in-time reads.

    Args:
        session_factory: Async session factory bound to a pooled engine.
        clock: Returns the timestamp assigned to new snapshots.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    # --- Writes ---

    async def write_snapshot(self, contests: Sequence[ContestTree], total_votes: int) -> uuid.UUID:
        """Persist a snapshot and every district, contest, and candidate in it.

        Args:
            contests: Normalized contest trees.
            total_votes: Fingerprint computed by the change detector.

        Returns:
            The new snapshot's id.

        Raises:
            SnapshotWriteError: If any insert fails. The transaction is
                rolled back, so no rows from this attempt remain.
        """
        snapshot_id = uuid.uuid4()
        timestamp = _as_utc(self._clock())
        try:
            async with self._session_factory() as session, session.begin():
                session.add(Snapshot(id=snapshot_id, timestamp=timestamp, total_votes=total_votes))
                await session.flush()
                for position, contest in enumerate(contests):
                    await self._add_contest(session, snapshot_id, contest, position)
        except _STORE_ERRORS as exc:
            logger.error("Snapshot write rolled back: {}", exc)
            msg = f"Failed to write snapshot: {exc}"
            raise SnapshotWriteError(msg) from exc

        logger.info(
            "Wrote snapshot {} at {} ({} contests, {} total votes)",
            snapshot_id,
            timestamp.isoformat(),
            len(contests),
            total_votes,
        )
        return snapshot_id

    async def _add_contest(
        self,
        session: AsyncSession,
        snapshot_id: uuid.UUID,
        contest: ContestTree,
        position: int,
    ) -> None:
        """Insert one contest tree (district, contest, candidates) into the open transaction."""
        district = DistrictRecord(
            id=uuid.uuid4(),
            snapshot_id=snapshot_id,
            name=contest.district.name,
            percent_turnout=contest.district.percent_turnout,
            registered_voters=contest.district.registered_voters,
            ballots_counted=contest.district.ballots_counted,
            district_type=contest.district.district_type,
            district_type_subheading=contest.district.district_type_subheading,
        )
        contest_row = ContestRecord(
            id=uuid.uuid4(),
            snapshot_id=snapshot_id,
            district_id=district.id,
            natural_id=contest.natural_id,
            ballot_title=contest.ballot_title,
            sort_seq=contest.sort_seq,
            position=position,
        )
        session.add_all([district, contest_row])
        session.add_all(
            CandidateRecord(
                snapshot_id=snapshot_id,
                contest_id=contest_row.id,
                name=candidate.name,
                percentage=candidate.percentage,
                votes=candidate.votes,
                party_preference=candidate.party_preference.value,
                sort_seq=candidate.sort_seq,
                position=candidate_position,
            )
            for candidate_position, candidate in enumerate(contest.candidates)
        )
        await session.flush()

    # --- Reads ---

    @staticmethod
    def _snapshot_query() -> Select[tuple[Snapshot]]:
        return select(Snapshot).options(
            selectinload(Snapshot.contests).selectinload(ContestRecord.district),
            selectinload(Snapshot.contests).selectinload(ContestRecord.candidates),
        )

    async def _fetch_view(self, stmt: Select[tuple[Snapshot]], action: str) -> SnapshotView | None:
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                snapshot = result.scalars().first()
                if snapshot is None:
                    return None
                return SnapshotView.model_validate(snapshot)
        except _STORE_ERRORS as exc:
            logger.error("Snapshot store read failed ({}): {}", action, exc)
            msg = f"Snapshot store unavailable while reading {action}"
            raise StoreUnavailableError(msg) from exc

    async def latest(self) -> SnapshotView | None:
        """Return the most recent snapshot with all of its contests, or None if empty.

        Raises:
            StoreUnavailableError: If the store cannot be read.
        """
        stmt = self._snapshot_query().order_by(Snapshot.timestamp.desc()).limit(1)
        return await self._fetch_view(stmt, "latest snapshot")

    async def at(self, timestamp: datetime) -> SnapshotView | None:
        """Return the snapshot written at exactly ``timestamp``, or None.

        Only exact matches are returned; there is no nearest-preceding
        fallback. Naive datetimes are taken as UTC.

        Raises:
            StoreUnavailableError: If the store cannot be read.
        """
        stmt = self._snapshot_query().where(Snapshot.timestamp == _as_utc(timestamp)).limit(1)
        return await self._fetch_view(stmt, f"snapshot at {timestamp.isoformat()}")

    async def latest_total_votes(self) -> int | None:
        """Return the latest snapshot's total votes without loading its contests.

        Raises:
            StoreUnavailableError: If the store cannot be read.
        """
        stmt = select(Snapshot.total_votes).order_by(Snapshot.timestamp.desc()).limit(1)
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return result.scalars().first()
        except _STORE_ERRORS as exc:
            logger.error("Snapshot store read failed (latest total votes): {}", exc)
            msg = "Snapshot store unavailable while reading latest total votes"
            raise StoreUnavailableError(msg) from exc

    async def list_timestamps(self, limit: int = 100) -> list[datetime]:
        """Return snapshot timestamps, newest first, for use with :meth:`at`.

        Raises:
            StoreUnavailableError: If the store cannot be read.
        """
        stmt = select(Snapshot.timestamp).order_by(Snapshot.timestamp.desc()).limit(limit)
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return [_as_utc(ts) for ts in result.scalars().all()]
        except _STORE_ERRORS as exc:
            logger.error("Snapshot store read failed (timestamps): {}", exc)
            msg = "Snapshot store unavailable while listing snapshot timestamps"
            raise StoreUnavailableError(msg) from exc

    async def count(self) -> int:
        """Return the number of stored snapshots.

        Raises:
            StoreUnavailableError: If the store cannot be read.
        """
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(func.count()).select_from(Snapshot))
                return result.scalar_one()
        except _STORE_ERRORS as exc:
            logger.error("Snapshot store read failed (count): {}", exc)
            msg = "Snapshot store unavailable while counting snapshots"
            raise StoreUnavailableError(msg) from exc
