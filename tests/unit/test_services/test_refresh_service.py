"""Unit tests for the results refresh service."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from results_api.core.config import Settings
from results_api.lib.results_feed import FetchError, MalformedRecordError, parse_results_csv
from results_api.services.refresh_service import (
    CycleStatus,
    build_source_fetcher,
    results_refresh_loop,
    run_ingestion_cycle,
)
from results_api.services.snapshot_store import SnapshotStore, SnapshotWriteError, StoreUnavailableError


def _fetcher(*payloads):
    """Zero-argument async fetcher returning (or raising) each payload in turn."""
    return AsyncMock(side_effect=list(payloads))


class TestRunIngestionCycle:
    """Tests for run_ingestion_cycle() against a real store."""

    @pytest.mark.asyncio
    async def test_first_cycle_writes_snapshot(self, snapshot_store: SnapshotStore, sample_csv):
        outcome = await run_ingestion_cycle(snapshot_store, _fetcher(parse_results_csv(sample_csv)))

        assert outcome.status is CycleStatus.CHANGED
        assert outcome.total_votes == 1500
        assert outcome.snapshot_id is not None
        assert (await snapshot_store.latest()).id == outcome.snapshot_id

    @pytest.mark.asyncio
    async def test_unchanged_feed_is_a_no_op(self, snapshot_store: SnapshotStore, sample_csv):
        records = parse_results_csv(sample_csv)
        fetch = _fetcher(records, records)

        await run_ingestion_cycle(snapshot_store, fetch)
        outcome = await run_ingestion_cycle(snapshot_store, fetch)

        assert outcome.status is CycleStatus.UNCHANGED
        assert outcome.snapshot_id is None
        assert await snapshot_store.count() == 1

    @pytest.mark.asyncio
    async def test_vote_change_writes_new_snapshot(self, snapshot_store: SnapshotStore, sample_csv):
        updated_csv = sample_csv.replace(",600,", ",601,")
        fetch = _fetcher(parse_results_csv(sample_csv), parse_results_csv(updated_csv))

        await run_ingestion_cycle(snapshot_store, fetch)
        outcome = await run_ingestion_cycle(snapshot_store, fetch)

        assert outcome.status is CycleStatus.CHANGED
        assert outcome.total_votes == 1501
        assert await snapshot_store.count() == 2
        assert await snapshot_store.latest_total_votes() == 1501

    @pytest.mark.asyncio
    async def test_empty_feed_writes_empty_snapshot_once(self, snapshot_store: SnapshotStore):
        fetch = _fetcher([], [])

        first = await run_ingestion_cycle(snapshot_store, fetch)
        second = await run_ingestion_cycle(snapshot_store, fetch)

        assert first.status is CycleStatus.CHANGED
        assert first.total_votes == 0
        assert second.status is CycleStatus.UNCHANGED

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [FetchError("HTTP 503 fetching results feed", status_code=503), MalformedRecordError(4, "bad votes")],
    )
    async def test_fetch_failure_writes_nothing(self, snapshot_store: SnapshotStore, error):
        outcome = await run_ingestion_cycle(snapshot_store, _fetcher(error))

        assert outcome.status is CycleStatus.FAILED
        assert outcome.error == str(error)
        assert await snapshot_store.count() == 0

    @pytest.mark.asyncio
    async def test_store_read_failure_abandons_cycle(self, sample_csv):
        store = AsyncMock(spec=SnapshotStore)
        store.latest_total_votes.side_effect = StoreUnavailableError("down")

        outcome = await run_ingestion_cycle(store, _fetcher(parse_results_csv(sample_csv)))

        assert outcome.status is CycleStatus.FAILED
        store.write_snapshot.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_write_failure_is_reported(self, sample_csv):
        store = AsyncMock(spec=SnapshotStore)
        store.latest_total_votes.return_value = None
        store.write_snapshot.side_effect = SnapshotWriteError("rolled back")

        outcome = await run_ingestion_cycle(store, _fetcher(parse_results_csv(sample_csv)))

        assert outcome.status is CycleStatus.FAILED
        assert outcome.total_votes == 1500
        assert outcome.error == "rolled back"

    @pytest.mark.asyncio
    async def test_refused_store_connection_is_reported(self, sample_csv):
        mock_factory = MagicMock()
        mock_factory.return_value.__aenter__ = AsyncMock(side_effect=ConnectionRefusedError(111, "Connect call failed"))
        mock_factory.return_value.__aexit__ = AsyncMock(return_value=False)

        outcome = await run_ingestion_cycle(SnapshotStore(mock_factory), _fetcher(parse_results_csv(sample_csv)))

        assert outcome.status is CycleStatus.FAILED
        assert "unavailable" in outcome.error

    @pytest.mark.asyncio
    async def test_contest_id_stable_when_district_changes(self, snapshot_store: SnapshotStore, sample_csv):
        redistricted_csv = sample_csv.replace(
            ',King County,Mayor,"1000",2000,"50.00",',
            ',King County North,Mayor,"1100",2000,"55.00",',
        ).replace(",600,", ",700,")
        fetch = _fetcher(parse_results_csv(sample_csv), parse_results_csv(redistricted_csv))

        first = await run_ingestion_cycle(snapshot_store, fetch)
        second = await run_ingestion_cycle(snapshot_store, fetch)
        assert first.status is CycleStatus.CHANGED
        assert second.status is CycleStatus.CHANGED

        newer_ts, older_ts = await snapshot_store.list_timestamps()
        before = (await snapshot_store.at(older_ts)).contest(101)
        after = (await snapshot_store.at(newer_ts)).contest(101)

        assert before is not None
        assert after is not None
        assert before.district.name == "King County"
        assert before.district.percent_turnout == 50.0
        assert after.district.name == "King County North"
        assert after.district.percent_turnout == 55.0
        assert after.district.ballots_counted == 1100
        assert [c.votes for c in after.candidates] == [700, 400]


class TestBuildSourceFetcher:
    """Tests for build_source_fetcher()."""

    def test_requires_source_url(self):
        settings = Settings(database_url="sqlite+aiosqlite:///:memory:", results_source_url=None)
        with pytest.raises(ValueError, match="RESULTS_SOURCE_URL"):
            build_source_fetcher(settings)

    @pytest.mark.asyncio
    async def test_binds_settings(self, settings: Settings):
        settings = settings.model_copy(
            update={"results_allowed_domains": "results.example.com", "results_fetch_timeout": 7.5}
        )
        with patch(
            "results_api.services.refresh_service.fetch_results_csv",
            new_callable=AsyncMock,
            return_value=[],
        ) as mock_fetch:
            fetch = build_source_fetcher(settings)
            assert await fetch() == []

        mock_fetch.assert_awaited_once_with(
            "https://results.example.com/feed.csv",
            7.5,
            allowed_domains=["results.example.com"],
            skip_malformed=False,
        )


class TestResultsRefreshLoop:
    """Tests for results_refresh_loop()."""

    @pytest.mark.asyncio
    async def test_loop_runs_immediately_and_cancels(self):
        store = AsyncMock(spec=SnapshotStore)
        with (
            patch(
                "results_api.services.refresh_service.run_ingestion_cycle",
                new_callable=AsyncMock,
            ) as mock_cycle,
            patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep,
        ):
            # Make sleep raise CancelledError on second call to exit loop
            mock_sleep.side_effect = [None, asyncio.CancelledError()]

            task = asyncio.create_task(results_refresh_loop(store, AsyncMock(), interval=60))
            await task

        assert mock_cycle.await_count == 2
        mock_sleep.assert_awaited_with(60)

    @pytest.mark.asyncio
    async def test_loop_recovers_from_errors(self):
        store = AsyncMock(spec=SnapshotStore)
        with (
            patch(
                "results_api.services.refresh_service.run_ingestion_cycle",
                new_callable=AsyncMock,
                side_effect=[RuntimeError("boom"), None, None],
            ) as mock_cycle,
            patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep,
        ):
            # Three iterations: error, success, cancel
            mock_sleep.side_effect = [None, None, asyncio.CancelledError()]

            task = asyncio.create_task(results_refresh_loop(store, AsyncMock(), interval=10))
            await task

        assert mock_cycle.await_count == 3
