"""Unit tests for the results feed fetcher."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from results_api.lib.results_feed.fetcher import FetchError, fetch_results_csv, validate_url_domain
from results_api.lib.results_feed.parser import MalformedRecordError

FEED_URL = "https://results.example.com/feed.csv"


def _mock_client(mock_client_cls, **get_kwargs):
    """Wire an AsyncMock httpx client into the patched AsyncClient class."""
    mock_client = AsyncMock()
    mock_client.get = AsyncMock(**get_kwargs)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client_cls.return_value = mock_client
    return mock_client


def _response(status_code: int, text: str = "") -> httpx.Response:
    return httpx.Response(status_code, text=text, request=httpx.Request("GET", FEED_URL))


class TestFetchResultsCsv:
    """Tests for fetch_results_csv()."""

    @pytest.mark.asyncio
    async def test_successful_fetch(self, sample_csv):
        with patch("results_api.lib.results_feed.fetcher.httpx.AsyncClient") as mock_client_cls:
            mock_client = _mock_client(mock_client_cls, return_value=_response(200, sample_csv))

            records = await fetch_results_csv(FEED_URL, timeout=5.0)

        assert len(records) == 3
        assert records[0].candidate_name == "Alice Able"
        mock_client.get.assert_awaited_once_with(FEED_URL)
        mock_client_cls.assert_called_once_with(timeout=5.0, follow_redirects=False)

    @pytest.mark.asyncio
    async def test_timeout_raises_fetch_error(self):
        with patch("results_api.lib.results_feed.fetcher.httpx.AsyncClient") as mock_client_cls:
            _mock_client(mock_client_cls, side_effect=httpx.TimeoutException("timeout"))

            with pytest.raises(FetchError, match="Timeout"):
                await fetch_results_csv(FEED_URL)

    @pytest.mark.asyncio
    async def test_http_404_raises_fetch_error(self):
        with patch("results_api.lib.results_feed.fetcher.httpx.AsyncClient") as mock_client_cls:
            _mock_client(mock_client_cls, return_value=_response(404))

            with pytest.raises(FetchError, match="HTTP 404") as exc_info:
                await fetch_results_csv(FEED_URL)
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_redirect_is_not_followed(self):
        redirect = httpx.Response(
            302,
            headers={"Location": "https://elsewhere.example.net/feed.csv"},
            request=httpx.Request("GET", FEED_URL),
        )
        with patch("results_api.lib.results_feed.fetcher.httpx.AsyncClient") as mock_client_cls:
            mock_client = _mock_client(mock_client_cls, return_value=redirect)

            with pytest.raises(FetchError, match="HTTP 302") as exc_info:
                await fetch_results_csv(FEED_URL)
        assert exc_info.value.status_code == 302
        mock_client.get.assert_awaited_once_with(FEED_URL)

    @pytest.mark.asyncio
    async def test_connection_error_raises_fetch_error(self):
        with patch("results_api.lib.results_feed.fetcher.httpx.AsyncClient") as mock_client_cls:
            _mock_client(mock_client_cls, side_effect=httpx.ConnectError("refused"))

            with pytest.raises(FetchError, match="HTTP error"):
                await fetch_results_csv(FEED_URL)

    @pytest.mark.asyncio
    async def test_malformed_body_raises_malformed_record_error(self, sample_csv):
        bad = sample_csv.replace(",600,", ",lots,")
        with patch("results_api.lib.results_feed.fetcher.httpx.AsyncClient") as mock_client_cls:
            _mock_client(mock_client_cls, return_value=_response(200, bad))

            with pytest.raises(MalformedRecordError):
                await fetch_results_csv(FEED_URL)

    @pytest.mark.asyncio
    async def test_skip_malformed_passes_through(self, sample_csv):
        bad = sample_csv.replace(",600,", ",lots,")
        with patch("results_api.lib.results_feed.fetcher.httpx.AsyncClient") as mock_client_cls:
            _mock_client(mock_client_cls, return_value=_response(200, bad))

            records = await fetch_results_csv(FEED_URL, skip_malformed=True)
        assert [r.candidate_name for r in records] == ["Bob Baker", "Yes"]

    @pytest.mark.asyncio
    async def test_disallowed_domain_never_requests(self):
        with patch("results_api.lib.results_feed.fetcher.httpx.AsyncClient") as mock_client_cls:
            with pytest.raises(FetchError, match="not in the allowed domains"):
                await fetch_results_csv(FEED_URL, allowed_domains=["elections.example.org"])
            mock_client_cls.assert_not_called()


class TestValidateUrlDomain:
    """Tests for validate_url_domain()."""

    def test_any_host_allowed_when_list_empty(self):
        validate_url_domain("https://anything.example.net/x.csv", [])

    def test_allowed_host_passes(self):
        validate_url_domain("https://Results.Example.com/feed.csv", ["results.example.com"])

    def test_rejects_non_http_scheme(self):
        with pytest.raises(FetchError, match="Unsupported URL scheme"):
            validate_url_domain("ftp://results.example.com/feed.csv", [])

    def test_rejects_missing_hostname(self):
        with pytest.raises(FetchError, match="hostname"):
            validate_url_domain("https:///feed.csv", [])
