"""Results feed HTTP client.

Downloads the published results CSV with httpx and hands the body to the
parser. Transport and HTTP failures surface as ``FetchError``; a bad row
surfaces as ``MalformedRecordError`` so the caller can tell them apart.
"""

from collections.abc import Sequence
from urllib.parse import urlparse

import httpx
from loguru import logger

from results_api.lib.results_feed.parser import ResultRecord, parse_results_csv


class FetchError(Exception):
    """Raised when fetching the results feed fails."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def validate_url_domain(url: str, allowed_domains: Sequence[str]) -> None:
    """Check the feed URL's scheme and, when an allowlist is configured, its host.

    Args:
        url: The feed URL.
        allowed_domains: Lowercase hostnames the feed may live on. An empty
            sequence allows any host.

    Raises:
        FetchError: If the scheme is unsupported, the host is missing, or
            the host is not on a non-empty allowlist.
    """
    parsed = urlparse(url)

    if parsed.scheme not in ("http", "https"):
        msg = f"Unsupported URL scheme '{parsed.scheme}'"
        raise FetchError(msg)

    hostname = (parsed.hostname or "").lower()
    if not hostname:
        msg = "URL must include a hostname"
        raise FetchError(msg)

    if allowed_domains and hostname not in allowed_domains:
        msg = f"Domain '{hostname}' is not in the allowed domains list"
        raise FetchError(msg)


async def fetch_results_csv(
    url: str,
    timeout: float = 30.0,
    *,
    allowed_domains: Sequence[str] = (),
    skip_malformed: bool = False,
) -> list[ResultRecord]:
    """Fetch and parse the results CSV.

    Args:
        url: The CSV feed URL.
        timeout: HTTP request timeout in seconds.
        allowed_domains: Optional host allowlist (see :func:`validate_url_domain`).
        skip_malformed: Drop invalid rows instead of failing the batch.

    Returns:
        Validated records in feed order.

    Raises:
        FetchError: If the HTTP request fails, including any redirect response.
        MalformedRecordError: If the body is not a usable CSV, or a row fails
            validation and rows are not skipped.
    """
    validate_url_domain(url, allowed_domains)

    try:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=False) as client:
            logger.debug("Fetching results feed from {}", url)
            response = await client.get(url)
            response.raise_for_status()
    except httpx.TimeoutException as exc:
        msg = f"Timeout fetching results feed from {url}"
        logger.error(msg)
        raise FetchError(msg) from exc
    except httpx.HTTPStatusError as exc:
        msg = f"HTTP {exc.response.status_code} fetching results feed from {url}"
        logger.error(msg)
        raise FetchError(msg, status_code=exc.response.status_code) from exc
    except httpx.HTTPError as exc:
        msg = f"HTTP error fetching results feed from {url}: {exc}"
        logger.error(msg)
        raise FetchError(msg) from exc

    records = parse_results_csv(response.text, skip_malformed=skip_malformed)
    logger.info("Fetched {} result rows from {}", len(records), url)
    return records
