"""Async fetcher for the published spreadsheet CSV export."""

from __future__ import annotations

import logging

import httpx

from lead_insight.ingestion.csv_parser import ParsedSheet, parse_csv

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """The CSV export could not be retrieved (non-2xx status or network error)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def _default_url() -> str:
    from config.settings import settings

    return settings.export_url


def _default_timeout() -> float:
    from config.settings import settings

    return settings.fetch_timeout_seconds


async def fetch_csv_text(
    url: str | None = None,
    *,
    timeout: float | None = None,
    client: httpx.AsyncClient | None = None,
) -> str:
    """GET the CSV export and return its body as UTF-8 text.

    Args:
        url: Export URL. Defaults to the configured spreadsheet.
        timeout: Request timeout in seconds.
        client: Optional pre-built client (tests inject a MockTransport).

    Raises:
        FetchError: on any non-2xx response or transport failure.
    """
    url = url or _default_url()
    timeout = timeout if timeout is not None else _default_timeout()

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as own_client:
                resp = await own_client.get(url)
        else:
            resp = await client.get(url)
    except httpx.HTTPError as exc:
        logger.warning("Spreadsheet fetch failed for %s: %s", url, exc)
        raise FetchError(f"Failed to fetch spreadsheet: {exc}") from exc

    if not resp.is_success:
        logger.warning("Spreadsheet fetch returned %d for %s", resp.status_code, url)
        raise FetchError(
            f"Failed to fetch spreadsheet: {resp.status_code} {resp.reason_phrase}",
            status_code=resp.status_code,
        )

    resp.encoding = "utf-8"
    return resp.text


async def fetch_sheet(
    url: str | None = None,
    *,
    timeout: float | None = None,
    client: httpx.AsyncClient | None = None,
) -> ParsedSheet:
    """Fetch the CSV export and parse it into headers and records."""
    text = await fetch_csv_text(url, timeout=timeout, client=client)
    sheet = parse_csv(text)
    logger.info("Fetched %d records (%d columns)", len(sheet.rows), len(sheet.headers))
    return sheet
