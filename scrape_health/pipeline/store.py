"""Record store reader: fetch every job record newer than a cutoff.

The store API returns results one page at a time:

    GET {record_store_url}/tables/{table}/records?timestamp_gt=<iso>[&cursor=<c>]
    -> {"items": [...], "next_cursor": "<c>" | null}

Pages are followed until the store stops returning a cursor.  Any failing
page aborts the whole fetch so callers never see an under-counted result.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import TypedDict

import httpx
from pydantic import ValidationError

from scrape_health.config import get_settings
from scrape_health.errors import StoreUnavailable
from scrape_health.models import JobRecord
from scrape_health.observability.metrics import STORE_PAGES_FETCHED_TOTAL

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15


class RecordPage(TypedDict):
    items: list[dict[str, object]]
    next_cursor: str | None


def _store_headers() -> dict[str, str]:
    settings = get_settings()
    headers = {"Accept": "application/json"}
    if settings.record_store_api_token:
        headers["Authorization"] = f"Bearer {settings.record_store_api_token}"
    return headers


def _parse_page(body: object) -> RecordPage:
    """Validate the envelope of one store page."""
    if not isinstance(body, dict):
        raise StoreUnavailable("Record store returned a non-object page")
    items = body.get("items", [])
    if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
        raise StoreUnavailable("Record store page has a malformed 'items' list")
    cursor = body.get("next_cursor")
    if cursor is not None and not isinstance(cursor, str):
        raise StoreUnavailable("Record store page has a non-string 'next_cursor'")
    return RecordPage(items=items, next_cursor=cursor or None)


async def _query_page(
    client: httpx.AsyncClient,
    cutoff_iso: str,
    cursor: str | None,
) -> RecordPage:
    settings = get_settings()
    url = f"{settings.record_store_url}/tables/{settings.record_store_table}/records"
    params = {"timestamp_gt": cutoff_iso}
    if cursor:
        params["cursor"] = cursor

    try:
        response = await client.get(url, headers=_store_headers(), params=params, timeout=DEFAULT_TIMEOUT_SECONDS)
        _ = response.raise_for_status()
        body: object = response.json()
    except httpx.HTTPStatusError as exc:
        raise StoreUnavailable(f"Record store returned HTTP {exc.response.status_code}") from exc
    except httpx.HTTPError as exc:
        raise StoreUnavailable(f"Cannot reach record store at {settings.record_store_url}: {exc}") from exc
    except ValueError as exc:
        raise StoreUnavailable("Record store returned invalid JSON") from exc

    return _parse_page(body)


async def fetch_recent(
    client: httpx.AsyncClient,
    hours_back: int,
    now: datetime | None = None,
) -> list[JobRecord]:
    """Return every job record whose timestamp is after ``now - hours_back``.

    Args:
        client: Shared HTTP client for the run.
        hours_back: Size of the window in hours. Must be positive.
        now: Reference time, defaults to the current UTC time.  A naive value
            is taken as UTC.

    Returns:
        All records across all pages, in store order.

    Raises:
        ValueError: If hours_back is not a positive integer.
        StoreUnavailable: If any page request fails, a page is malformed, or
            the store keeps returning cursors past the configured page cap.
    """
    if isinstance(hours_back, bool) or not isinstance(hours_back, int) or hours_back < 1:
        raise ValueError(f"hours_back must be a positive integer, got {hours_back!r}")

    settings = get_settings()
    now = now or datetime.now(tz=UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    cutoff = (now - timedelta(hours=hours_back)).astimezone(UTC)
    # Stored timestamps are millisecond-precision UTC with a "Z" suffix.
    cutoff_iso = cutoff.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    logger.info("Fetching records newer than %s from %s", cutoff_iso, settings.record_store_table)

    records: list[JobRecord] = []
    cursor: str | None = None
    for page_number in range(1, settings.record_store_max_pages + 1):
        page = await _query_page(client, cutoff_iso, cursor)
        STORE_PAGES_FETCHED_TOTAL.inc()
        try:
            records.extend(JobRecord.model_validate(item) for item in page["items"])
        except ValidationError as exc:
            raise StoreUnavailable(f"Record store page {page_number} contains an invalid record") from exc

        cursor = page["next_cursor"]
        if cursor is None:
            logger.info("Fetched %d records in %d page(s)", len(records), page_number)
            return records

    raise StoreUnavailable(
        f"Record store still returned a cursor after {settings.record_store_max_pages} pages; refusing partial result"
    )
