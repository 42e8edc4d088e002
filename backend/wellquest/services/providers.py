from __future__ import annotations

import enum
import logging
import math
from pathlib import Path
from typing import Any, Protocol

import httpx

from wellquest.core.config import settings
from wellquest.services.rows import Row, parse_csv


log = logging.getLogger(__name__)

DEFAULT_API_TIMEOUT_SECONDS = 30.0


class DataSourceType(str, enum.Enum):
    mock_csv = "mock_csv"
    google_sheets = "google_sheets"
    api = "api"


class DataSourceError(Exception):
    pass


class QuestDataProvider(Protocol):
    source_type: DataSourceType
    url: str

    def fetch_rows(self) -> list[Row]: ...


def _http_get(url: str, *, headers: dict[str, str] | None = None, timeout_seconds: float = DEFAULT_API_TIMEOUT_SECONDS) -> httpx.Response:
    timeout = httpx.Timeout(connect=min(5.0, timeout_seconds), read=timeout_seconds, write=timeout_seconds, pool=timeout_seconds)
    try:
        with httpx.Client(timeout=timeout, follow_redirects=True) as client:
            r = client.get(url, headers=headers or {})
    except httpx.TimeoutException as e:
        raise DataSourceError(f"request timed out after {timeout_seconds}s") from e
    except httpx.HTTPError as e:
        raise DataSourceError(f"request failed: {type(e).__name__}") from e

    if r.status_code >= 400:
        raise DataSourceError(f"http_{r.status_code}")
    return r


class MockCSVProvider:
    """Local CSV file, or a URL when the path looks like one."""

    source_type = DataSourceType.mock_csv

    def __init__(self, url: str):
        self.url = url

    def fetch_rows(self) -> list[Row]:
        if not self.url:
            raise DataSourceError("no data source url")
        if self.url.startswith(("http://", "https://")):
            return parse_csv(_http_get(self.url).text)
        try:
            text = Path(self.url).read_text(encoding="utf-8")
        except OSError as e:
            raise DataSourceError(f"cannot read {self.url}: {e}") from e
        return parse_csv(text)


class GoogleSheetsProvider:
    source_type = DataSourceType.google_sheets

    def __init__(self, url: str, *, timeout_seconds: float | None = None):
        self.url = url
        self.timeout_seconds = float(timeout_seconds or settings.api_timeout_seconds)

    def fetch_rows(self) -> list[Row]:
        if not self.url:
            raise DataSourceError("no data source url")
        r = _http_get(self.url, timeout_seconds=self.timeout_seconds)
        return parse_csv(r.text)


def _is_task_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    # json accepts NaN and Infinity.
    return isinstance(value, float) and math.isfinite(value)


def _is_valid_api_item(item: Any) -> bool:
    return (
        isinstance(item, dict)
        and isinstance(item.get("email"), str)
        and isinstance(item.get("name"), str)
        and isinstance(item.get("picture"), str)
        and _is_task_number(item.get("taskNumber"))
    )


class APIProvider:
    """JSON array endpoint whose items are already evaluated.

    Items are turned into rows with the configured email/name/points
    columns plus ``taskNumber`` and ``picture``.
    """

    source_type = DataSourceType.api

    def __init__(self, url: str, *, headers: dict[str, str] | None = None, timeout_seconds: float | None = None):
        self.url = url
        self.headers = {"Content-Type": "application/json", **(headers or {})}
        self.timeout_seconds = float(timeout_seconds or settings.api_timeout_seconds or DEFAULT_API_TIMEOUT_SECONDS)

    def fetch_rows(self) -> list[Row]:
        if not self.url:
            raise DataSourceError("no api endpoint")

        log.info("fetching quest data from %s", self.url)
        r = _http_get(self.url, headers=self.headers, timeout_seconds=self.timeout_seconds)
        try:
            payload = r.json()
        except ValueError as e:
            raise DataSourceError("api response is not json") from e

        if not isinstance(payload, list):
            raise DataSourceError("api response is not an array")

        rows: list[Row] = []
        for item in payload:
            if not _is_valid_api_item(item):
                log.warning("skipping invalid api item: %r", item)
                continue
            rows.append(
                {
                    settings.csv_email_column: item["email"],
                    settings.csv_name_column: item["name"],
                    settings.csv_social_points_column: item.get("socialNetworkPoint"),
                    "taskNumber": int(item["taskNumber"]),
                    "picture": item["picture"],
                }
            )

        log.info("fetched %s api records (%s invalid items filtered)", len(rows), len(payload) - len(rows))
        return rows


def create_provider(
    source_type: DataSourceType | str,
    url: str,
    *,
    headers: dict[str, str] | None = None,
    timeout_seconds: float | None = None,
) -> QuestDataProvider:
    try:
        kind = DataSourceType(str(getattr(source_type, "value", source_type)).strip().lower())
    except ValueError as e:
        raise DataSourceError(f"unsupported data source type: {source_type}") from e

    if kind == DataSourceType.google_sheets:
        return GoogleSheetsProvider(url, timeout_seconds=timeout_seconds)
    if kind == DataSourceType.api:
        return APIProvider(url, headers=headers, timeout_seconds=timeout_seconds)
    return MockCSVProvider(url)


def resolve_data_source() -> tuple[DataSourceType, str]:
    """Pick the source from settings: dev mock, then the sheet, then explicit."""
    if settings.dev_mode:
        log.info("dev mode, using mock csv data")
        return DataSourceType.mock_csv, settings.mock_csv_path

    if settings.google_sheet_url:
        return DataSourceType.google_sheets, settings.google_sheet_url

    try:
        kind = DataSourceType(str(settings.data_source_type or "").strip().lower())
    except ValueError as e:
        raise DataSourceError(f"unsupported data source type: {settings.data_source_type}") from e

    if kind == DataSourceType.mock_csv:
        return kind, settings.data_source_url or settings.mock_csv_path
    if not settings.data_source_url:
        raise DataSourceError(f"DATA_SOURCE_URL is required for {kind.value}")
    return kind, settings.data_source_url


def default_headers() -> dict[str, str]:
    raw = str(settings.api_auth_header or "").strip()
    if not raw:
        return {}
    return {"Authorization": raw}
