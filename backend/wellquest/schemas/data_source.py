from __future__ import annotations

from pydantic import BaseModel, Field


class DataSourceStatus(BaseModel):
    type: str
    url: str
    polling: bool
    polling_interval_seconds: int | None
    row_count: int
    updated_at: str | None = None
    last_error: str | None = None


class SwitchDataSourceRequest(BaseModel):
    type: str
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    polling_interval_seconds: int | None = None


class RefreshResponse(BaseModel):
    ok: bool
    row_count: int
    updated_at: str | None = None
