from __future__ import annotations

from pydantic import BaseModel


class ViewerResponse(BaseModel):
    id: str
    email: str | None
    name: str | None
    auth_mode: str


class PreferencesResponse(BaseModel):
    quest: str
    ui_theme: str
    dismissed_finish_screens: list[str]


class PreferencesUpdateRequest(BaseModel):
    quest: str | None = None
    ui_theme: str | None = None
