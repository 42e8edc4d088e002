from __future__ import annotations

from pydantic import BaseModel, Field


class PositionConfig(BaseModel):
    task_title: str
    task_number: int
    cx_pointers: float
    cy_pointers: float
    cx_step: float
    cy_step: float
    step_icon: str | None = None


class UIMap(BaseModel):
    background: str
    map_svg: str
    width: str | None = None
    height: str | None = None


class PointerColor(BaseModel):
    name: str
    icons: list[str] = Field(default_factory=list)


class PointerStyle(BaseModel):
    max_visible_in_tooltip: int = 5
    max_before_modal: int = 5
    colors: list[PointerColor] = Field(default_factory=list)


class StepShadow(BaseModel):
    green: str
    purple: str
    green_threshold: int


class UIPalette(BaseModel):
    primary: str
    secondary: str
    accent: str


class UITheme(BaseModel):
    palette: UIPalette
    pointer_style: PointerStyle
    step_shadow: StepShadow


class FinishScreens(BaseModel):
    finish: str
    dzen: str


class UIConfig(BaseModel):
    name: str
    map: UIMap
    positions: list[PositionConfig]
    theme: UITheme
    finish_screens: FinishScreens
    animations: dict | None = None
    avatar_fallback_url: str | None = None


class UIConfigLoadResult(BaseModel):
    key: str
    config: UIConfig | None
    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    source: str


class UIThemeListResponse(BaseModel):
    items: list[str]
    active: str
