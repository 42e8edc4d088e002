from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from wellquest.schemas.quest import AnimationCoordinates
from wellquest.schemas.ui import PositionConfig


class UserProgress(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    name: str
    social_network_point: int = 0
    task_number: int
    picture: str | None = None


class UserInGroup(BaseModel):
    id: str
    email: str
    name: str
    social_network_point: int
    task_number: int
    image_url: str


class GroupedPosition(PositionConfig):
    users: list[UserInGroup] = Field(default_factory=list)


class FinishState(BaseModel):
    type: str = ""
    should_show: bool = False
    task_number: int = 0


class ProgressSummary(BaseModel):
    position: int
    is_at_start: bool
    has_started: bool
    has_reached_milestone: bool
    is_completed: bool
    completion_percentage: float


class RowsReport(BaseModel):
    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    valid_row_count: int = 0
    invalid_row_count: int = 0


class QuestMapResponse(BaseModel):
    quest: str
    viewer_id: str
    positions: list[GroupedPosition]
    avatar_fallback_url: str
    finish_state: FinishState
    viewer_progress: ProgressSummary | None = None
    updated_at: str | None = None


class UsersResponse(BaseModel):
    items: list[UserProgress]
    updated_at: str | None = None


class DismissFinishRequest(BaseModel):
    type: str
    task_number: int | None = None


class DismissFinishResponse(BaseModel):
    type: str
    task_number: int
    animation: AnimationCoordinates | None = None
