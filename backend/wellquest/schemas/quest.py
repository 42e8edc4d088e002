from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator


TaskType = Literal["core", "extra", "finish"]


class TaskConfig(BaseModel):
    id: int = Field(ge=0)
    label: str = Field(min_length=1)
    type: TaskType


class AnimationCoordinates(BaseModel):
    top: str
    left: str


class FinishAnimations(BaseModel):
    final_finish: AnimationCoordinates
    first_finish: AnimationCoordinates


class QuestTheme(BaseModel):
    primary: str | None = None
    secondary: str | None = None
    accent: str | None = None


class MapMarker(BaseModel):
    id: int
    label: str
    x: float = Field(ge=0, le=100)
    y: float = Field(ge=0, le=100)


class QuestMap(BaseModel):
    image: str | None = None
    markers: list[MapMarker] | None = None


class QuestRules(BaseModel):
    steps: int | None = None
    max_daily_points: int | None = None
    completion_reward: str | None = None


class QuestConfig(BaseModel):
    name: str = Field(min_length=1)
    title: str | None = None
    task_count: int = Field(gt=0)
    tasks: list[TaskConfig]
    final_task_ids: list[int]
    first_finish_task_id: int = Field(ge=0)
    final_finish_task_id: int = Field(ge=0)
    finish_animations: FinishAnimations
    theme: QuestTheme | None = None
    map: QuestMap | None = None
    rules: QuestRules | None = None

    @model_validator(mode="after")
    def _check_structure(self) -> "QuestConfig":
        if len(self.tasks) != self.task_count:
            raise ValueError("task_count must match tasks length")
        for index, task in enumerate(self.tasks):
            if task.id != index:
                raise ValueError(f"tasks[{index}].id must be {index}")
        if any(i < 0 or i >= self.task_count for i in self.final_task_ids):
            raise ValueError("final_task_ids must be within [0, task_count)")
        if self.first_finish_task_id >= self.task_count:
            raise ValueError("first_finish_task_id must be within [0, task_count)")
        if self.final_finish_task_id >= self.task_count:
            raise ValueError("final_finish_task_id must be within [0, task_count)")
        return self


class QuestConfigSummary(BaseModel):
    key: str
    name: str
    task_count: int
    first_finish_task_id: int
    final_finish_task_id: int


class QuestConfigListResponse(BaseModel):
    items: list[QuestConfigSummary]
    active: str
