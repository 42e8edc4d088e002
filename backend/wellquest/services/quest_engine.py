from __future__ import annotations

import logging

from wellquest.core.config import settings
from wellquest.schemas.progress import (
    FinishState,
    GroupedPosition,
    ProgressSummary,
    UserInGroup,
    UserProgress,
)
from wellquest.schemas.quest import AnimationCoordinates, QuestConfig
from wellquest.schemas.ui import PositionConfig
from wellquest.services.rows import (
    Row,
    extract_task_columns,
    extract_user_id,
    is_empty_cell,
    parse_social_network_points,
)


log = logging.getLogger(__name__)

FINISH_SCREEN_FINISH = "finish"
FINISH_SCREEN_DZEN = "dzen"

START_POSITION = 0

# Precomputed position carried by rows from the JSON API source.
ROW_TASK_NUMBER_KEY = "taskNumber"
ROW_PICTURE_KEY = "picture"


def avatar_url(user_id: str) -> str:
    base = str(settings.avatar_base_url or "").rstrip("/")
    return f"{base}/{user_id}{settings.avatar_file_extension}"


class QuestEngine:
    """Pure quest rules over one quest config and its map positions.

    Holds no snapshot state: every call takes its inputs and returns new
    objects, so the same engine is shared by all requests.
    """

    def __init__(self, quest: QuestConfig, positions: list[PositionConfig], *, avatar_fallback_url: str | None = None):
        if len(positions) != quest.task_count:
            raise ValueError(
                f"map has {len(positions)} positions but quest {quest.name!r} has {quest.task_count} tasks"
            )
        self.quest = quest
        self.positions = list(positions)
        self.avatar_fallback_url = avatar_fallback_url or settings.avatar_fallback_url

    @property
    def total_positions(self) -> int:
        return self.quest.task_count

    # -- evaluation ---------------------------------------------------------

    def count_completed_tasks(self, row: Row) -> int:
        # Any non-empty task column counts, gaps included.
        return sum(1 for key in extract_task_columns(row) if not is_empty_cell(row.get(key)))

    def calculate_task_position(self, row: Row) -> int:
        task_columns = extract_task_columns(row)
        if not task_columns and isinstance(row.get(ROW_TASK_NUMBER_KEY), (int, float)):
            # Already evaluated upstream; range is checked when grouping.
            return int(row[ROW_TASK_NUMBER_KEY])
        return self.normalize_position(self.count_completed_tasks(row))

    def evaluate_user_progress(self, row: Row) -> UserProgress | None:
        email = row.get(settings.csv_email_column)
        user_id = extract_user_id(email)
        if user_id is None:
            return None

        email = str(email).strip()
        name = row.get(settings.csv_name_column)
        picture = row.get(ROW_PICTURE_KEY)
        return UserProgress(
            id=user_id,
            email=email,
            name=str(name) if not is_empty_cell(name) else email,
            social_network_point=parse_social_network_points(row.get(settings.csv_social_points_column)),
            task_number=self.calculate_task_position(row),
            picture=str(picture) if isinstance(picture, str) and picture.strip() else None,
        )

    def evaluate_all_users_progress(self, rows: list[Row]) -> list[UserProgress]:
        users: list[UserProgress] = []
        for row in rows:
            progress = self.evaluate_user_progress(row)
            if progress is not None:
                users.append(progress)

        dropped = len(rows) - len(users)
        if dropped:
            log.info("dropped %s of %s rows without a valid email", dropped, len(rows))
        return users

    # -- positions ----------------------------------------------------------

    def is_valid_position(self, position: int) -> bool:
        return START_POSITION <= position < self.total_positions

    def normalize_position(self, position: int) -> int:
        if position < START_POSITION:
            return START_POSITION
        if position >= self.total_positions:
            return self.total_positions - 1
        return position

    def get_visible_users(self, users: list[UserProgress], viewer_id: str | None) -> list[UserProgress]:
        # Only the viewer is shown at the start, not everyone who signed up.
        return [u for u in users if u.task_number != START_POSITION or u.id == viewer_id]

    def group_users_by_position(
        self,
        users: list[UserProgress],
        viewer_id: str | None,
        positions: list[PositionConfig] | None = None,
    ) -> list[GroupedPosition]:
        source = self.positions if positions is None else positions
        grouped = [GroupedPosition(**p.model_dump(exclude={"users"}), users=[]) for p in source]

        for user in self.get_visible_users(users, viewer_id):
            n = user.task_number
            if n < 0 or n >= len(grouped):
                log.warning(
                    "user %s has invalid task number %s, valid range is 0-%s",
                    user.id,
                    n,
                    len(grouped) - 1,
                )
                continue

            grouped[n].users.append(
                UserInGroup(
                    id=user.id,
                    email=user.email,
                    name=user.name,
                    social_network_point=user.social_network_point,
                    task_number=n,
                    image_url=user.picture or avatar_url(user.id),
                )
            )

        return grouped

    def is_special_task(self, task_number: int) -> bool:
        return task_number in self.quest.final_task_ids

    def should_separate_user(self, task_number: int, user_id: str | None, viewer_id: str | None) -> bool:
        return user_id is not None and user_id == viewer_id and self.is_special_task(task_number)

    def filter_users_at_position(
        self,
        users: list[UserInGroup],
        viewer_id: str | None,
        separate: bool,
    ) -> tuple[list[UserInGroup], UserInGroup | None]:
        if not separate:
            return list(users), None
        regular = [u for u in users if u.id != viewer_id]
        viewer = next((u for u in users if u.id == viewer_id), None)
        return regular, viewer

    # -- finish screens -----------------------------------------------------

    def get_finish_state(self, task_number: int, is_viewer: bool) -> FinishState:
        if not is_viewer:
            return FinishState()

        first = self.quest.first_finish_task_id
        final = self.quest.final_finish_task_id
        if first <= task_number < final:
            return FinishState(type=FINISH_SCREEN_FINISH, should_show=True, task_number=task_number)
        if task_number == final:
            return FinishState(type=FINISH_SCREEN_DZEN, should_show=True, task_number=task_number)
        return FinishState()

    def get_finish_animation_coordinates(self, screen_type: str, task_number: int) -> AnimationCoordinates | None:
        if screen_type == FINISH_SCREEN_DZEN:
            return self.quest.finish_animations.final_finish
        if screen_type == FINISH_SCREEN_FINISH and task_number == self.quest.first_finish_task_id:
            return self.quest.finish_animations.first_finish
        return None

    def is_quest_finished(self, task_number: int) -> bool:
        return self.is_special_task(task_number)

    def get_progress_summary(self, task_number: int) -> ProgressSummary:
        position = self.normalize_position(task_number)
        max_tasks = max(1, self.total_positions - 1)
        return ProgressSummary(
            position=position,
            is_at_start=position == START_POSITION,
            has_started=position > START_POSITION,
            has_reached_milestone=position >= self.quest.first_finish_task_id,
            is_completed=position == self.quest.final_finish_task_id,
            completion_percentage=round(position / max_tasks * 100, 2),
        )
