import pytest

from wellquest.core.config import settings
from wellquest.schemas.progress import UserProgress
from wellquest.services.quest_engine import FINISH_SCREEN_DZEN, FINISH_SCREEN_FINISH, QuestEngine, avatar_url

from conftest import make_row


def _user(user_id: str, task_number: int) -> UserProgress:
    return UserProgress(id=user_id, email=f"{user_id}@x.com", name=user_id, task_number=task_number)


def test_evaluator_counts_non_empty_task_columns(engine):
    row = {settings.csv_email_column: "a@x.com", "1.": "y", "2.": None, "3.": "y"}

    progress = engine.evaluate_user_progress(row)

    assert progress is not None
    assert progress.id == "a"
    assert progress.task_number == 2


def test_evaluator_orders_columns_numerically_and_ignores_blank_strings(engine):
    row = {settings.csv_email_column: "a@x.com", "10. x": 1, "2. y": "  ", "1. z": "done"}
    assert engine.evaluate_user_progress(row).task_number == 2


def test_evaluator_defaults_name_and_points(engine):
    row = make_row("someone@leobit.com", 2, name=None, points="-4")

    progress = engine.evaluate_user_progress(row)

    assert progress.name == "someone@leobit.com"
    assert progress.social_network_point == 0


def test_evaluator_coerces_numeric_string_points(engine):
    assert engine.evaluate_user_progress(make_row("p@x.com", 1, points="3")).social_network_point == 3
    assert engine.evaluate_user_progress(make_row("p@x.com", 1, points=2.0)).social_network_point == 2


@pytest.mark.parametrize("email", [None, "", "no-at-sign", "@x.com", "a@", "a@b@c", 42])
def test_evaluator_drops_rows_with_bad_email(engine, email):
    assert engine.evaluate_user_progress(make_row(email, 3)) is None


def test_evaluate_all_preserves_order_and_drops_invalid(engine):
    rows = [make_row("b@x.com", 1), make_row(None, 2), make_row("a@x.com", 5)]

    users = engine.evaluate_all_users_progress(rows)

    assert [u.id for u in users] == ["b", "a"]
    assert [u.task_number for u in users] == [1, 5]


def test_evaluator_clamps_to_last_position(engine):
    row = make_row("a@x.com", 20, total=20)
    assert engine.evaluate_user_progress(row).task_number == engine.total_positions - 1


def test_evaluator_uses_precomputed_task_number(engine):
    row = {settings.csv_email_column: "api@x.com", settings.csv_name_column: "Api", "taskNumber": 7, "picture": "https://img/api.png"}

    progress = engine.evaluate_user_progress(row)

    assert progress.task_number == 7
    assert progress.picture == "https://img/api.png"


def test_grouping_keeps_config_shape(engine):
    grouped = engine.group_users_by_position([_user("a", 3)], "viewer")

    assert len(grouped) == engine.total_positions
    assert [g.task_number for g in grouped] == list(range(engine.total_positions))
    assert [u.id for u in grouped[3].users] == ["a"]
    assert grouped[3].users[0].image_url == avatar_url("a")


def test_grouping_hides_non_viewers_at_start(engine):
    users = [_user("idle", 0), _user("viewer", 0), _user("busy", 4)]

    grouped = engine.group_users_by_position(users, "viewer")

    assert [u.id for u in grouped[0].users] == ["viewer"]
    assert all(u.id != "idle" for g in grouped for u in g.users)


def test_grouping_skips_out_of_range_positions(engine, caplog):
    users = [_user("neg", -1), _user("far", 99), _user("ok", 14)]

    grouped = engine.group_users_by_position(users, "viewer")

    occupants = [u.id for g in grouped for u in g.users]
    assert occupants == ["ok"]
    assert "invalid task number" in caplog.text


def test_grouping_is_idempotent(engine):
    users = [_user("a", 1), _user("b", 1), _user("viewer", 0)]

    first = engine.group_users_by_position(users, "viewer")
    second = engine.group_users_by_position(users, "viewer")

    assert [g.model_dump() for g in first] == [g.model_dump() for g in second]
    assert all(not p.model_dump().get("users") for p in engine.positions)


def test_grouping_prefers_row_picture(engine):
    user = UserProgress(id="a", email="a@x.com", name="A", task_number=2, picture="https://img/a.png")
    grouped = engine.group_users_by_position([user], None)
    assert grouped[2].users[0].image_url == "https://img/a.png"


def test_filter_users_separates_viewer_on_special_task(engine):
    grouped = engine.group_users_by_position([_user("viewer", 9), _user("x", 9)], "viewer")
    users = grouped[9].users

    assert engine.should_separate_user(9, "viewer", "viewer")
    assert not engine.should_separate_user(8, "viewer", "viewer")
    assert not engine.should_separate_user(9, "x", "viewer")

    regular, viewer = engine.filter_users_at_position(users, "viewer", True)
    assert [u.id for u in regular] == ["x"]
    assert viewer is not None and viewer.id == "viewer"

    regular, viewer = engine.filter_users_at_position(users, "viewer", False)
    assert len(regular) == 2 and viewer is None


@pytest.mark.parametrize(
    "task_number,expected_type",
    [(9, FINISH_SCREEN_FINISH), (11, FINISH_SCREEN_FINISH), (13, FINISH_SCREEN_FINISH), (14, FINISH_SCREEN_DZEN)],
)
def test_finish_state_for_viewer(engine, task_number, expected_type):
    state = engine.get_finish_state(task_number, is_viewer=True)
    assert state.should_show
    assert state.type == expected_type
    assert state.task_number == task_number


@pytest.mark.parametrize("task_number", [0, 5, 8])
def test_no_finish_state_before_first_milestone(engine, task_number):
    state = engine.get_finish_state(task_number, is_viewer=True)
    assert not state.should_show
    assert state.type == ""


@pytest.mark.parametrize("task_number", [9, 14])
def test_no_finish_state_for_other_users(engine, task_number):
    assert not engine.get_finish_state(task_number, is_viewer=False).should_show


def test_finish_animation_targets(engine, quest_config):
    anims = quest_config.finish_animations

    assert engine.get_finish_animation_coordinates(FINISH_SCREEN_DZEN, 14) == anims.final_finish
    assert engine.get_finish_animation_coordinates(FINISH_SCREEN_FINISH, 9) == anims.first_finish
    assert engine.get_finish_animation_coordinates(FINISH_SCREEN_FINISH, 11) is None
    assert engine.get_finish_animation_coordinates("", 9) is None


def test_progress_summary(engine):
    summary = engine.get_progress_summary(9)
    assert summary.has_started and summary.has_reached_milestone
    assert not summary.is_completed
    assert summary.completion_percentage == pytest.approx(64.29)

    done = engine.get_progress_summary(14)
    assert done.is_completed and done.completion_percentage == 100

    start = engine.get_progress_summary(-3)
    assert start.position == 0 and start.is_at_start and not start.has_started


def test_engine_rejects_mismatched_positions(quest_config, positions):
    with pytest.raises(ValueError):
        QuestEngine(quest_config, positions[:-1])


def test_position_helpers(engine):
    assert engine.is_valid_position(0) and engine.is_valid_position(14)
    assert not engine.is_valid_position(15) and not engine.is_valid_position(-1)
    assert engine.normalize_position(40) == 14
    assert engine.is_quest_finished(9) and engine.is_quest_finished(14)
    assert not engine.is_quest_finished(10)
