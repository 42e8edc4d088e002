import pytest

from wellquest.core.config import settings
from wellquest.services.rows import (
    extract_task_columns,
    extract_user_id,
    is_valid_email,
    parse_csv,
    parse_social_network_points,
    process_rows,
    validate_rows,
)

from conftest import make_row


EMAIL = settings.csv_email_column
NAME = settings.csv_name_column
POINTS = settings.csv_social_points_column


def test_parse_csv_types_cells():
    text = "\ufeffEmail Address,1. a,2. b,Note\n" "x@y.com,1,,true\n" "z@y.com,2.5, yes ,false\n"

    rows = parse_csv(text)

    assert len(rows) == 2
    assert rows[0] == {"Email Address": "x@y.com", "1. a": 1, "2. b": None, "Note": True}
    assert rows[1]["1. a"] == 2.5
    assert rows[1]["2. b"] == " yes "
    assert rows[1]["Note"] is False


def test_parse_csv_skips_blank_rows():
    rows = parse_csv("Email Address,1. a\n" "a@b.com,1\n" ",\n" "\n" "c@d.com,2\n")

    assert [r["Email Address"] for r in rows] == ["a@b.com", "c@d.com"]
    assert rows[1]["1. a"] == 2


def test_parse_csv_empty_text():
    assert parse_csv("") == []
    assert parse_csv("Email Address,1. a\n") == []


def test_parse_csv_rejects_malformed_text():
    with pytest.raises(ValueError):
        parse_csv("Email Address,1. a\n" "a@b.com,1\n" "c@d.com,1,2,3\n")


def test_packaged_mock_csv_parses():
    with open(settings.mock_csv_path, encoding="utf-8") as f:
        rows = parse_csv(f.read())

    assert rows
    assert all(EMAIL in r for r in rows)
    assert len(extract_task_columns(rows[0])) == 14


@pytest.mark.parametrize(
    "email,ok",
    [("a@b.com", True), (" a@b.com ", True), ("a@", False), ("@b", False), ("a@b@c", False), ("", False), (None, False)],
)
def test_is_valid_email(email, ok):
    assert is_valid_email(email) is ok


def test_extract_user_id():
    assert extract_user_id("o.kovalenko@leobit.com") == "o.kovalenko"
    assert extract_user_id("broken") is None


def test_extract_task_columns_sorts_numerically():
    row = {"Email Address": "a@b.c", "10. x": 1, "2. y": 1, "1. z": 1, "Note 3.": 1}
    assert extract_task_columns(row) == ["1. z", "2. y", "10. x"]


@pytest.mark.parametrize(
    "value,expected",
    [(None, 0), (3, 3), (2.9, 2), (-1, 0), ("4", 4), ("7 likes", 7), ("abc", 0), ("-2", 0), (True, 0)],
)
def test_parse_social_network_points(value, expected):
    assert parse_social_network_points(value) == expected


def test_validate_rows_reports_errors_and_warnings():
    rows = [make_row("a@b.com", 1), make_row("", 1), make_row("bad", 1), make_row("c@d.com", 1, name=None)]

    report = validate_rows(rows)

    assert not report.is_valid
    assert report.valid_row_count == 2
    assert report.invalid_row_count == 2
    assert any("row 1: missing required field" in e for e in report.errors)
    assert any("row 2: invalid email format: bad" in e for e in report.errors)
    assert report.warnings == ["row 3: missing name, email will be used"]


def test_validate_rows_empty_dataset():
    report = validate_rows([])
    assert not report.is_valid
    assert report.errors == ["dataset is empty"]


def test_process_rows_sanitizes_valid_rows():
    rows = [make_row("a@b.com", 1, name=None, points="5"), make_row("nope", 1)]

    valid, report = process_rows(rows)

    assert len(valid) == 1
    assert valid[0][NAME] == "a@b.com"
    assert valid[0][POINTS] == 5
    assert report.invalid_row_count == 1
    assert rows[0][NAME] is None
