from __future__ import annotations

import io
import re
from typing import Any

import pandas as pd

from wellquest.core.config import settings
from wellquest.schemas.progress import RowsReport


Row = dict[str, Any]


def parse_csv(text: str) -> list[Row]:
    """Header-keyed rows with blank cells as ``None`` and numbers converted."""
    if not text:
        return []
    if text.startswith("\ufeff"):
        text = text[1:]

    try:
        df = pd.read_csv(io.StringIO(text), skip_blank_lines=True)
    except pd.errors.EmptyDataError:
        return []
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise ValueError(f"malformed csv: {e}") from e

    df.columns = [str(c).strip() for c in df.columns]
    df = df.dropna(how="all")
    # Blank cells come back as NaN.
    df = df.astype(object).where(df.notna(), None)
    return df.to_dict(orient="records")


def is_empty_cell(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def is_valid_email(email: Any) -> bool:
    if not isinstance(email, str):
        return False
    parts = email.strip().split("@")
    return len(parts) == 2 and bool(parts[0]) and bool(parts[1])


def extract_user_id(email: Any) -> str | None:
    if not is_valid_email(email):
        return None
    return str(email).strip().split("@")[0]


def extract_task_columns(row: Row, pattern: str | None = None) -> list[str]:
    rx = re.compile(pattern or settings.csv_task_column_pattern)
    keys = [k for k in row.keys() if rx.match(k)]
    return sorted(keys, key=_leading_number)


def _leading_number(key: str) -> int:
    m = re.match(r"^\s*(\d+)", key)
    return int(m.group(1)) if m else 0


def parse_social_network_points(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value) if value >= 0 else 0
    if isinstance(value, str):
        m = re.match(r"^\s*([+-]?\d+)", value)
        if not m:
            return 0
        n = int(m.group(1))
        return n if n >= 0 else 0
    return 0


def _validate_row(row: Row, index: int) -> tuple[list[str], list[str]]:
    errors: list[str] = []
    warnings: list[str] = []

    email = row.get(settings.csv_email_column)
    if is_empty_cell(email):
        errors.append(f"row {index}: missing required field {settings.csv_email_column}")
    elif not is_valid_email(email):
        errors.append(f"row {index}: invalid email format: {email}")

    if is_empty_cell(row.get(settings.csv_name_column)):
        warnings.append(f"row {index}: missing name, email will be used")

    return errors, warnings


def validate_rows(rows: list[Row]) -> RowsReport:
    if not rows:
        return RowsReport(is_valid=False, errors=["dataset is empty"])

    report = RowsReport(is_valid=True)
    for index, row in enumerate(rows):
        errors, warnings = _validate_row(row, index)
        if errors:
            report.invalid_row_count += 1
        else:
            report.valid_row_count += 1
        report.errors.extend(errors)
        report.warnings.extend(warnings)

    report.is_valid = not report.errors
    return report


def sanitize_row(row: Row) -> Row:
    out = dict(row)
    out[settings.csv_social_points_column] = parse_social_network_points(out.get(settings.csv_social_points_column))
    if is_empty_cell(out.get(settings.csv_name_column)):
        out[settings.csv_name_column] = out.get(settings.csv_email_column)
    return out


def process_rows(rows: list[Row]) -> tuple[list[Row], RowsReport]:
    report = validate_rows(rows)
    valid = [sanitize_row(r) for i, r in enumerate(rows) if not _validate_row(r, i)[0]]
    return valid, report
