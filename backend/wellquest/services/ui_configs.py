from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from wellquest.core.config import settings
from wellquest.schemas.ui import UIConfig, UIConfigLoadResult


log = logging.getLogger(__name__)

DEFAULT_THEME = "default"

_THEME_KEY_RE = re.compile(r"^[a-zA-Z0-9_-]{1,64}$")


def _themes_dir(themes_dir: str | Path | None = None) -> Path:
    return Path(themes_dir or settings.ui_themes_dir)


def _in_range(value: Any) -> bool:
    return isinstance(value, (int, float)) and 0 <= float(value) <= 100


def validate_ui_config(data: Any) -> tuple[list[str], list[str]]:
    """Structural checks the schema cannot express.

    Returns ``(errors, warnings)``. Schema errors are reported with their
    dotted path so they can be shown next to the offending field.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if not isinstance(data, dict):
        return ["root: UI config must be an object"], warnings

    try:
        cfg = UIConfig.model_validate(data)
    except ValidationError as e:
        for err in e.errors():
            path = ".".join(str(p) for p in err.get("loc") or ()) or "root"
            errors.append(f"{path}: {err.get('msg')}")
        return errors, warnings

    if not cfg.positions:
        errors.append("positions: at least one position is required")

    for index, pos in enumerate(cfg.positions):
        if pos.task_number != index:
            errors.append(f"positions[{index}].task_number: must be {index}")
        for field in ("cx_pointers", "cy_pointers", "cx_step", "cy_step"):
            if not _in_range(getattr(pos, field)):
                errors.append(f"positions[{index}].{field}: must be between 0 and 100")
        if not pos.step_icon:
            warnings.append(f"positions[{index}].step_icon: no step icon, a plain marker will be used")

    style = cfg.theme.pointer_style
    if style.max_visible_in_tooltip > style.max_before_modal:
        warnings.append("theme.pointer_style: max_visible_in_tooltip exceeds max_before_modal")
    if not style.colors:
        warnings.append("theme.pointer_style.colors: no pointer colours configured")

    if not cfg.animations:
        warnings.append("animations: no animations configured")

    return errors, warnings


def _load_file(key: str, themes_dir: Path) -> UIConfigLoadResult:
    if not _THEME_KEY_RE.match(key):
        raise ValueError(f"invalid theme key: {key!r}")

    path = themes_dir / f"{key}.json"
    data = json.loads(path.read_text(encoding="utf-8"))
    errors, warnings = validate_ui_config(data)
    for w in warnings:
        log.warning("ui theme %s: %s", key, w)

    if errors:
        for e in errors:
            log.error("ui theme %s: %s", key, e)
        return UIConfigLoadResult(key=key, config=None, is_valid=False, errors=errors, warnings=warnings, source="error")

    return UIConfigLoadResult(
        key=key,
        config=UIConfig.model_validate(data),
        is_valid=True,
        warnings=warnings,
        source="file",
    )


def load_ui_config(key: str, *, themes_dir: str | Path | None = None) -> UIConfigLoadResult:
    base = _themes_dir(themes_dir)
    key = str(key or "").strip() or DEFAULT_THEME

    try:
        result = _load_file(key, base)
    except (OSError, ValueError) as e:
        log.error("failed to load ui theme %s: %s", key, e)
        result = UIConfigLoadResult(key=key, config=None, is_valid=False, errors=[f"failed to load config: {e}"], source="error")

    if result.is_valid or key == DEFAULT_THEME:
        return result

    log.info("falling back to %s ui theme instead of %s", DEFAULT_THEME, key)
    fallback = load_ui_config(DEFAULT_THEME, themes_dir=base)
    if fallback.is_valid:
        fallback.source = "default"
    return fallback


def discover_ui_themes(*, themes_dir: str | Path | None = None) -> list[str]:
    base = _themes_dir(themes_dir)
    if not base.is_dir():
        return []
    return sorted(p.stem for p in base.glob("*.json") if _THEME_KEY_RE.match(p.stem))
