from __future__ import annotations

import logging
import threading

from fastapi import HTTPException, Request

from wellquest.core.config import settings
from wellquest.services.providers import DataSourceError
from wellquest.services.quest_configs import QuestConfigError, load_quest_config
from wellquest.services.quest_data import QuestDataService, create_quest_data_service
from wellquest.services.quest_engine import QuestEngine
from wellquest.services.ui_configs import load_ui_config


log = logging.getLogger(__name__)


class QuestRuntime:
    """Process-wide quest state: engines per (quest, theme) and the data service."""

    def __init__(self, data_service: QuestDataService | None = None):
        self.data_service = data_service
        self.config_errors: list[str] = []
        self._engines: dict[tuple[str, str], QuestEngine] = {}
        self._lock = threading.Lock()

    def build_engine(self, quest_key: str, theme_key: str) -> QuestEngine:
        cache_key = (quest_key, theme_key)
        with self._lock:
            cached = self._engines.get(cache_key)
        if cached is not None:
            return cached

        quest = load_quest_config(quest_key)
        ui = load_ui_config(theme_key)
        if not ui.is_valid or ui.config is None:
            raise QuestConfigError(f"ui theme {theme_key!r} is invalid", ui.errors)
        try:
            engine = QuestEngine(quest, ui.config.positions, avatar_fallback_url=ui.config.avatar_fallback_url)
        except ValueError as e:
            raise QuestConfigError(str(e), [f"positions: {e}"]) from e

        with self._lock:
            self._engines[cache_key] = engine
        return engine

    def load(self) -> None:
        errors: list[str] = []
        try:
            self.build_engine(settings.quest_config, settings.ui_theme)
        except QuestConfigError as e:
            errors.append(str(e))
            errors.extend(e.errors)

        if self.data_service is None:
            try:
                self.data_service = create_quest_data_service()
            except DataSourceError as e:
                errors.append(f"data source: {e}")

        self.config_errors = errors
        if errors:
            log.error("quest configuration is invalid: %s", "; ".join(errors))

    @property
    def is_valid(self) -> bool:
        return not self.config_errors and self.data_service is not None

    def default_engine(self) -> QuestEngine:
        return self.build_engine(settings.quest_config, settings.ui_theme)

    def engine_for(self, quest_key: str, theme_key: str) -> QuestEngine:
        try:
            return self.build_engine(quest_key, theme_key)
        except QuestConfigError as e:
            log.warning("quest %s with theme %s unusable (%s), using defaults", quest_key, theme_key, e)
            return self.default_engine()


def get_runtime(request: Request) -> QuestRuntime:
    runtime = getattr(request.app.state, "quest_runtime", None)
    if runtime is None or not runtime.is_valid:
        errors = list(getattr(runtime, "config_errors", None) or ["quest runtime not initialised"])
        raise HTTPException(
            status_code=503,
            detail={
                "error_code": "config_invalid",
                "error_message": "quest configuration is invalid",
                "errors": errors,
            },
        )
    return runtime
