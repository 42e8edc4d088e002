from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from wellquest.core.config import settings
from wellquest.services.providers import (
    DataSourceError,
    QuestDataProvider,
    create_provider,
    default_headers,
    resolve_data_source,
)
from wellquest.services.rows import Row


log = logging.getLogger(__name__)

DEFAULT_POLLING_INTERVAL_SECONDS = 180


@dataclass(frozen=True)
class Snapshot:
    rows: tuple[Row, ...] = ()
    updated_at: datetime | None = None
    source_url: str | None = None

    @property
    def loaded(self) -> bool:
        return self.updated_at is not None


@dataclass
class _PollState:
    timer: threading.Timer | None = None
    generation: int = 0
    callback: Callable[[Snapshot], None] | None = field(default=None, repr=False)


class QuestDataService:
    """Fetches rows from one provider and keeps the last good snapshot.

    A failed fetch never replaces the snapshot; the next timer tick simply
    tries again. Overlapping refreshes are not queued.
    """

    def __init__(self, provider: QuestDataProvider, *, polling_interval_seconds: int | None = None):
        self.provider = provider
        self.polling_interval_seconds = int(polling_interval_seconds or DEFAULT_POLLING_INTERVAL_SECONDS)
        self.last_error: str | None = None
        self._snapshot = Snapshot()
        self._lock = threading.Lock()
        self._poll = _PollState()

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def polling(self) -> bool:
        return self._poll.timer is not None

    def get_rows(self) -> list[Row]:
        return list(self._snapshot.rows)

    def fetch_rows(self) -> list[Row] | None:
        provider = self.provider
        try:
            rows = provider.fetch_rows()
        except (DataSourceError, ValueError) as e:
            self.last_error = str(e)
            log.error("quest data fetch failed source=%s url=%s error=%s", provider.source_type.value, provider.url, e)
            return None
        self.last_error = None
        return rows

    def refresh(self) -> Snapshot:
        rows = self.fetch_rows()
        if rows is None:
            return self._snapshot

        snap = Snapshot(rows=tuple(rows), updated_at=datetime.now(timezone.utc), source_url=self.provider.url)
        with self._lock:
            self._snapshot = snap
        log.info("quest data updated: %s records", len(rows))
        return snap

    def _tick(self, generation: int) -> None:
        if generation != self._poll.generation:
            return
        try:
            snap = self.refresh()
            cb = self._poll.callback
            if cb is not None:
                cb(snap)
        except Exception:
            log.exception("quest data polling tick failed")
        finally:
            with self._lock:
                if generation == self._poll.generation and self._poll.timer is not None:
                    self._schedule(generation)

    def _schedule(self, generation: int) -> None:
        t = threading.Timer(self.polling_interval_seconds, self._tick, args=(generation,))
        t.daemon = True
        self._poll.timer = t
        t.start()

    def start_polling(self, callback: Callable[[Snapshot], None] | None = None, *, initial_fetch: bool = True) -> None:
        self.stop_polling()
        with self._lock:
            self._poll.generation += 1
            self._poll.callback = callback
            generation = self._poll.generation

        if initial_fetch:
            snap = self.refresh()
            if callback is not None:
                callback(snap)

        with self._lock:
            if generation == self._poll.generation:
                self._schedule(generation)

    def stop_polling(self) -> None:
        with self._lock:
            self._poll.generation += 1
            if self._poll.timer is not None:
                self._poll.timer.cancel()
            self._poll.timer = None
            self._poll.callback = None

    def switch_provider(self, provider: QuestDataProvider, *, polling_interval_seconds: int | None = None) -> Snapshot:
        was_polling = self.polling
        callback = self._poll.callback
        self.stop_polling()
        self.provider = provider
        if polling_interval_seconds:
            self.polling_interval_seconds = int(polling_interval_seconds)
        log.info("switched quest data source to %s %s", provider.source_type.value, provider.url)

        if was_polling:
            self.start_polling(callback)
            return self._snapshot
        return self.refresh()


def create_quest_data_service(**overrides) -> QuestDataService:
    kind, url = resolve_data_source()
    provider = create_provider(kind, url, headers=default_headers())
    interval = overrides.get("polling_interval_seconds") or settings.polling_interval_seconds
    return QuestDataService(provider, polling_interval_seconds=interval)


def polling_enabled() -> bool:
    # Dev mode serves a static file, polling it is pointless.
    return bool(settings.enable_inprocess_polling) and not bool(settings.dev_mode)
