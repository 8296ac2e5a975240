"""Recent store activity: saved changes, flush failures and warnings.

The feed keeps the newest events in memory for ``/api/activity`` and writes
each new event to ``activity_log`` when an application context is active.
Events recorded with a ``dedupe_key`` collapse into one entry whose count
goes up; a repeat moves that entry to the newest position.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque

from flask import has_app_context
from sqlalchemy.exc import SQLAlchemyError

from homeinv.extensions import db
from homeinv.models import ActivityLog
from homeinv.records import format_timestamp, utcnow


FEED_SIZE = 200


@dataclass
class ActivityEvent:
    timestamp: datetime
    level: str
    message: str
    source: str | None = None
    collection: str | None = None
    count: int = 1
    dedupe_key: str | None = field(default=None, repr=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": format_timestamp(self.timestamp),
            "level": self.level,
            "message": self.message,
            "source": self.source,
            "collection": self.collection,
            "count": self.count,
        }


class ActivityFeed:
    def __init__(self, size: int = FEED_SIZE) -> None:
        self.size = size
        self._lock = threading.Lock()
        self._events: Deque[ActivityEvent] = deque()
        self._by_key: dict[str, ActivityEvent] = {}

    def record(
        self,
        level: str,
        message: str,
        *,
        source: str | None = None,
        collection: str | None = None,
        dedupe_key: str | None = None,
        now: datetime | None = None,
    ) -> tuple[ActivityEvent, bool]:
        """Add an event; returns ``(event, created)``."""

        timestamp = now or utcnow()
        with self._lock:
            existing = self._by_key.get(dedupe_key) if dedupe_key else None
            if existing is not None:
                existing.count += 1
                existing.timestamp = timestamp
                self._events.remove(existing)
                self._events.append(existing)
                return existing, False

            event = ActivityEvent(
                timestamp=timestamp,
                level=level.upper(),
                message=message,
                source=source,
                collection=collection,
                dedupe_key=dedupe_key,
            )
            self._events.append(event)
            if dedupe_key:
                self._by_key[dedupe_key] = event
            while len(self._events) > self.size:
                evicted = self._events.popleft()
                if evicted.dedupe_key and self._by_key.get(evicted.dedupe_key) is evicted:
                    del self._by_key[evicted.dedupe_key]
            return event, True

    def recent(self, limit: int = FEED_SIZE) -> list[ActivityEvent]:
        if limit <= 0:
            return []
        with self._lock:
            return list(self._events)[-limit:]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
            self._by_key.clear()

    def __len__(self) -> int:
        return len(self._events)


feed = ActivityFeed()


def _persist(event: ActivityEvent) -> None:
    if not has_app_context():
        return
    try:
        db.session.add(
            ActivityLog(
                level=event.level,
                source=event.source,
                message=event.message,
                context_json={"collection": event.collection} if event.collection else None,
            )
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()


def record_activity(
    level: str,
    message: str,
    *,
    source: str | None = None,
    collection: str | None = None,
    dedupe_key: str | None = None,
) -> ActivityEvent:
    event, created = feed.record(
        level,
        message,
        source=source,
        collection=collection,
        dedupe_key=dedupe_key,
    )
    if created:
        _persist(event)
    return event


def recent_activity(limit: int = 50) -> list[dict[str, Any]]:
    return [event.to_dict() for event in feed.recent(limit)]


class ActivityFeedHandler(logging.Handler):
    """Copies warnings from the ``homeinv`` loggers onto the feed."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = record.getMessage()
            record_activity(
                record.levelname,
                message,
                source=record.name,
                dedupe_key=f"{record.name}:{record.levelname}:{message}",
            )
        except Exception:  # noqa: BLE001
            self.handleError(record)
