"""Derived schedule state for chores.

Nothing here is stored: every answer is a function of the chore, its
completion log and the evaluation time ``now``. Chores without a positive
``frequency_days`` are log-only and never become due.
"""

from __future__ import annotations

import calendar
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Sequence

from homeinv.records import Chore, ChoreCompletion, utcnow


DUE_SOON_WINDOW_DAYS = 2
SECONDS_PER_DAY = 24 * 60 * 60


class ChoreState:
    LOG_ONLY = "LOG_ONLY"
    NEVER_DONE = "NEVER_DONE"
    ON_TRACK = "ON_TRACK"
    DUE_SOON = "DUE_SOON"
    OVERDUE = "OVERDUE"


def is_scheduled(chore: Chore) -> bool:
    return bool(chore.frequency_days) and chore.frequency_days > 0


def get_last_completion(
    chore_id: str, completions: Iterable[ChoreCompletion]
) -> ChoreCompletion | None:
    latest = None
    for completion in completions:
        if completion.chore_id != chore_id:
            continue
        if latest is None or completion.completed_at > latest.completed_at:
            latest = completion
    return latest


def get_days_since_last_done(
    chore_id: str,
    completions: Iterable[ChoreCompletion],
    now: datetime | None = None,
) -> int | None:
    last = get_last_completion(chore_id, completions)
    if last is None:
        return None
    now = now or utcnow()
    elapsed = (now - last.completed_at).total_seconds()
    return math.floor(elapsed / SECONDS_PER_DAY)


def get_next_due_date(chore: Chore, completions: Iterable[ChoreCompletion]) -> datetime | None:
    if not is_scheduled(chore):
        return None
    last = get_last_completion(chore.id, completions)
    base = last.completed_at if last else chore.created_at
    return base + timedelta(days=chore.frequency_days)


def is_overdue(
    chore: Chore,
    completions: Sequence[ChoreCompletion],
    now: datetime | None = None,
) -> bool:
    if not is_scheduled(chore):
        return False
    days_since = get_days_since_last_done(chore.id, completions, now)
    if days_since is None:
        return True
    return days_since > chore.frequency_days


def is_due_soon(
    chore: Chore,
    completions: Sequence[ChoreCompletion],
    now: datetime | None = None,
) -> bool:
    if not is_scheduled(chore):
        return False
    if is_overdue(chore, completions, now):
        return False
    days_since = get_days_since_last_done(chore.id, completions, now)
    if days_since is None:
        return False
    return days_since >= chore.frequency_days - DUE_SOON_WINDOW_DAYS


def get_chore_state(
    chore: Chore,
    completions: Sequence[ChoreCompletion],
    now: datetime | None = None,
) -> str:
    if not is_scheduled(chore):
        return ChoreState.LOG_ONLY
    if get_last_completion(chore.id, completions) is None:
        return ChoreState.NEVER_DONE
    if is_overdue(chore, completions, now):
        return ChoreState.OVERDUE
    if is_due_soon(chore, completions, now):
        return ChoreState.DUE_SOON
    return ChoreState.ON_TRACK


def days_until_due(
    chore: Chore,
    completions: Sequence[ChoreCompletion],
    now: datetime | None = None,
) -> int | None:
    due = get_next_due_date(chore, completions)
    if due is None:
        return None
    now = now or utcnow()
    return math.ceil((due - now).total_seconds() / SECONDS_PER_DAY)


@dataclass(frozen=True)
class ChoreScheduleView:
    chore: Chore
    state: str
    last_completion: ChoreCompletion | None
    days_since_last_done: int | None
    next_due_date: datetime | None
    overdue: bool
    due_soon: bool


def describe_chore(
    chore: Chore,
    completions: Sequence[ChoreCompletion],
    now: datetime | None = None,
) -> ChoreScheduleView:
    now = now or utcnow()
    return ChoreScheduleView(
        chore=chore,
        state=get_chore_state(chore, completions, now),
        last_completion=get_last_completion(chore.id, completions),
        days_since_last_done=get_days_since_last_done(chore.id, completions, now),
        next_due_date=get_next_due_date(chore, completions),
        overdue=is_overdue(chore, completions, now),
        due_soon=is_due_soon(chore, completions, now),
    )


def upcoming_chores(
    chores: Iterable[Chore],
    completions: Sequence[ChoreCompletion],
    now: datetime | None = None,
    limit: int = 5,
) -> list[tuple[Chore, datetime, int]]:
    """Scheduled chores that are not overdue, soonest first."""

    now = now or utcnow()
    entries = []
    for chore in chores:
        if not is_scheduled(chore) or is_overdue(chore, completions, now):
            continue
        due = get_next_due_date(chore, completions)
        entries.append((chore, due, days_until_due(chore, completions, now)))
    entries.sort(key=lambda entry: entry[1])
    return entries[:limit]


def calendar_view_range(year: int, month: int) -> tuple[date, date]:
    """First and last day of a month grid whose weeks start on Monday."""

    month_start = date(year, month, 1)
    month_end = date(year, month, calendar.monthrange(year, month)[1])
    view_start = month_start - timedelta(days=month_start.weekday())
    view_end = month_end + timedelta(days=6 - month_end.weekday())
    return view_start, view_end


def project_due_dates(
    chore: Chore,
    completions: Sequence[ChoreCompletion],
    start: date,
    end: date,
) -> list[date]:
    """Every due date of a scheduled chore that falls within [start, end].

    Occurrences repeat every ``frequency_days`` from the next due date, so
    a month view shows each recurrence, not only the next one.
    """

    next_due = get_next_due_date(chore, completions)
    if next_due is None:
        return []

    step = timedelta(days=chore.frequency_days)
    current = next_due.date()
    if current < start:
        skipped = (start - current).days // chore.frequency_days
        current += step * skipped
        while current < start:
            current += step

    occurrences = []
    while current <= end:
        occurrences.append(current)
        current += step
    return occurrences


def chores_by_date(
    chores: Iterable[Chore],
    completions: Sequence[ChoreCompletion],
    start: date,
    end: date,
) -> dict[date, list[Chore]]:
    schedule: dict[date, list[Chore]] = {}
    for chore in chores:
        for due in project_due_dates(chore, completions, start, end):
            schedule.setdefault(due, []).append(chore)
    return dict(sorted(schedule.items()))
