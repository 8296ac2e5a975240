"""Chore and completion-history operations used by the HTTP routes."""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import date, datetime
from typing import Any

from homeinv.records import Chore, ChoreCompletion, format_timestamp, utcnow
from homeinv.services import chore_schedule
from homeinv.store import CHORE_HISTORY, CHORES, HouseholdStore, RecordNotFound


def _chore_name(payload: dict[str, Any]) -> str:
    name = payload.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValueError("Chore name is required.")
    return name.strip()


def _frequency(value: Any) -> int | None:
    """``None`` (or blank) means the chore is log-only."""

    if value is None or value == "":
        return None
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValueError("Frequency must be a whole number of days.")
    try:
        days = int(value)
    except (TypeError, ValueError):
        raise ValueError("Frequency must be a whole number of days.")
    if days <= 0:
        raise ValueError("Frequency must be at least one day.")
    return days


def add_chore(store: HouseholdStore, payload: dict[str, Any], *, now: datetime | None = None) -> Chore:
    name = _chore_name(payload)
    frequency_days = _frequency(payload.get("frequencyDays"))
    now = now or utcnow()
    chore = Chore(
        id=str(uuid.uuid4()),
        name=name,
        created_at=now,
        updated_at=now,
        frequency_days=frequency_days,
    )
    with store.transaction(CHORES):
        store.chores = store.chores + [chore]
    return chore


def update_chore(
    store: HouseholdStore,
    chore_id: str,
    payload: dict[str, Any],
    *,
    now: datetime | None = None,
) -> Chore:
    changes: dict[str, Any] = {}
    if "name" in payload:
        changes["name"] = _chore_name(payload)
    if "frequencyDays" in payload:
        changes["frequency_days"] = _frequency(payload.get("frequencyDays"))

    with store.transaction(CHORES):
        chore = store.get_chore(chore_id)
        updated = replace(chore, updated_at=now or utcnow(), **changes)
        store.put_chore(updated)
    return updated


def delete_chore(store: HouseholdStore, chore_id: str) -> Chore:
    """Remove a chore; its completions stay in the history."""

    with store.transaction(CHORES):
        chore = store.get_chore(chore_id)
        store.chores = [existing for existing in store.chores if existing.id != chore_id]
    return chore


def mark_done(
    store: HouseholdStore,
    chore_id: str,
    payload: dict[str, Any] | None = None,
    *,
    now: datetime | None = None,
) -> ChoreCompletion:
    notes = (payload or {}).get("notes")
    if notes is not None and not isinstance(notes, str):
        raise ValueError("Notes must be text.")
    notes = notes.strip() if notes else None

    with store.transaction(CHORE_HISTORY):
        chore = store.get_chore(chore_id)
        completion = ChoreCompletion(
            id=str(uuid.uuid4()),
            chore_id=chore.id,
            chore_name=chore.name,
            completed_at=now or utcnow(),
            notes=notes or None,
        )
        store.completions = [completion] + store.completions
    return completion


def delete_completion(store: HouseholdStore, completion_id: str) -> ChoreCompletion:
    with store.transaction(CHORE_HISTORY):
        for completion in store.completions:
            if completion.id == completion_id:
                break
        else:
            raise RecordNotFound(f"Completion {completion_id} not found.")
        store.completions = [
            entry for entry in store.completions if entry.id != completion_id
        ]
    return completion


def clear_history(store: HouseholdStore) -> int:
    with store.transaction(CHORE_HISTORY):
        removed = len(store.completions)
        store.completions = []
    return removed


def _timestamp(value: datetime | None) -> str | None:
    return format_timestamp(value) if value is not None else None


def schedule_entry(view: chore_schedule.ChoreScheduleView) -> dict[str, Any]:
    data = view.chore.to_dict()
    data.update(
        {
            "state": view.state,
            "lastCompletedAt": _timestamp(
                view.last_completion.completed_at if view.last_completion else None
            ),
            "daysSinceLastDone": view.days_since_last_done,
            "nextDueDate": _timestamp(view.next_due_date),
            "overdue": view.overdue,
            "dueSoon": view.due_soon,
        }
    )
    return data


def chore_schedule_list(store: HouseholdStore, *, now: datetime | None = None) -> list[dict[str, Any]]:
    now = now or utcnow()
    completions = list(store.completions)
    views = [
        chore_schedule.describe_chore(chore, completions, now)
        for chore in sorted(store.chores, key=lambda chore: chore.name.lower())
    ]
    return [schedule_entry(view) for view in views]


def chore_detail(store: HouseholdStore, chore_id: str, *, now: datetime | None = None) -> dict[str, Any]:
    chore = store.get_chore(chore_id)
    completions = list(store.completions)
    data = schedule_entry(chore_schedule.describe_chore(chore, completions, now))
    data["history"] = [
        completion.to_dict() for completion in completions if completion.chore_id == chore.id
    ]
    return data


def calendar_month(
    store: HouseholdStore,
    year: int,
    month: int,
    *,
    now: datetime | None = None,
) -> dict[str, Any]:
    if not 1 <= month <= 12:
        raise ValueError("Month must be between 1 and 12.")
    if not 1 <= year <= 9998:
        raise ValueError("Year is out of range.")

    now = now or utcnow()
    completions = list(store.completions)
    start, end = chore_schedule.calendar_view_range(year, month)
    schedule = chore_schedule.chores_by_date(store.chores, completions, start, end)

    def _day(day: date) -> str:
        return day.isoformat()

    return {
        "year": year,
        "month": month,
        "start": _day(start),
        "end": _day(end),
        "days": [
            {
                "date": _day(day),
                "chores": [{"id": chore.id, "name": chore.name} for chore in chores],
            }
            for day, chores in schedule.items()
        ],
        "overdue": [
            {"id": chore.id, "name": chore.name}
            for chore in store.chores
            if chore_schedule.is_overdue(chore, completions, now)
        ],
    }
