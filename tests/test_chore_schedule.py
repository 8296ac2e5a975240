import os
import sys
from datetime import date, datetime, timedelta, timezone

sys.path.append(os.path.join(os.path.dirname(__file__), ".."))

from homeinv.records import Chore, ChoreCompletion
from homeinv.services import chore_schedule
from homeinv.services.chore_schedule import ChoreState


NOW = datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc)


def _chore(chore_id="c1", frequency_days=7, created_at=datetime(2024, 1, 1, tzinfo=timezone.utc)):
    return Chore(
        id=chore_id,
        name=f"Chore {chore_id}",
        created_at=created_at,
        updated_at=created_at,
        frequency_days=frequency_days,
    )


def _done(chore_id, completed_at, completion_id=None):
    return ChoreCompletion(
        id=completion_id or f"done-{chore_id}-{completed_at.isoformat()}",
        chore_id=chore_id,
        chore_name=f"Chore {chore_id}",
        completed_at=completed_at,
    )


def test_never_completed_chore_is_overdue_with_due_date_from_creation():
    chore = _chore()

    assert chore_schedule.is_overdue(chore, [], NOW) is True
    assert chore_schedule.is_due_soon(chore, [], NOW) is False
    assert chore_schedule.get_next_due_date(chore, []) == datetime(2024, 1, 8, tzinfo=timezone.utc)
    assert chore_schedule.get_days_since_last_done(chore.id, [], NOW) is None
    assert chore_schedule.get_chore_state(chore, [], NOW) == ChoreState.NEVER_DONE


def test_completed_six_days_ago_is_due_soon():
    chore = _chore()
    completions = [_done("c1", NOW - timedelta(days=6))]

    assert chore_schedule.get_days_since_last_done("c1", completions, NOW) == 6
    assert chore_schedule.is_overdue(chore, completions, NOW) is False
    assert chore_schedule.is_due_soon(chore, completions, NOW) is True
    assert chore_schedule.get_chore_state(chore, completions, NOW) == ChoreState.DUE_SOON


def test_completed_eight_days_ago_is_overdue_not_due_soon():
    chore = _chore()
    completions = [_done("c1", NOW - timedelta(days=8))]

    assert chore_schedule.is_overdue(chore, completions, NOW) is True
    assert chore_schedule.is_due_soon(chore, completions, NOW) is False
    assert chore_schedule.get_chore_state(chore, completions, NOW) == ChoreState.OVERDUE


def test_exactly_frequency_days_is_not_yet_overdue():
    chore = _chore()
    completions = [_done("c1", NOW - timedelta(days=7))]

    assert chore_schedule.is_overdue(chore, completions, NOW) is False
    assert chore_schedule.is_due_soon(chore, completions, NOW) is True


def test_recent_completion_is_on_track():
    chore = _chore()
    completions = [_done("c1", NOW - timedelta(days=1))]
    assert chore_schedule.get_chore_state(chore, completions, NOW) == ChoreState.ON_TRACK


def test_days_since_last_done_floors_partial_days():
    completions = [_done("c1", NOW - timedelta(days=2, hours=23))]
    assert chore_schedule.get_days_since_last_done("c1", completions, NOW) == 2


def test_last_completion_uses_latest_timestamp_not_list_order():
    older = _done("c1", NOW - timedelta(days=5), "old")
    newer = _done("c1", NOW - timedelta(days=1), "new")
    other = _done("c2", NOW, "other")

    assert chore_schedule.get_last_completion("c1", [older, other, newer]).id == "new"
    assert chore_schedule.get_next_due_date(_chore(), [newer, older]) == newer.completed_at + timedelta(days=7)


def test_deleting_latest_completion_changes_state():
    chore = _chore()
    older = _done("c1", NOW - timedelta(days=9), "old")
    newer = _done("c1", NOW - timedelta(days=1), "new")

    assert chore_schedule.get_chore_state(chore, [newer, older], NOW) == ChoreState.ON_TRACK
    assert chore_schedule.get_chore_state(chore, [older], NOW) == ChoreState.OVERDUE


def test_log_only_chores_are_never_due():
    chore = _chore(frequency_days=None)
    completions = [_done("c1", NOW - timedelta(days=400))]

    assert chore_schedule.get_next_due_date(chore, completions) is None
    assert chore_schedule.is_overdue(chore, [], NOW) is False
    assert chore_schedule.is_due_soon(chore, completions, NOW) is False
    assert chore_schedule.get_chore_state(chore, completions, NOW) == ChoreState.LOG_ONLY
    assert chore_schedule.days_until_due(chore, completions, NOW) is None


def test_non_positive_frequency_is_treated_as_log_only():
    chore = _chore(frequency_days=0)
    assert chore_schedule.is_scheduled(chore) is False
    assert chore_schedule.is_overdue(chore, [], NOW) is False


def test_days_until_due_rounds_up():
    chore = _chore()
    completions = [_done("c1", NOW - timedelta(days=5, hours=12))]
    assert chore_schedule.days_until_due(chore, completions, NOW) == 2


def test_upcoming_chores_skip_overdue_and_log_only():
    chores = [
        _chore("weekly"),
        _chore("fortnightly", frequency_days=14),
        _chore("log", frequency_days=None),
        _chore("late", frequency_days=3),
    ]
    completions = [
        _done("weekly", NOW - timedelta(days=2)),
        _done("fortnightly", NOW - timedelta(days=10)),
        _done("late", NOW - timedelta(days=5)),
    ]

    upcoming = chore_schedule.upcoming_chores(chores, completions, NOW)

    assert [chore.id for chore, _, _ in upcoming] == ["fortnightly", "weekly"]
    assert [days for _, _, days in upcoming] == [4, 5]


def test_calendar_view_range_starts_on_monday():
    assert chore_schedule.calendar_view_range(2024, 1) == (date(2024, 1, 1), date(2024, 2, 4))
    assert chore_schedule.calendar_view_range(2024, 2) == (date(2024, 1, 29), date(2024, 3, 3))


def test_project_due_dates_repeats_within_range():
    chore = _chore()
    completions = [_done("c1", datetime(2024, 1, 3, 10, 0, tzinfo=timezone.utc))]

    due_dates = chore_schedule.project_due_dates(chore, completions, date(2024, 1, 1), date(2024, 2, 4))
    assert due_dates == [date(2024, 1, 10), date(2024, 1, 17), date(2024, 1, 24), date(2024, 1, 31)]

    later = chore_schedule.project_due_dates(chore, completions, date(2024, 1, 20), date(2024, 2, 4))
    assert later == [date(2024, 1, 24), date(2024, 1, 31)]


def test_project_due_dates_skips_forward_from_past_due_date():
    chore = _chore(frequency_days=10, created_at=datetime(2023, 12, 1, tzinfo=timezone.utc))

    due_dates = chore_schedule.project_due_dates(chore, [], date(2024, 1, 1), date(2024, 2, 4))

    assert due_dates == [date(2024, 1, 10), date(2024, 1, 20), date(2024, 1, 30)]


def test_chores_by_date_groups_and_sorts():
    weekly = _chore("weekly")
    every_three = _chore("three", frequency_days=3)
    log_only = _chore("log", frequency_days=None)

    schedule = chore_schedule.chores_by_date(
        [weekly, every_three, log_only], [], date(2024, 1, 1), date(2024, 1, 10)
    )

    assert list(schedule) == [date(2024, 1, 4), date(2024, 1, 7), date(2024, 1, 8), date(2024, 1, 10)]
    assert [chore.id for chore in schedule[date(2024, 1, 4)]] == ["three"]
    assert [chore.id for chore in schedule[date(2024, 1, 8)]] == ["weekly"]
