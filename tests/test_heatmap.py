"""
Tests for calendar/heatmap week grids.
"""
import pytest
from datetime import date

from services.heatmap import (
    build_week_grid,
    default_heatmap_range,
    levels_by_date,
    month_bounds,
    month_grid,
)
from api.schemas.pain import PainEntry


MARCH_START = date(2024, 3, 1)   # a Friday
MARCH_END = date(2024, 3, 31)    # a Sunday


def test_grid_snaps_to_whole_weeks():
    weeks = build_week_grid(MARCH_START, MARCH_END, today=date(2024, 3, 15))

    assert weeks[0][0].date == date(2024, 2, 25)    # Sunday on/before Mar 1
    assert weeks[-1][-1].date == date(2024, 4, 6)   # Saturday on/after Mar 31
    assert len(weeks) == 6
    assert all(len(week) == 7 for week in weeks)


def test_every_row_starts_on_sunday():
    weeks = build_week_grid(date(2024, 1, 10), date(2024, 2, 20), today=date(2024, 3, 1))

    for week in weeks:
        # date.weekday(): Monday=0 ... Sunday=6
        assert week[0].date.weekday() == 6
        assert week[6].date.weekday() == 5


def test_exactly_one_march_cell_starts_the_month():
    weeks = build_week_grid(MARCH_START, MARCH_END, today=date(2024, 3, 15))
    cells = [cell for week in weeks for cell in week]

    march_starts = [c for c in cells if c.is_month_start and c.date.month == 3]
    assert [c.date for c in march_starts] == [date(2024, 3, 1)]

    # leading February padding is not flagged, trailing April is
    assert not cells[0].is_month_start
    assert [c.date for c in cells if c.is_month_start] == [date(2024, 3, 1), date(2024, 4, 1)]


def test_first_cell_flagged_when_grid_starts_on_the_first():
    # 2023-10-01 is a Sunday
    weeks = build_week_grid(date(2023, 10, 1), date(2023, 10, 7), today=date(2023, 12, 1))

    assert weeks[0][0].is_month_start


def test_levels_and_future_flags():
    levels = {date(2024, 3, 4): 6, date(2024, 3, 20): 2}

    weeks = build_week_grid(MARCH_START, MARCH_END, levels=levels, today=date(2024, 3, 15))
    cells = {c.date: c for week in weeks for c in week}

    assert cells[date(2024, 3, 4)].level == 6
    assert cells[date(2024, 3, 5)].level is None
    assert not cells[date(2024, 3, 15)].is_future
    assert cells[date(2024, 3, 16)].is_future
    # future cells keep their data; the UI decides how to show it
    assert cells[date(2024, 3, 20)].level == 2


def test_pad_outside_uses_none_for_padding():
    weeks = build_week_grid(MARCH_START, MARCH_END, today=date(2024, 3, 15), pad_outside=True)

    assert weeks[0][:5] == [None] * 5
    assert weeks[0][5].date == MARCH_START
    assert weeks[0][5].is_month_start
    assert weeks[-1][0].date == MARCH_END
    assert weeks[-1][1:] == [None] * 6


def test_single_day_grid():
    weeks = build_week_grid(date(2024, 5, 15), date(2024, 5, 15), today=date(2024, 5, 15))

    assert len(weeks) == 1
    assert len(weeks[0]) == 7


def test_inverted_range_is_rejected():
    with pytest.raises(ValueError):
        build_week_grid(date(2024, 3, 2), date(2024, 3, 1), today=date(2024, 3, 1))


def test_grid_is_restartable():
    first = build_week_grid(MARCH_START, MARCH_END, today=date(2024, 3, 15))
    second = build_week_grid(MARCH_START, MARCH_END, today=date(2024, 3, 15))

    assert first == second


def test_default_heatmap_range_is_twelve_weeks():
    start, end = default_heatmap_range(date(2024, 6, 30))

    assert end == date(2024, 6, 30)
    assert (end - start).days == 83


def test_month_grid_for_february_leap_year():
    weeks = month_grid(2024, 2, today=date(2024, 3, 1))
    real_cells = [c for week in weeks for c in week if c is not None]

    assert len(real_cells) == 29
    assert month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))


def test_levels_by_date():
    entries = [
        PainEntry(pain_date=date(2024, 3, 1), pain_level=3),
        PainEntry(pain_date=date(2024, 3, 2), pain_level=9),
    ]

    assert levels_by_date(entries) == {date(2024, 3, 1): 3, date(2024, 3, 2): 9}
