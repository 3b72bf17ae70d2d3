import datetime as dt
import itertools

import pytest

from gantt_projection.bar_layout import MIN_BAR_WIDTH_PERCENT, project_bar
from gantt_projection.errors import InvalidWindow
from gantt_projection.task_models import Task

FEB_START = dt.date(2026, 2, 1)
FEB_END = dt.date(2026, 2, 28)


def _task(start=None, end=None):
    return Task(id="T", title="T", start_date=start, end_date=end)


def test_task_covering_the_window_is_clamped_to_full_width():
    bar = project_bar(_task(dt.date(2026, 1, 15), dt.date(2026, 3, 15)), FEB_START, FEB_END)

    assert bar is not None
    assert bar.left == 0
    assert bar.width == 100


def test_single_date_after_the_window_is_hidden():
    assert project_bar(_task(start=dt.date(2026, 3, 1)), FEB_START, FEB_END) is None


def test_task_before_the_window_is_hidden():
    assert project_bar(_task(dt.date(2026, 1, 1), dt.date(2026, 1, 31)), FEB_START, FEB_END) is None


def test_undated_task_is_hidden():
    assert project_bar(_task(), FEB_START, FEB_END) is None


def test_span_inside_the_window_maps_proportionally():
    window_start = dt.date(2026, 2, 9)
    window_end = dt.date(2026, 3, 16)  # 35 days

    bar = project_bar(_task(dt.date(2026, 2, 16), dt.date(2026, 2, 23)), window_start, window_end)

    assert bar.left == pytest.approx(20.0)
    assert bar.width == pytest.approx(20.0)


def test_partial_overlap_is_clamped_on_the_left():
    bar = project_bar(_task(dt.date(2026, 1, 20), dt.date(2026, 2, 8)), FEB_START, FEB_END)

    assert bar.left == 0
    assert bar.width == pytest.approx(7 / 27 * 100)


def test_end_date_alone_places_a_minimum_width_bar():
    bar = project_bar(_task(end=dt.date(2026, 2, 14)), FEB_START, FEB_END)

    assert bar.left == pytest.approx(13 / 27 * 100)
    assert bar.width == MIN_BAR_WIDTH_PERCENT


def test_zero_length_task_on_the_right_edge_stays_inside():
    last_minute = dt.datetime(2026, 2, 27, 23, 59)

    bar = project_bar(_task(last_minute, last_minute), FEB_START, FEB_END)

    assert bar.width == MIN_BAR_WIDTH_PERCENT
    assert bar.left + bar.width <= 100


def test_task_starting_on_the_exclusive_end_is_hidden():
    assert project_bar(_task(start=FEB_END), FEB_START, FEB_END) is None
    assert project_bar(_task(FEB_END, dt.date(2026, 3, 5)), FEB_START, FEB_END) is None


def test_reversed_dates_are_normalised():
    forward = project_bar(_task(dt.date(2026, 2, 5), dt.date(2026, 2, 10)), FEB_START, FEB_END)
    backward = project_bar(_task(dt.date(2026, 2, 10), dt.date(2026, 2, 5)), FEB_START, FEB_END)

    assert forward == backward


def test_datetime_bounds_are_supported():
    bar = project_bar(
        _task(dt.datetime(2026, 2, 1, 12), dt.datetime(2026, 2, 2, 0)),
        dt.datetime(2026, 2, 1),
        dt.datetime(2026, 2, 2),
    )

    assert bar.left == pytest.approx(50.0)
    assert bar.width == pytest.approx(50.0)


def test_empty_window_is_invalid():
    with pytest.raises(InvalidWindow):
        project_bar(_task(FEB_START, FEB_END), FEB_START, FEB_START)


def test_bars_always_fit_inside_the_window():
    days = [FEB_START + dt.timedelta(days=offset) for offset in range(-10, 40, 3)]
    for start, end in itertools.product(days + [None], repeat=2):
        bar = project_bar(_task(start, end), FEB_START, FEB_END)
        if bar is None:
            continue
        assert bar.left >= 0
        assert bar.width > 0
        assert bar.left + bar.width <= 100 + 1e-9
