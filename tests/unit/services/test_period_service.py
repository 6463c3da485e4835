from datetime import datetime, time

import pytest

from monobot.app.core.errors_core import InvalidPeriodError
from monobot.app.services.period_service import (
    LAST_MONTH,
    LAST_WEEK,
    REPORT_PERIODS,
    THIS_MONTH,
    THIS_WEEK,
    TODAY,
    available_months,
    current_period_labels,
    resolve_period,
)
from conftest import KYIV


def _ts(year: int, month: int, day: int) -> int:
    return int(datetime(year, month, day, tzinfo=KYIV).timestamp())


NEW_YEAR = datetime(2021, 1, 1, 15, 30, tzinfo=KYIV)


def test_today_starts_at_local_midnight_and_is_open():
    assert resolve_period(TODAY, NEW_YEAR, KYIV) == (_ts(2021, 1, 1), 0)


def test_this_week_uses_iso_week_across_year_boundary():
    # 2021-01-01 belongs to ISO week 53 of 2020, which starts on Monday 2020-12-28
    assert resolve_period(THIS_WEEK, NEW_YEAR, KYIV) == (_ts(2020, 12, 28), 0)


def test_last_week_is_the_previous_iso_week():
    assert resolve_period(LAST_WEEK, NEW_YEAR, KYIV) == (_ts(2020, 12, 21), _ts(2020, 12, 28))


def test_this_and_last_month_in_january():
    assert resolve_period(THIS_MONTH, NEW_YEAR, KYIV) == (_ts(2021, 1, 1), 0)
    assert resolve_period(LAST_MONTH, NEW_YEAR, KYIV) == (_ts(2020, 12, 1), _ts(2021, 1, 1))


def test_month_names_refer_to_the_current_year():
    now = datetime(2021, 5, 10, 9, 0, tzinfo=KYIV)

    assert resolve_period("March", now, KYIV) == (_ts(2021, 3, 1), _ts(2021, 4, 1))
    assert resolve_period("May", now, KYIV) == (_ts(2021, 5, 1), 0)
    assert resolve_period("December", now, KYIV) == (_ts(2021, 12, 1), _ts(2022, 1, 1))


def test_naive_now_is_treated_as_local_time():
    naive = datetime(2021, 1, 1, 0, 30)

    assert resolve_period(TODAY, naive, KYIV) == (_ts(2021, 1, 1), 0)


def test_utc_now_is_converted_to_local_day():
    from datetime import timezone

    # 23:30 UTC on Dec 31 is already Jan 1 in Kyiv
    utc = datetime(2020, 12, 31, 23, 30, tzinfo=timezone.utc)

    assert resolve_period(TODAY, utc, KYIV) == (_ts(2021, 1, 1), 0)


@pytest.mark.parametrize("label", REPORT_PERIODS)
@pytest.mark.parametrize(
    "now",
    [
        datetime(2021, 1, 1, 12, 0, tzinfo=KYIV),
        datetime(2021, 3, 29, 0, 15, tzinfo=KYIV),
        datetime(2024, 2, 29, 23, 59, tzinfo=KYIV),
        datetime(2026, 12, 31, 8, 0, tzinfo=KYIV),
    ],
)
def test_every_label_resolves_to_an_ordered_range_from_midnight(label, now):
    start, end = resolve_period(label, now, KYIV)

    assert datetime.fromtimestamp(start, KYIV).time() == time(0, 0)
    if end != 0:
        assert start <= end
        assert datetime.fromtimestamp(end, KYIV).time() == time(0, 0)


@pytest.mark.parametrize("label", ["", "today", "Next week", "Jan"])
def test_unknown_label_is_rejected(label):
    with pytest.raises(InvalidPeriodError):
        resolve_period(label, NEW_YEAR, KYIV)


def test_current_period_labels_include_current_month():
    now = datetime(2021, 5, 10, tzinfo=KYIV)

    assert current_period_labels(now, KYIV) == (TODAY, THIS_WEEK, LAST_WEEK, THIS_MONTH, LAST_MONTH, "May")


def test_available_months_stop_at_current_month():
    assert available_months(datetime(2021, 3, 2, tzinfo=KYIV), KYIV) == ["January", "February", "March"]
    assert len(available_months(datetime(2021, 12, 2, tzinfo=KYIV), KYIV)) == 12
