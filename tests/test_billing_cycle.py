from datetime import date, timedelta

import pytest

from usage_dashboard.billing_cycle import compute_billing_cycle, days_in_month, progress_percent


def test_mid_month_cycle_starting_on_first() -> None:
    info = compute_billing_cycle(1, date(2024, 3, 15))

    assert info.days_elapsed == 14
    assert info.days_remaining == 17
    assert info.progress_percent == 45
    assert info.reset_date == date(2024, 4, 1)


def test_before_start_day_resets_this_month() -> None:
    info = compute_billing_cycle(20, date(2024, 3, 10))

    # Feb 2024 has 29 days: 29 - 20 + 10
    assert info.days_elapsed == 19
    assert info.days_remaining == 10
    assert info.reset_date == date(2024, 3, 20)
    assert info.progress_percent == 66


def test_reset_day_itself_starts_a_new_cycle() -> None:
    info = compute_billing_cycle(15, date(2024, 6, 15))

    assert info.days_elapsed == 0
    assert info.progress_percent == 0
    assert info.reset_date == date(2024, 7, 15)


def test_december_rolls_over_to_next_year() -> None:
    info = compute_billing_cycle(5, date(2024, 12, 20))

    assert info.reset_date == date(2025, 1, 5)
    assert info.days_elapsed == 15
    assert info.days_remaining == 16


def test_january_before_start_reaches_back_into_december() -> None:
    info = compute_billing_cycle(25, date(2025, 1, 3))

    assert info.days_elapsed == 9
    assert info.days_remaining == 22
    assert info.reset_date == date(2025, 1, 25)


def test_day_31_clamps_to_last_day_of_short_months() -> None:
    feb = compute_billing_cycle(31, date(2023, 2, 28))
    assert feb.days_elapsed == 0
    assert feb.reset_date == date(2023, 3, 31)

    mid_feb = compute_billing_cycle(31, date(2024, 2, 10))
    assert mid_feb.reset_date == date(2024, 2, 29)
    assert mid_feb.days_elapsed == 10
    assert mid_feb.days_remaining == 19

    april = compute_billing_cycle(31, date(2024, 3, 31))
    assert april.reset_date == date(2024, 4, 30)
    assert april.days_remaining == 30


def test_day_30_in_february_resets_on_leap_day() -> None:
    info = compute_billing_cycle(30, date(2024, 2, 29))

    assert info.days_elapsed == 0
    assert info.reset_date == date(2024, 3, 30)


def test_elapsed_plus_remaining_equals_cycle_length_for_every_day() -> None:
    day = date(2023, 12, 1)
    end = date(2025, 1, 31)
    while day <= end:
        for start_day in range(1, 32):
            info = compute_billing_cycle(start_day, day)
            total = info.days_elapsed + info.days_remaining

            assert info.days_elapsed >= 0
            assert info.days_remaining > 0
            assert 28 <= total <= 31
            assert 0 <= info.progress_percent <= 100
            assert info.progress_percent == progress_percent(info.days_elapsed, info.days_remaining)
            assert info.reset_date > day
            assert (info.reset_date - timedelta(days=total)) == day - timedelta(days=info.days_elapsed)
        day += timedelta(days=1)


def test_progress_rounds_half_up_and_guards_empty_cycle() -> None:
    assert progress_percent(1, 1) == 50
    assert progress_percent(1, 7) == 13  # 12.5 rounds up
    assert progress_percent(0, 0) == 0
    assert progress_percent(31, 0) == 100


@pytest.mark.parametrize("bad_day", [0, 32, -1])
def test_invalid_start_day_raises(bad_day: int) -> None:
    with pytest.raises(ValueError):
        compute_billing_cycle(bad_day, date(2024, 1, 1))


def test_days_in_month_handles_leap_years() -> None:
    assert days_in_month(2024, 2) == 29
    assert days_in_month(2023, 2) == 28
    assert days_in_month(2024, 4) == 30
