import pytest

from spendwatch.services.spend import calculate_status, raw_percentage, take_snapshot


@pytest.mark.parametrize(
    "spent, limit, expected",
    [
        (0, 100, 0.0),
        (1, 3, 33.33),
        (2, 3, 66.67),
        (47500, 50000, 95.0),
        (50000, 50000, 100.0),
        (62000, 50000, 100.0),
    ],
)
def test_percentage_used_is_rounded_and_clamped(spent, limit, expected):
    status = calculate_status(spent, limit)
    assert status.percentage_used == expected
    assert 0 <= status.percentage_used <= 100


def test_zero_limit_reports_zero_percent():
    status = calculate_status(12345, 0)
    assert status.percentage_used == 0
    assert status.over_budget is True
    assert status.remaining == -12345


def test_over_budget_ignores_percentage_clamp():
    status = calculate_status(150, 100)
    assert status.over_budget is True
    assert status.percentage_used == 100
    assert status.remaining == -50


def test_exactly_at_limit_is_not_over_budget():
    status = calculate_status(100, 100)
    assert status.over_budget is False
    assert status.remaining == 0


def test_ninety_five_percent_scenario_in_major_units():
    out = calculate_status(47500, 50000).to_out()
    assert out.total_spent_this_period == 475.0
    assert out.budget_limit == 500.0
    assert out.remaining == 25.0
    assert out.over_budget is False
    assert out.percentage_used == 95.0


def test_overspent_scenario_in_major_units():
    out = calculate_status(62000, 50000).to_out()
    assert out.remaining == -120.0
    assert out.over_budget is True
    assert out.percentage_used == 100.0


def test_snapshot_keeps_unclamped_percentage():
    snap = take_snapshot(62000, 50000)
    assert snap.percentage_used == 124.0
    assert snap.remaining == -12000
    assert raw_percentage(10, 0) == 0.0


def test_threshold_reached_only_on_exact_figures():
    assert not take_snapshot(6999, 10000).has_reached(70)
    # rounds to 70.0 for display but is still short of 70%
    below = take_snapshot(69996, 100000)
    assert below.percentage_used == 70.0
    assert not below.has_reached(70)
    assert take_snapshot(7000, 10000).has_reached(70)
    assert take_snapshot(50000, 50000).has_reached(100)
    assert not take_snapshot(5000, 0).has_reached(70)
