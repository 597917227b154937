"""Tests for the pricing engine: initial prices, tiers, repricing and DNF penalties."""

import pytest

from fantasy_engine.core.pricing import (
    PriceTrend,
    apply_dnf_penalty,
    calculate_dnf_price_penalty,
    calculate_initial_price,
    calculate_ppm,
    calculate_price_change,
    calculate_rolling_average,
    get_performance_tier,
    get_price_change_percentage,
    get_price_tier,
    get_price_trend,
    round_half_up,
)
from fantasy_engine.core.rules import PerformanceTier, PriceTier, PricingRules

# ---------------------------------------------------------------------------
# Initial pricing
# ---------------------------------------------------------------------------


def test_initial_price_converts_average_points() -> None:
    """240 season points is 10 per race, priced at 24 per point."""
    assert calculate_initial_price(240) == 240


def test_initial_price_rounds_half_up() -> None:
    """An average landing on .5 of a dollar rounds up."""
    rules = PricingRules(races_per_season=4, dollars_per_point=10, min_price=0)
    # 1 / 4 * 10 = 2.5
    assert calculate_initial_price(1, rules) == 3


def test_initial_price_is_clamped() -> None:
    """Prices never leave [min_price, max_price]."""
    assert calculate_initial_price(0) == 5
    assert calculate_initial_price(10_000) == 700


def test_round_half_up() -> None:
    assert round_half_up(2.5) == 3
    assert round_half_up(2.49) == 2
    assert round_half_up(3.5) == 4


# ---------------------------------------------------------------------------
# Tiers
# ---------------------------------------------------------------------------


def test_price_tier_thresholds_are_strict() -> None:
    """Threshold prices belong to the lower tier."""
    assert get_price_tier(241) is PriceTier.A
    assert get_price_tier(240) is PriceTier.B
    assert get_price_tier(121) is PriceTier.B
    assert get_price_tier(120) is PriceTier.C
    assert get_price_tier(5) is PriceTier.C


def test_performance_tier_thresholds_are_inclusive() -> None:
    """A PPM equal to a threshold falls into the higher band."""
    assert get_performance_tier(0.06) is PerformanceTier.GREAT
    assert get_performance_tier(0.059) is PerformanceTier.GOOD
    assert get_performance_tier(0.04) is PerformanceTier.GOOD
    assert get_performance_tier(0.02) is PerformanceTier.POOR
    assert get_performance_tier(0.019) is PerformanceTier.TERRIBLE


def test_ppm_zero_price() -> None:
    """A zero price yields a PPM of 0 rather than raising."""
    assert calculate_ppm(25, 0) == 0.0
    assert calculate_ppm(6, 100) == pytest.approx(0.06)


# ---------------------------------------------------------------------------
# Performance repricing
# ---------------------------------------------------------------------------


def test_tier_a_great_performance() -> None:
    """A tier-A asset with a great PPM gains the top tier-A amount."""
    change = calculate_price_change(250, 250)
    assert change.new_price == 286
    assert change.change == 36
    assert change.performance_tier is PerformanceTier.GREAT
    assert change.ppm == pytest.approx(1.0)


def test_tier_b_and_c_changes() -> None:
    """Table lookups for the lower tiers."""
    good_b = calculate_price_change(8, 200)  # ppm 0.04
    assert good_b.change == 7
    terrible_c = calculate_price_change(0, 100)
    assert terrible_c.change == -12
    assert terrible_c.new_price == 88


def test_price_change_clamped_at_max() -> None:
    """A rise that would pass max_price stops at it and reports the real move."""
    change = calculate_price_change(690, 690)
    assert change.new_price == 700
    assert change.change == 10


def test_price_change_clamped_at_min() -> None:
    """A fall below min_price stops at it."""
    change = calculate_price_change(0, 10)
    assert change.new_price == 5
    assert change.change == -5


def test_price_change_bounded_by_max_change() -> None:
    """Table amounts larger than max_change_per_race are capped."""
    rules = PricingRules(max_change_per_race=20)
    change = calculate_price_change(250, 250, rules)
    assert change.change == 20


# ---------------------------------------------------------------------------
# Rolling average
# ---------------------------------------------------------------------------


def test_rolling_average_uses_most_recent_window() -> None:
    """Only the first five entries (most recent first) count."""
    assert calculate_rolling_average([10, 20, 30, 40, 50, 100, 200]) == pytest.approx(30.0)


def test_rolling_average_short_series() -> None:
    assert calculate_rolling_average([25]) == pytest.approx(25.0)


def test_rolling_average_empty_series() -> None:
    assert calculate_rolling_average([]) == 0.0


def test_rolling_average_weights_sprints() -> None:
    """Sprint entries weigh 0.75 in both numerator and denominator."""
    avg = calculate_rolling_average([40, 20], [True, False])
    assert avg == pytest.approx((40 * 0.75 + 20) / 1.75)


# ---------------------------------------------------------------------------
# DNF penalties
# ---------------------------------------------------------------------------


def test_dnf_penalty_lap_one_is_maximum() -> None:
    assert calculate_dnf_price_penalty(1, 50) == 24


def test_dnf_penalty_final_lap_is_minimum() -> None:
    assert calculate_dnf_price_penalty(50, 50) == 2


def test_dnf_penalty_interpolates_and_rounds_up() -> None:
    """Mid-race retirements interpolate linearly, rounded up."""
    # 2 + 22 * (1 - 24/49) = 13.22...
    assert calculate_dnf_price_penalty(25, 50) == 14


def test_dnf_penalty_degenerate_inputs() -> None:
    """Non-starts take the maximum; single-lap races take the minimum."""
    assert calculate_dnf_price_penalty(0, 50) == 24
    assert calculate_dnf_price_penalty(10, 1) == 2
    assert calculate_dnf_price_penalty(60, 50) == 2


def test_apply_dnf_penalty_respects_floor() -> None:
    """The penalised price never drops below the DNF floor."""
    result = apply_dnf_penalty(55, 1, 50)
    assert result.new_price == 50
    assert result.penalty == 24


def test_apply_dnf_penalty_subtracts() -> None:
    result = apply_dnf_penalty(200, 1, 50)
    assert result.new_price == 176


def test_apply_dnf_penalty_never_raises_price() -> None:
    """An asset already below the DNF floor keeps its price."""
    result = apply_dnf_penalty(30, 1, 50)
    assert result.new_price == 30
    assert result.penalty == 24
    assert apply_dnf_penalty(50, 50, 50).new_price == 50
    assert apply_dnf_penalty(60, 1, 50).new_price == 50


def test_dnf_penalty_shrinks_with_laps_completed() -> None:
    """A later retirement is never penalised more than an earlier one."""
    penalties = [calculate_dnf_price_penalty(lap, 50) for lap in range(1, 51)]
    assert penalties[0] == 24
    assert penalties[-1] == 2
    for earlier, later in zip(penalties, penalties[1:]):
        assert later <= earlier
    for lap in range(1, 51):
        assert apply_dnf_penalty(200, lap, 50).new_price == 200 - penalties[lap - 1]


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------


def test_price_trend() -> None:
    assert get_price_trend(110, 100) is PriceTrend.UP
    assert get_price_trend(90, 100) is PriceTrend.DOWN
    assert get_price_trend(100, 100) is PriceTrend.NEUTRAL


def test_price_change_percentage() -> None:
    assert get_price_change_percentage(110, 100) == pytest.approx(10.0)
    assert get_price_change_percentage(110, 0) == 0.0
