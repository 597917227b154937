"""Pricing engine: season statistics and race performance to asset prices.

Every function here is pure and total.  Numeric edge cases (zero price,
zero laps, an empty points series) resolve to a defined sentinel rather
than raising, so a caller rendering the market never has to guard them.

Rounding is deliberately operation-specific and must not be normalised:

* initial and rolling-average prices round half up,
* DNF price penalties round up (ceiling),
* tier thresholds are strict for price tiers and inclusive for PPM.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from fantasy_engine.core.rules import (
    DEFAULT_PRICING_RULES,
    PerformanceTier,
    PriceTier,
    PricingRules,
)


class PriceTrend(str, Enum):
    UP = "up"
    DOWN = "down"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class PriceChange:
    """Outcome of a performance-based reprice.

    Attributes:
        new_price: Price after the change, clamped to the price bounds.
        change: ``new_price - current_price``.
        ppm: Points per unit of price that drove the change.
        performance_tier: Band the PPM fell into.
    """

    new_price: int
    change: int
    ppm: float
    performance_tier: PerformanceTier


@dataclass(frozen=True)
class DnfPenalty:
    new_price: int
    penalty: int


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (``2.5 -> 3``)."""
    return math.floor(value + 0.5)


def clamp_price(price: float, rules: PricingRules = DEFAULT_PRICING_RULES) -> int:
    """Clamp *price* to ``[min_price, max_price]``."""
    return int(max(rules.min_price, min(rules.max_price, price)))


# ---------------------------------------------------------------------------
# Initial pricing
# ---------------------------------------------------------------------------


def calculate_initial_price(
    previous_season_points: float,
    rules: PricingRules = DEFAULT_PRICING_RULES,
) -> int:
    """Return the season-opening price for an asset.

    The average points per race of the previous season is converted at
    ``dollars_per_point`` and clamped to the price bounds.

    Args:
        previous_season_points: Fantasy points scored last season.
        rules: Pricing constants.

    Returns:
        Integer starting price.
    """
    avg_points_per_race: float = previous_season_points / rules.races_per_season
    return clamp_price(round_half_up(avg_points_per_race * rules.dollars_per_point), rules)


# ---------------------------------------------------------------------------
# Performance-based repricing
# ---------------------------------------------------------------------------


def calculate_ppm(points_scored: float, price: float) -> float:
    """Points per unit of price; 0 when *price* is 0."""
    if price == 0:
        return 0.0
    return points_scored / price


def get_performance_tier(
    ppm: float,
    rules: PricingRules = DEFAULT_PRICING_RULES,
) -> PerformanceTier:
    """Classify a PPM value.  Each threshold belongs to the higher band."""
    if ppm >= rules.ppm_great:
        return PerformanceTier.GREAT
    if ppm >= rules.ppm_good:
        return PerformanceTier.GOOD
    if ppm >= rules.ppm_poor:
        return PerformanceTier.POOR
    return PerformanceTier.TERRIBLE


def get_price_tier(
    price: float,
    rules: PricingRules = DEFAULT_PRICING_RULES,
) -> PriceTier:
    """Classify a price.  Threshold values fall into the lower tier."""
    if price > rules.tier_a_threshold:
        return PriceTier.A
    if price > rules.tier_b_threshold:
        return PriceTier.B
    return PriceTier.C


def calculate_price_change(
    points_scored: float,
    current_price: int,
    rules: PricingRules = DEFAULT_PRICING_RULES,
) -> PriceChange:
    """Reprice an asset from one race's points.

    The change amount is looked up by ``(price tier, performance tier)``,
    bounded by ``max_change_per_race`` and applied to *current_price*.
    The result is clamped to the price bounds, and the reported
    ``change`` is the effective move after clamping.

    Args:
        points_scored: Points the asset scored in the race.
        current_price: Price before the race.
        rules: Pricing constants.

    Returns:
        A :class:`PriceChange`.
    """
    ppm: float = calculate_ppm(points_scored, current_price)
    performance_tier = get_performance_tier(ppm, rules)
    price_tier = get_price_tier(current_price, rules)

    raw_change: int = rules.price_changes[price_tier][performance_tier]
    bounded: int = max(
        -rules.max_change_per_race, min(rules.max_change_per_race, raw_change)
    )
    new_price: int = clamp_price(current_price + bounded, rules)

    return PriceChange(
        new_price=new_price,
        change=new_price - current_price,
        ppm=ppm,
        performance_tier=performance_tier,
    )


# ---------------------------------------------------------------------------
# Rolling average
# ---------------------------------------------------------------------------


def calculate_rolling_average(
    points_series: Sequence[float],
    sprint_flags: Sequence[bool] | None = None,
    rules: PricingRules = DEFAULT_PRICING_RULES,
) -> float:
    """Weighted mean of the most recent points entries.

    *points_series* must be ordered most recent first; only the first
    ``rolling_window`` entries are used.  Sprint-flagged entries carry
    ``sprint_weight`` in both the numerator and the denominator.

    Returns:
        The weighted average, or 0.0 for an empty series.
    """
    if not points_series:
        return 0.0

    window: int = min(len(points_series), rules.rolling_window)
    weighted_sum: float = 0.0
    total_weight: float = 0.0

    for idx in range(window):
        is_sprint = bool(sprint_flags[idx]) if sprint_flags and idx < len(sprint_flags) else False
        weight: float = rules.sprint_weight if is_sprint else 1.0
        weighted_sum += points_series[idx] * weight
        total_weight += weight

    return weighted_sum / total_weight if total_weight > 0 else 0.0


# ---------------------------------------------------------------------------
# DNF penalties
# ---------------------------------------------------------------------------


def calculate_dnf_price_penalty(
    dnf_lap: int,
    total_laps: int,
    rules: PricingRules = DEFAULT_PRICING_RULES,
) -> int:
    """Price penalty for a retirement on *dnf_lap* of *total_laps*.

    Interpolates linearly from ``dnf_price_penalty_max`` on lap 1 down to
    ``dnf_price_penalty_min`` on the final lap, rounded up.

    Degenerate inputs: ``total_laps <= 1`` gives the minimum,
    ``dnf_lap <= 0`` (did not start) the maximum and
    ``dnf_lap >= total_laps`` the minimum.
    """
    if total_laps <= 1:
        return rules.dnf_price_penalty_min
    if dnf_lap <= 0:
        return rules.dnf_price_penalty_max
    if dnf_lap >= total_laps:
        return rules.dnf_price_penalty_min

    progress: float = (dnf_lap - 1) / (total_laps - 1)
    penalty: float = rules.dnf_price_penalty_min + (
        rules.dnf_price_penalty_max - rules.dnf_price_penalty_min
    ) * (1 - progress)
    return math.ceil(penalty)


def apply_dnf_penalty(
    current_price: int,
    dnf_lap: int,
    total_laps: int,
    rules: PricingRules = DEFAULT_PRICING_RULES,
) -> DnfPenalty:
    """Subtract the DNF penalty, flooring the result at ``dnf_price_floor``.

    The floor only stops a fall; an asset already priced below it keeps
    its price, so a DNF never raises a price.
    """
    penalty = calculate_dnf_price_penalty(dnf_lap, total_laps, rules)
    return DnfPenalty(
        new_price=max(min(current_price, rules.dnf_price_floor), current_price - penalty),
        penalty=penalty,
    )


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------


def get_price_trend(current_price: float, previous_price: float) -> PriceTrend:
    if current_price > previous_price:
        return PriceTrend.UP
    if current_price < previous_price:
        return PriceTrend.DOWN
    return PriceTrend.NEUTRAL


def get_price_change_percentage(current_price: float, previous_price: float) -> float:
    """Percentage move from *previous_price*; 0 when it is 0."""
    if previous_price == 0:
        return 0.0
    return (current_price - previous_price) / previous_price * 100
