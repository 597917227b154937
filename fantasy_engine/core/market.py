"""Market settlement after a completed race.

This module drives the pricing engine across the whole grid: it derives
market points from the weekend's results, reprices every active driver
and constructor, applies diminishing returns and DNF penalties, and
emits append-only price history records.  It also ranks the market into
value tiers and keeps held roster assets in sync with new prices.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Iterable, Mapping, Sequence

from fantasy_engine.core.pricing import (
    calculate_dnf_price_penalty,
    calculate_ppm,
    calculate_price_change,
    clamp_price,
    round_half_up,
)
from fantasy_engine.core.results import RaceResult, ResultStatus, SprintResult
from fantasy_engine.core.roster import FantasyTeam
from fantasy_engine.core.rules import (
    DEFAULT_PRICING_RULES,
    DEFAULT_SCORING_RULES,
    PriceTier,
    PricingRules,
    ScoringRules,
)

logger = logging.getLogger(__name__)

VALUE_TIER_SHARE: float = 0.3


class EntityType(str, Enum):
    DRIVER = "driver"
    CONSTRUCTOR = "constructor"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PriceUpdate:
    """Price movement of one entity for one race.

    Attributes:
        entity_id: Driver or constructor id.
        entity_type: Kind of entity.
        previous_price: Price before the race.
        new_price: Price after the race.
        change: ``new_price - previous_price``.
        performance_change: Tiered change after diminishing returns.
        dnf_penalty: Retirement penalty subtracted from the price.
        points: Market points that drove the change.
    """

    entity_id: str
    entity_type: EntityType
    previous_price: int
    new_price: int
    change: int
    performance_change: int
    dnf_penalty: int
    points: int


@dataclass(frozen=True)
class PriceHistoryEntry:
    entity_id: str
    entity_type: EntityType
    race_id: str
    price: int
    previous_price: int
    change: int
    performance_change: int
    dnf_penalty: int
    points: int
    timestamp: datetime


@dataclass(frozen=True)
class MarketSettlement:
    drivers: tuple[PriceUpdate, ...]
    constructors: tuple[PriceUpdate, ...]
    total_laps: int

    @property
    def all_updates(self) -> tuple[PriceUpdate, ...]:
        return self.drivers + self.constructors


@dataclass(frozen=True)
class MarketEntry:
    """A priced asset as listed in the market.

    Used for value tiering and as the candidate pool for auto-fill.
    """

    entity_id: str
    price: int
    constructor_id: str = ""
    season_points: int = 0
    current_season_points: int = 0
    tier: PriceTier = PriceTier.B
    is_active: bool = True


# ---------------------------------------------------------------------------
# Price helpers
# ---------------------------------------------------------------------------


def calculate_price_from_rolling_average(
    rolling_avg_points: float,
    rules: PricingRules = DEFAULT_PRICING_RULES,
) -> int:
    """Target price implied by a rolling points average (rounded half up)."""
    return clamp_price(round_half_up(rolling_avg_points * rules.dollars_per_point), rules)


def cap_price_change(
    current_price: int,
    target_price: int,
    rules: PricingRules = DEFAULT_PRICING_RULES,
) -> int:
    """Move from *current_price* toward *target_price*, bounded per race."""
    raw_change = target_price - current_price
    return max(-rules.max_change_per_race, min(rules.max_change_per_race, raw_change))


def apply_diminishing_returns(
    change: int,
    current_price: int,
    rules: PricingRules = DEFAULT_PRICING_RULES,
) -> int:
    """Damp price rises for assets above the diminishing-returns floor.

    The factor falls linearly from 1 at the floor to
    ``diminishing_returns_min_factor`` at ``max_price``.  Falls and
    prices at or below the floor are returned unchanged.
    """
    if change <= 0 or current_price <= rules.diminishing_returns_floor:
        return change
    span = rules.max_price - rules.diminishing_returns_floor
    progress = min(1.0, (current_price - rules.diminishing_returns_floor) / span)
    factor = 1 - progress * (1 - rules.diminishing_returns_min_factor)
    return round_half_up(change * factor)


# ---------------------------------------------------------------------------
# Market points
# ---------------------------------------------------------------------------


def calculate_pricing_points(
    race_result: RaceResult | None,
    sprint_result: SprintResult | None = None,
    scoring_rules: ScoringRules = DEFAULT_SCORING_RULES,
) -> int:
    """Points used for repricing a driver.

    Only classified finishes inside the points table count; a classified
    finish adds places gained and the fastest-lap bonus.  Retirements and
    disqualifications contribute nothing here since they are priced
    through the DNF penalty instead.
    """
    points = 0
    if (
        race_result is not None
        and race_result.status is ResultStatus.FINISHED
        and 1 <= race_result.position <= len(scoring_rules.race_points)
    ):
        points += scoring_rules.race_points[race_result.position - 1]
        if race_result.positions_gained > 0:
            points += race_result.positions_gained * scoring_rules.position_gained_bonus
        if race_result.fastest_lap:
            points += scoring_rules.fastest_lap_bonus

    if (
        sprint_result is not None
        and sprint_result.status is ResultStatus.FINISHED
        and 1 <= sprint_result.position <= len(scoring_rules.sprint_points)
    ):
        points += scoring_rules.sprint_points[sprint_result.position - 1]

    return points


def estimate_total_laps(race_results: Iterable[RaceResult]) -> int:
    """Race distance inferred as the most laps completed by a finisher."""
    return max(
        (r.laps for r in race_results if r.status is ResultStatus.FINISHED),
        default=0,
    )


# ---------------------------------------------------------------------------
# Settlement
# ---------------------------------------------------------------------------


def _reprice(
    entity_id: str,
    entity_type: EntityType,
    current_price: int,
    points: int,
    dnf_penalty: int,
    rules: PricingRules,
) -> PriceUpdate:
    tiered = calculate_price_change(points, current_price, rules)
    performance_change = apply_diminishing_returns(
        tiered.new_price - current_price, current_price, rules
    )
    total_change = max(
        -rules.max_change_per_race,
        min(rules.max_change_per_race, performance_change - dnf_penalty),
    )
    new_price = clamp_price(current_price + total_change, rules)
    return PriceUpdate(
        entity_id=entity_id,
        entity_type=entity_type,
        previous_price=current_price,
        new_price=new_price,
        change=new_price - current_price,
        performance_change=performance_change,
        dnf_penalty=dnf_penalty,
        points=points,
    )


def settle_market(
    driver_prices: Mapping[str, int],
    constructor_prices: Mapping[str, int],
    race_results: Sequence[RaceResult],
    sprint_results: Sequence[SprintResult] = (),
    total_laps: int = 0,
    pricing_rules: PricingRules = DEFAULT_PRICING_RULES,
    scoring_rules: ScoringRules = DEFAULT_SCORING_RULES,
) -> MarketSettlement:
    """Reprice every listed driver and constructor after a race.

    Drivers are repriced on their race plus sprint market points.
    Constructors are repriced on the sum of their drivers' race market
    points.  A DNF subtracts the lap-scaled penalty from the driver and
    adds it to the constructor's penalty.  Entities absent from the
    results score 0 market points.

    Args:
        driver_prices: Current price per active driver id.
        constructor_prices: Current price per active constructor id.
        race_results: Grand Prix classification.
        sprint_results: Sprint classification (empty on normal weekends).
        total_laps: Race distance; inferred from finishers when 0.
        pricing_rules: Pricing constants.
        scoring_rules: Points tables used for market points.

    Returns:
        A :class:`MarketSettlement`.
    """
    laps = total_laps or estimate_total_laps(race_results)
    sprint_by_driver = {s.driver_id: s for s in sprint_results}

    driver_points: dict[str, int] = {}
    constructor_points: dict[str, int] = {}
    driver_dnf: dict[str, int] = {}
    constructor_dnf: dict[str, int] = {}

    for result in race_results:
        race_only = calculate_pricing_points(result, None, scoring_rules)
        with_sprint = calculate_pricing_points(
            result, sprint_by_driver.get(result.driver_id), scoring_rules
        )
        driver_points[result.driver_id] = driver_points.get(result.driver_id, 0) + with_sprint
        constructor_points[result.constructor_id] = (
            constructor_points.get(result.constructor_id, 0) + race_only
        )
        if result.status is ResultStatus.DNF and laps > 0:
            penalty = calculate_dnf_price_penalty(result.laps or 1, laps, pricing_rules)
            driver_dnf[result.driver_id] = penalty
            constructor_dnf[result.constructor_id] = (
                constructor_dnf.get(result.constructor_id, 0) + penalty
            )

    # Sprint finishers missing from the race classification still earn sprint points.
    for driver_id, sprint in sprint_by_driver.items():
        if driver_id not in driver_points:
            driver_points[driver_id] = calculate_pricing_points(None, sprint, scoring_rules)

    drivers = tuple(
        _reprice(
            driver_id,
            EntityType.DRIVER,
            price,
            driver_points.get(driver_id, 0),
            driver_dnf.get(driver_id, 0),
            pricing_rules,
        )
        for driver_id, price in driver_prices.items()
    )
    constructors = tuple(
        _reprice(
            constructor_id,
            EntityType.CONSTRUCTOR,
            price,
            constructor_points.get(constructor_id, 0),
            constructor_dnf.get(constructor_id, 0),
            pricing_rules,
        )
        for constructor_id, price in constructor_prices.items()
    )

    logger.info(
        "Settled market: %d drivers, %d constructors (%d laps)",
        len(drivers),
        len(constructors),
        laps,
    )
    return MarketSettlement(drivers=drivers, constructors=constructors, total_laps=laps)


def price_history_entries(
    updates: Iterable[PriceUpdate],
    race_id: str,
    timestamp: datetime,
) -> list[PriceHistoryEntry]:
    """Append-only history records for a settlement."""
    return [
        PriceHistoryEntry(
            entity_id=u.entity_id,
            entity_type=u.entity_type,
            race_id=race_id,
            price=u.new_price,
            previous_price=u.previous_price,
            change=u.change,
            performance_change=u.performance_change,
            dnf_penalty=u.dnf_penalty,
            points=u.points,
            timestamp=timestamp,
        )
        for u in updates
    ]


def recent_points(
    history: Iterable[PriceHistoryEntry],
    entity_id: str,
) -> list[int]:
    """Market points of *entity_id*, most recent first (rolling-average input)."""
    entries = [h for h in history if h.entity_id == entity_id]
    entries.sort(key=lambda h: h.timestamp, reverse=True)
    return [h.points for h in entries]


# ---------------------------------------------------------------------------
# Value tiers
# ---------------------------------------------------------------------------


def assign_value_tiers(entries: Sequence[MarketEntry]) -> list[MarketEntry]:
    """Rank active entries by points per dollar into A/B/C value tiers.

    The best 30% become tier A and the worst 30% tier C (at least one
    entry each), the rest tier B.  Current-season points are used once
    positive, otherwise last season's.  Inactive entries keep their
    tier, and when no active entry has any points every tier is kept.
    """
    active = [e for e in entries if e.is_active]
    if not active:
        return list(entries)

    ranked: list[tuple[str, float]] = []
    for entry in active:
        relevant = (
            entry.current_season_points
            if entry.current_season_points > 0
            else entry.season_points
        )
        ranked.append((entry.entity_id, calculate_ppm(relevant, entry.price)))

    if not any(ppd > 0 for _, ppd in ranked):
        return list(entries)

    ranked.sort(key=lambda item: item[1], reverse=True)
    total = len(ranked)
    tier_a_count = max(1, round_half_up(total * VALUE_TIER_SHARE))
    tier_c_count = max(1, round_half_up(total * VALUE_TIER_SHARE))

    tier_map: dict[str, PriceTier] = {}
    for index, (entity_id, _) in enumerate(ranked):
        if index < tier_a_count:
            tier_map[entity_id] = PriceTier.A
        elif index >= total - tier_c_count:
            tier_map[entity_id] = PriceTier.C
        else:
            tier_map[entity_id] = PriceTier.B

    return [
        replace(e, tier=tier_map[e.entity_id]) if e.entity_id in tier_map else e
        for e in entries
    ]


# ---------------------------------------------------------------------------
# Roster sync
# ---------------------------------------------------------------------------


def refresh_team_prices(
    team: FantasyTeam,
    driver_prices: Mapping[str, int],
    constructor_prices: Mapping[str, int],
) -> FantasyTeam:
    """Return *team* with held assets carrying the latest market prices."""
    drivers = tuple(
        replace(d, current_price=driver_prices.get(d.asset_id, d.current_price))
        for d in team.drivers
    )
    constructor = team.constructor
    if constructor is not None:
        constructor = replace(
            constructor,
            current_price=constructor_prices.get(
                constructor.asset_id, constructor.current_price
            ),
        )
    return replace(team, drivers=drivers, constructor=constructor)
