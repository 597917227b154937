"""Seeded synthetic season simulator.

Generates plausible race weekends for a grid of drivers and runs them
through the pricing engine, so that scoring and market behaviour can be
studied across a whole season without real results.

Each driver's weekend performance is::

    perf = strength
           + N(0, 15 * v) * (1 - consistency)
           + N(0, 5 * v)

where ``v`` is 1.0 for the race and 0.7 for the sprint.  Retirements are
independent Bernoulli draws (8% per race, 3% per sprint) and the fastest
lap goes to a random top-ten finisher.  Prices follow a rolling average
of market points converted to a target price, moved at most
``max_change_per_race`` per race.

All randomness flows through a single ``numpy.random.Generator`` seeded
from the caller, so the same seed always reproduces the same season.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field

import numpy as np
from numpy.random import Generator

from fantasy_engine.core.market import (
    calculate_price_from_rolling_average,
    calculate_pricing_points,
    cap_price_change,
)
from fantasy_engine.core.pricing import calculate_initial_price, calculate_rolling_average
from fantasy_engine.core.race import Race
from fantasy_engine.core.results import RaceResult, ResultStatus, SprintResult
from fantasy_engine.core.rules import (
    DEFAULT_PRICING_RULES,
    DEFAULT_SCORING_RULES,
    PricingRules,
    ScoringRules,
)
from fantasy_engine.core.weekend import RaceWeekend

logger = logging.getLogger(__name__)

RACE_DNF_CHANCE: float = 0.08
SPRINT_DNF_CHANCE: float = 0.03
SPRINT_VARIANCE: float = 0.7
INCONSISTENCY_STD: float = 15.0
BASE_NOISE_STD: float = 5.0
DEFAULT_TOTAL_LAPS: int = 57

# ---------------------------------------------------------------------------
# Inputs and outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GridEntry:
    """A driver on the simulated grid.

    Attributes:
        driver_id: Identifier of the driver.
        constructor_id: Identifier of the driver's constructor.
        strength: Baseline performance score (higher is faster).
        consistency: 0.0--1.0; higher values shrink performance variance.
        previous_season_points: Fantasy points last season, used for the
            opening price.
    """

    driver_id: str
    constructor_id: str
    strength: float
    consistency: float
    previous_season_points: float = 0.0

    def __post_init__(self) -> None:
        if not self.driver_id:
            raise ValueError("driver_id must not be empty.")
        if not self.constructor_id:
            raise ValueError("constructor_id must not be empty.")
        if not 0.0 <= self.consistency <= 1.0:
            raise ValueError("consistency must be in [0, 1].")


@dataclass(frozen=True)
class SeasonSimulation:
    """Outcome of a simulated season.

    Attributes:
        weekends: Every simulated weekend, in round order.
        driver_prices: Final price per driver.
        constructor_prices: Final price per constructor.
        driver_points: Season market points per driver.
        constructor_points: Season market points per constructor.
        price_history: Price after each race per entity id, oldest first.
    """

    weekends: tuple[RaceWeekend, ...]
    driver_prices: dict[str, int]
    constructor_prices: dict[str, int]
    driver_points: dict[str, int]
    constructor_points: dict[str, int]
    price_history: dict[str, list[int]] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Session simulation
# ---------------------------------------------------------------------------


def _draw_performance(entry: GridEntry, variance: float, rng: Generator) -> float:
    return (
        entry.strength
        + float(rng.normal(0.0, INCONSISTENCY_STD * variance)) * (1 - entry.consistency)
        + float(rng.normal(0.0, BASE_NOISE_STD * variance))
    )


def simulate_race_results(
    grid: list[GridEntry],
    total_laps: int,
    rng: Generator,
) -> list[RaceResult]:
    """Simulate qualifying and a Grand Prix for *grid*.

    The starting grid is ordered by a separate qualifying performance
    draw.  Retirements are classified with position 0 and a uniformly
    drawn retirement lap.
    """
    qualifying = sorted(grid, key=lambda e: _draw_performance(e, 1.0, rng), reverse=True)
    grid_slot = {e.driver_id: idx + 1 for idx, e in enumerate(qualifying)}

    draws = [
        (e, _draw_performance(e, 1.0, rng), bool(rng.random() < RACE_DNF_CHANCE))
        for e in grid
    ]
    finishers = sorted((d for d in draws if not d[2]), key=lambda d: d[1], reverse=True)
    retirements = [d for d in draws if d[2]]

    fastest_lap_id: str | None = None
    top_ten = finishers[:10]
    if top_ten:
        fastest_lap_id = top_ten[int(rng.integers(0, len(top_ten)))][0].driver_id

    results: list[RaceResult] = []
    for position, (entry, _, _) in enumerate(finishers, start=1):
        grid_position = grid_slot[entry.driver_id]
        results.append(
            RaceResult(
                driver_id=entry.driver_id,
                constructor_id=entry.constructor_id,
                position=position,
                grid_position=grid_position,
                positions_gained=grid_position - position,
                fastest_lap=entry.driver_id == fastest_lap_id,
                status=ResultStatus.FINISHED,
                laps=total_laps,
            )
        )
    for entry, _, _ in retirements:
        results.append(
            RaceResult(
                driver_id=entry.driver_id,
                constructor_id=entry.constructor_id,
                position=0,
                grid_position=grid_slot[entry.driver_id],
                status=ResultStatus.DNF,
                laps=int(rng.integers(0, max(total_laps, 1))),
            )
        )
    return results


def simulate_sprint_results(grid: list[GridEntry], rng: Generator) -> list[SprintResult]:
    """Simulate a sprint with reduced variance and a lower retirement rate."""
    draws = [
        (e, _draw_performance(e, SPRINT_VARIANCE, rng), bool(rng.random() < SPRINT_DNF_CHANCE))
        for e in grid
    ]
    finishers = sorted((d for d in draws if not d[2]), key=lambda d: d[1], reverse=True)
    results = [
        SprintResult(e.driver_id, e.constructor_id, position)
        for position, (e, _, _) in enumerate(finishers, start=1)
    ]
    results.extend(
        SprintResult(e.driver_id, e.constructor_id, 0, ResultStatus.DNF)
        for e, _, dnf in draws
        if dnf
    )
    return results


# ---------------------------------------------------------------------------
# Season simulation
# ---------------------------------------------------------------------------


def opening_prices(
    grid: list[GridEntry],
    rules: PricingRules = DEFAULT_PRICING_RULES,
) -> tuple[dict[str, int], dict[str, int]]:
    """Season-opening driver and constructor prices for *grid*.

    Drivers open at :func:`calculate_initial_price` of their previous
    season points; a constructor opens at the sum of its drivers'
    opening prices, clamped to the price bounds.
    """
    driver_prices: dict[str, int] = {
        e.driver_id: calculate_initial_price(e.previous_season_points, rules) for e in grid
    }
    constructor_prices: dict[str, int] = {}
    for entry in grid:
        constructor_prices[entry.constructor_id] = (
            constructor_prices.get(entry.constructor_id, 0) + driver_prices[entry.driver_id]
        )
    constructor_prices = {
        cid: max(rules.min_price, min(rules.max_price, price))
        for cid, price in constructor_prices.items()
    }
    return driver_prices, constructor_prices


def simulate_season(
    calendar: list[Race],
    grid: list[GridEntry],
    seed: int = 42,
    pricing_rules: PricingRules = DEFAULT_PRICING_RULES,
    scoring_rules: ScoringRules = DEFAULT_SCORING_RULES,
) -> SeasonSimulation:
    """Simulate every race on *calendar* and evolve market prices.

    Prices open at :func:`opening_prices`.  After each weekend
    every entity's market points are pushed onto its rolling window
    (sprint weekends flagged) and its price moves toward the rolling
    target by at most ``max_change_per_race``.

    Args:
        calendar: Races to simulate, any order (sorted by round).
        grid: Participating drivers.
        seed: Seed for the random generator.
        pricing_rules: Pricing constants.
        scoring_rules: Points tables used for market points.

    Returns:
        A :class:`SeasonSimulation`.

    Raises:
        ValueError: If *calendar* or *grid* is empty.
    """
    if not calendar:
        raise ValueError("calendar must not be empty.")
    if not grid:
        raise ValueError("grid must not be empty.")

    rng: Generator = np.random.default_rng(seed)
    races = sorted(calendar, key=lambda r: r.round)
    driver_prices, constructor_prices = opening_prices(grid, pricing_rules)
    constructor_ids: list[str] = list(constructor_prices)

    windows: dict[str, list[float]] = defaultdict(list)
    sprint_flags: dict[str, list[bool]] = defaultdict(list)
    season_points: dict[str, int] = defaultdict(int)
    price_history: dict[str, list[int]] = defaultdict(list)
    weekends: list[RaceWeekend] = []

    def _reprice(entity_id: str, points: int, is_sprint_weekend: bool, price: int) -> int:
        windows[entity_id].insert(0, points)
        sprint_flags[entity_id].insert(0, is_sprint_weekend)
        del windows[entity_id][pricing_rules.rolling_window :]
        del sprint_flags[entity_id][pricing_rules.rolling_window :]
        average = calculate_rolling_average(
            windows[entity_id], sprint_flags[entity_id], pricing_rules
        )
        target = calculate_price_from_rolling_average(average, pricing_rules)
        new_price = price + cap_price_change(price, target, pricing_rules)
        new_price = max(pricing_rules.min_price, min(pricing_rules.max_price, new_price))
        price_history[entity_id].append(new_price)
        return new_price

    for race in races:
        laps = race.total_laps or DEFAULT_TOTAL_LAPS
        race_results = simulate_race_results(grid, laps, rng)
        sprint_results = simulate_sprint_results(grid, rng) if race.has_sprint else []
        weekend = RaceWeekend(race, tuple(race_results), tuple(sprint_results))
        weekends.append(weekend)

        ctor_points: dict[str, int] = defaultdict(int)
        for entry in grid:
            points = calculate_pricing_points(
                weekend.race_result_for(entry.driver_id),
                weekend.sprint_result_for(entry.driver_id),
                scoring_rules,
            )
            season_points[entry.driver_id] += points
            ctor_points[entry.constructor_id] += points
            driver_prices[entry.driver_id] = _reprice(
                entry.driver_id, points, race.has_sprint, driver_prices[entry.driver_id]
            )

        for cid in constructor_ids:
            season_points[cid] += ctor_points[cid]
            constructor_prices[cid] = _reprice(
                cid, ctor_points[cid], race.has_sprint, constructor_prices[cid]
            )

        logger.debug("Simulated round %d (%s)", race.round, race.name)

    logger.info("Simulated %d race(s) for %d driver(s), seed=%d", len(races), len(grid), seed)
    return SeasonSimulation(
        weekends=tuple(weekends),
        driver_prices=dict(driver_prices),
        constructor_prices=dict(constructor_prices),
        driver_points={e.driver_id: season_points[e.driver_id] for e in grid},
        constructor_points={cid: season_points[cid] for cid in constructor_ids},
        price_history=dict(price_history),
    )
