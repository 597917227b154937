#!/usr/bin/env python
"""Simulate a full fantasy season and summarise the market.

This script orchestrates the offline workflow:

1. Load the rules, the 2026 calendar and the driver grid.
2. Simulate every race weekend with a seeded generator and evolve
   driver and constructor prices.
3. Replay the season for a sample fantasy team with the idempotent
   recompute.
4. Save final prices and points to ``results/latest_season_simulation.json``.
5. Print a structured summary.

Usage
-----
::

    python scripts/simulate_season.py [seed]
"""

from __future__ import annotations

import json
import logging
import os
import sys

# Ensure the project root is on the import path.
_project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from fantasy_engine.config import load_calendar, load_grid, load_rules  # noqa: E402
from fantasy_engine.core.roster import FantasyTeam, RosterAsset  # noqa: E402
from fantasy_engine.core.rules import PricingRules  # noqa: E402
from fantasy_engine.core.simulation import (  # noqa: E402
    GridEntry,
    opening_prices,
    simulate_season,
)
from fantasy_engine.core.weekend import recompute_team_points  # noqa: E402

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

BASE_SEED: int = 2026
RESULTS_DIR: str = os.path.join(_project_root, "results")
OUTPUT_PATH: str = os.path.join(RESULTS_DIR, "latest_season_simulation.json")

_SAMPLE_DRIVERS: tuple[str, ...] = ("norris", "russell", "alonso", "albon", "gasly")
_SAMPLE_CONSTRUCTOR: str = "mercedes"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _sample_team(grid: list[GridEntry], pricing_rules: PricingRules) -> FantasyTeam:
    """Season-start team holding the sample roster at opening prices."""
    driver_prices, constructor_prices = opening_prices(grid, pricing_rules)
    drivers = tuple(
        RosterAsset(
            asset_id=driver_id,
            purchase_price=driver_prices[driver_id],
            current_price=driver_prices[driver_id],
            contract_length=24,
        )
        for driver_id in _SAMPLE_DRIVERS
    )
    constructor_price = constructor_prices[_SAMPLE_CONSTRUCTOR]
    constructor = RosterAsset(
        asset_id=_SAMPLE_CONSTRUCTOR,
        purchase_price=constructor_price,
        current_price=constructor_price,
        contract_length=24,
    )
    return FantasyTeam(
        team_id="sample",
        drivers=drivers,
        constructor=constructor,
        captain_id=_SAMPLE_DRIVERS[-1],
    )


# ---------------------------------------------------------------------------
# Main pipeline
# ---------------------------------------------------------------------------


def main() -> None:
    """Run the season simulation and print a summary."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    seed = int(sys.argv[1]) if len(sys.argv) > 1 else BASE_SEED

    print("=" * 60)
    print("FANTASY SEASON SIMULATION")
    print("=" * 60)
    print()

    print("[1/4] Loading rules, calendar and grid")
    scoring_rules, pricing_rules = load_rules()
    calendar = load_calendar()
    grid = load_grid()
    print(f"      {len(calendar)} races, {len(grid)} drivers.")
    print()

    print(f"[2/4] Simulating season (seed={seed})")
    result = simulate_season(calendar, grid, seed, pricing_rules, scoring_rules)
    print()

    print("[3/4] Replaying sample team")
    team = _sample_team(grid, pricing_rules)
    team = recompute_team_points(team, result.weekends, scoring_rules, pricing_rules)
    print(f"      Sample team total: {team.total_points} points")
    print()

    print("[4/4] Saving results")
    output: dict[str, object] = {
        "metadata": {"seed": seed, "races": len(calendar)},
        "driver_prices": result.driver_prices,
        "constructor_prices": result.constructor_prices,
        "driver_points": result.driver_points,
        "constructor_points": result.constructor_points,
        "sample_team_points": list(team.points_history),
    }
    os.makedirs(RESULTS_DIR, exist_ok=True)
    with open(OUTPUT_PATH, "w", encoding="utf-8") as fh:
        json.dump(output, fh, indent=2, sort_keys=True)
    print(f"      Results saved to {OUTPUT_PATH}")
    print()

    print("=" * 60)
    print("FINAL DRIVER MARKET")
    print("=" * 60)
    ranked = sorted(result.driver_prices.items(), key=lambda x: x[1], reverse=True)
    for rank, (driver_id, price) in enumerate(ranked, start=1):
        history = result.price_history[driver_id]
        print(
            f"  {rank:2d}. {driver_id:<14s}  ${price:>4d}  "
            f"pts: {result.driver_points[driver_id]:>4d}  "
            f"range: ${min(history)}-${max(history)}"
        )
    print()


if __name__ == "__main__":
    main()
