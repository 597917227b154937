#!/usr/bin/env python
"""Settle the fantasy market from the latest real-world race weekend.

This script uses FastF1 to download the classified results of the latest
completed Grand Prix (plus the sprint on sprint weekends), converts them
into engine results, reprices every driver and constructor from their
opening prices, and writes the price moves to
``results/latest_market_settlement.json``.

The target season and event are detected automatically:

1. The current year is tried first (``datetime.now().year``).
2. If no events are found, the previous year is used as a fallback.
3. The latest event whose ``EventDate <= today`` is selected.

Usage
-----
::

    python scripts/process_race_weekend.py

Requirements
------------
- ``fastf1>=3.1``, ``pandas>=2.0`` and ``pyyaml>=6.0`` must be installed.
- Internet access is required on the first run (data is cached locally
  in ``fastf1_cache/`` afterward).
"""

from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import asdict
from datetime import datetime, timezone

import fastf1  # type: ignore[import-untyped]
import pandas as pd

# Ensure the project root is on the import path when running as a script.
_project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from fantasy_engine.config import load_grid, load_rules  # noqa: E402
from fantasy_engine.core.market import price_history_entries, settle_market  # noqa: E402
from fantasy_engine.core.simulation import opening_prices  # noqa: E402
from fantasy_engine.data_ingestion.fastf1_loader import (  # noqa: E402
    fastest_lap_driver,
    load_session_results,
    results_from_dataframe,
    sprint_results_from_dataframe,
)

RESULTS_DIR: str = os.path.join(_project_root, "results")
OUTPUT_PATH: str = os.path.join(RESULTS_DIR, "latest_market_settlement.json")


# ---------------------------------------------------------------------------
# Auto-detection helpers
# ---------------------------------------------------------------------------


def _detect_season() -> int:
    """Return the current year, falling back to the previous year.

    FastF1's ``get_event_schedule`` is queried for the current year.  If
    the schedule is empty (season data not yet available), the previous
    year is returned instead.
    """
    fastf1.Cache.enable_cache("fastf1_cache")
    year: int = datetime.now().year
    try:
        schedule = fastf1.get_event_schedule(year)
        if schedule.empty:
            raise ValueError("empty schedule")
    except Exception:
        year -= 1
    return year


def _detect_latest_event(year: int) -> tuple[str, bool]:
    """Return the latest completed race event for *year* and its sprint flag.

    Testing events are excluded so that only race weekends are
    considered.

    Raises:
        RuntimeError: If no completed events are found.
    """
    fastf1.Cache.enable_cache("fastf1_cache")
    schedule = fastf1.get_event_schedule(year)

    today = pd.Timestamp(datetime.now().date())
    races = schedule[schedule["EventFormat"] != "testing"]
    completed = races[races["EventDate"] <= today]

    if completed.empty:
        raise RuntimeError(f"No completed race events found for {year}.")

    latest = completed.iloc[-1]
    is_sprint = str(latest["EventFormat"]).startswith("sprint")
    return str(latest["EventName"]), is_sprint


def _engine_ids(results_df: pd.DataFrame) -> dict[str, str]:
    """Map FastF1 driver ids (``max_verstappen``) to grid ids (``verstappen``)."""
    return {
        str(row["DriverId"]): str(row["LastName"]).lower().replace(" ", "_")
        for _, row in results_df.iterrows()
    }


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def main() -> None:
    """Detect the latest weekend, settle the market and save the price moves."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    scoring_rules, pricing_rules = load_rules()
    grid = load_grid()

    year: int = _detect_season()
    event, is_sprint = _detect_latest_event(year)
    print(f"Detected season: {year}")
    print(f"Latest completed event: {event}{' (sprint weekend)' if is_sprint else ''}")
    print("(First run requires internet access; subsequent runs use cache.)")
    print()

    race_df, laps_df = load_session_results(year, event, "R")
    id_map = _engine_ids(race_df)
    race_results = results_from_dataframe(
        race_df, fastest_lap_driver(laps_df), id_map=id_map
    )
    sprint_results = []
    if is_sprint:
        sprint_df, _ = load_session_results(year, event, "S")
        sprint_results = sprint_results_from_dataframe(sprint_df, id_map=_engine_ids(sprint_df))
    print(f"Loaded {len(race_results)} race and {len(sprint_results)} sprint result(s).")

    driver_prices, constructor_prices = opening_prices(grid, pricing_rules)

    settlement = settle_market(
        driver_prices,
        constructor_prices,
        race_results,
        sprint_results,
        pricing_rules=pricing_rules,
        scoring_rules=scoring_rules,
    )

    # ---- Print structured output -------------------------------------------
    print()
    print("=" * 60)
    print("DRIVER PRICE MOVES")
    print("=" * 60)
    for update in sorted(settlement.drivers, key=lambda u: u.change, reverse=True):
        print(
            f"  {update.entity_id:<14s} ${update.previous_price:>4d} -> ${update.new_price:>4d}"
            f"  ({update.change:+d}, {update.points} pts, DNF -{update.dnf_penalty})"
        )
    print()
    print("=" * 60)
    print("CONSTRUCTOR PRICE MOVES")
    print("=" * 60)
    for update in sorted(settlement.constructors, key=lambda u: u.change, reverse=True):
        print(
            f"  {update.entity_id:<14s} ${update.previous_price:>4d} -> ${update.new_price:>4d}"
            f"  ({update.change:+d}, {update.points} pts)"
        )
    print()

    # ---- Save to JSON ------------------------------------------------------
    history = price_history_entries(
        settlement.all_updates, f"{year}-{event}", datetime.now(timezone.utc)
    )
    output = {
        "metadata": {"year": year, "event": event, "total_laps": settlement.total_laps},
        "price_history": [
            {**asdict(h), "entity_type": h.entity_type.value, "timestamp": h.timestamp.isoformat()}
            for h in history
        ],
    }
    os.makedirs(RESULTS_DIR, exist_ok=True)
    with open(OUTPUT_PATH, "w", encoding="utf-8") as fh:
        json.dump(output, fh, indent=2, sort_keys=True)
    print(f"Results written to {OUTPUT_PATH}")


if __name__ == "__main__":
    main()
