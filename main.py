"""CLI entrypoint for the F1 Fantasy Scoring & Pricing Engine."""

from __future__ import annotations

import sys
from datetime import datetime, timezone

from fantasy_engine import __version__
from fantasy_engine.config import load_calendar
from fantasy_engine.core.lockout import compute_lockout_status
from fantasy_engine.core.pricing import calculate_price_change
from fantasy_engine.core.results import RaceResult, ResultStatus
from fantasy_engine.core.roster import FantasyTeam, RosterAsset
from fantasy_engine.core.weekend import RaceWeekend, score_team_for_race


def main() -> None:
    """Run a demonstration of the scoring, pricing and lockout core."""
    print(f"F1 Fantasy Scoring & Pricing Engine v{__version__}")
    print("=" * 56)

    # -- Load calendar --------------------------------------------------------
    calendar = load_calendar()
    print(f"\n2026 Calendar: {len(calendar)} races loaded")
    for race in calendar:
        sprint = " (sprint)" if race.has_sprint else ""
        print(f"  R{race.round:02d}: {race.name}{sprint}")

    # -- Sample weekend -------------------------------------------------------
    opener = calendar[0]
    weekend = RaceWeekend(
        race=opener,
        race_results=(
            RaceResult("norris", "mclaren", 1, 3, positions_gained=2, fastest_lap=True),
            RaceResult("piastri", "mclaren", 2, 1, positions_gained=-1),
            RaceResult("russell", "mercedes", 3, 2, positions_gained=-1),
            RaceResult("albon", "williams", 8, 14, positions_gained=6),
            RaceResult("gasly", "alpine", 0, 9, status=ResultStatus.DNF, laps=12),
        ),
    )

    team = FantasyTeam(
        team_id="demo",
        drivers=(
            RosterAsset("norris", purchase_price=230, current_price=230, races_held=3),
            RosterAsset("russell", purchase_price=210, current_price=210),
            RosterAsset("albon", purchase_price=60, current_price=60),
            RosterAsset("gasly", purchase_price=45, current_price=45),
        ),
        constructor=RosterAsset("mclaren", purchase_price=300, current_price=300),
        captain_id="norris",
    )

    print(f"\nScoring team '{team.team_id}' for {opener.name}")
    print("-" * 56)
    result = score_team_for_race(team, weekend)
    for score in result.driver_scores:
        print(f"  {score.driver_id:<10} {score.total_points:>5} pts")
        for item in score.breakdown:
            print(f"      {item.label:<20} {item.points:>+4}  {item.description}")
    if result.constructor_score is not None:
        cs = result.constructor_score
        print(f"  {cs.constructor_id:<10} {cs.total_points:>5} pts (constructor)")
    print(f"\n  Team total: {result.total} pts")

    # -- Price moves ----------------------------------------------------------
    print("\nPrice moves after the race:")
    print(f"  {'Asset':<10}  {'Price':>5}  {'Points':>6}  {'New':>5}  {'Tier':<8}")
    for score, asset in zip(result.driver_scores, team.drivers):
        change = calculate_price_change(score.total_points, asset.current_price)
        print(
            f"  {asset.asset_id:<10}  {asset.current_price:5d}  {score.total_points:6d}"
            f"  {change.new_price:5d}  {change.performance_tier.value:<8}"
        )

    # -- Lockout --------------------------------------------------------------
    now = datetime.now(timezone.utc)
    status = compute_lockout_status(calendar, set(), now)
    print(f"\nLockout status at {now:%Y-%m-%d %H:%M} UTC: {status.state.value}")
    if status.next_race is not None:
        print(f"  Next race : {status.next_race.name}")
        print(f"  Locks at  : {status.lock_time:%Y-%m-%d %H:%M} UTC")
    if status.lock_reason:
        print(f"  Reason    : {status.lock_reason}")


if __name__ == "__main__":
    sys.exit(main() or 0)
