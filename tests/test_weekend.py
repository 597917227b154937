"""Tests for the per-race team scoring pass and the full recompute."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

from fantasy_engine.core.race import Race, RaceSchedule
from fantasy_engine.core.results import RaceResult, ResultStatus
from fantasy_engine.core.roster import FantasyTeam, RosterAsset
from fantasy_engine.core.weekend import (
    RaceWeekend,
    advance_team,
    recompute_team_points,
    score_team_for_race,
)

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

_START = datetime(2026, 3, 6, 2, 0, tzinfo=timezone.utc)


def _race(round_number: int, race_id: str) -> Race:
    fp1 = _START + timedelta(weeks=round_number - 1)
    return Race(
        race_id=race_id,
        round=round_number,
        name=f"{race_id.title()} Grand Prix",
        schedule=RaceSchedule(
            fp1=fp1,
            fp3=fp1 + timedelta(days=1),
            qualifying=fp1 + timedelta(days=1, hours=3),
            race=fp1 + timedelta(days=2),
        ),
        total_laps=50,
    )


def _weekend(round_number: int = 1, race_id: str = "australia") -> RaceWeekend:
    return RaceWeekend(
        race=_race(round_number, race_id),
        race_results=(
            RaceResult("norris", "mclaren", 1, 3, positions_gained=2, fastest_lap=True, laps=50),
            RaceResult("piastri", "mclaren", 2, 1, positions_gained=-1, laps=50),
            RaceResult("gasly", "alpine", 0, 9, status=ResultStatus.DNF, laps=12),
        ),
    )


def _team(**overrides: object) -> FantasyTeam:
    team = FantasyTeam(
        team_id="t1",
        drivers=(
            RosterAsset("norris", purchase_price=230, current_price=230),
            RosterAsset("gasly", purchase_price=45, current_price=45),
        ),
        constructor=RosterAsset("mclaren", purchase_price=300, current_price=300),
        captain_id="norris",
    )
    return replace(team, **overrides)


# ---------------------------------------------------------------------------
# Weekend data
# ---------------------------------------------------------------------------


def test_weekend_lookups() -> None:
    weekend = _weekend()
    assert weekend.race_result_for("norris").position == 1
    assert weekend.race_result_for("verstappen") is None
    assert weekend.sprint_result_for("norris") is None
    assert weekend.constructor_driver_ids("mclaren") == ["norris", "piastri"]
    assert weekend.total_laps == 50


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def test_score_team_for_race() -> None:
    """Captain doubles race points; the constructor averages its drivers."""
    score = score_team_for_race(_team(), _weekend())
    by_driver = {s.driver_id: s for s in score.driver_scores}

    # 25 + 2 gained + 1 fastest lap, doubled for the captain.
    assert by_driver["norris"].total_points == 56
    assert by_driver["gasly"].total_points == -5
    # (28 + 18) // 2, with no lock bonus yet.
    assert score.constructor_score.total_points == 23
    assert score.total == 56 - 5 + 23
    assert score.race_id == "australia"


def test_expensive_captain_is_ignored() -> None:
    """A captain priced over the cap earns no captain bonus."""
    drivers = (RosterAsset("norris", purchase_price=300, current_price=300),)
    score = score_team_for_race(_team(drivers=drivers), _weekend())
    assert score.driver_scores[0].captain_bonus == 0
    assert score.driver_scores[0].total_points == 28


def test_captain_constructor_doubles_average() -> None:
    constructor = RosterAsset("mclaren", purchase_price=200, current_price=200)
    team = _team(constructor=constructor, captain_constructor_id="mclaren")
    score = score_team_for_race(team, _weekend())
    assert score.constructor_score.captain_bonus == 23
    assert score.constructor_score.total_points == 46


def test_expensive_captain_constructor_is_ignored() -> None:
    """The captain price cap applies to constructors too."""
    score = score_team_for_race(_team(captain_constructor_id="mclaren"), _weekend())
    assert score.constructor_score.captain_bonus == 0
    assert score.constructor_score.total_points == 23


def test_catch_up_covers_three_races_after_joining() -> None:
    """A team that joined after race 5 is boosted on rounds 6, 7 and 8 only."""
    drivers = (
        RosterAsset("piastri", purchase_price=200, current_price=200, added_at_race=5),
    )
    team = FantasyTeam("late", drivers=drivers, joined_at_race=5)

    bonuses = {
        round_number: score_team_for_race(
            team, _weekend(round_number, f"r{round_number}")
        ).team_score.catch_up_bonus
        for round_number in range(6, 10)
    }

    assert bonuses == {6: 9, 7: 9, 8: 9, 9: 0}
    assert sum(1 for bonus in bonuses.values() if bonus) == 3


def test_hot_hand_for_driver_bought_after_previous_race() -> None:
    drivers = (
        RosterAsset(
            "norris", purchase_price=230, current_price=230, purchased_at_race_id="bahrain"
        ),
    )
    team = _team(drivers=drivers, captain_id=None)
    fresh = score_team_for_race(team, _weekend(), previous_race_id="bahrain")
    stale = score_team_for_race(team, _weekend(), previous_race_id="japan")
    assert fresh.driver_scores[0].hot_hand_bonus == 15
    assert stale.driver_scores[0].hot_hand_bonus == 0


def test_team_without_constructor() -> None:
    score = score_team_for_race(_team(constructor=None), _weekend())
    assert score.constructor_score is None
    assert score.total == 51


def test_advance_team_updates_counters() -> None:
    team = _team()
    score = score_team_for_race(team, _weekend())
    advanced = advance_team(team, score)

    assert advanced.driver("norris").races_held == 1
    assert advanced.driver("norris").points_scored == 56
    assert advanced.constructor.points_scored == 23
    assert advanced.races_since_transfer == 1
    assert advanced.total_points == score.total
    assert advanced.points_history == (score.total,)


# ---------------------------------------------------------------------------
# Full recompute
# ---------------------------------------------------------------------------


def test_recompute_matches_incremental_scoring() -> None:
    """Recomputing from scratch equals scoring race by race."""
    weekends = [_weekend(1, "australia"), _weekend(2, "china")]
    team = _team()

    incremental = team
    for weekend in weekends:
        incremental = advance_team(incremental, score_team_for_race(incremental, weekend))

    recomputed = recompute_team_points(team, weekends)
    assert recomputed.total_points == incremental.total_points
    assert recomputed.points_history == incremental.points_history
    assert recomputed.driver("norris").races_held == 2
    assert recomputed.races_since_transfer == 2


def test_recompute_is_idempotent() -> None:
    weekends = [_weekend(2, "china"), _weekend(1, "australia")]
    once = recompute_team_points(_team(total_points=9999), weekends)
    twice = recompute_team_points(once, weekends)
    assert once == twice


def test_recompute_late_joiner() -> None:
    """A late joiner gets flat compensation plus catch-up on its first race."""
    drivers = (
        RosterAsset("piastri", purchase_price=200, current_price=200, added_at_race=1),
    )
    team = FantasyTeam("late", drivers=drivers, joined_at_race=1)
    weekends = [_weekend(1, "australia"), _weekend(2, "china")]

    recomputed = recompute_team_points(team, weekends)

    # Round 2 only: 18 points, plus floor(18 * 0.5) catch-up.
    assert recomputed.points_history == (27,)
    assert recomputed.total_points == 30 + 27
    assert recomputed.driver("piastri").races_held == 1
    assert recomputed.driver("piastri").points_scored == 18


def test_recompute_keeps_locked_points() -> None:
    weekends = [_weekend(1, "australia")]
    team = _team(locked_points=40)
    recomputed = recompute_team_points(team, weekends)
    assert recomputed.total_points == 40 + sum(recomputed.points_history)


def test_recompute_counts_weekends_not_round_numbers() -> None:
    """A cancelled round does not shift races held or the transfer counter."""
    weekends = [_weekend(1, "australia"), _weekend(3, "japan"), _weekend(4, "bahrain")]
    team = _team()

    incremental = team
    for weekend in weekends:
        incremental = advance_team(incremental, score_team_for_race(incremental, weekend))

    recomputed = recompute_team_points(team, weekends)
    assert recomputed.points_history == incremental.points_history
    assert recomputed.driver("norris").races_held == 3
    assert recomputed.constructor.races_held == 3
    assert recomputed.races_since_transfer == 3


def test_recompute_late_joiner_across_cancelled_round() -> None:
    drivers = (
        RosterAsset("piastri", purchase_price=200, current_price=200, added_at_race=1),
    )
    team = FantasyTeam("late", drivers=drivers, joined_at_race=1)
    weekends = [_weekend(1, "australia"), _weekend(3, "japan"), _weekend(4, "bahrain")]

    recomputed = recompute_team_points(team, weekends)

    # 18 then 18 + 1 lock bonus, each with the 1.5x catch-up.
    assert recomputed.points_history == (27, 28)
    assert recomputed.driver("piastri").races_held == 2
    assert recomputed.races_since_transfer == 2
    assert recomputed.total_points == 30 + 27 + 28
