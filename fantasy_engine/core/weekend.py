"""Per-race scoring pass over fantasy teams.

A :class:`RaceWeekend` bundles one completed race with its results.
:func:`score_team_for_race` scores a team against it,
:func:`advance_team` folds the score into the team's counters, and
:func:`recompute_team_points` rebuilds a team's totals from scratch out
of every completed weekend.

The recompute is idempotent: it derives races held and races since
transfer from each asset's ``added_at_race`` rather than from stored
counters, and starts from ``locked_points`` instead of the stored
total, so running it any number of times gives the same team.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Sequence

from fantasy_engine.core.contracts import is_captain_eligible
from fantasy_engine.core.market import estimate_total_laps
from fantasy_engine.core.race import Race
from fantasy_engine.core.results import RaceResult, SprintResult
from fantasy_engine.core.roster import FantasyTeam, RosterAsset
from fantasy_engine.core.rules import (
    DEFAULT_PRICING_RULES,
    DEFAULT_SCORING_RULES,
    PricingRules,
    ScoringRules,
)
from fantasy_engine.core.scoring import (
    ConstructorScore,
    DriverScore,
    TeamScore,
    calculate_constructor_score,
    calculate_driver_score,
    calculate_late_joiner_points,
    calculate_team_points_v3,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Weekend data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RaceWeekend:
    """A completed race and its classified results."""

    race: Race
    race_results: tuple[RaceResult, ...]
    sprint_results: tuple[SprintResult, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "race_results", tuple(self.race_results))
        object.__setattr__(self, "sprint_results", tuple(self.sprint_results))

    @property
    def total_laps(self) -> int:
        return self.race.total_laps or estimate_total_laps(self.race_results)

    def race_result_for(self, driver_id: str) -> RaceResult | None:
        for result in self.race_results:
            if result.driver_id == driver_id:
                return result
        return None

    def sprint_result_for(self, driver_id: str) -> SprintResult | None:
        for result in self.sprint_results:
            if result.driver_id == driver_id:
                return result
        return None

    def constructor_driver_ids(self, constructor_id: str) -> list[str]:
        return [r.driver_id for r in self.race_results if r.constructor_id == constructor_id]


@dataclass(frozen=True)
class WeekendTeamScore:
    """A team's full score for one weekend."""

    race_id: str
    team_score: TeamScore
    driver_scores: tuple[DriverScore, ...] = ()
    constructor_score: ConstructorScore | None = None

    @property
    def total(self) -> int:
        return self.team_score.total


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def _is_captain(
    team: FantasyTeam,
    asset: RosterAsset,
    captain_id: str | None,
    pricing_rules: PricingRules,
) -> bool:
    if asset.asset_id != captain_id:
        return False
    if not is_captain_eligible(asset, pricing_rules):
        logger.warning(
            "Team %s: captain %s priced %d exceeds cap %d, ignoring captaincy",
            team.team_id,
            asset.asset_id,
            asset.current_price,
            pricing_rules.captain_max_price,
        )
        return False
    return True


def _score_constructor(
    constructor: RosterAsset,
    weekend: RaceWeekend,
    scoring_rules: ScoringRules,
    is_captain: bool = False,
) -> ConstructorScore:
    # Constructor points come from its two drivers' raw weekend scores.
    neutral_scores: list[DriverScore | None] = []
    for driver_id in weekend.constructor_driver_ids(constructor.asset_id)[:2]:
        stand_in = RosterAsset(asset_id=driver_id, purchase_price=0, current_price=0)
        neutral_scores.append(
            calculate_driver_score(
                driver_id,
                weekend.race.race_id,
                weekend.race_result_for(driver_id),
                weekend.sprint_result_for(driver_id),
                stand_in,
                scoring_rules,
            )
        )
    while len(neutral_scores) < 2:
        neutral_scores.append(None)

    return calculate_constructor_score(
        constructor.asset_id,
        weekend.race.race_id,
        neutral_scores[0],
        neutral_scores[1],
        constructor,
        scoring_rules,
        is_captain=is_captain,
    )


def score_team_for_race(
    team: FantasyTeam,
    weekend: RaceWeekend,
    previous_race_id: str | None = None,
    scoring_rules: ScoringRules = DEFAULT_SCORING_RULES,
    pricing_rules: PricingRules = DEFAULT_PRICING_RULES,
    completed_before: int | None = None,
) -> WeekendTeamScore:
    """Score *team* against one completed weekend.

    A driver is captain when it matches ``team.captain_id`` and the
    constructor when it matches ``team.captain_constructor_id``; either
    must be priced within the captain cap.  A driver earns hot-hand
    eligibility when it was bought right after *previous_race_id*.

    Catch-up is judged on *completed_before*, the number of races
    completed before this weekend, so a team that joined after race N
    is boosted on the next ``catch_up_races`` weekends.

    Args:
        team: Team state before the race.
        weekend: The completed race.
        previous_race_id: Id of the race completed before *weekend*.
        scoring_rules: Scoring constants.
        pricing_rules: Pricing constants (captain price cap).
        completed_before: Races completed before *weekend*; defaults to
            ``weekend.race.round - 1``.

    Returns:
        A :class:`WeekendTeamScore`.
    """
    race_id = weekend.race.race_id
    if completed_before is None:
        completed_before = weekend.race.round - 1
    driver_scores: list[DriverScore] = []

    for asset in team.drivers:
        is_new_transfer = (
            asset.purchased_at_race_id is not None
            and asset.purchased_at_race_id == previous_race_id
        )
        driver_scores.append(
            calculate_driver_score(
                asset.asset_id,
                race_id,
                weekend.race_result_for(asset.asset_id),
                weekend.sprint_result_for(asset.asset_id),
                asset,
                scoring_rules,
                is_captain=_is_captain(team, asset, team.captain_id, pricing_rules),
                is_new_transfer=is_new_transfer,
            )
        )

    constructor_score = None
    if team.constructor is not None:
        constructor_score = _score_constructor(
            team.constructor,
            weekend,
            scoring_rules,
            is_captain=_is_captain(
                team, team.constructor, team.captain_constructor_id, pricing_rules
            ),
        )

    team_score = calculate_team_points_v3(
        team,
        driver_scores,
        constructor_score,
        current_race_number=completed_before,
        rules=scoring_rules,
    )
    return WeekendTeamScore(
        race_id=race_id,
        team_score=team_score,
        driver_scores=tuple(driver_scores),
        constructor_score=constructor_score,
    )


def advance_team(team: FantasyTeam, score: WeekendTeamScore) -> FantasyTeam:
    """Fold one weekend's score into the team's counters and totals."""
    by_driver = {s.driver_id: s.total_points for s in score.driver_scores}
    drivers = tuple(
        replace(
            d,
            races_held=d.races_held + 1,
            points_scored=d.points_scored + by_driver.get(d.asset_id, 0),
        )
        for d in team.drivers
    )
    constructor = team.constructor
    if constructor is not None:
        earned = score.constructor_score.total_points if score.constructor_score else 0
        constructor = replace(
            constructor,
            races_held=constructor.races_held + 1,
            points_scored=constructor.points_scored + earned,
        )
    return replace(
        team,
        drivers=drivers,
        constructor=constructor,
        races_since_transfer=team.races_since_transfer + 1,
        total_points=team.total_points + score.total,
        points_history=team.points_history + (score.total,),
    )


# ---------------------------------------------------------------------------
# Full recompute
# ---------------------------------------------------------------------------


def _last_transfer_before(team: FantasyTeam, completed_count: int) -> int:
    transfers = [
        a.added_at_race
        for a in team.assets
        if team.joined_at_race < a.added_at_race <= completed_count
    ]
    return max(transfers, default=team.joined_at_race)


def _team_as_of(team: FantasyTeam, completed_before: int) -> FantasyTeam:
    """Team state once *completed_before* races are done, derived from tenure only."""
    drivers = tuple(
        replace(d, races_held=completed_before - d.added_at_race)
        for d in team.drivers
        if d.added_at_race <= completed_before
    )
    constructor = team.constructor
    if constructor is not None:
        constructor = (
            replace(constructor, races_held=completed_before - constructor.added_at_race)
            if constructor.added_at_race <= completed_before
            else None
        )
    return replace(
        team,
        drivers=drivers,
        constructor=constructor,
        races_since_transfer=completed_before - _last_transfer_before(team, completed_before),
    )


def recompute_team_points(
    team: FantasyTeam,
    weekends: Sequence[RaceWeekend],
    scoring_rules: ScoringRules = DEFAULT_SCORING_RULES,
    pricing_rules: PricingRules = DEFAULT_PRICING_RULES,
) -> FantasyTeam:
    """Rebuild a team's totals from every completed weekend.

    Weekends are counted by their position in round order, so gaps in
    the round numbers (a cancelled race) do not shift tenure.  Only
    weekends after the team joined are scored, and each asset only for
    the weekends it was held.  The season total is ``locked_points``
    plus late-joiner compensation plus the per-race totals; the stored
    total is ignored.

    Args:
        team: Current team; its counters and totals are not trusted.
        weekends: Every completed weekend of the season, in any order.
        scoring_rules: Scoring constants.
        pricing_rules: Pricing constants.

    Returns:
        A new :class:`FantasyTeam` with races held, asset points, races
        since transfer, points history and total recomputed.
    """
    ordered = sorted(weekends, key=lambda w: w.race.round)
    completed_count = len(ordered)

    points_by_asset: dict[str, int] = {}
    history: list[int] = []

    for completed_before, weekend in enumerate(ordered):
        if completed_before < team.joined_at_race:
            continue
        previous_race_id = ordered[completed_before - 1].race.race_id if completed_before else None
        score = score_team_for_race(
            _team_as_of(team, completed_before),
            weekend,
            previous_race_id,
            scoring_rules,
            pricing_rules,
            completed_before=completed_before,
        )
        for driver_score in score.driver_scores:
            points_by_asset[driver_score.driver_id] = (
                points_by_asset.get(driver_score.driver_id, 0) + driver_score.total_points
            )
        if score.constructor_score is not None:
            cid = score.constructor_score.constructor_id
            points_by_asset[cid] = (
                points_by_asset.get(cid, 0) + score.constructor_score.total_points
            )
        history.append(score.total)

    drivers = tuple(
        replace(
            d,
            races_held=max(0, completed_count - d.added_at_race),
            points_scored=points_by_asset.get(d.asset_id, 0),
        )
        for d in team.drivers
    )
    constructor = team.constructor
    if constructor is not None:
        constructor = replace(
            constructor,
            races_held=max(0, completed_count - constructor.added_at_race),
            points_scored=points_by_asset.get(constructor.asset_id, 0),
        )

    total = (
        team.locked_points
        + calculate_late_joiner_points(team.joined_at_race, scoring_rules)
        + sum(history)
    )
    logger.debug(
        "Recomputed team %s over %d race(s): %d points", team.team_id, len(history), total
    )
    return replace(
        team,
        drivers=drivers,
        constructor=constructor,
        races_since_transfer=max(
            0, completed_count - _last_transfer_before(team, completed_count)
        ),
        total_points=total,
        points_history=tuple(history),
    )
