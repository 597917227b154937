"""Scoring engine: race results and roster metadata to fantasy points.

All functions are stateless transforms returning immutable records that
carry both a number and a line-item breakdown for display.  Rounding is
fixed per operation:

* constructor points use floor division of the two driver totals,
* value capture counts only whole $10 profit units,
* captain and catch-up bonuses are floored.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from fantasy_engine.core.results import RaceResult, ResultStatus, SprintResult
from fantasy_engine.core.roster import FantasyTeam, RosterAsset
from fantasy_engine.core.rules import (
    DEFAULT_SCORING_RULES,
    ScoringRules,
    SprintDnfPolicy,
)

# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScoreItem:
    """One displayable line of a score breakdown."""

    label: str
    points: int
    description: str


@dataclass(frozen=True)
class PointsResult:
    points: int
    breakdown: tuple[ScoreItem, ...] = ()


@dataclass(frozen=True)
class BonusResult:
    bonus: int
    breakdown: tuple[ScoreItem, ...] = ()


@dataclass(frozen=True)
class PenaltyResult:
    """A deduction; ``penalty`` is positive and subtracted by the caller."""

    penalty: int
    breakdown: tuple[ScoreItem, ...] = ()


@dataclass(frozen=True)
class CatchUpStatus:
    multiplier: float
    is_in_catch_up: bool
    races_remaining: int


@dataclass(frozen=True)
class DriverScore:
    """A driver's fantasy score for one race weekend.

    Attributes:
        driver_id: Scored driver.
        race_id: Race the score belongs to.
        race_points: Grand Prix points, bonuses and penalties included.
        sprint_points: Sprint points.
        lock_bonus: Continuous-ownership bonus.
        captain_bonus: Extra race and sprint points for the captain.
        hot_hand_bonus: Bonus for a newly bought driver.
        total_points: Sum of the above.
        breakdown: Line items in the order they were applied.
    """

    driver_id: str
    race_id: str
    race_points: int
    sprint_points: int
    lock_bonus: int
    captain_bonus: int
    hot_hand_bonus: int
    total_points: int
    breakdown: tuple[ScoreItem, ...]


@dataclass(frozen=True)
class ConstructorScore:
    constructor_id: str
    race_id: str
    driver1_points: int
    driver2_points: int
    lock_bonus: int
    total_points: int
    captain_bonus: int = 0


@dataclass(frozen=True)
class TeamScore:
    """A team's total for one race weekend.

    Attributes:
        total: Final team points after penalties and catch-up.
        breakdown: Per-asset and adjustment line items.
        stale_roster_penalty: Points deducted for not transferring.
        catch_up_bonus: Points added for a late joiner.
    """

    total: int
    breakdown: tuple[ScoreItem, ...]
    stale_roster_penalty: int = 0
    catch_up_bonus: int = 0


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def get_ordinal(n: int) -> str:
    """Return *n* with its English ordinal suffix (``1st``, ``12th``, ``23rd``)."""
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def _table_points(table: Sequence[int], position: int) -> int:
    if 1 <= position <= len(table):
        return table[position - 1]
    return 0


def get_race_points(position: int, rules: ScoringRules = DEFAULT_SCORING_RULES) -> int:
    return _table_points(rules.race_points, position)


def get_sprint_points(position: int, rules: ScoringRules = DEFAULT_SCORING_RULES) -> int:
    return _table_points(rules.sprint_points, position)


# ---------------------------------------------------------------------------
# Session points
# ---------------------------------------------------------------------------


def calculate_race_points(
    result: RaceResult,
    rules: ScoringRules = DEFAULT_SCORING_RULES,
) -> PointsResult:
    """Score a Grand Prix result.

    A DNF or DSQ scores its fixed penalty and nothing else.  A classified
    finish earns table points, the per-place gained bonus, the optional
    per-place lost penalty, and the fastest-lap bonus when the finish is
    inside the race points table.

    Args:
        result: The driver's classified result.
        rules: Scoring constants.

    Returns:
        A :class:`PointsResult`.
    """
    if result.status is ResultStatus.DNF:
        return PointsResult(
            rules.dnf_penalty,
            (ScoreItem("Did Not Finish", rules.dnf_penalty, "DNF penalty"),),
        )
    if result.status is ResultStatus.DSQ:
        return PointsResult(
            rules.dsq_penalty,
            (ScoreItem("Disqualified", rules.dsq_penalty, "DSQ penalty"),),
        )

    items: list[ScoreItem] = []
    points: int = 0

    position_points = get_race_points(result.position, rules)
    if 1 <= result.position <= len(rules.race_points):
        points += position_points
        items.append(
            ScoreItem(
                f"P{result.position} Finish",
                position_points,
                f"{get_ordinal(result.position)} place finish",
            )
        )

    if result.positions_gained > 0:
        gained = result.positions_gained * rules.position_gained_bonus
        points += gained
        items.append(
            ScoreItem(
                "Positions Gained",
                gained,
                f"+{result.positions_gained} positions from P{result.grid_position}",
            )
        )
    elif result.positions_gained < 0 and rules.position_lost_penalty > 0:
        places_lost = -result.positions_gained
        lost = places_lost * rules.position_lost_penalty
        points -= lost
        items.append(
            ScoreItem(
                "Positions Lost",
                -lost,
                f"-{places_lost} positions from P{result.grid_position}",
            )
        )

    if result.fastest_lap and 1 <= result.position <= len(rules.race_points):
        points += rules.fastest_lap_bonus
        items.append(
            ScoreItem(
                "Fastest Lap", rules.fastest_lap_bonus, "Set the fastest lap of the race"
            )
        )

    return PointsResult(points, tuple(items))


def calculate_sprint_points(
    result: SprintResult,
    rules: ScoringRules = DEFAULT_SCORING_RULES,
) -> PointsResult:
    """Score a sprint result.

    A sprint DNF scores 0 or the race DNF penalty depending on
    ``rules.sprint_dnf_policy``.  A DSQ always scores the DSQ penalty.
    """
    if result.status is ResultStatus.DNF:
        dnf_points = (
            0 if rules.sprint_dnf_policy is SprintDnfPolicy.ZERO else rules.dnf_penalty
        )
        return PointsResult(
            dnf_points, (ScoreItem("Sprint DNF", dnf_points, "Did not finish sprint"),)
        )
    if result.status is ResultStatus.DSQ:
        return PointsResult(
            rules.dsq_penalty,
            (ScoreItem("Sprint DSQ", rules.dsq_penalty, "Disqualified from sprint"),),
        )

    if 1 <= result.position <= len(rules.sprint_points):
        position_points = get_sprint_points(result.position, rules)
        return PointsResult(
            position_points,
            (
                ScoreItem(
                    f"Sprint P{result.position}",
                    position_points,
                    f"{get_ordinal(result.position)} place in sprint",
                ),
            ),
        )
    return PointsResult(0)


# ---------------------------------------------------------------------------
# Bonuses and penalties
# ---------------------------------------------------------------------------


def calculate_lock_bonus(
    races_held: int,
    rules: ScoringRules = DEFAULT_SCORING_RULES,
) -> BonusResult:
    """Reward continuous ownership.

    Races are consumed tier by tier: with the default tiers, 8 races
    held earn ``3*1 + 3*2 + 2*3 = 15``.  Reaching ``full_season_races``
    replaces the tiered total with the flat full-season bonus.
    """
    if races_held <= 0:
        return BonusResult(0)

    if races_held >= rules.full_season_races:
        return BonusResult(
            rules.full_season_bonus,
            (
                ScoreItem(
                    "Full Season Lock",
                    rules.full_season_bonus,
                    f"Held for all {rules.full_season_races} races",
                ),
            ),
        )

    items: list[ScoreItem] = []
    bonus: int = 0
    remaining: int = races_held
    previous_end: int = 0

    for tier_number, (tier_end, per_race) in enumerate(rules.lock_bonus_tiers, start=1):
        if remaining <= 0:
            break
        span = remaining if tier_end is None else min(remaining, tier_end - previous_end)
        tier_bonus = span * per_race
        if tier_bonus > 0:
            bonus += tier_bonus
            unit = "pt" if per_race == 1 else "pts"
            items.append(
                ScoreItem(
                    f"Lock Tier {tier_number}",
                    tier_bonus,
                    f"{span} race(s) x {per_race} {unit}",
                )
            )
        remaining -= span
        if tier_end is not None:
            previous_end = tier_end

    return BonusResult(bonus, tuple(items))


def calculate_hot_hand_bonus(
    position: int,
    total_base_points: int,
    rules: ScoringRules = DEFAULT_SCORING_RULES,
) -> BonusResult:
    """Bonus for a driver bought right before this race.

    A podium earns the podium bonus; otherwise reaching the points
    threshold earns the smaller bonus.  The two never stack.
    """
    if 1 <= position <= 3:
        return BonusResult(
            rules.hot_hand_podium_bonus,
            (
                ScoreItem(
                    "Hot Hand Podium",
                    rules.hot_hand_podium_bonus,
                    f"New transfer finished P{position}!",
                ),
            ),
        )
    if total_base_points >= rules.hot_hand_points_threshold:
        return BonusResult(
            rules.hot_hand_points_bonus,
            (
                ScoreItem(
                    "Hot Hand Bonus",
                    rules.hot_hand_points_bonus,
                    f"New transfer scored {total_base_points} points!",
                ),
            ),
        )
    return BonusResult(0)


def calculate_stale_roster_penalty(
    races_since_transfer: int,
    rules: ScoringRules = DEFAULT_SCORING_RULES,
) -> PenaltyResult:
    """Per-race deduction once a team goes past the transfer threshold."""
    if races_since_transfer <= rules.stale_roster_threshold:
        return PenaltyResult(0)

    races_over = races_since_transfer - rules.stale_roster_threshold
    penalty = races_over * rules.stale_roster_penalty
    return PenaltyResult(
        penalty,
        (
            ScoreItem(
                "Stale Roster Penalty",
                -penalty,
                f"{races_over} race(s) past transfer threshold",
            ),
        ),
    )


def calculate_value_capture_bonus(
    purchase_price: int,
    sale_price: int,
    rules: ScoringRules = DEFAULT_SCORING_RULES,
) -> BonusResult:
    """Points for selling at a profit: ``rate`` per whole $10 of profit."""
    profit = sale_price - purchase_price
    if profit <= 0:
        return BonusResult(0)

    bonus = (profit // 10) * rules.value_capture_rate
    if bonus <= 0:
        return BonusResult(0)
    return BonusResult(
        bonus,
        (ScoreItem("Value Capture Bonus", bonus, f"${profit} profit on sale"),),
    )


def calculate_catch_up_multiplier(
    joined_at_race: int,
    current_race_number: int,
    rules: ScoringRules = DEFAULT_SCORING_RULES,
) -> CatchUpStatus:
    """Scoring boost for a team that joined mid-season.

    Teams that joined at season start (``joined_at_race == 0``) never
    qualify.  Otherwise the multiplier applies while fewer than
    ``catch_up_races`` races have been completed since joining.
    """
    if joined_at_race == 0:
        return CatchUpStatus(1.0, False, 0)

    races_since_joining = current_race_number - joined_at_race
    if races_since_joining < rules.catch_up_races:
        return CatchUpStatus(
            rules.catch_up_multiplier,
            True,
            rules.catch_up_races - races_since_joining,
        )
    return CatchUpStatus(1.0, False, 0)


def calculate_late_joiner_points(
    joined_at_race: int,
    rules: ScoringRules = DEFAULT_SCORING_RULES,
) -> int:
    """Flat compensation for races missed before the team was created."""
    return max(0, joined_at_race) * rules.late_joiner_points_per_race


# ---------------------------------------------------------------------------
# Per-asset composition
# ---------------------------------------------------------------------------


def calculate_driver_score(
    driver_id: str,
    race_id: str,
    race_result: RaceResult | None,
    sprint_result: SprintResult | None,
    asset: RosterAsset,
    rules: ScoringRules = DEFAULT_SCORING_RULES,
    *,
    is_captain: bool = False,
    is_new_transfer: bool = False,
) -> DriverScore:
    """Compose a driver's weekend score.

    Race and sprint points form the base.  The lock bonus is added on
    top.  A captain earns an extra ``captain_multiplier - 1`` copies of
    the base only, never of the lock bonus.  A new transfer with a race
    result earns the hot-hand bonus judged on the base points before the
    captain bonus.

    Args:
        driver_id: Scored driver.
        race_id: Race being scored.
        race_result: Grand Prix result, if the driver took part.
        sprint_result: Sprint result on sprint weekends.
        asset: Roster entry, supplying races held.
        rules: Scoring constants.
        is_captain: Whether the driver is the team's captain.
        is_new_transfer: Whether the driver was bought right before this race.

    Returns:
        A :class:`DriverScore`.
    """
    items: list[ScoreItem] = []

    race_points = 0
    if race_result is not None:
        race_calc = calculate_race_points(race_result, rules)
        race_points = race_calc.points
        items.extend(race_calc.breakdown)

    sprint_points = 0
    if sprint_result is not None:
        sprint_calc = calculate_sprint_points(sprint_result, rules)
        sprint_points = sprint_calc.points
        items.extend(sprint_calc.breakdown)

    lock_calc = calculate_lock_bonus(asset.races_held, rules)
    items.extend(lock_calc.breakdown)

    base_points: int = race_points + sprint_points
    total: int = base_points + lock_calc.bonus

    captain_bonus = 0
    if is_captain:
        captain_bonus = math.floor(base_points * (rules.captain_multiplier - 1))
        total += captain_bonus
        items.append(
            ScoreItem(
                "Captain Bonus",
                captain_bonus,
                f"{rules.captain_multiplier:g}x race and sprint points for captain",
            )
        )

    hot_hand_bonus = 0
    if is_new_transfer and race_result is not None:
        hot_hand = calculate_hot_hand_bonus(race_result.position, base_points, rules)
        if hot_hand.bonus > 0:
            hot_hand_bonus = hot_hand.bonus
            total += hot_hand_bonus
            items.extend(hot_hand.breakdown)

    return DriverScore(
        driver_id=driver_id,
        race_id=race_id,
        race_points=race_points,
        sprint_points=sprint_points,
        lock_bonus=lock_calc.bonus,
        captain_bonus=captain_bonus,
        hot_hand_bonus=hot_hand_bonus,
        total_points=total,
        breakdown=tuple(items),
    )


def calculate_constructor_score(
    constructor_id: str,
    race_id: str,
    driver1_score: DriverScore | None,
    driver2_score: DriverScore | None,
    asset: RosterAsset,
    rules: ScoringRules = DEFAULT_SCORING_RULES,
    *,
    is_captain: bool = False,
) -> ConstructorScore:
    """Average of the two drivers' totals (floored) plus the lock bonus.

    A missing driver score counts as 0 points.  A captain constructor
    earns ``floor(average * (captain_multiplier - 1))`` on top; like a
    captain driver, the lock bonus is never multiplied.
    """
    d1 = driver1_score.total_points if driver1_score is not None else 0
    d2 = driver2_score.total_points if driver2_score is not None else 0
    average = (d1 + d2) // 2
    lock_bonus = calculate_lock_bonus(asset.races_held, rules).bonus
    captain_bonus = math.floor(average * (rules.captain_multiplier - 1)) if is_captain else 0
    return ConstructorScore(
        constructor_id=constructor_id,
        race_id=race_id,
        driver1_points=d1,
        driver2_points=d2,
        lock_bonus=lock_bonus,
        total_points=average + lock_bonus + captain_bonus,
        captain_bonus=captain_bonus,
    )


# ---------------------------------------------------------------------------
# Team totals
# ---------------------------------------------------------------------------


def _asset_items(
    driver_scores: Sequence[DriverScore],
    constructor_score: ConstructorScore | None,
) -> tuple[int, list[ScoreItem]]:
    items: list[ScoreItem] = []
    total = 0
    for score in driver_scores:
        total += score.total_points
        items.append(
            ScoreItem("Driver Points", score.total_points, f"Driver ID: {score.driver_id}")
        )
    if constructor_score is not None:
        total += constructor_score.total_points
        items.append(
            ScoreItem(
                "Constructor Points",
                constructor_score.total_points,
                f"Constructor ID: {constructor_score.constructor_id}",
            )
        )
    return total, items


def calculate_team_points(
    driver_scores: Sequence[DriverScore],
    constructor_score: ConstructorScore | None,
) -> TeamScore:
    """Plain sum of asset scores without team-level adjustments."""
    total, items = _asset_items(driver_scores, constructor_score)
    return TeamScore(total=total, breakdown=tuple(items))


def calculate_team_points_v3(
    team: FantasyTeam,
    driver_scores: Sequence[DriverScore],
    constructor_score: ConstructorScore | None,
    current_race_number: int | None = None,
    rules: ScoringRules = DEFAULT_SCORING_RULES,
) -> TeamScore:
    """Team total with the stale-roster penalty and the catch-up bonus.

    The stale penalty is subtracted first; the catch-up bonus is then
    ``floor(subtotal * (multiplier - 1))`` of the post-penalty subtotal.
    Catch-up is only considered when *current_race_number* is given.
    """
    total, items = _asset_items(driver_scores, constructor_score)

    stale = calculate_stale_roster_penalty(team.races_since_transfer, rules)
    if stale.penalty > 0:
        total -= stale.penalty
        items.extend(stale.breakdown)

    catch_up_bonus = 0
    if current_race_number is not None and team.joined_at_race > 0:
        catch_up = calculate_catch_up_multiplier(
            team.joined_at_race, current_race_number, rules
        )
        if catch_up.is_in_catch_up:
            catch_up_bonus = math.floor(total * (catch_up.multiplier - 1))
            total += catch_up_bonus
            items.append(
                ScoreItem(
                    f"Catch-Up Bonus ({catch_up.multiplier:g}x)",
                    catch_up_bonus,
                    f"Late joiner bonus - {catch_up.races_remaining} races remaining",
                )
            )

    return TeamScore(
        total=total,
        breakdown=tuple(items),
        stale_roster_penalty=stale.penalty,
        catch_up_bonus=catch_up_bonus,
    )
