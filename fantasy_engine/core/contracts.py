"""Asset contracts: sale value, termination fees, expiry and auto-fill.

Every roster asset is bought on a fixed-length contract.  When the
contract runs out the asset is sold automatically at its market price,
its points are banked on the team, and an expired driver cannot be
bought back for ``contract_lockout_races`` races.  Empty driver slots
are then back-filled with the cheapest affordable drivers.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Iterable, Mapping

from fantasy_engine.core.market import MarketEntry
from fantasy_engine.core.roster import FantasyTeam, RosterAsset
from fantasy_engine.core.rules import DEFAULT_PRICING_RULES, PricingRules

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContractExpiry:
    """Result of an expiry pass.

    Attributes:
        team: Team after expired assets were sold.
        expired_ids: Ids of assets whose contracts ran out.
        budget_returned: Sale proceeds credited to the budget.
        points_banked: Points moved into ``locked_points``.
    """

    team: FantasyTeam
    expired_ids: tuple[str, ...]
    budget_returned: int
    points_banked: int


# ---------------------------------------------------------------------------
# Prices and fees
# ---------------------------------------------------------------------------


def calculate_sale_value(
    current_price: int,
    rules: PricingRules = DEFAULT_PRICING_RULES,
) -> int:
    """Proceeds of selling at *current_price* after commission (floored)."""
    return math.floor(current_price * (1 - rules.sale_commission_rate))


def calculate_early_termination_fee(
    current_price: int,
    contract_length: int,
    races_held: int,
    rules: PricingRules = DEFAULT_PRICING_RULES,
) -> int:
    """Fee for releasing an asset before its contract ends.

    ``floor(current_price * early_termination_rate * races_remaining)``,
    so the fee scales with the asset's present value.
    """
    races_remaining = max(0, contract_length - races_held)
    return math.floor(current_price * rules.early_termination_rate * races_remaining)


def contract_length_of(
    asset: RosterAsset,
    rules: PricingRules = DEFAULT_PRICING_RULES,
) -> int:
    return asset.contract_length or rules.contract_length


def is_captain_eligible(
    asset: RosterAsset,
    rules: PricingRules = DEFAULT_PRICING_RULES,
) -> bool:
    """Only assets priced at or below ``captain_max_price`` may captain."""
    return asset.current_price <= rules.captain_max_price


# ---------------------------------------------------------------------------
# Lockouts
# ---------------------------------------------------------------------------


def is_driver_locked_out(
    driver_lockouts: Mapping[str, int] | None,
    driver_id: str,
    completed_race_count: int,
) -> bool:
    if not driver_lockouts:
        return False
    expires_at = driver_lockouts.get(driver_id)
    if expires_at is None:
        return False
    return completed_race_count < expires_at


def locked_out_driver_ids(
    driver_lockouts: Mapping[str, int] | None,
    completed_race_count: int,
) -> list[str]:
    if not driver_lockouts:
        return []
    return [
        driver_id
        for driver_id, expires_at in driver_lockouts.items()
        if completed_race_count < expires_at
    ]


# ---------------------------------------------------------------------------
# Expiry
# ---------------------------------------------------------------------------


def expire_contracts(
    team: FantasyTeam,
    completed_race_count: int,
    rules: PricingRules = DEFAULT_PRICING_RULES,
) -> ContractExpiry:
    """Sell every asset whose contract has run out.

    An asset expires once its ``races_held`` reaches its contract
    length.  Each expired asset is sold at its current price, its points
    are banked into ``locked_points``, and an expired captain driver or
    captain constructor is cleared.  Expired drivers get a lockout ending at
    ``completed_race_count + contract_lockout_races``.  Lockouts that
    have already ended are pruned.

    Args:
        team: Team whose assets carry up-to-date races held and prices.
        completed_race_count: Number of races completed this season.
        rules: Pricing constants.

    Returns:
        A :class:`ContractExpiry`.
    """
    lockouts: dict[str, int] = dict(team.driver_lockouts)
    kept: list[RosterAsset] = []
    expired_ids: list[str] = []
    budget_returned = 0
    points_banked = 0
    captain_id = team.captain_id
    captain_constructor_id = team.captain_constructor_id

    for driver in team.drivers:
        if driver.races_held >= contract_length_of(driver, rules):
            budget_returned += calculate_sale_value(driver.current_price, rules)
            points_banked += driver.points_scored
            expired_ids.append(driver.asset_id)
            lockouts[driver.asset_id] = completed_race_count + rules.contract_lockout_races
            if captain_id == driver.asset_id:
                captain_id = None
        else:
            kept.append(driver)

    constructor = team.constructor
    if constructor is not None and constructor.races_held >= contract_length_of(
        constructor, rules
    ):
        budget_returned += calculate_sale_value(constructor.current_price, rules)
        points_banked += constructor.points_scored
        expired_ids.append(constructor.asset_id)
        if captain_constructor_id == constructor.asset_id:
            captain_constructor_id = None
        constructor = None

    lockouts = {
        driver_id: expires_at
        for driver_id, expires_at in lockouts.items()
        if completed_race_count < expires_at
    }

    if expired_ids:
        logger.info(
            "Team %s: contracts expired for %s (returned %d, banked %d points)",
            team.team_id,
            ", ".join(expired_ids),
            budget_returned,
            points_banked,
        )

    updated = replace(
        team,
        drivers=tuple(kept),
        constructor=constructor,
        captain_id=captain_id,
        captain_constructor_id=captain_constructor_id,
        budget=team.budget + budget_returned,
        locked_points=team.locked_points + points_banked,
        driver_lockouts=lockouts,
    )
    return ContractExpiry(
        team=updated,
        expired_ids=tuple(expired_ids),
        budget_returned=budget_returned,
        points_banked=points_banked,
    )


def auto_fill_drivers(
    team: FantasyTeam,
    candidates: Iterable[MarketEntry],
    completed_race_count: int,
    exclude: Iterable[str] = (),
    rules: PricingRules = DEFAULT_PRICING_RULES,
) -> FantasyTeam:
    """Fill empty driver slots with the cheapest affordable drivers.

    Candidates must be active, not already held, not locked out and not
    in *exclude* (typically the drivers that just expired).  Candidates
    are taken cheapest first and filling stops at the first one the
    remaining budget cannot cover.  Fills are flagged as reserve picks.
    """
    if len(team.drivers) >= rules.team_size:
        return team

    held = {d.asset_id for d in team.drivers}
    excluded = set(exclude)
    pool = sorted(
        (
            c
            for c in candidates
            if c.is_active
            and c.entity_id not in held
            and c.entity_id not in excluded
            and not is_driver_locked_out(
                team.driver_lockouts, c.entity_id, completed_race_count
            )
        ),
        key=lambda c: c.price,
    )

    drivers = list(team.drivers)
    budget = team.budget
    for candidate in pool:
        if len(drivers) >= rules.team_size or candidate.price > budget:
            break
        drivers.append(
            RosterAsset(
                asset_id=candidate.entity_id,
                purchase_price=candidate.price,
                current_price=candidate.price,
                contract_length=rules.contract_length,
                added_at_race=completed_race_count,
                constructor_id=candidate.constructor_id,
                is_reserve_pick=True,
            )
        )
        budget -= candidate.price

    filled = len(drivers) - len(team.drivers)
    if filled:
        logger.info("Team %s: auto-filled %d driver slot(s)", team.team_id, filled)
    return replace(team, drivers=tuple(drivers), budget=budget)
