"""Tests for asset contracts: fees, expiry, lockouts and auto-fill."""

from dataclasses import replace

from fantasy_engine.core.contracts import (
    auto_fill_drivers,
    calculate_early_termination_fee,
    calculate_sale_value,
    contract_length_of,
    expire_contracts,
    is_captain_eligible,
    is_driver_locked_out,
    locked_out_driver_ids,
)
from fantasy_engine.core.market import MarketEntry
from fantasy_engine.core.roster import FantasyTeam, RosterAsset
from fantasy_engine.core.rules import PricingRules

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _driver(asset_id: str, price: int, races_held: int = 0, points: int = 0) -> RosterAsset:
    return RosterAsset(
        asset_id=asset_id,
        purchase_price=price,
        current_price=price,
        races_held=races_held,
        points_scored=points,
    )


def _expiring_team() -> FantasyTeam:
    return FantasyTeam(
        team_id="t1",
        drivers=(
            _driver("alonso", 120, races_held=5, points=40),
            _driver("albon", 80, races_held=2, points=12),
        ),
        constructor=RosterAsset(
            "williams", purchase_price=250, current_price=300, races_held=5, points_scored=60
        ),
        captain_id="alonso",
        budget=100,
        driver_lockouts={"stroll": 5},
    )


# ---------------------------------------------------------------------------
# Prices and fees
# ---------------------------------------------------------------------------


def test_sale_value_without_commission() -> None:
    assert calculate_sale_value(101) == 101


def test_sale_value_with_commission_is_floored() -> None:
    assert calculate_sale_value(101, PricingRules(sale_commission_rate=0.1)) == 90


def test_early_termination_fee() -> None:
    """5% of the current price for every race left on the contract."""
    assert calculate_early_termination_fee(200, 5, 2) == 30
    assert calculate_early_termination_fee(200, 5, 5) == 0
    assert calculate_early_termination_fee(200, 5, 9) == 0


def test_contract_length_override() -> None:
    assert contract_length_of(_driver("a", 10)) == 5
    custom = RosterAsset("a", 10, 10, contract_length=12)
    assert contract_length_of(custom) == 12


def test_captain_eligibility_cap() -> None:
    assert is_captain_eligible(_driver("a", 240))
    assert not is_captain_eligible(_driver("a", 241))


# ---------------------------------------------------------------------------
# Lockouts
# ---------------------------------------------------------------------------


def test_driver_lockout_window() -> None:
    lockouts = {"alonso": 5}
    assert is_driver_locked_out(lockouts, "alonso", 4)
    assert not is_driver_locked_out(lockouts, "alonso", 5)
    assert not is_driver_locked_out(lockouts, "albon", 4)
    assert not is_driver_locked_out(None, "alonso", 0)


def test_locked_out_driver_ids() -> None:
    lockouts = {"alonso": 5, "albon": 3}
    assert locked_out_driver_ids(lockouts, 4) == ["alonso"]
    assert locked_out_driver_ids({}, 4) == []


# ---------------------------------------------------------------------------
# Expiry
# ---------------------------------------------------------------------------


def test_expire_contracts_sells_expired_assets() -> None:
    expiry = expire_contracts(_expiring_team(), completed_race_count=5)

    assert expiry.expired_ids == ("alonso", "williams")
    assert expiry.budget_returned == 420
    assert expiry.points_banked == 100

    team = expiry.team
    assert [d.asset_id for d in team.drivers] == ["albon"]
    assert team.constructor is None
    assert team.budget == 520
    assert team.locked_points == 100


def test_expire_contracts_clears_captain_and_sets_lockout() -> None:
    """An expired captain is cleared and the driver cannot be re-bought next race."""
    team = expire_contracts(_expiring_team(), completed_race_count=5).team
    assert team.captain_id is None
    assert team.driver_lockouts == {"alonso": 6}


def test_expire_contracts_clears_captain_constructor() -> None:
    team = replace(_expiring_team(), captain_constructor_id="williams")
    assert expire_contracts(team, completed_race_count=5).team.captain_constructor_id is None


def test_expire_contracts_keeps_captain_constructor_under_contract() -> None:
    original = _expiring_team()
    team = replace(
        original,
        constructor=replace(original.constructor, races_held=2),
        captain_constructor_id="williams",
    )
    expiry = expire_contracts(team, completed_race_count=5)
    assert expiry.expired_ids == ("alonso",)
    assert expiry.team.captain_constructor_id == "williams"


def test_expire_contracts_keeps_longer_contracts() -> None:
    team = FantasyTeam(
        "t1", drivers=(RosterAsset("a", 10, 10, races_held=5, contract_length=10),)
    )
    expiry = expire_contracts(team, completed_race_count=5)
    assert expiry.expired_ids == ()
    assert expiry.team.drivers == team.drivers


def test_expire_contracts_leaves_input_untouched() -> None:
    original = _expiring_team()
    expire_contracts(original, completed_race_count=5)
    assert len(original.drivers) == 2
    assert original.budget == 100


# ---------------------------------------------------------------------------
# Auto-fill
# ---------------------------------------------------------------------------


def _candidates() -> list[MarketEntry]:
    return [
        MarketEntry("ocon", 40, constructor_id="haas"),
        MarketEntry("bearman", 30, constructor_id="haas"),
        MarketEntry("stroll", 20, constructor_id="aston_martin"),
        MarketEntry("retired", 10, is_active=False),
        MarketEntry("albon", 15, constructor_id="williams"),
        MarketEntry("alonso", 12, constructor_id="aston_martin"),
    ]


def _short_team(budget: int) -> FantasyTeam:
    return FantasyTeam(
        "t1",
        drivers=(_driver("albon", 80), _driver("gasly", 60), _driver("hulkenberg", 50)),
        budget=budget,
        driver_lockouts={"stroll": 6},
    )


def test_auto_fill_picks_cheapest_eligible() -> None:
    """Inactive, held, locked-out and excluded drivers are skipped."""
    team = auto_fill_drivers(_short_team(100), _candidates(), 5, exclude=("alonso",))
    added = [d for d in team.drivers if d.is_reserve_pick]
    assert [d.asset_id for d in added] == ["bearman", "ocon"]
    assert team.budget == 30
    assert added[0].added_at_race == 5
    assert added[0].constructor_id == "haas"


def test_auto_fill_stops_when_budget_runs_out() -> None:
    team = auto_fill_drivers(_short_team(50), _candidates(), 5, exclude=("alonso",))
    assert len(team.drivers) == 4
    assert team.budget == 20


def test_auto_fill_full_team_unchanged() -> None:
    team = FantasyTeam("t1", drivers=tuple(_driver(f"d{i}", 10) for i in range(5)))
    assert auto_fill_drivers(team, _candidates(), 5) is team
