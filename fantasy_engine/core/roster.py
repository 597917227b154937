"""Roster state: assets held by a fantasy team and the team itself.

Both types are immutable.  The per-race pass in
:mod:`fantasy_engine.core.weekend` and the contract helpers in
:mod:`fantasy_engine.core.contracts` return fresh instances rather than
mutating their inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping


@dataclass(frozen=True)
class RosterAsset:
    """A driver or constructor held by a team.

    Attributes:
        asset_id: Identifier of the driver or constructor.
        purchase_price: Price paid when the asset was added.
        current_price: Latest market price.
        races_held: Consecutive completed races owned.
        purchased_at_race_id: Id of the last completed race when the asset
            was bought, used for hot-hand eligibility.
        points_scored: Fantasy points earned while on this roster.
        contract_length: Races before the contract expires; ``None``
            uses the rules default.
        added_at_race: Completed-race count when the asset was added.
        constructor_id: Constructor of a driver asset (empty for
            constructors).
        is_reserve_pick: Whether the asset was placed by auto-fill.
    """

    asset_id: str
    purchase_price: int
    current_price: int
    races_held: int = 0
    purchased_at_race_id: str | None = None
    points_scored: int = 0
    contract_length: int | None = None
    added_at_race: int = 0
    constructor_id: str = ""
    is_reserve_pick: bool = False

    def __post_init__(self) -> None:
        if not self.asset_id:
            raise ValueError("asset_id must not be empty.")
        if self.purchase_price < 0 or self.current_price < 0:
            raise ValueError("prices must be non-negative.")
        if self.races_held < 0:
            raise ValueError("races_held must be non-negative.")
        if self.added_at_race < 0:
            raise ValueError("added_at_race must be non-negative.")
        if self.contract_length is not None and self.contract_length < 1:
            raise ValueError("contract_length must be >= 1 when set.")


@dataclass(frozen=True)
class FantasyTeam:
    """A participant's fantasy team.

    Attributes:
        team_id: Identifier of the team.
        drivers: Driver assets (0 to 5).
        constructor: Constructor asset, if any.
        captain_id: ``asset_id`` of the captain driver, if any.
        captain_constructor_id: ``asset_id`` of the constructor whose
            points are multiplied like a captain driver's, if any.
        budget: Unspent budget.
        total_points: Season total.
        races_since_transfer: Completed races since the last transfer.
        joined_at_race: Completed-race count when the team was created
            (0 = joined at season start).
        locked_points: Points banked from assets no longer held.
        driver_lockouts: Driver id mapped to the completed-race count at
            which that driver may be bought again.
        points_history: Per-race team totals, oldest first.
    """

    team_id: str
    drivers: tuple[RosterAsset, ...] = ()
    constructor: RosterAsset | None = None
    captain_id: str | None = None
    captain_constructor_id: str | None = None
    budget: int = 1000
    total_points: int = 0
    races_since_transfer: int = 0
    joined_at_race: int = 0
    locked_points: int = 0
    driver_lockouts: Mapping[str, int] = field(default_factory=dict)
    points_history: tuple[int, ...] = ()

    def __post_init__(self) -> None:
        if not self.team_id:
            raise ValueError("team_id must not be empty.")
        if self.races_since_transfer < 0:
            raise ValueError("races_since_transfer must be non-negative.")
        if self.joined_at_race < 0:
            raise ValueError("joined_at_race must be non-negative.")
        object.__setattr__(self, "drivers", tuple(self.drivers))

    @property
    def assets(self) -> list[RosterAsset]:
        """All held assets, drivers first."""
        held = list(self.drivers)
        if self.constructor is not None:
            held.append(self.constructor)
        return held

    def driver(self, asset_id: str) -> RosterAsset | None:
        for asset in self.drivers:
            if asset.asset_id == asset_id:
                return asset
        return None
