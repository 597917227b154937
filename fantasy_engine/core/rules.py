"""Rule value types for the fantasy scoring and pricing engine.

Every tunable number used by the engine lives on one of two frozen
dataclasses: :class:`PricingRules` and :class:`ScoringRules`.  A rules
value is built once (from the module defaults or from
``data/rules.yaml`` via :mod:`fantasy_engine.config`) and passed
explicitly to the pure functions that need it.  Variants are derived
with :func:`dataclasses.replace`; nothing is ever mutated in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class SprintDnfPolicy(str, Enum):
    """How a sprint retirement is scored."""

    ZERO = "zero"
    PENALTY = "penalty"


class PriceTier(str, Enum):
    """Price bracket selecting the magnitude of price changes."""

    A = "A"
    B = "B"
    C = "C"


class PerformanceTier(str, Enum):
    """Points-per-price classification."""

    GREAT = "great"
    GOOD = "good"
    POOR = "poor"
    TERRIBLE = "terrible"


def _change_table(
    great: int, good: int, poor: int, terrible: int
) -> dict[PerformanceTier, int]:
    return {
        PerformanceTier.GREAT: great,
        PerformanceTier.GOOD: good,
        PerformanceTier.POOR: poor,
        PerformanceTier.TERRIBLE: terrible,
    }


def _default_price_changes() -> dict[PriceTier, dict[PerformanceTier, int]]:
    return {
        PriceTier.A: _change_table(36, 12, -12, -36),
        PriceTier.B: _change_table(24, 7, -7, -24),
        PriceTier.C: _change_table(12, 5, -5, -12),
    }


# ---------------------------------------------------------------------------
# Pricing rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PricingRules:
    """Constants governing asset prices, budgets and contracts.

    Attributes:
        races_per_season: Races used to average previous-season points.
        dollars_per_point: Conversion from average points to price.
        rolling_window: Number of most recent races in the rolling average.
        sprint_weight: Weight of sprint entries in the rolling average.
        min_price: Lowest price an asset may hold after repricing.
        max_price: Highest price an asset may hold.
        max_change_per_race: Largest absolute price move per race.
        tier_a_threshold: Prices strictly above this are tier A.
        tier_b_threshold: Prices strictly above this are tier B.
        ppm_great: Lowest PPM classed as ``great``.
        ppm_good: Lowest PPM classed as ``good``.
        ppm_poor: Lowest PPM classed as ``poor``.
        price_changes: Change amount per ``(price tier, performance tier)``.
        dnf_price_penalty_max: Penalty for retiring on lap 1.
        dnf_price_penalty_min: Penalty for retiring on the final lap.
        dnf_price_floor: Floor applied after a DNF price penalty.
        diminishing_returns_floor: Price above which rises are damped.
        diminishing_returns_min_factor: Damping factor reached at max price.
        captain_max_price: Most expensive asset that may be captain.
        starting_budget: Budget of a newly created team.
        team_size: Drivers per team.
        contract_length: Default races an asset is held before expiry.
        contract_lockout_races: Races an expired driver cannot be re-bought.
        early_termination_rate: Fee per remaining contract race, as a
            fraction of the current price.
        sale_commission_rate: Fraction withheld when selling an asset.
    """

    races_per_season: int = 24
    dollars_per_point: int = 24
    rolling_window: int = 5
    sprint_weight: float = 0.75
    min_price: int = 5
    max_price: int = 700
    max_change_per_race: int = 60
    tier_a_threshold: int = 240
    tier_b_threshold: int = 120
    ppm_great: float = 0.06
    ppm_good: float = 0.04
    ppm_poor: float = 0.02
    price_changes: dict[PriceTier, dict[PerformanceTier, int]] = field(
        default_factory=_default_price_changes
    )
    dnf_price_penalty_max: int = 24
    dnf_price_penalty_min: int = 2
    dnf_price_floor: int = 50
    diminishing_returns_floor: int = 400
    diminishing_returns_min_factor: float = 0.25
    captain_max_price: int = 240
    starting_budget: int = 1000
    team_size: int = 5
    contract_length: int = 5
    contract_lockout_races: int = 1
    early_termination_rate: float = 0.05
    sale_commission_rate: float = 0.0

    def __post_init__(self) -> None:
        if self.min_price < 0:
            raise ValueError("min_price must be non-negative.")
        if self.min_price > self.max_price:
            raise ValueError("min_price must not exceed max_price.")
        if self.tier_b_threshold >= self.tier_a_threshold:
            raise ValueError("tier_b_threshold must be below tier_a_threshold.")
        if not self.ppm_poor <= self.ppm_good <= self.ppm_great:
            raise ValueError("PPM thresholds must be ascending (poor <= good <= great).")
        if self.rolling_window < 1:
            raise ValueError("rolling_window must be at least 1.")
        if self.dnf_price_penalty_min > self.dnf_price_penalty_max:
            raise ValueError(
                "dnf_price_penalty_min must not exceed dnf_price_penalty_max."
            )
        if not self.min_price <= self.dnf_price_floor <= self.max_price:
            raise ValueError("dnf_price_floor must lie within [min_price, max_price].")
        if not 0.0 <= self.sale_commission_rate < 1.0:
            raise ValueError("sale_commission_rate must be in [0, 1).")
        for tier in PriceTier:
            table = self.price_changes.get(tier)
            if table is None or set(table) != set(PerformanceTier):
                raise ValueError(
                    f"price_changes must define every performance tier for tier {tier.value}."
                )


# ---------------------------------------------------------------------------
# Scoring rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScoringRules:
    """Constants governing fantasy points.

    Attributes:
        race_points: Points by finishing position, index 0 is P1.
        sprint_points: Sprint points by finishing position.
        fastest_lap_bonus: Bonus for the fastest lap inside the points.
        position_gained_bonus: Bonus per place gained from the grid.
        position_lost_penalty: Deduction per place lost (0 disables).
        dnf_penalty: Points for a race retirement.
        dsq_penalty: Points for a disqualification.
        sprint_dnf_policy: Whether a sprint retirement scores 0 or the
            race penalty.
        lock_bonus_tiers: ``(last race in tier, points per race)`` pairs;
            ``None`` marks the open-ended final tier.
        full_season_races: Races held that earn the flat season bonus.
        full_season_bonus: Flat bonus replacing the tiered total.
        hot_hand_podium_bonus: Bonus for a podium right after purchase.
        hot_hand_points_bonus: Bonus for a big score without a podium.
        hot_hand_points_threshold: Base points needed for the smaller bonus.
        stale_roster_threshold: Races without a transfer before penalties.
        stale_roster_penalty: Points lost per race over the threshold.
        value_capture_rate: Points per full $10 of sale profit.
        catch_up_races: Races after joining that earn the multiplier.
        catch_up_multiplier: Multiplier applied during catch-up.
        captain_multiplier: Multiplier on the captain's race and sprint points.
        late_joiner_points_per_race: Flat points per missed race.
    """

    race_points: tuple[int, ...] = (25, 18, 15, 12, 10, 8, 6, 4, 2, 1)
    sprint_points: tuple[int, ...] = (8, 7, 6, 5, 4, 3, 2, 1)
    fastest_lap_bonus: int = 1
    position_gained_bonus: int = 1
    position_lost_penalty: int = 0
    dnf_penalty: int = -5
    dsq_penalty: int = -5
    sprint_dnf_policy: SprintDnfPolicy = SprintDnfPolicy.PENALTY
    lock_bonus_tiers: tuple[tuple[int | None, int], ...] = (
        (3, 1),
        (6, 2),
        (None, 3),
    )
    full_season_races: int = 24
    full_season_bonus: int = 100
    hot_hand_podium_bonus: int = 15
    hot_hand_points_bonus: int = 10
    hot_hand_points_threshold: int = 15
    stale_roster_threshold: int = 5
    stale_roster_penalty: int = 5
    value_capture_rate: int = 5
    catch_up_races: int = 3
    catch_up_multiplier: float = 1.5
    captain_multiplier: float = 2.0
    late_joiner_points_per_race: int = 30

    def __post_init__(self) -> None:
        if not self.race_points:
            raise ValueError("race_points must not be empty.")
        if not self.sprint_points:
            raise ValueError("sprint_points must not be empty.")
        if self.position_lost_penalty < 0:
            raise ValueError("position_lost_penalty must be non-negative.")
        if not isinstance(self.sprint_dnf_policy, SprintDnfPolicy):
            raise ValueError(
                f"sprint_dnf_policy must be a SprintDnfPolicy, got {self.sprint_dnf_policy!r}."
            )
        if not self.lock_bonus_tiers or self.lock_bonus_tiers[-1][0] is not None:
            raise ValueError("lock_bonus_tiers must end with an open-ended tier.")
        bounds = [end for end, _ in self.lock_bonus_tiers[:-1]]
        if any(end is None for end in bounds) or bounds != sorted(set(bounds)):
            raise ValueError("lock_bonus_tiers bounds must be strictly ascending.")
        if self.captain_multiplier < 1.0:
            raise ValueError("captain_multiplier must be at least 1.")


# ---------------------------------------------------------------------------
# Presets
# ---------------------------------------------------------------------------

DEFAULT_PRICING_RULES: PricingRules = PricingRules()
DEFAULT_SCORING_RULES: ScoringRules = ScoringRules()

# Ruleset that also punishes lost places and scores sprint retirements as 0.
LOST_POSITION_SCORING_RULES: ScoringRules = ScoringRules(
    position_lost_penalty=1,
    sprint_dnf_policy=SprintDnfPolicy.ZERO,
)
