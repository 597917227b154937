"""Core rules engine modules for fantasy F1 scoring and pricing."""

from fantasy_engine.core.contracts import (
    ContractExpiry,
    auto_fill_drivers,
    calculate_early_termination_fee,
    calculate_sale_value,
    contract_length_of,
    expire_contracts,
    is_captain_eligible,
    is_driver_locked_out,
    locked_out_driver_ids,
)
from fantasy_engine.core.lockout import (
    AdminOverride,
    LockoutInfo,
    LockoutState,
    compute_lockout_status,
    get_lockout_time,
    get_next_incomplete_race,
)
from fantasy_engine.core.market import (
    EntityType,
    MarketEntry,
    MarketSettlement,
    PriceHistoryEntry,
    PriceUpdate,
    apply_diminishing_returns,
    assign_value_tiers,
    calculate_price_from_rolling_average,
    calculate_pricing_points,
    cap_price_change,
    estimate_total_laps,
    price_history_entries,
    recent_points,
    refresh_team_prices,
    settle_market,
)
from fantasy_engine.core.pricing import (
    DnfPenalty,
    PriceChange,
    PriceTrend,
    apply_dnf_penalty,
    calculate_dnf_price_penalty,
    calculate_initial_price,
    calculate_ppm,
    calculate_price_change,
    calculate_rolling_average,
    get_performance_tier,
    get_price_change_percentage,
    get_price_tier,
    get_price_trend,
)
from fantasy_engine.core.race import Race, RaceSchedule
from fantasy_engine.core.results import RaceResult, ResultStatus, SprintResult
from fantasy_engine.core.roster import FantasyTeam, RosterAsset
from fantasy_engine.core.rules import (
    DEFAULT_PRICING_RULES,
    DEFAULT_SCORING_RULES,
    LOST_POSITION_SCORING_RULES,
    PerformanceTier,
    PriceTier,
    PricingRules,
    ScoringRules,
    SprintDnfPolicy,
)
from fantasy_engine.core.scoring import (
    BonusResult,
    CatchUpStatus,
    ConstructorScore,
    DriverScore,
    PenaltyResult,
    PointsResult,
    ScoreItem,
    TeamScore,
    calculate_catch_up_multiplier,
    calculate_constructor_score,
    calculate_driver_score,
    calculate_hot_hand_bonus,
    calculate_late_joiner_points,
    calculate_lock_bonus,
    calculate_race_points,
    calculate_sprint_points,
    calculate_stale_roster_penalty,
    calculate_team_points,
    calculate_team_points_v3,
    calculate_value_capture_bonus,
    get_ordinal,
)
from fantasy_engine.core.simulation import (
    GridEntry,
    SeasonSimulation,
    opening_prices,
    simulate_race_results,
    simulate_season,
    simulate_sprint_results,
)
from fantasy_engine.core.weekend import (
    RaceWeekend,
    WeekendTeamScore,
    advance_team,
    recompute_team_points,
    score_team_for_race,
)

__all__ = [
    "AdminOverride",
    "BonusResult",
    "CatchUpStatus",
    "ConstructorScore",
    "ContractExpiry",
    "DEFAULT_PRICING_RULES",
    "DEFAULT_SCORING_RULES",
    "DnfPenalty",
    "DriverScore",
    "EntityType",
    "FantasyTeam",
    "GridEntry",
    "LOST_POSITION_SCORING_RULES",
    "LockoutInfo",
    "LockoutState",
    "MarketEntry",
    "MarketSettlement",
    "PenaltyResult",
    "PerformanceTier",
    "PointsResult",
    "PriceChange",
    "PriceHistoryEntry",
    "PriceTier",
    "PriceTrend",
    "PriceUpdate",
    "PricingRules",
    "Race",
    "RaceResult",
    "RaceSchedule",
    "RaceWeekend",
    "ResultStatus",
    "RosterAsset",
    "ScoreItem",
    "ScoringRules",
    "SeasonSimulation",
    "SprintDnfPolicy",
    "SprintResult",
    "TeamScore",
    "WeekendTeamScore",
    "advance_team",
    "apply_diminishing_returns",
    "apply_dnf_penalty",
    "assign_value_tiers",
    "auto_fill_drivers",
    "calculate_catch_up_multiplier",
    "calculate_constructor_score",
    "calculate_dnf_price_penalty",
    "calculate_driver_score",
    "calculate_early_termination_fee",
    "calculate_hot_hand_bonus",
    "calculate_initial_price",
    "calculate_late_joiner_points",
    "calculate_lock_bonus",
    "calculate_ppm",
    "calculate_price_change",
    "calculate_price_from_rolling_average",
    "calculate_pricing_points",
    "calculate_race_points",
    "calculate_rolling_average",
    "calculate_sale_value",
    "calculate_sprint_points",
    "calculate_stale_roster_penalty",
    "calculate_team_points",
    "calculate_team_points_v3",
    "calculate_value_capture_bonus",
    "cap_price_change",
    "compute_lockout_status",
    "contract_length_of",
    "estimate_total_laps",
    "expire_contracts",
    "get_lockout_time",
    "get_next_incomplete_race",
    "get_ordinal",
    "get_performance_tier",
    "get_price_change_percentage",
    "get_price_tier",
    "get_price_trend",
    "is_captain_eligible",
    "is_driver_locked_out",
    "locked_out_driver_ids",
    "opening_prices",
    "price_history_entries",
    "recent_points",
    "recompute_team_points",
    "refresh_team_prices",
    "score_team_for_race",
    "settle_market",
    "simulate_race_results",
    "simulate_season",
    "simulate_sprint_results",
]
