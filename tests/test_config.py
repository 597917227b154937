"""Tests for YAML configuration loading: rules, calendar and grid."""

from datetime import timezone
from pathlib import Path

import pytest

from fantasy_engine.config import load_calendar, load_grid, load_rules
from fantasy_engine.core.rules import (
    DEFAULT_PRICING_RULES,
    DEFAULT_SCORING_RULES,
    PerformanceTier,
    PriceTier,
    SprintDnfPolicy,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write(tmp_path: Path, name: str, text: str) -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


def test_shipped_rules_match_defaults() -> None:
    """data/rules.yaml mirrors the built-in defaults."""
    scoring, pricing = load_rules()
    assert scoring == DEFAULT_SCORING_RULES
    assert pricing == DEFAULT_PRICING_RULES


def test_partial_rules_keep_defaults(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        "rules.yaml",
        "scoring:\n  sprint_dnf_policy: zero\n  position_lost_penalty: 1\n"
        "pricing:\n  price_changes:\n"
        "    A: {great: 40, good: 12, poor: -12, terrible: -40}\n"
        "    B: {great: 24, good: 7, poor: -7, terrible: -24}\n"
        "    C: {great: 12, good: 5, poor: -5, terrible: -12}\n",
    )
    scoring, pricing = load_rules(path)
    assert scoring.sprint_dnf_policy is SprintDnfPolicy.ZERO
    assert scoring.position_lost_penalty == 1
    assert scoring.race_points == DEFAULT_SCORING_RULES.race_points
    assert pricing.price_changes[PriceTier.A][PerformanceTier.GREAT] == 40
    assert pricing.max_price == 700


def test_empty_rules_file(tmp_path: Path) -> None:
    scoring, pricing = load_rules(_write(tmp_path, "rules.yaml", ""))
    assert scoring == DEFAULT_SCORING_RULES
    assert pricing == DEFAULT_PRICING_RULES


def test_unknown_rule_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path, "rules.yaml", "scoring:\n  pole_bonus: 3\n")
    with pytest.raises(ValueError, match="pole_bonus"):
        load_rules(path)


def test_unknown_section_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path, "rules.yaml", "leagues:\n  size: 10\n")
    with pytest.raises(ValueError, match="leagues"):
        load_rules(path)


def test_invalid_sprint_policy_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path, "rules.yaml", "scoring:\n  sprint_dnf_policy: half\n")
    with pytest.raises(ValueError, match="sprint_dnf_policy"):
        load_rules(path)


def test_invalid_rule_values_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path, "rules.yaml", "pricing:\n  min_price: 800\n")
    with pytest.raises(ValueError, match="min_price"):
        load_rules(path)


def test_missing_rules_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_rules(tmp_path / "missing.yaml")


# ---------------------------------------------------------------------------
# Calendar
# ---------------------------------------------------------------------------


def test_calendar_loads_all_24_races() -> None:
    calendar = load_calendar()
    assert len(calendar) == 24
    assert [r.round for r in calendar] == list(range(1, 25))
    assert len({r.race_id for r in calendar}) == 24


def test_calendar_sprint_weekends() -> None:
    """Sprint weekends carry sprint qualifying; others carry FP3."""
    calendar = load_calendar()
    sprints = [r for r in calendar if r.has_sprint]
    assert len(sprints) == 6
    for race in calendar:
        if race.has_sprint:
            assert race.schedule.sprint_qualifying is not None
        else:
            assert race.schedule.fp3 is not None


def test_calendar_times_are_utc_and_ordered() -> None:
    for race in load_calendar():
        schedule = race.schedule
        assert schedule.race.tzinfo == timezone.utc
        assert schedule.fp1 < schedule.qualifying < schedule.race


def test_calendar_sorted_by_round(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        "calendar.yaml",
        "races:\n"
        "  - {id: b, round: 2, name: B, schedule: {fp1: '2026-03-13T06:00:00Z',"
        " qualifying: '2026-03-14T09:00:00Z', race: '2026-03-15T07:00:00Z'}}\n"
        "  - {id: a, round: 1, name: A, schedule: {fp1: '2026-03-06T02:00:00',"
        " qualifying: '2026-03-07T05:00:00Z', race: '2026-03-08T04:00:00Z'}}\n",
    )
    calendar = load_calendar(path)
    assert [r.race_id for r in calendar] == ["a", "b"]
    # Naive timestamps are read as UTC.
    assert calendar[0].schedule.fp1.tzinfo == timezone.utc


def test_calendar_missing_session_rejected(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        "calendar.yaml",
        "races:\n"
        "  - {id: a, round: 1, name: A, schedule: {fp1: '2026-03-06T02:00:00Z',"
        " race: '2026-03-08T04:00:00Z'}}\n",
    )
    with pytest.raises(ValueError, match="qualifying"):
        load_calendar(path)


def test_calendar_bad_timestamp_rejected(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        "calendar.yaml",
        "races:\n"
        "  - {id: a, round: 1, name: A, schedule: {fp1: 'friday',"
        " qualifying: '2026-03-07T05:00:00Z', race: '2026-03-08T04:00:00Z'}}\n",
    )
    with pytest.raises(ValueError, match="invalid timestamp"):
        load_calendar(path)


# ---------------------------------------------------------------------------
# Grid
# ---------------------------------------------------------------------------


def test_grid_loads() -> None:
    grid = load_grid()
    assert len(grid) == 22
    constructors = {e.constructor_id for e in grid}
    assert len(constructors) == 11
    for cid in constructors:
        assert sum(e.constructor_id == cid for e in grid) == 2


def test_grid_missing_field_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path, "grid.yaml", "drivers:\n  - {id: x, constructor: y, strength: 50}\n")
    with pytest.raises(ValueError, match="consistency"):
        load_grid(path)
