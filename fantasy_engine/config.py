"""Configuration loader for the fantasy rules engine.

Reads the rules, calendar and grid YAML files under ``data/`` and turns
them into the engine's immutable value types.  Validation happens here,
at the boundary, so the engine itself can assume well-formed inputs.
"""

import dataclasses
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from fantasy_engine.core.race import Race, RaceSchedule
from fantasy_engine.core.rules import (
    PerformanceTier,
    PriceTier,
    PricingRules,
    ScoringRules,
    SprintDnfPolicy,
)
from fantasy_engine.core.simulation import GridEntry

logger = logging.getLogger(__name__)

DATA_DIR: Path = Path(__file__).resolve().parent.parent / "data"
RULES_PATH: Path = DATA_DIR / "rules.yaml"
CALENDAR_PATH: Path = DATA_DIR / "calendar_2026.yaml"
GRID_PATH: Path = DATA_DIR / "grid_2026.yaml"

_REQUIRED_RACE_FIELDS: tuple[str, ...] = ("id", "round", "name", "schedule")
_REQUIRED_SESSIONS: tuple[str, ...] = ("fp1", "qualifying", "race")
_OPTIONAL_SESSIONS: tuple[str, ...] = ("fp2", "fp3", "sprint_qualifying", "sprint")
_REQUIRED_GRID_FIELDS: tuple[str, ...] = ("id", "constructor", "strength", "consistency")


def _read_yaml(path: Path, kind: str) -> Any:
    if not path.exists():
        raise FileNotFoundError(f"{kind} file not found: {path}")
    with open(path, encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    logger.debug("Loaded %s from %s", kind, path)
    return data


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


def _check_keys(section: dict, cls: type, name: str) -> None:
    known = {f.name for f in dataclasses.fields(cls)}
    unknown = sorted(set(section) - known)
    if unknown:
        raise ValueError(f"Unknown {name} rule(s): {', '.join(unknown)}")


def _scoring_rules(section: dict) -> ScoringRules:
    _check_keys(section, ScoringRules, "scoring")
    values = dict(section)
    for key in ("race_points", "sprint_points"):
        if key in values:
            values[key] = tuple(int(p) for p in values[key])
    if "lock_bonus_tiers" in values:
        values["lock_bonus_tiers"] = tuple(
            (None if end is None else int(end), int(rate))
            for end, rate in values["lock_bonus_tiers"]
        )
    if "sprint_dnf_policy" in values:
        try:
            values["sprint_dnf_policy"] = SprintDnfPolicy(values["sprint_dnf_policy"])
        except ValueError:
            raise ValueError(
                f"sprint_dnf_policy must be 'zero' or 'penalty', "
                f"got {values['sprint_dnf_policy']!r}"
            ) from None
    return ScoringRules(**values)


def _pricing_rules(section: dict) -> PricingRules:
    _check_keys(section, PricingRules, "pricing")
    values = dict(section)
    if "price_changes" in values:
        try:
            values["price_changes"] = {
                PriceTier(tier): {
                    PerformanceTier(perf): int(amount) for perf, amount in table.items()
                }
                for tier, table in values["price_changes"].items()
            }
        except ValueError as exc:
            raise ValueError(f"Invalid price_changes table: {exc}") from None
    return PricingRules(**values)


def load_rules(path: Path | None = None) -> tuple[ScoringRules, PricingRules]:
    """Load scoring and pricing rules from a YAML file.

    Both top-level sections are optional; omitted keys keep the
    dataclass defaults.

    Args:
        path: Optional override for the rules file path.

    Returns:
        ``(scoring_rules, pricing_rules)``.

    Raises:
        FileNotFoundError: If the rules file does not exist.
        ValueError: If a section contains unknown keys or invalid values.
    """
    data = _read_yaml(path or RULES_PATH, "Rules") or {}
    unknown = sorted(set(data) - {"scoring", "pricing"})
    if unknown:
        raise ValueError(f"Unknown rules section(s): {', '.join(unknown)}")
    return _scoring_rules(data.get("scoring") or {}), _pricing_rules(data.get("pricing") or {})


# ---------------------------------------------------------------------------
# Calendar
# ---------------------------------------------------------------------------


def _parse_time(value: Any, context: str) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise ValueError(f"{context}: invalid timestamp {value!r}") from None
    else:
        raise ValueError(f"{context}: timestamp must be a string, got {type(value).__name__}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def load_calendar(path: Path | None = None) -> list[Race]:
    """Load the race calendar from a YAML file.

    Each entry is validated and converted into a :class:`Race`.

    Args:
        path: Optional override for the calendar file path.

    Returns:
        List of :class:`Race` objects sorted by round.

    Raises:
        FileNotFoundError: If the calendar file does not exist.
        ValueError: If any race entry is missing fields or has invalid
            session times.
    """
    data = _read_yaml(path or CALENDAR_PATH, "Calendar")
    races: list[Race] = []

    for idx, entry in enumerate(data["races"]):
        label = f"Race entry {idx} ({entry.get('name', '<unknown>')})"
        for field in _REQUIRED_RACE_FIELDS:
            if field not in entry:
                raise ValueError(f"{label} is missing required field '{field}'")

        schedule: dict = entry["schedule"]
        for session in _REQUIRED_SESSIONS:
            if session not in schedule:
                raise ValueError(f"{label} is missing required session '{session}'")
        has_sprint = bool(entry.get("has_sprint", False))
        if has_sprint and "sprint_qualifying" not in schedule:
            logger.warning("%s is a sprint weekend without sprint qualifying", label)

        times = {
            session: _parse_time(schedule[session], f"{label} {session}")
            for session in _REQUIRED_SESSIONS
        }
        for session in _OPTIONAL_SESSIONS:
            if schedule.get(session) is not None:
                times[session] = _parse_time(schedule[session], f"{label} {session}")

        races.append(
            Race(
                race_id=str(entry["id"]),
                round=int(entry["round"]),
                name=str(entry["name"]),
                schedule=RaceSchedule(**times),
                has_sprint=has_sprint,
                total_laps=int(entry.get("total_laps", 0)),
            )
        )

    races.sort(key=lambda r: r.round)
    logger.info("Loaded %d race(s) from calendar", len(races))
    return races


# ---------------------------------------------------------------------------
# Grid
# ---------------------------------------------------------------------------


def load_grid(path: Path | None = None) -> list[GridEntry]:
    """Load the driver grid from a YAML file.

    Raises:
        FileNotFoundError: If the grid file does not exist.
        ValueError: If an entry is missing fields or has out-of-range
            values.
    """
    data = _read_yaml(path or GRID_PATH, "Grid")
    grid: list[GridEntry] = []

    for idx, entry in enumerate(data["drivers"]):
        for field in _REQUIRED_GRID_FIELDS:
            if field not in entry:
                raise ValueError(
                    f"Grid entry {idx} ({entry.get('id', '<unknown>')}) "
                    f"is missing required field '{field}'"
                )
        grid.append(
            GridEntry(
                driver_id=str(entry["id"]),
                constructor_id=str(entry["constructor"]),
                strength=float(entry["strength"]),
                consistency=float(entry["consistency"]),
                previous_season_points=float(entry.get("previous_season_points", 0)),
            )
        )

    return grid
