"""Roster lockout state machine.

Lockout state is derived, never stored: every call recomputes it from
the calendar, the set of completed race ids, the current instant and an
optional administrative override.

Teams lock at sprint qualifying on sprint weekends and at FP3 on
conventional weekends, falling back to qualifying when neither session
is scheduled.  Captain selection stays open until the race starts.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import AbstractSet, Iterable

from fantasy_engine.core.race import Race


class AdminOverride(str, Enum):
    LOCKED = "locked"
    UNLOCKED = "unlocked"


class LockoutState(str, Enum):
    UNLOCKED = "unlocked"
    LOCKED = "locked"


SEASON_COMPLETE_REASON: str = "Season complete"


@dataclass(frozen=True)
class LockoutInfo:
    """Whether roster edits are currently permitted.

    Attributes:
        is_locked: Roster edits are rejected.
        lock_reason: Human-readable reason when locked.
        next_race: The next incomplete race, or ``None`` after the season.
        lock_time: Instant the roster locks for *next_race*.
        race_start_time: Instant the race starts (captain lock).
        captain_locked: Captain selection is rejected.
    """

    is_locked: bool
    lock_reason: str | None
    next_race: Race | None
    lock_time: datetime | None
    race_start_time: datetime | None
    captain_locked: bool

    @property
    def state(self) -> LockoutState:
        return LockoutState.LOCKED if self.is_locked else LockoutState.UNLOCKED


def get_next_incomplete_race(
    races: Iterable[Race],
    completed_race_ids: AbstractSet[str],
) -> Race | None:
    """Return the lowest-round race whose id is not completed."""
    for race in sorted(races, key=lambda r: r.round):
        if race.race_id not in completed_race_ids:
            return race
    return None


def get_lockout_time(race: Race) -> datetime:
    """Instant at which rosters lock for *race*."""
    if race.has_sprint and race.schedule.sprint_qualifying is not None:
        return race.schedule.sprint_qualifying
    if race.schedule.fp3 is not None:
        return race.schedule.fp3
    return race.schedule.qualifying


def compute_lockout_status(
    races: Iterable[Race],
    completed_race_ids: AbstractSet[str],
    now: datetime,
    admin_override: AdminOverride | str | None = None,
) -> LockoutInfo:
    """Compute the current lockout state.

    With no incomplete race left the season is complete and everything
    is locked.  An override replaces the natural schedule: ``locked``
    always locks the roster (captain lock still follows the race start)
    and ``unlocked`` opens everything, even after the season.

    Args:
        races: Every race of the season, in any order.
        completed_race_ids: Ids of races marked complete.
        now: Current instant; must be comparable with the schedule times.
        admin_override: Optional operational override.

    Returns:
        A :class:`LockoutInfo`.
    """
    override = AdminOverride(admin_override) if admin_override is not None else None

    next_race = get_next_incomplete_race(races, completed_race_ids)
    if next_race is None:
        if override is AdminOverride.UNLOCKED:
            return LockoutInfo(False, None, None, None, None, False)
        return LockoutInfo(True, SEASON_COMPLETE_REASON, None, None, None, True)

    lock_time = get_lockout_time(next_race)
    race_start_time = next_race.schedule.race
    naturally_locked = now >= lock_time
    captain_naturally_locked = now >= race_start_time

    if override is AdminOverride.LOCKED:
        return LockoutInfo(
            is_locked=True,
            lock_reason=f"Teams locked for {next_race.name} (admin override)",
            next_race=next_race,
            lock_time=lock_time,
            race_start_time=race_start_time,
            captain_locked=captain_naturally_locked,
        )
    if override is AdminOverride.UNLOCKED:
        return LockoutInfo(
            is_locked=False,
            lock_reason=None,
            next_race=next_race,
            lock_time=lock_time,
            race_start_time=race_start_time,
            captain_locked=False,
        )

    return LockoutInfo(
        is_locked=naturally_locked,
        lock_reason=f"Teams locked for {next_race.name}" if naturally_locked else None,
        next_race=next_race,
        lock_time=lock_time,
        race_start_time=race_start_time,
        captain_locked=captain_naturally_locked,
    )
