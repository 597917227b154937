"""Race calendar model used by the lockout state machine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class RaceSchedule:
    """Session start times for a race weekend (timezone-aware, UTC).

    Sessions that do not run on a given weekend format are ``None``.
    """

    fp1: datetime
    qualifying: datetime
    race: datetime
    fp2: datetime | None = None
    fp3: datetime | None = None
    sprint_qualifying: datetime | None = None
    sprint: datetime | None = None


@dataclass(frozen=True)
class Race:
    """A single championship round.

    Attributes:
        race_id: Stable identifier, e.g. ``"australia"``.
        round: Championship round number (1-based).
        name: Display name, e.g. ``"Australian Grand Prix"``.
        schedule: Session start times.
        has_sprint: Whether the weekend runs the sprint format.
        total_laps: Scheduled race distance in laps.
    """

    race_id: str
    round: int
    name: str
    schedule: RaceSchedule
    has_sprint: bool = False
    total_laps: int = 0

    def __post_init__(self) -> None:
        if not self.race_id:
            raise ValueError("race_id must not be empty.")
        if self.round < 1:
            raise ValueError("round must be >= 1.")
        if self.total_laps < 0:
            raise ValueError("total_laps must be non-negative.")
