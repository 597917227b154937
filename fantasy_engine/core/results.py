"""Race and sprint result records consumed by the scoring engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ResultStatus(str, Enum):
    """Classification of a driver at the end of a session."""

    FINISHED = "finished"
    DNF = "dnf"
    DSQ = "dsq"


def _coerce_status(status: ResultStatus | str) -> ResultStatus:
    try:
        return ResultStatus(status)
    except ValueError:
        raise ValueError(
            f"status must be one of {[s.value for s in ResultStatus]}, got {status!r}."
        ) from None


@dataclass(frozen=True)
class RaceResult:
    """One driver's classified Grand Prix result.

    Attributes:
        driver_id: Identifier of the driver.
        constructor_id: Identifier of the driver's constructor.
        position: Finishing position (1-based), 0 when not classified.
        grid_position: Starting position on the grid.
        positions_gained: ``grid_position - position``; negative when
            places were lost.
        fastest_lap: Whether the driver set the fastest lap.
        status: Finish classification.
        laps: Laps completed, used as the retirement lap on a DNF.
    """

    driver_id: str
    constructor_id: str
    position: int
    grid_position: int
    positions_gained: int = 0
    fastest_lap: bool = False
    status: ResultStatus = ResultStatus.FINISHED
    laps: int = 0

    def __post_init__(self) -> None:
        if not self.driver_id:
            raise ValueError("driver_id must not be empty.")
        if self.position < 0:
            raise ValueError("position must be non-negative.")
        if self.grid_position < 0:
            raise ValueError("grid_position must be non-negative.")
        if self.laps < 0:
            raise ValueError("laps must be non-negative.")
        object.__setattr__(self, "status", _coerce_status(self.status))

    @property
    def is_classified(self) -> bool:
        return self.status is ResultStatus.FINISHED


@dataclass(frozen=True)
class SprintResult:
    """One driver's sprint result."""

    driver_id: str
    constructor_id: str
    position: int
    status: ResultStatus = ResultStatus.FINISHED

    def __post_init__(self) -> None:
        if not self.driver_id:
            raise ValueError("driver_id must not be empty.")
        if self.position < 0:
            raise ValueError("position must be non-negative.")
        object.__setattr__(self, "status", _coerce_status(self.status))

    @property
    def is_classified(self) -> bool:
        return self.status is ResultStatus.FINISHED
