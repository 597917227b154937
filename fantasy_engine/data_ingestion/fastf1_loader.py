"""FastF1-based results loader for the fantasy rules engine.

This module provides functions to:

1. Load the classified results and lap data of a real-world session
   (race or sprint) from the FastF1 API.
2. Convert the FastF1 results table into :class:`RaceResult` and
   :class:`SprintResult` records that the scoring and pricing engines
   consume.

FastF1 caches data locally after the first download.  Internet access is
required on the initial load of any session.
"""

from __future__ import annotations

import logging
from typing import Mapping

import fastf1  # type: ignore[import-untyped]
import pandas as pd

from fantasy_engine.core.results import RaceResult, ResultStatus, SprintResult

logger = logging.getLogger(__name__)

# FastF1 ``ClassifiedPosition`` codes for drivers without a finishing place.
_DSQ_CODES: frozenset[str] = frozenset({"D", "E"})
_DNF_CODES: frozenset[str] = frozenset({"R", "N", "W", "F"})

_REQUIRED_COLUMNS: tuple[str, ...] = ("ClassifiedPosition", "TeamId")

# ---------------------------------------------------------------------------
# Session loader
# ---------------------------------------------------------------------------


def load_session_results(
    year: int,
    event: str | int,
    session: str,
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Load the results table and lap data of a session via FastF1.

    Enables the local disk cache on first call (``fastf1_cache/``).

    Args:
        year: Season year (e.g. ``2025``).
        event: Grand Prix name or round number (e.g. ``"Monza"``).
        session: Session identifier accepted by FastF1 (``"R"`` or
            ``"S"``).

    Returns:
        ``(results, laps)`` as returned by ``session.results`` and
        ``session.laps``.
    """
    fastf1.Cache.enable_cache("fastf1_cache")

    sess = fastf1.get_session(year, event, session)
    sess.load(telemetry=False, weather=False, messages=False)
    logger.info("Loaded %s %s %s: %d classified entries", year, event, session, len(sess.results))

    return sess.results, sess.laps


def fastest_lap_driver(laps_df: pd.DataFrame) -> str | None:
    """Abbreviation of the driver who set the fastest lap, if any."""
    if laps_df.empty or "LapTime" not in laps_df.columns:
        return None
    valid = laps_df.dropna(subset=["LapTime"])
    if valid.empty:
        return None
    return str(valid.loc[valid["LapTime"].idxmin(), "Driver"])


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------


def _classify(code: object) -> tuple[ResultStatus, int]:
    text = str(code).strip()
    if text.isdigit():
        return ResultStatus.FINISHED, int(text)
    if text in _DSQ_CODES:
        return ResultStatus.DSQ, 0
    if text not in _DNF_CODES:
        logger.warning("Unknown classification %r, treating as DNF", code)
    return ResultStatus.DNF, 0


def _check_columns(df: pd.DataFrame, id_column: str) -> None:
    missing = [c for c in (*_REQUIRED_COLUMNS, id_column) if c not in df.columns]
    if missing:
        raise ValueError(f"Results DataFrame is missing column(s): {', '.join(missing)}")


def _driver_id(row: pd.Series, id_column: str, id_map: Mapping[str, str] | None) -> str:
    raw = str(row[id_column])
    return id_map.get(raw, raw) if id_map else raw


def results_from_dataframe(
    results_df: pd.DataFrame,
    fastest_lap_abbreviation: str | None = None,
    id_column: str = "DriverId",
    id_map: Mapping[str, str] | None = None,
) -> list[RaceResult]:
    """Convert a FastF1 race results table into :class:`RaceResult` records.

    - ``ClassifiedPosition`` gives the finish: digits are classified
      finishes, ``D``/``E`` are disqualifications, anything else
      (``R``, ``N``, ``W``, ``F``) is a DNF with position 0.
    - A ``GridPosition`` of 0 or NaN is a pit-lane start and is treated
      as starting from the back of the grid.
    - ``Laps`` (when present) becomes laps completed, used as the DNF lap.

    Args:
        results_df: ``session.results`` of a race.
        fastest_lap_abbreviation: ``Abbreviation`` of the fastest-lap
            setter, see :func:`fastest_lap_driver`.
        id_column: Column holding the driver identifier.
        id_map: Optional translation from FastF1 ids to engine ids.

    Returns:
        One :class:`RaceResult` per row.

    Raises:
        ValueError: If required columns are missing.
    """
    _check_columns(results_df, id_column)
    back_of_grid = len(results_df)
    results: list[RaceResult] = []

    for _, row in results_df.iterrows():
        status, position = _classify(row["ClassifiedPosition"])
        grid_raw = row.get("GridPosition")
        grid = back_of_grid if pd.isna(grid_raw) or int(grid_raw) == 0 else int(grid_raw)
        laps_raw = row.get("Laps")
        laps = 0 if laps_raw is None or pd.isna(laps_raw) else int(laps_raw)
        results.append(
            RaceResult(
                driver_id=_driver_id(row, id_column, id_map),
                constructor_id=str(row["TeamId"]),
                position=position,
                grid_position=grid,
                positions_gained=grid - position if status is ResultStatus.FINISHED else 0,
                fastest_lap=(
                    fastest_lap_abbreviation is not None
                    and str(row.get("Abbreviation")) == fastest_lap_abbreviation
                ),
                status=status,
                laps=laps,
            )
        )

    return results


def sprint_results_from_dataframe(
    results_df: pd.DataFrame,
    id_column: str = "DriverId",
    id_map: Mapping[str, str] | None = None,
) -> list[SprintResult]:
    """Convert a FastF1 sprint results table into :class:`SprintResult` records."""
    _check_columns(results_df, id_column)
    results: list[SprintResult] = []
    for _, row in results_df.iterrows():
        status, position = _classify(row["ClassifiedPosition"])
        results.append(
            SprintResult(
                driver_id=_driver_id(row, id_column, id_map),
                constructor_id=str(row["TeamId"]),
                position=position,
                status=status,
            )
        )
    return results
