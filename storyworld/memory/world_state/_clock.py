"""World clock for WorldState."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from storyworld.memory.world_types import (
    DAYS_PER_MONTH,
    MONTHS,
    SEASONS,
    TIME_UNITS,
    TIMES_OF_DAY,
    TemporalState,
)

if TYPE_CHECKING:
    from . import WorldState

logger = logging.getLogger(__name__)


def _advance_months(temporal: TemporalState, months: int) -> None:
    index = (MONTHS.index(temporal.month) if temporal.month in MONTHS else 0) + months
    temporal.year += index // len(MONTHS)
    index %= len(MONTHS)
    temporal.month = MONTHS[index]
    temporal.season = SEASONS[index]


def _advance_days(temporal: TemporalState, days: int) -> None:
    temporal.day += days
    while temporal.day > DAYS_PER_MONTH:
        temporal.day -= DAYS_PER_MONTH
        _advance_months(temporal, 1)


def _advance_hours(temporal: TemporalState, steps: int) -> None:
    """Step through times of day; reaching dawn starts a new day."""
    index = TIMES_OF_DAY.index(temporal.time_of_day) if temporal.time_of_day in TIMES_OF_DAY else 0
    for _ in range(steps):
        index = (index + 1) % len(TIMES_OF_DAY)
        if index == 0:
            _advance_days(temporal, 1)
    temporal.time_of_day = TIMES_OF_DAY[index]


_ADVANCERS = {
    "hour": _advance_hours,
    "day": _advance_days,
    "month": _advance_months,
}


def advance_time(state: WorldState, amount: int, unit: str) -> TemporalState:
    """Advance the clock, then activate or complete time-based events.

    An "hour" step moves to the next time of day (dawn, morning, midday,
    afternoon, evening, night). Day 31 rolls into the next month and the
    fourth month rolls into the next year. Season follows the month.

    Args:
        state: WorldState instance.
        amount: Non-negative number of units.
        unit: One of hour, day, month, year.

    Returns:
        The updated clock.

    Raises:
        ValueError: If unit is unknown or amount is negative.
    """
    if unit not in TIME_UNITS:
        raise ValueError(f"Unknown time unit '{unit}', expected one of {TIME_UNITS}")
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise ValueError(f"Time amount must be a non-negative integer, got {amount!r}")

    temporal = state.temporal
    before = temporal.to_dict()
    if unit == "year":
        temporal.year += amount
    else:
        _ADVANCERS[unit](temporal, amount)

    state.record_world_change(
        "time_advanced",
        f"Time advanced by {amount} {unit}(s)",
        {"from": before, "to": temporal.to_dict()},
    )
    logger.debug(
        f"Time advanced {amount} {unit}(s): {temporal.time_of_day}, day {temporal.day} "
        f"of {temporal.month}, year {temporal.year}"
    )
    state.process_time_based_events()
    return temporal


def set_weather(state: WorldState, weather: str) -> None:
    previous = state.temporal.weather
    state.temporal.weather = weather
    state.record_world_change("weather", f"Weather changed from {previous} to {weather}")
