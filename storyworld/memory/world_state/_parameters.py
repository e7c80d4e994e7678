"""Parameter writes for WorldState: name resolution, clamping and audit."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from storyworld.memory.world_types import (
    PARAMETER_ALIASES,
    WORLD_PARAMETERS,
    ParameterChange,
    WorldParameter,
)
from storyworld.utils.exceptions import UnknownParameterError
from storyworld.utils.validation import clamp, normalize_key, validate_in_range

if TYPE_CHECKING:
    from . import WorldState

logger = logging.getLogger(__name__)


def resolve_parameter(name: str | WorldParameter) -> WorldParameter:
    """Resolve any reasonable spelling of a parameter name.

    "tension", "GLOBAL_TENSION", "politicalStability" and
    "political_stability" are all accepted.

    Raises:
        UnknownParameterError: If the name matches no parameter.
    """
    if isinstance(name, WorldParameter):
        return name
    parameter = PARAMETER_ALIASES.get(normalize_key(str(name)))
    if parameter is None:
        raise UnknownParameterError(
            f"Unknown world parameter '{name}'",
            parameter=str(name),
            suggestions=[p.value for p in WorldParameter],
        )
    return parameter


def _write(
    state: WorldState, parameter: WorldParameter, target: float, reason: str
) -> ParameterChange:
    bounds = WORLD_PARAMETERS[parameter]
    old_value = state.parameters[parameter]
    new_value = float(clamp(target, bounds.min, bounds.max))
    state.parameters[parameter] = new_value

    record = ParameterChange(
        parameter=parameter.value,
        old_value=old_value,
        new_value=new_value,
        change=target - old_value,
        reason=reason,
        timestamp=datetime.now(),
    )
    state.parameter_history.append(record)
    state.record_world_change(
        "parameter",
        f"{parameter.value} {old_value:g} -> {new_value:g}",
        {"parameter": parameter.value, "oldValue": old_value, "newValue": new_value},
    )
    if new_value != target:
        logger.info(
            f"World parameter {parameter.value} clamped to {new_value:g} "
            f"(requested {target:g})" + (f": {reason}" if reason else "")
        )
    else:
        logger.debug(f"World parameter {parameter.value}: {old_value:g} -> {new_value:g}")
    return record


def update_global_parameter(
    state: WorldState, name: str | WorldParameter, delta: float, reason: str
) -> ParameterChange:
    """Apply a delta to a parameter, clamped to its bounds.

    The change record keeps the requested delta in ``change`` and the
    clamped result in ``new_value``.

    Raises:
        UnknownParameterError: If name matches no parameter.
        TypeError: If delta is not numeric.
        ValueError: If delta is NaN or infinite.
    """
    parameter = resolve_parameter(name)
    validate_in_range(delta, "delta")
    return _write(state, parameter, state.parameters[parameter] + delta, reason)


def set_global_parameter(
    state: WorldState, name: str | WorldParameter, value: float, reason: str
) -> ParameterChange:
    """Set a parameter to an absolute value, clamped to its bounds.

    Raises:
        UnknownParameterError: If name matches no parameter.
        TypeError: If value is not numeric.
        ValueError: If value is NaN or infinite.
    """
    parameter = resolve_parameter(name)
    validate_in_range(value, "value")
    return _write(state, parameter, value, reason)
