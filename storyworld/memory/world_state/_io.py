"""Export and import for WorldState."""

from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from storyworld.memory.world_types import (
    EVENT_BUCKETS,
    WORLD_PARAMETERS,
    DecisiveChoice,
    NewsItem,
    ParameterChange,
    Rumor,
    TemporalState,
    WorldChange,
    WorldEvent,
    WorldParameter,
)
from storyworld.utils.exceptions import OutOfRangeError, ValidationError
from storyworld.utils.validation import is_number

from ._parameters import resolve_parameter

if TYPE_CHECKING:
    from . import WorldState

logger = logging.getLogger(__name__)


def _event_buckets(state: WorldState) -> dict[str, list[WorldEvent]]:
    return {
        "current": state.current_events,
        "completed": state.completed_events,
        "failed": state.failed_events,
        "scheduled": state.scheduled_events,
    }


def export_world_state(state: WorldState) -> dict[str, Any]:
    """Export parameters, clock, events, rumor/news feed and history."""
    return {
        "parameters": {to_camel(name.value): value for name, value in state.parameters.items()},
        "temporal": state.temporal.to_dict(),
        "events": {
            bucket: [event.to_dict() for event in events]
            for bucket, events in _event_buckets(state).items()
        },
        "information": {
            "rumors": [rumor.to_dict() for rumor in state.rumors],
            "news": [item.to_dict() for item in state.news],
        },
        "history": {
            "parameterChanges": [change.to_dict() for change in state.parameter_history],
            "worldChanges": [change.to_dict() for change in state.world_changes],
            "decisiveChoices": [choice.to_dict() for choice in state.decisive_choices],
        },
    }


def _parse_parameters(raw: dict[str, Any]) -> dict[WorldParameter, float]:
    parameters = {name: float(bounds.default) for name, bounds in WORLD_PARAMETERS.items()}
    for key, value in raw.items():
        parameter = resolve_parameter(key)
        bounds = WORLD_PARAMETERS[parameter]
        if not is_number(value) or not bounds.min <= value <= bounds.max:
            raise OutOfRangeError(
                f"World parameter {parameter.value}={value!r} "
                f"outside [{bounds.min}, {bounds.max}]",
                name=parameter.value,
                value=value if is_number(value) else None,
                bounds=(bounds.min, bounds.max),
            )
        parameters[parameter] = float(value)
    return parameters


def import_world_state(state: WorldState, data: dict[str, Any]) -> None:
    """Replace the world state with an exported document.

    Everything is parsed before anything is replaced.

    Raises:
        UnknownParameterError: If a parameter name is not recognized.
        OutOfRangeError: If a parameter value lies outside its bounds.
        ValidationError: If a record is malformed.
    """
    parameters = _parse_parameters(data.get("parameters") or {})
    events_doc = data.get("events") or {}
    information = data.get("information") or {}
    history = data.get("history") or {}
    try:
        temporal = TemporalState.model_validate(data.get("temporal") or {})
        buckets = {
            bucket: [WorldEvent.model_validate(e) for e in events_doc.get(bucket) or []]
            for bucket in EVENT_BUCKETS
        }
        rumors = [Rumor.model_validate(r) for r in information.get("rumors") or []]
        news = [NewsItem.model_validate(n) for n in information.get("news") or []]
        parameter_history = [
            ParameterChange.model_validate(c) for c in history.get("parameterChanges") or []
        ]
        world_changes = [WorldChange.model_validate(c) for c in history.get("worldChanges") or []]
        decisive_choices = [
            DecisiveChoice.model_validate(c) for c in history.get("decisiveChoices") or []
        ]
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid world state data: {e}") from e

    state.parameters = parameters
    state.temporal = temporal
    state.current_events = buckets["current"]
    state.completed_events = buckets["completed"]
    state.failed_events = buckets["failed"]
    state.scheduled_events = buckets["scheduled"]
    state.rumors = rumors[-state.max_rumors :]
    state.news = news[: state.max_news]
    state.parameter_history = deque(parameter_history, maxlen=state.parameter_history_limit)
    state.world_changes = deque(world_changes, maxlen=state.world_change_limit)
    state.decisive_choices = deque(decisive_choices, maxlen=state.world_change_limit)
    logger.info(
        f"Imported world state: year {temporal.year}, {len(state.current_events)} active events"
    )
