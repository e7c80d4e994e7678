"""Event bookkeeping for WorldState: current, completed, failed, scheduled."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from storyworld.memory.world_types import WorldEvent
from storyworld.utils.exceptions import EventNotFoundError, ValidationError

if TYPE_CHECKING:
    from . import WorldState

logger = logging.getLogger(__name__)


def _build_event(data: dict[str, Any], **overrides: Any) -> WorldEvent:
    payload = {"id": f"event_{uuid.uuid4().hex[:8]}", **data, **overrides}
    try:
        return WorldEvent.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid world event data: {e}") from e


def _activate(state: WorldState, event: WorldEvent) -> None:
    today = state.current_day()
    event.status = "active"
    event.start_day = today
    event.start_time = datetime.now()
    if event.duration_days is not None:
        event.end_day = today + event.duration_days
    state.current_events.append(event)
    state.record_world_change("event_started", event.name, {"eventId": event.id})
    logger.info(f"World event started: {event.name} ({event.id})")


def add_event(state: WorldState, data: dict[str, Any]) -> WorldEvent:
    """Register an active event starting today.

    ``duration_days`` (optional) sets the day a temporary event ends.

    Raises:
        ValidationError: If the event data is malformed.
    """
    event = _build_event(data)
    _activate(state, event)
    return event


def schedule_event(state: WorldState, data: dict[str, Any], in_days: int) -> WorldEvent:
    """Queue an event that activates once the clock reaches today + in_days."""
    if isinstance(in_days, bool) or not isinstance(in_days, int) or in_days < 0:
        raise ValueError(f"in_days must be a non-negative integer, got {in_days!r}")
    event = _build_event(data, status="scheduled", trigger_day=state.current_day() + in_days)
    state.scheduled_events.append(event)
    logger.info(f"World event scheduled in {in_days} day(s): {event.name} ({event.id})")
    return event


def complete_event(state: WorldState, event_id: str, success: bool) -> WorldEvent:
    """Move a current event to completed (success) or failed.

    Raises:
        EventNotFoundError: If no current event has this id.
    """
    for index, event in enumerate(state.current_events):
        if event.id == event_id:
            break
    else:
        raise EventNotFoundError(f"No active event '{event_id}'", event_id=event_id)

    state.current_events.pop(index)
    event.end_time = datetime.now()
    event.status = "completed" if success else "failed"
    (state.completed_events if success else state.failed_events).append(event)
    state.record_world_change(f"event_{event.status}", event.name, {"eventId": event.id})
    logger.info(f"World event {event.status}: {event.name} ({event.id})")
    return event


def process_time_based_events(state: WorldState) -> list[str]:
    """Activate due scheduled events and complete expired temporary ones.

    Returns:
        Ids of events whose state changed.
    """
    today = state.current_day()
    changed: list[str] = []

    due = [
        e for e in state.scheduled_events if e.trigger_day is not None and e.trigger_day <= today
    ]
    for event in due:
        state.scheduled_events.remove(event)
        _activate(state, event)
        changed.append(event.id)

    expired = [
        e
        for e in state.current_events
        if e.duration == "temporary" and e.end_day is not None and e.end_day <= today
    ]
    for event in expired:
        complete_event(state, event.id, success=True)
        changed.append(event.id)

    return changed


def find_event(state: WorldState, event_id: str) -> WorldEvent | None:
    for bucket in (
        state.current_events,
        state.scheduled_events,
        state.completed_events,
        state.failed_events,
    ):
        for event in bucket:
            if event.id == event_id:
                return event
    return None


def remove_event(state: WorldState, event_id: str) -> bool:
    """Drop an event from whichever list holds it. Returns False if absent."""
    for bucket in (
        state.current_events,
        state.scheduled_events,
        state.completed_events,
        state.failed_events,
    ):
        for event in bucket:
            if event.id == event_id:
                bucket.remove(event)
                logger.info(f"World event removed: {event.name} ({event.id})")
                return True
    return False
