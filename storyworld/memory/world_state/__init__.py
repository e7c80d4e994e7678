"""World state: bounded global parameters, clock, events and the rumor/news feed."""

from __future__ import annotations

import logging
import random
from collections import deque
from typing import Any

from storyworld.memory.world_types import (
    WORLD_PARAMETERS,
    DecisiveChoice,
    NewsItem,
    ParameterChange,
    Rumor,
    TemporalState,
    WorldAnalysis,
    WorldChange,
    WorldEvent,
    WorldParameter,
)
from storyworld.utils import constants

from . import _analysis, _clock, _events, _feed, _io, _parameters

logger = logging.getLogger(__name__)


class WorldState:
    """Global world parameters with an audited change history.

    Every parameter write is clamped to the parameter's bounds and produces
    exactly one ParameterChange, even when the write is clamped away.
    """

    def __init__(
        self,
        parameter_history_limit: int = constants.PARAMETER_HISTORY_LIMIT,
        world_change_limit: int = constants.WORLD_CHANGE_LIMIT,
        max_rumors: int = constants.MAX_RUMORS,
        max_news: int = constants.MAX_NEWS,
        rng: random.Random | None = None,
    ) -> None:
        self.parameters: dict[WorldParameter, float] = {
            name: float(bounds.default) for name, bounds in WORLD_PARAMETERS.items()
        }
        self.parameter_history: deque[ParameterChange] = deque(maxlen=parameter_history_limit)
        self.temporal = TemporalState()

        self.current_events: list[WorldEvent] = []
        self.completed_events: list[WorldEvent] = []
        self.failed_events: list[WorldEvent] = []
        self.scheduled_events: list[WorldEvent] = []

        self.rumors: list[Rumor] = []
        self.news: list[NewsItem] = []
        self.world_changes: deque[WorldChange] = deque(maxlen=world_change_limit)
        self.decisive_choices: deque[DecisiveChoice] = deque(maxlen=world_change_limit)

        self.parameter_history_limit = parameter_history_limit
        self.world_change_limit = world_change_limit
        self.max_rumors = max_rumors
        self.max_news = max_news
        self.rng = rng or random.Random()

    # ========== Parameters ==========

    def resolve_parameter(self, name: str | WorldParameter) -> WorldParameter:
        return _parameters.resolve_parameter(name)

    def get_parameter(self, name: str | WorldParameter) -> float:
        return self.parameters[_parameters.resolve_parameter(name)]

    def get_parameters(self) -> dict[str, float]:
        """Current values keyed by snake_case parameter name."""
        return {name.value: value for name, value in self.parameters.items()}

    def update_global_parameter(
        self, name: str | WorldParameter, delta: float, reason: str = ""
    ) -> ParameterChange:
        return _parameters.update_global_parameter(self, name, delta, reason)

    def set_global_parameter(
        self, name: str | WorldParameter, value: float, reason: str = ""
    ) -> ParameterChange:
        return _parameters.set_global_parameter(self, name, value, reason)

    def get_parameter_history(
        self, name: str | WorldParameter | None = None
    ) -> list[ParameterChange]:
        if name is None:
            return list(self.parameter_history)
        parameter = _parameters.resolve_parameter(name)
        return [c for c in self.parameter_history if c.parameter == parameter.value]

    # ========== Clock ==========

    def advance_time(self, amount: int = 1, unit: str = "hour") -> TemporalState:
        return _clock.advance_time(self, amount, unit)

    def set_weather(self, weather: str) -> None:
        _clock.set_weather(self, weather)

    def current_day(self) -> int:
        return self.temporal.day_ordinal()

    # ========== Events ==========

    def add_event(self, data: dict[str, Any]) -> WorldEvent:
        return _events.add_event(self, data)

    def schedule_event(self, data: dict[str, Any], in_days: int) -> WorldEvent:
        return _events.schedule_event(self, data, in_days)

    def complete_event(self, event_id: str, success: bool = True) -> WorldEvent:
        return _events.complete_event(self, event_id, success)

    def process_time_based_events(self) -> list[str]:
        return _events.process_time_based_events(self)

    def find_event(self, event_id: str) -> WorldEvent | None:
        return _events.find_event(self, event_id)

    def remove_event(self, event_id: str) -> bool:
        return _events.remove_event(self, event_id)

    def active_event_count(self) -> int:
        return len(self.current_events)

    # ========== Rumors / news ==========

    def add_rumor(self, content: str, accuracy: float | None = None) -> Rumor:
        return _feed.add_rumor(self, content, accuracy)

    def spread_rumor(self, index: int) -> Rumor:
        return _feed.spread_rumor(self, index)

    def add_news(self, content: str, importance: str = "medium") -> NewsItem:
        return _feed.add_news(self, content, importance)

    # ========== Change log ==========

    def record_world_change(
        self, change_type: str, description: str = "", data: dict[str, Any] | None = None
    ) -> WorldChange:
        change = WorldChange(type=change_type, description=description, data=data or {})
        self.world_changes.append(change)
        return change

    def record_decisive_choice(
        self, choice: str, consequences: list[str] | None = None
    ) -> DecisiveChoice:
        entry = DecisiveChoice(choice=choice, consequences=consequences or [])
        self.decisive_choices.append(entry)
        self.record_world_change("decisive_choice", choice, {"consequences": entry.consequences})
        logger.info(f"Decisive choice recorded: {choice}")
        return entry

    # ========== Read side ==========

    def get_world_summary(self) -> dict[str, Any]:
        return _analysis.get_world_summary(self)

    def analyze_world_state(self) -> WorldAnalysis:
        return _analysis.analyze_world_state(self.get_parameters())

    # ========== Export / import ==========

    def export_world_state(self) -> dict[str, Any]:
        return _io.export_world_state(self)

    def import_world_state(self, data: dict[str, Any]) -> None:
        _io.import_world_state(self, data)
