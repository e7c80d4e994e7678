"""Tests for WorldState."""

import random

import pytest

from storyworld.memory.world_state import WorldState
from storyworld.memory.world_types import WorldParameter
from storyworld.utils.exceptions import (
    EventNotFoundError,
    OutOfRangeError,
    UnknownParameterError,
)


class TestParameters:
    """Tests for bounded parameter writes."""

    def test_defaults(self, world_state):
        """Parameters start at their declared defaults."""
        assert world_state.get_parameters() == {
            "tension": 30,
            "political_stability": 80,
            "economic_state": 50,
            "magical_activity": 20,
        }

    def test_delta_clamped_and_recorded(self, world_state):
        """A clamped write keeps the requested change and the clamped result."""
        change = world_state.update_global_parameter("tension", -50, "peace treaty")

        assert world_state.get_parameter("tension") == 0
        assert change.old_value == 30
        assert change.new_value == 0
        assert change.change == -50
        assert change.reason == "peace treaty"

        world_state.update_global_parameter("tension", 200)
        assert world_state.get_parameter("tension") == 100

    def test_saturation(self, world_state):
        """Applying a huge delta twice ends where applying it once does."""
        world_state.update_global_parameter("economy", 1000)
        once = world_state.get_parameter("economy")
        world_state.update_global_parameter("economy", 1000)

        assert world_state.get_parameter("economy") == once == 100

    def test_every_write_is_recorded(self, world_state):
        """One history record per write, including writes clamped to no effect."""
        world_state.set_global_parameter("tension", 0)
        world_state.update_global_parameter("tension", -10)

        history = world_state.get_parameter_history("tension")
        assert len(history) == 2
        assert history[-1].old_value == history[-1].new_value == 0

    @pytest.mark.parametrize(
        "name",
        ["tension", "GLOBAL_TENSION", "globalTension", WorldParameter.TENSION],
    )
    def test_name_spellings(self, world_state, name):
        """Any reasonable spelling resolves to the same parameter."""
        assert world_state.resolve_parameter(name) is WorldParameter.TENSION

    def test_unknown_parameter(self, world_state):
        """Unknown names raise UnknownParameterError and change nothing."""
        with pytest.raises(UnknownParameterError, match="morale"):
            world_state.update_global_parameter("morale", 5)

        assert world_state.get_parameter_history() == []

    def test_non_numeric_delta(self, world_state):
        """A non-numeric delta is a TypeError."""
        with pytest.raises(TypeError):
            world_state.update_global_parameter("tension", "a lot")

    @pytest.mark.parametrize("delta", [float("nan"), float("inf")])
    def test_non_finite_delta(self, world_state, delta):
        """NaN and infinite deltas are rejected and leave no history."""
        with pytest.raises(ValueError, match="finite"):
            world_state.update_global_parameter("tension", delta)
        with pytest.raises(ValueError, match="finite"):
            world_state.set_global_parameter("tension", delta)

        assert world_state.get_parameter("tension") == 30
        assert world_state.get_parameter_history() == []

    def test_history_is_bounded(self):
        """Only the newest parameter changes are kept."""
        state = WorldState(parameter_history_limit=2)
        for delta in (1, 2, 3):
            state.update_global_parameter("magic", delta)

        assert [c.change for c in state.get_parameter_history()] == [2, 3]


class TestClock:
    """Tests for advance_time."""

    def test_hours_wrap_to_next_day(self, world_state):
        """Passing dawn starts a new day."""
        temporal = world_state.advance_time(5, "hour")

        assert temporal.time_of_day == "dawn"
        assert temporal.day == 2

    def test_day_rolls_into_next_month(self, world_state):
        """Past day 30 the month (and season) advance."""
        world_state.temporal.day = 30

        temporal = world_state.advance_time(1, "day")

        assert temporal.day == 1
        assert temporal.month == "secondmonth"
        assert temporal.season == "summer"

    def test_month_rolls_into_next_year(self, world_state):
        """After the fourth month comes the first month of the next year."""
        world_state.temporal.month = "fourthmonth"

        temporal = world_state.advance_time(1, "month")

        assert temporal.month == "firstmonth"
        assert temporal.year == 1001

    def test_invalid_arguments(self, world_state):
        """Unknown units and negative amounts are rejected."""
        with pytest.raises(ValueError, match="Unknown time unit"):
            world_state.advance_time(1, "week")
        with pytest.raises(ValueError, match="non-negative"):
            world_state.advance_time(-1, "day")

    def test_weather(self, world_state):
        """set_weather changes the weather and logs a world change."""
        world_state.set_weather("storm")

        assert world_state.temporal.weather == "storm"
        assert world_state.world_changes[-1].type == "weather"


class TestEvents:
    """Tests for event bookkeeping."""

    def test_add_and_complete(self, world_state):
        """Completed events move out of the current list."""
        event = world_state.add_event({"id": "fair", "name": "Harvest Fair"})
        assert world_state.active_event_count() == 1

        world_state.complete_event("fair")

        assert world_state.active_event_count() == 0
        assert world_state.completed_events == [event]
        assert event.status == "completed"

    def test_failed_event(self, world_state):
        """Unsuccessful completion moves the event to failed."""
        world_state.add_event({"id": "siege", "name": "Siege"})

        world_state.complete_event("siege", success=False)

        assert world_state.find_event("siege").status == "failed"
        assert len(world_state.failed_events) == 1

    def test_complete_missing(self, world_state):
        """Completing an unknown event raises EventNotFoundError."""
        with pytest.raises(EventNotFoundError):
            world_state.complete_event("nothing")

    def test_generated_id(self, world_state):
        """Events without an id get one."""
        event = world_state.add_event({"name": "Storm"})

        assert event.id.startswith("event_")

    def test_temporary_event_expires(self, world_state):
        """A temporary event completes once its end day is reached."""
        world_state.add_event(
            {"id": "fair", "name": "Fair", "duration": "temporary", "duration_days": 2}
        )

        world_state.advance_time(1, "day")
        assert world_state.active_event_count() == 1

        world_state.advance_time(1, "day")
        assert world_state.active_event_count() == 0
        assert world_state.find_event("fair").status == "completed"

    def test_scheduled_event_activates(self, world_state):
        """A scheduled event activates when the clock reaches its trigger day."""
        world_state.schedule_event({"id": "festival", "name": "Festival"}, in_days=2)
        assert world_state.active_event_count() == 0

        world_state.advance_time(2, "day")

        assert world_state.active_event_count() == 1
        assert world_state.scheduled_events == []


class TestFeed:
    """Tests for rumors and news."""

    def test_rumors_keep_newest(self):
        """Only the newest max_rumors rumors are kept, oldest first."""
        state = WorldState(max_rumors=2, rng=random.Random(1))
        for content in ("first", "second", "third"):
            state.add_rumor(content)

        assert [r.content for r in state.rumors] == ["second", "third"]
        assert all(0 <= r.accuracy <= 100 for r in state.rumors)

    def test_spread_rumor(self, world_state):
        """Spreading a rumor increments its spread."""
        world_state.add_rumor("The mill is haunted", accuracy=10)

        assert world_state.spread_rumor(0).spread == 2
        with pytest.raises(IndexError):
            world_state.spread_rumor(5)

    def test_news_newest_first(self):
        """News is prepended and capped."""
        state = WorldState(max_news=2)
        for content in ("old", "newer", "newest"):
            state.add_news(content)

        assert [n.content for n in state.news] == ["newest", "newer"]


class TestChangeLog:
    """Tests for the world change log."""

    def test_decisive_choice(self, world_state):
        """Decisive choices are kept and mirrored into the change log."""
        world_state.record_decisive_choice("Burned the bridge", ["no retreat"])

        assert world_state.decisive_choices[-1].consequences == ["no retreat"]
        assert world_state.world_changes[-1].type == "decisive_choice"


class TestAnalysis:
    """Tests for the qualitative world read."""

    def test_calm_world(self, world_state):
        """Default parameters read as stable, low tension and normal magic."""
        analysis = world_state.analyze_world_state()

        assert analysis.stability == "stable"
        assert analysis.tension == "low"
        assert analysis.economy == "good"
        assert analysis.magic == "normal"
        assert analysis.concerns == []

    def test_troubled_world(self, world_state):
        """Low stability and high tension produce concerns."""
        world_state.set_global_parameter("political_stability", 20)
        world_state.set_global_parameter("tension", 85)
        world_state.set_global_parameter("magic", 90)

        analysis = world_state.analyze_world_state()

        assert analysis.stability == "unstable"
        assert analysis.tension == "high"
        assert len(analysis.concerns) == 2
        assert analysis.opportunities == ["Increased magical energy enables powerful rituals"]

    def test_summary(self, world_state):
        """The summary exposes parameters, time and recent feed."""
        world_state.add_rumor("Wolves in the hills", accuracy=70)

        summary = world_state.get_world_summary()

        assert summary["parameters"]["tension"] == 30
        assert summary["time"]["season"] == "spring"
        assert summary["recentRumors"] == ["Wolves in the hills"]


class TestExportImport:
    """Tests for export_world_state / import_world_state."""

    def test_round_trip(self, world_state):
        """A fresh state reproduces parameters, clock, events and feed."""
        world_state.update_global_parameter("tension", 25, "border skirmish")
        world_state.advance_time(3, "day")
        world_state.add_event({"id": "fair", "name": "Fair"})
        world_state.add_rumor("A dragon was seen", accuracy=20)
        world_state.add_news("Taxes raised", "high")

        fresh = WorldState()
        fresh.import_world_state(world_state.export_world_state())

        assert fresh.get_parameters() == world_state.get_parameters()
        assert fresh.temporal == world_state.temporal
        assert fresh.find_event("fair") is not None
        assert fresh.rumors[0].content == "A dragon was seen"
        assert fresh.news[0].importance == "high"
        assert len(fresh.parameter_history) == 1

    def test_export_uses_camel_case(self, world_state):
        """Parameter keys are camelCase in the exported document."""
        exported = world_state.export_world_state()

        assert "politicalStability" in exported["parameters"]
        assert "timeOfDay" in exported["temporal"]

    def test_out_of_range_rejected(self, world_state):
        """Out-of-range values abort the import and leave the state untouched."""
        with pytest.raises(OutOfRangeError) as exc_info:
            world_state.import_world_state({"parameters": {"tension": 150}})

        assert exc_info.value.name == "tension"
        assert world_state.get_parameter("tension") == 30

    def test_unknown_parameter_rejected(self, world_state):
        """Unknown parameter names abort the import."""
        with pytest.raises(UnknownParameterError):
            world_state.import_world_state({"parameters": {"morale": 50}})
