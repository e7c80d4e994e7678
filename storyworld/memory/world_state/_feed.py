"""Rumor and news feed for WorldState."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from storyworld.memory.world_types import NewsItem, Rumor

if TYPE_CHECKING:
    from . import WorldState

logger = logging.getLogger(__name__)


def add_rumor(state: WorldState, content: str, accuracy: float | None) -> Rumor:
    """Append a rumor, keeping only the most recent ``max_rumors`` (arrival order).

    Accuracy defaults to a random value in [0, 100].
    """
    if accuracy is None:
        accuracy = float(state.rng.randint(0, 100))
    rumor = Rumor(content=content, accuracy=accuracy)
    state.rumors.append(rumor)
    if len(state.rumors) > state.max_rumors:
        state.rumors = state.rumors[-state.max_rumors :]
    logger.debug(f"Rumor added: {content[:60]}")
    return rumor


def spread_rumor(state: WorldState, index: int) -> Rumor:
    """Increase how far a rumor has spread.

    Raises:
        IndexError: If there is no rumor at index.
    """
    if not 0 <= index < len(state.rumors):
        raise IndexError(f"No rumor at index {index} ({len(state.rumors)} rumors)")
    rumor = state.rumors[index]
    rumor.spread += 1
    return rumor


def add_news(state: WorldState, content: str, importance: str) -> NewsItem:
    """Prepend a news item, keeping the ``max_news`` newest (newest first)."""
    item = NewsItem(content=content, importance=importance)
    state.news.insert(0, item)
    del state.news[state.max_news :]
    logger.debug(f"News added ({importance}): {content[:60]}")
    return item
