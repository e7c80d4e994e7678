"""Validation service - admission rules for proposed entities.

Rules run against committed state only, through a read-only WorldView,
and return a ValidationResult instead of raising. Pure functions of
(proposal, view): the same inputs always give the same decision.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from storyworld.memory.entities import EntityKind, parse_kind
from storyworld.utils.constants import VALIDATION_RULES

from . import _integrity, _rules
from ._types import CustomValidator, IntegrityReport, ValidationResult

if TYPE_CHECKING:
    from storyworld.memory.world_view import WorldView
    from storyworld.settings import Settings

logger = logging.getLogger(__name__)

__all__ = [
    "CustomValidator",
    "IntegrityReport",
    "ValidationResult",
    "ValidationService",
]

_Rule = Callable[
    ["ValidationService", dict[str, Any], "WorldView", ValidationResult], None
]

_RULES: dict[EntityKind, _Rule] = {
    EntityKind.NPC: _rules.validate_npc,
    EntityKind.FACTION: _rules.validate_faction,
    EntityKind.LOCATION: _rules.validate_location,
    EntityKind.ITEM: _rules.validate_item,
    EntityKind.EVENT: _rules.validate_event,
}


class ValidationService:
    """Decides whether proposed entities may be created.

    Capacity limits come from Settings when given, otherwise from
    VALIDATION_RULES.
    """

    def __init__(self, settings: Settings | None = None):
        """Initialize the validation service.

        Args:
            settings: Optional settings supplying capacity overrides.
        """
        logger.debug("Initializing ValidationService")
        self.limits: dict[str, int] = (
            settings.validation_limits() if settings is not None else dict(VALIDATION_RULES)
        )
        self._custom_validators: dict[EntityKind, list[CustomValidator]] = {
            kind: [] for kind in EntityKind
        }

    # ========== Per-kind rules ==========

    def validate_npc_creation(self, data: dict[str, Any], view: WorldView) -> ValidationResult:
        return self.validate_creation(EntityKind.NPC, data, view)

    def validate_faction_creation(self, data: dict[str, Any], view: WorldView) -> ValidationResult:
        return self.validate_creation(EntityKind.FACTION, data, view)

    def validate_location_creation(
        self, data: dict[str, Any], view: WorldView
    ) -> ValidationResult:
        return self.validate_creation(EntityKind.LOCATION, data, view)

    def validate_item_creation(self, data: dict[str, Any], view: WorldView) -> ValidationResult:
        return self.validate_creation(EntityKind.ITEM, data, view)

    def validate_event_creation(self, data: dict[str, Any], view: WorldView) -> ValidationResult:
        return self.validate_creation(EntityKind.EVENT, data, view)

    def validate_creation(
        self, kind: str | EntityKind, data: Any, view: WorldView
    ) -> ValidationResult:
        """Run the built-in rule and any custom validators for a kind.

        Args:
            kind: Entity kind of the proposal.
            data: Raw proposed fields.
            view: Read-only access to committed state.

        Returns:
            ValidationResult; rejected proposals carry at least one reason.

        Raises:
            UnknownEntityKindError: If kind is not a known entity kind.
        """
        entity_kind = parse_kind(kind)
        result = ValidationResult()
        if not isinstance(data, dict):
            result.reject(
                f"{entity_kind.value} proposal must be an object, got {type(data).__name__}"
            )
            return result

        _RULES[entity_kind](self, data, view, result)

        for validator in self._custom_validators[entity_kind]:
            try:
                extra = validator(data, view)
            except Exception as e:
                logger.warning(f"Custom {entity_kind.value} validator raised: {e}")
                result.warn(f"Custom validator error: {e}")
                continue
            if isinstance(extra, ValidationResult):
                if not extra.valid and not extra.reasons:
                    extra.reject(f"Rejected by custom {entity_kind.value} validator")
                result.merge(extra)
                continue
            for message in extra or ():
                result.warn(message)

        if not result.valid:
            logger.debug(f"Rejected {entity_kind.value} proposal: {'; '.join(result.reasons)}")
        return result

    def add_custom_validator(self, kind: str | EntityKind, validator: CustomValidator) -> None:
        """Register an extra validator for a kind.

        The validator receives (data, view) and returns either warning
        messages or a ValidationResult. A returned result is merged, so a
        rejection there rejects the proposal. An exception from the
        validator becomes a warning on the result.
        """
        entity_kind = parse_kind(kind)
        self._custom_validators[entity_kind].append(validator)
        logger.debug(f"Registered custom validator for {entity_kind.value}")

    # ========== Relationships ==========

    def validate_relationship(
        self, relationship_type: str, strength: float | None
    ) -> ValidationResult:
        """Check a proposed relationship against the alliance trust threshold.

        Never rejects; an ally edge weaker than MIN_TRUST_FOR_ALLIANCE
        only earns a warning.
        """
        result = ValidationResult()
        _rules.validate_relationship(self, relationship_type, strength, result)
        return result

    # ========== Integrity ==========

    def validate_integrity(self, view: WorldView) -> IntegrityReport:
        return _integrity.validate_integrity(self, view)
