"""Result types for ValidationService."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from storyworld.utils.exceptions import IntegrityViolationError, ValidationRejectedError

if TYPE_CHECKING:
    from storyworld.memory.world_view import WorldView

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Admit/reject decision for one proposed entity.

    Reasons block creation; warnings are advisory.
    """

    valid: bool = True
    reasons: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        """Allow ValidationResult to be used in boolean context."""
        return self.valid

    def reject(self, reason: str) -> None:
        self.valid = False
        self.reasons.append(reason)

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def merge(self, other: ValidationResult) -> None:
        """Fold another result in; any rejection there rejects this one."""
        if not other.valid:
            self.valid = False
        self.reasons.extend(other.reasons)
        self.warnings.extend(other.warnings)

    def raise_if_invalid(self, kind: str | None = None) -> None:
        """Raise ValidationRejectedError when any rule rejected the proposal.

        The message joins every reason with "; ".

        Raises:
            ValidationRejectedError: If valid is False.
        """
        if not self.valid:
            raise ValidationRejectedError("; ".join(self.reasons), kind, list(self.reasons))


# (proposal data, world view) -> warning messages, a ValidationResult, or None
CustomValidator = Callable[
    [dict[str, Any], "WorldView"], Iterable[str] | ValidationResult | None
]


@dataclass
class IntegrityReport:
    """Aggregate findings of a whole-world integrity scan."""

    valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    statistics: dict[str, int] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.valid

    def error(self, message: str) -> None:
        self.valid = False
        self.errors.append(message)

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def raise_if_invalid(self) -> None:
        """Raise IntegrityViolationError when the scan found errors.

        Raises:
            IntegrityViolationError: If errors is non-empty.
        """
        if self.errors:
            raise IntegrityViolationError(
                f"World integrity check failed with {len(self.errors)} error(s): "
                + "; ".join(self.errors[:5]),
                errors=list(self.errors),
            )
