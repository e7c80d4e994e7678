"""Centralized exception hierarchy for the story world engine.

Exception Hierarchy:

    StoryWorldError (base for all application errors)
    ├── DuplicateEntityError (create against an existing kind/id)
    ├── UnknownEntityKindError (kind outside npc/faction/location/item/event)
    ├── NotFoundError (lookup of a missing record)
    │   ├── EntityNotFoundError
    │   ├── RelationshipNotFoundError
    │   └── EventNotFoundError
    ├── UnknownParameterError (world parameter name not recognized)
    ├── OutOfRangeError (value outside declared bounds on import)
    ├── ValidationError (validation failures)
    │   ├── ValidationRejectedError (creation rule rejected a proposal)
    │   ├── EntityDataError (malformed entity fields)
    │   ├── RelationshipValidationError (self loop, unknown type)
    │   └── SaveFileValidationError (state document missing sections)
    ├── IntegrityViolationError (integrity scan found errors)
    ├── LLMError (collaborator/Ollama related errors)
    │   └── CollaboratorError (collaborator call failed)
    ├── ConfigError (configuration parsing/validation failures)
    └── JSONParseError (JSON parsing failures)

Usage:
    from storyworld.utils.exceptions import DuplicateEntityError, StoryWorldError

    try:
        store.create(EntityKind.NPC, "elder", data)
    except DuplicateEntityError:
        logger.warning("Elder already exists")
"""

import logging

logger = logging.getLogger(__name__)


class StoryWorldError(Exception):
    """Base exception for all story world errors.

    All custom exceptions should inherit from this class to allow
    catching all application-specific errors with a single except clause.
    """

    pass


class DuplicateEntityError(StoryWorldError):
    """Raised when creating an entity whose id already exists for its kind.

    Attributes:
        kind: Entity kind of the conflicting record.
        entity_id: The id that already exists.
    """

    def __init__(self, message: str, kind: str | None = None, entity_id: str | None = None):
        """Initialize DuplicateEntityError with the conflicting key.

        Args:
            message: Human-readable error message.
            kind: Entity kind of the conflicting record.
            entity_id: The id that already exists.
        """
        super().__init__(message)
        self.kind = kind
        self.entity_id = entity_id
        logger.debug("DuplicateEntityError initialized: kind=%s, entity_id=%s", kind, entity_id)


class UnknownEntityKindError(StoryWorldError):
    """Raised when an entity kind is not one of npc, faction, location, item, event."""

    def __init__(self, message: str, kind: str | None = None):
        """Initialize UnknownEntityKindError.

        Args:
            message: Human-readable error message.
            kind: The unrecognized kind value.
        """
        super().__init__(message)
        self.kind = kind
        logger.debug("UnknownEntityKindError initialized: kind=%s", kind)


class NotFoundError(StoryWorldError):
    """Base exception for lookups of records that do not exist."""

    pass


class EntityNotFoundError(NotFoundError):
    """Raised when an entity lookup by kind and id finds nothing.

    Attributes:
        kind: Entity kind that was searched.
        entity_id: The id that was not found.
    """

    def __init__(self, message: str, kind: str | None = None, entity_id: str | None = None):
        """Initialize EntityNotFoundError.

        Args:
            message: Human-readable error message.
            kind: Entity kind that was searched.
            entity_id: The id that was not found.
        """
        super().__init__(message)
        self.kind = kind
        self.entity_id = entity_id
        logger.debug("EntityNotFoundError initialized: kind=%s, entity_id=%s", kind, entity_id)


class RelationshipNotFoundError(NotFoundError):
    """Raised when updating a relationship edge that does not exist."""

    def __init__(self, message: str, source_id: str | None = None, target_id: str | None = None):
        """Initialize RelationshipNotFoundError.

        Args:
            message: Human-readable error message.
            source_id: Source entity id of the missing edge.
            target_id: Target entity id of the missing edge.
        """
        super().__init__(message)
        self.source_id = source_id
        self.target_id = target_id
        logger.debug(
            "RelationshipNotFoundError initialized: source_id=%s, target_id=%s",
            source_id,
            target_id,
        )


class EventNotFoundError(NotFoundError):
    """Raised when completing an event that is not currently active."""

    def __init__(self, message: str, event_id: str | None = None):
        """Initialize EventNotFoundError.

        Args:
            message: Human-readable error message.
            event_id: The event id that was not found.
        """
        super().__init__(message)
        self.event_id = event_id


class UnknownParameterError(StoryWorldError):
    """Raised when a world parameter name cannot be resolved.

    Attributes:
        parameter: The name as given by the caller.
        suggestions: Recognized parameter names.
    """

    def __init__(
        self,
        message: str,
        parameter: str | None = None,
        suggestions: list[str] | None = None,
    ):
        """Initialize UnknownParameterError.

        Args:
            message: Human-readable error message.
            parameter: The name as given by the caller.
            suggestions: Recognized parameter names.
        """
        super().__init__(message)
        self.parameter = parameter
        self.suggestions = suggestions or []
        logger.debug("UnknownParameterError initialized: parameter=%s", parameter)


class OutOfRangeError(StoryWorldError):
    """Raised when a stored value lies outside its declared bounds."""

    def __init__(
        self,
        message: str,
        name: str | None = None,
        value: float | None = None,
        bounds: tuple[float, float] | None = None,
    ):
        """Initialize OutOfRangeError.

        Args:
            message: Human-readable error message.
            name: Name of the bounded value.
            value: The offending value.
            bounds: The (min, max) bounds it violates.
        """
        super().__init__(message)
        self.name = name
        self.value = value
        self.bounds = bounds


class ValidationError(StoryWorldError):
    """Base exception for validation errors.

    Raised when input validation fails.
    """

    pass


class ValidationRejectedError(ValidationError):
    """Raised when a creation rule rejects a proposed entity.

    Attributes:
        kind: Entity kind of the proposal.
        reasons: Rejection reasons collected by the rule.
    """

    def __init__(self, message: str, kind: str | None = None, reasons: list[str] | None = None):
        """Initialize ValidationRejectedError.

        Args:
            message: Human-readable error message.
            kind: Entity kind of the proposal.
            reasons: Rejection reasons collected by the rule.
        """
        super().__init__(message)
        self.kind = kind
        self.reasons = reasons or []
        logger.debug("ValidationRejectedError initialized: kind=%s, reasons=%s", kind, reasons)


class EntityDataError(ValidationError):
    """Raised when entity fields fail model validation.

    Attributes:
        kind: Entity kind being built or updated.
        entity_id: Entity id, when known.
    """

    def __init__(self, message: str, kind: str | None = None, entity_id: str | None = None):
        """Initialize EntityDataError.

        Args:
            message: Human-readable error message.
            kind: Entity kind being built or updated.
            entity_id: Entity id, when known.
        """
        super().__init__(message)
        self.kind = kind
        self.entity_id = entity_id
        logger.debug("EntityDataError initialized: kind=%s, entity_id=%s", kind, entity_id)


class RelationshipValidationError(ValidationError):
    """Raised when relationship validation fails.

    This indicates an attempt to create a self-referential relationship
    or a relationship with an unrecognized type.

    Attributes:
        source_id: The source entity ID that was provided.
        target_id: The target entity ID that was provided.
        reason: Why the validation failed (e.g., "self_loop", "unknown_type").
        suggestions: List of suggested fixes or alternatives.
    """

    def __init__(
        self,
        message: str,
        source_id: str | None = None,
        target_id: str | None = None,
        reason: str | None = None,
        suggestions: list[str] | None = None,
    ):
        """Initialize RelationshipValidationError with context about the failed relationship.

        Args:
            message: Human-readable error message.
            source_id: The source entity ID that was provided.
            target_id: The target entity ID that was provided.
            reason: Why validation failed.
            suggestions: List of suggested fixes or alternatives.
        """
        super().__init__(message)
        self.source_id = source_id
        self.target_id = target_id
        self.reason = reason
        self.suggestions = suggestions or []
        logger.debug(
            "RelationshipValidationError initialized: source_id=%s, target_id=%s, reason=%s",
            source_id,
            target_id,
            reason,
        )


class SaveFileValidationError(ValidationError):
    """Raised when a state document is missing required sections.

    Attributes:
        missing_sections: Top-level keys absent from the document.
    """

    def __init__(self, message: str, missing_sections: list[str] | None = None):
        """Initialize SaveFileValidationError.

        Args:
            message: Human-readable error message.
            missing_sections: Top-level keys absent from the document.
        """
        super().__init__(message)
        self.missing_sections = missing_sections or []
        logger.debug(
            "SaveFileValidationError initialized: missing_sections=%s", self.missing_sections
        )


class IntegrityViolationError(StoryWorldError):
    """Raised when a hard integrity check finds errors.

    Attributes:
        errors: Integrity errors found by the scan.
    """

    def __init__(self, message: str, errors: list[str] | None = None):
        """Initialize IntegrityViolationError.

        Args:
            message: Human-readable error message.
            errors: Integrity errors found by the scan.
        """
        super().__init__(message)
        self.errors = errors or []


class LLMError(StoryWorldError):
    """Base exception for LLM-related errors.

    Raised when any call to the generative-language service fails.
    """

    pass


class CollaboratorError(LLMError):
    """Raised when the story collaborator cannot produce a response.

    This typically indicates the Ollama server is not running, the
    model is not pulled, or the request timed out.
    """

    pass


class ConfigError(StoryWorldError, ValueError):
    """Raised when configuration parsing or validation fails.

    This indicates issues with settings files or other configuration
    that cannot be loaded or is invalid. Subclasses ValueError so callers
    that validate values generically still catch it.
    """

    pass


class JSONParseError(StoryWorldError):
    """Raised when JSON extraction or parsing fails.

    This indicates the LLM response could not be parsed as valid JSON,
    or the JSON structure did not match the expected format.

    Attributes:
        response_preview: First 500 chars of the raw response for debugging.
        expected_type: The expected type (dict, list, or model class name).
    """

    def __init__(
        self,
        message: str,
        response_preview: str | None = None,
        expected_type: str | None = None,
    ):
        """Initialize the JSONParseError with optional parsing context.

        Args:
            message: Human-readable error message describing the parse failure.
            response_preview: Preview of the raw response that failed to parse.
            expected_type: Description of the expected JSON type or structure.
        """
        super().__init__(message)
        self.response_preview = response_preview
        self.expected_type = expected_type
