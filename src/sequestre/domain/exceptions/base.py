"""
Base domain exceptions.
"""


class SequestreException(Exception):
    """Base exception for all Sequestre domain errors."""

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)


class EntityNotFoundError(SequestreException):
    """Raised when entity is not found in repository."""

    def __init__(self, entity_type: str, entity_id: str):
        message = f"{entity_type} with ID {entity_id} not found"
        super().__init__(message, code="ENTITY_NOT_FOUND")
        self.entity_type = entity_type
        self.entity_id = entity_id


class DuplicateEntityError(SequestreException):
    """Raised when attempting to create duplicate entity."""

    def __init__(self, entity_type: str, identifier: str):
        message = f"{entity_type} with {identifier} already exists"
        super().__init__(message, code="DUPLICATE_ENTITY")


class ValidationError(SequestreException):
    """Raised when input validation fails before any network call."""

    def __init__(self, field: str, reason: str):
        message = f"Validation failed for {field}: {reason}"
        super().__init__(message, code="VALIDATION_ERROR")
        self.field = field
        self.reason = reason


class ConfigurationError(SequestreException):
    """
    Raised when required configuration is missing.

    Covers missing RPC URLs, contract addresses and private key material.
    Always raised before any network call is attempted.
    """

    def __init__(self, message: str):
        super().__init__(message, code="CONFIGURATION_ERROR")
