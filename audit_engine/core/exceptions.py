"""
Custom Exceptions - Food Safety Audit Engine
audit_engine/core/exceptions.py

Error taxonomy for the scoring engine and its repository layer.
An undefined score (zero denominator) is not an error: it is reported as None.
"""


class RepositoryException(Exception):
    """Base exception for repository and engine operations."""

    pass


class EntityNotFoundException(RepositoryException):
    """Audit, section or schema not found."""

    def __init__(self, entity_type: str, entity_id):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with ID {entity_id} not found")


class InvalidStateException(RepositoryException):
    """Operation not allowed in the entity's current state."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class PersistenceFailureException(RepositoryException):
    """Store error; the surrounding transaction has been rolled back."""

    retryable = True

    def __init__(self, message: str = "Persistence failure"):
        self.message = message
        super().__init__(message)


class DatabaseConnectionException(PersistenceFailureException):
    """Database connection failure."""

    def __init__(self, message: str = "Database connection failed"):
        super().__init__(message)
