"""
Core Package - Food Safety Audit Engine
audit_engine/core/__init__.py

Core infrastructure: exceptions, dependency providers.
"""

from audit_engine.core.exceptions import (
    DatabaseConnectionException,
    EntityNotFoundException,
    InvalidStateException,
    PersistenceFailureException,
    RepositoryException,
)

__all__ = [
    "DatabaseConnectionException",
    "EntityNotFoundException",
    "InvalidStateException",
    "PersistenceFailureException",
    "RepositoryException",
]
