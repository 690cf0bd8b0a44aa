"""
Exception hierarchy for metabind.

Only structural failures are raised. Field-level anomalies (missing labels,
failed provider calls inside a nested expansion) are logged and recorded as
diagnostics instead.
"""

from __future__ import annotations

from typing import Optional


class MetabindError(Exception):
    """Base class for all metabind errors."""


class MalformedDescriptorError(MetabindError):
    """An entity type declares directives that cannot be executed."""

    def __init__(self, entity_type: type, field_name: Optional[str], reason: str):
        self.entity_type = entity_type
        self.field_name = field_name
        self.reason = reason
        where = entity_type.__name__
        if field_name:
            where = f"{where}.{field_name}"
        super().__init__(f"Malformed descriptor for {where}: {reason}")


class EntityConstructionError(MetabindError):
    """An entity instance could not be created."""

    def __init__(self, entity_type: type, cause: BaseException):
        self.entity_type = entity_type
        self.cause = cause
        super().__init__(f"Cannot construct {entity_type.__name__}: {cause}")


class ConnectionClosedError(MetabindError):
    """The provider's connection is closed or otherwise unusable."""

    # <entity>/<field> being expanded when the connection was found closed
    path: Optional[str] = None


class ExtractionError(MetabindError):
    """A top-level extraction call failed."""

    def __init__(
        self,
        operation: str,
        entity_type: Optional[type] = None,
        path: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        self.operation = operation
        self.entity_type = entity_type
        self.path = path
        self.cause = cause

        message = f"{operation} failed"
        if entity_type is not None:
            message += f" while binding {entity_type.__name__}"
        if path:
            message += f" at {path}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
