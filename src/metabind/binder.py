"""
Row binder: populates one entity instance from one result row.

Field-level anomalies never raise. Each column directive yields a BindStatus;
anything other than BOUND (and the configured SUPPRESSED) is recorded in the
session's Diagnostics and logged.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Set, Tuple

from metabind.descriptors import ColumnDirective, DescriptorRegistry, EntityDescriptor, registry as default_registry
from metabind.errors import EntityConstructionError
from metabind.suppression import SuppressionFilter

logger = logging.getLogger(__name__)


class BindStatus(str, Enum):
    """Outcome of binding or expanding one field slot."""
    BOUND = "bound"
    SUPPRESSED = "suppressed"
    UNUSED = "unused"
    MISSING_LABEL = "missing_label"
    NULL_VALUE = "null_value"
    COERCION_FAILED = "coercion_failed"
    UNKNOWN_LABEL = "unknown_label"
    UNKNOWN_OPERATION = "unknown_operation"
    UNSUPPORTED_OPERATION = "unsupported_operation"
    PROVIDER_FAILED = "provider_failed"


@dataclass(frozen=True)
class Diagnostic:
    """One skipped-with-reason record."""
    path: str
    status: BindStatus
    detail: str = ""

    def __str__(self) -> str:
        text = f"{self.path}: {self.status.value}"
        return f"{text} ({self.detail})" if self.detail else text


class Diagnostics:
    """
    Collected field-level anomalies of one extraction session.

    Identical records are stored once; ``counts`` keeps the number of
    occurrences per status.
    """

    def __init__(self):
        self._records: List[Diagnostic] = []
        self._seen: Set[Diagnostic] = set()
        self.counts: Counter = Counter()

    def record(self, path: str, status: BindStatus, detail: str = "") -> bool:
        """Add a record; returns True the first time this record is seen."""
        diagnostic = Diagnostic(path, status, detail)
        self.counts[status] += 1
        if diagnostic in self._seen:
            return False
        self._seen.add(diagnostic)
        self._records.append(diagnostic)
        return True

    def by_status(self, status: BindStatus) -> List[Diagnostic]:
        return [d for d in self._records if d.status == status]

    @property
    def warnings(self) -> List[Diagnostic]:
        """Records worth surfacing to a user (everything but unknown labels and nulls)."""
        quiet = (BindStatus.UNKNOWN_LABEL, BindStatus.NULL_VALUE)
        return [d for d in self._records if d.status not in quiet]

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def summary(self) -> Dict[str, int]:
        return {status.value: count for status, count in self.counts.items()}


@dataclass
class ExtractionSession:
    """State owned by one extraction: what to skip and what went wrong."""
    suppression: SuppressionFilter = field(default_factory=SuppressionFilter)
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    def is_suppressed(self, path: str) -> bool:
        return self.suppression.is_suppressed(path)


_TRUE_STRINGS = {"y", "yes", "true", "t", "1"}
_FALSE_STRINGS = {"n", "no", "false", "f", "0"}


def coerce(value: Any, value_type: type) -> Any:
    """
    Convert a raw column value to the declared field type.

    Raises:
        ValueError / TypeError: If the value cannot represent the type
    """
    if value_type is object:
        return value

    if value_type is str:
        if isinstance(value, str):
            return value
        if isinstance(value, (bytes, bytearray)):
            return bytes(value).decode("utf-8")
        return str(value)

    if value_type is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float, Decimal)):
            return value != 0
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
            raise ValueError(f"not a boolean: {value!r}")
        raise TypeError(f"cannot convert {type(value).__name__} to bool")

    if value_type is int:
        if isinstance(value, int):
            return int(value)
        if isinstance(value, (float, Decimal)):
            if value != int(value):
                raise ValueError(f"lossy conversion of {value!r} to int")
            return int(value)
        if isinstance(value, str):
            return int(value.strip())
        raise TypeError(f"cannot convert {type(value).__name__} to int")

    if value_type is float:
        if isinstance(value, bool):
            raise TypeError("cannot convert bool to float")
        if isinstance(value, (int, float, Decimal, str)):
            return float(value)
        raise TypeError(f"cannot convert {type(value).__name__} to float")

    return value


class RowBinder:
    """
    Binds labeled rows onto entity instances using column directives.

    The binder only reads the mapping it is handed; advancing the cursor is
    the caller's business.
    """

    def __init__(self, registry: Optional[DescriptorRegistry] = None):
        self.registry = registry or default_registry

    def new_instance(self, entity_type: type) -> Any:
        """Create an empty entity; failure here is structural."""
        try:
            return entity_type()
        except Exception as e:
            raise EntityConstructionError(entity_type, e) from e

    def bind(
        self,
        row: Mapping[str, Any],
        entity_type: type,
        session: Optional[ExtractionSession] = None,
    ) -> Any:
        """
        Create an instance of ``entity_type`` and bind ``row`` onto it.

        Args:
            row: Column label -> value mapping of the current row
            entity_type: Entity dataclass to create
            session: Suppression and diagnostics; a throwaway one if omitted

        Returns:
            The populated instance
        """
        if session is None:
            session = ExtractionSession()
        descriptor = self.registry.descriptors_for(entity_type)
        instance = self.new_instance(entity_type)
        self.bind_columns(instance, descriptor, row, session)
        return instance

    def bind_columns(
        self,
        instance: Any,
        descriptor: EntityDescriptor,
        row: Mapping[str, Any],
        session: ExtractionSession,
    ) -> List[Tuple[ColumnDirective, BindStatus]]:
        """Apply every column directive in declared order; returns each outcome."""
        remaining = set(row.keys())
        outcomes = []
        for directive in descriptor.columns:
            status = self._bind_column(instance, directive, row, remaining, session)
            outcomes.append((directive, status))

        for label in sorted(remaining):
            if session.diagnostics.record(descriptor.name, BindStatus.UNKNOWN_LABEL, label):
                logger.debug(f"Unconsumed column {label!r} while binding {descriptor.name}")
        return outcomes

    def _bind_column(
        self,
        instance: Any,
        directive: ColumnDirective,
        row: Mapping[str, Any],
        remaining: Set[str],
        session: ExtractionSession,
    ) -> BindStatus:
        label = directive.column_label
        path = directive.path

        if session.is_suppressed(path):
            remaining.discard(label)
            logger.debug(f"Skipping suppressed {path}")
            return BindStatus.SUPPRESSED

        if label not in row:
            if session.diagnostics.record(path, BindStatus.MISSING_LABEL, label):
                logger.warning(f"Unknown label {label!r} for {path}; field left at default")
            return BindStatus.MISSING_LABEL

        remaining.discard(label)
        if directive.unused:
            return BindStatus.UNUSED

        value = row[label]
        if value is None:
            if directive.nillable:
                setattr(instance, directive.field_name, None)
                return BindStatus.BOUND
            if session.diagnostics.record(path, BindStatus.NULL_VALUE, label):
                logger.debug(f"Null value for non-nillable {path}; field left at default")
            return BindStatus.NULL_VALUE

        try:
            value = coerce(value, directive.value_type)
        except (TypeError, ValueError) as e:
            if session.diagnostics.record(path, BindStatus.COERCION_FAILED, str(e)):
                logger.warning(f"Cannot bind {label!r} to {path}: {e}")
            return BindStatus.COERCION_FAILED

        setattr(instance, directive.field_name, value)
        return BindStatus.BOUND
