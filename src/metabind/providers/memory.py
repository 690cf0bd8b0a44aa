"""
In-memory provider serving canned rows.

Used for fixtures, snapshots and tests. Every call is recorded so callers
can assert which operations ran and with which arguments.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import yaml

from metabind.errors import ConnectionClosedError
from metabind.providers.base import MetadataProvider, Operation, RowCursor, RowsCursor, UnsupportedOperation

logger = logging.getLogger(__name__)

Rows = Sequence[Mapping[str, Any]]
RowSource = Union[Rows, Callable[..., Rows]]


class MemoryProvider(MetadataProvider):
    """
    Serves fixed rows per operation.

    Each entry of ``rows`` is either a list of row mappings, returned for any
    arguments, or a callable receiving the call arguments and returning rows.
    Operations without an entry return no rows, or raise UnsupportedOperation
    when ``strict`` is set.
    """

    def __init__(self, rows: Optional[Dict[Union[Operation, str], RowSource]] = None, strict: bool = False):
        self.rows: Dict[Operation, RowSource] = {}
        for key, source in (rows or {}).items():
            self.rows[Operation(key)] = source
        self.strict = strict
        self.calls: List[Tuple[Operation, Tuple[Any, ...]]] = []
        self.closed = False

    def serve(self, operation: Operation, arguments: Tuple[Any, ...]) -> RowCursor:
        if self.closed:
            raise ConnectionClosedError(f"{type(self).__name__} is closed")
        self.calls.append((operation, arguments))

        source = self.rows.get(operation)
        if source is None:
            if self.strict:
                raise UnsupportedOperation(operation, self)
            return RowsCursor([])
        if callable(source):
            source = source(*arguments)
        return RowsCursor(source)

    def calls_to(self, operation: Operation) -> List[Tuple[Any, ...]]:
        """Argument tuples of every call to one operation, in call order."""
        return [arguments for op, arguments in self.calls if op is operation]

    def count(self, operation: Operation) -> int:
        return len(self.calls_to(operation))

    def close(self) -> None:
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @classmethod
    def from_yaml(cls, path: Union[str, Path], strict: bool = False) -> MemoryProvider:
        """
        Load a snapshot file.

        The file maps operation names to either a list of rows or a list of
        cases, each case matching exact call arguments:

            get_catalogs:
              - {TABLE_CAT: main}
            get_tables:
              cases:
                - arguments: [main, "", null, null]
                  rows:
                    - {TABLE_CAT: main, TABLE_SCHEM: "", TABLE_NAME: accounts}
        """
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping of operation names")

        rows: Dict[Union[Operation, str], RowSource] = {}
        for name, value in data.items():
            if isinstance(value, dict):
                rows[name] = _case_matcher(value.get("cases") or [], value.get("default") or [])
            else:
                rows[name] = value or []

        logger.info(f"Loaded {len(rows)} operations from {path}")
        return cls(rows, strict=strict)


def _case_matcher(cases: List[Dict[str, Any]], default: Rows) -> Callable[..., Rows]:
    table = [(tuple(case.get("arguments") or []), case.get("rows") or []) for case in cases]

    def match(*arguments: Any) -> Rows:
        for expected, rows in table:
            if expected == tuple(arguments):
                return rows
        return default

    return match


def _serving(operation: Operation):
    def method(self, *arguments):
        return self.serve(operation, arguments)

    method.__name__ = operation.value
    method.__doc__ = f"Serve the canned rows of {operation.value}."
    return method


for _operation in Operation:
    setattr(MemoryProvider, _operation.value, _serving(_operation))
