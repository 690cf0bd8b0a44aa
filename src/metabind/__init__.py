"""
metabind - Declarative binding of database metadata into typed entity graphs

Walks a database's introspection API (catalogs, schemas, tables, columns,
keys, indexes, routines, privileges, type info) and assembles the results
into nested dataclass instances.

Features:
- Field-level binding directives declared on plain dataclasses
- Recursive expansion of child collections through templated provider calls
- Path-based suppression of columns and whole subtrees
- Virtual catalogs and schemas for databases that report none
- Pairwise cross-reference extraction per catalog or schema
- SQLite, Oracle and in-memory providers
"""

__version__ = "0.1.0"
__author__ = "DDG Team"

from metabind.binder import BindStatus, Diagnostic, Diagnostics, ExtractionSession, RowBinder
from metabind.config import ExtractionConfig
from metabind.context import MetadataContext
from metabind.descriptors import (
    DescriptorRegistry,
    EntityDescriptor,
    bound,
    derived,
    descriptors_for,
    invoked,
)
from metabind.errors import (
    ConnectionClosedError,
    EntityConstructionError,
    ExtractionError,
    MalformedDescriptorError,
    MetabindError,
)
from metabind.expander import GraphExpander
from metabind.models import to_dict
from metabind.providers import (
    MemoryProvider,
    MetadataProvider,
    Operation,
    OracleProvider,
    RowCursor,
    RowsCursor,
    SqliteProvider,
)
from metabind.suppression import SuppressionFilter

__all__ = [
    # Orchestration
    "MetadataContext",
    "ExtractionConfig",
    "SuppressionFilter",
    # Engine
    "DescriptorRegistry",
    "EntityDescriptor",
    "GraphExpander",
    "RowBinder",
    "ExtractionSession",
    "BindStatus",
    "Diagnostic",
    "Diagnostics",
    "bound",
    "derived",
    "descriptors_for",
    "invoked",
    "to_dict",
    # Providers
    "MetadataProvider",
    "MemoryProvider",
    "OracleProvider",
    "SqliteProvider",
    "Operation",
    "RowCursor",
    "RowsCursor",
    # Errors
    "MetabindError",
    "MalformedDescriptorError",
    "EntityConstructionError",
    "ExtractionError",
    "ConnectionClosedError",
]
