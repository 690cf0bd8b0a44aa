"""
Declarative binding directives and the registry that compiles them.

Entity types are plain dataclasses whose fields carry one directive in their
metadata, declared through the ``bound``, ``invoked`` and ``derived`` helpers:

    @dataclass
    class Catalog:
        table_cat: Optional[str] = bound("TABLE_CAT")
        schemas: List[Schema] = invoked(Schema, Operation.GET_SCHEMAS, ":table_cat", "null")

The registry turns those declarations into an ordered, validated
EntityDescriptor once per type and caches it.
"""

from __future__ import annotations

import dataclasses
import logging
import re
import threading
import typing
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from metabind.errors import MalformedDescriptorError
from metabind.providers.base import OPERATION_PARAMETERS, Operation, convert_literal

logger = logging.getLogger(__name__)

DIRECTIVE_KEY = "metabind.directive"

NULL_TOKEN = "null"
REFERENCE_PREFIX = ":"

# Scalar types the binder knows how to coerce into; anything else passes through.
SCALAR_TYPES = (bool, int, float, str)


@dataclass(frozen=True)
class ColumnBinding:
    """Field declaration: bind one labeled column."""
    label: str
    nillable: bool = False
    unused: bool = False


@dataclass(frozen=True)
class Invocation:
    """Field declaration: fill a list by calling a provider operation."""
    element_type: type
    operation: Union[Operation, str]
    parameters: Tuple[Tuple[str, ...], ...]


@dataclass(frozen=True)
class Derived:
    """Field declaration: a list computed after binding (cross references)."""
    element_type: type


def bound(label: str, *, nillable: bool = False, unused: bool = False, default: Any = None):
    """Declare a column-bound field."""
    return field(default=default, metadata={DIRECTIVE_KEY: ColumnBinding(label, nillable, unused)})


def invoked(
    element_type: type,
    operation: Union[Operation, str],
    *arguments: str,
    parameters: Optional[Sequence[Sequence[str]]] = None,
):
    """
    Declare a field populated by a provider call.

    Pass the argument templates positionally for a single call, or a list of
    template tuples as ``parameters`` for one call per tuple (results are
    appended in order).
    """
    if parameters is None:
        parameters = [arguments]
    elif arguments:
        raise TypeError("pass either positional arguments or parameters, not both")
    invocation = Invocation(element_type, operation, tuple(tuple(p) for p in parameters))
    return field(default_factory=list, metadata={DIRECTIVE_KEY: invocation})


def derived(element_type: type):
    """Declare a list field filled by a post-pass rather than a directive."""
    return field(default_factory=list, metadata={DIRECTIVE_KEY: Derived(element_type)})


@dataclass(frozen=True)
class ColumnDirective:
    """Compiled column-binding directive."""
    owner_type: type
    field_name: str
    column_label: str
    nillable: bool
    unused: bool
    value_type: type
    path: str


@dataclass(frozen=True)
class InvocationDirective:
    """Compiled invocation directive."""
    owner_type: type
    field_name: str
    element_type: type
    operation: Union[Operation, str]
    argument_templates: Tuple[Tuple[str, ...], ...]
    path: str


@dataclass(frozen=True)
class DerivedDirective:
    owner_type: type
    field_name: str
    element_type: type
    path: str


@dataclass(frozen=True)
class EntityDescriptor:
    """Ordered directives of one entity type."""
    entity_type: type
    name: str
    columns: Tuple[ColumnDirective, ...]
    invocations: Tuple[InvocationDirective, ...]
    derived: Tuple[DerivedDirective, ...] = ()

    def column(self, field_name: str) -> Optional[ColumnDirective]:
        for directive in self.columns:
            if directive.field_name == field_name:
                return directive
        return None


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def entity_name(entity_type: type) -> str:
    """Path prefix of a type: ``__entity_name__`` or the snake_case class name."""
    explicit = entity_type.__dict__.get("__entity_name__")
    if explicit:
        return explicit
    return _CAMEL_BOUNDARY.sub("_", entity_type.__name__).lower()


def make_path(entity_type: type, field_name: str) -> str:
    return f"{entity_name(entity_type)}/{field_name}"


def _unwrap_optional(hint: Any) -> Tuple[Any, bool]:
    """Return (inner type, is_optional) for Optional[X]; other hints unchanged."""
    if typing.get_origin(hint) is Union:
        args = [a for a in typing.get_args(hint) if a is not type(None)]
        if len(args) == 1:
            return args[0], True
    return hint, False


def _is_list_hint(hint: Any) -> bool:
    return typing.get_origin(hint) in (list, List)


def _compile(entity_type: type) -> EntityDescriptor:
    """Build and validate the descriptor of one entity type."""
    if not dataclasses.is_dataclass(entity_type) or not isinstance(entity_type, type):
        raise MalformedDescriptorError(entity_type, None, "entity types must be dataclasses")

    try:
        hints = typing.get_type_hints(entity_type)
    except Exception as e:
        raise MalformedDescriptorError(entity_type, None, f"cannot resolve annotations ({e})") from e

    columns: List[ColumnDirective] = []
    invocations: List[InvocationDirective] = []
    derived_fields: List[DerivedDirective] = []
    labels: Dict[str, str] = {}

    for f in dataclasses.fields(entity_type):
        declaration = f.metadata.get(DIRECTIVE_KEY)
        if declaration is None:
            continue
        path = make_path(entity_type, f.name)
        hint = hints.get(f.name)

        if isinstance(declaration, ColumnBinding):
            if not declaration.label:
                raise MalformedDescriptorError(entity_type, f.name, "empty column label")
            if declaration.label in labels:
                raise MalformedDescriptorError(
                    entity_type, f.name,
                    f"label {declaration.label!r} already bound to {labels[declaration.label]}",
                )
            labels[declaration.label] = f.name
            value_type, optional = _unwrap_optional(hint)
            if declaration.nillable and not optional:
                raise MalformedDescriptorError(entity_type, f.name, "nillable field must be Optional")
            if value_type not in SCALAR_TYPES:
                value_type = object
            columns.append(ColumnDirective(
                owner_type=entity_type,
                field_name=f.name,
                column_label=declaration.label,
                nillable=declaration.nillable,
                unused=declaration.unused,
                value_type=value_type,
                path=path,
            ))

        elif isinstance(declaration, (Invocation, Derived)):
            if not _is_list_hint(hint):
                raise MalformedDescriptorError(entity_type, f.name, f"collection field must be a List, not {hint}")
            if not dataclasses.is_dataclass(declaration.element_type):
                raise MalformedDescriptorError(
                    entity_type, f.name, f"element type {declaration.element_type!r} is not a dataclass",
                )
            if isinstance(declaration, Derived):
                derived_fields.append(DerivedDirective(entity_type, f.name, declaration.element_type, path))
                continue
            operation = declaration.operation
            try:
                operation = Operation(operation)
            except ValueError:
                # Reported when the directive is executed.
                logger.debug(f"Unknown operation {operation!r} declared at {path}")
            invocations.append(InvocationDirective(
                owner_type=entity_type,
                field_name=f.name,
                element_type=declaration.element_type,
                operation=operation,
                argument_templates=declaration.parameters,
                path=path,
            ))

        else:
            raise MalformedDescriptorError(entity_type, f.name, f"unknown directive {declaration!r}")

    bound_names = {c.field_name for c in columns}
    for directive in invocations:
        if not directive.argument_templates:
            raise MalformedDescriptorError(entity_type, directive.field_name, "no argument sets")
        for templates in directive.argument_templates:
            if isinstance(directive.operation, Operation):
                expected = len(OPERATION_PARAMETERS[directive.operation])
                if len(templates) != expected:
                    raise MalformedDescriptorError(
                        entity_type, directive.field_name,
                        f"{directive.operation.value} takes {expected} arguments, got {len(templates)}",
                    )
            for position, template in enumerate(templates):
                if template.startswith(REFERENCE_PREFIX):
                    name = template[len(REFERENCE_PREFIX):]
                    if name not in bound_names:
                        raise MalformedDescriptorError(
                            entity_type, directive.field_name,
                            f"back-reference {template!r} does not name a column-bound field",
                        )
                elif template != NULL_TOKEN and isinstance(directive.operation, Operation):
                    param = OPERATION_PARAMETERS[directive.operation][position]
                    try:
                        convert_literal(template, param)
                    except ValueError as e:
                        raise MalformedDescriptorError(entity_type, directive.field_name, str(e)) from e

    return EntityDescriptor(
        entity_type=entity_type,
        name=entity_name(entity_type),
        columns=tuple(columns),
        invocations=tuple(invocations),
        derived=tuple(derived_fields),
    )


class DescriptorRegistry:
    """
    Compute-once cache of entity descriptors.

    Lookups after the first are plain dict reads; compilation happens under a
    lock so concurrent extractions share one descriptor per type.
    """

    def __init__(self):
        self._cache: Dict[type, EntityDescriptor] = {}
        self._lock = threading.Lock()

    def descriptors_for(self, entity_type: type) -> EntityDescriptor:
        descriptor = self._cache.get(entity_type)
        if descriptor is None:
            with self._lock:
                descriptor = self._cache.get(entity_type)
                if descriptor is None:
                    descriptor = _compile(entity_type)
                    self._cache[entity_type] = descriptor
                    logger.debug(
                        f"Compiled {descriptor.name}: {len(descriptor.columns)} columns, "
                        f"{len(descriptor.invocations)} invocations"
                    )
        return descriptor

    def __contains__(self, entity_type: object) -> bool:
        return entity_type in self._cache

    def walk(self, roots: Iterable[type]) -> List[EntityDescriptor]:
        """Descriptors of the roots and every type reachable through collections."""
        seen: Dict[type, EntityDescriptor] = {}
        pending = list(roots)
        while pending:
            entity_type = pending.pop(0)
            if entity_type in seen:
                continue
            descriptor = self.descriptors_for(entity_type)
            seen[entity_type] = descriptor
            pending.extend(d.element_type for d in descriptor.invocations)
            pending.extend(d.element_type for d in descriptor.derived)
        return list(seen.values())

    def known_paths(self, roots: Iterable[type]) -> List[str]:
        """Every suppressible path reachable from the given root types."""
        paths: List[str] = []
        for descriptor in self.walk(roots):
            paths.extend(d.path for d in descriptor.columns)
            paths.extend(d.path for d in descriptor.invocations)
            paths.extend(d.path for d in descriptor.derived)
        return paths


registry = DescriptorRegistry()


def descriptors_for(entity_type: type) -> EntityDescriptor:
    """Descriptor lookup against the process-wide registry."""
    return registry.descriptors_for(entity_type)
