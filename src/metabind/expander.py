"""
Graph expander: fills collection fields through nested provider calls.

Every invocation directive of a freshly bound instance becomes one (or more)
provider calls whose arguments are templated from fields already bound on
that instance. Each returned row goes through the same bind-then-expand
cycle, depth first.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence

from metabind.binder import BindStatus, ExtractionSession, RowBinder
from metabind.descriptors import NULL_TOKEN, REFERENCE_PREFIX, InvocationDirective
from metabind.errors import ConnectionClosedError, MetabindError
from metabind.providers.base import (
    OPERATION_PARAMETERS,
    Operation,
    RowCursor,
    convert_literal,
    invoke,
)

logger = logging.getLogger(__name__)


def resolve_template(instance: Any, template: str, param) -> Any:
    """Resolve one argument template against an instance."""
    if template == NULL_TOKEN:
        return None
    if template.startswith(REFERENCE_PREFIX):
        return getattr(instance, template[len(REFERENCE_PREFIX):])
    return convert_literal(template, param)


def resolve_arguments(instance: Any, operation: Operation, templates: Sequence[str]) -> List[Any]:
    """Resolve a full template list, e.g. (":table_cat", ":table_schem", "null")."""
    params = OPERATION_PARAMETERS[operation]
    return [resolve_template(instance, t, p) for t, p in zip(templates, params)]


class GraphExpander:
    """Executes invocation directives recursively against one provider."""

    def __init__(self, binder: Optional[RowBinder] = None):
        self.binder = binder or RowBinder()
        self.registry = self.binder.registry

    def expand(self, instance: Any, entity_type: type, session: ExtractionSession, provider: Any) -> Any:
        """Populate every collection field of a bound instance; returns it."""
        descriptor = self.registry.descriptors_for(entity_type)
        for directive in descriptor.invocations:
            self.expand_directive(instance, directive, session, provider)
        return instance

    def expand_directive(
        self,
        instance: Any,
        directive: InvocationDirective,
        session: ExtractionSession,
        provider: Any,
    ) -> None:
        path = directive.path
        if session.is_suppressed(path):
            logger.debug(f"Skipping suppressed {path}")
            return

        operation = directive.operation
        if not isinstance(operation, Operation):
            if session.diagnostics.record(path, BindStatus.UNKNOWN_OPERATION, str(operation)):
                logger.error(f"Unknown operation {operation!r} for {path}")
            return

        collection = getattr(instance, directive.field_name)
        for templates in directive.argument_templates:
            arguments = resolve_arguments(instance, operation, templates)
            collection.extend(
                self.fetch(provider, operation, arguments, directive.element_type, session, path)
            )

    def fetch(
        self,
        provider: Any,
        operation: Operation,
        arguments: Sequence[Any],
        element_type: type,
        session: ExtractionSession,
        path: str,
    ) -> List[Any]:
        """
        Call one operation and bind its rows, tolerating provider failures.

        Provider errors and wrong result shapes are logged and yield no rows.
        Any MetabindError propagates.
        """
        try:
            result = invoke(provider, operation, arguments)
        except ConnectionClosedError as e:
            if e.path is None:
                e.path = path
            raise
        except MetabindError:
            raise
        except NotImplementedError as e:
            if session.diagnostics.record(path, BindStatus.UNSUPPORTED_OPERATION, operation.value):
                logger.error(f"Unsupported operation for {path}: {e}")
            return []
        except Exception as e:
            session.diagnostics.record(path, BindStatus.PROVIDER_FAILED, f"{operation.value}: {e}")
            logger.error(f"Failed to invoke {operation.value}{tuple(arguments)!r} for {path}: {e}")
            return []

        if not isinstance(result, RowCursor):
            session.diagnostics.record(path, BindStatus.PROVIDER_FAILED, f"{operation.value}: wrong result")
            logger.error(f"Wrong result from {operation.value} for {path}: {type(result).__name__}")
            return []

        with result:
            try:
                return self.bind_all(result, element_type, session, provider)
            except MetabindError:
                raise
            except Exception as e:
                session.diagnostics.record(path, BindStatus.PROVIDER_FAILED, f"{operation.value}: {e}")
                logger.error(f"Failed reading {operation.value} rows for {path}: {e}")
                return []

    def bind_all(
        self,
        cursor: RowCursor,
        element_type: type,
        session: ExtractionSession,
        provider: Any,
    ) -> List[Any]:
        """Bind and expand every row of a cursor. The caller closes the cursor."""
        instances = []
        for row in cursor:
            instance = self.binder.bind(row, element_type, session)
            self.expand(instance, element_type, session, provider)
            instances.append(instance)
        return instances
