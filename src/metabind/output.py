"""
Serialization of extracted entity graphs to JSON or YAML documents.

Document layout:
    generated_at: ISO timestamp
    entity_type: class name of the roots (Catalog, Schema, ...)
    count: number of roots
    diagnostics: {status: occurrences}   (when given)
    entities: [ ...nested dicts... ]
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

import yaml

from metabind.binder import Diagnostics
from metabind.models import to_dict

logger = logging.getLogger(__name__)


def build_document(entities: Sequence[Any], diagnostics: Optional[Diagnostics] = None) -> Dict[str, Any]:
    """Wrap a list of root entities in the output envelope."""
    document: Dict[str, Any] = {
        "generated_at": datetime.now().isoformat(),
        "entity_type": type(entities[0]).__name__ if entities else None,
        "count": len(entities),
    }
    if diagnostics is not None:
        document["diagnostics"] = diagnostics.summary()
    document["entities"] = to_dict(list(entities))
    return document


def dump_graph(entities: Sequence[Any], fmt: str = "json", diagnostics: Optional[Diagnostics] = None) -> str:
    """Render entities as a JSON or YAML string."""
    document = build_document(entities, diagnostics)
    fmt = fmt.lower()
    if fmt == "json":
        return json.dumps(document, indent=2, default=str)
    if fmt == "yaml":
        return yaml.safe_dump(document, sort_keys=False, default_flow_style=False)
    raise ValueError(f"Unknown output format: {fmt}")


def write_graph(
    entities: Sequence[Any],
    path: Union[str, Path],
    fmt: str = "json",
    diagnostics: Optional[Diagnostics] = None,
) -> Path:
    """
    Write entities to a file.

    Args:
        entities: Root entities of one extraction
        path: Output file; parent directories are created
        fmt: "json" or "yaml"
        diagnostics: Session diagnostics to summarize in the document

    Returns:
        Path of the written file
    """
    text = dump_graph(entities, fmt, diagnostics)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        f.write(text)

    logger.info(f"Wrote {len(entities)} entities to {path}")
    return path
