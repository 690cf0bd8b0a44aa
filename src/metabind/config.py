"""
Extraction settings loaded from YAML.

Example file:

    suppress:
      - table/index_info
      - table/column_privileges
    nonempty: true
    catalog: main
    schema_pattern: null
    output_format: yaml
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Union

import yaml

from metabind.suppression import SuppressionFilter

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("json", "yaml")


@dataclass
class ExtractionConfig:
    """Configuration for an extraction run."""
    suppress: List[str] = field(default_factory=list)
    nonempty: bool = True
    catalog: Optional[str] = None
    schema_pattern: Optional[str] = None
    output_format: str = "json"

    def __post_init__(self):
        if isinstance(self.suppress, str):
            self.suppress = [self.suppress]
        self.suppress = list(self.suppress or [])
        self.output_format = self.output_format.lower()
        if self.output_format not in OUTPUT_FORMATS:
            raise ValueError(f"output_format must be one of {OUTPUT_FORMATS}, got {self.output_format!r}")

    @property
    def scoped(self) -> bool:
        """True when extraction starts from schemas rather than catalogs."""
        return self.catalog is not None or self.schema_pattern is not None

    def suppression(self) -> SuppressionFilter:
        return SuppressionFilter(self.suppress)

    def unknown_paths(self, known: Iterable[str]) -> List[str]:
        """Suppressed paths that name no directive; they have no effect."""
        known = set(known)
        return [p for p in self.suppress if p not in known]

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> ExtractionConfig:
        """Load a config file; a missing file yields the defaults."""
        path = Path(path)
        if not path.exists():
            logger.warning(f"Config file not found: {path}")
            return cls()

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping, got {type(data).__name__}")

        names = {f.name for f in dataclasses.fields(cls)}
        for key in data:
            if key not in names:
                logger.warning(f"Ignoring unknown config key {key!r} in {path}")

        config = cls(**{k: v for k, v in data.items() if k in names})
        logger.info(f"Loaded config from {path}: {len(config.suppress)} suppressed paths")
        return config
