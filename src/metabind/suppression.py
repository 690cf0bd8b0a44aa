"""Path-based suppression of graph slots for one extraction session."""

from __future__ import annotations

from typing import FrozenSet, Iterable, Set


class SuppressionFilter:
    """
    Set of suppressed ``<entity>/<field>`` paths.

    Matching is exact string equality; there are no wildcards or prefixes.
    A suppressed column is left at its default, a suppressed collection is
    never fetched.
    """

    def __init__(self, paths: Iterable[str] = ()):
        self._paths: Set[str] = set()
        self.suppress(*paths)

    def suppress(self, *paths: str) -> SuppressionFilter:
        """Add paths; returns self so calls can be chained."""
        for path in paths:
            if path is None:
                raise ValueError("path is None")
            self._paths.add(path)
        return self

    def is_suppressed(self, path: str) -> bool:
        return path in self._paths

    def __contains__(self, path: object) -> bool:
        return path in self._paths

    def __len__(self) -> int:
        return len(self._paths)

    @property
    def paths(self) -> FrozenSet[str]:
        return frozenset(self._paths)

    def __repr__(self) -> str:
        return f"SuppressionFilter({sorted(self._paths)!r})"
