"""Registry for department context descriptions used by use-case generation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from .config_types import DepartmentsConfig

logger = logging.getLogger(__name__)


def _norm(text: str) -> str:
    return text.strip().lower()


@dataclass
class DepartmentsRegistry:
    """In-memory lookup of department name -> domain context."""

    config: DepartmentsConfig

    def __post_init__(self) -> None:
        self._contexts: Dict[str, str] = {
            _norm(name): text for name, text in self.config.departments.items()
        }

    @property
    def names(self) -> List[str]:
        return list(self._contexts)

    @property
    def fallback(self) -> str:
        return self.config.fallback

    def get(self, department: str) -> Optional[str]:
        """Exact (case-insensitive) lookup only."""

        return self._contexts.get(_norm(department))

    def resolve_key(self, department: str) -> Optional[str]:
        """Return the known key for a department: exact match, else containment.

        Containment prefers the longest known key found inside the name so that
        e.g. "customer service desk" resolves before any shorter key it contains.
        """
        key = _norm(department)
        if key in self._contexts:
            return key
        contained = [name for name in self._contexts if name in key]
        if not contained:
            return None
        return max(contained, key=len)

    def context_for(self, department: str) -> str:
        """Domain context for a department, falling back to the generic text."""

        key = self.resolve_key(department)
        if key is None:
            logger.debug("no department context for %r; using fallback", department)
            return self.fallback
        return self._contexts[key]
