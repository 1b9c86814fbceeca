"""Stage 4: final gate guaranteeing the result shape handed to callers.

Whatever the normalizer produced, the values returned from here always have
every field populated with a string and 1..5 use-case items. Nothing in this
module raises for malformed model output.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Dict, List, Optional

from .normalizer import (
    FALLBACK_IDEA_TITLE,
    GENERIC_BENEFITS,
    GENERIC_IMPLEMENTATION,
    UNKNOWN_MATCH,
    UNKNOWN_RATING,
)
from .results import (
    MAX_USECASES,
    EvaluationResult,
    UseCaseFormat,
    UseCaseIdea,
    UseCaseItem,
    UseCasePrompt,
    UseCaseResult,
)

logger = logging.getLogger(__name__)

DEFAULT_REASON = "No explanation was provided."
DEFAULT_PROMPT = "Create an AI solution for your department"
DEFAULT_DESCRIPTION = "No description provided."

EVALUATION_DEFAULTS = {
    "match": UNKNOWN_MATCH,
    "reason": DEFAULT_REASON,
    "rating": UNKNOWN_RATING,
}
IDEA_DEFAULTS = {
    "title": FALLBACK_IDEA_TITLE,
    "description": DEFAULT_DESCRIPTION,
    "benefits": GENERIC_BENEFITS,
    "implementation": GENERIC_IMPLEMENTATION,
}


def _as_text(value: Any) -> Optional[str]:
    """String form of a scalar field; ``None`` for absent/blank/structured values."""
    if value is None or isinstance(value, (dict, list)):
        return None
    text = value if isinstance(value, str) else str(value)
    return text if text.strip() else None


def _fill(candidate: Mapping, defaults: Dict[str, str]) -> Dict[str, str]:
    filled = {}
    for key, default in defaults.items():
        text = _as_text(candidate.get(key))
        filled[key] = text if text is not None else default
    return filled


def enforce_evaluation(candidate: Any) -> EvaluationResult:
    """Coerce a candidate into ``EvaluationResult``, substituting defaults."""

    if not isinstance(candidate, Mapping):
        logger.warning("evaluation candidate is not a mapping; using defaults")
        candidate = {}
    missing = [key for key in EVALUATION_DEFAULTS if _as_text(candidate.get(key)) is None]
    if missing:
        logger.info("evaluation result missing fields=%s; defaults applied", missing)
    return EvaluationResult(**_fill(candidate, EVALUATION_DEFAULTS))


def default_usecase(usecase_format: UseCaseFormat) -> UseCaseItem:
    if usecase_format == UseCaseFormat.LONG:
        return UseCaseIdea(**IDEA_DEFAULTS)
    return UseCasePrompt(prompt=DEFAULT_PROMPT)


def _enforce_item(item: Any, usecase_format: UseCaseFormat) -> UseCaseItem:
    if usecase_format == UseCaseFormat.LONG:
        if isinstance(item, str):
            item = {"title": item}
        if not isinstance(item, Mapping):
            item = {}
        return UseCaseIdea(**_fill(item, IDEA_DEFAULTS))
    if isinstance(item, str):
        item = {"prompt": item}
    if not isinstance(item, Mapping):
        item = {}
    return UseCasePrompt(**_fill(item, {"prompt": DEFAULT_PROMPT}))


def enforce_usecases(candidate: Any, usecase_format: UseCaseFormat) -> UseCaseResult:
    """Coerce a candidate into ``UseCaseResult`` with 1..5 items of one form."""

    if not isinstance(candidate, Mapping):
        logger.warning("use-case candidate is not a mapping; replacing with default")
        return UseCaseResult(usecases=[default_usecase(usecase_format)])

    raw_items = candidate.get("usecases")
    if not isinstance(raw_items, list):
        logger.warning("use-case candidate has no `usecases` list; replacing with default")
        return UseCaseResult(usecases=[default_usecase(usecase_format)])

    if len(raw_items) > MAX_USECASES:
        logger.info("clamping %s use cases to %s", len(raw_items), MAX_USECASES)
    items: List[UseCaseItem] = [
        _enforce_item(item, usecase_format) for item in raw_items[:MAX_USECASES]
    ]
    if not items:
        items = [default_usecase(usecase_format)]
    return UseCaseResult(usecases=items)

