"""Stage 3: turn free-text model answers into candidate structured results.

Stages, each attempted only when the previous one produced nothing:

1. strict JSON parse after stripping code fences and surrounding prose;
2. pattern extraction through an ordered list of matcher functions
   (first matcher returning anything wins);
3. a single placeholder carrying a bounded slice of the raw text.

The outcome is tagged (``ParsedStrict`` / ``ExtractedPartial`` / ``Fallback``)
so callers can tell degraded results apart. Everything here is deterministic
and never raises for malformed model output.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from .results import MAX_USECASES, UseCaseFormat

logger = logging.getLogger(__name__)

RAW_TEXT_LIMIT = 500

UNPARSED_EVALUATION = "The AI response could not be parsed properly. Raw response: "
UNPARSED_USECASES = "The AI response could not be parsed into use cases. Raw response: "
FALLBACK_IDEA_TITLE = "AI Use Case"
GENERIC_BENEFITS = "Improved efficiency and reduced manual effort."
GENERIC_IMPLEMENTATION = "Start with a small pilot, measure results, then scale."
UNKNOWN_MATCH = "Unable to determine"
UNKNOWN_RATING = "N/A"

FENCE_RE = re.compile(r"```(?:json|JSON)?\n?")
LEADING_PROSE_RE = re.compile(r"^[^{]*\{")
TRAILING_PROSE_RE = re.compile(r"\}[^}]*$")

VERDICT_RE = re.compile(r"\bmatch(?:es)?\b\W{0,10}?(yes|no|partial(?:ly)?)\b", re.IGNORECASE)
RATING_RE = re.compile(r"\b(?:rating|score)\b\W{0,10}?(\d+(?:\.\d+)?)", re.IGNORECASE)
REASON_RE = re.compile(
    r"\b(?:reason|explanation|analysis)\b[\"']?[ \t]*[:=\-][ \t]*"
    r"(?:\"((?:[^\"\\\n]|\\.)*)\"?|([^\n]+))",
    re.IGNORECASE,
)
JSON_LABEL_RE = re.compile(
    r"\"?\b(?:match|reason|rating|score|explanation|analysis)\b\"?\s*:\s*", re.IGNORECASE
)
JSON_PUNCT_RE = re.compile(r"[{}\[\]\"]")

_LIST_MARKER = r"(?:(?:\d+[.)]|[-*•])[ \t]*)"
ACTION_VERB_RE = re.compile(
    r"(?:^[ \t]*" + _LIST_MARKER + r"?[\"'*]*|(?<=\"))"
    r"((?:create|build|develop|implement|design)\b[^.\n\"]*)",
    re.IGNORECASE | re.MULTILINE,
)
NUMBERED_LINE_RE = re.compile(r"^[ \t]*\d+[.)][ \t]*(\S[^\n]*)", re.MULTILINE)
BULLET_LINE_RE = re.compile(r"^[ \t]*[-*•][ \t]+(\S[^\n]*)", re.MULTILINE)

_LABEL_PREFIX = (
    r"^[ \t]*(?:#{1,6}[ \t]*)?(?:[-*•][ \t]+)?(?:\*\*)?[ \t]*"
    r"(?:use[ \t-]?case|solution|idea)[ \t]*"
)
LABELLED_HEADER_RE = re.compile(
    _LABEL_PREFIX + r"(?:#?\d+[ \t]*[:.)\-–]?|[:.)\-–])(.*)$", re.IGNORECASE
)
NUMBERED_LABEL_HEADER_RE = re.compile(
    _LABEL_PREFIX + r"#?\d+[ \t]*[:.)\-–]?(.*)$", re.IGNORECASE
)
NUMBERED_HEADER_RE = re.compile(r"^[ \t]*(?:#{1,6}[ \t]*)?(?:\*\*)?\d+[.)][ \t]*(\S.*)$")
BULLET_HEADER_RE = re.compile(r"^[ \t]*[-*•][ \t]+(\S.*)$")
BOLD_TITLE_RE = re.compile(r"^\*\*(.+?)\*\*[ \t]*[:\-–]?[ \t]*(.*)$")
DESCRIPTION_LABEL_RE = re.compile(
    r"^(?:\*\*)?description(?:\*\*)?\s*:\s*(?:\*\*)?\s*", re.IGNORECASE
)

Item = Dict[str, str]
Matcher = Callable[[str], Optional[List[Item]]]


@dataclass(frozen=True)
class ParsedStrict:
    """Model output parsed as JSON; used verbatim."""

    value: Dict[str, Any]


@dataclass(frozen=True)
class ExtractedPartial:
    """Fields recovered heuristically from free text."""

    value: Dict[str, Any]
    confidence: str = "low"


@dataclass(frozen=True)
class Fallback:
    """Nothing recognisable; a placeholder wrapping the raw text."""

    value: Dict[str, Any]


NormalizedOutput = Union[ParsedStrict, ExtractedPartial, Fallback]


def clean_model_text(raw: str) -> str:
    """Drop code fences and any prose before the first ``{`` / after the last ``}``."""

    text = FENCE_RE.sub("", raw)
    text = text.replace("```", "")
    text = LEADING_PROSE_RE.sub("{", text, count=1)
    text = TRAILING_PROSE_RE.sub("}", text, count=1)
    return text.strip()


def parse_strict(raw: str) -> Optional[Dict[str, Any]]:
    """Strict JSON parse of cleaned text; only JSON objects count as success."""

    try:
        value = json.loads(clean_model_text(raw))
    except ValueError:
        return None
    if not isinstance(value, dict):
        return None
    return value


def first_success(matchers: Sequence[Matcher], text: str) -> Tuple[Optional[str], List[Item]]:
    """Run matchers in order; return the first non-empty result and its matcher name."""

    for matcher in matchers:
        found = matcher(text)
        if found:
            return matcher.__name__, found
    return None, []


def truncate_raw(raw: str, limit: int = RAW_TEXT_LIMIT) -> str:
    text = raw.strip()
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def _clean_item_text(value: str) -> str:
    value = " ".join(value.replace("**", "").split()).rstrip(",").strip()
    return value.strip("*\"'` ").strip()


# --- evaluation -----------------------------------------------------------


def _strip_json_fragments(text: str) -> str:
    text = FENCE_RE.sub("", text).replace("```", "")
    text = JSON_LABEL_RE.sub("", text)
    text = JSON_PUNCT_RE.sub(" ", text)
    return " ".join(text.split()).strip(" ,")


def extract_verdict(text: str) -> Optional[str]:
    found = VERDICT_RE.search(text)
    return found.group(1) if found else None


def extract_rating(text: str) -> Optional[str]:
    found = RATING_RE.search(text)
    return f"{found.group(1)}/10" if found else None


def extract_reason(text: str) -> Optional[str]:
    found = REASON_RE.search(text)
    if not found:
        return None
    quoted, bare = found.groups()
    return _clean_item_text(quoted if quoted is not None else bare) or None


def normalize_evaluation(raw: str) -> NormalizedOutput:
    """Best-effort ``{match, reason, rating}`` candidate from model text."""

    parsed = parse_strict(raw)
    if parsed is not None:
        logger.info("evaluation output parsed as JSON")
        return ParsedStrict(parsed)

    match = extract_verdict(raw)
    rating = extract_rating(raw)
    reason = extract_reason(raw)
    if match is None and rating is None and reason is None:
        logger.warning("evaluation output unrecognised; using fallback (len=%s)", len(raw))
        return Fallback(
            {
                "match": UNKNOWN_MATCH,
                "reason": UNPARSED_EVALUATION + truncate_raw(raw),
                "rating": UNKNOWN_RATING,
            }
        )

    candidate: Dict[str, Any] = {}
    if match is not None:
        candidate["match"] = match
    if rating is not None:
        candidate["rating"] = rating
    candidate["reason"] = reason if reason is not None else _strip_json_fragments(raw)
    logger.warning(
        "evaluation output extracted heuristically match=%s rating=%s", match, rating
    )
    return ExtractedPartial(candidate)


# --- use cases (short form) ------------------------------------------------


def _collect(pattern: re.Pattern, text: str) -> List[Item]:
    items: List[Item] = []
    for found in pattern.finditer(text):
        prompt = _clean_item_text(found.group(1))
        if prompt:
            items.append({"prompt": prompt})
    return items[:MAX_USECASES]


def action_verb_lines(text: str) -> List[Item]:
    return _collect(ACTION_VERB_RE, text)


def numbered_lines(text: str) -> List[Item]:
    return _collect(NUMBERED_LINE_RE, text)


def bulleted_lines(text: str) -> List[Item]:
    return _collect(BULLET_LINE_RE, text)


SHORT_FORM_MATCHERS: Tuple[Matcher, ...] = (action_verb_lines, numbered_lines, bulleted_lines)


# --- use cases (long form) -------------------------------------------------


def _split_title(text: str) -> Tuple[str, str]:
    """``**Title**: rest`` or ``Title: rest`` -> (title, rest)."""
    text = text.strip()
    bold = BOLD_TITLE_RE.match(text)
    if bold:
        return _clean_item_text(bold.group(1)).rstrip(":").strip(), bold.group(2).strip()
    head, sep, tail = text.partition(": ")
    if sep and _clean_item_text(head):
        return _clean_item_text(head), tail.strip()
    return _clean_item_text(text).rstrip(":").strip(), ""


def _extract_blocks(
    text: str, header: re.Pattern, next_header: Optional[re.Pattern] = None
) -> List[Item]:
    """Split text into (title, body) blocks starting at lines matching ``header``.

    Once a block is open, only ``next_header`` (default ``header``) starts
    another one. A header with no title text takes the next non-empty line as
    its title.
    """
    next_header = next_header or header
    blocks: List[List[Any]] = []
    current: Optional[List[Any]] = None
    for line in text.splitlines():
        found = (header if current is None else next_header).match(line)
        if found:
            title, rest = _split_title(found.group(1))
            current = [title, [rest] if rest else []]
            blocks.append(current)
            continue
        stripped = line.strip()
        if current is None or not stripped:
            continue
        if not current[0]:
            title, rest = _split_title(stripped)
            current[0] = title
            if rest:
                current[1].append(rest)
            continue
        current[1].append(DESCRIPTION_LABEL_RE.sub("", stripped))

    items: List[Item] = []
    for title, body in blocks:
        if not title:
            continue
        item = {
            "title": title,
            "benefits": GENERIC_BENEFITS,
            "implementation": GENERIC_IMPLEMENTATION,
        }
        description = " ".join(part for part in body if part).strip()
        if description:
            item["description"] = description
        items.append(item)
    return items[:MAX_USECASES]


def labelled_blocks(text: str) -> List[Item]:
    return _extract_blocks(text, LABELLED_HEADER_RE, NUMBERED_LABEL_HEADER_RE)


def numbered_blocks(text: str) -> List[Item]:
    return _extract_blocks(text, NUMBERED_HEADER_RE)


def bulleted_blocks(text: str) -> List[Item]:
    return _extract_blocks(text, BULLET_HEADER_RE)


LONG_FORM_MATCHERS: Tuple[Matcher, ...] = (labelled_blocks, numbered_blocks, bulleted_blocks)


def usecase_placeholder(raw: str, usecase_format: UseCaseFormat) -> Item:
    message = UNPARSED_USECASES + truncate_raw(raw)
    if usecase_format == UseCaseFormat.LONG:
        return {
            "title": FALLBACK_IDEA_TITLE,
            "description": message,
            "benefits": GENERIC_BENEFITS,
            "implementation": GENERIC_IMPLEMENTATION,
        }
    return {"prompt": message}


def normalize_usecases(raw: str, usecase_format: UseCaseFormat) -> NormalizedOutput:
    """Best-effort ``{"usecases": [...]}`` candidate from model text."""

    parsed = parse_strict(raw)
    if parsed is not None:
        logger.info("use-case output parsed as JSON")
        return ParsedStrict(parsed)

    matchers = LONG_FORM_MATCHERS if usecase_format == UseCaseFormat.LONG else SHORT_FORM_MATCHERS
    matcher_name, items = first_success(matchers, raw)
    if items:
        logger.warning(
            "use-case output extracted via %s items=%s format=%s",
            matcher_name,
            len(items),
            usecase_format.value,
        )
        return ExtractedPartial({"usecases": items})

    logger.warning("use-case output unrecognised; using fallback (len=%s)", len(raw))
    return Fallback({"usecases": [usecase_placeholder(raw, usecase_format)]})
