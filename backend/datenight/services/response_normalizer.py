"""Turn a model reply into normalized suggestions.

The model is asked for a JSON array but regularly wraps it in code fences,
surrounds it with prose, returns loosely typed fields, or packs several
activities into one entry. Each rule below falls back to a default instead of
raising, and an item that still cannot be read is dropped on its own.
"""
from __future__ import annotations

import json
import logging
import random
import re
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from datenight.observability.metrics import log_metric
from datenight.schemas.enums import CATEGORIES, DEFAULT_CATEGORY
from datenight.schemas.suggestion import NormalizedSuggestion, RawModelSuggestion
from datenight.services.model_gateway import unwrap_envelope

logger = logging.getLogger(__name__)

StartTimePicker = Callable[[str], str]

START_TIME_POOLS: Dict[str, Tuple[str, ...]] = {
    "dining": ("11:30 AM", "12:30 PM", "6:00 PM", "7:00 PM", "7:30 PM"),
    "outdoor": ("9:00 AM", "10:00 AM", "3:00 PM", "4:00 PM"),
    "cultural": ("10:00 AM", "1:00 PM", "2:00 PM", "3:00 PM"),
    "entertainment": ("2:00 PM", "5:00 PM", "7:00 PM", "8:00 PM"),
    "relaxation": ("10:00 AM", "2:00 PM", "4:00 PM"),
    "adventure": ("9:00 AM", "10:00 AM", "2:00 PM"),
}

# Checked in order; the first category with a matching keyword wins.
CATEGORY_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("dining", ("food", "restaurant", "cafe", "dinner", "lunch", "breakfast", "brunch", "cook")),
    ("outdoor", ("park", "beach", "hike", "nature", "garden", "outdoor")),
    ("entertainment", ("movie", "theater", "concert", "show", "music", "performance")),
    ("cultural", ("class", "museum", "art", "gallery", "historic", "culture")),
    ("relaxation", ("spa", "massage", "relax", "wellness")),
)

# Inclusive upper bound of each bucket; anything above the last is "high".
BUDGET_BUCKETS: Tuple[Tuple[int, str], ...] = ((0, "free"), (50, "low"), (100, "medium"))

FENCED_BLOCK_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)
COMPOUND_MARKER_RE = re.compile(r",|&|\bfor\b|\d\s*-\s*\d", re.IGNORECASE)
FOLLOWED_BY_RE = re.compile(r"\s+followed by\s+", re.IGNORECASE)
SENTENCE_END_RE = re.compile(r"[.!?]")
LOCATION_SPLIT_RE = re.compile(r"\s*&\s*")
TIME_SPLIT_RE = re.compile(r"\s*[&,]\s*")
CLOCK_TIME_RE = re.compile(r"\d{1,2}:\d{2}\s*(?:AM|PM)", re.IGNORECASE)
CATEGORY_SPLIT_RE = re.compile(r"[,\s]+")
THOUSANDS_SEPARATOR_RE = re.compile(r"(?<=\d),(?=\d{3}\b)")
INTEGER_RE = re.compile(r"\d+")
NUMBER_RE = re.compile(r"\d*\.?\d+")
LEADING_INTEGER_RE = re.compile(r"\s*(\d+)")
MINUTES_SUFFIX_RE = re.compile(r"\s*min", re.IGNORECASE)
HOURS_RE = re.compile(r"\bh(?:ou)?rs?\b", re.IGNORECASE)


def random_start_time(category: str, rng: random.Random | None = None) -> str:
    """Pick a plausible start time for ``category`` from its pool."""
    pool = START_TIME_POOLS.get(category) or START_TIME_POOLS[DEFAULT_CATEGORY]
    return (rng or random).choice(pool)


def normalize_response(raw_text: Any, *, pick_start_time: Optional[StartTimePicker] = None) -> List[NormalizedSuggestion]:
    """Normalize a raw chat-completion body into suggestions, in model order."""
    content = unwrap_envelope(raw_text)
    if content is None:
        logger.warning("Model envelope unreadable or reported an error; no suggestions")
        return []
    return normalize_content(content, pick_start_time=pick_start_time)


def normalize_content(content: str, *, pick_start_time: Optional[StartTimePicker] = None) -> List[NormalizedSuggestion]:
    """Normalize the model's text answer (already out of its envelope)."""
    picker = pick_start_time or random_start_time
    items = parse_payload(content)

    results: List[NormalizedSuggestion] = []
    dropped = 0
    for index, item in enumerate(items, start=1):
        try:
            results.extend(_normalize_item(item, picker))
        except Exception as exc:
            dropped += 1
            logger.warning("Dropping unreadable suggestion #%d: %s", index, exc)

    if dropped:
        log_metric("suggestions.items.dropped", dropped, {"received": len(items)})
    logger.info("Normalized %d suggestion(s) from %d item(s)", len(results), len(items))
    return results


def strip_code_fences(text: str) -> str:
    match = FENCED_BLOCK_RE.search(text)
    if match:
        return match.group(1)
    return text.strip()


def parse_payload(content: str) -> List[Any]:
    """Return the list of raw items in the model's answer, or an empty list."""
    for candidate in _payload_candidates(content):
        try:
            payload = json.loads(candidate)
        except (RecursionError, ValueError):
            continue
        items = _as_items(payload)
        if items is not None:
            return items
    logger.warning("Model answer did not contain a JSON array; no suggestions")
    return []


def _payload_candidates(content: str) -> Iterator[str]:
    text = strip_code_fences(content or "")
    yield text
    start, end = text.find("["), text.rfind("]")
    if 0 <= start < end:
        yield text[start : end + 1]


def _as_items(payload: Any) -> Optional[List[Any]]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        nested = payload.get("suggestions")
        if isinstance(nested, list):
            return nested
        return [payload]
    return None


def _normalize_item(item: Any, picker: StartTimePicker) -> List[NormalizedSuggestion]:
    raw = RawModelSuggestion.model_validate(item)
    if is_compound_sequence(raw.sequence):
        fragments = split_compound(raw)
        if fragments:
            log_metric("suggestions.compound.split", len(fragments))
            return fragments
        logger.info("Compound entry %r has no 'followed by' connective; keeping it whole", raw.title)
    return [normalize_single(raw, picker)]


def is_compound_sequence(sequence: Optional[str]) -> bool:
    return bool(sequence) and COMPOUND_MARKER_RE.search(sequence) is not None


def split_compound(raw: RawModelSuggestion) -> List[NormalizedSuggestion]:
    """Split an entry describing several activities into one suggestion each.

    Returns an empty list when the description cannot be split.
    """
    activities = [part.strip() for part in FOLLOWED_BY_RE.split(raw.description or "") if part.strip()]
    if len(activities) < 2:
        return []

    locations = LOCATION_SPLIT_RE.split(raw.location) if raw.location else []
    budget = map_cost_to_budget(raw.estimated_cost)
    duration = split_duration(raw.duration, len(activities))

    fragments: List[NormalizedSuggestion] = []
    for index, activity in enumerate(activities):
        location = locations[index].strip() if index < len(locations) else ""
        fragments.append(
            NormalizedSuggestion(
                title=_fragment_title(activity) or raw.title,
                description=activity,
                location=location or raw.location,
                budget=budget,
                category=infer_category(activity),
                recommended_start_time=time_for_position(raw.recommended_start_time, index + 1),
                duration=duration,
                sequence=index + 1,
            )
        )
    return fragments


def normalize_single(raw: RawModelSuggestion, pick_start_time: StartTimePicker) -> NormalizedSuggestion:
    category = pick_category(raw.category)
    return NormalizedSuggestion(
        title=raw.title,
        description=raw.description or "",
        location=raw.location,
        budget=map_cost_to_budget(raw.estimated_cost),
        category=category,
        recommended_start_time=raw.recommended_start_time or pick_start_time(category),
        duration=parse_hours(raw.duration),
        sequence=parse_sequence(raw.sequence),
    )


def pick_category(raw_category: Optional[str]) -> str:
    """First legal category token in the model's text, else the default."""
    for token in CATEGORY_SPLIT_RE.split((raw_category or "").lower()):
        if token in CATEGORIES:
            return token
    return DEFAULT_CATEGORY


def infer_category(text: str) -> str:
    """Guess a category from free text for entries that do not carry one."""
    lowered = (text or "").lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


def map_cost_to_budget(cost: Optional[str]) -> str:
    if not cost or "free" in cost.lower():
        return "free"
    match = INTEGER_RE.search(THOUSANDS_SEPARATOR_RE.sub("", cost))
    amount = int(match.group()) if match else 0
    for ceiling, label in BUDGET_BUCKETS:
        if amount <= ceiling:
            return label
    return "high"


def parse_hours(text: Optional[str]) -> Optional[float]:
    """First number in ``text`` as hours.

    The number is read as minutes only when it carries a minute unit and the
    text names no hours.
    """
    if not text:
        return None
    match = NUMBER_RE.search(text)
    if not match:
        return None
    value = float(match.group())
    if not HOURS_RE.search(text) and MINUTES_SUFFIX_RE.match(text, match.end()):
        value = round(value / 60, 2)
    return value if value > 0 else None


def split_duration(text: Optional[str], count: int) -> Optional[float]:
    total = parse_hours(text)
    if total is None or count < 1:
        return None
    share = round(total / count, 1)
    return share if share > 0 else None


def parse_sequence(text: Optional[str]) -> int:
    if not text or is_compound_sequence(text):
        return 1
    match = LEADING_INTEGER_RE.match(text)
    if not match:
        return 1
    return max(int(match.group(1)), 1)


def time_for_position(time_text: Optional[str], position: int) -> Optional[str]:
    """Pick the start time belonging to the ``position``-th activity (1-based)."""
    if not time_text:
        return None
    if "&" in time_text or "," in time_text:
        times = [part for part in TIME_SPLIT_RE.split(time_text.strip()) if part]
    else:
        times = CLOCK_TIME_RE.findall(time_text)
    if not times:
        return time_text
    return times[position - 1] if position <= len(times) else times[-1]


def _fragment_title(activity: str) -> str:
    return SENTENCE_END_RE.split(activity, maxsplit=1)[0].strip()
