"""Derive a ProfileContext from a stored user profile."""
from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

import yaml

from datenight.schemas.enums import BUDGETS, CATEGORIES, DURATION_WINDOWS, TIME_WINDOWS
from datenight.schemas.profile import ProfileContext
from datenight.services.errors import ProfileMissing

logger = logging.getLogger(__name__)

TIME_WINDOW_ALIASES: Dict[str, str] = {
    "anytime": "any",
    "flexible": "any",
}
DURATION_WINDOW_ALIASES: Dict[str, str] = {
    "short": "quick",
    "long": "extended",
}


def build_profile_context(profile: Any) -> ProfileContext:
    """Read a profile mapping or ORM row into a ProfileContext.

    Fields that are missing or malformed fall back to neutral defaults; only a
    missing profile is an error.
    """
    if profile is None:
        raise ProfileMissing("User profile not found; complete the profile before generating suggestions.")

    read = _field_reader(profile)
    return ProfileContext(
        name=_clean_text(read("name")),
        location=_clean_text(read("location")),
        time_window=_coerce_window(read("time_preference"), TIME_WINDOWS, "any", TIME_WINDOW_ALIASES),
        duration_window=_coerce_window(
            read("duration_preference"), DURATION_WINDOWS, "flexible", DURATION_WINDOW_ALIASES
        ),
        dietary_preferences=tuple(_parse_list(read("dietary_preferences"), "dietary_preferences")),
        allergies=tuple(_unique(_parse_list(read("allergies"), "allergies"))),
        interests=tuple(_unique(_parse_list(read("interests"), "interests"))),
        budget_hint=_coerce_choice(read("budget"), BUDGETS),
        category_filter=_coerce_choice(read("category") or read("category_filter"), CATEGORIES),
        preferred_date=_coerce_date(read("preferred_date")),
    )


def _field_reader(profile: Any) -> Callable[[str], Any]:
    if isinstance(profile, Mapping):
        return profile.get
    return lambda name: getattr(profile, name, None)


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_list(value: Any, field: str) -> List[str]:
    """Accept a real list or serialized YAML/JSON text; anything unreadable is empty."""
    if value is None:
        return []
    if isinstance(value, str):
        try:
            value = yaml.safe_load(value)
        except yaml.YAMLError:
            logger.warning("Ignoring unparsable %s value on profile", field)
            return []
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = [value]
    if not isinstance(value, (list, tuple, set, frozenset)):
        logger.warning("Ignoring %s of unexpected type %s", field, type(value).__name__)
        return []

    items: List[str] = []
    for entry in value:
        if entry is None or isinstance(entry, (dict, list)):
            continue
        text = str(entry).strip()
        if text:
            items.append(text)
    return items


def _unique(items: List[str]) -> List[str]:
    seen: set[str] = set()
    result: List[str] = []
    for item in items:
        key = item.lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(item)
    return result


def _coerce_window(value: Any, choices: Sequence[str], default: str, aliases: Dict[str, str]) -> str:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return choices[value] if 0 <= value < len(choices) else default

    text = str(value).strip().lower()
    if text.isdigit():
        return _coerce_window(int(text), choices, default, aliases)
    text = aliases.get(text, text)
    if text in choices:
        return text
    if text:
        logger.info("Unrecognized preference %r; using %s", value, default)
    return default


def _coerce_choice(value: Any, choices: Sequence[str]) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip().lower()
    return text if text in choices else None


def _coerce_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip()).date()
        except ValueError:
            logger.info("Ignoring unparsable preferred_date %r", value)
    return None
