"""Fixed vocabularies used across the pipeline."""
from __future__ import annotations

from typing import Literal, Tuple

Category = Literal["dining", "outdoor", "entertainment", "adventure", "relaxation", "cultural"]
Budget = Literal["free", "low", "medium", "high"]
TimeWindow = Literal["any", "morning", "afternoon", "evening"]
DurationWindow = Literal["flexible", "quick", "medium", "extended"]

CATEGORIES: Tuple[str, ...] = ("dining", "outdoor", "entertainment", "adventure", "relaxation", "cultural")
BUDGETS: Tuple[str, ...] = ("free", "low", "medium", "high")
# Index order matches the integer values persisted for profile preferences.
TIME_WINDOWS: Tuple[str, ...] = ("any", "morning", "afternoon", "evening")
DURATION_WINDOWS: Tuple[str, ...] = ("flexible", "quick", "medium", "extended")

DEFAULT_CATEGORY = "entertainment"
EXTENDED_ACTIVITY_COUNT = 3
SINGLE_ACTIVITY_COUNT = 1
