"""Profile context handed to the prompt composer."""
from __future__ import annotations

from datetime import date
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict

from datenight.schemas.enums import (
    EXTENDED_ACTIVITY_COUNT,
    SINGLE_ACTIVITY_COUNT,
    Budget,
    Category,
    DurationWindow,
    TimeWindow,
)


class ProfileContext(BaseModel):
    """Normalized view of a user profile; derived per call and never stored."""

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    location: Optional[str] = None
    time_window: TimeWindow = "any"
    duration_window: DurationWindow = "flexible"
    dietary_preferences: Tuple[str, ...] = ()
    allergies: Tuple[str, ...] = ()
    interests: Tuple[str, ...] = ()
    budget_hint: Optional[Budget] = None
    category_filter: Optional[Category] = None
    preferred_date: Optional[date] = None

    @property
    def target_count(self) -> int:
        """Number of activities to request; only extended outings get a sequence."""
        if self.duration_window == "extended":
            return EXTENDED_ACTIVITY_COUNT
        return SINGLE_ACTIVITY_COUNT
