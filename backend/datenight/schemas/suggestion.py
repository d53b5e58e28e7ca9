"""Suggestion schemas: untrusted model items, normalized records, and batches."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple
from urllib.parse import quote_plus

from pydantic import BaseModel, ConfigDict, Field, field_validator

from datenight.schemas.enums import Budget, Category

GOOGLE_MAPS_SEARCH_URL = "https://www.google.com/maps/search/?api=1&query="


class RawModelSuggestion(BaseModel):
    """One item exactly as the model returned it; every field is optional text."""

    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    description: Optional[str] = None
    estimated_cost: Optional[str] = None
    location: Optional[str] = None
    category: Optional[str] = None
    recommended_start_time: Optional[str] = None
    duration: Optional[str] = None
    sequence: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, (list, tuple)):
            return ", ".join(str(part) for part in value)
        text = str(value).strip()
        return text or None


class NormalizedSuggestion(BaseModel):
    """A suggestion whose category and budget are guaranteed to be legal values."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., min_length=1)
    description: str = ""
    location: Optional[str] = None
    budget: Budget
    category: Category
    recommended_start_time: Optional[str] = None
    duration: Optional[float] = Field(default=None, gt=0)
    sequence: int = Field(default=1, ge=1)
    parent_sequence: Optional[int] = Field(default=None, ge=1)

    @field_validator("title", mode="before")
    @classmethod
    def _strip_title(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @property
    def is_root(self) -> bool:
        return self.parent_sequence is None

    @property
    def maps_url(self) -> Optional[str]:
        if not self.location:
            return None
        return GOOGLE_MAPS_SEARCH_URL + quote_plus(self.location)


@dataclass(frozen=True)
class SuggestionBatch:
    """Ordered suggestions from one generation call: a root plus its direct children."""

    items: Tuple[NormalizedSuggestion, ...] = ()

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[NormalizedSuggestion]:
        return iter(self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def root(self) -> Optional[NormalizedSuggestion]:
        return self.items[0] if self.items else None

    @property
    def children(self) -> Tuple[NormalizedSuggestion, ...]:
        return self.items[1:]

    @property
    def total_duration(self) -> float:
        """Combined hours of the whole outing; missing durations count as zero."""
        return float(sum(item.duration or 0.0 for item in self.items))

    def to_records(self) -> List[Dict[str, Any]]:
        """Plain dicts for the persistence layer, in sequence order."""
        return [item.model_dump() for item in self.items]
