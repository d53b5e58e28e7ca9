"""Persistence collaborator interface for generated suggestions."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from datenight.schemas.suggestion import NormalizedSuggestion


class SuggestionStore:
    """Base interface for whatever stores suggestions durably."""

    def create(self, suggestion: NormalizedSuggestion, *, parent_id: Optional[Any]) -> Any:
        """Store one suggestion and return its durable id."""
        raise NotImplementedError


@dataclass
class StoredSuggestion:
    id: int
    parent_id: Optional[int]
    record: Dict[str, Any]


@dataclass
class InMemorySuggestionStore(SuggestionStore):
    """Keeps suggestions in a list with incrementing ids."""

    rows: List[StoredSuggestion] = field(default_factory=list)

    def create(self, suggestion: NormalizedSuggestion, *, parent_id: Optional[Any]) -> int:
        row_id = len(self.rows) + 1
        self.rows.append(StoredSuggestion(id=row_id, parent_id=parent_id, record=suggestion.model_dump()))
        return row_id

    def children_of(self, parent_id: int) -> List[StoredSuggestion]:
        return [row for row in self.rows if row.parent_id == parent_id]
