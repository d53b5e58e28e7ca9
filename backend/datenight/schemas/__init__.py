"""Domain schemas shared by the suggestion pipeline."""
from datenight.schemas.profile import ProfileContext
from datenight.schemas.suggestion import (
    NormalizedSuggestion,
    RawModelSuggestion,
    SuggestionBatch,
)

__all__ = [
    "NormalizedSuggestion",
    "ProfileContext",
    "RawModelSuggestion",
    "SuggestionBatch",
]
