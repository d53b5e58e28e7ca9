"""Failure taxonomy for suggestion generation."""
from __future__ import annotations


class SuggestionError(Exception):
    """Base class for suggestion pipeline failures."""


class ProfileMissing(SuggestionError):
    """No profile was supplied, so generation must not be attempted."""


class GenerationUnavailable(SuggestionError):
    """The model endpoint could not produce a usable response envelope."""

    def __init__(self, reason: str, *, status_code: int | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.status_code = status_code


class EmptyBatch(SuggestionError):
    """The model answered but no suggestion survived normalization."""
