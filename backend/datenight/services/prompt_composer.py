"""Render a ProfileContext into the suggestion prompt."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import List, Optional

from datenight.schemas.enums import CATEGORIES
from datenight.schemas.profile import ProfileContext

logger = logging.getLogger(__name__)

TIME_WINDOW_LABELS = {
    "morning": "Morning (6am-11am)",
    "afternoon": "Afternoon (11am-5pm)",
    "evening": "Evening (5pm-11pm)",
}

DURATION_WINDOW_LABELS = {
    "quick": "Quick (1-2 hours)",
    "medium": "Medium (2-4 hours)",
    "extended": "Extended (4+ hours)",
}

RESPONSE_FIELDS = (
    "title",
    "description",
    "estimated_cost",
    "location",
    "category",
    "recommended_start_time",
    "duration",
    "sequence",
)

RESPONSE_EXAMPLE = {
    "title": "Date idea title",
    "description": "Brief description",
    "estimated_cost": "Estimated cost in USD, e.g. $40 or Free",
    "location": "Specific venue name and neighborhood",
    "category": "One of: " + ", ".join(CATEGORIES),
    "recommended_start_time": "Start time such as 7:00 PM",
    "duration": "Estimated duration in hours, e.g. 2",
    "sequence": "Position of this activity in the outing (1, 2, 3)",
}


@dataclass(frozen=True)
class ComposedPrompt:
    text: str
    target_count: int


def compose_prompt(context: ProfileContext, category_filter: Optional[str] = None) -> ComposedPrompt:
    """Build the prompt text and the number of activities it asks for."""
    target_count = context.target_count
    category = _resolve_category_filter(category_filter, context)
    noun = "date idea" if target_count == 1 else "date ideas"

    parts: List[str] = [
        f"Based on the following user profile, suggest {target_count} unique and creative {noun}.",
        f"Name: {context.name or 'Not provided'}",
        f"Location: {context.location or 'Not provided'}",
        _time_line(context),
        f"Duration: {DURATION_WINDOW_LABELS.get(context.duration_window, 'Flexible')}",
        _category_line(category),
    ]
    if context.dietary_preferences:
        parts.append(f"Dietary Preferences: {', '.join(context.dietary_preferences)}")
    if context.allergies:
        parts.append(f"Allergies: {', '.join(context.allergies)}")
    if context.interests:
        parts.append(f"Interests: {', '.join(context.interests)}")
    if context.budget_hint:
        parts.append(f"Budget: {context.budget_hint}")
    if context.preferred_date:
        parts.append(f"Preferred Date: {context.preferred_date.strftime('%A, %B %d, %Y')}")

    parts.append("")
    parts.append(
        "Make each suggestion different and creative. Consider local events, seasonal activities, "
        "and unique experiences, and only suggest venues that are currently operating."
    )
    parts.append("")
    parts.append(_output_block(target_count))

    special = _special_instructions(context)
    if special:
        parts.append("")
        parts.extend(special)

    text = "\n".join(parts)
    logger.debug("Composed prompt (%d activities, %d chars)", target_count, len(text))
    return ComposedPrompt(text=text, target_count=target_count)


def _resolve_category_filter(category_filter: Optional[str], context: ProfileContext) -> Optional[str]:
    if category_filter is None:
        return context.category_filter
    value = str(category_filter).strip().lower()
    if value in CATEGORIES:
        return value
    if value:
        logger.warning("Ignoring unknown category filter %r", category_filter)
    return context.category_filter


def _time_line(context: ProfileContext) -> str:
    label = TIME_WINDOW_LABELS.get(context.time_window)
    if not label:
        return "Time Preference: Flexible"
    return f"Time Preference: {label}. Please suggest activities during these hours."


def _category_line(category: Optional[str]) -> str:
    if category:
        return f"Category Preference: Restrict every suggestion to the {category} category."
    return (
        "Category Preference: Vary the category across the suggestions. "
        "Avoid suggesting the same activity type repeatedly."
    )


def _output_block(target_count: int) -> str:
    example = json.dumps([RESPONSE_EXAMPLE], indent=2)
    legal = ", ".join(CATEGORIES)
    return (
        "### OUTPUT REQUIREMENT\n"
        f"Respond with only a JSON array of {target_count} object(s). Each object must have exactly these fields: "
        f"{', '.join(RESPONSE_FIELDS)}.\n"
        f"{example}\n"
        f"The category MUST be exactly one of: {legal}. Any other category value is invalid and will be rejected."
    )


def _special_instructions(context: ProfileContext) -> List[str]:
    instructions: List[str] = []
    if context.duration_window == "extended":
        instructions.append(
            "Create a connected sequence of activities that flow well together, numbered with the sequence field."
        )
        instructions.append(
            "Keep locations close to each other and name specific venues or events rather than general areas."
        )
        instructions.append("Include transition time between activities when choosing start times.")
    if context.preferred_date:
        instructions.append("Consider business hours on the preferred date when recommending start times.")
    return instructions
