"""Date suggestion generation pipeline."""
from __future__ import annotations

import logging
from typing import Any, List, Optional

from datenight.core.context import generation_scope
from datenight.observability.metrics import log_metric
from datenight.observability.tracing import trace
from datenight.schemas.profile import ProfileContext
from datenight.schemas.suggestion import SuggestionBatch
from datenight.services.errors import EmptyBatch, ProfileMissing
from datenight.services.model_gateway import ModelGateway
from datenight.services.profile_context import build_profile_context
from datenight.services.prompt_composer import compose_prompt
from datenight.services.response_normalizer import StartTimePicker, normalize_response
from datenight.services.suggestion_sequencer import sequence_batch
from datenight.services.suggestion_store import SuggestionStore

logger = logging.getLogger(__name__)


def generate(
    profile_context: Optional[ProfileContext],
    category_filter: Optional[str] = None,
    *,
    gateway: Optional[ModelGateway] = None,
    pick_start_time: Optional[StartTimePicker] = None,
) -> SuggestionBatch:
    """Run one generation: compose, call the model once, normalize, sequence.

    Raises GenerationUnavailable when the model cannot be reached. A reply with
    nothing usable in it comes back as an empty batch.
    """
    if profile_context is None:
        raise ProfileMissing("User profile not found; complete the profile before generating suggestions.")

    with generation_scope() as generation_id:
        prompt = compose_prompt(profile_context, category_filter)
        metadata = {
            "target_count": prompt.target_count,
            "duration_window": profile_context.duration_window,
            "time_window": profile_context.time_window,
            "category_filter": category_filter or profile_context.category_filter or "any",
        }
        logger.info("Generating %d suggestion(s) (generation=%s)", prompt.target_count, generation_id)
        logger.debug("Prompt:\n%s", prompt.text)

        with trace("suggestions.generate", metadata=metadata) as generation_trace:
            body = (gateway or ModelGateway()).complete(prompt.text)
            batch = sequence_batch(normalize_response(body, pick_start_time=pick_start_time))
            if generation_trace:
                generation_trace.update(output={"count": len(batch), "titles": [item.title for item in batch]})

        log_metric("suggestions.batch.size", len(batch), {"target_count": prompt.target_count})
        if batch.is_empty:
            logger.warning("Model replied but no usable suggestions survived normalization")
        else:
            logger.info("Generated %d suggestion(s)", len(batch))
        return batch


def generate_for_profile(profile: Any, category_filter: Optional[str] = None, **kwargs: Any) -> SuggestionBatch:
    """Build the profile context from a stored profile, then generate."""
    return generate(build_profile_context(profile), category_filter, **kwargs)


def persist_batch(batch: SuggestionBatch, store: SuggestionStore) -> List[Any]:
    """Store the root first, then each child pointing at the root's new id."""
    if batch.is_empty:
        raise EmptyBatch("No usable suggestions were generated")

    root_id: Any = None
    stored_ids: List[Any] = []
    for suggestion in batch:
        if suggestion.is_root:
            root_id = store.create(suggestion, parent_id=None)
            stored_ids.append(root_id)
        else:
            stored_ids.append(store.create(suggestion, parent_id=root_id))
    logger.info("Persisted %d suggestion(s) under root %s", len(stored_ids), root_id)
    return stored_ids
