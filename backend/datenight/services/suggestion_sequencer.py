"""Assign final positions and root linkage to a normalized batch."""
from __future__ import annotations

import logging
from typing import Iterable, List

from datenight.schemas.suggestion import NormalizedSuggestion, SuggestionBatch

logger = logging.getLogger(__name__)

ROOT_SEQUENCE = 1


def sequence_batch(items: Iterable[NormalizedSuggestion]) -> SuggestionBatch:
    """Number suggestions 1..N in the order given and link every child to the root.

    Sequence values already on the items are ignored; the order of ``items``
    is the order of the outing.
    """
    ordered: List[NormalizedSuggestion] = []
    for position, item in enumerate(items, start=1):
        parent = None if position == ROOT_SEQUENCE else ROOT_SEQUENCE
        if item.sequence != position:
            logger.debug("Resequencing %r from %d to %d", item.title, item.sequence, position)
        ordered.append(item.model_copy(update={"sequence": position, "parent_sequence": parent}))
    return SuggestionBatch(items=tuple(ordered))
