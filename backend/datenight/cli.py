"""Command-line entry point: generate suggestions for a profile stored as JSON."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from datenight.core.config import settings
from datenight.core.logging import configure_logging
from datenight.services.date_suggestions import generate_for_profile, persist_batch
from datenight.services.errors import EmptyBatch, GenerationUnavailable, ProfileMissing
from datenight.services.model_gateway import ModelGateway
from datenight.services.suggestion_store import InMemorySuggestionStore

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNAVAILABLE = 1
EXIT_NO_SUGGESTIONS = 2


def main(argv: Optional[List[str]] = None, gateway: Optional[ModelGateway] = None) -> int:
    parser = argparse.ArgumentParser(prog="datenight-generate", description=__doc__)
    parser.add_argument("profile", type=Path, help="Path to a JSON file holding the user profile")
    parser.add_argument("--category", default=None, help="Restrict suggestions to one category")
    args = parser.parse_args(argv)

    configure_logging(log_level=settings.log_level)

    try:
        profile = json.loads(args.profile.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.error("Unable to read profile %s: %s", args.profile, exc)
        return EXIT_NO_SUGGESTIONS

    store = InMemorySuggestionStore()
    try:
        batch = generate_for_profile(profile, args.category, gateway=gateway)
        persist_batch(batch, store)
    except GenerationUnavailable as exc:
        logger.error("Suggestion generation unavailable: %s", exc.reason)
        return EXIT_UNAVAILABLE
    except (EmptyBatch, ProfileMissing) as exc:
        logger.error("No suggestions generated: %s", exc)
        return EXIT_NO_SUGGESTIONS

    output = [
        {"id": row.id, "parent_id": row.parent_id, **row.record, "maps_url": suggestion.maps_url}
        for row, suggestion in zip(store.rows, batch)
    ]
    json.dump({"suggestions": output, "total_duration": batch.total_duration}, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - manual launch
    sys.exit(main())
