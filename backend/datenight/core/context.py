"""Per-generation context utilities."""
from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator
from uuid import uuid4

generation_id_ctx_var: ContextVar[str | None] = ContextVar("generation_id", default=None)


def get_generation_id() -> str | None:
    """Return the id of the generation running in this context, if any."""
    return generation_id_ctx_var.get()


@contextmanager
def generation_scope(generation_id: str | None = None) -> Iterator[str]:
    """Bind a generation id for the duration of one pipeline run."""
    value = generation_id or uuid4().hex
    token = generation_id_ctx_var.set(value)
    try:
        yield value
    finally:
        generation_id_ctx_var.reset(token)
