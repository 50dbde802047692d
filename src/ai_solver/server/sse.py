"""Event-stream frame encoding for the solver endpoint."""

import json

from ai_solver.chat.chunk_parsers import DONE_SENTINEL
from ai_solver.chat.decoder import DATA_PREFIX

SSE_MEDIA_TYPE = "text/event-stream"


def _frame(payload: str) -> str:
    return f"{DATA_PREFIX}{payload}\n\n"


def encode_chunk(text: str) -> str:
    """Frame one answer delta: data: {"chunk": "..."}"""
    return _frame(json.dumps({"chunk": text}, ensure_ascii=False))


def encode_error(message: str) -> str:
    """Frame a terminal error: data: {"error": "..."}"""
    return _frame(json.dumps({"error": message}, ensure_ascii=False))


def encode_done() -> str:
    return _frame(DONE_SENTINEL)
