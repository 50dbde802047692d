"""Interpretation of event-stream frames from the solver endpoint."""

import json
from typing import Any, Optional

from ai_solver.chat.decoder import DATA_PREFIX
from ai_solver.chat.models import Delta, Done, StreamError, StreamFrame, Unrecognized
from ai_solver.exceptions import FrameParseError
from ai_solver.telemetry.metrics import TelemetryMetrics
from ai_solver.utils.structured_logging import log_frame_dropped

DONE_SENTINEL = "[DONE]"
DEFAULT_STREAM_ERROR = "The AI solver reported an error"


class FrameParser:
    """Parser for solver stream frames."""

    @staticmethod
    def parse(line: str, metrics: Optional[TelemetryMetrics] = None) -> StreamFrame:
        """
        Classify a "data: " line.

        Malformed frames never abort the stream: they come back as
        Unrecognized, are logged, and are counted on the metrics.

        Args:
            line: A line as produced by iter_data_lines()
            metrics: TelemetryMetrics instance to update

        Returns:
            Delta, Done, StreamError or Unrecognized
        """
        if not line.startswith(DATA_PREFIX):
            return FrameParser._drop(line, "missing data prefix", metrics)

        payload = line[len(DATA_PREFIX):]
        if payload == DONE_SENTINEL:
            return Done()

        try:
            parsed = FrameParser._load(payload)
        except FrameParseError as e:
            return FrameParser._drop(line, str(e), metrics)

        if isinstance(parsed.get("chunk"), str):
            return Delta(text=parsed["chunk"])

        if parsed.get("error") is not None:
            message = str(parsed["error"]) or DEFAULT_STREAM_ERROR
            return StreamError(message=message)

        return FrameParser._drop(line, "no chunk or error field", metrics)

    @staticmethod
    def _load(payload: str) -> dict[str, Any]:
        try:
            parsed = json.loads(payload)
        except json.JSONDecodeError as e:
            raise FrameParseError(f"invalid JSON: {e.msg}") from e
        if not isinstance(parsed, dict):
            raise FrameParseError(f"expected an object, got {type(parsed).__name__}")
        return parsed

    @staticmethod
    def _drop(line: str, reason: str, metrics: Optional[TelemetryMetrics]) -> Unrecognized:
        if metrics is not None:
            metrics.record_dropped_frame()
        log_frame_dropped(line, reason)
        return Unrecognized(reason=reason)
