"""Structured logging helpers for solve requests and stream diagnostics."""

import contextvars
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from ai_solver.config.settings import settings
from ai_solver.utils.logger import logger

# Context variable for correlation ID
_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "correlation_id", default=None
)

PREVIEW_LENGTH = 200


def generate_correlation_id() -> str:
    """
    Generate a unique correlation ID for request tracking.

    Returns:
        Unique correlation ID string (e.g., "req-abc123")
    """
    return f"req-{uuid.uuid4().hex[:8]}"


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from context, if any."""
    return _correlation_id.get()


class CorrelationContext:
    """Context manager binding a correlation ID for the duration of one request."""

    def __init__(self, correlation_id: Optional[str] = None):
        self.correlation_id = correlation_id or generate_correlation_id()
        self._token = None

    def __enter__(self) -> str:
        self._token = _correlation_id.set(self.correlation_id)
        return self.correlation_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._token is None:
            return
        try:
            _correlation_id.reset(self._token)
        except ValueError:
            # Generators driven by Gradio may resume in another context; the
            # token can then no longer be reset from here.
            pass
        self._token = None


def _preview(text: str) -> str:
    return text[:PREVIEW_LENGTH] if len(text) > PREVIEW_LENGTH else text


def _log_structured_event(
    event_type: str,
    level: str = "INFO",
    message: Optional[str] = None,
    **kwargs: Any
) -> None:
    """
    Log a structured event with consistent format.

    Args:
        event_type: Type of event (e.g., "solve_request", "frame_dropped")
        level: Log level (INFO, DEBUG, WARNING, ERROR)
        message: Optional message to log
        **kwargs: Additional fields to include in the log
    """
    now = datetime.now()
    log_data = {
        "event_type": event_type,
        "timestamp_iso": now.isoformat(),
        "timestamp_unix": now.timestamp(),
        "date": now.strftime("%Y-%m-%d"),
        "hour": now.strftime("%H"),
        **kwargs
    }

    correlation_id = get_correlation_id()
    if correlation_id and settings.ENABLE_CORRELATION_IDS:
        log_data.setdefault("correlation_id", correlation_id)

    bound_logger = logger.bind(**log_data)
    getattr(bound_logger, level.lower())(message or f"{event_type} event")


def log_solve_request(
    prompt: str,
    class_id: str,
    subject_id: str,
    chapter_id: Optional[str] = None,
    history_length: int = 0,
    **kwargs: Any
) -> None:
    """Log an outgoing solve request."""
    _log_structured_event(
        event_type="solve_request",
        prompt=_preview(prompt),
        prompt_length=len(prompt),
        class_id=class_id,
        subject_id=subject_id,
        chapter_id=chapter_id,
        history_length=history_length,
        **kwargs
    )


def log_solve_response(
    outcome: str,
    latency_ms: int,
    delta_count: int,
    response_length: int,
    dropped_frames: int = 0,
    error_message: Optional[str] = None,
    **kwargs: Any
) -> None:
    """
    Log how a solve request ended.

    Args:
        outcome: "committed", "failed", "cancelled" or "empty"
        latency_ms: Time from send to end of stream
        delta_count: Number of Delta frames applied
        response_length: Length of the committed answer
        dropped_frames: Number of frames skipped as unrecognized
        error_message: Error surfaced to the user, if any
        **kwargs: Additional fields to include
    """
    _log_structured_event(
        event_type="solve_response",
        level="INFO" if error_message is None else "WARNING",
        outcome=outcome,
        success=error_message is None,
        latency_ms=latency_ms,
        delta_count=delta_count,
        response_length=response_length,
        dropped_frames=dropped_frames,
        error_message=error_message,
        **kwargs
    )


def log_frame_dropped(line: str, reason: str, **kwargs: Any) -> None:
    """Log a stream frame that was skipped as unrecognized."""
    _log_structured_event(
        event_type="frame_dropped",
        level="WARNING",
        message=f"Dropped unrecognized stream frame: {reason}",
        line=_preview(line),
        reason=reason,
        **kwargs
    )


def log_error(
    error_type: str,
    error_message: str,
    context: Optional[Dict[str, Any]] = None,
    **kwargs: Any
) -> None:
    """
    Log a structured error event.

    Args:
        error_type: Type of error (e.g., "transport_error", "protocol_error")
        error_message: Error message
        context: Additional context about the error
        **kwargs: Additional fields to include
    """
    _log_structured_event(
        event_type="error",
        level="ERROR",
        error_type=error_type,
        error_message=error_message,
        context=context,
        **kwargs
    )


def log_llm_call(
    model_name: str,
    prompt_tokens: int,
    completion_tokens: int,
    total_tokens: int,
    latency_ms: int,
    cost_usd: float,
    deployment: Optional[str] = None,
    **kwargs: Any
) -> None:
    """Log an LLM API call with token usage, latency and cost."""
    _log_structured_event(
        event_type="llm_call",
        model_name=model_name,
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=total_tokens,
        latency_ms=latency_ms,
        cost_usd=round(cost_usd, 8),
        deployment=deployment,
        **kwargs
    )
