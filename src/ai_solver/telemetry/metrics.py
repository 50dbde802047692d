"""Telemetry metrics for streamed answers: latency, frames, tokens and cost."""

import time
from typing import Any, Dict, Optional

from ai_solver.config.settings import settings
from ai_solver.utils.logger import logger


class TelemetryMetrics:
    """Track metrics for a single streamed answer."""

    def __init__(self):
        """Initialize metrics tracking."""
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None
        self.first_chunk_time: Optional[float] = None
        self.delta_count: int = 0
        self.char_count: int = 0
        self.dropped_frames: int = 0
        self.prompt_tokens: int = 0
        self.completion_tokens: int = 0
        self.total_tokens: int = 0

    def start_timer(self) -> None:
        """Start the latency timer."""
        self.start_time = time.time()
        logger.debug("Telemetry timer started")

    def stop_timer(self) -> None:
        """Stop the latency timer."""
        self.end_time = time.time()
        if self.start_time:
            logger.debug(f"Telemetry timer stopped: {self.get_latency_ms()}ms latency")

    def get_latency_ms(self) -> int:
        """
        Get the latency in milliseconds.

        Returns:
            Latency in milliseconds, or 0 if timer wasn't started/stopped
        """
        if self.start_time is None or self.end_time is None:
            return 0
        return int((self.end_time - self.start_time) * 1000)

    def get_time_to_first_chunk_ms(self) -> int:
        """Milliseconds between start and the first delta, or 0 if none arrived."""
        if self.start_time is None or self.first_chunk_time is None:
            return 0
        return int((self.first_chunk_time - self.start_time) * 1000)

    def record_delta(self, text: str) -> None:
        """Count one applied delta."""
        if self.first_chunk_time is None:
            self.first_chunk_time = time.time()
        self.delta_count += 1
        self.char_count += len(text)

    def record_dropped_frame(self) -> None:
        """Count a frame skipped as unrecognized."""
        self.dropped_frames += 1

    def set_token_usage(
        self, prompt_tokens: int, completion_tokens: int, total_tokens: int
    ) -> None:
        """
        Set token usage metrics.

        Args:
            prompt_tokens: Number of prompt/input tokens
            completion_tokens: Number of completion/output tokens
            total_tokens: Total tokens used
        """
        self.prompt_tokens = prompt_tokens
        self.completion_tokens = completion_tokens
        self.total_tokens = total_tokens
        logger.debug(
            f"Token usage set: prompt={prompt_tokens}, "
            f"completion={completion_tokens}, total={total_tokens}"
        )

    def get_cost(self) -> float:
        """Calculate the cost in USD based on token usage."""
        return settings.calculate_cost(self.prompt_tokens, self.completion_tokens)

    def format_stats(self) -> str:
        """
        Format metrics as a one-line stats string.

        Returns:
            e.g. "[stats] chunks=3 chars=42 dropped=0 first_chunk=120 ms latency=900 ms"
        """
        return (
            f"[stats] chunks={self.delta_count} "
            f"chars={self.char_count} "
            f"dropped={self.dropped_frames} "
            f"first_chunk={self.get_time_to_first_chunk_ms()} ms "
            f"latency={self.get_latency_ms()} ms"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to a dictionary."""
        return {
            "latency_ms": self.get_latency_ms(),
            "time_to_first_chunk_ms": self.get_time_to_first_chunk_ms(),
            "delta_count": self.delta_count,
            "char_count": self.char_count,
            "dropped_frames": self.dropped_frames,
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
            "cost_usd": self.get_cost(),
        }
