"""Rendering of a chat session into Gradio chat history."""

from typing import List, Optional

import gradio as gr

from ai_solver.chat.session import ChatSession
from ai_solver.utils.logger import logger


class GradioHistoryManager:
    """Builds the Chatbot history for a session."""

    def __init__(self, session: ChatSession):
        """
        Initialize the history manager.

        Args:
            session: Session whose messages are displayed
        """
        self.session = session
        self.stats_title: Optional[str] = None

    def set_stats(self, metadata: dict) -> None:
        """Show the telemetry of the last answer under the conversation."""
        self.stats_title = (
            f"📊 chunks={metadata.get('delta_count', 0)} "
            f"first chunk={metadata.get('time_to_first_chunk_ms', 0)} ms "
            f"latency={metadata.get('latency_ms', 0)} ms"
        )
        if metadata.get("dropped_frames"):
            self.stats_title += f" dropped={metadata['dropped_frames']}"
        logger.debug(f"Received stats metadata: {metadata}")

    def get_history(self) -> List[gr.ChatMessage]:
        """
        Committed messages, then the in-flight partial answer (or a
        placeholder while waiting for the first chunk), then stats.
        """
        history = [
            gr.ChatMessage(role=message.role.value, content=message.content)
            for message in self.session.messages
        ]
        if self.session.streaming:
            history.append(
                gr.ChatMessage(role="assistant", content=self.session.partial_answer or "…")
            )
        elif self.stats_title:
            history.append(
                gr.ChatMessage(role="assistant", content="\u200b", metadata={"title": self.stats_title})
            )
        return history
