"""Answer generation for the solver endpoint."""

from typing import Generator, Iterable, List, Optional

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from ai_solver.chat.message_store import MessageStore
from ai_solver.chat.models import Message, StreamUpdate
from ai_solver.config.settings import settings
from ai_solver.exceptions import EngineError
from ai_solver.telemetry.metrics import TelemetryMetrics
from ai_solver.utils.logger import logger
from ai_solver.utils.structured_logging import log_llm_call


def build_solver_prompt(
    class_name: str, subject_name: str, chapter_title: Optional[str] = None
) -> str:
    """
    Build the tutor system prompt for a class and subject.

    Args:
        class_name: Display name of the student's class
        subject_name: Display name of the subject
        chapter_title: Optional chapter the question is about

    Returns:
        System prompt text
    """
    chapter_line = f"- Current Chapter: {chapter_title}\n" if chapter_title else ""
    return (
        "You are an expert tutor for Bangladesh's NCTB curriculum.\n\n"
        "CONTEXT:\n"
        f"- Student Class: {class_name}\n"
        f"- Subject: {subject_name}\n"
        f"{chapter_line}\n"
        "YOUR ROLE:\n"
        "1. Answer student questions clearly in BANGLA (বাংলা)\n"
        "2. Follow NCTB curriculum standards strictly\n"
        "3. Provide step-by-step explanations for mathematical problems\n"
        "4. Use simple language suitable for the student's class level\n"
        "5. Encourage learning with positive reinforcement\n\n"
        "GUIDELINES:\n"
        "- Break down complex concepts into simple steps\n"
        "- Use examples from daily life when helpful\n"
        "- For math problems: show each calculation step\n"
        "- For science: explain concepts with real-world applications\n"
        "- Always keep answers curriculum-appropriate\n\n"
        "Respond in a friendly, educational manner."
    )


class SolverChatEngine:
    """
    Streams answers from a LangChain chat model.
    """

    def __init__(self, llm_client: BaseChatModel):
        """
        Initialize the solver engine.

        Args:
            llm_client: Streaming chat model (AzureChatOpenAI in production)
        """
        self.llm_client = llm_client

    @staticmethod
    def build_messages(
        system_prompt: str, history: Iterable[Message], prompt: str
    ) -> List[BaseMessage]:
        """Assemble system prompt, prior turns and the new question."""
        messages: List[BaseMessage] = [SystemMessage(content=system_prompt)]
        messages.extend(MessageStore.to_langchain_messages(history))
        messages.append(HumanMessage(content=prompt))
        return messages

    def stream(self, messages: List[BaseMessage]) -> Generator[StreamUpdate, None, None]:
        """
        Stream a response for the conversation.

        Args:
            messages: Conversation ending with the user's question

        Yields:
            Content StreamUpdates, then one metadata StreamUpdate

        Raises:
            EngineError: The model call failed
        """
        logger.info(f"Starting solver stream ({len(messages)} messages)")
        metrics = TelemetryMetrics()
        metrics.start_timer()

        try:
            for chunk in self.llm_client.stream(messages):
                update = self._process_chunk(chunk, metrics)
                if update:
                    metrics.record_delta(update.content)
                    yield update
        except Exception as e:
            metrics.stop_timer()
            logger.error(f"Solver engine failed to generate response: {e}")
            raise EngineError(str(e)) from e

        metrics.stop_timer()
        logger.info(
            f"Solver stream completed: {metrics.delta_count} chunks, {metrics.char_count} chars"
        )

        stats_dict = metrics.to_dict()
        log_llm_call(
            model_name=settings.MODEL_NAME,
            prompt_tokens=stats_dict["prompt_tokens"],
            completion_tokens=stats_dict["completion_tokens"],
            total_tokens=stats_dict["total_tokens"],
            latency_ms=stats_dict["latency_ms"],
            cost_usd=stats_dict["cost_usd"],
            deployment=settings.AZURE_OPENAI_DEPLOYMENT or None,
            chunk_count=metrics.delta_count,
            response_length=metrics.char_count,
        )
        yield StreamUpdate(metadata=stats_dict)

    def _process_chunk(self, chunk, metrics: TelemetryMetrics) -> StreamUpdate | None:
        """
        Process a chunk from the LLM stream.

        Args:
            chunk: LLM chunk with content and optional usage_metadata
            metrics: TelemetryMetrics instance to update

        Returns:
            StreamUpdate with content, or None if chunk should be skipped
        """
        usage_metadata = getattr(chunk, "usage_metadata", None)
        if usage_metadata:
            metrics.set_token_usage(
                usage_metadata.get("input_tokens", 0),
                usage_metadata.get("output_tokens", 0),
                usage_metadata.get("total_tokens", 0),
            )

        content = getattr(chunk, "content", None)
        if isinstance(content, str) and content:
            return StreamUpdate(content=content)
        return None
