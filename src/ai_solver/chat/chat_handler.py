"""Drives one solve request through transport, decoding and the session."""

import threading
from typing import Dict, Generator, List, Optional

from ai_solver.chat.chunk_parsers import FrameParser
from ai_solver.chat.decoder import iter_data_lines
from ai_solver.chat.models import Delta, Done, StreamError, StreamUpdate
from ai_solver.chat.session import ChatSession
from ai_solver.clients.solver_client import SolverClient, StreamHandle
from ai_solver.exceptions import ProtocolError, TransportError
from ai_solver.telemetry.metrics import TelemetryMetrics
from ai_solver.utils.logger import logger
from ai_solver.utils.structured_logging import (
    CorrelationContext,
    log_error,
    log_solve_request,
    log_solve_response,
)


class ChatHandler:
    """Handles solver chat interactions with streaming and telemetry."""

    def __init__(self, solver_client: SolverClient):
        """
        Initialize the chat handler.

        Args:
            solver_client: Transport used to reach the solver endpoint
        """
        self.solver_client = solver_client
        # Streaming and Clear run on different worker threads; every session
        # transition made through this handler happens under this lock.
        self._session_lock = threading.RLock()

    def stream_response(
        self,
        session: ChatSession,
        class_id: str,
        subject_id: str,
        prompt: str,
        chapter_id: Optional[str] = None,
    ) -> Generator[StreamUpdate, None, None]:
        """
        Send a question and stream the answer into the session.

        The user message is committed before the request goes out. Content
        updates are yielded in arrival order; a final update carries the
        telemetry. Transport and mid-stream errors are yielded as error
        updates and leave the session IDLE. Once the request is cancelled
        (or replaced by a newer one) this generator stops touching the session.

        Args:
            session: The session this request belongs to
            class_id: Selected class
            subject_id: Selected subject
            prompt: The user's question
            chapter_id: Optional chapter

        Yields:
            StreamUpdate objects

        Raises:
            ValidationError: Missing prompt, class or subject (nothing is sent)
            SessionBusyError: A request is already in flight
        """
        context = session.build_context(class_id, subject_id, prompt, chapter_id)
        with self._session_lock:
            request_id = session.begin(context)

        with CorrelationContext():
            log_solve_request(
                prompt=context.prompt,
                class_id=context.class_id,
                subject_id=context.subject_id,
                chapter_id=context.chapter_id,
                history_length=len(context.history),
            )

            metrics = TelemetryMetrics()
            metrics.start_timer()
            handle: Optional[StreamHandle] = None
            outcome = "failed"
            error_message = None

            try:
                handle = self.solver_client.send(context)
                with self._session_lock:
                    session.attach(handle, request_id)
                outcome = yield from self._consume(session, request_id, handle, metrics)

            except (TransportError, ProtocolError) as e:
                error_message = str(e)
                with self._session_lock:
                    session.fail(error_message, request_id)
                log_error(
                    error_type="transport_error" if isinstance(e, TransportError) else "protocol_error",
                    error_message=error_message,
                    context={"class_id": context.class_id, "subject_id": context.subject_id},
                )
                yield StreamUpdate(error=error_message)

            except Exception as e:
                error_message = f"Failed to get an answer: {e}"
                with self._session_lock:
                    session.fail(error_message, request_id)
                logger.exception("Unexpected error while streaming the answer")
                log_error(error_type="solve_error", error_message=str(e))
                yield StreamUpdate(error=error_message)
                raise

            finally:
                with self._session_lock:
                    # Consumer walked away mid-stream
                    if session.is_current(request_id):
                        session.cancel(request_id)
                        outcome = "cancelled"
                    elif handle is not None and handle.cancelled:
                        outcome = "cancelled"
                if handle is not None:
                    handle.close()
                metrics.stop_timer()
                logger.info(metrics.format_stats())
                log_solve_response(
                    outcome=outcome,
                    latency_ms=metrics.get_latency_ms(),
                    delta_count=metrics.delta_count,
                    response_length=metrics.char_count,
                    dropped_frames=metrics.dropped_frames,
                    error_message=error_message,
                )

            yield StreamUpdate(metadata=metrics.to_dict())

    def _consume(
        self,
        session: ChatSession,
        request_id: int,
        handle: StreamHandle,
        metrics: TelemetryMetrics,
    ) -> Generator[StreamUpdate, None, str]:
        """
        Apply every frame of the response to the session.

        Returns:
            "committed", "empty" or "cancelled"

        Raises:
            ProtocolError: The server sent an error frame
        """
        lines = iter_data_lines(handle.iter_bytes())
        try:
            for line in lines:
                if handle.cancelled:
                    break
                frame = FrameParser.parse(line, metrics)

                with self._session_lock:
                    if not session.is_current(request_id):
                        break
                    session.apply(frame, request_id)

                if isinstance(frame, Delta):
                    metrics.record_delta(frame.text)
                    if frame.text:
                        yield StreamUpdate(content=frame.text)
                elif isinstance(frame, StreamError):
                    raise ProtocolError(frame.message)
                elif isinstance(frame, Done):
                    logger.info(
                        f"Answer committed: {metrics.delta_count} chunks, {metrics.char_count} chars"
                    )
                    return "committed"
        finally:
            lines.close()

        with self._session_lock:
            if handle.cancelled or not session.is_current(request_id):
                return "cancelled"
            committed = session.end_of_stream(request_id)
        return "committed" if committed is not None else "empty"

    def get_history(self, session: ChatSession) -> List[Dict[str, str]]:
        """
        Get the committed conversation as {role, content} dicts.
        """
        messages = session.messages
        logger.debug(f"Retrieving history: {len(messages)} messages")
        return [message.to_dict() for message in messages]

    def clear_history(self, session: ChatSession) -> None:
        """Cancel any in-flight request, then clear the conversation."""
        logger.info("Clearing conversation history")
        with self._session_lock:
            session.cancel()
            session.clear()
