"""Per-widget chat session state machine."""

from typing import TYPE_CHECKING, List, Optional

from ai_solver.chat.message_store import MessageStore
from ai_solver.chat.models import (
    Delta,
    Done,
    Message,
    RequestContext,
    Role,
    SessionState,
    StreamError,
    StreamFrame,
)
from ai_solver.exceptions import SessionBusyError
from ai_solver.utils.logger import logger

if TYPE_CHECKING:
    from ai_solver.clients.solver_client import StreamHandle


class ChatSession:
    """
    Conversation state for one chat panel.

    Holds the committed messages, the partial answer of the in-flight request
    and the current state. At most one request is in flight: begin() refuses
    to start another while streaming.

    Each begin() hands out a request id. The transition methods accept that id
    and ignore calls made on behalf of a request that is no longer current, so
    a stream that was cancelled cannot write into the request that replaced it.
    """

    def __init__(self, message_store: Optional[MessageStore] = None):
        self.message_store = message_store or MessageStore()
        self.state = SessionState.IDLE
        self.partial_answer = ""
        self.last_error: Optional[str] = None
        self._handle: Optional["StreamHandle"] = None
        self._request_id = 0

    @property
    def streaming(self) -> bool:
        return self.state is SessionState.STREAMING

    @property
    def messages(self) -> List[Message]:
        return self.message_store.get_messages()

    def is_current(self, request_id: Optional[int]) -> bool:
        """True while request_id is the in-flight request (None matches any)."""
        if not self.streaming:
            return False
        return request_id is None or request_id == self._request_id

    def build_context(
        self,
        class_id: str,
        subject_id: str,
        prompt: str,
        chapter_id: Optional[str] = None,
    ) -> RequestContext:
        """Snapshot the committed conversation into a request context."""
        return RequestContext(
            class_id=(class_id or "").strip(),
            subject_id=(subject_id or "").strip(),
            prompt=(prompt or "").strip(),
            chapter_id=(chapter_id or "").strip() or None,
            history=tuple(self.message_store.get_messages()),
        )

    def begin(self, context: RequestContext) -> int:
        """
        Enter STREAMING for a new request.

        The user message is appended before any network activity.

        Returns:
            The id of the new request

        Raises:
            SessionBusyError: A request is already in flight
            ValidationError: Prompt, class or subject is missing
        """
        if self.streaming:
            raise SessionBusyError("Please wait for the current answer to finish")
        context.validate()

        self.message_store.add_message(Message(role=Role.USER, content=context.prompt))
        self.partial_answer = ""
        self.last_error = None
        self._request_id += 1
        self.state = SessionState.STREAMING
        logger.debug(f"Session entered STREAMING for request {self._request_id}")
        return self._request_id

    def attach(self, handle: "StreamHandle", request_id: Optional[int] = None) -> None:
        """
        Remember the transport handle so cancel() can stop it.

        A handle that arrives after its request was cancelled is cancelled
        straight away.
        """
        if not self.is_current(request_id):
            logger.debug(f"Request {request_id} is no longer current; cancelling its handle")
            handle.cancel()
            return
        self._handle = handle

    def apply(self, frame: StreamFrame, request_id: Optional[int] = None) -> Optional[Message]:
        """
        Apply one interpreted frame.

        Frames arriving outside STREAMING (e.g. after a cancel) or for a
        request that is no longer current are ignored.

        Returns:
            The assistant message when the frame committed the answer
        """
        if not self.is_current(request_id):
            logger.debug(f"Ignoring {type(frame).__name__} frame in state {self.state.value}")
            return None

        if isinstance(frame, Delta):
            self.partial_answer += frame.text
        elif isinstance(frame, Done):
            return self._commit()
        elif isinstance(frame, StreamError):
            self.fail(frame.message)
        return None

    def end_of_stream(self, request_id: Optional[int] = None) -> Optional[Message]:
        """
        The byte source ended without a Done or Error frame.

        Whatever partial answer accumulated is committed.
        """
        if not self.is_current(request_id):
            return None
        if self.partial_answer:
            logger.warning("Stream ended without [DONE]; committing partial answer")
            return self._commit()

        logger.warning("Stream ended without [DONE] and without content")
        self._reset_to_idle()
        return None

    def fail(self, message: str, request_id: Optional[int] = None) -> None:
        """Discard the partial answer and record the error."""
        if request_id is not None and not self.is_current(request_id):
            return
        self.state = SessionState.FAILED
        logger.debug(f"Session FAILED, discarding {len(self.partial_answer)} chars: {message}")
        self.last_error = message
        self._reset_to_idle()

    def cancel(self, request_id: Optional[int] = None) -> None:
        """Abort the in-flight request without committing anything."""
        if not self.is_current(request_id):
            return
        logger.info(f"Cancelling in-flight request {self._request_id}")
        if self._handle is not None:
            self._handle.cancel()
        self._reset_to_idle()

    def clear(self) -> None:
        """
        Empty the conversation.

        Raises:
            SessionBusyError: A request is in flight
        """
        if self.streaming:
            raise SessionBusyError("Cannot clear the conversation while an answer is streaming")
        self.message_store.clear()
        self.partial_answer = ""
        self.last_error = None

    def _commit(self) -> Message:
        self.state = SessionState.COMMITTING
        message = Message(role=Role.ASSISTANT, content=self.partial_answer)
        self.message_store.add_message(message)
        self._reset_to_idle()
        return message

    def _reset_to_idle(self) -> None:
        self.partial_answer = ""
        self._handle = None
        self.state = SessionState.IDLE
