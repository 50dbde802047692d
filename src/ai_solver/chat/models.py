"""Data models for the solver chat."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from ai_solver.exceptions import ValidationError


class Role(str, Enum):
    """Author of a conversation turn."""
    USER = "user"
    ASSISTANT = "assistant"

    def __str__(self) -> str:
        """Return the string value of the enum."""
        return self.value


class SessionState(str, Enum):
    """
    States of a chat session.

    COMMITTING and FAILED are passed through on the way back to IDLE.
    """
    IDLE = "idle"
    STREAMING = "streaming"
    COMMITTING = "committing"
    FAILED = "failed"


@dataclass(frozen=True)
class Message:
    """A committed conversation turn."""
    role: Role
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True)
class Delta:
    """An incremental fragment of the answer."""
    text: str


@dataclass(frozen=True)
class Done:
    """The terminal sentinel was received."""


@dataclass(frozen=True)
class StreamError:
    """The server reported a failure mid-stream."""
    message: str


@dataclass(frozen=True)
class Unrecognized:
    """A frame that could not be interpreted; skipped."""
    reason: str = ""


StreamFrame = Union[Delta, Done, StreamError, Unrecognized]


@dataclass(frozen=True)
class RequestContext:
    """
    Parameters scoping one solve request.

    Attributes:
        class_id: Selected class (topic)
        subject_id: Selected subject (sub-topic)
        prompt: The new user turn
        chapter_id: Optional chapter within the subject
        history: Committed conversation before this prompt
    """
    class_id: str
    subject_id: str
    prompt: str
    chapter_id: Optional[str] = None
    history: Tuple[Message, ...] = ()

    def validate(self) -> None:
        """Raise ValidationError unless prompt, class and subject are all set."""
        missing = []
        if not (self.class_id or "").strip():
            missing.append("class")
        if not (self.subject_id or "").strip():
            missing.append("subject")
        if not (self.prompt or "").strip():
            missing.append("prompt")
        if missing:
            raise ValidationError(
                f"Please select a class and subject and enter a question (missing: {', '.join(missing)})"
            )

    def to_payload(self) -> Dict[str, Any]:
        """JSON body for the solve endpoint; chapterId is omitted when unset."""
        payload: Dict[str, Any] = {
            "classId": self.class_id,
            "subjectId": self.subject_id,
            "prompt": self.prompt,
            "conversationHistory": [message.to_dict() for message in self.history],
        }
        if self.chapter_id:
            payload["chapterId"] = self.chapter_id
        return payload


@dataclass
class StreamUpdate:
    """
    Represents a single update during the streaming response.

    Attributes:
        content: A delta of answer text
        metadata: Telemetry emitted once the stream has ended
        error: User-facing error message
    """
    content: str = ""
    metadata: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
