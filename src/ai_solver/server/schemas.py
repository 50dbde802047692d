"""Request models for the solver API."""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ai_solver.chat.message_store import MessageStore
from ai_solver.chat.models import Message


class ConversationTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str = ""


class SolveRequest(BaseModel):
    """Body of POST /api/praggo/solve.

    Required fields are declared optional so that a missing one is answered
    with 400 "Missing required fields" rather than a schema error.
    """

    model_config = ConfigDict(populate_by_name=True)

    class_id: Optional[str] = Field(default=None, alias="classId")
    subject_id: Optional[str] = Field(default=None, alias="subjectId")
    chapter_id: Optional[str] = Field(default=None, alias="chapterId")
    prompt: Optional[str] = None
    conversation_history: List[ConversationTurn] = Field(
        default_factory=list, alias="conversationHistory"
    )

    def is_complete(self) -> bool:
        return bool(self.class_id and self.subject_id and self.prompt and self.prompt.strip())

    def history(self) -> List[Message]:
        return MessageStore.from_payload(turn.model_dump() for turn in self.conversation_history)
