"""Conversation history storage and format conversion."""

from typing import Any, Dict, Iterable, List

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from ai_solver.chat.models import Message, Role
from ai_solver.utils.logger import logger


class MessageStore:
    """Append-only, in-memory sequence of committed messages."""

    def __init__(self):
        self._messages: List[Message] = []

    def __len__(self) -> int:
        return len(self._messages)

    def add_message(self, message: Message) -> None:
        """
        Append a committed message.

        Args:
            message: The message to add
        """
        content_preview = (
            message.content[:50] + "..." if len(message.content) > 50 else message.content
        )
        logger.debug(
            f"Adding {message.role} message (preview: {content_preview}), "
            f"current count: {len(self._messages)}"
        )
        self._messages.append(message)

    def get_messages(self) -> List[Message]:
        """
        Get all stored messages.

        Returns:
            Copy of the messages in conversation order
        """
        return self._messages.copy()

    def clear(self) -> None:
        """Remove all messages."""
        message_count = len(self._messages)
        self._messages.clear()
        logger.info(f"Cleared {message_count} messages from store")

    @staticmethod
    def from_payload(history: Iterable[Dict[str, Any]]) -> List[Message]:
        """
        Convert wire-format history ({role, content} dicts) to messages.

        Entries with an unknown role are skipped.
        """
        messages = []
        for item in history:
            role = item.get("role", "")
            content = item.get("content", "") or ""
            try:
                messages.append(Message(role=Role(role), content=content))
            except ValueError:
                logger.warning(f"Skipping history entry with unknown role '{role}'")
        return messages

    @staticmethod
    def to_langchain_messages(messages: Iterable[Message]) -> List[BaseMessage]:
        """
        Convert messages to LangChain message objects.

        Args:
            messages: Committed messages

        Returns:
            HumanMessage for user turns, AIMessage for assistant turns
        """
        converted: List[BaseMessage] = []
        for message in messages:
            if message.role is Role.USER:
                converted.append(HumanMessage(content=message.content))
            else:
                converted.append(AIMessage(content=message.content))
        return converted
