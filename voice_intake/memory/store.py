"""Conversation store abstractions and the in-memory implementation."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Iterable, Sequence

from voice_intake.core.errors import ConversationNotFound

from .models import Conversation, ConversationTurn, SlotState


class ConversationStore(ABC):
    """Owner of every active conversation.

    Handlers look conversations up here on each invocation instead of keeping
    their own copies, so late callbacks always see the latest state.
    """

    @abstractmethod
    def create(self) -> Conversation:
        """Register and return a new empty conversation."""

    @abstractmethod
    def get(self, conversation_id: str) -> Conversation:
        """Return the live conversation record or raise ``ConversationNotFound``."""

    @abstractmethod
    def discard(self, conversation_id: str) -> bool:
        """Forget a conversation. Returns whether it existed."""

    @abstractmethod
    def iter_conversations(self) -> Iterable[str]:
        """Iterate over active conversation identifiers."""

    def contains(self, conversation_id: str) -> bool:
        try:
            self.get(conversation_id)
        except ConversationNotFound:
            return False
        return True

    def fetch_recent_turns(self, conversation_id: str, limit: int = 10) -> Sequence[ConversationTurn]:
        history = self.get(conversation_id).history
        return list(history[-limit:]) if limit > 0 else []

    def load_slots(self, conversation_id: str) -> SlotState:
        return self.get(conversation_id).slots


class InMemoryConversationStore(ConversationStore):
    """Process-local store. Nothing is written to disk."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._conversations: dict[str, Conversation] = {}

    def create(self) -> Conversation:
        conversation = Conversation()
        with self._lock:
            self._conversations[conversation.conversation_id] = conversation
        return conversation

    def get(self, conversation_id: str) -> Conversation:
        with self._lock:
            conversation = self._conversations.get(conversation_id)
        if conversation is None:
            raise ConversationNotFound(conversation_id)
        return conversation

    def discard(self, conversation_id: str) -> bool:
        with self._lock:
            return self._conversations.pop(conversation_id, None) is not None

    def iter_conversations(self) -> Iterable[str]:
        with self._lock:
            return sorted(self._conversations)
