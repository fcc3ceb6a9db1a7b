"""Dataclasses representing conversation turns and dialogue memory."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum


REQUIRED_SLOTS = ("product_name", "quantity", "retailer")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DialogueState(str, Enum):
    """Machine-level state of one conversation."""

    GREETING = "greeting"
    AWAITING_INPUT = "awaiting_input"
    PROCESSING = "processing"
    PROMPTING_FOR_SLOT = "prompting_for_slot"
    READY_TO_CONFIRM = "ready_to_confirm"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    ERRORED = "errored"

    @property
    def accepts_input(self) -> bool:
        return self in {DialogueState.AWAITING_INPUT, DialogueState.READY_TO_CONFIRM}

    @property
    def terminal(self) -> bool:
        return self in {DialogueState.COMPLETED, DialogueState.ERRORED}


@dataclass(slots=True)
class SlotState:
    """Partially-filled order intent.

    Slots are sticky: ``merge`` only fills values that are still unset, and the
    only way to empty a slot is ``clear``.
    """

    product_name: str | None = None
    quantity: int | None = None
    retailer: str | None = None

    def merge(self, delta: SlotState) -> SlotState:
        """Fill unset slots from ``delta`` in place and return self."""

        for name in REQUIRED_SLOTS:
            if getattr(self, name) is None and getattr(delta, name) is not None:
                setattr(self, name, getattr(delta, name))
        return self

    def merged(self, delta: SlotState) -> SlotState:
        return replace(self).merge(delta)

    def clear(self) -> None:
        self.product_name = None
        self.quantity = None
        self.retailer = None

    def collected(self) -> list[str]:
        return [name for name in REQUIRED_SLOTS if getattr(self, name) is not None]

    def missing(self) -> list[str]:
        return [name for name in REQUIRED_SLOTS if getattr(self, name) is None]

    @property
    def complete(self) -> bool:
        return not self.missing()

    def as_dict(self) -> dict[str, str | int | None]:
        return {name: getattr(self, name) for name in REQUIRED_SLOTS}


@dataclass(frozen=True, slots=True)
class ConversationTurn:
    """Single conversational turn; immutable once appended."""

    role: str
    text: str
    timestamp: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class Conversation:
    """Authoritative mutable record for one active conversation."""

    conversation_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    slots: SlotState = field(default_factory=SlotState)
    history: list[ConversationTurn] = field(default_factory=list)
    state: DialogueState = DialogueState.GREETING
    pending_slot: str | None = None
    last_heard: str | None = None
    last_error: str | None = None
    order_id: str | None = None
    episode: int = 0
    created_at: datetime = field(default_factory=utcnow)

    @property
    def ready_to_confirm(self) -> bool:
        return self.state is DialogueState.READY_TO_CONFIRM

    def append_turn(self, role: str, text: str) -> ConversationTurn:
        turn = ConversationTurn(role=role, text=text)
        self.history.append(turn)
        return turn

    def reset(self) -> None:
        """Empty slots, history and flags and begin a new episode; the id is kept."""

        self.slots.clear()
        self.history = []
        self.state = DialogueState.GREETING
        self.pending_slot = None
        self.last_heard = None
        self.last_error = None
        self.order_id = None
        self.episode += 1
