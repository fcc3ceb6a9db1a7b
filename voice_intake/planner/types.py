"""Planner-related enums and data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from voice_intake.memory.models import DialogueState, SlotState


class NextStep(str, Enum):
    """What the assistant says next after an utterance has been merged."""

    ASK_PRODUCT = "ask_product"
    ASK_QUANTITY = "ask_quantity"
    ASK_RETAILER = "ask_retailer"
    CONFIRM = "confirm"


STEP_SLOTS: dict[NextStep, str | None] = {
    NextStep.ASK_PRODUCT: "product_name",
    NextStep.ASK_QUANTITY: "quantity",
    NextStep.ASK_RETAILER: "retailer",
    NextStep.CONFIRM: None,
}


@dataclass(slots=True)
class PlannerContext:
    """Inputs passed to the planner when deciding the next prompt."""

    slots: SlotState


@dataclass(slots=True)
class PlannerDecision:
    """Planner output: the chosen step and the rendered prompt."""

    step: NextStep
    prompt: str
    missing_slots: list[str] = field(default_factory=list)

    @property
    def slot(self) -> str | None:
        return STEP_SLOTS[self.step]

    @property
    def ready_to_confirm(self) -> bool:
        return self.step is NextStep.CONFIRM

    @property
    def next_state(self) -> DialogueState:
        if self.ready_to_confirm:
            return DialogueState.READY_TO_CONFIRM
        return DialogueState.PROMPTING_FOR_SLOT
