"""Deterministic slot-filling planner."""

from __future__ import annotations

import re

from voice_intake.memory.models import SlotState
from voice_intake.planner.base import Planner
from voice_intake.planner.types import NextStep, PlannerContext, PlannerDecision

GREETING = "Hello! I'm your order assistant. What product would you like to buy today?"

STORE_SUGGESTIONS = ("Amazon", "Amazon Grocery", "Target")

PROMPTS: dict[NextStep, str] = {
    NextStep.ASK_PRODUCT: "I didn't catch the product name. What do you want to buy?",
    NextStep.ASK_QUANTITY: "Got it, {product_name}. How many do you want?",
    NextStep.ASK_RETAILER: "Okay, {quantity} {product_name}. From which store? {stores}?",
    NextStep.CONFIRM: (
        "Great! I'll order {quantity} {product_name} from {retailer}. "
        "Should I submit the order now? I can also open the website for you."
    ),
}

AFFIRMATIVE_TOKENS = ("yes", "yeah", "submit", "ok", "okay", "go ahead")

_AFFIRMATIVE_PATTERNS = [
    re.compile(rf"\b{re.escape(token)}\b", re.IGNORECASE) for token in AFFIRMATIVE_TOKENS
]


def _suggestions() -> str:
    return ", ".join(STORE_SUGGESTIONS[:-1]) + f", or {STORE_SUGGESTIONS[-1]}"


def next_step(slots: SlotState) -> NextStep:
    if slots.product_name is None:
        return NextStep.ASK_PRODUCT
    if slots.quantity is None:
        return NextStep.ASK_QUANTITY
    if slots.retailer is None:
        return NextStep.ASK_RETAILER
    return NextStep.CONFIRM


def render_prompt(step: NextStep, slots: SlotState) -> str:
    return PROMPTS[step].format(
        product_name=slots.product_name or "",
        quantity=slots.quantity if slots.quantity is not None else 1,
        retailer=slots.retailer or "",
        stores=_suggestions(),
    )


class SlotFillingPlanner(Planner):
    """Ask for the first missing slot in priority order, then for confirmation."""

    def decide(self, context: PlannerContext) -> PlannerDecision:
        step = next_step(context.slots)
        return PlannerDecision(
            step=step,
            prompt=render_prompt(step, context.slots),
            missing_slots=context.slots.missing(),
        )

    def is_confirmation(self, utterance: str) -> bool:
        return any(pattern.search(utterance or "") for pattern in _AFFIRMATIVE_PATTERNS)
