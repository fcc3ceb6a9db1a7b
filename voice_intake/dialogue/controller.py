"""Slot-filling dialogue controller for voice order intake."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Coroutine

from voice_intake.core.errors import InvalidTransition, SpeechUnsupported, SubmitError
from voice_intake.core.metrics import MetricsCollector
from voice_intake.dialogue.effects import (
    CancelSpeech,
    CloseConversation,
    EffectBus,
    Notify,
    OrderCreated,
    Speak,
    StopListening,
)
from voice_intake.memory.models import Conversation, DialogueState
from voice_intake.memory.store import ConversationStore
from voice_intake.planner.base import Planner
from voice_intake.planner.extractor import extract
from voice_intake.planner.simple import GREETING, SlotFillingPlanner
from voice_intake.planner.types import PlannerContext, PlannerDecision
from voice_intake.speech.base import SpeechCapability
from voice_intake.tools.orders import OrderSubmitter

logger = logging.getLogger("voice_intake.dialogue")

SUCCESS_ANNOUNCEMENT = "Success! Order recorded in your dashboard."


class DialogueController:
    """Drive one conversation from greeting to a submitted order.

    The controller keeps only the conversation id and looks the record up in
    the store at the top of every handler, so callbacks created on earlier
    turns never act on an outdated copy. Utterance handling does not await
    anything until a submission starts: merging, prompt selection and the
    history append for one utterance finish before another can begin.
    """

    def __init__(
        self,
        conversation_id: str,
        store: ConversationStore,
        submitter: OrderSubmitter,
        *,
        planner: Planner | None = None,
        effects: EffectBus | None = None,
        speech: SpeechCapability | None = None,
        metrics: MetricsCollector | None = None,
        close_delay_seconds: float = 3.0,
    ) -> None:
        self.conversation_id = conversation_id
        self._store = store
        self.submitter = submitter
        self.planner = planner or SlotFillingPlanner()
        self.effects = effects or EffectBus()
        self.speech = speech
        self.metrics = metrics
        self.close_delay_seconds = close_delay_seconds
        self.dismissed = False
        self._tasks: set[asyncio.Task] = set()
        if speech is not None:
            self.effects.route_speech(speech)

    def _conversation(self) -> Conversation:
        return self._store.get(self.conversation_id)

    @property
    def conversation(self) -> Conversation:
        return self._conversation()

    @property
    def can_listen(self) -> bool:
        if self.dismissed or self.speech is None or self.speech.listening:
            return False
        return self._conversation().state.accepts_input

    # ------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------
    def start(self) -> Conversation:
        """Reset the conversation and greet the user."""

        conversation = self._conversation()
        conversation.reset()
        self._say(conversation, GREETING)
        conversation.state = DialogueState.AWAITING_INPUT
        logger.info("Conversation %s started", self.conversation_id)
        return conversation

    def restart(self) -> Conversation:
        self.effects.emit(StopListening())
        self.effects.emit(CancelSpeech())
        return self.start()

    def dismiss(self) -> None:
        """Stop speech I/O and forget the conversation.

        A submission already in flight is left to finish on its own.
        """

        self.dismissed = True
        self.effects.emit(StopListening())
        self.effects.emit(CancelSpeech())
        if self._store.contains(self.conversation_id):
            self._conversation().slots.clear()
            self._store.discard(self.conversation_id)
        logger.info("Conversation %s dismissed", self.conversation_id)

    # ------------------------------------------------------------
    # Listening
    # ------------------------------------------------------------
    def listen(self) -> bool:
        """Start a listening episode. Returns False when speech is unavailable or busy."""

        conversation = self._conversation()
        if not conversation.state.accepts_input:
            raise InvalidTransition(f"Cannot listen while {conversation.state.value}")
        if self.speech is None or not self.speech.supported:
            self._on_speech_error(SpeechUnsupported().message)
            return False
        if self.speech.listening:
            return False

        conversation.last_error = None
        self.speech.start_listening(self._on_speech_result, self._on_speech_error, self._on_speech_end)
        return self.speech.listening

    def stop_listening(self) -> None:
        self.effects.emit(StopListening())

    def _on_speech_result(self, transcript: str) -> None:
        self._spawn(self.handle_utterance(transcript))

    def _on_speech_error(self, reason: str) -> None:
        if not self._store.contains(self.conversation_id):
            return
        message = f"Listening failed: {reason}"
        self._conversation().last_error = message
        logger.warning("Conversation %s: %s", self.conversation_id, message)
        self.effects.emit(Notify("warning", "Voice input", message))

    def _on_speech_end(self) -> None:
        logger.debug("Listening episode ended for %s", self.conversation_id)

    def _spawn(self, coro: Coroutine) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def settle(self) -> None:
        """Wait for utterances handed over by speech callbacks to finish."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    # ------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------
    async def handle_utterance(self, text: str) -> PlannerDecision | None:
        """Process one finalized transcript.

        Returns the planner decision, or None when the utterance was ignored or
        triggered a submission.
        """

        if self.dismissed or not self._store.contains(self.conversation_id):
            return None
        conversation = self._conversation()
        if not conversation.state.accepts_input:
            logger.info("Ignoring utterance for %s in state %s", self.conversation_id, conversation.state.value)
            return None

        text = (text or "").strip()
        if not text:
            return None
        conversation.last_heard = text

        if conversation.ready_to_confirm and self.planner.is_confirmation(text):
            await self._submit(conversation)
            return None

        conversation.state = DialogueState.PROCESSING
        conversation.append_turn("user", text)
        conversation.slots.merge(extract(text, conversation.slots))
        if self.metrics:
            self.metrics.record_utterance()

        decision = self.planner.decide(PlannerContext(slots=conversation.slots))
        conversation.state = decision.next_state
        conversation.pending_slot = decision.slot
        self._say(conversation, decision.prompt)
        if not decision.ready_to_confirm:
            conversation.state = DialogueState.AWAITING_INPUT
        if self.metrics:
            self.metrics.record_prompt(decision.step.value)

        logger.debug("Conversation %s -> %s %s", self.conversation_id, decision.step.value, conversation.slots.as_dict())
        return decision

    async def request_submission(self) -> str | None:
        """Explicit submit action; only valid while awaiting confirmation."""

        conversation = self._conversation()
        if not conversation.ready_to_confirm:
            raise InvalidTransition(f"Cannot submit while {conversation.state.value}")
        return await self._submit(conversation)

    async def _submit(self, conversation: Conversation) -> str | None:
        conversation.state = DialogueState.SUBMITTING
        conversation.pending_slot = None
        conversation.last_error = None
        # Dismissal clears the live slots; the submission works on its own copy.
        slots = replace(conversation.slots)
        episode = conversation.episode

        try:
            order_id = await self.submitter.submit(slots, None if self.dismissed else self.effects)
        except SubmitError as exc:
            self._fail(conversation, episode, exc)
            return None

        if self.metrics:
            self.metrics.record_submission("completed")
        # A restart or dismissal while the request was out leaves the new
        # conversation alone; only the order notification is delivered.
        attached = self._owns(conversation, episode)
        if attached:
            conversation.order_id = order_id
            conversation.state = DialogueState.COMPLETED
            self.effects.emit(Speak(SUCCESS_ANNOUNCEMENT))
        self.effects.emit(OrderCreated(order_id))
        self.effects.emit(Notify("success", "Order created", f"Voice order {order_id} recorded."))
        if attached:
            self.effects.emit(CloseConversation(self.conversation_id, self.close_delay_seconds))
        return order_id

    def _owns(self, conversation: Conversation, episode: int) -> bool:
        if self.dismissed or conversation.episode != episode:
            return False
        return conversation.state is DialogueState.SUBMITTING

    def _fail(self, conversation: Conversation, episode: int, exc: SubmitError) -> None:
        logger.warning("Conversation %s submission failed (%s): %s", self.conversation_id, exc.outcome, exc.message)
        if self.metrics:
            self.metrics.record_submission(exc.outcome)
        if self._owns(conversation, episode):
            conversation.state = DialogueState.ERRORED
            conversation.last_error = exc.message
            self.effects.emit(Speak(exc.spoken_message))
        self.effects.emit(Notify("error", "Order submission failed", exc.message))

    def _say(self, conversation: Conversation, text: str) -> None:
        conversation.append_turn("assistant", text)
        self.effects.emit(Speak(text))
