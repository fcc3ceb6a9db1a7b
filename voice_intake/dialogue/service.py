"""Owns the controllers of all active conversations."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from voice_intake.core.metrics import MetricsCollector
from voice_intake.dialogue.controller import DialogueController
from voice_intake.dialogue.effects import CloseConversation, EffectBus, OrderCreated
from voice_intake.memory.store import ConversationStore
from voice_intake.speech.base import SpeechCapability
from voice_intake.speech.buffered import BufferedSpeech
from voice_intake.tools.orders import OrderSubmitter

logger = logging.getLogger("voice_intake.dialogue")


class DialogueService:
    """Create, look up and close conversations."""

    def __init__(
        self,
        store: ConversationStore,
        submitter: OrderSubmitter,
        *,
        metrics: MetricsCollector | None = None,
        close_delay_seconds: float = 3.0,
        speech_factory: Callable[[], SpeechCapability] = BufferedSpeech,
    ) -> None:
        self.store = store
        self.submitter = submitter
        self.metrics = metrics
        self.close_delay_seconds = close_delay_seconds
        self._speech_factory = speech_factory
        self._controllers: dict[str, DialogueController] = {}

    def open(self) -> DialogueController:
        conversation = self.store.create()
        effects = EffectBus()
        effects.register(CloseConversation, self._schedule_close)
        effects.register(OrderCreated, self._order_created)

        controller = DialogueController(
            conversation.conversation_id,
            self.store,
            self.submitter,
            effects=effects,
            speech=self._speech_factory(),
            metrics=self.metrics,
            close_delay_seconds=self.close_delay_seconds,
        )
        self._controllers[conversation.conversation_id] = controller
        controller.start()
        return controller

    def get(self, conversation_id: str) -> DialogueController:
        self.store.get(conversation_id)
        return self._controllers[conversation_id]

    def close(self, conversation_id: str) -> bool:
        controller = self._controllers.pop(conversation_id, None)
        if controller is None:
            return self.store.discard(conversation_id)
        controller.dismiss()
        return True

    def __len__(self) -> int:
        return len(self._controllers)

    def _schedule_close(self, effect: CloseConversation) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.close(effect.conversation_id)
            return
        loop.call_later(effect.delay_seconds, self.close, effect.conversation_id)

    def _order_created(self, effect: OrderCreated) -> None:
        logger.info("Order %s created by voice", effect.order_id)
