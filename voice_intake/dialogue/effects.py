"""Named side-effect requests emitted by the dialogue controller.

The controller never opens pages or talks to the speech engine directly; it
emits one of these requests on an ``EffectBus``. The bus keeps a record of
everything emitted (returned to HTTP clients and inspected by tests) and hands
each request to the handler registered for its type, if any.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Callable, ClassVar, TypeVar

from voice_intake.speech.base import SpeechCapability

logger = logging.getLogger("voice_intake.effects")


@dataclass(frozen=True, slots=True)
class Effect:
    kind: ClassVar[str] = "effect"

    def as_dict(self) -> dict[str, Any]:
        return {"type": self.kind, **asdict(self)}


@dataclass(frozen=True, slots=True)
class Speak(Effect):
    kind: ClassVar[str] = "speak"

    text: str


@dataclass(frozen=True, slots=True)
class StopListening(Effect):
    kind: ClassVar[str] = "stop_listening"


@dataclass(frozen=True, slots=True)
class CancelSpeech(Effect):
    kind: ClassVar[str] = "cancel_speech"


@dataclass(frozen=True, slots=True)
class OpenUrl(Effect):
    """Open ``url`` in a new browsing context."""

    kind: ClassVar[str] = "open_url"

    url: str


@dataclass(frozen=True, slots=True)
class Notify(Effect):
    kind: ClassVar[str] = "notify"

    level: str
    header: str
    content: str


@dataclass(frozen=True, slots=True)
class OrderCreated(Effect):
    kind: ClassVar[str] = "order_created"

    order_id: str


@dataclass(frozen=True, slots=True)
class CloseConversation(Effect):
    kind: ClassVar[str] = "close_conversation"

    conversation_id: str
    delay_seconds: float


E = TypeVar("E", bound=Effect)
Handler = Callable[[Any], None]


class EffectBus:
    """Record and dispatch side-effect requests.

    All effects are best-effort: a failing handler is logged and never aborts
    the dialogue step that emitted the request.
    """

    def __init__(self, handlers: dict[type[Effect], Handler] | None = None) -> None:
        self._handlers: dict[type[Effect], Handler] = dict(handlers or {})
        self._pending: list[Effect] = []
        self.history: list[Effect] = []

    def register(self, effect_type: type[E], handler: Callable[[E], None]) -> None:
        self._handlers[effect_type] = handler

    def route_speech(self, speech: SpeechCapability) -> None:
        """Send speech requests to ``speech``, stopping the recognizer before speaking."""

        def speak(effect: Speak) -> None:
            if speech.listening:
                speech.stop_listening()
            speech.speak(effect.text)

        self.register(Speak, speak)
        self.register(StopListening, lambda effect: speech.stop_listening())
        self.register(CancelSpeech, lambda effect: speech.cancel())

    def emit(self, effect: Effect) -> None:
        self.history.append(effect)
        self._pending.append(effect)

        handler = self._handlers.get(type(effect))
        if handler is None:
            return
        try:
            handler(effect)
        except Exception:  # noqa: BLE001
            logger.warning("Side effect %s failed", effect.kind, exc_info=True)

    def drain(self) -> list[Effect]:
        """Return effects emitted since the last drain."""

        pending, self._pending = self._pending, []
        return pending

    def of_type(self, effect_type: type[E]) -> list[E]:
        return [effect for effect in self.history if isinstance(effect, effect_type)]
