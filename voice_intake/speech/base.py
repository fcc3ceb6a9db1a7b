"""Speech capability interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Optional

ResultCallback = Callable[[str], None]
ErrorCallback = Callable[[str], None]
EndCallback = Callable[[], None]


class SpeechCapability(ABC):
    """Recognition and synthesis, each with at most one active operation."""

    @property
    @abstractmethod
    def supported(self) -> bool:
        """Whether recognition and synthesis are available at all."""

    @property
    @abstractmethod
    def listening(self) -> bool:
        """Whether a listening episode is active."""

    @abstractmethod
    def start_listening(
        self,
        on_result: ResultCallback,
        on_error: Optional[ErrorCallback] = None,
        on_end: Optional[EndCallback] = None,
    ) -> None:
        """Begin one listening episode yielding a single final transcript."""

    @abstractmethod
    def stop_listening(self) -> None:
        """End the active listening episode, if any."""

    @abstractmethod
    def speak(self, text: str) -> None:
        """Say ``text``, preempting anything still being spoken."""

    @abstractmethod
    def cancel(self) -> None:
        """Cancel pending synthesis."""
