"""Speech capability whose recognition and synthesis happen in the client.

The HTTP service cannot hear or speak itself; the browser does both. This
implementation keeps the episode bookkeeping server-side: the client reports
a transcript (``deliver``) or a recognition error (``fail``), and the most
recent spoken text is kept for inspection.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Optional

from voice_intake.core.errors import SpeechFailure, SpeechUnsupported

from .base import EndCallback, ErrorCallback, ResultCallback, SpeechCapability

logger = logging.getLogger("voice_intake.speech")

# Only the latest utterances are kept; clients read speech from the effects.
SPOKEN_BACKLOG = 20


@dataclass(slots=True)
class _Episode:
    on_result: ResultCallback
    on_error: Optional[ErrorCallback]
    on_end: Optional[EndCallback]


class BufferedSpeech(SpeechCapability):
    def __init__(self, supported: bool = True) -> None:
        self._supported = supported
        self._episode: _Episode | None = None
        self.speaking: str | None = None
        self.spoken: deque[str] = deque(maxlen=SPOKEN_BACKLOG)

    @property
    def supported(self) -> bool:
        return self._supported

    @property
    def listening(self) -> bool:
        return self._episode is not None

    def start_listening(
        self,
        on_result: ResultCallback,
        on_error: Optional[ErrorCallback] = None,
        on_end: Optional[EndCallback] = None,
    ) -> None:
        if not self._supported:
            if on_error:
                on_error(SpeechUnsupported.user_message)
            return
        if self._episode is not None:
            if on_error:
                on_error("Recognition already active")
            return
        self._episode = _Episode(on_result, on_error, on_end)
        logger.debug("Voice recognition started")

    def stop_listening(self) -> None:
        episode, self._episode = self._episode, None
        if episode and episode.on_end:
            episode.on_end()

    def deliver(self, transcript: str) -> None:
        """Complete the active episode with a final transcript."""

        episode = self._take_episode()
        episode.on_result(transcript)
        if episode.on_end:
            episode.on_end()

    def fail(self, reason: str) -> None:
        """Complete the active episode with a recognition error."""

        episode = self._take_episode()
        logger.warning("Voice recognition error: %s", reason)
        if episode.on_error:
            episode.on_error(reason)
        if episode.on_end:
            episode.on_end()

    def speak(self, text: str) -> None:
        if not self._supported:
            logger.warning("Speech synthesis not supported")
            return
        self.cancel()
        self.speaking = text
        self.spoken.append(text)

    def cancel(self) -> None:
        self.speaking = None

    def _take_episode(self) -> _Episode:
        episode, self._episode = self._episode, None
        if episode is None:
            raise SpeechFailure("No active listening episode")
        return episode
