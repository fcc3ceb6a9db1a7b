"""Speech capability boundary."""

from .base import SpeechCapability
from .buffered import BufferedSpeech

__all__ = ["BufferedSpeech", "SpeechCapability"]
