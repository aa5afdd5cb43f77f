"""Speech recognition and synthesis backends."""

from .stt import Transcriber, ServiceTranscriber, GoogleSpeechTranscriber, create_transcriber
from .tts import (
    Voice, SpeechEngine, GoogleCloudSpeechEngine, ServiceSpeechEngine, ConsoleSpeechEngine, select_voice
)

__all__ = [
    "Transcriber", "ServiceTranscriber", "GoogleSpeechTranscriber", "create_transcriber",
    "Voice", "SpeechEngine", "GoogleCloudSpeechEngine", "ServiceSpeechEngine", "ConsoleSpeechEngine",
    "select_voice",
]
