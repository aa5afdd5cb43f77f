"""Infrastructure components for the voice interview system.

This module contains low-level technical components: audio devices,
speech engines, remote service clients and record storage.
"""

# Audio infrastructure
from .audio import MicrophoneCapture, RecordedAudio, PyAudioInputDevice

# Remote services
from .api import InterviewApiClient
from .llm import VertexRestClient

# Speech
from .speech import (
    Transcriber, ServiceTranscriber, GoogleSpeechTranscriber,
    SpeechEngine, GoogleCloudSpeechEngine, ServiceSpeechEngine, ConsoleSpeechEngine, Voice, select_voice
)

# Storage
from .data import SessionRecord, SessionStore, JsonSessionStore

__all__ = [
    # Audio
    "MicrophoneCapture", "RecordedAudio", "PyAudioInputDevice",

    # Remote services
    "InterviewApiClient", "VertexRestClient",

    # Speech
    "Transcriber", "ServiceTranscriber", "GoogleSpeechTranscriber",
    "SpeechEngine", "GoogleCloudSpeechEngine", "ServiceSpeechEngine", "ConsoleSpeechEngine",
    "Voice", "select_voice",

    # Storage
    "SessionRecord", "SessionStore", "JsonSessionStore",
]
