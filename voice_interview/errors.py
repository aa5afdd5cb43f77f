"""
Error taxonomy for the voice interview flow.

Only DeviceAccessDenied, NoDeviceFound and NoAudioCaptured reach the
candidate as hard stops; the others are absorbed by the interview
services and replaced with a fallback value.
"""
from typing import Optional


class VoiceInterviewError(Exception):
    """Base class for all voice interview errors."""


class DeviceAccessDenied(VoiceInterviewError):
    """Permission to use the audio input device was refused."""


class NoDeviceFound(VoiceInterviewError):
    """No audio input device is available."""


class NoAudioCaptured(VoiceInterviewError):
    """A recording finished with a zero-length payload."""


class TranscriptionFailed(VoiceInterviewError):
    """The transcription backend could not produce text."""


class GenerationFailed(VoiceInterviewError):
    """The response generation backend could not produce a reply."""


class SynthesisUnavailable(VoiceInterviewError):
    """No voice (or no working engine) is available for speech output."""


class EvaluationFailed(VoiceInterviewError):
    """The evaluation backend returned nothing usable."""


class ServiceError(VoiceInterviewError):
    """A remote interview function failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
