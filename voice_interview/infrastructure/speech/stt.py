"""
Speech-to-text backends.

Backends raise TranscriptionFailed; turning a failure into the fallback
sentence is the job of the interview layer.
"""
import logging
from abc import ABC, abstractmethod
from typing import Optional

from ..api import InterviewApiClient
from ..audio import RecordedAudio
from ...config import TRANSCRIPTION_FUNCTION, AUDIO_FILENAME, LANGUAGE_CODE
from ...errors import ServiceError, TranscriptionFailed

logger = logging.getLogger("speech_stt")


class Transcriber(ABC):
    """Turns one recorded answer into text. Silence yields an empty string."""

    @abstractmethod
    def transcribe(self, audio: RecordedAudio, language: str = LANGUAGE_CODE) -> str:
        """
        Raises:
            TranscriptionFailed: if the backend could not produce a result
        """


class ServiceTranscriber(Transcriber):
    """Uploads the recording to the remote transcription function, which answers {"text": ...}."""

    def __init__(self, client: InterviewApiClient, function: str = TRANSCRIPTION_FUNCTION):
        self.client = client
        self.function = function

    def transcribe(self, audio: RecordedAudio, language: str = LANGUAGE_CODE) -> str:
        try:
            data = self.client.post_file(self.function, AUDIO_FILENAME, audio.data,
                                         audio.mime_type, fields={"language": language})
        except ServiceError as e:
            raise TranscriptionFailed(str(e)) from e

        if data.get("error"):
            raise TranscriptionFailed(f"Transcription service error: {data['error']}")

        text = data.get("text", "")
        if text is None:
            return ""
        if not isinstance(text, str):
            raise TranscriptionFailed(f"Malformed transcription payload: {data!r}")
        return text.strip()


class GoogleSpeechTranscriber(Transcriber):
    """Synchronous Google Cloud Speech-to-Text recognition of a LINEAR16 WAV recording."""

    def __init__(self, client=None):
        self._client = client

    def _speech_client(self):
        if self._client is None:
            from google.cloud import speech
            from google.auth.exceptions import DefaultCredentialsError
            try:
                self._client = speech.SpeechClient()
            except DefaultCredentialsError as e:
                raise TranscriptionFailed(f"No Google credentials for speech recognition: {e}") from e
        return self._client

    def transcribe(self, audio: RecordedAudio, language: str = LANGUAGE_CODE) -> str:
        from google.cloud import speech
        from google.api_core import exceptions as google_exceptions
        from google.auth.exceptions import GoogleAuthError

        config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=audio.sample_rate,
            language_code=language,
            enable_automatic_punctuation=True,
        )
        try:
            resp = self._speech_client().recognize(
                config=config, audio=speech.RecognitionAudio(content=audio.data))
        except (google_exceptions.GoogleAPIError, GoogleAuthError) as e:
            raise TranscriptionFailed(f"Google speech recognition failed: {e}") from e

        texts = [r.alternatives[0].transcript for r in resp.results if r.alternatives]
        return " ".join(texts).strip()


def create_transcriber(backend: str, client: Optional[InterviewApiClient] = None) -> Transcriber:
    """Build the transcriber selected by the STT_BACKEND setting."""
    if backend == "google":
        return GoogleSpeechTranscriber()
    if backend == "service":
        if client is None:
            raise ValueError("The service transcriber needs an InterviewApiClient")
        return ServiceTranscriber(client)
    raise ValueError(f"Unknown STT backend: {backend}")
