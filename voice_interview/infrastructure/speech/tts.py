"""
Text-to-speech engines.

Engines are blocking and run off the event loop. play() checks the
stop event between audio chunks so an utterance can be cut short.
"""
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..api import InterviewApiClient
from ..audio import PyAudioOutput, decode_audio, decode_wav, scale_volume
from ...config import SERVICE_VOICE_ID, SPEAKER_SAMPLE_RATE, SPEECH_FUNCTION, VoiceConfig
from ...errors import ServiceError, SynthesisUnavailable

logger = logging.getLogger("speech_tts")


@dataclass(frozen=True)
class Voice:
    name: str
    language: str
    gender: str = ""


def select_voice(voices: Sequence[Voice], language: str, preferred: str = "") -> Optional[Voice]:
    """
    Pick a voice for the configured language.

    Preference order: language match whose name or gender contains the
    preferred hint, then any language match, then the first voice.
    Returns None when no voices exist.
    """
    if not voices:
        return None

    prefix = language.split("-")[0].lower()
    in_language = [v for v in voices if v.language.lower().startswith(prefix)]

    if preferred:
        hint = preferred.lower()
        for voice in in_language:
            if hint in voice.name.lower() or hint == voice.gender.lower():
                return voice

    if in_language:
        return in_language[0]
    return voices[0]


class SpeechEngine(ABC):
    """Synthesizes and plays one utterance at a time."""

    @abstractmethod
    def list_voices(self) -> List[Voice]:
        """Return the voices this engine can use (may be empty)."""

    @abstractmethod
    def play(self, text: str, voice: Voice, settings: VoiceConfig,
             stop_event: threading.Event) -> bool:
        """
        Speak text and block until done or stopped.

        Returns:
            True if the utterance played to completion
        """


class GoogleCloudSpeechEngine(SpeechEngine):
    """Google Cloud Text-to-Speech synthesized as LINEAR16 and played through PyAudio."""

    def __init__(self,
                 output: Optional[PyAudioOutput] = None,
                 sample_rate: int = SPEAKER_SAMPLE_RATE,
                 client=None):
        self.output = output or PyAudioOutput()
        self.sample_rate = sample_rate
        self._client = client

    def _tts_client(self):
        if self._client is None:
            from google.cloud import texttospeech
            from google.auth.exceptions import DefaultCredentialsError
            try:
                self._client = texttospeech.TextToSpeechClient()
            except DefaultCredentialsError as e:
                raise SynthesisUnavailable(f"No Google credentials for text-to-speech: {e}") from e
        return self._client

    def list_voices(self) -> List[Voice]:
        from google.cloud import texttospeech
        from google.api_core import exceptions as google_exceptions
        from google.auth.exceptions import GoogleAuthError

        try:
            response = self._tts_client().list_voices()
        except (google_exceptions.GoogleAPIError, GoogleAuthError) as e:
            logger.warning(f"Could not list Google voices: {e}")
            return []

        voices = []
        for v in response.voices:
            gender = texttospeech.SsmlVoiceGender(v.ssml_gender).name.lower()
            for code in v.language_codes:
                voices.append(Voice(name=v.name, language=code, gender=gender))
        logger.info(f"Loaded {len(voices)} Google voices")
        return voices

    def play(self, text: str, voice: Voice, settings: VoiceConfig,
             stop_event: threading.Event) -> bool:
        from google.cloud import texttospeech
        from google.api_core import exceptions as google_exceptions
        from google.auth.exceptions import GoogleAuthError

        if not text.strip():
            return True

        try:
            response = self._tts_client().synthesize_speech(
                input=texttospeech.SynthesisInput(text=text),
                voice=texttospeech.VoiceSelectionParams(
                    language_code=voice.language or settings.language, name=voice.name),
                audio_config=texttospeech.AudioConfig(
                    audio_encoding=texttospeech.AudioEncoding.LINEAR16,
                    sample_rate_hertz=self.sample_rate,
                    speaking_rate=settings.speed,
                ),
            )
        except (google_exceptions.GoogleAPIError, GoogleAuthError) as e:
            raise SynthesisUnavailable(f"Google TTS failed: {e}") from e

        # Canceled while the request was in flight
        if stop_event.is_set():
            return False

        pcm16, sample_rate, channels = decode_wav(response.audio_content)
        return self.output.play(scale_volume(pcm16, settings.volume),
                                sample_rate, channels, stop_event)


class ServiceSpeechEngine(SpeechEngine):
    """
    Remote voice function: posts {"text", "voiceId"} and plays the audio it returns.

    The function answers with encoded audio (MP3 for the hosted voice
    service); playback goes through PyAudio like the Google engine.
    """

    def __init__(self,
                 client: InterviewApiClient,
                 output: Optional[PyAudioOutput] = None,
                 function: str = SPEECH_FUNCTION,
                 voices: Optional[Sequence[Voice]] = None):
        self.client = client
        self.output = output or PyAudioOutput()
        self.function = function
        self.voices = list(voices) if voices is not None else [
            Voice(name=SERVICE_VOICE_ID, language="en-US", gender="female")]

    def list_voices(self) -> List[Voice]:
        return list(self.voices)

    def play(self, text: str, voice: Voice, settings: VoiceConfig,
             stop_event: threading.Event) -> bool:
        if not text.strip():
            return True

        try:
            data = self.client.post_for_audio(self.function, {"text": text, "voiceId": voice.name})
        except ServiceError as e:
            raise SynthesisUnavailable(f"Voice service failed: {e}") from e

        if stop_event.is_set():
            return False

        try:
            pcm16, sample_rate, channels = decode_audio(data)
        except ImportError as e:
            raise SynthesisUnavailable(f"soundfile is needed to decode {self.function} audio: {e}") from e
        except ValueError as e:
            raise SynthesisUnavailable(f"Undecodable audio from {self.function}: {e}") from e
        return self.output.play(scale_volume(pcm16, settings.volume),
                                sample_rate, channels, stop_event)


class ConsoleSpeechEngine(SpeechEngine):
    """Text-only output for when speech is disabled."""

    def list_voices(self) -> List[Voice]:
        return [Voice(name="console", language="")]

    def play(self, text: str, voice: Voice, settings: VoiceConfig,
             stop_event: threading.Event) -> bool:
        if stop_event.is_set():
            return False
        print(f"🤖 {text}")
        return True
