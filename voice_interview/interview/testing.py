"""
Testing infrastructure with fake collaborators for the interview flow.

The fakes replace the microphone, the speech engine and the remote
backends so the whole turn loop can run inside a plain asyncio.run().
"""
import threading
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

from .models import ConversationMessage
from .orchestrator import VoiceInterviewOrchestrator
from .questions import QuestionSet, get_question_set
from .schemas import EvaluationResult
from .services import (
    EvaluationBackend, InterviewEvaluator, ReplyBackend, SpeechToTextClient
)
from .session import InterviewSession
from .synthesis import SpeechSynthesisController
from ..config import SAMPLE_RATE_CAPTURE, CHUNK_MS, VoiceConfig
from ..infrastructure.audio import AudioInputDevice, MicrophoneCapture, RecordedAudio
from ..infrastructure.data import SessionRecord, SessionStore
from ..infrastructure.speech import SpeechEngine, Transcriber, Voice

Scripted = Union[str, Exception]


def tone_chunk(ms: int = CHUNK_MS, sr: int = SAMPLE_RATE_CAPTURE,
               freq: float = 440.0, amplitude: float = 0.3) -> bytes:
    """One PCM16 chunk of a sine tone."""
    t = np.arange(int(sr * ms / 1000)) / sr
    return (np.sin(2 * np.pi * freq * t) * amplitude * 32767).astype(np.int16).tobytes()


class FakeInputDevice(AudioInputDevice):
    """Input device that delivers its chunks as soon as it is opened."""

    def __init__(self,
                 chunks: Optional[List[bytes]] = None,
                 error: Optional[Exception] = None,
                 sample_rate: int = SAMPLE_RATE_CAPTURE,
                 channels: int = 1):
        self.chunks = chunks if chunks is not None else [tone_chunk() for _ in range(5)]
        self.error = error
        self.sample_rate = sample_rate
        self.channels = channels
        self.open_count = 0
        self.close_count = 0
        self._open = False
        self.on_chunk = None

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self, on_chunk) -> None:
        self.open_count += 1
        if self.error is not None:
            raise self.error
        self._open = True
        self.on_chunk = on_chunk
        for chunk in self.chunks:
            on_chunk(chunk)

    def close(self) -> None:
        if self._open:
            self.close_count += 1
        self._open = False


class FakeSpeechEngine(SpeechEngine):
    """
    Records utterances instead of playing them.

    `started` lists every play() call, `played` only utterances that
    ran to completion. A startup delay gives tests a window in which
    the utterance can be canceled.
    """

    def __init__(self, voices: Optional[List[Voice]] = None,
                 startup_delay: float = 0.0,
                 error: Optional[Exception] = None):
        self.voices = voices if voices is not None else [
            Voice("en-US-Test-Male", "en-US", "male"),
            Voice("en-US-Test-Female", "en-US", "female"),
        ]
        self.startup_delay = startup_delay
        self.error = error
        self.started: List[str] = []
        self.played: List[str] = []
        self.settings: List[VoiceConfig] = []
        self.voices_used: List[Voice] = []
        self._lock = threading.Lock()

    def list_voices(self) -> List[Voice]:
        return list(self.voices)

    def play(self, text: str, voice: Voice, settings: VoiceConfig,
             stop_event: threading.Event) -> bool:
        with self._lock:
            self.started.append(text)
            self.settings.append(settings)
            self.voices_used.append(voice)
        if self.error is not None:
            raise self.error
        if self.startup_delay and stop_event.wait(self.startup_delay):
            return False
        if stop_event.is_set():
            return False
        with self._lock:
            self.played.append(text)
        return True


class FakeTranscriber(Transcriber):
    """Returns scripted texts in order; exceptions in the script are raised."""

    def __init__(self, responses: Optional[Sequence[Scripted]] = None, default: str = ""):
        self.responses = list(responses or [])
        self.default = default
        self.calls: List[RecordedAudio] = []

    def transcribe(self, audio: RecordedAudio, language: str = "en-US") -> str:
        self.calls.append(audio)
        if not self.responses:
            return self.default
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class FakeReplyBackend(ReplyBackend):
    """Returns scripted replies in order, then a neutral default."""

    def __init__(self, replies: Optional[Sequence[Scripted]] = None,
                 default: str = "That's a helpful answer."):
        self.replies = list(replies or [])
        self.default = default
        self.calls: List[Dict[str, Any]] = []

    def generate(self, user_text: str, context: str,
                 window: Sequence[ConversationMessage],
                 question_set: str, question_index: int) -> str:
        self.calls.append({
            "user_text": user_text,
            "context": context,
            "window": list(window),
            "question_set": question_set,
            "question_index": question_index,
        })
        if not self.replies:
            return self.default
        result = self.replies.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class FakeEvaluationBackend(EvaluationBackend):
    def __init__(self, result: Optional[Union[EvaluationResult, Exception]] = None):
        self.result = result
        self.calls: List[Dict[str, Any]] = []

    def evaluate(self, transcript: List[Dict[str, Any]], role: str,
                 job_description: str) -> EvaluationResult:
        self.calls.append({"transcript": transcript, "role": role,
                           "job_description": job_description})
        if isinstance(self.result, Exception):
            raise self.result
        if self.result is None:
            return EvaluationResult(communication=8, confidence=7, relevance=9,
                                    overall_fit=82, skills=["React"], summary="Solid answers.")
        return self.result


class MemorySessionStore(SessionStore):
    def __init__(self):
        self.records: Dict[str, SessionRecord] = {}

    def save(self, record: SessionRecord) -> None:
        self.records[record.session_id] = record

    def load(self, session_id: str) -> Optional[SessionRecord]:
        return self.records.get(session_id)

    def list_ids(self) -> List[str]:
        return sorted(self.records)


def create_fake_orchestrator(transcripts: Optional[Sequence[Scripted]] = None,
                             replies: Optional[Sequence[Scripted]] = None,
                             questions: Optional[QuestionSet] = None,
                             device: Optional[FakeInputDevice] = None,
                             engine: Optional[FakeSpeechEngine] = None,
                             evaluation: Optional[Union[EvaluationResult, Exception]] = None,
                             voice_config: Optional[VoiceConfig] = None,
                             allow_follow_ups: bool = False,
                             max_follow_ups: int = 2,
                             timeout: float = 5.0) -> VoiceInterviewOrchestrator:
    """
    Build an orchestrator wired entirely to fakes.

    The fakes are reachable as attributes: `orchestrator.synthesis.engine`, `orchestrator.stt.transcriber`,
    `orchestrator.generator.backend`, `orchestrator.evaluator.backend`
    and `orchestrator.store`.
    """
    device = device or FakeInputDevice()
    engine = engine or FakeSpeechEngine()
    synthesis = SpeechSynthesisController(engine)
    session = InterviewSession(questions or get_question_set("technical"),
                               allow_follow_ups=allow_follow_ups,
                               max_follow_ups=max_follow_ups,
                               on_stop=synthesis.cancel)
    capture = MicrophoneCapture(lambda: device)
    return VoiceInterviewOrchestrator(
        session=session,
        capture=capture,
        stt=SpeechToTextClient(FakeTranscriber(transcripts), timeout=timeout),
        synthesis=synthesis,
        reply_backend=FakeReplyBackend(replies),
        voice_config=voice_config or VoiceConfig(),
        evaluator=InterviewEvaluator(FakeEvaluationBackend(evaluation), timeout=timeout),
        store=MemorySessionStore(),
        job_role="Frontend Engineer",
        job_description="React, TypeScript",
        service_timeout=timeout,
    )


__all__ = [
    "tone_chunk", "FakeInputDevice", "FakeSpeechEngine", "FakeTranscriber",
    "FakeReplyBackend", "FakeEvaluationBackend", "MemorySessionStore",
    "create_fake_orchestrator",
]
