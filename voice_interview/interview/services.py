"""
Service classes for the interview flow.

Each service wraps one remote capability, runs its blocking backend off
the event loop with a bounded timeout, and converts failures into the
fallback value the turn loop can keep going with.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from .models import (
    ConversationMessage, GeneratedReply, MessageRole, Transcription, TranscriptionStatus
)
from .prompts import InterviewPrompts
from .schemas import (
    EvaluationRequest, EvaluationResult, ReplyRequest, ReplyResponse, parse_evaluation
)
from .session import InterviewSession
from ..config import (
    CONTEXT_WINDOW, EVALUATION_FUNCTION, EVALUATION_INPUT_LIMIT, LANGUAGE_CODE,
    LLM_TIMEOUT, REPLY_FUNCTION, SERVICE_TIMEOUT
)
from ..errors import EvaluationFailed, GenerationFailed, NoAudioCaptured, ServiceError, TranscriptionFailed
from ..infrastructure.api import InterviewApiClient
from ..infrastructure.audio import RecordedAudio
from ..infrastructure.llm import VertexRestClient
from ..infrastructure.speech import Transcriber

logger = logging.getLogger("services")


# =============================================================================
# SPEECH TO TEXT
# =============================================================================

class SpeechToTextClient:
    """Transcribes recordings, substituting a retry sentence on failure."""

    def __init__(self, transcriber: Transcriber,
                 language: str = LANGUAGE_CODE,
                 timeout: float = SERVICE_TIMEOUT):
        self.transcriber = transcriber
        self.language = language
        self.timeout = timeout

    async def transcribe(self, audio: RecordedAudio) -> Transcription:
        """
        Returns:
            OK with the recognized text, EMPTY for silence, or FALLBACK
            with the retry sentence when the backend failed or timed out

        Raises:
            NoAudioCaptured: for a zero-length recording, which is never uploaded
        """
        if audio.is_empty:
            raise NoAudioCaptured("Recording is empty")
        try:
            text = await asyncio.wait_for(
                asyncio.to_thread(self.transcriber.transcribe, audio, self.language),
                timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Transcription timed out after {self.timeout}s, using fallback text")
            return self._fallback()
        except TranscriptionFailed as e:
            logger.warning(f"Transcription failed, using fallback text: {e}")
            return self._fallback()

        text = (text or "").strip()
        if not text:
            logger.info("Transcription returned no speech")
            return Transcription("", TranscriptionStatus.EMPTY)
        logger.info(f"Transcribed: {text}")
        return Transcription(text, TranscriptionStatus.OK)

    @staticmethod
    def _fallback() -> Transcription:
        return Transcription(InterviewPrompts.fallback_messages()["transcription"],
                             TranscriptionStatus.FALLBACK)


# =============================================================================
# RESPONSE GENERATION
# =============================================================================

class ReplyBackend(ABC):
    """Produces the interviewer's reply to one answer. Blocking."""

    @abstractmethod
    def generate(self, user_text: str, context: str,
                 window: Sequence[ConversationMessage],
                 question_set: str, question_index: int) -> str:
        """
        Raises:
            GenerationFailed or ServiceError: if no reply could be produced
        """


class ServiceReplyBackend(ReplyBackend):
    """Remote chat function in interviewer mode, answering {"response": ...}."""

    def __init__(self, client: InterviewApiClient, function: str = REPLY_FUNCTION):
        self.client = client
        self.function = function

    def generate(self, user_text: str, context: str,
                 window: Sequence[ConversationMessage],
                 question_set: str, question_index: int) -> str:
        request = ReplyRequest(
            message=user_text,
            context=InterviewPrompts.with_history(context, [m.as_context_line() for m in window]),
            question_set=question_set,
            current_question=question_index,
        )
        data = self.client.post_json(self.function, request.to_payload())
        if data.get("error"):
            raise GenerationFailed(f"Reply service error: {data['error']}")
        try:
            response = ReplyResponse.model_validate(data).response
        except ValidationError as e:
            raise GenerationFailed(f"Malformed reply payload: {e}") from e
        return (response or "").strip() or InterviewPrompts.fallback_messages()["empty_reply"]


class VertexReplyBackend(ReplyBackend):
    """Gemini on Vertex AI, prompted directly as the interviewer."""

    def __init__(self, llm: VertexRestClient):
        self.llm = llm

    def generate(self, user_text: str, context: str,
                 window: Sequence[ConversationMessage],
                 question_set: str, question_index: int) -> str:
        full_context = InterviewPrompts.with_history(context, [m.as_context_line() for m in window])
        text = self.llm.generate_content(
            [{"role": "user", "text": user_text}],
            system_instruction=InterviewPrompts.interviewer_system_instruction(full_context),
        )
        return text.strip() or InterviewPrompts.fallback_messages()["empty_reply"]


class ResponseGenerator:
    """
    Generates the interviewer reply and records the answer/reply pair.

    The pair is appended to the session history whether the reply came
    from the backend or is the fallback, unless the session was stopped
    or restarted while the request was in flight.
    """

    def __init__(self, backend: ReplyBackend, session: InterviewSession,
                 window: int = CONTEXT_WINDOW,
                 timeout: float = SERVICE_TIMEOUT):
        self.backend = backend
        self.session = session
        self.window = window
        self.timeout = timeout

    async def generate(self, user_text: str, context: str,
                       epoch: Optional[int] = None) -> GeneratedReply:
        window = self.session.recent_messages(self.window)
        is_fallback = False
        try:
            reply = await asyncio.wait_for(
                asyncio.to_thread(self.backend.generate, user_text, context, window,
                                  self.session.questions.name,
                                  self.session.current_question_index),
                timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Reply generation timed out after {self.timeout}s, using fallback reply")
            reply, is_fallback = InterviewPrompts.fallback_messages()["reply"], True
        except (GenerationFailed, ServiceError) as e:
            logger.warning(f"Reply generation failed, using fallback reply: {e}")
            reply, is_fallback = InterviewPrompts.fallback_messages()["reply"], True

        recorded = self.session.record_exchange(user_text, reply, epoch)
        return GeneratedReply(text=reply, is_fallback=is_fallback, recorded=recorded)


# =============================================================================
# EVALUATION
# =============================================================================

class EvaluationBackend(ABC):
    """Scores a finished transcript. Blocking."""

    @abstractmethod
    def evaluate(self, transcript: List[Dict[str, Any]], role: str,
                 job_description: str) -> EvaluationResult:
        """
        Raises:
            EvaluationFailed or ServiceError: if no valid score object was produced
        """


class ServiceEvaluationBackend(EvaluationBackend):
    def __init__(self, client: InterviewApiClient, function: str = EVALUATION_FUNCTION):
        self.client = client
        self.function = function

    def evaluate(self, transcript: List[Dict[str, Any]], role: str,
                 job_description: str) -> EvaluationResult:
        request = EvaluationRequest(transcript=transcript, role=role,
                                    job_description=job_description)
        data = self.client.post_json(self.function, request.to_payload())
        if data.get("error"):
            raise EvaluationFailed(f"Evaluation service error: {data['error']}")
        return parse_evaluation(data)


class VertexEvaluationBackend(EvaluationBackend):
    def __init__(self, llm: VertexRestClient, input_limit: int = EVALUATION_INPUT_LIMIT):
        self.llm = llm
        self.input_limit = input_limit

    def evaluate(self, transcript: List[Dict[str, Any]], role: str,
                 job_description: str) -> EvaluationResult:
        try:
            data = self.llm.generate_json(
                InterviewPrompts.evaluation_prompt(transcript, self.input_limit),
                system_instruction=InterviewPrompts.evaluation_system_instruction(role, job_description),
            )
        except ValueError as e:
            raise EvaluationFailed(str(e)) from e
        return parse_evaluation(data)


class InterviewEvaluator:
    """Post-interview scoring with a heuristic fallback."""

    def __init__(self, backend: EvaluationBackend, timeout: float = LLM_TIMEOUT):
        self.backend = backend
        self.timeout = timeout

    async def evaluate(self, transcript: Sequence[ConversationMessage], role: str,
                       job_description: str = "") -> EvaluationResult:
        payload = [m.to_dict() for m in transcript if m.role != MessageRole.SYSTEM]
        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(self.backend.evaluate, payload, role, job_description),
                timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Evaluation timed out after {self.timeout}s, using heuristic scores")
            return EvaluationResult.fallback()
        except (EvaluationFailed, ServiceError) as e:
            logger.warning(f"Evaluation failed, using heuristic scores: {e}")
            return EvaluationResult.fallback()

        logger.info(f"Evaluation: overall_fit={result.overall_fit} communication={result.communication}")
        return result
