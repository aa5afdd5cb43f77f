"""
Voice interview orchestrator.

Wires capture, transcription, reply generation and speech into the turn
loop: speak question, listen, transcribe, reply, speak reply, advance.
Every step that can fail produces a Notice and returns control to
"waiting for the next recording"; nothing here ends the process.

Results that arrive after the session was stopped or restarted are
dropped: each turn remembers the session epoch it started in and checks
it after every await.
"""
import asyncio
import logging
from dataclasses import replace
from typing import Any, Callable, List, Optional

from .events import (
    InterviewEventBus, EventLogger, InterviewMetrics,
    InterviewStartedEvent, QuestionAskedEvent, RecordingStartedEvent,
    TranscriptionCompletedEvent, ReplyGeneratedEvent, TurnCompletedEvent,
    NoticeRaisedEvent, InterviewCompletedEvent, InterviewStoppedEvent,
    EvaluationCompletedEvent, ErrorOccurredEvent
)
from .models import Notice, NoticeKind, TranscriptionStatus, TurnOutcome, TurnStatus, notice
from .prompts import InterviewPrompts
from .questions import QuestionSet, get_question_set
from .services import (
    SpeechToTextClient, ResponseGenerator, InterviewEvaluator, ReplyBackend,
    ServiceReplyBackend, VertexReplyBackend, ServiceEvaluationBackend, VertexEvaluationBackend
)
from .session import InterviewSession
from .synthesis import SpeechSynthesisController
from ..config import Config, VoiceConfig, JOB_ROLE, JOB_DESCRIPTION, SERVICE_TIMEOUT
from ..errors import DeviceAccessDenied, NoDeviceFound
from ..infrastructure.api import InterviewApiClient
from ..infrastructure.audio import MicrophoneCapture, AudioInputDevice, PyAudioInputDevice
from ..infrastructure.data import JsonSessionStore, SessionRecord, SessionStore
from ..infrastructure.llm import VertexRestClient
from ..infrastructure.speech import (
    ConsoleSpeechEngine, GoogleCloudSpeechEngine, ServiceSpeechEngine, SpeechEngine, create_transcriber
)

logger = logging.getLogger("orchestrator")


class VoiceInterviewOrchestrator:
    """
    Turn-taking loop for one candidate.

    All public coroutines must be called from the same event loop; the
    orchestrator processes one answer at a time.
    """

    def __init__(self,
                 session: InterviewSession,
                 capture: MicrophoneCapture,
                 stt: SpeechToTextClient,
                 synthesis: SpeechSynthesisController,
                 reply_backend: ReplyBackend,
                 voice_config: Optional[VoiceConfig] = None,
                 evaluator: Optional[InterviewEvaluator] = None,
                 store: Optional[SessionStore] = None,
                 job_role: str = JOB_ROLE,
                 job_description: str = JOB_DESCRIPTION,
                 service_timeout: float = SERVICE_TIMEOUT,
                 event_bus: Optional[InterviewEventBus] = None):
        self.session = session
        self.capture = capture
        self.stt = stt
        self.synthesis = synthesis
        self.generator = ResponseGenerator(reply_backend, session, timeout=service_timeout)
        self.voice_config = voice_config or VoiceConfig()
        self.evaluator = evaluator
        self.store = store
        self.job_role = job_role
        self.job_description = job_description

        if self.session.on_stop is None:
            self.session.on_stop = self.synthesis.cancel

        # Initialize event system
        self.event_bus = event_bus or InterviewEventBus()
        self.event_logger = EventLogger()
        self.metrics = InterviewMetrics()
        self.event_bus.subscribe_all(self.event_logger.handle_event)
        self.event_bus.subscribe_all(self.metrics.handle_event)

        self._turn_lock = asyncio.Lock()
        self._answer_done = asyncio.Event()
        self._spoken_question: Optional[tuple] = None  # (epoch, index) last announced

    @classmethod
    def from_config(cls,
                    config: Config,
                    questions: Optional[QuestionSet] = None,
                    engine: Optional[SpeechEngine] = None,
                    device_factory: Callable[[], AudioInputDevice] = PyAudioInputDevice,
                    store: Optional[SessionStore] = None) -> 'VoiceInterviewOrchestrator':
        """Build the production object graph for the configured backends."""
        client = None
        if config.needs_service():
            client = InterviewApiClient(config.service_url, config.service_key,
                                        timeout=config.service_timeout)

        if config.llm_backend == "vertex":
            llm = VertexRestClient(project=config.google_cloud_project,
                                   location=config.vertex_location,
                                   model=config.model_name,
                                   credentials_json=config.google_application_credentials)
            reply_backend = VertexReplyBackend(llm)
            evaluation_backend = VertexEvaluationBackend(llm)
        else:
            reply_backend = ServiceReplyBackend(client)
            evaluation_backend = ServiceEvaluationBackend(client)

        if engine is None:
            if not config.enable_tts:
                engine = ConsoleSpeechEngine()
            elif config.tts_backend == "service":
                engine = ServiceSpeechEngine(client)
            else:
                engine = GoogleCloudSpeechEngine()

        synthesis = SpeechSynthesisController(engine)
        session = InterviewSession(questions or get_question_set(config.question_set),
                                   allow_follow_ups=config.allow_follow_ups,
                                   max_follow_ups=config.max_follow_ups,
                                   on_stop=synthesis.cancel)
        return cls(
            session=session,
            capture=MicrophoneCapture(device_factory),
            stt=SpeechToTextClient(create_transcriber(config.stt_backend, client),
                                   language=config.language_code,
                                   timeout=config.service_timeout),
            synthesis=synthesis,
            reply_backend=reply_backend,
            voice_config=config.voice_config(),
            evaluator=InterviewEvaluator(evaluation_backend),
            store=store or JsonSessionStore(config.workdir),
            job_role=config.job_role,
            job_description=config.job_description,
            service_timeout=config.service_timeout,
        )

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def update_voice_config(self, **changes: Any) -> VoiceConfig:
        """Change voice settings; utterances already playing keep their snapshot."""
        self.voice_config = replace(self.voice_config, **changes)
        logger.info(f"Voice settings updated: {changes}")
        return self.voice_config

    # ------------------------------------------------------------------
    # Interview lifecycle
    # ------------------------------------------------------------------

    async def start_interview(self) -> None:
        """Start (or restart) the interview: greet, then ask the first question."""
        self.synthesis.cancel()
        await self.capture.stop()
        self._answer_done.clear()

        greeting, _ = self.session.start()
        epoch = self.session.epoch
        self._spoken_question = None
        self.event_bus.emit(InterviewStartedEvent(
            self.session.session_id, self.session.questions.name, len(self.session.questions)))

        await self._say(greeting.content)
        if self.session.is_current(epoch):
            await self._ask_current_question()

    async def stop(self) -> None:
        """Stop immediately: no closing message, speech and recording are cut off."""
        was_active = self.session.active
        self.session.stop()
        self.synthesis.cancel()
        await self.capture.stop()
        self._answer_done.set()
        if was_active:
            self.event_bus.emit(InterviewStoppedEvent(
                self.session.session_id, self.session.current_question_index))

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    async def start_recording(self) -> Optional[Notice]:
        """
        Begin recording an answer. Interrupts any speech in progress.

        Returns:
            A notice if recording could not start, else None
        """
        if not self.session.active:
            return self._raise_notice(notice(NoticeKind.NOT_ACTIVE))

        self.synthesis.cancel()
        try:
            started = await self.capture.start()
        except DeviceAccessDenied as e:
            logger.error(f"Microphone access denied: {e}")
            return self._raise_notice(notice(NoticeKind.MICROPHONE_DENIED,
                                             f"Cannot access microphone: {e}"))
        except NoDeviceFound as e:
            logger.error(f"No microphone: {e}")
            return self._raise_notice(notice(NoticeKind.NO_MICROPHONE))

        if started:
            self.event_bus.emit(RecordingStartedEvent(
                self.session.session_id, self.session.current_question_index))
        return None

    async def finish_recording(self) -> TurnOutcome:
        """Stop recording and process the recorded answer."""
        audio = await self.capture.stop()
        if not self.session.active:
            return TurnOutcome(TurnStatus.INACTIVE, session_active=False)

        async with self._turn_lock:
            epoch = self.session.begin_turn()
            if audio.is_empty:
                logger.warning("Recording finished with no audio")
                return self._retry(notice(NoticeKind.NO_AUDIO))

            transcription = await self.stt.transcribe(audio)
            if not self.session.is_current(epoch):
                logger.info("Session stopped during transcription, discarding result")
                return self._discarded()

            self.event_bus.emit(TranscriptionCompletedEvent(
                self.session.session_id, transcription.text,
                transcription.status.value, len(audio.data)))

            if transcription.status == TranscriptionStatus.EMPTY:
                return self._retry(notice(NoticeKind.NO_SPEECH))

            notices: List[Notice] = []
            if transcription.status == TranscriptionStatus.FALLBACK:
                notices.append(self._raise_notice(notice(NoticeKind.TRANSCRIPTION_FALLBACK)))
            return await self._process_answer(transcription.text, epoch, notices)

    async def submit_text(self, text: str) -> TurnOutcome:
        """Process a typed answer exactly like a transcribed one."""
        if not self.session.active:
            return TurnOutcome(TurnStatus.INACTIVE, session_active=False,
                               notices=[self._raise_notice(notice(NoticeKind.NOT_ACTIVE))])
        text = (text or "").strip()
        if not text:
            return self._retry(notice(NoticeKind.EMPTY_ANSWER))

        async with self._turn_lock:
            epoch = self.session.begin_turn()
            return await self._process_answer(text, epoch, [])

    async def run_turn(self) -> TurnOutcome:
        """
        Drive one full spoken turn.

        Speaks the current question if it has not been asked yet, records
        until end_answer() (or stop()) is called, then processes the answer.
        """
        if not self.session.active:
            return TurnOutcome(TurnStatus.INACTIVE, session_active=False)

        await self._ask_current_question()
        if not self.session.active:
            return TurnOutcome(TurnStatus.INACTIVE, session_active=False)

        self._answer_done.clear()
        failure = await self.start_recording()
        if failure is not None:
            return TurnOutcome(TurnStatus.RETRY, notices=[failure])

        await self._answer_done.wait()
        return await self.finish_recording()

    def end_answer(self) -> None:
        """Signal run_turn() that the candidate finished answering."""
        self._answer_done.set()

    async def _process_answer(self, user_text: str, epoch: int,
                              notices: List[Notice]) -> TurnOutcome:
        question_index = self.session.current_question_index

        if self.session.is_end_request(user_text):
            closing = self.session.end_early(user_text, epoch)
            if closing is None:
                return self._discarded()
            logger.info(f"Candidate ended the interview at question {question_index + 1}")
            self.event_bus.emit(InterviewCompletedEvent(
                self.session.session_id, "ended_early", self.session.answered_count))
            # end_early() already deactivated this run
            await self._say(closing.content)
            return TurnOutcome(TurnStatus.ENDED, user_text=user_text, reply=closing.content,
                               session_active=False, notices=notices)

        context = InterviewPrompts.turn_context(
            self.session.questions.name, question_index, len(self.session.questions),
            self.session.current_question, self.job_role)
        reply = await self.generator.generate(user_text, context, epoch)
        if not reply.recorded:
            return self._discarded()

        self.event_bus.emit(ReplyGeneratedEvent(self.session.session_id, reply.text, reply.is_fallback))
        if reply.is_fallback:
            notices.append(self._raise_notice(notice(NoticeKind.REPLY_FALLBACK)))

        await self._say(reply.text)
        if not self.session.is_current(epoch):
            return self._discarded()

        emitted = None
        if self.session.should_advance(reply.text):
            emitted = self.session.advance()
        else:
            self.session.note_follow_up()

        self.event_bus.emit(TurnCompletedEvent(
            self.session.session_id, question_index, user_text, reply.text, emitted is not None))

        epoch = self.session.epoch
        listening = False
        if emitted is not None and not self.session.active:
            self.event_bus.emit(InterviewCompletedEvent(
                self.session.session_id, "completed", self.session.answered_count))
            await self._say(emitted.content)
        elif emitted is not None:
            await self._ask_current_question()

        if self.session.is_current(epoch) and self.voice_config.continuous_mode:
            listening = await self.start_recording() is None

        return TurnOutcome(TurnStatus.COMPLETED, user_text=user_text, reply=reply.text,
                           advanced=emitted is not None, session_active=self.session.active,
                           listening=listening, notices=notices)

    # ------------------------------------------------------------------
    # Post-interview
    # ------------------------------------------------------------------

    async def finalize(self) -> Optional[SessionRecord]:
        """
        Evaluate the finished interview and persist its record.

        Returns:
            The saved record, or None if no interview has run or one is still active
        """
        if self.session.session_id is None:
            return None
        if self.session.active:
            logger.warning("finalize() called while the interview is still active")
            return None

        analysis = None
        if self.evaluator is not None and self.session.answered_count > 0:
            result = await self.evaluator.evaluate(self.session.history, self.job_role,
                                                   self.job_description)
            analysis = result.model_dump()
            analysis["is_fallback"] = result.is_fallback
            self.event_bus.emit(EvaluationCompletedEvent(
                self.session.session_id, result.overall_fit, result.is_fallback))

        record = SessionRecord(
            session_id=self.session.session_id,
            question_set=self.session.questions.name,
            job_role=self.job_role,
            job_description=self.job_description,
            started_at=self.session.started_at,
            ended_at=self.session.ended_at,
            status=self.session.end_reason or "stopped",
            questions_answered=self.session.answered_count,
            transcript=[m.to_dict() for m in self.session.history],
            analysis=analysis,
        )

        if self.store is not None:
            try:
                await asyncio.to_thread(self.store.save, record)
            except (OSError, TypeError, ValueError) as e:
                logger.error(f"Failed to save session record {record.session_id}: {e}")
                self.event_bus.emit(ErrorOccurredEvent(
                    record.session_id, type(e).__name__, str(e), "session_store"))
        return record

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _say(self, text: str) -> bool:
        if not self.voice_config.auto_play:
            return False
        return await self.synthesis.speak(text, self.voice_config)

    async def _ask_current_question(self) -> None:
        """Speak the current question unless it was already announced."""
        key = (self.session.epoch, self.session.current_question_index)
        announcement = self.session.current_announcement()
        if announcement is None or self._spoken_question == key:
            return
        self._spoken_question = key
        self.event_bus.emit(QuestionAskedEvent(
            self.session.session_id, self.session.current_question_index, announcement))
        await self._say(announcement)

    def _raise_notice(self, n: Notice) -> Notice:
        logger.info(f"Notice: {n.title} - {n.description}")
        self.event_bus.emit(NoticeRaisedEvent(self.session.session_id, n.kind.value,
                                              n.title, n.description))
        return n

    def _retry(self, n: Notice) -> TurnOutcome:
        return TurnOutcome(TurnStatus.RETRY, notices=[self._raise_notice(n)],
                           session_active=self.session.active)

    def _discarded(self) -> TurnOutcome:
        return TurnOutcome(TurnStatus.DISCARDED, session_active=self.session.active)
