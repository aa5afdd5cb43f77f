import asyncio
import time
from unittest import mock

from google.auth.exceptions import DefaultCredentialsError

from voice_interview.config import Config, VoiceConfig
from voice_interview.errors import DeviceAccessDenied, EvaluationFailed, GenerationFailed, NoDeviceFound
from voice_interview.infrastructure.api import InterviewApiClient
from voice_interview.infrastructure.llm import VertexRestClient
from voice_interview.infrastructure.speech import (
    ConsoleSpeechEngine, GoogleCloudSpeechEngine, GoogleSpeechTranscriber, ServiceSpeechEngine,
    ServiceTranscriber, Transcriber
)
from voice_interview.interview.models import MessageRole, NoticeKind, TurnStatus
from voice_interview.interview.orchestrator import VoiceInterviewOrchestrator
from voice_interview.interview.prompts import InterviewPrompts
from voice_interview.interview.schemas import FALLBACK_EVALUATION_SUMMARY
from voice_interview.interview.services import (
    ServiceEvaluationBackend, ServiceReplyBackend, SpeechToTextClient, VertexEvaluationBackend,
    VertexReplyBackend
)
from voice_interview.interview.testing import (
    FakeInputDevice, FakeSpeechEngine, MemorySessionStore, create_fake_orchestrator
)

ANSWERS = [
    "I have five years of React and TypeScript experience.",
    "A race condition in our websocket reconnect logic.",
    "I split the bundle and memoized the heavy list rows.",
    "Jest with React Testing Library plus a few Playwright flows.",
    "Redux Toolkit for global data and local state elsewhere.",
]


async def _record_answer(orchestrator):
    assert await orchestrator.start_recording() is None
    return await orchestrator.finish_recording()


def test_start_greets_and_asks_first_question():
    orchestrator = create_fake_orchestrator()

    asyncio.run(orchestrator.start_interview())

    assert orchestrator.synthesis.engine.played == [
        InterviewPrompts.greeting(),
        "Let's start with question 1 of 5: Tell me about your experience with React and TypeScript.",
    ]
    assert orchestrator.session.active


def test_five_spoken_turns_complete_the_interview():
    orchestrator = create_fake_orchestrator(transcripts=ANSWERS)

    async def scenario():
        await orchestrator.start_interview()
        return [await _record_answer(orchestrator) for _ in ANSWERS]

    outcomes = asyncio.run(scenario())

    played = orchestrator.synthesis.engine.played
    assert len(played) == 12
    assert played.count(InterviewPrompts.natural_closing()) == 1
    assert played[-1] == InterviewPrompts.natural_closing()
    assert all(o.status == TurnStatus.COMPLETED and o.advanced for o in outcomes)
    assert outcomes[-1].session_active is False
    assert not orchestrator.session.active
    assert orchestrator.session.current_question_index == 5
    assert orchestrator.session.answered_count == 5


def test_transcription_failure_uses_fallback_text_and_continues():
    orchestrator = create_fake_orchestrator()
    orchestrator.stt = SpeechToTextClient(
        ServiceTranscriber(InterviewApiClient("https://example.test/functions/v1")), timeout=5.0)
    error = mock.Mock(status_code=500, text="Internal Server Error")

    async def scenario():
        await orchestrator.start_interview()
        return await _record_answer(orchestrator)

    with mock.patch("requests.post", return_value=error):
        outcome = asyncio.run(scenario())

    fallback = InterviewPrompts.fallback_messages()["transcription"]
    assert outcome.status == TurnStatus.COMPLETED
    assert outcome.user_text == fallback
    assert outcome.advanced
    assert [n.kind for n in outcome.notices] == [NoticeKind.TRANSCRIPTION_FALLBACK]
    assert orchestrator.session.current_question_index == 1
    assert orchestrator.metrics.get_metrics()["transcription_fallbacks"] == 1


def test_thank_you_ends_interview_early():
    orchestrator = create_fake_orchestrator(transcripts=["Thank you, I think that's everything."])

    async def scenario():
        await orchestrator.start_interview()
        return await _record_answer(orchestrator)

    outcome = asyncio.run(scenario())

    assert outcome.status == TurnStatus.ENDED
    assert not outcome.session_active
    assert orchestrator.session.end_reason == "ended_early"
    assert orchestrator.session.current_question_index == 0
    assert orchestrator.synthesis.engine.played[-1] == InterviewPrompts.early_closing()
    assert InterviewPrompts.natural_closing() not in orchestrator.synthesis.engine.played
    # the reply backend is never consulted for an end request
    assert orchestrator.generator.backend.calls == []


def test_restart_during_closing_line_keeps_new_session():
    orchestrator = create_fake_orchestrator()

    async def scenario():
        await orchestrator.start_interview()
        orchestrator.synthesis.engine.startup_delay = 0.3
        ending = asyncio.create_task(orchestrator.submit_text("Thank you for your time."))
        await asyncio.sleep(0.1)
        await orchestrator.start_interview()
        return await ending

    outcome = asyncio.run(scenario())

    assert outcome.status == TurnStatus.ENDED
    assert orchestrator.session.active
    assert orchestrator.session.end_reason is None
    assert orchestrator.session.current_question_index == 0
    assert InterviewPrompts.early_closing() not in orchestrator.synthesis.engine.played
    assert orchestrator.synthesis.engine.played[-1].startswith("Let's start with question 1")


def test_microphone_denied_raises_notice():
    device = FakeInputDevice(error=DeviceAccessDenied("Permission denied"))
    orchestrator = create_fake_orchestrator(device=device)

    async def scenario():
        await orchestrator.start_interview()
        return await orchestrator.start_recording()

    result = asyncio.run(scenario())

    assert result.kind == NoticeKind.MICROPHONE_DENIED
    assert result.title == "Microphone Error"
    assert result.requires_retry
    assert not orchestrator.capture.recording
    assert orchestrator.session.active
    assert orchestrator.metrics.get_metrics()["notices"] == {"microphone_denied": 1}


def test_missing_microphone_raises_notice():
    orchestrator = create_fake_orchestrator(device=FakeInputDevice(error=NoDeviceFound("none")))

    async def scenario():
        await orchestrator.start_interview()
        return await orchestrator.start_recording()

    assert asyncio.run(scenario()).kind == NoticeKind.NO_MICROPHONE


def test_empty_recording_asks_for_retry():
    orchestrator = create_fake_orchestrator(device=FakeInputDevice(chunks=[]))

    async def scenario():
        await orchestrator.start_interview()
        return await _record_answer(orchestrator)

    outcome = asyncio.run(scenario())

    assert outcome.status == TurnStatus.RETRY
    assert outcome.notices[0].kind == NoticeKind.NO_AUDIO
    assert orchestrator.stt.transcriber.calls == []
    assert orchestrator.session.current_question_index == 0


def test_silence_asks_for_retry_without_recording_history():
    orchestrator = create_fake_orchestrator(transcripts=["  "])

    async def scenario():
        await orchestrator.start_interview()
        return await _record_answer(orchestrator)

    outcome = asyncio.run(scenario())

    assert outcome.status == TurnStatus.RETRY
    assert outcome.notices[0].kind == NoticeKind.NO_SPEECH
    assert outcome.notices[0].title == "❌ No Speech Detected"
    assert orchestrator.session.answered_count == 0


def test_submit_text_processes_typed_answer():
    orchestrator = create_fake_orchestrator(replies=["Great experience, thanks for sharing."])

    async def scenario():
        await orchestrator.start_interview()
        empty = await orchestrator.submit_text("   ")
        typed = await orchestrator.submit_text(ANSWERS[0])
        return empty, typed

    empty, typed = asyncio.run(scenario())

    assert empty.status == TurnStatus.RETRY
    assert empty.notices[0].kind == NoticeKind.EMPTY_ANSWER
    assert typed.status == TurnStatus.COMPLETED
    assert typed.reply == "Great experience, thanks for sharing."
    assert orchestrator.session.history[2].role == MessageRole.USER
    assert orchestrator.session.history[2].content == ANSWERS[0]
    assert orchestrator.session.current_question_index == 1


def test_submit_text_before_start_is_rejected():
    orchestrator = create_fake_orchestrator()

    outcome = asyncio.run(orchestrator.submit_text("hello"))

    assert outcome.status == TurnStatus.INACTIVE
    assert outcome.notices[0].kind == NoticeKind.NOT_ACTIVE


def test_reply_failure_falls_back_and_advances():
    orchestrator = create_fake_orchestrator(replies=[GenerationFailed("down")])

    async def scenario():
        await orchestrator.start_interview()
        return await orchestrator.submit_text(ANSWERS[0])

    outcome = asyncio.run(scenario())

    assert outcome.reply == InterviewPrompts.fallback_messages()["reply"]
    assert [n.kind for n in outcome.notices] == [NoticeKind.REPLY_FALLBACK]
    assert outcome.advanced
    assert orchestrator.metrics.get_metrics()["reply_fallbacks"] == 1


def test_missing_vertex_credentials_fall_back_during_turn():
    orchestrator = create_fake_orchestrator()
    orchestrator.generator.backend = VertexReplyBackend(VertexRestClient(project="my-project"))

    async def scenario():
        await orchestrator.start_interview()
        return await orchestrator.submit_text("I have five years of React.")

    with mock.patch("google.auth.default", side_effect=DefaultCredentialsError("no ADC")):
        outcome = asyncio.run(scenario())

    assert outcome.status == TurnStatus.COMPLETED
    assert outcome.reply == InterviewPrompts.fallback_messages()["reply"]
    assert outcome.advanced
    assert orchestrator.session.answered_count == 1


class SlowTranscriber(Transcriber):
    def __init__(self):
        self.calls = []

    def transcribe(self, audio, language="en-US"):
        self.calls.append(audio)
        time.sleep(0.3)
        return "An answer that arrives too late."


def test_stop_during_transcription_discards_result():
    orchestrator = create_fake_orchestrator()
    orchestrator.stt.transcriber = SlowTranscriber()

    async def scenario():
        await orchestrator.start_interview()
        await orchestrator.start_recording()
        turn = asyncio.create_task(orchestrator.finish_recording())
        await asyncio.sleep(0.05)
        await orchestrator.stop()
        return await turn

    outcome = asyncio.run(scenario())

    assert outcome.status == TurnStatus.DISCARDED
    assert not outcome.session_active
    assert orchestrator.session.end_reason == "stopped"
    assert orchestrator.session.answered_count == 0
    assert orchestrator.generator.backend.calls == []
    assert InterviewPrompts.natural_closing() not in orchestrator.synthesis.engine.played


def test_stop_cuts_off_speech_and_recording():
    orchestrator = create_fake_orchestrator()
    orchestrator.synthesis.engine.startup_delay = 1.0

    async def scenario():
        start = asyncio.create_task(orchestrator.start_interview())
        await asyncio.sleep(0.05)
        assert orchestrator.synthesis.speaking
        await orchestrator.stop()
        await start

    asyncio.run(scenario())

    assert orchestrator.synthesis.engine.played == []
    assert not orchestrator.synthesis.speaking
    assert not orchestrator.capture.recording
    assert orchestrator.metrics.get_metrics()["interviews_stopped"] == 1


def test_follow_up_mode_stays_on_question_until_transition():
    orchestrator = create_fake_orchestrator(
        replies=["Interesting. How did you structure the shared types?",
                 "Clear answer. Let's move on."],
        allow_follow_ups=True)

    async def scenario():
        await orchestrator.start_interview()
        first = await orchestrator.submit_text(ANSWERS[0])
        second = await orchestrator.submit_text("A shared package with generated API types.")
        return first, second

    first, second = asyncio.run(scenario())

    assert not first.advanced
    assert second.advanced
    assert orchestrator.session.current_question_index == 1
    played = orchestrator.synthesis.engine.played
    assert played[-1].startswith("Question 2 of 5:")
    assert sum(1 for text in played if text.startswith("Question 2 of 5:")) == 1


def test_continuous_mode_starts_next_recording():
    orchestrator = create_fake_orchestrator(voice_config=VoiceConfig(continuous_mode=True))

    async def scenario():
        await orchestrator.start_interview()
        outcome = await orchestrator.submit_text(ANSWERS[0])
        recording = orchestrator.capture.recording
        await orchestrator.stop()
        return outcome, recording

    outcome, recording = asyncio.run(scenario())

    assert outcome.listening
    assert recording


def test_continuous_mode_does_not_listen_for_a_restarted_session():
    orchestrator = create_fake_orchestrator(voice_config=VoiceConfig(continuous_mode=True))

    async def scenario():
        await orchestrator.start_interview()
        orchestrator.synthesis.engine.startup_delay = 0.3
        turn = asyncio.create_task(orchestrator.submit_text(ANSWERS[0]))
        # reply takes 0.3s, restart lands while question 2 is being announced
        await asyncio.sleep(0.45)
        await orchestrator.start_interview()
        return await turn

    outcome = asyncio.run(scenario())

    assert not outcome.listening
    assert not orchestrator.capture.recording
    assert orchestrator.session.active
    assert orchestrator.session.current_question_index == 0


def test_auto_play_off_keeps_engine_silent():
    orchestrator = create_fake_orchestrator(voice_config=VoiceConfig(auto_play=False))

    async def scenario():
        await orchestrator.start_interview()
        return await orchestrator.submit_text(ANSWERS[0])

    outcome = asyncio.run(scenario())

    assert outcome.status == TurnStatus.COMPLETED
    assert orchestrator.synthesis.engine.started == []


def test_run_turn_records_until_end_answer():
    orchestrator = create_fake_orchestrator(transcripts=[ANSWERS[0]])

    async def scenario():
        await orchestrator.start_interview()
        turn = asyncio.create_task(orchestrator.run_turn())
        while not orchestrator.capture.recording:
            await asyncio.sleep(0.01)
        orchestrator.end_answer()
        return await turn

    outcome = asyncio.run(scenario())

    assert outcome.status == TurnStatus.COMPLETED
    assert outcome.user_text == ANSWERS[0]
    # the first question was already spoken by start_interview
    played = orchestrator.synthesis.engine.played
    assert sum(1 for text in played if text.startswith("Let's start with question 1")) == 1


def test_finalize_evaluates_and_stores_record():
    orchestrator = create_fake_orchestrator(transcripts=ANSWERS)

    async def scenario():
        await orchestrator.start_interview()
        for _ in ANSWERS:
            await _record_answer(orchestrator)
        return await orchestrator.finalize()

    record = asyncio.run(scenario())

    assert orchestrator.store.load(record.session_id) is record
    assert record.status == "completed"
    assert record.questions_answered == 5
    assert record.job_role == "Frontend Engineer"
    assert record.analysis["overall_fit"] == 82
    assert record.analysis["skills"] == ["React"]
    assert record.analysis["is_fallback"] is False
    assert record.transcript[-1]["content"] == InterviewPrompts.natural_closing()
    call = orchestrator.evaluator.backend.calls[0]
    assert call["role"] == "Frontend Engineer"
    assert call["job_description"] == "React, TypeScript"
    assert {m["role"] for m in call["transcript"]} == {"assistant", "user"}


def test_finalize_uses_heuristic_scores_when_evaluation_fails():
    orchestrator = create_fake_orchestrator(evaluation=EvaluationFailed("bad json"))

    async def scenario():
        await orchestrator.start_interview()
        await orchestrator.submit_text(ANSWERS[0])
        await orchestrator.stop()
        return await orchestrator.finalize()

    record = asyncio.run(scenario())

    assert record.status == "stopped"
    assert record.analysis["is_fallback"] is True
    assert record.analysis["overall_fit"] == 70
    assert record.analysis["summary"] == FALLBACK_EVALUATION_SUMMARY


def test_finalize_requires_finished_interview():
    orchestrator = create_fake_orchestrator()

    async def scenario():
        before = await orchestrator.finalize()
        await orchestrator.start_interview()
        during = await orchestrator.finalize()
        await orchestrator.stop()
        after = await orchestrator.finalize()
        return before, during, after

    before, during, after = asyncio.run(scenario())

    assert before is None
    assert during is None
    assert after.analysis is None
    assert after.questions_answered == 0
    assert orchestrator.evaluator.backend.calls == []


def test_metrics_follow_the_interview():
    orchestrator = create_fake_orchestrator(transcripts=ANSWERS)

    async def scenario():
        await orchestrator.start_interview()
        for _ in ANSWERS:
            await _record_answer(orchestrator)

    asyncio.run(scenario())

    metrics = orchestrator.metrics.get_metrics()
    assert metrics["interviews_started"] == 1
    assert metrics["interviews_completed"] == 1
    assert metrics["total_turns"] == 5
    assert metrics["errors_occurred"] == 0


def test_update_voice_config_is_clamped():
    orchestrator = create_fake_orchestrator()

    config = orchestrator.update_voice_config(speed=3.0, volume=0.4)

    assert config.speed == 2.0
    assert config.volume == 0.4
    assert orchestrator.voice_config is config


def test_from_config_wires_remote_service_backends():
    config = Config(service_url="https://example.test/functions/v1", service_key="k",
                    question_set="behavioral", enable_tts=False, language_code="en-GB")

    orchestrator = VoiceInterviewOrchestrator.from_config(config, store=MemorySessionStore())

    assert isinstance(orchestrator.stt.transcriber, ServiceTranscriber)
    assert orchestrator.stt.transcriber.client.base_url == "https://example.test/functions/v1"
    assert orchestrator.stt.language == "en-GB"
    assert isinstance(orchestrator.generator.backend, ServiceReplyBackend)
    assert isinstance(orchestrator.evaluator.backend, ServiceEvaluationBackend)
    assert isinstance(orchestrator.synthesis.engine, ConsoleSpeechEngine)
    assert orchestrator.session.questions.name == "behavioral"
    assert orchestrator.voice_config.language == "en-GB"


def test_from_config_wires_google_and_vertex_backends():
    config = Config(stt_backend="google", llm_backend="vertex", google_cloud_project="my-project",
                    google_application_credentials="/secrets/key.json")

    orchestrator = VoiceInterviewOrchestrator.from_config(config, store=MemorySessionStore())

    assert isinstance(orchestrator.stt.transcriber, GoogleSpeechTranscriber)
    reply_backend = orchestrator.generator.backend
    assert isinstance(reply_backend, VertexReplyBackend)
    assert reply_backend.llm.project == "my-project"
    assert reply_backend.llm.credentials_json == "/secrets/key.json"
    assert isinstance(orchestrator.evaluator.backend, VertexEvaluationBackend)
    assert orchestrator.evaluator.backend.llm is reply_backend.llm
    assert isinstance(orchestrator.synthesis.engine, GoogleCloudSpeechEngine)


def test_from_config_uses_voice_service_engine():
    config = Config(service_url="https://example.test/functions/v1", tts_backend="service")

    orchestrator = VoiceInterviewOrchestrator.from_config(config, store=MemorySessionStore())

    engine = orchestrator.synthesis.engine
    assert isinstance(engine, ServiceSpeechEngine)
    assert engine.client.function_url(engine.function) == \
        "https://example.test/functions/v1/synthesize-speech"


def test_from_config_keeps_injected_engine():
    engine = FakeSpeechEngine()
    config = Config(service_url="https://example.test/functions/v1")

    orchestrator = VoiceInterviewOrchestrator.from_config(config, engine=engine, store=MemorySessionStore())

    assert orchestrator.synthesis.engine is engine
    assert orchestrator.session.on_stop == orchestrator.synthesis.cancel
