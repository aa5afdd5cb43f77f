import asyncio
import threading
from types import SimpleNamespace
from unittest import mock

import pytest
from google.api_core import exceptions as google_exceptions
from google.cloud import texttospeech

from voice_interview.config import VoiceConfig
from voice_interview.errors import SynthesisUnavailable
from voice_interview.infrastructure.api import InterviewApiClient
from voice_interview.infrastructure.audio import encode_wav
from voice_interview.infrastructure.speech import (
    GoogleCloudSpeechEngine, ServiceSpeechEngine, Voice, select_voice
)
from voice_interview.interview.synthesis import SpeechSynthesisController, SpeechState
from voice_interview.interview.testing import FakeSpeechEngine, tone_chunk


VOICES = [
    Voice("de-DE-Standard-A", "de-DE", "female"),
    Voice("en-GB-Standard-B", "en-GB", "male"),
    Voice("en-US-Neural2-F", "en-US", "female"),
]


def test_select_voice_prefers_language_and_hint():
    assert select_voice(VOICES, "en-US", "Female").name == "en-US-Neural2-F"


def test_select_voice_falls_back_to_language_then_first():
    assert select_voice(VOICES, "en-US", "").name == "en-GB-Standard-B"
    assert select_voice(VOICES, "fr-FR", "Female").name == "de-DE-Standard-A"
    assert select_voice([], "en-US", "Female") is None


def test_speak_plays_and_returns_to_idle():
    engine = FakeSpeechEngine()
    controller = SpeechSynthesisController(engine)

    played = asyncio.run(controller.speak("Hello there", VoiceConfig()))

    assert played is True
    assert controller.state == SpeechState.IDLE
    assert engine.played == ["Hello there"]
    assert engine.voices_used[0].name == "en-US-Test-Female"


def test_second_speak_cancels_first():
    engine = FakeSpeechEngine(startup_delay=0.2)
    controller = SpeechSynthesisController(engine)
    config = VoiceConfig()

    async def scenario():
        first = asyncio.create_task(controller.speak("first", config))
        await asyncio.sleep(0.05)
        second = await controller.speak("second", config)
        return await first, second

    first, second = asyncio.run(scenario())

    assert first is False
    assert second is True
    assert engine.played == ["second"]


def test_cancel_forces_idle_immediately():
    engine = FakeSpeechEngine(startup_delay=1.0)
    controller = SpeechSynthesisController(engine)

    async def scenario():
        task = asyncio.create_task(controller.speak("long answer", VoiceConfig()))
        await asyncio.sleep(0.05)
        assert controller.state == SpeechState.SPEAKING
        controller.cancel()
        assert controller.state == SpeechState.IDLE
        return await task

    assert asyncio.run(scenario()) is False
    assert engine.played == []


def test_no_voices_resolves_without_playing():
    engine = FakeSpeechEngine(voices=[])
    controller = SpeechSynthesisController(engine)

    assert asyncio.run(controller.speak("Hello", VoiceConfig())) is False
    assert engine.started == []
    assert controller.state == SpeechState.IDLE


def test_engine_failure_resolves_false():
    engine = FakeSpeechEngine(error=SynthesisUnavailable("speaker unplugged"))
    controller = SpeechSynthesisController(engine)

    assert asyncio.run(controller.speak("Hello", VoiceConfig())) is False
    assert controller.state == SpeechState.IDLE


def test_settings_are_snapshotted_at_call_time():
    engine = FakeSpeechEngine(startup_delay=0.05)
    controller = SpeechSynthesisController(engine)
    config = VoiceConfig(speed=1.0, volume=0.5)

    async def scenario():
        task = asyncio.create_task(controller.speak("Hello", config))
        await asyncio.sleep(0)
        config.speed = 1.8
        config.volume = 1.0
        return await task

    assert asyncio.run(scenario()) is True
    assert engine.settings[0].speed == 1.0
    assert engine.settings[0].volume == 0.5


def test_voice_config_is_clamped():
    config = VoiceConfig(speed=5.0, volume=-1.0)

    assert config.speed == 2.0
    assert config.volume == 0.0


class RecordingOutput:
    """Stands in for PyAudioOutput and keeps what would have been played."""

    def __init__(self):
        self.calls = []

    def play(self, pcm16, sample_rate, channels, stop_event):
        self.calls.append((pcm16, sample_rate, channels))
        return True


def _wav(sample_rate=24000):
    return encode_wav(tone_chunk(sr=sample_rate), sample_rate)


def test_google_engine_lists_voices_per_language():
    client = mock.Mock()
    client.list_voices.return_value = SimpleNamespace(voices=[
        SimpleNamespace(name="en-US-Neural2-F", language_codes=["en-US"],
                        ssml_gender=texttospeech.SsmlVoiceGender.FEMALE),
        SimpleNamespace(name="multi-B", language_codes=["en-GB", "en-AU"],
                        ssml_gender=texttospeech.SsmlVoiceGender.MALE),
    ])
    engine = GoogleCloudSpeechEngine(output=RecordingOutput(), client=client)

    voices = engine.list_voices()

    assert voices == [Voice("en-US-Neural2-F", "en-US", "female"),
                      Voice("multi-B", "en-GB", "male"),
                      Voice("multi-B", "en-AU", "male")]


def test_google_engine_list_failure_gives_no_voices():
    client = mock.Mock()
    client.list_voices.side_effect = google_exceptions.ServiceUnavailable("down")

    assert GoogleCloudSpeechEngine(output=RecordingOutput(), client=client).list_voices() == []


def test_google_engine_synthesizes_and_plays():
    client = mock.Mock()
    client.synthesize_speech.return_value = SimpleNamespace(audio_content=_wav())
    output = RecordingOutput()
    engine = GoogleCloudSpeechEngine(output=output, client=client)

    played = engine.play("Hello there", Voice("en-US-Neural2-F", "en-US", "female"),
                         VoiceConfig(speed=1.5, volume=1.0), threading.Event())

    assert played
    kwargs = client.synthesize_speech.call_args.kwargs
    assert kwargs["input"].text == "Hello there"
    assert kwargs["voice"].name == "en-US-Neural2-F"
    assert kwargs["audio_config"].speaking_rate == 1.5
    assert kwargs["audio_config"].sample_rate_hertz == 24000
    pcm16, sample_rate, channels = output.calls[0]
    assert (sample_rate, channels) == (24000, 1)
    assert pcm16 == tone_chunk(sr=24000)


def test_google_engine_stopped_during_request_does_not_play():
    stop_event = threading.Event()
    client = mock.Mock()

    def synthesize(**kwargs):
        stop_event.set()
        return SimpleNamespace(audio_content=_wav())

    client.synthesize_speech.side_effect = synthesize
    output = RecordingOutput()
    engine = GoogleCloudSpeechEngine(output=output, client=client)

    assert engine.play("Hello", Voice("v", "en-US"), VoiceConfig(), stop_event) is False
    assert output.calls == []


def test_google_engine_api_error_is_unavailable():
    client = mock.Mock()
    client.synthesize_speech.side_effect = google_exceptions.PermissionDenied("billing disabled")
    engine = GoogleCloudSpeechEngine(output=RecordingOutput(), client=client)

    with pytest.raises(SynthesisUnavailable):
        engine.play("Hello", Voice("v", "en-US"), VoiceConfig(), threading.Event())


def _audio_response(status=200, content=b"", content_type="audio/mpeg", text=""):
    return mock.Mock(status_code=status, content=content, text=text,
                     headers={"Content-Type": content_type})


def _service_engine(output):
    return ServiceSpeechEngine(InterviewApiClient("https://example.test/functions/v1", "k"), output=output)


def test_service_engine_posts_text_and_voice_id():
    output = RecordingOutput()
    engine = _service_engine(output)
    voice = select_voice(engine.list_voices(), "en-US", "Female")

    with mock.patch("requests.post",
                    return_value=_audio_response(content=_wav(), content_type="audio/wav")) as post:
        played = engine.play("Welcome!", voice, VoiceConfig(volume=1.0), threading.Event())

    assert played
    args, kwargs = post.call_args
    assert args[0] == "https://example.test/functions/v1/synthesize-speech"
    assert kwargs["json"] == {"text": "Welcome!", "voiceId": "Rachel"}
    assert output.calls[0][1:] == (24000, 1)


@pytest.mark.parametrize("response", [
    _audio_response(status=500, text='{"error": "ELEVENLABS_API_KEY not set"}'),
    _audio_response(content=b'{"error": "quota"}', content_type="application/json"),
    _audio_response(content=b""),
])
def test_service_engine_failures_are_unavailable(response):
    output = RecordingOutput()
    engine = _service_engine(output)

    with mock.patch("requests.post", return_value=response):
        with pytest.raises(SynthesisUnavailable):
            engine.play("Welcome!", engine.list_voices()[0], VoiceConfig(), threading.Event())

    assert output.calls == []


def test_service_engine_failure_resolves_speak_false():
    engine = _service_engine(RecordingOutput())
    controller = SpeechSynthesisController(engine)

    with mock.patch("requests.post", return_value=_audio_response(status=502, text="bad gateway")):
        assert asyncio.run(controller.speak("Welcome!", VoiceConfig())) is False

    assert not controller.speaking
