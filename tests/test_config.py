import pytest

from voice_interview.config import Config, VoiceConfig, get_config
from voice_interview.interview.questions import QUESTION_SETS, QuestionSet, get_question_set


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("INTERVIEW_SERVICE_URL", "INTERVIEW_SERVICE_KEY", "STT_BACKEND", "LLM_BACKEND", "TTS_BACKEND",
                 "GOOGLE_CLOUD_PROJECT", "QUESTION_SET", "ALLOW_FOLLOW_UPS", "ENABLE_TTS",
                 "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_environment_overrides_defaults(clean_env):
    clean_env.setenv("INTERVIEW_SERVICE_URL", "https://example.test/functions/v1/")
    clean_env.setenv("INTERVIEW_SERVICE_KEY", "anon-key")
    clean_env.setenv("QUESTION_SET", "behavioral")
    clean_env.setenv("ALLOW_FOLLOW_UPS", "yes")
    clean_env.setenv("ENABLE_TTS", "0")
    clean_env.setenv("LOG_LEVEL", "debug")

    config = get_config()

    assert config.service_url == "https://example.test/functions/v1"
    assert config.service_key == "anon-key"
    assert config.question_set == "behavioral"
    assert config.allow_follow_ups is True
    assert config.enable_tts is False
    assert config.log_level == "DEBUG"


def test_service_backends_require_url(clean_env):
    with pytest.raises(ValueError, match="INTERVIEW_SERVICE_URL"):
        get_config()


def test_unknown_backend_is_rejected(clean_env):
    clean_env.setenv("INTERVIEW_SERVICE_URL", "https://example.test")
    clean_env.setenv("STT_BACKEND", "whisper")

    with pytest.raises(ValueError, match="STT_BACKEND"):
        get_config()


def test_vertex_backend_requires_project(clean_env):
    clean_env.setenv("INTERVIEW_SERVICE_URL", "https://example.test")
    clean_env.setenv("LLM_BACKEND", "vertex")

    with pytest.raises(ValueError, match="GOOGLE_CLOUD_PROJECT"):
        get_config()


def test_google_only_setup_needs_no_service_url(clean_env):
    clean_env.setenv("STT_BACKEND", "google")
    clean_env.setenv("LLM_BACKEND", "vertex")
    clean_env.setenv("GOOGLE_CLOUD_PROJECT", "my-project")

    config = get_config()

    assert not config.needs_service()
    assert config.google_cloud_project == "my-project"


def test_voice_service_tts_needs_service_url(clean_env):
    clean_env.setenv("STT_BACKEND", "google")
    clean_env.setenv("LLM_BACKEND", "vertex")
    clean_env.setenv("GOOGLE_CLOUD_PROJECT", "my-project")
    clean_env.setenv("TTS_BACKEND", "service")

    with pytest.raises(ValueError, match="INTERVIEW_SERVICE_URL"):
        get_config()

    clean_env.setenv("ENABLE_TTS", "false")
    assert not get_config().needs_service()


def test_unknown_tts_backend_is_rejected(clean_env):
    clean_env.setenv("INTERVIEW_SERVICE_URL", "https://example.test")
    clean_env.setenv("TTS_BACKEND", "elevenlabs")

    with pytest.raises(ValueError, match="TTS_BACKEND"):
        get_config()


def test_voice_config_from_config():
    voice = Config(language_code="en-GB", speech_speed=0.2, speaker_volume=0.6).voice_config()

    assert voice.language == "en-GB"
    assert voice.speed == 0.5
    assert voice.volume == 0.6


def test_voice_config_snapshot_is_independent():
    config = VoiceConfig(speed=1.2)
    snapshot = config.snapshot()

    config.speed = 1.9

    assert snapshot.speed == 1.2


def test_question_sets():
    assert set(QUESTION_SETS) == {"technical", "behavioral", "hr"}
    assert all(len(q) == 5 for q in QUESTION_SETS.values())
    assert get_question_set("hr").name == "hr"
    with pytest.raises(ValueError):
        get_question_set("sales")


def test_custom_question_set():
    questions = QuestionSet.custom(["Why us?", "  ", "Why now?"])

    assert list(questions.questions) == ["Why us?", "Why now?"]
    assert questions[1] == "Why now?"
