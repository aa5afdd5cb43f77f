"""
Voice Interview Configuration System
====================================

This file contains ALL configuration for the voice interview system.
- User settings at the top (things users might want to change)
- Internal constants at the bottom (technical defaults)
"""
import os
from dataclasses import dataclass, replace
from typing import Optional


# =============================================================================
# USER SETTINGS - Edit these to customize the interview
# =============================================================================

# Remote interview functions (transcription, replies, evaluation, chat)
INTERVIEW_SERVICE_URL = ""  # e.g. https://<project>.supabase.co/functions/v1
INTERVIEW_SERVICE_KEY = ""

# Optional Google Cloud settings (google STT / vertex LLM / google TTS)
GOOGLE_CLOUD_PROJECT = ""
GOOGLE_APPLICATION_CREDENTIALS = None  # Optional: path to credentials JSON

# Backends: "service" uses the remote interview functions
STT_BACKEND = "service"   # service | google
LLM_BACKEND = "service"   # service | vertex
TTS_BACKEND = "google"    # google | service

# Interview settings
QUESTION_SET = "technical"  # technical | behavioral | hr
JOB_ROLE = "Software Engineer"
JOB_DESCRIPTION = "React, TypeScript, Node.js"
ALLOW_FOLLOW_UPS = False
MAX_FOLLOW_UPS = 2
WORKDIR = "./_interviews"

# Speech settings
ENABLE_TTS = True
LANGUAGE_CODE = "en-US"
SPEECH_SPEED = 1.0
SPEAKER_VOLUME = 0.8
AUTO_PLAY = True
CONTINUOUS_MODE = False
PREFERRED_VOICE = "Female"

# Logging
LOG_FILE = "./_interviews/interview.log"
LOG_LEVEL = "INFO"


# =============================================================================
# VOICE CONFIGURATION
# =============================================================================

@dataclass
class VoiceConfig:
    """User-adjustable speech settings, snapshotted at the start of each utterance."""
    language: str = LANGUAGE_CODE
    speed: float = SPEECH_SPEED
    volume: float = SPEAKER_VOLUME
    auto_play: bool = AUTO_PLAY
    continuous_mode: bool = CONTINUOUS_MODE
    preferred_voice: str = PREFERRED_VOICE

    def __post_init__(self):
        self.speed = max(MIN_SPEECH_SPEED, min(MAX_SPEECH_SPEED, float(self.speed)))
        self.volume = max(0.0, min(1.0, float(self.volume)))

    def snapshot(self) -> 'VoiceConfig':
        """Return an independent copy of the current settings."""
        return replace(self)


# =============================================================================
# INTERNAL CONSTANTS - Don't change these unless you know what you're doing
# =============================================================================

# Audio capture
SAMPLE_RATE_CAPTURE = 16000
SAMPLE_RATE_TARGET = 16000
CHANNELS = 1
CHUNK_MS = 100
AUDIO_MIME_TYPE = "audio/wav"
AUDIO_FILENAME = "audio.wav"

# Speech output
SPEAKER_SAMPLE_RATE = 24000
SPEAKER_CHUNK_FRAMES = 2048
MIN_SPEECH_SPEED = 0.5
MAX_SPEECH_SPEED = 2.0

# Remote calls
SERVICE_TIMEOUT = 30
TRANSCRIPTION_FUNCTION = "transcribe-audio"
REPLY_FUNCTION = "chat-assistant"
EVALUATION_FUNCTION = "evaluate-response"
SPEECH_FUNCTION = "synthesize-speech"
SERVICE_VOICE_ID = "Rachel"
CHAT_FUNCTION = "chat-assistant"
EVALUATION_INPUT_LIMIT = 30000

# LLM
VERTEX_LOCATION = "us-central1"
MODEL_NAME = "gemini-2.5-flash"
LLM_TIMEOUT = 60
MAX_OUTPUT_TOKENS = 512

# Conversation
CONTEXT_WINDOW = 5
END_INTERVIEW_PHRASES = ("thank you", "end interview", "stop interview")
ADVANCE_PHRASES = ("next question", "let's move on")


# =============================================================================
# MAIN CONFIG OBJECT
# =============================================================================

@dataclass
class Config:
    """Main configuration object."""
    service_url: str = INTERVIEW_SERVICE_URL
    service_key: str = INTERVIEW_SERVICE_KEY
    google_cloud_project: Optional[str] = None
    google_application_credentials: Optional[str] = GOOGLE_APPLICATION_CREDENTIALS
    stt_backend: str = STT_BACKEND
    llm_backend: str = LLM_BACKEND
    tts_backend: str = TTS_BACKEND
    question_set: str = QUESTION_SET
    job_role: str = JOB_ROLE
    job_description: str = JOB_DESCRIPTION
    allow_follow_ups: bool = ALLOW_FOLLOW_UPS
    max_follow_ups: int = MAX_FOLLOW_UPS
    workdir: str = WORKDIR
    enable_tts: bool = ENABLE_TTS
    language_code: str = LANGUAGE_CODE
    speech_speed: float = SPEECH_SPEED
    speaker_volume: float = SPEAKER_VOLUME
    preferred_voice: str = PREFERRED_VOICE
    service_timeout: float = SERVICE_TIMEOUT
    vertex_location: str = VERTEX_LOCATION
    model_name: str = MODEL_NAME
    log_file: str = LOG_FILE
    log_level: str = LOG_LEVEL

    def voice_config(self) -> VoiceConfig:
        """Build the initial voice settings."""
        return VoiceConfig(
            language=self.language_code,
            speed=self.speech_speed,
            volume=self.speaker_volume,
            preferred_voice=self.preferred_voice,
        )

    def needs_service(self) -> bool:
        """True if any backend goes through the remote interview functions."""
        return (self.stt_backend == "service" or self.llm_backend == "service"
                or (self.enable_tts and self.tts_backend == "service"))


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def get_config() -> Config:
    """Load configuration, letting environment variables override the settings above."""
    config = Config(
        service_url=(os.getenv("INTERVIEW_SERVICE_URL") or INTERVIEW_SERVICE_URL).rstrip("/"),
        service_key=os.getenv("INTERVIEW_SERVICE_KEY") or INTERVIEW_SERVICE_KEY,
        google_cloud_project=os.getenv("GOOGLE_CLOUD_PROJECT") or GOOGLE_CLOUD_PROJECT or None,
        google_application_credentials=os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or GOOGLE_APPLICATION_CREDENTIALS,
        stt_backend=(os.getenv("STT_BACKEND") or STT_BACKEND).lower(),
        llm_backend=(os.getenv("LLM_BACKEND") or LLM_BACKEND).lower(),
        tts_backend=(os.getenv("TTS_BACKEND") or TTS_BACKEND).lower(),
        question_set=os.getenv("QUESTION_SET") or QUESTION_SET,
        job_role=os.getenv("JOB_ROLE") or JOB_ROLE,
        job_description=os.getenv("JOB_DESCRIPTION") or JOB_DESCRIPTION,
        allow_follow_ups=_env_flag("ALLOW_FOLLOW_UPS", ALLOW_FOLLOW_UPS),
        workdir=os.getenv("INTERVIEW_WORKDIR") or WORKDIR,
        enable_tts=_env_flag("ENABLE_TTS", ENABLE_TTS),
        language_code=os.getenv("LANGUAGE_CODE") or LANGUAGE_CODE,
        log_file=os.getenv("LOG_FILE") or LOG_FILE,
        log_level=(os.getenv("LOG_LEVEL") or LOG_LEVEL).upper(),
    )

    if config.stt_backend not in ("service", "google"):
        raise ValueError(f"Unknown STT_BACKEND '{config.stt_backend}' (expected service or google)")
    if config.llm_backend not in ("service", "vertex"):
        raise ValueError(f"Unknown LLM_BACKEND '{config.llm_backend}' (expected service or vertex)")
    if config.tts_backend not in ("google", "service"):
        raise ValueError(f"Unknown TTS_BACKEND '{config.tts_backend}' (expected google or service)")
    if config.needs_service() and not config.service_url:
        raise ValueError("Please set INTERVIEW_SERVICE_URL in config.py or as environment variable")
    if config.llm_backend == "vertex" and not config.google_cloud_project:
        raise ValueError("LLM_BACKEND=vertex requires GOOGLE_CLOUD_PROJECT")

    return config
