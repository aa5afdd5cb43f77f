"""
Voice interview: AI-assisted HR voice interviews.

Asks a question set aloud, records and transcribes each answer, replies
through a language model and scores the finished transcript.
"""

__version__ = "1.0.0"

# Main entry points
from .interview.orchestrator import VoiceInterviewOrchestrator
from .interview.session import InterviewSession
from .config import Config, VoiceConfig, get_config

__all__ = ["VoiceInterviewOrchestrator", "InterviewSession", "Config", "VoiceConfig", "get_config"]
