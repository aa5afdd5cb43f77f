"""Interview flow components.

This module contains the business logic for AI voice interviews: the
session state machine, the turn orchestrator, speech synthesis control
and the services wrapping transcription, reply generation and evaluation.
"""

# Core orchestrator class
from .orchestrator import VoiceInterviewOrchestrator

# Session state
from .session import InterviewSession
from .questions import QuestionSet, QUESTION_SETS, get_question_set

# Data models
from .models import (
    ConversationMessage, MessageRole, Transcription, TranscriptionStatus,
    GeneratedReply, Notice, NoticeKind, TurnOutcome, TurnStatus
)

# Structured payloads
from .schemas import EvaluationResult, ReplyRequest, parse_evaluation

# Services
from .services import (
    SpeechToTextClient, ResponseGenerator, InterviewEvaluator,
    ReplyBackend, ServiceReplyBackend, VertexReplyBackend,
    EvaluationBackend, ServiceEvaluationBackend, VertexEvaluationBackend
)
from .synthesis import SpeechSynthesisController, SpeechState
from .assistant import RoleBasedChatAssistant
from .prompts import InterviewPrompts

# Event system
from .events import (
    InterviewEventBus, EventLogger, InterviewMetrics, EventType, InterviewEvent
)

__all__ = [
    # Orchestrator
    "VoiceInterviewOrchestrator",

    # Session
    "InterviewSession", "QuestionSet", "QUESTION_SETS", "get_question_set",

    # Data models
    "ConversationMessage", "MessageRole", "Transcription", "TranscriptionStatus",
    "GeneratedReply", "Notice", "NoticeKind", "TurnOutcome", "TurnStatus",

    # Schemas
    "EvaluationResult", "ReplyRequest", "parse_evaluation",

    # Services
    "SpeechToTextClient", "ResponseGenerator", "InterviewEvaluator",
    "ReplyBackend", "ServiceReplyBackend", "VertexReplyBackend",
    "EvaluationBackend", "ServiceEvaluationBackend", "VertexEvaluationBackend",
    "SpeechSynthesisController", "SpeechState", "RoleBasedChatAssistant", "InterviewPrompts",

    # Events
    "InterviewEventBus", "EventLogger", "InterviewMetrics", "EventType", "InterviewEvent",
]
