"""
Event notifications for the voice interview flow.

The orchestrator emits an event at each step of a turn. Subscribers
(logging, metrics, a UI) never affect the flow: a failing handler is
logged and skipped.
"""
import time
import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger("events")


class EventType(str, Enum):
    """Types of interview events."""
    INTERVIEW_STARTED = "interview_started"
    QUESTION_ASKED = "question_asked"
    RECORDING_STARTED = "recording_started"
    TRANSCRIPTION_COMPLETED = "transcription_completed"
    REPLY_GENERATED = "reply_generated"
    TURN_COMPLETED = "turn_completed"
    NOTICE_RAISED = "notice_raised"
    INTERVIEW_COMPLETED = "interview_completed"
    INTERVIEW_STOPPED = "interview_stopped"
    EVALUATION_COMPLETED = "evaluation_completed"
    ERROR_OCCURRED = "error_occurred"


@dataclass
class InterviewEvent:
    """Base class for all interview events."""
    event_type: EventType
    session_id: Optional[str]
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


@dataclass
class InterviewStartedEvent(InterviewEvent):
    def __init__(self, session_id: str, question_set: str, total_questions: int):
        super().__init__(EventType.INTERVIEW_STARTED, session_id,
                         {"question_set": question_set, "total_questions": total_questions})


@dataclass
class QuestionAskedEvent(InterviewEvent):
    def __init__(self, session_id: str, question_index: int, text: str):
        super().__init__(EventType.QUESTION_ASKED, session_id,
                         {"question_index": question_index, "text": text})


@dataclass
class RecordingStartedEvent(InterviewEvent):
    def __init__(self, session_id: str, question_index: int):
        super().__init__(EventType.RECORDING_STARTED, session_id,
                         {"question_index": question_index})


@dataclass
class TranscriptionCompletedEvent(InterviewEvent):
    def __init__(self, session_id: str, text: str, status: str, audio_bytes: int):
        super().__init__(EventType.TRANSCRIPTION_COMPLETED, session_id,
                         {"text": text, "status": status, "audio_bytes": audio_bytes})


@dataclass
class ReplyGeneratedEvent(InterviewEvent):
    """Fired when the interviewer reply is ready (or its fallback was used)."""
    def __init__(self, session_id: str, reply: str, is_fallback: bool):
        super().__init__(EventType.REPLY_GENERATED, session_id,
                         {"reply": reply, "is_fallback": is_fallback})


@dataclass
class TurnCompletedEvent(InterviewEvent):
    def __init__(self, session_id: str, question_index: int, user_text: str,
                 reply: str, advanced: bool):
        super().__init__(EventType.TURN_COMPLETED, session_id, {
            "question_index": question_index,
            "user_text": user_text,
            "reply": reply,
            "advanced": advanced,
        })


@dataclass
class NoticeRaisedEvent(InterviewEvent):
    def __init__(self, session_id: Optional[str], kind: str, title: str, description: str):
        super().__init__(EventType.NOTICE_RAISED, session_id,
                         {"kind": kind, "title": title, "description": description})


@dataclass
class InterviewCompletedEvent(InterviewEvent):
    """Fired when the interview ends on its own or at the candidate's request."""
    def __init__(self, session_id: str, reason: str, questions_answered: int):
        super().__init__(EventType.INTERVIEW_COMPLETED, session_id,
                         {"reason": reason, "questions_answered": questions_answered})


@dataclass
class InterviewStoppedEvent(InterviewEvent):
    def __init__(self, session_id: Optional[str], question_index: int):
        super().__init__(EventType.INTERVIEW_STOPPED, session_id,
                         {"question_index": question_index})


@dataclass
class EvaluationCompletedEvent(InterviewEvent):
    def __init__(self, session_id: str, overall_fit: float, is_fallback: bool):
        super().__init__(EventType.EVALUATION_COMPLETED, session_id,
                         {"overall_fit": overall_fit, "is_fallback": is_fallback})


@dataclass
class ErrorOccurredEvent(InterviewEvent):
    def __init__(self, session_id: Optional[str], error_type: str,
                 error_message: str, component: str):
        super().__init__(EventType.ERROR_OCCURRED, session_id, {
            "error_type": error_type,
            "error_message": error_message,
            "component": component,
        })


EventHandler = Callable[[InterviewEvent], None]


class InterviewEventBus:
    """Synchronous publish/subscribe hub for interview events."""

    def __init__(self):
        self._handlers: Dict[EventType, List[EventHandler]] = {}
        self._global_handlers: List[EventHandler] = []

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Call `handler` for every event of `event_type`."""
        self._handlers.setdefault(event_type, []).append(handler)

    def subscribe_all(self, handler: EventHandler) -> None:
        """Call `handler` for every event."""
        self._global_handlers.append(handler)

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)
        else:
            logger.warning(f"Handler not found for {event_type.value}")

    def emit(self, event: InterviewEvent) -> None:
        """Deliver an event to type subscribers first, then global ones."""
        logger.debug(f"Emitting {event.event_type.value} for session {event.session_id}")
        for handler in self._handlers.get(event.event_type, []) + self._global_handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler for {event.event_type.value}: {e!r}")

    def clear_handlers(self) -> None:
        self._handlers.clear()
        self._global_handlers.clear()


class EventLogger:
    """Writes every event to the log."""

    def __init__(self, log_level: int = logging.INFO):
        self.logger = logging.getLogger("event_logger")
        self.log_level = log_level

    def handle_event(self, event: InterviewEvent) -> None:
        self.logger.log(self.log_level,
                        f"Event: {event.event_type.value} | Session: {event.session_id} | Data: {event.data}")


class InterviewMetrics:
    """Counts events per type, plus fallbacks and notices by kind."""

    def __init__(self):
        self.counts: Counter = Counter()
        self.notices: Counter = Counter()
        self.transcription_fallbacks = 0
        self.reply_fallbacks = 0

    def handle_event(self, event: InterviewEvent) -> None:
        self.counts[event.event_type.value] += 1
        if event.event_type == EventType.NOTICE_RAISED:
            self.notices[event.data.get("kind")] += 1
        elif event.event_type == EventType.TRANSCRIPTION_COMPLETED and event.data.get("status") == "fallback":
            self.transcription_fallbacks += 1
        elif event.event_type == EventType.REPLY_GENERATED and event.data.get("is_fallback"):
            self.reply_fallbacks += 1

    def get_metrics(self) -> Dict[str, Any]:
        """Snapshot of all counters."""
        return {
            "interviews_started": self.counts[EventType.INTERVIEW_STARTED.value],
            "interviews_completed": self.counts[EventType.INTERVIEW_COMPLETED.value],
            "interviews_stopped": self.counts[EventType.INTERVIEW_STOPPED.value],
            "total_turns": self.counts[EventType.TURN_COMPLETED.value],
            "errors_occurred": self.counts[EventType.ERROR_OCCURRED.value],
            "transcription_fallbacks": self.transcription_fallbacks,
            "reply_fallbacks": self.reply_fallbacks,
            "notices": dict(self.notices),
        }

    def reset(self) -> None:
        self.counts.clear()
        self.notices.clear()
        self.transcription_fallbacks = 0
        self.reply_fallbacks = 0
