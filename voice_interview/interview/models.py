"""
Data models for the voice interview flow.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, List, Any


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class MessageRole(str, Enum):
    """Who produced a transcript message."""
    SYSTEM = "system"
    ASSISTANT = "assistant"
    USER = "user"


@dataclass(frozen=True)
class ConversationMessage:
    """One immutable transcript entry."""
    role: MessageRole
    content: str
    timestamp: str = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role.value, "content": self.content, "ts": self.timestamp}

    def as_context_line(self) -> str:
        return f"{self.role.value}: {self.content}"


class TranscriptionStatus(str, Enum):
    OK = "ok"
    EMPTY = "empty"  # silence, nothing recognized
    FALLBACK = "fallback"  # backend failed, text is the retry sentence


@dataclass(frozen=True)
class Transcription:
    text: str
    status: TranscriptionStatus

    @property
    def has_speech(self) -> bool:
        return self.status != TranscriptionStatus.EMPTY


@dataclass(frozen=True)
class GeneratedReply:
    text: str
    is_fallback: bool = False
    recorded: bool = True  # False when the session moved on before the reply arrived


class NoticeKind(str, Enum):
    """Candidate-facing notices raised by the orchestrator."""
    MICROPHONE_DENIED = "microphone_denied"
    NO_MICROPHONE = "no_microphone"
    NO_AUDIO = "no_audio"
    NO_SPEECH = "no_speech"
    TRANSCRIPTION_FALLBACK = "transcription_fallback"
    REPLY_FALLBACK = "reply_fallback"
    EMPTY_ANSWER = "empty_answer"
    NOT_ACTIVE = "not_active"


@dataclass(frozen=True)
class Notice:
    kind: NoticeKind
    title: str
    description: str

    @property
    def requires_retry(self) -> bool:
        """Hard stops: the candidate must record the current answer again."""
        return self.kind in (NoticeKind.MICROPHONE_DENIED, NoticeKind.NO_MICROPHONE,
                             NoticeKind.NO_AUDIO, NoticeKind.NO_SPEECH,
                             NoticeKind.EMPTY_ANSWER)


NOTICES: Dict[NoticeKind, Notice] = {
    NoticeKind.MICROPHONE_DENIED: Notice(
        NoticeKind.MICROPHONE_DENIED, "Microphone Error",
        "Cannot access microphone. Please check your permissions."),
    NoticeKind.NO_MICROPHONE: Notice(
        NoticeKind.NO_MICROPHONE, "Microphone Error",
        "No microphone was found. Please connect one and try again."),
    NoticeKind.NO_AUDIO: Notice(
        NoticeKind.NO_AUDIO, "❌ No Audio", "No sound recorded. Please try again."),
    NoticeKind.NO_SPEECH: Notice(
        NoticeKind.NO_SPEECH, "❌ No Speech Detected", "Please speak louder and try again."),
    NoticeKind.TRANSCRIPTION_FALLBACK: Notice(
        NoticeKind.TRANSCRIPTION_FALLBACK, "Transcription Unavailable",
        "Your answer could not be transcribed. You can also type your answer."),
    NoticeKind.REPLY_FALLBACK: Notice(
        NoticeKind.REPLY_FALLBACK, "Assistant Unavailable",
        "The interviewer could not respond in detail. The interview will continue."),
    NoticeKind.EMPTY_ANSWER: Notice(
        NoticeKind.EMPTY_ANSWER, "Empty Answer", "Please type an answer before sending."),
    NoticeKind.NOT_ACTIVE: Notice(
        NoticeKind.NOT_ACTIVE, "Interview Not Active", "Start the interview first."),
}


def notice(kind: NoticeKind, detail: Optional[str] = None) -> Notice:
    """Look up the standard notice, optionally replacing its description."""
    base = NOTICES[kind]
    if detail:
        return Notice(base.kind, base.title, detail)
    return base


class TurnStatus(str, Enum):
    COMPLETED = "completed"  # reply spoken, interview may have advanced or finished
    ENDED = "ended"  # candidate asked to end the interview
    RETRY = "retry"  # hard stop, waiting for the next recording
    DISCARDED = "discarded"  # session stopped while the turn was in flight
    INACTIVE = "inactive"  # no interview running


@dataclass
class TurnOutcome:
    """Result of processing one candidate answer."""
    status: TurnStatus
    user_text: Optional[str] = None
    reply: Optional[str] = None
    advanced: bool = False
    session_active: bool = True
    listening: bool = False  # continuous mode already started the next recording
    notices: List[Notice] = field(default_factory=list)
