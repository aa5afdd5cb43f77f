"""
Interview session state machine.

Inactive -> Active -> Inactive, restartable. The session owns the
question index, the transcript and the active flag. Each start() or
stop() bumps an epoch so that results computed for an earlier run of
the session can be recognized and dropped.
"""
import logging
import uuid
from typing import Callable, List, Optional, Sequence, Tuple

from .models import ConversationMessage, MessageRole, utc_now
from .prompts import InterviewPrompts
from .questions import QuestionSet
from ..config import ADVANCE_PHRASES, END_INTERVIEW_PHRASES, MAX_FOLLOW_UPS

logger = logging.getLogger("interview_session")


def contains_phrase(text: str, phrases: Sequence[str]) -> bool:
    lowered = text.lower()
    return any(phrase in lowered for phrase in phrases)


class InterviewSession:
    """Question progression and transcript for one interview."""

    def __init__(self,
                 questions: QuestionSet,
                 allow_follow_ups: bool = False,
                 max_follow_ups: int = MAX_FOLLOW_UPS,
                 on_stop: Optional[Callable[[], None]] = None):
        self.questions = questions
        self.allow_follow_ups = allow_follow_ups
        self.max_follow_ups = max_follow_ups
        self.on_stop = on_stop

        self.active = False
        self.current_question_index = 0
        self.epoch = 0
        self.follow_ups = 0
        self.session_id: Optional[str] = None
        self.started_at: Optional[str] = None
        self.ended_at: Optional[str] = None
        self.end_reason: Optional[str] = None  # completed | ended_early | stopped
        self._history: List[ConversationMessage] = []
        self._advanced_this_turn = False

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def history(self) -> Tuple[ConversationMessage, ...]:
        return tuple(self._history)

    @property
    def current_question(self) -> Optional[str]:
        if self.current_question_index < len(self.questions):
            return self.questions[self.current_question_index]
        return None

    @property
    def answered_count(self) -> int:
        return sum(1 for m in self._history if m.role == MessageRole.USER)

    def recent_messages(self, count: int) -> List[ConversationMessage]:
        return self._history[-count:] if count > 0 else []

    def is_current(self, epoch: int) -> bool:
        """True if `epoch` belongs to the run that is still active."""
        return self.active and epoch == self.epoch

    def current_announcement(self) -> Optional[str]:
        question = self.current_question
        if question is None:
            return None
        return InterviewPrompts.question_announcement(
            self.current_question_index, len(self.questions), question)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self) -> List[ConversationMessage]:
        """
        Begin (or restart) the interview.

        Returns:
            The greeting and first question, already appended to history
        """
        self.epoch += 1
        self.active = True
        self.current_question_index = 0
        self.follow_ups = 0
        self._history = []
        self._advanced_this_turn = False
        self.session_id = uuid.uuid4().hex
        self.started_at = utc_now()
        self.ended_at = None
        self.end_reason = None

        logger.info(f"Session {self.session_id} started with {len(self.questions)} "
                    f"'{self.questions.name}' questions")
        return [
            self._append(MessageRole.ASSISTANT, InterviewPrompts.greeting()),
            self._append(MessageRole.ASSISTANT, self.current_announcement()),
        ]

    def begin_turn(self) -> int:
        """Mark the start of a candidate turn and return the epoch it belongs to."""
        self._advanced_this_turn = False
        return self.epoch

    def record_exchange(self, user_text: str, reply_text: str,
                        epoch: Optional[int] = None) -> bool:
        """
        Append a user message and its reply as one pair.

        Returns:
            False if the session is inactive or `epoch` is stale; nothing is appended
        """
        if not self.active or (epoch is not None and epoch != self.epoch):
            logger.info("Discarding exchange for a stopped or restarted session")
            return False
        pair = [ConversationMessage(MessageRole.USER, user_text),
                ConversationMessage(MessageRole.ASSISTANT, reply_text)]
        self._history.extend(pair)
        return True

    def should_advance(self, reply_text: str) -> bool:
        """
        Decide whether the processed answer moves the interview on.

        The last question always advances (to completion). Without
        follow-ups every answer advances; with follow-ups the reply's
        transition phrase or an exhausted follow-up budget does.
        """
        if not self.active:
            return False
        if self.current_question_index + 1 >= len(self.questions):
            return True
        if not self.allow_follow_ups:
            return True
        if contains_phrase(reply_text, ADVANCE_PHRASES):
            return True
        return self.follow_ups >= self.max_follow_ups

    def note_follow_up(self) -> None:
        self.follow_ups += 1

    def advance(self) -> Optional[ConversationMessage]:
        """
        Move to the next question, or complete the interview after the last one.

        At most one advance is applied per turn; extra calls and calls on
        an inactive session return None.

        Returns:
            The emitted question or closing message
        """
        if not self.active or self._advanced_this_turn:
            return None
        self._advanced_this_turn = True
        self.follow_ups = 0

        if self.current_question_index + 1 < len(self.questions):
            self.current_question_index += 1
            logger.info(f"Advanced to question {self.current_question_index + 1}/{len(self.questions)}")
            return self._append(MessageRole.ASSISTANT, self.current_announcement())

        self.current_question_index = len(self.questions)
        closing = self._append(MessageRole.ASSISTANT, InterviewPrompts.natural_closing())
        self._deactivate("completed")
        return closing

    def is_end_request(self, user_text: str) -> bool:
        return contains_phrase(user_text, END_INTERVIEW_PHRASES)

    def end_early(self, user_text: str, epoch: Optional[int] = None) -> Optional[ConversationMessage]:
        """
        The candidate asked to finish: record the request with the closing
        line and deactivate, regardless of the question index.
        """
        closing_text = InterviewPrompts.early_closing()
        if not self.record_exchange(user_text, closing_text, epoch):
            return None
        self._deactivate("ended_early")
        return self._history[-1]

    def stop(self) -> None:
        """Force the session inactive without a closing message and silence any speech."""
        if self.active:
            self._deactivate("stopped")
        if self.on_stop is not None:
            self.on_stop()

    # ------------------------------------------------------------------

    def _append(self, role: MessageRole, content: str) -> ConversationMessage:
        message = ConversationMessage(role, content)
        self._history.append(message)
        return message

    def _deactivate(self, reason: str) -> None:
        self.active = False
        self.epoch += 1
        self.ended_at = utc_now()
        self.end_reason = reason
        logger.info(f"Session {self.session_id} ended: {reason} "
                    f"(question {min(self.current_question_index + 1, len(self.questions))}"
                    f"/{len(self.questions)})")
