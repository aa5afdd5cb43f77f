"""
Role-based chat assistant for admins, recruiters and employees.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List

from .models import ConversationMessage, MessageRole
from ..config import CHAT_FUNCTION
from ..errors import ServiceError
from ..infrastructure.api import InterviewApiClient

logger = logging.getLogger("chat_assistant")


@dataclass(frozen=True)
class AssistantProfile:
    title: str
    greeting: str


ASSISTANT_PROFILES: Dict[str, AssistantProfile] = {
    "admin": AssistantProfile(
        "Admin Assistant AI",
        "Hello! I'm your Admin Assistant. I can help you with analytics, "
        "system management, and administrative tasks."),
    "hr": AssistantProfile(
        "Recruitment AI Assistant",
        "Hello! I'm your Recruitment AI Assistant. I can help with resume analysis, "
        "candidate evaluation, and hiring insights."),
    "employee": AssistantProfile(
        "Career Coach AI",
        "Hello! I'm your Career Coach. I can help with career development, "
        "skill growth, and performance improvement advice."),
}

DEFAULT_PROFILE = AssistantProfile("AI Assistant", "Hello! How can I assist you today?")


class RoleBasedChatAssistant:
    """Keeps one chat conversation and sends it in full on every message."""

    def __init__(self, role: str, client: InterviewApiClient, function: str = CHAT_FUNCTION):
        self.role = role
        self.client = client
        self.function = function
        self.profile = ASSISTANT_PROFILES.get(role, DEFAULT_PROFILE)
        self.messages: List[ConversationMessage] = [
            ConversationMessage(MessageRole.ASSISTANT, self.profile.greeting)
        ]

    @property
    def title(self) -> str:
        return self.profile.title

    def send(self, text: str) -> str:
        """
        Send a user message and return the assistant's answer.

        Raises:
            ValueError: for blank input
            ServiceError: if the chat function fails; the history is left unchanged
        """
        text = text.strip()
        if not text:
            raise ValueError("Message must not be empty")

        user_message = ConversationMessage(MessageRole.USER, text)
        payload = {
            "messages": [{"role": m.role.value, "content": m.content}
                         for m in self.messages + [user_message]],
            "role": self.role,
        }
        data = self.client.post_json(self.function, payload)

        answer = data.get("response")
        if not isinstance(answer, str) or not answer.strip():
            raise ServiceError(f"{self.function} returned no response")

        self.messages.extend([user_message,
                              ConversationMessage(MessageRole.ASSISTANT, answer.strip())])
        logger.info(f"Chat ({self.role}): {len(self.messages)} messages")
        return answer.strip()

    def reset(self) -> None:
        self.messages = [ConversationMessage(MessageRole.ASSISTANT, self.profile.greeting)]
