"""
Interview prompt templates and spoken lines.

This module contains every sentence the interviewer says and every
prompt sent to a language model, keeping them separate from the flow
logic for easier editing.
"""
import json
from typing import Any, Dict, List


class InterviewPrompts:
    """Collection of all interview-related prompts."""

    @staticmethod
    def greeting() -> str:
        return ("Hello! Welcome to your AI voice interview. I'll be asking you questions "
                "and we'll have a natural conversation. Please speak clearly and feel free "
                "to ask me anything. Let's begin!")

    @staticmethod
    def question_announcement(index: int, total: int, question: str) -> str:
        """Spoken form of question `index` (0-based)."""
        if index == 0:
            return f"Let's start with question 1 of {total}: {question}"
        return f"Question {index + 1} of {total}: {question}"

    @staticmethod
    def natural_closing() -> str:
        return ("Thank you for completing the interview! Your responses have been recorded "
                "and will be analyzed. Have a great day!")

    @staticmethod
    def early_closing() -> str:
        return "Thank you. Ending the interview now."

    @staticmethod
    def turn_context(question_set: str, index: int, total: int, question: str,
                     job_role: str = "") -> str:
        """Free-text metadata sent with every answer."""
        context = (f"You are conducting a {question_set} interview. "
                   f"Current question {index + 1} of {total}. "
                   "Be conversational, ask follow-up questions, and provide feedback.")
        context += f"\nCurrent question: {question}"
        if job_role:
            context += f"\nPosition: {job_role}"
        return context

    @staticmethod
    def with_history(context: str, history_lines: List[str]) -> str:
        """Append the recent conversation to the turn context."""
        return f"{context}\n\nConversation History:\n" + "\n".join(history_lines)

    @staticmethod
    def interviewer_system_instruction(context: str) -> str:
        """System instruction for generating a reply with a language model directly."""
        return f"""
You are a friendly, professional HR interviewer speaking with a candidate by voice.

{context}

Guidelines:
- Reply in two to four short spoken sentences, no markdown or lists.
- Acknowledge the candidate's answer with specific, constructive feedback.
- If the answer is complete, say "Let's move on" so the next question can be asked.
- Otherwise ask at most one short follow-up question.
        """.strip()

    @staticmethod
    def evaluation_system_instruction(role: str, job_description: str) -> str:
        return f"""
You are an expert technical recruiter evaluating an interview transcript for the role "{role}".
Job description: {job_description or "not provided"}

Score the candidate and return a JSON object with exactly these fields:
{{"skills": ["<skill>", ...],
  "communication": <0-10>,
  "confidence": <0-10>,
  "relevance": <0-10>,
  "overall_fit": <0-100>,
  "summary": "<two or three sentences>"}}
        """.strip()

    @staticmethod
    def evaluation_prompt(transcript: List[Dict[str, Any]], limit: int) -> str:
        """Transcript text for evaluation, truncated to `limit` characters."""
        text = json.dumps(transcript, ensure_ascii=False)
        return f"Interview transcript:\n{text[:limit]}"

    @staticmethod
    def fallback_messages() -> Dict[str, str]:
        """Substitute texts used when a backend fails."""
        return {
            "transcription": ("I couldn't transcribe your speech. Please try speaking more "
                              "clearly or use the text input instead."),
            "reply": "Thank you for your response. Let's continue with the next question.",
            "empty_reply": "I understand. Please continue.",
        }
