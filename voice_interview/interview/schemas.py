"""
Structured payloads exchanged with the remote interview functions.
"""
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import EvaluationFailed
from ..infrastructure.llm import extract_json_object

FALLBACK_EVALUATION_SUMMARY = "Auto-generated fallback summary based on heuristic."


class ReplyRequest(BaseModel):
    """Body sent to the response-generation function."""
    model_config = ConfigDict(populate_by_name=True)

    message: str
    context: str
    role: str = "interviewer"
    interview_mode: bool = Field(default=True, alias="interviewMode")
    question_set: str = Field(alias="questionSet")
    current_question: int = Field(ge=0, alias="currentQuestion")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class ReplyResponse(BaseModel):
    """{"response": "..."}; a missing or blank response is allowed."""
    response: Optional[str] = None


class EvaluationRequest(BaseModel):
    """Body sent to the evaluation function."""
    model_config = ConfigDict(populate_by_name=True)

    transcript: List[Dict[str, Any]]
    role: str
    job_description: str = Field(default="", alias="jobDescription")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class EvaluationResult(BaseModel):
    """Structured score object for one interview."""
    communication: float = Field(ge=0, le=10)
    confidence: float = Field(ge=0, le=10)
    relevance: float = Field(ge=0, le=10)
    overall_fit: float = Field(ge=0, le=100)
    skills: List[str] = Field(default_factory=list)
    summary: str = ""
    is_fallback: bool = Field(default=False, exclude=True)

    @field_validator("skills", mode="before")
    @classmethod
    def split_skills(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @classmethod
    def fallback(cls) -> 'EvaluationResult':
        """Heuristic scores used when the evaluation backend fails."""
        return cls(communication=7, confidence=7, relevance=7, overall_fit=70,
                   skills=[], summary=FALLBACK_EVALUATION_SUMMARY, is_fallback=True)


def parse_evaluation(raw: Union[str, Dict[str, Any]]) -> EvaluationResult:
    """
    Validate an evaluation payload, accepting either a dict or model text.

    Some deployments wrap the scores as {"analysis": {...}}.

    Raises:
        EvaluationFailed: if the payload is missing fields or out of range
    """
    try:
        data = extract_json_object(raw) if isinstance(raw, str) else raw
        if isinstance(data.get("analysis"), dict):
            data = data["analysis"]
        return EvaluationResult.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise EvaluationFailed(f"Invalid evaluation payload: {e}") from e
