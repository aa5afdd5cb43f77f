"""
Built-in interview question sets.
"""
from dataclasses import dataclass
from typing import Dict, Sequence, Tuple


@dataclass(frozen=True)
class QuestionSet:
    name: str
    questions: Tuple[str, ...]

    def __post_init__(self):
        if not self.questions:
            raise ValueError(f"Question set '{self.name}' has no questions")

    def __len__(self) -> int:
        return len(self.questions)

    def __getitem__(self, index: int) -> str:
        return self.questions[index]

    @classmethod
    def custom(cls, questions: Sequence[str], name: str = "custom") -> 'QuestionSet':
        return cls(name=name, questions=tuple(q.strip() for q in questions if q.strip()))


QUESTION_SETS: Dict[str, QuestionSet] = {
    "technical": QuestionSet("technical", (
        "Tell me about your experience with React and TypeScript.",
        "Describe a challenging bug you fixed and how you approached it.",
        "How do you ensure code quality in your projects?",
        "Explain your preferred state management approach.",
        "Describe a system you designed from start to finish.",
    )),
    "behavioral": QuestionSet("behavioral", (
        "Tell me about a time you had to work with a difficult team member.",
        "Describe a situation where you had to learn something new quickly.",
        "Give me an example of a project where you had to meet a tight deadline.",
        "Tell me about a time you failed and what you learned from it.",
        "Describe a situation where you had to make a difficult decision.",
    )),
    "hr": QuestionSet("hr", (
        "Why are you interested in this position?",
        "Where do you see yourself in 5 years?",
        "What are your greatest strengths and weaknesses?",
        "Why should we hire you?",
        "Do you have any questions for us?",
    )),
}


def get_question_set(name: str) -> QuestionSet:
    """Look up a built-in set by name (case-insensitive)."""
    try:
        return QUESTION_SETS[name.strip().lower()]
    except KeyError:
        raise ValueError(
            f"Unknown question set '{name}' (expected one of: {', '.join(QUESTION_SETS)})"
        ) from None
