"""
Interview session records and their storage.
"""
import os
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

logger = logging.getLogger("session_records")


@dataclass
class SessionRecord:
    """Everything kept about one interview once it has ended."""
    session_id: str
    question_set: str
    job_role: str
    started_at: str  # ISO format timestamp
    ended_at: Optional[str] = None
    status: str = "completed"  # completed | ended_early | stopped
    questions_answered: int = 0
    transcript: List[Dict[str, Any]] = field(default_factory=list)  # [{role, content, ts}]
    analysis: Optional[Dict[str, Any]] = None  # evaluation object, None if not evaluated
    job_description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SessionRecord':
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


class SessionStore(ABC):
    """Generic record store for finished interviews."""

    @abstractmethod
    def save(self, record: SessionRecord) -> None:
        """Persist a record, replacing any previous one with the same id."""

    @abstractmethod
    def load(self, session_id: str) -> Optional[SessionRecord]:
        """Return the stored record, or None if unknown."""

    @abstractmethod
    def list_ids(self) -> List[str]:
        """Ids of all stored sessions."""


class JsonSessionStore(SessionStore):
    """One <session_id>.json file per interview in a records directory."""

    def __init__(self, records_dir: str):
        self.records_dir = records_dir
        os.makedirs(self.records_dir, exist_ok=True)

    def _get_record_path(self, session_id: str) -> str:
        return os.path.join(self.records_dir, f"{session_id}.json")

    def save(self, record: SessionRecord) -> None:
        path = self._get_record_path(record.session_id)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(record.to_dict(), f, indent=2, ensure_ascii=False)
        logger.info(f"Saved session record {record.session_id} to {path}")

    def load(self, session_id: str) -> Optional[SessionRecord]:
        path = self._get_record_path(session_id)
        if not os.path.exists(path):
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return SessionRecord.from_dict(json.load(f))
        except (OSError, ValueError, TypeError) as e:
            logger.error(f"Failed to load session record {session_id}: {e}")
            return None

    def list_ids(self) -> List[str]:
        if not os.path.exists(self.records_dir):
            return []
        return sorted(name[:-5] for name in os.listdir(self.records_dir) if name.endswith('.json'))
