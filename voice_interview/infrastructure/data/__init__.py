"""
Record storage for finished interview sessions.
"""

from .records import SessionRecord, SessionStore, JsonSessionStore

__all__ = [
    'SessionRecord',
    'SessionStore',
    'JsonSessionStore'
]
