"""Utility modules for logging and audio import helpers."""

from .imports import with_suppressed_audio_warnings
from .logging import setup_logging

__all__ = ["with_suppressed_audio_warnings", "setup_logging"]
