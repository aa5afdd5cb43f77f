"""Remote interview function client."""

from .client import InterviewApiClient

__all__ = ["InterviewApiClient"]
