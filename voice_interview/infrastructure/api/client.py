"""
HTTP client for the remote interview functions (transcription, replies,
evaluation and the chat assistant).

Every function is addressed as ``<base_url>/<function-name>`` and
authenticated with the project key, sent both as a bearer token and as
the ``apikey`` header.
"""
import logging
from typing import Any, Dict, Optional

import requests

from ...config import SERVICE_TIMEOUT
from ...errors import ServiceError

logger = logging.getLogger("api_client")


class InterviewApiClient:
    """Thin wrapper around requests.post with uniform error handling."""

    def __init__(self, base_url: str, api_key: str = "", timeout: float = SERVICE_TIMEOUT):
        if not base_url:
            raise ValueError("base_url is required")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def function_url(self, function: str) -> str:
        return f"{self.base_url}/{function}"

    def _headers(self) -> Dict[str, str]:
        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
            headers["apikey"] = self.api_key
        return headers

    def post_json(self, function: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST a JSON body and return the decoded JSON object."""
        logger.debug(f"POST {function} (json)")
        try:
            resp = requests.post(self.function_url(function), json=payload,
                                 headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise ServiceError(f"{function} request failed: {e}") from e
        return self._decode(function, resp)

    def post_file(self,
                  function: str,
                  filename: str,
                  content: bytes,
                  mime_type: str,
                  fields: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """POST one file as multipart/form-data under the "file" field."""
        logger.debug(f"POST {function} (file {filename}, {len(content)} bytes)")
        try:
            resp = requests.post(self.function_url(function),
                                 files={"file": (filename, content, mime_type)},
                                 data=fields or {},
                                 headers=self._headers(),
                                 timeout=self.timeout)
        except requests.RequestException as e:
            raise ServiceError(f"{function} request failed: {e}") from e
        return self._decode(function, resp)

    def post_for_audio(self, function: str, payload: Dict[str, Any]) -> bytes:
        """POST a JSON body to a function that answers with raw audio bytes."""
        logger.debug(f"POST {function} (json, audio response)")
        try:
            resp = requests.post(self.function_url(function), json=payload,
                                 headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise ServiceError(f"{function} request failed: {e}") from e

        if resp.status_code >= 400:
            raise ServiceError(f"{function} error {resp.status_code}: {resp.text[:200]}",
                               status_code=resp.status_code)
        if "json" in resp.headers.get("Content-Type", ""):
            raise ServiceError(f"{function} returned JSON instead of audio: {resp.text[:200]}")
        if not resp.content:
            raise ServiceError(f"{function} returned no audio")
        return resp.content

    @staticmethod
    def _decode(function: str, resp: requests.Response) -> Dict[str, Any]:
        if resp.status_code >= 400:
            raise ServiceError(f"{function} error {resp.status_code}: {resp.text[:200]}",
                               status_code=resp.status_code)
        try:
            data = resp.json()
        except ValueError as e:
            raise ServiceError(f"{function} returned a non-JSON body") from e
        if not isinstance(data, dict):
            raise ServiceError(f"{function} returned {type(data).__name__}, expected an object")
        return data
