"""
Vertex AI Gemini REST client used by the vertex reply and evaluation backends.
"""
import json
import logging
from typing import Optional, Dict, Any, List

import requests
import google.auth
import google.auth.exceptions
import google.auth.transport.requests
from google.oauth2 import service_account

from ...config import VERTEX_LOCATION, MODEL_NAME, LLM_TIMEOUT, MAX_OUTPUT_TOKENS
from ...errors import ServiceError

logger = logging.getLogger("llm_client")

_SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Parse a JSON object from model output, tolerating code fences and
    surrounding prose.

    Raises:
        ValueError: if no JSON object can be recovered
    """
    try:
        parsed = json.loads(text)
    except ValueError:
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end <= start:
            raise ValueError(f"No JSON object in model output: {text[:200]!r}")
        parsed = json.loads(text[start:end + 1])

    if not isinstance(parsed, dict):
        raise ValueError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed


class VertexRestClient:
    """REST-based client for Vertex AI Gemini models."""

    def __init__(self,
                 project: str,
                 location: str = VERTEX_LOCATION,
                 model: str = MODEL_NAME,
                 credentials_json: Optional[str] = None,
                 timeout: float = LLM_TIMEOUT):
        self.project = project
        self.location = location
        self.model = model
        self.credentials_json = credentials_json
        self.timeout = timeout
        self.endpoint = (
            f"https://{location}-aiplatform.googleapis.com/v1/projects/{project}"
            f"/locations/{location}/publishers/google/models/{model}:generateContent"
        )
        self._credentials = None

    def _access_token(self) -> str:
        """
        Return a valid OAuth token, loading or refreshing credentials as needed.

        Raises:
            ServiceError: if credentials cannot be found, read or refreshed
        """
        try:
            if self._credentials is None:
                if self.credentials_json:
                    self._credentials = service_account.Credentials.from_service_account_file(
                        self.credentials_json, scopes=_SCOPES)
                else:
                    self._credentials, _ = google.auth.default(scopes=_SCOPES)

            if not self._credentials.valid:
                self._credentials.refresh(google.auth.transport.requests.Request())
        except (google.auth.exceptions.GoogleAuthError, OSError, ValueError) as e:
            logger.error(f"Vertex credentials unavailable: {e}")
            raise ServiceError(f"Vertex credentials unavailable: {e}") from e
        return self._credentials.token

    def generate_content(self,
                         contents: List[Dict[str, str]],
                         system_instruction: Optional[str] = None,
                         temperature: float = 0.7,
                         max_output_tokens: int = MAX_OUTPUT_TOKENS,
                         response_mime_type: Optional[str] = None) -> str:
        """
        Generate a completion for a list of {"role", "text"} turns.

        Roles are "user" or "model".

        Raises:
            ServiceError: on transport failure, HTTP error or an empty candidate list
        """
        body: Dict[str, Any] = {
            "contents": [
                {"role": turn["role"], "parts": [{"text": turn["text"]}]}
                for turn in contents
            ],
            "generationConfig": {
                "temperature": float(temperature),
                "maxOutputTokens": int(max_output_tokens),
            },
        }
        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        if response_mime_type:
            body["generationConfig"]["responseMimeType"] = response_mime_type

        headers = {
            "Authorization": f"Bearer {self._access_token()}",
            "Content-Type": "application/json",
        }

        try:
            resp = requests.post(self.endpoint, headers=headers, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise ServiceError(f"Vertex request failed: {e}") from e

        if resp.status_code >= 400:
            raise ServiceError(f"Vertex REST error {resp.status_code}: {resp.text[:300]}",
                               status_code=resp.status_code)

        try:
            payload = resp.json()
        except ValueError as e:
            raise ServiceError("Vertex returned a non-JSON body") from e

        text = self._candidate_text(payload)
        if text is None:
            raise ServiceError(f"Vertex response had no text: {json.dumps(payload)[:300]}")
        return text

    @staticmethod
    def _candidate_text(payload: Dict[str, Any]) -> Optional[str]:
        """Join the text parts of the first candidate (candidates[0].content.parts[*].text)."""
        candidates = payload.get("candidates") or []
        if not candidates or not isinstance(candidates[0], dict):
            return None
        parts = candidates[0].get("content", {}).get("parts", [])
        texts = [p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
        return "".join(texts) if texts else None

    def generate_json(self, prompt: str, system_instruction: Optional[str] = None) -> Dict[str, Any]:
        """
        Ask for a JSON object and parse it.

        Raises:
            ServiceError: if the request fails
            ValueError: if the output is not a JSON object
        """
        text = self.generate_content(
            [{"role": "user", "text": prompt.strip() + "\n\nRespond ONLY with minified JSON."}],
            system_instruction=system_instruction,
            temperature=0.0,
            response_mime_type="application/json",
        )
        logger.debug("Raw LLM output: %s", repr(text))
        return extract_json_object(text)
