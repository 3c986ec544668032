"""
HTTP client for the Echo Notes server.

Used by the recording script to submit captures and manage notes.
"""

import logging
from typing import Dict, List, Optional, Type

import requests

from .error_handling import NoteError, NotConfigured, PersistenceFailed, Unauthorized
from .models import AudioCapture, Note

logger = logging.getLogger(__name__)

_STATUS_ERRORS: Dict[int, Type[NoteError]] = {
    401: Unauthorized,
    502: PersistenceFailed,
    503: NotConfigured,
}


class EchoNotesClient:
    """Thin wrapper over the server's REST API."""

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8000",
        api_key: Optional[str] = None,
        timeout: float = 180.0,
        header_name: str = "X-API-Key",
        session: Optional[requests.Session] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        if api_key:
            self.session.headers[header_name] = api_key

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout:
            raise NoteError(
                f"Request to {url} timed out after {self.timeout}s",
                user_message="The server took too long to respond. Please try again."
            )
        except requests.exceptions.RequestException as e:
            raise NoteError(
                f"Cannot reach Echo Notes server at {self.base_url}: {e}",
                user_message="Cannot reach the Echo Notes server.",
                original_exception=e
            )

        if response.status_code >= 400:
            raise _error_from_response(response)
        return response

    def process(self, capture: AudioCapture) -> Note:
        """Upload a capture and return the draft note built from it."""
        response = self._request(
            "POST",
            "/api/process",
            files={"audio": (capture.filename, capture.data, capture.media_type)},
            data={"duration": str(capture.duration)},
        )
        return Note(**response.json())

    def save(self, note: Note) -> Note:
        """Persist a draft note and return it with id and timestamp assigned."""
        response = self._request("POST", "/api/notes", json=note.content())
        return Note.from_record(response.json())

    def list_notes(self) -> List[Note]:
        response = self._request("GET", "/api/notes")
        return [Note.from_record(row) for row in response.json()]

    def delete(self, note_id: str) -> None:
        self._request("DELETE", f"/api/notes/{note_id}")


def _error_from_response(response: requests.Response) -> NoteError:
    """Turn an ``{error, details}`` body into the matching error type."""
    error_text = None
    details = None
    try:
        body = response.json()
        if isinstance(body, dict):
            error_text = body.get("error")
            details = body.get("details")
    except ValueError:
        pass

    error_class = _STATUS_ERRORS.get(response.status_code, NoteError)
    message = details or error_text or f"Server returned HTTP {response.status_code}"
    logger.debug(f"Server error {response.status_code}: {message}")
    return error_class(message, user_message=error_text)
