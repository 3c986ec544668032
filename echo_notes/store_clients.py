"""
Backing store clients for notes and recordings.

``SupabaseClient`` talks to a Supabase project over its REST and Storage
APIs; ``LocalStoreClient`` keeps JSON documents and audio files under a
data directory for development without a hosted project. Both expose the
same operations and raise ``StoreError`` for store-level failures.
"""

import json
import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from .config import StoreConfig, is_placeholder

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Store-level failure (network, HTTP error, I/O)."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class SupabaseClient:
    """Notes table and audio bucket in a Supabase project."""

    def __init__(
        self,
        url: Optional[str],
        key: Optional[str],
        notes_table: str = "notes",
        audio_bucket: str = "audio-notes",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None
    ):
        self.url = (url or "").rstrip("/")
        self.key = key or ""
        self.notes_table = notes_table
        self.audio_bucket = audio_bucket
        self.timeout = timeout
        self.session = session or requests.Session()

    def is_configured(self) -> bool:
        return not (is_placeholder(self.url) or is_placeholder(self.key))

    @property
    def rest_url(self) -> str:
        return f"{self.url}/rest/v1/{self.notes_table}"

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
        }
        if extra:
            headers.update(extra)
        return headers

    def _request(self, method: str, url: str, headers: Optional[Dict[str, str]] = None, **kwargs) -> requests.Response:
        try:
            response = self.session.request(
                method,
                url,
                headers=self._headers(headers),
                timeout=self.timeout,
                **kwargs
            )
        except requests.exceptions.Timeout:
            raise StoreError(f"Request to {self.url} timed out after {self.timeout}s")
        except requests.exceptions.ConnectionError as e:
            raise StoreError(f"Cannot connect to Supabase at {self.url}: {e}")
        except requests.exceptions.RequestException as e:
            raise StoreError(f"Network error contacting Supabase: {e}")

        if response.status_code >= 400:
            message = response.text
            code = None
            try:
                error_data = response.json()
                if isinstance(error_data, dict):
                    message = error_data.get("message") or error_data.get("error") or message
                    code = error_data.get("code")
            except ValueError:
                pass
            raise StoreError(f"Supabase error {response.status_code}: {message}", response.status_code, code)

        return response

    def insert_note(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Insert one row and return the stored representation."""
        response = self._request(
            "POST",
            self.rest_url,
            headers={"Prefer": "return=representation", "Content-Type": "application/json"},
            data=json.dumps([record]),
        )
        rows = response.json()
        if not isinstance(rows, list) or not rows:
            raise StoreError("Supabase insert returned no row")
        return rows[0]

    def select_notes(self, user_id: str) -> List[Dict[str, Any]]:
        """All rows owned by ``user_id``, newest first."""
        response = self._request(
            "GET",
            self.rest_url,
            params={
                "select": "*",
                "user_id": f"eq.{user_id}",
                "order": "created_at.desc",
            },
        )
        rows = response.json()
        return rows if isinstance(rows, list) else []

    def delete_note(self, note_id: str, user_id: str) -> None:
        """Delete the row matching both id and owner; unmatched filters delete nothing."""
        try:
            self._request(
                "DELETE",
                self.rest_url,
                params={"id": f"eq.{note_id}", "user_id": f"eq.{user_id}"},
            )
        except StoreError as e:
            # invalid_text_representation: the id cannot exist
            if e.code == "22P02":
                logger.debug(f"Ignoring delete of malformed note id {note_id!r}")
                return
            raise

    def upload_audio(self, data: bytes, key: str, content_type: str) -> str:
        """Upload an object to the audio bucket and return its public URL."""
        object_path = quote(key, safe="/")
        self._request(
            "POST",
            f"{self.url}/storage/v1/object/{self.audio_bucket}/{object_path}",
            headers={
                "Content-Type": content_type,
                "cache-control": "max-age=3600",
                "x-upsert": "false",
            },
            data=data,
        )
        return f"{self.url}/storage/v1/object/public/{self.audio_bucket}/{object_path}"


class LocalStoreClient:
    """Notes as JSON documents and recordings as files under a data directory."""

    def __init__(self, base_dir: str = "notes_data"):
        """
        Initialize LocalStoreClient.

        Args:
            base_dir: Base directory for note documents and audio files
        """
        self.base_dir = Path(base_dir)
        self.notes_dir = self.base_dir / "notes"
        self.audio_dir = self.base_dir / "audio"

    def is_configured(self) -> bool:
        return True

    def _ensure_directories(self) -> None:
        try:
            self.notes_dir.mkdir(parents=True, exist_ok=True)
            self.audio_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot create data directory {self.base_dir}: {e}")

    def _note_path(self, note_id: str) -> Optional[Path]:
        try:
            return self.notes_dir / f"{uuid.UUID(str(note_id))}.json"
        except ValueError:
            return None

    def insert_note(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Write one document atomically and return it with its id."""
        self._ensure_directories()
        row = dict(record)
        row["id"] = str(uuid.uuid4())
        path = self._note_path(row["id"])
        temp_path = path.with_suffix(".tmp")
        try:
            temp_path.write_text(json.dumps(row, default=str), encoding="utf-8")
            os.replace(temp_path, path)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise StoreError(f"Failed to write note {row['id']}: {e}")
        return row

    def select_notes(self, user_id: str) -> List[Dict[str, Any]]:
        """All documents owned by ``user_id``, newest first."""
        if not self.notes_dir.exists():
            return []

        rows = []
        for path in self.notes_dir.glob("*.json"):
            try:
                row = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Skipping unreadable note file {path}: {e}")
                continue
            if row.get("user_id") == user_id:
                rows.append(row)

        rows.sort(key=lambda row: _parse_timestamp(row.get("created_at")), reverse=True)
        return rows

    def delete_note(self, note_id: str, user_id: str) -> None:
        path = self._note_path(note_id)
        if path is None or not path.exists():
            return
        try:
            row = json.loads(path.read_text(encoding="utf-8"))
            if row.get("user_id") == user_id:
                path.unlink()
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Failed to delete note {note_id}: {e}")

    def upload_audio(self, data: bytes, key: str, content_type: str) -> str:
        """Write the recording and return a file:// URL."""
        self._ensure_directories()
        path = (self.audio_dir / key).resolve()
        if self.audio_dir.resolve() not in path.parents:
            raise StoreError(f"Invalid audio key: {key}")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise StoreError(f"Failed to write audio file {path}: {e}")
        return path.as_uri()


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value))
        except (TypeError, ValueError):
            parsed = datetime.min
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def build_store_client(store_config: StoreConfig):
    """Create the client for the configured backend."""
    if store_config.backend == "local":
        logger.info(f"Using local note store at {store_config.local_dir}")
        return LocalStoreClient(str(store_config.local_dir))
    return SupabaseClient(
        store_config.supabase_url,
        store_config.supabase_key,
        notes_table=store_config.notes_table,
        audio_bucket=store_config.audio_bucket,
        timeout=store_config.timeout_seconds,
    )
