"""
Persistence of voice notes and their source recordings.

Notes are create/list/delete only: a persisted note is never updated.
Every read and delete is scoped to the caller's user id.
"""

import logging
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from pydantic import BaseModel

from .error_handling import NotConfigured, PersistenceFailed, Unauthorized
from .models import AudioCapture, Note
from .store_clients import StoreError

logger = logging.getLogger(__name__)

NOT_CONFIGURED_MESSAGE = (
    "Note storage is not configured. Set SUPABASE_URL and SUPABASE_KEY "
    "(or NOTE_STORE_BACKEND=local) and restart the server."
)


class NoteStats(BaseModel):
    """Aggregate figures over a user's notes."""
    total_notes: int = 0
    total_key_points: int = 0
    total_action_items: int = 0
    average_key_points: float = 0.0
    latest_created_at: Optional[datetime] = None


def summarize_notes(notes: List[Note]) -> NoteStats:
    """Compute dashboard figures for a newest-first list of notes."""
    if not notes:
        return NoteStats()
    total_key_points = sum(len(note.key_points) for note in notes)
    return NoteStats(
        total_notes=len(notes),
        total_key_points=total_key_points,
        total_action_items=sum(len(note.action_items) for note in notes),
        average_key_points=round(total_key_points / len(notes), 1),
        latest_created_at=notes[0].created_at,
    )


class NoteStore:
    """Saves, lists and deletes notes through an injected store client."""

    def __init__(self, client, clock: Optional[Callable[[], datetime]] = None):
        """
        Args:
            client: SupabaseClient, LocalStoreClient or any object with the same operations
            clock: Source of the current UTC time (defaults to ``datetime.now(timezone.utc)``)
        """
        self.client = client
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self._timestamp_lock = threading.Lock()
        self._last_timestamp: Optional[datetime] = None

    def is_configured(self) -> bool:
        return self.client is not None and self.client.is_configured()

    def _next_timestamp(self) -> datetime:
        """Creation timestamps are strictly increasing within this process."""
        with self._timestamp_lock:
            now = self.clock()
            if self._last_timestamp is not None and now <= self._last_timestamp:
                now = self._last_timestamp + timedelta(microseconds=1)
            self._last_timestamp = now
            return now

    def save(self, note: Note, owner: Optional[str]) -> Note:
        """
        Persist a draft note for ``owner``.

        Returns:
            The persisted note with id and creation timestamp assigned

        Raises:
            NotConfigured: If the store has no usable connection parameters
            Unauthorized: If ``owner`` is empty
            PersistenceFailed: For any store-level error
        """
        if not self.is_configured():
            raise NotConfigured(NOT_CONFIGURED_MESSAGE)

        if not owner:
            raise Unauthorized("Missing user identifier. Please sign in again and retry.")

        record = note.content()
        record["user_id"] = owner
        record["created_at"] = self._next_timestamp().isoformat()

        try:
            row = self.client.insert_note(record)
        except StoreError as e:
            logger.error(f"Database error while saving note: {e}")
            raise PersistenceFailed(f"Failed to save note: {e}", original_exception=e)

        try:
            saved = Note.from_record(row)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Store returned an unreadable note row: {e}")
            raise PersistenceFailed(f"Store returned an unreadable note row: {e}", original_exception=e)

        logger.info(f"Saved note {saved.id} for user {owner}")
        return saved

    def list_notes(self, owner: Optional[str]) -> List[Note]:
        """
        Persisted notes owned by ``owner``, newest first.

        Returns an empty list when the store is not configured or no owner is given.

        Raises:
            PersistenceFailed: For store-level errors with configuration present
        """
        if not self.is_configured():
            logger.warning("Note storage not configured, returning no notes")
            return []

        if not owner:
            return []

        try:
            rows = self.client.select_notes(owner)
        except StoreError as e:
            logger.error(f"Error fetching notes: {e}")
            raise PersistenceFailed(f"Failed to fetch notes: {e}", original_exception=e)

        notes = []
        for row in rows:
            if row.get("user_id") != owner:
                continue
            try:
                notes.append(Note.from_record(row))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping malformed note row {row.get('id')}: {e}")

        epoch = datetime.min.replace(tzinfo=timezone.utc)
        notes.sort(key=lambda note: note.created_at or epoch, reverse=True)
        return notes

    list = list_notes

    def delete(self, note_id: str, owner: Optional[str]) -> None:
        """
        Delete a note if it belongs to ``owner``.

        Unknown ids and notes of other users are ignored without any signal.

        Raises:
            NotConfigured: If the store has no usable connection parameters
            Unauthorized: If ``owner`` is empty
            PersistenceFailed: For store-level errors
        """
        if not self.is_configured():
            raise NotConfigured(NOT_CONFIGURED_MESSAGE)

        if not owner:
            raise Unauthorized("Missing user identifier. Please sign in again and retry.")

        try:
            self.client.delete_note(note_id, owner)
        except StoreError as e:
            logger.error(f"Error deleting note {note_id}: {e}")
            raise PersistenceFailed(f"Failed to delete note: {e}", original_exception=e)

        logger.info(f"Delete requested for note {note_id} by user {owner}")

    def upload_audio(self, capture: AudioCapture) -> Optional[str]:
        """
        Upload the recording and return its durable URL.

        Best-effort: any failure is logged and reported as None.
        """
        if not self.is_configured():
            logger.warning("Note storage not configured, skipping audio upload")
            return None

        key = f"recordings/{int(time.time() * 1000)}-{capture.filename}"
        try:
            url = self.client.upload_audio(capture.data, key, capture.media_type)
        except Exception as e:
            logger.warning(f"Failed to upload audio: {e}")
            return None

        logger.info(f"Uploaded audio to {url}")
        return url
