"""
Error taxonomy for Echo Notes.

Every error raised across the capture-to-note pipeline derives from
``NoteError`` so the server and client can report a human-readable
message and a category without inspecting exception types one by one.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ErrorCategory(Enum):
    """Categories of errors for handling and user guidance."""
    PERMISSION = "permission"
    RECORDING = "recording"
    TRANSCRIPTION = "transcription"
    EXTRACTION = "extraction"
    AUTHORIZATION = "authorization"
    CONFIGURATION = "configuration"
    PERSISTENCE = "persistence"
    UNKNOWN = "unknown"


class NoteError(Exception):
    """
    Base error with categorization and a user-facing message.
    """

    category = ErrorCategory.UNKNOWN
    status_code = 500
    default_user_message = "Something went wrong. Please try again."

    def __init__(
        self,
        message: str,
        user_message: Optional[str] = None,
        technical_details: Optional[str] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_message = user_message or self.default_user_message
        self.technical_details = technical_details
        self.original_exception = original_exception
        self.timestamp = datetime.now()
        self.partial_result: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "error": self.user_message,
            "details": self.message,
            "category": self.category.value,
            "timestamp": self.timestamp.isoformat(),
        }


class AudioRecorderError(NoteError):
    """Recorder misuse or device failure."""
    category = ErrorCategory.RECORDING
    status_code = 409
    default_user_message = "Recording failed"


class PermissionDenied(AudioRecorderError):
    """Microphone access was refused; the user may retry."""
    category = ErrorCategory.PERMISSION
    status_code = 403
    default_user_message = "Could not access microphone. Please check permissions."


class RecorderBusy(AudioRecorderError):
    """A recording is already in progress."""
    category = ErrorCategory.RECORDING
    status_code = 409
    default_user_message = "A recording is already in progress. Stop it before starting a new one."


class TranscriptionFailed(NoteError):
    """Speech-to-text provider call failed."""
    category = ErrorCategory.TRANSCRIPTION
    default_user_message = "Failed to transcribe audio"


class ExtractionFailed(NoteError):
    """Language model response could not be interpreted at all."""
    category = ErrorCategory.EXTRACTION
    default_user_message = "Failed to generate structured notes"


class Unauthorized(NoteError):
    """No authenticated identity."""
    category = ErrorCategory.AUTHORIZATION
    status_code = 401
    default_user_message = "Unauthorized"


class NotConfigured(NoteError):
    """Backing store or provider is missing required configuration."""
    category = ErrorCategory.CONFIGURATION
    status_code = 503
    default_user_message = "Storage is not configured. Complete setup before saving notes."


class PersistenceFailed(NoteError):
    """Store-level error while configuration is present."""
    category = ErrorCategory.PERSISTENCE
    status_code = 502
    default_user_message = "Failed to save note"


def handle_error(error: Exception, component: str, operation: str) -> NoteError:
    """
    Convert an arbitrary exception into a NoteError and log it.

    Args:
        error: The error that occurred
        component: Component where it happened
        operation: Operation being performed

    Returns:
        NoteError preserving the original message
    """
    if isinstance(error, NoteError):
        note_error = error
    else:
        note_error = NoteError(
            str(error) or type(error).__name__,
            technical_details=f"{type(error).__name__}: {error}",
            original_exception=error
        )

    log_message = f"[{component}.{operation}] {note_error.category.value}: {note_error.message}"
    if note_error.category in (ErrorCategory.PERMISSION, ErrorCategory.AUTHORIZATION,
                               ErrorCategory.CONFIGURATION, ErrorCategory.RECORDING):
        logger.warning(log_message)
    else:
        logger.error(log_message)

    return note_error
