"""Echo Notes - Voice capture turned into transcripts and structured notes."""

__version__ = "0.1.0"

from .error_handling import (
    NoteError,
    PermissionDenied,
    RecorderBusy,
    TranscriptionFailed,
    ExtractionFailed,
    Unauthorized,
    NotConfigured,
    PersistenceFailed
)
from .models import AudioCapture, StructuredExtraction, Note

__all__ = [
    "NoteError",
    "PermissionDenied",
    "RecorderBusy",
    "TranscriptionFailed",
    "ExtractionFailed",
    "Unauthorized",
    "NotConfigured",
    "PersistenceFailed",
    "AudioCapture",
    "StructuredExtraction",
    "Note"
]
