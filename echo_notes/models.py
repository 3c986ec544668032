from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class AudioCapture(BaseModel):
    """Finished recording handed from the recorder to the pipeline."""
    model_config = ConfigDict(frozen=True)

    data: bytes
    media_type: str = "audio/wav"
    duration: int = Field(default=0, ge=0)  # whole seconds spent recording
    filename: str = "recording.wav"

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class StructuredExtraction(BaseModel):
    """Summary, key points and action items derived from a transcript."""
    summary: str = ""
    key_points: List[str] = Field(default_factory=list)
    action_items: List[str] = Field(default_factory=list)

    @classmethod
    def from_document(cls, document: Any) -> "StructuredExtraction":
        """
        Map an untyped JSON document onto the three extraction fields.

        Missing or malformed fields fall back to empty values; a document
        that is not an object yields an empty extraction.
        """
        if not isinstance(document, dict):
            return cls()

        summary = document.get("summary")
        if not isinstance(summary, str):
            summary = ""

        return cls(
            summary=summary.strip(),
            key_points=_string_list(document.get("key_points")),
            action_items=_string_list(document.get("action_items")),
        )

    def is_empty(self) -> bool:
        return not (self.summary or self.key_points or self.action_items)


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


class Note(BaseModel):
    """
    A voice note in one of two lifecycle phases.

    Drafts come out of the pipeline without ``id`` or ``created_at``;
    persisted notes are returned by the note store with both assigned.
    """
    id: Optional[str] = None
    user_id: Optional[str] = None
    transcription: str = ""
    summary: str = ""
    key_points: List[str] = Field(default_factory=list)
    action_items: List[str] = Field(default_factory=list)
    audio_url: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def draft(
        cls,
        transcription: str,
        extraction: StructuredExtraction,
        audio_url: Optional[str] = None
    ) -> "Note":
        return cls(
            transcription=transcription,
            summary=extraction.summary,
            key_points=list(extraction.key_points),
            action_items=list(extraction.action_items),
            audio_url=audio_url,
        )

    @property
    def is_persisted(self) -> bool:
        return self.id is not None and self.created_at is not None

    @property
    def extraction(self) -> StructuredExtraction:
        return StructuredExtraction(
            summary=self.summary,
            key_points=self.key_points,
            action_items=self.action_items,
        )

    def content(self) -> Dict[str, Any]:
        """Fields supplied by the caller when creating a note."""
        return {
            "transcription": self.transcription,
            "summary": self.summary,
            "key_points": list(self.key_points),
            "action_items": list(self.action_items),
            "audio_url": self.audio_url,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Note":
        """Build a persisted note from a stored row, tolerating null list columns."""
        return cls(
            id=str(record["id"]),
            user_id=record.get("user_id"),
            transcription=record.get("transcription") or "",
            summary=record.get("summary") or "",
            key_points=record.get("key_points") or [],
            action_items=record.get("action_items") or [],
            audio_url=record.get("audio_url"),
            created_at=record.get("created_at"),
        )

    def to_formatted_text(self) -> str:
        """Convert the note to formatted text for display."""
        lines = ["# Voice Note"]
        if self.created_at:
            lines.append(f"**Date:** {self.created_at.strftime('%Y-%m-%d %H:%M')}")
        lines.append("")

        if self.summary:
            lines.append("## Summary")
            lines.append(self.summary)
            lines.append("")

        if self.key_points:
            lines.append("## Key Points")
            for point in self.key_points:
                lines.append(f"- {point}")
            lines.append("")

        if self.action_items:
            lines.append("## Action Items")
            for item in self.action_items:
                lines.append(f"- [ ] {item}")
            lines.append("")

        lines.append("## Transcription")
        lines.append(self.transcription or "(no speech detected)")

        return "\n".join(lines)
