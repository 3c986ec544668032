import logging
import time
from typing import Any, Optional

from .error_handling import TranscriptionFailed
from .models import AudioCapture


logger = logging.getLogger(__name__)


class TranscriptionStage:
    """Speech-to-text stage backed by a hosted transcription model."""

    def __init__(self, client: Optional[Any], model_name: str = "whisper-1"):
        """
        Initialize the TranscriptionStage.

        Args:
            client: OpenAI client (None when the provider is not configured)
            model_name: Transcription model identifier
        """
        self.client = client
        self.model_name = model_name
        self._is_processing = False

    def is_available(self) -> bool:
        return self.client is not None

    def is_processing(self) -> bool:
        """Check if transcription is currently in progress."""
        return self._is_processing

    def transcribe(self, capture: AudioCapture) -> str:
        """
        Transcribe a finished capture to plain text.

        Makes exactly one provider call. Empty text from the provider is
        passed through unchanged.

        Args:
            capture: The finished recording

        Returns:
            Transcript text

        Raises:
            TranscriptionFailed: If the provider call fails
        """
        if self.client is None:
            raise TranscriptionFailed(
                "Speech-to-text provider is not configured. Set OPENAI_API_KEY."
            )

        self._is_processing = True
        start = time.time()
        try:
            logger.info(f"Transcribing audio ({capture.size_bytes} bytes, {capture.duration}s) with {self.model_name}")
            result = self.client.audio.transcriptions.create(
                model=self.model_name,
                file=(capture.filename, capture.data, capture.media_type),
            )
        except Exception as e:
            logger.error(f"Transcription failed: {e}")
            raise TranscriptionFailed(str(e) or type(e).__name__, original_exception=e)
        finally:
            self._is_processing = False

        text = getattr(result, "text", None) or ""
        logger.info(f"Transcription complete in {time.time() - start:.1f}s: {text[:100]!r}")
        return text
