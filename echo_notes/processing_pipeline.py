"""
Capture-to-note processing pipeline for Echo Notes.

Runs transcription then structured extraction on a finished capture while
the source audio is uploaded alongside. Transcription must complete before
extraction starts; the upload is best-effort and never fails the pipeline.
"""

import asyncio
import logging
import time
from concurrent.futures import Executor
from typing import Any, Callable, Optional

from .error_handling import Unauthorized, handle_error
from .models import AudioCapture, Note
from .note_store import NoteStore
from .notes_generator import ExtractionStage
from .transcription import TranscriptionStage

logger = logging.getLogger(__name__)


class NotePipeline:
    """
    Coordinates transcription, extraction and audio upload for one capture.

    Failure policy is all-or-nothing: if either stage fails the stage error
    propagates unchanged and no draft note is produced. The error carries
    whatever was produced before the failure in ``partial_result``.
    """

    def __init__(
        self,
        transcriber: TranscriptionStage,
        extractor: ExtractionStage,
        note_store: Optional[NoteStore] = None,
        executor: Optional[Executor] = None,
        progress_callback: Optional[Callable[[str, str], None]] = None
    ):
        """
        Initialize the pipeline.

        Args:
            transcriber: Speech-to-text stage
            extractor: Structured extraction stage
            note_store: Store used for the best-effort audio upload (optional)
            executor: Worker pool for the blocking provider calls (default loop executor)
            progress_callback: Optional callback for progress updates (status, message)
        """
        self.transcriber = transcriber
        self.extractor = extractor
        self.note_store = note_store
        self.executor = executor
        self.progress_callback = progress_callback

    def _update_progress(self, status: str, message: str) -> None:
        if self.progress_callback:
            try:
                self.progress_callback(status, message)
            except Exception as e:
                logger.warning(f"Progress callback raised: {e}")
        logger.info(f"Pipeline progress: {status} - {message}")

    async def _run_blocking(self, func: Callable[..., Any], *args: Any) -> Any:
        """Run a blocking stage call in the worker pool."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, func, *args)

    async def _upload_audio(self, capture: AudioCapture) -> Optional[str]:
        if self.note_store is None:
            return None
        try:
            return await self._run_blocking(self.note_store.upload_audio, capture)
        except Exception as e:
            logger.warning(f"Audio upload failed, continuing without audio URL: {e}")
            return None

    async def process(self, capture: AudioCapture, user_id: Optional[str]) -> Note:
        """
        Turn a finished capture into a draft note.

        Args:
            capture: Finished recording
            user_id: Authenticated caller identity

        Returns:
            Draft note (no id, no timestamp)

        Raises:
            Unauthorized: If there is no caller identity; raised before any stage runs
            TranscriptionFailed: If speech-to-text fails
            ExtractionFailed: If the language model response cannot be interpreted
        """
        if not user_id:
            raise Unauthorized("No authenticated user")

        start = time.time()
        upload_task = asyncio.ensure_future(self._upload_audio(capture))

        transcript: Optional[str] = None
        try:
            self._update_progress("transcribing", f"Transcribing {capture.duration}s of audio...")
            transcript = await self._run_blocking(self.transcriber.transcribe, capture)

            self._update_progress("extracting", "Generating summary, key points and action items...")
            extraction = await self._run_blocking(self.extractor.extract, transcript)
        except asyncio.CancelledError:
            upload_task.cancel()
            logger.info("Note processing cancelled")
            raise
        except Exception as e:
            # Let the upload finish so it is attempted exactly once regardless of outcome
            await asyncio.gather(upload_task, return_exceptions=True)
            error = handle_error(e, "note_pipeline", "process")
            if transcript is not None:
                error.partial_result = {"transcription": transcript}
            self._update_progress("error", error.message)
            if error is e:
                raise
            raise error from e

        audio_url = await upload_task
        note = Note.draft(transcript, extraction, audio_url=audio_url)

        self._update_progress("completed", f"Note ready in {time.time() - start:.1f}s")
        return note
