"""Microphone recording state machine with live level feedback."""

import io
import logging
import threading
import wave
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import numpy as np
import sounddevice as sd

from .config import AudioConfig, config
from .error_handling import AudioRecorderError, PermissionDenied, RecorderBusy
from .models import AudioCapture
from .signal_monitor import SignalMonitor

logger = logging.getLogger(__name__)


class RecorderState(Enum):
    """Recorder lifecycle states."""
    IDLE = "idle"
    RECORDING = "recording"


def format_duration(seconds: int) -> str:
    """Format elapsed seconds as ``m:ss``."""
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes}:{secs:02d}"


def encode_wav(chunks: List[np.ndarray], sample_rate: int, channels: int = 1) -> bytes:
    """Concatenate float chunks in [-1, 1] and encode them as 16-bit PCM WAV."""
    if chunks:
        full_audio = np.concatenate(chunks)
    else:
        full_audio = np.zeros(0, dtype=np.float32)

    audio_int16 = (np.clip(full_audio, -1.0, 1.0) * 32767).astype(np.int16)

    buffer = io.BytesIO()
    with wave.open(buffer, 'wb') as wav_file:
        wav_file.setnchannels(channels)
        wav_file.setsampwidth(2)  # 16-bit
        wav_file.setframerate(sample_rate)
        wav_file.writeframes(audio_int16.tobytes())
    return buffer.getvalue()


class IntervalTicker:
    """Invokes a callback once per interval on a background thread."""

    def __init__(self, interval: float, callback: Callable[[], Any]):
        self.interval = interval
        self.callback = callback
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="recording-timer", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval):
            self.callback()

    def cancel(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=2)
        self._thread = None


class RecordingSession:
    """Accumulates audio chunks for a single recording."""

    def __init__(self, sample_rate: int = 16000, channels: int = 1):
        self.sample_rate = sample_rate
        self.channels = channels
        self.audio_data: List[np.ndarray] = []
        self.is_active = False
        self.total_frames = 0

    def add_audio_chunk(self, chunk: np.ndarray) -> None:
        """Add an audio chunk to the session."""
        if self.is_active:
            self.audio_data.append(chunk.copy())
            self.total_frames += len(chunk)

    def encode(self) -> bytes:
        """Encode every accumulated chunk into one WAV blob."""
        return encode_wav(self.audio_data, self.sample_rate, self.channels)

    def cleanup(self) -> None:
        """Clean up session resources."""
        self.audio_data.clear()
        self.total_frames = 0
        self.is_active = False


class Recorder:
    """
    Records one capture at a time from the system microphone.

    The recorder owns three resource handles while recording: the input
    stream, the one-second duration timer and the signal monitor. All of
    them are released by ``teardown``, which runs on ``stop`` and when the
    recorder is used as a context manager.
    """

    _microphone_lock = threading.Lock()
    _microphone_owner: Optional["Recorder"] = None

    def __init__(
        self,
        audio_config: Optional[AudioConfig] = None,
        monitor: Optional[SignalMonitor] = None,
        level_callback: Optional[Callable[[float], None]] = None,
        stream_factory: Optional[Callable[..., Any]] = None,
        ticker_factory: Optional[Callable[[float, Callable[[], Any]], Any]] = None
    ):
        self.config = audio_config or config.audio
        self.monitor = monitor or SignalMonitor(config.monitor)
        self.level_callback = level_callback
        self.stream_factory = stream_factory or sd.InputStream
        self.ticker_factory = ticker_factory or IntervalTicker

        self.state = RecorderState.IDLE
        self.current_session: Optional[RecordingSession] = None
        self.stream_handle: Optional[Any] = None
        self.timer_handle: Optional[Any] = None
        self.analysis_handle: Optional[SignalMonitor] = None
        self.level = 0.0
        self._elapsed = 0
        self._elapsed_lock = threading.Lock()

    @property
    def elapsed_seconds(self) -> int:
        with self._elapsed_lock:
            return self._elapsed

    def is_recording(self) -> bool:
        return self.state is RecorderState.RECORDING

    def _acquire_microphone(self) -> None:
        with Recorder._microphone_lock:
            owner = Recorder._microphone_owner
            if owner is not None and owner is not self:
                raise RecorderBusy("Microphone is held by another active recording")
            Recorder._microphone_owner = self

    def _release_microphone(self) -> None:
        with Recorder._microphone_lock:
            if Recorder._microphone_owner is self:
                Recorder._microphone_owner = None

    def _audio_callback(self, indata: np.ndarray, frames: int, time_info, status) -> None:
        """Stream callback: accumulate the chunk and feed the level monitor."""
        if status:
            logger.warning(f"Audio callback status: {status}")

        session = self.current_session
        if session is None or not session.is_active:
            return

        # Convert to mono if needed
        if indata.ndim > 1 and indata.shape[1] > 1:
            audio_chunk = np.mean(indata, axis=1)
        elif indata.ndim > 1:
            audio_chunk = indata[:, 0]
        else:
            audio_chunk = indata

        session.add_audio_chunk(audio_chunk)
        if self.analysis_handle is not None:
            self.analysis_handle.feed(audio_chunk)

    def _on_level(self, value: float) -> None:
        self.level = value
        if self.level_callback:
            self.level_callback(value)

    def tick(self) -> int:
        """Advance the duration counter by one second while recording."""
        with self._elapsed_lock:
            if self.state is RecorderState.RECORDING:
                self._elapsed += 1
            return self._elapsed

    def start(self) -> None:
        """
        Start recording from the microphone.

        Raises:
            RecorderBusy: If this or another recorder is already recording
            PermissionDenied: If the microphone cannot be opened
        """
        if self.is_recording():
            raise RecorderBusy("Recording is already in progress")

        self._acquire_microphone()

        session = RecordingSession(
            sample_rate=self.config.sample_rate,
            channels=self.config.channels
        )
        try:
            stream = self.stream_factory(
                device=self.config.device_id,
                channels=self.config.channels,
                samplerate=self.config.sample_rate,
                blocksize=self.config.chunk_size,
                dtype="float32",
                callback=self._audio_callback
            )
        except Exception as e:
            self._release_microphone()
            raise PermissionDenied(f"Could not access microphone: {e}", original_exception=e)

        self.stream_handle = stream
        self.current_session = session
        with self._elapsed_lock:
            self._elapsed = 0
        session.is_active = True

        try:
            stream.start()
        except Exception as e:
            self.teardown()
            raise PermissionDenied(f"Could not access microphone: {e}", original_exception=e)

        self.state = RecorderState.RECORDING

        self.analysis_handle = self.monitor
        self.analysis_handle.start(self._on_level)

        self.timer_handle = self.ticker_factory(1.0, self.tick)
        self.timer_handle.start()

        logger.info("Recording started")

    def stop(self) -> AudioCapture:
        """
        Stop recording and return the finished capture.

        Raises:
            AudioRecorderError: If no recording is in progress
        """
        if not self.is_recording():
            raise AudioRecorderError("No recording in progress")

        session = self.current_session
        try:
            # Halt the encoder first so no callback races the encoding below
            if self.stream_handle is not None:
                self.stream_handle.stop()
            session.is_active = False
            duration = self._freeze_duration()
            data = session.encode()
        finally:
            self.teardown()

        capture = AudioCapture(
            data=data,
            media_type=self.config.media_type,
            duration=duration,
            filename=self.config.filename
        )
        logger.info(f"Recording stopped. Duration: {format_duration(duration)} ({capture.size_bytes} bytes)")
        return capture

    def _freeze_duration(self) -> int:
        """Freeze the duration counter and return its final value."""
        if self.timer_handle is not None:
            self.timer_handle.cancel()
            self.timer_handle = None
        with self._elapsed_lock:
            self.state = RecorderState.IDLE
            return self._elapsed

    def teardown(self) -> None:
        """Release every held resource; safe to call in any state."""
        if self.timer_handle is not None:
            try:
                self.timer_handle.cancel()
            except Exception as e:
                logger.warning(f"Failed to cancel recording timer: {e}")
            self.timer_handle = None

        if self.analysis_handle is not None:
            try:
                self.analysis_handle.stop()
            except Exception as e:
                logger.warning(f"Failed to stop signal monitor: {e}")
            self.analysis_handle = None

        if self.stream_handle is not None:
            try:
                self.stream_handle.close()
            except Exception as e:
                logger.warning(f"Failed to close audio stream: {e}")
            self.stream_handle = None

        if self.current_session:
            self.current_session.cleanup()
            self.current_session = None

        self.state = RecorderState.IDLE
        self.level = 0.0
        self._release_microphone()

    def get_recording_info(self) -> Dict[str, Any]:
        """Get information about the current recording."""
        return {
            'state': self.state.value,
            'duration': self.elapsed_seconds,
            'duration_display': format_duration(self.elapsed_seconds),
            'level': self.level,
            'sample_rate': self.config.sample_rate,
            'channels': self.config.channels
        }

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit with cleanup."""
        self.teardown()
