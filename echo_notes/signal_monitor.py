"""Live loudness metric for recording feedback."""

import logging
import threading
from typing import Callable, Iterator, Optional

import numpy as np

from .config import MonitorConfig

logger = logging.getLogger(__name__)

MAX_BIN_VALUE = 255.0


class SignalMonitor:
    """
    Samples the most recent audio window and reports a loudness level in [0, 1].

    The recorder feeds raw blocks from its input stream; the monitor keeps the
    latest ``fft_size`` samples, converts them to frequency-bin magnitudes on a
    decibel scale, quantizes each bin to 0..255 and reports the mean bin value
    divided by 255.
    """

    def __init__(self, monitor_config: Optional[MonitorConfig] = None):
        self.config = monitor_config or MonitorConfig()
        self.interval = 1.0 / self.config.refresh_hz
        self._lock = threading.Lock()
        self._window: Optional[np.ndarray] = None
        self._filled = 0
        self._taper: Optional[np.ndarray] = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def feed(self, block: np.ndarray) -> None:
        """Append a block of mono float samples to the analysis window."""
        samples = np.asarray(block, dtype=np.float32).reshape(-1)
        if samples.size == 0:
            return

        size = self.config.fft_size
        with self._lock:
            if self._window is None:
                self._window = np.zeros(size, dtype=np.float32)
                self._filled = 0
            if samples.size >= size:
                self._window[:] = samples[-size:]
            else:
                self._window = np.roll(self._window, -samples.size)
                self._window[-samples.size:] = samples
            self._filled = min(size, self._filled + samples.size)

    def level(self) -> float:
        """Compute the current loudness level; 0.0 when nothing has been fed."""
        with self._lock:
            if self._window is None or self._filled == 0:
                return 0.0
            window = self._window.copy()

        if self._taper is None or self._taper.size != window.size:
            self._taper = np.blackman(window.size).astype(np.float32)

        spectrum = np.fft.rfft(window * self._taper)[: window.size // 2]
        magnitudes = np.abs(spectrum) / window.size
        decibels = 20.0 * np.log10(np.maximum(magnitudes, 1e-12))

        span = self.config.max_decibels - self.config.min_decibels
        scaled = (decibels - self.config.min_decibels) / span * MAX_BIN_VALUE
        bins = np.floor(np.clip(scaled, 0.0, MAX_BIN_VALUE))

        value = float(np.mean(bins)) / MAX_BIN_VALUE
        if not np.isfinite(value):
            return 0.0
        return min(1.0, max(0.0, value))

    def samples(self) -> Iterator[float]:
        """Yield the level once per refresh interval until ``stop`` is called."""
        while not self._stop_event.is_set():
            yield self.level()
            if self._stop_event.wait(self.interval):
                break

    def start(self, subscriber: Callable[[float], None]) -> None:
        """Emit levels to ``subscriber`` from a background thread."""
        if self.is_running():
            return
        self._stop_event.clear()

        def _run():
            for value in self.samples():
                try:
                    subscriber(value)
                except Exception as e:
                    logger.warning(f"Level subscriber raised: {e}")

        self._thread = threading.Thread(target=_run, name="signal-monitor", daemon=True)
        self._thread.start()

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def stop(self) -> None:
        """Stop sampling and release the analysis window."""
        self._stop_event.set()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=2)
        self._thread = None
        with self._lock:
            self._window = None
            self._filled = 0
        self._taper = None
