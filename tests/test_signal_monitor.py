"""Unit tests for SignalMonitor."""

import threading

import numpy as np
import pytest

from echo_notes.config import MonitorConfig
from echo_notes.signal_monitor import SignalMonitor


def noise(amplitude: float, size: int = 256, seed: int = 7) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return (rng.uniform(-1.0, 1.0, size) * amplitude).astype(np.float32)


class TestSignalMonitor:
    """Test cases for the loudness level."""

    @pytest.fixture
    def monitor(self):
        monitor = SignalMonitor(MonitorConfig(fft_size=256, refresh_hz=200))
        yield monitor
        monitor.stop()

    def test_level_is_zero_before_any_audio(self, monitor):
        assert monitor.level() == 0.0

    def test_silence_reports_zero(self, monitor):
        monitor.feed(np.zeros(512, dtype=np.float32))
        assert monitor.level() == 0.0

    def test_level_stays_within_unit_range(self, monitor):
        monitor.feed(noise(1.0))
        level = monitor.level()
        assert 0.0 < level <= 1.0

    def test_louder_input_gives_higher_level(self, monitor):
        monitor.feed(noise(0.001))
        quiet = monitor.level()

        monitor.feed(noise(0.5))
        loud = monitor.level()

        assert loud > quiet

    def test_window_keeps_most_recent_samples(self, monitor):
        monitor.feed(noise(0.5))
        # A full window of silence replaces the earlier audio entirely
        monitor.feed(np.zeros(256, dtype=np.float32))
        assert monitor.level() == 0.0

    def test_small_blocks_accumulate(self, monitor):
        for _ in range(8):
            monitor.feed(noise(0.5, size=32))
        assert monitor.level() > 0.0

    def test_empty_block_is_ignored(self, monitor):
        monitor.feed(np.zeros(0, dtype=np.float32))
        assert monitor.level() == 0.0

    def test_stop_releases_window(self, monitor):
        monitor.feed(noise(0.5))
        monitor.stop()
        assert monitor.level() == 0.0

    def test_samples_end_after_stop(self, monitor):
        monitor.stop()
        assert list(monitor.samples()) == []

    def test_start_delivers_levels_to_subscriber(self, monitor):
        received = []
        delivered = threading.Event()

        def subscriber(value):
            received.append(value)
            delivered.set()

        monitor.feed(noise(0.5))
        monitor.start(subscriber)

        assert delivered.wait(timeout=2)
        assert monitor.is_running()
        monitor.stop()
        assert not monitor.is_running()
        assert all(0.0 <= value <= 1.0 for value in received)

    def test_subscriber_errors_do_not_stop_sampling(self, monitor):
        calls = []
        second_call = threading.Event()

        def subscriber(value):
            calls.append(value)
            if len(calls) >= 2:
                second_call.set()
            raise RuntimeError("display gone")

        monitor.start(subscriber)
        assert second_call.wait(timeout=2)
