"""Shared fixtures for the Echo Notes test suite."""

import pytest

from echo_notes.audio_recorder import Recorder


@pytest.fixture(autouse=True)
def release_microphone():
    """Ensure no recorder leaks microphone ownership into the next test."""
    yield
    Recorder._microphone_owner = None
