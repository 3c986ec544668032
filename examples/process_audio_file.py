#!/usr/bin/env python3
"""
Demo script for the Echo Notes pipeline.

Turns an existing WAV file into a structured note without going through
the HTTP server. Requires OPENAI_API_KEY.
"""

import asyncio
import sys
import wave
from pathlib import Path

# Add the parent directory to the path so we can import echo_notes
sys.path.insert(0, str(Path(__file__).parent.parent))

from echo_notes.config import config
from echo_notes.error_handling import NoteError
from echo_notes.models import AudioCapture
from echo_notes.notes_generator import ExtractionStage
from echo_notes.processing_pipeline import NotePipeline
from echo_notes.providers import create_openai_client
from echo_notes.transcription import TranscriptionStage


def load_capture(path: Path) -> AudioCapture:
    """Read a WAV file into a capture with its whole-second duration."""
    with wave.open(str(path), 'rb') as wav_file:
        duration = wav_file.getnframes() // max(wav_file.getframerate(), 1)
    return AudioCapture(
        data=path.read_bytes(),
        media_type="audio/wav",
        duration=duration,
        filename=path.name
    )


def main():
    """Run the pipeline demo."""
    print("🎤 Echo Notes - Pipeline Demo")
    print("=" * 50)

    if len(sys.argv) != 2:
        print("Usage: python examples/process_audio_file.py <recording.wav>")
        return 1

    client = create_openai_client(config.provider)
    if client is None:
        print("❌ Set OPENAI_API_KEY to run this demo")
        return 1

    capture = load_capture(Path(sys.argv[1]))
    print(f"📁 Loaded {capture.filename} ({capture.size_bytes} bytes, {capture.duration}s)")

    pipeline = NotePipeline(
        transcriber=TranscriptionStage(client, model_name=config.provider.transcription_model),
        extractor=ExtractionStage(
            client,
            model_name=config.provider.extraction_model,
            temperature=config.provider.temperature
        ),
        progress_callback=lambda status, message: print(f"⏳ {message}")
    )

    try:
        note = asyncio.run(pipeline.process(capture, "demo-user"))
    except NoteError as e:
        print(f"❌ {e.user_message}: {e.message}")
        if e.partial_result:
            print(f"   Transcript so far: {e.partial_result['transcription']}")
        return 1

    print()
    print(note.to_formatted_text())
    return 0


if __name__ == "__main__":
    sys.exit(main())
