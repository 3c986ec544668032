#!/usr/bin/env python3
"""
Record a voice note from the microphone and turn it into structured notes.

Shows a live input level meter while recording, stops on Enter, sends the
capture to the Echo Notes server and prints the result.
"""

import argparse
import logging
import os
import sys
import threading
from pathlib import Path

# Add the parent directory to the path so we can import echo_notes
sys.path.insert(0, str(Path(__file__).parent.parent))

from echo_notes.audio_recorder import Recorder, format_duration
from echo_notes.client import EchoNotesClient
from echo_notes.config import config
from echo_notes.error_handling import NoteError, PermissionDenied
from echo_notes.setup_validator import SetupValidator, ValidationStatus

METER_WIDTH = 30


def render_meter(level: float, elapsed: int) -> str:
    """Text rendering of the input level, e.g. ``[#####     ] 0:07``."""
    filled = int(round(max(0.0, min(level, 1.0)) * METER_WIDTH))
    return f"\r🎙️  [{'#' * filled}{' ' * (METER_WIDTH - filled)}] {format_duration(elapsed)}"


def record(recorder: Recorder):
    print("🔴 Recording... press Enter to stop")
    stop_event = threading.Event()

    def _show_level(level: float) -> None:
        if not stop_event.is_set():
            sys.stdout.write(render_meter(level, recorder.elapsed_seconds))
            sys.stdout.flush()

    recorder.level_callback = _show_level
    recorder.start()
    try:
        input()
    finally:
        stop_event.set()
    print()
    return recorder.stop()


def main() -> int:
    parser = argparse.ArgumentParser(description="Record a voice note with Echo Notes")
    parser.add_argument("--server", default=os.getenv("ECHO_NOTES_SERVER", "http://127.0.0.1:8000"),
                        help="Echo Notes server URL")
    parser.add_argument("--api-key", default=os.getenv("ECHO_NOTES_API_KEY"),
                        help="API key identifying you to the server")
    parser.add_argument("--save", action="store_true", help="Save the note after processing")
    parser.add_argument("--verbose", action="store_true", help="Show debug logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    print("🎤 Echo Notes")
    print("=" * 50)

    report = SetupValidator().run_client_validation()
    for result in report.results:
        if result.status is ValidationStatus.FAIL:
            print(f"❌ {result.name}: {result.message}")
            if result.fix_instructions:
                print(f"   {result.fix_instructions}")
    if not report.setup_complete:
        return 1

    client = EchoNotesClient(
        base_url=args.server,
        api_key=args.api_key,
        header_name=config.auth.header_name
    )

    with Recorder() as recorder:
        try:
            capture = record(recorder)
        except PermissionDenied as e:
            print(f"❌ {e.user_message}")
            print(f"   {e.message}")
            return 1
        except KeyboardInterrupt:
            print("\n⏹️  Recording cancelled")
            return 130

    if capture.duration == 0 and capture.size_bytes <= 44:
        print("⚠️  Nothing was recorded")
        return 1

    print(f"⏳ Processing {format_duration(capture.duration)} of audio...")
    try:
        note = client.process(capture)
    except NoteError as e:
        print(f"❌ {e.user_message}")
        print(f"   {e.message}")
        return 1

    print()
    print(note.to_formatted_text())

    if args.save:
        try:
            saved = client.save(note)
        except NoteError as e:
            print(f"❌ {e.user_message}")
            print(f"   {e.message}")
            return 1
        print(f"\n✅ Saved note {saved.id}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
