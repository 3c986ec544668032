"""Tests for the HTTP client used by the recording script."""

from unittest.mock import Mock

import pytest
import requests

from echo_notes.client import EchoNotesClient
from echo_notes.error_handling import NotConfigured, NoteError, PersistenceFailed, Unauthorized
from echo_notes.models import AudioCapture, Note


def response(status_code=200, payload=None):
    resp = Mock()
    resp.status_code = status_code
    if payload is None:
        resp.json.side_effect = ValueError("no body")
    else:
        resp.json.return_value = payload
    return resp


@pytest.fixture
def session():
    session = Mock()
    session.headers = {}
    return session


@pytest.fixture
def client(session):
    return EchoNotesClient("http://notes.local/", api_key="alice-key", session=session)


class TestEchoNotesClient:
    """Test cases for EchoNotesClient."""

    def test_api_key_header_is_sent(self, client, session):
        assert session.headers["X-API-Key"] == "alice-key"

    def test_process_uploads_capture(self, client, session):
        session.request.return_value = response(200, {
            "transcription": "hello",
            "summary": "S",
            "key_points": ["K"],
            "action_items": [],
            "audio_url": None,
        })
        capture = AudioCapture(data=b"RIFF", duration=9)

        note = client.process(capture)

        assert note.summary == "S"
        assert note.id is None
        method, url = session.request.call_args[0]
        kwargs = session.request.call_args[1]
        assert (method, url) == ("POST", "http://notes.local/api/process")
        assert kwargs["files"] == {"audio": ("recording.wav", b"RIFF", "audio/wav")}
        assert kwargs["data"] == {"duration": "9"}

    def test_save_returns_persisted_note(self, client, session):
        session.request.return_value = response(201, {
            "id": "n1",
            "user_id": "alice",
            "transcription": "hello",
            "summary": "S",
            "key_points": [],
            "action_items": [],
            "audio_url": None,
            "created_at": "2024-05-01T10:00:00+00:00",
        })

        saved = client.save(Note(transcription="hello", summary="S"))

        assert saved.is_persisted
        assert session.request.call_args[1]["json"]["summary"] == "S"

    def test_list_notes(self, client, session):
        session.request.return_value = response(200, [
            {"id": "n2", "created_at": "2024-05-02T10:00:00+00:00"},
            {"id": "n1", "created_at": "2024-05-01T10:00:00+00:00"},
        ])

        assert [note.id for note in client.list_notes()] == ["n2", "n1"]

    def test_delete(self, client, session):
        session.request.return_value = response(204)

        client.delete("n1")

        assert session.request.call_args[0] == ("DELETE", "http://notes.local/api/notes/n1")

    @pytest.mark.parametrize("status_code,error_class", [
        (401, Unauthorized),
        (502, PersistenceFailed),
        (503, NotConfigured),
    ])
    def test_error_status_maps_to_error_type(self, client, session, status_code, error_class):
        session.request.return_value = response(status_code, {"error": "Nope", "details": "because"})

        with pytest.raises(error_class) as exc_info:
            client.list_notes()

        assert exc_info.value.user_message == "Nope"
        assert exc_info.value.message == "because"

    def test_process_failure_keeps_server_details(self, client, session):
        session.request.return_value = response(500, {"error": "Failed to process audio", "details": "rate limited"})

        with pytest.raises(NoteError) as exc_info:
            client.process(AudioCapture(data=b"RIFF"))

        assert exc_info.value.user_message == "Failed to process audio"
        assert exc_info.value.message == "rate limited"

    def test_error_without_body(self, client, session):
        session.request.return_value = response(500)

        with pytest.raises(NoteError, match="HTTP 500"):
            client.list_notes()

    def test_network_failure(self, client, session):
        session.request.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(NoteError, match="Cannot reach"):
            client.list_notes()
