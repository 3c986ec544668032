"""
Tests for the Echo Notes FastAPI endpoints.

Provider stages are replaced by mocks; notes are persisted with the
local store backend under a temporary directory.
"""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from echo_notes.config import AppConfig, AuthConfig, StoreConfig
from echo_notes.error_handling import ExtractionFailed, TranscriptionFailed
from echo_notes.main import create_app
from echo_notes.models import StructuredExtraction
from echo_notes.processing_pipeline import NotePipeline

ALICE = {"X-API-Key": "alice-key"}
BOB = {"X-API-Key": "bob-key"}
WAV = ("recording.wav", b"RIFF\x00\x00\x00\x00WAVEfmt ", "audio/wav")


def make_config(tmp_path, backend="local"):
    return AppConfig(
        store=StoreConfig(
            backend=backend,
            local_dir=tmp_path,
            supabase_url="https://placeholder.supabase.co",
            supabase_key="placeholder-key"
        ),
        auth=AuthConfig(api_keys={"alice-key": "alice", "bob-key": "bob"})
    )


@pytest.fixture
def stages():
    transcriber = Mock()
    transcriber.is_available.return_value = True
    transcriber.transcribe.return_value = "Pick up the dry cleaning and email Sam."
    extractor = Mock()
    extractor.is_available.return_value = True
    extractor.extract.return_value = StructuredExtraction(
        summary="Two errands.",
        key_points=["Dry cleaning is ready"],
        action_items=["Pick up dry cleaning", "Email Sam"]
    )
    return transcriber, extractor


@pytest.fixture
def app(tmp_path, stages):
    app = create_app(make_config(tmp_path))
    transcriber, extractor = stages
    app.state.transcriber = transcriber
    app.state.extractor = extractor
    app.state.pipeline = NotePipeline(
        transcriber=transcriber,
        extractor=extractor,
        note_store=app.state.note_store
    )
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


class TestProcessEndpoint:
    """Test cases for POST /api/process."""

    def test_process_returns_structured_note(self, client):
        response = client.post("/api/process", headers=ALICE, files={"audio": WAV}, data={"duration": "5"})

        assert response.status_code == 200
        data = response.json()
        assert data["transcription"] == "Pick up the dry cleaning and email Sam."
        assert data["summary"] == "Two errands."
        assert data["key_points"] == ["Dry cleaning is ready"]
        assert data["action_items"] == ["Pick up dry cleaning", "Email Sam"]
        assert data["audio_url"].startswith("file://")

    def test_process_passes_capture_to_transcriber(self, client, stages):
        client.post("/api/process", headers=ALICE, files={"audio": WAV}, data={"duration": "5"})

        capture = stages[0].transcribe.call_args[0][0]
        assert capture.data == WAV[1]
        assert capture.media_type == "audio/wav"
        assert capture.duration == 5

    def test_process_requires_identity(self, client, stages):
        response = client.post("/api/process", files={"audio": WAV})

        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"
        stages[0].transcribe.assert_not_called()
        stages[1].extract.assert_not_called()

    def test_unknown_key_is_unauthorized(self, client):
        response = client.post("/api/process", headers={"X-API-Key": "stolen"}, files={"audio": WAV})

        assert response.status_code == 401

    def test_process_requires_audio(self, client):
        response = client.post("/api/process", headers=ALICE, data={"duration": "3"})

        assert response.status_code == 400
        assert response.json() == {"error": "No audio file provided"}

    def test_transcription_failure(self, client, stages):
        stages[0].transcribe.side_effect = TranscriptionFailed("provider unavailable")

        response = client.post("/api/process", headers=ALICE, files={"audio": WAV})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to process audio", "details": "provider unavailable"}
        stages[1].extract.assert_not_called()

    def test_extraction_failure_persists_nothing(self, client, stages):
        stages[1].extract.side_effect = ExtractionFailed("Invalid JSON in language model response")

        response = client.post("/api/process", headers=ALICE, files={"audio": WAV})

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to process audio"
        assert client.get("/api/notes", headers=ALICE).json() == []


class TestNotesEndpoints:
    """Test cases for note persistence endpoints."""

    NOTE = {
        "transcription": "Pick up the dry cleaning.",
        "summary": "Errand.",
        "key_points": ["Dry cleaning"],
        "action_items": ["Pick it up"],
    }

    def test_create_and_list(self, client):
        created = client.post("/api/notes", headers=ALICE, json=self.NOTE)

        assert created.status_code == 201
        note = created.json()
        assert note["id"]
        assert note["created_at"]
        assert note["user_id"] == "alice"
        assert note["audio_url"] is None

        listed = client.get("/api/notes", headers=ALICE)
        assert listed.status_code == 200
        assert [item["id"] for item in listed.json()] == [note["id"]]

    def test_newest_note_first(self, client):
        client.post("/api/notes", headers=ALICE, json=dict(self.NOTE, summary="first"))
        client.post("/api/notes", headers=ALICE, json=dict(self.NOTE, summary="second"))

        summaries = [item["summary"] for item in client.get("/api/notes", headers=ALICE).json()]

        assert summaries == ["second", "first"]

    def test_notes_are_private(self, client):
        client.post("/api/notes", headers=ALICE, json=self.NOTE)

        assert client.get("/api/notes", headers=BOB).json() == []

    def test_delete(self, client):
        note_id = client.post("/api/notes", headers=ALICE, json=self.NOTE).json()["id"]

        response = client.delete(f"/api/notes/{note_id}", headers=ALICE)

        assert response.status_code == 204
        assert client.get("/api/notes", headers=ALICE).json() == []

    def test_delete_of_someone_elses_note_changes_nothing(self, client):
        note_id = client.post("/api/notes", headers=ALICE, json=self.NOTE).json()["id"]

        response = client.delete(f"/api/notes/{note_id}", headers=BOB)

        assert response.status_code == 204
        assert len(client.get("/api/notes", headers=ALICE).json()) == 1

    def test_delete_unknown_note(self, client):
        assert client.delete("/api/notes/does-not-exist", headers=ALICE).status_code == 204

    def test_notes_require_identity(self, client):
        assert client.get("/api/notes").status_code == 401
        assert client.post("/api/notes", json=self.NOTE).status_code == 401
        assert client.delete("/api/notes/1").status_code == 401

    def test_unreadable_stored_row_is_reported(self, app, client):
        store_client = Mock()
        store_client.is_configured.return_value = True
        store_client.insert_note.return_value = {"user_id": "alice", "summary": "no id"}
        app.state.note_store.client = store_client

        response = client.post("/api/notes", headers=ALICE, json=self.NOTE)

        assert response.status_code == 502
        assert response.json()["error"] == "Failed to save note"
        assert "unreadable note row" in response.json()["details"]

    def test_stats(self, client):
        client.post("/api/notes", headers=ALICE, json=self.NOTE)
        client.post("/api/notes", headers=ALICE, json=dict(self.NOTE, key_points=["a", "b", "c"]))

        stats = client.get("/api/notes/stats", headers=ALICE).json()

        assert stats["total_notes"] == 2
        assert stats["total_key_points"] == 4
        assert stats["average_key_points"] == 2.0


class TestUnconfiguredStore:
    """Test cases for a server without storage credentials."""

    @pytest.fixture
    def client(self, tmp_path):
        with TestClient(create_app(make_config(tmp_path, backend="supabase"))) as client:
            yield client

    def test_save_reports_not_configured(self, client):
        response = client.post("/api/notes", headers=ALICE, json={"summary": "S"})

        assert response.status_code == 503
        assert "not configured" in response.json()["details"]

    def test_list_is_empty(self, client):
        response = client.get("/api/notes", headers=ALICE)

        assert response.status_code == 200
        assert response.json() == []

    def test_delete_reports_not_configured(self, client):
        assert client.delete("/api/notes/1", headers=ALICE).status_code == 503

    def test_setup_lists_missing_pieces(self, client):
        data = client.get("/api/setup").json()

        assert data["setup_complete"] is False
        failing = {result["name"] for result in data["results"] if result["status"] == "fail"}
        assert failing == {"AI Provider", "Note Storage"}


class TestHealthEndpoint:
    """Test cases for GET /api/health."""

    def test_healthy(self, client):
        data = client.get("/api/health").json()

        assert data["status"] == "healthy"
        assert data["services"] == {
            "transcriber": True,
            "extractor": True,
            "note_store": True,
            "authentication": True,
        }

    def test_degraded_without_provider(self, tmp_path):
        with TestClient(create_app(make_config(tmp_path))) as client:
            data = client.get("/api/health").json()

        assert data["status"] == "degraded"
        assert data["services"]["transcriber"] is False
