"""
FastAPI server for Echo Notes.

Turns uploaded recordings into structured notes and stores, lists and
deletes notes on behalf of the authenticated caller.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, File, Form, Request, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .auth import ApiKeyAuthenticator, get_current_user
from .config import AppConfig, config as default_config
from .error_handling import NoteError, Unauthorized, handle_error
from .models import AudioCapture, Note
from .note_store import NoteStats, NoteStore, summarize_notes
from .notes_generator import ExtractionStage
from .processing_pipeline import NotePipeline
from .providers import create_openai_client
from .setup_validator import SetupValidator
from .store_clients import build_store_client
from .transcription import TranscriptionStage

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# Response models
class ProcessResponse(BaseModel):
    """Response model for the process endpoint."""
    transcription: str
    summary: str
    key_points: List[str]
    action_items: List[str]
    audio_url: Optional[str] = None


class NoteCreateRequest(BaseModel):
    """Request body for saving a note."""
    transcription: str = ""
    summary: str = ""
    key_points: List[str] = Field(default_factory=list)
    action_items: List[str] = Field(default_factory=list)
    audio_url: Optional[str] = None


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""
    status: str
    services: Dict[str, bool]
    message: str


class SetupValidationResponse(BaseModel):
    """Response model for setup validation endpoint."""
    overall_status: str
    results: List[Dict[str, Any]]
    setup_complete: bool
    next_steps: List[str]


def _build_services(app: FastAPI, app_config: AppConfig) -> None:
    """Create every service once and attach it to ``app.state``."""
    openai_client = create_openai_client(app_config.provider)
    transcriber = TranscriptionStage(openai_client, model_name=app_config.provider.transcription_model)
    extractor = ExtractionStage(
        openai_client,
        model_name=app_config.provider.extraction_model,
        temperature=app_config.provider.temperature
    )
    note_store = NoteStore(build_store_client(app_config.store))
    executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="echo-notes")

    app.state.config = app_config
    app.state.authenticator = ApiKeyAuthenticator(app_config.auth)
    app.state.transcriber = transcriber
    app.state.extractor = extractor
    app.state.note_store = note_store
    app.state.executor = executor
    app.state.pipeline = NotePipeline(
        transcriber=transcriber,
        extractor=extractor,
        note_store=note_store,
        executor=executor
    )
    app.state.setup_validator = SetupValidator(app_config)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown."""
    logger.info("Starting Echo Notes server...")

    report = app.state.setup_validator.run_server_validation()
    if not report.setup_complete:
        for step in report.next_steps:
            logger.warning(f"Setup incomplete: {step}")

    yield

    logger.info("Shutting down Echo Notes server...")
    app.state.executor.shutdown(wait=False)


def _error_response(error: NoteError) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content={"error": error.user_message, "details": error.message}
    )


def _require_user(user_id: Optional[str]) -> str:
    if not user_id:
        raise Unauthorized("Missing or invalid API key")
    return user_id


def create_app(app_config: Optional[AppConfig] = None) -> FastAPI:
    """Build the FastAPI application with its services."""
    app_config = app_config or default_config

    app = FastAPI(
        title="Echo Notes API",
        description="REST API for turning voice recordings into structured notes",
        version="1.0.0",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _build_services(app, app_config)

    @app.exception_handler(NoteError)
    async def note_error_handler(request: Request, exc: NoteError):
        return _error_response(exc)

    @app.post("/api/process", response_model=ProcessResponse)
    async def process_audio(
        request: Request,
        audio: Optional[UploadFile] = File(None),
        duration: int = Form(0),
        user_id: Optional[str] = Depends(get_current_user)
    ):
        """Transcribe an uploaded recording and extract structured notes."""
        if not user_id:
            return _error_response(Unauthorized("Missing or invalid API key"))

        if audio is None:
            return JSONResponse(status_code=400, content={"error": "No audio file provided"})

        capture = AudioCapture(
            data=await audio.read(),
            media_type=audio.content_type or app_config.audio.media_type,
            duration=max(duration, 0),
            filename=audio.filename or app_config.audio.filename
        )
        logger.info(f"Processing {capture.size_bytes} bytes of audio for user {user_id}")

        try:
            note = await request.app.state.pipeline.process(capture, user_id)
        except Exception as e:
            error = handle_error(e, "api", "process_audio")
            return JSONResponse(
                status_code=500,
                content={"error": "Failed to process audio", "details": error.message}
            )

        return ProcessResponse(
            transcription=note.transcription,
            summary=note.summary,
            key_points=note.key_points,
            action_items=note.action_items,
            audio_url=note.audio_url
        )

    @app.post("/api/notes", response_model=Note, status_code=201)
    def create_note(
        body: NoteCreateRequest,
        request: Request,
        user_id: Optional[str] = Depends(get_current_user)
    ):
        """Persist a note for the caller."""
        owner = _require_user(user_id)
        draft = Note(**body.model_dump())
        return request.app.state.note_store.save(draft, owner)

    @app.get("/api/notes", response_model=List[Note])
    def list_notes(request: Request, user_id: Optional[str] = Depends(get_current_user)):
        """The caller's notes, newest first."""
        owner = _require_user(user_id)
        return request.app.state.note_store.list_notes(owner)

    @app.get("/api/notes/stats", response_model=NoteStats)
    def note_stats(request: Request, user_id: Optional[str] = Depends(get_current_user)):
        """Dashboard figures over the caller's notes."""
        owner = _require_user(user_id)
        return summarize_notes(request.app.state.note_store.list_notes(owner))

    @app.delete("/api/notes/{note_id}", status_code=204)
    def delete_note(note_id: str, request: Request, user_id: Optional[str] = Depends(get_current_user)):
        """Delete one of the caller's notes. Unknown ids are ignored."""
        owner = _require_user(user_id)
        request.app.state.note_store.delete(note_id, owner)
        return Response(status_code=204)

    @app.get("/api/health", response_model=HealthResponse)
    async def health_check(request: Request):
        """Health check endpoint to verify all services are available."""
        state = request.app.state
        services = {
            "transcriber": state.transcriber.is_available(),
            "extractor": state.extractor.is_available(),
            "note_store": state.note_store.is_configured(),
            "authentication": state.authenticator.has_keys(),
        }

        all_healthy = all(services.values())

        return HealthResponse(
            status="healthy" if all_healthy else "degraded",
            services=services,
            message="All services operational" if all_healthy else "Some services unavailable"
        )

    @app.get("/api/setup", response_model=SetupValidationResponse)
    async def setup_status(request: Request):
        """Report which pieces of configuration are still missing."""
        report = request.app.state.setup_validator.run_server_validation()
        return SetupValidationResponse(**report.to_dict())

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "echo_notes.main:app",
        host=default_config.server.host,
        port=default_config.server.port,
        reload=default_config.server.debug,
        log_level="info"
    )
