"""
Setup validation and user guidance for Echo Notes.

Reports which pieces of configuration are missing so the UI can show a
setup prompt instead of a retry prompt.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

import sounddevice as sd

from .config import AppConfig, config as default_config

logger = logging.getLogger(__name__)


class ValidationStatus(Enum):
    """Status levels for validation checks."""
    PASS = "pass"
    WARNING = "warning"
    FAIL = "fail"


@dataclass
class ValidationResult:
    """Result of a single validation check."""
    name: str
    status: ValidationStatus
    message: str
    fix_instructions: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "status": self.status.value,
            "message": self.message,
            "fix_instructions": self.fix_instructions
        }


@dataclass
class SetupValidationReport:
    """Complete setup validation report."""
    overall_status: ValidationStatus
    results: List[ValidationResult]
    setup_complete: bool
    next_steps: List[str]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "overall_status": self.overall_status.value,
            "results": [result.to_dict() for result in self.results],
            "setup_complete": self.setup_complete,
            "next_steps": self.next_steps
        }


class SetupValidator:
    """Validates provider credentials, note storage, authentication and audio input."""

    def __init__(self, app_config: Optional[AppConfig] = None):
        self.config = app_config or default_config
        self.validation_results: List[ValidationResult] = []

    def run_server_validation(self) -> SetupValidationReport:
        """Validate everything the processing server needs."""
        self.validation_results.clear()
        self._validate_provider()
        self._validate_store()
        self._validate_auth()
        return self._generate_report()

    def run_client_validation(self) -> SetupValidationReport:
        """Validate the recording machine."""
        self.validation_results.clear()
        self._validate_microphone()
        return self._generate_report()

    def _validate_provider(self) -> None:
        if self.config.provider.is_configured():
            self.validation_results.append(ValidationResult(
                name="AI Provider",
                status=ValidationStatus.PASS,
                message=(
                    f"Using {self.config.provider.transcription_model} for transcription and "
                    f"{self.config.provider.extraction_model} for notes"
                )
            ))
        else:
            self.validation_results.append(ValidationResult(
                name="AI Provider",
                status=ValidationStatus.FAIL,
                message="OpenAI API key is missing",
                fix_instructions="Set OPENAI_API_KEY in the server environment and restart the server."
            ))

    def _validate_store(self) -> None:
        store = self.config.store
        if store.backend == "local":
            self.validation_results.append(ValidationResult(
                name="Note Storage",
                status=ValidationStatus.WARNING,
                message=f"Using local storage at {store.local_dir}; notes stay on this machine",
                fix_instructions="Set NOTE_STORE_BACKEND=supabase with SUPABASE_URL and SUPABASE_KEY to sync notes."
            ))
        elif store.is_configured():
            self.validation_results.append(ValidationResult(
                name="Note Storage",
                status=ValidationStatus.PASS,
                message=f"Supabase table '{store.notes_table}' and bucket '{store.audio_bucket}'"
            ))
        else:
            self.validation_results.append(ValidationResult(
                name="Note Storage",
                status=ValidationStatus.FAIL,
                message="Supabase credentials are missing or still placeholders",
                fix_instructions=self._get_store_setup_instructions()
            ))

    def _validate_auth(self) -> None:
        if self.config.auth.api_keys:
            self.validation_results.append(ValidationResult(
                name="Authentication",
                status=ValidationStatus.PASS,
                message=f"{len(self.config.auth.api_keys)} API key(s) configured"
            ))
        else:
            self.validation_results.append(ValidationResult(
                name="Authentication",
                status=ValidationStatus.FAIL,
                message="No API keys configured; every request will be rejected",
                fix_instructions="Set ECHO_NOTES_API_KEYS=key:user_id[,key:user_id...]"
            ))

    def _validate_microphone(self) -> None:
        try:
            device = sd.query_devices(self.config.audio.device_id, kind='input')
        except Exception as e:
            self.validation_results.append(ValidationResult(
                name="Microphone",
                status=ValidationStatus.FAIL,
                message=f"No usable input device: {e}",
                fix_instructions="Connect a microphone and grant this terminal microphone access."
            ))
            return

        name = device.get('name', 'Unknown') if isinstance(device, dict) else "Unknown"
        self.validation_results.append(ValidationResult(
            name="Microphone",
            status=ValidationStatus.PASS,
            message=f"Input device: {name}"
        ))

    def _generate_report(self) -> SetupValidationReport:
        statuses = [result.status for result in self.validation_results]
        if ValidationStatus.FAIL in statuses:
            overall = ValidationStatus.FAIL
        elif ValidationStatus.WARNING in statuses:
            overall = ValidationStatus.WARNING
        else:
            overall = ValidationStatus.PASS

        next_steps = [
            result.fix_instructions
            for result in self.validation_results
            if result.status is ValidationStatus.FAIL and result.fix_instructions
        ]

        return SetupValidationReport(
            overall_status=overall,
            results=list(self.validation_results),
            setup_complete=overall is not ValidationStatus.FAIL,
            next_steps=next_steps
        )

    def _get_store_setup_instructions(self) -> str:
        return (
            "1. Set SUPABASE_URL and SUPABASE_KEY with your Supabase project URL and key.\n"
            f"2. Create a '{self.config.store.notes_table}' table with columns id (uuid), user_id, "
            "transcription, summary, key_points (jsonb), action_items (jsonb), audio_url, created_at.\n"
            f"3. In Supabase Storage, create a public bucket named '{self.config.store.audio_bucket}'."
        )
