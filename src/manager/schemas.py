"""Request and response models of the locale sync API."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from common.schemas import (
    ProgressEvent,
    RunPhase,
    TranslationEntry,
    TranslationMode,
    TranslationRunResult,
)
from common.utils import DateTimeUtils


class DocumentPairRequest(BaseModel):
    """Paths of a base document and the target document kept in sync with it."""

    base_path: str = Field(..., description="Base (source language) JSON file")
    target_path: str = Field(..., description="Target JSON file")

    @field_validator("base_path", "target_path")
    @classmethod
    def validate_path_non_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("path must be a non-empty string")
        return v.strip()


class EntriesResponse(BaseModel):
    """Flattened entries of a document pair."""

    entries: List[TranslationEntry]
    total: int
    missing: int = Field(..., description="Entries the 'missing' mode would select")


class SaveEntriesRequest(BaseModel):
    """Editor save: write the target values of the entries."""

    target_path: str
    entries: List[TranslationEntry]


class DocumentWrittenResponse(BaseModel):
    path: str
    message: str


class TranslationStartRequest(DocumentPairRequest):
    """Start a translation run over a document pair."""

    mode: TranslationMode = Field(TranslationMode.MISSING)
    model: Optional[str] = Field(None, description="Model override")
    batch_size: Optional[int] = Field(None, ge=1, description="Batch size override")

    class Config:
        json_schema_extra = {
            "example": {
                "base_path": "locales/en.json",
                "target_path": "locales/pt-BR.json",
                "mode": "missing",
                "batch_size": 600,
            }
        }


class RunStatusResponse(BaseModel):
    """Current (or last) run as seen by the registry."""

    run_id: Optional[str] = None
    active: bool = False
    phase: RunPhase = RunPhase.IDLE
    status_text: str = ""
    progress_percent: int = 0
    base_path: Optional[str] = None
    target_path: Optional[str] = None
    model: Optional[str] = None
    events: List[ProgressEvent] = Field(default_factory=list)
    result: Optional[TranslationRunResult] = None
    error: Optional[str] = None


class ModelsResponse(BaseModel):
    """Models available per provider, for the configured keys."""

    active_provider: str
    active_model: str
    providers: Dict[str, List[str]]


class HealthResponse(BaseModel):
    status: str = "healthy"
    timestamp: datetime = Field(default_factory=DateTimeUtils.get_current_utc_datetime)
    version: str = "1.0.0"
    active_provider: str
    api_key_configured: bool
    run_active: bool

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "version": "1.0.0",
                "active_provider": "gemini",
                "api_key_configured": True,
                "run_active": False,
            }
        }
