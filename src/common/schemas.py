"""Shared Pydantic schemas for the locale sync and translation tool."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from common.utils import DateTimeUtils


class TranslationMode(str, Enum):
    """Which entries a translation run selects."""

    MISSING = "missing"
    ALL = "all"


class RunPhase(str, Enum):
    """States of the batch orchestrator."""

    IDLE = "idle"
    PREPARING = "preparing"
    RUNNING = "running"
    COOLDOWN = "cooldown"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"


class TranslationEntry(BaseModel):
    """
    One flattened key of the base/target document pair.

    ``source`` and ``target`` hold either a string or any other JSON value
    (object, array, number, bool). ``None`` means the key is absent from
    that document (a JSON ``null`` is treated the same way).
    """

    key: str = Field(..., description="Dot-separated path, unique within a document")
    source: Optional[Any] = Field(None, description="Value in the base document")
    target: Optional[Any] = Field(None, description="Value in the target document")

    class Config:
        json_schema_extra = {
            "example": {
                "key": "menu.file.open",
                "source": "Open File",
                "target": "Abrir Arquivo",
            }
        }


class ModelRateLimits(BaseModel):
    """Published request budget of a model."""

    requests_per_minute: int = Field(..., gt=0)
    requests_per_day: int = Field(..., gt=0)
    tokens_per_minute: int = Field(..., gt=0)


class ProgressEvent(BaseModel):
    """One-way progress notification emitted while a run is active."""

    status_text: str = Field(..., description="Human readable status line")
    progress_percent: int = Field(..., ge=0, le=100)
    phase: RunPhase = Field(..., description="Orchestrator state at emission time")
    batch_index: Optional[int] = Field(
        None, description="0-based index of the batch this event refers to"
    )
    total_batches: Optional[int] = Field(None, description="Number of batches")
    timestamp: datetime = Field(
        default_factory=DateTimeUtils.get_current_utc_datetime
    )


class TranslationRunResult(BaseModel):
    """Final outcome of one orchestration call."""

    status: RunPhase = Field(..., description="DONE, CANCELLED or FAILED")
    cancelled: bool = Field(False, description="Run stopped by a cancel request")
    error: Optional[str] = Field(None, description="End-user facing error text")
    error_kind: Optional[str] = Field(None, description="Classification of the error")
    entries: List[TranslationEntry] = Field(
        default_factory=list, description="Entries with translations applied"
    )
    final_document: Dict[str, Any] = Field(
        default_factory=dict, description="Nested target document"
    )
    translations: Dict[str, str] = Field(
        default_factory=dict, description="Every key translated during the run"
    )
    candidate_count: int = 0
    total_batches: int = 0
    completed_batches: int = 0
    failed_batches: int = 0
    checkpoint_path: Optional[str] = None
    started_at: datetime = Field(default_factory=DateTimeUtils.get_current_utc_datetime)
    finished_at: Optional[datetime] = None
