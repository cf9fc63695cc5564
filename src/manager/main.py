"""FastAPI application for syncing and translating JSON locale files."""

from contextlib import asynccontextmanager
from typing import Dict

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware

from common.config import settings
from common.logging_config import setup_service_logging
from common.schemas import TranslationMode
from common.string_utils import mask_api_key
from manager.run_registry import RunAlreadyActiveError, run_registry
from manager.schemas import (
    DocumentPairRequest,
    DocumentWrittenResponse,
    EntriesResponse,
    HealthResponse,
    ModelsResponse,
    RunStatusResponse,
    SaveEntriesRequest,
    TranslationStartRequest,
)
from translator.candidates import select_candidates
from translator.error_handler import describe_translation_error
from translator.exceptions import (
    ConfigurationError,
    DocumentLoadError,
    NoWorkError,
    PersistenceError,
)
from translator.file_operations import (
    load_translation_entries,
    reset_target_to_base,
    save_entries,
)
from translator.schemas import TranslationRunRequest
from translator.translation_service import fetch_gemini_models, fetch_openai_models

logger = setup_service_logging("manager")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events."""
    provider, api_key, model = settings.get_active_provider()
    logger.info(
        f"Starting locale sync API with {provider} ({model}), key {mask_api_key(api_key)}"
    )

    yield

    await run_registry.shutdown()
    logger.info("Locale sync API stopped")


app = FastAPI(
    title="Locale Sync API",
    description="API for keeping JSON locale files in sync and translating them",
    version="1.0.0",
    lifespan=lifespan,
)

# Parse comma-separated origins from config
allowed_origins = (
    [origin.strip() for origin in settings.cors_allowed_origins.split(",")]
    if settings.cors_allowed_origins
    else ["http://localhost:3000"]
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Report the active provider and whether a run is in progress."""
    provider, api_key, _ = settings.get_active_provider()
    return HealthResponse(
        active_provider=provider,
        api_key_configured=bool(api_key and api_key.strip()),
        run_active=run_registry.is_active,
    )


@app.get("/", response_model=Dict[str, str])
async def root():
    """Root endpoint with API information."""
    return {
        "message": "Locale Sync API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/models", response_model=ModelsResponse)
async def list_models():
    """List the models available to the configured API keys."""
    provider, _, model = settings.get_active_provider()
    return ModelsResponse(
        active_provider=provider,
        active_model=model,
        providers={
            "gemini": await fetch_gemini_models(settings.gemini_api_key),
            "openai": await fetch_openai_models(settings.openai_api_key),
        },
    )


@app.post("/documents/entries", response_model=EntriesResponse)
async def load_entries(request: DocumentPairRequest):
    """Load the flattened entries of a base/target document pair."""
    try:
        entries = await load_translation_entries(request.base_path, request.target_path)
    except DocumentLoadError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=describe_translation_error(e),
        ) from e

    return EntriesResponse(
        entries=entries,
        total=len(entries),
        missing=len(select_candidates(entries, TranslationMode.MISSING)),
    )


@app.post("/documents/save", response_model=DocumentWrittenResponse)
async def save_document(request: SaveEntriesRequest):
    """Write the target values of the edited entries to the target document."""
    if run_registry.is_active:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A translation run is writing the target document",
        )
    try:
        output_path = await save_entries(request.target_path, request.entries)
    except PersistenceError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=describe_translation_error(e),
        ) from e
    return DocumentWrittenResponse(path=str(output_path), message="Saved!")


@app.post("/documents/reset", response_model=DocumentWrittenResponse)
async def reset_document(request: DocumentPairRequest):
    """Overwrite the target document with the base document."""
    if run_registry.is_active:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A translation run is writing the target document",
        )
    try:
        output_path = await reset_target_to_base(request.base_path, request.target_path)
    except DocumentLoadError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=describe_translation_error(e),
        ) from e
    except PersistenceError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=describe_translation_error(e),
        ) from e
    return DocumentWrittenResponse(
        path=str(output_path), message="Reset complete. Target now matches base."
    )


@app.post(
    "/translations",
    response_model=RunStatusResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def start_translation(request: TranslationStartRequest):
    """
    Start a translation run in the background.

    Returns 409 while another run is active and 400 when the run cannot
    start (missing API key, nothing to translate).
    """
    if run_registry.is_active:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A translation run is already in progress",
        )

    try:
        entries = await load_translation_entries(request.base_path, request.target_path)
    except DocumentLoadError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=describe_translation_error(e),
        ) from e

    run_request = TranslationRunRequest.from_settings(
        settings,
        mode=request.mode,
        target_path=request.target_path,
        model=request.model,
        batch_size=request.batch_size,
    )

    try:
        run_registry.start(entries, run_request, request.base_path)
    except RunAlreadyActiveError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except (ConfigurationError, NoWorkError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=describe_translation_error(e),
        ) from e

    return run_registry.snapshot()


@app.get("/translations/current", response_model=RunStatusResponse)
async def get_current_translation():
    """Progress of the active run, or the outcome of the last one."""
    return run_registry.snapshot()


@app.post("/translations/current/cancel", response_model=RunStatusResponse)
async def cancel_current_translation():
    """Stop the active run after the batch in flight."""
    if not run_registry.cancel():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No translation run is in progress",
        )
    return run_registry.snapshot()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
