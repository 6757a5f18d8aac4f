import asyncio

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from metagrabber.config import get_settings, log_startup_status
from metagrabber.dependencies import get_key_pool, verify_api_key
from metagrabber.errors import KeyStoreError, TranscriptionError
from metagrabber.routers import extract_router, keys_router, transcription_router
from metagrabber.services.ffmpeg_service import run_ffmpeg
from metagrabber.services.key_pool import KeyPool
from metagrabber.services.key_store import create_key_store
from metagrabber.services.transcription_service import TranscriptionOrchestrator
from metagrabber.utils.logging_utils import setup_logger

settings = get_settings()

app = FastAPI(title="MetaGrabber", description="Video URL extraction and chunked transcription API")

# CORS configuration
app.add_middleware(CORSMiddleware,
    allow_origins=[settings.allowed_origin],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(extract_router)
app.include_router(transcription_router)
app.include_router(keys_router)


@app.exception_handler(TranscriptionError)
async def transcription_error_handler(request: Request, exc: TranscriptionError):
    """Answer pipeline failures with their status and a readable message."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def init_app_state(app: FastAPI, key_pool: KeyPool) -> None:
    """Bind the key pool, orchestrator and job semaphore to the application."""
    app.state.key_pool = key_pool
    app.state.orchestrator = TranscriptionOrchestrator(key_pool, settings=settings)
    app.state.transcription_semaphore = asyncio.Semaphore(settings.max_concurrent_transcriptions)


# Application lifecycle events
@app.on_event("startup")
async def startup_event():
    """Load the key pool and initialize services on application startup."""
    print("INFO: Starting application...")
    setup_logger()
    log_startup_status(settings)

    key_pool = KeyPool(create_key_store(settings))
    try:
        count = key_pool.load()
        print(f"INFO: Loaded {count} API key(s)")
    except Exception as e:
        print(f"WARNING: Failed to load API keys: {str(e)}")

    if len(key_pool) == 0 and settings.openai_api_key:
        try:
            key_pool.add_key(settings.openai_api_key)
            print("INFO: Seeded key pool from OPENAI_API_KEY")
        except KeyStoreError as e:
            print(f"WARNING: Could not persist seed key: {e.message}")

    init_app_state(app, key_pool)


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on application shutdown."""
    print("INFO: Shutting down application...")
    app.state.key_pool = None
    app.state.orchestrator = None


@app.get("/health")
async def health(
    key_pool: KeyPool = Depends(get_key_pool),
    _: bool = Depends(verify_api_key)
):
    """Report media tool availability and key pool status."""
    stdout, _stderr, code = await asyncio.to_thread(run_ffmpeg, ["-version"], 10)
    ffmpeg_version = stdout.strip().splitlines()[0] if code == 0 and stdout.strip() else None
    return {
        "status": "ok",
        "ffmpeg": ffmpeg_version or "not available",
        "keys": key_pool.get_status(),
        "key_store": "supabase" if settings.supabase_enabled else "file",
    }
