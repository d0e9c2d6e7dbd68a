"""FastAPI application for the Griftless meetup site."""

import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse, PlainTextResponse, StreamingResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from .config import AppConfig
from .db import create_engine_from_url
from .errors import MethodNotAllowedError, StoreError, ValidationError
from .realtime import BroadcastSession, FetchSnapshot, SessionRegistry, SSEChannel
from .schemas import HealthResponse, RegistrationSubmission, SubmitResponse
from .snapshot import SnapshotReader
from .store import RegistrationStore

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"

SUBMIT_PATHS = ("/submit-registration", "/api/submit")
UPDATE_PATHS = ("/registration-updates", "/api/updates")
STYLESHEETS = {"reset": "reset.css", "index": "index.css", "styles": "index.css"}

# Every method is routed to the submit handler so it can answer 405 itself.
SUBMIT_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "Access-Control-Allow-Origin": "*",
    "X-Accel-Buffering": "no",
}


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tags each request with a short id and logs method, path, status and duration."""

    async def dispatch(self, request: Request, call_next):
        request_id = uuid4().hex[:16]
        request.state.request_id = request_id
        start_time = time.time()

        response = await call_next(request)

        response.headers["X-Request-ID"] = request_id
        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"Request processed: request_id={request_id}, "
            f"method={request.method}, path={request.url.path}, "
            f"status={response.status_code}, duration_ms={duration_ms:.2f}"
        )
        return response


async def open_updates_stream(
    fetch: FetchSnapshot,
    registry: SessionRegistry,
    interval: float,
    queue_size: int = 16,
) -> StreamingResponse:
    """
    Start a broadcast session and wrap its channel in an SSE response.

    The first snapshot is queued before the response is returned. When the
    client goes away the generator is torn down and its ``finally`` cancels
    the session.
    """
    channel = SSEChannel(maxsize=queue_size)

    def release(session: BroadcastSession) -> None:
        channel.close()
        registry.unsubscribe(session)

    session = BroadcastSession(fetch, channel.send, interval=interval, on_close=release)
    registry.subscribe(session)
    await session.start()

    async def event_generator():
        try:
            async for frame in channel.frames():
                yield frame
        finally:
            session.cancel("client disconnected")

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    """
    Build the application and wire store, reader and session registry.
    """
    config = config or AppConfig.load_from_env()
    engine = create_engine_from_url(config.database_url)
    store = RegistrationStore(engine)
    reader = SnapshotReader(store)
    registry = SessionRegistry()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            added = await run_in_threadpool(store.ensure_schema)
            if added:
                logger.info(f"Registrations table upgraded, added columns: {', '.join(added)}")
        except StoreError as e:
            # Reads degrade to empty lists; the first insert retries the migration
            logger.error(f"Schema check failed at startup: {e}", exc_info=True)

        yield

        closed = registry.close_all("server shutdown")
        if closed:
            logger.info(f"Closed {closed} SSE session(s) on shutdown")
        engine.dispose()

    app = FastAPI(
        title="Griftless",
        description="Engineering meetup: registration, speakers and live attendee list",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_middleware(RequestIDMiddleware)

    app.state.config = config
    app.state.store = store
    app.state.reader = reader
    app.state.registry = registry

    async def fetch_snapshot() -> Dict[str, Any]:
        return await run_in_threadpool(reader.snapshot)

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return PlainTextResponse(str(exc), status_code=400)

    @app.exception_handler(MethodNotAllowedError)
    async def method_not_allowed_handler(request: Request, exc: MethodNotAllowedError):
        return PlainTextResponse("Method Not Allowed", status_code=405, headers={"Allow": exc.allowed})

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        return PlainTextResponse("Server Error", status_code=500)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=exc.headers)

    @app.get("/", include_in_schema=False)
    async def index():
        """Serve the meetup page."""
        return FileResponse(STATIC_DIR / "index.html", media_type="text/html")

    @app.get("/{name}.css", include_in_schema=False)
    async def stylesheet(name: str):
        filename = STYLESHEETS.get(name)
        if filename is None:
            raise HTTPException(status_code=404, detail="Not Found")
        return FileResponse(STATIC_DIR / filename, media_type="text/css")

    async def submit_registration(request: Request) -> SubmitResponse:
        """
        Accept a registration from the page's form.

        Malformed JSON is answered with 500, the same as any other
        unexpected failure while handling the body.
        """
        if request.method != "POST":
            raise MethodNotAllowedError(request.method)

        request_id = getattr(request.state, "request_id", "unknown")
        try:
            payload = await request.json()
        except ValueError as e:
            logger.error(f"Unreadable submission body: request_id={request_id}, error={e}")
            raise HTTPException(status_code=500, detail="Server Error")

        try:
            submission = RegistrationSubmission.model_validate(payload)
        except PydanticValidationError as e:
            reason = e.errors()[0]["msg"]
            logger.info(f"Submission rejected: request_id={request_id}, reason={reason}")
            raise ValidationError(reason) from None

        try:
            registration_id = await run_in_threadpool(store.insert, submission)
        except StoreError as e:
            logger.error(
                f"Failed to store submission: request_id={request_id}, "
                f"error={e}, cause={e.__cause__!r}"
            )
            raise

        logger.info(
            f"Registration stored: request_id={request_id}, id={registration_id}, "
            f"speaker={submission.is_speaker}"
        )
        return SubmitResponse(success=True)

    for path in SUBMIT_PATHS:
        app.add_api_route(
            path,
            submit_registration,
            methods=SUBMIT_METHODS,
            response_model=SubmitResponse,
        )

    async def registration_updates():
        """SSE endpoint pushing the full registration list every poll interval."""
        return await open_updates_stream(
            fetch_snapshot,
            registry,
            interval=config.poll_interval,
            queue_size=config.stream_queue_size,
        )

    for path in UPDATE_PATHS:
        app.add_api_route(path, registration_updates, methods=["GET"])

    @app.get("/api/speakers", response_model=List[Dict[str, Any]])
    async def list_speakers():
        """Speakers for the showcase, newest first."""
        return await run_in_threadpool(reader.speakers)

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        """Health check endpoint."""
        try:
            await run_in_threadpool(store.ping)
            database = "ok"
        except StoreError as e:
            logger.warning(f"Database health check failed: {e}")
            database = "error"

        return HealthResponse(
            status="healthy" if database == "ok" else "degraded",
            database=database,
            open_streams=len(registry),
        )

    return app
