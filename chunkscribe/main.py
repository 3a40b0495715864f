"""FastAPI front door for chunkscribe."""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional
import asyncio
import json
import logging

from fastapi import FastAPI, Request, Response
from fastapi.responses import HTMLResponse, PlainTextResponse, StreamingResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from chunkscribe.capture import AudioCapture
from chunkscribe.chat import ChatClient
from chunkscribe.config import Config
from chunkscribe.history import ConversationHistory
from chunkscribe.log_channel import Lagged, LogChannel
from chunkscribe.pipeline import CapturePipeline
from chunkscribe.session import SessionController, StartResult
from chunkscribe.state import RecordingState
from chunkscribe.transcriber import Transcriber, create_transcriber

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"


# Response models
class StateResponse(BaseModel):
    transcript: str
    response: str


class StatusResponse(BaseModel):
    active: bool
    cycles: int
    last_error: Optional[str] = None
    subscribers: int
    history_entries: int


def _create_transcriber() -> Transcriber:
    try:
        return create_transcriber(Config.TRANSCRIBER_TYPE)
    except ValueError as e:
        logger.error("%s", e)
        logger.error("Falling back to Deepgram transcriber...")
        return create_transcriber("deepgram")


def _create_chat() -> ChatClient:
    try:
        return ChatClient(Config.CHAT_PROVIDER)
    except ValueError as e:
        logger.error("%s", e)
        logger.error("Falling back to Ollama chat provider...")
        return ChatClient("ollama")


def build_controller() -> SessionController:
    """Wire the default components from Config."""
    state = RecordingState()
    history = ConversationHistory(Config.HISTORY_MAX_ENTRIES)
    channel = LogChannel(Config.LOG_PATH, subscriber_buffer=Config.SUBSCRIBER_BUFFER)
    pipeline = CapturePipeline(
        state=state,
        history=history,
        channel=channel,
        capture=AudioCapture(),
        transcriber=_create_transcriber(),
        chat=_create_chat(),
        chunk_seconds=Config.CHUNK_SECONDS,
        system_prompt=Config.SYSTEM_PROMPT,
    )
    return SessionController(pipeline, reset_history_on_start=Config.RESET_HISTORY_ON_START)


def create_app(
    controller: Optional[SessionController] = None,
    heartbeat_seconds: Optional[float] = None,
) -> FastAPI:
    if controller is None:
        controller = build_controller()
    if heartbeat_seconds is None:
        heartbeat_seconds = Config.SSE_HEARTBEAT_SECONDS
    channel: LogChannel = controller.pipeline.channel

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await controller.shutdown()
        logger.info("[SESSION] Capture loop shut down")

    app = FastAPI(title="chunkscribe", lifespan=lifespan)
    app.state.controller = controller

    # CORS for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/favicon.ico")
    async def favicon():
        """Return empty favicon to prevent 404 errors."""
        return Response(content="", media_type="image/x-icon")

    @app.get("/", response_class=HTMLResponse)
    async def serve_ui():
        """Serve the main UI page."""
        try:
            html = (STATIC_DIR / "index.html").read_text(encoding="utf-8")
        except OSError as e:
            logger.error("Could not read 'static/index.html': %s", e)
            return HTMLResponse(content="<h1>index.html not found</h1>", status_code=404)
        return HTMLResponse(content=html)

    @app.post("/start_recording", response_class=PlainTextResponse)
    async def start_recording():
        """Start the capture loop unless it is already running."""
        result = await controller.start()
        if result is StartResult.ALREADY_ACTIVE:
            return "Already recording"
        return "Recording started"

    @app.post("/stop_recording", response_class=PlainTextResponse)
    async def stop_recording():
        """Ask the capture loop to stop after its current cycle."""
        await controller.stop()
        return "Recording stopped"

    @app.get("/state", response_model=StateResponse)
    async def read_state():
        """Last completed transcript and response."""
        snapshot = await controller.read_state()
        return snapshot.to_dict()

    @app.get("/status", response_model=StatusResponse)
    async def status():
        """Session flag, cycle count, last failure and fan-out stats."""
        return controller.status()

    @app.get("/log", response_class=PlainTextResponse)
    async def read_log():
        """Raw durable log (JSON lines)."""
        return await asyncio.to_thread(channel.read_all)

    @app.get("/live")
    async def live(request: Request):
        """Stream newly logged records via Server-Sent Events."""
        subscription = channel.subscribe()

        async def event_generator():
            try:
                while True:
                    if await request.is_disconnected():
                        break
                    try:
                        item = await subscription.get(timeout=heartbeat_seconds)
                    except asyncio.TimeoutError:
                        # Send heartbeat to keep connection alive
                        yield ": heartbeat\n\n"
                        continue

                    if isinstance(item, Lagged):
                        yield f"event: lagged\ndata: {json.dumps({'missed': item.missed})}\n\n"
                    else:
                        yield f"data: {item}\n\n"
            finally:
                subscription.close()

        return StreamingResponse(
            event_generator(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable buffering for nginx
            }
        )

    return app


app = create_app()
