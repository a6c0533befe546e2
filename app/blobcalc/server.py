"""
FastAPI Server Module

Provides HTTP and WebSocket API for BlobCalc sessions.
A thin client sends key presses and its drawing area size, and gets
back the equation text and blob positions to render.
"""

import json
import uuid
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from .config import load_config
from .layout import BlobSpec, LayoutOptions, LayoutResult, compute_layout
from .logging_config import setup_logging, get_logger, set_correlation_id
from .services import CalculatorSession, SessionStore
from .ws_types import (
    parse_ws_message,
    AreaRequest,
    KeyOutcome,
    KeyRequest,
    KeyResponse,
    LayoutRequest,
    LayoutResponse,
    PositionModel,
    StateResponse,
    WSErrorMessage,
    WSKeyMessage,
    WSLayoutMessage,
    WSLayoutResultMessage,
    WSPingMessage,
    WSPongMessage,
    WSResumeSessionMessage,
    WSSessionStateMessage,
    WSStateMessage,
)

_config = load_config()

# Setup logging
setup_logging(level=_config.log_level, json_format=_config.log_json)
logger = get_logger("server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the session store on startup."""
    logger.info("Starting BlobCalc server...")
    app.state.config = _config
    app.state.sessions = SessionStore(_config)
    logger.info("BlobCalc server started successfully")
    try:
        yield
    finally:
        logger.info(f"Shutting down BlobCalc server with {len(app.state.sessions)} session(s)")


# Create FastAPI app
app = FastAPI(
    title="BlobCalc API",
    description="Addition visualized as groups of colored blobs",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_config.allowed_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    """Middleware to handle correlation IDs."""
    correlation_id = request.headers.get("X-Correlation-ID", f"req_{uuid.uuid4().hex[:8]}")
    set_correlation_id(correlation_id)
    response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    return response


# ============================================
# Helpers
# ============================================

def _get_session(session_id: str) -> CalculatorSession:
    store: SessionStore = app.state.sessions
    session = store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return session


def _positions(result: LayoutResult, session: Optional[CalculatorSession] = None) -> list:
    return [
        PositionModel(
            x=p.x,
            y=p.y,
            color_index=p.color_index,
            color=session.color_for(p.color_index) if session else None,
        )
        for p in result.positions
    ]


# ============================================
# Endpoints
# ============================================

@app.get("/health")
async def health_check():
    """Health check endpoint with session stats."""
    store: SessionStore = app.state.sessions
    store.cleanup_stale()
    return {
        "status": "healthy",
        "sessions": store.stats(),
    }


@app.post("/api/sessions", response_model=StateResponse, status_code=201)
async def create_session():
    """Start a new calculator at "0"."""
    store: SessionStore = app.state.sessions
    session = store.create()
    return StateResponse(**session.snapshot())


@app.get("/api/sessions/{session_id}", response_model=StateResponse)
async def get_session(session_id: str):
    session = _get_session(session_id)
    return StateResponse(**session.snapshot())


@app.delete("/api/sessions/{session_id}")
async def delete_session(session_id: str):
    store: SessionStore = app.state.sessions
    if not store.remove(session_id):
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return {"status": "deleted", "session_id": session_id}


@app.post("/api/sessions/{session_id}/keys", response_model=KeyResponse)
async def press_keys(session_id: str, request: KeyRequest):
    """
    Apply key presses in order.

    Rejected presses are reported per key; they are never an HTTP error.
    """
    session = _get_session(session_id)
    results = session.press_many(request.keys)
    logger.info(f"[{session_id}] {len(results)} key(s) -> {session.engine.equation!r}")
    return KeyResponse(
        **session.snapshot(),
        results=[
            KeyOutcome(key=r.key, applied=r.applied, reason=r.reason)
            for r in results
        ],
    )


@app.post("/api/sessions/{session_id}/layout", response_model=LayoutResponse)
async def session_layout(session_id: str, request: AreaRequest):
    """Blob positions for a session's current terms."""
    session = _get_session(session_id)
    result = session.layout(request.width, request.height)
    return LayoutResponse(
        diameter=result.diameter,
        positions=_positions(result, session),
        dropped=result.dropped,
    )


@app.post("/api/layout", response_model=LayoutResponse)
async def layout(request: LayoutRequest):
    """Stateless layout for explicit counts; unset options use the server config."""
    defaults: LayoutOptions = app.state.config.layout_options()
    options = LayoutOptions(
        min_diameter=request.min_diameter or defaults.min_diameter,
        max_diameter=request.max_diameter or defaults.max_diameter,
        packing_factor=defaults.packing_factor,
        spacing=request.spacing if request.spacing is not None else defaults.spacing,
        default_diameter=defaults.default_diameter,
        render_cap=request.render_cap if request.render_cap is not None else defaults.render_cap,
    )
    if options.min_diameter > options.max_diameter:
        raise HTTPException(
            status_code=422,
            detail=f"min_diameter {options.min_diameter} exceeds max_diameter {options.max_diameter}",
        )
    counts = [BlobSpec(count=c.count, color_index=c.color_index) for c in request.counts]
    result = compute_layout(counts, request.width, request.height, options)
    return LayoutResponse(
        diameter=result.diameter,
        positions=_positions(result),
        dropped=result.dropped,
    )


def _state_message(session: CalculatorSession, correlation_id: Optional[str], result=None) -> dict:
    return WSStateMessage(
        **session.snapshot(),
        correlation_id=correlation_id,
        applied=result.applied if result else None,
        reason=result.reason if result else None,
    ).model_dump()


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for key-by-key updates.

    The connection's own session is created on the first key or layout
    message and removed on disconnect. A session attached with
    resume_session outlives the connection.
    """
    store: SessionStore = app.state.sessions
    await websocket.accept()
    logger.info("WebSocket connected")

    session: Optional[CalculatorSession] = None
    owned_session_id: Optional[str] = None

    def current_session() -> CalculatorSession:
        nonlocal session, owned_session_id
        if session is None:
            session = store.create()
            owned_session_id = session.session_id
        return session

    try:
        while True:
            data = await websocket.receive_text()

            try:
                raw_message = json.loads(data)
            except json.JSONDecodeError:
                await websocket.send_json(
                    WSErrorMessage(content="Invalid JSON").model_dump()
                )
                continue

            if not isinstance(raw_message, dict):
                await websocket.send_json(
                    WSErrorMessage(content="Expected a JSON object").model_dump()
                )
                continue

            parsed_message = parse_ws_message(raw_message)
            cid = (parsed_message.correlation_id if parsed_message else None) or f"ws_{uuid.uuid4().hex[:8]}"
            set_correlation_id(cid)

            if isinstance(parsed_message, WSResumeSessionMessage):
                session, is_new = store.get_or_create(parsed_message.session_id)
                if owned_session_id and owned_session_id != session.session_id:
                    store.remove(owned_session_id)
                    owned_session_id = None
                await websocket.send_json(
                    WSSessionStateMessage(
                        session_id=session.session_id,
                        is_new=is_new,
                        equation=session.engine.equation,
                        correlation_id=cid,
                    ).model_dump()
                )

            elif isinstance(parsed_message, WSKeyMessage):
                active = current_session()
                result = active.press(parsed_message.key)
                await websocket.send_json(_state_message(active, cid, result))

            elif isinstance(parsed_message, WSLayoutMessage):
                active = current_session()
                result = active.layout(parsed_message.width, parsed_message.height)
                await websocket.send_json(
                    WSLayoutResultMessage(
                        diameter=result.diameter,
                        positions=_positions(result, active),
                        dropped=result.dropped,
                        correlation_id=cid,
                    ).model_dump()
                )

            elif isinstance(parsed_message, WSPingMessage):
                await websocket.send_json(WSPongMessage(correlation_id=cid).model_dump())

            else:
                await websocket.send_json(
                    WSErrorMessage(
                        content=f"Unknown or malformed message: {raw_message.get('type')}",
                        correlation_id=cid,
                    ).model_dump()
                )

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected from session {session.session_id if session else None}")
    finally:
        if owned_session_id:
            store.remove(owned_session_id)


# For running directly
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=_config.host, port=_config.port)
