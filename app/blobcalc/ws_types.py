"""
Message Types

Pydantic models for the HTTP API and WebSocket communication.
"""

from typing import List, Optional
from pydantic import BaseModel, Field, model_validator
import logging

logger = logging.getLogger(__name__)

# Request limits; the render cap bounds the work, these bound the input
MAX_AREA_SIDE = 100_000.0
MAX_BLOB_COUNT = 1_000_000_000
MAX_RENDER_CAP = 10_000

# ============================================
# HTTP Schemas
# ============================================

class KeyRequest(BaseModel):
    """One or more key presses, applied in order."""
    keys: List[str] = Field(min_length=1)


class KeyOutcome(BaseModel):
    key: str
    applied: bool
    reason: Optional[str] = None


class StateResponse(BaseModel):
    """Text state of a calculator session."""
    session_id: str
    equation: str
    grouped: str
    terms: List[int]
    sum: int
    display: str


class KeyResponse(StateResponse):
    results: List[KeyOutcome] = []


class AreaRequest(BaseModel):
    """Drawing area for a session's blobs."""
    width: float = Field(le=MAX_AREA_SIDE)
    height: float = Field(le=MAX_AREA_SIDE)


class BlobCountModel(BaseModel):
    count: int = Field(ge=0, le=MAX_BLOB_COUNT)
    color_index: int = Field(default=0, ge=0)


class LayoutRequest(AreaRequest):
    """Stateless layout request with explicit per-term counts."""
    counts: List[BlobCountModel] = Field(default=[], max_length=1000)
    min_diameter: Optional[float] = Field(default=None, gt=0, le=MAX_AREA_SIDE)
    max_diameter: Optional[float] = Field(default=None, gt=0, le=MAX_AREA_SIDE)
    spacing: Optional[float] = Field(default=None, ge=0, le=MAX_AREA_SIDE)
    render_cap: Optional[int] = Field(default=None, ge=0, le=MAX_RENDER_CAP)

    @model_validator(mode="after")
    def check_diameter_range(self) -> "LayoutRequest":
        if (
            self.min_diameter is not None
            and self.max_diameter is not None
            and self.min_diameter > self.max_diameter
        ):
            raise ValueError("min_diameter must not exceed max_diameter")
        return self


class PositionModel(BaseModel):
    x: float
    y: float
    color_index: int
    color: Optional[str] = None


class LayoutResponse(BaseModel):
    diameter: float
    positions: List[PositionModel]
    dropped: int = 0


# ============================================
# WebSocket Message Schemas
# ============================================

class WSMessageBase(BaseModel):
    """Base class for WebSocket messages."""
    type: str
    correlation_id: Optional[str] = None


class WSKeyMessage(WSMessageBase):
    """Key press from client to server."""
    type: str = "key"
    key: str


class WSLayoutMessage(WSMessageBase):
    """Layout request for the connection's session."""
    type: str = "layout"
    width: float = Field(le=MAX_AREA_SIDE)
    height: float = Field(le=MAX_AREA_SIDE)


class WSPingMessage(WSMessageBase):
    """Ping message from client to server."""
    type: str = "ping"


class WSResumeSessionMessage(WSMessageBase):
    """Request to attach the connection to an existing session."""
    type: str = "resume_session"
    session_id: str


class WSPongMessage(WSMessageBase):
    """Pong response from server to client."""
    type: str = "pong"


class WSStateMessage(WSMessageBase):
    """Session state pushed after every key press."""
    type: str = "state"
    session_id: str
    equation: str
    grouped: str
    terms: List[int]
    sum: int
    display: str
    applied: Optional[bool] = None
    reason: Optional[str] = None


class WSLayoutResultMessage(WSMessageBase):
    """Layout response from server to client."""
    type: str = "layout_result"
    diameter: float
    positions: List[PositionModel]
    dropped: int = 0


class WSSessionStateMessage(WSMessageBase):
    """Session attach response from server to client."""
    type: str = "session_state"
    session_id: str
    is_new: bool = False
    equation: str = "0"


class WSErrorMessage(WSMessageBase):
    """Error message from server to client."""
    type: str = "error"
    content: str


def parse_ws_message(data: dict) -> Optional[WSMessageBase]:
    """Parse incoming WebSocket message into typed schema."""
    msg_type = data.get("type")
    try:
        if msg_type == "key":
            return WSKeyMessage(**data)
        elif msg_type == "layout":
            return WSLayoutMessage(**data)
        elif msg_type == "ping":
            return WSPingMessage(**data)
        elif msg_type == "resume_session":
            return WSResumeSessionMessage(**data)
        else:
            return None
    except Exception as e:
        logger.warning(f"Failed to parse WebSocket message: {e}")
        return None
