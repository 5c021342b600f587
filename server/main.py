"""
Wander API
==========
HTTP host for a WanderSession: the page's animation loop posts frame
timestamps to /api/tick and draws the returned frame.

Run with: uvicorn server.main:app --port 8893
"""

import logging
import threading
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from wander_core import (
    BoundingBox,
    ConfigurationError,
    LatLng,
    OverpassWaterSource,
    RenderFrame,
    WanderSession,
    WaterLayer,
    WebMercatorViewport,
)

from .schemas import (
    ConfigResponse,
    ConfigUpdateRequest,
    FrameResponse,
    RefetchRequest,
    TickRequest,
    TraceResponse,
    ViewportRequest,
    ViewportResponse,
    WaterStatusResponse,
)
from .settings import Settings

logger = logging.getLogger(__name__)

settings = Settings.from_env()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = FastAPI(title="Wander")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ----------------------------------------------------------------------------
# Session (in-memory; per-process)
# ----------------------------------------------------------------------------

_session: Optional[WanderSession] = None
_session_lock = threading.Lock()


def build_session(cfg: Settings) -> WanderSession:
    viewport = WebMercatorViewport(
        LatLng(cfg.center_lat, cfg.center_lng),
        zoom=cfg.zoom,
        width=cfg.viewport_width,
        height=cfg.viewport_height,
    )
    water = WaterLayer(OverpassWaterSource(cfg.overpass_url, cfg.overpass_timeout))
    return WanderSession(viewport, water=water)


def get_session() -> WanderSession:
    """Get or create the singleton session."""
    global _session
    if _session is not None:
        return _session

    with _session_lock:
        # Double-check after acquiring lock
        if _session is None:
            session = build_session(settings)
            logger.info("Wander session created at %s, zoom %s", session.projection.current_center(), settings.zoom)
            if settings.fetch_on_startup:
                session.trigger_refetch()
            _session = session
    return _session


def set_session(session: Optional[WanderSession]) -> None:
    """Replace the singleton session (None resets it)."""
    global _session
    _session = session


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    return JSONResponse(status_code=400, content={"success": False, "error": str(exc)})


# ----------------------------------------------------------------------------
# Converters
# ----------------------------------------------------------------------------

def _frame_response(frame: RenderFrame) -> FrameResponse:
    category = frame.active_event_category
    return FrameResponse(
        timestamp=frame.timestamp,
        marker_position=list(frame.marker_position),
        marker_pixel_position=list(frame.marker_pixel_position),
        submerged=frame.submerged,
        spiral_trace_enabled=frame.spiral_trace_enabled,
        sprite_size=frame.sprite_size,
        spiral_parameter=frame.spiral_parameter,
        paused=frame.paused,
        active_event_label=frame.active_event_label,
        active_event_category=category.value if category is not None else None,
        event_sprite_position=list(frame.event_sprite_position) if frame.event_sprite_position else None,
        event_in_water=frame.event_in_water,
    )


def _water_status(session: WanderSession) -> WaterStatusResponse:
    return WaterStatusResponse(
        status=session.water.status,
        polygon_count=len(session.water.polygons),
        malformed_count=session.water.malformed_count,
    )


def _viewport_response(viewport: WebMercatorViewport) -> ViewportResponse:
    return ViewportResponse(
        center=list(viewport.current_center()),
        zoom=viewport.zoom,
        width=viewport.width,
        height=viewport.height,
        bounds=list(viewport.bounds()),
    )


# ------------------------- routes ----------------------------------


@app.get("/")
def index():
    return {"name": "wander", "status": "ok"}


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/api/tick", response_model=FrameResponse)
def api_tick(req: TickRequest):
    """Advance the animation to the given frame timestamp (ms)."""
    frame = get_session().tick(req.timestamp)
    return _frame_response(frame)


@app.get("/api/config", response_model=ConfigResponse)
def api_get_config():
    return ConfigResponse(**get_session().config.to_dict())


@app.post("/api/config", response_model=ConfigResponse)
def api_update_config(req: ConfigUpdateRequest):
    """Apply a partial configuration update; takes effect on the next tick."""
    changes = req.model_dump(exclude_none=True)
    config = get_session().update_configuration(changes)
    return ConfigResponse(**config.to_dict())


@app.post("/api/viewport", response_model=ViewportResponse)
def api_viewport(req: ViewportRequest):
    """Report a pan, zoom or resize of the host map."""
    if req.center is not None and len(req.center) != 2:
        raise HTTPException(status_code=400, detail="center must be [lat, lng]")

    session = get_session()
    viewport = session.projection
    with session.lock:
        if req.width is not None or req.height is not None:
            viewport.resize(req.width or viewport.width, req.height or viewport.height)
        if req.center is not None or req.zoom is not None:
            center = LatLng(*req.center) if req.center is not None else viewport.current_center()
            viewport.set_view(center, req.zoom)
        return _viewport_response(viewport)


@app.post("/api/water/refetch", response_model=WaterStatusResponse)
def api_water_refetch(req: RefetchRequest):
    """Start a background water fetch; poll /api/water for the outcome."""
    session = get_session()
    bbox = None
    if req.bbox is not None:
        if len(req.bbox) != 4:
            raise HTTPException(status_code=400, detail="bbox must be [south, west, north, east]")
        bbox = BoundingBox(*req.bbox)
    session.trigger_refetch(bbox)
    return _water_status(session)


@app.get("/api/water", response_model=WaterStatusResponse)
def api_water_status():
    return _water_status(get_session())


@app.get("/api/trace", response_model=TraceResponse)
def api_trace():
    """Spiral polyline in container pixels (null when the trace is disabled)."""
    points = get_session().spiral_trace()
    if points is None:
        return TraceResponse(points=None)
    return TraceResponse(points=[[x, y] for x, y in points])
