"""
Intersection Signal Controller - Backend Server
FastAPI application exposing the tick endpoint and the query surface
"""
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from models import (
    TickRequest, TickResponse, ModeRequest, ResetRequest, LayoutResponse,
    SignalSettings, DebugSummary, Direction
)
from geometry import get_geometry
from session import IntersectionSession
import logging
# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Intersection Signal Controller",
    description="Fixed-cycle and demand-adaptive signal control for a four-way intersection",
    version="1.0.0"
)

# CORS middleware (allow the simulation frontend at localhost:3000)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize the intersection session
session = IntersectionSession(geometry=get_geometry())


def _snapshot(fallback: bool = False, error: str = None) -> TickResponse:
    return TickResponse(
        lights=session.controller.current_light_colors(),
        demand=session.detection.demand_snapshot(),
        debug=session.controller.debug_summary(),
        fallbackMode=fallback,
        errorMessage=error
    )


def _parse_direction(direction: str) -> Direction:
    try:
        return Direction(direction)
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid direction: {direction}. Must be North, South, East, or West"
        )


@app.get("/")
async def root():
    """Health check endpoint"""
    return {
        "service": "Intersection Signal Controller",
        "status": "operational",
        "version": "1.0.0"
    }


@app.get("/health")
async def health_check():
    """Detailed health check"""
    return {
        "status": "healthy",
        "mode": session.controller.mode.value,
        "endpoints": {
            "tick": "/api/tick",
            "lights": "/api/lights",
            "demand": "/api/demand",
            "debug": "/api/debug",
            "health": "/health"
        }
    }


@app.post("/api/tick", response_model=TickResponse)
async def tick(request: TickRequest):
    """
    Main simulation step

    Pipeline:
    1. Detection field refresh
    2. Adaptive arbitration
    3. Controller advance
    """
    try:
        session.tick(request.elapsedMs, request.vehicles, request.mode)

        debug = session.controller.debug_summary()
        logger.debug(
            f"Tick +{request.elapsedMs:.0f}ms: mode={debug.mode.value}, "
            f"phase={debug.phase}, vehicles={len(request.vehicles)}"
        )
        return _snapshot()

    except Exception as e:
        logger.error(f"Tick error: {str(e)}", exc_info=True)

        # Fallback: report the unchanged state
        return _snapshot(fallback=True, error=f"Error: {str(e)}. Signal state unchanged.")


@app.get("/api/lights")
async def get_lights():
    return session.controller.current_light_colors()


@app.get("/api/demand")
async def get_demand():
    return session.detection.demand_snapshot()


@app.get("/api/debug", response_model=DebugSummary)
async def get_debug():
    return session.controller.debug_summary()


@app.get("/api/layout", response_model=LayoutResponse)
async def get_layout():
    """Zones, stop lines and signal head anchors for the renderer"""
    return session.layout()


@app.post("/api/mode")
async def set_mode(request: ModeRequest):
    session.set_mode(request.mode)
    return {
        "status": "success",
        "mode": session.controller.mode.value
    }


@app.put("/api/settings")
async def update_settings(settings: SignalSettings):
    session.apply_settings(settings)
    logger.info(f"Settings updated: {settings}")
    return {
        "status": "success",
        "settings": settings
    }


@app.post("/api/sensors/reset")
async def reset_arrivals(request: ResetRequest):
    """Zero the arrival counters for one direction, or all when none given"""
    session.reset_arrivals(request.direction)
    target = request.direction.value if request.direction else "all directions"
    return {
        "status": "success",
        "message": f"Arrival counts reset for {target}"
    }


@app.post("/api/sensors/{direction}/clear-wait")
async def clear_wait(direction: str):
    lane = _parse_direction(direction)
    session.clear_wait_clock(lane)
    return {
        "status": "success",
        "message": f"Wait clock cleared for {lane.value}"
    }


@app.post("/api/reset")
async def reset():
    session.reset()
    logger.info(f"Session reset in {session.controller.mode.value} mode")
    return {
        "status": "success",
        "mode": session.controller.mode.value
    }


if __name__ == "__main__":
    import uvicorn

    logger.info("Starting Intersection Signal Controller Backend...")
    logger.info("Backend API docs: http://localhost:8000/docs")

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,  # Auto-reload on code changes
        log_level="info"
    )
