"""
Data contracts for the intersection signal controller
Shared by the detection field, the signal controller and the API layer
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, List, Tuple
from enum import Enum


class Direction(str, Enum):
    """Approach directions into the intersection"""
    NORTH = "North"
    SOUTH = "South"
    EAST = "East"
    WEST = "West"


class Pair(str, Enum):
    """Opposite approaches that always share a light color in adaptive mode"""
    WEST_EAST = "WE"
    NORTH_SOUTH = "NS"

    @property
    def directions(self) -> Tuple[Direction, Direction]:
        if self is Pair.WEST_EAST:
            return (Direction.WEST, Direction.EAST)
        return (Direction.NORTH, Direction.SOUTH)

    @property
    def other(self) -> "Pair":
        return Pair.NORTH_SOUTH if self is Pair.WEST_EAST else Pair.WEST_EAST


class LightColor(str, Enum):
    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"


class ControlMode(str, Enum):
    """Signal control strategies"""
    FIXED = "fixed"
    ADAPTIVE = "adaptive"


class AdaptivePhase(str, Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


# ============================================================================
# GEOMETRY
# ============================================================================

class Point(BaseModel):
    x: float
    y: float


class Zone(BaseModel):
    """
    Axis-aligned detection rectangle
    A zone with no area never contains anything
    """
    x1: float = 0
    y1: float = 0
    x2: float = 0
    y2: float = 0

    @property
    def is_empty(self) -> bool:
        return self.x2 <= self.x1 or self.y2 <= self.y1

    def contains(self, x: float, y: float) -> bool:
        if self.is_empty:
            return False
        return self.x1 <= x <= self.x2 and self.y1 <= y <= self.y2


# ============================================================================
# SENSING LAYER (Vehicles → Demand)
# ============================================================================

class Vehicle(BaseModel):
    """
    Vehicle as seen by the detection field
    Movement is simulated elsewhere; the core only reads these values
    """
    id: str
    direction: Direction
    x: float
    y: float
    stationary: bool = False


class DetectionRecord(BaseModel):
    """
    Demand record for one approach
    Reset in place, never replaced
    """
    carsWaiting: int = Field(default=0, ge=0, description="Stationary cars in the zone at a red light")
    waitTimeMs: int = Field(default=0, ge=0, description="Whole milliseconds since the first car stopped at the line")
    totalArrivals: int = Field(default=0, ge=0, description="Distinct cars that entered the zone")
    firstWaitStartMs: Optional[float] = Field(default=None, description="Clock value when the wait clock started")


# ============================================================================
# CONFIGURATION
# ============================================================================

class SignalSettings(BaseModel):
    """
    Numeric settings supplied at mode (re)initialization
    Zone depth is unconstrained, a non-positive depth yields an empty zone
    """
    greenDurationMs: float = Field(default=5000, gt=0, description="Fixed-mode green phase length")
    yellowDurationMs: float = Field(default=2000, gt=0, description="Yellow phase length in both modes")
    zoneDepth: float = Field(default=150, description="Detection zone depth behind the stop line")
    roadWidth: float = Field(default=60, ge=0, description="Road width, also the zone width")


# ============================================================================
# CONTROLLER OUTPUT (Controller → Renderer / UI)
# ============================================================================

class DebugSummary(BaseModel):
    """Snapshot of the active strategy for debugging displays"""
    mode: ControlMode
    phase: str
    timerMs: float
    clockMs: float
    pair: Optional[Pair] = None
    scores: Optional[Dict[Pair, float]] = None


# ============================================================================
# REQUEST/RESPONSE MODELS
# ============================================================================

class TickRequest(BaseModel):
    """One simulation step sent by the orchestrator"""
    elapsedMs: float = Field(ge=0)
    vehicles: List[Vehicle] = Field(default_factory=list)
    mode: Optional[ControlMode] = None


class TickResponse(BaseModel):
    lights: Dict[Direction, LightColor]
    demand: Dict[Direction, DetectionRecord]
    debug: DebugSummary
    fallbackMode: bool = False
    errorMessage: Optional[str] = None


class ModeRequest(BaseModel):
    mode: ControlMode


class ResetRequest(BaseModel):
    """Arrival counter reset; all directions when none given"""
    direction: Optional[Direction] = None


class LayoutResponse(BaseModel):
    """Geometry a renderer needs to draw zones and signal heads"""
    zones: Dict[Direction, Zone]
    lightAnchors: Dict[Direction, Point]
    stopLines: Dict[Direction, float]
