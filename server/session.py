"""
Per-tick wiring of the detection field and the signal controller

Order within one tick:
1. Detection reads the light colors shown during the previous tick
2. Adaptive scores are recomputed from this tick's demand
3. The controller advances its active strategy
4. Directions that just turned green get their wait clock cleared
"""
import logging
from typing import Iterable, Optional
from models import (
    Direction, ControlMode, LightColor, SignalSettings, Vehicle, LayoutResponse
)
from geometry import IntersectionGeometry
from detection import DetectionField
from signal_controller import SignalController

logger = logging.getLogger(__name__)


class IntersectionSession:
    """Single intersection: one geometry, one detection field, one controller"""

    def __init__(
        self,
        geometry: Optional[IntersectionGeometry] = None,
        mode: ControlMode = ControlMode.FIXED,
        settings: Optional[SignalSettings] = None
    ):
        self.settings = settings or SignalSettings()
        self.geometry = geometry or IntersectionGeometry(road_width=self.settings.roadWidth)
        self.geometry.set_road_width(self.settings.roadWidth)

        self.detection = DetectionField(self.geometry, zone_depth=self.settings.zoneDepth)
        self.controller = SignalController(mode=mode, settings=self.settings)
        self.clock_ms = 0.0


    def tick(
        self,
        elapsed_ms: float,
        vehicles: Optional[Iterable[Vehicle]] = None,
        mode: Optional[ControlMode] = None
    ):
        elapsed_ms = max(0.0, elapsed_ms)
        self.clock_ms += elapsed_ms

        if mode is not None and ControlMode(mode) != self.controller.mode:
            self.set_mode(mode)

        previous_lights = self.controller.current_light_colors()

        self.detection.update(vehicles, previous_lights, self.clock_ms)
        self.controller.update_adaptive_logic(self.detection.demand_snapshot())
        self.controller.update(elapsed_ms)

        # A direction that gets the green is served, its red interval is over
        for direction, color in self.controller.current_light_colors().items():
            if color == LightColor.GREEN and previous_lights.get(direction) != LightColor.GREEN:
                self.detection.clear_wait_clock(direction)


    def set_mode(self, mode: ControlMode):
        logger.info(f"Control mode: {self.controller.mode.value} → {ControlMode(mode).value}")
        self.controller.set_mode(mode)


    def apply_settings(self, settings: SignalSettings):
        """New settings take effect immediately; demand records are kept"""
        self.settings = settings
        self.geometry.set_road_width(settings.roadWidth)
        self.detection.set_zone_depth(settings.zoneDepth)
        self.controller.update_settings(settings)


    def reset_arrivals(self, direction: Optional[Direction] = None):
        if direction is None:
            self.detection.reset_all()
        else:
            self.detection.reset(direction)


    def clear_wait_clock(self, direction: Direction):
        self.detection.clear_wait_clock(direction)


    def reset(self):
        """Restart the active strategy and empty the detection field"""
        self.detection.configure(self.settings.zoneDepth)
        self.controller.configure(self.controller.mode, self.settings)
        self.clock_ms = 0.0
        self.controller.clock_ms = 0.0


    def layout(self) -> LayoutResponse:
        return LayoutResponse(
            zones={direction: self.detection.zone_for(direction) for direction in Direction},
            lightAnchors=self.geometry.light_anchors(),
            stopLines=self.geometry.stop_lines()
        )
