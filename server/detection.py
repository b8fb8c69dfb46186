"""
Detection field for the intersection
Turns raw vehicle positions into per-direction demand records
"""
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple
from models import Direction, LightColor, DetectionRecord, Vehicle, Zone
from geometry import IntersectionGeometry

logger = logging.getLogger(__name__)


class DetectionField:
    """
    One rectangular sensing zone per approach, directly behind its stop line

    Per tick pipeline:
    1. Clear tick-local demand (cars waiting, wait time, detected lists)
    2. Edge-triggered arrival counting (enter zone → +1)
    3. Startup rule (all red → every car in a zone is demand)
    4. Red-light rule (stationary cars queue, wait clock starts at the stop line)
    5. Green-light rule (detected only)
    6. Wait time refresh from the wait clock
    """

    def __init__(self, geometry: Optional[IntersectionGeometry] = None, zone_depth: float = 150.0):
        # Distance from the stop line that still counts as "at the stop line"
        self.STOP_LINE_TOLERANCE = 15.0

        self.geometry = geometry
        self.zone_depth = zone_depth

        self.records: Dict[Direction, DetectionRecord] = {}
        self._detected: Dict[Direction, List[str]] = {}
        self._lead_vehicle: Dict[Direction, Optional[str]] = {}
        self._lead_distance: Dict[Direction, float] = {}

        # (vehicle id, direction) pairs that were inside their zone last tick
        self._inside: Set[Tuple[str, Direction]] = set()

        self._initialize_records()


    def _initialize_records(self):
        for direction in Direction:
            self.records[direction] = DetectionRecord()
            self._detected[direction] = []
            self._lead_vehicle[direction] = None
        self._lead_distance = {}
        self._inside = set()


    def configure(self, zone_depth: float):
        """Set the zone depth for all approaches and start from empty records"""
        self.zone_depth = zone_depth
        self._initialize_records()
        logger.info(f"Detection field configured with zone depth {zone_depth}")


    def set_zone_depth(self, zone_depth: float):
        """Change the zone depth while keeping the current records"""
        self.zone_depth = zone_depth


    def clear(self):
        """Full reinitialization of records and zone membership"""
        self._initialize_records()


    def update(
        self,
        vehicles: Optional[Iterable[Vehicle]],
        light_colors: Optional[Mapping[Direction, LightColor]],
        now_ms: float
    ):
        """
        Refresh every demand record from the current vehicle list

        Args:
            vehicles: Vehicles currently in the simulation
            light_colors: Current light color per direction, None or empty before any signal state exists
            now_ms: Simulation clock in milliseconds
        """
        self._clear_tick_state()

        light_colors = light_colors or {}
        all_red = all(color == LightColor.RED for color in light_colors.values())
        zones = {direction: self.zone_for(direction) for direction in Direction}
        seen: Set[Tuple[str, Direction]] = set()

        for vehicle in vehicles or []:
            direction = self._direction_of(vehicle)
            if direction is None:
                continue

            key = (vehicle.id, direction)
            seen.add(key)
            record = self.records[direction]
            in_zone = zones[direction].contains(vehicle.x, vehicle.y)

            self._track_arrival(key, in_zone, record)

            color = light_colors.get(direction)

            # STARTUP: nothing has been served yet, any car in a zone is demand
            if all_red:
                if in_zone:
                    self._detected[direction].append(vehicle.id)
                    record.carsWaiting += 1

            elif color == LightColor.RED:
                if in_zone:
                    self._detected[direction].append(vehicle.id)

                if in_zone and vehicle.stationary:
                    record.carsWaiting += 1
                    self._consider_lead_vehicle(vehicle, direction)

                if (
                    vehicle.stationary
                    and record.firstWaitStartMs is None
                    and self._is_at_stop_line(vehicle, direction)
                ):
                    record.firstWaitStartMs = now_ms
                    logger.info(f"Wait clock started: {direction.value} at {now_ms:.0f}ms")

            elif color == LightColor.GREEN:
                if in_zone:
                    self._detected[direction].append(vehicle.id)

        # Vehicles that left the simulation lose their zone membership
        self._inside &= seen

        for direction, record in self.records.items():
            if record.firstWaitStartMs is not None:
                record.waitTimeMs = int(max(0.0, now_ms - record.firstWaitStartMs))

        logger.debug(
            "Demand: " + ", ".join(
                f"{d.value}(waiting={r.carsWaiting}, wait={r.waitTimeMs / 1000:.1f}s, total={r.totalArrivals})"
                for d, r in self.records.items()
            )
        )


    def _clear_tick_state(self):
        # firstWaitStartMs and totalArrivals survive across ticks
        for direction, record in self.records.items():
            record.carsWaiting = 0
            record.waitTimeMs = 0
            self._detected[direction] = []
            self._lead_vehicle[direction] = None
        self._lead_distance = {}


    @staticmethod
    def _known_direction(direction) -> Optional[Direction]:
        """Direction for a key, None when the key names no approach"""
        try:
            return Direction(direction)
        except ValueError:
            return None


    def _direction_of(self, vehicle) -> Optional[Direction]:
        direction = self._known_direction(vehicle.direction)
        if direction is None:
            logger.debug(f"Ignoring vehicle {vehicle.id} with unknown direction {vehicle.direction!r}")
        return direction


    def _track_arrival(self, key: Tuple[str, Direction], in_zone: bool, record: DetectionRecord):
        """Count a vehicle once per zone entry"""
        if in_zone and key not in self._inside:
            self._inside.add(key)
            record.totalArrivals += 1
            logger.debug(f"Arrival: {key[1].value} (total: {record.totalArrivals})")
        elif not in_zone and key in self._inside:
            self._inside.discard(key)


    def _distance_to_stop_line(self, vehicle, direction: Direction) -> float:
        stop_line = self.geometry.stop_line_position(direction)
        if direction in (Direction.NORTH, Direction.SOUTH):
            return abs(vehicle.y - stop_line)
        return abs(vehicle.x - stop_line)


    def _is_at_stop_line(self, vehicle, direction: Direction) -> bool:
        if self.geometry is None:
            return False
        return self._distance_to_stop_line(vehicle, direction) <= self.STOP_LINE_TOLERANCE


    def _consider_lead_vehicle(self, vehicle, direction: Direction):
        """Keep the waiting vehicle closest to the stop line"""
        if self.geometry is None:
            return
        distance = self._distance_to_stop_line(vehicle, direction)
        best = self._lead_distance.get(direction)
        if best is None or distance < best:
            self._lead_distance[direction] = distance
            self._lead_vehicle[direction] = vehicle.id


    def zone_for(self, direction: Direction) -> Zone:
        """
        Detection rectangle for an approach
        Width is the road width, depth runs back from the stop line
        Without geometry, with a non-positive depth or for an unknown direction the zone is empty
        """
        direction = self._known_direction(direction)
        if direction is None or self.geometry is None or self.zone_depth <= 0:
            return Zone()

        stop_line = self.geometry.stop_line_position(direction)
        half_width = self.geometry.road_width / 2
        cx = self.geometry.center_x
        cy = self.geometry.center_y
        depth = self.zone_depth

        if direction == Direction.NORTH:
            return Zone(x1=cx - half_width, y1=stop_line - depth, x2=cx + half_width, y2=stop_line)
        if direction == Direction.SOUTH:
            return Zone(x1=cx - half_width, y1=stop_line, x2=cx + half_width, y2=stop_line + depth)
        if direction == Direction.WEST:
            return Zone(x1=stop_line - depth, y1=cy - half_width, x2=stop_line, y2=cy + half_width)
        return Zone(x1=stop_line, y1=cy - half_width, x2=stop_line + depth, y2=cy + half_width)


    def reset(self, direction: Direction):
        """Start a fresh arrival window for one approach, unknown directions are ignored"""
        direction = self._known_direction(direction)
        if direction is not None:
            self.records[direction].totalArrivals = 0


    def reset_all(self):
        for direction in Direction:
            self.reset(direction)
        logger.info("Arrival counts reset for all directions")


    def clear_wait_clock(self, direction: Direction):
        """End the current red interval's wait measurement for one approach"""
        direction = self._known_direction(direction)
        if direction is None:
            return
        record = self.records[direction]
        record.firstWaitStartMs = None
        record.waitTimeMs = 0


    # ---- Queries ---- #

    def demand_snapshot(self) -> Dict[Direction, DetectionRecord]:
        """Read-only copy of all demand records"""
        return {direction: record.model_copy() for direction, record in self.records.items()}


    def record(self, direction: Direction) -> DetectionRecord:
        """Copy of one approach's record, a zero record for an unknown direction"""
        direction = self._known_direction(direction)
        if direction is None:
            return DetectionRecord()
        return self.records[direction].model_copy()


    def arrival_counts(self) -> Dict[Direction, int]:
        return {direction: record.totalArrivals for direction, record in self.records.items()}


    def detected_vehicles(self, direction: Direction) -> List[str]:
        """Ids of vehicles detected inside the zone on the last tick"""
        return list(self._detected.get(self._known_direction(direction), []))


    def lead_vehicle(self, direction: Direction) -> Optional[str]:
        """Id of the waiting vehicle closest to the stop line, if any"""
        return self._lead_vehicle.get(self._known_direction(direction))
