"""
Intersection geometry provider

Stop lines and signal-head anchors for the four approaches.
Screen coordinates: x grows to the right, y grows downwards.
North traffic arrives from the top, West traffic from the left.
"""
from typing import Dict
from models import Direction, Point


class IntersectionGeometry:
    """
    Time-invariant lookups used by the detection field and the renderer
    """

    def __init__(
        self,
        center_x: float = 400.0,
        center_y: float = 400.0,
        road_width: float = 60.0,
        stop_line_gap: float = 10.0,
        light_offset: float = 12.0
    ):
        self.center_x = center_x
        self.center_y = center_y
        self.road_width = road_width
        self.stop_line_gap = stop_line_gap
        self.light_offset = light_offset

    def set_road_width(self, road_width: float):
        self.road_width = max(0.0, road_width)

    def stop_line_position(self, direction: Direction) -> float:
        """
        Axis coordinate of the stop line for an approach

        Returns:
            y for North/South approaches, x for East/West approaches
        """
        reach = self.road_width / 2 + self.stop_line_gap

        stop_lines = {
            Direction.NORTH: self.center_y - reach,
            Direction.SOUTH: self.center_y + reach,
            Direction.WEST: self.center_x - reach,
            Direction.EAST: self.center_x + reach
        }
        return stop_lines[direction]

    def light_anchor_position(self, direction: Direction) -> Point:
        """Signal head position, on the kerb side of each stop line"""
        half = self.road_width / 2
        stop = self.stop_line_position(direction)

        anchors = {
            Direction.NORTH: (self.center_x + half + self.light_offset, stop),
            Direction.SOUTH: (self.center_x - half - self.light_offset, stop),
            Direction.WEST: (stop, self.center_y - half - self.light_offset),
            Direction.EAST: (stop, self.center_y + half + self.light_offset)
        }
        x, y = anchors[direction]
        return Point(x=x, y=y)

    def stop_lines(self) -> Dict[Direction, float]:
        return {direction: self.stop_line_position(direction) for direction in Direction}

    def light_anchors(self) -> Dict[Direction, Point]:
        return {direction: self.light_anchor_position(direction) for direction in Direction}


# Singleton instance
_geometry_instance = None

def get_geometry() -> IntersectionGeometry:
    """Get singleton instance of the intersection geometry"""
    global _geometry_instance
    if _geometry_instance is None:
        _geometry_instance = IntersectionGeometry()
    return _geometry_instance
