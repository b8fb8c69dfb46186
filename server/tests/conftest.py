import pytest

from models import Direction, LightColor, Vehicle
from geometry import IntersectionGeometry
from detection import DetectionField


# Default geometry: center (400, 400), road width 60, stop line gap 10
# Stop lines: North y=360, South y=440, West x=360, East x=440


def place(vehicle_id, direction, distance, stationary=False):
    """Vehicle in the middle of its approach, `distance` units behind the stop line"""
    positions = {
        Direction.NORTH: (400.0, 360.0 - distance),
        Direction.SOUTH: (400.0, 440.0 + distance),
        Direction.WEST: (360.0 - distance, 400.0),
        Direction.EAST: (440.0 + distance, 400.0),
    }
    x, y = positions[direction]
    return Vehicle(id=vehicle_id, direction=direction, x=x, y=y, stationary=stationary)


def lights(ns=LightColor.RED, we=LightColor.RED):
    return {
        Direction.NORTH: ns,
        Direction.SOUTH: ns,
        Direction.WEST: we,
        Direction.EAST: we,
    }


@pytest.fixture
def geometry():
    return IntersectionGeometry()


@pytest.fixture
def field(geometry):
    return DetectionField(geometry, zone_depth=150.0)
