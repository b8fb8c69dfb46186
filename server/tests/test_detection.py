# server/tests/test_detection.py
"""
Detection Field Test Suite

Covers
------
1) Zone geometry and empty-zone degradation
2) Edge-triggered arrival counting
3) Startup, red-light and green-light rules
4) Wait clock lifecycle and explicit resets
5) Unknown direction keys degrade to defaults
"""

from types import SimpleNamespace

import pytest

from conftest import place, lights
from models import Direction, DetectionRecord, LightColor, Vehicle, Zone
from detection import DetectionField


# ------------------------------- Geometry -----------------------------------


def test_north_zone_sits_behind_stop_line(field):
    zone = field.zone_for(Direction.NORTH)
    assert zone == Zone(x1=370.0, y1=210.0, x2=430.0, y2=360.0)


def test_east_zone_sits_behind_stop_line(field):
    zone = field.zone_for(Direction.EAST)
    assert zone == Zone(x1=440.0, y1=370.0, x2=590.0, y2=430.0)


@pytest.mark.parametrize("depth", [0.0, -25.0])
def test_non_positive_depth_detects_nothing(geometry, depth):
    field = DetectionField(geometry, zone_depth=depth)
    assert field.zone_for(Direction.WEST).is_empty

    field.update([place("w1", Direction.WEST, 0.0, stationary=True)], None, 0.0)
    assert field.record(Direction.WEST).totalArrivals == 0
    assert field.record(Direction.WEST).carsWaiting == 0


def test_missing_geometry_detects_nothing():
    field = DetectionField(None)
    origin = Vehicle(id="v", direction=Direction.NORTH, x=0.0, y=0.0, stationary=True)

    field.update([origin], None, 0.0)

    assert field.zone_for(Direction.NORTH) == Zone()
    assert field.arrival_counts() == {d: 0 for d in Direction}


# --------------------------- Arrival counting -------------------------------


def test_vehicle_counted_once_while_inside(field):
    car = place("n1", Direction.NORTH, 50.0, stationary=True)

    for t in range(5):
        field.update([car], lights(ns=LightColor.RED, we=LightColor.GREEN), t * 100.0)

    assert field.record(Direction.NORTH).totalArrivals == 1


def test_vehicle_counted_again_after_leaving_and_reentering(field):
    inside = place("e1", Direction.EAST, 40.0)
    outside = place("e1", Direction.EAST, 400.0)

    field.update([inside], lights(we=LightColor.GREEN), 0.0)
    field.update([outside], lights(we=LightColor.GREEN), 100.0)
    field.update([inside], lights(we=LightColor.GREEN), 200.0)

    assert field.record(Direction.EAST).totalArrivals == 2


def test_arrivals_counted_regardless_of_light_color(field):
    field.update([place("s1", Direction.SOUTH, 20.0)], lights(ns=LightColor.GREEN), 0.0)
    field.update([place("w1", Direction.WEST, 20.0)], lights(ns=LightColor.GREEN), 100.0)

    counts = field.arrival_counts()
    assert counts[Direction.SOUTH] == 1
    assert counts[Direction.WEST] == 1


def test_vehicle_gone_from_simulation_loses_membership(field):
    car = place("n1", Direction.NORTH, 30.0)

    field.update([car], lights(ns=LightColor.GREEN), 0.0)
    field.update([], lights(ns=LightColor.GREEN), 100.0)
    field.update([car], lights(ns=LightColor.GREEN), 200.0)

    assert field.record(Direction.NORTH).totalArrivals == 2


def test_arrivals_never_decrease_without_reset(field):
    cars = [place(f"w{i}", Direction.WEST, 20.0 * (i + 1)) for i in range(4)]
    previous = 0

    for step in range(len(cars)):
        field.update(cars[: step + 1], lights(we=LightColor.RED, ns=LightColor.GREEN), step * 100.0)
        current = field.record(Direction.WEST).totalArrivals
        assert current >= previous
        previous = current

    assert previous == 4


# ------------------------------ Startup rule --------------------------------


def test_startup_counts_every_vehicle_in_zone_as_waiting(field):
    moving = place("w1", Direction.WEST, 60.0, stationary=False)
    stopped = place("w2", Direction.WEST, 5.0, stationary=True)

    field.update([moving, stopped], None, 1000.0)

    record = field.record(Direction.WEST)
    assert record.carsWaiting == 2
    assert record.firstWaitStartMs is None
    assert sorted(field.detected_vehicles(Direction.WEST)) == ["w1", "w2"]


def test_startup_rule_applies_when_all_lights_red(field):
    field.update([place("n1", Direction.NORTH, 80.0)], lights(), 0.0)
    assert field.record(Direction.NORTH).carsWaiting == 1


def test_startup_ignores_vehicles_outside_zones(field):
    field.update([place("n1", Direction.NORTH, 500.0)], None, 0.0)
    assert field.record(Direction.NORTH).carsWaiting == 0


# ------------------------------ Red-light rule ------------------------------


def test_red_light_counts_only_stationary_vehicles(field):
    moving = place("w1", Direction.WEST, 80.0, stationary=False)
    stopped = place("w2", Direction.WEST, 40.0, stationary=True)

    field.update([moving, stopped], lights(ns=LightColor.GREEN, we=LightColor.RED), 0.0)

    record = field.record(Direction.WEST)
    assert record.carsWaiting == 1
    assert sorted(field.detected_vehicles(Direction.WEST)) == ["w1", "w2"]


def test_wait_clock_starts_when_stationary_vehicle_reaches_stop_line(field):
    red_we = lights(ns=LightColor.GREEN, we=LightColor.RED)

    field.update([place("w1", Direction.WEST, 5.0, stationary=True)], red_we, 1000.0)
    assert field.record(Direction.WEST).firstWaitStartMs == 1000.0

    field.update([place("w1", Direction.WEST, 5.0, stationary=True)], red_we, 3500.0)
    record = field.record(Direction.WEST)
    assert record.firstWaitStartMs == 1000.0
    assert record.waitTimeMs == 2500.0


def test_wait_clock_not_started_far_from_stop_line(field):
    field.update(
        [place("w1", Direction.WEST, 60.0, stationary=True)],
        lights(ns=LightColor.GREEN, we=LightColor.RED),
        0.0,
    )

    record = field.record(Direction.WEST)
    assert record.carsWaiting == 1
    assert record.firstWaitStartMs is None
    assert record.waitTimeMs == 0


def test_wait_clock_persists_after_queue_clears(field):
    red_ns = lights(ns=LightColor.RED, we=LightColor.GREEN)

    field.update([place("n1", Direction.NORTH, 0.0, stationary=True)], red_ns, 0.0)
    field.update([], lights(ns=LightColor.GREEN), 4000.0)

    record = field.record(Direction.NORTH)
    assert record.carsWaiting == 0
    assert record.waitTimeMs == 4000.0


def test_clear_wait_clock_stops_measurement(field):
    red_ns = lights(ns=LightColor.RED, we=LightColor.GREEN)
    field.update([place("s1", Direction.SOUTH, 2.0, stationary=True)], red_ns, 0.0)

    field.clear_wait_clock(Direction.SOUTH)
    field.update([], red_ns, 2000.0)

    record = field.record(Direction.SOUTH)
    assert record.firstWaitStartMs is None
    assert record.waitTimeMs == 0


def test_lead_vehicle_is_closest_to_stop_line(field):
    queue = [
        place("e3", Direction.EAST, 50.0, stationary=True),
        place("e1", Direction.EAST, 3.0, stationary=True),
        place("e2", Direction.EAST, 25.0, stationary=True),
    ]

    field.update(queue, lights(ns=LightColor.GREEN, we=LightColor.RED), 0.0)

    assert field.lead_vehicle(Direction.EAST) == "e1"
    assert field.record(Direction.EAST).carsWaiting == 3


# ----------------------------- Green-light rule -----------------------------


def test_green_light_detects_without_demand(field):
    stopped = place("n1", Direction.NORTH, 0.0, stationary=True)

    field.update([stopped], lights(ns=LightColor.GREEN), 0.0)

    record = field.record(Direction.NORTH)
    assert field.detected_vehicles(Direction.NORTH) == ["n1"]
    assert record.carsWaiting == 0
    assert record.firstWaitStartMs is None
    assert record.totalArrivals == 1


def test_yellow_light_neither_detects_nor_queues(field):
    field.update([place("n1", Direction.NORTH, 0.0, stationary=True)], lights(ns=LightColor.YELLOW), 0.0)

    assert field.detected_vehicles(Direction.NORTH) == []
    assert field.record(Direction.NORTH).carsWaiting == 0
    assert field.record(Direction.NORTH).totalArrivals == 1


# --------------------------------- Resets -----------------------------------


def test_reset_zeroes_arrivals_only(field):
    red_we = lights(ns=LightColor.GREEN, we=LightColor.RED)
    field.update([place("w1", Direction.WEST, 0.0, stationary=True)], red_we, 0.0)

    field.reset(Direction.WEST)

    record = field.record(Direction.WEST)
    assert record.totalArrivals == 0
    assert record.carsWaiting == 1
    assert record.firstWaitStartMs == 0.0


def test_reset_all_zeroes_every_direction(field):
    cars = [place(f"{d.value}", d, 10.0) for d in Direction]
    field.update(cars, None, 0.0)

    field.reset_all()

    assert field.arrival_counts() == {d: 0 for d in Direction}


def test_reset_does_not_recount_vehicle_still_inside(field):
    car = place("w1", Direction.WEST, 10.0)
    field.update([car], lights(we=LightColor.GREEN), 0.0)

    field.reset(Direction.WEST)
    field.update([car], lights(we=LightColor.GREEN), 100.0)

    assert field.record(Direction.WEST).totalArrivals == 0


def test_configure_starts_from_empty_records(field):
    field.update([place("n1", Direction.NORTH, 0.0, stationary=True)], lights(we=LightColor.GREEN), 0.0)

    field.configure(80.0)

    assert field.zone_depth == 80.0
    assert field.record(Direction.NORTH).totalArrivals == 0
    assert field.record(Direction.NORTH).firstWaitStartMs is None


def test_set_zone_depth_keeps_records(field):
    field.update([place("n1", Direction.NORTH, 10.0)], lights(ns=LightColor.GREEN), 0.0)

    field.set_zone_depth(50.0)

    assert field.record(Direction.NORTH).totalArrivals == 1
    assert field.zone_for(Direction.NORTH).y1 == 310.0


def test_wait_time_is_whole_milliseconds(field):
    red_we = lights(ns=LightColor.GREEN, we=LightColor.RED)
    field.update([place("w1", Direction.WEST, 0.0, stationary=True)], red_we, 100.25)
    field.update([place("w1", Direction.WEST, 0.0, stationary=True)], red_we, 1600.75)

    wait = field.record(Direction.WEST).waitTimeMs
    assert isinstance(wait, int)
    assert wait == 1500


# ---------------------------- Unknown directions -----------------------------


@pytest.mark.parametrize("key", ["up", None, "north"])
def test_unknown_direction_keys_fall_back_to_defaults(field, key):
    field.update([place("w1", Direction.WEST, 0.0, stationary=True)], None, 0.0)

    assert field.zone_for(key) == Zone()
    assert field.record(key) == DetectionRecord()
    assert field.detected_vehicles(key) == []
    assert field.lead_vehicle(key) is None

    field.reset(key)
    field.clear_wait_clock(key)
    assert field.arrival_counts()[Direction.WEST] == 1


def test_zone_for_accepts_direction_value(field):
    assert field.zone_for("North") == field.zone_for(Direction.NORTH)


def test_vehicle_with_unknown_direction_is_ignored(field):
    stray = SimpleNamespace(id="x1", direction="Up", x=400.0, y=300.0, stationary=True)
    known = SimpleNamespace(id="n1", direction="North", x=400.0, y=300.0, stationary=True)

    field.update([stray, known], None, 0.0)

    assert field.arrival_counts() == {
        Direction.NORTH: 1, Direction.SOUTH: 0, Direction.EAST: 0, Direction.WEST: 0
    }
    assert field.detected_vehicles(Direction.NORTH) == ["n1"]


def test_demand_snapshot_is_a_copy(field):
    snapshot = field.demand_snapshot()
    snapshot[Direction.NORTH].totalArrivals = 99

    assert field.record(Direction.NORTH).totalArrivals == 0
