"""Tests for the charge level simulator and its display helpers."""

import pytest

from ev_fleet_charging.app.models import CarState
from ev_fleet_charging.app.simulator import (
    ChargeLevelSimulator,
    charge_status_text,
    format_charge_percentage,
)


class TestFormatChargePercentage:
    @pytest.mark.parametrize(
        "charge, expected",
        [(50, "50.0"), (85.04, "85.0"), (99.96, "100.0"), (0, "0.0")],
    )
    def test_one_decimal_place(self, charge, expected):
        assert format_charge_percentage(charge) == expected


class TestChargeStatusText:
    @pytest.mark.parametrize(
        "charge, expected",
        [
            (100, "Excellent"),
            (80.1, "Excellent"),
            (80, "Good"),
            (50.1, "Good"),
            (50, "Low"),
            (20.1, "Low"),
            (20, "Critical"),
            (0, "Critical"),
        ],
    )
    def test_bands(self, charge, expected):
        assert charge_status_text(charge) == expected


class TestChargeLevelSimulator:
    def test_starts_at_car_charge(self, car_state):
        assert ChargeLevelSimulator(car_state).charge == 50.0

    def test_tick_adds_one_increment(self, car_state):
        sim = ChargeLevelSimulator(car_state)
        assert sim.tick() is True
        assert sim.charge == pytest.approx(50.1)

    def test_ten_ticks_add_one_percent(self, car_state):
        sim = ChargeLevelSimulator(car_state)
        for _ in range(10):
            sim.tick()
        assert sim.charge == pytest.approx(51.0)

    def test_clamps_at_one_hundred(self):
        sim = ChargeLevelSimulator(CarState("Test Car", "Test", 99.8))
        for _ in range(100):
            sim.tick()
        assert sim.charge == 100.0
        assert sim.is_full

    def test_tick_when_full_changes_nothing(self):
        sim = ChargeLevelSimulator(CarState("Test Car", "Test", 100.0))
        assert sim.tick() is False
        assert sim.charge == 100.0

    @pytest.mark.parametrize("initial, expected", [(-5, 0.0), (130, 100.0)])
    def test_initial_charge_is_clamped(self, initial, expected):
        sim = ChargeLevelSimulator(CarState("Test Car", "Test", initial))
        assert sim.charge == expected

    def test_does_not_mutate_caller_car_state(self, car_state):
        sim = ChargeLevelSimulator(car_state)
        sim.tick()
        assert car_state.state_of_charge == 50.0

    def test_car_state_is_a_snapshot(self, car_state):
        sim = ChargeLevelSimulator(car_state)
        snapshot = sim.car_state
        snapshot.state_of_charge = 10.0
        assert sim.charge == 50.0
        assert snapshot.nickname == "Test"
        assert snapshot.model == "Test Car"


class TestCarState:
    def test_model_and_nickname_are_read_only(self, car_state):
        with pytest.raises(AttributeError):
            car_state.model = "Other"
        with pytest.raises(AttributeError):
            car_state.nickname = "Other"

    def test_charge_is_writable(self, car_state):
        car_state.state_of_charge = 60.0
        assert car_state.state_of_charge == 60.0
