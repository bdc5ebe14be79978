"""Tests for the in-memory vehicle store and its JSON snapshot."""

import json

import pytest

from ev_fleet_charging.app.models import VehicleRecord
from ev_fleet_charging.app.persistence import Persistence
from ev_fleet_charging.app.vehicle_store import InMemoryVehicleStore


@pytest.fixture
def snapshot_path(tmp_path):
    return str(tmp_path / "data" / "vehicles.json")


class TestCreateAndQuery:
    def test_create_returns_id_and_defaults_charge(self):
        store = InMemoryVehicleStore()
        vehicle_id = store.create("kEVin", "Mini Cooper E", 32.6)
        record = store.get(vehicle_id)
        assert record.nickname == "kEVin"
        assert record.model == "Mini Cooper E"
        assert record.battery_capacity == 32.6
        assert record.state_of_charge == 50
        assert len(vehicle_id) == 32
        int(vehicle_id, 16)

    def test_list_all_keeps_insertion_order(self):
        store = InMemoryVehicleStore()
        first = store.create("A", "m", 10)
        second = store.create("B", "m", 10)
        assert [r.id for r in store.list_all()] == [first, second]

    def test_get_unknown_id(self):
        assert InMemoryVehicleStore().get("missing") is None

    def test_get_by_slug(self):
        store = InMemoryVehicleStore()
        vehicle_id = store.create("My Tesla Car", "Tesla Model 3", 75)
        slug = f"my-tesla-car-{vehicle_id[:6]}"
        assert store.get_by_slug(slug).id == vehicle_id
        assert store.get_by_slug("my-tesla-car") is None

    def test_search_by_nickname_prefix(self):
        store = InMemoryVehicleStore()
        store.create("Tesla One", "m", 10)
        store.create("tesla two", "m", 10)
        store.create("Leaf", "m", 10)
        assert [r.nickname for r in store.search(" TES")] == ["Tesla One", "tesla two"]
        assert store.search("zoe") == []


class TestSnapshot:
    def test_create_writes_snapshot(self, snapshot_path):
        store = InMemoryVehicleStore(Persistence(snapshot_path))
        vehicle_id = store.create("kEVin", "Mini Cooper E", 32.6)

        with open(snapshot_path) as f:
            saved = json.load(f)
        doc = saved["vehicles"][0]
        assert doc["_id"] == vehicle_id
        assert doc["batteryCapacity"] == 32.6
        assert doc["stateOfCharge"] == 50

    def test_load_restores_records(self, snapshot_path):
        first = InMemoryVehicleStore(Persistence(snapshot_path))
        assert Persistence(snapshot_path).path == snapshot_path
        vehicle_id = first.create("kEVin", "Mini Cooper E", 32.6)

        second = InMemoryVehicleStore(Persistence(snapshot_path))
        assert second.load() == 1
        assert second.get(vehicle_id).nickname == "kEVin"

    def test_load_skips_malformed_documents(self, snapshot_path, vehicle):
        Persistence(snapshot_path).save(
            {"vehicles": [vehicle.to_dict(), {"nickname": "no id"}, "junk"]}
        )
        store = InMemoryVehicleStore(Persistence(snapshot_path))
        assert store.load() == 1
        assert store.get(vehicle.id) == VehicleRecord.from_dict(vehicle.to_dict())

    def test_load_without_persistence(self):
        assert InMemoryVehicleStore().load() == 0

    def test_missing_and_corrupt_snapshot(self, snapshot_path, tmp_path):
        persistence = Persistence(snapshot_path)
        assert persistence.load() is None

        corrupt = tmp_path / "corrupt.json"
        corrupt.write_text("{not json")
        assert Persistence(str(corrupt)).load() is None

        listing = tmp_path / "list.json"
        listing.write_text("[]")
        assert Persistence(str(listing)).load() is None


class TestVehicleRecord:
    def test_document_round_trip_keeps_optional_fields(self, vehicle):
        vehicle.location = "Garage"
        vehicle.last_updated = "2024-01-01T12:00:00+00:00"
        doc = vehicle.to_dict()
        assert doc["location"] == "Garage"
        assert doc["lastUpdated"] == "2024-01-01T12:00:00+00:00"
        assert VehicleRecord.from_dict(doc) == vehicle

    def test_missing_charge_defaults_to_fifty(self):
        record = VehicleRecord.from_dict(
            {"_id": "abc123", "nickname": "n", "model": "m", "batteryCapacity": 40}
        )
        assert record.state_of_charge == 50
        assert record.location is None

    def test_to_car_state(self, vehicle):
        car = vehicle.to_car_state()
        assert (car.model, car.nickname, car.state_of_charge) == ("Tesla Model 3", "My Tesla Car", 50.0)
