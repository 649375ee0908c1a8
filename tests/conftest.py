from datetime import datetime

import pytest

from backend.lib.bill_core.calculator import calculate_bill
from backend.lib.bill_core.models import Appliance, BillSettings, SavedBill
from backend.lib.user_store import KeyValueBackend, UserStore


class MemoryBackend(KeyValueBackend):
    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def delete(self, key):
        self.data.pop(key, None)


class BrokenBackend(KeyValueBackend):
    """Every call fails the way a full disk would."""

    def get(self, key):
        raise OSError("disk unavailable")

    def set(self, key, value):
        raise OSError("disk unavailable")

    def delete(self, key):
        raise OSError("disk unavailable")


class FixedClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def make_appliance(id="a1", name="Desk Fan", category="Electronics", wattage=100.0, hours=10.0, days=30.0):
    return Appliance(id=id, name=name, category=category, wattage=wattage,
                     hours_per_day=hours, days_per_month=days)


def make_household():
    return [
        make_appliance("1", "Refrigerator", "Kitchen", 150, 24, 30),
        make_appliance("2", "Air Conditioner", "Heating & Cooling", 3500, 8, 30),
        make_appliance("3", "LED Light Bulb", "Lighting", 10, 6, 30),
        make_appliance("4", "Laptop", "Electronics", 65, 8, 30),
        make_appliance("5", "Microwave", "Kitchen", 1200, 0.5, 25),
    ]


def make_saved_bill(id="b1", appliances=None, settings=None, created_at=datetime(2025, 10, 1, 9, 30)):
    appliances = appliances if appliances is not None else make_household()
    settings = settings or BillSettings()
    return SavedBill(
        id=id,
        name=f"Bill {id}",
        month=created_at.strftime("%B"),
        year=created_at.year,
        appliances=list(appliances),
        settings=settings,
        calculation=calculate_bill(appliances, settings),
        created_at=created_at,
        updated_at=created_at,
    )


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def clock():
    return FixedClock(datetime(2025, 11, 28, 10, 30))


@pytest.fixture
def store(backend, clock):
    return UserStore(backend, clock=clock)
