import pytest

from core.cascade import PartAdded, PartFieldChanged, VehicleAdded, apply_change
from core.config import get_pricing_config
from core.models import Job, Part, Vehicle


@pytest.fixture(autouse=True)
def fresh_pricing_config():
    """Кеш конфігу не повинен протікати між тестами."""
    get_pricing_config.cache_clear()
    yield
    get_pricing_config.cache_clear()


def add_part(job: Job, vehicle: Vehicle, **fields) -> Part:
    apply_change(job, PartAdded(vehicle_id=vehicle.id))
    part = vehicle.parts[-1]
    for name, value in fields.items():
        apply_change(job, PartFieldChanged(vehicle_id=vehicle.id, part_id=part.id, field=name, value=value))
    return part


@pytest.fixture
def two_vehicle_job() -> Job:
    """Retail: 2020 седан (скло 100) + 2022 SUV (скло 150, націнка 20)."""
    job = Job(job_number="J-100", customer_type="retail")
    sedan = Vehicle(id="v-sedan", vehicle_year="2020", body_style="Sedan")
    suv = Vehicle(id="v-suv", vehicle_year="2022", body_style="SUV")
    apply_change(job, VehicleAdded(vehicle=sedan))
    apply_change(job, VehicleAdded(vehicle=suv))
    add_part(job, sedan, part_price=100)
    add_part(job, suv, part_price=150, markup=20)
    return job
