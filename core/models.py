from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Literal, Optional, get_args
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

ServiceType = Literal["repair", "replace", "calibration"]
GlassType = Literal[
    "windshield",
    "door_glass",
    "back_glass",
    "back_glass_powerslide",
    "quarter_glass",
    "sunroof",
    "side_mirror",
]
CustomerType = Literal["retail", "dealer", "fleet", "subcontractor"]
CalibrationType = Literal["none", "static", "dynamic", "dual", "approve", "declined"]
PaymentSource = Literal["cash", "credit_card", "debit_card", "check", "insurance", "other"]
PaymentStatus = Literal["pending", "partial", "paid"]

# старі записи мали одне поле jobType замість serviceType + glassType
LegacyJobType = Literal[
    "windshield_replacement",
    "windshield_repair",
    "door_glass",
    "back_glass",
    "back_glass_powerslide",
    "quarter_glass",
    "sunroof",
    "side_mirror",
]

SERVICE_TYPES: tuple[str, ...] = get_args(ServiceType)
GLASS_TYPES: tuple[str, ...] = get_args(GlassType)
CUSTOMER_TYPES: tuple[str, ...] = get_args(CustomerType)


class BodyClass(str, Enum):
    """Нормалізований клас кузова, з яким працює правило оплати праці."""
    SEDAN = "sedan"
    MINI_SUV = "mini_suv"
    UTILITY = "utility"
    SUV_PICKUP = "suv_pickup"
    HEAVY_TRUCK = "heavy_truck"


SERVICE_TYPE_LABELS: dict[str, str] = {
    "repair": "Repair",
    "replace": "Replace",
    "calibration": "Calibration",
}

GLASS_TYPE_LABELS: dict[str, str] = {
    "windshield": "Windshield",
    "door_glass": "Door Glass",
    "back_glass": "Back Glass",
    "back_glass_powerslide": "Back Glass (Powerslide)",
    "quarter_glass": "Quarter Glass",
    "sunroof": "Sunroof",
    "side_mirror": "Side Mirror",
}


def _new_id() -> str:
    return str(uuid4())


def _today() -> str:
    return date.today().isoformat()


class Record(BaseModel):
    # JSON від UI/сховища у camelCase, у Python snake_case
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )


class Part(Record):
    id: str = Field(default_factory=_new_id)

    service_type: ServiceType = "replace"
    glass_type: GlassType = "windshield"

    glass_part_number: str = ""
    is_aftermarket: bool = True
    distributor: str = ""
    accessories: str = ""
    glass_ordered_date: str = ""
    glass_arrival_date: str = ""
    calibration_type: CalibrationType = "none"

    # вартісні компоненти (вводить оператор)
    part_price: float = 0
    markup: float = 0
    accessories_price: float = 0
    urethane_price: float = 15
    sales_tax_percent: float = 8.25
    labor_price: float = 0
    calibration_price: float = 0
    mobile_fee: float = 0
    subcontractor_cost: float = 0

    # похідні, завжди перераховуються
    parts_subtotal: float = 0
    part_total: float = 0


class Vehicle(Record):
    id: str = Field(default_factory=_new_id)
    vehicle_year: str = ""
    vehicle_make: str = ""
    vehicle_model: str = ""
    vin: str = ""
    body_style: str = ""
    parts: list[Part] = []


class PaymentEntry(Record):
    id: str = Field(default_factory=_new_id)
    date: str = Field(default_factory=_today)
    source: PaymentSource = "cash"
    amount: float = 0
    notes: str = ""


class Job(Record):
    id: str = Field(default_factory=_new_id)
    job_number: str = ""
    customer_type: CustomerType = "retail"
    vehicles: list[Vehicle] = []

    # вводить оператор
    amount_paid: float = 0
    deductible: float = Field(default=0, ge=0)
    rebate: float = 0
    payment_history: list[PaymentEntry] = []

    # рахує агрегатор
    subtotal: float = 0
    total_due: float = 0
    balance_due: float = 0
    payment_status: PaymentStatus = "pending"

    @field_validator("customer_type", mode="before")
    @classmethod
    def _default_customer_type(cls, v: Optional[str]) -> str:
        return v or "retail"

    def find_vehicle(self, vehicle_id: str) -> Optional[Vehicle]:
        for v in self.vehicles:
            if v.id == vehicle_id:
                return v
        return None


class Classification(BaseModel):
    service_type: ServiceType
    glass_type: GlassType


class PartTotals(Record):
    parts_subtotal: float
    part_total: float


class JobTotals(Record):
    parts_subtotal: float
    job_total: float
    amount_paid: float
    balance_due: float
    payment_status: PaymentStatus
    part_count: int


def part_label(part: Part) -> str:
    """Підпис для UI/чеків, напр. 'Windshield Replace'."""
    glass = GLASS_TYPE_LABELS.get(part.glass_type, "Windshield")
    service = SERVICE_TYPE_LABELS.get(part.service_type, "Replace")
    return f"{glass} {service}"
