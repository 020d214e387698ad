# core/cascade.py
# Одна точка перерахунку: кожна правка Job -> подія -> що саме перерахувати.

from __future__ import annotations

import logging
from typing import Annotated, Any, Callable, Literal, Optional, Union

from pydantic import Field, field_validator
from pydantic.alias_generators import to_snake

from .calculator import apply_part_totals, refresh_job_totals
from .config import PricingConfig, get_pricing_config
from .models import CustomerType, Job, Part, PaymentEntry, Record, Vehicle
from .rules import body_profile, labor_price, parse_vehicle_year

logger = logging.getLogger(__name__)

# ці поля позиції змінюють рекомендовану ціну праці
PART_LABOR_TRIGGERS = frozenset({"service_type", "glass_type", "part_price"})
VEHICLE_LABOR_TRIGGERS = frozenset({"vehicle_year", "body_style"})

# субпідрядник привозить своє скло: матеріали не рахуємо
SUBCONTRACTOR_ZEROED_FIELDS = (
    "part_price",
    "markup",
    "accessories_price",
    "urethane_price",
    "sales_tax_percent",
    "calibration_price",
)

EDITABLE_PART_FIELDS = frozenset(Part.model_fields) - {"id", "parts_subtotal", "part_total"}
EDITABLE_VEHICLE_FIELDS = frozenset(Vehicle.model_fields) - {"id", "parts"}


class RecordNotFound(LookupError):
    pass


# ---------- ПОДІЇ ----------

def _field_name(value: str, allowed: frozenset[str]) -> str:
    name = to_snake(value)
    if name not in allowed:
        raise ValueError(f"Field '{value}' cannot be edited")
    return name


class CustomerTypeChanged(Record):
    kind: Literal["customer_type"] = "customer_type"
    customer_type: CustomerType


class VehicleFieldChanged(Record):
    kind: Literal["vehicle_field"] = "vehicle_field"
    vehicle_id: str
    field: str
    value: Any = None

    @field_validator("field")
    @classmethod
    def _check_field(cls, v: str) -> str:
        return _field_name(v, EDITABLE_VEHICLE_FIELDS)


class PartFieldChanged(Record):
    kind: Literal["part_field"] = "part_field"
    vehicle_id: str
    part_id: str
    field: str
    value: Any = None

    @field_validator("field")
    @classmethod
    def _check_field(cls, v: str) -> str:
        return _field_name(v, EDITABLE_PART_FIELDS)


class PartAdded(Record):
    kind: Literal["part_added"] = "part_added"
    vehicle_id: str
    part: Optional[Part] = None
    # виїзд, розрахований з адреси клієнта (0 теж валідне значення)
    mobile_fee: Optional[float] = None


class PartRemoved(Record):
    kind: Literal["part_removed"] = "part_removed"
    vehicle_id: str
    part_id: str


class VehicleAdded(Record):
    kind: Literal["vehicle_added"] = "vehicle_added"
    vehicle: Optional[Vehicle] = None


class VehicleRemoved(Record):
    kind: Literal["vehicle_removed"] = "vehicle_removed"
    vehicle_id: str


class PaymentFieldChanged(Record):
    kind: Literal["payment_field"] = "payment_field"
    field: Literal["amount_paid", "deductible", "rebate"]
    value: float

    @field_validator("field", mode="before")
    @classmethod
    def _snake(cls, v: Any) -> Any:
        return to_snake(v) if isinstance(v, str) else v


class PaymentAdded(Record):
    kind: Literal["payment_added"] = "payment_added"
    payment: PaymentEntry


FieldChange = Annotated[
    Union[
        CustomerTypeChanged,
        VehicleFieldChanged,
        PartFieldChanged,
        PartAdded,
        PartRemoved,
        VehicleAdded,
        VehicleRemoved,
        PaymentFieldChanged,
        PaymentAdded,
    ],
    Field(discriminator="kind"),
]


# ---------- ПЕРЕРАХУНОК ----------

def suggest_labor(part: Part, vehicle: Vehicle, customer_type: str) -> int:
    return labor_price(
        part.service_type,
        part.glass_type,
        body_profile(vehicle.body_style),
        parse_vehicle_year(vehicle.vehicle_year),
        part.part_price,
        customer_type,
    )


def clear_materials(part: Part) -> Part:
    for name in SUBCONTRACTOR_ZEROED_FIELDS:
        setattr(part, name, 0)
    return part


def reprice_part(part: Part, vehicle: Vehicle, customer_type: str) -> Part:
    """Labor rule + totals для однієї позиції."""
    part.labor_price = suggest_labor(part, vehicle, customer_type)
    return apply_part_totals(part, customer_type)


def new_part(
    vehicle: Vehicle,
    customer_type: str,
    *,
    part: Part | None = None,
    mobile_fee: float | None = None,
    cfg: PricingConfig | None = None,
) -> Part:
    """Нова позиція з дефолтами, рекомендованою працею і підсумками."""
    if part is None:
        defaults = (cfg or get_pricing_config()).part_defaults
        part = Part(
            urethane_price=defaults.urethane_price,
            sales_tax_percent=defaults.sales_tax_percent,
        )
    part.labor_price = suggest_labor(part, vehicle, customer_type)
    if customer_type == "subcontractor":
        clear_materials(part)
    if mobile_fee is not None:
        part.mobile_fee = mobile_fee
    return apply_part_totals(part, customer_type)


def recalculate_job(job: Job, reprice_labor: bool = False) -> Job:
    for vehicle in job.vehicles:
        for part in vehicle.parts:
            if reprice_labor:
                reprice_part(part, vehicle, job.customer_type)
            else:
                apply_part_totals(part, job.customer_type)
    return refresh_job_totals(job)


def _vehicle(job: Job, vehicle_id: str) -> Vehicle:
    vehicle = job.find_vehicle(vehicle_id)
    if vehicle is None:
        raise RecordNotFound(f"Vehicle '{vehicle_id}' not found on job '{job.id}'")
    return vehicle


def _part(vehicle: Vehicle, part_id: str) -> Part:
    for part in vehicle.parts:
        if part.id == part_id:
            return part
    raise RecordNotFound(f"Part '{part_id}' not found on vehicle '{vehicle.id}'")


def _on_customer_type(job: Job, change: CustomerTypeChanged) -> None:
    job.customer_type = change.customer_type
    for vehicle in job.vehicles:
        for part in vehicle.parts:
            part.labor_price = suggest_labor(part, vehicle, job.customer_type)
            if job.customer_type == "subcontractor":
                clear_materials(part)
            apply_part_totals(part, job.customer_type)


def _on_vehicle_field(job: Job, change: VehicleFieldChanged) -> None:
    vehicle = _vehicle(job, change.vehicle_id)
    setattr(vehicle, change.field, change.value)
    if change.field in VEHICLE_LABOR_TRIGGERS:
        for part in vehicle.parts:
            reprice_part(part, vehicle, job.customer_type)


def _on_part_field(job: Job, change: PartFieldChanged) -> None:
    vehicle = _vehicle(job, change.vehicle_id)
    part = _part(vehicle, change.part_id)
    setattr(part, change.field, change.value)
    if change.field in PART_LABOR_TRIGGERS:
        reprice_part(part, vehicle, job.customer_type)
    else:
        # оператор міг свідомо змінити labor: не перевизначаємо
        apply_part_totals(part, job.customer_type)


def _on_part_added(job: Job, change: PartAdded) -> None:
    vehicle = _vehicle(job, change.vehicle_id)
    vehicle.parts.append(
        new_part(vehicle, job.customer_type, part=change.part, mobile_fee=change.mobile_fee)
    )


def _on_part_removed(job: Job, change: PartRemoved) -> None:
    vehicle = _vehicle(job, change.vehicle_id)
    part = _part(vehicle, change.part_id)
    vehicle.parts = [p for p in vehicle.parts if p is not part]


def _on_vehicle_added(job: Job, change: VehicleAdded) -> None:
    vehicle = change.vehicle or Vehicle()
    for part in vehicle.parts:
        apply_part_totals(part, job.customer_type)
    job.vehicles.append(vehicle)


def _on_vehicle_removed(job: Job, change: VehicleRemoved) -> None:
    vehicle = _vehicle(job, change.vehicle_id)
    job.vehicles = [v for v in job.vehicles if v is not vehicle]


def _on_payment_field(job: Job, change: PaymentFieldChanged) -> None:
    setattr(job, change.field, change.value)


def _on_payment_added(job: Job, change: PaymentAdded) -> None:
    job.payment_history.append(change.payment)
    job.amount_paid = sum(p.amount for p in job.payment_history)


_HANDLERS: dict[str, Callable[[Job, Any], None]] = {
    "customer_type": _on_customer_type,
    "vehicle_field": _on_vehicle_field,
    "part_field": _on_part_field,
    "part_added": _on_part_added,
    "part_removed": _on_part_removed,
    "vehicle_added": _on_vehicle_added,
    "vehicle_removed": _on_vehicle_removed,
    "payment_field": _on_payment_field,
    "payment_added": _on_payment_added,
}


def apply_change(job: Job, change: FieldChange) -> Job:
    """
    Застосовує одну правку до Job і синхронно перераховує все залежне.
    Після повернення немає "брудного" стану: підсумки кожної позиції і Job
    перераховані, навіть для позицій, яких правка не стосувалась.
    """
    logger.debug("Applying %s to job %s", change.kind, job.id)
    _HANDLERS[change.kind](job, change)
    return recalculate_job(job)
