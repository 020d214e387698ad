# cli/app.py
# CLI = тимчасовий UI. Його можна замінити на Web/iOS, не чіпаючи core.

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Sequence

from core.calculator import summarize_job
from core.cascade import (
    CustomerTypeChanged,
    PartAdded,
    PartFieldChanged,
    VehicleAdded,
    apply_change,
)
from core.models import CUSTOMER_TYPES, GLASS_TYPES, SERVICE_TYPES, Job, Part, Vehicle, part_label
from core.rules import (
    classify_body_style,
    is_menu_rate,
    mobile_fee_for_distance,
    subcontractor_labor_rates,
)

logger = logging.getLogger(__name__)

BODY_STYLE_OPTIONS = (
    "Sedan",
    "Coupe",
    "Mini SUV",
    "SUV",
    "Pickup",
    "Van",
    "Minivan",
    "Hatchback",
    "Wagon",
    "Convertible",
    "18 Wheeler",
    "Utility Vehicle",
)


# ---------- ДОПОМІЖНІ ФУНКЦІЇ ВВОДУ ----------

def ask_float(prompt: str, *, min_value: float | None = None) -> float:
    """Безпечний ввід числа: не ламається, поки не введуть число."""
    while True:
        raw = input(prompt).strip().replace(",", ".")
        try:
            value = float(raw)
        except ValueError:
            print("❌ Enter a number (example: 12.5)")
            continue
        if min_value is not None and value < min_value:
            print(f"❌ Value must be >= {min_value}")
            continue
        return value


def ask_float_default(prompt: str, default: float, *, min_value: float | None = None) -> float:
    """Ввід числа з дефолтом: Enter -> default."""
    while True:
        raw = input(f"{prompt} [{default}]: ").strip()
        if raw == "":
            value = float(default)
        else:
            raw = raw.replace(",", ".")
            try:
                value = float(raw)
            except ValueError:
                print("❌ Enter a number or press Enter")
                continue

        if min_value is not None and value < min_value:
            print(f"❌ Value must be >= {min_value}")
            continue
        return value


def ask_yes_no(prompt: str) -> bool:
    """Безпечний ввід так/ні: повертає True або False."""
    while True:
        raw = input(prompt + " (y/n): ").strip().lower()
        if raw in ("y", "yes"):
            return True
        if raw in ("n", "no"):
            return False
        print("❌ Enter y or n")


def ask_choice(prompt: str, options: Sequence[str], default: str) -> str:
    """Вибір зі списку: номер або саме значення, Enter -> default."""
    for i, opt in enumerate(options, start=1):
        print(f" {i}. {opt}")
    while True:
        raw = input(f"{prompt} [{default}]: ").strip()
        if raw == "":
            return default
        if raw.isdigit() and 1 <= int(raw) <= len(options):
            return options[int(raw) - 1]
        if raw in options:
            return raw
        print("❌ Choose a number from the list")


def money(x: float) -> str:
    """Красивий формат грошей."""
    return f"${x:,.2f}"


# ---------- HISTORY (JSON) ----------

def save_quote_json(job: Job, history_dir: Path | None = None) -> Path:
    """
    Зберігає Job як JSON в data/history/ (camelCase, як у сховищі).
    Повертає шлях до створеного файлу.
    """
    if history_dir is None:
        root = Path(__file__).resolve().parents[1]  # корінь проєкту
        history_dir = root / "data" / "history"
    history_dir.mkdir(parents=True, exist_ok=True)

    ts = datetime.now().strftime("%Y%m%dT%H%M%S")
    job_number = (job.job_number or "quote").strip().lower().replace(" ", "_")
    path = history_dir / f"{ts}_{job.customer_type}_{job_number}.json"

    path.write_text(
        json.dumps(job.model_dump(mode="json", by_alias=True), ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    return path


# ---------- ВВІД ПОЗИЦІЇ ----------

def _edit(job: Job, vehicle: Vehicle, part: Part, field: str, value: float | str) -> None:
    apply_change(
        job,
        PartFieldChanged(vehicle_id=vehicle.id, part_id=part.id, field=field, value=value),
    )


def enter_part(job: Job, vehicle: Vehicle) -> Part:
    print("\nService type:")
    service_type = ask_choice("Choose service", SERVICE_TYPES, "replace")
    print("\nGlass type:")
    glass_type = ask_choice("Choose glass", GLASS_TYPES, "windshield")

    mobile_fee = None
    if ask_yes_no("Mobile job (outside the shop)?"):
        miles = ask_float("Miles outside the loop: ", min_value=0)
        mobile_fee = mobile_fee_for_distance(miles)
        print(f"Mobile fee:            {money(mobile_fee)}")

    apply_change(
        job,
        PartAdded(
            vehicle_id=vehicle.id,
            part=Part(service_type=service_type, glass_type=glass_type),
            mobile_fee=mobile_fee,
        ),
    )
    part = vehicle.parts[-1]

    if job.customer_type == "subcontractor":
        # субпідрядник: тільки праця (меню або своя сума), виїзд і його витрати
        rates = [f"{r:g}" for r in subcontractor_labor_rates()] + ["custom"]
        print("\nSubcontractor labor rate:")
        default = f"{part.labor_price:g}" if is_menu_rate(part.labor_price) else "custom"
        rate = ask_choice("Choose rate", rates, default)
        labor = ask_float("Custom labor ($): ", min_value=0) if rate == "custom" else float(rate)
        _edit(job, vehicle, part, "labor_price", labor)
        cost = ask_float_default("Subcontractor cost ($)", part.subcontractor_cost, min_value=0)
        _edit(job, vehicle, part, "subcontractor_cost", cost)
        return part

    # part_price першим: від нього залежить рекомендована праця (поріг 250)
    _edit(job, vehicle, part, "part_price", ask_float_default("Part price ($)", part.part_price, min_value=0))
    _edit(job, vehicle, part, "markup", ask_float_default("Markup ($)", part.markup, min_value=0))
    _edit(job, vehicle, part, "accessories_price",
          ask_float_default("Accessories ($)", part.accessories_price, min_value=0))
    _edit(job, vehicle, part, "urethane_price",
          ask_float_default("Urethane ($)", part.urethane_price, min_value=0))
    _edit(job, vehicle, part, "sales_tax_percent",
          ask_float_default("Sales tax %", part.sales_tax_percent, min_value=0))
    _edit(job, vehicle, part, "labor_price",
          ask_float_default("Labor ($, suggested)", part.labor_price, min_value=0))
    _edit(job, vehicle, part, "calibration_price",
          ask_float_default("Calibration ($)", part.calibration_price, min_value=0))
    return part


# ---------- ОСНОВНИЙ CLI СЦЕНАРІЙ ----------

def print_breakdown(job: Job) -> None:
    summary = summarize_job(job)

    print("\n--- Breakdown ---")
    print(f"Customer type:         {job.customer_type}")
    for vehicle in job.vehicles:
        name = " ".join(x for x in (vehicle.vehicle_year, vehicle.vehicle_make, vehicle.vehicle_model) if x)
        print(f"Vehicle:               {name or '(unnamed)'} [{vehicle.body_style or 'n/a'}]")
        for part in vehicle.parts:
            print(f"  {part_label(part)}")
            if job.customer_type != "subcontractor":
                print(f"    Parts subtotal:    {money(part.parts_subtotal)}")
                print(f"    Calibration:       {money(part.calibration_price)}")
            else:
                print(f"    Subcontractor:     {money(part.subcontractor_cost)}")
            print(f"    Labor:             {money(part.labor_price)}")
            print(f"    Mobile fee:        {money(part.mobile_fee)}")
            print(f"    Part total:        {money(part.part_total)}")

    if job.customer_type not in ("dealer", "subcontractor"):
        print("\nNotes:\n - 3.5% card processing fee included.")

    print(f"\nTOTAL:                 {money(summary.job_total)}")
    print(f"Paid:                  {money(summary.amount_paid)}")
    print(f"Balance due:           {money(summary.balance_due)} ({summary.payment_status})")
    print("-----------------\n")


def run_cli() -> None:
    logging.basicConfig(level=logging.WARNING)
    print("\n=== Auto Glass Quote Builder (CLI) ===\n")

    job = Job(job_number=input("Job number (optional): ").strip())

    print("\nCustomer type:")
    customer_type = ask_choice("Choose customer type", CUSTOMER_TYPES, "retail")
    apply_change(job, CustomerTypeChanged(customer_type=customer_type))

    vehicle = Vehicle(
        vehicle_year=input("\nVehicle year: ").strip(),
        vehicle_make=input("Make (optional): ").strip(),
        vehicle_model=input("Model (optional): ").strip(),
    )
    print("\nBody style:")
    vehicle.body_style = ask_choice("Choose body style", BODY_STYLE_OPTIONS, "Sedan")
    logger.debug("Body style %r -> %s", vehicle.body_style, classify_body_style(vehicle.body_style).value)
    apply_change(job, VehicleAdded(vehicle=vehicle))

    while True:
        part = enter_part(job, vehicle)
        print(f"✅ {part_label(part)}: {money(part.part_total)}")
        if not ask_yes_no("Add another part?"):
            break

    print_breakdown(job)

    if ask_yes_no("Save quote to history (JSON)?"):
        path = save_quote_json(job)
        print(f"✅ Saved JSON: {path}\n")


if __name__ == "__main__":
    run_cli()
