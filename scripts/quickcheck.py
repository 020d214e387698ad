"""Quick runtime checks for the glass quote engine.
Run: python scripts/quickcheck.py
Exits with code 0 on success, non-zero on failure.
"""
from core.calculator import summarize_job
from core.cascade import PartAdded, PartFieldChanged, VehicleAdded, apply_change
from core.models import Job, Part, Vehicle


def approx(a, b, tol=1e-6):
    return abs(a - b) <= tol


def main():
    job = Job(customer_type="retail")
    vehicle = Vehicle(vehicle_year="2022", body_style="SUV")
    apply_change(job, VehicleAdded(vehicle=vehicle))
    apply_change(job, PartAdded(vehicle_id=vehicle.id, part=Part(urethane_price=15, sales_tax_percent=8.25)))

    part = vehicle.parts[0]
    for field, value in (("part_price", 150), ("markup", 20)):
        apply_change(job, PartFieldChanged(vehicle_id=vehicle.id, part_id=part.id, field=field, value=value))

    assert approx(part.labor_price, 175)
    assert approx(part.parts_subtotal, 185 * 1.0825)
    assert approx(part.part_total, 389)

    summary = summarize_job(job)
    assert approx(summary.job_total, 389)
    assert approx(summary.balance_due, 389)

    print("Quickcheck OK")


if __name__ == '__main__':
    main()
