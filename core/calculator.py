from __future__ import annotations

import math
from typing import Iterable

from .models import Job, JobTotals, Part, PartTotals, PaymentStatus, Vehicle

# 3.5% за обробку картки; дилери платять чеком
PROCESSING_FEE_RATE = 0.035


def _money(x: float) -> float:
    # стабільне округлення грошей
    return round(float(x) + 1e-9, 2)


def part_totals(part: Part, customer_type: str | None) -> PartTotals:
    # субпідрядник везе своє скло: тільки праця + виїзд + його витрати
    if customer_type == "subcontractor":
        part_total = part.labor_price + part.mobile_fee + part.subcontractor_cost
        return PartTotals(parts_subtotal=0, part_total=part_total)

    parts_subtotal = (
        part.part_price + part.markup + part.accessories_price + part.urethane_price
    ) * (1 + part.sales_tax_percent / 100)

    pre_fee_total = parts_subtotal + part.labor_price + part.calibration_price + part.mobile_fee

    # завжди вгору до цілого, щоб не недорахувати
    if customer_type == "dealer":
        part_total = math.ceil(pre_fee_total)
    else:
        part_total = math.ceil(pre_fee_total * (1 + PROCESSING_FEE_RATE))

    return PartTotals(parts_subtotal=parts_subtotal, part_total=part_total)


def apply_part_totals(part: Part, customer_type: str | None) -> Part:
    totals = part_totals(part, customer_type)
    part.parts_subtotal = totals.parts_subtotal
    part.part_total = totals.part_total
    return part


def iter_parts(vehicles: Iterable[Vehicle]) -> Iterable[Part]:
    # порядок: авто, потім позиції
    for vehicle in vehicles:
        yield from vehicle.parts


def job_total(vehicles: Iterable[Vehicle], customer_type: str | None) -> float:
    return sum(part_totals(p, customer_type).part_total for p in iter_parts(vehicles))


def balance_due(total: float, amount_paid: float) -> float:
    return max(0, total - amount_paid)


def payment_status(total: float, amount_paid: float) -> PaymentStatus:
    if amount_paid <= 0:
        return "pending"
    if balance_due(total, amount_paid) <= 0:
        return "paid"
    return "partial"


def summarize_job(job: Job) -> JobTotals:
    totals = [part_totals(p, job.customer_type) for p in iter_parts(job.vehicles)]
    total = sum(t.part_total for t in totals)
    return JobTotals(
        parts_subtotal=_money(sum(t.parts_subtotal for t in totals)),
        job_total=total,
        amount_paid=_money(job.amount_paid),
        balance_due=_money(balance_due(total, job.amount_paid)),
        payment_status=payment_status(total, job.amount_paid),
        part_count=len(totals),
    )


def refresh_job_totals(job: Job) -> Job:
    """Записує агрегати назад у Job (subtotal/total_due/balance_due/payment_status)."""
    summary = summarize_job(job)
    job.subtotal = summary.job_total
    job.total_due = summary.job_total
    job.balance_due = summary.balance_due
    job.payment_status = summary.payment_status
    return job
