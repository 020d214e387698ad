from __future__ import annotations

import logging
from typing import Any, Optional, Union

from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from core.calculator import part_totals, summarize_job
from core.cascade import FieldChange, RecordNotFound, apply_change
from core.legacy import ingest_job
from core.models import CustomerType, GlassType, Job, JobTotals, Part, PartTotals, Record, ServiceType
from core.rules import labor_price, mobile_fee_for_distance, subcontractor_labor_rates

logger = logging.getLogger(__name__)

app = FastAPI(title="Glass Quote API", version="1.0.0")

# UI живе на іншому порту/домені
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class LaborRequest(Record):
    service_type: ServiceType = "replace"
    glass_type: GlassType = "windshield"
    body_style: str = ""
    vehicle_year: Union[str, int] = ""
    part_cost: float = 0
    customer_type: Optional[CustomerType] = "retail"


class ChangeRequest(Record):
    job: Job
    change: FieldChange


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/labor-price")
def suggest_labor_price(req: LaborRequest) -> dict[str, int]:
    price = labor_price(
        req.service_type,
        req.glass_type,
        req.body_style,
        req.vehicle_year,
        req.part_cost,
        req.customer_type or "retail",
    )
    return {"laborPrice": price}


@app.post("/part-totals", response_model=PartTotals)
def calculate_part_totals(
    part: Part = Body(...),
    customer_type: CustomerType = Query(default="retail", alias="customerType"),
) -> PartTotals:
    return part_totals(part, customer_type)


@app.post("/jobs/ingest", response_model=Job)
def ingest(payload: dict[str, Any] = Body(...)) -> Job:
    """
    Приймає сирий (можливо старий, з jobType) запис Job.
    Повертає канонічний Job з перерахованими підсумками.
    """
    try:
        return ingest_job(payload)
    except ValidationError as e:
        logger.warning("Rejected job payload: %s", e)
        raise HTTPException(status_code=400, detail=f"Invalid job: {e}")


@app.post("/jobs/totals", response_model=JobTotals)
def job_totals(job: Job = Body(...)) -> JobTotals:
    return summarize_job(job)


@app.post("/jobs/apply", response_model=Job)
def apply(req: ChangeRequest) -> Job:
    """Одна правка оператора -> Job після каскаду перерахунку."""
    try:
        return apply_change(req.job, req.change)
    except RecordNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        logger.warning("Rejected %s change: %s", req.change.kind, e)
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/mobile-fee")
def mobile_fee(miles: float = Query(..., description="Miles outside the loop")) -> dict[str, float]:
    return {"miles": miles, "fee": mobile_fee_for_distance(miles)}


@app.get("/subcontractor-rates")
def subcontractor_rates() -> dict[str, list[float]]:
    return {"rates": subcontractor_labor_rates()}
