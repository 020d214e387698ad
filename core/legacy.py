# core/legacy.py
# Адаптер для старих/неповних записів: jobType -> (serviceType, glassType).
# Викликається один раз при імпорті, ніколи не в розрахунку цін.

from __future__ import annotations

import logging
from typing import Any, Mapping

from .cascade import recalculate_job
from .models import GLASS_TYPES, SERVICE_TYPES, Classification, Job, LegacyJobType, Part, Vehicle

logger = logging.getLogger(__name__)

DEFAULT_CLASSIFICATION = ("replace", "windshield")

LEGACY_JOB_TYPES: dict[LegacyJobType, tuple[str, str]] = {
    "windshield_repair": ("repair", "windshield"),
    "windshield_replacement": ("replace", "windshield"),
    "door_glass": ("replace", "door_glass"),
    "back_glass": ("replace", "back_glass"),
    "back_glass_powerslide": ("replace", "back_glass_powerslide"),
    "quarter_glass": ("replace", "quarter_glass"),
    "sunroof": ("replace", "sunroof"),
    "side_mirror": ("replace", "side_mirror"),
}

# похідні поля ніколи не беремо з вхідного запису
_DERIVED_PART_FIELDS = ("partsSubtotal", "parts_subtotal", "partTotal", "part_total")


def _read_field(source: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = source.get(key)
        if value:
            return value
    return None


def resolve_classification(record: Mapping[str, Any]) -> Classification:
    service_type = _read_field(record, "serviceType", "service_type")
    glass_type = _read_field(record, "glassType", "glass_type")
    if service_type in SERVICE_TYPES and glass_type in GLASS_TYPES:
        return Classification(service_type=service_type, glass_type=glass_type)

    job_type = _read_field(record, "jobType", "job_type")
    resolved = LEGACY_JOB_TYPES.get(job_type) if isinstance(job_type, str) else None
    if resolved is None:
        logger.info("Unknown legacy jobType %r, defaulting to %s", job_type, DEFAULT_CLASSIFICATION)
        resolved = DEFAULT_CLASSIFICATION

    return Classification(service_type=resolved[0], glass_type=resolved[1])


def ingest_part(record: Mapping[str, Any]) -> Part:
    """Сирий запис позиції -> канонічна Part (без jobType, без збережених підсумків)."""
    data = {
        k: v for k, v in record.items()
        if v is not None
        and k not in ("jobType", "job_type")
        and k not in _DERIVED_PART_FIELDS
    }
    cls = resolve_classification(record)
    for key in ("serviceType", "service_type", "glassType", "glass_type"):
        data.pop(key, None)
    data["serviceType"] = cls.service_type
    data["glassType"] = cls.glass_type
    return Part.model_validate(data)


def ingest_vehicle(record: Mapping[str, Any]) -> Vehicle:
    data = dict(record)
    parts = [ingest_part(p) for p in data.pop("parts", None) or []]
    # null з JSON -> дефолти моделі
    data = {k: v for k, v in data.items() if v is not None}
    return Vehicle.model_validate({**data, "parts": parts})


def ingest_job(record: Mapping[str, Any]) -> Job:
    """
    Імпорт Job із сховища/старого формату.
    Підсумки (partTotal, totalDue, balanceDue...) перераховуються, а не довіряються.
    """
    data = dict(record)
    vehicles = [ingest_vehicle(v) for v in data.pop("vehicles", None) or []]
    data = {k: v for k, v in data.items() if v is not None}
    job = Job.model_validate({**data, "vehicles": vehicles})
    return recalculate_job(job)
