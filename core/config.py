# core/config.py
# Дефолти ціноутворення з data/pricing.json (можна підмінити через GLASS_PRICING_CONFIG).

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "GLASS_PRICING_CONFIG"
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[1] / "data" / "pricing.json"


class PartDefaults(BaseModel):
    urethane_price: float = Field(default=15, ge=0)
    sales_tax_percent: float = Field(default=8.25, ge=0, le=100)


class MobileFeeZone(BaseModel):
    # None = без верхньої межі (остання зона)
    max_miles_outside: Optional[float] = None
    fee: float = Field(ge=0)
    label: str = ""


class PricingConfig(BaseModel):
    part_defaults: PartDefaults = PartDefaults()
    subcontractor_labor_rates: list[float] = [100, 110, 125]
    mobile_fee_zones: list[MobileFeeZone] = []


def config_path() -> Path:
    raw = os.getenv(CONFIG_ENV_VAR)
    return Path(raw) if raw else DEFAULT_CONFIG_PATH


def load_pricing_config(path: Path | None = None) -> PricingConfig:
    """Читає JSON і валідує його в PricingConfig."""
    path = path or config_path()
    raw = json.loads(path.read_text(encoding="utf-8"))
    cfg = PricingConfig.model_validate(raw)
    logger.info(
        "Loaded pricing config from %s (%d mobile fee zones)",
        path, len(cfg.mobile_fee_zones),
    )
    return cfg


@lru_cache(maxsize=1)
def get_pricing_config() -> PricingConfig:
    return load_pricing_config()
