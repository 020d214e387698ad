# core/rules.py
# Правила оплати праці (labor) для скла: клас кузова, рік авто, тип клієнта.

from __future__ import annotations

import math
import re
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import NamedTuple

from .config import PricingConfig, get_pricing_config
from .models import BodyClass

DEALER_LABOR = 90
SUBCONTRACTOR_LABOR = 100

PREMIUM_PART_COST = 250
PREMIUM_LABOR_RATE = Decimal("0.75")

REPAIR_LABOR = 50
CALIBRATION_LABOR = 0

SIDE_GLASS = frozenset({"door_glass", "quarter_glass", "side_mirror"})
SIDE_GLASS_LABOR = 145
SIDE_GLASS_HEAVY_TRUCK_LABOR = 150

LARGE_GLASS = frozenset({"windshield", "back_glass", "back_glass_powerslide", "sunroof"})
LARGE_GLASS_HEAVY_TRUCK_LABOR = 250
POWERSLIDE_LABOR = 185

LEGACY_VEHICLE_CUTOFF_YEAR = 2016
LEGACY_VEHICLE_LABOR = 140

BODY_CLASS_LABOR: dict[BodyClass, int] = {
    BodyClass.SEDAN: 150,
    BodyClass.MINI_SUV: 165,
    BodyClass.UTILITY: 225,
    BodyClass.SUV_PICKUP: 175,
}

FALLBACK_LABOR = 150

# порядок важливий: перший збіг перемагає ("MINI SUV" містить "SUV")
_BODY_KEYWORDS: tuple[tuple[BodyClass, tuple[str, ...]], ...] = (
    (BodyClass.HEAVY_TRUCK, ("18 WHEELER", "SEMI")),
    (BodyClass.SEDAN, ("SEDAN", "COUPE", "HATCHBACK", "CONVERTIBLE")),
    (BodyClass.MINI_SUV, ("MINI SUV", "CROSSOVER")),
    (BodyClass.UTILITY, ("UTILITY",)),
    (BodyClass.SUV_PICKUP, ("SUV", "PICKUP", "TRUCK", "VAN", "WAGON")),
)

_HEAVY_KEYWORDS = _BODY_KEYWORDS[0][1]
_UTILITY_KEYWORD = "UTILITY"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class BodyProfile(NamedTuple):
    """
    Кузов для правил праці.
    body_class - один клас для таблиці цін; is_heavy/is_utility - окремі
    прапорці ключових слів для правила старих авто, бо "Crossover Utility
    Vehicle" це mini_suv, але все одно utility.
    """
    body_class: BodyClass
    is_heavy: bool
    is_utility: bool


def classify_body_style(body_style: str | None) -> BodyClass:
    """Вільний текст кузова -> BodyClass. Невідоме = SUV/pickup."""
    upper = (body_style or "").upper()
    for body_class, keywords in _BODY_KEYWORDS:
        if any(k in upper for k in keywords):
            return body_class
    return BodyClass.SUV_PICKUP


def body_profile(body_style: BodyProfile | BodyClass | str | None) -> BodyProfile:
    if isinstance(body_style, BodyProfile):
        return body_style
    if isinstance(body_style, BodyClass):
        return BodyProfile(
            body_class=body_style,
            is_heavy=body_style is BodyClass.HEAVY_TRUCK,
            is_utility=body_style is BodyClass.UTILITY,
        )
    upper = (body_style or "").upper()
    return BodyProfile(
        body_class=classify_body_style(body_style),
        is_heavy=any(k in upper for k in _HEAVY_KEYWORDS),
        is_utility=_UTILITY_KEYWORD in upper,
    )


def parse_vehicle_year(vehicle_year: str | int | None, today: date | None = None) -> int:
    """Рік з рядка (ведучі цифри). Порожньо/сміття/0 -> поточний рік."""
    if isinstance(vehicle_year, int):
        year = vehicle_year
    else:
        m = _LEADING_INT.match(vehicle_year or "")
        year = int(m.group(1)) if m else 0
    if not year:
        year = (today or date.today()).year
    return year


def round_half_up(x: Decimal | float) -> int:
    return int(Decimal(str(x)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def labor_price(
    service_type: str,
    glass_type: str,
    body_style: BodyProfile | BodyClass | str | None,
    vehicle_year: str | int | None,
    part_cost: float,
    customer_type: str | None = "retail",
) -> int:
    """
    Рекомендована ціна праці для однієї позиції.
    Перше правило, що спрацювало, перемагає; функція тотальна.
    """
    if customer_type == "dealer":
        return DEALER_LABOR
    # субпідрядник далі може обрати 100/110/125 або свою суму
    if customer_type == "subcontractor":
        return SUBCONTRACTOR_LABOR

    # дороге скло: 75% від собівартості, незалежно від кузова
    # inf/nan не є ціною: падаємо далі на звичайні правила
    if math.isfinite(part_cost) and part_cost >= PREMIUM_PART_COST:
        return round_half_up(Decimal(str(part_cost)) * PREMIUM_LABOR_RATE)

    if service_type == "repair":
        return REPAIR_LABOR
    # калібрування рахується окремо в calibration_price
    if service_type == "calibration":
        return CALIBRATION_LABOR

    profile = body_profile(body_style)
    year = parse_vehicle_year(vehicle_year)

    if glass_type in SIDE_GLASS:
        return SIDE_GLASS_HEAVY_TRUCK_LABOR if profile.is_heavy else SIDE_GLASS_LABOR

    if glass_type in LARGE_GLASS:
        if profile.is_heavy:
            return LARGE_GLASS_HEAVY_TRUCK_LABOR
        if glass_type == "back_glass_powerslide":
            return POWERSLIDE_LABOR
        if year <= LEGACY_VEHICLE_CUTOFF_YEAR and not profile.is_utility:
            return LEGACY_VEHICLE_LABOR
        return BODY_CLASS_LABOR[profile.body_class]

    return FALLBACK_LABOR


def subcontractor_labor_rates(cfg: PricingConfig | None = None) -> list[float]:
    cfg = cfg or get_pricing_config()
    return list(cfg.subcontractor_labor_rates)


def is_menu_rate(price: float, cfg: PricingConfig | None = None) -> bool:
    """True, якщо ціна праці субпідрядника є одним із пресетів меню."""
    return price in subcontractor_labor_rates(cfg)


def mobile_fee_for_distance(miles_outside_loop: float, cfg: PricingConfig | None = None) -> float:
    """Виїзд: перша зона, що покриває відстань. Від'ємна відстань = всередині кільця."""
    cfg = cfg or get_pricing_config()
    miles = max(0.0, float(miles_outside_loop))
    for zone in cfg.mobile_fee_zones:
        if zone.max_miles_outside is None or miles <= zone.max_miles_outside:
            return zone.fee
    return cfg.mobile_fee_zones[-1].fee if cfg.mobile_fee_zones else 0.0
