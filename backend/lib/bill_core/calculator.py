# backend/lib/bill_core/calculator.py
from collections import OrderedDict
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional

from .models import Appliance, ApplianceUsage, BillCalculation, BillSettings, CategoryUsage
from .tables import (
    APPLIANCE_EFFICIENCY_FACTORS,
    CATEGORY_COLORS,
    DEFAULT_COLOR,
    DEFAULT_REGION,
    HOME_EFFICIENCY_FACTORS,
    REGIONAL_RATES,
    SEASONAL_CATEGORY,
    SEASONAL_MULTIPLIERS,
    lookup,
    time_of_use_blend,
)

DAYS_PER_MONTH = 30
MONTHS_PER_YEAR = 12


def base_rate(region: str) -> float:
    return lookup(REGIONAL_RATES, region, REGIONAL_RATES[DEFAULT_REGION])


def effective_rate(settings: BillSettings) -> float:
    """
    Cost per kWh for the settings' region, blended across time-of-use
    bands when the settings opt into a time-of-use plan.
    """
    rate = base_rate(settings.region)
    if settings.use_time_of_use:
        rate = rate * time_of_use_blend()
    return rate


def appliance_kwh(appliance: Appliance, settings: BillSettings) -> float:
    """
    Monthly kWh for one appliance after the name, home and seasonal factors.
    Inputs are expected to be non-negative; nothing is validated here.
    """
    kwh = appliance.wattage * appliance.hours_per_day * appliance.days_per_month / 1000
    kwh *= lookup(APPLIANCE_EFFICIENCY_FACTORS, appliance.name, 1.0)
    kwh *= lookup(HOME_EFFICIENCY_FACTORS, settings.efficiency_rating, 1.0)
    if appliance.category == SEASONAL_CATEGORY:
        kwh *= lookup(SEASONAL_MULTIPLIERS, settings.season, 1.0)
    return kwh


def share(part: float, total: float) -> float:
    return part / total * 100 if total > 0 else 0.0


def calculate_bill(appliances: Iterable[Appliance], settings: Optional[BillSettings] = None) -> BillCalculation:
    """
    Estimate the monthly bill for a list of appliances.

    Returns a fresh BillCalculation; the inputs are left untouched.
    An empty list gives an all-zero result with empty breakdowns.
    """
    settings = settings or BillSettings()
    rate = effective_rate(settings)

    breakdown: List[ApplianceUsage] = []
    for appliance in appliances:
        kwh = appliance_kwh(appliance, settings)
        breakdown.append(ApplianceUsage(appliance=appliance, monthly_kwh=kwh, monthly_cost=kwh * rate))

    total_kwh = sum(u.monthly_kwh for u in breakdown)
    monthly_bill = sum(u.monthly_cost for u in breakdown)

    for usage in breakdown:
        usage.percentage = share(usage.monthly_kwh, total_kwh)

    # group by category, keeping first-appearance order
    totals: Dict[str, Dict[str, float]] = OrderedDict()
    for usage in breakdown:
        bucket = totals.setdefault(usage.appliance.category, {"kwh": 0.0, "cost": 0.0})
        bucket["kwh"] += usage.monthly_kwh
        bucket["cost"] += usage.monthly_cost

    categories = [
        CategoryUsage(
            category=category,
            monthly_kwh=bucket["kwh"],
            monthly_cost=bucket["cost"],
            percentage=share(bucket["kwh"], total_kwh),
            color=lookup(CATEGORY_COLORS, category, DEFAULT_COLOR),
        )
        for category, bucket in totals.items()
    ]

    return BillCalculation(
        total_kwh=total_kwh,
        monthly_bill=monthly_bill,
        yearly_bill=monthly_bill * MONTHS_PER_YEAR,
        daily_average=total_kwh / DAYS_PER_MONTH,
        appliance_breakdown=breakdown,
        category_breakdown=categories,
    )


def round_money(amount: float) -> float:
    # round to 2 decimal places (banker's rounding avoided; use ROUND_HALF_UP)
    return float(Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def format_currency(amount: float) -> str:
    """e.g. 1234.5 -> '$1,234.50'"""
    rounded = round_money(amount)
    sign = "-" if rounded < 0 else ""
    return f"{sign}${abs(rounded):,.2f}"


def format_kwh(kwh: float) -> str:
    return f"{kwh:.1f} kWh"
