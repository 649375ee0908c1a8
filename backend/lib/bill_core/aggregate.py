# backend/lib/bill_core/aggregate.py
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .calculator import DAYS_PER_MONTH, share
from .models import ApplianceUsage, BillCalculation, CategoryUsage, SavedBill, parse_datetime


class _Running:
    """Sums for one merge key plus the number of snapshots it appeared in."""

    def __init__(self, first):
        self.first = first
        self.kwh = 0.0
        self.cost = 0.0
        self.count = 0
        self._last_snapshot = None

    def add(self, snapshot: int, kwh: float, cost: float):
        self.kwh += kwh
        self.cost += cost
        if snapshot != self._last_snapshot:
            self.count += 1
            self._last_snapshot = snapshot


def aggregate_bills(calculations: Sequence[BillCalculation]) -> BillCalculation:
    """
    Average several bill snapshots into one BillCalculation.

    Totals are averaged over all snapshots. Appliance entries merge on
    (name, wattage) and category entries on category name; each merged
    entry is averaged over the snapshots it appears in. Both kinds of
    percentage are cost shares of the averaged monthly bill, so a single
    snapshot aggregates to itself.
    """
    if not calculations:
        return BillCalculation()

    n = len(calculations)
    avg_monthly = sum(c.monthly_bill for c in calculations) / n
    avg_yearly = sum(c.yearly_bill for c in calculations) / n
    avg_kwh = sum(c.total_kwh for c in calculations) / n

    appliances: Dict[Any, _Running] = OrderedDict()
    categories: Dict[str, _Running] = OrderedDict()
    for index, calc in enumerate(calculations):
        for usage in calc.appliance_breakdown:
            running = appliances.setdefault(usage.merge_key, _Running(usage))
            running.add(index, usage.monthly_kwh, usage.monthly_cost)
        for cat in calc.category_breakdown:
            running = categories.setdefault(cat.category, _Running(cat))
            running.add(index, cat.monthly_kwh, cat.monthly_cost)

    appliance_breakdown: List[ApplianceUsage] = []
    for running in appliances.values():
        kwh = running.kwh / running.count
        cost = running.cost / running.count
        appliance_breakdown.append(ApplianceUsage(
            appliance=running.first.appliance,
            monthly_kwh=kwh,
            monthly_cost=cost,
            percentage=share(cost, avg_monthly),
        ))

    category_breakdown: List[CategoryUsage] = []
    for running in categories.values():
        kwh = running.kwh / running.count
        cost = running.cost / running.count
        category_breakdown.append(CategoryUsage(
            category=running.first.category,
            monthly_kwh=kwh,
            monthly_cost=cost,
            percentage=share(cost, avg_monthly),
            color=running.first.color,
        ))

    return BillCalculation(
        total_kwh=avg_kwh,
        monthly_bill=avg_monthly,
        yearly_bill=avg_yearly,
        daily_average=avg_kwh / DAYS_PER_MONTH,
        appliance_breakdown=appliance_breakdown,
        category_breakdown=category_breakdown,
    )


def aggregate_saved_bills(bills: Iterable[SavedBill]) -> BillCalculation:
    return aggregate_bills([b.calculation for b in bills])


def bill_statistics(bills: Sequence[SavedBill]) -> Dict[str, Any]:
    """
    Summary figures over saved bills.

    trend_percentage compares the newest bill (by created_at) against
    the oldest one.
    """
    if not bills:
        return {
            "total_bills": 0,
            "average_monthly": 0.0,
            "average_kwh": 0.0,
            "total_yearly": 0.0,
            "highest_bill": None,
            "lowest_bill": None,
            "trend_percentage": 0.0,
        }

    count = len(bills)
    average_monthly = sum(b.calculation.monthly_bill for b in bills) / count
    average_kwh = sum(b.calculation.total_kwh for b in bills) / count

    # ties keep the earliest entry in the list
    highest: Optional[SavedBill] = max(bills, key=lambda b: b.calculation.monthly_bill)
    lowest: Optional[SavedBill] = min(bills, key=lambda b: b.calculation.monthly_bill)

    trend = 0.0
    by_date = sorted(bills, key=lambda b: parse_datetime(b.created_at))
    oldest, newest = by_date[0].calculation.monthly_bill, by_date[-1].calculation.monthly_bill
    if count > 1 and oldest != 0:
        trend = (newest - oldest) / oldest * 100

    return {
        "total_bills": count,
        "average_monthly": average_monthly,
        "average_kwh": average_kwh,
        "total_yearly": average_monthly * 12,
        "highest_bill": highest,
        "lowest_bill": lowest,
        "trend_percentage": trend,
    }
