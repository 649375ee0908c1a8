import pytest

from backend.lib.bill_core.calculator import (
    calculate_bill,
    effective_rate,
    format_currency,
    format_kwh,
    round_money,
)
from backend.lib.bill_core.models import BillSettings
from backend.lib.bill_core.tables import lookup, average_usage, time_of_use_blend

from conftest import make_appliance, make_household

TEXAS = BillSettings(region="Texas", season="spring", efficiency_rating="average")


def test_single_appliance_in_texas():
    bill = calculate_bill([make_appliance()], TEXAS)
    usage = bill.appliance_breakdown[0]
    # 100 W * 10 h * 30 days / 1000 = 30 kWh, name not in the factor table
    assert usage.monthly_kwh == pytest.approx(30.0)
    assert usage.monthly_cost == pytest.approx(3.60)
    assert usage.percentage == pytest.approx(100.0)
    assert bill.total_kwh == pytest.approx(30.0)
    assert bill.monthly_bill == pytest.approx(3.60)


def test_empty_list_gives_zero_bill():
    bill = calculate_bill([], TEXAS)
    assert bill.total_kwh == 0
    assert bill.monthly_bill == 0
    assert bill.yearly_bill == 0
    assert bill.daily_average == 0
    assert bill.appliance_breakdown == []
    assert bill.category_breakdown == []


def test_percentages_sum_to_100():
    bill = calculate_bill(make_household(), BillSettings())
    assert sum(u.percentage for u in bill.appliance_breakdown) == pytest.approx(100.0)
    assert sum(c.percentage for c in bill.category_breakdown) == pytest.approx(100.0)


def test_yearly_and_daily_derived_exactly():
    bill = calculate_bill(make_household(), BillSettings(region="California", use_time_of_use=True))
    assert bill.yearly_bill == bill.monthly_bill * 12
    assert bill.daily_average == bill.total_kwh / 30


def test_time_of_use_scales_rate_by_blend():
    flat = calculate_bill(make_household(), TEXAS)
    tou = calculate_bill(make_household(), BillSettings(region="Texas", season="spring", use_time_of_use=True))
    blend = 0.3 * 1.5 + 0.4 * 1.0 + 0.3 * 0.8
    assert time_of_use_blend() == pytest.approx(blend)
    assert tou.total_kwh == pytest.approx(flat.total_kwh)
    assert tou.monthly_bill == pytest.approx(flat.monthly_bill * blend)
    assert effective_rate(BillSettings(region="Texas", use_time_of_use=True)) == pytest.approx(0.12 * blend)


@pytest.mark.parametrize("season,factor", [("summer", 1.3), ("winter", 1.2), ("spring", 0.9), ("fall", 0.9)])
def test_season_only_scales_heating_and_cooling(season, factor):
    heater = make_appliance("h", "Space Heater", "Heating & Cooling", 1500, 4, 30)
    tv = make_appliance("t", "Projector", "Electronics", 200, 3, 30)
    bill = calculate_bill([heater, tv], BillSettings(season=season))
    heater_usage, tv_usage = bill.appliance_breakdown
    assert heater_usage.monthly_kwh == pytest.approx(1500 * 4 * 30 / 1000 * factor)
    assert tv_usage.monthly_kwh == pytest.approx(200 * 3 * 30 / 1000)


def test_name_and_home_efficiency_factors():
    fridge = make_appliance("f", "Refrigerator", "Kitchen", 150, 24, 30)
    bill = calculate_bill([fridge], BillSettings(efficiency_rating="poor"))
    assert bill.total_kwh == pytest.approx(108 * 0.85 * 1.3)

    # lookup is by exact name only
    lower = make_appliance("f", "refrigerator", "Kitchen", 150, 24, 30)
    assert calculate_bill([lower], BillSettings()).total_kwh == pytest.approx(108)


def test_unknown_region_and_category_fall_back():
    odd = make_appliance("x", "Aquarium Pump", "Pets", 20, 24, 30)
    bill = calculate_bill([odd], BillSettings(region="Atlantis", efficiency_rating="unknown", season="monsoon"))
    assert bill.monthly_bill == pytest.approx(14.4 * 0.16)
    category = bill.category_breakdown[0]
    assert category.category == "Pets"
    assert category.color == "#6B7280"


def test_zero_usage_does_not_divide_by_zero():
    bill = calculate_bill([make_appliance(wattage=0), make_appliance("a2", hours=0)], TEXAS)
    assert bill.total_kwh == 0
    assert bill.monthly_bill == 0
    assert [u.percentage for u in bill.appliance_breakdown] == [0.0, 0.0]
    assert bill.category_breakdown[0].percentage == 0.0


def test_category_rollup_keeps_first_seen_order():
    bill = calculate_bill(make_household(), BillSettings())
    assert [c.category for c in bill.category_breakdown] == [
        "Kitchen", "Heating & Cooling", "Lighting", "Electronics",
    ]
    kitchen = bill.category_breakdown[0]
    fridge, microwave = bill.appliance_breakdown[0], bill.appliance_breakdown[4]
    assert kitchen.monthly_kwh == pytest.approx(fridge.monthly_kwh + microwave.monthly_kwh)
    assert kitchen.color == "#F97316"


def test_inputs_are_not_mutated():
    appliances = make_household()
    before = list(appliances)
    calculate_bill(appliances, BillSettings())
    assert appliances == before


def test_lookup_and_typical_usage():
    assert lookup({"a": 1}, "a", 0) == 1
    assert lookup({"a": 1}, "b", 0) == 0
    assert average_usage("Oven") == {"wattage": 2400, "hours_per_day": 1}
    assert average_usage("Teleporter") == {"wattage": 100, "hours_per_day": 4}


def test_formatting():
    assert round_money(2.375) == 2.38
    assert format_currency(1234.5) == "$1,234.50"
    assert format_currency(3.599999) == "$3.60"
    assert format_kwh(30) == "30.0 kWh"


def test_time_of_use_flag_needs_a_real_boolean():
    assert BillSettings.from_dict({"useTimeOfUse": True}).use_time_of_use is True
    assert BillSettings.from_dict({"useTimeOfUse": "false"}).use_time_of_use is False
    assert BillSettings.from_dict({"useTimeOfUse": 1}).use_time_of_use is False
    assert BillSettings.from_dict(None).use_time_of_use is False
