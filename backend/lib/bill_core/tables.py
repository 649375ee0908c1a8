# backend/lib/bill_core/tables.py
from typing import Dict, List, Mapping, TypeVar

K = TypeVar("K")
V = TypeVar("V")

# Regional electricity rates (USD per kWh)
REGIONAL_RATES: Dict[str, float] = {
    "California": 0.23,
    "New York": 0.20,
    "Texas": 0.12,
    "Florida": 0.13,
    "Illinois": 0.13,
    "Pennsylvania": 0.14,
    "Ohio": 0.13,
    "Georgia": 0.12,
    "North Carolina": 0.12,
    "Michigan": 0.16,
    "National Average": 0.16,
}
DEFAULT_REGION = "National Average"

TIME_OF_USE_MULTIPLIERS: Dict[str, float] = {
    "peak": 1.5,      # 4-9 PM weekdays
    "standard": 1.0,  # all other times
    "off_peak": 0.8,  # 10 PM - 6 AM
}

# Assumed share of usage in each time-of-use band
TIME_OF_USE_MIX: Dict[str, float] = {
    "peak": 0.3,
    "standard": 0.4,
    "off_peak": 0.3,
}

SEASONAL_MULTIPLIERS: Dict[str, float] = {
    "summer": 1.3,  # AC usage
    "winter": 1.2,  # heating
    "spring": 0.9,
    "fall": 0.9,
}

HOME_EFFICIENCY_FACTORS: Dict[str, float] = {
    "poor": 1.3,
    "average": 1.0,
    "good": 0.85,
    "excellent": 0.7,
}

APPLIANCE_EFFICIENCY_FACTORS: Dict[str, float] = {
    "Refrigerator": 0.85,
    "Air Conditioner": 1.2,
    "Water Heater": 1.1,
    "Washing Machine": 0.9,
    "Dryer": 1.0,
    "Dishwasher": 0.8,
    "Television": 0.7,
    "Computer": 0.9,
    "Laptop": 0.6,
    "LED Light Bulb": 0.2,
    "Microwave": 1.0,
    "Oven": 1.1,
}

SEASONAL_CATEGORY = "Heating & Cooling"

CATEGORY_COLORS: Dict[str, str] = {
    "Heating & Cooling": "#EF4444",
    "Kitchen": "#F97316",
    "Lighting": "#EAB308",
    "Electronics": "#3B82F6",
    "Laundry": "#8B5CF6",
    "Water Heating": "#06B6D4",
    "Other": "#6B7280",
}
DEFAULT_COLOR = CATEGORY_COLORS["Other"]

CATEGORIES: List[str] = list(CATEGORY_COLORS)

TYPICAL_USAGE: Dict[str, Dict[str, float]] = {
    "Refrigerator": {"wattage": 150, "hours_per_day": 24},
    "Air Conditioner": {"wattage": 3500, "hours_per_day": 8},
    "Water Heater": {"wattage": 4000, "hours_per_day": 3},
    "Washing Machine": {"wattage": 1000, "hours_per_day": 1},
    "Dryer": {"wattage": 3000, "hours_per_day": 1},
    "Dishwasher": {"wattage": 1800, "hours_per_day": 1},
    "Television": {"wattage": 100, "hours_per_day": 5},
    "Computer": {"wattage": 300, "hours_per_day": 8},
    "Laptop": {"wattage": 65, "hours_per_day": 8},
    "LED Light Bulb": {"wattage": 10, "hours_per_day": 6},
    "Microwave": {"wattage": 1200, "hours_per_day": 0.5},
    "Oven": {"wattage": 2400, "hours_per_day": 1},
}
DEFAULT_USAGE: Dict[str, float] = {"wattage": 100, "hours_per_day": 4}

# Presets offered for one-click entry
COMMON_APPLIANCES: List[Dict] = [
    {"name": "Refrigerator", "category": "Kitchen", "wattage": 150, "hoursPerDay": 24, "daysPerMonth": 30},
    {"name": "Air Conditioner", "category": "Heating & Cooling", "wattage": 3500, "hoursPerDay": 8, "daysPerMonth": 30},
    {"name": "LED Light Bulb", "category": "Lighting", "wattage": 10, "hoursPerDay": 6, "daysPerMonth": 30},
    {"name": "Television (LED)", "category": "Electronics", "wattage": 100, "hoursPerDay": 5, "daysPerMonth": 30},
    {"name": "Laptop", "category": "Electronics", "wattage": 65, "hoursPerDay": 8, "daysPerMonth": 30},
    {"name": "Washing Machine", "category": "Laundry", "wattage": 1000, "hoursPerDay": 1, "daysPerMonth": 10},
    {"name": "Water Heater", "category": "Water Heating", "wattage": 4000, "hoursPerDay": 3, "daysPerMonth": 30},
    {"name": "Microwave", "category": "Kitchen", "wattage": 1200, "hoursPerDay": 0.5, "daysPerMonth": 25},
]


def lookup(table: Mapping[K, V], key: K, default: V) -> V:
    """Total lookup: returns default for any key the table does not hold."""
    return table[key] if key in table else default


def time_of_use_blend() -> float:
    """Weighted rate multiplier for the assumed usage mix: 0.3*1.5 + 0.4*1.0 + 0.3*0.8."""
    return sum(TIME_OF_USE_MIX[band] * TIME_OF_USE_MULTIPLIERS[band] for band in TIME_OF_USE_MIX)


def average_usage(appliance_name: str) -> Dict[str, float]:
    """Typical wattage and daily hours for a known appliance name."""
    return dict(lookup(TYPICAL_USAGE, appliance_name, DEFAULT_USAGE))
