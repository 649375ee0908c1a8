# backend/lib/bill_core/tips.py
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional

from .models import BillCalculation


@dataclass(frozen=True)
class EnergyTip:
    title: str
    description: str
    potential_savings: str
    difficulty: str  # Easy / Medium / Hard
    category: str

    def to_dict(self) -> Dict[str, str]:
        data = asdict(self)
        data["potentialSavings"] = data.pop("potential_savings")
        return data


ENERGY_TIPS: List[EnergyTip] = [
    EnergyTip(
        "Switch to LED Light Bulbs",
        "Replace incandescent bulbs with LED bulbs to reduce lighting costs by up to 80%. "
        "LEDs last 25 times longer and use significantly less energy.",
        "$75-200/year", "Easy", "Lighting",
    ),
    EnergyTip(
        "Unplug Electronics When Not in Use",
        "Electronics continue to draw power even when turned off. Unplug chargers, TVs, "
        "and other devices to eliminate phantom loads.",
        "$50-100/year", "Easy", "Electronics",
    ),
    EnergyTip(
        "Use a Programmable Thermostat",
        "Set your thermostat to automatically adjust temperature when you're away. "
        "This can reduce heating and cooling costs by 10-15%.",
        "$180-300/year", "Medium", "Heating & Cooling",
    ),
    EnergyTip(
        "Wash Clothes in Cold Water",
        "About 90% of washing machine energy goes to heating water. Use cold water settings "
        "to significantly reduce energy consumption.",
        "$60-120/year", "Easy", "Laundry",
    ),
    EnergyTip(
        "Seal Air Leaks",
        "Use weatherstripping and caulk to seal gaps around windows and doors. "
        "This prevents conditioned air from escaping.",
        "$200-400/year", "Medium", "Heating & Cooling",
    ),
    EnergyTip(
        "Use Energy-Efficient Appliances",
        "When replacing appliances, choose ENERGY STAR certified models. "
        "They use 10-50% less energy than standard models.",
        "$300-600/year", "Hard", "Kitchen",
    ),
    EnergyTip(
        "Lower Water Heater Temperature",
        "Set your water heater to 120°F (49°C) instead of the default 140°F (60°C). "
        "You won't notice the difference but will save energy.",
        "$50-100/year", "Easy", "Water Heating",
    ),
    EnergyTip(
        "Use Power Strips",
        "Connect multiple devices to power strips and turn them off when not in use. "
        "This makes it easy to eliminate standby power consumption.",
        "$25-75/year", "Easy", "Electronics",
    ),
]

# Electronics tips apply to every household
ALWAYS_RELEVANT = "Electronics"


def relevant_tips(calculation: Optional[BillCalculation] = None) -> List[EnergyTip]:
    """
    Tips for categories present in the calculation come first,
    the remaining tips follow in their usual order.
    """
    if calculation is None:
        return list(ENERGY_TIPS)

    present = {c.category for c in calculation.category_breakdown}
    present.add(ALWAYS_RELEVANT)
    first = [t for t in ENERGY_TIPS if t.category in present]
    rest = [t for t in ENERGY_TIPS if t.category not in present]
    return first + rest
