# backend/lib/bill_core/models.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

SEASONS = ("spring", "summer", "fall", "winter")
HOME_SIZES = ("small", "medium", "large")
EFFICIENCY_RATINGS = ("poor", "average", "good", "excellent")


@dataclass(frozen=True)
class Appliance:
    id: str
    name: str
    category: str
    wattage: float
    hours_per_day: float
    days_per_month: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "wattage": self.wattage,
            "hoursPerDay": self.hours_per_day,
            "daysPerMonth": self.days_per_month,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Appliance":
        """
        Build an Appliance from its JSON shape.
        Raises KeyError on a missing field and ValueError on a non-numeric one.
        """
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            category=str(data["category"]),
            wattage=float(data["wattage"]),
            hours_per_day=float(data["hoursPerDay"]),
            days_per_month=float(data["daysPerMonth"]),
        )


@dataclass(frozen=True)
class BillSettings:
    region: str = "National Average"
    use_time_of_use: bool = False
    season: str = "summer"
    home_size: str = "medium"  # not used by the calculation
    efficiency_rating: str = "average"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "region": self.region,
            "useTimeOfUse": self.use_time_of_use,
            "season": self.season,
            "homeSize": self.home_size,
            "efficiencyRating": self.efficiency_rating,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "BillSettings":
        # missing fields fall back to the defaults
        data = data or {}
        default = cls()
        return cls(
            region=str(data.get("region", default.region)),
            # only a JSON true turns it on; "false" must not
            use_time_of_use=data.get("useTimeOfUse", default.use_time_of_use) is True,
            season=str(data.get("season", default.season)),
            home_size=str(data.get("homeSize", default.home_size)),
            efficiency_rating=str(data.get("efficiencyRating", default.efficiency_rating)),
        )


@dataclass
class ApplianceUsage:
    appliance: Appliance
    monthly_kwh: float
    monthly_cost: float
    percentage: float = 0.0

    @property
    def merge_key(self) -> Tuple[str, float]:
        return (self.appliance.name, self.appliance.wattage)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "appliance": self.appliance.to_dict(),
            "monthlyKwh": self.monthly_kwh,
            "monthlyCost": self.monthly_cost,
            "percentage": self.percentage,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApplianceUsage":
        return cls(
            appliance=Appliance.from_dict(data["appliance"]),
            monthly_kwh=float(data["monthlyKwh"]),
            monthly_cost=float(data["monthlyCost"]),
            percentage=float(data.get("percentage", 0.0)),
        )


@dataclass
class CategoryUsage:
    category: str
    monthly_kwh: float
    monthly_cost: float
    percentage: float
    color: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "monthlyKwh": self.monthly_kwh,
            "monthlyCost": self.monthly_cost,
            "percentage": self.percentage,
            "color": self.color,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CategoryUsage":
        return cls(
            category=str(data["category"]),
            monthly_kwh=float(data.get("monthlyKwh", 0.0)),
            monthly_cost=float(data["monthlyCost"]),
            percentage=float(data.get("percentage", 0.0)),
            color=str(data.get("color", "")),
        )


@dataclass
class BillCalculation:
    total_kwh: float = 0.0
    monthly_bill: float = 0.0
    yearly_bill: float = 0.0
    daily_average: float = 0.0
    appliance_breakdown: List[ApplianceUsage] = field(default_factory=list)
    category_breakdown: List[CategoryUsage] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalKwh": self.total_kwh,
            "monthlyBill": self.monthly_bill,
            "yearlyBill": self.yearly_bill,
            "dailyAverage": self.daily_average,
            "applianceBreakdown": [u.to_dict() for u in self.appliance_breakdown],
            "categoryBreakdown": [c.to_dict() for c in self.category_breakdown],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BillCalculation":
        return cls(
            total_kwh=float(data["totalKwh"]),
            monthly_bill=float(data["monthlyBill"]),
            yearly_bill=float(data["yearlyBill"]),
            daily_average=float(data["dailyAverage"]),
            appliance_breakdown=[ApplianceUsage.from_dict(u) for u in data.get("applianceBreakdown", [])],
            category_breakdown=[CategoryUsage.from_dict(c) for c in data.get("categoryBreakdown", [])],
        )


def parse_datetime(value: Any) -> datetime:
    """
    Accepts a datetime or an ISO8601 string, e.g. 2025-11-01T00:00:00Z

    Bills are stamped with naive datetimes, so offset-aware values are
    converted to UTC and returned naive.
    """
    if not isinstance(value, datetime):
        # Convert timestamp with Z to +00:00 for fromisoformat
        value = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


@dataclass
class SavedBill:
    id: str
    name: str
    month: str
    year: int
    appliances: List[Appliance]
    settings: BillSettings
    calculation: BillCalculation
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "month": self.month,
            "year": self.year,
            "appliances": [a.to_dict() for a in self.appliances],
            "settings": self.settings.to_dict(),
            "calculation": self.calculation.to_dict(),
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SavedBill":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            month=str(data.get("month", "")),
            year=int(data.get("year", 0)),
            appliances=[Appliance.from_dict(a) for a in data.get("appliances", [])],
            settings=BillSettings.from_dict(data.get("settings")),
            calculation=BillCalculation.from_dict(data["calculation"]),
            created_at=parse_datetime(data["createdAt"]),
            updated_at=parse_datetime(data["updatedAt"]),
        )


@dataclass
class UserData:
    appliances: List[Appliance] = field(default_factory=list)
    bill_settings: BillSettings = field(default_factory=BillSettings)
    saved_bills: List[SavedBill] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "appliances": [a.to_dict() for a in self.appliances],
            "billSettings": self.bill_settings.to_dict(),
            "savedBills": [b.to_dict() for b in self.saved_bills],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserData":
        return cls(
            appliances=[Appliance.from_dict(a) for a in data.get("appliances") or []],
            bill_settings=BillSettings.from_dict(data.get("billSettings")),
            saved_bills=[SavedBill.from_dict(b) for b in data.get("savedBills") or []],
        )


@dataclass(frozen=True)
class User:
    email: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"email": self.email, "name": self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(email=str(data["email"]), name=str(data.get("name", "")))
