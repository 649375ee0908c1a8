# backend/run_local.py
import json
import sys
from pathlib import Path

from backend.lib.bill_core.calculator import calculate_bill, format_currency, format_kwh
from backend.lib.bill_core.models import Appliance, BillSettings


def main(json_path):
    """
    Print an estimate for a JSON file holding {"appliances": [...], "billSettings": {...}},
    e.g. one produced by the export endpoint.
    """
    data = json.loads(Path(json_path).read_text())
    appliances = [Appliance.from_dict(a) for a in data.get("appliances", [])]
    settings = BillSettings.from_dict(data.get("billSettings"))
    bill = calculate_bill(appliances, settings)

    print(f"{len(appliances)} appliances, region {settings.region}:")
    for usage in bill.appliance_breakdown:
        print(f" - {usage.appliance.name}: {format_kwh(usage.monthly_kwh)}, "
              f"{format_currency(usage.monthly_cost)} ({usage.percentage:.1f}%)")
    print(f"Monthly: {format_currency(bill.monthly_bill)}  Yearly: {format_currency(bill.yearly_bill)}  "
          f"Daily average: {format_kwh(bill.daily_average)}")


if __name__ == "__main__":
    path = sys.argv[1] if len(sys.argv) > 1 else "tests/sample_user.json"
    main(path)
