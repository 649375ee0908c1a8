"""
Application state for one signed-in user.

BillController owns the current AppState and replaces it on every
change; views receive AppState snapshots and never mutate them. Changes
to appliances and settings are saved through the UserStore as they
happen.
"""

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, Dict, Optional, Tuple

from backend.lib.bill_core.aggregate import aggregate_saved_bills
from backend.lib.bill_core.calculator import calculate_bill
from backend.lib.bill_core.models import Appliance, BillCalculation, BillSettings, SavedBill, User
from backend.lib.bill_core.tables import COMMON_APPLIANCES
from backend.lib.user_store import UserStore

logger = logging.getLogger(__name__)


class SignInError(ValueError):
    """Raised when the simulated sign-in form is rejected."""


@dataclass(frozen=True)
class AppState:
    user: Optional[User] = None
    appliances: Tuple[Appliance, ...] = ()
    settings: BillSettings = field(default_factory=BillSettings)
    saved_bills: Tuple[SavedBill, ...] = ()
    current_bill_name: str = ""


def _new_id() -> str:
    return uuid.uuid4().hex


class BillController:
    def __init__(self, store: UserStore,
                 clock: Callable[[], datetime] = datetime.now,
                 id_factory: Callable[[], str] = _new_id):
        self.store = store
        self.clock = clock
        self.id_factory = id_factory
        self.state = AppState()

    # ------------------------------------------------------------------
    # session
    # ------------------------------------------------------------------

    def sign_in(self, email: str, password: str, name: str = "",
                confirm_password: Optional[str] = None, sign_up: bool = False) -> AppState:
        """
        Simulated sign-in: any email/password pair is accepted. Sign-up
        only checks that both passwords match.
        """
        email = (email or "").strip()
        if not email or not password:
            raise SignInError("Email and password are required")
        if sign_up and password != confirm_password:
            raise SignInError("Passwords do not match")

        if not name:
            name = email.split("@")[0]
        user = User(email=email, name=name)
        self.store.set_current_user(user)
        return self.load_user(user)

    def resume(self) -> AppState:
        """Restore the remembered user, if any."""
        user = self.store.get_current_user()
        if user is not None:
            return self.load_user(user)
        return self.state

    def load_user(self, user: User) -> AppState:
        """Replace the state with the stored data of user."""
        data = self.store.get_user_data(user.email)
        if data is None:
            # new user - defaults
            self.state = AppState(user=user)
        else:
            self.state = AppState(
                user=user,
                appliances=tuple(data.appliances),
                settings=data.bill_settings,
                saved_bills=tuple(data.saved_bills),
            )
        logger.info("Loaded %s with %d appliances", user.email, len(self.state.appliances))
        return self.state

    def sign_out(self) -> AppState:
        self.store.clear_current_user()
        self.state = AppState()
        return self.state

    # ------------------------------------------------------------------
    # appliances and settings
    # ------------------------------------------------------------------

    def set_appliances(self, appliances) -> AppState:
        appliances = tuple(appliances)
        self.state = replace(self.state, appliances=appliances)
        if self.state.user:
            self.store.save_appliances(self.state.user.email, list(appliances))
        return self.state

    def add_appliance(self, name: str, category: str, wattage: float,
                      hours_per_day: float, days_per_month: float) -> AppState:
        appliance = Appliance(
            id=self.id_factory(),
            name=name,
            category=category,
            wattage=wattage,
            hours_per_day=hours_per_day,
            days_per_month=days_per_month,
        )
        return self.set_appliances(self.state.appliances + (appliance,))

    def add_common_appliance(self, name: str) -> AppState:
        """Add one of the preset appliances by name."""
        for preset in COMMON_APPLIANCES:
            if preset["name"] == name:
                return self.add_appliance(
                    preset["name"], preset["category"], preset["wattage"],
                    preset["hoursPerDay"], preset["daysPerMonth"],
                )
        raise KeyError(f"Unknown preset appliance: {name}")

    def remove_appliance(self, appliance_id: str) -> AppState:
        return self.set_appliances(tuple(a for a in self.state.appliances if a.id != appliance_id))

    def update_appliance(self, appliance_id: str, **changes) -> AppState:
        """Overwrite the given fields; the id never changes."""
        changes.pop("id", None)
        return self.set_appliances(tuple(
            replace(a, **changes) if a.id == appliance_id else a
            for a in self.state.appliances
        ))

    def reset_appliances(self) -> AppState:
        return self.set_appliances(())

    def change_settings(self, settings: BillSettings) -> AppState:
        self.state = replace(self.state, settings=settings)
        if self.state.user:
            self.store.save_bill_settings(self.state.user.email, settings)
        return self.state

    # ------------------------------------------------------------------
    # calculations
    # ------------------------------------------------------------------

    def current_bill(self) -> Optional[BillCalculation]:
        """Bill for the appliances being edited; None while there are none."""
        if not self.state.appliances:
            return None
        return calculate_bill(self.state.appliances, self.state.settings)

    def aggregated_bill(self) -> Optional[BillCalculation]:
        """Average over saved bills; None while nothing is saved."""
        if not self.state.saved_bills:
            return None
        return aggregate_saved_bills(self.state.saved_bills)

    # ------------------------------------------------------------------
    # saved bills
    # ------------------------------------------------------------------

    def save_current_bill(self, name: str = "") -> Optional[SavedBill]:
        user = self.state.user
        calculation = self.current_bill()
        if user is None or calculation is None:
            return None

        now = self.clock()
        bill = SavedBill(
            id=self.id_factory(),
            name=name or self.state.current_bill_name or f"Bill {now.month}/{now.day}/{now.year}",
            month=now.strftime("%B"),
            year=now.year,
            appliances=list(self.state.appliances),
            settings=self.state.settings,
            calculation=calculation,
            created_at=now,
            updated_at=now,
        )
        if not self.store.save_bill(user.email, bill):
            return None
        self.state = replace(self.state, saved_bills=(bill,) + self.state.saved_bills, current_bill_name="")
        return bill

    def delete_bill(self, bill_id: str) -> AppState:
        if self.state.user:
            self.store.delete_bill(self.state.user.email, bill_id)
        self.state = replace(self.state, saved_bills=tuple(b for b in self.state.saved_bills if b.id != bill_id))
        return self.state

    def load_bill(self, bill_id: str) -> AppState:
        """Put a saved bill's appliances and settings back into the editor."""
        for bill in self.state.saved_bills:
            if bill.id == bill_id:
                self.set_appliances(tuple(bill.appliances))
                self.change_settings(bill.settings)
                self.state = replace(self.state, current_bill_name=bill.name)
                return self.state
        raise KeyError(f"Unknown bill: {bill_id}")

    # ------------------------------------------------------------------
    # import / export
    # ------------------------------------------------------------------

    def export_data(self) -> Optional[str]:
        if self.state.user is None:
            return None
        return self.store.export_user_data(self.state.user.email)

    def export_filename(self) -> str:
        return f"powerpredict-data-{self.state.user.email}-{self.clock().date().isoformat()}.json"

    def import_data(self, json_text: str) -> bool:
        user = self.state.user
        if user is None:
            return False
        if not self.store.import_user_data(user.email, json_text):
            return False
        self.load_user(user)
        return True

    def statistics(self) -> Dict:
        return self.store.bill_statistics(self.state.user.email) if self.state.user else {}
