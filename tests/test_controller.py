import json
from itertools import count

import pytest

from backend.lib.bill_core.models import BillSettings, User
from backend.lib.controller import AppState, BillController, SignInError

EMAIL = "ana@example.com"


@pytest.fixture
def controller(store, clock):
    ids = count(1)
    return BillController(store, clock=clock, id_factory=lambda: f"id{next(ids)}")


def signed_in(controller):
    controller.sign_in(EMAIL, "secret", name="Ana")
    return controller


def test_sign_in_defaults_name_to_email_prefix(controller, store):
    state = controller.sign_in(EMAIL, "secret")
    assert state.user == User(EMAIL, "ana")
    assert state.appliances == ()
    assert state.settings == BillSettings()
    assert store.get_current_user() == User(EMAIL, "ana")


def test_sign_up_requires_matching_passwords(controller):
    with pytest.raises(SignInError):
        controller.sign_in(EMAIL, "secret", confirm_password="other", sign_up=True)
    with pytest.raises(SignInError):
        controller.sign_in("", "secret")
    state = controller.sign_in(EMAIL, "secret", name="Ana", confirm_password="secret", sign_up=True)
    assert state.user.name == "Ana"


def test_appliance_changes_are_saved(controller, store):
    signed_in(controller)
    controller.add_appliance("Laptop", "Electronics", 65, 8, 30)
    controller.add_common_appliance("Refrigerator")
    state = controller.update_appliance("id1", hours_per_day=4, id="ignored")

    assert [a.id for a in state.appliances] == ["id1", "id2"]
    assert state.appliances[0].hours_per_day == 4
    assert store.get_user_data(EMAIL).appliances == list(state.appliances)

    state = controller.remove_appliance("id2")
    assert [a.name for a in state.appliances] == ["Laptop"]
    assert controller.reset_appliances().appliances == ()
    assert store.get_user_data(EMAIL).appliances == []


def test_unknown_preset_raises(controller):
    with pytest.raises(KeyError):
        controller.add_common_appliance("Flux Capacitor")


def test_state_snapshots_are_not_changed_later(controller):
    signed_in(controller)
    before = controller.state
    controller.add_appliance("Laptop", "Electronics", 65, 8, 30)
    assert before.appliances == ()
    assert controller.state is not before


def test_sign_in_restores_saved_data(controller, store, clock):
    signed_in(controller)
    controller.add_appliance("Laptop", "Electronics", 65, 8, 30)
    controller.change_settings(BillSettings(region="Georgia"))
    controller.sign_out()
    assert controller.state == AppState()
    assert store.get_current_user() is None

    other = BillController(store, clock=clock)
    state = other.sign_in(EMAIL, "secret")
    assert [a.name for a in state.appliances] == ["Laptop"]
    assert state.settings.region == "Georgia"


def test_resume_uses_remembered_user(controller, store, clock):
    signed_in(controller)
    state = BillController(store, clock=clock).resume()
    assert state.user == User(EMAIL, "Ana")
    assert BillController(type(store)(type(store.backend)())).resume().user is None


def test_current_bill_needs_appliances(controller):
    signed_in(controller)
    assert controller.current_bill() is None
    controller.add_appliance("Laptop", "Electronics", 65, 8, 30)
    assert controller.current_bill().total_kwh == pytest.approx(65 * 8 * 30 / 1000 * 0.6)


def test_save_and_load_bill(controller, store, clock):
    signed_in(controller)
    assert controller.save_current_bill() is None

    controller.add_appliance("Laptop", "Electronics", 65, 8, 30)
    bill = controller.save_current_bill()
    assert bill.name == "Bill 11/28/2025"
    assert bill.month == "November"
    assert bill.year == 2025
    assert bill.created_at == clock.now
    assert controller.state.saved_bills == (bill,)
    assert store.get_bills(EMAIL)[0].id == bill.id

    controller.reset_appliances()
    controller.change_settings(BillSettings(region="Texas"))
    state = controller.load_bill(bill.id)
    assert [a.name for a in state.appliances] == ["Laptop"]
    assert state.settings == BillSettings()
    assert state.current_bill_name == bill.name

    # a loaded bill saves again under its own name
    assert controller.save_current_bill().name == bill.name


def test_aggregated_bill_and_delete(controller):
    signed_in(controller)
    assert controller.aggregated_bill() is None
    controller.add_appliance("Laptop", "Electronics", 65, 8, 30)
    bill = controller.save_current_bill("October")
    assert controller.aggregated_bill() == bill.calculation

    state = controller.delete_bill(bill.id)
    assert state.saved_bills == ()
    assert controller.statistics()["total_bills"] == 0


def test_export_and_import(controller, clock):
    signed_in(controller)
    assert controller.export_filename() == "powerpredict-data-ana@example.com-2025-11-28.json"
    controller.add_appliance("Laptop", "Electronics", 65, 8, 30)
    controller.save_current_bill()
    exported = controller.export_data()

    controller.reset_appliances()
    assert controller.import_data(exported)
    assert [a.name for a in controller.state.appliances] == ["Laptop"]
    assert len(controller.state.saved_bills) == 1
    assert controller.import_data(json.dumps({"appliances": []})) is False


def test_signed_out_controller_does_not_persist(controller, store):
    controller.add_appliance("Laptop", "Electronics", 65, 8, 30)
    assert controller.export_data() is None
    assert controller.import_data("{}") is False
    assert controller.save_current_bill() is None
    assert controller.statistics() == {}
