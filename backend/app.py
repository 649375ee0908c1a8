"""
=============================================================================
POWERPREDICT - MAIN FLASK APPLICATION
=============================================================================
Backend server for the PowerPredict electricity bill estimator.

It provides REST API endpoints for:
- Estimating a monthly/yearly bill from a list of appliances
- Averaging several saved bills
- Storing each user's appliances, settings and saved bills
- Exporting / importing a user's data as JSON
- Chatting with an energy assistant (Google Gemini, keyword fallback)

Storage:
- Local JSON file under DATA_DIR (default)
- DynamoDB when USE_DYNAMODB=true

How to run:
    python -m backend.app

Then visit: http://127.0.0.1:5000
=============================================================================
"""

# =============================================================================
# IMPORTS
# =============================================================================

import logging
import os
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List

from flask import Flask, Response, jsonify, request

# dotenv - Load environment variables from .env file
# This must be called before any service reads its configuration
from dotenv import load_dotenv

load_dotenv()

from backend.lib.bill_core.aggregate import aggregate_bills, aggregate_saved_bills
from backend.lib.bill_core.calculator import calculate_bill, effective_rate
from backend.lib.bill_core.models import Appliance, BillCalculation, BillSettings, SavedBill, User
from backend.lib.bill_core.tables import CATEGORIES, COMMON_APPLIANCES, REGIONAL_RATES, average_usage
from backend.lib.bill_core.tips import relevant_tips
from backend.lib.chat_service import ChatError, ChatService
from backend.lib.controller import BillController, SignInError
from backend.lib.user_store import UserStore, backend_from_env

# =============================================================================
# LOGGING
# =============================================================================

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# =============================================================================
# FLASK APPLICATION AND SERVICES
# =============================================================================

app = Flask(__name__)

# Per-user storage (DynamoDB or local file, see user_store.backend_from_env)
store = UserStore(backend_from_env())

# Chat assistant - uses Gemini only when GEMINI_API_KEY is set
chat_service = ChatService()

# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

# Errors raised by the models' from_dict on a malformed payload
PAYLOAD_ERRORS = (KeyError, ValueError, TypeError)


def error(message: str, status: int = 400):
    return jsonify({"error": message}), status


def json_body() -> Dict[str, Any]:
    """The request's JSON object, or an empty dict."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def parse_appliances(items) -> List[Appliance]:
    """
    Appliances from a JSON list. Entries without an id get their
    position as id, so ad-hoc calculations need not invent one.
    """
    if not isinstance(items, list):
        raise ValueError("appliances must be a list")
    appliances = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValueError("each appliance must be an object")
        appliances.append(Appliance.from_dict({"id": str(index), **item}))
    return appliances


def controller_for(email: str) -> BillController:
    controller = BillController(store, clock=store.clock)
    controller.load_user(User(email=email, name=email.split("@")[0]))
    return controller


def bill_json(bill: SavedBill) -> Dict[str, Any]:
    return bill.to_dict() if bill else None


def statistics_json(stats: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "totalBills": stats["total_bills"],
        "averageMonthly": stats["average_monthly"],
        "averageKwh": stats["average_kwh"],
        "totalYearly": stats["total_yearly"],
        "highestBill": bill_json(stats["highest_bill"]),
        "lowestBill": bill_json(stats["lowest_bill"]),
        "trendPercentage": stats["trend_percentage"],
    }

# =============================================================================
# API ROUTES - BASIC ENDPOINTS
# =============================================================================

@app.route("/")
def home():
    """List the available endpoints."""
    return jsonify({
        "service": "powerpredict",
        "endpoints": [
            "POST /calculate",
            "POST /aggregate",
            "GET|POST /tips",
            "GET /reference",
            "POST /signin",
            "POST /signout",
            "GET /users/<email>",
            "PUT /users/<email>/appliances",
            "PUT /users/<email>/settings",
            "GET|POST /users/<email>/bills",
            "PUT|DELETE /users/<email>/bills/<bill_id>",
            "GET /users/<email>/aggregate",
            "GET /users/<email>/statistics",
            "GET /users/<email>/export",
            "POST /users/<email>/import",
            "POST /api/chat",
            "GET /api/health",
            "GET /api/test-gemini",
        ],
    })


@app.route("/reference", methods=["GET"])
def reference():
    """
    Lookup data for building the input form.

    Query Parameters:
        name (optional): an appliance name to get typical usage for

    Returns:
        JSON with regional rates, categories and preset appliances
    """
    data = {
        "regions": REGIONAL_RATES,
        "categories": CATEGORIES,
        "commonAppliances": COMMON_APPLIANCES,
    }
    name = request.args.get("name")
    if name:
        usage = average_usage(name)
        data["typicalUsage"] = {"wattage": usage["wattage"], "hoursPerDay": usage["hours_per_day"]}
    return jsonify(data)

# =============================================================================
# API ROUTES - CALCULATION
# =============================================================================

@app.route("/calculate", methods=["POST"])
def calculate():
    """
    Estimate a bill.

    Request Body (JSON):
        {
            "appliances": [
                {"name": "Laptop", "category": "Electronics",
                 "wattage": 65, "hoursPerDay": 8, "daysPerMonth": 30}
            ],
            "billSettings": {"region": "Texas", "useTimeOfUse": false}
        }

    Returns:
        The BillCalculation plus the effective rate per kWh
    """
    data = json_body()
    try:
        appliances = parse_appliances(data.get("appliances", []))
        settings = BillSettings.from_dict(data.get("billSettings"))
    except PAYLOAD_ERRORS as e:
        return error(f"Invalid appliances or settings: {e}")

    result = calculate_bill(appliances, settings).to_dict()
    result["ratePerKwh"] = effective_rate(settings)
    return jsonify(result)


@app.route("/aggregate", methods=["POST"])
def aggregate():
    """
    Average several bill calculations.

    Request Body (JSON):
        {"calculations": [<BillCalculation>, ...]}
    """
    items = json_body().get("calculations")
    if not isinstance(items, list):
        return error("calculations must be a list")
    try:
        calculations = [BillCalculation.from_dict(c) for c in items]
    except PAYLOAD_ERRORS as e:
        return error(f"Invalid calculation: {e}")
    return jsonify(aggregate_bills(calculations).to_dict())


@app.route("/tips", methods=["GET", "POST"])
def tips():
    """
    Energy-saving tips. POST a {"calculation": ...} body to get the
    tips for the bill's categories first.
    """
    calculation = None
    if request.method == "POST":
        raw = json_body().get("calculation")
        if raw is not None:
            try:
                calculation = BillCalculation.from_dict(raw)
            except PAYLOAD_ERRORS as e:
                return error(f"Invalid calculation: {e}")
    return jsonify({"tips": [t.to_dict() for t in relevant_tips(calculation)]})

# =============================================================================
# API ROUTES - SESSION
# =============================================================================

@app.route("/signin", methods=["POST"])
def signin():
    """
    Simulated sign-in / sign-up. There is no real authentication.

    Request Body (JSON):
        {"email": "...", "password": "...", "name": "...",
         "signUp": true, "confirmPassword": "..."}
    """
    data = json_body()
    controller = BillController(store, clock=store.clock)
    try:
        state = controller.sign_in(
            email=data.get("email", ""),
            password=data.get("password", ""),
            name=data.get("name", ""),
            confirm_password=data.get("confirmPassword"),
            sign_up=bool(data.get("signUp", False)),
        )
    except SignInError as e:
        return error(str(e))

    return jsonify({
        "user": state.user.to_dict(),
        "appliances": [a.to_dict() for a in state.appliances],
        "billSettings": state.settings.to_dict(),
        "savedBills": [b.to_dict() for b in state.saved_bills],
    })


@app.route("/signout", methods=["POST"])
def signout():
    BillController(store).sign_out()
    return jsonify({"signed_out": True})

# =============================================================================
# API ROUTES - USER DATA
# =============================================================================

@app.route("/users/<email>", methods=["GET"])
def get_user(email):
    data = store.get_user_data(email)
    if data is None:
        return error("User not found", 404)
    return jsonify(data.to_dict())


@app.route("/users/<email>/appliances", methods=["PUT"])
def put_appliances(email):
    """Replace the user's appliance list and return the new estimate."""
    try:
        appliances = [Appliance.from_dict(a) for a in json_body().get("appliances", [])]
    except PAYLOAD_ERRORS as e:
        return error(f"Invalid appliance: {e}")

    controller = controller_for(email)
    state = controller.set_appliances(appliances)
    calculation = calculate_bill(state.appliances, state.settings)
    return jsonify({
        "appliances": [a.to_dict() for a in state.appliances],
        "calculation": calculation.to_dict(),
    })


@app.route("/users/<email>/settings", methods=["PUT"])
def put_settings(email):
    controller = controller_for(email)
    state = controller.change_settings(BillSettings.from_dict(json_body()))
    return jsonify(state.settings.to_dict())


@app.route("/users/<email>/bills", methods=["GET"])
def list_bills(email):
    return jsonify({"bills": [b.to_dict() for b in store.get_bills(email)]})


@app.route("/users/<email>/bills", methods=["POST"])
def save_bill(email):
    """
    Save the user's current appliances and settings as a named bill.

    Request Body (JSON, all optional):
        {"name": "October", "appliances": [...], "billSettings": {...}}

    Appliances/settings given in the body replace the stored ones first.
    """
    data = json_body()
    controller = controller_for(email)
    try:
        if "appliances" in data:
            controller.set_appliances(Appliance.from_dict(a) for a in data["appliances"])
        if "billSettings" in data:
            controller.change_settings(BillSettings.from_dict(data["billSettings"]))
    except PAYLOAD_ERRORS as e:
        return error(f"Invalid appliances or settings: {e}")

    bill = controller.save_current_bill(data.get("name", ""))
    if bill is None:
        return error("Add at least one appliance before saving a bill")
    return jsonify(bill.to_dict()), 201


@app.route("/users/<email>/bills/<bill_id>", methods=["PUT"])
def update_bill(email, bill_id):
    """
    Edit a saved bill. Any of name, month, year, appliances and
    settings may be given; the calculation is redone when appliances
    or settings change.
    """
    existing = store.get_bill(email, bill_id)
    if existing is None:
        return error("Bill not found", 404)

    data = json_body()
    try:
        changes: Dict[str, Any] = {}
        for key in ("name", "month"):
            if key in data:
                changes[key] = str(data[key])
        if "year" in data:
            changes["year"] = int(data["year"])
        if "appliances" in data:
            changes["appliances"] = [Appliance.from_dict(a) for a in data["appliances"]]
        if "settings" in data:
            changes["settings"] = BillSettings.from_dict(data["settings"])
    except PAYLOAD_ERRORS as e:
        return error(f"Invalid bill: {e}")

    updated = replace(existing, **changes)
    if "appliances" in changes or "settings" in changes:
        updated = replace(updated, calculation=calculate_bill(updated.appliances, updated.settings))

    if not store.update_bill(email, bill_id, updated):
        return error("Failed to update bill", 500)
    return jsonify(store.get_bill(email, bill_id).to_dict())


@app.route("/users/<email>/bills/<bill_id>", methods=["DELETE"])
def delete_bill(email, bill_id):
    if store.get_bill(email, bill_id) is None:
        return error("Bill not found", 404)
    if not store.delete_bill(email, bill_id):
        return error("Failed to delete bill", 500)
    return jsonify({"deleted": bill_id})


@app.route("/users/<email>/aggregate", methods=["GET"])
def user_aggregate(email):
    """Average of all the user's saved bills."""
    return jsonify(aggregate_saved_bills(store.get_bills(email)).to_dict())


@app.route("/users/<email>/statistics", methods=["GET"])
def user_statistics(email):
    return jsonify(statistics_json(store.bill_statistics(email)))

# =============================================================================
# API ROUTES - IMPORT / EXPORT
# =============================================================================

@app.route("/users/<email>/export", methods=["GET"])
def export_user(email):
    """Download the user's data as a JSON file."""
    controller = controller_for(email)
    document = controller.export_data()
    if document is None:
        return error("User not found", 404)
    return Response(
        document,
        mimetype="application/json",
        headers={"Content-Disposition": f'attachment; filename="{controller.export_filename()}"'},
    )


@app.route("/users/<email>/import", methods=["POST"])
def import_user(email):
    """
    Replace the user's data with an exported document.

    Accepts either a multipart upload ("file") or the JSON as the body.
    """
    try:
        if "file" in request.files:
            content = request.files["file"].read().decode("utf-8")
        else:
            content = request.get_data().decode("utf-8")
    except UnicodeDecodeError:
        return error("Failed to import data. The file is not UTF-8 JSON.")

    if not content:
        return error("No data uploaded")

    controller = controller_for(email)
    if not controller.import_data(content):
        return error("Failed to import data. Please check the file format.")
    return jsonify({
        "imported": True,
        "appliances": len(controller.state.appliances),
        "savedBills": len(controller.state.saved_bills),
    })

# =============================================================================
# API ROUTES - CHAT ASSISTANT
# =============================================================================

@app.route("/api/chat", methods=["POST"])
def chat():
    """
    Ask the energy assistant.

    Request Body (JSON):
        {"message": "How do I cut my bill?", "context": {...}}

    Returns:
        {"reply": "...", "model": "gemini-1.5-flash" | "fallback"}
    """
    data = json_body()
    message = data.get("message")
    if not message or not isinstance(message, str):
        return error("Message is required and must be a string")

    logger.info("Received chat message (%d chars)", len(message))
    return jsonify(chat_service.reply(message, data.get("context")))


@app.route("/api/health", methods=["GET"])
def health():
    return jsonify({
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **chat_service.health(),
    })


@app.route("/api/test-gemini", methods=["GET"])
def test_gemini():
    """Check that the configured Gemini key works."""
    if not chat_service.configured:
        return error("GEMINI_API_KEY not configured")
    try:
        reply = chat_service.ask_gemini("Say hello and confirm you're working.")
    except ChatError as e:
        return jsonify({"error": "Gemini test failed", "details": str(e)}), 500
    return jsonify({"success": True, "reply": reply, "model": chat_service.model})

# =============================================================================
# RUN THE SERVER
# =============================================================================

if __name__ == "__main__":
    # debug=True enables auto-reload; never use it in production
    app.run(port=int(os.getenv("PORT", "5000")), debug=True)
