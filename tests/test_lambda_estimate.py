import json

import pytest

from backend.lambda_handlers.estimate_bill import lambda_handler


def make_event(body):
    return {"httpMethod": "POST", "body": json.dumps(body) if body is not None else None}


def test_estimate_from_body():
    event = make_event({
        "appliances": [{"name": "Desk Fan", "category": "Electronics", "wattage": 100,
                        "hoursPerDay": 10, "daysPerMonth": 30}],
        "billSettings": {"region": "Texas", "useTimeOfUse": True},
    })
    result = lambda_handler(event, None)
    assert result["statusCode"] == 200
    assert result["headers"]["Access-Control-Allow-Origin"] == "*"

    body = json.loads(result["body"])
    assert body["totalKwh"] == pytest.approx(30.0)
    assert body["ratePerKwh"] == pytest.approx(0.12 * (0.3 * 1.5 + 0.4 * 1.0 + 0.3 * 0.8))
    assert body["estimatedMonthlyCost"] == 3.92
    assert body["currency"] == "USD"


def test_missing_appliances_is_bad_request():
    assert lambda_handler(make_event({}), None)["statusCode"] == 400
    assert lambda_handler(make_event(None), None)["statusCode"] == 400


def test_malformed_body_is_bad_request():
    assert lambda_handler({"body": "{oops"}, None)["statusCode"] == 400
    result = lambda_handler(make_event({"appliances": [{"name": "Fan"}]}), None)
    assert result["statusCode"] == 400
    assert "error" in json.loads(result["body"])
