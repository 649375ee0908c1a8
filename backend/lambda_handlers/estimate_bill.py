# backend/lambda_handlers/estimate_bill.py
"""
Lambda function to estimate an electricity bill
Triggered by API Gateway (POST)
"""
import json
import logging

from backend.lib.bill_core.calculator import calculate_bill, effective_rate, round_money
from backend.lib.bill_core.models import Appliance, BillSettings

logger = logging.getLogger()
logger.setLevel(logging.INFO)


def lambda_handler(event, context):
    """
    Estimate a bill from the request body.

    Body:
    - appliances: Required, list of appliances
    - billSettings: Optional, defaults to National Average / summer / average
    """
    logger.info("Received event: %s", json.dumps(event))

    try:
        body = event.get('body') or '{}'
        data = json.loads(body) if isinstance(body, str) else body
        items = data.get('appliances')
        if not isinstance(items, list):
            return response(400, {'error': 'appliances is required'})

        appliances = [Appliance.from_dict({'id': str(i), **item}) for i, item in enumerate(items)]
        settings = BillSettings.from_dict(data.get('billSettings'))
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        return response(400, {'error': f'Invalid request: {e}'})

    calculation = calculate_bill(appliances, settings)
    result = calculation.to_dict()
    result['ratePerKwh'] = effective_rate(settings)
    result['estimatedMonthlyCost'] = round_money(calculation.monthly_bill)
    result['currency'] = 'USD'
    return response(200, result)


def response(status_code: int, body: dict) -> dict:
    """Create API Gateway response."""
    return {
        'statusCode': status_code,
        'headers': {
            'Content-Type': 'application/json',
            'Access-Control-Allow-Origin': '*',
            'Access-Control-Allow-Methods': 'GET,POST,OPTIONS',
            'Access-Control-Allow-Headers': 'Content-Type'
        },
        'body': json.dumps(body)
    }
