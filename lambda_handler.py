"""
AWS Lambda handler for the SA Legal Tariff Engine API.

This is the production entry point for AWS Lambda deployments.
For local development, use main.py (Flask app) instead.
"""

import json
import logging
import os
from datetime import date

from tariff_engine import BillProcessor, EngineConfig
from tariff_engine.exceptions import ComplianceBlockedError, TariffEngineError
from tariff_engine.models import parse_date

# Configure logging
logger = logging.getLogger()
logger.setLevel(logging.INFO)

# Environment (dev, staging, prod)
ENVIRONMENT = os.environ.get("ENVIRONMENT", "dev")

# Initialize processor (reused across warm invocations)
processor = BillProcessor(config=EngineConfig.from_env())

# CORS headers for API Gateway
CORS_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
}

TARIFFS_PREFIX = "/tariffs/"


def _response(status_code, body):
    return {"statusCode": status_code, "headers": CORS_HEADERS, "body": json.dumps(body)}


def lambda_handler(event, context):
    """
    Main Lambda entry point.

    Handles API Gateway events for:
    - GET /health
    - GET /api
    - POST /calculate_bill
    - POST /deadline
    - POST /taxation_schedule
    - GET /tariffs/{court_type}/{scale}
    - OPTIONS (CORS preflight)
    """
    # Handle CORS preflight
    http_method = event.get("httpMethod") or event.get("requestContext", {}).get("http", {}).get("method", "")
    if http_method == "OPTIONS":
        return {"statusCode": 200, "headers": CORS_HEADERS, "body": ""}

    # Get path (supports both REST API and HTTP API formats)
    path = event.get("path") or event.get("rawPath", "")

    # Route to appropriate handler
    if path == "/health" and http_method == "GET":
        return handle_health()
    elif path == "/api" and http_method == "GET":
        return handle_api_info()
    elif path == "/calculate_bill" and http_method == "POST":
        return handle_post(event, processor.process_from_dict)
    elif path == "/deadline" and http_method == "POST":
        return handle_post(event, processor.deadline_from_dict)
    elif path == "/taxation_schedule" and http_method == "POST":
        return handle_post(event, processor.taxation_schedule_from_dict)
    elif path.startswith(TARIFFS_PREFIX) and http_method == "GET":
        return handle_tariffs(event, path)
    else:
        return _response(404, {"error": "Not found", "path": path})


def handle_health():
    """Health check endpoint."""
    return _response(200, {"status": "healthy", "environment": ENVIRONMENT})


def handle_api_info():
    """API information endpoint."""
    return _response(
        200,
        {
            "status": "ok",
            "message": "SA Legal Tariff Engine API",
            "version": "1.0",
            "environment": ENVIRONMENT,
            "runtime": "AWS Lambda",
            "endpoints": {
                "calculate_bill": "/calculate_bill [POST]",
                "deadline": "/deadline [POST]",
                "taxation_schedule": "/taxation_schedule [POST]",
                "tariffs": "/tariffs/{court_type}/{scale}?date=YYYY-MM-DD [GET]",
                "health": "/health [GET]",
            },
        },
    )


def _parse_body(event):
    body = event.get("body", "")
    if not isinstance(body, str):
        return body
    if not body:
        return None
    # Handle base64 encoded body (API Gateway)
    if event.get("isBase64Encoded"):
        import base64

        body = base64.b64decode(body).decode("utf-8")
    return json.loads(body)


def handle_post(event, handler):
    """Run a POST handler on the decoded JSON body."""
    try:
        input_data = _parse_body(event)
        if not input_data:
            return _response(400, {"error": "No input data provided", "status": "failed"})

        logger.info(f"Handling {event.get('path') or event.get('rawPath')}")
        result = handler(input_data)
        return _response(200, result)

    except json.JSONDecodeError as e:
        logger.error(f"JSON parse error: {str(e)}")
        return _response(400, {"error": f"Invalid JSON: {str(e)}", "status": "failed"})

    except Exception as e:
        return _error_response(e)


def handle_tariffs(event, path):
    """Items of the tariff version in force on ?date= (default today)."""
    parts = path[len(TARIFFS_PREFIX):].strip("/").split("/")
    if len(parts) != 2:
        return _response(404, {"error": "Not found", "path": path})
    court_type, scale = parts

    try:
        params = event.get("queryStringParameters") or {}
        on_date = parse_date(params["date"]) if params.get("date") else date.today()
        items = processor.available_items(court_type, scale, on_date)
        return _response(
            200, {"court_type": court_type, "scale": scale, "date": on_date.isoformat(), "items": items}
        )
    except Exception as e:
        return _error_response(e)


def _error_response(e):
    if isinstance(e, TariffEngineError) and isinstance(e, LookupError):
        logger.warning(f"Lookup failed: {str(e)}")
        return _response(404, {**e.to_dict(), "status": "not_found"})

    if isinstance(e, ComplianceBlockedError):
        logger.warning(f"Compliance block: {str(e)}")
        return _response(422, {**e.to_dict(), "status": "compliance_blocked"})

    if isinstance(e, (ValueError, KeyError, TypeError)):
        # Validation errors from engine (missing fields, invalid types, etc.)
        logger.error(f"Validation error: {str(e)}")
        body = e.to_dict() if isinstance(e, TariffEngineError) else {"error": f"Validation error: {str(e)}"}
        return _response(400, {**body, "status": "validation_failed"})

    # Unexpected errors - log details but return generic message to avoid information disclosure
    logger.error(f"Unexpected processing error: {str(e)}", exc_info=True)
    return _response(500, {"error": "An unexpected error occurred during processing", "status": "failed"})
