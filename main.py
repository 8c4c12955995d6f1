from flask import Flask, request, jsonify
from flask_cors import CORS
from tariff_engine import BillProcessor, EngineConfig
from tariff_engine.exceptions import ComplianceBlockedError, TariffEngineError
from tariff_engine.models import parse_date
from datetime import date
import os
import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = Flask(__name__)

# Enable CORS for all routes (practice-management front ends call the API directly)
CORS(app)

# Initialize the bill processor
processor = BillProcessor(config=EngineConfig.from_env())


def _error_response(e: Exception):
    """Map engine errors onto HTTP statuses."""
    if isinstance(e, LookupError) and isinstance(e, TariffEngineError):
        logger.warning(f"Lookup failed: {str(e)}")
        return jsonify({**e.to_dict(), "status": "not_found"}), 404

    if isinstance(e, ComplianceBlockedError):
        logger.warning(f"Compliance block: {str(e)}")
        return jsonify({**e.to_dict(), "status": "compliance_blocked"}), 422

    if isinstance(e, ValueError):
        # Validation errors from engine
        logger.error(f"Validation error: {str(e)}")
        body = e.to_dict() if isinstance(e, TariffEngineError) else {"error": str(e)}
        return jsonify({**body, "status": "validation_failed"}), 400

    # Unexpected errors
    logger.error(f"Processing error: {str(e)}", exc_info=True)
    return jsonify({
        "error": "An unexpected error occurred during processing",
        "status": "failed"
    }), 500


def _json_body():
    input_data = request.get_json(force=True, silent=True)
    if not input_data:
        return None, (jsonify({
            "error": "No input data provided",
            "status": "failed"
        }), 400)
    return input_data, None


@app.route("/api", methods=["GET"])
def api_info():
    """API information endpoint"""
    return jsonify({
        "status": "ok",
        "message": "SA Legal Tariff Engine API",
        "version": "1.0",
        "endpoints": {
            "calculate_bill": "/calculate_bill [POST]",
            "deadline": "/deadline [POST]",
            "taxation_schedule": "/taxation_schedule [POST]",
            "tariffs": "/tariffs/<court_type>/<scale>?date=YYYY-MM-DD [GET]",
            "health": "/health [GET]"
        }
    }), 200


@app.route("/health", methods=["GET"])
def health():
    """Health check for monitoring"""
    return jsonify({"status": "healthy"}), 200


@app.route("/calculate_bill", methods=["POST"])
def calculate_bill():
    """
    Calculate a bill of costs line by line
    """
    input_data, error = _json_body()
    if error:
        return error

    try:
        context = input_data.get("context", {})
        bill_name = f"{context.get('court_type', '?')} Scale {context.get('scale', '?')} {context.get('bill_type', '?')}"
        logger.info(f"Calculating bill: {bill_name} ({len(input_data.get('line_items', []))} lines)")

        result = processor.process_from_dict(input_data)

        logger.info(f"Bill calculated successfully: {bill_name}")
        return jsonify(result), 200

    except Exception as e:
        return _error_response(e)


@app.route("/deadline", methods=["POST"])
def deadline():
    """Blackout-aware deadline from a base date"""
    input_data, error = _json_body()
    if error:
        return error

    try:
        return jsonify(processor.deadline_from_dict(input_data)), 200
    except Exception as e:
        return _error_response(e)


@app.route("/taxation_schedule", methods=["POST"])
def taxation_schedule():
    """Inspection, objection and set-down dates for a finalized bill"""
    input_data, error = _json_body()
    if error:
        return error

    try:
        return jsonify(processor.taxation_schedule_from_dict(input_data)), 200
    except Exception as e:
        return _error_response(e)


@app.route("/tariffs/<court_type>/<scale>", methods=["GET"])
def tariffs(court_type, scale):
    """Items of the tariff version in force on ?date= (default today)"""
    try:
        on_date = parse_date(request.args["date"]) if "date" in request.args else date.today()
        items = processor.available_items(court_type, scale, on_date)
        return jsonify({
            "court_type": court_type,
            "scale": scale,
            "date": on_date.isoformat(),
            "items": items
        }), 200
    except Exception as e:
        return _error_response(e)


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port, debug=False)
