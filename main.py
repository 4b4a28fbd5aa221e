from flask import Flask, request, jsonify
from flask_cors import CORS
from commission_engine import CommissionProcessor, CommissionReports, DataAccessError
import os
import logging

# Configure logging
logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

app = Flask(__name__)

# Enable CORS for all routes (the clinic dashboard calls the API from the browser)
CORS(app)

# Initialize the commission processor
processor = CommissionProcessor()
reports = CommissionReports()


@app.route("/api", methods=["GET"])
def api_info():
    """API information endpoint"""
    return jsonify({
        "status": "ok",
        "message": "Clinic Commission Engine API",
        "version": "1.0",
        "endpoints": {
            "calculate_commission": "/calculate_commission [POST]",
            "referral_commission": "/referral_commission [POST]",
            "commission_trends": "/commission_trends [POST]",
            "commission_by_person": "/commission_by_person [POST]",
            "health": "/health [GET]"
        }
    }), 200


@app.route("/health", methods=["GET"])
def health():
    """Health check for monitoring"""
    return jsonify({"status": "healthy"}), 200


def _handle(label, handler):
    """Run a handler over the JSON body and map engine errors to responses."""
    try:
        input_data = request.get_json(force=True, silent=True)

        if not input_data:
            return jsonify({
                "error": "No input data provided",
                "status": "failed"
            }), 400

        logger.info(f"Processing {label}")
        result = handler(input_data)
        logger.info(f"{label} processed successfully")

        return jsonify(result), 200

    except DataAccessError as e:
        # Lookup failures are not a business "no"
        logger.error(f"Data access error: {str(e)}")
        return jsonify({
            "error": str(e),
            "status": "data_unavailable"
        }), 503

    except (ValueError, KeyError, TypeError) as e:
        # Validation errors from engine
        logger.error(f"Validation error: {str(e)}")
        return jsonify({
            "error": f"Validation error: {str(e)}",
            "status": "validation_failed"
        }), 400

    except Exception as e:
        # Unexpected errors
        logger.error(f"Processing error: {str(e)}", exc_info=True)
        return jsonify({
            "error": "An unexpected error occurred during processing",
            "status": "failed"
        }), 500


@app.route("/calculate_commission", methods=["POST"])
def calculate_commission():
    """
    Decide the commission for one billing event
    """
    return _handle("commission", processor.process_from_dict)


@app.route("/referral_commission", methods=["POST"])
def referral_commission():
    """Decide the referral partner's commission for one billing event"""
    return _handle("referral commission", processor.process_referral_from_dict)


@app.route("/commission_trends", methods=["POST"])
def commission_trends():
    """Daily or monthly commission totals"""
    return _handle("commission trends", reports.process_from_dict)


@app.route("/commission_by_person", methods=["POST"])
def commission_by_person():
    """Commissions of one staff member or referral partner at a clinic"""
    return _handle("commission by person", reports.process_by_person_from_dict)


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port, debug=False)
