from flask import Flask, request, jsonify
from flask_cors import CORS
from startprev import AllocationProcessor
from startprev.config import Settings
from startprev.exceptions import ExtractionError
import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = Settings.from_env()

app = Flask(__name__)

# Enable CORS for all routes (the calculator front-end calls from another origin)
CORS(app)

# Initialize the allocation processor
processor = AllocationProcessor.from_settings(settings)


@app.route("/api", methods=["GET"])
def api_info():
    """API information endpoint"""
    return jsonify({
        "status": "ok",
        "message": "Start Prev Fee Allocation API",
        "version": "1.0",
        "environment": settings.environment,
        "endpoints": {
            "allocate": "/allocate [POST]",
            "legacy": "/api/startprev [POST]",
            "health": "/health [GET]"
        }
    }), 200


@app.route("/health", methods=["GET"])
def health():
    """Health check for monitoring"""
    return jsonify({"status": "healthy"}), 200


@app.route("/allocate", methods=["POST"])
def allocate():
    """
    Allocate the outstanding fee across a client's benefit releases
    """
    try:
        # Get input data
        input_data = request.get_json(force=True, silent=True)

        if not input_data:
            return jsonify({
                "ok": False,
                "error": "No input data provided",
                "status": "failed"
            }), 400

        if not isinstance(input_data, dict):
            return jsonify({
                "ok": False,
                "error": "Request body must be a JSON object",
                "status": "failed"
            }), 400

        # Log request
        client_name = input_data.get('client_name') or 'Unknown'
        logger.info(f"Allocating fees for client: {client_name}")

        # Process through engine
        result = processor.process_from_dict(input_data)

        logger.info(f"Allocation completed for client: {client_name}")

        return jsonify(result), 200

    except ValueError as e:
        # Validation errors from engine
        logger.error(f"Validation error: {str(e)}")
        return jsonify({
            "ok": False,
            "error": str(e),
            "status": "validation_failed"
        }), 400

    except ExtractionError as e:
        logger.error(f"Extraction error: {str(e)}")
        return jsonify({
            "ok": False,
            "error": str(e),
            "status": "extraction_failed"
        }), 502

    except Exception as e:
        # Unexpected errors
        logger.error(f"Processing error: {str(e)}", exc_info=True)
        return jsonify({
            "ok": False,
            "error": "Internal processing error",
            "status": "failed"
        }), 500


@app.route("/api/startprev", methods=["POST"])
def allocate_legacy():
    """Legacy endpoint of the original handler - redirects to /allocate"""
    return allocate()


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=settings.port, debug=False)
