"""
AWS Lambda handler for the Start Prev Fee Allocation API.

This is the production entry point for AWS Lambda deployments.
For local development, use main.py (Flask app) instead.
"""

import base64
import json
import logging

from startprev import AllocationProcessor
from startprev.config import Settings
from startprev.exceptions import ExtractionError

# Configure logging
logger = logging.getLogger()
logger.setLevel(logging.INFO)

settings = Settings.from_env()

# Initialize processor (reused across warm invocations)
processor = AllocationProcessor.from_settings(settings)

# CORS headers for API Gateway
CORS_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
}

ALLOCATE_PATHS = ("/allocate", "/api/startprev")


def lambda_handler(event, context):
    """
    Main Lambda entry point.

    Handles API Gateway events for:
    - GET /health
    - GET /api
    - POST /allocate (and the legacy POST /api/startprev)
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
    elif path in ALLOCATE_PATHS and http_method == "POST":
        return handle_allocate(event)
    elif path in ALLOCATE_PATHS:
        return _response(405, {"ok": False, "error": "Method not allowed. Use POST."})
    elif path == "/api" and http_method == "GET":
        return handle_api_info()
    else:
        return _response(404, {"error": "Not found", "path": path})


def _response(status_code, payload):
    return {"statusCode": status_code, "headers": CORS_HEADERS, "body": json.dumps(payload)}


def handle_health():
    """Health check endpoint."""
    return _response(200, {"status": "healthy", "environment": settings.environment})


def handle_api_info():
    """API information endpoint."""
    return _response(
        200,
        {
            "status": "ok",
            "message": "Start Prev Fee Allocation API",
            "version": "1.0",
            "environment": settings.environment,
            "runtime": "AWS Lambda",
            "endpoints": {
                "allocate": "/allocate [POST]",
                "legacy": "/api/startprev [POST]",
                "health": "/health [GET]",
            },
        },
    )


def handle_allocate(event):
    """Allocate the outstanding fee across a client's benefit releases."""
    try:
        # Parse request body
        body = event.get("body", "")
        if isinstance(body, str):
            if not body:
                return _response(400, {"ok": False, "error": "No input data provided", "status": "failed"})
            # Handle base64 encoded body (API Gateway)
            if event.get("isBase64Encoded"):
                body = base64.b64decode(body).decode("utf-8")
            input_data = json.loads(body)
        else:
            input_data = body

        if not isinstance(input_data, dict):
            return _response(400, {"ok": False, "error": "Request body must be a JSON object", "status": "failed"})

        # Log request
        client_name = input_data.get("client_name") or "Unknown"
        logger.info(f"Allocating fees for client: {client_name}")

        # Process through engine
        result = processor.process_from_dict(input_data)

        logger.info(f"Allocation completed for client: {client_name}")

        return _response(200, result)

    except json.JSONDecodeError as e:
        logger.error(f"JSON parse error: {str(e)}")
        return _response(400, {"ok": False, "error": f"Invalid JSON: {str(e)}", "status": "failed"})

    except (ValueError, KeyError, TypeError) as e:
        # Validation errors from engine (missing fields, invalid values, negative amounts, missing schedule)
        logger.error(f"Validation error: {str(e)}")
        return _response(400, {"ok": False, "error": f"Validation error: {str(e)}", "status": "validation_failed"})

    except ExtractionError as e:
        logger.error(f"Extraction error: {str(e)}")
        return _response(502, {"ok": False, "error": str(e), "status": "extraction_failed"})

    except Exception as e:
        # Unexpected errors - log details but return generic message to avoid information disclosure
        logger.error(f"Unexpected processing error: {str(e)}", exc_info=True)
        return _response(
            500, {"ok": False, "error": "An unexpected error occurred during processing", "status": "failed"}
        )
