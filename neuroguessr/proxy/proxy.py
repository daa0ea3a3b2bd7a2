# proxy/proxy.py

import time

import requests
from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import RequestEntityTooLarge

from neuroguessr.logger_setup import setup_logger

log = setup_logger('proxy')

bp = Blueprint("proxy", __name__, url_prefix="/api/v1")


def _upstream_message(response):
    """Prefer the backend's own ``error`` string, fall back to its raw text."""
    raw = response.text
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), str) and body["error"]:
        return body["error"]
    return f"GeoAPI error: {raw}"


def forward(file, config):
    """Relay one uploaded file to the geolocation backend.

    Returns a ``(payload, status)`` pair ready for ``jsonify``.
    """
    t = time.time()
    files = {"file": (file.filename, file.stream, file.mimetype or "application/octet-stream")}
    response = requests.post(config.geolocate_url, files=files, timeout=config.timeout)
    log.info(f"[Backend Call] took {time.time() - t:.4f}s (status {response.status_code})")

    if not response.ok:
        log.warning(f"Backend returned {response.status_code}: {response.text[:500]}")
        return {"error": _upstream_message(response)}, response.status_code

    # result (lat, lon, confidence) goes back untouched
    return response.json(), 200


@bp.errorhandler(RequestEntityTooLarge)
def too_large(e):
    return jsonify({"error": "File too large"}), 413


@bp.route("/geolocate", methods=["POST"])
def geolocate():
    uploads = [f for f in request.files.getlist("file") if f and f.filename]
    if not uploads:
        return jsonify({"error": "No file uploaded"}), 400
    if len(uploads) > 1:
        return jsonify({"error": "Expected exactly one file"}), 400

    try:
        payload, status = forward(uploads[0], current_app.config["PROXY_CONFIG"])
        return jsonify(payload), status
    except Exception as e:
        log.error(f"Proxy Error: {e}")
        return jsonify({"error": "Internal Server Error", "details": str(e)}), 500
