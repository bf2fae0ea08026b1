"""
Admin Blueprint - Health Checks, Metrics, and Operational Endpoints

Provides monitoring endpoints for the link authority and its storage.
"""

import logging
import time
from typing import Any, Dict

from flask import Blueprint, Response, current_app, jsonify
from prometheus_client import generate_latest

from hwlink.metrics import connected_players, registry
from hwlink.security import limiter

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__)


def _state():
    return current_app.extensions["hwlink"]


@admin_bp.route("/health")
@limiter.exempt
def health():
    """
    Health check endpoint.

    Returns:
        JSON health status; 503 when the authority is disabled or storage is degraded
    """
    try:
        state = _state()
        cfg = current_app.config["APP_CONFIG"]
        authority = state["authority"]
        ledger = authority.ledger

        health_status: Dict[str, Any] = {
            "status": "healthy",
            "timestamp": time.time(),
            "service": cfg.get("APP_NAME", "HWLink"),
            "version": cfg.get("APP_VERSION"),
            "world": authority.world_name or None,
            "authority_enabled": authority.enabled,
            "connected_players": len(state["players"]),
            "ledger": {
                "loaded": ledger.loaded,
                "size": len(ledger),
                "degraded": ledger.degraded,
            },
            "components": {},
        }

        if not authority.enabled:
            health_status["status"] = "disabled"

        storage = state["storage"]
        try:
            health_status["components"]["storage"] = storage.describe()
        except Exception as e:
            logger.warning(f"Storage health check failed: {e}")
            health_status["components"]["storage"] = {"status": "error", "error": str(e)}

        if ledger.degraded or health_status["components"]["storage"].get("status") != "healthy":
            if health_status["status"] == "healthy":
                health_status["status"] = "degraded"

        return jsonify(health_status), 200 if health_status["status"] == "healthy" else 503

    except Exception as e:
        logger.error(f"Health check failed: {e}", exc_info=True)
        return jsonify({"status": "unhealthy", "error": str(e), "timestamp": time.time()}), 500


@admin_bp.route("/health/live")
@limiter.exempt
def liveness():
    """
    Liveness probe - checks if the process is running.
    """
    return jsonify({"status": "alive"}), 200


@admin_bp.route("/health/ready")
@limiter.exempt
def readiness():
    """
    Readiness probe - ready only when the authority can verify codes.
    """
    if _state()["authority"].enabled:
        return jsonify({"status": "ready"}), 200
    return jsonify({"status": "not_ready", "error": "link authority not configured"}), 503


@admin_bp.route("/metrics/prometheus")
@limiter.exempt
def metrics_prometheus():
    """
    Prometheus metrics endpoint.

    Returns:
        Prometheus text format metrics
    """
    try:
        connected_players.set(len(_state()["players"]))
        metrics = generate_latest(registry)
        return Response(metrics, mimetype="text/plain; version=0.0.4")

    except Exception as e:
        logger.error(f"Prometheus metrics failed: {e}", exc_info=True)
        return Response(f"# Error: {e}\n", mimetype="text/plain"), 500
