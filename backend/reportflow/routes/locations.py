# Overview: Flask API routes for the location hierarchy; read-only lookups.

# backend/reportflow/routes/locations.py
"""
Location Hierarchy API Routes (read-only)

- GET /api/locations/cities
- GET /api/locations/subdistricts?city_id=
- GET /api/locations/branches?subdistrict_id=

Reference data is maintained through the CLI. Any authenticated user may
read it (report forms need the lists to build the location triple).
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import location_service
from ..decorators import require_auth


locations_bp = Blueprint("locations", __name__, url_prefix="/api/locations")


@locations_bp.get("/cities")
@require_auth
def list_cities_route():
    try:
        cities = location_service.list_cities()
        return jsonify({"cities": [c.to_dict() for c in cities]}), 200
    except Exception:
        current_app.logger.exception("Failed to list cities")
        return jsonify({"error": "Internal server error"}), 500


@locations_bp.get("/subdistricts")
@require_auth
def list_subdistricts_route():
    try:
        city_id = request.args.get("city_id", type=int)
        subdistricts = location_service.list_subdistricts(city_id=city_id)
        return jsonify({"subdistricts": [s.to_dict() for s in subdistricts]}), 200
    except Exception:
        current_app.logger.exception("Failed to list subdistricts")
        return jsonify({"error": "Internal server error"}), 500


@locations_bp.get("/branches")
@require_auth
def list_branches_route():
    try:
        subdistrict_id = request.args.get("subdistrict_id", type=int)
        branches = location_service.list_branches(subdistrict_id=subdistrict_id)
        return jsonify({"branches": [b.to_dict() for b in branches]}), 200
    except Exception:
        current_app.logger.exception("Failed to list branches")
        return jsonify({"error": "Internal server error"}), 500
