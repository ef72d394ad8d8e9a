"""Dashboard endpoints (read only)."""
from __future__ import annotations

from flask import Blueprint, jsonify, request

from routes import current_company_id, current_user_id, service_error
from services import dashboard_service

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


def _context() -> tuple[int, int | None]:
    company_id = current_company_id()
    return company_id, current_user_id(company_id)


@dashboard_bp.route("/full-summary", methods=["GET"])
def full_summary():
    try:
        company_id, user_id = _context()
    except (LookupError, ValueError) as exc:
        return service_error(exc)
    return jsonify(dashboard_service.get_full_summary(company_id, user_id))


@dashboard_bp.route("/summary", methods=["GET"])
def summary():
    try:
        company_id, user_id = _context()
    except (LookupError, ValueError) as exc:
        return service_error(exc)
    return jsonify(dashboard_service.get_summary(company_id, user_id))


@dashboard_bp.route("/risk-projects", methods=["GET"])
def risk_projects():
    try:
        company_id = current_company_id()
    except (LookupError, ValueError) as exc:
        return service_error(exc)
    return jsonify(dashboard_service.get_risk_projects(company_id))


@dashboard_bp.route("/tomorrow", methods=["GET"])
def tomorrow():
    try:
        company_id, user_id = _context()
    except (LookupError, ValueError) as exc:
        return service_error(exc)
    return jsonify(dashboard_service.get_tomorrow_dashboard(company_id, user_id))


@dashboard_bp.route("/my-work", methods=["GET"])
def my_work():
    try:
        company_id, user_id = _context()
        items = dashboard_service.get_my_work(company_id, user_id, request.args.get("tab", "today"))
    except (LookupError, ValueError) as exc:
        return service_error(exc)
    return jsonify(items)
