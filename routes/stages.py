"""Project stage endpoints."""
from __future__ import annotations

from flask import Blueprint, jsonify

from forms import ActiveToggleForm, StageDatesForm
from routes import (
    commit_session,
    current_company_id,
    form_from_json,
    json_form_error,
    request_payload,
    service_error,
)
from services.stage_service import STAGE_DATE_FIELDS, update_stage_active, update_stage_dates

stages_bp = Blueprint("stages", __name__, url_prefix="/api/stages")


@stages_bp.route("/<int:stage_id>/active", methods=["PATCH"])
def update_stage_active_endpoint(stage_id: int):
    try:
        company_id = current_company_id()
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    form = form_from_json(ActiveToggleForm, payload)
    if not form.validate():
        return json_form_error(form)

    try:
        stage = update_stage_active(stage_id, form.is_active.data, company_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to update the stage. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "stage": stage.to_dict()})


@stages_bp.route("/<int:stage_id>/dates", methods=["PATCH"])
def update_stage_dates_endpoint(stage_id: int):
    try:
        company_id = current_company_id()
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    form = form_from_json(StageDatesForm, payload)
    if not form.validate():
        return json_form_error(form)

    dates = {field: payload[field] for field in STAGE_DATE_FIELDS if field in payload}
    try:
        stage = update_stage_dates(stage_id, dates, company_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to update the stage dates. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "stage": stage.to_dict()})
