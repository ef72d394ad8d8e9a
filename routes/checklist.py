"""Checklist endpoints."""
from __future__ import annotations

from flask import Blueprint, jsonify

from forms import ChecklistItemForm, ChecklistItemUpdateForm
from routes import (
    commit_session,
    current_company_id,
    form_changes,
    form_from_json,
    json_error,
    json_form_error,
    request_payload,
    service_error,
)
from services.checklist_service import (
    create_checklist_item,
    create_checklist_items,
    delete_checklist_item,
    get_checklist,
    reorder_checklist,
    update_checklist_item,
)

checklist_bp = Blueprint("checklist", __name__, url_prefix="/api")


@checklist_bp.route("/tasks/<int:task_id>/checklist", methods=["GET"])
def get_checklist_endpoint(task_id: int):
    try:
        checklist = get_checklist(task_id, current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)
    return jsonify({"success": True, **checklist})


@checklist_bp.route("/tasks/<int:task_id>/checklist", methods=["POST"])
def create_checklist_item_endpoint(task_id: int):
    try:
        company_id = current_company_id()
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    form = form_from_json(ChecklistItemForm, payload)
    if not form.validate():
        return json_form_error(form)

    try:
        item = create_checklist_item(task_id, form_changes(form, payload), company_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to add the checklist item. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "item": item.to_dict()}), 201


@checklist_bp.route("/tasks/<int:task_id>/checklist/bulk", methods=["POST"])
def bulk_create_checklist_endpoint(task_id: int):
    try:
        company_id = current_company_id()
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    raw_items = payload.get("items")
    if not isinstance(raw_items, list) or not raw_items:
        return json_error("items must be a non-empty list.")

    validated = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            return json_error(f"items[{index}] must be an object.")
        form = form_from_json(ChecklistItemForm, raw)
        if not form.validate():
            return json_error(f"items[{index}] is invalid.", errors=form.errors)
        validated.append(form_changes(form, raw))

    try:
        checklist = create_checklist_items(task_id, validated, company_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to add the checklist items. Please try again.")
    if error:
        return error
    return jsonify({"success": True, **checklist}), 201


@checklist_bp.route("/tasks/<int:task_id>/checklist/reorder", methods=["PUT"])
def reorder_checklist_endpoint(task_id: int):
    try:
        company_id = current_company_id()
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    item_ids = payload.get("item_ids")
    if not isinstance(item_ids, list) or not all(
        isinstance(item_id, int) and not isinstance(item_id, bool) for item_id in item_ids
    ):
        return json_error("item_ids must be a list of checklist item ids.")

    try:
        checklist = reorder_checklist(task_id, item_ids, company_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to reorder the checklist. Please try again.")
    if error:
        return error
    return jsonify({"success": True, **checklist})


@checklist_bp.route("/checklist/<int:item_id>", methods=["PATCH"])
def update_checklist_item_endpoint(item_id: int):
    try:
        company_id = current_company_id()
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    form = form_from_json(ChecklistItemUpdateForm, payload)
    if not form.validate():
        return json_form_error(form)

    try:
        item = update_checklist_item(item_id, form_changes(form, payload), company_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to update the checklist item. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "item": item.to_dict()})


@checklist_bp.route("/checklist/<int:item_id>", methods=["DELETE"])
def delete_checklist_item_endpoint(item_id: int):
    try:
        delete_checklist_item(item_id, current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to delete the checklist item. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "deleted": item_id})
