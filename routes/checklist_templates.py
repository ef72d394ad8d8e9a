"""Checklist template endpoints."""
from __future__ import annotations

from flask import Blueprint, jsonify

from forms import (
    ChecklistTemplateForm,
    ChecklistTemplateItemForm,
    ChecklistTemplateItemUpdateForm,
    ChecklistTemplateUpdateForm,
)
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
from services.checklist_template_service import (
    add_template_item,
    apply_template_to_task,
    create_checklist_template,
    delete_checklist_template,
    delete_template_item,
    get_checklist_template,
    list_checklist_templates,
    reorder_template_items,
    update_checklist_template,
    update_template_item,
)

checklist_templates_bp = Blueprint("checklist_templates", __name__, url_prefix="/api/checklist-templates")


@checklist_templates_bp.route("", methods=["GET"])
def list_checklist_templates_endpoint():
    try:
        templates = list_checklist_templates(current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)
    return jsonify(
        {"success": True, "templates": [template.to_dict(include_items=False) for template in templates]}
    )


@checklist_templates_bp.route("", methods=["POST"])
def create_checklist_template_endpoint():
    try:
        company_id = current_company_id()
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    form = form_from_json(ChecklistTemplateForm, payload)
    if not form.validate():
        return json_form_error(form)

    raw_items = payload.get("items", [])
    if not isinstance(raw_items, list):
        return json_error("items must be a list.")
    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            return json_error(f"items[{index}] must be an object.")
        item_form = form_from_json(ChecklistTemplateItemForm, raw)
        if not item_form.validate():
            return json_error(f"items[{index}] is invalid.", errors=item_form.errors)
        items.append(form_changes(item_form, raw))

    template = create_checklist_template(form_changes(form, payload), company_id, items)
    error = commit_session("Unable to create the checklist template. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "template": template.to_dict()}), 201


@checklist_templates_bp.route("/<int:template_id>", methods=["GET"])
def get_checklist_template_endpoint(template_id: int):
    try:
        template = get_checklist_template(template_id, current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)
    return jsonify({"success": True, "template": template.to_dict()})


@checklist_templates_bp.route("/<int:template_id>", methods=["PATCH"])
def update_checklist_template_endpoint(template_id: int):
    try:
        company_id = current_company_id()
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    form = form_from_json(ChecklistTemplateUpdateForm, payload)
    if not form.validate():
        return json_form_error(form)

    try:
        template = update_checklist_template(template_id, form_changes(form, payload), company_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to update the checklist template. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "template": template.to_dict()})


@checklist_templates_bp.route("/<int:template_id>", methods=["DELETE"])
def delete_checklist_template_endpoint(template_id: int):
    try:
        delete_checklist_template(template_id, current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to delete the checklist template. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "deleted": template_id})


@checklist_templates_bp.route("/<int:template_id>/items", methods=["POST"])
def add_template_item_endpoint(template_id: int):
    try:
        company_id = current_company_id()
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    form = form_from_json(ChecklistTemplateItemForm, payload)
    if not form.validate():
        return json_form_error(form)

    try:
        item = add_template_item(template_id, form_changes(form, payload), company_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to add the template item. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "item": item.to_dict()}), 201


@checklist_templates_bp.route("/<int:template_id>/items/reorder", methods=["PUT"])
def reorder_template_items_endpoint(template_id: int):
    try:
        company_id = current_company_id()
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    item_ids = payload.get("item_ids")
    if not isinstance(item_ids, list) or not all(
        isinstance(item_id, int) and not isinstance(item_id, bool) for item_id in item_ids
    ):
        return json_error("item_ids must be a list of template item ids.")

    try:
        template = reorder_template_items(template_id, item_ids, company_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to reorder the template items. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "template": template.to_dict()})


@checklist_templates_bp.route("/items/<int:item_id>", methods=["PATCH"])
def update_template_item_endpoint(item_id: int):
    try:
        company_id = current_company_id()
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    form = form_from_json(ChecklistTemplateItemUpdateForm, payload)
    if not form.validate():
        return json_form_error(form)

    try:
        item = update_template_item(item_id, form_changes(form, payload), company_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to update the template item. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "item": item.to_dict()})


@checklist_templates_bp.route("/items/<int:item_id>", methods=["DELETE"])
def delete_template_item_endpoint(item_id: int):
    try:
        delete_template_item(item_id, current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to delete the template item. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "deleted": item_id})


@checklist_templates_bp.route("/<int:template_id>/apply/<int:task_id>", methods=["POST"])
def apply_checklist_template_endpoint(template_id: int, task_id: int):
    try:
        result = apply_template_to_task(template_id, task_id, current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to apply the checklist template. Please try again.")
    if error:
        return error
    return jsonify({"success": True, **result})
