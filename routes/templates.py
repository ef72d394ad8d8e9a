"""Stage and task template endpoints."""
from __future__ import annotations

from flask import Blueprint, jsonify

from forms import StageTemplateForm, StageTemplateStructureForm, TaskTemplateForm
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
from services.template_service import (
    create_stage_template,
    delete_stage_template,
    get_stage_template,
    link_checklist_template,
    list_stage_templates,
    reorder_stage_templates,
    update_structure,
)

templates_bp = Blueprint("templates", __name__, url_prefix="/api/templates")


def _is_id(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@templates_bp.route("", methods=["GET"])
def list_stage_templates_endpoint():
    try:
        templates = list_stage_templates(current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)
    return jsonify({"success": True, "templates": [template.to_dict() for template in templates]})


@templates_bp.route("", methods=["POST"])
def create_stage_template_endpoint():
    try:
        company_id = current_company_id()
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    form = form_from_json(StageTemplateForm, payload)
    if not form.validate():
        return json_form_error(form)

    template = create_stage_template(form_changes(form, payload), company_id)
    error = commit_session("Unable to create the stage template. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "template": template.to_dict(include_tasks=True)}), 201


@templates_bp.route("/reorder", methods=["PUT"])
def reorder_stage_templates_endpoint():
    try:
        company_id = current_company_id()
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    template_ids = payload.get("template_ids")
    if not isinstance(template_ids, list) or not all(_is_id(value) for value in template_ids):
        return json_error("template_ids must be a list of stage template ids.")

    try:
        templates = reorder_stage_templates(template_ids, company_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to reorder the stage templates. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "templates": [template.to_dict() for template in templates]})


@templates_bp.route("/<int:template_id>", methods=["GET"])
def get_stage_template_endpoint(template_id: int):
    try:
        template = get_stage_template(template_id, current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)
    return jsonify({"success": True, "template": template.to_dict(include_tasks=True)})


@templates_bp.route("/<int:template_id>/structure", methods=["PUT"])
def update_structure_endpoint(template_id: int):
    try:
        company_id = current_company_id()
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    form = form_from_json(StageTemplateStructureForm, payload)
    if not form.validate():
        return json_form_error(form)

    raw_tasks = payload.get("tasks")
    if not isinstance(raw_tasks, list):
        return json_error("tasks must be a list.")
    tasks = []
    for index, raw in enumerate(raw_tasks):
        if not isinstance(raw, dict):
            return json_error(f"tasks[{index}] must be an object.")
        task_form = form_from_json(TaskTemplateForm, raw)
        if not task_form.validate():
            return json_error(f"tasks[{index}] is invalid.", errors=task_form.errors)
        tasks.append(form_changes(task_form, raw))

    try:
        template = update_structure(template_id, form_changes(form, payload), tasks, company_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to save the stage template. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "template": template.to_dict(include_tasks=True)})


@templates_bp.route("/<int:template_id>", methods=["DELETE"])
def delete_stage_template_endpoint(template_id: int):
    try:
        delete_stage_template(template_id, current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to delete the stage template. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "deleted": template_id})


@templates_bp.route("/task-templates/<int:task_template_id>/checklist-template", methods=["PATCH"])
def link_checklist_template_endpoint(task_template_id: int):
    try:
        company_id = current_company_id()
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    if "checklist_template_id" not in payload:
        return json_error("checklist_template_id is required.")
    checklist_template_id = payload["checklist_template_id"]
    if checklist_template_id is not None and not _is_id(checklist_template_id):
        return json_error("checklist_template_id must be a checklist template id or null.")

    try:
        task = link_checklist_template(task_template_id, checklist_template_id, company_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to link the checklist template. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "task_template": task.to_dict()})
