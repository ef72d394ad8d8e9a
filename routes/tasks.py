"""Task endpoints."""
from __future__ import annotations

from flask import Blueprint, jsonify

from forms import ActiveToggleForm, TaskCreateForm, TaskStatusForm, TaskUpdateForm
from routes import (
    commit_session,
    current_company_id,
    current_user_id,
    form_changes,
    form_from_json,
    json_form_error,
    request_payload,
    service_error,
)
from services.task_service import (
    create_task,
    delete_task,
    get_task,
    serialize_task_detail,
    update_task,
    update_task_active,
    update_task_status,
)

tasks_bp = Blueprint("tasks", __name__, url_prefix="/api/tasks")


@tasks_bp.route("", methods=["POST"])
def create_task_endpoint():
    try:
        company_id = current_company_id()
        user_id = current_user_id(company_id)
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    form = form_from_json(TaskCreateForm, payload)
    if not form.validate():
        return json_form_error(form)

    try:
        task = create_task(form_changes(form, payload), company_id, user_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to create the task. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "task": serialize_task_detail(task)}), 201


@tasks_bp.route("/<int:task_id>", methods=["GET"])
def get_task_endpoint(task_id: int):
    try:
        task = get_task(task_id, current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)
    return jsonify({"success": True, "task": serialize_task_detail(task)})


@tasks_bp.route("/<int:task_id>", methods=["PATCH"])
def update_task_endpoint(task_id: int):
    try:
        company_id = current_company_id()
        user_id = current_user_id(company_id)
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    form = form_from_json(TaskUpdateForm, payload)
    if not form.validate():
        return json_form_error(form)

    try:
        task = update_task(task_id, form_changes(form, payload), company_id, user_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to update the task. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "task": serialize_task_detail(task)})


@tasks_bp.route("/<int:task_id>/status", methods=["PATCH"])
def update_task_status_endpoint(task_id: int):
    try:
        company_id = current_company_id()
        user_id = current_user_id(company_id)
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    form = form_from_json(TaskStatusForm, payload)
    if not form.validate():
        return json_form_error(form)

    try:
        task = update_task_status(task_id, form_changes(form, payload), company_id, user_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to update the task status. Please try again.")
    if error:
        return error
    return jsonify(
        {
            "success": True,
            "task": task.to_dict(),
            "stage_status": task.stage.status if task.stage else None,
        }
    )


@tasks_bp.route("/<int:task_id>/active", methods=["PATCH"])
def update_task_active_endpoint(task_id: int):
    try:
        company_id = current_company_id()
        user_id = current_user_id(company_id)
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    form = form_from_json(ActiveToggleForm, payload)
    if not form.validate():
        return json_form_error(form)

    try:
        task = update_task_active(task_id, form.is_active.data, company_id, user_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to update the task. Please try again.")
    if error:
        return error
    return jsonify(
        {
            "success": True,
            "task": task.to_dict(),
            "stage_status": task.stage.status if task.stage else None,
        }
    )


@tasks_bp.route("/<int:task_id>", methods=["DELETE"])
def delete_task_endpoint(task_id: int):
    try:
        company_id = current_company_id()
        user_id = current_user_id(company_id)
        delete_task(task_id, company_id, user_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to delete the task. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "deleted": task_id})
