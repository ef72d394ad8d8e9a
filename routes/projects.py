"""Project endpoints."""
from __future__ import annotations

from flask import Blueprint, jsonify

from forms import ProjectForm, ProjectUpdateForm
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
from services.project_service import (
    clone_project,
    create_project,
    delete_project,
    get_activity_log,
    get_project,
    get_site_password,
    list_projects,
    serialize_project_detail,
    update_project,
)
from services.site_password import SitePasswordUnreadable

projects_bp = Blueprint("projects", __name__, url_prefix="/api/projects")


@projects_bp.route("", methods=["GET"])
def list_projects_endpoint():
    try:
        projects = list_projects(current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)
    return jsonify({"success": True, "projects": projects})


@projects_bp.route("", methods=["POST"])
def create_project_endpoint():
    try:
        company_id = current_company_id()
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    form = form_from_json(ProjectForm, payload)
    if not form.validate():
        return json_form_error(form)

    try:
        project = create_project(form_changes(form, payload), company_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to create the project. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "project": serialize_project_detail(project)}), 201


@projects_bp.route("/<int:project_id>", methods=["GET"])
def get_project_endpoint(project_id: int):
    try:
        project = get_project(project_id, current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)
    return jsonify({"success": True, "project": serialize_project_detail(project)})


@projects_bp.route("/<int:project_id>", methods=["PATCH"])
def update_project_endpoint(project_id: int):
    try:
        company_id = current_company_id()
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    form = form_from_json(ProjectUpdateForm, payload)
    if not form.validate():
        return json_form_error(form)

    try:
        project = update_project(project_id, form_changes(form, payload), company_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to update the project. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "project": project.to_dict()})


@projects_bp.route("/<int:project_id>", methods=["DELETE"])
def delete_project_endpoint(project_id: int):
    try:
        delete_project(project_id, current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to delete the project. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "deleted": project_id})


@projects_bp.route("/<int:project_id>/clone", methods=["POST"])
def clone_project_endpoint(project_id: int):
    try:
        clone = clone_project(project_id, current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to clone the project. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "project": {"id": clone.id, "name": clone.name}}), 201


@projects_bp.route("/<int:project_id>/activity-log", methods=["GET"])
def activity_log_endpoint(project_id: int):
    try:
        entries = get_activity_log(project_id, current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)
    return jsonify({"success": True, "activity": entries})


@projects_bp.route("/<int:project_id>/site-password", methods=["GET"])
def site_password_endpoint(project_id: int):
    try:
        password = get_site_password(project_id, current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)
    except SitePasswordUnreadable as exc:
        return json_error(str(exc), status=409)
    return jsonify({"success": True, "site_password": password})
