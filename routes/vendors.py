"""Vendor directory and project vendor assignments."""
from __future__ import annotations

from flask import Blueprint, jsonify

from forms import ProjectVendorForm, VendorForm, VendorUpdateForm
from routes import (
    commit_session,
    current_company_id,
    form_changes,
    form_from_json,
    json_form_error,
    request_payload,
    service_error,
)
from services.vendor_service import (
    assign_project_vendor,
    create_vendor,
    delete_vendor,
    get_vendor,
    list_project_vendors,
    list_vendors,
    remove_project_vendor,
    update_vendor,
)

vendors_bp = Blueprint("vendors", __name__, url_prefix="/api")


@vendors_bp.route("/vendors", methods=["GET"])
def list_vendors_endpoint():
    try:
        vendors = list_vendors(current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)
    return jsonify({"success": True, "vendors": [vendor.to_dict() for vendor in vendors]})


@vendors_bp.route("/vendors", methods=["POST"])
def create_vendor_endpoint():
    try:
        company_id = current_company_id()
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    form = form_from_json(VendorForm, payload)
    if not form.validate():
        return json_form_error(form)

    vendor = create_vendor(form_changes(form, payload), company_id)
    error = commit_session("Unable to add the vendor. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "vendor": vendor.to_dict()}), 201


@vendors_bp.route("/vendors/<int:vendor_id>", methods=["GET"])
def get_vendor_endpoint(vendor_id: int):
    try:
        vendor = get_vendor(vendor_id, current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)
    return jsonify({"success": True, "vendor": vendor.to_dict()})


@vendors_bp.route("/vendors/<int:vendor_id>", methods=["PATCH"])
def update_vendor_endpoint(vendor_id: int):
    try:
        company_id = current_company_id()
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    form = form_from_json(VendorUpdateForm, payload)
    if not form.validate():
        return json_form_error(form)

    try:
        vendor = update_vendor(vendor_id, form_changes(form, payload), company_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to update the vendor. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "vendor": vendor.to_dict()})


@vendors_bp.route("/vendors/<int:vendor_id>", methods=["DELETE"])
def delete_vendor_endpoint(vendor_id: int):
    try:
        delete_vendor(vendor_id, current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to delete the vendor. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "deleted": vendor_id})


@vendors_bp.route("/projects/<int:project_id>/vendors", methods=["GET"])
def list_project_vendors_endpoint(project_id: int):
    try:
        assignments = list_project_vendors(project_id, current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)
    return jsonify({"success": True, "vendors": [assignment.to_dict() for assignment in assignments]})


@vendors_bp.route("/projects/<int:project_id>/vendors", methods=["PUT"])
def assign_project_vendor_endpoint(project_id: int):
    try:
        company_id = current_company_id()
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    form = form_from_json(ProjectVendorForm, payload)
    if not form.validate():
        return json_form_error(form)

    try:
        assignment = assign_project_vendor(project_id, form_changes(form, payload), company_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to assign the vendor. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "assignment": assignment.to_dict()})


@vendors_bp.route("/projects/<int:project_id>/vendors/<role>", methods=["DELETE"])
def remove_project_vendor_endpoint(project_id: int, role: str):
    try:
        remove_project_vendor(project_id, role, current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to remove the vendor from the project. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "removed": role})
