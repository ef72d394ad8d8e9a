"""Budget categories and project budget lines."""
from __future__ import annotations

from flask import Blueprint, jsonify

from forms import BudgetAmountsForm, BudgetCategoryForm, BudgetCategoryUpdateForm, BudgetItemForm
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
from services.budget_service import (
    add_budget_item,
    create_category,
    delete_budget_item,
    delete_category,
    get_project_budget,
    initialize_project_budget,
    list_categories,
    reorder_categories,
    update_budget_item,
    update_category,
)

budget_bp = Blueprint("budget", __name__, url_prefix="/api/budget")


def _id_list(value) -> bool:
    return isinstance(value, list) and all(
        isinstance(item, int) and not isinstance(item, bool) for item in value
    )


@budget_bp.route("/categories", methods=["GET"])
def list_categories_endpoint():
    try:
        categories = list_categories(current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)
    return jsonify({"success": True, "categories": [category.to_dict() for category in categories]})


@budget_bp.route("/categories", methods=["POST"])
def create_category_endpoint():
    try:
        company_id = current_company_id()
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    form = form_from_json(BudgetCategoryForm, payload)
    if not form.validate():
        return json_form_error(form)

    try:
        category = create_category(form_changes(form, payload), company_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to add the budget category. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "category": category.to_dict()}), 201


@budget_bp.route("/categories/reorder", methods=["PUT"])
def reorder_categories_endpoint():
    try:
        company_id = current_company_id()
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    category_ids = payload.get("category_ids")
    if not _id_list(category_ids):
        return json_error("category_ids must be a list of budget category ids.")

    try:
        categories = reorder_categories(category_ids, company_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to reorder the budget categories. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "categories": [category.to_dict() for category in categories]})


@budget_bp.route("/categories/<int:category_id>", methods=["PATCH"])
def update_category_endpoint(category_id: int):
    try:
        company_id = current_company_id()
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    form = form_from_json(BudgetCategoryUpdateForm, payload)
    if not form.validate():
        return json_form_error(form)

    try:
        category = update_category(category_id, form_changes(form, payload), company_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to update the budget category. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "category": category.to_dict()})


@budget_bp.route("/categories/<int:category_id>", methods=["DELETE"])
def delete_category_endpoint(category_id: int):
    try:
        delete_category(category_id, current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to delete the budget category. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "deleted": category_id})


@budget_bp.route("/projects/<int:project_id>", methods=["GET"])
def get_project_budget_endpoint(project_id: int):
    try:
        budget = get_project_budget(project_id, current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)
    return jsonify({"success": True, **budget})


@budget_bp.route("/projects/<int:project_id>/initialize", methods=["POST"])
def initialize_project_budget_endpoint(project_id: int):
    try:
        budget = initialize_project_budget(project_id, current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to set up the project budget. Please try again.")
    if error:
        return error
    return jsonify({"success": True, **budget})


@budget_bp.route("/projects/<int:project_id>/items", methods=["POST"])
def add_budget_item_endpoint(project_id: int):
    try:
        company_id = current_company_id()
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    form = form_from_json(BudgetItemForm, payload)
    if not form.validate():
        return json_form_error(form)

    try:
        item = add_budget_item(project_id, form_changes(form, payload), company_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to add the budget item. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "item": item.to_dict()}), 201


@budget_bp.route("/items/<int:item_id>", methods=["PATCH"])
def update_budget_item_endpoint(item_id: int):
    try:
        company_id = current_company_id()
        payload = request_payload()
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    form = form_from_json(BudgetAmountsForm, payload)
    if not form.validate():
        return json_form_error(form)

    try:
        item = update_budget_item(item_id, form_changes(form, payload), company_id)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to update the budget item. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "item": item.to_dict()})


@budget_bp.route("/items/<int:item_id>", methods=["DELETE"])
def delete_budget_item_endpoint(item_id: int):
    try:
        delete_budget_item(item_id, current_company_id())
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to delete the budget item. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "deleted": item_id})
