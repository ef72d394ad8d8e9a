"""Company vendors and the roles they fill on projects."""
from __future__ import annotations

from typing import Any, Mapping

from database import db
from models.vendor import ProjectVendor, Vendor, VendorRole
from services.project_service import get_project

VENDOR_FIELDS = ("name", "contact", "biz_no", "bank_account", "address", "memo")
PROJECT_VENDOR_FIELDS = ("contact_name", "contact_phone", "memo")


def get_vendor(vendor_id: int, company_id: int) -> Vendor:
    vendor = Vendor.active().filter(
        Vendor.id == vendor_id,
        Vendor.company_id == company_id,
    ).one_or_none()
    if vendor is None:
        raise LookupError("Vendor not found.")
    return vendor


def list_vendors(company_id: int) -> list[Vendor]:
    return (
        Vendor.active()
        .filter(Vendor.company_id == company_id)
        .order_by(Vendor.created_at.desc(), Vendor.id.desc())
        .all()
    )


def create_vendor(data: Mapping[str, Any], company_id: int) -> Vendor:
    vendor = Vendor(company_id=company_id)
    for field in VENDOR_FIELDS:
        if data.get(field) is not None:
            setattr(vendor, field, data[field])
    db.session.add(vendor)
    db.session.flush()
    return vendor


def update_vendor(vendor_id: int, changes: Mapping[str, Any], company_id: int) -> Vendor:
    vendor = get_vendor(vendor_id, company_id)
    for field in VENDOR_FIELDS:
        if field not in changes:
            continue
        if field == "name" and changes[field] is None:
            continue
        setattr(vendor, field, changes[field])
    return vendor


def delete_vendor(vendor_id: int, company_id: int) -> Vendor:
    """Soft delete the vendor and release the project roles it held."""

    vendor = get_vendor(vendor_id, company_id)
    vendor.soft_delete()
    for assignment in ProjectVendor.active().filter(ProjectVendor.vendor_id == vendor.id):
        assignment.soft_delete()
    return vendor


def list_project_vendors(project_id: int, company_id: int) -> list[ProjectVendor]:
    project = get_project(project_id, company_id)
    return (
        ProjectVendor.active()
        .filter(ProjectVendor.project_id == project.id)
        .order_by(ProjectVendor.role.asc())
        .all()
    )


def assign_project_vendor(project_id: int, data: Mapping[str, Any], company_id: int) -> ProjectVendor:
    """Put a vendor in a role on the project, replacing whoever held the role."""

    project = get_project(project_id, company_id)
    role = VendorRole(data["role"]).value
    vendor = get_vendor(data["vendor_id"], company_id)

    assignment = ProjectVendor.active().filter(
        ProjectVendor.project_id == project.id,
        ProjectVendor.role == role,
    ).one_or_none()
    if assignment is None:
        assignment = ProjectVendor(project_id=project.id, role=role)
        db.session.add(assignment)
    assignment.vendor_id = vendor.id
    assignment.vendor = vendor
    for field in PROJECT_VENDOR_FIELDS:
        if field in data:
            setattr(assignment, field, data[field])
    db.session.flush()
    return assignment


def remove_project_vendor(project_id: int, role: str, company_id: int) -> ProjectVendor:
    project = get_project(project_id, company_id)
    assignment = ProjectVendor.active().filter(
        ProjectVendor.project_id == project.id,
        ProjectVendor.role == role,
    ).one_or_none()
    if assignment is None:
        raise LookupError("No vendor holds this role on the project.")
    assignment.soft_delete()
    return assignment
