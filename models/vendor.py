"""Vendors (contractors, designers, lenders) and their roles on a project."""
from __future__ import annotations

from enum import StrEnum

from database import db
from models.mixins import SoftDeleteMixin, TimestampMixin
from utils.date_kst import isoformat_utc


class VendorRole(StrEnum):
    STRUCTURE = "structure"
    ELECTRICAL = "electrical"
    ELECTRICAL_DESIGN = "electrical_design"
    STRUCTURAL_REVIEW = "structural_review"
    EPC = "epc"
    OM = "om"
    FINANCE = "finance"
    OTHER = "other"


VENDOR_ROLE_LABELS = {
    VendorRole.STRUCTURE.value: "구조물 시공",
    VendorRole.ELECTRICAL.value: "전기공사",
    VendorRole.ELECTRICAL_DESIGN.value: "전기설계",
    VendorRole.STRUCTURAL_REVIEW.value: "구조검토",
    VendorRole.EPC.value: "EPC",
    VendorRole.OM.value: "유지보수",
    VendorRole.FINANCE.value: "금융비용",
    VendorRole.OTHER.value: "기타",
}


class Vendor(TimestampMixin, SoftDeleteMixin, db.Model):
    __tablename__ = "vendors"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    contact = db.Column(db.String(120), nullable=True)
    biz_no = db.Column(db.String(40), nullable=True)
    bank_account = db.Column(db.String(120), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    memo = db.Column(db.Text, nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "contact": self.contact,
            "biz_no": self.biz_no,
            "bank_account": self.bank_account,
            "address": self.address,
            "memo": self.memo,
            "created_at": isoformat_utc(self.created_at),
            "updated_at": isoformat_utc(self.updated_at),
        }

    def __repr__(self):
        return f"<Vendor {self.name}>"


class ProjectVendor(TimestampMixin, SoftDeleteMixin, db.Model):
    """The vendor filling one role on a project; one live row per role."""

    __tablename__ = "project_vendors"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id"), nullable=False, index=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False, index=True)
    role = db.Column(db.String(30), nullable=False)
    contact_name = db.Column(db.String(80), nullable=True)
    contact_phone = db.Column(db.String(40), nullable=True)
    memo = db.Column(db.Text, nullable=True)

    vendor = db.relationship("Vendor", lazy="joined")

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "role": self.role,
            "role_label": VENDOR_ROLE_LABELS.get(self.role, self.role),
            "contact_name": self.contact_name,
            "contact_phone": self.contact_phone,
            "memo": self.memo,
            "vendor": self.vendor.to_dict() if self.vendor is not None else None,
        }

    def __repr__(self):
        return f"<ProjectVendor {self.project_id}:{self.role}>"
