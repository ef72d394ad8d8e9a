"""Tenant (company) resolution and explicit provisioning."""
from __future__ import annotations

import logging
from typing import Any, Optional

from flask import current_app

from database import db
from models.company import Company
from models.template import DEFAULT_STAGE_TEMPLATES, StageTemplate

DEV_COMPANY_NAME = "Local Dev Company"


class TenantRequiredError(ValueError):
    """Raised when a request carries no company and auto-provisioning is off."""


def _coerce_id(raw: Any) -> Optional[int]:
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError("Invalid company id") from exc


def resolve_company_id(raw_company_id: Any = None) -> int:
    """Return the id of the tenant a request operates on.

    An explicit id must refer to an existing company. Without one, a default
    company is created only when ``DEV_AUTO_PROVISION_TENANT`` is enabled.
    """

    company_id = _coerce_id(raw_company_id)
    if company_id is not None:
        if db.session.get(Company, company_id) is None:
            raise LookupError("Company not found.")
        return company_id

    if not current_app.config.get("DEV_AUTO_PROVISION_TENANT"):
        raise TenantRequiredError("A company is required for this request.")

    company = Company.query.order_by(Company.id).first()
    if company is None:
        company = provision_company(DEV_COMPANY_NAME)
        db.session.commit()
        logging.warning("Auto-provisioned development company %s", company.id)
    return company.id


def provision_company(name: str, *, with_default_templates: bool = True) -> Company:
    """Create a company, optionally with the default permitting stages."""

    name = (name or "").strip()
    if not name:
        raise ValueError("Company name is required.")
    company = Company(name=name)
    db.session.add(company)
    db.session.flush()
    if with_default_templates:
        seed_stage_templates(company)
    return company


def seed_stage_templates(company: Company) -> list[StageTemplate]:
    """Add the default stage templates the company does not have yet."""

    existing = {
        template.name
        for template in StageTemplate.active().filter_by(company_id=company.id).all()
    }
    created = []
    for name, order in DEFAULT_STAGE_TEMPLATES:
        if name in existing:
            continue
        template = StageTemplate(company_id=company.id, name=name, order=order)
        db.session.add(template)
        created.append(template)
    db.session.flush()
    return created
