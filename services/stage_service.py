"""Project stage scheduling and activation."""
from __future__ import annotations

from typing import Any, Mapping

from models.project import Project, ProjectStage
from services.stage_status import refresh_stage_status
from utils.date_kst import parse_date_input, to_db

STAGE_DATE_FIELDS = ("start_date", "received_date", "completed_date")


def get_stage(stage_id: int, company_id: int) -> ProjectStage:
    stage = (
        ProjectStage.active()
        .join(Project, ProjectStage.project_id == Project.id)
        .filter(
            ProjectStage.id == stage_id,
            Project.deleted_at.is_(None),
            Project.company_id == company_id,
        )
        .one_or_none()
    )
    if stage is None:
        raise LookupError("Project stage not found.")
    return stage


def _parse_stage_date(value: Any, field_name: str):
    if value is None or value == "":
        return None
    return to_db(parse_date_input(value, field_name))


def update_stage_dates(stage_id: int, payload: Mapping[str, Any], company_id: int) -> ProjectStage:
    """Update the schedule dates present in ``payload``.

    A missing key leaves the date untouched, ``None`` or an empty string clears
    it, anything else must parse as a date. Nothing is written when any value
    is invalid.
    """

    stage = get_stage(stage_id, company_id)
    parsed = {
        field: _parse_stage_date(payload[field], field)
        for field in STAGE_DATE_FIELDS
        if field in payload
    }
    for field, value in parsed.items():
        setattr(stage, field, value)
    return stage


def update_stage_active(stage_id: int, is_active: bool, company_id: int) -> ProjectStage:
    """Toggle a stage; a reactivated stage has its status re-derived."""

    stage = get_stage(stage_id, company_id)
    stage.is_active = is_active
    if is_active:
        refresh_stage_status(stage.id)
    return stage
