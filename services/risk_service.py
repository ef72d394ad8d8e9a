"""Delay-risk scoring for in-progress projects.

``risk = round(max_delay_days * stage_weight + overdue * 10 + (1 - completion) * 20)``
capped at 100. The stage weight is the template order of the first stage whose
status is ``active`` (1 when there is none). Only projects scoring 30 or more
are surfaced. Scores are recomputed on every read and never stored.
"""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Iterable, Optional

from models.project import Project, ProjectStatus, StageStatus
from models.task import TaskStatus
from utils.date_kst import DAY, as_utc, utc_now

RISK_LIST_THRESHOLD = 30
MAX_RISK_SCORE = 100


class RiskSeverity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class RiskAssessment:
    score: int
    severity: RiskSeverity
    delay_days: int
    overdue_task_count: int
    completion_rate: float
    factors: list[str] = field(default_factory=list)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def severity_for(score: int) -> RiskSeverity:
    if score >= 80:
        return RiskSeverity.CRITICAL
    if score >= 50:
        return RiskSeverity.HIGH
    if score >= 30:
        return RiskSeverity.MEDIUM
    return RiskSeverity.LOW


def _is_overdue(task, now: datetime) -> bool:
    # A missing due date is never overdue.
    if task.due_date is None:
        return False
    return as_utc(task.due_date) < now and task.status != TaskStatus.COMPLETED.value


def _delay_days(due_date: datetime, now: datetime) -> int:
    return math.ceil((now - as_utc(due_date)) / DAY)


def _stage_weight(stages: Iterable) -> int:
    for stage in stages:
        if stage.status == StageStatus.ACTIVE.value:
            return stage.order or 1
    return 1


def assess_project_risk(stages: Iterable, now: Optional[datetime] = None) -> Optional[RiskAssessment]:
    """Score a project from its active stages and their active tasks.

    Each stage must expose ``status``, ``order`` and ``tasks`` (already limited
    to active tasks). Returns ``None`` when there are no tasks at all.
    """

    now = utc_now() if now is None else as_utc(now)
    stages = list(stages)
    tasks = [task for stage in stages for task in stage.tasks]
    if not tasks:
        return None

    overdue = [task for task in tasks if _is_overdue(task, now)]
    max_delay_days = max((_delay_days(task.due_date, now) for task in overdue), default=0)
    completed = sum(1 for task in tasks if task.status == TaskStatus.COMPLETED.value)
    completion_rate = completed / len(tasks)
    weight = _stage_weight(stages)

    raw = max_delay_days * weight + len(overdue) * 10 + (1 - completion_rate) * 20
    score = min(round_half_up(raw), MAX_RISK_SCORE)

    factors: list[str] = []
    if overdue:
        factors.append(f"{len(overdue)}개 태스크 마감 초과")
    if max_delay_days > 0:
        factors.append(f"최대 {max_delay_days}일 지연")
    if completion_rate < 0.5:
        factors.append(f"진행률 {round_half_up(completion_rate * 100)}%")

    return RiskAssessment(
        score=score,
        severity=severity_for(score),
        delay_days=max_delay_days,
        overdue_task_count=len(overdue),
        completion_rate=completion_rate,
        factors=factors,
    )


class _StageView:
    """Active stage with only its active, non-deleted tasks."""

    def __init__(self, stage):
        self.status = stage.status
        self.order = stage.order
        self.tasks = stage.active_tasks()


def project_stage_views(project: Project) -> list[_StageView]:
    return [_StageView(stage) for stage in project.active_stages() if stage.is_active]


def serialize_risk(project: Project, assessment: RiskAssessment) -> dict[str, object]:
    payload = asdict(assessment)
    return {
        "projectId": project.id,
        "projectName": project.name,
        "riskScore": payload["score"],
        "delayDays": payload["delay_days"],
        "severity": assessment.severity.value,
        "factors": payload["factors"],
        "overdueTaskCount": payload["overdue_task_count"],
        "completionRate": round_half_up(assessment.completion_rate * 100) / 100,
    }


def get_risk_projects(company_id: int, now: Optional[datetime] = None) -> list[dict[str, object]]:
    """Return at-risk in-progress projects of the company, highest score first."""

    now = utc_now() if now is None else as_utc(now)
    projects = (
        Project.active()
        .filter(
            Project.company_id == company_id,
            Project.status == ProjectStatus.IN_PROGRESS.value,
        )
        .order_by(Project.id)
        .all()
    )

    results = []
    for project in projects:
        assessment = assess_project_risk(project_stage_views(project), now)
        if assessment is None or assessment.score < RISK_LIST_THRESHOLD:
            continue
        results.append(serialize_risk(project, assessment))

    results.sort(key=lambda item: item["riskScore"], reverse=True)
    return results
