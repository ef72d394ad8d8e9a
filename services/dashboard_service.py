"""Dashboard read models: due tasks, planner, my-work tabs and risk summary.

Day windows ("today", "tomorrow", "next 7 days") are KST calendar days. When
no user is supplied the task lists cover every assignee of the company.
"""
from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, Optional

from sqlalchemy import or_

from models.project import Project, ProjectStage, ProjectStatus
from models.task import Task, TaskStatus
from services.risk_service import RiskSeverity, get_risk_projects as score_risk_projects
from utils.date_kst import as_utc, d_day_difference, format_kst_date, isoformat_utc, kst_start_of_day, to_db, utc_now

CRITICAL_RISK_SCORE = 80
BIG3_SIZE = 3


class MyWorkTab(StrEnum):
    TODAY = "today"
    OVERDUE = "overdue"
    IN_PROGRESS = "in_progress"
    WAITING = "waiting"


def _open_tasks(company_id: int, user_id: Optional[int] = None, *, include_completed: bool = False):
    """Active tasks in active stages of the company's live projects."""

    query = (
        Task.active()
        .join(ProjectStage, Task.project_stage_id == ProjectStage.id)
        .join(Project, ProjectStage.project_id == Project.id)
        .filter(
            Task.is_active.is_(True),
            ProjectStage.deleted_at.is_(None),
            ProjectStage.is_active.is_(True),
            Project.deleted_at.is_(None),
            Project.company_id == company_id,
        )
    )
    if not include_completed:
        query = query.filter(Task.status != TaskStatus.COMPLETED.value)
    if user_id is not None:
        query = query.filter(Task.assignee_id == user_id)
    return query


def _due_between(query, start: datetime, end: datetime):
    return query.filter(Task.due_date >= to_db(start), Task.due_date < to_db(end))


def _ordered(query):
    return query.order_by(Task.due_date.asc(), Task.created_at.asc(), Task.id.asc())


def serialize_task_summary(task: Task) -> dict[str, Any]:
    stage = task.stage
    project = task.project
    return {
        "id": task.id,
        "title": task.title,
        "projectId": project.id,
        "projectName": project.name,
        "dueDate": isoformat_utc(task.due_date),
        "status": task.status,
        "isMandatory": task.is_mandatory,
        "stageName": stage.name,
    }


def serialize_planner_task(task: Task) -> dict[str, Any]:
    stage = task.stage
    project = task.project
    return {
        "id": task.id,
        "title": task.title,
        "status": task.status,
        "dueDate": isoformat_utc(task.due_date),
        "project": {"id": project.id, "name": project.name},
        "stage": {"id": stage.id, "name": stage.name},
    }


def get_today_tasks(company_id: int, user_id: Optional[int] = None, now: Optional[datetime] = None) -> list[dict[str, Any]]:
    now = utc_now() if now is None else as_utc(now)
    query = _due_between(_open_tasks(company_id, user_id), kst_start_of_day(now), kst_start_of_day(now, 1))
    return [serialize_task_summary(task) for task in _ordered(query).all()]


def get_upcoming_tasks(company_id: int, user_id: Optional[int] = None, now: Optional[datetime] = None) -> list[dict[str, Any]]:
    """Tasks due from tomorrow through seven days out (D+1 to D+7)."""

    now = utc_now() if now is None else as_utc(now)
    query = _due_between(_open_tasks(company_id, user_id), kst_start_of_day(now, 1), kst_start_of_day(now, 8))
    return [serialize_task_summary(task) for task in _ordered(query).all()]


def get_stats(company_id: int, user_id: Optional[int] = None, now: Optional[datetime] = None, risk_projects=None) -> dict[str, int]:
    now = utc_now() if now is None else as_utc(now)
    projects = Project.active().filter(Project.company_id == company_id)
    my_tasks = _open_tasks(company_id, user_id, include_completed=True)
    if risk_projects is None:
        risk_projects = score_risk_projects(company_id, now)

    return {
        "totalProjects": projects.count(),
        "inProgressProjects": projects.filter(Project.status == ProjectStatus.IN_PROGRESS.value).count(),
        "totalMyTasks": my_tasks.count(),
        "completedMyTasks": my_tasks.filter(Task.status == TaskStatus.COMPLETED.value).count(),
        "todayDueCount": _due_between(
            _open_tasks(company_id, user_id), kst_start_of_day(now), kst_start_of_day(now, 1)
        ).count(),
        "riskProjectCount": sum(1 for item in risk_projects if item["riskScore"] >= CRITICAL_RISK_SCORE),
    }


def get_risk_projects(company_id: int, now: Optional[datetime] = None) -> list[dict[str, Any]]:
    return [
        item
        for item in score_risk_projects(company_id, now)
        if item["severity"] != RiskSeverity.LOW.value
    ]


def get_full_summary(company_id: int, user_id: Optional[int] = None, now: Optional[datetime] = None) -> dict[str, Any]:
    now = utc_now() if now is None else as_utc(now)
    risk_projects = score_risk_projects(company_id, now)
    return {
        "todayTasks": get_today_tasks(company_id, user_id, now),
        "upcoming7Days": get_upcoming_tasks(company_id, user_id, now),
        "riskProjects": risk_projects,
        "stats": get_stats(company_id, user_id, now, risk_projects),
    }


def get_summary(company_id: int, user_id: Optional[int] = None, now: Optional[datetime] = None) -> dict[str, Any]:
    """Counts grouped by status, kept for older dashboard widgets."""

    now = utc_now() if now is None else as_utc(now)
    project_counts: dict[str, int] = {}
    for (status,) in Project.active().filter(Project.company_id == company_id).with_entities(Project.status):
        project_counts[status] = project_counts.get(status, 0) + 1

    task_counts: dict[str, int] = {}
    for (status,) in _open_tasks(company_id, user_id, include_completed=True).with_entities(Task.status):
        task_counts[status] = task_counts.get(status, 0) + 1

    return {
        "projects": {"total": sum(project_counts.values()), "byStatus": project_counts},
        "myTasks": {"total": sum(task_counts.values()), "byStatus": task_counts},
        "todayDue": len(get_today_tasks(company_id, user_id, now)),
        "riskProjectCount": len(get_risk_projects(company_id, now)),
    }


def get_tomorrow_dashboard(company_id: int, user_id: Optional[int] = None, now: Optional[datetime] = None) -> dict[str, Any]:
    """Planner for tomorrow: overdue, due today, due tomorrow and the top three."""

    now = utc_now() if now is None else as_utc(now)
    today_start = kst_start_of_day(now)
    tomorrow_start = kst_start_of_day(now, 1)
    day_after_start = kst_start_of_day(now, 2)
    base = _open_tasks(company_id, user_id)

    overdue = [serialize_planner_task(task) for task in _ordered(base.filter(Task.due_date < to_db(today_start))).all()]
    due_today = [serialize_planner_task(task) for task in _ordered(_due_between(base, today_start, tomorrow_start)).all()]
    due_tomorrow = [
        serialize_planner_task(task) for task in _ordered(_due_between(base, tomorrow_start, day_after_start)).all()
    ]

    big3: list[dict[str, Any]] = []
    seen: set[int] = set()
    for task in overdue + due_today + due_tomorrow:
        if task["id"] in seen:
            continue
        seen.add(task["id"])
        big3.append(task)
        if len(big3) >= BIG3_SIZE:
            break

    return {
        "date": format_kst_date(tomorrow_start),
        "big3": big3,
        "dueTomorrow": due_tomorrow,
        "overdue": overdue,
        "dueToday": due_today,
    }


def get_my_work(company_id: int, user_id: Optional[int] = None, tab: str = MyWorkTab.TODAY.value, now: Optional[datetime] = None) -> list[dict[str, Any]]:
    """Open tasks of the user (plus unassigned ones) for one of the my-work tabs."""

    try:
        tab = MyWorkTab(tab or MyWorkTab.TODAY.value)
    except ValueError as exc:
        raise ValueError("tab must be one of today, overdue, in_progress, waiting") from exc

    now = utc_now() if now is None else as_utc(now)
    today_start = kst_start_of_day(now)
    query = _open_tasks(company_id)
    if user_id is not None:
        query = query.filter(or_(Task.assignee_id == user_id, Task.assignee_id.is_(None)))

    if tab is MyWorkTab.TODAY:
        query = _due_between(query, today_start, kst_start_of_day(now, 1))
    elif tab is MyWorkTab.OVERDUE:
        query = query.filter(Task.due_date < to_db(today_start))
    elif tab is MyWorkTab.IN_PROGRESS:
        query = query.filter(Task.status == TaskStatus.IN_PROGRESS.value)
    else:
        query = query.filter(Task.status == TaskStatus.WAITING.value)

    items = []
    for task in _ordered(query).all():
        stage = task.stage
        project = task.project
        items.append(
            {
                "taskId": task.id,
                "taskTitle": task.title,
                "projectId": project.id,
                "projectName": project.name,
                "stageId": stage.id,
                "stageName": stage.name,
                "status": task.status,
                "dueDate": isoformat_utc(task.due_date),
                "dDay": d_day_difference(task.due_date, today_start) if task.due_date else None,
                "waitingFor": task.waiting_for,
            }
        )

    # Undated tasks sort last.
    items.sort(key=lambda item: (item["dueDate"] is None, item["dueDate"] or ""))
    return items
