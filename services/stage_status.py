"""Stage status aggregation.

A stage's status is a pure function of its active tasks:

* no active tasks -> ``pending``
* every active task completed -> ``completed``
* any task in progress, or some (not all) completed -> ``active``
* otherwise -> ``pending``

A single completed task among pending ones already makes the stage
``active``: any progress at all counts. Inactive stages are controlled
manually and are never re-derived.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from models.project import ProjectStage, StageStatus
from models.task import Task, TaskStatus


def derive_stage_status(tasks: Iterable) -> StageStatus:
    """Return the aggregate status for the supplied (already filtered) tasks."""

    statuses = [task.status for task in tasks]
    if not statuses:
        return StageStatus.PENDING

    completed = sum(1 for status in statuses if status == TaskStatus.COMPLETED.value)
    if completed == len(statuses):
        return StageStatus.COMPLETED
    if completed > 0 or TaskStatus.IN_PROGRESS.value in statuses:
        return StageStatus.ACTIVE
    return StageStatus.PENDING


def refresh_stage_status(stage_id: Optional[int]) -> Optional[str]:
    """Recompute and persist the status of a stage.

    Returns the stage's status after the refresh, or ``None`` when the stage
    does not exist. The write is a conditional update that only touches the
    row when the stored value differs, so concurrent refreshes converge.
    The caller owns the surrounding transaction.
    """

    stage = ProjectStage.get_active_or_none(stage_id)
    if stage is None:
        return None
    if not stage.is_active:
        return stage.status

    tasks = (
        Task.active()
        .filter(Task.project_stage_id == stage.id, Task.is_active.is_(True))
        .with_entities(Task.status)
        .all()
    )
    derived = derive_stage_status(tasks).value
    previous = stage.status
    if derived == previous:
        return derived

    updated = (
        ProjectStage.query.filter(
            ProjectStage.id == stage.id,
            ProjectStage.status != derived,
        )
        .update({ProjectStage.status: derived}, synchronize_session="fetch")
    )
    if updated:
        logging.info("Stage %s status %s -> %s", stage.id, previous, derived)
    return derived
