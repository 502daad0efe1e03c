"""Follow-up automation when project tasks progress."""

from __future__ import annotations

import datetime as dt
import logging
import math
from typing import Iterable

from .catalog import TemplateCatalog, default_catalog
from .generator import (
    coerce_date,
    generate_dependency_based_tasks,
    generate_milestone_tasks,
)
from .models import Task

logger = logging.getLogger(__name__)


def calculate_project_completion(tasks: Iterable[Task]) -> int:
    """Mean completion percentage of the tasks, rounded half up; 0 when empty."""
    percentages = [task.completion_percentage or 0 for task in tasks]
    if not percentages:
        return 0
    return math.floor(sum(percentages) / len(percentages) + 0.5)


def overdue_tasks(tasks: Iterable[Task], today: dt.date | None = None) -> list[Task]:
    today = today or dt.date.today()
    return [
        task
        for task in tasks
        if task.status != "completed" and task.due_date and coerce_date(task.due_date) < today
    ]


def follow_up_suggestions(task: Task) -> list[str]:
    suggestions: list[str] = []
    finished = task.completion_percentage == 100

    if task.requires_inspection and not task.inspection_passed:
        suggestions.append("Schedule inspection for completed work")
    if task.phase_name == "Foundation" and finished:
        suggestions.append("Begin framing preparation")
        suggestions.append("Order framing materials")
    if task.phase_name == "Electrical" and finished:
        suggestions.append("Schedule electrical inspection")
        suggestions.append("Coordinate with inspector")
    if task.weather_dependent and finished:
        suggestions.append("Update weather-dependent task schedules")
    return suggestions


def _same_task(left: Task, right: Task) -> bool:
    if left.task_id is not None and right.task_id is not None:
        return left.task_id == right.task_id
    return left.project_id == right.project_id and left.title == right.title


class TaskAutomation:
    def __init__(self, catalog: TemplateCatalog | None = None) -> None:
        self.catalog = catalog or default_catalog()

    def milestone_tasks(
        self,
        project_id: str,
        completion_percentage: float,
        existing: Iterable[Task] = (),
        *,
        today: dt.date | None = None,
    ) -> list[Task]:
        """Milestone tasks not already present (by title) in the project."""
        titles = {task.title for task in existing if task.project_id == project_id}
        created = generate_milestone_tasks(
            project_id, completion_percentage, catalog=self.catalog, today=today
        )
        return [task for task in created if task.title not in titles]

    def on_task_completed(
        self,
        completed: Task,
        all_tasks: Iterable[Task],
        *,
        today: dt.date | None = None,
    ) -> list[Task]:
        """Return the new tasks triggered by ``completed``.

        Project completion is recomputed with ``completed`` substituted for its
        stale copy, then milestone and dependency triggers are evaluated.
        """
        updated = [completed if _same_task(task, completed) else task for task in all_tasks]
        project_tasks = [task for task in updated if task.project_id == completed.project_id]
        completion = calculate_project_completion(project_tasks)

        created = self.milestone_tasks(
            completed.project_id, completion, project_tasks, today=today
        )
        created.extend(
            generate_dependency_based_tasks(
                completed.project_id,
                completed.title,
                project_tasks,
                catalog=self.catalog,
                today=today,
            )
        )
        logger.debug(
            "Task %r completed: project %s at %d%%, %d follow-up tasks",
            completed.title,
            completed.project_id,
            completion,
            len(created),
        )
        return created
