"""Combined project plans and their prioritization."""

from __future__ import annotations

from dataclasses import replace
import datetime as dt
from typing import Iterable, Sequence

from .catalog import TemplateCatalog
from .generator import (
    DateLike,
    estimate_project_duration,
    generate_recurring_tasks,
    generate_tasks_from_project,
)
from .models import PlanValidationError, Task

DEFAULT_RECURRING_PHASES = ("Pre-Construction", "Construction", "Post-Construction")
VALID_FOCUS = ("time", "cost", "quality", "safety")
PRIORITY_RANK = {"critical": 0, "high": 1, "medium": 2, "low": 3}


def build_project_plan(
    project_id: str,
    title: str,
    description: str,
    project_type: str | None = None,
    start_date: DateLike | None = None,
    end_date: DateLike | None = None,
    phases: Sequence[str] = DEFAULT_RECURRING_PHASES,
    *,
    catalog: TemplateCatalog | None = None,
    today: dt.date | None = None,
) -> list[Task]:
    """Project tasks followed by recurring tasks when both dates are known."""
    tasks = generate_tasks_from_project(
        project_id,
        title,
        description,
        project_type,
        start_date,
        catalog=catalog,
        today=today,
    )
    if start_date and end_date:
        tasks.extend(
            generate_recurring_tasks(project_id, start_date, end_date, phases, catalog=catalog)
        )
    return tasks


def _emphasize(priority: str, focus: str | None) -> str:
    if focus in ("time", "quality", "safety") and priority == "medium":
        return "high"
    return priority


def prioritize_plan(
    tasks: Iterable[Task],
    done_titles: Iterable[str] = (),
    focus: str | None = None,
) -> list[Task]:
    """Return copies of ``tasks`` ordered for review.

    A task whose title contains any of ``done_titles`` (case-insensitive) is
    marked 100% complete and dropped to low priority. Other tasks get their
    priority raised from medium to high when ``focus`` is time, quality or
    safety. Ordering: incomplete first, then priority, then tasks with more
    dependencies, then earlier due date, then original position.
    """
    if focus is not None and focus not in VALID_FOCUS:
        raise PlanValidationError(
            f"Invalid focus: {focus} (expected one of {', '.join(VALID_FOCUS)})"
        )
    lowered_done = [title.lower() for title in done_titles if title.strip()]

    ranked: list[tuple[int, Task]] = []
    for index, task in enumerate(tasks):
        title = task.title.lower()
        if any(done in title for done in lowered_done):
            item = replace(task, completion_percentage=100, priority="low")
        else:
            item = replace(task, completion_percentage=0, priority=_emphasize(task.priority, focus))
        ranked.append((index, item))

    ranked.sort(
        key=lambda pair: (
            1 if pair[1].completion_percentage == 100 else 0,
            PRIORITY_RANK.get(pair[1].priority, 9),
            -len(pair[1].dependencies),
            pair[1].due_date or "",
            pair[0],
        )
    )
    return [task for _, task in ranked]


def plan_summary(tasks: Sequence[Task]) -> dict[str, int | float]:
    return {
        "tasks": len(tasks),
        "open": sum(1 for task in tasks if task.completion_percentage < 100),
        "estimated_hours": round(sum(task.estimated_hours for task in tasks), 1),
        "estimated_weeks": estimate_project_duration(tasks),
    }
