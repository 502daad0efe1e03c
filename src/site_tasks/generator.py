"""Materialize construction task templates into dated task records."""

from __future__ import annotations

import datetime as dt
import logging
import math
from typing import Iterable, Sequence

from .catalog import TemplateCatalog, default_catalog
from .classifier import analyze_project
from .models import (
    DEFAULT_SCHEDULE_RISK,
    LOEEstimate,
    PlanValidationError,
    RecurringTaskTemplate,
    Task,
    TaskDependency,
    TaskTemplate,
)

logger = logging.getLogger(__name__)

SCALE_FACTORS = {"small": 0.7, "medium": 1, "large": 1.5}
HOURS_PER_DAY = 8
HOURS_PER_WEEK = 40
INSPECTION_BUFFER_DAYS = 2
DEFAULT_BUFFER_DAYS = 1
MILESTONE_DUE_DAYS = 3
MAX_RECURRING_INSTANCES = 100

DateLike = str | dt.date


def _today() -> dt.date:
    return dt.date.today()


def coerce_date(value: DateLike | None, default: dt.date | None = None) -> dt.date:
    """Accept a date, an ISO date string or an ISO timestamp string."""
    if value is None or value == "":
        return default or _today()
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    try:
        return dt.date.fromisoformat(value.strip().split("T", 1)[0])
    except ValueError as exc:
        raise PlanValidationError(f"Invalid date: {value!r} (expected YYYY-MM-DD)") from exc


def scale_hours(hours: float, scale: str) -> float:
    factor = SCALE_FACTORS.get(scale, 1)
    if factor == 1:
        return hours
    return math.ceil(hours * factor)


def duration_days(hours: float) -> int:
    return math.ceil(hours / HOURS_PER_DAY)


def synthesize_loe(hours: float) -> LOEEstimate:
    return LOEEstimate(
        optimistic_hours=math.ceil(hours * 0.8),
        most_likely_hours=hours,
        pessimistic_hours=math.ceil(hours * 1.3),
        confidence_level=75,
        complexity_factor="moderate",
        skill_level_required="intermediate",
    )


def scale_loe(base: LOEEstimate, estimated_hours: float, scale: str) -> LOEEstimate:
    """Scale a three-point estimate around already-scaled estimated hours.

    Rounding can push optimistic above (or pessimistic below) most_likely, so
    both ends are clamped to keep optimistic <= most_likely <= pessimistic.
    """
    optimistic = scale_hours(base.optimistic_hours, scale)
    pessimistic = scale_hours(base.pessimistic_hours, scale)
    return LOEEstimate(
        optimistic_hours=min(optimistic, estimated_hours),
        most_likely_hours=estimated_hours,
        pessimistic_hours=max(pessimistic, estimated_hours),
        confidence_level=base.confidence_level,
        complexity_factor=base.complexity_factor,
        skill_level_required=base.skill_level_required,
    )


def _task_from_template(
    project_id: str,
    template: TaskTemplate,
    *,
    start: dt.date,
    due: dt.date,
    estimated_hours: float,
    loe: LOEEstimate,
    risks: Iterable,
    dependencies: list[TaskDependency] | None = None,
) -> Task:
    return Task(
        project_id=project_id,
        title=template.title,
        description=template.description,
        priority=template.priority,
        start_date=start.isoformat(),
        due_date=due.isoformat(),
        estimated_hours=estimated_hours,
        phase_name=template.phase_name,
        loe=loe,
        weather_dependent=template.weather_dependent,
        requires_inspection=template.requires_inspection,
        safety_requirements=list(template.safety_requirements),
        equipment_needed=list(template.equipment_needed),
        materials_needed=list(template.materials_needed),
        dependencies=dependencies or [],
        subtasks=list(template.subtasks),
        risks=list(risks),
    )


def select_templates(templates: Sequence[TaskTemplate], scale: str) -> list[TaskTemplate]:
    # Small projects keep every other template (alternate-task selection).
    if scale == "small":
        return [template for index, template in enumerate(templates) if index % 2 == 0]
    return list(templates)


def link_sequential_dependencies(tasks: list[Task]) -> list[Task]:
    """Point each task at the task generated just before it."""
    for index in range(1, len(tasks)):
        previous = tasks[index - 1]
        tasks[index].dependencies = [previous.dependency_snapshot(f"task-{index - 1}")]
    return tasks


def generate_tasks_from_project(
    project_id: str,
    title: str,
    description: str,
    project_type: str | None = None,
    start_date: DateLike | None = None,
    *,
    catalog: TemplateCatalog | None = None,
    today: dt.date | None = None,
) -> list[Task]:
    """Expand the template set for a project into a serial, dated task list.

    The project type comes from ``project_type`` when given, else from the
    classifier; the scale always comes from the classifier. Each task starts
    after the previous one plus a buffer of two days when it requires an
    inspection and one day otherwise.
    """
    catalog = catalog or default_catalog()
    analysis = analyze_project(title, description)
    resolved_type = project_type or analysis.project_type
    scale = analysis.scale
    templates = select_templates(catalog.templates_for(resolved_type), scale)

    base_start = coerce_date(start_date, default=today)
    offset_days = 0
    tasks: list[Task] = []
    for template in templates:
        estimated_hours = scale_hours(template.estimated_hours, scale)
        # Synthesized from unscaled hours; scale_loe then scales and clamps it.
        base_loe = template.loe or synthesize_loe(template.estimated_hours)
        loe = scale_loe(base_loe, estimated_hours, scale)

        days = duration_days(estimated_hours)
        start = base_start + dt.timedelta(days=offset_days)
        due = start + dt.timedelta(days=days)
        offset_days += days + (
            INSPECTION_BUFFER_DAYS if template.requires_inspection else DEFAULT_BUFFER_DAYS
        )

        risks = template.risks if template.risks is not None else (DEFAULT_SCHEDULE_RISK,)
        tasks.append(
            _task_from_template(
                project_id,
                template,
                start=start,
                due=due,
                estimated_hours=estimated_hours,
                loe=loe,
                risks=risks,
            )
        )

    logger.debug(
        "Generated %d tasks for project %s (%s/%s)",
        len(tasks),
        project_id,
        resolved_type,
        scale,
    )
    return link_sequential_dependencies(tasks)


def _applies_to_phases(template: RecurringTaskTemplate, project_phases: Iterable[str]) -> bool:
    lowered = [phase.lower() for phase in project_phases]
    return any(
        applicable.lower() in project_phase
        for applicable in template.applicable_phases
        for project_phase in lowered
    )


def _recurring_loe(hours: float) -> LOEEstimate:
    return LOEEstimate(
        optimistic_hours=hours * 0.8,
        most_likely_hours=hours,
        pessimistic_hours=hours * 1.2,
        confidence_level=85,
        complexity_factor="low",
        skill_level_required="basic",
    )


def generate_recurring_tasks(
    project_id: str,
    start_date: DateLike,
    end_date: DateLike,
    project_phases: Sequence[str],
    *,
    catalog: TemplateCatalog | None = None,
) -> list[Task]:
    """Generate instances of every recurring template that applies to the phases.

    A template applies when one of its applicable phases appears, case-insensitively,
    inside one of ``project_phases``. Instances run from ``start_date`` through
    ``end_date`` inclusive and stop at ``MAX_RECURRING_INSTANCES`` per template.
    """
    catalog = catalog or default_catalog()
    start = coerce_date(start_date)
    end = coerce_date(end_date)
    tasks: list[Task] = []

    for template in catalog.recurring_templates:
        if not _applies_to_phases(template, project_phases):
            continue
        step = dt.timedelta(days=template.interval_days)
        current = start
        count = 0
        while current <= end and count < MAX_RECURRING_INSTANCES:
            tasks.append(
                Task(
                    project_id=project_id,
                    title=f"{template.title} (Instance {count + 1})",
                    description=template.description,
                    priority=template.priority,
                    start_date=current.isoformat(),
                    due_date=(current + dt.timedelta(days=1)).isoformat(),
                    estimated_hours=template.estimated_hours,
                    phase_name=template.phase_name,
                    loe=_recurring_loe(template.estimated_hours),
                    weather_dependent=template.weather_dependent,
                    safety_requirements=list(template.safety_requirements),
                )
            )
            current += step
            count += 1
        if current <= end:
            logger.warning(
                "Recurring task %r truncated at %d instances (range ends %s)",
                template.title,
                MAX_RECURRING_INSTANCES,
                end.isoformat(),
            )

    return tasks


def generate_milestone_tasks(
    project_id: str,
    completion_percentage: float,
    *,
    catalog: TemplateCatalog | None = None,
    today: dt.date | None = None,
) -> list[Task]:
    """Emit the tasks of every milestone at or below ``completion_percentage``.

    Thresholds are cumulative and not remembered, so repeated calls emit the same
    tasks again; deduplication is up to the caller.
    """
    catalog = catalog or default_catalog()
    start = today or _today()
    due = start + dt.timedelta(days=MILESTONE_DUE_DAYS)
    tasks: list[Task] = []
    for milestone in catalog.milestone_templates:
        if completion_percentage < milestone.completion_percentage:
            continue
        for template in milestone.triggered_tasks:
            tasks.append(
                _task_from_template(
                    project_id,
                    template,
                    start=start,
                    due=due,
                    estimated_hours=template.estimated_hours,
                    loe=template.loe or synthesize_loe(template.estimated_hours),
                    risks=template.risks or (),
                )
            )
    return tasks


def generate_dependency_based_tasks(
    project_id: str,
    completed_task_title: str,
    all_project_tasks: Iterable[Task],
    *,
    catalog: TemplateCatalog | None = None,
    today: dt.date | None = None,
) -> list[Task]:
    """Emit templates (from every project type) that depend on a completed task.

    A template is skipped when a task with the same title already exists in the
    project. Titles emitted earlier in the same call are skipped too, so a title
    shared by several project types yields a single task.
    """
    catalog = catalog or default_catalog()
    existing = {
        task.title for task in all_project_tasks if task.project_id == project_id
    }
    start = (today or _today()) + dt.timedelta(days=1)
    tasks: list[Task] = []
    for template in catalog.all_templates():
        if completed_task_title not in template.depends_on:
            continue
        if template.title in existing:
            continue
        existing.add(template.title)
        tasks.append(
            _task_from_template(
                project_id,
                template,
                start=start,
                due=start + dt.timedelta(days=duration_days(template.estimated_hours)),
                estimated_hours=template.estimated_hours,
                loe=template.loe or synthesize_loe(template.estimated_hours),
                risks=template.risks or (),
                dependencies=[
                    TaskDependency(
                        id="completed-task",
                        title=completed_task_title,
                        status="completed",
                        completion_percentage=100,
                    )
                ],
            )
        )
    return tasks


def suggested_tasks_by_phase(
    phase: str, *, catalog: TemplateCatalog | None = None
) -> list[TaskTemplate]:
    return (catalog or default_catalog()).suggested_templates_by_phase(phase)


def estimate_project_duration(tasks: Iterable[Task]) -> int:
    """Total estimated effort in 40-hour working weeks, rounded up."""
    total_hours = sum(task.estimated_hours for task in tasks)
    return math.ceil(total_hours / HOURS_PER_WEEK)


def dependency_graph(tasks: Sequence[Task]) -> dict[str, list[str]]:
    """Adjacency list of generated tasks keyed by their ``task-<index>`` reference.

    References to tasks outside the list (such as ``completed-task``) are dropped.
    Raises PlanValidationError when the references form a cycle.
    """
    graph: dict[str, list[str]] = {f"task-{index}": [] for index in range(len(tasks))}
    for index, task in enumerate(tasks):
        node = f"task-{index}"
        deps = sorted({dep.id for dep in task.dependencies if dep.id in graph})
        if node in deps:
            raise PlanValidationError(f"Task {task.title} cannot depend on itself")
        graph[node] = deps

    visiting: set[str] = set()
    visited: set[str] = set()

    def dfs(node: str, stack: list[str]) -> None:
        if node in visiting:
            cycle = " -> ".join(stack + [node])
            raise PlanValidationError(f"Dependency cycle detected: {cycle}")
        if node in visited:
            return
        visiting.add(node)
        for dep in graph[node]:
            dfs(dep, stack + [node])
        visiting.remove(node)
        visited.add(node)

    for node in graph:
        dfs(node, [])
    return graph
