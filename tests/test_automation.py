from __future__ import annotations

from dataclasses import replace
import datetime as dt

from site_tasks.automation import (
    TaskAutomation,
    calculate_project_completion,
    follow_up_suggestions,
    overdue_tasks,
)
from site_tasks.catalog import parse_catalog
from site_tasks.generator import generate_milestone_tasks, generate_tasks_from_project

MEDIUM_DESCRIPTION = "Family home with an open kitchen and a detached garage. " * 2
TODAY = dt.date(2024, 2, 1)


def _project(project_id: str = "p1"):
    return generate_tasks_from_project(
        project_id, "Family Home", MEDIUM_DESCRIPTION, None, "2024-01-01"
    )


def test_project_completion_rounds_half_up() -> None:
    tasks = _project()[:3]
    assert calculate_project_completion([]) == 0
    values = [0, 50, 75]
    assert calculate_project_completion(
        [replace(task, completion_percentage=value) for task, value in zip(tasks, values)]
    ) == 42
    assert calculate_project_completion(
        [replace(task, completion_percentage=value) for task, value in zip(tasks, [25, 50])]
    ) == 38


def test_overdue_tasks_excludes_completed_and_due_today() -> None:
    tasks = _project()
    # Task 0 is due 2024-01-03, task 1 due 2024-01-08.
    tasks[1].status = "completed"
    overdue = overdue_tasks(tasks, today=dt.date(2024, 1, 8))
    assert [task.title for task in overdue] == ["Site Survey and Preparation"]
    assert overdue_tasks(tasks, today=dt.date(2024, 1, 3)) == []


def test_follow_up_suggestions_for_finished_foundation() -> None:
    pour = next(task for task in _project() if task.title == "Foundation Pour")
    pour.completion_percentage = 100
    assert follow_up_suggestions(pour) == [
        "Schedule inspection for completed work",
        "Begin framing preparation",
        "Order framing materials",
        "Update weather-dependent task schedules",
    ]


def test_follow_up_suggestions_for_passed_electrical_inspection() -> None:
    task = replace(
        _project()[0],
        phase_name="Electrical",
        completion_percentage=100,
        inspection_passed=True,
        weather_dependent=False,
    )
    assert follow_up_suggestions(task) == [
        "Schedule electrical inspection",
        "Coordinate with inspector",
    ]


def test_follow_up_suggestions_empty_while_in_progress() -> None:
    task = replace(_project()[8], completion_percentage=40)
    assert follow_up_suggestions(task) == []


def _finish_first(tasks, count):
    return [
        replace(task, status="completed", completion_percentage=100) if index < count else task
        for index, task in enumerate(tasks)
    ]


def test_on_task_completed_triggers_quarter_milestone() -> None:
    tasks = _finish_first(_project(), 3)
    completed = replace(tasks[3], status="completed", completion_percentage=100)

    created = TaskAutomation().on_task_completed(completed, tasks, today=TODAY)

    # 4 of 14 tasks complete is 29%.
    assert [task.title for task in created] == [
        "First Quarter Review Meeting",
        "Budget Reconciliation",
    ]
    assert all(task.start_date == "2024-02-01" for task in created)


def test_on_task_completed_skips_existing_milestone_tasks() -> None:
    tasks = _finish_first(_project(), 3)
    tasks.extend(
        task
        for task in generate_milestone_tasks("p1", 25, today=TODAY)
        if task.title == "Budget Reconciliation"
    )
    completed = replace(tasks[3], status="completed", completion_percentage=100)

    created = TaskAutomation().on_task_completed(completed, tasks, today=TODAY)

    assert [task.title for task in created] == ["First Quarter Review Meeting"]


def test_on_task_completed_ignores_other_projects() -> None:
    tasks = _project("p1") + _finish_first(_project("p2"), 14)
    completed = replace(tasks[0], status="completed", completion_percentage=100)
    assert TaskAutomation().on_task_completed(completed, tasks, today=TODAY) == []


def test_on_task_completed_adds_dependency_triggered_tasks() -> None:
    catalog = parse_catalog(
        {
            "project_templates": {
                "residential": [
                    {
                        "title": "Framing",
                        "description": "Frame the walls",
                        "priority": "high",
                        "estimated_hours": 40,
                        "phase_name": "Structure",
                    },
                    {
                        "title": "Framing Inspection",
                        "description": "Inspect the framing",
                        "priority": "high",
                        "estimated_hours": 8,
                        "phase_name": "Structure",
                        "depends_on": ["Framing"],
                    },
                ]
            }
        }
    )
    tasks = generate_tasks_from_project(
        "p1", "Family Home", MEDIUM_DESCRIPTION, catalog=catalog, today=TODAY
    )
    framing = replace(tasks[0], status="completed", completion_percentage=100)

    automation = TaskAutomation(catalog)
    # The inspection task already exists in the project, so nothing new appears.
    assert automation.on_task_completed(framing, tasks, today=TODAY) == []

    created = automation.on_task_completed(framing, [framing], today=TODAY)
    assert [task.title for task in created] == ["Framing Inspection"]
    assert created[0].start_date == "2024-02-02"
    assert created[0].due_date == "2024-02-03"
