from __future__ import annotations

import pytest

from site_tasks.models import PlanValidationError
from site_tasks.planner import build_project_plan, plan_summary, prioritize_plan

MEDIUM_DESCRIPTION = "Family home with an open kitchen and a detached garage. " * 2


def _plan(**kwargs):
    return build_project_plan("p1", "Family Home", MEDIUM_DESCRIPTION, start_date="2024-01-01", **kwargs)


def test_plan_without_end_date_has_no_recurring_tasks() -> None:
    tasks = _plan()
    assert len(tasks) == 14
    assert not any("(Instance" in task.title for task in tasks)


def test_plan_appends_recurring_tasks_for_phases() -> None:
    tasks = _plan(end_date="2024-01-14", phases=["Construction"])
    assert len(tasks) == 14 + 20
    assert [task.title for task in tasks[:14]] == [task.title for task in _plan()]
    assert tasks[14].title == "Daily Safety Meeting (Instance 1)"


def test_prioritize_marks_done_work_and_sorts_it_last() -> None:
    ordered = prioritize_plan(_plan(), done_titles=["survey", "EXCAVATION"])
    assert [task.title for task in ordered[-2:]] == [
        "Foundation Excavation",
        "Site Survey and Preparation",
    ]
    assert all(task.completion_percentage == 100 for task in ordered[-2:])
    assert all(task.priority == "low" for task in ordered[-2:])
    assert all(task.completion_percentage == 0 for task in ordered[:-2])


def test_prioritize_orders_by_priority_then_dependencies() -> None:
    tasks = _plan()
    ordered = prioritize_plan(tasks)
    ranks = {"critical": 0, "high": 1, "medium": 2, "low": 3}
    keys = [(ranks[task.priority], -len(task.dependencies)) for task in ordered]
    assert keys == sorted(keys)
    # Equal keys keep the generation order by due date.
    highs = [task for task in ordered if task.priority == "high" and task.dependencies]
    assert [task.due_date for task in highs] == sorted(task.due_date for task in highs)


def test_prioritize_focus_raises_medium_priority() -> None:
    tasks = _plan()
    assert any(task.priority == "medium" for task in tasks)
    for focus in ("time", "quality", "safety"):
        assert not any(task.priority == "medium" for task in prioritize_plan(tasks, focus=focus))
    assert any(task.priority == "medium" for task in prioritize_plan(tasks, focus="cost"))


def test_prioritize_returns_copies() -> None:
    tasks = _plan()
    prioritize_plan(tasks, done_titles=["survey"], focus="time")
    assert tasks[0].completion_percentage == 0
    assert tasks[0].priority == "high"


def test_prioritize_rejects_unknown_focus() -> None:
    with pytest.raises(PlanValidationError, match="Invalid focus"):
        prioritize_plan(_plan(), focus="speed")


def test_plan_summary() -> None:
    ordered = prioritize_plan(_plan(), done_titles=["survey"])
    assert plan_summary(ordered) == {
        "tasks": 14,
        "open": 13,
        "estimated_hours": 488,
        "estimated_weeks": 13,
    }
    assert plan_summary([]) == {"tasks": 0, "open": 0, "estimated_hours": 0, "estimated_weeks": 0}
