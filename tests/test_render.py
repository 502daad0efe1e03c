from __future__ import annotations

import json

from rich.table import Table

from site_tasks import render
from site_tasks.catalog import default_catalog
from site_tasks.classifier import analyze_project
from site_tasks.generator import generate_recurring_tasks, generate_tasks_from_project


def _tasks():
    return generate_tasks_from_project(
        "p1", "Kitchen Remodel", "Small renovation of kitchen", None, "2024-01-01"
    )


def test_render_task_list_plain_shape_stable() -> None:
    output = render.render_task_list_plain(_tasks())
    lines = output.splitlines()
    assert lines[0].split() == ["title", "phase", "priority", "start", "due", "hours", "after"]
    assert set(lines[1].replace(" ", "")) == {"-"}
    assert len(lines) == 2 + 3
    assert lines[2].startswith("Existing Conditions Assessment")
    assert "2024-01-01" in lines[2]
    assert lines[2].rstrip().endswith("-")
    assert lines[3].rstrip().endswith("Existing Conditions Assessm…")


def test_render_task_list_plain_truncates_long_values() -> None:
    tasks = generate_tasks_from_project(
        "p1", "Office fit-out", "Open plan office floor for a growing team. " * 3
    )
    output = render.render_task_list_plain(tasks)
    assert "Fire Safety and Security Systems" in output
    assert "Fire Safety and Security Sy…" in output


def test_render_task_list_plain_formats_fractional_hours() -> None:
    tasks = generate_recurring_tasks("p1", "2024-01-01", "2024-01-01", ["Construction"])
    daily = render.render_task_list_plain(tasks).splitlines()[2]
    assert "0.5" in daily.split()


def test_render_empty_lists() -> None:
    assert render.render_task_list_plain([]) == "No tasks generated."
    assert render.render_task_list_rich([]) == "No tasks generated."
    assert render.render_templates_plain([]) == "No templates found."
    assert render.render_task_list_json([]) == "[]"


def test_render_task_list_rich_builds_table() -> None:
    table = render.render_task_list_rich(_tasks(), title="Kitchen Remodel")
    assert isinstance(table, Table)
    assert table.row_count == 3
    assert [column.header for column in table.columns] == [
        "title",
        "phase",
        "priority",
        "start",
        "due",
        "hours",
        "after",
    ]


def test_render_task_list_json_contains_full_records() -> None:
    payload = json.loads(render.render_task_list_json(_tasks()))
    assert len(payload) == 3
    first = payload[0]
    assert first["title"] == "Existing Conditions Assessment"
    assert first["loe"]["most_likely_hours"] == first["estimated_hours"]
    assert first["risks"][0]["type"] == "schedule"
    assert payload[1]["dependencies"] == [
        {
            "id": "task-0",
            "title": "Existing Conditions Assessment",
            "status": "not_started",
            "completion_percentage": 0,
        }
    ]


def test_render_templates_plain_and_json() -> None:
    templates = default_catalog().suggested_templates_by_phase("completion")
    plain = render.render_templates_plain(templates)
    assert "Final Cleanup and Inspection" in plain
    assert "Final Commissioning" in plain

    payload = json.loads(render.render_templates_json(templates))
    assert [item["title"] for item in payload] == [
        "Final Cleanup and Inspection",
        "Final Commissioning",
    ]
    assert payload[0]["requires_inspection"] is True


def test_render_analysis() -> None:
    analysis = analyze_project("Kitchen Remodel", "Small renovation of kitchen")
    assert render.render_analysis_plain(analysis) == (
        "project_type: renovation\n"
        "scale: small\n"
        "keywords: kitchen, remodel, small, renovation, kitchen"
    )
    assert json.loads(render.render_analysis_json(analysis)) == {
        "project_type": "renovation",
        "scale": "small",
        "keywords": ["kitchen", "remodel", "small", "renovation", "kitchen"],
    }


def test_render_plan_json_and_summary() -> None:
    summary = {"tasks": 3, "open": 3, "estimated_hours": 84, "estimated_weeks": 3}
    assert render.render_summary_plain(summary) == (
        "tasks: 3  open: 3  estimated_hours: 84  estimated_weeks: 3"
    )
    payload = json.loads(render.render_plan_json(_tasks(), summary))
    assert payload["summary"] == summary
    assert len(payload["tasks"]) == 3
