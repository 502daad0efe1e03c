"""Renderers for generated task lists and analyses."""

from __future__ import annotations

import json
from typing import Any, Iterable

from .models import ProjectAnalysis, Task, TaskTemplate

TASK_COLUMNS: list[dict[str, int | str]] = [
    {"name": "title", "width": 40},
    {"name": "phase", "width": 16},
    {"name": "priority", "width": 8},
    {"name": "start", "width": 10},
    {"name": "due", "width": 10},
    {"name": "hours", "width": 6},
    {"name": "after", "width": 28},
]
TEMPLATE_COLUMNS: list[dict[str, int | str]] = [
    {"name": "title", "width": 40},
    {"name": "phase", "width": 16},
    {"name": "priority", "width": 8},
    {"name": "hours", "width": 6},
    {"name": "inspection", "width": 10},
]


def _column_name(column: dict[str, int | str]) -> str:
    return str(column["name"])


def _column_width(column: dict[str, int | str]) -> int:
    return int(column["width"])


def _priority_style(priority: str) -> str:
    return {
        "critical": "bold red",
        "high": "bold yellow",
        "medium": "cyan",
        "low": "dim",
    }.get(priority, "white")


def _hours_label(hours: float) -> str:
    if float(hours).is_integer():
        return str(int(hours))
    return f"{hours:g}"


def _task_row(task: Task) -> dict[str, str]:
    after = task.dependencies[0].title if task.dependencies else "-"
    return {
        "title": task.title,
        "phase": task.phase_name,
        "priority": task.priority,
        "start": task.start_date,
        "due": task.due_date,
        "hours": _hours_label(task.estimated_hours),
        "after": after,
    }


def _template_row(template: TaskTemplate) -> dict[str, str]:
    return {
        "title": template.title,
        "phase": template.phase_name,
        "priority": template.priority,
        "hours": _hours_label(template.estimated_hours),
        "inspection": "yes" if template.requires_inspection else "no",
    }


def _truncate(value: str, width: int) -> str:
    if width <= 0:
        return ""
    if len(value) <= width:
        return value
    if width == 1:
        return "…"
    return f"{value[: width - 1]}…"


def _render_plain_rows(
    rows: list[dict[str, str]],
    columns: list[dict[str, int | str]],
    empty: str,
) -> str:
    if not rows:
        return empty
    headers = [_column_name(column) for column in columns]
    widths = {name: _column_width(column) for name, column in zip(headers, columns)}

    lines = []
    lines.append("  ".join(_truncate(name, widths[name]).ljust(widths[name]) for name in headers).rstrip())
    lines.append("  ".join("-" * widths[name] for name in headers))
    for row in rows:
        rendered = [_truncate(str(row[name]), widths[name]).ljust(widths[name]) for name in headers]
        lines.append("  ".join(rendered).rstrip())
    return "\n".join(lines)


def _render_rich_rows(
    rows: list[dict[str, str]],
    columns: list[dict[str, int | str]],
    empty: str,
    title: str | None = None,
):
    from rich import box
    from rich.table import Table
    from rich.text import Text

    if not rows:
        return empty

    table = Table(
        title=title,
        box=box.SIMPLE_HEAVY,
        show_header=True,
        header_style="bold white",
        pad_edge=False,
    )
    for column in columns:
        name = _column_name(column)
        table.add_column(
            name,
            style="bold" if name == "title" else "",
            justify="right" if name == "hours" else "left",
            max_width=_column_width(column),
            overflow="ellipsis",
            no_wrap=True,
        )
    for row in rows:
        rendered: list[str | Text] = []
        for column in columns:
            name = _column_name(column)
            value = row[name]
            if name == "priority":
                rendered.append(Text(value, style=_priority_style(value)))
            elif name in {"start", "due", "after"}:
                rendered.append(Text(value, style="dim"))
            else:
                rendered.append(value)
        table.add_row(*rendered)
    return table


def render_task_list_plain(tasks: Iterable[Task]) -> str:
    return _render_plain_rows([_task_row(task) for task in tasks], TASK_COLUMNS, "No tasks generated.")


def render_task_list_rich(tasks: Iterable[Task], title: str | None = None):
    return _render_rich_rows(
        [_task_row(task) for task in tasks], TASK_COLUMNS, "No tasks generated.", title=title
    )


def render_task_list_json(tasks: Iterable[Task]) -> str:
    return json.dumps([task.to_dict() for task in tasks], indent=2)


def render_templates_plain(templates: Iterable[TaskTemplate]) -> str:
    rows = [_template_row(template) for template in templates]
    return _render_plain_rows(rows, TEMPLATE_COLUMNS, "No templates found.")


def render_templates_rich(templates: Iterable[TaskTemplate]):
    rows = [_template_row(template) for template in templates]
    return _render_rich_rows(rows, TEMPLATE_COLUMNS, "No templates found.")


def render_templates_json(templates: Iterable[TaskTemplate]) -> str:
    payload = []
    for template in templates:
        payload.append(
            {
                "title": template.title,
                "description": template.description,
                "phase_name": template.phase_name,
                "priority": template.priority,
                "estimated_hours": template.estimated_hours,
                "requires_inspection": template.requires_inspection,
                "weather_dependent": template.weather_dependent,
            }
        )
    return json.dumps(payload, indent=2)


def _analysis_payload(analysis: ProjectAnalysis) -> dict[str, Any]:
    return {
        "project_type": analysis.project_type,
        "scale": analysis.scale,
        "keywords": list(analysis.keywords),
    }


def render_analysis_plain(analysis: ProjectAnalysis) -> str:
    keywords = ", ".join(analysis.keywords) or "-"
    return "\n".join(
        [
            f"project_type: {analysis.project_type}",
            f"scale: {analysis.scale}",
            f"keywords: {keywords}",
        ]
    )


def render_analysis_json(analysis: ProjectAnalysis) -> str:
    return json.dumps(_analysis_payload(analysis), indent=2)


def render_summary_plain(summary: dict[str, Any]) -> str:
    return "  ".join(f"{key}: {value}" for key, value in summary.items())


def render_plan_json(tasks: Iterable[Task], summary: dict[str, Any]) -> str:
    return json.dumps(
        {"summary": summary, "tasks": [task.to_dict() for task in tasks]},
        indent=2,
    )
