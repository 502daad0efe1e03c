"""CLI entrypoint for site-tasks."""

from __future__ import annotations

import logging
from pathlib import Path
import sys
from typing import Annotated, Literal

import typer

from . import render
from .automation import TaskAutomation
from .catalog import TemplateCatalog, default_catalog, load_catalog
from .classifier import analyze_project
from .config import CONFIG_FILENAME, Settings, load_settings, write_default_config_if_missing
from .generator import (
    generate_dependency_based_tasks,
    generate_recurring_tasks,
    generate_tasks_from_project,
    suggested_tasks_by_phase,
)
from .models import SiteTaskError, Task
from .planner import build_project_plan, plan_summary, prioritize_plan

JsonOption = Annotated[bool, typer.Option("--json", help="Emit JSON instead of a table")]
ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help=f"Explicit settings file (default: nearest {CONFIG_FILENAME})"),
]
ProjectIdOption = Annotated[str, typer.Option("--project-id", help="Owning project id")]
StartDateOption = Annotated[
    str | None,
    typer.Option("--start-date", help="Project start date (YYYY-MM-DD, default: today)"),
]
ProjectTypeOption = Annotated[
    Literal["residential", "commercial", "renovation"] | None,
    typer.Option("--type", help="Project type (default: classified from the text)"),
]
PhaseOption = Annotated[
    list[str],
    typer.Option("--phase", help="Project phase for recurring tasks. Can be repeated"),
]

app = typer.Typer(help="Construction task plans generated from project descriptions")


def _can_render_rich_output() -> bool:
    return sys.stdout.isatty()


def _print_rich(renderable) -> None:
    from rich.console import Console

    Console().print(renderable)


def _warn_config(message: str) -> None:
    typer.echo(f"Warning: {message}", err=True)


def _run_and_handle(fn) -> None:
    try:
        fn()
    except SiteTaskError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _settings(config: Path | None) -> Settings:
    return load_settings(config, Path.cwd(), warn=_warn_config)


def _catalog(settings: Settings) -> TemplateCatalog:
    if settings.catalog is None:
        return default_catalog()
    return load_catalog(settings.catalog)


def _echo_tasks(tasks: list[Task], *, as_json: bool, title: str | None = None) -> None:
    if as_json:
        typer.echo(render.render_task_list_json(tasks))
    elif _can_render_rich_output():
        _print_rich(render.render_task_list_rich(tasks, title=title))
    else:
        typer.echo(render.render_task_list_plain(tasks))


@app.callback()
def root_callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
) -> None:
    """Generate construction task plans."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )


@app.command("init-config")
def init_config_cmd(
    path: Annotated[Path, typer.Option("--path", help="Where to write the settings file")] = Path(
        CONFIG_FILENAME
    ),
) -> None:
    """Write a default settings file if none exists."""
    target = path.expanduser().resolve()
    if write_default_config_if_missing(target):
        typer.echo(f"Wrote settings: {target}")
    else:
        typer.echo(f"Settings already exist: {target}")


@app.command("analyze")
def analyze_cmd(
    title: Annotated[str, typer.Argument(help="Project title")],
    description: Annotated[str, typer.Argument(help="Project description")] = "",
    as_json: JsonOption = False,
) -> None:
    """Classify a project by type and scale."""
    analysis = analyze_project(title, description)
    if as_json:
        typer.echo(render.render_analysis_json(analysis))
    else:
        typer.echo(render.render_analysis_plain(analysis))


@app.command("generate")
def generate_cmd(
    title: Annotated[str, typer.Argument(help="Project title")],
    description: Annotated[str, typer.Argument(help="Project description")] = "",
    project_type: ProjectTypeOption = None,
    start_date: StartDateOption = None,
    project_id: ProjectIdOption = "new",
    as_json: JsonOption = False,
    config: ConfigOption = None,
) -> None:
    """Generate the serial task schedule for a project."""

    def _inner() -> None:
        catalog = _catalog(_settings(config))
        tasks = generate_tasks_from_project(
            project_id,
            title,
            description,
            project_type,
            start_date,
            catalog=catalog,
        )
        _echo_tasks(tasks, as_json=as_json, title=title)

    _run_and_handle(_inner)


@app.command("recurring")
def recurring_cmd(
    start_date: Annotated[str, typer.Argument(help="First day (YYYY-MM-DD)")],
    end_date: Annotated[str, typer.Argument(help="Last day, inclusive (YYYY-MM-DD)")],
    phase: PhaseOption = [],
    project_id: ProjectIdOption = "new",
    as_json: JsonOption = False,
    config: ConfigOption = None,
) -> None:
    """Generate recurring task instances for a date range."""

    def _inner() -> None:
        settings = _settings(config)
        phases = list(phase) or list(settings.recurring_phases)
        tasks = generate_recurring_tasks(
            project_id,
            start_date,
            end_date,
            phases,
            catalog=_catalog(settings),
        )
        _echo_tasks(tasks, as_json=as_json)

    _run_and_handle(_inner)


@app.command("milestones")
def milestones_cmd(
    completion: Annotated[
        float,
        typer.Argument(min=0, max=100, help="Project completion percentage"),
    ],
    project_id: ProjectIdOption = "new",
    as_json: JsonOption = False,
    config: ConfigOption = None,
) -> None:
    """List tasks triggered by milestones at or below a completion percentage."""

    def _inner() -> None:
        automation = TaskAutomation(_catalog(_settings(config)))
        tasks = automation.milestone_tasks(project_id, completion)
        _echo_tasks(tasks, as_json=as_json)

    _run_and_handle(_inner)


@app.command("triggers")
def triggers_cmd(
    completed_title: Annotated[str, typer.Argument(help="Title of the task just completed")],
    project_title: Annotated[
        str | None,
        typer.Option("--project-title", help="Project whose generated tasks already exist"),
    ] = None,
    project_description: Annotated[
        str,
        typer.Option("--project-description", help="Description of that project"),
    ] = "",
    project_type: ProjectTypeOption = None,
    project_id: ProjectIdOption = "new",
    as_json: JsonOption = False,
    config: ConfigOption = None,
) -> None:
    """List tasks whose templates depend on a completed task."""

    def _inner() -> None:
        catalog = _catalog(_settings(config))
        project_tasks: list[Task] = []
        if project_title:
            project_tasks = generate_tasks_from_project(
                project_id,
                project_title,
                project_description,
                project_type,
                catalog=catalog,
            )
        tasks = generate_dependency_based_tasks(
            project_id,
            completed_title,
            project_tasks,
            catalog=catalog,
        )
        _echo_tasks(tasks, as_json=as_json)

    _run_and_handle(_inner)


@app.command("suggest")
def suggest_cmd(
    phase: Annotated[str, typer.Argument(help="Phase name or fragment, e.g. 'finish'")],
    as_json: JsonOption = False,
    config: ConfigOption = None,
) -> None:
    """Show templates from every project type matching a phase."""

    def _inner() -> None:
        templates = suggested_tasks_by_phase(phase, catalog=_catalog(_settings(config)))
        if as_json:
            typer.echo(render.render_templates_json(templates))
        elif _can_render_rich_output():
            _print_rich(render.render_templates_rich(templates))
        else:
            typer.echo(render.render_templates_plain(templates))

    _run_and_handle(_inner)


@app.command("plan")
def plan_cmd(
    title: Annotated[str, typer.Argument(help="Project title")],
    description: Annotated[str, typer.Argument(help="Project description")] = "",
    project_type: ProjectTypeOption = None,
    start_date: StartDateOption = None,
    end_date: Annotated[
        str | None,
        typer.Option("--end-date", help="Project end date; enables recurring tasks"),
    ] = None,
    phase: PhaseOption = [],
    done: Annotated[
        list[str],
        typer.Option("--done", help="Work already finished (title fragment). Can be repeated"),
    ] = [],
    focus: Annotated[
        Literal["time", "cost", "quality", "safety"] | None,
        typer.Option("--focus", help="Priority emphasis"),
    ] = None,
    project_id: ProjectIdOption = "new",
    as_json: JsonOption = False,
    config: ConfigOption = None,
) -> None:
    """Build a prioritized plan of project and recurring tasks."""

    def _inner() -> None:
        settings = _settings(config)
        tasks = build_project_plan(
            project_id,
            title,
            description,
            project_type,
            start_date,
            end_date,
            list(phase) or list(settings.recurring_phases),
            catalog=_catalog(settings),
        )
        ordered = prioritize_plan(tasks, done, focus or settings.focus)
        summary = plan_summary(ordered)
        if as_json:
            typer.echo(render.render_plan_json(ordered, summary))
            return
        _echo_tasks(ordered, as_json=False, title=title)
        typer.echo(render.render_summary_plain(summary))

    _run_and_handle(_inner)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
