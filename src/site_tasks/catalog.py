"""Template catalog loading and lookups."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from importlib import resources
import logging
from pathlib import Path
from typing import Any, Iterator

import yaml

from .models import (
    VALID_COMPLEXITY,
    VALID_IMPACTS,
    VALID_PATTERNS,
    VALID_PRIORITIES,
    VALID_RISK_LEVELS,
    VALID_SKILL_LEVELS,
    LOEEstimate,
    MilestoneTemplate,
    RecurringTaskTemplate,
    Risk,
    TaskTemplate,
    TemplateValidationError,
)

logger = logging.getLogger(__name__)

RESOURCE_PATH = "resources/catalog.yaml"
DEFAULT_PROJECT_TYPE = "residential"

TEMPLATE_REQUIRED_KEYS = ("title", "description", "priority", "estimated_hours", "phase_name")
RECURRING_REQUIRED_KEYS = (*TEMPLATE_REQUIRED_KEYS, "pattern", "applicable_phases")
LOE_REQUIRED_KEYS = ("optimistic_hours", "most_likely_hours", "pessimistic_hours")
RISK_REQUIRED_KEYS = ("level", "type", "description", "mitigation", "probability", "impact")


@dataclass(frozen=True, slots=True)
class TemplateCatalog:
    project_templates: dict[str, tuple[TaskTemplate, ...]]
    recurring_templates: tuple[RecurringTaskTemplate, ...] = ()
    milestone_templates: tuple[MilestoneTemplate, ...] = ()
    source: str = field(default="<memory>", compare=False)

    @property
    def project_types(self) -> tuple[str, ...]:
        return tuple(self.project_templates)

    def templates_for(self, project_type: str | None) -> tuple[TaskTemplate, ...]:
        """Template list for a project type, falling back to residential."""
        if project_type and project_type in self.project_templates:
            return self.project_templates[project_type]
        return self.project_templates.get(DEFAULT_PROJECT_TYPE, ())

    def all_templates(self) -> Iterator[TaskTemplate]:
        for templates in self.project_templates.values():
            yield from templates

    def suggested_templates_by_phase(self, phase: str) -> list[TaskTemplate]:
        needle = phase.lower()
        return [t for t in self.all_templates() if needle in t.phase_name.lower()]

    def phase_names(self, project_type: str | None = None) -> list[str]:
        names: list[str] = []
        templates = self.templates_for(project_type) if project_type else self.all_templates()
        for template in templates:
            if template.phase_name not in names:
                names.append(template.phase_name)
        return names


def _require(data: Any, keys: tuple[str, ...], where: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise TemplateValidationError(f"{where}: expected a mapping")
    missing = [key for key in keys if key not in data]
    if missing:
        raise TemplateValidationError(f"{where}: missing keys {missing}")
    return data


def _choice(value: Any, allowed: tuple[str, ...], name: str, where: str) -> str:
    if value not in allowed:
        raise TemplateValidationError(
            f"{where}: invalid {name} {value!r} (expected one of {', '.join(allowed)})"
        )
    return value


def _hours(value: Any, name: str, where: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise TemplateValidationError(f"{where}: {name} must be a non-negative number")
    return value


def _confidence(value: Any, where: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 100:
        raise TemplateValidationError(f"{where}: confidence_level must be an integer within 0-100")
    return value


def _strings(value: Any, name: str, where: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise TemplateValidationError(f"{where}: {name} must be a list of strings")
    return tuple(value)


def _parse_loe(data: Any, where: str) -> LOEEstimate:
    data = _require(data, LOE_REQUIRED_KEYS, f"{where} loe")
    loe = LOEEstimate(
        optimistic_hours=_hours(data["optimistic_hours"], "optimistic_hours", where),
        most_likely_hours=_hours(data["most_likely_hours"], "most_likely_hours", where),
        pessimistic_hours=_hours(data["pessimistic_hours"], "pessimistic_hours", where),
        confidence_level=_confidence(data.get("confidence_level", 75), where),
        complexity_factor=_choice(
            data.get("complexity_factor", "moderate"), VALID_COMPLEXITY, "complexity_factor", where
        ),
        skill_level_required=_choice(
            data.get("skill_level_required", "intermediate"),
            VALID_SKILL_LEVELS,
            "skill_level_required",
            where,
        ),
    )
    if not loe.is_ordered():
        raise TemplateValidationError(
            f"{where}: loe must satisfy optimistic <= most_likely <= pessimistic"
        )
    return loe


def _parse_risk(data: Any, where: str) -> Risk:
    data = _require(data, RISK_REQUIRED_KEYS, f"{where} risk")
    probability = data["probability"]
    if not isinstance(probability, int) or not 0 <= probability <= 100:
        raise TemplateValidationError(f"{where}: risk probability must be an integer within 0-100")
    return Risk(
        level=_choice(data["level"], VALID_RISK_LEVELS, "risk level", where),
        type=str(data["type"]),
        description=str(data["description"]),
        mitigation=str(data["mitigation"]),
        probability=probability,
        impact=_choice(data["impact"], VALID_IMPACTS, "risk impact", where),
    )


def parse_task_template(data: Any, where: str = "template") -> TaskTemplate:
    data = _require(data, TEMPLATE_REQUIRED_KEYS, where)
    where = f"{where} '{data['title']}'"

    risks: tuple[Risk, ...] | None = None
    if data.get("risks") is not None:
        if not isinstance(data["risks"], list):
            raise TemplateValidationError(f"{where}: risks must be a list")
        risks = tuple(_parse_risk(item, where) for item in data["risks"])

    pattern = data.get("recurrence_pattern")
    if pattern is not None:
        _choice(pattern, VALID_PATTERNS, "recurrence_pattern", where)

    return TaskTemplate(
        title=str(data["title"]),
        description=str(data["description"]),
        priority=_choice(data["priority"], VALID_PRIORITIES, "priority", where),
        estimated_hours=_hours(data["estimated_hours"], "estimated_hours", where),
        phase_name=str(data["phase_name"]),
        weather_dependent=bool(data.get("weather_dependent", False)),
        requires_inspection=bool(data.get("requires_inspection", False)),
        safety_requirements=_strings(data.get("safety_requirements"), "safety_requirements", where),
        equipment_needed=_strings(data.get("equipment_needed"), "equipment_needed", where),
        materials_needed=_strings(data.get("materials_needed"), "materials_needed", where),
        subtasks=_strings(data.get("subtasks"), "subtasks", where),
        loe=_parse_loe(data["loe"], where) if data.get("loe") is not None else None,
        risks=risks,
        depends_on=_strings(data.get("depends_on"), "depends_on", where),
        triggers_tasks=_strings(data.get("triggers_tasks"), "triggers_tasks", where),
        milestone_trigger=data.get("milestone_trigger"),
        recurrence_pattern=pattern,
    )


def parse_recurring_template(data: Any, where: str = "recurring template") -> RecurringTaskTemplate:
    data = _require(data, RECURRING_REQUIRED_KEYS, where)
    where = f"{where} '{data['title']}'"
    return RecurringTaskTemplate(
        title=str(data["title"]),
        description=str(data["description"]),
        priority=_choice(data["priority"], VALID_PRIORITIES, "priority", where),
        estimated_hours=_hours(data["estimated_hours"], "estimated_hours", where),
        phase_name=str(data["phase_name"]),
        pattern=_choice(data["pattern"], VALID_PATTERNS, "pattern", where),
        applicable_phases=_strings(data["applicable_phases"], "applicable_phases", where),
        weather_dependent=bool(data.get("weather_dependent", False)),
        safety_requirements=_strings(data.get("safety_requirements"), "safety_requirements", where),
    )


def parse_milestone_template(data: Any, where: str = "milestone") -> MilestoneTemplate:
    data = _require(data, ("milestone_name", "completion_percentage", "triggered_tasks"), where)
    where = f"{where} '{data['milestone_name']}'"
    threshold = data["completion_percentage"]
    if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
        raise TemplateValidationError(f"{where}: completion_percentage must be a number")
    tasks = data["triggered_tasks"] or []
    if not isinstance(tasks, list):
        raise TemplateValidationError(f"{where}: triggered_tasks must be a list")
    return MilestoneTemplate(
        milestone_name=str(data["milestone_name"]),
        completion_percentage=threshold,
        triggered_tasks=tuple(parse_task_template(item, f"{where} task") for item in tasks),
    )


def parse_catalog(data: Any, source: str = "<memory>") -> TemplateCatalog:
    if not isinstance(data, dict):
        raise TemplateValidationError(f"Invalid catalog format in {source}")

    raw_projects = data.get("project_templates") or {}
    if not isinstance(raw_projects, dict):
        raise TemplateValidationError(f"project_templates must be a mapping in {source}")
    project_templates: dict[str, tuple[TaskTemplate, ...]] = {}
    for project_type, items in raw_projects.items():
        if not isinstance(items, list):
            raise TemplateValidationError(f"project_templates.{project_type} must be a list")
        project_templates[str(project_type)] = tuple(
            parse_task_template(item, f"{project_type} template") for item in items
        )

    recurring = data.get("recurring_templates") or []
    milestones = data.get("milestone_templates") or []
    if not isinstance(recurring, list) or not isinstance(milestones, list):
        raise TemplateValidationError(f"recurring/milestone templates must be lists in {source}")

    catalog = TemplateCatalog(
        project_templates=project_templates,
        recurring_templates=tuple(parse_recurring_template(item) for item in recurring),
        milestone_templates=tuple(parse_milestone_template(item) for item in milestones),
        source=source,
    )
    logger.debug(
        "Loaded catalog from %s: %d project types, %d recurring, %d milestones",
        source,
        len(catalog.project_templates),
        len(catalog.recurring_templates),
        len(catalog.milestone_templates),
    )
    return catalog


def load_catalog(path: Path | None = None) -> TemplateCatalog:
    """Load the bundled catalog, or a catalog YAML file of the same shape."""
    if path is None:
        text = resources.files("site_tasks").joinpath(RESOURCE_PATH).read_text(encoding="utf-8")
        source = RESOURCE_PATH
    else:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise TemplateValidationError(f"Unable to read catalog at {path}: {exc}") from exc
        source = str(path)
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise TemplateValidationError(f"Unable to parse catalog at {source}: {exc}") from exc
    return parse_catalog(data, source=source)


@lru_cache(maxsize=1)
def default_catalog() -> TemplateCatalog:
    return load_catalog()
