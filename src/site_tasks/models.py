"""Core task models and constants."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import datetime as dt
from typing import Any

VALID_PRIORITIES = ("low", "medium", "high", "critical")
VALID_STATUSES = ("not_started", "in_progress", "completed", "on_hold", "cancelled")
VALID_PROJECT_TYPES = ("residential", "commercial", "renovation")
VALID_SCALES = ("small", "medium", "large")
VALID_RISK_LEVELS = ("low", "medium", "high")
VALID_IMPACTS = ("low", "medium", "high", "critical")
VALID_COMPLEXITY = ("low", "moderate", "complex")
VALID_SKILL_LEVELS = ("basic", "intermediate", "senior")
VALID_PATTERNS = ("daily", "weekly", "biweekly", "monthly")

PATTERN_INTERVAL_DAYS = {
    "daily": 1,
    "weekly": 7,
    "biweekly": 14,
    # Calendar months are approximated as 30 days.
    "monthly": 30,
}


@dataclass(frozen=True, slots=True)
class LOEEstimate:
    optimistic_hours: float
    most_likely_hours: float
    pessimistic_hours: float
    confidence_level: int = 75
    complexity_factor: str = "moderate"
    skill_level_required: str = "intermediate"

    def is_ordered(self) -> bool:
        return self.optimistic_hours <= self.most_likely_hours <= self.pessimistic_hours

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class Risk:
    level: str
    type: str
    description: str
    mitigation: str
    probability: int
    impact: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


DEFAULT_SCHEDULE_RISK = Risk(
    level="medium",
    type="schedule",
    description="Task may experience delays due to dependencies",
    mitigation="Monitor dependencies and adjust schedule as needed",
    probability=30,
    impact="medium",
)


@dataclass(frozen=True, slots=True)
class TaskTemplate:
    title: str
    description: str
    priority: str
    estimated_hours: float
    phase_name: str
    weather_dependent: bool = False
    requires_inspection: bool = False
    safety_requirements: tuple[str, ...] = ()
    equipment_needed: tuple[str, ...] = ()
    materials_needed: tuple[str, ...] = ()
    subtasks: tuple[str, ...] = ()
    loe: LOEEstimate | None = None
    # None means "not authored"; an empty tuple is an explicit "no risks".
    risks: tuple[Risk, ...] | None = None
    depends_on: tuple[str, ...] = ()
    triggers_tasks: tuple[str, ...] = ()
    milestone_trigger: str | None = None
    recurrence_pattern: str | None = None


@dataclass(frozen=True, slots=True)
class RecurringTaskTemplate:
    title: str
    description: str
    priority: str
    estimated_hours: float
    phase_name: str
    pattern: str
    applicable_phases: tuple[str, ...]
    weather_dependent: bool = False
    safety_requirements: tuple[str, ...] = ()

    @property
    def interval_days(self) -> int:
        return PATTERN_INTERVAL_DAYS.get(self.pattern, 7)


@dataclass(frozen=True, slots=True)
class MilestoneTemplate:
    milestone_name: str
    completion_percentage: int
    triggered_tasks: tuple[TaskTemplate, ...]


@dataclass(slots=True)
class TaskDependency:
    id: str
    title: str
    status: str
    completion_percentage: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class Task:
    project_id: str
    title: str
    description: str
    priority: str
    start_date: str
    due_date: str
    estimated_hours: float
    phase_name: str
    loe: LOEEstimate
    status: str = "not_started"
    completion_percentage: int = 0
    actual_hours: float = 0
    weather_dependent: bool = False
    requires_inspection: bool = False
    inspection_passed: bool | None = None
    safety_requirements: list[str] = field(default_factory=list)
    equipment_needed: list[str] = field(default_factory=list)
    materials_needed: list[str] = field(default_factory=list)
    dependencies: list[TaskDependency] = field(default_factory=list)
    before_photos: list[str] = field(default_factory=list)
    progress_photos: list[str] = field(default_factory=list)
    after_photos: list[str] = field(default_factory=list)
    time_entries_count: int = 0
    billable_hours: float = 0
    quality_score: float | None = None
    rework_required: bool = False
    subtasks: list[str] = field(default_factory=list)
    risks: list[Risk] = field(default_factory=list)
    task_id: str | None = None

    @property
    def duration_days(self) -> int:
        start = dt.date.fromisoformat(self.start_date)
        return (dt.date.fromisoformat(self.due_date) - start).days

    def dependency_snapshot(self, ref: str) -> TaskDependency:
        return TaskDependency(
            id=ref,
            title=self.title,
            status=self.status,
            completion_percentage=self.completion_percentage,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class ProjectAnalysis:
    project_type: str
    scale: str
    keywords: tuple[str, ...]


class SiteTaskError(Exception):
    """Base error for task generation."""


class TemplateValidationError(SiteTaskError):
    """Raised when a template catalog is malformed."""


class ConfigError(SiteTaskError):
    """Raised when an explicitly requested config file cannot be used."""


class PlanValidationError(SiteTaskError):
    """Raised for invalid plan arguments or dependency graphs."""
