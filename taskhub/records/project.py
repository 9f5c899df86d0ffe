"""Project record — groups tasks; ``progress`` is derived from the task set."""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from taskhub.records.member import MemberRef


class ProjectStatus(str, Enum):
    PLANNING = "planning"
    ACTIVE = "active"
    ON_HOLD = "on-hold"
    COMPLETED = "completed"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Project(BaseModel):
    """
    Row of the ``projects`` table.

    ``progress`` is a cached derived value: it always equals the progress
    calculator applied to the project's current tasks.
    """

    model_config = ConfigDict(use_enum_values=True)

    id: str
    title: str = Field(max_length=200)
    description: Optional[str] = None
    status: ProjectStatus = ProjectStatus.PLANNING
    priority: Priority = Priority.MEDIUM
    progress: int = Field(default=0, ge=0, le=100)
    deadline: Optional[date] = None
    lead_id: Optional[str] = None
    budget: float = Field(default=0.0, ge=0)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProjectSummary(Project):
    """Project with task counts, as listed on dashboards."""

    tasks_count: int = 0
    completed_tasks: int = 0


class ProjectDetail(Project):
    """Project with its lead resolved for display."""

    lead: Optional[MemberRef] = None
    lead_name: str = "Unassigned"


class ProjectCreate(BaseModel):
    """Validated input for a new project. Progress is never caller-supplied."""

    model_config = ConfigDict(use_enum_values=True, extra="forbid")

    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    status: ProjectStatus = ProjectStatus.PLANNING
    priority: Priority = Priority.MEDIUM
    deadline: Optional[date] = None
    lead_id: Optional[str] = None
    budget: float = Field(default=0.0, ge=0)
    members: List[str] = Field(default_factory=list, description="Initial project member IDs")


class ProjectUpdate(BaseModel):
    """Partial project update. Only fields explicitly set are written."""

    model_config = ConfigDict(use_enum_values=True, extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    status: Optional[ProjectStatus] = None
    priority: Optional[Priority] = None
    deadline: Optional[date] = None
    lead_id: Optional[str] = None
    budget: Optional[float] = Field(default=None, ge=0)
