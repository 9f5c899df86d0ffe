"""Task record — work item inside a project with a weighted contribution."""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from taskhub.records.member import MemberRef
from taskhub.records.project import Priority


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Task(BaseModel):
    """
    Row of the ``tasks`` table.

    Invariant: ``status == completed`` ⇔ ``completed_at`` is set, and a
    completed task always reports ``progress == 100``.
    """

    model_config = ConfigDict(use_enum_values=True)

    id: str
    title: str = Field(max_length=200)
    description: Optional[str] = None
    project_id: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    priority: Priority = Priority.MEDIUM
    progress: int = Field(default=0, ge=0, le=100)
    project_contribution: int = Field(
        default=0, ge=0, le=100,
        description="Percent of the project's progress this task accounts for",
    )
    created_by: Optional[str] = None
    due_date: Optional[date] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProjectRef(BaseModel):
    """Title and status of a task's project, embedded in task listings."""

    title: str
    status: str


class ProjectTask(Task):
    """Task listed on a project page, with its creator embedded."""

    creator: Optional[MemberRef] = None


class TaskCreate(BaseModel):
    """Validated input for a new task. The creation flow requires a project."""

    model_config = ConfigDict(use_enum_values=True, extra="forbid")

    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    project_id: str = Field(min_length=1)
    status: TaskStatus = TaskStatus.TODO
    priority: Priority = Priority.MEDIUM
    progress: int = Field(default=0, ge=0, le=100)
    project_contribution: int = Field(default=0, ge=0, le=100)
    due_date: Optional[date] = None
    assigned_members: List[str] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    """Partial task update. Only fields explicitly set are written."""

    model_config = ConfigDict(use_enum_values=True, extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    project_id: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[Priority] = None
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    project_contribution: Optional[int] = Field(default=None, ge=0, le=100)
    due_date: Optional[date] = None
