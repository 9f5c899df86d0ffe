"""Dashboard records — composite per-member view assembled by the data manager."""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from taskhub.records.member import Member
from taskhub.records.project import ProjectSummary
from taskhub.records.task import ProjectRef, Task
from taskhub.rules.eligibility import CompletionReason


class DashboardTask(Task):
    """Task annotated for the viewing member."""

    project: Optional[ProjectRef] = None
    can_complete: bool = False
    completion_reason: CompletionReason = CompletionReason.NO_ASSIGNMENTS
    assigned_members: List[str] = Field(default_factory=list)

    @property
    def completion_message(self) -> str:
        return CompletionReason(self.completion_reason).message


class DashboardData(BaseModel):
    """Everything the dashboard needs for one member."""

    model_config = ConfigDict(use_enum_values=True)

    current_member: Member
    tasks: List[DashboardTask] = Field(default_factory=list)
    projects: List[ProjectSummary] = Field(default_factory=list)
    task_assignments: Dict[str, List[str]] = Field(default_factory=dict)
    project_members: Dict[str, List[str]] = Field(default_factory=dict)
