"""Association records — project membership and task assignment pairs."""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel


class ProjectMembership(BaseModel):
    """Row of ``project_members``."""

    project_id: str
    member_id: str


class TaskAssignment(BaseModel):
    """Row of ``task_assign``."""

    task_id: str
    member_id: str


class ProjectMemberInfo(BaseModel):
    """Project member with the name fields needed for display."""

    member_id: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    display_name: str


def group_pairs(records: Iterable[BaseModel], key: str, value: str = "member_id") -> Dict[str, List[str]]:
    """Fold association records into ``{key: [value, ...]}``, preserving row order."""
    grouped: Dict[str, List[str]] = defaultdict(list)
    for record in records:
        grouped[getattr(record, key)].append(getattr(record, value))
    return dict(grouped)
