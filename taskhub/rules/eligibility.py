"""
Completion eligibility rule — may a given member mark a given task complete?

Checks run in priority order; the first match decides:

  1. task already completed          → no  (ALREADY_COMPLETED)
  2. member is assigned              → yes (ASSIGNED)
  3. unassigned and member created it → yes (CREATOR_OF_UNASSIGNED_TASK)
  4. unassigned                      → no  (NO_ASSIGNMENTS)
  5. assigned to someone else        → no  (NOT_ASSIGNED)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Sequence


class CompletionReason(str, Enum):
    ALREADY_COMPLETED = "already_completed"
    ASSIGNED = "assigned"
    CREATOR_OF_UNASSIGNED_TASK = "creator_of_unassigned_task"
    NO_ASSIGNMENTS = "no_assignments"
    NOT_ASSIGNED = "not_assigned"

    @property
    def message(self) -> str:
        return REASON_MESSAGES[self]


REASON_MESSAGES = {
    CompletionReason.ALREADY_COMPLETED: "Task already completed",
    CompletionReason.ASSIGNED: "You are assigned to this task",
    CompletionReason.CREATOR_OF_UNASSIGNED_TASK: "You created this unassigned task",
    CompletionReason.NO_ASSIGNMENTS: "Task has no assignments",
    CompletionReason.NOT_ASSIGNED: "Only assigned members can complete this task",
}


@dataclass(frozen=True)
class CompletionEligibility:
    can_complete: bool
    reason: CompletionReason

    @property
    def message(self) -> str:
        return self.reason.message


def evaluate_completion(
    status: str,
    created_by: Optional[str],
    assignees: Sequence[str],
    member_id: str,
) -> CompletionEligibility:
    """Decide whether ``member_id`` may complete a task."""
    if status == "completed":
        return CompletionEligibility(False, CompletionReason.ALREADY_COMPLETED)
    if member_id in assignees:
        return CompletionEligibility(True, CompletionReason.ASSIGNED)
    if not assignees:
        if created_by is not None and created_by == member_id:
            return CompletionEligibility(True, CompletionReason.CREATOR_OF_UNASSIGNED_TASK)
        return CompletionEligibility(False, CompletionReason.NO_ASSIGNMENTS)
    return CompletionEligibility(False, CompletionReason.NOT_ASSIGNED)


def is_task_visible(
    project_id: Optional[str],
    project_members: Mapping[str, Sequence[str]],
    member_id: str,
) -> bool:
    """Tasks without a project are visible to everyone; others only to project members."""
    if not project_id:
        return True
    return member_id in project_members.get(project_id, ())
