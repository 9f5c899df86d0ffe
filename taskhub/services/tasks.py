"""
TaskHub Task Service — task CRUD, assignment and completion.

Every mutation follows the same order:
  1. persist the task change
  2. recompute and persist the owning project's progress
  3. invalidate the task and project caches
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Sequence, Union

from taskhub.db.base import utcnow
from taskhub.db.store import DataStore, Embed, Filter, Order
from taskhub.engine.errors import RecordNotFoundError, TaskHubPermissionError
from taskhub.engine.logging import log, log_record_operation
from taskhub.records.boundary import parse_row, parse_rows, validate_input
from taskhub.records.task import ProjectTask, Task, TaskCreate, TaskStatus, TaskUpdate
from taskhub.rules.eligibility import CompletionEligibility, evaluate_completion
from taskhub.rules.lifecycle import apply_completion_transition
from taskhub.services.dashboard import DashboardDataManager
from taskhub.services.projects import update_project_progress

logger = logging.getLogger("taskhub.services.tasks")


class TaskService:
    """Task operations against the data store, keeping project progress current."""

    def __init__(self, store: DataStore, dashboard: DashboardDataManager):
        self._store = store
        self._dashboard = dashboard

    # ── Reads ──

    async def get_task(self, task_id: str) -> Task:
        rows = await self._store.select("tasks", filters=[Filter.eq("id", task_id)])
        if not rows:
            raise RecordNotFoundError(
                f"Task not found: {task_id}",
                record_type="task",
                record_id=task_id,
            )
        return parse_row(Task, rows[0], "tasks")

    async def list_project_tasks(self, project_id: str) -> List[ProjectTask]:
        """Tasks of a project, newest first, with the creator's name embedded."""
        rows = await self._store.select(
            "tasks",
            ["*", Embed("creator", "members", ("full_name", "email"), foreign_key="created_by")],
            [Filter.eq("project_id", project_id)],
            [Order("created_at", ascending=False)],
        )
        return parse_rows(ProjectTask, rows, "tasks")

    async def get_task_assignees(self, task_id: str) -> List[str]:
        rows = await self._store.select("task_assign", ("member_id",), [Filter.eq("task_id", task_id)])
        return [r["member_id"] for r in rows]

    # ── Mutations ──

    async def create_task(self, payload: Union[TaskCreate, Mapping[str, Any]], creator_id: str) -> Task:
        data = validate_input(TaskCreate, payload)
        values = data.model_dump(exclude={"assigned_members"})
        values["created_by"] = creator_id
        values = apply_completion_transition(None, values, utcnow())

        (row,) = await self._store.insert("tasks", [values])
        task = parse_row(Task, row, "tasks")

        # The task row is committed; progress and caches must follow it
        # even when the assignment insert fails.
        assignees = list(dict.fromkeys(data.assigned_members))
        try:
            await update_project_progress(self._store, data.project_id)
            if assignees:
                await self._store.insert(
                    "task_assign", [{"task_id": task.id, "member_id": m} for m in assignees]
                )
        finally:
            self._invalidate(assignments=bool(assignees))

        log(log_record_operation("create", "tasks", record_id=task.id))
        return task

    async def update_task(self, task_id: str, changes: Union[TaskUpdate, Mapping[str, Any]]) -> Task:
        """
        Apply a partial update. Moving a task to another project recomputes
        both the old and the new project.
        """
        patch = validate_input(TaskUpdate, changes).model_dump(exclude_unset=True)
        current = await self.get_task(task_id)
        if not patch:
            return current

        patch = apply_completion_transition(current.status, patch, utcnow())
        rows = await self._store.update("tasks", patch, [Filter.eq("id", task_id)])
        if not rows:
            raise RecordNotFoundError(
                f"Task not found: {task_id}",
                record_type="task",
                record_id=task_id,
            )
        task = parse_row(Task, rows[0], "tasks")

        affected = [p for p in dict.fromkeys([current.project_id, task.project_id]) if p]
        try:
            for project_id in affected:
                await update_project_progress(self._store, project_id)
        finally:
            self._invalidate()

        log(log_record_operation("update", "tasks", record_id=task_id, fields_changed=sorted(patch)))
        return task

    async def set_task_status(self, task_id: str, status: Union[TaskStatus, str]) -> Task:
        return await self.update_task(task_id, {"status": status})

    async def complete_task(self, task_id: str, member_id: str) -> Task:
        """
        Mark a task completed on behalf of ``member_id``.

        Raises:
            TaskHubPermissionError: The member may not complete this task.
        """
        task = await self.get_task(task_id)
        eligibility = await self.check_completion(task, member_id)
        if not eligibility.can_complete:
            logger.info(f"Member {member_id} denied completing task {task_id}: {eligibility.reason.value}")
            raise TaskHubPermissionError(
                eligibility.message,
                member_id=member_id,
                task_id=task_id,
                reason=eligibility.reason.value,
            )
        return await self.update_task(task_id, {"status": TaskStatus.COMPLETED})

    async def check_completion(self, task: Task, member_id: str) -> CompletionEligibility:
        assignees = await self.get_task_assignees(task.id)
        return evaluate_completion(task.status, task.created_by, assignees, member_id)

    async def delete_task(self, task_id: str) -> None:
        task = await self.get_task(task_id)
        try:
            await self._store.delete("task_assign", [Filter.eq("task_id", task_id)])
            await self._store.delete("tasks", [Filter.eq("id", task_id)])
            if task.project_id:
                await update_project_progress(self._store, task.project_id)
        finally:
            self._invalidate(assignments=True)

        log(log_record_operation("delete", "tasks", record_id=task_id))

    # ── Assignment ──

    async def assign_members(self, task_id: str, member_ids: Sequence[str]) -> List[str]:
        """Assign members not already on the task. Returns the IDs added."""
        await self.get_task(task_id)
        existing = set(await self.get_task_assignees(task_id))
        new_ids = [m for m in dict.fromkeys(member_ids) if m not in existing]
        if new_ids:
            await self._store.insert(
                "task_assign", [{"task_id": task_id, "member_id": m} for m in new_ids]
            )
            self._dashboard.invalidate_assignment_cache()
        return new_ids

    async def unassign_member(self, task_id: str, member_id: str) -> None:
        await self._store.delete(
            "task_assign",
            [Filter.eq("task_id", task_id), Filter.eq("member_id", member_id)],
        )
        self._dashboard.invalidate_assignment_cache()

    def _invalidate(self, assignments: bool = False) -> None:
        self._dashboard.invalidate_task_cache()
        self._dashboard.invalidate_project_cache()
        if assignments:
            self._dashboard.invalidate_assignment_cache()
