"""
TaskHub Project Service — project CRUD, membership and progress recomputation.

``update_project_progress`` is the single writer of ``projects.progress``;
every task mutation path calls it before invalidating caches.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, List, Mapping, Sequence, Tuple, Union

from taskhub.db.store import AnyOf, DataStore, Embed, Filter, Order
from taskhub.engine.concurrency import gather_all
from taskhub.engine.errors import RecordNotFoundError
from taskhub.engine.logging import log, log_progress_recomputed, log_record_operation
from taskhub.records.boundary import parse_row, validate_input
from taskhub.records.member import Member
from taskhub.records.membership import ProjectMemberInfo
from taskhub.records.project import (
    Project,
    ProjectCreate,
    ProjectDetail,
    ProjectSummary,
    ProjectUpdate,
)
from taskhub.rules.display import lead_display_name
from taskhub.rules.progress import TaskSummary, compute_project_progress
from taskhub.services.members import MemberDirectory

if TYPE_CHECKING:
    from taskhub.services.dashboard import DashboardDataManager

logger = logging.getLogger("taskhub.services.projects")

PROGRESS_COLUMNS = ("progress", "project_contribution", "status")


# ---------------------------------------------------------------------------
# Progress & counts
# ---------------------------------------------------------------------------

async def update_project_progress(store: DataStore, project_id: str) -> int:
    """
    Recompute a project's progress from its current tasks and persist it.

    Returns:
        The new progress percentage.

    Raises:
        RecordNotFoundError: The project does not exist.
        DataStoreError: The backing store failed.
    """
    rows = await store.select("tasks", PROGRESS_COLUMNS, [Filter.eq("project_id", project_id)])
    progress = compute_project_progress(TaskSummary.from_row(r) for r in rows)

    updated = await store.update("projects", {"progress": progress}, [Filter.eq("id", project_id)])
    if not updated:
        raise RecordNotFoundError(
            f"Project not found: {project_id}",
            record_type="project",
            record_id=project_id,
        )

    logger.info(f"Project {project_id} progress -> {progress}% ({len(rows)} tasks)")
    log(log_progress_recomputed(project_id, progress, task_count=len(rows)))
    return progress


async def fetch_task_counts(store: DataStore, project_id: str) -> Tuple[int, int]:
    """Return ``(tasks_count, completed_tasks)`` for one project."""
    rows = await store.select("tasks", ("id", "status"), [Filter.eq("project_id", project_id)])
    completed = sum(1 for r in rows if r["status"] == "completed")
    return len(rows), completed


async def with_task_counts(store: DataStore, rows: Sequence[Mapping[str, Any]]) -> List[ProjectSummary]:
    """Annotate project rows with task counts, fetched concurrently per project."""
    counts = await gather_all(*(fetch_task_counts(store, row["id"]) for row in rows))
    return [
        parse_row(ProjectSummary, {**row, "tasks_count": total, "completed_tasks": done}, "projects")
        for row, (total, done) in zip(rows, counts)
    ]


async def fetch_member_projects(store: DataStore, member_id: str) -> List[ProjectSummary]:
    """Projects the member leads or belongs to, newest first, with task counts."""
    memberships = await store.select(
        "project_members", ("project_id",), [Filter.eq("member_id", member_id)]
    )
    project_ids = [m["project_id"] for m in memberships]
    condition = Filter.eq("lead_id", member_id)
    if project_ids:
        condition = AnyOf(condition, Filter.in_("id", project_ids))

    rows = await store.select(
        "projects",
        filters=[condition],
        order=[Order("created_at", ascending=False)],
    )
    return await with_task_counts(store, rows)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class ProjectService:
    """
    Project operations. Every mutation invalidates the dashboard caches it
    affects after the write has been persisted.
    """

    def __init__(self, store: DataStore, dashboard: "DashboardDataManager"):
        self._store = store
        self._dashboard = dashboard

    async def create_project(
        self,
        payload: Union[ProjectCreate, Mapping[str, Any]],
        creator: Member,
    ) -> Project:
        """Create a project; the lead defaults to the creator."""
        data = validate_input(ProjectCreate, payload)
        values = data.model_dump(exclude={"members"})
        values["lead_id"] = data.lead_id or creator.id
        values["progress"] = 0

        (row,) = await self._store.insert("projects", [values])
        project = parse_row(Project, row, "projects")

        member_ids = list(dict.fromkeys(data.members))
        if member_ids:
            await self._store.insert(
                "project_members",
                [{"project_id": project.id, "member_id": m} for m in member_ids],
            )
            self._dashboard.invalidate_assignment_cache()

        log(log_record_operation("create", "projects", record_id=project.id))
        self._dashboard.invalidate_project_cache()
        return project

    async def get_project(self, project_id: str) -> ProjectDetail:
        rows = await self._store.select(
            "projects",
            ["*", Embed("lead", "members", ("full_name", "email"), foreign_key="lead_id")],
            [Filter.eq("id", project_id)],
        )
        if not rows:
            raise RecordNotFoundError(
                f"Project not found: {project_id}",
                record_type="project",
                record_id=project_id,
            )
        row = rows[0]
        return parse_row(ProjectDetail, {**row, "lead_name": lead_display_name(row.get("lead"))}, "projects")

    async def update_project(
        self,
        project_id: str,
        changes: Union[ProjectUpdate, Mapping[str, Any]],
    ) -> Project:
        patch = validate_input(ProjectUpdate, changes).model_dump(exclude_unset=True)
        if not patch:
            detail = await self.get_project(project_id)
            return Project.model_validate(detail.model_dump(include=set(Project.model_fields)))

        rows = await self._store.update("projects", patch, [Filter.eq("id", project_id)])
        if not rows:
            raise RecordNotFoundError(
                f"Project not found: {project_id}",
                record_type="project",
                record_id=project_id,
            )
        log(log_record_operation("update", "projects", record_id=project_id, fields_changed=sorted(patch)))
        self._dashboard.invalidate_project_cache()
        return parse_row(Project, rows[0], "projects")

    async def list_member_projects(self, member_id: str) -> List[ProjectSummary]:
        return await fetch_member_projects(self._store, member_id)

    async def refresh_progress(self, project_id: str) -> int:
        """Recompute progress on demand and drop stale cached views."""
        progress = await update_project_progress(self._store, project_id)
        self._dashboard.invalidate_project_cache()
        return progress

    # ── Membership ──

    async def add_members(self, project_id: str, member_ids: Sequence[str]) -> List[str]:
        """Add members not already on the project. Returns the IDs added."""
        existing = set(await self._member_ids(project_id))
        new_ids = [m for m in dict.fromkeys(member_ids) if m not in existing]
        if new_ids:
            await self._store.insert(
                "project_members",
                [{"project_id": project_id, "member_id": m} for m in new_ids],
            )
            self._dashboard.invalidate_assignment_cache()
            self._dashboard.invalidate_project_cache()
        return new_ids

    async def remove_member(self, project_id: str, member_id: str) -> None:
        await self._store.delete(
            "project_members",
            [Filter.eq("project_id", project_id), Filter.eq("member_id", member_id)],
        )
        self._dashboard.invalidate_assignment_cache()
        self._dashboard.invalidate_project_cache()

    async def list_project_members(self, project_id: str) -> List[ProjectMemberInfo]:
        return await MemberDirectory(self._store).list_project_members(project_id)

    async def _member_ids(self, project_id: str) -> List[str]:
        rows = await self._store.select(
            "project_members", ("member_id",), [Filter.eq("project_id", project_id)]
        )
        return [r["member_id"] for r in rows]
