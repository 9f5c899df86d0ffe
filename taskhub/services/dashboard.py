"""
TaskHub Dashboard Data Manager — cache-coherent reads for the dashboard.

Every read goes through the two-tier cache under a canonical key:

    member:email:<email>        member TTL
    member:id:<id>              member TTL
    projects:memberId:<id>      projects TTL
    tasks                       tasks TTL
    project_members             assignments TTL
    task_assignments            assignments TTL
    dashboard:memberId:<id>     min of the above

Writers call the ``invalidate_*`` methods after their change has been
persisted; invalidation is substring-based, so ``invalidate_member_cache``
also drops ``projects:memberId:*`` and ``project_members``.
"""

from __future__ import annotations

import logging
import time
from typing import Awaitable, Callable, Dict, List, Optional, TypeVar

from pydantic import TypeAdapter, ValidationError

from taskhub.db.store import DataStore, Embed, Filter, Order
from taskhub.engine.cache import TieredCache, make_cache_key
from taskhub.engine.concurrency import gather_all
from taskhub.engine.config import CacheConfig
from taskhub.engine.errors import (
    ConstraintViolationError,
    DashboardLoadError,
    MemberLoadError,
    RecordNotFoundError,
    TaskHubError,
)
from taskhub.engine.logging import (
    log,
    log_dashboard_load,
    log_record_operation,
    log_system_event,
)
from taskhub.records.boundary import parse_row, parse_rows
from taskhub.records.dashboard import DashboardData, DashboardTask
from taskhub.records.member import Member, MemberRole
from taskhub.records.membership import ProjectMembership, TaskAssignment, group_pairs
from taskhub.records.project import ProjectSummary
from taskhub.rules.eligibility import evaluate_completion, is_task_visible
from taskhub.services.projects import fetch_member_projects

logger = logging.getLogger("taskhub.services.dashboard")

T = TypeVar("T")

MEMBER = TypeAdapter(Member)
PROJECT_LIST = TypeAdapter(List[ProjectSummary])
TASK_LIST = TypeAdapter(List[DashboardTask])
PAIR_MAP = TypeAdapter(Dict[str, List[str]])
DASHBOARD = TypeAdapter(DashboardData)


class DashboardDataManager:
    """
    Owns the dashboard cache. Constructed once at startup and injected into
    the services that read or invalidate it.

    Usage:
        manager = DashboardDataManager(store, TieredCache(durable), config.cache)
        member = await manager.get_current_member("ann@example.com")
        data = await manager.get_dashboard_data(member.id)
    """

    def __init__(self, store: DataStore, cache: TieredCache, ttls: Optional[CacheConfig] = None):
        self._store = store
        self._cache = cache
        self._ttls = ttls or CacheConfig()

    @property
    def cache(self) -> TieredCache:
        return self._cache

    async def _cached(
        self,
        key: str,
        ttl: float,
        adapter: TypeAdapter,
        fetch: Callable[[], Awaitable[T]],
    ) -> T:
        cached = self._cache.get(key, adapter)
        if cached is not None:
            return cached
        data = await fetch()
        self._cache.set(key, data, ttl, adapter)
        return data

    # ── Current member ──

    async def get_current_member(self, email: str) -> Member:
        """
        Return the member for ``email``, creating it on first access.

        Raises:
            MemberLoadError: The member could not be read or created.
        """
        key = make_cache_key("member", {"email": email})
        try:
            member = await self._cached(
                key, self._ttls.member_ttl, MEMBER, lambda: self._fetch_or_create_member(email)
            )
        except (TaskHubError, ValidationError) as e:
            logger.error(f"Failed to load member {email}: {e}")
            raise MemberLoadError("Failed to load user profile", email=email) from e

        self._cache.set(make_cache_key("member", {"id": member.id}), member, self._ttls.member_ttl, MEMBER)
        return member

    async def _fetch_or_create_member(self, email: str) -> Member:
        rows = await self._store.select("members", filters=[Filter.eq("email", email)])
        if rows:
            return parse_row(Member, rows[0], "members")

        new_member = {
            "email": email,
            "full_name": None,
            "role": MemberRole.USER.value,
            "is_active": True,
        }
        try:
            (row,) = await self._store.insert("members", [new_member])
        except ConstraintViolationError:
            # Lost a race with a concurrent first access; the row exists now
            rows = await self._store.select("members", filters=[Filter.eq("email", email)])
            if not rows:
                raise
            row = rows[0]
        else:
            logger.info(f"Created member for {email}")
            log(log_record_operation("create", "members", record_id=row["id"]))
        return parse_row(Member, row, "members")

    # ── Dashboard ──

    async def get_dashboard_data(self, member_id: str) -> DashboardData:
        """
        Assemble the member's dashboard: their projects, the tasks they can
        see annotated with completion eligibility, and the membership and
        assignment maps.

        Raises:
            DashboardLoadError: Any sub-fetch failed. No partial result is
                returned or cached.
        """
        started = time.perf_counter()
        key = make_cache_key("dashboard", {"memberId": member_id})

        cached = self._cache.get(key, DASHBOARD)
        if cached is not None:
            elapsed = (time.perf_counter() - started) * 1000
            log(log_dashboard_load(member_id, elapsed, True, cached=True, task_count=len(cached.tasks)))
            return cached

        try:
            member, projects, tasks, project_members, task_assignments = await gather_all(
                self._member_by_id(member_id),
                self._member_projects(member_id),
                self._all_tasks(),
                self._project_members(),
                self._task_assignments(),
            )
        except (TaskHubError, ValidationError) as e:
            elapsed = (time.perf_counter() - started) * 1000
            logger.error(f"Dashboard load failed for member {member_id}: {e}")
            log(log_dashboard_load(member_id, elapsed, False, error=str(e)))
            raise DashboardLoadError("Failed to load dashboard data", member_id=member_id) from e

        visible = [
            self._annotate(task, task_assignments, member_id)
            for task in tasks
            if is_task_visible(task.project_id, project_members, member_id)
        ]
        data = DashboardData(
            current_member=member,
            tasks=visible,
            projects=projects,
            task_assignments=task_assignments,
            project_members=project_members,
        )
        self._cache.set(key, data, self._ttls.dashboard_ttl, DASHBOARD)

        elapsed = (time.perf_counter() - started) * 1000
        logger.debug(f"Dashboard for {member_id}: {len(visible)} tasks, {len(projects)} projects")
        log(log_dashboard_load(member_id, elapsed, True, task_count=len(visible)))
        return data

    @staticmethod
    def _annotate(
        task: DashboardTask,
        task_assignments: Dict[str, List[str]],
        member_id: str,
    ) -> DashboardTask:
        assignees = task_assignments.get(task.id, [])
        eligibility = evaluate_completion(task.status, task.created_by, assignees, member_id)
        return task.model_copy(update={
            "can_complete": eligibility.can_complete,
            "completion_reason": eligibility.reason.value,
            "assigned_members": list(assignees),
        })

    # ── Cached sub-fetches ──

    async def _member_by_id(self, member_id: str) -> Member:
        async def fetch() -> Member:
            rows = await self._store.select("members", filters=[Filter.eq("id", member_id)])
            if not rows:
                raise RecordNotFoundError(
                    f"Member not found: {member_id}",
                    record_type="member",
                    record_id=member_id,
                )
            return parse_row(Member, rows[0], "members")

        key = make_cache_key("member", {"id": member_id})
        return await self._cached(key, self._ttls.member_ttl, MEMBER, fetch)

    async def _member_projects(self, member_id: str) -> List[ProjectSummary]:
        key = make_cache_key("projects", {"memberId": member_id})
        return await self._cached(
            key, self._ttls.projects_ttl, PROJECT_LIST,
            lambda: fetch_member_projects(self._store, member_id),
        )

    async def _all_tasks(self) -> List[DashboardTask]:
        async def fetch() -> List[DashboardTask]:
            rows = await self._store.select(
                "tasks",
                ["*", Embed("project", "projects", ("title", "status"), foreign_key="project_id")],
                order=[Order("created_at", ascending=False)],
            )
            return parse_rows(DashboardTask, rows, "tasks")

        return await self._cached(make_cache_key("tasks"), self._ttls.tasks_ttl, TASK_LIST, fetch)

    async def _project_members(self) -> Dict[str, List[str]]:
        async def fetch() -> Dict[str, List[str]]:
            rows = await self._store.select("project_members", ("project_id", "member_id"))
            return group_pairs(parse_rows(ProjectMembership, rows, "project_members"), "project_id")

        return await self._cached(
            make_cache_key("project_members"), self._ttls.assignments_ttl, PAIR_MAP, fetch
        )

    async def _task_assignments(self) -> Dict[str, List[str]]:
        async def fetch() -> Dict[str, List[str]]:
            rows = await self._store.select("task_assign", ("task_id", "member_id"))
            return group_pairs(parse_rows(TaskAssignment, rows, "task_assign"), "task_id")

        return await self._cached(
            make_cache_key("task_assignments"), self._ttls.assignments_ttl, PAIR_MAP, fetch
        )

    # ── Invalidation ──

    def _invalidate(self, *patterns: str) -> int:
        removed = sum(self._cache.invalidate(p) for p in patterns)
        logger.debug(f"Invalidated {removed} cache entries for {', '.join(patterns)}")
        return removed

    def invalidate_task_cache(self) -> int:
        return self._invalidate("tasks", "dashboard")

    def invalidate_project_cache(self) -> int:
        return self._invalidate("projects", "dashboard")

    def invalidate_member_cache(self) -> int:
        return self._invalidate("member", "dashboard")

    def invalidate_assignment_cache(self) -> int:
        """Drop membership and assignment maps so eligibility is recomputed."""
        return self._invalidate("task_assignments", "project_members", "dashboard")

    def clear_all_cache(self) -> None:
        """Full reset of both tiers, used on sign-out."""
        self._cache.clear()
        logger.info("Dashboard cache cleared")
        log(log_system_event("cache_cleared"))

    def shutdown(self) -> None:
        self._cache.close()
        logger.info("Dashboard data manager shut down")
