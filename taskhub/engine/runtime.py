"""
TaskHub Runtime — wires the subsystems together.

Lifecycle:
    runtime = TaskHubRuntime(config)
    runtime.startup()   # database, cache, store, services, log queue
    ...
    runtime.shutdown()  # close cache, dispose engines, flush logs
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import sessionmaker

from taskhub.db.session import close_all_sessions, init_db
from taskhub.db.store import DataStore, SqlDataStore
from taskhub.engine.cache import RedisCache, TieredCache, create_durable_cache
from taskhub.engine.config import TaskHubConfig, get_config
from taskhub.engine.logging import (
    AsyncLogQueue,
    configure_logging,
    init_logging,
    log,
    log_system_event,
    shutdown_logging,
)
from taskhub.services.auth import AuthProvider, SessionService
from taskhub.services.dashboard import DashboardDataManager
from taskhub.services.members import MemberDirectory
from taskhub.services.projects import ProjectService
from taskhub.services.tasks import TaskService

logger = logging.getLogger("taskhub.engine.runtime")


class TaskHubRuntime:
    """
    Single owner of every long-lived object: engine, durable cache, data
    store, dashboard manager and services. Nothing here is a module-level
    singleton; callers hold the runtime.
    """

    def __init__(
        self,
        config: Optional[TaskHubConfig] = None,
        session_factory: Optional[sessionmaker] = None,
        auth_provider: Optional[AuthProvider] = None,
        create_tables: bool = False,
    ):
        self.config = config or get_config()
        self._session_factory = session_factory
        self._auth_provider = auth_provider
        self._create_tables = create_tables

        # Subsystems (initialized in startup())
        self.log_queue: Optional[AsyncLogQueue] = None
        self.durable_cache: Optional[RedisCache] = None
        self.store: Optional[DataStore] = None
        self.dashboard: Optional[DashboardDataManager] = None
        self.tasks: Optional[TaskService] = None
        self.projects: Optional[ProjectService] = None
        self.members: Optional[MemberDirectory] = None
        self.sessions: Optional[SessionService] = None

        self._started = False

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------

    def startup(self) -> None:
        """Initialize all subsystems."""
        if self._started:
            logger.warning("Runtime already started")
            return

        cfg = self.config
        configure_logging(cfg.logging.level)
        logger.info(f"Starting {cfg.name} ({cfg.environment})...")

        # 1. Structured logging
        if cfg.logging.structured:
            self.log_queue = init_logging(
                log_dir=cfg.logging.directory,
                flush_interval_ms=cfg.logging.flush_interval_ms,
                flush_batch_size=cfg.logging.flush_batch_size,
                max_queue_size=cfg.logging.max_queue_size,
            )

        # 2. Database
        if self._session_factory is None:
            db = cfg.database
            self._session_factory = init_db(
                db.url,
                create_tables=self._create_tables,
                pool_size=db.pool_size,
                max_overflow=db.max_overflow,
                pool_timeout=db.pool_timeout,
                pool_recycle=db.pool_recycle,
                pool_pre_ping=db.pool_pre_ping,
            )
        self.store = SqlDataStore(self._session_factory)

        # 3. Durable cache tier (optional; memory tier works alone)
        if cfg.redis.enabled:
            self.durable_cache = create_durable_cache(
                cfg.redis.url, cfg.redis.prefix, ttl=cfg.cache.member_ttl
            )
            if not self.durable_cache.is_available:
                logger.warning("Redis unavailable, running with the memory cache tier only")

        # 4. Services
        self.dashboard = DashboardDataManager(
            self.store, TieredCache(durable=self.durable_cache), cfg.cache
        )
        self.tasks = TaskService(self.store, self.dashboard)
        self.projects = ProjectService(self.store, self.dashboard)
        self.members = MemberDirectory(self.store)
        if self._auth_provider is not None:
            self.sessions = SessionService(self._auth_provider, self.dashboard)

        self._started = True
        log(log_system_event("runtime_started", details=self.status()))
        logger.info(f"{cfg.name} runtime started")

    def shutdown(self) -> None:
        """Close the cache tiers, dispose engines and flush logs."""
        if not self._started:
            return

        logger.info(f"Shutting down {self.config.name} runtime...")

        if self.dashboard:
            self.dashboard.shutdown()
        close_all_sessions()

        log(log_system_event("runtime_shutdown"))
        shutdown_logging()
        self.log_queue = None

        self._started = False
        logger.info(f"{self.config.name} runtime shut down")

    def status(self) -> Dict[str, Any]:
        return {
            "started": self._started,
            "environment": self.config.environment,
            "durable_cache": bool(self.durable_cache and self.durable_cache.is_available),
            "structured_logging": self.log_queue is not None,
            "auth_provider": self._auth_provider is not None,
        }

    @property
    def is_started(self) -> bool:
        return self._started

    def __enter__(self) -> "TaskHubRuntime":
        self.startup()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.shutdown()
