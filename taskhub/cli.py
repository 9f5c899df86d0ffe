"""
TaskHub CLI — database bootstrap and operator commands.

Commands:
- taskhub init                  — Create database tables
- taskhub member EMAIL          — Show (or lazily create) a member
- taskhub dashboard EMAIL       — Print a member's dashboard summary
- taskhub recompute PROJECT_ID  — Recompute and persist a project's progress
- taskhub clear-cache           — Drop every dashboard cache entry
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from taskhub.engine.config import TaskHubConfig, load_config
from taskhub.engine.errors import TaskHubConfigError, TaskHubError
from taskhub.engine.runtime import TaskHubRuntime

logger = logging.getLogger("taskhub.cli")


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="taskhub",
        description="TaskHub — projects, tasks and progress tracking",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    def add_config_option(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--config", help="Path to taskhub.yaml (default: search from cwd)")

    # taskhub init
    init_parser = subparsers.add_parser("init", help="Create database tables")
    add_config_option(init_parser)

    # taskhub member
    member_parser = subparsers.add_parser("member", help="Show a member, creating it on first access")
    member_parser.add_argument("email", help="Member email address")
    add_config_option(member_parser)

    # taskhub dashboard
    dashboard_parser = subparsers.add_parser("dashboard", help="Print a member's dashboard summary")
    dashboard_parser.add_argument("email", help="Member email address")
    add_config_option(dashboard_parser)

    # taskhub recompute
    recompute_parser = subparsers.add_parser("recompute", help="Recompute a project's progress")
    recompute_parser.add_argument("project_id", help="Project ID")
    add_config_option(recompute_parser)

    # taskhub clear-cache
    clear_parser = subparsers.add_parser("clear-cache", help="Drop all dashboard cache entries")
    add_config_option(clear_parser)

    args = parser.parse_args(argv)

    if args.command == "init":
        return cmd_init(args)
    elif args.command == "member":
        return cmd_member(args)
    elif args.command == "dashboard":
        return cmd_dashboard(args)
    elif args.command == "recompute":
        return cmd_recompute(args)
    elif args.command == "clear-cache":
        return cmd_clear_cache(args)
    else:
        parser.print_help()
        return 0


def _load(args: argparse.Namespace) -> Optional[TaskHubConfig]:
    try:
        return load_config(args.config)
    except TaskHubConfigError as e:
        print(f"[ERROR] {e.message}")
        return None


def cmd_init(args: argparse.Namespace) -> int:
    """Create all TaskHub tables on the configured database."""
    config = _load(args)
    if config is None:
        return 1

    try:
        with TaskHubRuntime(config, create_tables=True):
            pass
    except SQLAlchemyError as e:
        print(f"[ERROR] Initialization failed: {e}")
        return 1

    print(f"[OK] Database tables created ({config.environment})")
    return 0


def cmd_member(args: argparse.Namespace) -> int:
    """Resolve a member by email and print it as JSON."""
    config = _load(args)
    if config is None:
        return 1

    with TaskHubRuntime(config) as runtime:
        try:
            member = asyncio.run(runtime.dashboard.get_current_member(args.email))
        except TaskHubError as e:
            print(f"[ERROR] {e.message}")
            return 1

    print(member.model_dump_json(indent=2))
    return 0


def cmd_dashboard(args: argparse.Namespace) -> int:
    """Print project and task counts for a member's dashboard."""
    config = _load(args)
    if config is None:
        return 1

    async def load(runtime: TaskHubRuntime):
        member = await runtime.dashboard.get_current_member(args.email)
        return await runtime.dashboard.get_dashboard_data(member.id)

    with TaskHubRuntime(config) as runtime:
        try:
            data = asyncio.run(load(runtime))
        except TaskHubError as e:
            print(f"[ERROR] {e.message}")
            return 1

    summary = {
        "member": data.current_member.email,
        "projects": [
            {
                "id": p.id,
                "title": p.title,
                "progress": p.progress,
                "tasks": p.tasks_count,
                "completed": p.completed_tasks,
            }
            for p in data.projects
        ],
        "tasks": [
            {
                "id": t.id,
                "title": t.title,
                "status": t.status,
                "can_complete": t.can_complete,
                "reason": t.completion_message,
            }
            for t in data.tasks
        ],
    }
    print(json.dumps(summary, indent=2))
    return 0


def cmd_recompute(args: argparse.Namespace) -> int:
    """Recompute a project's progress from its tasks."""
    config = _load(args)
    if config is None:
        return 1

    with TaskHubRuntime(config) as runtime:
        try:
            progress = asyncio.run(runtime.projects.refresh_progress(args.project_id))
        except TaskHubError as e:
            print(f"[ERROR] {e.message}")
            return 1

    print(f"[OK] Project {args.project_id} progress: {progress}%")
    return 0


def cmd_clear_cache(args: argparse.Namespace) -> int:
    config = _load(args)
    if config is None:
        return 1

    with TaskHubRuntime(config) as runtime:
        runtime.dashboard.clear_all_cache()

    print("[OK] Dashboard cache cleared")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
