"""Member directory — listings used by assignment pickers and project pages."""

from __future__ import annotations

import logging
from typing import List

from taskhub.db.store import DataStore, Embed, Filter, Order
from taskhub.records.member import MemberOption
from taskhub.records.membership import ProjectMemberInfo
from taskhub.rules.display import display_name

logger = logging.getLogger("taskhub.services.members")


class MemberDirectory:
    """Read-only member listings. Not cached: pickers want the live roster."""

    def __init__(self, store: DataStore):
        self._store = store

    async def list_active_members(self) -> List[MemberOption]:
        rows = await self._store.select(
            "members",
            ("id", "email", "full_name"),
            [Filter.eq("is_active", True)],
            [Order("full_name")],
        )
        return [
            MemberOption(
                id=row["id"],
                email=row["email"],
                full_name=row["full_name"],
                display_name=display_name(row),
            )
            for row in rows
        ]

    async def list_project_members(self, project_id: str) -> List[ProjectMemberInfo]:
        rows = await self._store.select(
            "project_members",
            ["member_id", Embed("member", "members", ("full_name", "email"), foreign_key="member_id")],
            [Filter.eq("project_id", project_id)],
        )
        members = []
        for row in rows:
            member = row["member"] or {}
            members.append(ProjectMemberInfo(
                member_id=row["member_id"],
                full_name=member.get("full_name"),
                email=member.get("email"),
                display_name=display_name(member or None),
            ))
        logger.debug(f"Project {project_id} has {len(members)} members")
        return members
