"""Tests for taskhub.services.projects and taskhub.services.members."""

import pytest

from taskhub.engine.errors import RecordNotFoundError, TaskHubValidationError
from taskhub.records.member import Member
from taskhub.services.members import MemberDirectory
from taskhub.services.projects import ProjectService, update_project_progress


@pytest.fixture
def projects(store, dashboard):
    return ProjectService(store, dashboard)


async def as_member(seed, email, full_name=None) -> Member:
    return Member.model_validate(await seed.member(email, full_name))


class TestUpdateProjectProgress:

    @pytest.mark.asyncio
    async def test_persists_computed_value(self, store, seed):
        project = await seed.project("P")
        await seed.task("T1", project["id"], project_contribution=50, status="completed")
        await seed.task("T2", project["id"], project_contribution=30, progress=40, status="in_progress")
        await seed.task("T3", project["id"])

        assert await update_project_progress(store, project["id"]) == 62
        assert await seed.project_progress(project["id"]) == 62

    @pytest.mark.asyncio
    async def test_empty_project_is_zero(self, store, seed):
        project = await seed.project("P", progress=40)
        assert await update_project_progress(store, project["id"]) == 0
        assert await seed.project_progress(project["id"]) == 0

    @pytest.mark.asyncio
    async def test_missing_project(self, store):
        with pytest.raises(RecordNotFoundError) as exc_info:
            await update_project_progress(store, "missing")
        assert exc_info.value.record_type == "project"


class TestProjectService:

    @pytest.mark.asyncio
    async def test_create_defaults_lead_to_creator(self, projects, seed):
        ann = await as_member(seed, "ann@x.io")
        project = await projects.create_project({"title": "Alpha"}, ann)
        assert project.lead_id == ann.id
        assert project.progress == 0
        assert project.status == "planning"

    @pytest.mark.asyncio
    async def test_create_with_members(self, projects, seed):
        ann = await as_member(seed, "ann@x.io")
        bob = await as_member(seed, "bob@x.io", "Bob")
        project = await projects.create_project(
            {"title": "Alpha", "lead_id": bob.id, "members": [ann.id, bob.id]}, ann
        )
        assert project.lead_id == bob.id
        members = await projects.list_project_members(project.id)
        assert sorted(m.member_id for m in members) == sorted([ann.id, bob.id])
        names = {m.member_id: m.display_name for m in members}
        assert names[bob.id] == "Bob"
        assert names[ann.id] == "Ann"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {"title": ""},
        {"title": "P", "budget": -5},
        {"title": "P", "status": "archived"},
        {"title": "P", "progress": 50},
    ])
    async def test_invalid_create(self, projects, seed, payload):
        ann = await as_member(seed, "ann@x.io")
        with pytest.raises(TaskHubValidationError):
            await projects.create_project(payload, ann)

    @pytest.mark.asyncio
    async def test_get_project_lead_name(self, projects, seed):
        ann = await seed.member("ann@x.io", "Ann Lee")
        nameless = await seed.member("nameless@x.io")
        p1 = await seed.project("P1", lead_id=ann["id"])
        p2 = await seed.project("P2", lead_id=nameless["id"])
        p3 = await seed.project("P3")

        assert (await projects.get_project(p1["id"])).lead_name == "Ann Lee"
        assert (await projects.get_project(p2["id"])).lead_name == "nameless@x.io"
        detail = await projects.get_project(p3["id"])
        assert detail.lead_name == "Unassigned"
        assert detail.lead is None

    @pytest.mark.asyncio
    async def test_get_missing_project(self, projects):
        with pytest.raises(RecordNotFoundError):
            await projects.get_project("missing")

    @pytest.mark.asyncio
    async def test_update_project(self, projects, seed):
        project = await seed.project("P")
        updated = await projects.update_project(project["id"], {"status": "on-hold", "budget": 1200.5})
        assert updated.status == "on-hold"
        assert updated.budget == 1200.5

    @pytest.mark.asyncio
    async def test_update_rejects_progress(self, projects, seed):
        project = await seed.project("P")
        with pytest.raises(TaskHubValidationError):
            await projects.update_project(project["id"], {"progress": 99})

    @pytest.mark.asyncio
    async def test_update_missing(self, projects):
        with pytest.raises(RecordNotFoundError):
            await projects.update_project("missing", {"title": "X"})

    @pytest.mark.asyncio
    async def test_list_member_projects_with_counts(self, projects, seed):
        ann = await seed.member("ann@x.io")
        alpha = await seed.project("Alpha", members=[ann["id"]])
        await seed.project("Led", lead_id=ann["id"])
        await seed.project("Other")
        await seed.task("T1", alpha["id"], status="completed")
        await seed.task("T2", alpha["id"])

        listed = {p.title: p for p in await projects.list_member_projects(ann["id"])}
        assert sorted(listed) == ["Alpha", "Led"]
        assert listed["Alpha"].tasks_count == 2
        assert listed["Alpha"].completed_tasks == 1
        assert listed["Led"].tasks_count == 0

    @pytest.mark.asyncio
    async def test_list_member_projects_empty(self, projects, seed):
        ann = await seed.member("ann@x.io")
        assert await projects.list_member_projects(ann["id"]) == []

    @pytest.mark.asyncio
    async def test_refresh_progress_invalidates(self, projects, dashboard, seed):
        ann = await seed.member("ann@x.io")
        project = await seed.project("P", members=[ann["id"]])
        await seed.task("T", project["id"], status="completed")
        before = await dashboard.get_dashboard_data(ann["id"])
        assert before.projects[0].progress == 0

        assert await projects.refresh_progress(project["id"]) == 100
        after = await dashboard.get_dashboard_data(ann["id"])
        assert after.projects[0].progress == 100

    @pytest.mark.asyncio
    async def test_add_and_remove_members(self, projects, dashboard, seed):
        ann = await seed.member("ann@x.io")
        bob = await seed.member("bob@x.io")
        project = await seed.project("P", members=[ann["id"]])
        await seed.task("T", project["id"])

        before = await dashboard.get_dashboard_data(bob["id"])
        assert before.tasks == []

        assert await projects.add_members(project["id"], [ann["id"], bob["id"]]) == [bob["id"]]
        during = await dashboard.get_dashboard_data(bob["id"])
        assert [t.title for t in during.tasks] == ["T"]

        await projects.remove_member(project["id"], bob["id"])
        after = await dashboard.get_dashboard_data(bob["id"])
        assert after.tasks == []


class TestMemberDirectory:

    @pytest.mark.asyncio
    async def test_active_members_ordered(self, store, seed):
        await seed.member("zed@x.io", "Zed")
        await seed.member("amy@x.io", "Amy")
        await seed.member("gone@x.io", "Gone", is_active=False)
        members = await MemberDirectory(store).list_active_members()
        assert [m.full_name for m in members] == ["Amy", "Zed"]
        assert members[0].display_name == "Amy"

    @pytest.mark.asyncio
    async def test_display_name_from_email(self, store, seed):
        await seed.member("john.doe@x.io")
        (member,) = await MemberDirectory(store).list_active_members()
        assert member.display_name == "John Doe"

    @pytest.mark.asyncio
    async def test_project_members(self, store, seed):
        ann = await seed.member("ann@x.io", "Ann")
        project = await seed.project("P", members=[ann["id"]])
        (info,) = await MemberDirectory(store).list_project_members(project["id"])
        assert info.member_id == ann["id"]
        assert info.full_name == "Ann"
        assert info.email == "ann@x.io"
