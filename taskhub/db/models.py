"""
TaskHub Database Models — SQLAlchemy tables behind the DataStore.

Tables:
1. members          — Users of the system (lazily created by email)
2. projects         — Units of work with a lead and derived progress
3. tasks            — Work items inside a project
4. project_members  — Member ↔ Project junction
5. task_assign      — Member ↔ Task junction (gates task completion)
"""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)

from taskhub.db.base import Base, TimestampMixin, new_id


class MemberModel(Base, TimestampMixin):
    __tablename__ = "members"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(200), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    role = Column(String(20), default="user", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    __table_args__ = (
        CheckConstraint("role IN ('admin', 'user', 'manager')", name="ck_members_role"),
    )

    def __repr__(self) -> str:
        return f"<Member(id={self.id}, email='{self.email}', role='{self.role}')>"


class ProjectModel(Base, TimestampMixin):
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), default="planning", nullable=False, index=True)
    priority = Column(String(10), default="medium", nullable=False)
    progress = Column(Integer, default=0, nullable=False)
    deadline = Column(Date, nullable=True)
    lead_id = Column(String(36), ForeignKey("members.id"), nullable=True, index=True)
    budget = Column(Numeric(12, 2, asdecimal=False), default=0, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "status IN ('planning', 'active', 'on-hold', 'completed')",
            name="ck_projects_status",
        ),
        CheckConstraint("priority IN ('low', 'medium', 'high')", name="ck_projects_priority"),
        CheckConstraint("progress BETWEEN 0 AND 100", name="ck_projects_progress"),
    )

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, title='{self.title}', progress={self.progress})>"


class TaskModel(Base, TimestampMixin):
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    project_id = Column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True
    )
    status = Column(String(20), default="todo", nullable=False, index=True)
    priority = Column(String(10), default="medium", nullable=False)
    progress = Column(Integer, default=0, nullable=False)
    project_contribution = Column(Integer, default=0, nullable=False)
    created_by = Column(String(36), ForeignKey("members.id"), nullable=True, index=True)
    due_date = Column(Date, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('todo', 'in_progress', 'completed')",
            name="ck_tasks_status",
        ),
        CheckConstraint("priority IN ('low', 'medium', 'high')", name="ck_tasks_priority"),
        CheckConstraint("progress BETWEEN 0 AND 100", name="ck_tasks_progress"),
        CheckConstraint(
            "project_contribution BETWEEN 0 AND 100",
            name="ck_tasks_project_contribution",
        ),
    )

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, title='{self.title}', status='{self.status}')>"


class ProjectMemberModel(Base):
    __tablename__ = "project_members"

    project_id = Column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True
    )
    member_id = Column(
        String(36), ForeignKey("members.id", ondelete="CASCADE"), primary_key=True, index=True
    )


class TaskAssignModel(Base):
    __tablename__ = "task_assign"

    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True)
    member_id = Column(
        String(36), ForeignKey("members.id", ondelete="CASCADE"), primary_key=True, index=True
    )
