"""TaskHub records — typed rows validated at the data-access boundary."""

from taskhub.records.dashboard import DashboardData, DashboardTask  # noqa: F401
from taskhub.records.member import Member, MemberOption, MemberRef, MemberRole  # noqa: F401
from taskhub.records.membership import (  # noqa: F401
    ProjectMemberInfo,
    ProjectMembership,
    TaskAssignment,
    group_pairs,
)
from taskhub.records.project import (  # noqa: F401
    Priority,
    Project,
    ProjectCreate,
    ProjectDetail,
    ProjectStatus,
    ProjectSummary,
    ProjectUpdate,
)
from taskhub.records.task import (  # noqa: F401
    ProjectRef,
    ProjectTask,
    Task,
    TaskCreate,
    TaskStatus,
    TaskUpdate,
)
