"""Pure business rules: progress roll-up, completion eligibility, display names."""

from taskhub.rules.eligibility import (  # noqa: F401
    CompletionEligibility,
    CompletionReason,
    evaluate_completion,
    is_task_visible,
)
from taskhub.rules.progress import TaskSummary, compute_project_progress  # noqa: F401
