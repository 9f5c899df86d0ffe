"""Task completion transitions — keep status, progress and completed_at consistent."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

COMPLETED = "completed"


def apply_completion_transition(
    current_status: Optional[str],
    changes: Dict[str, Any],
    now: datetime,
) -> Dict[str, Any]:
    """
    Return ``changes`` extended so the task invariant holds after the write.

    - entering ``completed`` stamps ``completed_at`` and forces progress 100
    - leaving ``completed`` clears ``completed_at``
    - staying ``completed`` keeps progress pinned at 100

    ``current_status`` is None for a task being created.
    """
    result = dict(changes)
    new_status = result.get("status", current_status)
    was_completed = current_status == COMPLETED

    if new_status == COMPLETED:
        if not was_completed:
            result["completed_at"] = now
        if "progress" in result or not was_completed:
            result["progress"] = 100
    elif was_completed:
        result["completed_at"] = None
    elif current_status is None:
        result["completed_at"] = None
    return result
