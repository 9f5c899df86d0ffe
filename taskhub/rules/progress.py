"""
Project progress rule — roll task progress up into a project percentage.

Tasks carry a ``project_contribution`` weight (0–100). When at least one
task has a positive contribution, the project's progress is the sum of
``effective_progress × contribution / 100`` over those tasks, clamped to
100. Contributions are independent weights: they need not sum to 100, and
overlapping assignments saturate at 100 instead of being normalized.
Without any contribution the rule falls back to the plain completion ratio.

All arithmetic is on integers so results are exact; ties round half up.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

COMPLETED = "completed"


@dataclass(frozen=True)
class TaskSummary:
    """The three task fields the progress rule reads."""
    progress: int
    contribution: int
    status: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TaskSummary":
        return cls(
            progress=int(row.get("progress") or 0),
            contribution=int(row.get("project_contribution") or 0),
            status=str(row.get("status") or ""),
        )

    @property
    def effective_progress(self) -> int:
        """Completed tasks count as 100 regardless of their stored progress."""
        return 100 if self.status == COMPLETED else self.progress


def _div_round_half_up(numerator: int, denominator: int) -> int:
    return (2 * numerator + denominator) // (2 * denominator)


def completion_rate(completed: int, total: int) -> int:
    """Percentage of ``completed`` out of ``total``, rounded; 0 when empty."""
    if total == 0:
        return 0
    return _div_round_half_up(100 * completed, total)


def compute_project_progress(tasks: Iterable[TaskSummary]) -> int:
    """
    Compute a project's completion percentage from its tasks.

    Returns:
        Integer in [0, 100]. 0 for an empty task list.
    """
    tasks = list(tasks)
    if not tasks:
        return 0

    contributing = [t for t in tasks if t.contribution > 0]
    if not contributing:
        completed = sum(1 for t in tasks if t.status == COMPLETED)
        return completion_rate(completed, len(tasks))

    # Sum in hundredths of a percent: progress% × contribution%
    weighted = sum(t.effective_progress * t.contribution for t in contributing)
    weighted = min(weighted, 100 * 100)
    return _div_round_half_up(weighted, 100)
