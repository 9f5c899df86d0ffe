"""Unit tests for taskhub.rules.progress — project progress roll-up."""

import pytest

from taskhub.rules.progress import TaskSummary, completion_rate, compute_project_progress


def summary(progress=0, contribution=0, status="todo"):
    return TaskSummary(progress=progress, contribution=contribution, status=status)


class TestCompletionFallback:
    """No task carries a contribution: progress is the completion ratio."""

    def test_empty_list_is_zero(self):
        assert compute_project_progress([]) == 0

    def test_all_completed(self):
        tasks = [summary(status="completed"), summary(status="completed")]
        assert compute_project_progress(tasks) == 100

    def test_none_completed(self):
        tasks = [summary(progress=90), summary(progress=50, status="in_progress")]
        assert compute_project_progress(tasks) == 0

    def test_one_of_three_rounds(self):
        tasks = [summary(status="completed"), summary(), summary()]
        assert compute_project_progress(tasks) == 33

    def test_two_of_three_rounds_up(self):
        tasks = [summary(status="completed"), summary(status="completed"), summary()]
        assert compute_project_progress(tasks) == 67

    def test_half_rounds_up(self):
        # 1/8 = 12.5%
        tasks = [summary(status="completed")] + [summary() for _ in range(7)]
        assert compute_project_progress(tasks) == 13

    @pytest.mark.parametrize("completed,total", [(0, 1), (1, 2), (3, 7), (5, 9), (9, 9)])
    def test_matches_completion_rate(self, completed, total):
        tasks = [summary(status="completed")] * completed + [summary()] * (total - completed)
        assert compute_project_progress(tasks) == completion_rate(completed, total)

    def test_completion_rate_empty(self):
        assert completion_rate(0, 0) == 0


class TestWeightedContribution:
    """At least one task contributes: weighted sum over contributing tasks."""

    def test_end_to_end_example(self):
        tasks = [
            summary(contribution=50, status="completed"),
            summary(progress=40, contribution=30, status="in_progress"),
            summary(contribution=0, status="todo"),
        ]
        assert compute_project_progress(tasks) == 62

    def test_completed_task_counts_as_full(self):
        tasks = [summary(progress=10, contribution=50, status="completed")]
        assert compute_project_progress(tasks) == 50

    def test_sum_is_clamped_not_normalized(self):
        tasks = [
            summary(progress=100, contribution=80, status="completed"),
            summary(progress=100, contribution=80, status="completed"),
        ]
        assert compute_project_progress(tasks) == 100

    def test_contributions_below_hundred_are_not_scaled(self):
        tasks = [summary(progress=100, contribution=20, status="in_progress")]
        assert compute_project_progress(tasks) == 20

    def test_non_contributing_tasks_ignored(self):
        tasks = [
            summary(progress=50, contribution=40, status="in_progress"),
            summary(status="completed"),
            summary(status="completed"),
        ]
        assert compute_project_progress(tasks) == 20

    def test_fractional_result_rounds_half_up(self):
        # 25 * 50 / 100 = 12.5
        tasks = [summary(progress=25, contribution=50, status="in_progress")]
        assert compute_project_progress(tasks) == 13

    def test_fractional_result_rounds_down(self):
        # 33 * 30 / 100 = 9.9 -> 10 ; 13 * 10 / 100 = 1.3 -> 1
        assert compute_project_progress([summary(progress=33, contribution=30)]) == 10
        assert compute_project_progress([summary(progress=13, contribution=10)]) == 1


class TestProperties:

    @pytest.mark.parametrize("tasks", [
        [summary(progress=100, contribution=100, status="completed")] * 5,
        [summary(progress=p, contribution=c) for p, c in [(0, 0), (100, 100), (55, 45)]],
        [summary(status="completed")] * 3,
        [summary()],
    ])
    def test_result_in_range(self, tasks):
        assert 0 <= compute_project_progress(tasks) <= 100

    def test_idempotent(self):
        tasks = (
            summary(progress=40, contribution=30, status="in_progress"),
            summary(contribution=50, status="completed"),
        )
        assert compute_project_progress(tasks) == compute_project_progress(tasks)

    def test_accepts_generator(self):
        rows = [{"progress": 40, "project_contribution": 30, "status": "in_progress"}]
        assert compute_project_progress(TaskSummary.from_row(r) for r in rows) == 12


class TestTaskSummary:

    def test_from_row_reads_project_contribution(self):
        s = TaskSummary.from_row({"progress": 40, "project_contribution": 30, "status": "todo"})
        assert s == TaskSummary(progress=40, contribution=30, status="todo")

    def test_from_row_null_fields_default_to_zero(self):
        s = TaskSummary.from_row({"progress": None, "project_contribution": None, "status": "todo"})
        assert s.progress == 0
        assert s.contribution == 0

    def test_effective_progress(self):
        assert summary(progress=10, status="completed").effective_progress == 100
        assert summary(progress=10, status="in_progress").effective_progress == 10
