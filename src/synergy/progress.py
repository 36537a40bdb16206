"""Per-project task progress, recomputed from the live task collection."""

from __future__ import annotations

from dataclasses import dataclass

from .models import Snapshot, TaskStatus


@dataclass(frozen=True)
class ProgressSummary:
    todo: int
    inprogress: int
    done: int
    completion_percent: int

    @property
    def total(self) -> int:
        return self.todo + self.inprogress + self.done

    def breakdown(self) -> list[tuple[str, int]]:
        """(label, count) pairs in board column order, for the chart widget."""
        return [
            (TaskStatus.TODO.label, self.todo),
            (TaskStatus.INPROGRESS.label, self.inprogress),
            (TaskStatus.DONE.label, self.done),
        ]


def completion_percent(done: int, total: int) -> int:
    """round(done / max(total, 1) * 100), halves rounded up."""
    total = max(total, 1)
    return (200 * done + total) // (2 * total)


def aggregate(snapshot: Snapshot, project_id: str) -> ProgressSummary:
    counts = {status: 0 for status in TaskStatus}
    for task in snapshot.tasks:
        if task.project_id == project_id:
            counts[task.status] += 1
    total = sum(counts.values())
    return ProgressSummary(
        todo=counts[TaskStatus.TODO],
        inprogress=counts[TaskStatus.INPROGRESS],
        done=counts[TaskStatus.DONE],
        completion_percent=completion_percent(counts[TaskStatus.DONE], total),
    )
