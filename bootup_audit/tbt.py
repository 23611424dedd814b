"""Per-task Total Blocking Time impact."""

from collections.abc import Iterable
from dataclasses import dataclass

from bootup_audit.task_groups import TaskGroup
from bootup_audit.trace import MainThreadTask


BLOCKING_TIME_THRESHOLD_MS = 50.0


@dataclass(frozen=True)
class TbtImpactTask:
    name: str
    group: TaskGroup
    tbt_impact: float
    self_tbt_impact: float


def calculate_tbt_impact_for_event(
    start_ms: float,
    end_ms: float,
    duration_ms: float,
    window_start_ms: float,
    window_end_ms: float,
    top_level_duration_ms: float | None = None
) -> float:
    """
    Blocking time contributed by one event inside the observed window.

    Nested events get a share of the 50ms threshold proportional to their
    fraction of the top-level task.
    """
    threshold = BLOCKING_TIME_THRESHOLD_MS
    if top_level_duration_ms:
        threshold *= duration_ms / top_level_duration_ms

    if duration_ms < threshold:
        return 0.0
    if end_ms < window_start_ms or start_ms > window_end_ms:
        return 0.0

    clipped_duration = min(end_ms, window_end_ms) - max(start_ms, window_start_ms)
    if clipped_duration < threshold:
        return 0.0
    return clipped_duration - threshold


def compute_tbt_impact_tasks(
    tasks: Iterable[MainThreadTask],
    window_start_ms: float,
    window_end_ms: float
) -> list[TbtImpactTask]:
    tasks = list(tasks)
    impacts: dict[int, float] = {}
    for task in tasks:
        top_level = task.top_level()
        impacts[id(task)] = calculate_tbt_impact_for_event(
            task.start_ms,
            task.end_ms,
            task.duration_ms,
            window_start_ms,
            window_end_ms,
            top_level.duration_ms if top_level is not task else None
        )

    impact_tasks = []
    for task in tasks:
        tbt_impact = impacts[id(task)]
        self_tbt_impact = tbt_impact - sum(impacts.get(id(child), 0.0) for child in task.children)
        impact_tasks.append(
            TbtImpactTask(
                name=task.name,
                group=task.group,
                tbt_impact=tbt_impact,
                self_tbt_impact=self_tbt_impact
            )
        )
    return impact_tasks
