"""Attribution of main-thread task time to the URLs that caused it."""

from collections.abc import Iterable

from bootup_audit.task_groups import TaskGroup
from bootup_audit.trace import MainThreadTask, NetworkRecord


BROWSER_TASK_NAMES = frozenset({"CpuProfiler::StartProfiling"})
BROWSER_GC_TASK_NAMES = frozenset({"V8.GCCompactor", "MajorGC", "MinorGC"})

TimingByCategory = dict[TaskGroup, float]


def _is_script_record(record: NetworkRecord) -> bool:
    if record.resource_type == "Script":
        return True
    return bool(record.mime_type) and "javascript" in record.mime_type.lower()


def get_javascript_urls(network_records: Iterable[NetworkRecord]) -> set[str]:
    return {record.url for record in network_records if _is_script_record(record)}


def get_attributable_url(task: MainThreadTask, js_urls: set[str]) -> str:
    """
    Pick the URL a task's time is charged to.

    A known script URL wins over the first attributable URL. Tasks without
    a usable URL are charged to Browser, Browser GC or Unattributable.
    """
    js_url = next((url for url in task.attributable_urls if url in js_urls), None)
    fallback_url = task.attributable_urls[0] if task.attributable_urls else None
    url = js_url or fallback_url
    if url and url != "about:blank":
        return url
    if task.name in BROWSER_TASK_NAMES:
        return "Browser"
    if task.name in BROWSER_GC_TASK_NAMES:
        return "Browser GC"
    return "Unattributable"


def get_execution_timings_by_url(
    tasks: Iterable[MainThreadTask],
    network_records: Iterable[NetworkRecord]
) -> dict[str, TimingByCategory]:
    """
    Sum each task's self time into a per-URL, per-group mapping.

    URLs appear in the order their first task was seen.
    """
    js_urls = get_javascript_urls(network_records)
    result: dict[str, TimingByCategory] = {}
    for task in tasks:
        url = get_attributable_url(task, js_urls)
        timing_by_group = result.setdefault(url, {})
        timing_by_group[task.group] = timing_by_group.get(task.group, 0.0) + task.self_time_ms
    return result
