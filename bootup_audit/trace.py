"""Trace decomposition for Chrome traces loaded through Perfetto TraceProcessor."""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from perfetto.trace_processor import TraceProcessor

from bootup_audit.task_groups import TaskGroup, group_for_event


logger = logging.getLogger("bootup_audit.trace")

MAIN_THREAD_NAME = "CrRendererMain"


class TraceError(Exception):
    """Raised when a trace cannot provide the artifacts the audit requires."""


@dataclass(eq=False)
class MainThreadTask:
    name: str
    start_ms: float
    end_ms: float
    duration_ms: float
    self_time_ms: float
    group: TaskGroup
    attributable_urls: list[str] = field(default_factory=list)
    parent: "MainThreadTask | None" = field(default=None, repr=False)
    children: list["MainThreadTask"] = field(default_factory=list, repr=False)

    def top_level(self) -> "MainThreadTask":
        task = self
        while task.parent is not None:
            task = task.parent
        return task


@dataclass(frozen=True)
class NetworkRecord:
    request_id: str | None
    url: str
    resource_type: str | None = None
    mime_type: str | None = None


def _q(tp: TraceProcessor, sql: str) -> list[dict]:
    """Execute a SQL query and return results as a list of dictionaries."""
    result = tp.query(sql)
    rows = []
    for row in result:
        row_dict = {col: getattr(row, col) for col in result.column_names}
        rows.append(row_dict)
    return rows


def _safe_q(tp: TraceProcessor, sql: str, description: str) -> list[dict]:
    """Execute an optional SQL query, returning [] on failure."""
    try:
        return _q(tp, sql)
    except Exception as exc:
        logger.warning("Optional query failed for %s: %s", description, exc)
        return []


def build_main_thread_tasks(rows: list[dict]) -> list[MainThreadTask]:
    """
    Build the main-thread task tree from slice rows.

    Rows must be ordered so that a parent slice precedes its children
    (timestamp, then depth). Each task inherits its parent's group when its
    own event name is not classified, and its attributable URLs start with
    the parent's URLs.
    """
    tasks_by_id: dict[int, MainThreadTask] = {}
    tasks: list[MainThreadTask] = []
    for row in rows:
        parent = tasks_by_id.get(row.get("parent_id"))
        start_ms = float(row.get("ts_ms") or 0.0)
        duration_ms = max(0.0, float(row.get("dur_ms") or 0.0))

        urls = list(parent.attributable_urls) if parent else []
        for url in (row.get("url"), row.get("stack_url")):
            if url and url not in urls:
                urls.append(url)

        task = MainThreadTask(
            name=row.get("name") or "",
            start_ms=start_ms,
            end_ms=start_ms + duration_ms,
            duration_ms=duration_ms,
            self_time_ms=duration_ms,
            group=group_for_event(row.get("name"), parent.group if parent else None),
            attributable_urls=urls,
            parent=parent
        )
        if parent is not None:
            parent.children.append(task)
            parent.self_time_ms = max(0.0, parent.self_time_ms - duration_ms)

        tasks_by_id[row.get("id")] = task
        tasks.append(task)
    return tasks


def merge_network_rows(rows: list[dict]) -> list[NetworkRecord]:
    """
    Merge ResourceSendRequest and ResourceReceiveResponse rows by request id.
    """
    merged: dict[str, dict] = {}
    order: list[str] = []
    for index, row in enumerate(rows):
        key = row.get("request_id") or f"<anonymous {index}>"
        entry = merged.get(key)
        if entry is None:
            entry = {"request_id": row.get("request_id"), "url": None, "resource_type": None, "mime_type": None}
            merged[key] = entry
            order.append(key)
        for column in ("url", "resource_type", "mime_type"):
            if row.get(column) and not entry[column]:
                entry[column] = row.get(column)

    return [
        NetworkRecord(
            request_id=merged[key]["request_id"],
            url=merged[key]["url"],
            resource_type=merged[key]["resource_type"],
            mime_type=merged[key]["mime_type"]
        )
        for key in order
        if merged[key]["url"]
    ]


class ChromeTraceProcessor:
    """Wrapper for Perfetto TraceProcessor with Chrome trace queries."""

    def __init__(self, trace_path: str):
        """
        Initialize the processor with a trace file.

        Args:
            trace_path: Path to a Chrome JSON or Perfetto protobuf trace
        """
        self.trace_path = trace_path
        self.tp = TraceProcessor(trace=trace_path)

    def close(self):
        """Close the trace processor."""
        self.tp.close()

    def find_main_thread(self) -> dict:
        """
        Resolve the renderer main thread, preferring the busiest one.

        Raises:
            TraceError: if the trace has no renderer main thread
        """
        rows = _q(
            self.tp,
            f"""
            SELECT
                t.utid AS utid,
                t.tid AS tid,
                COUNT(s.id) AS slice_count
            FROM thread t
            JOIN thread_track tt ON tt.utid = t.utid
            JOIN slice s ON s.track_id = tt.id
            WHERE t.name = '{MAIN_THREAD_NAME}'
            GROUP BY t.utid
            ORDER BY slice_count DESC
            LIMIT 1
            """
        )
        if not rows:
            raise TraceError(f"No {MAIN_THREAD_NAME} thread found in {self.trace_path}")
        return rows[0]

    def get_main_thread_tasks(self) -> list[MainThreadTask]:
        main_thread = self.find_main_thread()
        rows = _q(
            self.tp,
            f"""
            SELECT
                s.id AS id,
                s.parent_id AS parent_id,
                s.name AS name,
                s.ts / 1e6 AS ts_ms,
                s.dur / 1e6 AS dur_ms,
                EXTRACT_ARG(s.arg_set_id, 'args.data.url') AS url,
                EXTRACT_ARG(s.arg_set_id, 'args.data.stackTrace[0].url') AS stack_url
            FROM slice s
            JOIN thread_track tt ON s.track_id = tt.id
            WHERE tt.utid = {main_thread['utid']} AND s.dur >= 0
            ORDER BY s.ts, s.depth
            """
        )
        tasks = build_main_thread_tasks(rows)
        logger.debug("Built %d main-thread tasks from tid=%s", len(tasks), main_thread.get("tid"))
        return tasks

    def get_network_records(self) -> list[NetworkRecord]:
        rows = _q(
            self.tp,
            """
            SELECT
                EXTRACT_ARG(s.arg_set_id, 'args.data.requestId') AS request_id,
                EXTRACT_ARG(s.arg_set_id, 'args.data.url') AS url,
                EXTRACT_ARG(s.arg_set_id, 'args.data.resourceType') AS resource_type,
                EXTRACT_ARG(s.arg_set_id, 'args.data.mimeType') AS mime_type
            FROM slice s
            WHERE s.name IN ('ResourceSendRequest', 'ResourceReceiveResponse')
            ORDER BY s.ts
            """
        )
        records = merge_network_rows(rows)
        logger.debug("Found %d network records", len(records))
        return records

    def get_observed_window(self) -> tuple[float, float]:
        """
        Window used for blocking-time attribution: first contentful paint
        (or trace start) to trace end, in milliseconds.

        Trace end stands in for Time to Interactive, so long traces overcount
        blocking impact from late tasks.
        """
        bounds = _q(self.tp, "SELECT start_ts / 1e6 AS start_ms, end_ts / 1e6 AS end_ms FROM trace_bounds")
        if not bounds:
            raise TraceError("Trace bounds unavailable")
        start_ms = bounds[0]["start_ms"]
        end_ms = bounds[0]["end_ms"]

        fcp = _safe_q(
            self.tp,
            "SELECT MIN(ts) / 1e6 AS fcp_ms FROM slice WHERE name = 'firstContentfulPaint'",
            "first contentful paint"
        )
        if fcp and fcp[0].get("fcp_ms") is not None:
            start_ms = fcp[0]["fcp_ms"]
        else:
            logger.debug("No firstContentfulPaint mark; using trace start for the window")
        return start_ms, end_ms


class ProcessedTrace:
    """
    Async artifact provider over one trace file.

    Queries run on a single worker thread so TraceProcessor is never used
    concurrently; each artifact is computed once and shared by later requests.
    """

    def __init__(self, trace_path: str):
        self.trace_path = trace_path
        self.processor = ChromeTraceProcessor(trace_path)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="trace-processor")
        self._pending: dict[str, asyncio.Future] = {}

    def close(self):
        self._executor.shutdown(wait=True)
        self.processor.close()

    def _request(self, key: str, compute) -> asyncio.Future:
        future = self._pending.get(key)
        if future is None:
            loop = asyncio.get_running_loop()
            future = loop.run_in_executor(self._executor, compute)
            self._pending[key] = future
        return future

    async def network_records(self) -> list[NetworkRecord]:
        return await self._request("network_records", self.processor.get_network_records)

    async def main_thread_tasks(self) -> list[MainThreadTask]:
        return await self._request("main_thread_tasks", self.processor.get_main_thread_tasks)

    async def observed_window(self) -> tuple[float, float]:
        return await self._request("observed_window", self.processor.get_observed_window)
