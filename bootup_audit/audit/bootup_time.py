"""JavaScript bootup-time audit: script CPU time per URL, scored and ranked."""

import asyncio
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Protocol

from bootup_audit.config import AuditOptions, Settings
from bootup_audit.faults import FaultSink, LoggingFaultSink
from bootup_audit.scoring import PASS_THRESHOLD, compute_log_normal_score
from bootup_audit.task_groups import SCRIPT_GROUPS, TaskGroup
from bootup_audit.task_summary import TimingByCategory, get_execution_timings_by_url
from bootup_audit.tbt import TbtImpactTask, compute_tbt_impact_tasks
from bootup_audit.trace import MainThreadTask, NetworkRecord, ProcessedTrace


logger = logging.getLogger("bootup_audit.audit.bootup_time")

AUDIT_ID = "bootup-time"
EXTENSION_URL_PREFIX = "chrome-extension:"
EXCESSIVE_EXTENSION_SCRIPTING_MS = 100

TITLE = "JavaScript execution time"
FAILURE_TITLE = "Reduce JavaScript execution time"
DESCRIPTION = (
    "Consider reducing the time spent parsing, compiling, and executing JS. "
    "You may find delivering smaller JS payloads helps with this. "
    "[Learn how to reduce Javascript execution time]"
    "(https://developer.chrome.com/docs/lighthouse/performance/bootup-time/)."
)
CHROME_EXTENSIONS_WARNING = (
    "Chrome extensions negatively affected this page's load performance. "
    "Try auditing the page in incognito mode or from a Chrome profile without extensions."
)

HEADINGS = [
    {"key": "url", "valueType": "url", "label": "URL"},
    {"key": "total", "granularity": 1, "valueType": "ms", "label": "Total CPU Time"},
    {"key": "scripting", "granularity": 1, "valueType": "ms", "label": "Script Evaluation"},
    {"key": "scriptParseCompile", "granularity": 1, "valueType": "ms", "label": "Script Parse"},
]


class TraceArtifacts(Protocol):
    async def network_records(self) -> list[NetworkRecord]:
        ...

    async def main_thread_tasks(self) -> list[MainThreadTask]:
        ...

    async def observed_window(self) -> tuple[float, float]:
        ...


@dataclass(frozen=True)
class UrlResult:
    url: str
    total: float
    scripting: float
    script_parse_compile: float


@dataclass(frozen=True)
class AggregateOutcome:
    ranked_results: tuple[UrlResult, ...]
    total_bootup_time_ms: float
    had_excessive_extension_overhead: bool
    tbt_impact_ms: float
    score: float

    @property
    def not_applicable(self) -> bool:
        return not self.ranked_results


@dataclass(frozen=True)
class MetricComputationData:
    trace: TraceArtifacts
    settings: Settings = field(default_factory=Settings)


def summarize_url(url: str, timing_by_group: Mapping[TaskGroup, float], multiplier: float) -> UrlResult:
    scaled = {group: duration_ms * multiplier for group, duration_ms in timing_by_group.items()}
    return UrlResult(
        url=url,
        total=sum(scaled.values()),
        scripting=scaled.get(TaskGroup.SCRIPT_EVALUATION, 0.0),
        script_parse_compile=scaled.get(TaskGroup.SCRIPT_PARSE_COMPILE, 0.0)
    )


def aggregate_execution_timings(
    execution_timings: Mapping[str, TimingByCategory],
    multiplier: float,
    excluded_url: str
) -> list[UrlResult]:
    """
    One scaled UrlResult per URL, in the mapping's order, without the excluded URL.
    """
    return [
        summarize_url(url, timing_by_group, multiplier)
        for url, timing_by_group in execution_timings.items()
        if url != excluded_url
    ]


@dataclass(frozen=True)
class RankedResults:
    results: tuple[UrlResult, ...]
    total_bootup_time_ms: float
    had_excessive_extension_overhead: bool
    score: float


def rank_and_score(candidates: Iterable[UrlResult], options: AuditOptions) -> RankedResults:
    """
    Drop URLs under the noise threshold, rank the rest by total, and score.

    The bootup total and the extension check both look at every candidate,
    so an extension can be flagged even when its row is filtered out.
    """
    candidates = list(candidates)
    total_bootup_time_ms = 0.0
    had_excessive_extension_overhead = False

    for result in candidates:
        if result.total >= options.threshold_in_ms:
            total_bootup_time_ms += result.scripting + result.script_parse_compile
        if (
            result.url.startswith(EXTENSION_URL_PREFIX)
            and result.scripting > EXCESSIVE_EXTENSION_SCRIPTING_MS
        ):
            had_excessive_extension_overhead = True

    kept = [result for result in candidates if result.total >= options.threshold_in_ms]
    kept.sort(key=lambda result: result.total, reverse=True)

    score = compute_log_normal_score(
        {"p10": options.p10, "median": options.median},
        total_bootup_time_ms
    )
    return RankedResults(
        results=tuple(kept),
        total_bootup_time_ms=total_bootup_time_ms,
        had_excessive_extension_overhead=had_excessive_extension_overhead,
        score=score
    )


async def request_tbt_impact_tasks(data: MetricComputationData) -> list[TbtImpactTask]:
    if data.settings.throttling_method == "simulate":
        logger.debug("Blocking impact uses observed task timings; simulation is not modeled")
    tasks, (window_start_ms, window_end_ms) = await asyncio.gather(
        data.trace.main_thread_tasks(),
        data.trace.observed_window()
    )
    return compute_tbt_impact_tasks(tasks, window_start_ms, window_end_ms)


async def get_tbt_impact(data: MetricComputationData, fault_sink: FaultSink) -> float:
    """
    Blocking-time impact of script evaluation and parse/compile work.

    Any failure is reported to the fault sink and yields 0 so the primary
    measurement still completes.
    """
    try:
        tasks = await request_tbt_impact_tasks(data)
    except Exception as exc:
        fault_sink.capture_exception(exc, tags={"audit": AUDIT_ID}, level="error")
        logger.error("%s: %s", AUDIT_ID, exc)
        return 0.0
    return sum(task.self_tbt_impact for task in tasks if task.group in SCRIPT_GROUPS)


def _collect_url_results(
    tasks: list[MainThreadTask],
    network_records: list[NetworkRecord],
    settings: Settings,
    options: AuditOptions
) -> list[UrlResult]:
    execution_timings = get_execution_timings_by_url(tasks, network_records)
    multiplier = settings.cpu_multiplier()
    logger.debug(
        "Aggregating %d URLs with cpu multiplier %s",
        len(execution_timings),
        multiplier
    )
    return aggregate_execution_timings(execution_timings, multiplier, options.excluded_url)


async def audit(
    artifacts: TraceArtifacts,
    options: AuditOptions | None = None,
    settings: Settings | None = None,
    fault_sink: FaultSink | None = None
) -> AggregateOutcome:
    """
    Run the bootup-time audit against a set of trace artifacts.

    Failures fetching network records or main-thread tasks propagate. The
    blocking-impact estimate starts only once those inputs are in hand, so
    its fault boundary never sees a primary-path failure.
    """
    options = options or AuditOptions()
    settings = settings or Settings()
    fault_sink = fault_sink or LoggingFaultSink()

    network_records, tasks = await asyncio.gather(
        artifacts.network_records(),
        artifacts.main_thread_tasks()
    )

    metric_data = MetricComputationData(trace=artifacts, settings=settings)
    tbt_impact = asyncio.ensure_future(get_tbt_impact(metric_data, fault_sink))
    candidates = _collect_url_results(tasks, network_records, settings, options)
    tbt_impact_ms = await tbt_impact
    ranked = rank_and_score(candidates, options)

    logger.info(
        "Bootup time %.1fms across %d URLs (score %.2f)",
        ranked.total_bootup_time_ms,
        len(ranked.results),
        ranked.score
    )
    return AggregateOutcome(
        ranked_results=ranked.results,
        total_bootup_time_ms=ranked.total_bootup_time_ms,
        had_excessive_extension_overhead=ranked.had_excessive_extension_overhead,
        tbt_impact_ms=tbt_impact_ms,
        score=ranked.score
    )


def format_display_value(total_bootup_time_ms: float) -> str:
    if total_bootup_time_ms <= 0:
        return ""
    return f"{total_bootup_time_ms / 1000:.1f} s"


def outcome_to_dict(outcome: AggregateOutcome) -> dict:
    """
    JSON-serializable audit result with the details table and display fields.
    """
    items = [
        {
            "url": result.url,
            "total": result.total,
            "scripting": result.scripting,
            "scriptParseCompile": result.script_parse_compile
        }
        for result in outcome.ranked_results
    ]
    return {
        "id": AUDIT_ID,
        "title": TITLE if outcome.score >= PASS_THRESHOLD else FAILURE_TITLE,
        "description": DESCRIPTION,
        "score": outcome.score,
        "scoreDisplayMode": "informative" if outcome.score >= PASS_THRESHOLD else "metricSavings",
        "notApplicable": outcome.not_applicable,
        "numericValue": outcome.total_bootup_time_ms,
        "numericUnit": "millisecond",
        "displayValue": format_display_value(outcome.total_bootup_time_ms),
        "details": {
            "type": "table",
            "headings": HEADINGS,
            "items": items,
            "wastedMs": outcome.total_bootup_time_ms,
            "sortedBy": ["total"]
        },
        "runWarnings": [CHROME_EXTENSIONS_WARNING] if outcome.had_excessive_extension_overhead else [],
        "metricSavings": {"TBT": outcome.tbt_impact_ms}
    }


def audit_trace(
    trace_path: str,
    options: AuditOptions | None = None,
    settings: Settings | None = None,
    fault_sink: FaultSink | None = None
) -> dict:
    """
    Run the audit on a trace file and return the serialized result.

    Args:
        trace_path: Path to the trace file
        options: Scoring calibration and noise threshold
        settings: Throttling settings of the recorded run

    Returns:
        Dictionary produced by outcome_to_dict
    """
    trace = ProcessedTrace(trace_path)
    try:
        outcome = asyncio.run(audit(trace, options, settings, fault_sink))
        result = outcome_to_dict(outcome)
        result["trace_path"] = trace_path
        return result
    finally:
        trace.close()
