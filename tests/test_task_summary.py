import unittest

from bootup_audit.task_groups import TaskGroup
from bootup_audit.task_summary import (
    get_attributable_url,
    get_execution_timings_by_url,
    get_javascript_urls
)
from bootup_audit.trace import MainThreadTask, NetworkRecord


def make_task(urls, group=TaskGroup.SCRIPT_EVALUATION, self_ms=10.0, name="FunctionCall"):
    return MainThreadTask(
        name=name,
        start_ms=0.0,
        end_ms=self_ms,
        duration_ms=self_ms,
        self_time_ms=self_ms,
        group=group,
        attributable_urls=list(urls)
    )


class TestTaskSummary(unittest.TestCase):
    def test_javascript_urls(self):
        records = [
            NetworkRecord("1", "https://example.com/", resource_type="Document"),
            NetworkRecord("2", "https://example.com/app.js", resource_type="Script"),
            NetworkRecord("3", "https://cdn.example.com/lib", mime_type="application/javascript"),
        ]
        self.assertEqual(
            get_javascript_urls(records),
            {"https://example.com/app.js", "https://cdn.example.com/lib"}
        )

    def test_script_url_preferred_over_first_url(self):
        task = make_task(["https://example.com/", "https://example.com/app.js"])
        self.assertEqual(
            get_attributable_url(task, {"https://example.com/app.js"}),
            "https://example.com/app.js"
        )
        self.assertEqual(get_attributable_url(task, set()), "https://example.com/")

    def test_fallback_urls(self):
        self.assertEqual(
            get_attributable_url(make_task([], name="CpuProfiler::StartProfiling"), set()),
            "Browser"
        )
        self.assertEqual(get_attributable_url(make_task(["about:blank"], name="MajorGC"), set()), "Browser GC")
        self.assertEqual(get_attributable_url(make_task([], name="RunTask"), set()), "Unattributable")

    def test_execution_timings_by_url(self):
        tasks = [
            make_task(["https://a.com/a.js"], TaskGroup.SCRIPT_EVALUATION, 30.0),
            make_task(["https://b.com/b.js"], TaskGroup.SCRIPT_PARSE_COMPILE, 5.0),
            make_task(["https://a.com/a.js"], TaskGroup.SCRIPT_PARSE_COMPILE, 12.0),
            make_task(["https://a.com/a.js"], TaskGroup.SCRIPT_EVALUATION, 20.0),
            make_task(["https://a.com/a.js"], TaskGroup.STYLE_LAYOUT, 3.0),
        ]
        timings = get_execution_timings_by_url(tasks, [])
        self.assertEqual(list(timings), ["https://a.com/a.js", "https://b.com/b.js"])
        self.assertEqual(
            timings["https://a.com/a.js"],
            {
                TaskGroup.SCRIPT_EVALUATION: 50.0,
                TaskGroup.SCRIPT_PARSE_COMPILE: 12.0,
                TaskGroup.STYLE_LAYOUT: 3.0
            }
        )
        self.assertEqual(timings["https://b.com/b.js"], {TaskGroup.SCRIPT_PARSE_COMPILE: 5.0})


if __name__ == "__main__":
    unittest.main()
