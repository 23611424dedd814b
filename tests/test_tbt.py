import unittest

from bootup_audit.task_groups import TaskGroup
from bootup_audit.tbt import calculate_tbt_impact_for_event, compute_tbt_impact_tasks
from bootup_audit.trace import build_main_thread_tasks


class TestTbtImpact(unittest.TestCase):
    def test_top_level_event(self):
        self.assertEqual(calculate_tbt_impact_for_event(0, 120, 120, 0, 1000), 70)
        self.assertEqual(calculate_tbt_impact_for_event(0, 40, 40, 0, 1000), 0)

    def test_event_outside_window(self):
        self.assertEqual(calculate_tbt_impact_for_event(2000, 2120, 120, 0, 1000), 0)
        self.assertEqual(calculate_tbt_impact_for_event(0, 120, 120, 500, 1000), 0)

    def test_event_clipped_to_window(self):
        self.assertEqual(calculate_tbt_impact_for_event(0, 120, 120, 100, 1000), 0)
        self.assertEqual(calculate_tbt_impact_for_event(0, 200, 200, 100, 1000), 50)

    def test_nested_tasks_split_impact(self):
        tasks = build_main_thread_tasks([
            {"id": 1, "parent_id": None, "name": "RunTask", "ts_ms": 0.0, "dur_ms": 200.0},
            {
                "id": 2,
                "parent_id": 1,
                "name": "EvaluateScript",
                "ts_ms": 50.0,
                "dur_ms": 100.0,
                "url": "https://example.com/app.js"
            },
        ])
        impact_tasks = compute_tbt_impact_tasks(tasks, 0.0, 1000.0)

        parent, child = impact_tasks
        self.assertEqual(parent.group, TaskGroup.OTHER)
        self.assertEqual(parent.tbt_impact, 150.0)
        self.assertEqual(parent.self_tbt_impact, 75.0)
        self.assertEqual(child.group, TaskGroup.SCRIPT_EVALUATION)
        self.assertEqual(child.tbt_impact, 75.0)
        self.assertEqual(child.self_tbt_impact, 75.0)


if __name__ == "__main__":
    unittest.main()
