"""Fixed taxonomy of main-thread task groups."""

from enum import Enum


class TaskGroup(Enum):
    PARSE_HTML = ("parseHTML", "Parse HTML & CSS")
    STYLE_LAYOUT = ("styleLayout", "Style & Layout")
    PAINT_COMPOSITE_RENDER = ("paintCompositeRender", "Rendering")
    SCRIPT_PARSE_COMPILE = ("scriptParseCompile", "Script Parsing & Compilation")
    SCRIPT_EVALUATION = ("scriptEvaluation", "Script Evaluation")
    GARBAGE_COLLECTION = ("garbageCollection", "Garbage Collection")
    OTHER = ("other", "Other")

    def __init__(self, group_id: str, label: str):
        self.id = group_id
        self.label = label

    @classmethod
    def from_id(cls, group_id: str) -> "TaskGroup":
        for group in cls:
            if group.id == group_id:
                return group
        raise ValueError(f"Unknown task group id: {group_id}")


SCRIPT_GROUPS = frozenset({TaskGroup.SCRIPT_EVALUATION, TaskGroup.SCRIPT_PARSE_COMPILE})

_TRACE_EVENT_NAMES = {
    TaskGroup.PARSE_HTML: ["ParseHTML", "ParseAuthorStyleSheet"],
    TaskGroup.STYLE_LAYOUT: [
        "ScheduleStyleRecalculation",
        "UpdateLayoutTree",
        "InvalidateLayout",
        "Layout"
    ],
    TaskGroup.PAINT_COMPOSITE_RENDER: [
        "Animation",
        "HitTest",
        "PaintSetup",
        "Paint",
        "PaintImage",
        "RasterTask",
        "ScrollLayer",
        "UpdateLayer",
        "UpdateLayerTree",
        "CompositeLayers",
        "PrePaint"
    ],
    TaskGroup.SCRIPT_PARSE_COMPILE: ["v8.compile", "v8.compileModule", "v8.parseOnBackground"],
    TaskGroup.SCRIPT_EVALUATION: [
        "EventDispatch",
        "EvaluateScript",
        "v8.evaluateModule",
        "FunctionCall",
        "TimerFire",
        "FireIdleCallback",
        "FireAnimationFrame",
        "RunMicrotasks",
        "V8.Execute"
    ],
    TaskGroup.GARBAGE_COLLECTION: [
        "GCEvent",
        "MinorGC",
        "MajorGC",
        "ThreadState::performIdleLazySweep",
        "ThreadState::completeSweep",
        "BlinkGCMarking"
    ],
    TaskGroup.OTHER: [
        "MessageLoop::RunTask",
        "TaskQueueManager::ProcessTaskFromWorkQueue",
        "ThreadControllerImpl::DoWork"
    ]
}

TASK_NAME_TO_GROUP: dict[str, TaskGroup] = {
    name: group
    for group, names in _TRACE_EVENT_NAMES.items()
    for name in names
}


def group_for_event(name: str | None, parent_group: TaskGroup | None = None) -> TaskGroup:
    """
    Classify a trace event by name, falling back to the enclosing task's group.
    """
    if name and name in TASK_NAME_TO_GROUP:
        return TASK_NAME_TO_GROUP[name]
    if parent_group is not None:
        return parent_group
    return TaskGroup.OTHER
