"""Fault-tracking sinks for errors the audit recovers from."""

import logging
from typing import Protocol


logger = logging.getLogger("bootup_audit.faults")


class FaultSink(Protocol):
    def capture_exception(self, error: BaseException, tags: dict[str, str], level: str) -> None:
        ...


class LoggingFaultSink:
    """Reports captured exceptions through the logging system, traceback included."""

    def capture_exception(self, error: BaseException, tags: dict[str, str], level: str) -> None:
        log_level = logging.getLevelName(level.upper())
        if not isinstance(log_level, int):
            log_level = logging.ERROR
        logger.log(log_level, "Captured exception tags=%s", tags, exc_info=error)


class NullFaultSink:
    def capture_exception(self, error: BaseException, tags: dict[str, str], level: str) -> None:
        return None
