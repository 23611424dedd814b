"""Audit options and run settings."""

from dataclasses import dataclass


SELF_MEASUREMENT_URL = "_lighthouse-eval.js"

THROTTLING_METHODS = ("simulate", "devtools", "provided")


@dataclass(frozen=True)
class AuditOptions:
    p10: float = 1282
    median: float = 3500
    threshold_in_ms: float = 50
    excluded_url: str = SELF_MEASUREMENT_URL


@dataclass(frozen=True)
class Settings:
    throttling_method: str = "simulate"
    cpu_slowdown_multiplier: float = 4

    def cpu_multiplier(self) -> float:
        """Scale applied to observed durations; only simulated throttling slows the CPU."""
        if self.throttling_method == "simulate":
            return self.cpu_slowdown_multiplier
        return 1
