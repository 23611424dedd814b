"""Trace audits."""

from bootup_audit.audit.bootup_time import (
    AggregateOutcome,
    UrlResult,
    audit,
    audit_trace,
    outcome_to_dict
)

__all__ = [
    "AggregateOutcome",
    "UrlResult",
    "audit",
    "audit_trace",
    "outcome_to_dict"
]
