"""
Router State Module

The only mutable state the router shares across requests:
- Response Cache: memoized outcomes keyed by request fingerprint
- Single-flight group: one pipeline run per fingerprint at a time
- Audit Logger: append-only routing trail
"""

from .response_cache import ResponseCache, CacheEntry, CacheHit, SingleFlight, fingerprint
from .audit_logger import AuditLogger, AuditEvent, AuditEventType

__all__ = [
    "ResponseCache",
    "CacheEntry",
    "CacheHit",
    "SingleFlight",
    "fingerprint",
    "AuditLogger",
    "AuditEvent",
    "AuditEventType",
]
