"""
Audit Logger

Append-only audit trail of routing decisions.

Every routed request can be traced:
request -> parse -> ranking -> provider/tool -> result (or failure)

One JSON object per line, so the log can be tailed, grepped and replayed.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional
import json
import threading


class AuditEventType(Enum):
    """Types of audit events."""
    REQUEST_RECEIVED = "request_received"
    PARSE_COMPLETED = "parse_completed"
    CANDIDATES_RANKED = "candidates_ranked"
    PROVIDER_SELECTED = "provider_selected"
    CACHE_HIT = "cache_hit"
    ROUTING_FAILED = "routing_failed"
    UPSTREAM_ERROR = "upstream_error"


@dataclass
class AuditEvent:
    """A single audit event."""
    event_id: str
    event_type: AuditEventType
    timestamp: datetime
    request_id: str
    action: str
    details: Dict[str, Any]
    success: bool = True
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "timestamp": self.timestamp.isoformat(),
            "request_id": self.request_id,
            "action": self.action,
            "details": self.details,
            "success": self.success,
            "error": self.error,
            "metadata": self.metadata,
        }

    def to_log_line(self) -> str:
        """Convert to a single log line."""
        return json.dumps(self.to_dict(), default=str)


class AuditLogger:
    """
    Audit Logger - append-only routing trail.

    Events are only ever appended; nothing here rewrites the file.
    """

    def __init__(self, log_path: str = "state/router_audit.log"):
        self.log_path = Path(log_path)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._event_counter = 0
        self._lock = threading.Lock()

    def _generate_event_id(self) -> str:
        self._event_counter += 1
        return f"evt_{datetime.now().strftime('%Y%m%d%H%M%S')}_{self._event_counter:06d}"

    def log(
        self,
        event_type: AuditEventType,
        request_id: str,
        action: str,
        details: Dict[str, Any],
        success: bool = True,
        error: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> AuditEvent:
        """Append an event to the log."""
        with self._lock:
            event = AuditEvent(
                event_id=self._generate_event_id(),
                event_type=event_type,
                timestamp=datetime.now(),
                request_id=request_id,
                action=action,
                details=details,
                success=success,
                error=error,
                metadata=metadata or {},
            )
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(event.to_log_line() + "\n")

        return event

    # Convenience methods for common events

    def log_request(self, request_id: str, query: Optional[str], structured: bool) -> AuditEvent:
        return self.log(
            AuditEventType.REQUEST_RECEIVED,
            request_id,
            "request_received",
            {"query": query, "structured": structured},
        )

    def log_parse(self, request_id: str, parsed: Dict[str, Any]) -> AuditEvent:
        return self.log(
            AuditEventType.PARSE_COMPLETED,
            request_id,
            "parse_completed",
            {
                "intent": parsed.get("intent"),
                "confidence": parsed.get("confidence"),
                "capabilities": parsed.get("capabilities"),
                "strategy": parsed.get("strategy"),
            },
        )

    def log_ranking(
        self,
        request_id: str,
        ranking: List[Dict[str, Any]],
        relaxed: bool = False
    ) -> AuditEvent:
        """Log the ranked candidates (top entries only)."""
        return self.log(
            AuditEventType.CANDIDATES_RANKED,
            request_id,
            "candidates_ranked",
            {"top": ranking[:5], "total": len(ranking), "relaxed": relaxed},
        )

    def log_selection(
        self,
        request_id: str,
        provider_id: str,
        tool_name: str,
        confidence: float
    ) -> AuditEvent:
        return self.log(
            AuditEventType.PROVIDER_SELECTED,
            request_id,
            f"selected:{provider_id}",
            {"provider": provider_id, "tool": tool_name, "confidence": confidence},
        )

    def log_cache_hit(self, request_id: str, fingerprint: str, age_ms: int) -> AuditEvent:
        return self.log(
            AuditEventType.CACHE_HIT,
            request_id,
            "cache_hit",
            {"fingerprint": fingerprint, "age_ms": age_ms},
        )

    def log_failure(
        self,
        request_id: str,
        error_code: str,
        error_message: str,
        details: Optional[Dict[str, Any]] = None
    ) -> AuditEvent:
        """Log a routing failure."""
        return self.log(
            AuditEventType.ROUTING_FAILED,
            request_id,
            f"error:{error_code}",
            details or {},
            success=False,
            error=error_message,
        )

    def log_upstream_error(
        self,
        request_id: str,
        error_code: str,
        error_message: str,
        degraded: bool
    ) -> AuditEvent:
        return self.log(
            AuditEventType.UPSTREAM_ERROR,
            request_id,
            f"upstream:{error_code}",
            {"degraded": degraded},
            success=degraded,
            error=error_message,
        )

    def get_request_events(self, request_id: str) -> List[Dict[str, Any]]:
        """Get all events for a request."""
        events = []
        if self.log_path.exists():
            with open(self.log_path, "r", encoding="utf-8") as f:
                for line in f:
                    try:
                        event = json.loads(line.strip())
                        if event.get("request_id") == request_id:
                            events.append(event)
                    except json.JSONDecodeError:
                        continue
        return events

    def get_recent_events(self, count: int = 100) -> List[Dict[str, Any]]:
        """Get the most recent events."""
        events = []
        if self.log_path.exists():
            with open(self.log_path, "r", encoding="utf-8") as f:
                lines = f.readlines()
                for line in lines[-count:]:
                    try:
                        events.append(json.loads(line.strip()))
                    except json.JSONDecodeError:
                        continue
        return events
