"""
Error taxonomy for the routing engine.

Every error carries enough structure to be rendered into a response:
a stable `code`, an HTTP-equivalent `status_code`, and free-form `details`.
"""

from typing import Any, Dict, List, Optional


class RouterError(Exception):
    """Base class for all routing failures."""

    code = "router_error"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            **self.details,
        }


class MalformedInput(RouterError):
    """Neither free text nor structured fields were supplied."""

    code = "malformed_input"
    status_code = 400


class NoCandidateFound(RouterError):
    """No provider matched, even after relaxing verification."""

    code = "no_candidate_found"
    status_code = 404

    def __init__(
        self,
        message: str = "No suitable MCP server found",
        suggestion: str = "Try broader search terms or a different category",
    ):
        super().__init__(message, {"suggestion": suggestion})
        self.suggestion = suggestion


class NoMatchingTool(RouterError):
    """Candidates exist but none exposes a usable tool."""

    code = "no_matching_tool"
    status_code = 404

    def __init__(
        self,
        evaluated_providers: List[str],
        message: str = "No matching tool found in available servers",
    ):
        super().__init__(message, {"evaluated_providers": list(evaluated_providers)})
        self.evaluated_providers = list(evaluated_providers)


class UpstreamTimeout(RouterError):
    """The catalog or the invoker did not answer in time."""

    code = "upstream_timeout"
    status_code = 504


class UpstreamFailure(RouterError):
    """The catalog or the invoker failed."""

    code = "upstream_failure"
    status_code = 502
