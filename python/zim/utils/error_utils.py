"""
Error types and message helpers that give operators actionable guidance.

Fatal errors (cluster inventory, log retrieval) abort the run; rate-limit
query errors are reported as warnings and the sub-report is skipped.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCategory(Enum):
    """What kind of failure an error represents"""
    CONNECTION = "connection"
    AUTHENTICATION = "authentication"
    CONFIGURATION = "configuration"
    PERMISSION = "permission"
    RESOURCE = "resource"
    NETWORK = "network"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class ActionableError(Exception):
    """An error message followed by numbered fixes and context for the operator"""

    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.UNKNOWN,
                 suggestions: Optional[List[str]] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.category = category
        self.suggestions = list(suggestions or [])
        self.details = dict(details or {})
        super().__init__(message)

    def __str__(self) -> str:
        return self.format_message()

    def format_message(self) -> str:
        """Message, then 'Suggested fixes' and 'Additional details' blocks when present."""
        sections = [self.message]
        if self.suggestions:
            fixes = [f"   {n}. {suggestion}" for n, suggestion in enumerate(self.suggestions, 1)]
            sections.append("\n".join(["", "Suggested fixes:"] + fixes))
        if self.details:
            context = [f"   {key}: {value}" for key, value in self.details.items()]
            sections.append("\n".join(["", "Additional details:"] + context))
        return "\n".join(sections)


class ClusterQueryError(ActionableError):
    """Listing pods from the cluster failed; the live inventory is unavailable."""


class LogSourceError(ActionableError):
    """Retrieving raw log lines failed."""


class NoPullEventsError(LogSourceError):
    """The log source returned zero lines for the requested window."""


class RateLimitQueryError(ActionableError):
    """A registry rate-limit query failed."""


def _mentions(text: str, *words: str) -> bool:
    return any(word in text for word in words)


def _error_details(error: Exception, **context: Any) -> Dict[str, Any]:
    details = dict(context)
    details["error_type"] = type(error).__name__
    details["error_message"] = str(error)
    return details


def create_kubernetes_error(operation: str, error: Exception) -> ClusterQueryError:
    """Create actionable error for Kubernetes API failures"""
    text = str(error).lower()

    suggestions = [
        "Verify Kubernetes cluster access (kubectl cluster-info)",
        "Check the --kubeconfig path or the KUBECONFIG environment variable",
        "Verify RBAC permissions allow listing pods in all namespaces",
    ]
    category = ErrorCategory.CONNECTION

    if _mentions(text, "403", "forbidden"):
        category = ErrorCategory.PERMISSION
        suggestions[:0] = [
            "Check Kubernetes RBAC permissions (pods: list, cluster-wide)",
            "Verify the service account or user has a ClusterRole binding",
        ]
    elif _mentions(text, "401", "unauthorized"):
        category = ErrorCategory.AUTHENTICATION
        suggestions.insert(0, "Refresh expired cluster credentials in the kubeconfig")
    elif _mentions(text, "timeout", "timed out"):
        category = ErrorCategory.TIMEOUT
        suggestions[:0] = [
            "Check network connectivity to the API server",
            "Increase kubernetes.timeout in config.yaml",
        ]

    return ClusterQueryError(
        f"Kubernetes operation failed: {operation}",
        category=category,
        suggestions=suggestions,
        details=_error_details(error, operation=operation),
    )


def create_log_source_error(source: str, error: Exception, stderr: str = "") -> LogSourceError:
    """Create actionable error for log retrieval failures"""
    text = f"{error} {stderr}".lower()

    suggestions = [
        f"Verify the log source is available: {source}",
        "Run the tool on a node where the container runtime logs to the journal",
        "Use --log-file to read pull events from an exported log file",
    ]
    if _mentions(text, "not found", "no such file"):
        suggestions.insert(0, "Install journalctl (systemd) or point --log-file at an existing file")
    if _mentions(text, "permission", "denied"):
        suggestions.insert(0, "Run with a user allowed to read the system journal (e.g. in group systemd-journal)")
    if _mentions(text, "timeout", "timed out"):
        suggestions.insert(0, "Narrow the window with --since or increase logs.timeout in config.yaml")

    details = _error_details(error, source=source)
    if stderr:
        details["stderr"] = stderr.strip()

    return LogSourceError(
        f"Failed to retrieve pull events from {source}",
        category=ErrorCategory.RESOURCE,
        suggestions=suggestions,
        details=details,
    )


def create_no_pull_events_error(source: str, since: str) -> NoPullEventsError:
    """Create the error raised when the window contains no log lines at all"""
    return NoPullEventsError(
        f"No pull events found in {source} since {since}",
        category=ErrorCategory.RESOURCE,
        suggestions=[
            "Widen the window with --since",
            "Check that the configured unit (--unit) is the container runtime that pulls images",
            "Check that logs.grep matches the runtime's pull messages",
        ],
        details={"source": source, "since": since},
    )


def create_rate_limit_query_error(registry: str, url: str, error: Exception) -> RateLimitQueryError:
    """Create actionable error for registry rate-limit query failures"""
    text = str(error).lower()

    suggestions = [
        f"Check network connectivity to {url}",
        "Retry later; rate-limit endpoints can be throttled themselves",
    ]
    if _mentions(text, "401", "403", "unauthorized"):
        category = ErrorCategory.AUTHENTICATION
        suggestions.insert(0, f"Verify the {registry} credentials or token")
    elif _mentions(text, "timeout", "timed out"):
        category = ErrorCategory.TIMEOUT
        suggestions.insert(0, "Increase registry.timeout in config.yaml")
    else:
        category = ErrorCategory.NETWORK

    return RateLimitQueryError(
        f"Failed to get {registry} rate limit",
        category=category,
        suggestions=suggestions,
        details=_error_details(error, url=url),
    )
