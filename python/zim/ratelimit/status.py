"""Rate-limit status shared by the registry clients, and its text rendering."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

RULE = "=" * 32
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class RateLimitStatus:
    """Quota state reported by a registry API"""
    registry: str
    limit: int
    remaining: int
    used: int
    reset_time: Optional[datetime] = None
    source: str = ""
    authenticated: bool = False
    unit: str = ""

    @property
    def title(self) -> str:
        if self.registry == "Docker Hub":
            auth_status = "Authenticated" if self.authenticated else "Anonymous"
            return f"{self.registry} Rate Limits ({auth_status}):"
        return f"{self.registry} Rate Limits:"


def render_rate_limit(status: RateLimitStatus) -> str:
    """Render one rate-limit sub-report block."""
    suffix = f" {status.unit}" if status.unit else ""
    lines = [
        status.title,
        RULE,
        f"Limit: {status.limit}{suffix}",
        f"Remaining: {status.remaining}{suffix}",
        f"Used: {status.used}{suffix}",
    ]
    if status.reset_time is not None:
        lines.append(f"Reset Time: {status.reset_time.astimezone().strftime(TIME_FORMAT)}")
    if status.source:
        lines.append(f"Source: {status.source}")
    lines.append(RULE)
    return "\n".join(lines) + "\n"
