"""Best-effort registry rate-limit sub-reports."""

from zim.ratelimit.dockerhub import DockerHubCredentials, DockerHubRateLimitClient
from zim.ratelimit.github import GitHubRateLimitClient
from zim.ratelimit.status import RateLimitStatus, render_rate_limit

__all__ = [
    "DockerHubCredentials",
    "DockerHubRateLimitClient",
    "GitHubRateLimitClient",
    "RateLimitStatus",
    "render_rate_limit",
]
