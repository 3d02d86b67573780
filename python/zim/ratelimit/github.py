"""GitHub API rate-limit query used for GitHub Container Registry access."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests

from zim.ratelimit.status import RateLimitStatus
from zim.utils.error_utils import RateLimitQueryError, create_rate_limit_query_error
from zim.utils.logging_utils import get_logger
from zim.utils.retry_utils import retry_operation

logger = get_logger(__name__)

RATE_LIMIT_URL = "https://api.github.com/rate_limit"


class GitHubRateLimitClient:
    """Queries the core rate limit of a GitHub token"""

    registry = "GitHub Container Registry"

    def __init__(self, token: str, timeout: int = 10, session: Optional[requests.Session] = None,
                 retry_settings: Optional[Dict[str, Any]] = None):
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()
        self.retry_settings = retry_settings or {}

    def _query(self) -> RateLimitStatus:
        response = self.session.get(
            RATE_LIMIT_URL,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Accept": "application/vnd.github+json",
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        body = response.json()
        resources = body.get("resources") if isinstance(body, dict) else None
        core = resources.get("core") if isinstance(resources, dict) else None
        if not isinstance(core, dict):
            raise ValueError("rate_limit response has no resources.core object")

        reset = core.get("reset")
        return RateLimitStatus(
            registry=self.registry,
            limit=int(core["limit"]),
            remaining=int(core["remaining"]),
            used=int(core.get("used", int(core["limit"]) - int(core["remaining"]))),
            reset_time=datetime.fromtimestamp(int(reset), tz=timezone.utc) if reset is not None else None,
            authenticated=True,
        )

    def get_rate_limit(self) -> RateLimitStatus:
        """Current core quota for the token.

        Raises:
            RateLimitQueryError if the token is missing or the request fails
        """
        if not self.token:
            raise RateLimitQueryError("GitHub token is required")

        logger.debug("Querying GitHub rate limit")
        try:
            return retry_operation(self._query, operation_name="GitHub rate limit query", **self.retry_settings)
        except (requests.RequestException, ValueError, KeyError, TypeError, AttributeError) as e:
            raise create_rate_limit_query_error(self.registry, RATE_LIMIT_URL, e) from e
