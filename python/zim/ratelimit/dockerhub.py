#!/usr/bin/env python3
"""
Docker Hub pull rate-limit query.

Docker Hub reports the quota in response headers of a manifest request
against the ratelimitpreview/test repository:

    ratelimit-limit: 100;w=21600
    ratelimit-remaining: 98;w=21600
    docker-ratelimit-source: 203.0.113.7

A HEAD request does not count against the quota.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

import requests

from zim.ratelimit.status import RateLimitStatus
from zim.utils.error_utils import create_rate_limit_query_error
from zim.utils.logging_utils import get_logger
from zim.utils.retry_utils import retry_operation

logger = get_logger(__name__)

AUTH_URL = "https://auth.docker.io/token"
AUTH_PARAMS = {"service": "registry.docker.io", "scope": "repository:ratelimitpreview/test:pull"}
RATE_LIMIT_URL = "https://registry-1.docker.io/v2/ratelimitpreview/test/manifests/latest"
MANIFEST_ACCEPT = "application/vnd.docker.distribution.manifest.v2+json"


@dataclass
class DockerHubCredentials:
    """Docker Hub login; a personal access token replaces the password"""
    username: str = ""
    password: str = ""
    token: str = ""

    @property
    def secret(self) -> str:
        return self.token or self.password

    @property
    def authenticated(self) -> bool:
        return bool(self.username and self.secret)


def parse_rate_limit_header(value: Optional[str]) -> Tuple[int, int]:
    """Parse '100;w=21600' into (100, 21600). Missing parts are 0."""
    if not value:
        return 0, 0
    parts = value.split(";")
    try:
        amount = int(parts[0].strip())
    except ValueError:
        amount = 0
    window = 0
    for part in parts[1:]:
        key, _, raw = part.strip().partition("=")
        if key == "w":
            try:
                window = int(raw.strip("[] "))
            except ValueError:
                window = 0
    return amount, window


class DockerHubRateLimitClient:
    """Queries the Docker Hub pull quota, anonymously or with credentials"""

    registry = "Docker Hub"

    def __init__(self, credentials: Optional[DockerHubCredentials] = None, timeout: int = 10,
                 session: Optional[requests.Session] = None, retry_settings: Optional[Dict[str, Any]] = None):
        self.credentials = credentials or DockerHubCredentials()
        self.timeout = timeout
        self.session = session or requests.Session()
        self.retry_settings = retry_settings or {}

    def get_token(self) -> str:
        """Bearer token for the rate-limit preview repository."""
        auth = None
        if self.credentials.authenticated:
            auth = (self.credentials.username, self.credentials.secret)
        response = self.session.get(AUTH_URL, params=AUTH_PARAMS, auth=auth, timeout=self.timeout)
        response.raise_for_status()
        body = response.json()
        if not isinstance(body, dict):
            raise ValueError(f"auth response is a JSON {type(body).__name__}, expected an object")
        token = body.get("token") or body.get("access_token")
        if not token:
            raise ValueError("auth response did not contain a token")
        return token

    def _query(self) -> RateLimitStatus:
        token = self.get_token()
        response = self.session.head(
            RATE_LIMIT_URL,
            headers={"Authorization": f"Bearer {token}", "Accept": MANIFEST_ACCEPT},
            timeout=self.timeout,
        )

        # requests headers are case-insensitive
        limit, window = parse_rate_limit_header(response.headers.get("ratelimit-limit"))
        remaining, _ = parse_rate_limit_header(response.headers.get("ratelimit-remaining"))
        source = (response.headers.get("docker-ratelimit-source") or "").strip("[] ")

        if limit == 0 and remaining == 0 and not source:
            raise ValueError(
                f"no rate limit information found in response headers (status {response.status_code})"
            )

        reset_time = None
        if window:
            reset_time = datetime.now(timezone.utc) + timedelta(seconds=window)

        return RateLimitStatus(
            registry=self.registry,
            limit=limit,
            remaining=remaining,
            used=max(limit - remaining, 0),
            reset_time=reset_time,
            source=source,
            authenticated=self.credentials.authenticated,
            unit="requests",
        )

    def get_rate_limit(self) -> RateLimitStatus:
        """Current pull quota.

        Raises:
            RateLimitQueryError if the token or header request fails
        """
        mode = "authenticated" if self.credentials.authenticated else "anonymous"
        logger.debug(f"Querying Docker Hub rate limit ({mode})")
        try:
            return retry_operation(self._query, operation_name="Docker Hub rate limit query", **self.retry_settings)
        except (requests.RequestException, ValueError, KeyError, TypeError, AttributeError) as e:
            raise create_rate_limit_query_error(self.registry, RATE_LIMIT_URL, e) from e
