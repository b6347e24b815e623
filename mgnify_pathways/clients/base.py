"""
Base REST Client for the KEGG and MGnify web services.

Wraps a ``requests.Session`` and turns transport failures and HTTP status
codes into the package exception hierarchy, so retry decisions can be made
from the exception type alone.
"""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Any, Dict, Optional

import requests

from ..core.exceptions import (
    DatabaseConnectionError,
    DatabaseTimeoutError,
    DatabaseUnavailableError,
    ServiceError,
)
from ..core.retry import RetryConfig, DEFAULT_RETRY_CONFIG, sync_retry_with_backoff

logger = logging.getLogger(__name__)


class ResourceNotFound(ServiceError):
    """HTTP 400/404 from a service: the requested identifier does not exist."""

    def is_retryable(self) -> bool:
        return False


class RateLimiter:
    """Enforce a minimum interval between requests (thread-safe)."""

    def __init__(self, interval_seconds: float) -> None:
        self.interval = max(float(interval_seconds), 0.0)
        self._last_request_time = 0.0
        self._lock = threading.Lock()

    def wait(self) -> None:
        if self.interval <= 0:
            return
        with self._lock:
            now = time.monotonic()
            elapsed = now - self._last_request_time
            if elapsed < self.interval:
                time.sleep(self.interval - elapsed)
            self._last_request_time = time.monotonic()


class RESTClient:
    """Base class for all web service clients."""

    def __init__(
        self,
        base_url: str,
        server_name: str,
        timeout: int = 30,
        retry_config: Optional[RetryConfig] = None,
        request_interval: float = 0.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize REST client.

        Args:
            base_url: Service root, without trailing slash
            server_name: Human-readable name for logging and errors
            timeout: Request timeout in seconds
            retry_config: Retry policy for transient failures
            request_interval: Minimum seconds between requests
            session: Optional pre-configured session (tests inject mocks here)
        """
        self.base_url = base_url.rstrip('/')
        self.server_name = server_name
        self.timeout = timeout
        self.retry_config = retry_config or DEFAULT_RETRY_CONFIG
        self.rate_limiter = RateLimiter(request_interval)
        self._session = session
        self._owns_session = session is None

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update({"User-Agent": "mgnify-pathways/0.1"})
        return self._session

    def close(self) -> None:
        """Close the underlying session if this client created it."""
        if self._session is not None and self._owns_session:
            self._session.close()
            self._session = None

    @contextmanager
    def open(self):
        """Context manager for the client lifecycle."""
        try:
            yield self
        finally:
            self.close()

    def url_for(self, path: str) -> str:
        if path.startswith(('http://', 'https://')):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(self, path: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        """
        Perform one GET request.

        Raises:
            DatabaseConnectionError: Connection failed
            DatabaseTimeoutError: Request timed out
            DatabaseUnavailableError: HTTP 429 or 503
            ResourceNotFound: HTTP 400 or 404
            ServiceError: Any other non-2xx status
        """
        url = self.url_for(path)
        self.rate_limiter.wait()
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.Timeout:
            raise DatabaseTimeoutError(
                server_name=self.server_name,
                timeout=self.timeout,
                query=url
            )
        except requests.ConnectionError as e:
            raise DatabaseConnectionError(
                server_name=self.server_name,
                message=f"Connection error: {e}",
                details={"url": url}
            )
        except requests.RequestException as e:
            raise ServiceError(
                server_name=self.server_name,
                status_code=None,
                error_message=f"{type(e).__name__}: {e}",
                endpoint=path
            )

        status = response.status_code
        if status in (429, 503):
            retry_after = response.headers.get('Retry-After')
            raise DatabaseUnavailableError(
                server_name=self.server_name,
                reason=f"HTTP {status} for {path}",
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None
            )
        if status in (400, 404):
            raise ResourceNotFound(
                server_name=self.server_name,
                status_code=status,
                error_message=(response.text or '').strip()[:200] or "not found",
                endpoint=path
            )
        if status >= 400:
            raise ServiceError(
                server_name=self.server_name,
                status_code=status,
                error_message=(response.text or '').strip()[:200] or response.reason or "error",
                endpoint=path
            )
        return response

    def get_with_retry(self, path: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        """GET with exponential backoff on transient failures."""
        fetch = sync_retry_with_backoff(config=self.retry_config, logger_name=__name__)(self.request)
        return fetch(path, params)

    def get_text(self, path: str, params: Optional[Dict[str, Any]] = None) -> str:
        return self.get_with_retry(path, params).text

    def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        response = self.get_with_retry(path, params)
        try:
            return response.json()
        except ValueError as e:
            raise ServiceError(
                server_name=self.server_name,
                status_code=response.status_code,
                error_message=f"Invalid JSON response: {e}",
                endpoint=path
            )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(server='{self.server_name}', base_url='{self.base_url}')"
