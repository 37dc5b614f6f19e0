"""
Bundle fetching and caching

The fetcher is the only part of the resolution path that touches the
network. It is called once at client start-up and again whenever the cached
bundle is older than the refresh interval; between those calls every
resolution is served from BundleCache.

Caching strategy: fetch once, reuse many times. A bundle is swapped in as a
whole (replace), never patched. Past its validity window the cache reports
nothing at all, so callers fall back to their own defaults instead of acting
on arbitrarily old assignments.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import httpx
from pydantic import ValidationError

from .config import ClientOptions
from .exceptions import BundleFetchError, ErrorCodes
from .models import ConfigBundle

logger = logging.getLogger(__name__)


class BundleCache:
    """Thread-safe holder for the current ConfigBundle"""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._bundle: Optional[ConfigBundle] = None
        self._etag: Optional[str] = None
        self._fetched_at: Optional[float] = None

    @property
    def etag(self) -> Optional[str]:
        with self._lock:
            return self._etag

    def age(self) -> Optional[float]:
        """Seconds since the bundle was last fetched or confirmed, None if empty"""
        with self._lock:
            if self._fetched_at is None:
                return None
            return self._clock() - self._fetched_at

    def is_stale(self) -> bool:
        age = self.age()
        return age is None or age > self.ttl_seconds

    def needs_refresh(self, interval_seconds: float) -> bool:
        age = self.age()
        return age is None or age >= interval_seconds

    def get(self) -> Optional[ConfigBundle]:
        """The cached bundle, or None if there is none or it is past its TTL"""
        with self._lock:
            if self._bundle is None or self._fetched_at is None:
                return None
            if self._clock() - self._fetched_at > self.ttl_seconds:
                return None
            return self._bundle

    def peek(self) -> Optional[ConfigBundle]:
        """The cached bundle regardless of age"""
        with self._lock:
            return self._bundle

    def replace(self, bundle: ConfigBundle, etag: Optional[str] = None) -> None:
        with self._lock:
            self._bundle = bundle
            self._etag = etag
            self._fetched_at = self._clock()

    def touch(self) -> None:
        """Mark the current bundle as confirmed fresh (HTTP 304)"""
        with self._lock:
            if self._bundle is not None:
                self._fetched_at = self._clock()

    def clear(self) -> None:
        with self._lock:
            self._bundle = None
            self._etag = None
            self._fetched_at = None


@dataclass
class FetchResult:
    bundle: Optional[ConfigBundle]
    etag: Optional[str] = None
    not_modified: bool = False


class BundleFetcher:
    """Retrieves the configuration bundle for one project/environment"""

    BUNDLE_PATH = "/v1/config/bundle"

    def __init__(self, options: ClientOptions, http_client: Optional[httpx.Client] = None):
        self._options = options
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(
            base_url=options.base_url,
            timeout=options.timeout_seconds,
        )

    def _headers(self, etag: Optional[str]) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._options.require_api_key()}",
            "Accept": "application/json",
        }
        if etag:
            headers["If-None-Match"] = etag
        return headers

    def fetch(self, etag: Optional[str] = None) -> FetchResult:
        """
        Fetch the bundle, sending `etag` for a conditional request

        Raises:
            BundleFetchError: transport failure, non-2xx status or a payload
                that does not validate as a ConfigBundle
        """
        params: Dict[str, Any] = {"env": self._options.env}
        if self._options.project_id:
            params["projectId"] = self._options.project_id

        try:
            resp = self._http.get(self.BUNDLE_PATH, params=params, headers=self._headers(etag))
        except httpx.HTTPError as e:
            raise BundleFetchError(
                ErrorCodes.BUNDLE_HTTP, f"Failed to fetch config bundle: {e}", cause=e
            ) from e

        if resp.status_code == 304:
            logger.debug("Config bundle not modified")
            return FetchResult(bundle=None, etag=etag, not_modified=True)

        # redirects are not followed; 204 carries no bundle
        if not resp.is_success or resp.status_code == 204:
            raise BundleFetchError(
                ErrorCodes.BUNDLE_HTTP,
                f"Config bundle request failed: HTTP {resp.status_code}: {resp.text}",
            )

        try:
            bundle = ConfigBundle.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise BundleFetchError(
                ErrorCodes.BUNDLE_INVALID, f"Config bundle payload is invalid: {e}", cause=e
            ) from e

        logger.info(
            f"Fetched config bundle version {bundle.version} for env '{bundle.env}': "
            f"{len(bundle.parameters)} parameter(s), {len(bundle.layers)} layer(s)"
        )
        return FetchResult(bundle=bundle, etag=resp.headers.get("ETag"))

    def close(self) -> None:
        if self._owns_client:
            self._http.close()
