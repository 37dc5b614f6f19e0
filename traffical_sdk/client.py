"""
Traffical Client - the main entry point for application code

Wires the three runtime pieces together:

    BundleFetcher  -> populates BundleCache (start-up, then on refresh)
    resolver       -> reads BundleCache synchronously on every call
    EventEmitter   -> queues decision/track events for background delivery

Design Considerations:
- Resolution never raises because the platform is unreachable; callers get
  their defaults and a log line instead
- Network calls only happen in initialize()/refresh(), or lazily when the
  cached bundle is past its refresh interval and auto_refresh is on
- A module-level default client backs a simple function API (init_client,
  get_params, decide, track)

Usage:
    from traffical_sdk import TrafficalClient, ClientOptions

    with TrafficalClient(ClientOptions.from_env()) as client:
        client.initialize()
        params = client.get_params(
            {"userId": "u-42", "locale": "en-US"},
            {"checkout.button.color": "#1a73e8", "pricing.discountPct": 0},
        )
"""

import logging
import threading
import time
import uuid
from typing import Any, Dict, Mapping, Optional

import httpx

from .bundle import BundleCache, BundleFetcher
from .config import ClientOptions
from .events import DecisionDeduplicator, EventEmitter, EventSender
from .exceptions import BundleFetchError, CredentialsError, ErrorCodes, TrafficalError
from .models import ConfigBundle, Decision, DecisionEvent, TrackEvent
from .resolver import resolve

logger = logging.getLogger(__name__)


class TrafficalClient:
    """
    Client for resolving parameters and recording events
    """

    def __init__(
        self,
        options: Optional[ClientOptions] = None,
        http_client: Optional[httpx.Client] = None,
        start_worker: bool = True,
    ):
        """
        Args:
            options: runtime options; defaults to ClientOptions.from_env()
            http_client: shared httpx.Client for bundle and event requests
                (mainly for tests); the client builds its own when omitted
            start_worker: start the background event flusher
        """
        self.options = options or ClientOptions.from_env()
        self.cache = BundleCache(self.options.bundle_ttl_seconds)
        self._fetcher = BundleFetcher(self.options, http_client=http_client)
        self._sender = EventSender(self.options, http_client=http_client)
        self._emitter = EventEmitter(
            self._sender,
            batch_size=self.options.batch_size,
            flush_interval_seconds=self.options.flush_interval_seconds,
            max_queue_size=self.options.max_queue_size,
            start_worker=start_worker,
        )
        self._dedup = DecisionDeduplicator(self.options.decision_dedup_ttl_seconds)
        self._refresh_lock = threading.Lock()
        self._last_refresh_attempt: Optional[float] = None
        self._closed = False

        logger.info(
            f"Initialized TrafficalClient for env '{self.options.env}' "
            f"against {self.options.base_url}"
        )

    # -- bundle lifecycle ---------------------------------------------------

    def initialize(self) -> bool:
        """
        Fetch the first bundle

        Returns True when a bundle is available afterwards. Failures are
        logged and the client keeps serving defaults, unless options.strict
        is set, in which case the error propagates.
        """
        return self.refresh()

    def refresh(self) -> bool:
        """Refetch the bundle now; see initialize() for error behaviour"""
        with self._refresh_lock:
            return self._refresh_locked(raise_errors=self.options.strict)

    def _refresh_locked(self, raise_errors: bool) -> bool:
        # caller holds _refresh_lock
        self._last_refresh_attempt = time.monotonic()
        try:
            result = self._fetcher.fetch(etag=self.cache.etag)
        except (BundleFetchError, CredentialsError) as e:
            if raise_errors:
                raise
            logger.warning(f"Could not refresh config bundle, serving cached/defaults: {e}")
            return self.cache.get() is not None

        if result.not_modified:
            self.cache.touch()
        elif result.bundle is not None:
            self.cache.replace(result.bundle, result.etag)
        return self.cache.get() is not None

    def _refresh_due(self) -> bool:
        interval = self.options.refresh_interval_seconds
        if not self.cache.needs_refresh(interval):
            return False
        # failed attempts are retried at most once per interval
        last = self._last_refresh_attempt
        return last is None or time.monotonic() - last >= interval

    def _current_bundle(self) -> Optional[ConfigBundle]:
        if self.options.auto_refresh and self._refresh_due():
            with self._refresh_lock:
                # another caller may have refreshed while this one waited;
                # lazy refreshes never raise, strict or not
                if self._refresh_due():
                    self._refresh_locked(raise_errors=False)
        bundle = self.cache.get()
        if bundle is None and self.cache.peek() is not None:
            logger.warning("Cached config bundle is past its TTL; using caller defaults")
        return bundle

    @property
    def bundle(self) -> Optional[ConfigBundle]:
        return self.cache.get()

    # -- resolution ---------------------------------------------------------

    def get_params(self, context: Mapping[str, Any], defaults: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Resolve parameters without emitting a decision event

        The result has exactly the keys of `defaults`, each with the same type
        as its default.
        """
        return resolve(self._current_bundle(), context, defaults).values

    def decide(
        self,
        context: Mapping[str, Any],
        defaults: Mapping[str, Any],
        track: Optional[bool] = None,
    ) -> Decision:
        """
        Resolve parameters and record a decision event

        Args:
            context: attributes for this call (must include the unit key
                attribute, `userId` unless the bundle says otherwise)
            defaults: requested keys mapped to fallback values
            track: override options.track_decisions for this call
        """
        resolution = resolve(self._current_bundle(), context, defaults)
        decision_id = str(uuid.uuid4())
        should_track = self.options.track_decisions if track is None else track
        emit = False
        if should_track:
            reported_id = self._dedup.claim(resolution.unit_key, resolution.values, decision_id)
            emit = reported_id == decision_id
            decision_id = reported_id

        decision = Decision(
            decision_id=decision_id,
            assignments=resolution.values,
            unit_key=resolution.unit_key,
            layers=resolution.layers,
            from_bundle=resolution.from_bundle,
        )
        if emit:
            self._emitter.enqueue(
                DecisionEvent(
                    decision_id=decision.decision_id,
                    unit_key=decision.unit_key,
                    assignments=decision.assignments,
                    layers={layer.layer_id: layer.as_dict() for layer in decision.layers},
                    context=dict(context),
                )
            )
        return decision

    # -- tracking -----------------------------------------------------------

    def track(
        self,
        event: str,
        properties: Optional[Mapping[str, Any]] = None,
        value: Optional[float] = None,
        unit_key: Optional[str] = None,
        decision_id: Optional[str] = None,
    ) -> TrackEvent:
        """
        Queue a conversion-relevant event

        Either `unit_key` or `decision_id` should be given so the platform can
        attribute the event; events unknown to the bundle are still sent.
        """
        if unit_key is None and decision_id is None:
            logger.warning(f"Track event '{event}' has neither unit_key nor decision_id")

        bundle = self.cache.get()
        if bundle is not None and bundle.events and event not in bundle.events:
            logger.warning(f"Event '{event}' is not defined in the config bundle")

        track_event = TrackEvent(
            event=event,
            properties=dict(properties or {}),
            value=value,
            unit_key=unit_key,
            decision_id=decision_id,
        )
        self._emitter.enqueue(track_event)
        return track_event

    def pending_events(self) -> int:
        return self._emitter.pending()

    def flush(self) -> int:
        return self._emitter.flush()

    # -- lifecycle ----------------------------------------------------------

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._emitter.close()
        self._fetcher.close()
        self._sender.close()
        logger.info("TrafficalClient closed")

    def __enter__(self) -> "TrafficalClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


# Global client instance for convenience
# This allows a simple function-based API while still getting the benefits of the class
_default_client: Optional[TrafficalClient] = None
_default_lock = threading.Lock()


def init_client(options: Optional[ClientOptions] = None, **kwargs: Any) -> TrafficalClient:
    """Create (or replace) the process-wide client and fetch its first bundle"""
    global _default_client
    with _default_lock:
        if _default_client is not None:
            _default_client.close()
        _default_client = TrafficalClient(options, **kwargs)
        client = _default_client
    client.initialize()
    return client


def get_client() -> TrafficalClient:
    if _default_client is None:
        raise TrafficalError(ErrorCodes.CLIENT_NOT_INITIALIZED, "Call init_client() first")
    return _default_client


def get_params(context: Mapping[str, Any], defaults: Mapping[str, Any]) -> Dict[str, Any]:
    """Resolve parameters; falls back to `defaults` if no client is initialized"""
    if _default_client is None:
        return dict(defaults)
    return _default_client.get_params(context, defaults)


def decide(context: Mapping[str, Any], defaults: Mapping[str, Any], **kwargs: Any) -> Decision:
    return get_client().decide(context, defaults, **kwargs)


def track(event: str, **kwargs: Any) -> TrackEvent:
    return get_client().track(event, **kwargs)
