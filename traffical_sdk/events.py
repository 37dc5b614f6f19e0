"""
Event Emitter - batched, out-of-band delivery of decision and track events

Resolution must never wait on the network, so events are only appended to an
in-memory queue here. A single daemon worker wakes up every flush interval
(or as soon as a full batch is waiting) and posts batches to the platform.

Delivery is best effort:
- the queue is bounded; when full, the oldest event is dropped
- a failed batch goes back to the front of the queue and is retried on the
  next flush
- close() performs a final flush and stops the worker
"""

import hashlib
import json
import logging
import threading
import time
from collections import OrderedDict, deque
from typing import Any, Callable, Deque, Dict, List, Mapping, Optional, Tuple, Union

import httpx

from .config import ClientOptions
from .exceptions import CredentialsError, ErrorCodes, EventDeliveryError
from .models import DecisionEvent, TrackEvent

logger = logging.getLogger(__name__)

Event = Union[DecisionEvent, TrackEvent]


class EventSender:
    """HTTP transport for event batches"""

    EVENTS_PATH = "/v1/events/batch"

    def __init__(self, options: ClientOptions, http_client: Optional[httpx.Client] = None):
        self._options = options
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(
            base_url=options.base_url,
            timeout=options.timeout_seconds,
        )

    def send(self, events: List[Dict[str, Any]]) -> None:
        headers = {"Authorization": f"Bearer {self._options.require_api_key()}"}
        try:
            resp = self._http.post(self.EVENTS_PATH, json={"events": events}, headers=headers)
        except httpx.HTTPError as e:
            raise EventDeliveryError(
                ErrorCodes.EVENT_DELIVERY, f"Failed to deliver events: {e}", cause=e
            ) from e
        if resp.status_code >= 400:
            raise EventDeliveryError(
                ErrorCodes.EVENT_DELIVERY,
                f"Event batch rejected: HTTP {resp.status_code}: {resp.text}",
            )

    def close(self) -> None:
        if self._owns_client:
            self._http.close()


class DecisionDeduplicator:
    """
    Suppresses repeat decision events

    The same unit resolving to the same assignments again within `ttl_seconds`
    adds nothing to exposure analysis, so only the first one is emitted. The
    suppressed calls get the first call's decision id back, so anything they
    track is attributed to a decision the platform has seen.
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        # fingerprint -> (first seen, emitted decision id)
        self._seen: "OrderedDict[str, Tuple[float, str]]" = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def fingerprint(unit_key: Optional[str], assignments: Mapping[str, Any]) -> str:
        payload = json.dumps(assignments, sort_keys=True, default=str)
        digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()
        return f"{unit_key}:{digest}"

    def claim(
        self, unit_key: Optional[str], assignments: Mapping[str, Any], decision_id: str
    ) -> str:
        """
        Register a decision and return the id it should be reported under

        Returns `decision_id` itself when the decision is new and its event
        should be emitted, or the id of the earlier identical decision when
        it is a duplicate inside the window.
        """
        if self.ttl_seconds <= 0:
            return decision_id
        key = self.fingerprint(unit_key, assignments)
        now = self._clock()
        with self._lock:
            entry = self._seen.get(key)
            if entry is not None and now - entry[0] < self.ttl_seconds:
                return entry[1]
            self._seen[key] = (now, decision_id)
            self._seen.move_to_end(key)
            while len(self._seen) > self.max_entries:
                self._seen.popitem(last=False)
            return decision_id


class EventEmitter:
    """Queue plus background flusher"""

    def __init__(
        self,
        sender: EventSender,
        batch_size: int = 50,
        flush_interval_seconds: float = 5.0,
        max_queue_size: int = 1000,
        start_worker: bool = True,
    ):
        self._sender = sender
        self.batch_size = max(1, batch_size)
        self.flush_interval_seconds = flush_interval_seconds
        self.max_queue_size = max(1, max_queue_size)

        self._queue: Deque[Dict[str, Any]] = deque()
        self._lock = threading.Lock()
        self._flush_lock = threading.Lock()
        self._wake = threading.Event()
        self._stopped = threading.Event()
        self._worker: Optional[threading.Thread] = None
        self._closed = False
        self.dropped = 0

        if start_worker:
            self.start()

    def start(self) -> None:
        if self._worker is not None and self._worker.is_alive():
            return
        self._stopped.clear()
        self._worker = threading.Thread(
            target=self._run, name="traffical-event-emitter", daemon=True
        )
        self._worker.start()

    def pending(self) -> int:
        with self._lock:
            return len(self._queue)

    def enqueue(self, event: Event) -> None:
        if self._closed:
            logger.warning(f"Event emitter is closed; dropping {event.type} event")
            return
        payload = event.to_payload()
        with self._lock:
            self._queue.append(payload)
            overflow = len(self._queue) - self.max_queue_size
            for _ in range(max(0, overflow)):
                self._queue.popleft()
                self.dropped += 1
            queued = len(self._queue)
        if overflow > 0:
            logger.warning(f"Event queue full; dropped {overflow} oldest event(s)")
        if queued >= self.batch_size:
            self._wake.set()

    def _take_batch(self) -> List[Dict[str, Any]]:
        with self._lock:
            count = min(self.batch_size, len(self._queue))
            return [self._queue.popleft() for _ in range(count)]

    def _requeue(self, batch: List[Dict[str, Any]]) -> None:
        with self._lock:
            self._queue.extendleft(reversed(batch))
            while len(self._queue) > self.max_queue_size:
                self._queue.popleft()
                self.dropped += 1

    def flush(self) -> int:
        """
        Deliver everything queued right now

        Returns the number of events delivered. Stops at the first failed
        batch, which stays queued for the next attempt.
        """
        delivered = 0
        with self._flush_lock:
            while True:
                batch = self._take_batch()
                if not batch:
                    break
                try:
                    self._sender.send(batch)
                except (EventDeliveryError, CredentialsError) as e:
                    logger.warning(f"Event delivery failed, will retry {len(batch)} event(s): {e}")
                    self._requeue(batch)
                    break
                delivered += len(batch)
                logger.debug(f"Delivered {len(batch)} event(s)")
        return delivered

    def _run(self) -> None:
        while not self._stopped.is_set():
            self._wake.wait(self.flush_interval_seconds)
            self._wake.clear()
            if self._stopped.is_set():
                break
            self.flush()

    def close(self, timeout: Optional[float] = 5.0) -> None:
        """Stop the worker and make a last delivery attempt"""
        if self._closed:
            return
        self._closed = True
        self._stopped.set()
        self._wake.set()
        if self._worker is not None:
            self._worker.join(timeout)
        self.flush()
        remaining = self.pending()
        if remaining:
            logger.warning(f"Closing with {remaining} undelivered event(s)")
