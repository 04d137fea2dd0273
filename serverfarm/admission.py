import logging
import time
from collections import deque
from typing import Deque, Optional, Set

from serverfarm.config import DEFAULT_QUEUE_SIZE
from serverfarm.models import Denial, Outcome, Request

logger = logging.getLogger(__name__)


class AdmissionQueue:
    """
    Bounded FIFO in front of the worker pool.

    Features:
    - Origin block-list checked before capacity on every submit
    - Fixed maximum size; submits beyond it are refused, never evicted
    - Admission and removal counters for conservation checks
    """

    def __init__(self, max_size: int = DEFAULT_QUEUE_SIZE):
        """
        Initialize the queue.

        Args:
            max_size: Maximum number of requests held at once
        """
        self.max_size = max_size
        self.total_admitted = 0
        self.total_removed = 0
        self._queue: Deque[Request] = deque()
        self._blocked: Set[str] = set()
        self._total_wait_ms = 0.0

    def submit(self, request: Request) -> Outcome:
        """
        Admit a request.

        The block-list is consulted first, so a blocked origin is refused even
        when the queue has room.

        Returns:
            An accepted Outcome, or one denied with BLOCKED or QUEUE_FULL
        """
        if self.is_blocked(request.origin):
            logger.debug(f"Rejected request #{request.id}: origin {request.origin} is blocked")
            return Outcome.denied(Denial.BLOCKED)

        if self.is_full():
            logger.debug(f"Rejected request #{request.id}: queue full ({self.max_size})")
            return Outcome.denied(Denial.QUEUE_FULL)

        self._queue.append(request)
        self.total_admitted += 1
        return Outcome.ok()

    def take_next(self) -> Optional[Request]:
        """
        Pop the oldest request.

        Returns:
            The head of the queue, or None if the queue is empty
        """
        if not self._queue:
            return None

        request = self._queue.popleft()
        self.total_removed += 1
        self._total_wait_ms += (time.time() - request.arrival_time) * 1000
        return request

    def peek(self) -> Optional[Request]:
        return self._queue[0] if self._queue else None

    def block(self, origin: str) -> None:
        self._blocked.add(origin)

    def unblock(self, origin: str) -> None:
        self._blocked.discard(origin)

    def is_blocked(self, origin: str) -> bool:
        return origin in self._blocked

    def blocked_origins(self) -> Set[str]:
        return set(self._blocked)

    def size(self) -> int:
        return len(self._queue)

    def is_empty(self) -> bool:
        return not self._queue

    def is_full(self) -> bool:
        return len(self._queue) >= self.max_size

    def clear(self) -> None:
        """Drop every queued request without counting it as removed."""
        self._queue.clear()

    def utilization(self) -> float:
        """Queue occupancy as a percentage of max_size."""
        if self.max_size == 0:
            return 0.0
        return len(self._queue) / self.max_size * 100.0

    def average_wait_time(self) -> float:
        """Mean milliseconds a removed request spent between arrival and removal."""
        if self.total_removed == 0:
            return 0.0
        return self._total_wait_ms / self.total_removed

    def __len__(self) -> int:
        return len(self._queue)

    def __contains__(self, request: Request) -> bool:
        return request in self._queue
