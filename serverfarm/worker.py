"""
Worker implementation for the server farm simulator.

A worker holds a bounded FIFO of admitted requests and spends one unit of
virtual time on every resident request each cycle.
"""

import logging
from collections import deque
from typing import Any, Deque, Dict, List

from serverfarm.config import DEFAULT_WORKER_CAPACITY
from serverfarm.models import Denial, Outcome, Request

logger = logging.getLogger(__name__)


class Worker:
    """Bounded-capacity processing unit owned by a dispatcher."""

    def __init__(self, id: int = 0, address: str = "0.0.0.0",
                 capacity: int = DEFAULT_WORKER_CAPACITY):
        """Initialize the worker."""
        self.id = id
        self.address = address
        self.capacity = capacity
        self.load = 0
        self.active = True
        self.completed_count = 0
        self.total_cost_consumed = 0
        self._queue: Deque[Request] = deque()

    def set_active(self, active: bool) -> None:
        self.active = active

    def can_accept(self) -> bool:
        return self.active and self.load < self.capacity

    def submit(self, request: Request) -> Outcome:
        """Place a request on this worker if it is active and has room."""
        if not self.active:
            return Outcome.denied(Denial.INACTIVE)
        if self.load >= self.capacity:
            return Outcome.denied(Denial.WORKER_FULL)

        self._queue.append(request)
        self.load += 1
        logger.debug(f"Worker {self.id} accepted request #{request.id} (load {self.load}/{self.capacity})")
        return Outcome.ok()

    def advance(self) -> int:
        """Spend one cycle on every resident request.

        Requests whose cost runs out are retired; the rest keep their relative
        order. Returns the number retired.
        """
        if not self.active or not self._queue:
            return 0

        completed = 0
        pending: Deque[Request] = deque()

        while self._queue:
            request = self._queue.popleft()
            remaining = request.remaining_cost - 1

            if remaining <= 0:
                completed += 1
                self.completed_count += 1
                self.total_cost_consumed += request.remaining_cost
                self.load -= 1
            else:
                request.set_remaining_cost(remaining)
                pending.append(request)

        self._queue = pending
        return completed

    def utilization(self) -> float:
        """Load as a percentage of capacity."""
        if self.capacity == 0:
            return 0.0
        return self.load / self.capacity * 100.0

    def queue_size(self) -> int:
        return len(self._queue)

    def resident_requests(self) -> List[Request]:
        return list(self._queue)

    def average_processing_time(self) -> float:
        if self.completed_count == 0:
            return 0.0
        return self.total_cost_consumed / self.completed_count

    def describe(self) -> str:
        """One-line human readable summary."""
        return (
            f"Server {self.id} ({self.address}): "
            f"Load: {self.load}/{self.capacity} ({self.utilization():.1f}%) | "
            f"Processed: {self.completed_count} | "
            f"Active: {'Yes' if self.active else 'No'}"
        )

    def get_metrics(self) -> Dict[str, Any]:
        """Get current worker metrics."""
        return {
            "worker_id": self.id,
            "address": self.address,
            "load": self.load,
            "capacity": self.capacity,
            "utilization": self.utilization(),
            "completed": self.completed_count,
            "avg_processing_time": self.average_processing_time(),
            "active": self.active,
        }

    def __repr__(self) -> str:
        return f"Worker(id={self.id}, address={self.address!r}, load={self.load}/{self.capacity})"
