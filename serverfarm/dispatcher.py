"""
Dispatcher for the server farm simulator.

The dispatcher owns the worker pool and the admission queue. Each cycle it
advances every active worker, drains the queue into the pool round-robin,
then lets the autoscaler add or remove at most one worker.
"""

import logging
from typing import Any, Dict, List

from serverfarm.admission import AdmissionQueue
from serverfarm.autoscaler import AutoScaler, ScalingDecision
from serverfarm.config import (
    DEFAULT_QUEUE_SIZE,
    OVERLOAD_QUEUE_PERCENT,
    OVERLOAD_SYSTEM_PERCENT,
    POOL_WORKER_CAPACITY,
    FarmConfig,
)
from serverfarm.models import Denial, Outcome, Request
from serverfarm.router import RoundRobinRouter
from serverfarm.worker import Worker

logger = logging.getLogger(__name__)


class Dispatcher:
    """Load balancer over a variable-size pool of workers."""

    def __init__(self, initial_workers: int = 1, max_workers: int = 20,
                 min_workers: int = 1, scale_threshold: float = 0.8,
                 queue_max_size: int = DEFAULT_QUEUE_SIZE):
        """Initialize the dispatcher and grow the pool to initial_workers.

        Initial growth stops at max_workers; a count below min_workers is
        taken as given.
        """
        self.max_workers = max_workers
        self.min_workers = min_workers
        self.scale_threshold = scale_threshold

        self.workers: List[Worker] = []
        self.queue = AdmissionQueue(queue_max_size)
        self.router = RoundRobinRouter(self.workers)
        self.autoscaler = AutoScaler(min_workers, max_workers, scale_threshold)

        self._total_processed = 0
        self._total_processing_time = 0
        self._total_discarded = 0

        for _ in range(initial_workers):
            self.add_worker()

    @classmethod
    def from_config(cls, config: FarmConfig) -> "Dispatcher":
        return cls(
            initial_workers=config.initial_workers,
            max_workers=config.max_workers,
            min_workers=config.min_workers,
            scale_threshold=config.scale_threshold,
            queue_max_size=config.queue_max_size,
        )

    @property
    def cursor(self) -> int:
        return self.router.cursor

    # Pool management

    def add_worker(self) -> Outcome:
        """Append a new worker unless the pool is at max_workers."""
        if len(self.workers) >= self.max_workers:
            return Outcome.denied(Denial.BOUND_REACHED)

        worker_id = len(self.workers) + 1
        worker = Worker(worker_id, f"192.168.1.{worker_id}", POOL_WORKER_CAPACITY)
        self.workers.append(worker)
        logger.info(f"Added worker {worker.id} ({worker.address}), pool size {len(self.workers)}")
        return Outcome.ok()

    def remove_worker(self) -> Outcome:
        """Evict the most recently added worker unless the pool is at min_workers.

        Requests still resident on the evicted worker are dropped, not
        requeued. They are counted in total_discarded.
        """
        if len(self.workers) <= self.min_workers:
            return Outcome.denied(Denial.BOUND_REACHED)

        worker = self.workers.pop()
        self.router.wrap_cursor()

        if worker.load:
            self._total_discarded += worker.load
            logger.warning(f"Removed worker {worker.id} with {worker.load} requests in flight; they are discarded")
        else:
            logger.info(f"Removed worker {worker.id} ({worker.address}), pool size {len(self.workers)}")
        return Outcome.ok()

    # Admission and cycle

    def submit(self, request: Request) -> Outcome:
        return self.queue.submit(request)

    def advance_cycle(self) -> int:
        """Run one cycle and return the number of requests completed in it."""
        completed = 0
        consumed = 0

        for worker in self.workers:
            if worker.active:
                before = worker.total_cost_consumed
                completed += worker.advance()
                consumed += worker.total_cost_consumed - before

        self.distribute()
        self.evaluate_scaling()

        self._total_processed += completed
        self._total_processing_time += consumed
        return completed

    def distribute(self) -> int:
        return self.router.distribute(self.queue)

    def evaluate_scaling(self) -> None:
        if not self.workers:
            return

        avg_utilization = self.system_utilization() / 100.0
        decision = self.autoscaler.decide(avg_utilization, self.queue.size(), len(self.workers))

        if decision is ScalingDecision.SCALE_UP:
            self.add_worker()
        elif decision is ScalingDecision.SCALE_DOWN:
            self.remove_worker()

    # Observability

    def worker_count(self) -> int:
        return len(self.workers)

    def active_worker_count(self) -> int:
        return sum(1 for w in self.workers if w.active)

    def total_processed(self) -> int:
        return self._total_processed

    def total_discarded(self) -> int:
        return self._total_discarded

    def average_processing_time(self) -> float:
        if self._total_processed == 0:
            return 0.0
        return self._total_processing_time / self._total_processed

    def system_utilization(self) -> float:
        """Mean utilization of the active workers, in percent."""
        active = [w for w in self.workers if w.active]
        if not active:
            return 0.0
        return sum(w.utilization() for w in active) / len(active)

    def queue_utilization(self) -> float:
        return self.queue.utilization()

    def queue_size(self) -> int:
        return self.queue.size()

    def is_overloaded(self) -> bool:
        return (
            self.system_utilization() > OVERLOAD_SYSTEM_PERCENT
            or self.queue_utilization() > OVERLOAD_QUEUE_PERCENT
        )

    def server_stats(self) -> List[str]:
        return [w.describe() for w in self.workers]

    def block_ip(self, origin: str) -> None:
        self.queue.block(origin)

    def unblock_ip(self, origin: str) -> None:
        self.queue.unblock(origin)

    def get_metrics(self) -> Dict[str, Any]:
        """Snapshot of the dispatcher counters."""
        return {
            "workers": len(self.workers),
            "active_workers": self.active_worker_count(),
            "queue_size": self.queue_size(),
            "total_processed": self._total_processed,
            "total_discarded": self._total_discarded,
            "avg_processing_time": self.average_processing_time(),
            "system_utilization": self.system_utilization(),
            "queue_utilization": self.queue_utilization(),
            "overloaded": self.is_overloaded(),
        }
