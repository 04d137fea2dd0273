import logging
from typing import List

from serverfarm.admission import AdmissionQueue
from serverfarm.worker import Worker

logger = logging.getLogger(__name__)


class RoundRobinRouter:
    """Moves queued requests onto workers, remembering where the last scan stopped."""

    def __init__(self, workers: List[Worker]):
        self.workers = workers
        self.cursor = 0

    def wrap_cursor(self) -> None:
        """Keep the cursor inside the pool after it shrinks."""
        self.cursor = self.cursor % len(self.workers) if self.workers else 0

    def _next_acceptor(self) -> int:
        n = len(self.workers)
        for offset in range(n):
            index = (self.cursor + offset) % n
            if self.workers[index].can_accept():
                return index
        return -1

    def distribute(self, queue: AdmissionQueue) -> int:
        """Assign queued requests one at a time, starting at the cursor.

        At most ``2 * len(workers)`` assignments are attempted per call, and
        the pass stops early once no worker can accept. Returns the number of
        requests assigned.
        """
        assigned = 0
        attempts = 0
        max_attempts = len(self.workers) * 2

        while not queue.is_empty() and attempts < max_attempts:
            index = self._next_acceptor()
            if index < 0:
                break

            request = queue.peek()
            if self.workers[index].submit(request):
                queue.take_next()
                self.cursor = (index + 1) % len(self.workers)
                assigned += 1
            else:
                logger.error(f"Worker {self.workers[index].id} refused request #{request.id} after can_accept()")
                break

            attempts += 1

        if assigned:
            logger.debug(f"Distributed {assigned} requests, {queue.size()} left queued")
        return assigned
