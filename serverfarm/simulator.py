import logging
import random
import time
from typing import Any, Dict, List, Optional

import psutil

from serverfarm.config import SimulationConfig
from serverfarm.dispatcher import Dispatcher
from serverfarm.models import Request, RequestType

logger = logging.getLogger(__name__)

STATS_LOGGER = "serverfarm.stats"
# Ids for requests that arrive during the run start here.
FIRST_ARRIVAL_ID = 1001


class Simulator:
    def __init__(self, config: SimulationConfig, dispatcher: Optional[Dispatcher] = None):
        self.config = config
        self.dispatcher = dispatcher or Dispatcher.from_config(config.farm_config())
        self.rng = random.Random(config.seed)
        self.cycle = 0
        self.auto_generate = True
        self.next_request_id = FIRST_ARRIVAL_ID
        self.last_request: Optional[Request] = None
        self.last_completed = 0
        self.snapshots: List[Dict[str, Any]] = []
        self.stats_log = self._open_stats_log()

    # Workload

    def random_origin(self) -> str:
        return ".".join(str(self.rng.randint(1, 254)) for _ in range(4))

    def random_request(self, request_id: int) -> Request:
        return Request(
            origin=self.random_origin(),
            category=self.rng.choice(list(RequestType)),
            priority=self.rng.randint(1, 10),
            remaining_cost=self.rng.randint(self.config.min_cost, self.config.max_cost),
            id=request_id,
        )

    def initialize_queue(self) -> int:
        """Fill the admission queue with the initial batch; returns how many were admitted."""
        target = self.config.initial_requests
        logger.info(f"Generating {target} initial requests")

        for request_id in range(1, target + 1):
            request = self.random_request(request_id)
            outcome = self.dispatcher.submit(request)
            if not outcome:
                logger.warning(f"Could not add request {request_id} ({outcome.reason.value}), stopping initial fill")
                break
            self.last_request = request

        logger.info(f"Queue initialized with {self.dispatcher.queue_size()} requests")
        return self.dispatcher.queue_size()

    def generate_request(self) -> Optional[Request]:
        """Admit one new request; returns it, or None if it was refused."""
        request = self.random_request(self.next_request_id)
        self.next_request_id += 1
        outcome = self.dispatcher.submit(request)
        if not outcome:
            logger.debug(f"Request #{request.id} from {request.origin} refused: {outcome.reason.value}")
            return None
        self.last_request = request
        logger.debug(f"[Cycle {self.cycle}] New request #{request.id} added from {request.origin}")
        return request

    def maybe_generate(self) -> Optional[Request]:
        if not self.auto_generate:
            return None
        if self.cycle >= self.config.cycles * 0.8:
            return None
        if self.rng.random() >= self.config.arrival_rate:
            return None
        return self.generate_request()

    def toggle_auto_generate(self) -> str:
        self.auto_generate = not self.auto_generate
        status = "ON" if self.auto_generate else "OFF"
        logger.info(f"Auto-request generation: {status}")
        return status

    def block_last_origin(self) -> Optional[str]:
        if self.last_request is None:
            return None
        origin = self.last_request.origin
        self.dispatcher.block_ip(origin)
        logger.info(f"Blocked origin {origin}")
        return origin

    # Run loop

    @property
    def finished(self) -> bool:
        return self.cycle >= self.config.cycles

    def tick(self) -> int:
        self.cycle += 1
        self.maybe_generate()
        self.last_completed = self.dispatcher.advance_cycle()

        last = self.cycle == self.config.cycles
        if self.cycle % self.config.log_every == 0 or last:
            self.log_statistics()
            if self.cycle % self.config.status_every == 0 or last:
                self.snapshots.append(self.status())
        return self.last_completed

    def run(self, on_status=None) -> Dict[str, Any]:
        """Tick until the configured cycle count and return the final summary.

        on_status, if given, is called with each status snapshot as it is taken.
        """
        logger.info(f"Starting simulation: {self.config.servers} servers, {self.config.cycles} cycles")
        try:
            while not self.finished:
                taken = len(self.snapshots)
                self.tick()
                if on_status and len(self.snapshots) > taken:
                    on_status(self.snapshots[-1])
                if self.config.delay:
                    time.sleep(self.config.delay)
        finally:
            self.close()
        logger.info(f"Simulation complete after {self.cycle} cycles")
        return self.summary()

    # Reporting

    def status(self) -> Dict[str, Any]:
        d = self.dispatcher
        return {
            "cycle": self.cycle,
            "active_servers": d.active_worker_count(),
            "queue_size": d.queue_size(),
            "total_processed": d.total_processed(),
            "system_utilization": d.system_utilization(),
            "queue_utilization": d.queue_utilization(),
            "overloaded": d.is_overloaded(),
        }

    def summary(self) -> Dict[str, Any]:
        d = self.dispatcher
        return {
            "cycles": self.cycle,
            "total_processed": d.total_processed(),
            "avg_processing_time": d.average_processing_time(),
            "system_utilization": d.system_utilization(),
            "queue_size": d.queue_size(),
            "total_discarded": d.total_discarded(),
            "server_stats": d.server_stats(),
        }

    def get_metrics(self) -> Dict[str, Any]:
        """Dispatcher metrics plus the simulator process's own resource use."""
        process = psutil.Process()
        metrics = self.dispatcher.get_metrics()
        metrics.update({
            "cycle": self.cycle,
            "auto_generate": self.auto_generate,
            "memory_usage_mb": process.memory_info().rss / (1024 * 1024),
            "cpu_percent": process.cpu_percent(),
        })
        return metrics

    def _open_stats_log(self) -> Optional[logging.Logger]:
        if not self.config.log_file:
            return None

        # Not registered with the logging manager; one per simulator.
        stats = logging.Logger(STATS_LOGGER, logging.INFO)
        stats.propagate = False
        handler = logging.FileHandler(self.config.log_file, mode="w", encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(message)s"))
        stats.addHandler(handler)

        stats.info("Load Balancer Simulation Log")
        stats.info(f"Servers: {self.config.servers}, Cycles: {self.config.cycles}")
        stats.info("Cycle    | Servers | Queue | Processed | System Util | Queue Util")
        stats.info("---------|---------|-------|-----------|-------------|-----------")
        return stats

    def log_statistics(self) -> None:
        if self.stats_log is None:
            return
        d = self.dispatcher
        self.stats_log.info(
            f"Cycle {self.cycle:>5} | "
            f"Servers: {d.active_worker_count():>2} | "
            f"Queue: {d.queue_size():>4} | "
            f"Processed: {d.total_processed():>6} | "
            f"System Util: {d.system_utilization():>5.1f}% | "
            f"Queue Util: {d.queue_utilization():>5.1f}%"
        )

    def close(self) -> None:
        """Flush and detach the statistics file."""
        if self.stats_log is None:
            return
        for handler in list(self.stats_log.handlers):
            handler.close()
            self.stats_log.removeHandler(handler)
        self.stats_log = None
