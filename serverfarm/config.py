"""
Configuration classes for the server farm simulator.

This module contains the configuration dataclasses and policy constants
shared by the dispatcher, the simulation driver and the command line.
"""

from dataclasses import dataclass
from typing import Optional


# Capacity of a Worker built with no arguments.
DEFAULT_WORKER_CAPACITY = 10
# Capacity of every worker the dispatcher adds to its pool.
POOL_WORKER_CAPACITY = 5

DEFAULT_QUEUE_SIZE = 1000

# Seconds slept per cycle by the interactive dashboard.
CYCLE_DELAY = 0.01

# Scaling policy
SCALE_UP_QUEUE_DEPTH = 10
SCALE_DOWN_FACTOR = 0.05
SCALE_DOWN_BUFFER = 3

# Overload thresholds, in percent
OVERLOAD_SYSTEM_PERCENT = 90.0
OVERLOAD_QUEUE_PERCENT = 80.0


@dataclass
class FarmConfig:
    """Configuration for a dispatcher and its worker pool."""
    initial_workers: int = 1
    max_workers: int = 20
    min_workers: int = 1
    scale_threshold: float = 0.8
    queue_max_size: int = DEFAULT_QUEUE_SIZE

    def validate(self) -> "FarmConfig":
        """Raise ValueError if the bounds are inconsistent."""
        if self.min_workers < 1:
            raise ValueError(f"min_workers must be at least 1, got {self.min_workers}")
        if self.min_workers > self.max_workers:
            raise ValueError(
                f"min_workers ({self.min_workers}) exceeds max_workers ({self.max_workers})"
            )
        if not 0.0 < self.scale_threshold < 1.0:
            raise ValueError(f"scale_threshold must be in (0, 1), got {self.scale_threshold}")
        if self.queue_max_size <= 0:
            raise ValueError(f"queue_max_size must be positive, got {self.queue_max_size}")
        return self


@dataclass
class SimulationConfig:
    """Configuration for a simulation run driven from the command line."""
    servers: int = 5
    cycles: int = 10_000
    arrival_rate: float = 0.05
    min_cost: int = 5
    max_cost: int = 50
    initial_requests_per_server: int = 100
    log_every: int = 100
    status_every: int = 1000
    log_file: Optional[str] = "loadbalancer_log.txt"
    seed: Optional[int] = None
    delay: float = 0.0

    @property
    def initial_requests(self) -> int:
        return self.servers * self.initial_requests_per_server

    def farm_config(self) -> FarmConfig:
        """The farm a simulation run starts with."""
        return FarmConfig(
            initial_workers=self.servers,
            max_workers=self.servers * 2,
            min_workers=1,
            scale_threshold=0.8,
        )

    def validate(self) -> "SimulationConfig":
        if self.servers < 1:
            raise ValueError(f"servers must be at least 1, got {self.servers}")
        if self.cycles < 1:
            raise ValueError(f"cycles must be at least 1, got {self.cycles}")
        if not 0.0 <= self.arrival_rate <= 1.0:
            raise ValueError(f"arrival_rate must be in [0, 1], got {self.arrival_rate}")
        if self.min_cost > self.max_cost:
            raise ValueError(f"min_cost ({self.min_cost}) exceeds max_cost ({self.max_cost})")
        if self.log_every < 1 or self.status_every < 1:
            raise ValueError("log_every and status_every must be positive")
        if self.delay < 0:
            raise ValueError(f"delay must be non-negative, got {self.delay}")
        self.farm_config().validate()
        return self
