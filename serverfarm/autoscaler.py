from enum import Enum

from serverfarm.config import SCALE_DOWN_BUFFER, SCALE_DOWN_FACTOR, SCALE_UP_QUEUE_DEPTH


class ScalingDecision(Enum):
    HOLD = "hold"
    SCALE_UP = "scale-up"
    SCALE_DOWN = "scale-down"


class AutoScaler:
    """Hysteresis scaling policy.

    Grows the pool when average worker utilization passes the threshold or
    the queue backs up. Shrinks it only when utilization is below a twentieth
    of the threshold, the queue is empty, and the pool is more than three
    workers above its floor.
    """

    def __init__(self, min_workers: int, max_workers: int, threshold: float):
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.threshold = threshold

    def should_scale_up(self, avg_utilization: float, queue_size: int, pool_size: int) -> bool:
        busy = avg_utilization > self.threshold or queue_size > SCALE_UP_QUEUE_DEPTH
        return busy and pool_size < self.max_workers

    def should_scale_down(self, avg_utilization: float, queue_size: int, pool_size: int) -> bool:
        return (
            avg_utilization < self.threshold * SCALE_DOWN_FACTOR
            and queue_size == 0
            and pool_size > self.min_workers + SCALE_DOWN_BUFFER
        )

    def decide(self, avg_utilization: float, queue_size: int, pool_size: int) -> ScalingDecision:
        """avg_utilization is a 0-1 fraction over active workers."""
        if self.should_scale_up(avg_utilization, queue_size, pool_size):
            return ScalingDecision.SCALE_UP
        if self.should_scale_down(avg_utilization, queue_size, pool_size):
            return ScalingDecision.SCALE_DOWN
        return ScalingDecision.HOLD
