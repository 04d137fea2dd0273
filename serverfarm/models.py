from dataclasses import dataclass, field
from enum import Enum
from time import time
from typing import Optional


class RequestType(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


@dataclass
class Request:
    """One unit of work.

    Only ``remaining_cost`` changes after construction, and only while the
    request sits inside a worker. ``priority`` is carried for reporting and is
    not read by any scheduling or scaling decision. Neither priority nor cost
    is range-checked.
    """
    origin: str = "0.0.0.0"
    category: RequestType = RequestType.GET
    priority: int = 5
    remaining_cost: int = 10
    id: int = 0
    arrival_time: float = field(default_factory=time)

    def set_remaining_cost(self, cost: int) -> None:
        self.remaining_cost = cost

    def wait_time(self) -> int:
        """Milliseconds since the request arrived."""
        return int((time() - self.arrival_time) * 1000)


class Denial(str, Enum):
    """Why an admission or pool-resize attempt was refused."""
    BLOCKED = "blocked"
    QUEUE_FULL = "queue-full"
    WORKER_FULL = "worker-full"
    INACTIVE = "inactive"
    BOUND_REACHED = "bound-reached"


@dataclass(frozen=True)
class Outcome:
    """Result of ``submit``, ``add_worker`` and ``remove_worker``.

    Truthy when accepted, so callers that only care about success can treat it
    as a bool.
    """
    accepted: bool
    reason: Optional[Denial] = None

    @classmethod
    def ok(cls) -> "Outcome":
        return cls(True)

    @classmethod
    def denied(cls, reason: Denial) -> "Outcome":
        return cls(False, reason)

    def __bool__(self) -> bool:
        return self.accepted
