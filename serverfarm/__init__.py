"""
Discrete-time simulation of a load-balanced server farm.

This package provides the admission queue, workers and dispatcher that make
up the farm, plus a simulation driver and a terminal dashboard.
"""

from .admission import AdmissionQueue
from .config import FarmConfig, SimulationConfig
from .dispatcher import Dispatcher
from .models import Denial, Outcome, Request, RequestType
from .simulator import Simulator
from .worker import Worker

__all__ = [
    'AdmissionQueue',
    'Denial',
    'Dispatcher',
    'FarmConfig',
    'Outcome',
    'Request',
    'RequestType',
    'SimulationConfig',
    'Simulator',
    'Worker',
]
