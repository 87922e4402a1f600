from .timers import IterationTimings, Timer
from .quality import fuzzy_objective, partition_coefficient

__all__ = [
    "Timer",
    "IterationTimings",
    "fuzzy_objective",
    "partition_coefficient",
]
