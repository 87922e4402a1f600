from __future__ import annotations

from typing import Iterable

import numpy as np

from fuzzykmeans.core.cluster import SoftCluster
from fuzzykmeans.core.distance import DistanceMeasure, checked_distance
from fuzzykmeans.errors import InvalidParameterError


class ConvergenceChecker:
    """
    Проверка сходимости: кластер сошёлся, если его центр сдвинулся
    не более чем на ``delta`` в заданной мере.
    """

    def __init__(self, measure: DistanceMeasure, delta: float) -> None:
        if not np.isfinite(delta) or delta <= 0:
            raise InvalidParameterError(f"Convergence delta must be > 0, got {delta}")
        self.measure = measure
        self.delta = float(delta)

    def shift(self, old: SoftCluster, new: SoftCluster) -> float:
        return checked_distance(self.measure, old.center, new.center)

    def has_converged(self, old: SoftCluster, new: SoftCluster) -> bool:
        # Кластер без массы не может сдвинуться
        if new.num_points == 0:
            return True
        return self.shift(old, new) <= self.delta

    def mark(self, old: SoftCluster, new: SoftCluster) -> SoftCluster:
        return new.with_converged(self.has_converged(old, new))

    @staticmethod
    def all_converged(clusters: Iterable[SoftCluster]) -> bool:
        return all(c.converged for c in clusters)
