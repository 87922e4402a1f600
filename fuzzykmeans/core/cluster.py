"""
Мягкий кластер: идентификатор, центр, радиус, масса и флаг сходимости.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Sequence

import numpy as np

from fuzzykmeans.core.statistics import SufficientStatistics
from fuzzykmeans.errors import DimensionMismatchError


def _frozen_vector(values: Any) -> np.ndarray:
    arr = np.array(values, dtype=np.float64, copy=True).reshape(-1)
    arr.setflags(write=False)
    return arr


def format_vector(v: np.ndarray, precision: int = 3) -> str:
    return "[" + ", ".join(f"{x:.{precision}f}" for x in v) + "]"


@dataclass(frozen=True, eq=False)
class SoftCluster:
    """
    Неизменяемый снимок кластера на конкретной итерации.

    Следующая итерация всегда работает с новым экземпляром, полученным
    через ``recompute``; опубликованный снимок не модифицируется.
    """

    id: str
    center: np.ndarray
    radius: np.ndarray
    num_points: float = 0.0
    converged: bool = False

    def __post_init__(self) -> None:
        center = _frozen_vector(self.center)
        radius = _frozen_vector(self.radius)
        if radius.shape != center.shape:
            raise DimensionMismatchError(center.shape[0], radius.shape[0], "radius")
        object.__setattr__(self, "center", center)
        object.__setattr__(self, "radius", radius)

    @classmethod
    def from_seed(cls, cluster_id: str, point: Sequence[float]) -> SoftCluster:
        """Начальный кластер с центром в точке-зерне и нулевым радиусом."""
        center = np.asarray(point, dtype=np.float64)
        return cls(cluster_id, center, np.zeros_like(center))

    @property
    def dim(self) -> int:
        return int(self.center.shape[0])

    def recompute(self, stats: SufficientStatistics) -> SoftCluster:
        """
        Новый кластер по слитой статистике итерации.

        Кластер без массы не сдвигается и сразу считается сошедшимся.
        Иначе центр = s1 / s0, радиус_k = sqrt(s2_k / s0 - центр_k^2)
        с отсечением отрицательных значений от ошибок округления.
        Флаг сходимости для ненулевой массы выставляет ConvergenceChecker.
        """
        if stats.dim != self.dim:
            raise DimensionMismatchError(self.dim, stats.dim, f"cluster {self.id}")
        if stats.mass == 0:
            return replace(self, num_points=0.0, converged=True)

        center = stats.first_moment / stats.mass
        variance = stats.second_moment / stats.mass - center * center
        radius = np.sqrt(np.maximum(variance, 0.0))
        return SoftCluster(self.id, center, radius, float(stats.mass), False)

    def with_converged(self, converged: bool) -> SoftCluster:
        return replace(self, converged=converged)

    def to_dict(self) -> Dict[str, Any]:
        """Запись снимка для внешних приёмников (NDJSON и т.п.)."""
        return {
            "id": self.id,
            "center": self.center.tolist(),
            "radius": self.radius.tolist(),
            "num_points": self.num_points,
            "converged": self.converged,
        }

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> SoftCluster:
        return cls(
            str(record["id"]),
            record["center"],
            record.get("radius", np.zeros(len(record["center"]))),
            float(record.get("num_points", 0.0)),
            bool(record.get("converged", False)),
        )

    def __repr__(self) -> str:
        status = "converged" if self.converged else "moving"
        return (
            f"SoftCluster({self.id} center={format_vector(self.center)} "
            f"radius={format_vector(self.radius)} "
            f"num_points={self.num_points:.3f} {status})"
        )
