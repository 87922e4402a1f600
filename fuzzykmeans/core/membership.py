"""
Назначение нечётких весов принадлежности и вклад точек в статистики.

Вес точки p в кластере i:

    w_i = 1 / sum_j (d(p, c_i) / d(p, c_j)) ** (2 / (m - 1))

Если d(p, c_i) == 0, точка целиком принадлежит кластеру i.
"""

from __future__ import annotations

from typing import Dict, Sequence

import numpy as np

from fuzzykmeans.core.cluster import SoftCluster
from fuzzykmeans.core.distance import DistanceMeasure, checked_pairwise
from fuzzykmeans.core.statistics import SufficientStatistics
from fuzzykmeans.errors import (
    DimensionMismatchError,
    EmptyClusterSetError,
    InvalidParameterError,
)

# Вклады с весом не выше порога не порождают статистик
MEMBERSHIP_FLOOR = 1e-12


def as_points(points: np.ndarray | Sequence[Sequence[float]]) -> np.ndarray:
    """Приводит вход к массиву (N, D) float64."""
    X = np.asarray(points, dtype=np.float64)
    if X.ndim == 1:
        # пустой список означает пустой набор точек, а не одну точку нулевой длины
        X = X.reshape(0, 0) if X.size == 0 else X[None, :]
    if X.ndim != 2:
        raise DimensionMismatchError(2, X.ndim, "points array rank")
    return X


def centers_of(clusters: Sequence[SoftCluster]) -> np.ndarray:
    """Матрица центров (K, D) снимка; все центры одной размерности."""
    if len(clusters) == 0:
        raise EmptyClusterSetError("Cluster set is empty")
    dim = clusters[0].dim
    for cluster in clusters:
        if cluster.dim != dim:
            raise DimensionMismatchError(dim, cluster.dim, f"center of {cluster.id}")
    return np.vstack([c.center for c in clusters])


class MembershipAssigner:
    """Вычисляет веса принадлежности и вклады точек; кластеры не изменяет."""

    def __init__(self, measure: DistanceMeasure, m: float) -> None:
        if not np.isfinite(m) or m <= 1.0:
            raise InvalidParameterError(f"Fuzzification factor m must be > 1, got {m}")
        self.measure = measure
        self.m = float(m)
        self.exponent = 2.0 / (self.m - 1.0)

    def weights_from_distances(self, distances: np.ndarray) -> np.ndarray:
        """
        Матрица весов (N, K) по матрице расстояний.

        Считается как r_i^-p / sum_j r_j^-p, где r = d / min(d), p = 2/(m-1):
        алгебраически то же, что формула модуля, но без переполнения при
        больших p. Строки с нулевым расстоянием получают one-hot на первом
        совпавшем кластере.
        """
        W = np.empty_like(distances)
        zero = distances == 0
        has_zero = zero.any(axis=1)

        if np.any(has_zero):
            rows = np.flatnonzero(has_zero)
            W[rows] = 0.0
            W[rows, np.argmax(zero[rows], axis=1)] = 1.0

        rest = ~has_zero
        if np.any(rest):
            d = distances[rest]
            with np.errstate(over="ignore", under="ignore"):
                r = d / d.min(axis=1, keepdims=True)
                inv = r ** (-self.exponent)
            W[rest] = inv / inv.sum(axis=1, keepdims=True)

        return W

    def memberships(
        self,
        points: np.ndarray | Sequence[Sequence[float]],
        clusters: Sequence[SoftCluster],
    ) -> np.ndarray:
        """Веса принадлежности (N, K) точек к кластерам снимка."""
        C = centers_of(clusters)
        X = as_points(points)
        return self.weights_from_distances(checked_pairwise(self.measure, X, C))

    def assign(
        self, point: np.ndarray | Sequence[float], clusters: Sequence[SoftCluster]
    ) -> Dict[str, SufficientStatistics]:
        """
        Вклад одной точки: cluster_id -> статистика (w, w*p, w*p^2).

        Кластеры с весом не выше MEMBERSHIP_FLOOR пропускаются.
        """
        p = np.asarray(point, dtype=np.float64)
        if p.ndim != 1:
            raise DimensionMismatchError(1, p.ndim, "point rank")
        weights = self.memberships(p[None, :], clusters)[0]
        return {
            cluster.id: SufficientStatistics.from_observation(p, float(w))
            for cluster, w in zip(clusters, weights)
            if w > MEMBERSHIP_FLOOR
        }

    def assign_batch(
        self, X: np.ndarray, clusters: Sequence[SoftCluster]
    ) -> Dict[str, SufficientStatistics]:
        """
        Векторизованный вклад блока точек (M, D).

        Совпадает (с точностью до порядка суммирования) со свёрткой
        ``assign`` по всем строкам блока.
        """
        X = as_points(X)
        W = self.memberships(X, clusters)
        W = np.where(W > MEMBERSHIP_FLOOR, W, 0.0)

        out: Dict[str, SufficientStatistics] = {}
        for k, cluster in enumerate(clusters):
            col = W[:, k]
            if np.any(col > 0):
                out[cluster.id] = SufficientStatistics.from_weighted(X, col)
        return out
