"""
Начальные снимки кластеров: из заданных центров или случайной выборкой точек.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np

from fuzzykmeans.core.cluster import SoftCluster
from fuzzykmeans.errors import EmptyClusterSetError

CLUSTER_ID_PREFIX = "C-"


def seeds_from_centers(
    centers: np.ndarray | Sequence[Sequence[float]], prefix: str = CLUSTER_ID_PREFIX
) -> List[SoftCluster]:
    """Кластеры с id ``C-0``, ``C-1``, ... в центрах ``centers``."""
    C = np.asarray(centers, dtype=np.float64)
    if C.ndim != 2 or C.shape[0] == 0:
        raise EmptyClusterSetError("No centers to seed clusters from")
    return [SoftCluster.from_seed(f"{prefix}{k}", c) for k, c in enumerate(C)]


def random_seeds(
    X: np.ndarray,
    k: int,
    seed: Optional[int] = None,
    prefix: str = CLUSTER_ID_PREFIX,
) -> List[SoftCluster]:
    """
    Случайный посев: k различных точек входа становятся центрами.

    Args:
        X: Точки (N, D)
        k: Число кластеров; при k > N берутся все N точек
        seed: Seed генератора для воспроизводимости
        prefix: Префикс идентификаторов кластеров

    Raises:
        EmptyClusterSetError: k <= 0 или вход пуст
    """
    if k <= 0:
        raise EmptyClusterSetError(f"Number of clusters must be positive, got {k}")
    if X.shape[0] == 0:
        raise EmptyClusterSetError("Cannot sample seeds from an empty point set")

    rng = np.random.default_rng(seed)
    idx = rng.choice(X.shape[0], size=min(k, X.shape[0]), replace=False)
    return seeds_from_centers(X[np.sort(idx)], prefix=prefix)
