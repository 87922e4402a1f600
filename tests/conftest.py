"""
Общие фикстуры для всех тестов.
"""

import numpy as np
import pytest

from fuzzykmeans.core.cluster import SoftCluster
from fuzzykmeans.data.seeding import seeds_from_centers


@pytest.fixture
def rng():
    """Детерминированный генератор случайных чисел."""
    return np.random.default_rng(42)


@pytest.fixture
def two_cluster_points():
    """Сценарий: 4 точки на диагонали и зёрна в [0,0] и [10,10]."""
    X = np.array([
        [0.0, 0.0],
        [1.0, 1.0],
        [9.0, 9.0],
        [10.0, 10.0],
    ])
    clusters = [
        SoftCluster.from_seed("A", [0.0, 0.0]),
        SoftCluster.from_seed("B", [10.0, 10.0]),
    ]
    return X, clusters


@pytest.fixture
def small_dataset():
    """Небольшой датасет (2D, 2 кластера)."""
    rng = np.random.default_rng(42)
    # Два явно разделённых облака
    cluster1 = rng.standard_normal((30, 2)) + [0, 0]
    cluster2 = rng.standard_normal((30, 2)) + [5, 5]
    X = np.vstack([cluster1, cluster2])
    clusters = seeds_from_centers([[-1.0, -1.0], [6.0, 6.0]])
    return X, clusters


@pytest.fixture
def medium_dataset():
    """Средний датасет (10D, 3 кластера)."""
    rng = np.random.default_rng(42)
    cluster1 = rng.standard_normal((50, 10)) + [0] * 10
    cluster2 = rng.standard_normal((50, 10)) + [5] * 10
    cluster3 = rng.standard_normal((50, 10)) + [-5] * 10
    X = np.vstack([cluster1, cluster2, cluster3])
    clusters = seeds_from_centers([
        [-1.0] * 10,
        [6.0] * 10,
        [-6.0] * 10,
    ])
    return X, clusters
