"""
Проверка загруженного датасета перед запуском кластеризации.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from fuzzykmeans.core.cluster import SoftCluster
from fuzzykmeans.data.dataset import Dataset
from fuzzykmeans.errors import (
    DimensionMismatchError,
    EmptyClusterSetError,
    InvalidParameterError,
)


def validate_dataset(dataset: Dataset) -> None:
    """
    Проверяет соответствие данных метаданным файла (если они есть).

    Raises:
        DimensionMismatchError: Число точек или размерность не совпадают с N/D
    """
    assert dataset.X is not None, "Dataset data (X) is None"
    meta = dataset.metadata

    if "N" in meta and dataset.X.shape[0] != meta["N"]:
        raise DimensionMismatchError(meta["N"], dataset.X.shape[0], "number of points")
    if "D" in meta and dataset.X.shape[0] > 0 and dataset.X.shape[1] != meta["D"]:
        raise DimensionMismatchError(meta["D"], dataset.X.shape[1], "point")
    if not np.all(np.isfinite(dataset.X)):
        raise InvalidParameterError(
            f"Dataset {dataset.data_path} contains non-finite values"
        )


def validate_clusters(clusters: Sequence[SoftCluster], dim: int) -> None:
    """Снимок непуст и все центры размерности ``dim``."""
    if not clusters:
        raise EmptyClusterSetError("Cluster set is empty")
    for cluster in clusters:
        if cluster.dim != dim:
            raise DimensionMismatchError(dim, cluster.dim, f"center of {cluster.id}")
