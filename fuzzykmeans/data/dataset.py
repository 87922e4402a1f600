"""
Загрузка точек для нечёткой кластеризации из текстового файла.

Формат совпадает с файлами DatasetGenerator:
# {метаданные в JSON}
# Centroids (label, x1, x2, ..., xD)   (необязательная секция)
# Data points (label, x1, x2, ..., xD)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List

import numpy as np

from fuzzykmeans.core.cluster import SoftCluster
from fuzzykmeans.data.seeding import seeds_from_centers
from fuzzykmeans.errors import DimensionMismatchError


class Dataset:
    """
    Набор точек с необязательными начальными центрами.

    Атрибуты после загрузки:
    - X: точки (N, D)
    - labels_true: исходные метки из файла (N,)
    - initial_centroids: центры из секции Centroids или None
    - point_ids: идентификаторы точек (номер строки в секции данных)
    """

    def __init__(self, data_path: str | Path) -> None:
        self.data_path = Path(data_path)
        self.metadata: dict[str, Any] = {}
        self.X: np.ndarray | None = None
        self.labels_true: np.ndarray | None = None
        self.initial_centroids: np.ndarray | None = None
        self.point_ids: List[int] = []

        logging.info(f"Loading dataset from {self.data_path}")
        self._load_data()

    def _load_data(self) -> None:
        centroids: list[list[float]] = []
        points: list[list[float]] = []
        labels: list[int] = []
        section = "data"

        with open(self.data_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                if line.startswith("#"):
                    body = line.lstrip("# ").strip()
                    if body.startswith("{") and not self.metadata:
                        self.metadata = json.loads(body)
                    elif body.startswith("Centroids"):
                        section = "centroids"
                    elif body.startswith("Data points"):
                        section = "data"
                    continue

                parts = line.split()
                label = int(float(parts[0]))
                values = [float(v) for v in parts[1:]]
                if section == "centroids":
                    centroids.append(values)
                else:
                    points.append(values)
                    labels.append(label)

        self.X = self._stack(points, "point")
        self.labels_true = np.array(labels, dtype=np.int32)
        self.point_ids = list(range(len(points)))
        if centroids:
            self.initial_centroids = self._stack(centroids, "centroid")
            if self.X.shape[0] > 0 and self.initial_centroids.shape[1] != self.X.shape[1]:
                raise DimensionMismatchError(
                    self.X.shape[1], self.initial_centroids.shape[1], "centroid"
                )

        logging.info(
            f"Dataset loaded: X.shape={self.X.shape}, "
            f"initial_centroids="
            f"{None if self.initial_centroids is None else self.initial_centroids.shape}"
        )

    @staticmethod
    def _stack(rows: list[list[float]], what: str) -> np.ndarray:
        if not rows:
            return np.empty((0, 0), dtype=np.float64)
        dim = len(rows[0])
        for row in rows:
            if len(row) != dim:
                raise DimensionMismatchError(dim, len(row), what)
        return np.asarray(rows, dtype=np.float64)

    @property
    def dim(self) -> int:
        assert self.X is not None
        return int(self.X.shape[1])

    def seed_clusters(self) -> List[SoftCluster]:
        """Начальные кластеры из секции Centroids (пустой список, если её нет)."""
        if self.initial_centroids is None:
            return []
        return seeds_from_centers(self.initial_centroids)
