"""
Показатели качества нечёткого разбиения.

- ``fuzzy_objective``: J_m = sum_i sum_k w_ik^m * d(x_i, c_k);
- ``partition_coefficient``: коэффициент разбиения Бездека,
  1/N * sum_i sum_k w_ik^2 (1/K — полностью размыто, 1 — жёстко).
"""

from __future__ import annotations

import numpy as np


def fuzzy_objective(weights: np.ndarray, distances: np.ndarray, m: float) -> float:
    """
    Целевая функция нечёткого k-means.

    Args:
        weights: Матрица весов принадлежности (N, K)
        distances: Матрица расстояний до центров (N, K)
        m: Параметр размытости

    Returns:
        Значение J_m (0 для пустого входа)
    """
    if weights.shape != distances.shape:
        raise ValueError(
            f"weights {weights.shape} and distances {distances.shape} differ"
        )
    return float(np.sum((weights ** m) * distances))


def partition_coefficient(weights: np.ndarray) -> float:
    """Коэффициент разбиения; для пустого входа равен 1.0."""
    if weights.shape[0] == 0:
        return 1.0
    return float(np.sum(weights * weights) / weights.shape[0])
