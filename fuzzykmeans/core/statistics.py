"""
Достаточные статистики кластера и ассоциативное слияние.

Статистика хранит массу (s0), взвешенную сумму точек (s1) и взвешенную
сумму поэлементных квадратов (s2). Слияние — покомпонентное сложение,
поэтому частичные суммы партиций можно сворачивать в любом порядке.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Mapping

import numpy as np

from fuzzykmeans.errors import DimensionMismatchError


@dataclass(eq=False)
class SufficientStatistics:
    """Накопитель (s0, s1, s2) одного кластера."""

    mass: float
    first_moment: np.ndarray
    second_moment: np.ndarray
    # Диагностический счётчик слияний, на результат не влияет
    merge_count: int = 0

    @classmethod
    def zeros(cls, dim: int) -> SufficientStatistics:
        """Нейтральный элемент слияния."""
        return cls(0.0, np.zeros(dim, dtype=np.float64), np.zeros(dim, dtype=np.float64))

    @classmethod
    def from_observation(cls, point: np.ndarray, weight: float) -> SufficientStatistics:
        """Вклад одной точки с весом принадлежности ``weight``."""
        p = np.asarray(point, dtype=np.float64)
        return cls(float(weight), weight * p, weight * (p * p))

    @classmethod
    def from_weighted(cls, X: np.ndarray, weights: np.ndarray) -> SufficientStatistics:
        """
        Вклад блока точек X (M, D) с весами (M,).

        Эквивалентен свёртке ``from_observation`` по строкам блока.
        """
        return cls(
            float(weights.sum()),
            weights @ X,
            weights @ (X * X),
        )

    @property
    def dim(self) -> int:
        return int(self.first_moment.shape[0])

    def merge(self, other: SufficientStatistics) -> SufficientStatistics:
        """Чистое слияние двух статистик (ассоциативно и коммутативно)."""
        if other.dim != self.dim:
            raise DimensionMismatchError(self.dim, other.dim, "statistics")
        return SufficientStatistics(
            self.mass + other.mass,
            self.first_moment + other.first_moment,
            self.second_moment + other.second_moment,
            self.merge_count + other.merge_count + 1,
        )

    __add__ = merge

    def allclose(
        self, other: SufficientStatistics, rtol: float = 1e-9, atol: float = 1e-12
    ) -> bool:
        """Сравнение с допуском: побитового равенства порядок слияния не гарантирует."""
        return (
            self.dim == other.dim
            and bool(np.isclose(self.mass, other.mass, rtol=rtol, atol=atol))
            and bool(np.allclose(self.first_moment, other.first_moment, rtol=rtol, atol=atol))
            and bool(np.allclose(self.second_moment, other.second_moment, rtol=rtol, atol=atol))
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            "s0": self.mass,
            "s1": self.first_moment.tolist(),
            "s2": self.second_moment.tolist(),
            "merge_count": self.merge_count,
        }


def merge(a: SufficientStatistics, b: SufficientStatistics) -> SufficientStatistics:
    return a.merge(b)


def _fold_by_id(
    contributions: Iterable[Mapping[str, SufficientStatistics]],
) -> Dict[str, SufficientStatistics]:
    acc: Dict[str, SufficientStatistics] = {}
    for mapping in contributions:
        for cluster_id, stats in mapping.items():
            prev = acc.get(cluster_id)
            acc[cluster_id] = stats if prev is None else prev.merge(stats)
    return acc


def partial_merge(
    contributions: Iterable[Mapping[str, SufficientStatistics]],
) -> Dict[str, SufficientStatistics]:
    """
    Комбайнер: сворачивает вклады внутри одной партиции по id кластера.

    Args:
        contributions: Последовательность отображений cluster_id -> статистика
            (по одной на точку или на блок точек)

    Returns:
        Одна частичная статистика на каждый встретившийся id
    """
    return _fold_by_id(contributions)


def final_merge(
    partials: Iterable[Mapping[str, SufficientStatistics]],
) -> Dict[str, SufficientStatistics]:
    """
    Редьюсер: сливает частичные статистики всех партиций.

    Тот же оператор, что и ``partial_merge``; порядок слияния — порядок
    партиций, что делает результат детерминированным в рамках запуска.
    """
    return _fold_by_id(partials)
