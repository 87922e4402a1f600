"""
Меры расстояния: статический интерфейс и реестр именованных вариантов.

Мера выбирается по имени из конфигурации один раз при старте запуска,
а не для каждой записи.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, List, Type

import numpy as np

from fuzzykmeans.errors import (
    ClusteringError,
    DimensionMismatchError,
    DistanceMeasureError,
    InvalidParameterError,
)


class DistanceMeasure(ABC):
    """Мера d(a, b) >= 0 с d(x, x) = 0."""

    name: str = ""

    @abstractmethod
    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        raise NotImplementedError

    def pairwise(self, X: np.ndarray, C: np.ndarray) -> np.ndarray:
        """
        Матрица расстояний (N, K) между точками X и центрами C.

        Реализация по умолчанию вызывает ``distance`` поэлементно;
        встроенные меры переопределяют её векторизованной версией.
        """
        out = np.empty((X.shape[0], C.shape[0]), dtype=np.float64)
        for i in range(X.shape[0]):
            for k in range(C.shape[0]):
                out[i, k] = self.distance(X[i], C[k])
        return out

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


_REGISTRY: Dict[str, Type[DistanceMeasure]] = {}


def register_measure(cls: Type[DistanceMeasure]) -> Type[DistanceMeasure]:
    """Декоратор: регистрирует меру под её ``name``."""
    if not cls.name:
        raise InvalidParameterError(f"{cls.__name__} has no registry name")
    _REGISTRY[cls.name] = cls
    return cls


def get_measure(name: str) -> DistanceMeasure:
    try:
        return _REGISTRY[name]()
    except KeyError:
        raise InvalidParameterError(
            f"Unknown distance measure '{name}', available: {available_measures()}"
        ) from None


def available_measures() -> List[str]:
    return sorted(_REGISTRY)


@register_measure
class SquaredEuclideanDistance(DistanceMeasure):
    name = "squared_euclidean"

    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        diff = a - b
        return float(diff @ diff)

    def pairwise(self, X: np.ndarray, C: np.ndarray) -> np.ndarray:
        # (N, K, D) → (N, K)
        diff = X[:, None, :] - C[None, :, :]
        return np.einsum("nkd,nkd->nk", diff, diff, optimize=True)


@register_measure
class EuclideanDistance(DistanceMeasure):
    name = "euclidean"

    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        return float(np.linalg.norm(a - b))

    def pairwise(self, X: np.ndarray, C: np.ndarray) -> np.ndarray:
        diff = X[:, None, :] - C[None, :, :]
        return np.sqrt(np.einsum("nkd,nkd->nk", diff, diff, optimize=True))


@register_measure
class ManhattanDistance(DistanceMeasure):
    name = "manhattan"

    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        return float(np.abs(a - b).sum())

    def pairwise(self, X: np.ndarray, C: np.ndarray) -> np.ndarray:
        return np.abs(X[:, None, :] - C[None, :, :]).sum(axis=2)


@register_measure
class ChebyshevDistance(DistanceMeasure):
    name = "chebyshev"

    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        return float(np.abs(a - b).max(initial=0.0))

    def pairwise(self, X: np.ndarray, C: np.ndarray) -> np.ndarray:
        return np.abs(X[:, None, :] - C[None, :, :]).max(axis=2, initial=0.0)


@register_measure
class CosineDistance(DistanceMeasure):
    """1 - cos(a, b); нулевой вектор совпадает только с нулевым."""

    name = "cosine"

    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        return float(self.pairwise(a[None, :], b[None, :])[0, 0])

    def pairwise(self, X: np.ndarray, C: np.ndarray) -> np.ndarray:
        nx = np.linalg.norm(X, axis=1)[:, None]
        nc = np.linalg.norm(C, axis=1)[None, :]
        denom = nx * nc
        with np.errstate(divide="ignore", invalid="ignore"):
            d = 1.0 - (X @ C.T) / denom
        zero = denom == 0
        if np.any(zero):
            both_zero = (nx == 0) & (nc == 0)
            d = np.where(zero, np.where(both_zero, 0.0, 1.0), d)
        # округление может дать -1e-16 для коллинеарных векторов
        return np.maximum(d, 0.0)


def check_dimensions(X: np.ndarray, C: np.ndarray) -> None:
    if X.ndim != 2 or C.ndim != 2:
        raise DimensionMismatchError(2, X.ndim if X.ndim != 2 else C.ndim, "array rank")
    if X.shape[0] > 0 and X.shape[1] != C.shape[1]:
        raise DimensionMismatchError(C.shape[1], X.shape[1], "point")


def checked_pairwise(measure: DistanceMeasure, X: np.ndarray, C: np.ndarray) -> np.ndarray:
    """
    Вызов ``measure.pairwise`` с проверкой размерностей и результата.

    Raises:
        DimensionMismatchError: Размерности точек и центров различаются
        DistanceMeasureError: Мера упала или вернула отрицательное/нечисловое значение
    """
    check_dimensions(X, C)
    if X.shape[0] == 0:
        return np.zeros((0, C.shape[0]), dtype=np.float64)
    try:
        distances = np.asarray(measure.pairwise(X, C), dtype=np.float64)
    except ClusteringError:
        raise
    except Exception as exc:
        # Любая ошибка внешней меры детерминирована и не повторяется
        raise DistanceMeasureError(f"{measure!r} failed: {exc}") from exc

    if distances.shape != (X.shape[0], C.shape[0]):
        raise DistanceMeasureError(
            f"{measure!r} returned shape {distances.shape}, "
            f"expected {(X.shape[0], C.shape[0])}"
        )
    if not np.all(np.isfinite(distances)):
        raise DistanceMeasureError(f"{measure!r} returned a non-finite distance")
    if np.any(distances < 0):
        raise DistanceMeasureError(f"{measure!r} returned a negative distance")
    return distances


def checked_distance(measure: DistanceMeasure, a: np.ndarray, b: np.ndarray) -> float:
    return float(checked_pairwise(measure, a[None, :], b[None, :])[0, 0])
