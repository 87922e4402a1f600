"""
Иерархия исключений движка нечёткой кластеризации.

Все ошибки фатальны для текущей итерации: оркестратор пробрасывает их
вызывающему коду, не публикуя частично посчитанный снимок кластеров.
"""

from __future__ import annotations


class ClusteringError(Exception):
    """Базовый класс всех ошибок пакета ``fuzzykmeans``."""


class InvalidParameterError(ClusteringError, ValueError):
    """Некорректный параметр: m <= 1, delta <= 0, неизвестная мера и т.п."""


class EmptyClusterSetError(InvalidParameterError):
    """Пустой набор кластеров (на этапе посева или назначения)."""


class DimensionMismatchError(ClusteringError, ValueError):
    """Размерности точки и центра (или двух статистик) не совпадают."""

    def __init__(self, expected: int, actual: int, what: str = "vector") -> None:
        self.expected = expected
        self.actual = actual
        self.what = what
        super().__init__(
            f"Dimension mismatch for {what}: expected {expected}, got {actual}"
        )

    def __reduce__(self):
        # ошибка может прийти из процесса-воркера через pickle
        return type(self), (self.expected, self.actual, self.what)


class DistanceMeasureError(ClusteringError, ArithmeticError):
    """Мера расстояния вернула отрицательное/нечисловое значение или упала."""


class PartitionFailedError(ClusteringError):
    """Партиция не обработана после исчерпания всех повторных попыток."""

    def __init__(self, partition: int, attempts: int) -> None:
        self.partition = partition
        self.attempts = attempts
        super().__init__(
            f"Partition {partition} failed after {attempts} attempt(s)"
        )

    def __reduce__(self):
        return type(self), (self.partition, self.attempts)
