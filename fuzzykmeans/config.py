from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict

import numpy as np

from fuzzykmeans.core.distance import available_measures
from fuzzykmeans.core.labeling import LabelingPolicy, MostLikely, labeling_policy
from fuzzykmeans.core.partitioning import MultiprocessingConfig
from fuzzykmeans.errors import InvalidParameterError


class ClusteringMethod(str, Enum):
    SEQUENTIAL = "sequential"
    MAPREDUCE = "mapreduce"


@dataclass(frozen=True)
class FuzzyKMeansConfig:
    """Параметры одного запуска нечёткого k-means."""

    m: float = 2.0
    convergence_delta: float = 0.5
    max_iterations: int = 10
    distance_measure: str = "squared_euclidean"
    run_sequential: bool = True
    # Выполнить финальную разметку точек после итераций
    run_clustering: bool = False
    labeling: LabelingPolicy = field(default_factory=MostLikely)
    # Размер блока векторизованного назначения внутри партиции
    batch_size: int = 1024
    mp: MultiprocessingConfig = field(default_factory=MultiprocessingConfig)

    def __post_init__(self) -> None:
        if not np.isfinite(self.m) or self.m <= 1.0:
            raise InvalidParameterError(f"m must be > 1, got {self.m}")
        if not np.isfinite(self.convergence_delta) or self.convergence_delta <= 0:
            raise InvalidParameterError(
                f"convergence_delta must be > 0, got {self.convergence_delta}"
            )
        if self.max_iterations <= 0:
            raise InvalidParameterError(
                f"max_iterations must be > 0, got {self.max_iterations}"
            )
        if self.batch_size <= 0:
            raise InvalidParameterError(f"batch_size must be > 0, got {self.batch_size}")
        if self.distance_measure not in available_measures():
            raise InvalidParameterError(
                f"Unknown distance measure '{self.distance_measure}', "
                f"available: {available_measures()}"
            )

    @property
    def method(self) -> ClusteringMethod:
        return ClusteringMethod.SEQUENTIAL if self.run_sequential else ClusteringMethod.MAPREDUCE

    @classmethod
    def from_flags(
        cls,
        *,
        emit_most_likely: bool = True,
        threshold: float = 0.0,
        **kwargs: Any,
    ) -> FuzzyKMeansConfig:
        """Конструктор с флагами emitMostLikely/threshold вместо политики."""
        return cls(labeling=labeling_policy(emit_most_likely, threshold), **kwargs)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> FuzzyKMeansConfig:
        """
        Конфигурация из словаря (например, JSON-файла).

        Понимает ключи полей датакласса, ``method`` (sequential/mapreduce),
        ``emit_most_likely``/``threshold`` и вложенный словарь ``mp``.
        """
        data = dict(raw)
        known = {f.name for f in fields(cls)}

        if "method" in data:
            try:
                method = ClusteringMethod(str(data.pop("method")).lower())
            except ValueError:
                raise InvalidParameterError(f"Unknown method '{raw['method']}'") from None
            data["run_sequential"] = method is ClusteringMethod.SEQUENTIAL

        emit_most_likely = bool(data.pop("emit_most_likely", True))
        threshold = float(data.pop("threshold", 0.0))

        if isinstance(data.get("mp"), dict):
            try:
                data["mp"] = MultiprocessingConfig(**data["mp"])
            except TypeError as exc:
                raise InvalidParameterError(f"Bad mp section: {exc}") from exc

        unknown = set(data) - known
        if unknown:
            raise InvalidParameterError(f"Unknown config keys: {sorted(unknown)}")

        data.setdefault("labeling", labeling_policy(emit_most_likely, threshold))
        return cls(**data)
