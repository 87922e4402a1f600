"""
Финальная разметка точек по последнему опубликованному снимку.

Политика вывода задаётся ровно одним вариантом:
- ``MostLikely``: один кластер с наибольшим весом на точку;
- ``Threshold``: все кластеры с весом строго больше порога
  (если таких нет, для точки ничего не выводится).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from fuzzykmeans.core.cluster import SoftCluster
from fuzzykmeans.core.membership import MembershipAssigner, as_points
from fuzzykmeans.errors import InvalidParameterError


@dataclass(frozen=True)
class MostLikely:
    """Вывод единственного наиболее вероятного кластера."""

    def __str__(self) -> str:
        return "most_likely"


@dataclass(frozen=True)
class Threshold:
    """Вывод всех кластеров с весом выше ``value``."""

    value: float = 0.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.value < 1.0:
            raise InvalidParameterError(
                f"Membership threshold must be in [0, 1), got {self.value}"
            )

    def __str__(self) -> str:
        return f"threshold>{self.value:g}"


LabelingPolicy = Union[MostLikely, Threshold]


def labeling_policy(emit_most_likely: bool, threshold: float = 0.0) -> LabelingPolicy:
    """Политика по флагам: порог учитывается только при emit_most_likely=False."""
    if emit_most_likely:
        return MostLikely()
    return Threshold(float(threshold))


@dataclass(frozen=True)
class PointLabel:
    """Запись разметки: (id точки, id кластера, вес принадлежности)."""

    point_id: Any
    cluster_id: str
    membership: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "point_id": self.point_id,
            "cluster_id": self.cluster_id,
            "membership": self.membership,
        }


LabelSink = Callable[[PointLabel], None]


def select_clusters(
    weights: np.ndarray, clusters: Sequence[SoftCluster], policy: LabelingPolicy
) -> List[Tuple[str, float]]:
    """Выбор кластеров для одной строки весов согласно политике."""
    if isinstance(policy, MostLikely):
        # argmax возвращает первый из равных в порядке снимка
        best = int(np.argmax(weights))
        return [(clusters[best].id, float(weights[best]))]
    if isinstance(policy, Threshold):
        return [
            (cluster.id, float(w))
            for cluster, w in zip(clusters, weights)
            if w > policy.value
        ]
    raise InvalidParameterError(f"Unknown labeling policy: {policy!r}")


def label_points(
    X: np.ndarray,
    clusters: Sequence[SoftCluster],
    assigner: MembershipAssigner,
    policy: LabelingPolicy,
    point_ids: Optional[Sequence[Any]] = None,
    batch_size: int = 1024,
) -> Iterator[PointLabel]:
    """
    Поток записей разметки для всех точек X.

    Args:
        X: Точки (N, D)
        clusters: Опубликованный снимок кластеров
        assigner: Назначатель весов с той же мерой и m, что и при обучении
        policy: MostLikely или Threshold
        point_ids: Идентификаторы точек; по умолчанию индексы строк
        batch_size: Размер блока векторизованного расчёта весов
    """
    X = as_points(X)
    if point_ids is not None and len(point_ids) != X.shape[0]:
        raise InvalidParameterError(
            f"Got {len(point_ids)} point ids for {X.shape[0]} points"
        )

    for start in range(0, X.shape[0], batch_size):
        W = assigner.memberships(X[start:start + batch_size], clusters)
        for offset, weights in enumerate(W):
            i = start + offset
            pid = point_ids[i] if point_ids is not None else i
            for cluster_id, w in select_clusters(weights, clusters, policy):
                yield PointLabel(pid, cluster_id, w)
