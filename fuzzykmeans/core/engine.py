from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np

from fuzzykmeans.config import FuzzyKMeansConfig
from fuzzykmeans.core.cluster import SoftCluster
from fuzzykmeans.core.convergence import ConvergenceChecker
from fuzzykmeans.core.distance import DistanceMeasure, get_measure
from fuzzykmeans.core.labeling import LabelSink, PointLabel, label_points
from fuzzykmeans.core.membership import MembershipAssigner, as_points, centers_of
from fuzzykmeans.core.partitioning import (
    MultiprocessingExecutor,
    Partial,
    PartitionExecutor,
    Partitioner,
    SequentialExecutor,
)
from fuzzykmeans.core.statistics import SufficientStatistics, final_merge
from fuzzykmeans.errors import DimensionMismatchError, EmptyClusterSetError, InvalidParameterError
from fuzzykmeans.metrics.timers import IterationTimings, Timer
from fuzzykmeans.utils.logging import format_cluster, format_run_prefix

SnapshotSink = Callable[[int, List[SoftCluster]], None]


class ClusteringState(str, Enum):
    IDLE = "idle"
    SEEDING = "seeding"
    ITERATING = "iterating"
    CONVERGED = "converged"
    MAX_ITERATIONS_REACHED = "max_iterations_reached"
    FINAL_LABELING = "final_labeling"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ClusteringResult:
    """Итог запуска: последний снимок, число итераций и разметка (если была)."""

    clusters: List[SoftCluster]
    iterations: int
    converged: bool
    labels: List[PointLabel] = field(default_factory=list)


class FuzzyKMeans:
    """
    Оркестратор итераций нечёткого k-means.

    Каждая итерация: назначение весов и частичное слияние по партициям →
    финальное слияние по id кластера → пересчёт центров → проверка
    сходимости → публикация нового снимка. Остановка при сходимости всех
    кластеров или по достижении ``max_iterations``.

    Последовательный и распределённый режимы — один алгоритм, различаются
    только исполнителем и стратегией разбиения. Ошибка в итерации
    прерывает её целиком: частичные статистики отбрасываются, последний
    опубликованный снимок остаётся валидным и пригоден для продолжения.
    """

    def __init__(
        self,
        config: FuzzyKMeansConfig | None = None,
        measure: DistanceMeasure | None = None,
        logger: Any | None = None,
        partitioner: Partitioner | None = None,
        snapshot_sink: SnapshotSink | None = None,
    ) -> None:
        self.config = config or FuzzyKMeansConfig()
        # Мера разрешается один раз на запуск
        self.measure = measure or get_measure(self.config.distance_measure)
        self.logger = logger
        self.partitioner = partitioner
        self.snapshot_sink = snapshot_sink

        self.assigner = MembershipAssigner(self.measure, self.config.m)
        self.checker = ConvergenceChecker(self.measure, self.config.convergence_delta)

        self.state = ClusteringState.IDLE
        self.clusters: List[SoftCluster] = []
        self.snapshots: List[List[SoftCluster]] = []
        self.converged = False

        self.timings = IterationTimings()
        # Реальное количество выполненных итераций
        self.n_iters_actual: int = 0

    # --- Исполнитель ---

    def _make_executor(self) -> PartitionExecutor:
        if self.config.run_sequential:
            return SequentialExecutor(self.partitioner, batch_size=self.config.batch_size)
        return MultiprocessingExecutor(
            self.config.mp,
            partitioner=self.partitioner,
            batch_size=self.config.batch_size,
            logger=self.logger,
        )

    # --- Посев ---

    def _seed(self, initial_clusters: Sequence[SoftCluster], X: np.ndarray) -> List[SoftCluster]:
        self.state = ClusteringState.SEEDING
        clusters = list(initial_clusters)
        if not clusters:
            raise EmptyClusterSetError("No initial clusters supplied")

        ids = [c.id for c in clusters]
        if len(set(ids)) != len(ids):
            raise InvalidParameterError(f"Duplicate cluster ids in seed set: {ids}")

        C = centers_of(clusters)
        if X.shape[0] > 0 and X.shape[1] != C.shape[1]:
            raise DimensionMismatchError(C.shape[1], X.shape[1], "point")
        return clusters

    # --- Итерации ---

    def _update(
        self, clusters: Sequence[SoftCluster], merged: Dict[str, SufficientStatistics]
    ) -> List[SoftCluster]:
        """Пересчёт и пометка сходимости; порядок и id кластеров сохраняются."""
        updated = []
        for cluster in clusters:
            stats = merged.get(cluster.id) or SufficientStatistics.zeros(cluster.dim)
            updated.append(self.checker.mark(cluster, cluster.recompute(stats)))
        return updated

    def _max_shift(self, old: Sequence[SoftCluster], new: Sequence[SoftCluster]) -> float:
        return max(
            (float(np.max(np.abs(n.center - o.center), initial=0.0)) for o, n in zip(old, new)),
            default=0.0,
        )

    def _publish(self, iteration: int, clusters: List[SoftCluster]) -> None:
        self.clusters = clusters
        self.snapshots.append(clusters)
        if self.logger:
            for cluster in clusters:
                self.logger.debug(f"  {format_cluster(cluster)} -> clusters-{iteration}")
        if self.snapshot_sink is not None:
            self.snapshot_sink(iteration, clusters)

    def fit(
        self, X: np.ndarray, initial_clusters: Sequence[SoftCluster]
    ) -> List[SoftCluster]:
        """
        Основной цикл с остановкой по сходимости или лимиту итераций.

        Args:
            X: Точки (N, D)
            initial_clusters: Начальный снимок (зёрна или снимок прошлого запуска)

        Returns:
            Последний опубликованный снимок кластеров
        """
        X = as_points(X)
        try:
            clusters = self._seed(initial_clusters, X)
        except Exception:
            self.state = ClusteringState.FAILED
            raise

        self.clusters = clusters
        self.snapshots = []
        self.converged = False
        self.timings.reset()
        self.n_iters_actual = 0

        n_iters = self.config.max_iterations
        prefix = format_run_prefix(self.config, X.shape[0], len(clusters))
        executor = self._make_executor()
        self.state = ClusteringState.ITERATING

        try:
            executor.open(X)
            with executor:
                for i in range(n_iters):
                    with Timer() as t_assign:
                        partials: List[Partial] = executor.run(clusters, self.assigner)
                    with Timer() as t_update:
                        merged = final_merge(partials)
                        new_clusters = self._update(clusters, merged)

                    converged = self.checker.all_converged(new_clusters)
                    max_change = self._max_shift(clusters, new_clusters)

                    # Публикуем только полностью посчитанную итерацию
                    self.timings.record(t_assign.elapsed, t_update.elapsed)
                    self.n_iters_actual = i + 1
                    self._publish(i + 1, new_clusters)
                    clusters = new_clusters

                    if self.logger and (i == 0 or (i + 1) % 10 == 0 or converged):
                        status = " (converged)" if converged else ""
                        self.logger.info(
                            f"{prefix} Iteration {i + 1}/{n_iters}{status} "
                            f"(T_assign={t_assign.elapsed:.6f}s, "
                            f"T_update={t_update.elapsed:.6f}s, "
                            f"partitions={executor.n_partitions}, "
                            f"max_change={max_change:.2e})"
                        )

                    if converged:
                        break
        except Exception:
            self.state = ClusteringState.FAILED
            raise

        self.converged = self.checker.all_converged(clusters)
        if self.converged:
            self.state = ClusteringState.CONVERGED
            if self.logger:
                self.logger.info(
                    f"{prefix} Convergence reached after {self.n_iters_actual} iterations "
                    f"(delta={self.config.convergence_delta:.2e})"
                )
        else:
            self.state = ClusteringState.MAX_ITERATIONS_REACHED
            if self.logger:
                self.logger.info(
                    f"{prefix} Stopped after {self.n_iters_actual} iterations "
                    f"without convergence"
                )
        return clusters

    # --- Финальная разметка ---

    def label(
        self,
        X: np.ndarray,
        point_ids: Optional[Sequence[Any]] = None,
        sink: LabelSink | None = None,
        clusters: Sequence[SoftCluster] | None = None,
    ) -> List[PointLabel]:
        """
        Разметка точек по последнему опубликованному снимку.

        Политика (MostLikely/Threshold) берётся из конфигурации.
        """
        snapshot = list(clusters) if clusters is not None else self.clusters
        if not snapshot:
            raise EmptyClusterSetError("No published cluster snapshot to label against")

        self.state = ClusteringState.FINAL_LABELING
        labels: List[PointLabel] = []
        try:
            for record in label_points(
                X,
                snapshot,
                self.assigner,
                self.config.labeling,
                point_ids=point_ids,
                batch_size=self.config.batch_size,
            ):
                labels.append(record)
                if sink is not None:
                    sink(record)
        except Exception:
            self.state = ClusteringState.FAILED
            raise

        if self.logger:
            self.logger.info(
                f"Labeled {as_points(X).shape[0]} points with policy "
                f"{self.config.labeling}: {len(labels)} records"
            )
        self.state = ClusteringState.DONE
        return labels

    def run(
        self,
        X: np.ndarray,
        initial_clusters: Sequence[SoftCluster],
        point_ids: Optional[Sequence[Any]] = None,
        label_sink: LabelSink | None = None,
    ) -> ClusteringResult:
        """fit и, если включено ``run_clustering``, финальная разметка."""
        clusters = self.fit(X, initial_clusters)
        labels: List[PointLabel] = []
        if self.config.run_clustering:
            labels = self.label(X, point_ids=point_ids, sink=label_sink)
        else:
            self.state = ClusteringState.DONE
        return ClusteringResult(
            clusters=clusters,
            iterations=self.n_iters_actual,
            converged=self.converged,
            labels=labels,
        )
