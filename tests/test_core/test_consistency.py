"""
Тесты согласованности последовательного и распределённого режимов.

Критически важно: результат не зависит от разбиения на партиции, размера
блока и исполнителя; различается только порядок суммирования.
"""

import os
import time
from multiprocessing import cpu_count, parent_process

import numpy as np
import pytest

from fuzzykmeans.config import FuzzyKMeansConfig
from fuzzykmeans.core.distance import SquaredEuclideanDistance
from fuzzykmeans.core.engine import ClusteringState, FuzzyKMeans
from fuzzykmeans.core.partitioning import ChunkedPartitions, MultiprocessingConfig
from fuzzykmeans.errors import DistanceMeasureError


class _OnceInWorker(SquaredEuclideanDistance):
    """
    Мера, которая один раз за тест ломает процесс пула.

    Маркер-файл создаётся атомарно, поэтому сбой происходит ровно в одной
    задаче; в родительском процессе мера ведёт себя как обычная.
    """

    def __init__(self, marker):
        self.marker = str(marker)

    def _first_call_in_worker(self):
        if parent_process() is None:
            return False
        try:
            fd = os.open(self.marker, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            return False
        os.close(fd)
        return True


class CrashingMeasure(_OnceInWorker):
    def pairwise(self, X, C):
        if self._first_call_in_worker():
            os._exit(1)
        return super().pairwise(X, C)


class StallingMeasure(_OnceInWorker):
    def pairwise(self, X, C):
        if self._first_call_in_worker():
            time.sleep(60)
        return super().pairwise(X, C)


class TypeErrorMeasure(SquaredEuclideanDistance):
    def pairwise(self, X, C):
        raise TypeError("unsupported operand in measure")


def _assert_same_snapshots(reference, other, rtol=1e-9, atol=1e-12):
    assert len(reference) == len(other)
    for snap_ref, snap_other in zip(reference, other):
        assert [c.id for c in snap_ref] == [c.id for c in snap_other]
        for a, b in zip(snap_ref, snap_other):
            np.testing.assert_allclose(a.center, b.center, rtol=rtol, atol=atol)
            np.testing.assert_allclose(a.radius, b.radius, rtol=1e-7, atol=1e-9)
            assert a.num_points == pytest.approx(b.num_points, rel=rtol)
            assert a.converged == b.converged


def _fit(X, clusters, partitioner=None, measure=None, **config_kwargs):
    config = FuzzyKMeansConfig(convergence_delta=1e-12, max_iterations=5, **config_kwargs)
    model = FuzzyKMeans(config, measure=measure, partitioner=partitioner)
    model.fit(X, clusters)
    return model


class TestPartitionInvariance:
    """Снимки всех итераций совпадают при любом разбиении."""

    @pytest.mark.parametrize("n_partitions", [1, 2, 3, 7])
    @pytest.mark.parametrize("batch_size", [1, 7, 1024])
    def test_chunked_vs_single(self, medium_dataset, n_partitions, batch_size):
        X, clusters = medium_dataset
        reference = _fit(X, clusters)

        model = _fit(
            X, clusters, partitioner=ChunkedPartitions(n_partitions), batch_size=batch_size
        )

        assert model.n_iters_actual == reference.n_iters_actual
        _assert_same_snapshots(reference.snapshots, model.snapshots)

    def test_chunk_size_partitioning(self, small_dataset):
        X, clusters = small_dataset
        reference = _fit(X, clusters)

        model = _fit(X, clusters, partitioner=ChunkedPartitions(chunk_size=11))

        _assert_same_snapshots(reference.snapshots, model.snapshots)

    def test_more_partitions_than_points(self, two_cluster_points):
        X, clusters = two_cluster_points
        reference = _fit(X, clusters)

        model = _fit(X, clusters, partitioner=ChunkedPartitions(10))

        _assert_same_snapshots(reference.snapshots, model.snapshots)


class TestSequentialVsMultiprocessing:

    def test_multiprocessing_matches_sequential(self, medium_dataset):
        """Sequential и пул процессов должны давать одинаковые снимки."""
        X, clusters = medium_dataset
        reference = _fit(X, clusters)

        model = _fit(
            X,
            clusters,
            run_sequential=False,
            mp=MultiprocessingConfig(n_processes=2, n_partitions=3),
        )

        _assert_same_snapshots(reference.snapshots, model.snapshots)

    def test_multiprocessing_labels_match_sequential(self, small_dataset):
        X, clusters = small_dataset
        seq = FuzzyKMeans(FuzzyKMeansConfig(run_clustering=True)).run(X, clusters)
        mp = FuzzyKMeans(
            FuzzyKMeansConfig(
                run_clustering=True,
                run_sequential=False,
                mp=MultiprocessingConfig(n_processes=2),
            )
        ).run(X, clusters)

        assert [(r.point_id, r.cluster_id) for r in seq.labels] == [
            (r.point_id, r.cluster_id) for r in mp.labels
        ]


class TestWorkerFailures:
    """Сбои процессов пула на реальном Pool."""

    def test_dead_worker_is_replaced_and_partition_retried(self, medium_dataset, tmp_path):
        X, clusters = medium_dataset
        reference = _fit(X, clusters)

        start = time.monotonic()
        model = _fit(
            X,
            clusters,
            measure=CrashingMeasure(tmp_path / "crashed"),
            run_sequential=False,
            mp=MultiprocessingConfig(n_processes=2, n_partitions=2, max_retries=2),
        )
        elapsed = time.monotonic() - start

        assert (tmp_path / "crashed").exists()
        assert elapsed < 60
        _assert_same_snapshots(reference.snapshots, model.snapshots)

    @pytest.mark.skipif(cpu_count() < 2, reason="нужны два процесса пула")
    def test_stalled_task_does_not_block_shutdown(self, medium_dataset, tmp_path):
        X, clusters = medium_dataset
        reference = _fit(X, clusters)

        start = time.monotonic()
        model = _fit(
            X,
            clusters,
            measure=StallingMeasure(tmp_path / "stalled"),
            run_sequential=False,
            mp=MultiprocessingConfig(
                n_processes=2, n_partitions=2, max_retries=2, task_timeout=1.0
            ),
        )
        elapsed = time.monotonic() - start

        # зависший процесс завершается вместе с пулом, а не дожидается sleep
        assert elapsed < 30
        _assert_same_snapshots(reference.snapshots, model.snapshots)


class TestMeasureErrors:
    """Ошибка меры выглядит одинаково в обоих режимах и не повторяется."""

    @pytest.mark.parametrize("run_sequential", [True, False])
    def test_foreign_exception_becomes_distance_error(self, small_dataset, run_sequential):
        X, clusters = small_dataset
        model = FuzzyKMeans(
            FuzzyKMeansConfig(
                run_sequential=run_sequential,
                mp=MultiprocessingConfig(n_processes=2, max_retries=3),
            ),
            measure=TypeErrorMeasure(),
        )

        with pytest.raises(DistanceMeasureError) as excinfo:
            model.fit(X, clusters)

        assert "unsupported operand" in str(excinfo.value)
        assert model.state is ClusteringState.FAILED
