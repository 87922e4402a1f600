"""
Разбиение точек на партиции и исполнители прохода назначения.

Один и тот же проход (назначение весов + частичное слияние внутри партиции)
выполняется либо в текущем процессе, либо в пуле процессов с общим X.
Между воркерами нет координации до барьера финального слияния.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from multiprocessing import Pool, RawArray, active_children, cpu_count
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

import numpy as np

from fuzzykmeans.core.cluster import SoftCluster
from fuzzykmeans.core.membership import MembershipAssigner
from fuzzykmeans.core.statistics import SufficientStatistics, partial_merge
from fuzzykmeans.errors import ClusteringError, InvalidParameterError, PartitionFailedError

Partial = Dict[str, SufficientStatistics]


@dataclass(frozen=True)
class MultiprocessingConfig:
    """Параметры распределённого режима."""

    n_processes: int = 4
    # Число партиций; None: по одной на процесс
    n_partitions: Optional[int] = None
    # Размер партиции в точках; имеет приоритет над n_partitions
    chunk_size: Optional[int] = None
    max_retries: int = 2
    task_timeout: Optional[float] = None

    def __post_init__(self) -> None:
        if self.n_processes <= 0:
            raise InvalidParameterError("n_processes must be positive")
        if self.n_partitions is not None and self.n_partitions <= 0:
            raise InvalidParameterError("n_partitions must be positive")
        if self.chunk_size is not None and self.chunk_size <= 0:
            raise InvalidParameterError("chunk_size must be positive")
        if self.max_retries < 0:
            raise InvalidParameterError("max_retries must be non-negative")
        if self.task_timeout is not None and self.task_timeout <= 0:
            raise InvalidParameterError("task_timeout must be positive")


# --- Стратегии разбиения ---


class Partitioner(ABC):
    @abstractmethod
    def split(self, N: int) -> List[np.ndarray]:
        """Индексы точек каждой партиции."""
        raise NotImplementedError


class SinglePartition(Partitioner):
    """Тривиальное разбиение: все точки в одной партиции."""

    def split(self, N: int) -> List[np.ndarray]:
        return [np.arange(N)]


class ChunkedPartitions(Partitioner):
    """Разбиение на n_partitions примерно равных частей или куски по chunk_size."""

    def __init__(self, n_partitions: Optional[int] = None, chunk_size: Optional[int] = None) -> None:
        if n_partitions is None and chunk_size is None:
            raise InvalidParameterError("Either n_partitions or chunk_size is required")
        if chunk_size is not None and chunk_size <= 0:
            raise InvalidParameterError("chunk_size must be positive")
        if n_partitions is not None and n_partitions <= 0:
            raise InvalidParameterError("n_partitions must be positive")
        self.n_partitions = n_partitions
        self.chunk_size = chunk_size

    def split(self, N: int) -> List[np.ndarray]:
        if self.chunk_size is not None:
            cs = int(self.chunk_size)
            chunks = [np.arange(i, min(i + cs, N)) for i in range(0, N, cs)]
        else:
            chunks = np.array_split(np.arange(N), int(self.n_partitions))
        chunks = [idx for idx in chunks if idx.size > 0]
        # пустой вход всё равно даёт одну (пустую) партицию
        return chunks or [np.arange(0)]


# --- Тело задачи партиции ---


def partition_pass(
    X_part: np.ndarray,
    clusters: Sequence[SoftCluster],
    assigner: MembershipAssigner,
    batch_size: int,
) -> Partial:
    """
    Проход назначения по одной партиции с локальным комбайнером.

    Точки обрабатываются блоками по ``batch_size``; вклады блоков
    сворачиваются ``partial_merge`` в одну статистику на кластер.
    """
    contributions = (
        assigner.assign_batch(X_part[start:start + batch_size], clusters)
        for start in range(0, X_part.shape[0], batch_size)
    )
    return partial_merge(contributions)


# --- Глобальное состояние: shared X в воркерах ---
_SHARED_X_BUF: RawArray | None = None
_SHARED_X_SHAPE: Tuple[int, int] | None = None


def _init_shared_X(raw: RawArray, shape: Tuple[int, int]) -> None:
    """Инициализатор пула: регистрирует shared X."""
    global _SHARED_X_BUF, _SHARED_X_SHAPE
    _SHARED_X_BUF = raw
    _SHARED_X_SHAPE = shape


def _get_shared_X() -> np.ndarray:
    """NumPy-представление shared X."""
    assert _SHARED_X_BUF is not None and _SHARED_X_SHAPE is not None
    arr = np.frombuffer(_SHARED_X_BUF, dtype=np.float64)
    return arr.reshape(_SHARED_X_SHAPE)


def _partition_worker(
    args: Tuple[np.ndarray, Sequence[SoftCluster], MembershipAssigner, int],
) -> Partial:
    """Задача воркера: индексы партиции + снимок, X читается из shared."""
    idx, clusters, assigner, batch_size = args
    X = _get_shared_X()
    return partition_pass(X[idx], clusters, assigner, batch_size)


# --- Исполнители ---


class PartitionExecutor(ABC):
    """
    Исполнитель прохода назначения по всем партициям одной итерации.

    Используется как контекстный менеджер на время одного fit:
    ресурсы (пул, shared X) создаются один раз и гарантированно освобождаются.
    """

    def __init__(self, partitioner: Partitioner, batch_size: int = 1024) -> None:
        if batch_size <= 0:
            raise InvalidParameterError("batch_size must be positive")
        self.partitioner = partitioner
        self.batch_size = batch_size
        self._X: Optional[np.ndarray] = None
        self._partitions: Optional[List[np.ndarray]] = None

    def open(self, X: np.ndarray) -> None:
        self._X = X
        self._partitions = self.partitioner.split(X.shape[0])

    def close(self) -> None:
        self._X = None
        self._partitions = None

    @property
    def n_partitions(self) -> int:
        return len(self._partitions or [])

    def __enter__(self) -> PartitionExecutor:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    @abstractmethod
    def run(self, clusters: Sequence[SoftCluster], assigner: MembershipAssigner) -> List[Partial]:
        """Частичные статистики всех партиций в порядке партиций."""
        raise NotImplementedError


class SequentialExecutor(PartitionExecutor):
    """Все партиции обрабатываются по очереди в текущем процессе."""

    def __init__(self, partitioner: Partitioner | None = None, batch_size: int = 1024) -> None:
        super().__init__(partitioner or SinglePartition(), batch_size)

    def run(self, clusters: Sequence[SoftCluster], assigner: MembershipAssigner) -> List[Partial]:
        assert self._X is not None and self._partitions is not None
        return [
            partition_pass(self._X[idx], clusters, assigner, self.batch_size)
            for idx in self._partitions
        ]


class WorkerLostError(Exception):
    """Процесс пула завершился, не вернув результат задачи."""


class MultiprocessingExecutor(PartitionExecutor):
    """
    Партиции обрабатываются пулом процессов с общим X (пул один раз на fit).

    Упавшая задача партиции перезапускается с того же опубликованного
    снимка: проход только читает кластеры и лишь добавляет в накопители.
    Сбоем считается исключение внутри задачи, превышение ``task_timeout``
    и гибель процесса пула (Pool сам её не сообщает, поэтому живость
    процессов проверяется при ожидании). Доменные ошибки (ClusteringError)
    не повторяются.
    """

    # Период опроса готовности задачи и живости процессов пула, с
    poll_interval = 0.05

    def __init__(
        self,
        mp: MultiprocessingConfig = MultiprocessingConfig(),
        partitioner: Partitioner | None = None,
        batch_size: int = 1024,
        logger: logging.Logger | None = None,
    ) -> None:
        n_procs = max(1, min(int(mp.n_processes), cpu_count()))
        if partitioner is None:
            partitioner = ChunkedPartitions(
                n_partitions=mp.n_partitions or n_procs, chunk_size=mp.chunk_size
            )
        super().__init__(partitioner, batch_size)
        self.mp = mp
        self.n_procs = n_procs
        self.logger = logger
        self._pool: Optional[Pool] = None
        # PID процессов пула и дочерних процессов, существовавших до него
        self._workers: Set[int] = set()
        self._foreign: Set[int] = set()
        # Число перезапусков партиций за время жизни исполнителя
        self.retries = 0
        # Есть задачи, результат которых уже не придёт: пул только terminate()
        self.abandoned = False

    def open(self, X: np.ndarray) -> None:
        """Копирует X один раз в shared RawArray и поднимает пул."""
        super().open(X)
        X_c = np.ascontiguousarray(X, dtype=np.float64)
        raw = RawArray("d", int(X_c.size))
        shared_view = np.frombuffer(raw, dtype=np.float64).reshape(X_c.shape)
        shared_view[:] = X_c

        self._foreign = {p.pid for p in active_children()}
        self._pool = Pool(
            processes=self.n_procs,
            initializer=_init_shared_X,
            initargs=(raw, X_c.shape),
        )
        self._workers = self._alive_workers()
        self.abandoned = False

    def close(self) -> None:
        """Закрыть пул после fit."""
        if self._pool is not None:
            if self.abandoned:
                # Потерянные задачи остаются в кэше пула: штатный join не вернётся
                self._pool.terminate()
            else:
                self._pool.close()
            self._pool.join()
        self._pool = None
        self._workers = set()
        super().close()

    def _alive_workers(self) -> Set[int]:
        return {p.pid for p in active_children()} - self._foreign

    def _workers_lost(self) -> bool:
        """Умер ли какой-либо процесс пула с прошлой проверки."""
        alive = self._alive_workers()
        lost = self._workers - alive
        # Замены, поднятые пулом, отслеживаются со следующей проверки
        self._workers = alive
        return bool(lost)

    def _submit(self, args: Tuple[Any, ...]) -> Any:
        assert self._pool is not None
        return self._pool.apply_async(_partition_worker, (args,))

    def _wait(self, handle: Any) -> Partial:
        """Результат задачи; WorkerLostError или TimeoutError, если его не будет."""
        timeout = self.mp.task_timeout
        deadline = None if timeout is None else time.monotonic() + timeout
        while not handle.ready():
            handle.wait(self.poll_interval)
            if handle.ready():
                break
            if self._workers_lost():
                raise WorkerLostError("A pool worker exited before returning its result")
            if deadline is not None and time.monotonic() >= deadline:
                raise TimeoutError(f"No result within {timeout}s")
        return handle.get()

    def run(self, clusters: Sequence[SoftCluster], assigner: MembershipAssigner) -> List[Partial]:
        assert self._pool is not None and self._partitions is not None

        args_list = [
            (idx, list(clusters), assigner, self.batch_size) for idx in self._partitions
        ]
        handles = [self._submit(args) for args in args_list]
        attempts = [1] * len(args_list)

        # Барьер: ждём все партиции, прежде чем отдавать результат на слияние
        results: List[Partial] = []
        for part, args in enumerate(args_list):
            while True:
                try:
                    results.append(self._wait(handles[part]))
                    break
                except ClusteringError:
                    raise
                except Exception as exc:
                    if isinstance(exc, (WorkerLostError, TimeoutError)):
                        self.abandoned = True
                    if attempts[part] > self.mp.max_retries:
                        raise PartitionFailedError(part, attempts[part]) from exc
                    self.retries += 1
                    if self.logger:
                        self.logger.warning(
                            f"  Partition {part} failed ({exc!r}), "
                            f"retry {attempts[part]}/{self.mp.max_retries}"
                        )
                    attempts[part] += 1
                    if isinstance(exc, WorkerLostError):
                        # Неизвестно, чьи задачи были у погибшего процесса
                        for later in range(part + 1, len(args_list)):
                            if not handles[later].ready():
                                handles[later] = self._submit(args_list[later])
                    handles[part] = self._submit(args)
        return results
