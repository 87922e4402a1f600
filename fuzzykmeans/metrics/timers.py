"""
Таймеры фаз итерации.

``Timer`` — контекстный менеджер на time.perf_counter(); ``IterationTimings``
накапливает времена фаз назначения и обновления за один fit.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, List


class Timer:
    """
    Контекстный менеджер для измерения времени выполнения кода.

    Пример использования:
        with Timer() as t:
            run_assignment()
        elapsed_time = t.elapsed
    """

    def __init__(self) -> None:
        self.start: float = 0.0
        self.end: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> Timer:
        self.start = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        self.end = time.perf_counter()
        self.elapsed = self.end - self.start


@dataclass
class IterationTimings:
    """Времена фаз по итерациям одного запуска."""

    assign: List[float] = field(default_factory=list)
    update: List[float] = field(default_factory=list)

    def record(self, t_assign: float, t_update: float) -> None:
        self.assign.append(t_assign)
        self.update.append(t_update)

    def reset(self) -> None:
        self.assign.clear()
        self.update.clear()

    @property
    def n_iterations(self) -> int:
        return len(self.assign)

    @property
    def assign_total(self) -> float:
        return float(sum(self.assign))

    @property
    def update_total(self) -> float:
        return float(sum(self.update))

    @property
    def iter_total(self) -> float:
        return self.assign_total + self.update_total
