"""
Визуализация результата нечёткой кластеризации (первые два признака).

Точки окрашены по наиболее вероятному кластеру, прозрачность — максимальный
вес принадлежности; центры показаны звёздами, радиусы — эллипсами.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.patches import Ellipse

from fuzzykmeans.core.cluster import SoftCluster


def _project_2d(values: np.ndarray) -> np.ndarray:
    if values.shape[1] >= 2:
        return values[:, :2]
    return np.column_stack([values[:, 0], np.zeros(len(values))])


def add_radius_ellipses(ax: Any, clusters: Sequence[SoftCluster]) -> None:
    """Эллипсы с полуосями, равными радиусу кластера по первым двум осям."""
    cmap = plt.cm.tab20c
    for k, cluster in enumerate(clusters):
        radius = cluster.radius[:2] if cluster.dim >= 2 else np.array([cluster.radius[0], 0.0])
        center = _project_2d(cluster.center[None, :])[0]
        ellipse = Ellipse(
            xy=center,
            width=2 * radius[0],
            height=2 * radius[1],
            alpha=0.15,
            color=cmap(k / max(1, len(clusters) - 1)),
            linestyle="--",
            linewidth=1,
        )
        ax.add_patch(ellipse)


def plot_fuzzy_clusters(
    X: np.ndarray,
    clusters: Sequence[SoftCluster],
    memberships: np.ndarray,
    save_path: str | Path,
    title: str = "Fuzzy k-means",
) -> Path:
    """
    Сохраняет scatter-график точек и кластеров.

    Args:
        X: Точки (N, D)
        clusters: Последний снимок кластеров
        memberships: Веса принадлежности (N, K)
        save_path: Путь PNG-файла
        title: Заголовок графика
    """
    save_path = Path(save_path)
    save_path.parent.mkdir(parents=True, exist_ok=True)

    points = _project_2d(X)
    centers = _project_2d(np.vstack([c.center for c in clusters]))
    labels = np.argmax(memberships, axis=1) if len(memberships) else np.array([], dtype=int)
    strength = memberships.max(axis=1) if len(memberships) else np.array([])

    fig, ax = plt.subplots(figsize=(8, 7))
    ax.scatter(
        points[:, 0],
        points[:, 1],
        c=labels,
        cmap="tab20c",
        alpha=np.clip(strength, 0.15, 1.0) if len(strength) else None,
        s=30,
        edgecolors="white",
        linewidth=0.5,
    )
    ax.scatter(
        centers[:, 0],
        centers[:, 1],
        c="#FF6B6B",
        marker="*",
        s=350,
        edgecolors="black",
        linewidth=2,
        label="Центры",
        zorder=10,
    )
    add_radius_ellipses(ax, clusters)

    ax.set_title(title, pad=15)
    ax.legend(loc="upper right")
    ax.grid(True, alpha=0.4, linestyle="--")

    fig.tight_layout()
    fig.savefig(save_path, dpi=120, bbox_inches="tight", facecolor="white")
    plt.close(fig)
    return save_path
