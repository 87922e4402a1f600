"""
Генератор синтетических датасетов для нечёткой кластеризации.

Создаёт перекрывающиеся гауссовы облака (sklearn.make_blobs), нормализует
их и сохраняет в текстовом формате, который читает fuzzykmeans.data.Dataset.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np
from sklearn.datasets import make_blobs
from sklearn.preprocessing import StandardScaler


@dataclass
class DatasetConfig:
    """Конфигурация параметров датасета."""

    N: int
    D: int
    K: int
    cluster_std: float = 1.0
    center_box_range: tuple[float, float] = (-3.0, 3.0)
    add_noise: bool = True
    noise_std: float = 0.1


@dataclass
class GeneratedDataset:
    """Контейнер для сгенерированных данных."""

    data: np.ndarray
    labels: np.ndarray
    centers: np.ndarray
    metadata: dict[str, Any]


class DatasetGenerator:
    """
    Генератор синтетических датасетов.

    Центры облаков записываются в секцию Centroids и используются
    командой ``main.py cluster`` как начальные кластеры.
    """

    def __init__(self, base_seed: int = 42, datasets_dir: str | Path = "datasets") -> None:
        self.base_seed = base_seed
        self.datasets_dir = Path(datasets_dir)

    def generate(self, config: DatasetConfig) -> GeneratedDataset:
        """
        Генерация облаков точек с помощью make_blobs.

        Args:
            config: Параметры N, D, K, разброса и шума

        Returns:
            GeneratedDataset с нормализованными точками и центрами
        """
        rng = np.random.default_rng(self.base_seed)

        data, labels, centers = make_blobs(
            n_samples=config.N,
            n_features=config.D,
            centers=config.K,
            cluster_std=config.cluster_std,
            center_box=config.center_box_range,
            random_state=self.base_seed,
            return_centers=True,
        )

        # Нормализация данных
        scaler = StandardScaler()
        data = scaler.fit_transform(data)
        centers = scaler.transform(centers)

        if config.add_noise:
            # Центры не шумим: они служат начальными кластерами
            data = data + rng.normal(0.0, config.noise_std, data.shape)

        metadata = {
            "N": config.N,
            "D": config.D,
            "K": config.K,
            "cluster_std": config.cluster_std,
            "center_box_range": list(config.center_box_range),
            "noise_std": config.noise_std if config.add_noise else None,
            "created_at": time.strftime("%Y-%m-%dT%H:%M:%S"),
            "kind": "overlapping_blobs",
            "scaled": True,
            "random_state": self.base_seed,
        }
        return GeneratedDataset(data, labels, centers, metadata)

    def save_dataset_txt(self, dataset: GeneratedDataset, filepath: str | Path) -> Path:
        """
        Сохранение датасета в текстовом формате.

        Формат файла:
        # Метаданные в формате JSON
        # Центроиды (K строк: метка + координаты)
        # Данные (N строк: метка + координаты)
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        with open(filepath, "w", encoding="utf-8") as f:
            f.write("# " + json.dumps(dataset.metadata, ensure_ascii=False) + "\n")
            f.write("\n")

            f.write("# Centroids (label, x1, x2, ..., xD)\n")
            for k, center in enumerate(dataset.centers):
                f.write(f"{k} " + " ".join(f"{coord:.8f}" for coord in center) + "\n")
            f.write("\n")

            f.write("# Data points (label, x1, x2, ..., xD)\n")
            for label, point in zip(dataset.labels, dataset.data):
                f.write(f"{label} " + " ".join(f"{coord:.8f}" for coord in point) + "\n")

        return filepath

    def generate_and_save(self, config: DatasetConfig, filename: str | None = None) -> Path:
        """Генерирует датасет и сохраняет его в ``datasets_dir``."""
        if filename is None:
            filename = f"N{config.N}_D{config.D}_K{config.K}.txt"
        dataset = self.generate(config)
        path = self.save_dataset_txt(dataset, self.datasets_dir / filename)
        print(f"  Сохранено: {path} ({config.N:,} точек, {config.D}D, K={config.K})")
        return path
