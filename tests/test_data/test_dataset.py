"""
Тесты загрузки датасета, посева кластеров и проверки входа.
"""

import json

import numpy as np
import pytest

from fuzzykmeans.data import Dataset, random_seeds, seeds_from_centers, validate_clusters, validate_dataset
from fuzzykmeans.errors import DimensionMismatchError, EmptyClusterSetError, InvalidParameterError
from scripts.generate_datasets import DatasetConfig, DatasetGenerator


@pytest.fixture
def generated_file(tmp_path):
    generator = DatasetGenerator(base_seed=7, datasets_dir=tmp_path)
    return generator.generate_and_save(DatasetConfig(N=60, D=3, K=4))


def _write(path, lines):
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


class TestDataset:

    def test_roundtrip_generated_file(self, generated_file):
        dataset = Dataset(generated_file)

        assert dataset.X.shape == (60, 3)
        assert dataset.labels_true.shape == (60,)
        assert dataset.initial_centroids.shape == (4, 3)
        assert dataset.metadata["N"] == 60
        assert dataset.point_ids == list(range(60))
        assert dataset.dim == 3
        validate_dataset(dataset)

    def test_seed_clusters_from_centroids(self, generated_file):
        dataset = Dataset(generated_file)

        clusters = dataset.seed_clusters()

        assert [c.id for c in clusters] == ["C-0", "C-1", "C-2", "C-3"]
        np.testing.assert_allclose(clusters[2].center, dataset.initial_centroids[2])

    def test_without_centroids_section(self, tmp_path):
        path = _write(tmp_path / "plain.txt", ["0 1.0 2.0", "1 3.0 4.0"])

        dataset = Dataset(path)

        assert dataset.initial_centroids is None
        assert dataset.seed_clusters() == []
        np.testing.assert_array_equal(dataset.X, [[1.0, 2.0], [3.0, 4.0]])

    def test_ragged_rows(self, tmp_path):
        path = _write(tmp_path / "ragged.txt", ["0 1.0 2.0", "0 1.0"])

        with pytest.raises(DimensionMismatchError):
            Dataset(path)

    def test_centroid_dimension_mismatch(self, tmp_path):
        path = _write(
            tmp_path / "bad_centroids.txt",
            ["# Centroids", "0 0.0 0.0 0.0", "# Data points", "0 1.0 2.0"],
        )

        with pytest.raises(DimensionMismatchError):
            Dataset(path)


class TestValidation:

    def test_metadata_mismatch(self, tmp_path):
        path = _write(tmp_path / "meta.txt", ["# " + json.dumps({"N": 3, "D": 2}), "0 1.0 2.0"])

        with pytest.raises(DimensionMismatchError):
            validate_dataset(Dataset(path))

    def test_non_finite_values(self, tmp_path):
        path = _write(tmp_path / "nan.txt", ["0 1.0 nan"])

        with pytest.raises(InvalidParameterError):
            validate_dataset(Dataset(path))

    def test_validate_clusters(self):
        clusters = seeds_from_centers([[0.0, 0.0]])

        validate_clusters(clusters, 2)
        with pytest.raises(DimensionMismatchError):
            validate_clusters(clusters, 3)
        with pytest.raises(EmptyClusterSetError):
            validate_clusters([], 2)


class TestSeeding:

    def test_random_seeds_are_distinct_points(self, rng):
        X = rng.normal(size=(20, 2))

        clusters = random_seeds(X, 5, seed=1)

        assert [c.id for c in clusters] == [f"C-{k}" for k in range(5)]
        centers = np.array([c.center for c in clusters])
        assert len({tuple(c) for c in centers}) == 5
        for c in centers:
            assert np.any(np.all(X == c, axis=1))

    def test_random_seeds_reproducible(self, rng):
        X = rng.normal(size=(20, 2))

        a = random_seeds(X, 3, seed=123)
        b = random_seeds(X, 3, seed=123)

        for ca, cb in zip(a, b):
            np.testing.assert_array_equal(ca.center, cb.center)

    def test_k_capped_by_points(self):
        X = np.arange(6, dtype=float).reshape(3, 2)

        assert len(random_seeds(X, 10, seed=0)) == 3

    @pytest.mark.parametrize("k", [0, -2])
    def test_non_positive_k(self, k):
        with pytest.raises(EmptyClusterSetError):
            random_seeds(np.zeros((3, 2)), k)

    def test_empty_points(self):
        with pytest.raises(EmptyClusterSetError):
            random_seeds(np.empty((0, 2)), 2)

    def test_seeds_from_centers_prefix(self):
        clusters = seeds_from_centers([[1.0], [2.0]], prefix="seed-")

        assert [c.id for c in clusters] == ["seed-0", "seed-1"]
        assert all(c.num_points == 0.0 and not c.converged for c in clusters)
