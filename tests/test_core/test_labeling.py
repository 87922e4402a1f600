"""
Тесты финальной разметки точек.
"""

import numpy as np
import pytest

from fuzzykmeans.core.distance import get_measure
from fuzzykmeans.core.labeling import (
    MostLikely,
    PointLabel,
    Threshold,
    label_points,
    labeling_policy,
    select_clusters,
)
from fuzzykmeans.core.membership import MembershipAssigner
from fuzzykmeans.data.seeding import seeds_from_centers
from fuzzykmeans.errors import InvalidParameterError


@pytest.fixture
def assigner():
    return MembershipAssigner(get_measure("euclidean"), 2.0)


@pytest.fixture
def triangle():
    """Три кластера в вершинах равностороннего треугольника."""
    h = np.sqrt(3.0) / 2.0
    return seeds_from_centers([[0.0, 0.0], [1.0, 0.0], [0.5, h]])


class TestPolicies:

    def test_from_flags(self):
        assert labeling_policy(True, 0.7) == MostLikely()
        assert labeling_policy(False, 0.25) == Threshold(0.25)

    @pytest.mark.parametrize("value", [-0.1, 1.0, 1.5])
    def test_threshold_range(self, value):
        with pytest.raises(InvalidParameterError):
            Threshold(value)

    def test_str(self):
        assert str(MostLikely()) == "most_likely"
        assert str(Threshold(0.5)) == "threshold>0.5"

    def test_select_most_likely_tie_goes_first(self, triangle):
        picked = select_clusters(np.array([0.4, 0.4, 0.2]), triangle, MostLikely())

        assert picked == [("C-0", 0.4)]

    def test_select_threshold_strict(self, triangle):
        picked = select_clusters(np.array([0.5, 0.3, 0.2]), triangle, Threshold(0.3))

        assert picked == [("C-0", 0.5)]

    def test_unknown_policy(self, triangle):
        with pytest.raises(InvalidParameterError):
            select_clusters(np.array([1.0, 0.0, 0.0]), triangle, "all")


class TestLabelPoints:

    def test_most_likely_exactly_one_record_per_point(self, assigner, triangle, rng):
        X = rng.uniform(-1, 2, size=(40, 2))

        labels = list(label_points(X, triangle, assigner, MostLikely(), batch_size=7))

        assert [r.point_id for r in labels] == list(range(40))
        W = assigner.memberships(X, triangle)
        for rec, row in zip(labels, W):
            assert rec.cluster_id == f"C-{int(np.argmax(row))}"
            assert rec.membership == pytest.approx(row.max())

    def test_threshold_emits_several_clusters(self, assigner, triangle):
        midpoint = np.array([[0.5, 0.0]])

        labels = list(label_points(midpoint, triangle, assigner, Threshold(0.3)))

        assert [r.cluster_id for r in labels] == ["C-0", "C-1"]

    def test_ambiguous_point_emits_nothing(self, assigner, triangle):
        # центр треугольника равноудалён: все веса 1/3
        centroid = np.array([[0.5, np.sqrt(3.0) / 6.0]])

        labels = list(label_points(centroid, triangle, assigner, Threshold(0.4)))

        assert labels == []

    def test_point_on_center(self, assigner, triangle):
        labels = list(label_points([[1.0, 0.0]], triangle, assigner, Threshold(0.0)))

        assert labels == [PointLabel(0, "C-1", 1.0)]

    def test_point_ids(self, assigner, triangle):
        labels = list(
            label_points(
                [[0.0, 0.1], [1.0, 0.1]], triangle, assigner, MostLikely(), point_ids=["a", "b"]
            )
        )

        assert [(r.point_id, r.cluster_id) for r in labels] == [("a", "C-0"), ("b", "C-1")]
        assert labels[0].to_dict()["point_id"] == "a"

    def test_point_ids_length_mismatch(self, assigner, triangle):
        with pytest.raises(InvalidParameterError):
            list(label_points([[0.0, 0.0]], triangle, assigner, MostLikely(), point_ids=[1, 2]))
