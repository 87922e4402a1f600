from .statistics import SufficientStatistics, merge, partial_merge, final_merge
from .cluster import SoftCluster
from .distance import (
    DistanceMeasure,
    available_measures,
    get_measure,
    register_measure,
)
from .membership import MEMBERSHIP_FLOOR, MembershipAssigner
from .convergence import ConvergenceChecker
from .labeling import MostLikely, PointLabel, Threshold, labeling_policy
from .partitioning import (
    ChunkedPartitions,
    MultiprocessingConfig,
    MultiprocessingExecutor,
    SequentialExecutor,
    SinglePartition,
)

# Оркестратор (core.engine) зависит от fuzzykmeans.config и импортируется напрямую

__all__ = [
    "SufficientStatistics",
    "merge",
    "partial_merge",
    "final_merge",
    "SoftCluster",
    "DistanceMeasure",
    "available_measures",
    "get_measure",
    "register_measure",
    "MEMBERSHIP_FLOOR",
    "MembershipAssigner",
    "ConvergenceChecker",
    "MostLikely",
    "Threshold",
    "PointLabel",
    "labeling_policy",
    "ChunkedPartitions",
    "MultiprocessingConfig",
    "MultiprocessingExecutor",
    "SequentialExecutor",
    "SinglePartition",
]
