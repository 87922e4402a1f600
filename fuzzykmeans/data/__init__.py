from .seeding import random_seeds, seeds_from_centers
from .dataset import Dataset
from .validation import validate_clusters, validate_dataset

__all__ = [
    "Dataset",
    "random_seeds",
    "seeds_from_centers",
    "validate_dataset",
    "validate_clusters",
]
