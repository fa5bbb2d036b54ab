"""
Subsampling Module

Reduces a dataset to a target size before covariance estimation using one
of three strategies:
- random: uniform shuffle, keep the first rows
- systematic: every step-th row in original order
- cluster: single-pass nearest-center grouping with proportional quotas

Subsampling only feeds the covariance estimate. Classification always runs
over the full dataset.
"""

from dataclasses import dataclass
from enum import Enum
import logging
from time import perf_counter
from typing import Optional, Union

import numpy as np
from sklearn.metrics import pairwise_distances

from ..core.validation import as_dataset


logger = logging.getLogger(__name__)

# Upper bound on the number of cluster centers
MAX_CLUSTERS = 10

# Target rows per cluster center
POINTS_PER_CLUSTER = 50

RandomSource = Union[None, int, np.random.Generator]


class SamplingMethod(str, Enum):
    """Available subsampling strategies."""
    RANDOM = "random"
    SYSTEMATIC = "systematic"
    CLUSTER = "cluster"


@dataclass
class SubsampleSpec:
    """
    Requested subsample size and strategy.

    Attributes
    ----------
    target_size : int, optional
        Number of rows to keep. None, values <= 0 and values >= the dataset
        size all mean "use the full dataset".
    method : SamplingMethod
        Strategy used to pick the rows.
    """
    target_size: Optional[int] = None
    method: Union[str, SamplingMethod] = SamplingMethod.RANDOM

    def __post_init__(self):
        self.method = SamplingMethod(self.method)


def _random_rows(
    data: np.ndarray,
    target_size: int,
    rng: np.random.Generator
) -> np.ndarray:
    order = rng.permutation(len(data))
    return data[order[:target_size]]


def _systematic_rows(data: np.ndarray, target_size: int) -> np.ndarray:
    step = len(data) // target_size
    return data[::step][:target_size].copy()


def _cluster_rows(
    data: np.ndarray,
    target_size: int,
    rng: np.random.Generator
) -> np.ndarray:
    """
    Proportional sampling from a single k-means style assignment pass.

    Centers are the first k rows of the dataset (no refinement). Each cluster
    contributes floor(cluster_size / n * target_size) shuffled members, so the
    result can be shorter than target_size. When k is zero the result is empty.
    """
    n_points = len(data)
    k = min(MAX_CLUSTERS, target_size // POINTS_PER_CLUSTER)

    if k == 0:
        logger.warning(
            "Cluster sampling with target_size=%d yields no clusters; returning no rows",
            target_size,
        )
        return data[:0].copy()

    centers = data[:k]

    # argmin keeps the first center on ties
    sq_dist = pairwise_distances(data, centers, metric="sqeuclidean")
    labels = np.argmin(sq_dist, axis=1)

    kept = []
    for c in range(k):
        members = data[labels == c]
        quota = len(members) * target_size // n_points
        if quota == 0:
            continue
        kept.append(members[rng.permutation(len(members))[:quota]])

    if not kept:
        return data[:0].copy()

    return np.vstack(kept)


def subsample(
    dataset,
    target_size: Optional[int] = None,
    method: Union[str, SamplingMethod] = SamplingMethod.RANDOM,
    rng: RandomSource = None
) -> np.ndarray:
    """
    Reduce a dataset to approximately target_size rows.

    Parameters
    ----------
    dataset : array-like
        Points of shape (N, D).
    target_size : int, optional
        Requested number of rows. None, values <= 0 and values >= N return
        the dataset unchanged.
    method : str or SamplingMethod
        One of 'random', 'systematic' or 'cluster'. Default 'random'.
    rng : int or np.random.Generator, optional
        Random source for the random and cluster strategies.

    Returns
    -------
    np.ndarray
        Selected rows of shape (M, D), M <= target_size. Every row is a row of
        the input dataset.
    """
    data = as_dataset(dataset)
    method = SamplingMethod(method)

    if target_size is None or target_size <= 0 or target_size >= len(data):
        return data

    start = perf_counter()
    generator = np.random.default_rng(rng)

    if method is SamplingMethod.RANDOM:
        result = _random_rows(data, target_size, generator)
    elif method is SamplingMethod.SYSTEMATIC:
        result = _systematic_rows(data, target_size)
    else:
        result = _cluster_rows(data, target_size, generator)

    logger.debug(
        "subsample(%s): %d -> %d rows (target %d) in %.4fs",
        method.value, len(data), len(result), target_size, perf_counter() - start,
    )
    return result
