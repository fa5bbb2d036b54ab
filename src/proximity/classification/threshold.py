"""
Percentile Threshold Classification

Ranks every point of a dataset by Mahalanobis distance to a reference point
and selects the closest percentage:
- threshold_index = floor(N * percentage / 100)
- threshold_distance = sorted_distances[threshold_index]
- selected = distance <= threshold_distance (ties at the cutoff all selected)

NaN distances sort last and are never selected.
"""

from dataclasses import dataclass
import logging
import math

import numpy as np

from ..core.validation import as_dataset, as_point
from ..statistics.mahalanobis import (
    CovarianceFactor,
    CovarianceLike,
    factor_covariance,
    mahalanobis_to,
)


logger = logging.getLogger(__name__)


@dataclass
class ClassificationResult:
    """
    Per-point distances and selection flags.

    Attributes
    ----------
    distances : np.ndarray
        Mahalanobis distance of each point to the reference, shape (N,).
    selected : np.ndarray
        Boolean selection mask of shape (N,).
    threshold_distance : float
        Cutoff distance. +inf selects every non-NaN point, -inf selects none.
    threshold_index : int
        floor(N * percentage / 100), the rank the cutoff was read from.
    """
    distances: np.ndarray
    selected: np.ndarray
    threshold_distance: float
    threshold_index: int

    @property
    def n_selected(self) -> int:
        return int(np.sum(self.selected))

    @property
    def fraction_selected(self) -> float:
        if len(self.selected) == 0:
            return 0.0
        return float(np.mean(self.selected))

    def stats(self) -> dict:
        """
        Diagnostic statistics for the classification.

        Returns
        -------
        dict
            - points_selected: Count of selected points
            - points_unselected: Count of unselected points
            - fraction_selected: Fraction of points selected
            - threshold_distance: Cutoff distance
            - threshold_index: Rank of the cutoff
            - nan_distances: Count of NaN distances
        """
        return {
            'points_selected': self.n_selected,
            'points_unselected': int(len(self.selected) - self.n_selected),
            'fraction_selected': self.fraction_selected,
            'threshold_distance': float(self.threshold_distance),
            'threshold_index': int(self.threshold_index),
            'nan_distances': int(np.sum(np.isnan(self.distances))),
        }


def threshold_from_distances(distances: np.ndarray, percentage: float):
    """
    Derive the cutoff distance for a percentage of the closest points.

    Parameters
    ----------
    distances : np.ndarray
        Distances of shape (N,). May contain NaN.
    percentage : float
        Percentage of points to select. Not range-checked: values below 0
        (including -inf) select nothing, values at or above 100 (including
        +inf) select everything. NaN selects nothing and reports index -1.

    Returns
    -------
    tuple of (float, int)
        Threshold distance and threshold index.
    """
    n_points = len(distances)

    if math.isnan(percentage):
        return -np.inf, -1
    if math.isinf(percentage):
        return (np.inf, n_points) if percentage > 0 else (-np.inf, -1)

    threshold_index = int(math.floor(n_points * percentage / 100))

    if threshold_index < 0:
        return -np.inf, threshold_index

    if threshold_index >= n_points:
        return np.inf, threshold_index

    # np.sort places NaN after every number
    sorted_distances = np.sort(distances, kind='stable')
    threshold = float(sorted_distances[threshold_index])

    if np.isnan(threshold):
        return np.inf, threshold_index

    return threshold, threshold_index


def classify(
    dataset,
    reference,
    cov: CovarianceLike,
    percentage: float
) -> ClassificationResult:
    """
    Select the points closest to a reference point.

    Parameters
    ----------
    dataset : array-like
        Full dataset of shape (N, D). Every point is classified.
    reference : array-like
        Reference point of shape (D,).
    cov : np.ndarray or CovarianceFactor
        Covariance matrix of shape (D, D), or its factorization.
    percentage : float
        Percentage of closest points to select, normally in [0, 100].

    Returns
    -------
    ClassificationResult
        Distances, selection mask and threshold.
    """
    data = as_dataset(dataset)
    ref = as_point(reference, dims=data.shape[1])

    factor = cov if isinstance(cov, CovarianceFactor) else factor_covariance(cov)
    distances = mahalanobis_to(data, ref, factor)

    threshold, threshold_index = threshold_from_distances(distances, percentage)

    # NaN compares False, so NaN distances are never selected
    with np.errstate(invalid='ignore'):
        selected = distances <= threshold

    result = ClassificationResult(
        distances=distances,
        selected=selected,
        threshold_distance=threshold,
        threshold_index=threshold_index,
    )

    logger.debug(
        "classify: %d/%d points selected at %.4g (percentage %s)",
        result.n_selected, len(data), threshold, percentage,
    )
    return result
