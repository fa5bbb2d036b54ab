"""
Sample Covariance Module

Unbiased (n - 1 normalized) covariance estimate over a dataset, returned as
an exactly symmetric matrix.
"""

import logging
from typing import Optional

import numpy as np

from ..core.validation import as_dataset


logger = logging.getLogger(__name__)


def estimate_covariance(dataset, dims: Optional[int] = None) -> np.ndarray:
    """
    Compute the sample covariance matrix of a dataset.

    C[i, j] = sum((p[i] - mean[i]) * (p[j] - mean[j])) / (n - 1)

    Parameters
    ----------
    dataset : array-like
        Points of shape (N, D), N >= 2.
    dims : int, optional
        Expected dimensionality D. Inferred from the data if None.

    Returns
    -------
    np.ndarray
        Covariance matrix of shape (D, D) with C[i, j] == C[j, i] exactly.
    """
    data = as_dataset(dataset, dims=dims)
    n_points = len(data)

    if n_points < 2:
        raise ValueError(
            f"Need at least 2 points to estimate a sample covariance, got {n_points}"
        )

    centered = data - data.mean(axis=0)
    cov = centered.T @ centered / (n_points - 1)

    # Float addition commutes, so averaging with the transpose is exact symmetry
    cov = 0.5 * (cov + cov.T)

    logger.debug("Estimated %dx%d covariance from %d points", cov.shape[0], cov.shape[1], n_points)
    return cov
