"""
Boundary checks for point data.

Contains utility functions for:
- Converting array-likes to float datasets and points
- Dimension checks between datasets, reference points and matrices
"""

from typing import Optional

import numpy as np


# Numerical tolerance for floating point comparisons
EPS = 1e-10


class SingularCovarianceWarning(RuntimeWarning):
    """Issued when a covariance matrix cannot be reliably inverted."""


def as_dataset(points, dims: Optional[int] = None) -> np.ndarray:
    """
    Convert an array-like of points to a float dataset.

    Parameters
    ----------
    points : array-like
        Sequence of equal-length numeric rows, shape (N, D).
    dims : int, optional
        Expected dimensionality. Checked when given.

    Returns
    -------
    np.ndarray
        Dataset of shape (N, D) and dtype float64. An input that is already
        a float64 2D array is returned as the same object.
    """
    try:
        data = np.asarray(points, dtype=np.float64)
    except ValueError as e:
        raise ValueError(f"Points must be equal-length numeric rows: {e}") from e

    if data.ndim == 1 and data.size == 0:
        data = data.reshape(0, dims if dims is not None else 0)

    if data.ndim != 2:
        raise ValueError(f"Expected points of shape (N, D), got {data.shape}")

    if dims is not None and data.shape[1] != dims:
        raise ValueError(
            f"Expected points with {dims} dimensions, got {data.shape[1]}"
        )

    return data


def as_point(point, dims: Optional[int] = None) -> np.ndarray:
    """
    Convert a single point to a float vector.

    Parameters
    ----------
    point : array-like
        Coordinates of shape (D,).
    dims : int, optional
        Expected dimensionality. Checked when given.

    Returns
    -------
    np.ndarray
        Point of shape (D,).
    """
    vec = np.asarray(point, dtype=np.float64)

    if vec.ndim != 1:
        raise ValueError(f"Expected a point of shape (D,), got {vec.shape}")

    if dims is not None and vec.shape[0] != dims:
        raise ValueError(
            f"Reference point has {vec.shape[0]} dimensions, dataset has {dims}"
        )

    return vec


def as_covariance(cov, dims: Optional[int] = None) -> np.ndarray:
    """
    Convert a covariance matrix to a square float array.

    Parameters
    ----------
    cov : array-like
        Matrix of shape (D, D).
    dims : int, optional
        Expected dimensionality. Checked when given.

    Returns
    -------
    np.ndarray
        Matrix of shape (D, D).
    """
    mat = np.asarray(cov, dtype=np.float64)

    if mat.ndim != 2 or mat.shape[0] != mat.shape[1]:
        raise ValueError(f"Expected a square covariance matrix, got {mat.shape}")

    if dims is not None and mat.shape[0] != dims:
        raise ValueError(
            f"Covariance matrix is {mat.shape[0]}x{mat.shape[0]}, points have {dims} dimensions"
        )

    return mat
