"""
Mahalanobis Distance Module

Computes d = sqrt((a - b)^T C^-1 (a - b)) without forming C^-1. The
covariance matrix is LU-factorized once and each product C^-1 x comes from
a triangular solve.

Singular, non-finite or indefinite matrices are not an error: distances come
back as NaN or Infinity and a SingularCovarianceWarning is issued.
"""

from dataclasses import dataclass
import logging
from typing import Union
import warnings

import numpy as np
from scipy.linalg import LinAlgWarning, lu_factor, lu_solve

from ..core.validation import (
    EPS,
    SingularCovarianceWarning,
    as_covariance,
    as_dataset,
    as_point,
)


logger = logging.getLogger(__name__)

# Relative size of a negative quadratic form still treated as rounding noise
ROUNDING_TOL = 1e-9


@dataclass
class CovarianceFactor:
    """
    LU factorization of a covariance matrix.

    Attributes
    ----------
    lu : np.ndarray
        Combined L and U factors of shape (D, D).
    piv : np.ndarray
        Pivot indices of shape (D,).
    singular : bool
        True when a pivot is zero, non-finite or negligible relative to the
        largest pivot.
    """
    lu: np.ndarray
    piv: np.ndarray
    singular: bool

    @property
    def dims(self) -> int:
        return self.lu.shape[0]

    def solve(self, rhs: np.ndarray) -> np.ndarray:
        """Return C^-1 @ rhs for rhs of shape (D,) or (D, K)."""
        return lu_solve((self.lu, self.piv), rhs, check_finite=False)


CovarianceLike = Union[np.ndarray, CovarianceFactor]


def factor_covariance(cov) -> CovarianceFactor:
    """
    LU-factorize a covariance matrix for repeated distance evaluation.

    Parameters
    ----------
    cov : array-like
        Covariance matrix of shape (D, D).

    Returns
    -------
    CovarianceFactor
        Factorization usable by mahalanobis() and mahalanobis_to().
    """
    mat = as_covariance(cov)

    with warnings.catch_warnings():
        # Zero pivots are reported below as SingularCovarianceWarning
        warnings.simplefilter("ignore", LinAlgWarning)
        lu, piv = lu_factor(mat, check_finite=False)

    pivots = np.abs(np.diag(lu))
    if not np.all(np.isfinite(pivots)):
        singular = True
    else:
        largest = pivots.max() if pivots.size else 0.0
        singular = bool(largest == 0.0 or pivots.min() <= EPS * largest)

    if singular:
        logger.warning(
            "Covariance matrix is singular or ill-conditioned (pivots %s); "
            "distances may be NaN or infinite", pivots,
        )
        warnings.warn(
            "Covariance matrix is singular or ill-conditioned; "
            "Mahalanobis distances may be NaN or infinite",
            SingularCovarianceWarning,
            stacklevel=2,
        )

    return CovarianceFactor(lu=lu, piv=piv, singular=singular)


def _as_factor(cov: CovarianceLike) -> CovarianceFactor:
    if isinstance(cov, CovarianceFactor):
        return cov
    return factor_covariance(cov)


def _quadratic_distances(diffs: np.ndarray, factor: CovarianceFactor) -> np.ndarray:
    if len(diffs) == 0:
        return np.zeros(0, dtype=np.float64)

    with np.errstate(invalid='ignore', divide='ignore', over='ignore'):
        solved = factor.solve(diffs.T).T
        q = np.sum(diffs * solved, axis=1)

        if factor.singular:
            # A negative form from a degenerate matrix is meaningless, not zero
            q = np.where(q < 0, np.nan, q)
        else:
            # Rounding can push a zero form slightly negative; anything below
            # the rounding scale of its own terms means C is not positive definite
            scale = np.sum(np.abs(diffs * solved), axis=1)
            indefinite = q < -ROUNDING_TOL * scale
            if np.any(indefinite):
                logger.warning(
                    "Negative quadratic form for %d of %d points; covariance matrix "
                    "is not positive definite", int(np.sum(indefinite)), len(q),
                )
                warnings.warn(
                    "Covariance matrix is not positive definite; "
                    "affected Mahalanobis distances are NaN",
                    SingularCovarianceWarning,
                    stacklevel=3,
                )
            q = np.where(indefinite, np.nan, np.maximum(q, 0.0))

        return np.sqrt(q)


def mahalanobis_to(points, reference, cov: CovarianceLike) -> np.ndarray:
    """
    Mahalanobis distance from every point to a reference point.

    Parameters
    ----------
    points : array-like
        Points of shape (N, D).
    reference : array-like
        Reference point of shape (D,).
    cov : np.ndarray or CovarianceFactor
        Covariance matrix of shape (D, D), or its factorization.

    Returns
    -------
    np.ndarray
        Distances of shape (N,). Non-negative, or NaN/Infinity when the
        covariance matrix is degenerate.
    """
    factor = _as_factor(cov)
    data = as_dataset(points, dims=factor.dims)
    ref = as_point(reference, dims=factor.dims)

    return _quadratic_distances(data - ref, factor)


def mahalanobis(a, b, cov: CovarianceLike) -> float:
    """
    Mahalanobis distance between two points.

    Parameters
    ----------
    a, b : array-like
        Points of shape (D,).
    cov : np.ndarray or CovarianceFactor
        Covariance matrix of shape (D, D), or its factorization.

    Returns
    -------
    float
        Distance >= 0; 0 when a == b. NaN or Infinity for a degenerate matrix.
    """
    factor = _as_factor(cov)
    a = as_point(a, dims=factor.dims)
    b = as_point(b, dims=factor.dims)

    return float(_quadratic_distances((a - b).reshape(1, -1), factor)[0])
