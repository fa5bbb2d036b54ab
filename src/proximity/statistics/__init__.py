"""
Covariance estimation and Mahalanobis distances.
"""

from .covariance import estimate_covariance
from .mahalanobis import CovarianceFactor, factor_covariance, mahalanobis, mahalanobis_to

__all__ = [
    'estimate_covariance',
    'CovarianceFactor',
    'factor_covariance',
    'mahalanobis',
    'mahalanobis_to',
]
