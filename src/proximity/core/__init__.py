"""
Core data validation.
"""

from .validation import (
    EPS,
    SingularCovarianceWarning,
    as_dataset,
    as_point,
    as_covariance,
)

__all__ = [
    'EPS',
    'SingularCovarianceWarning',
    'as_dataset',
    'as_point',
    'as_covariance',
]
