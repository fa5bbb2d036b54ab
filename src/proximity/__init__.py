"""
Proximity - Distribution-aware highlighting of n-dimensional point clouds.

This package selects the points of a dataset that are closest to a
reference point under the Mahalanobis distance:
- Covariance is estimated from the full dataset or a subsample of it
- Subsampling may be random, systematic (stride) or cluster-proportional
- The closest percentage of points is selected, ties at the cutoff included

Main Functions
--------------
highlight : Run subsampling, covariance, distances and thresholding
subsample : Reduce a dataset to a target size
estimate_covariance : Unbiased sample covariance matrix
mahalanobis : Distance between two points under a covariance matrix
classify : Select the closest percentage of points to a reference

Example
-------
>>> import numpy as np
>>> from proximity import highlight

>>> points = np.random.randn(1000, 3)
>>> result = highlight(points, points[0], percentage=20, subsample_size=200,
...                    method="systematic")
>>> result.selected.sum()
"""

from .core.validation import SingularCovarianceWarning
from .sampling.subsample import SamplingMethod, SubsampleSpec, subsample
from .statistics.covariance import estimate_covariance
from .statistics.mahalanobis import CovarianceFactor, factor_covariance, mahalanobis, mahalanobis_to
from .classification.threshold import ClassificationResult, classify
from .pipeline import (
    HighlightConfig,
    HighlightResult,
    StageTimings,
    TimingLog,
    highlight,
    highlight_async,
)

__all__ = [
    # Subsampling
    'SamplingMethod',
    'SubsampleSpec',
    'subsample',
    # Statistics
    'estimate_covariance',
    'CovarianceFactor',
    'factor_covariance',
    'mahalanobis',
    'mahalanobis_to',
    'SingularCovarianceWarning',
    # Classification
    'ClassificationResult',
    'classify',
    # Pipeline
    'HighlightConfig',
    'HighlightResult',
    'StageTimings',
    'TimingLog',
    'highlight',
    'highlight_async',
]
