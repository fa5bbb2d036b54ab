"""
Percentile-based threshold classification.
"""

from .threshold import ClassificationResult, classify, threshold_from_distances

__all__ = ['ClassificationResult', 'classify', 'threshold_from_distances']
