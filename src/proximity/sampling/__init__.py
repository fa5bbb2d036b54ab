"""
Dataset subsampling strategies.
"""

from .subsample import SamplingMethod, SubsampleSpec, subsample

__all__ = ['SamplingMethod', 'SubsampleSpec', 'subsample']
