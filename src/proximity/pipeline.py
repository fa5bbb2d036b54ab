"""
Highlight Pipeline

Runs the full classification for one reference point:
1. Subsamples the dataset (optional) to get a working set
2. Estimates the sample covariance from the working set
3. Scores every point of the full dataset against the reference
4. Selects the closest percentage

Each call starts from scratch and keeps no state. Timing aggregation across
calls is left to a caller-owned TimingLog.
"""

import asyncio
from dataclasses import dataclass, field, fields
import logging
from time import perf_counter
from typing import List, Optional, Union

import numpy as np

from .core.validation import as_dataset, as_point
from .sampling.subsample import RandomSource, SamplingMethod, SubsampleSpec, subsample
from .statistics.covariance import estimate_covariance
from .statistics.mahalanobis import factor_covariance
from .classification.threshold import ClassificationResult, classify


logger = logging.getLogger(__name__)


@dataclass
class HighlightConfig:
    """
    Parameters for one highlight run.

    Attributes
    ----------
    percentage : float
        Percentage of closest points to select. Default 10.
    subsample_size : int, optional
        Rows used to estimate the covariance. None uses the full dataset.
    method : SamplingMethod
        Subsampling strategy. Default random.
    seed : int, optional
        Seed for the random and cluster strategies.
    """
    percentage: float = 10.0
    subsample_size: Optional[int] = None
    method: Union[str, SamplingMethod] = SamplingMethod.RANDOM
    seed: Optional[int] = None

    def __post_init__(self):
        self.method = SamplingMethod(self.method)

    @property
    def subsample_spec(self) -> SubsampleSpec:
        return SubsampleSpec(target_size=self.subsample_size, method=self.method)


@dataclass
class StageTimings:
    """Wall-clock seconds spent in each stage of one run."""
    subsample: float = 0.0
    covariance: float = 0.0
    classify: float = 0.0
    total: float = 0.0


@dataclass
class HighlightResult:
    """
    Container for one highlight run.

    Attributes
    ----------
    classification : ClassificationResult
        Per-point distances, selection mask and threshold.
    covariance : np.ndarray
        Covariance matrix estimated from the working set, shape (D, D).
    working_set_size : int
        Number of rows the covariance was estimated from.
    timings : StageTimings
        Per-stage timing metadata.
    """
    classification: ClassificationResult
    covariance: np.ndarray
    working_set_size: int
    timings: StageTimings

    @property
    def selected(self) -> np.ndarray:
        return self.classification.selected

    @property
    def distances(self) -> np.ndarray:
        return self.classification.distances

    @property
    def threshold_distance(self) -> float:
        return self.classification.threshold_distance


@dataclass
class TimingLog:
    """
    Caller-owned history of run timings.

    Nothing in the package writes to a TimingLog on its own; the caller
    records the runs it wants to aggregate.
    """
    entries: List[StageTimings] = field(default_factory=list)

    def record(self, timings: StageTimings) -> None:
        self.entries.append(timings)

    def clear(self) -> None:
        self.entries.clear()

    def __len__(self) -> int:
        return len(self.entries)

    def mean(self) -> StageTimings:
        """Per-stage mean over the recorded runs (zeros when empty)."""
        if not self.entries:
            return StageTimings()
        return StageTimings(**{
            f.name: float(np.mean([getattr(e, f.name) for e in self.entries]))
            for f in fields(StageTimings)
        })


def highlight(
    dataset,
    reference,
    config: Optional[HighlightConfig] = None,
    rng: RandomSource = None,
    **kwargs
) -> HighlightResult:
    """
    Select the points of a dataset closest to a reference point.

    Parameters
    ----------
    dataset : array-like
        Points of shape (N, D), N >= 2.
    reference : array-like
        Reference point of shape (D,).
    config : HighlightConfig, optional
        Run parameters. When None, one is built from the keyword arguments
        (percentage, subsample_size, method, seed).
    rng : int or np.random.Generator, optional
        Random source for subsampling. Overrides config.seed when given.

    Returns
    -------
    HighlightResult
        Classification, covariance, working-set size and timings.
    """
    if config is None:
        config = HighlightConfig(**kwargs)
    elif kwargs:
        raise TypeError(
            f"Pass either a HighlightConfig or keyword parameters, not both: {sorted(kwargs)}"
        )

    data = as_dataset(dataset)
    dims = data.shape[1]
    ref = as_point(reference, dims=dims)

    if rng is None:
        rng = config.seed

    start = perf_counter()
    spec = config.subsample_spec
    working = subsample(data, spec.target_size, spec.method, rng=rng)
    t_subsample = perf_counter()

    if len(working) < 2:
        raise ValueError(
            f"Working set of {len(working)} rows (method={spec.method.value}, "
            f"target_size={spec.target_size}) is too small to estimate a covariance"
        )

    cov = estimate_covariance(working, dims=dims)
    t_covariance = perf_counter()

    classification = classify(data, ref, factor_covariance(cov), config.percentage)
    t_classify = perf_counter()

    timings = StageTimings(
        subsample=t_subsample - start,
        covariance=t_covariance - t_subsample,
        classify=t_classify - t_covariance,
        total=t_classify - start,
    )

    logger.debug(
        "highlight: %d points, working set %d, %d selected in %.4fs",
        len(data), len(working), classification.n_selected, timings.total,
    )

    return HighlightResult(
        classification=classification,
        covariance=cov,
        working_set_size=len(working),
        timings=timings,
    )


async def highlight_async(
    dataset,
    reference,
    config: Optional[HighlightConfig] = None,
    rng: RandomSource = None,
    **kwargs
) -> HighlightResult:
    """
    Coroutine form of highlight().

    Yields to the event loop once, then runs the whole pipeline without
    further suspension. Overlapping calls are neither cancelled nor ordered;
    callers that need latest-wins semantics must track that themselves.
    """
    await asyncio.sleep(0)
    return highlight(dataset, reference, config=config, rng=rng, **kwargs)
