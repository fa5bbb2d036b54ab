"""
End-to-end tests for the highlight pipeline.
"""

import asyncio
import logging

import numpy as np
import pytest

from proximity import (
    HighlightConfig,
    SamplingMethod,
    StageTimings,
    TimingLog,
    estimate_covariance,
    highlight,
    highlight_async,
)


CORNERS = np.array([[0, 0], [10, 0], [0, 10], [10, 10]], dtype=float)


def _elongated_cloud(n: int = 1000, seed: int = 0) -> np.ndarray:
    """Correlated 2D Gaussian cloud stretched along the diagonal."""
    rng = np.random.default_rng(seed)
    points = rng.normal(size=(n, 2)) * [3.0, 0.5]
    theta = np.pi / 4
    rotation = np.array([
        [np.cos(theta), -np.sin(theta)],
        [np.sin(theta), np.cos(theta)]
    ])
    return points @ rotation.T + 50.0


class TestHighlight:
    """Full pipeline runs."""

    def test_four_corners(self):
        result = highlight(CORNERS, [0, 0], percentage=50)

        np.testing.assert_allclose(result.covariance, [[100 / 3, 0], [0, 100 / 3]])
        assert result.working_set_size == 4
        assert result.classification.threshold_index == 2
        np.testing.assert_array_equal(result.selected, [True, True, True, False])

    def test_full_dataset_classified_after_subsampling(self):
        data = _elongated_cloud()
        result = highlight(data, data.mean(axis=0), percentage=25,
                           subsample_size=100, method="systematic")

        assert result.working_set_size == 100
        assert len(result.selected) == len(data)
        assert len(result.distances) == len(data)
        assert result.classification.n_selected >= 250

    def test_systematic_covariance_from_stride_rows(self):
        data = _elongated_cloud()
        result = highlight(data, data[0], percentage=10,
                           subsample_size=100, method=SamplingMethod.SYSTEMATIC)
        np.testing.assert_allclose(result.covariance, estimate_covariance(data[::10]))

    def test_no_subsampling_uses_all_rows(self):
        data = _elongated_cloud(n=300)
        result = highlight(data, data[0], percentage=10)
        assert result.working_set_size == 300
        np.testing.assert_allclose(result.covariance, np.cov(data, rowvar=False))

    def test_distribution_aware_selection(self):
        """Points along the long axis are closer than equally far points across it."""
        data = _elongated_cloud(n=2000, seed=1)
        center = data.mean(axis=0)
        off_axis = np.array([center + [2.0, 2.0], center + [2.0, -2.0]])
        result = highlight(np.vstack([data, off_axis]), center, percentage=50)

        along, across = result.distances[-2:]
        assert along < across

    def test_seed_reproducible(self):
        data = _elongated_cloud()
        a = highlight(data, data[0], percentage=30, subsample_size=200, method="random", seed=11)
        b = highlight(data, data[0], percentage=30, subsample_size=200, method="random", seed=11)
        np.testing.assert_array_equal(a.distances, b.distances)

    def test_rng_overrides_seed(self):
        data = _elongated_cloud()
        config = HighlightConfig(percentage=30, subsample_size=200, method="cluster", seed=1)
        a = highlight(data, data[0], config=config, rng=5)
        b = highlight(data, data[0], config=config, rng=5)
        np.testing.assert_array_equal(a.covariance, b.covariance)

    def test_cluster_too_small_raises(self):
        """A cluster target of 40 yields an empty working set."""
        data = _elongated_cloud()
        with pytest.raises(ValueError, match="too small"):
            highlight(data, data[0], percentage=10, subsample_size=40, method="cluster")

    def test_config_and_kwargs_conflict(self):
        with pytest.raises(TypeError):
            highlight(CORNERS, [0, 0], config=HighlightConfig(), percentage=20)

    def test_reference_dimension_mismatch_raises(self):
        with pytest.raises(ValueError):
            highlight(CORNERS, [0, 0, 0], percentage=20)

    def test_debug_logging(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="proximity"):
            highlight(_elongated_cloud(n=200), [50.0, 50.0], percentage=20,
                      subsample_size=100, method="random", seed=0)
        assert any("highlight:" in record.getMessage() for record in caplog.records)


class TestHighlightConfig:

    def test_method_string_coerced(self):
        config = HighlightConfig(method="systematic")
        assert config.method is SamplingMethod.SYSTEMATIC

    def test_unknown_method_raises(self):
        with pytest.raises(ValueError):
            HighlightConfig(method="bogus")

    def test_subsample_spec(self):
        spec = HighlightConfig(subsample_size=50, method="cluster").subsample_spec
        assert spec.target_size == 50
        assert spec.method is SamplingMethod.CLUSTER


class TestTimings:

    def test_stage_timings_recorded(self):
        data = _elongated_cloud()
        timings = highlight(data, data[0], percentage=10, subsample_size=100, seed=0).timings

        assert timings.subsample >= 0.0
        assert timings.covariance >= 0.0
        assert timings.classify >= 0.0
        assert timings.total == pytest.approx(
            timings.subsample + timings.covariance + timings.classify
        )

    def test_timing_log_is_caller_owned(self):
        log = TimingLog()
        data = _elongated_cloud(n=200)
        for _ in range(3):
            log.record(highlight(data, data[0], percentage=10).timings)

        assert len(log) == 3
        assert TimingLog().entries == []

    def test_timing_log_mean(self):
        log = TimingLog()
        log.record(StageTimings(subsample=1.0, covariance=2.0, classify=3.0, total=6.0))
        log.record(StageTimings(subsample=3.0, covariance=4.0, classify=5.0, total=12.0))

        mean = log.mean()
        assert mean.subsample == pytest.approx(2.0)
        assert mean.total == pytest.approx(9.0)

        log.clear()
        assert len(log) == 0
        assert log.mean() == StageTimings()


class TestHighlightAsync:
    """Single-suspension coroutine entry point."""

    def test_matches_sync(self):
        data = _elongated_cloud()
        expected = highlight(data, data[0], percentage=15, subsample_size=100, method="systematic")
        result = asyncio.run(
            highlight_async(data, data[0], percentage=15, subsample_size=100, method="systematic")
        )
        np.testing.assert_array_equal(result.selected, expected.selected)

    def test_suspends_exactly_once(self):
        """The task yields once, then finishes on its next turn of the loop."""
        data = _elongated_cloud(n=200)

        async def step_through():
            task = asyncio.ensure_future(highlight_async(data, data[0], percentage=10))
            await asyncio.sleep(0)
            done_after_first_yield = task.done()
            await asyncio.sleep(0)
            done_after_second_yield = task.done()
            result = await task
            return done_after_first_yield, done_after_second_yield, result

        first, second, result = asyncio.run(step_through())
        assert not first
        assert second
        assert len(result.selected) == 200

    def test_overlapping_calls_all_complete(self):
        data = _elongated_cloud()

        async def run_both():
            return await asyncio.gather(
                highlight_async(data, data[0], percentage=10),
                highlight_async(data, data[1], percentage=90),
            )

        first, second = asyncio.run(run_both())
        assert first.classification.threshold_index == 100
        assert second.classification.threshold_index == 900


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
