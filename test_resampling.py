"""
Tests for resampling and weight utilities.

Run: pytest test_resampling.py -v
"""

import logging

import pytest
import numpy as np
from numpy.random import default_rng

from landmark_particle_filter.utils.resampling import (
    RESAMPLERS,
    get_resampler,
    normalize_weights,
    normalize_log_weights,
    effective_sample_size,
)
from landmark_particle_filter.utils.angles import wrap_angle, circular_mean
from landmark_particle_filter.utils.metrics import pose_error, compute_rmse, position_error


METHODS = sorted(RESAMPLERS)


# ============================================================================
# Resamplers
# ============================================================================

class TestResamplers:

    @pytest.mark.parametrize("method", METHODS)
    def test_population_size(self, method):
        w = normalize_weights(default_rng(0).uniform(size=37))
        indices = get_resampler(method)(w, default_rng(1))
        assert indices.shape == (37,)
        assert indices.min() >= 0 and indices.max() < 37

    @pytest.mark.parametrize("method", METHODS)
    def test_zero_weight_never_drawn(self, method):
        w = normalize_weights(np.array([0.0, 1.0, 0.0, 2.0, 0.0]))
        rng = default_rng(2)
        for _ in range(200):
            indices = get_resampler(method)(w, rng)
            assert set(indices.tolist()) <= {1, 3}

    @pytest.mark.parametrize("method", METHODS)
    def test_single_survivor(self, method):
        w = np.zeros(10)
        w[-1] = 1.0
        indices = get_resampler(method)(w, default_rng(3))
        np.testing.assert_array_equal(indices, np.full(10, 9))

    @pytest.mark.parametrize("method", METHODS)
    def test_selection_proportional_to_weight(self, method):
        N = 4
        w = np.array([0.1, 0.2, 0.3, 0.4])
        rng = default_rng(4)
        counts = np.zeros(N)
        trials = 5000
        for _ in range(trials):
            counts += np.bincount(get_resampler(method)(w, rng), minlength=N)
        np.testing.assert_allclose(counts / (trials * N), w, atol=0.01)

    def test_systematic_low_variance(self):
        # with equal weights systematic resampling keeps every particle exactly once
        w = np.full(50, 1.0 / 50)
        indices = get_resampler("systematic")(w, default_rng(5))
        np.testing.assert_array_equal(np.sort(indices), np.arange(50))

    def test_unknown_method(self):
        with pytest.raises(ValueError, match="Unknown resample method"):
            get_resampler("roulette")


# ============================================================================
# Weight normalization
# ============================================================================

class TestWeights:

    def test_normalize(self):
        np.testing.assert_allclose(normalize_weights([1.0, 3.0]), [0.25, 0.75])

    def test_all_zero_falls_back_to_uniform(self, caplog):
        with caplog.at_level(logging.WARNING):
            w = normalize_weights(np.zeros(4))
        np.testing.assert_allclose(w, np.full(4, 0.25))
        assert "falling back to uniform" in caplog.text

    def test_non_finite_counts_as_zero(self):
        np.testing.assert_allclose(normalize_weights([np.nan, 2.0, np.inf]), [0.0, 1.0, 0.0])

    def test_log_weights_survive_underflow(self):
        log_w = np.array([-2000.0, -2001.0, -np.inf])
        w, log_Z = normalize_log_weights(log_w)
        assert np.exp(log_w).sum() == 0.0
        np.testing.assert_allclose(w, [1.0 / (1.0 + np.exp(-1.0)), np.exp(-1.0) / (1.0 + np.exp(-1.0)), 0.0])
        assert log_Z == pytest.approx(-2000.0 + np.log(1.0 + np.exp(-1.0)))

    def test_log_weights_all_neg_inf(self):
        w, log_Z = normalize_log_weights(np.full(3, -np.inf))
        np.testing.assert_allclose(w, np.full(3, 1.0 / 3.0))
        assert log_Z == -np.inf

    def test_ess_bounds(self):
        assert effective_sample_size(np.ones(10)) == pytest.approx(10.0)
        assert effective_sample_size(np.array([0.0, 5.0, 0.0])) == pytest.approx(1.0)


# ============================================================================
# Angles and metrics
# ============================================================================

class TestAnglesAndMetrics:

    def test_wrap_angle(self):
        np.testing.assert_allclose(wrap_angle([0.0, 3 * np.pi / 2, -3 * np.pi / 2, 4 * np.pi]),
                                   [0.0, -np.pi / 2, np.pi / 2, 0.0], atol=1e-12)

    def test_circular_mean_across_discontinuity(self):
        mean = circular_mean(np.array([np.pi - 0.1, -np.pi + 0.1]))
        assert abs(wrap_angle(mean - np.pi)) < 1e-12

    def test_circular_mean_weighted(self):
        assert circular_mean(np.array([0.0, 1.0]), np.array([0.0, 1.0])) == pytest.approx(1.0)

    def test_pose_error_wraps_heading(self):
        err = pose_error([1.0, 2.0, 0.1], [1.5, 1.0, 0.1 + 2 * np.pi])
        np.testing.assert_allclose(err, [0.5, 1.0, 0.0], atol=1e-12)

    def test_rmse(self):
        truth = np.zeros((2, 3))
        est = np.array([[3.0, 4.0, 0.0], [3.0, 4.0, 0.0]])
        np.testing.assert_allclose(compute_rmse(truth, est), [3.0, 4.0, 0.0])

    def test_position_error_is_per_step(self):
        truth = np.zeros((3, 3))
        est = np.array([[3.0, 4.0, 0.0], [0.0, 0.0, 1.0], [-6.0, 8.0, 0.0]])
        np.testing.assert_allclose(position_error(truth, est), [5.0, 0.0, 10.0])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
