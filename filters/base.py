"""
Result container for batch filter runs.
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional

from ..utils import metrics


@dataclass
class FilterResult:
    """
    Pose history of a particle filter run.

    Row 0 is the estimate right after initialization, row t the estimate
    after the t-th weight update (before that cycle's resample).

    Attributes:
        means: [T+1, 3] Weighted mean poses (circular mean heading)
        best: [T+1, 3] Poses of the highest-weight particle

        # Particle filter specific
        particles: [T+1, N, 3] Particle states history (optional)
        weights: [T+1, N] Normalized weight history (optional)
        ess: [T] Effective sample size at each step

        # Likelihood
        log_likelihood: Sum of log_likelihood_increments
        log_likelihood_increments: [T] Log of the mean raw weight per step
    """
    means: np.ndarray
    best: np.ndarray

    particles: Optional[np.ndarray] = None
    weights: Optional[np.ndarray] = None
    ess: Optional[np.ndarray] = None

    log_likelihood: Optional[float] = None
    log_likelihood_increments: Optional[np.ndarray] = None

    @property
    def T(self) -> int:
        """Number of filter cycles."""
        return self.means.shape[0] - 1

    def position_error(self, true_poses: np.ndarray, use_best: bool = False) -> np.ndarray:
        """
        Euclidean position error per time step.

        Args:
            true_poses: [T+1, 3] or [T+1, 2] ground truth
            use_best: Score the best particle instead of the weighted mean

        Returns:
            error: [T+1]
        """
        est = self.best if use_best else self.means
        return metrics.position_error(true_poses, est)

    def pose_error(self, true_poses: np.ndarray, use_best: bool = False) -> np.ndarray:
        """
        Per-component absolute error (x, y, wrapped theta).

        Returns:
            error: [T+1, 3]
        """
        est = self.best if use_best else self.means
        return metrics.pose_error(true_poses, est)

    def mean_position_error(self, true_poses: np.ndarray, use_best: bool = False) -> float:
        """Average position error over all time steps."""
        return float(np.mean(self.position_error(true_poses, use_best)))

    def average_ess(self) -> float:
        """Return average ESS if available."""
        if self.ess is None:
            return np.nan
        return float(np.mean(self.ess))
