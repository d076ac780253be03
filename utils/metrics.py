"""
Pose error metrics.
"""

import numpy as np

from .angles import wrap_angle


def pose_error(ground_truth: np.ndarray, estimate: np.ndarray) -> np.ndarray:
    """
    Absolute per-component pose error.

    Heading error is wrapped, so 2*pi apart counts as no error.

    Args:
        ground_truth: [..., 3] true poses (x, y, theta)
        estimate: [..., 3] estimated poses

    Returns:
        error: [..., 3] (|dx|, |dy|, |dtheta|)
    """
    ground_truth = np.asarray(ground_truth, dtype=float)
    estimate = np.asarray(estimate, dtype=float)
    diff = estimate - ground_truth
    err = np.abs(diff)
    err[..., 2] = np.abs(wrap_angle(diff[..., 2]))
    return err


def compute_rmse(true_poses: np.ndarray, est_poses: np.ndarray) -> np.ndarray:
    """
    Per-component RMSE over a trajectory.

    Args:
        true_poses: [T, 3]
        est_poses: [T, 3]

    Returns:
        rmse: [3] (x, y, theta)
    """
    err = pose_error(true_poses, est_poses)
    return np.sqrt(np.mean(err ** 2, axis=0))


def position_error(true_poses: np.ndarray, est_poses: np.ndarray) -> np.ndarray:
    """
    Euclidean position error at each time step.

    Args:
        true_poses: [T, 3] or [T, 2]
        est_poses: [T, 3] or [T, 2]

    Returns:
        error: [T]
    """
    true_poses = np.asarray(true_poses, dtype=float)
    est_poses = np.asarray(est_poses, dtype=float)
    pos_err = est_poses[:, :2] - true_poses[:, :2]
    return np.sqrt(np.sum(pos_err ** 2, axis=1))
