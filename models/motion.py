"""
Constant turn rate and velocity (CTRV) motion model.

State: [x, y, theta]
Control: (velocity, yaw_rate) held constant over delta_t
"""

import numpy as np
from numpy.random import Generator

from .base import as_std_array


YAW_RATE_EPS = 1e-5


def motion_mean(
    states: np.ndarray,
    delta_t: float,
    velocity: float,
    yaw_rate: float,
    yaw_rate_eps: float = YAW_RATE_EPS,
) -> np.ndarray:
    """
    Deterministic pose update.

    Uses the straight-line update when |yaw_rate| < yaw_rate_eps, the
    closed-form arc otherwise. Heading is not wrapped.

    Args:
        states: [N, 3] or [3] poses (x, y, theta)
        delta_t: Time step [s]
        velocity: Forward velocity [m/s]
        yaw_rate: Turn rate [rad/s]
        yaw_rate_eps: Threshold below which motion is treated as straight

    Returns:
        next_states: same shape as states
    """
    states = np.asarray(states, dtype=float)
    single = states.ndim == 1
    if single:
        states = states[None, :]

    x, y, theta = states[:, 0], states[:, 1], states[:, 2]
    out = np.empty_like(states)

    if abs(yaw_rate) < yaw_rate_eps:
        dist = velocity * delta_t
        out[:, 0] = x + dist * np.cos(theta)
        out[:, 1] = y + dist * np.sin(theta)
        out[:, 2] = theta
    else:
        theta_next = theta + yaw_rate * delta_t
        radius = velocity / yaw_rate
        out[:, 0] = x + radius * (np.sin(theta_next) - np.sin(theta))
        out[:, 1] = y + radius * (np.cos(theta) - np.cos(theta_next))
        out[:, 2] = theta_next

    if single:
        return out[0]
    return out


def sample_motion(
    states: np.ndarray,
    delta_t: float,
    std_pos,
    velocity: float,
    yaw_rate: float,
    rng: Generator,
    yaw_rate_eps: float = YAW_RATE_EPS,
) -> np.ndarray:
    """
    Sample next poses from p(x_t | x_{t-1}, u_t).

    Independent Gaussian noise (std_pos[0..2] for x, y, theta) is drawn per
    particle and added after the deterministic update.

    Args:
        states: [N, 3] current poses
        delta_t: Time step [s]
        std_pos: [3] process noise standard deviations
        velocity: Forward velocity [m/s]
        yaw_rate: Turn rate [rad/s]
        rng: NumPy random generator
        yaw_rate_eps: Straight-line threshold

    Returns:
        next_states: [N, 3]
    """
    std_pos = as_std_array(std_pos, 3, "std_pos")
    mean = motion_mean(states, delta_t, velocity, yaw_rate, yaw_rate_eps)
    noise = rng.standard_normal(mean.shape)
    return mean + noise * std_pos
