"""
Heading helpers.
"""

import numpy as np
from typing import Optional


def wrap_angle(a):
    """Wrap angle(s) to [-pi, pi)."""
    return (np.asarray(a, dtype=float) + np.pi) % (2.0 * np.pi) - np.pi


def circular_mean(angles: np.ndarray, weights: Optional[np.ndarray] = None) -> float:
    """
    Weighted mean of headings via atan2(sum w sin, sum w cos).

    Args:
        angles: [N] headings [rad], wrapped or not
        weights: [N] non-negative weights (uniform if None)

    Returns:
        Mean heading in [-pi, pi]
    """
    angles = np.asarray(angles, dtype=float)
    if weights is None:
        weights = np.ones(len(angles))
    return float(np.arctan2(np.dot(weights, np.sin(angles)), np.dot(weights, np.cos(angles))))
