"""
Landmark measurement model.

Observations arrive as sensor-local (x, y) offsets of landmarks. They are
moved into the map frame with a particle's pose, matched to the nearest
visible landmark, and scored with an axis-aligned bivariate Gaussian.
"""

import numpy as np
from scipy import stats
from typing import List, Sequence

from .base import LandmarkObs, landmarks_to_arrays, as_std_array


# -----------------------------------------------------------------------------
# Array kernels
# -----------------------------------------------------------------------------

def transform_points(points: np.ndarray, x: float, y: float, theta: float) -> np.ndarray:
    """
    Rotate by theta, then translate by (x, y).

    Args:
        points: [K, 2] sensor-local points

    Returns:
        map_points: [K, 2]
    """
    c, s = np.cos(theta), np.sin(theta)
    px, py = points[:, 0], points[:, 1]
    return np.stack([x + px * c - py * s, y + px * s + py * c], axis=-1)


def in_range_mask(positions: np.ndarray, x: float, y: float, sensor_range: float) -> np.ndarray:
    """[M] bool mask of positions within sensor_range of (x, y), inclusive."""
    dist = np.hypot(positions[:, 0] - x, positions[:, 1] - y)
    return dist <= sensor_range


def nearest_indices(candidates: np.ndarray, points: np.ndarray) -> np.ndarray:
    """
    Nearest candidate for every point.

    Ties go to the first candidate in order (np.argmin semantics).

    Args:
        candidates: [M, 2] with M >= 1
        points: [K, 2]

    Returns:
        indices: [K] into candidates
    """
    diff = points[:, None, :] - candidates[None, :, :]  # [K, M, 2]
    dist_sq = np.sum(diff ** 2, axis=-1)
    return np.argmin(dist_sq, axis=1)


def log_gaussian_likelihood(
    predicted: np.ndarray,
    observed: np.ndarray,
    std_landmark: np.ndarray,
) -> np.ndarray:
    """
    Log-density of observed positions under axis-aligned Gaussians.

    Args:
        predicted: [K, 2] means
        observed: [K, 2] evaluation points
        std_landmark: [2] strictly positive standard deviations

    Returns:
        log_prob: [K]
    """
    residual = observed - predicted
    log_px = stats.norm.logpdf(residual[:, 0], loc=0.0, scale=std_landmark[0])
    log_py = stats.norm.logpdf(residual[:, 1], loc=0.0, scale=std_landmark[1])
    return log_px + log_py


# -----------------------------------------------------------------------------
# LandmarkObs API
# -----------------------------------------------------------------------------

def transform(observations: Sequence[LandmarkObs], x: float, y: float, theta: float) -> List[LandmarkObs]:
    """
    Map sensor-local observations into the map frame of pose (x, y, theta).

    The input is left untouched; ids are passed through.
    """
    if len(observations) == 0:
        return []
    points = np.array([[obs.x, obs.y] for obs in observations], dtype=float)
    moved = transform_points(points, x, y, theta)
    return [
        LandmarkObs(obs.id, float(px), float(py))
        for obs, (px, py) in zip(observations, moved)
    ]


def find_landmarks_in_range(x: float, y: float, sensor_range: float, landmarks: Sequence) -> List[LandmarkObs]:
    """
    Landmarks within sensor_range (inclusive) of (x, y), in input order.

    Args:
        landmarks: Anything with id, x, y (SingleLandmark, LandmarkObs)

    Returns:
        predicted: LandmarkObs copies with ids preserved
    """
    landmarks = list(landmarks)
    if not landmarks:
        return []
    positions, _ = landmarks_to_arrays(landmarks)
    mask = in_range_mask(positions, x, y, sensor_range)
    return [
        LandmarkObs(lm.id, float(lm.x), float(lm.y))
        for lm, keep in zip(landmarks, mask) if keep
    ]


def data_association(predicted: Sequence[LandmarkObs], observations: List[LandmarkObs]) -> List[LandmarkObs]:
    """
    Nearest-neighbour association, in place.

    Every observation gets the id of the closest predicted landmark, however
    far away. With no predicted landmarks the ids are left as they were.

    Returns:
        observations (the same list, for chaining)
    """
    if len(predicted) == 0 or len(observations) == 0:
        return observations
    candidates, ids = landmarks_to_arrays(predicted)
    points = np.array([[obs.x, obs.y] for obs in observations], dtype=float)
    for obs, idx in zip(observations, nearest_indices(candidates, points)):
        obs.id = int(ids[idx])
    return observations


def multivariate_gaussian_probability(prediction: LandmarkObs, observation: LandmarkObs, std_landmark) -> float:
    """
    Bivariate Gaussian density with zero correlation.

    p = 1 / (2 pi sx sy) * exp(-(dx^2 / (2 sx^2) + dy^2 / (2 sy^2)))

    Args:
        prediction: Mean (landmark position)
        observation: Evaluation point (map-frame observation)
        std_landmark: [2] (sx, sy), both > 0

    Returns:
        Density value
    """
    std_landmark = as_std_array(std_landmark, 2, "std_landmark", strictly_positive=True)
    dx = observation.x - prediction.x
    dy = observation.y - prediction.y
    return float(
        stats.norm.pdf(dx, scale=std_landmark[0]) * stats.norm.pdf(dy, scale=std_landmark[1])
    )
