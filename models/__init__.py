"""
Pose, landmark and observation models.
"""

from .base import (
    Particle,
    LandmarkObs,
    SingleLandmark,
    Map,
    UNASSOCIATED,
)
from .motion import motion_mean, sample_motion
from .measurement import (
    transform,
    find_landmarks_in_range,
    data_association,
    multivariate_gaussian_probability,
)

__all__ = [
    "Particle",
    "LandmarkObs",
    "SingleLandmark",
    "Map",
    "UNASSOCIATED",
    "motion_mean",
    "sample_motion",
    "transform",
    "find_landmarks_in_range",
    "data_association",
    "multivariate_gaussian_probability",
]
