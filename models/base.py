"""
Particle, observation and map containers.

Positions are in meters, headings in radians. Observations carry their
frame implicitly: sensor-local before transform, map frame after.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple


UNASSOCIATED = -1


@dataclass
class Particle:
    """
    One hypothesis of the agent's pose.

    Attributes:
        id: Index within the current generation (reassigned on resample)
        x, y: Position [m]
        theta: Heading [rad], not wrapped
        weight: Unnormalized likelihood score
        associations: Landmark id matched to each observation
        sense_x, sense_y: Map-frame observation positions, parallel to associations
    """
    id: int
    x: float
    y: float
    theta: float
    weight: float = 1.0
    associations: List[int] = field(default_factory=list)
    sense_x: List[float] = field(default_factory=list)
    sense_y: List[float] = field(default_factory=list)

    @property
    def pose(self) -> np.ndarray:
        """[3] array (x, y, theta)."""
        return np.array([self.x, self.y, self.theta])


@dataclass
class LandmarkObs:
    """Observation or predicted landmark position."""
    id: int = UNASSOCIATED
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class SingleLandmark:
    """Ground-truth landmark with a fixed map-frame position."""
    id: int
    x: float
    y: float


@dataclass
class Map:
    """
    Static landmark map.

    Attributes:
        landmark_list: Landmarks in their canonical order
    """
    landmark_list: List[SingleLandmark] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.landmark_list)

    def __iter__(self):
        return iter(self.landmark_list)

    @classmethod
    def from_array(cls, rows: np.ndarray) -> "Map":
        """
        Build a map from an [M, 3] array of (x, y, id) rows.

        This is the column order of the usual map_data.txt files.
        """
        rows = np.asarray(rows, dtype=float)
        if rows.size == 0:
            return cls()
        if rows.ndim != 2 or rows.shape[1] != 3:
            raise ValueError(f"Expected [M, 3] landmark rows, got shape {rows.shape}")
        return cls([SingleLandmark(int(r[2]), float(r[0]), float(r[1])) for r in rows])

    def as_array(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Returns:
            positions: [M, 2] landmark positions
            ids: [M] landmark ids
        """
        return landmarks_to_arrays(self.landmark_list)


def landmarks_to_arrays(landmarks: Sequence) -> Tuple[np.ndarray, np.ndarray]:
    """
    Stack landmarks (anything with id, x, y) into arrays.

    Returns:
        positions: [M, 2]
        ids: [M] int
    """
    positions = np.array([[lm.x, lm.y] for lm in landmarks], dtype=float).reshape(-1, 2)
    ids = np.array([lm.id for lm in landmarks], dtype=int)
    return positions, ids


def observations_to_array(observations: Sequence[LandmarkObs]) -> np.ndarray:
    """Stack observation positions into an [K, 2] array."""
    return np.array([[obs.x, obs.y] for obs in observations], dtype=float).reshape(-1, 2)


def as_std_array(std, length: int, name: str, strictly_positive: bool = False) -> np.ndarray:
    """
    Validate a standard deviation array.

    Args:
        std: Sequence of standard deviations
        length: Required number of entries
        name: Argument name used in error messages
        strictly_positive: Reject zeros as well as negatives

    Returns:
        std: [length] float array
    """
    std = np.asarray(std, dtype=float).reshape(-1)
    if std.shape[0] != length:
        raise ValueError(f"{name} must have {length} entries, got {std.shape[0]}")
    if not np.all(np.isfinite(std)):
        raise ValueError(f"{name} must be finite, got {std.tolist()}")
    if strictly_positive and np.any(std <= 0.0):
        raise ValueError(f"{name} must be strictly positive, got {std.tolist()}")
    if np.any(std < 0.0):
        raise ValueError(f"{name} must be non-negative, got {std.tolist()}")
    return std
