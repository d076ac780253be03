"""
Utility functions.
"""

from .resampling import (
    systematic_resample,
    stratified_resample,
    multinomial_resample,
    residual_resample,
    get_resampler,
    normalize_weights,
    normalize_log_weights,
    effective_sample_size,
)

from .angles import (
    wrap_angle,
    circular_mean,
)

from .metrics import (
    pose_error,
    compute_rmse,
    position_error,
)

__all__ = [
    "systematic_resample",
    "stratified_resample",
    "multinomial_resample",
    "residual_resample",
    "get_resampler",
    "normalize_weights",
    "normalize_log_weights",
    "effective_sample_size",
    "wrap_angle",
    "circular_mean",
    "pose_error",
    "compute_rmse",
    "position_error",
]
