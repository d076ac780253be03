"""
Resampling algorithms and weight bookkeeping.

All resamplers take normalized weights and return [N] indices into the
current population, drawn with replacement.
"""

import logging
import numpy as np
from numpy.random import Generator
from typing import Callable, Dict

logger = logging.getLogger(__name__)


def _search(weights: np.ndarray, u: np.ndarray) -> np.ndarray:
    """Map pointers u in [0, 1) to bins of the weight CDF."""
    cdf = np.cumsum(weights)
    # Scaling by the total keeps round-off from reaching a trailing zero-weight
    # bin; side='right' skips zero-weight bins everywhere else.
    indices = np.searchsorted(cdf, u * cdf[-1], side='right')
    return np.minimum(indices, len(cdf) - 1)


def systematic_resample(weights: np.ndarray, rng: Generator) -> np.ndarray:
    """
    Systematic (low-variance) resampling.

    One uniform offset, then N evenly spaced pointers.

    Args:
        weights: [N] Normalized weights
        rng: NumPy random generator

    Returns:
        indices: [N]
    """
    N = len(weights)
    u = (rng.uniform(0.0, 1.0) + np.arange(N)) / N
    return _search(weights, u)


def stratified_resample(weights: np.ndarray, rng: Generator) -> np.ndarray:
    """
    Stratified resampling: one independent draw inside each [i/N, (i+1)/N).

    Args:
        weights: [N] Normalized weights
        rng: NumPy random generator

    Returns:
        indices: [N]
    """
    N = len(weights)
    u = (np.arange(N) + rng.uniform(0.0, 1.0, N)) / N
    return _search(weights, u)


def multinomial_resample(weights: np.ndarray, rng: Generator) -> np.ndarray:
    """Independent weighted draws with replacement."""
    N = len(weights)
    return rng.choice(N, size=N, replace=True, p=weights)


def residual_resample(weights: np.ndarray, rng: Generator) -> np.ndarray:
    """
    Residual resampling.

    floor(N * w_i) copies of each particle, multinomial draws on the rest.
    """
    N = len(weights)
    n_copies = np.floor(N * weights).astype(int)
    indices = np.repeat(np.arange(N), n_copies)

    n_residual = N - len(indices)
    if n_residual > 0:
        residual = N * weights - n_copies
        residual = residual / residual.sum()
        extra = rng.choice(N, size=n_residual, replace=True, p=residual)
        indices = np.concatenate([indices, extra])

    return indices.astype(int)


RESAMPLERS: Dict[str, Callable[[np.ndarray, Generator], np.ndarray]] = {
    "systematic": systematic_resample,
    "stratified": stratified_resample,
    "multinomial": multinomial_resample,
    "residual": residual_resample,
}


def get_resampler(method: str) -> Callable[[np.ndarray, Generator], np.ndarray]:
    """Look up a resampling function by name."""
    try:
        return RESAMPLERS[method]
    except KeyError:
        raise ValueError(
            f"Unknown resample method: {method!r} (expected one of {sorted(RESAMPLERS)})"
        ) from None


def normalize_weights(weights: np.ndarray) -> np.ndarray:
    """
    Normalize raw (non-negative) weights to sum to 1.

    Non-finite or negative entries count as zero. If nothing positive is
    left, uniform weights are returned and a warning is logged.

    Args:
        weights: [N] Unnormalized weights

    Returns:
        weights: [N] Normalized weights
    """
    weights = np.asarray(weights, dtype=float)
    clean = np.where(np.isfinite(weights) & (weights > 0.0), weights, 0.0)
    total = clean.sum()
    if not np.isfinite(total) or total <= 0.0:
        logger.warning("All %d particle weights are zero, falling back to uniform weights", len(weights))
        return np.full(len(weights), 1.0 / len(weights))
    return clean / total


def normalize_log_weights(log_weights: np.ndarray) -> tuple:
    """
    Normalize log weights with log-sum-exp.

    Entries of -inf (zero weight) stay at zero. All -inf falls back to
    uniform like normalize_weights.

    Args:
        log_weights: [N] Unnormalized log weights

    Returns:
        weights: [N] Normalized weights (sum to 1)
        log_normalizer: Log of the normalizing constant (-inf if degenerate)
    """
    log_weights = np.asarray(log_weights, dtype=float)
    finite = np.isfinite(log_weights)
    if not np.any(finite):
        return normalize_weights(np.zeros(len(log_weights))), -np.inf

    max_log = np.max(log_weights[finite])
    shifted = np.where(finite, np.exp(np.where(finite, log_weights, 0.0) - max_log), 0.0)
    total = shifted.sum()
    return shifted / total, max_log + np.log(total)


def effective_sample_size(weights: np.ndarray) -> float:
    """
    ESS = 1 / sum(w_i^2) of the normalized weights, in [1, N].
    """
    w = normalize_weights(weights)
    return 1.0 / np.sum(w ** 2)
