"""
Filtering algorithms.
"""

from .base import FilterResult
from .particle import ParticleFilter

__all__ = [
    "FilterResult",
    "ParticleFilter",
]
