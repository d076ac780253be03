"""
Landmark Particle Filter.

A NumPy-based 2D Monte Carlo localization library:
- CTRV motion model with Gaussian process noise
- Nearest-neighbour landmark association
- Bivariate Gaussian measurement likelihood
- Systematic, stratified, multinomial and residual resampling
"""

from . import models
from . import filters
from . import utils

from .filters import ParticleFilter, FilterResult
from .models import Particle, LandmarkObs, SingleLandmark, Map

__version__ = "0.1.0"
