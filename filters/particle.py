"""
2D landmark-based particle filter (Monte Carlo localization).

Estimates (x, y, theta) from CTRV motion commands and sensor-local
observations of known landmarks: predict, weight, resample.
"""

import logging
import numpy as np
from typing import List, Literal, Optional, Sequence
from numpy.random import Generator, default_rng

from .base import FilterResult
from ..models.base import (
    Particle,
    LandmarkObs,
    as_std_array,
    landmarks_to_arrays,
    observations_to_array,
)
from ..models.motion import YAW_RATE_EPS, sample_motion
from ..models import measurement
from ..utils.angles import circular_mean
from ..utils.resampling import (
    get_resampler,
    normalize_log_weights,
)

logger = logging.getLogger(__name__)

# Largest log weight whose exp() is still a finite float64
MAX_LOG_WEIGHT = float(np.log(np.finfo(float).max))


class ParticleFilter:
    """
    Sequential importance resampling filter over 2D poses.

    The filter owns its population. Particles are stored as arrays and
    handed out as Particle snapshots, so callers can never alias or mutate
    filter state. Particle ids are the row index and are only meaningful
    within one generation (they are reassigned by every resample).

    Headings are never wrapped; use utils.wrap_angle when comparing them.

    Two weight arrays are kept. The importance weights drive resampling,
    estimate() and effective_sample_size(); resample() resets them to
    uniform because the drawn population already represents the posterior.
    The likelihood scores are what Particle.weight and `weights` report; a
    drawn particle inherits its source's score, so best_particle() stays
    meaningful after a resample.
    """

    def __init__(
        self,
        num_particles: int = 100,
        resample_method: Literal["systematic", "stratified", "multinomial", "residual"] = "systematic",
        yaw_rate_eps: float = YAW_RATE_EPS,
        seed: Optional[int] = None,
        rng: Optional[Generator] = None,
    ):
        """
        Args:
            num_particles: Population size, fixed for the filter's lifetime
            resample_method: Resampling algorithm
            yaw_rate_eps: |yaw_rate| below this is treated as straight motion
            seed: Random seed (ignored if rng is given)
            rng: Optional random generator
        """
        if int(num_particles) != num_particles or num_particles <= 0:
            raise ValueError(f"num_particles must be a positive integer, got {num_particles}")
        self.num_particles = int(num_particles)
        self.resample_method = resample_method
        self._resample_fn = get_resampler(resample_method)
        self.yaw_rate_eps = yaw_rate_eps
        self.seed = seed
        self.rng = rng if rng is not None else default_rng(seed)

        self.is_initialized = False
        self.generation = 0

        N = self.num_particles
        self._states = np.zeros((N, 3))
        self._set_log_weights(np.zeros(N), np.zeros(N))
        self._associations: List[List[int]] = [[] for _ in range(N)]
        self._sense_x: List[List[float]] = [[] for _ in range(N)]
        self._sense_y: List[List[float]] = [[] for _ in range(N)]

    # -------------------------------------------------------------------------
    # State access
    # -------------------------------------------------------------------------

    @property
    def initialized(self) -> bool:
        """Whether init() has been called."""
        return self.is_initialized

    @property
    def weights(self) -> np.ndarray:
        """
        [N] particle weights (copy).

        The product of observation densities each particle (or its
        resampling source) was scored with. When that product overflows
        float64 the whole array is divided by the largest weight instead.
        """
        return self._exposed_weights()

    @property
    def states(self) -> np.ndarray:
        """[N, 3] particle poses (copy)."""
        return self._states.copy()

    @property
    def particles(self) -> List[Particle]:
        """Snapshot of the current generation."""
        weights = self._exposed_weights()
        return [self._particle(i, weights) for i in range(self.num_particles)]

    def _exposed_weights(self) -> np.ndarray:
        peak = np.max(self._log_likelihoods)
        shift = peak if peak > MAX_LOG_WEIGHT else 0.0
        return np.exp(self._log_likelihoods - shift)

    def _set_log_weights(self, log_weights: np.ndarray, log_likelihoods: np.ndarray):
        self._log_weights = log_weights
        self._log_likelihoods = log_likelihoods
        self._normalized = None

    def _normalized_weights(self):
        """(weights, log_normalizer) of the importance weights, computed once per update."""
        if self._normalized is None:
            self._normalized = normalize_log_weights(self._log_weights)
        return self._normalized

    def _particle(self, i: int, weights: Optional[np.ndarray] = None) -> Particle:
        if weights is None:
            weights = self._exposed_weights()
        x, y, theta = self._states[i]
        return Particle(
            id=i,
            x=float(x),
            y=float(y),
            theta=float(theta),
            weight=float(weights[i]),
            associations=list(self._associations[i]),
            sense_x=list(self._sense_x[i]),
            sense_y=list(self._sense_y[i]),
        )

    def _require_initialized(self, operation: str):
        if not self.is_initialized:
            raise RuntimeError(f"ParticleFilter.{operation}() called before init()")

    # -------------------------------------------------------------------------
    # Filter cycle
    # -------------------------------------------------------------------------

    def init(self, x: float, y: float, theta: float, std) -> None:
        """
        Seed the population around an initial pose estimate.

        Every particle is drawn from N(x, sx) x N(y, sy) x N(theta, stheta)
        with weight 1. A zero std makes that dimension deterministic. Any
        previous population is discarded.

        Args:
            x: Initial x position [m]
            y: Initial y position [m]
            theta: Initial heading [rad]
            std: [3] standard deviations (x [m], y [m], theta [rad])
        """
        std = as_std_array(std, 3, "std")
        N = self.num_particles

        mean = np.array([x, y, theta], dtype=float)
        self._states = mean + self.rng.standard_normal((N, 3)) * std
        self._set_log_weights(np.zeros(N), np.zeros(N))
        self._associations = [[] for _ in range(N)]
        self._sense_x = [[] for _ in range(N)]
        self._sense_y = [[] for _ in range(N)]
        self.generation = 0
        self.is_initialized = True

        logger.debug("Initialized %d particles around (%.3f, %.3f, %.3f)", N, x, y, theta)

    def prediction(self, delta_t: float, std_pos, velocity: float, yaw_rate: float) -> None:
        """
        Move every particle through the motion model plus process noise.

        Args:
            delta_t: Time between steps [s]
            std_pos: [3] process noise standard deviations (x, y, theta)
            velocity: Velocity from t to t+1 [m/s]
            yaw_rate: Yaw rate from t to t+1 [rad/s]
        """
        self._require_initialized("prediction")
        std_pos = as_std_array(std_pos, 3, "std_pos")

        self._states = sample_motion(
            self._states, delta_t, std_pos, velocity, yaw_rate, self.rng, self.yaw_rate_eps
        )
        logger.debug("Predicted dt=%.3f v=%.3f yaw_rate=%.5f", delta_t, velocity, yaw_rate)

    def update_weights(
        self,
        sensor_range: float,
        std_landmark,
        observations: Sequence[LandmarkObs],
        map_landmarks,
    ) -> None:
        """
        Score every particle against the current observations.

        Per particle: keep landmarks within sensor_range of its pose, move the
        observations into the map frame, associate each one with its nearest
        visible landmark and multiply the Gaussian densities of the pairs.

        A particle that sees no landmark while there are observations gets
        weight 0. With no observations at all every weight becomes 1.

        Weights are stored as log sums, so resampling and estimates never
        overflow. If the largest product exceeds the float64 range, a
        warning is logged and `weights`/Particle.weight report the products
        divided by the largest one (best particle at 1.0).

        Args:
            sensor_range: Sensor range [m]
            std_landmark: [2] measurement standard deviations (x [m], y [m])
            observations: Sensor-local landmark observations
            map_landmarks: Map, or a sequence of SingleLandmark
        """
        self._require_initialized("update_weights")
        std_landmark = as_std_array(std_landmark, 2, "std_landmark", strictly_positive=True)

        N = self.num_particles
        obs_points = observations_to_array(observations)
        positions, ids = landmarks_to_arrays(list(map_landmarks))

        log_weights = np.zeros(N)
        associations: List[List[int]] = [[] for _ in range(N)]
        sense_x: List[List[float]] = [[] for _ in range(N)]
        sense_y: List[List[float]] = [[] for _ in range(N)]

        if len(obs_points) > 0:
            for i, (px, py, ptheta) in enumerate(self._states):
                mask = measurement.in_range_mask(positions, px, py, sensor_range)
                if not np.any(mask):
                    log_weights[i] = -np.inf
                    continue

                visible = positions[mask]
                moved = measurement.transform_points(obs_points, px, py, ptheta)
                nearest = measurement.nearest_indices(visible, moved)

                log_weights[i] = np.sum(
                    measurement.log_gaussian_likelihood(visible[nearest], moved, std_landmark)
                )
                associations[i] = ids[mask][nearest].tolist()
                sense_x[i] = moved[:, 0].tolist()
                sense_y[i] = moved[:, 1].tolist()

        self._set_log_weights(log_weights, log_weights.copy())
        self._associations = associations
        self._sense_x = sense_x
        self._sense_y = sense_y

        peak = np.max(log_weights)
        if peak > MAX_LOG_WEIGHT:
            logger.warning(
                "Largest particle weight exp(%.1f) overflows float64, reporting weights relative to it",
                peak,
            )
        logger.debug(
            "Weighted %d particles against %d observations, %d with zero weight",
            N, len(obs_points), int(np.sum(np.isneginf(log_weights))),
        )

    def resample(self) -> None:
        """
        Draw a new generation with probability proportional to weight.

        Drawn particles keep their source's pose, reported weight and
        association trace and get fresh ids 0..N-1. Importance weights are
        reset to uniform. If every weight is zero the draw is uniform.
        """
        self._require_initialized("resample")

        weights, _ = self._normalized_weights()
        indices = self._resample_fn(weights, self.rng)

        self._states = self._states[indices]
        self._set_log_weights(np.zeros(self.num_particles), self._log_likelihoods[indices])
        self._associations = [list(self._associations[j]) for j in indices]
        self._sense_x = [list(self._sense_x[j]) for j in indices]
        self._sense_y = [list(self._sense_y[j]) for j in indices]
        self.generation += 1

        logger.debug(
            "Resampled generation %d (%s), %d distinct parents",
            self.generation, self.resample_method, len(np.unique(indices)),
        )

    def step(
        self,
        delta_t: float,
        std_pos,
        velocity: float,
        yaw_rate: float,
        sensor_range: float,
        std_landmark,
        observations: Sequence[LandmarkObs],
        map_landmarks,
    ) -> Particle:
        """
        One full cycle: prediction, update_weights, resample.

        Returns:
            The highest-weight particle of the new generation
        """
        self.prediction(delta_t, std_pos, velocity, yaw_rate)
        self.update_weights(sensor_range, std_landmark, observations, map_landmarks)
        self.resample()
        return self.best_particle()

    def run(
        self,
        controls: np.ndarray,
        observations: Sequence[Sequence[LandmarkObs]],
        map_landmarks,
        std_pos,
        std_landmark,
        sensor_range: float,
        init_pose: Optional[Sequence[float]] = None,
        init_std=None,
        return_particles: bool = False,
    ) -> FilterResult:
        """
        Run the filter over a recorded sequence.

        Args:
            controls: [T, 3] rows of (delta_t, velocity, yaw_rate)
            observations: T lists of sensor-local observations
            map_landmarks: Map, or a sequence of SingleLandmark
            std_pos: [3] process noise standard deviations
            std_landmark: [2] measurement standard deviations
            sensor_range: Sensor range [m]
            init_pose: (x, y, theta) to initialize from; required unless
                the filter is already initialized
            init_std: [3] initial standard deviations (zeros if None)
            return_particles: If True, store particle and weight history

        Returns:
            FilterResult
        """
        controls = np.asarray(controls, dtype=float).reshape(-1, 3)
        T = controls.shape[0]
        if len(observations) != T:
            raise ValueError(f"Got {T} controls but {len(observations)} observation sets")

        if init_pose is not None:
            self.init(*init_pose, np.zeros(3) if init_std is None else init_std)
        self._require_initialized("run")

        N = self.num_particles
        means = np.zeros((T + 1, 3))
        best = np.zeros((T + 1, 3))
        ess_history = np.zeros(T)
        log_likelihood_increments = np.zeros(T)

        if return_particles:
            particles_history = np.zeros((T + 1, N, 3))
            weights_history = np.zeros((T + 1, N))
            particles_history[0] = self._states
            weights_history[0] = self._normalized_weights()[0]

        means[0] = self.estimate()
        best[0] = self.best_particle().pose

        for t in range(T):
            delta_t, velocity, yaw_rate = controls[t]
            self.prediction(delta_t, std_pos, velocity, yaw_rate)
            self.update_weights(sensor_range, std_landmark, observations[t], map_landmarks)

            weights, log_Z = self._normalized_weights()
            log_likelihood_increments[t] = log_Z - np.log(N)
            ess_history[t] = 1.0 / np.sum(weights ** 2)
            means[t + 1] = self.estimate()
            best[t + 1] = self.best_particle().pose

            if return_particles:
                particles_history[t + 1] = self._states
                weights_history[t + 1] = weights

            self.resample()

        result = FilterResult(
            means=means,
            best=best,
            ess=ess_history,
            log_likelihood=float(np.sum(log_likelihood_increments)),
            log_likelihood_increments=log_likelihood_increments,
        )

        if return_particles:
            result.particles = particles_history
            result.weights = weights_history

        return result

    # -------------------------------------------------------------------------
    # Estimates
    # -------------------------------------------------------------------------

    def best_particle(self) -> Particle:
        """Highest-weight particle (lowest id on ties)."""
        self._require_initialized("best_particle")
        return self._particle(int(np.argmax(self._log_likelihoods)))

    def estimate(self) -> np.ndarray:
        """
        Weighted mean pose.

        Uses the importance weights, which are uniform right after a
        resample.

        Returns:
            [3] (x, y, theta) with theta the weighted circular mean
        """
        self._require_initialized("estimate")
        weights, _ = self._normalized_weights()
        x, y = weights @ self._states[:, :2]
        return np.array([x, y, circular_mean(self._states[:, 2], weights)])

    def effective_sample_size(self) -> float:
        """ESS of the current importance weights, in [1, N]."""
        self._require_initialized("effective_sample_size")
        weights, _ = self._normalized_weights()
        return float(1.0 / np.sum(weights ** 2))

    # -------------------------------------------------------------------------
    # Measurement helpers
    # -------------------------------------------------------------------------

    def transform(self, observations: Sequence[LandmarkObs], x: float, y: float, theta: float) -> List[LandmarkObs]:
        """Observations moved into the map frame of pose (x, y, theta)."""
        return measurement.transform(observations, x, y, theta)

    def data_association(self, predicted: Sequence[LandmarkObs], observations: List[LandmarkObs]) -> List[LandmarkObs]:
        """Give every observation the id of its nearest predicted landmark (in place)."""
        return measurement.data_association(predicted, observations)

    def find_landmarks_in_range(self, x: float, y: float, sensor_range: float, landmarks) -> List[LandmarkObs]:
        """Landmarks within sensor_range of (x, y)."""
        return measurement.find_landmarks_in_range(x, y, sensor_range, landmarks)

    def calculate_multivariate_gaussian_probability(
        self,
        prediction: LandmarkObs,
        observation: LandmarkObs,
        std_landmark,
    ) -> float:
        """Density of observation under a Gaussian centred on prediction."""
        return measurement.multivariate_gaussian_probability(prediction, observation, std_landmark)

    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------

    def set_associations(
        self,
        particle_id: int,
        associations: Sequence[int],
        sense_x: Sequence[float],
        sense_y: Sequence[float],
    ) -> Particle:
        """
        Overwrite the association trace of one particle.

        Returns:
            Snapshot of the updated particle
        """
        if not 0 <= particle_id < self.num_particles:
            raise ValueError(f"Unknown particle id {particle_id} (population of {self.num_particles})")
        if not len(associations) == len(sense_x) == len(sense_y):
            raise ValueError(
                f"Trace lengths differ: associations={len(associations)}, "
                f"sense_x={len(sense_x)}, sense_y={len(sense_y)}"
            )
        self._associations[particle_id] = [int(a) for a in associations]
        self._sense_x[particle_id] = [float(v) for v in sense_x]
        self._sense_y[particle_id] = [float(v) for v in sense_y]
        return self._particle(particle_id)

    @staticmethod
    def get_associations(best: Particle) -> str:
        """Space-delimited landmark ids of a particle's trace."""
        return " ".join(str(a) for a in best.associations)

    @staticmethod
    def get_sense_x(best: Particle) -> str:
        """Space-delimited map-frame x of a particle's observations."""
        return " ".join(f"{v:g}" for v in best.sense_x)

    @staticmethod
    def get_sense_y(best: Particle) -> str:
        """Space-delimited map-frame y of a particle's observations."""
        return " ".join(f"{v:g}" for v in best.sense_y)
