"""
Basic end-to-end scenarios for landmark_particle_filter.

Run: python test_basic.py  (or pytest test_basic.py)
"""

import numpy as np
from numpy.random import default_rng

from landmark_particle_filter.models import LandmarkObs, SingleLandmark, Map, transform, data_association
from landmark_particle_filter.filters import ParticleFilter


def test_straight_step():
    """Zero-noise init plus one straight step puts every particle at (1, 0, 0)."""
    print("=" * 60)
    print("Testing straight-line prediction")
    print("=" * 60)

    pf = ParticleFilter(num_particles=100, seed=0)
    pf.init(0.0, 0.0, 0.0, [0.0, 0.0, 0.0])
    pf.prediction(1.0, [0.0, 0.0, 0.0], 1.0, 0.0)

    states = pf.states
    print(f"Particles: {len(states)}, unique poses: {len(np.unique(states, axis=0))}")
    assert np.array_equal(states, np.tile([1.0, 0.0, 0.0], (100, 1)))

    print("\n✓ Straight-line prediction working correctly!")


def test_two_landmark_association():
    """One particle at the origin, one observation matching the landmark at (5, 0)."""
    print("\n" + "=" * 60)
    print("Testing association and weighting")
    print("=" * 60)

    landmarks = Map([SingleLandmark(1, 5.0, 0.0), SingleLandmark(2, 0.0, 5.0)])
    observations = [LandmarkObs(x=5.0, y=0.0)]
    std_landmark = [0.3, 0.3]

    moved = transform(observations, 0.0, 0.0, 0.0)
    predicted = [LandmarkObs(lm.id, lm.x, lm.y) for lm in landmarks]
    data_association(predicted, moved)
    print(f"Associated id: {moved[0].id}, residual: ({moved[0].x - 5.0:.2e}, {moved[0].y:.2e})")
    assert moved[0].id == 1

    pf = ParticleFilter(num_particles=1, seed=0)
    pf.init(0.0, 0.0, 0.0, [0.0, 0.0, 0.0])
    pf.update_weights(10.0, std_landmark, observations, landmarks)

    peak = 1.0 / (2 * np.pi * std_landmark[0] * std_landmark[1])
    weight = pf.particles[0].weight
    print(f"Weight: {weight:.6f}, peak density: {peak:.6f}")
    assert np.isclose(weight, peak)

    print("\n✓ Association and weighting working correctly!")


def test_wide_prior_convergence():
    """A wide initial spread collapses onto the true pose."""
    print("\n" + "=" * 60)
    print("Testing convergence from a wide prior")
    print("=" * 60)

    rng = default_rng(21)
    landmarks = Map.from_array(np.array([
        [0.0, 0.0, 1], [12.0, 3.0, 2], [-7.0, 9.0, 3], [4.0, -11.0, 4],
        [15.0, 14.0, 5], [-13.0, -6.0, 6], [20.0, -4.0, 7], [-2.0, 18.0, 8],
    ]))
    truth = np.array([2.0, 1.0, 0.4])
    std_landmark = [0.3, 0.3]

    c, s = np.cos(truth[2]), np.sin(truth[2])
    observations = []
    for lm in landmarks:
        dx, dy = lm.x - truth[0], lm.y - truth[1]
        observations.append(LandmarkObs(
            x=c * dx + s * dy + rng.normal(0.0, 0.1),
            y=-s * dx + c * dy + rng.normal(0.0, 0.1),
        ))

    pf = ParticleFilter(num_particles=2000, seed=5)
    pf.init(truth[0] + 0.5, truth[1] - 0.5, truth[2], [1.0, 1.0, 0.05])
    for _ in range(5):
        pf.prediction(0.1, [0.05, 0.05, 0.005], 0.0, 0.0)
        pf.update_weights(50.0, std_landmark, observations, landmarks)
        pf.resample()

    best = pf.best_particle()
    err = np.hypot(best.x - truth[0], best.y - truth[1])
    print(f"Best particle: ({best.x:.3f}, {best.y:.3f}, {best.theta:.3f}), position error {err:.3f}")
    print(f"Associations: {pf.get_associations(best)}")
    assert err < 0.5
    assert pf.get_associations(best) == "1 2 3 4 5 6 7 8"

    print("\n✓ Convergence working correctly!")


def main():
    """Run all tests."""
    print("\n" + "#" * 60)
    print("# Landmark Particle Filter Basic Tests")
    print("#" * 60)

    tests = [
        test_straight_step,
        test_two_landmark_association,
        test_wide_prior_convergence,
    ]

    passed = 0
    failed = 0

    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"\n✗ {test.__name__} FAILED: {e}")
            import traceback
            traceback.print_exc()
            failed += 1

    print("\n" + "#" * 60)
    print(f"# Results: {passed} passed, {failed} failed")
    print("#" * 60)

    return failed == 0


if __name__ == "__main__":
    success = main()
    exit(0 if success else 1)
