"""Shared assertions for the sampling tests."""

import itertools
import numpy as np

# Slack for distances computed along different float paths
TOLERANCE = 1e-9


def tile_periodic(points: np.ndarray) -> np.ndarray:
    """Copies of the points shifted by every translation in {-1, 0, 1}^dim."""
    points = np.asarray(points, dtype=float)
    dim = points.shape[1]
    shifts = np.array(list(itertools.product((-1.0, 0.0, 1.0), repeat=dim)))
    return (points[np.newaxis, :, :] + shifts[:, np.newaxis, :]).reshape(-1, dim)


def min_pairwise_distance(points: np.ndarray) -> float:
    points = np.asarray(points, dtype=float)
    if len(points) < 2:
        return float('inf')
    dists = np.linalg.norm(points[:, np.newaxis, :] - points[np.newaxis, :, :], axis=2)
    np.fill_diagonal(dists, np.inf)
    return float(np.min(dists))


def assert_legal_poisson(test, points, radius: float, periodic: bool) -> None:
    """Every pair of points (and of their periodic images) is >= 2 * radius apart."""
    points = np.asarray(points, dtype=float)
    if len(points) == 0:
        return
    if periodic:
        points = tile_periodic(points)
    test.assertGreaterEqual(
        min_pairwise_distance(points), 2 * radius - TOLERANCE,
        "Poisson-disk requirement not met: two points are closer than 2 * radius",
    )


def collect_with_hints(generator):
    """Drain a generator, recording its size hint after every point."""
    points, hints = [], [generator.size_hint()]
    for point in generator:
        points.append(point)
        hints.append(generator.size_hint())
    return points, hints


def assert_hints_sound(test, hints) -> None:
    """hints[i] was taken with len(hints) - 1 - i points still to come."""
    total = len(hints) - 1
    for n, (low, high) in enumerate(hints):
        remaining = total - n
        test.assertLessEqual(low, remaining, f"lower bound too high at step {n}")
        test.assertGreaterEqual(high, remaining, f"upper bound too low at step {n}")
