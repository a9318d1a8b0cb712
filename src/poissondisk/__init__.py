"""
poissondisk - Poisson-disk sampling of the n-dimensional unit hypercube.

Usage:
    from poissondisk import PoissonDisk

    # As many points as fit with a given radius (points are >= 2 * radius apart)
    points = PoissonDisk(seed, dim=2).build_radius(0.05).generate()

    # Roughly 100 points on the unit 3-torus
    generator = PoissonDisk(seed, dim=3).periodic().build_samples(100, 0.8)
    for point in generator:
        ...

    # Points chosen elsewhere can be inserted before sampling
    generator = PoissonDisk(seed).build_radius(0.1)
    generator.insert([0.5, 0.5])
    points = generator.prefilled + generator.generate()

Topologies:
    - Bounded: the half-open box [0, 1)^dim
    - Periodic: the unit torus, distances use the nearest wrapped image
"""

from .config import (
    CellOccupiedError,
    ConfigurationError,
    PointOutsideDomainError,
    PoissonDiskError,
    SamplingConfig,
    SamplingProgress,
    SpacingViolationError,
    VecLike,
)
from .geometry import Grid, Topology, calc_radius, max_packing_density, sphere_volume
from .sampler import PoissonDisk, PoissonGenerator, SamplerState

__all__ = [
    "PoissonDisk",
    "PoissonGenerator",
    "SamplerState",
    "SamplingConfig",
    "SamplingProgress",
    "Grid",
    "Topology",
    "VecLike",
    "calc_radius",
    "max_packing_density",
    "sphere_volume",
    "PoissonDiskError",
    "ConfigurationError",
    "SpacingViolationError",
    "CellOccupiedError",
    "PointOutsideDomainError",
]

__version__ = "0.1.0"
