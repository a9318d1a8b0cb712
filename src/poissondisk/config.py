"""
Configuration and type definitions for Poisson-disk sampling.
"""

import math
import numpy as np
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, Tuple, Union

# Type aliases
Point = np.ndarray
CellKey = Tuple[int, ...]
SeedLike = Union[None, int, Sequence[int], np.random.SeedSequence, np.random.BitGenerator, np.random.Generator]

DEFAULT_ATTEMPTS = 30
DEFAULT_RELATIVE_RADIUS = 0.8
PROGRESS_INTERVAL = 25


class VecLike(Protocol):
    """Anything that reads as a vector of coordinates, one per axis."""

    def __len__(self) -> int: ...

    def __getitem__(self, axis: int) -> float: ...


class PoissonDiskError(Exception):
    """Base class for all sampling errors."""


class ConfigurationError(PoissonDiskError, ValueError):
    """Raised at build time for a configuration that cannot be sampled."""


class SpacingViolationError(PoissonDiskError, ValueError):
    """Raised when a point would break the minimum separation."""


class CellOccupiedError(SpacingViolationError):
    """Raised when inserting into a grid cell that already holds a point."""


class PointOutsideDomainError(PoissonDiskError, ValueError):
    """Raised for a point outside the bounded unit hypercube."""


@dataclass
class SamplingConfig:
    """
    Configuration parameters for a Poisson-disk generator.

    Spacing (exactly one of the two):
        radius: Absolute radius, accepted points are at least 2 * radius apart
        samples: Target sample count, the radius is derived from it

    Other parameters:
        dim: Dimension of the unit hypercube being sampled
        relative_radius: Packing fraction used with `samples` (0 < r <= 1)
        periodic: Sample the unit torus instead of the bounded box
        seed: Anything numpy.random.default_rng accepts
        attempts: Candidates tried around a frontier point before dropping it
        verbose: Report progress at INFO instead of DEBUG
    """
    dim: int = 2
    samples: Optional[int] = None
    relative_radius: float = DEFAULT_RELATIVE_RADIUS
    radius: Optional[float] = None
    periodic: bool = False
    seed: SeedLike = None
    attempts: int = DEFAULT_ATTEMPTS
    verbose: bool = False

    def validate(self) -> None:
        """Reject configurations that can be ruled out before building a grid."""
        if isinstance(self.dim, bool) or not isinstance(self.dim, (int, np.integer)) or self.dim < 1:
            raise ConfigurationError(f"dim must be a positive integer, got {self.dim!r}")
        if isinstance(self.attempts, bool) or not isinstance(self.attempts, (int, np.integer)) or self.attempts < 1:
            raise ConfigurationError(f"attempts must be a positive integer, got {self.attempts!r}")

        if (self.radius is None) == (self.samples is None):
            raise ConfigurationError("exactly one of radius and samples must be given")

        if self.radius is not None:
            if not math.isfinite(self.radius) or self.radius <= 0:
                raise ConfigurationError(f"radius must be positive and finite, got {self.radius!r}")
        else:
            if isinstance(self.samples, bool) or not isinstance(self.samples, (int, np.integer)) or self.samples < 1:
                raise ConfigurationError(f"samples must be a positive integer, got {self.samples!r}")
            if not 0 < self.relative_radius <= 1:
                raise ConfigurationError(
                    f"relative_radius must be in (0, 1], got {self.relative_radius!r}"
                )


@dataclass
class SamplingProgress:
    """Tracks the current state of a generator."""
    points_placed: int = 0
    rejected_candidates: int = 0
    active: int = 0
    state: str = ""

    @property
    def acceptance_ratio(self) -> float:
        """Share of candidates that became points."""
        total = self.points_placed + self.rejected_candidates
        return self.points_placed / total if total > 0 else 0.0

    def __str__(self) -> str:
        state_str = f"[{self.state}] " if self.state else ""
        return (f"{state_str}Placed: {self.points_placed} | Rejected: {self.rejected_candidates} "
                f"| Active: {self.active} ({self.acceptance_ratio:.0%} accepted)")
