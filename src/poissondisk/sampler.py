import logging
import numpy as np
from enum import Enum
from typing import List, Optional, Tuple

from .config import (
    DEFAULT_ATTEMPTS,
    DEFAULT_RELATIVE_RADIUS,
    PROGRESS_INTERVAL,
    ConfigurationError,
    Point,
    SamplingConfig,
    SamplingProgress,
    SeedLike,
    SpacingViolationError,
    VecLike,
)
from .geometry import Grid, calc_radius

logger = logging.getLogger(__name__)


def make_rng(seed: SeedLike = None) -> np.random.Generator:
    """
    Fresh random stream for one generator.

    Seeds are replayed, so equal seeds give equal streams. A Generator or
    BitGenerator is never shared: an independent child is spawned from it
    and the parent's own stream is left untouched.
    """
    if isinstance(seed, (np.random.Generator, np.random.BitGenerator)):
        return np.random.default_rng(seed.spawn(1)[0])
    return np.random.default_rng(seed)


class SamplerState(Enum):
    """Lifecycle of a generator."""
    SEEDING = "seeding"         # No point produced yet
    EXPANDING = "expanding"     # Growing around the active frontier
    EXHAUSTED = "exhausted"     # Frontier empty or budget spent


class PoissonGenerator:
    """
    Lazily produces Poisson-disk samples by dart throwing around an active
    frontier of accepted points.

    Each call to next() runs until one point is accepted or the frontier is
    used up. All randomness comes from a single numpy Generator, so a given
    seed and configuration always produce the same sequence.
    """

    def __init__(
        self,
        grid: Grid,
        rng: np.random.Generator,
        attempts: int = DEFAULT_ATTEMPTS,
        samples: Optional[int] = None,
        verbose: bool = False,
    ):
        self.grid = grid
        self.rng = rng
        self.attempts = attempts
        self.state = SamplerState.SEEDING
        self.prefilled: List[Point] = []
        self.progress = SamplingProgress(state=self.state.value)

        self._remaining = samples
        self._active: List[Point] = []
        self._log = logger.info if verbose else logger.debug

        if self._remaining == 0:
            self.state = SamplerState.EXHAUSTED

        logger.debug(
            "Built generator: radius=%.6g dim=%d periodic=%s grid=%s reach=%d budget=%s",
            grid.radius, grid.dim, grid.periodic, grid.shape, grid.reach, samples,
        )

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def radius(self) -> float:
        return self.grid.radius

    @property
    def periodicity(self) -> bool:
        return self.grid.periodic

    @property
    def dim(self) -> int:
        return self.grid.dim

    @property
    def remaining(self) -> Optional[int]:
        """Samples left in the budget, or None when running to exhaustion."""
        return self._remaining

    def size_hint(self) -> Tuple[int, int]:
        """
        Bounds on the number of points still to come.

        Every cell holds at most one point, so the free cells bound the
        output from above. Dart throwing can give up with space left, so
        the only guaranteed point is the very first one.
        """
        if self.state is SamplerState.EXHAUSTED:
            return 0, 0
        upper = self.grid.free_cells
        if self._remaining is not None:
            upper = min(upper, self._remaining)
        lower = 1 if self.state is SamplerState.SEEDING and len(self.grid) == 0 and upper > 0 else 0
        return lower, upper

    def __length_hint__(self) -> int:
        return self.size_hint()[1]

    # =========================================================================
    # Prefill
    # =========================================================================

    def insert(self, point: VecLike) -> Point:
        """
        Add an externally chosen point as if the sampler had accepted it.

        Later points keep their distance from it. The point is not yielded
        by the iterator; it is kept in `prefilled` instead.

        Raises:
            SpacingViolationError: the point is closer than 2 * radius to a
                point already in the grid.
            PointOutsideDomainError: the point lies outside the bounded box.
        """
        point = self.grid.normalize(point)
        if not self.grid.is_valid(point):
            raise SpacingViolationError(
                f"point {point} is closer than {2 * self.radius:.6g} to an existing point"
            )
        stored = self.grid.insert(point)
        stored.setflags(write=False)
        self._active.append(stored)
        self.prefilled.append(stored)

        if self.state is SamplerState.EXHAUSTED and self._remaining != 0:
            self.state = SamplerState.EXPANDING
        self._update_progress()
        return stored

    # =========================================================================
    # Dart throwing
    # =========================================================================

    def _uniform_point(self) -> Point:
        return self.grid.topology.wrap(self.rng.random(self.dim))

    def _candidate_around(self, origin: Point) -> Optional[Point]:
        """Random point in the annulus [2r, 4r) around origin, uniform in volume."""
        direction = self.rng.standard_normal(self.dim)
        u = self.rng.random()
        norm = np.linalg.norm(direction)
        if norm == 0.0:
            return None
        dist = 2.0 * self.radius * (1.0 + u * (2.0 ** self.dim - 1.0)) ** (1.0 / self.dim)
        candidate = self.grid.topology.wrap(origin + direction * (dist / norm))
        if not self.grid.topology.contains(candidate):
            return None
        return candidate

    def _accept(self, point: Point) -> Point:
        self.grid.insert(point)
        point.setflags(write=False)
        self._active.append(point)
        self.progress.points_placed += 1
        if self._remaining is not None:
            self._remaining -= 1
            if self._remaining == 0:
                self.state = SamplerState.EXHAUSTED
                self._finish("budget reached")
        self._update_progress()
        if self.progress.points_placed % PROGRESS_INTERVAL == 0:
            self._log("%s", self.progress)
        return point

    def _seed(self) -> Optional[Point]:
        """First point: anywhere when the grid is empty, else away from prefilled points."""
        if len(self.grid) == 0:
            return self._accept(self._uniform_point())
        for _ in range(self.attempts):
            candidate = self._uniform_point()
            if self.grid.is_valid(candidate):
                return self._accept(candidate)
            self.progress.rejected_candidates += 1
        return None

    def _expand(self) -> Optional[Point]:
        """Grow from the most recent frontier point until one candidate sticks."""
        while self._active:
            parent = self._active.pop()
            for _ in range(self.attempts):
                candidate = self._candidate_around(parent)
                if candidate is not None and self.grid.is_valid(candidate):
                    # The parent may still have room around it
                    self._active.append(parent)
                    return self._accept(candidate)
                self.progress.rejected_candidates += 1
        self.state = SamplerState.EXHAUSTED
        self._finish("frontier empty")
        return None

    def _update_progress(self) -> None:
        self.progress.active = len(self._active)
        self.progress.state = self.state.value

    def _finish(self, reason: str) -> None:
        self._update_progress()
        self._log("Done (%s)! %s", reason, self.progress)

    # =========================================================================
    # Iterator protocol
    # =========================================================================

    def __iter__(self) -> "PoissonGenerator":
        return self

    def __next__(self) -> Point:
        if self.state is SamplerState.SEEDING:
            self.state = SamplerState.EXPANDING
            point = self._seed()
            if point is not None:
                return point
        if self.state is SamplerState.EXPANDING:
            point = self._expand()
            if point is not None:
                return point
        raise StopIteration

    def generate(self, out: Optional[List[Point]] = None) -> List[Point]:
        """Pull every remaining point into `out` and return it."""
        if out is None:
            out = []
        out.extend(self)
        return out


class PoissonDisk:
    """
    Builder for Poisson-disk generators over the unit hypercube.

    Usage:
        points = PoissonDisk(seed, dim=3).periodic().build_samples(100).generate()
    """

    def __init__(
        self,
        rng: SeedLike = None,
        dim: int = 2,
        attempts: int = DEFAULT_ATTEMPTS,
        verbose: bool = False,
    ):
        self.seed = rng
        self.dim = dim
        self.attempts = attempts
        self.verbose = verbose
        self._periodic = False

    def periodic(self, enabled: bool = True) -> "PoissonDisk":
        """Sample the unit torus instead of the bounded box."""
        self._periodic = enabled
        return self

    def build_radius(self, radius: float) -> PoissonGenerator:
        """Generator that runs until no more points with this radius fit."""
        return self._build(SamplingConfig(
            dim=self.dim,
            radius=radius,
            periodic=self._periodic,
            attempts=self.attempts,
            verbose=self.verbose,
        ))

    def build_samples(self, samples: int, relative_radius: float = DEFAULT_RELATIVE_RADIUS) -> PoissonGenerator:
        """Generator for at most `samples` points, spaced for roughly that many."""
        return self._build(SamplingConfig(
            dim=self.dim,
            samples=samples,
            relative_radius=relative_radius,
            periodic=self._periodic,
            attempts=self.attempts,
            verbose=self.verbose,
        ))

    @classmethod
    def from_config(cls, config: SamplingConfig) -> PoissonGenerator:
        builder = cls(config.seed, dim=config.dim, attempts=config.attempts, verbose=config.verbose)
        return builder.periodic(config.periodic)._build(config)

    def _build(self, config: SamplingConfig) -> PoissonGenerator:
        config.validate()
        if config.radius is not None:
            radius = float(config.radius)
        else:
            radius = calc_radius(config.samples, config.relative_radius, config.dim)

        if config.periodic and radius > 0.5:
            raise ConfigurationError(
                f"periodic radius must be at most 0.5, got {radius:.6g}; "
                "a point would overlap its own image"
            )

        grid = Grid(radius, config.dim, config.periodic)
        return PoissonGenerator(
            grid,
            make_rng(self.seed),
            attempts=config.attempts,
            samples=config.samples,
            verbose=config.verbose,
        )
