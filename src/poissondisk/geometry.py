"""
Geometry utilities for Poisson-disk sampling in the unit hypercube.

Contains:
- Topology: bounded vs. toroidal distance and coordinate wrapping
- Grid: background grid holding at most one sample per cell
- n-ball helpers used to turn a target sample count into a radius
"""

import math
import numpy as np
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .config import (
    CellKey,
    CellOccupiedError,
    ConfigurationError,
    Point,
    PointOutsideDomainError,
    VecLike,
)

# Densest known sphere packings for dimensions 1-8
PACKING_DENSITIES = (
    1.0,
    math.pi / math.sqrt(12),
    math.pi / math.sqrt(18),
    math.pi ** 2 / 16,
    math.pi ** 2 / (15 * math.sqrt(2)),
    math.pi ** 3 / (48 * math.sqrt(3)),
    math.pi ** 3 / 105,
    math.pi ** 4 / 384,
)

# Below this many points a brute-force distance check beats cell lookups
VECTORIZED_THRESHOLD = 750

# Cell coordinates must stay within int64
MAX_CELLS_PER_AXIS = 2 ** 62


def sphere_volume(radius: float, dim: int) -> float:
    """Volume of a dim-dimensional ball."""
    return math.pi ** (dim / 2) / math.gamma(dim / 2 + 1) * radius ** dim


def max_packing_density(dim: int) -> float:
    """Fraction of space covered by the densest known packing of equal balls."""
    if dim < 1:
        raise ValueError(f"dim must be positive, got {dim}")
    if dim <= len(PACKING_DENSITIES):
        return PACKING_DENSITIES[dim - 1]
    # Minkowski-Hlawka lower bound
    return 2.0 ** (1 - dim)


def calc_radius(samples: int, relative_radius: float, dim: int) -> float:
    """
    Radius for which `samples` balls would fill the unit hypercube at the
    densest known packing, scaled down by `relative_radius`.

    This is only an estimate of the spacing; dart throwing stops well short
    of the densest packing, so the actual sample count varies.
    """
    unit = sphere_volume(1.0, dim)
    return relative_radius * (max_packing_density(dim) / (samples * unit)) ** (1.0 / dim)


@dataclass(frozen=True)
class Topology:
    """Distance and wrapping rules of the unit domain."""
    periodic: bool = False

    def wrap(self, point: Point) -> Point:
        if not self.periodic:
            return point
        wrapped = np.mod(point, 1.0)
        # x % 1.0 rounds to 1.0 for tiny negative x
        return np.where(wrapped >= 1.0, 0.0, wrapped)

    def contains(self, point: Point) -> bool:
        if self.periodic:
            return bool(np.all(np.isfinite(point)))
        return bool(np.all((point >= 0.0) & (point < 1.0)))

    def deltas(self, points: np.ndarray, point: Point) -> np.ndarray:
        """Per-axis separation, using the nearest image when periodic."""
        delta = np.abs(np.asarray(points, dtype=float) - np.asarray(point, dtype=float))
        if self.periodic:
            delta = np.minimum(delta, 1.0 - delta)
        return delta

    def distance(self, a: VecLike, b: VecLike) -> float:
        return float(np.linalg.norm(self.deltas(a, b)))

    def distances(self, points: np.ndarray, point: Point) -> np.ndarray:
        """Vectorized distance from many points to one."""
        if len(points) == 0:
            return np.empty(0)
        return np.linalg.norm(self.deltas(points, point), axis=-1)

    def cell_of(self, point: VecLike, cell_size: float) -> CellKey:
        cell_coords = np.floor(np.asarray(point, dtype=float) / cell_size).astype(int)
        return tuple(int(c) for c in cell_coords)

    def neighbor_cell_offsets(self, dim: int, reach: int = 2, max_gap: Optional[float] = None) -> np.ndarray:
        """
        Integer offsets in {-reach..reach}^dim.

        With `max_gap` (in cells), offsets whose nearest possible point is
        at least that far away are skipped while the offsets are built, so
        the full cube is never listed.
        """
        limit = math.inf if max_gap is None else max_gap ** 2
        offsets: List[Tuple[int, ...]] = []

        def extend(prefix: Tuple[int, ...], gap_sq: int) -> None:
            if len(prefix) == dim:
                offsets.append(prefix)
                return
            for step in range(-reach, reach + 1):
                total = gap_sq + max(abs(step) - 1, 0) ** 2
                if total < limit:
                    extend(prefix + (step,), total)

        extend((), 0)
        return np.array(offsets, dtype=int).reshape(-1, dim)

    def resolve_cells(self, cells: np.ndarray, shape: Sequence[int]) -> np.ndarray:
        """Map cell coordinates onto a grid of `shape`, dropping cells off a bounded grid."""
        extent = np.asarray(shape, dtype=np.int64)
        if self.periodic:
            return np.mod(cells, extent)
        inside = np.all((cells >= 0) & (cells < extent), axis=1)
        return cells[inside]


class Grid:
    """
    Background grid for Poisson-disk sampling.

    The nominal cell side is 2 * radius / sqrt(dim), so the cell diagonal
    equals the minimum separation and a cell can hold at most one sample.
    Only occupied cells are stored, keyed by their integer coordinates.

    While few points are stored, lookups compare against all of them at
    once; cell lookups take over when the neighbourhood holds fewer cells
    than there are points.
    """

    def __init__(self, radius: float, dim: int, periodic: bool = False,
                 vectorized_threshold: int = VECTORIZED_THRESHOLD):
        if dim < 1:
            raise ConfigurationError(f"dim must be positive, got {dim}")
        if not math.isfinite(radius) or radius <= 0:
            raise ConfigurationError(f"radius must be positive and finite, got {radius}")

        self.radius = float(radius)
        self.dim = int(dim)
        self.topology = Topology(periodic)
        self.vectorized_threshold = vectorized_threshold

        cell_size = 2.0 * self.radius / math.sqrt(self.dim)
        if 1.0 / cell_size >= MAX_CELLS_PER_AXIS:
            raise ConfigurationError(f"radius {radius} is too small to index with integer cells")
        side = max(1, int(math.ceil(1.0 / cell_size)))
        if periodic:
            # Cells must tile the torus exactly for index wrapping to hold
            cell_size = 1.0 / side

        self.cell_size = cell_size
        self.shape: Tuple[int, ...] = (side,) * self.dim
        self.reach = max(1, int(math.ceil(2.0 * self.radius / self.cell_size)))
        self._max_gap = 2.0 * self.radius / self.cell_size

        self.grid: Dict[CellKey, int] = {}
        self._points: List[Point] = []
        self._points_arr: Optional[np.ndarray] = None
        self._offsets: Optional[np.ndarray] = None
        self._offset_count: Optional[int] = None

    # =========================================================================
    # Search neighbourhood
    # =========================================================================

    def _count_offsets(self) -> int:
        """Size of the pruned search neighbourhood, without building it."""
        limit = self._max_gap ** 2
        step_gaps = [max(abs(step) - 1, 0) ** 2 for step in range(-self.reach, self.reach + 1)]
        totals = {0: 1}
        for _ in range(self.dim):
            extended: Dict[int, int] = {}
            for gap_sq, n in totals.items():
                for gap in step_gaps:
                    if gap_sq + gap < limit:
                        extended[gap_sq + gap] = extended.get(gap_sq + gap, 0) + n
            totals = extended
        return sum(totals.values())

    def _search_offsets(self) -> np.ndarray:
        """Offsets of cells that can hold a point closer than 2 * radius."""
        if self._offsets is None:
            self._offsets = self.topology.neighbor_cell_offsets(self.dim, self.reach, self._max_gap)
        return self._offsets

    def _use_cells(self) -> bool:
        if len(self._points) <= self.vectorized_threshold:
            return False
        if self._offset_count is None:
            self._offset_count = self._count_offsets()
        return self._offset_count < len(self._points)

    # =========================================================================
    # Storage
    # =========================================================================

    @property
    def periodic(self) -> bool:
        return self.topology.periodic

    @property
    def cells(self) -> int:
        return self.shape[0] ** self.dim

    @property
    def free_cells(self) -> int:
        return self.cells - len(self._points)

    def __len__(self) -> int:
        return len(self._points)

    def _get_array(self) -> np.ndarray:
        if self._points_arr is None:
            if self._points:
                self._points_arr = np.array(self._points)
            else:
                self._points_arr = np.empty((0, self.dim))
        return self._points_arr

    def normalize(self, point: VecLike) -> Point:
        """Coerce a point to a float vector inside the domain."""
        arr = np.array(point, dtype=float)
        if arr.shape != (self.dim,):
            raise ValueError(f"expected a point of dimension {self.dim}, got shape {arr.shape}")
        arr = self.topology.wrap(arr)
        if not self.topology.contains(arr):
            raise PointOutsideDomainError(f"point {arr} lies outside the unit domain")
        return arr

    def cell_of(self, point: Point) -> CellKey:
        key = self.topology.cell_of(point, self.cell_size)
        # Rounding can put a point just below 1.0 one cell past the end
        return tuple(min(k, s - 1) for k, s in zip(key, self.shape))

    def insert(self, point: VecLike) -> Point:
        """Store a point in its cell and return the stored copy."""
        point = self.normalize(point)
        key = self.cell_of(point)
        if key in self.grid:
            raise CellOccupiedError(f"cell {key} already holds {self._points[self.grid[key]]}")
        self.grid[key] = len(self._points)
        self._points.append(point)
        self._points_arr = None
        return point

    # =========================================================================
    # Queries
    # =========================================================================

    def neighbors(self, point: Point) -> np.ndarray:
        """Stored points that might lie within 2 * radius of a point."""
        if not self._use_cells():
            return self._get_array()
        return self._cell_neighbors(point)

    def _cell_neighbors(self, point: Point) -> np.ndarray:
        """Stored points in the pruned cell neighbourhood of a point."""
        base = np.asarray(self.cell_of(point), dtype=np.int64)
        cells = self.topology.resolve_cells(base + self._search_offsets(), self.shape)
        # Offsets wider than a periodic grid wrap onto the same cells
        keys = {tuple(cell) for cell in cells.tolist()}
        indices = sorted(self.grid[key] for key in keys if key in self.grid)
        return self._get_array()[indices]

    def neighbors_within(self, point: Point, distance: float) -> np.ndarray:
        nearby = self.neighbors(point)
        if len(nearby) == 0:
            return nearby
        return nearby[self.topology.distances(nearby, point) < distance]

    def is_valid(self, point: Point, radius: Optional[float] = None) -> bool:
        """Check that no stored point lies closer than 2 * radius (the grid's by default)."""
        if radius is None:
            radius = self.radius
        elif radius > self.radius:
            raise ValueError(f"radius {radius} exceeds the grid radius {self.radius}")
        return len(self.neighbors_within(point, 2.0 * radius)) == 0

    def points(self) -> np.ndarray:
        """All stored points, in insertion order."""
        return self._get_array().copy()
