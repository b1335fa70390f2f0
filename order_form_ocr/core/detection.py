"""
Grid detection functions for Order Form OCR.

Contains Hough line detection, mean-shift clustering of line coordinates into
grid boundaries, and construction of cell regions from those boundaries.
"""

import warnings
from typing import Iterable, Iterator, List, Sequence, Tuple, Union

import cv2
import numpy as np
from sklearn.cluster import get_bin_seeds
from sklearn.neighbors import NearestNeighbors

from .preprocessing import ImagePreprocessor
from .utils import (
    CellRectangle,
    DegenerateGeometryError,
    Direction,
    InvalidInputError,
    LineSegment,
)

# Defaults of the reference order form photographs
DEFAULT_MIN_LINE_WIDTH = 30   # Shortest segment that still counts as grid line (pixels)
DEFAULT_ROW_BANDWIDTH = 6     # Horizontal lines closer than this are one boundary
DEFAULT_COLUMN_BANDWIDTH = 4  # Vertical lines closer than this are one boundary
DEFAULT_CELL_MARGIN = 5       # Inset from each detected boundary to keep ink out of cells

# Kernel contributions beyond this many bandwidths are ignored
KERNEL_CUTOFF = 3.0


class CoordinateClusterer:
    """Gaussian-kernel mean shift over weighted 1-D coordinates.

    Each coordinate counts once per occurrence, so repeating a coordinate
    raises its weight. Runs single-threaded and without randomness, so the
    same sample always gives the same centers in the same order.
    """

    def __init__(self, max_iter: int = 300, tol: float = 1e-3):
        self.max_iter = max_iter
        self.tol = tol

    def cluster(self, coordinates: Iterable[int], bandwidth: int) -> List[int]:
        """
        Find the modes of the coordinate density.

        Args:
            coordinates: Integer positions, repeated to express weight
            bandwidth: Minimum separation of two distinct centers

        Returns:
            Strictly increasing integer cluster centers
        """
        if bandwidth < 0:
            raise InvalidInputError(f"Bandwidth must be non-negative, got {bandwidth}")

        points = np.asarray(list(coordinates), dtype=np.float64)
        if points.size == 0:
            return []

        values, counts = np.unique(points, return_counts=True)

        if bandwidth == 0:
            return np.unique(np.rint(values)).astype(int).tolist()

        modes = self._shift(self._seeds(values, bandwidth), values, counts, bandwidth)
        return self._merge_modes(modes, values, counts, bandwidth)

    def _seeds(self, values: np.ndarray, bandwidth: int) -> np.ndarray:
        with warnings.catch_warnings():
            # get_bin_seeds warns when every value lands in its own bin
            warnings.simplefilter("ignore")
            seeds = get_bin_seeds(values.reshape(-1, 1), bandwidth, min_bin_freq=1)
        return np.sort(np.asarray(seeds, dtype=np.float64).ravel())

    def _shift(
        self,
        seeds: np.ndarray,
        values: np.ndarray,
        counts: np.ndarray,
        bandwidth: int
    ) -> np.ndarray:
        """Move all seeds uphill together until none moves more than tol."""
        x = seeds.copy()
        weights = counts.astype(np.float64)

        for _ in range(self.max_iter):
            diff = (x[:, None] - values[None, :]) / bandwidth
            kernel = np.exp(-0.5 * diff ** 2) * weights[None, :]
            kernel[np.abs(diff) > KERNEL_CUTOFF] = 0.0

            total = kernel.sum(axis=1)
            shifted = np.where(total > 0, (kernel @ values) / np.where(total > 0, total, 1.0), x)

            moved = np.abs(shifted - x)
            x = shifted
            if np.all(moved < self.tol * bandwidth):
                break

        return x

    def _merge_modes(
        self,
        modes: np.ndarray,
        values: np.ndarray,
        counts: np.ndarray,
        bandwidth: int
    ) -> List[int]:
        """Keep the best supported center of every group closer than bandwidth."""
        centers = np.unique(np.rint(modes)).astype(np.int64)

        # Support = weight of samples within one bandwidth of the center
        within = np.abs(values[None, :] - centers[:, None]) <= bandwidth
        support = within.astype(np.int64) @ counts

        order = np.lexsort((centers, -support))
        centers = centers[order]

        nn = NearestNeighbors(radius=bandwidth).fit(centers.reshape(-1, 1).astype(np.float64))
        keep = np.ones(len(centers), dtype=bool)
        for i, center in enumerate(centers):
            if not keep[i]:
                continue
            neighbors = nn.radius_neighbors([[float(center)]], return_distance=False)[0]
            keep[neighbors] = False
            keep[i] = True

        return sorted(int(c) for c in centers[keep])


class LineCoordinateExtractor:
    """Turns raw line segments into sorted boundary coordinates."""

    def __init__(self, clusterer: CoordinateClusterer = None):
        self.clusterer = clusterer or CoordinateClusterer()

    def extract_boundaries(
        self,
        segments: Sequence[LineSegment],
        direction: Direction,
        min_line_width: int,
        bandwidth: int,
        scale: float = 1.0
    ) -> List[int]:
        """
        Cluster the axis-aligned segments of one orientation.

        Args:
            segments: Detected segments, in coordinates of the (scaled) image
            direction: HORIZONTAL for row separators, VERTICAL for columns
            min_line_width: Segment length that earns one unit of weight
            bandwidth: Clustering bandwidth at full resolution
            scale: Factor the image was resized by before detection

        Returns:
            Sorted boundary coordinates at full resolution
        """
        if scale <= 0:
            raise InvalidInputError(f"Scale must be positive, got {scale}")
        if min_line_width <= 0:
            raise InvalidInputError(f"Minimum line width must be positive, got {min_line_width}")

        unit = max(int(round(min_line_width * scale)), 1)
        lines = [s for s in segments if s.is_aligned(direction)]

        # Longer lines repeat their coordinate more often and dominate the density
        samples = []
        for line in lines:
            samples.extend([line.coordinate(direction)] * int(line.length // unit))

        centers = self.clusterer.cluster(samples, int(round(bandwidth * scale)))

        return sorted({int(round(c / scale)) for c in centers})


class GridLineDetector:
    """Finds row and column boundaries of a table in a binary image."""

    def __init__(
        self,
        min_line_width: int = DEFAULT_MIN_LINE_WIDTH,
        max_line_gap: int = 0,
        scale: float = 1.0,
        extractor: LineCoordinateExtractor = None,
        preprocessor: ImagePreprocessor = None
    ):
        self.min_line_width = min_line_width
        self.max_line_gap = max_line_gap
        self.scale = scale
        self.extractor = extractor or LineCoordinateExtractor()
        self.preprocessor = preprocessor or ImagePreprocessor()

    def detect_segments(self, binary: np.ndarray) -> List[LineSegment]:
        """
        Probabilistic Hough transform restricted to 0 and 90 degrees.

        Returns:
            Segments in coordinates of the scaled image
        """
        image = self.preprocessor.rescale(binary, self.scale)
        # Lines are dark on white paper; Hough wants them non-zero
        inverted = cv2.bitwise_not(np.ascontiguousarray(image, dtype=np.uint8))

        length = int(round(self.min_line_width * self.scale))
        lines = cv2.HoughLinesP(
            inverted,
            1,                                   # rho resolution
            np.pi / 2,                           # theta resolution
            max(length, 2),                      # vote threshold
            minLineLength=max(length, 1),
            maxLineGap=int(round(self.max_line_gap * self.scale))
        )
        return LineSegment.from_hough(lines)

    def detect_boundaries(
        self,
        binary: np.ndarray,
        direction: Direction,
        bandwidth: int
    ) -> List[int]:
        segments = self.detect_segments(binary)
        return self.extractor.extract_boundaries(
            segments, direction, self.min_line_width, bandwidth, scale=self.scale
        )

    def detect_grid(
        self,
        binary: np.ndarray,
        row_bandwidth: int = DEFAULT_ROW_BANDWIDTH,
        column_bandwidth: int = DEFAULT_COLUMN_BANDWIDTH
    ) -> Tuple[List[int], List[int]]:
        """Row (y) and column (x) boundaries from one Hough pass."""
        segments = self.detect_segments(binary)
        rows = self.extractor.extract_boundaries(
            segments, Direction.HORIZONTAL, self.min_line_width, row_bandwidth, scale=self.scale
        )
        columns = self.extractor.extract_boundaries(
            segments, Direction.VERTICAL, self.min_line_width, column_bandwidth, scale=self.scale
        )
        return rows, columns


class GridBuilder:
    """Cell regions between sorted row and column boundaries.

    Row ``r`` lies between boundary ``r - 1`` and boundary ``r``; row 0 starts
    at the top image edge and the last row ends at the bottom edge. Columns
    work the same way. Edges on a detected boundary are inset by ``margin``,
    edges on the image border are not.
    """

    def __init__(
        self,
        row_boundaries: Sequence[int],
        column_boundaries: Sequence[int],
        image_width: int,
        image_height: int,
        margin: int = DEFAULT_CELL_MARGIN
    ):
        if margin < 0:
            raise InvalidInputError(f"Margin must be non-negative, got {margin}")

        self.row_boundaries = sorted(int(v) for v in row_boundaries)
        self.column_boundaries = sorted(int(v) for v in column_boundaries)
        self.image_width = int(image_width)
        self.image_height = int(image_height)
        self.margin = margin

    @property
    def n_rows(self) -> int:
        return len(self.row_boundaries) + 1

    @property
    def n_columns(self) -> int:
        return len(self.column_boundaries) + 1

    def _span(self, boundaries: List[int], index: int, extent: int) -> Tuple[int, int]:
        start, end = 0, extent
        if index > 0:
            start = boundaries[index - 1] + self.margin
        if index < len(boundaries):
            end = boundaries[index] - self.margin
        return start, end

    def cell_at(self, row: int, column: int) -> CellRectangle:
        if not (0 <= row < self.n_rows and 0 <= column < self.n_columns):
            raise IndexError(f"Cell ({row}, {column}) outside {self.n_rows}x{self.n_columns} grid")

        top, bottom = self._span(self.row_boundaries, row, self.image_height)
        left, right = self._span(self.column_boundaries, column, self.image_width)

        width, height = right - left, bottom - top
        if width <= 0 or height <= 0:
            raise DegenerateGeometryError(row, column, width, height)

        return CellRectangle(row=row, column=column, x=left, y=top, width=width, height=height)

    def build_cells(self) -> List[CellRectangle]:
        """All cells in row-major order; raises on the first degenerate one."""
        return [
            self.cell_at(row, column)
            for row in range(self.n_rows)
            for column in range(self.n_columns)
        ]

    def iter_rows(self) -> Iterator[List[Tuple[int, Union[CellRectangle, DegenerateGeometryError]]]]:
        """Per row, (column, cell) pairs with degenerate cells given as their error."""
        for row in range(self.n_rows):
            cells = []
            for column in range(self.n_columns):
                try:
                    cells.append((column, self.cell_at(row, column)))
                except DegenerateGeometryError as e:
                    cells.append((column, e))
            yield cells


def build_cells(
    row_boundaries: Sequence[int],
    column_boundaries: Sequence[int],
    image_width: int,
    image_height: int,
    margin: int = DEFAULT_CELL_MARGIN
) -> List[CellRectangle]:
    """Row-major cell rectangles for the given boundaries."""
    return GridBuilder(
        row_boundaries, column_boundaries, image_width, image_height, margin
    ).build_cells()
