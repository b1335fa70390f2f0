"""
Unit tests for cell construction (GridBuilder in core/detection.py).

Usage:
    pytest tests/test_grid.py -v
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add parent for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.detection import GridBuilder, build_cells
from core.utils import CellRectangle, DegenerateGeometryError, InvalidInputError


class TestGridBuilder:
    """Test cell rectangles, margins and ordering."""

    def test_no_lines_single_cell(self):
        cells = build_cells([], [], image_width=100, image_height=200, margin=5)
        assert cells == [CellRectangle(row=0, column=0, x=0, y=0, width=100, height=200)]

    def test_cell_count(self):
        cells = build_cells([50, 150], [40], image_width=100, image_height=200, margin=5)
        assert len(cells) == 6

    def test_interior_and_border_margins(self):
        cells = build_cells([50, 150], [40], image_width=100, image_height=200, margin=5)
        by_position = {(c.row, c.column): c for c in cells}

        cell = by_position[(1, 0)]
        assert (cell.x, cell.right) == (0, 35)
        assert (cell.y, cell.bottom) == (55, 145)

        # Top-left: only the interior edges are inset
        cell = by_position[(0, 0)]
        assert (cell.x, cell.y, cell.right, cell.bottom) == (0, 0, 35, 45)

        # Bottom-right: open towards the image border
        cell = by_position[(2, 1)]
        assert (cell.x, cell.y, cell.right, cell.bottom) == (45, 155, 100, 200)

    def test_row_major_order(self):
        cells = build_cells([50, 150], [40], image_width=100, image_height=200, margin=5)
        positions = [(c.row, c.column) for c in cells]
        assert positions == [(0, 0), (0, 1), (1, 0), (1, 1), (2, 0), (2, 1)]

    def test_zero_margin_cells_tile_image(self):
        cells = build_cells([30, 70], [25, 60], image_width=90, image_height=100, margin=0)
        assert sum(c.width * c.height for c in cells) == 90 * 100

    def test_degenerate_cell_raises(self):
        with pytest.raises(DegenerateGeometryError) as exc:
            build_cells([50, 56], [], image_width=100, image_height=200, margin=5)
        assert exc.value.row == 1
        assert exc.value.height <= 0

    def test_degenerate_cell_isolated_in_rows(self):
        """Only the degenerate cell is reported; its neighbours are usable."""
        grid = GridBuilder([50, 56], [40], image_width=100, image_height=200, margin=5)
        rows = list(grid.iter_rows())

        assert len(rows) == 3
        assert all(isinstance(cell, CellRectangle) for _, cell in rows[0])
        assert all(isinstance(cell, DegenerateGeometryError) for _, cell in rows[1])
        assert all(isinstance(cell, CellRectangle) for _, cell in rows[2])

    def test_cell_at_out_of_range(self):
        grid = GridBuilder([50], [40], image_width=100, image_height=200)
        with pytest.raises(IndexError):
            grid.cell_at(2, 0)

    def test_negative_margin_rejected(self):
        with pytest.raises(InvalidInputError):
            GridBuilder([], [], 100, 100, margin=-1)

    def test_unsorted_boundaries_sorted(self):
        grid = GridBuilder([150, 50], [40], image_width=100, image_height=200, margin=5)
        assert grid.row_boundaries == [50, 150]

    def test_crop_matches_rectangle(self):
        image = np.arange(200 * 100, dtype=np.int32).reshape(200, 100)
        cell = GridBuilder([50, 150], [40], 100, 200, margin=5).cell_at(1, 1)
        crop = cell.crop(image)

        assert crop.shape == (cell.height, cell.width)
        assert crop[0, 0] == image[cell.y, cell.x]
