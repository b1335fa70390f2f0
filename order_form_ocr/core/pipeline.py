"""
Single-image pipeline for Order Form OCR.

Binarizes a photographed order form, infers its grid, reads every cell of
interest and corrects codes and descriptions against the ordered catalog.
"""

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import cv2
import numpy as np
from tqdm import tqdm

from .detection import (
    DEFAULT_CELL_MARGIN,
    DEFAULT_COLUMN_BANDWIDTH,
    DEFAULT_MIN_LINE_WIDTH,
    DEFAULT_ROW_BANDWIDTH,
    GridBuilder,
    GridLineDetector,
)
from .postprocessing import CatalogCursor, CellRoleResolver, OrderedFuzzyMatcher
from .preprocessing import ImagePreprocessor
from .recognition import RoleEngines
from .utils import (
    CatalogEntry,
    CellReading,
    CellRectangle,
    DegenerateGeometryError,
    EmptyCandidateSetError,
    FormResult,
    MatchResult,
    Role,
    RowResult,
    draw_grid,
    load_image,
    save_form_result,
)

UNREADABLE_MARKER = "Couldn't read this"


class OrderFormPipeline:
    """
    Reads an order form table cell by cell.

    Rows are processed strictly top to bottom: the catalog window for each
    row starts at a cursor that only moves forward.
    """

    def __init__(
        self,
        catalog: Sequence[CatalogEntry],
        engines: RoleEngines,
        min_line_width: int = DEFAULT_MIN_LINE_WIDTH,
        row_bandwidth: int = DEFAULT_ROW_BANDWIDTH,
        column_bandwidth: int = DEFAULT_COLUMN_BANDWIDTH,
        cell_margin: int = DEFAULT_CELL_MARGIN,
        scale: float = 1.0,
        roles: Optional[CellRoleResolver] = None,
        header_rows: int = 1,
        max_normalized_distance: Optional[float] = None,
        save_cells: bool = False,
        verbose: bool = False
    ):
        self.catalog = tuple(catalog)
        self.codes = [entry.code for entry in self.catalog]
        self.descriptions = [entry.description for entry in self.catalog]

        self.engines = engines
        self.row_bandwidth = row_bandwidth
        self.column_bandwidth = column_bandwidth
        self.cell_margin = cell_margin
        self.header_rows = header_rows
        self.save_cells = save_cells
        self.verbose = verbose

        self.preprocessor = ImagePreprocessor()
        self.line_detector = GridLineDetector(min_line_width=min_line_width, scale=scale)
        self.roles = roles or CellRoleResolver()
        self.matcher = OrderedFuzzyMatcher(max_normalized_distance=max_normalized_distance)

    def detect_grid(self, binary: np.ndarray) -> Tuple[List[int], List[int]]:
        """Row (y) and column (x) boundaries of the table."""
        rows, columns = self.line_detector.detect_grid(
            binary, self.row_bandwidth, self.column_bandwidth
        )
        print(f"[Grid] {len(rows)} horizontal line(s) found")
        print(f"[Grid] {len(columns)} vertical line(s) found")
        return rows, columns

    def read_cells(
        self,
        binary: np.ndarray,
        row_boundaries: Sequence[int],
        column_boundaries: Sequence[int],
        cell_dir: Optional[Path] = None
    ) -> List[RowResult]:
        """
        Recognize and correct all cells in row-major order.

        Args:
            binary: Binary image the cells are cropped from
            row_boundaries: Sorted y coordinates of row separators
            column_boundaries: Sorted x coordinates of column separators
            cell_dir: If given, cropped cells are written there

        Returns:
            One RowResult per grid row
        """
        h, w = binary.shape[:2]
        grid = GridBuilder(row_boundaries, column_boundaries, w, h, self.cell_margin)
        cursor = CatalogCursor(self.header_rows)

        results = []
        rows = tqdm(grid.iter_rows(), total=grid.n_rows, desc="Reading rows", disable=not self.verbose)
        for row, cells in enumerate(rows):
            row_result = RowResult(row=row, start_index=cursor.position)

            for column, cell in cells:
                role = self.roles.role_for(column)
                if role == Role.IGNORE:
                    continue

                if isinstance(cell, DegenerateGeometryError):
                    row_result.skipped[column] = str(cell)
                    if self.verbose:
                        print(f"[Grid] Skipping cell ({row}, {column}): {cell}")
                    continue

                reading = self._read_cell(binary, cell, role, cursor.position, cell_dir)
                if reading is not None:
                    row_result.readings.append(reading)

            results.append(row_result)
            cursor.advance(row)

        return results

    def _read_cell(
        self,
        binary: np.ndarray,
        cell: CellRectangle,
        role: Role,
        start_index: int,
        cell_dir: Optional[Path]
    ) -> Optional[CellReading]:
        engine = self.engines.engine_for(role)
        crop = cell.crop(binary)
        text = engine.recognize(crop).strip()

        if not text and role != Role.DESCRIPTION:
            return None

        if cell_dir is not None:
            cv2.imwrite(str(cell_dir / f"cell_{cell.row}_{cell.column}.png"), crop)

        if not text:
            # Description cells always hold text on a filled-in form
            return CellReading(cell.row, cell.column, role, UNREADABLE_MARKER, unreadable=True)

        match = None
        if role in (Role.CODE, Role.DESCRIPTION):
            candidates = self.codes if role == Role.CODE else self.descriptions
            match = self._match(text, candidates, start_index)

        if self.verbose:
            corrected = f" -> '{match.candidate}' (d={match.distance})" if match and match.matched else ""
            print(f"[Correct] Cell ({cell.row}, {cell.column}) {role.value}: '{text}'{corrected}")

        return CellReading(cell.row, cell.column, role, text, match=match)

    def _match(self, text: str, candidates: List[str], start_index: int) -> MatchResult:
        try:
            return self.matcher.match(text, candidates, start_index)
        except EmptyCandidateSetError as e:
            if self.verbose:
                print(f"[Correct] No match for '{text}': {e}")
            return MatchResult(text=text)

    def process_binary(self, binary: np.ndarray, image_path: str = "") -> FormResult:
        """Grid detection and cell reading on an already binarized image."""
        rows, columns = self.detect_grid(binary)
        return FormResult(
            image_path=image_path,
            row_boundaries=rows,
            column_boundaries=columns,
            rows=self.read_cells(binary, rows, columns),
        )

    def process_image(
        self,
        image_path: str,
        output_dir: Optional[str] = None
    ) -> FormResult:
        """
        Process a photographed order form.

        Args:
            image_path: Path to the photo
            output_dir: Directory for binary/annotated images and JSON, or None

        Returns:
            FormResult with grid boundaries and per-row readings
        """
        image = load_image(image_path)
        binary = self.preprocessor.binarize(image)

        out_path = None
        cell_dir = None
        if output_dir is not None:
            out_path = Path(output_dir)
            out_path.mkdir(parents=True, exist_ok=True)
            cv2.imwrite(str(out_path / "binary.png"), binary)
            if self.save_cells:
                cell_dir = out_path / "cells"
                cell_dir.mkdir(exist_ok=True)
        elif self.save_cells:
            print("[Output] save_cells ignored: no output directory given")

        rows, columns = self.detect_grid(binary)

        if out_path is not None:
            annotated = draw_grid(image, rows, columns)
            cv2.imwrite(str(out_path / "detected_lines.png"), annotated)

        result = FormResult(
            image_path=str(image_path),
            row_boundaries=rows,
            column_boundaries=columns,
            rows=self.read_cells(binary, rows, columns, cell_dir=cell_dir),
        )

        if out_path is not None:
            json_path = save_form_result(result, out_path, Path(image_path).stem)
            print(f"[Output] Saved results to {json_path}")

        return result

    def summary(self, result: FormResult) -> Dict[str, int]:
        readings = [r for row in result.rows for r in row.readings]
        return {
            "rows": len(result.rows),
            "cells_read": len(readings),
            "unreadable": sum(1 for r in readings if r.unreadable),
            "skipped": sum(len(row.skipped) for row in result.rows),
        }
