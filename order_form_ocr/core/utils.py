"""
Utility functions and data classes for Order Form OCR.

Contains shared data structures, exceptions, file I/O helpers and drawing
utilities.
"""

import json
import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Dict, Optional, Tuple

import cv2
import numpy as np


# =============================================================================
# Exceptions
# =============================================================================

class OrderFormError(Exception):
    """Base class for order form processing errors."""
    pass


class InvalidInputError(OrderFormError):
    """Raised when parameters are malformed (e.g. a negative bandwidth)."""
    pass


class DegenerateGeometryError(OrderFormError):
    """Raised when a cell has no positive extent after margins are applied."""

    def __init__(self, row: int, column: int, width: int, height: int):
        self.row = row
        self.column = column
        self.width = width
        self.height = height
        super().__init__(
            f"Cell ({row}, {column}) is degenerate: {width}x{height} after margins"
        )


class EmptyCandidateSetError(OrderFormError):
    """Raised when matching is requested past the end of the candidates."""
    pass


# =============================================================================
# Data Classes
# =============================================================================

class Direction(Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class Role(Enum):
    """Semantic interpretation of a column."""
    NUMERIC = "numeric"
    CODE = "code"
    DESCRIPTION = "description"
    IGNORE = "ignore"


@dataclass(frozen=True)
class LineSegment:
    """A detected line segment between two endpoints."""
    x1: int
    y1: int
    x2: int
    y2: int

    @classmethod
    def from_hough(cls, lines) -> List['LineSegment']:
        """Build segments from cv2.HoughLinesP output (N x 1 x 4, or None)."""
        if lines is None:
            return []
        return [cls(*(int(v) for v in row)) for row in np.asarray(lines).reshape(-1, 4)]

    @property
    def length(self) -> float:
        return math.hypot(self.x2 - self.x1, self.y2 - self.y1)

    @property
    def direction(self) -> Tuple[float, float]:
        """Unit direction vector, (0, 0) for a zero-length segment."""
        length = self.length
        if length == 0:
            return 0.0, 0.0
        return (self.x2 - self.x1) / length, (self.y2 - self.y1) / length

    def is_aligned(self, direction: Direction) -> bool:
        """True only for segments exactly parallel to the given axis."""
        dx, dy = self.direction
        if direction == Direction.HORIZONTAL:
            return abs(dx) == 1 and dy == 0
        if direction == Direction.VERTICAL:
            return abs(dy) == 1 and dx == 0
        raise ValueError(f"Only {Direction.VERTICAL} and {Direction.HORIZONTAL} are supported")

    def coordinate(self, direction: Direction) -> int:
        """Position of the segment on the axis perpendicular to it."""
        return self.y1 if direction == Direction.HORIZONTAL else self.x1


@dataclass(frozen=True)
class CellRectangle:
    """A cell region of the inferred grid, in image coordinates."""
    row: int
    column: int
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def crop(self, image: np.ndarray) -> np.ndarray:
        """Sub-region of the image covered by this cell."""
        return image[self.y:self.bottom, self.x:self.right]


@dataclass(frozen=True)
class CatalogEntry:
    """A product on the order form."""
    code: str
    description: str


@dataclass
class MatchResult:
    """Best catalog candidate for a piece of recognized text."""
    text: str
    candidate: Optional[str] = None
    index: Optional[int] = None
    distance: Optional[int] = None
    normalized_distance: Optional[float] = None

    @property
    def matched(self) -> bool:
        return self.candidate is not None


@dataclass
class CellReading:
    """Recognized (and possibly corrected) content of a single cell."""
    row: int
    column: int
    role: Role
    text: str
    match: Optional[MatchResult] = None
    unreadable: bool = False

    @property
    def value(self) -> str:
        """Corrected value if a match was found, raw text otherwise."""
        if self.match is not None and self.match.matched:
            return self.match.candidate
        return self.text


@dataclass
class RowResult:
    """All readings of one grid row."""
    row: int
    start_index: int
    readings: List[CellReading] = field(default_factory=list)
    skipped: Dict[int, str] = field(default_factory=dict)

    def reading_for(self, role: Role) -> Optional[CellReading]:
        for reading in self.readings:
            if reading.role == role:
                return reading
        return None


@dataclass
class FormResult:
    """Final result for one processed order form."""
    image_path: str
    row_boundaries: List[int] = field(default_factory=list)
    column_boundaries: List[int] = field(default_factory=list)
    rows: List[RowResult] = field(default_factory=list)

    @property
    def entries(self) -> List[Tuple[Optional[str], Optional[str]]]:
        """Corrected (code, description) pairs for rows that carry either."""
        pairs = []
        for row in self.rows:
            code = row.reading_for(Role.CODE)
            description = row.reading_for(Role.DESCRIPTION)
            if code is None and description is None:
                continue
            pairs.append((
                code.value if code else None,
                description.value if description and not description.unreadable else None,
            ))
        return pairs


# =============================================================================
# File I/O Utilities
# =============================================================================

def load_image(image_path: str) -> np.ndarray:
    """Load a BGR image, raising if OpenCV cannot decode it."""
    image = cv2.imread(str(image_path))
    if image is None:
        raise FileNotFoundError(f"Could not load image: {image_path}")
    return image


def form_result_to_dict(result: FormResult) -> Dict:
    """Plain-dict form of a FormResult for JSON export."""
    def match_to_dict(match: Optional[MatchResult]):
        if match is None:
            return None
        return {
            "candidate": match.candidate,
            "index": match.index,
            "distance": match.distance,
            "normalized_distance": match.normalized_distance,
        }

    return {
        "image_path": result.image_path,
        "row_boundaries": list(result.row_boundaries),
        "column_boundaries": list(result.column_boundaries),
        "rows": [
            {
                "row": row.row,
                "start_index": row.start_index,
                "skipped": {str(k): v for k, v in row.skipped.items()},
                "cells": [
                    {
                        "column": reading.column,
                        "role": reading.role.value,
                        "text": reading.text,
                        "unreadable": reading.unreadable,
                        "match": match_to_dict(reading.match),
                    }
                    for reading in row.readings
                ],
            }
            for row in result.rows
        ],
    }


def save_form_result(result: FormResult, out_path: Path, image_name: str) -> Path:
    """Save form result to JSON."""
    json_path = Path(out_path) / f"{image_name}_result.json"
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(form_result_to_dict(result), f, indent=2, ensure_ascii=False)
    return json_path


def draw_grid(
    image: np.ndarray,
    row_boundaries: List[int],
    column_boundaries: List[int],
    color: Tuple[int, int, int] = (0, 0, 255)
) -> np.ndarray:
    """Draw inferred grid lines across the full image."""
    annotated = image.copy()
    if annotated.ndim == 2:
        annotated = cv2.cvtColor(annotated, cv2.COLOR_GRAY2BGR)

    h, w = annotated.shape[:2]
    for y in row_boundaries:
        cv2.line(annotated, (0, int(y)), (w, int(y)), color, 1)
    for x in column_boundaries:
        cv2.line(annotated, (int(x), 0), (int(x), h), color, 1)

    return annotated


def format_table(result: FormResult) -> str:
    """Render the rows of a form result as tab-separated text."""
    lines = []
    for row in result.rows:
        parts = []
        for reading in row.readings:
            if reading.unreadable:
                parts.append(reading.text)
            elif reading.match is not None:
                best = reading.match.candidate if reading.match.matched else "?"
                parts.append(f"{best}\t\t{reading.text}")
            else:
                parts.append(reading.text)
        lines.append("\t".join(parts))
    return "\n".join(lines)
