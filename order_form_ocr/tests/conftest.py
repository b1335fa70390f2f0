"""
Pytest configuration and shared fixtures for Order Form OCR tests.

This module provides:
- Synthetic order form images drawn with OpenCV
- Stub recognizers standing in for Tesseract
- Catalog fixtures

Usage:
    pytest tests/ -v
    pytest tests/test_detection.py -v
"""

import sys
from collections import deque
from pathlib import Path
from typing import Dict, Iterable, List, Sequence

import cv2
import numpy as np
import pytest

# Add parent directory to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from core.recognition import RoleEngines
from core.utils import CatalogEntry


# =============================================================================
# Helpers
# =============================================================================

def draw_form(
    width: int,
    height: int,
    row_lines: Sequence[int],
    column_lines: Sequence[int],
    thickness: int = 2
) -> np.ndarray:
    """White BGR image with black full-length grid lines."""
    image = np.full((height, width, 3), 255, dtype=np.uint8)
    for y in row_lines:
        cv2.line(image, (0, y), (width - 1, y), (0, 0, 0), thickness)
    for x in column_lines:
        cv2.line(image, (x, 0), (x, height - 1), (0, 0, 0), thickness)
    return image


class StubRecognizer:
    """Returns queued texts in call order, then empty strings."""

    def __init__(self, texts: Iterable[str] = ()):
        self.texts = deque(texts)
        self.calls: List[tuple] = []

    def recognize(self, image: np.ndarray) -> str:
        self.calls.append(image.shape)
        return self.texts.popleft() if self.texts else ""


def stub_engines(
    numeric: Iterable[str] = (),
    code: Iterable[str] = (),
    description: Iterable[str] = ()
) -> RoleEngines:
    return RoleEngines(
        numeric=StubRecognizer(numeric),
        code=StubRecognizer(code),
        description=StubRecognizer(description),
    )


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def small_catalog() -> List[CatalogEntry]:
    return [
        CatalogEntry("BK", "diksmuidse boterkoek"),
        CatalogEntry("CK", "diksmuidse cremekoek"),
        CatalogEntry("BKR", "boterkoek rozijn"),
        CatalogEntry("AMR", "apres midi rond"),
    ]


@pytest.fixture
def form_image() -> np.ndarray:
    """300x240 form with 3 row lines and 4 column lines."""
    return draw_form(300, 240, row_lines=[40, 100, 160], column_lines=[30, 90, 150, 270])


@pytest.fixture
def form_boundaries() -> Dict[str, List[int]]:
    return {"rows": [40, 100, 160], "columns": [30, 90, 150, 270]}
