"""
Core module for Order Form OCR.

This package contains modular components for reading order form tables:
- utils: Data classes, exceptions, file I/O and drawing
- preprocessing: Grayscale conversion, binarization and rescaling
- detection: Grid line detection, boundary clustering and cell construction
- recognition: OCR engine wrappers (Tesseract, EasyOCR) per column role
- postprocessing: Column roles and ordered fuzzy matching against the catalog
- pipeline: Main single-image pipeline
"""

# Data classes and exceptions
from .utils import (
    Direction,
    Role,
    LineSegment,
    CellRectangle,
    CatalogEntry,
    MatchResult,
    CellReading,
    RowResult,
    FormResult,
    OrderFormError,
    InvalidInputError,
    DegenerateGeometryError,
    EmptyCandidateSetError,
)

# File I/O utilities
from .utils import (
    load_image,
    save_form_result,
    form_result_to_dict,
    draw_grid,
    format_table,
)

# Preprocessing
from .preprocessing import ImagePreprocessor

# Detection
from .detection import (
    CoordinateClusterer,
    LineCoordinateExtractor,
    GridLineDetector,
    GridBuilder,
    build_cells,
)

# Recognition
from .recognition import OCREngine, RoleEngines, distinct_characters

# Postprocessing
from .postprocessing import CellRoleResolver, OrderedFuzzyMatcher, CatalogCursor

# Main pipeline
from .pipeline import OrderFormPipeline, UNREADABLE_MARKER


__all__ = [
    # Data classes
    "Direction",
    "Role",
    "LineSegment",
    "CellRectangle",
    "CatalogEntry",
    "MatchResult",
    "CellReading",
    "RowResult",
    "FormResult",
    # Exceptions
    "OrderFormError",
    "InvalidInputError",
    "DegenerateGeometryError",
    "EmptyCandidateSetError",
    # File I/O
    "load_image",
    "save_form_result",
    "form_result_to_dict",
    "draw_grid",
    "format_table",
    # Preprocessing
    "ImagePreprocessor",
    # Detection
    "CoordinateClusterer",
    "LineCoordinateExtractor",
    "GridLineDetector",
    "GridBuilder",
    "build_cells",
    # Recognition
    "OCREngine",
    "RoleEngines",
    "distinct_characters",
    # Postprocessing
    "CellRoleResolver",
    "OrderedFuzzyMatcher",
    "CatalogCursor",
    # Pipeline
    "OrderFormPipeline",
    "UNREADABLE_MARKER",
]
