"""
OCR recognition engines for Order Form OCR.

Contains the per-cell OCR engine wrapper (Tesseract or EasyOCR) and the set
of role-specific engines built once from the catalog.
"""

import shlex
import threading
from typing import Optional, Sequence

import numpy as np

from .utils import CatalogEntry, Role

NUMERIC_WHITELIST = "0123456789."


def distinct_characters(strings: Sequence[str]) -> str:
    """Distinct characters of all strings, in order of first appearance."""
    seen = {}
    for text in strings:
        for char in text:
            seen.setdefault(char, None)
    return "".join(seen)


class OCREngine:
    """Wrapper for a single-cell OCR engine restricted to a character whitelist."""

    def __init__(
        self,
        engine_name: str = "tesseract",
        whitelist: Optional[str] = None,
        lang: Optional[str] = None,
        psm: int = 7
    ):
        self.engine_name = engine_name.lower()
        self.whitelist = whitelist
        self.lang = lang
        self.psm = psm
        self.engine = None
        # Engines keep internal state between calls; never drive one concurrently
        self._lock = threading.Lock()
        self._initialize_engine()

    def _initialize_engine(self):
        """Initialize the selected OCR engine."""
        if self.engine_name == "easyocr":
            try:
                import easyocr
                self.lang = self.lang or "en"
                self.engine = easyocr.Reader([self.lang], gpu=False, verbose=False)
                print(f"[OCR] Initialized EasyOCR (lang={self.lang})")
            except ImportError:
                print("[OCR] EasyOCR not available, falling back to Tesseract")
                self.engine_name = "tesseract"
                self.lang = None
                self._initialize_engine()

        elif self.engine_name == "tesseract":
            try:
                import pytesseract
                self.engine = pytesseract
                self.lang = self.lang or "eng"
                allowed = len(self.whitelist) if self.whitelist else "all"
                print(f"[OCR] Initialized Tesseract (lang={self.lang}, allowed chars={allowed})")
            except ImportError:
                raise RuntimeError("No OCR engine available. Install pytesseract or easyocr.")

        else:
            raise ValueError(f"Unknown OCR engine: {self.engine_name}")

    @property
    def tesseract_config(self) -> str:
        config = f"--psm {self.psm}"
        if self.whitelist:
            config += " -c " + shlex.quote(f"tessedit_char_whitelist={self.whitelist}")
        return config

    def recognize(self, cell_image: np.ndarray) -> str:
        """
        Recognize the text of a cropped cell.

        Returns:
            Stripped text, empty if nothing was read
        """
        if cell_image is None or cell_image.size == 0:
            return ""

        with self._lock:
            if self.engine_name == "easyocr":
                parts = self.engine.readtext(
                    cell_image,
                    detail=0,
                    paragraph=True,
                    allowlist=self.whitelist
                )
                text = " ".join(parts)
            else:
                text = self.engine.image_to_string(
                    cell_image,
                    lang=self.lang,
                    config=self.tesseract_config
                )

        return text.strip()


class RoleEngines:
    """The recognizers used per column role.

    Built once by the caller and passed into the pipeline. Any object with a
    ``recognize(image) -> str`` method can stand in for an engine.
    """

    def __init__(self, numeric, code, description):
        self.numeric = numeric
        self.code = code
        self.description = description

    @classmethod
    def for_catalog(
        cls,
        catalog: Sequence[CatalogEntry],
        engine_name: str = "tesseract",
        lang: Optional[str] = None
    ) -> 'RoleEngines':
        """Engines whitelisted to the characters the catalog can produce."""
        code_chars = distinct_characters([entry.code for entry in catalog])
        description_chars = distinct_characters([entry.description for entry in catalog])

        return cls(
            numeric=OCREngine(engine_name, whitelist=NUMERIC_WHITELIST, lang=lang),
            code=OCREngine(engine_name, whitelist=code_chars, lang=lang),
            description=OCREngine(engine_name, whitelist=description_chars, lang=lang),
        )

    def engine_for(self, role: Role):
        if role == Role.NUMERIC:
            return self.numeric
        if role == Role.CODE:
            return self.code
        if role == Role.DESCRIPTION:
            return self.description
        return None
