"""
Unit tests for per-role OCR engines (core/recognition.py).

Tesseract itself is never invoked: pytesseract.image_to_string is replaced
so the tests see exactly what the engine would be asked to do.

Usage:
    pytest tests/test_recognition.py -v
"""

import shlex
import sys
import types
from pathlib import Path

import numpy as np
import pytest

# Add parent for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

pytesseract = pytest.importorskip("pytesseract")

from bakery_catalog import PRODUCTS
from core.recognition import NUMERIC_WHITELIST, OCREngine, RoleEngines, distinct_characters
from core.utils import Role


class FakeTesseract:
    """Records every image_to_string call and returns a fixed text."""

    def __init__(self, text: str = ""):
        self.text = text
        self.calls = []

    def __call__(self, image, lang=None, config=""):
        self.calls.append({"shape": image.shape, "lang": lang, "config": config})
        return self.text


@pytest.fixture
def fake_tesseract(monkeypatch):
    fake = FakeTesseract("  BK \n")
    monkeypatch.setattr(pytesseract, "image_to_string", fake)
    return fake


@pytest.fixture
def cell_image():
    return np.full((40, 60), 255, dtype=np.uint8)


def whitelist_of(config: str) -> str:
    """Character whitelist from a Tesseract config string."""
    args = shlex.split(config)
    assert args[:2] == ["--psm", "7"]
    assert args[2] == "-c"
    key, _, value = args[3].partition("=")
    assert key == "tessedit_char_whitelist"
    return value


# =============================================================================
# OCREngine Tests
# =============================================================================

class TestOCREngine:
    """Test the Tesseract call made for a single cell."""

    def test_config_carries_whitelist(self):
        engine = OCREngine("tesseract", whitelist=NUMERIC_WHITELIST)
        assert engine.tesseract_config == "--psm 7 -c tessedit_char_whitelist=0123456789."

    def test_config_without_whitelist(self):
        assert OCREngine("tesseract").tesseract_config == "--psm 7"

    def test_whitelist_with_spaces_is_quoted(self):
        engine = OCREngine("tesseract", whitelist="ab c")
        assert engine.tesseract_config == "--psm 7 -c 'tessedit_char_whitelist=ab c'"
        assert whitelist_of(engine.tesseract_config) == "ab c"

    def test_recognize_strips_text(self, fake_tesseract, cell_image):
        engine = OCREngine("tesseract", whitelist="BK")
        assert engine.recognize(cell_image) == "BK"

        call = fake_tesseract.calls[0]
        assert call["shape"] == (40, 60)
        assert call["lang"] == "eng"
        assert call["config"] == engine.tesseract_config

    def test_custom_language(self, fake_tesseract, cell_image):
        OCREngine("tesseract", lang="nld").recognize(cell_image)
        assert fake_tesseract.calls[0]["lang"] == "nld"

    def test_empty_crop_not_recognized(self, fake_tesseract):
        engine = OCREngine("tesseract")
        assert engine.recognize(np.zeros((0, 0), dtype=np.uint8)) == ""
        assert engine.recognize(None) == ""
        assert fake_tesseract.calls == []

    def test_unknown_engine_rejected(self):
        with pytest.raises(ValueError):
            OCREngine("paddle")

    def test_engine_name_case_insensitive(self):
        assert OCREngine("Tesseract").engine_name == "tesseract"


# =============================================================================
# EasyOCR Tests
# =============================================================================

class TestEasyOCR:
    """Test the EasyOCR path and its fallback to Tesseract."""

    def test_falls_back_to_tesseract(self, monkeypatch, fake_tesseract, cell_image, capsys):
        # A None entry makes `import easyocr` raise ImportError
        monkeypatch.setitem(sys.modules, "easyocr", None)

        engine = OCREngine("easyocr", whitelist=NUMERIC_WHITELIST)

        assert engine.engine_name == "tesseract"
        assert engine.lang == "eng"
        assert "falling back to Tesseract" in capsys.readouterr().out

        engine.recognize(cell_image)
        assert whitelist_of(fake_tesseract.calls[0]["config"]) == NUMERIC_WHITELIST

    def test_readtext_uses_allowlist(self, monkeypatch, cell_image):
        readers = []

        class Reader:
            def __init__(self, langs, gpu=True, verbose=True):
                self.langs = langs
                self.calls = []
                readers.append(self)

            def readtext(self, image, detail=1, paragraph=False, allowlist=None):
                self.calls.append({"detail": detail, "paragraph": paragraph, "allowlist": allowlist})
                return [" diksmuidse", "boterkoek "]

        fake_module = types.ModuleType("easyocr")
        fake_module.Reader = Reader
        monkeypatch.setitem(sys.modules, "easyocr", fake_module)

        engine = OCREngine("easyocr", whitelist="abc")

        assert engine.engine_name == "easyocr"
        assert readers[0].langs == ["en"]
        assert engine.recognize(cell_image) == "diksmuidse boterkoek"
        assert readers[0].calls == [{"detail": 0, "paragraph": True, "allowlist": "abc"}]


# =============================================================================
# RoleEngines Tests
# =============================================================================

class TestRoleEngines:
    """Test the whitelists built from the catalog."""

    def test_whitelists_per_role(self):
        engines = RoleEngines.for_catalog(PRODUCTS)

        assert engines.numeric.whitelist == "0123456789."
        assert engines.code.whitelist == distinct_characters([p.code for p in PRODUCTS])
        assert engines.description.whitelist == distinct_characters([p.description for p in PRODUCTS])

    def test_configs_sent_to_tesseract(self, fake_tesseract, cell_image):
        engines = RoleEngines.for_catalog(PRODUCTS)

        assert engines.engine_for(Role.CODE).recognize(cell_image) == "BK"
        engines.engine_for(Role.NUMERIC).recognize(cell_image)
        engines.engine_for(Role.DESCRIPTION).recognize(cell_image)

        code, numeric, description = [whitelist_of(c["config"]) for c in fake_tesseract.calls]
        assert code.startswith("BKC")
        assert set(code) == set("".join(p.code for p in PRODUCTS))
        assert numeric == NUMERIC_WHITELIST
        assert " " in description
        assert set(description) == set("".join(p.description for p in PRODUCTS))

    def test_small_catalog(self, small_catalog):
        engines = RoleEngines.for_catalog(small_catalog, lang="nld")

        assert engines.code.whitelist == "BKCRAM"
        assert engines.code.lang == "nld"
        assert engines.engine_for(Role.IGNORE) is None
