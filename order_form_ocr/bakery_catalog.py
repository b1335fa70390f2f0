"""
Bakery Catalog - the ordered product list printed on the order form.

ORDER MATTERS: entries are listed in the same top-to-bottom order as the rows
of the printed form. The matcher relies on this to only look forward.

Other forms can supply their own catalog as JSON or CSV (see load_catalog).
"""

import csv
import json
from pathlib import Path
from typing import Tuple

from core.utils import CatalogEntry

# =============================================================================
# BUILT-IN CATALOG (form order)
# =============================================================================

PRODUCTS: Tuple[CatalogEntry, ...] = (
    # Koeken
    CatalogEntry("BK", "diksmuidse boterkoek"),
    CatalogEntry("CK", "diksmuidse cremekoek"),
    CatalogEntry("CH", "diksmuidse chocokoek"),
    CatalogEntry("CHCR", "chococreme"),
    CatalogEntry("CHCH", "chocochoco"),
    CatalogEntry("CHNA", "choconatuur"),
    CatalogEntry("BKR", "boterkoek rozijn"),
    CatalogEntry("AMR", "apres midi rond"),
    CatalogEntry("AMCH", "apres-midi choco"),
    CatalogEntry("CU", "curryrol"),
    # Flappen
    CatalogEntry("AF", "appelflap"),
    CatalogEntry("ABF", "abrikozenflap"),
    CatalogEntry("KF", "kersenflap"),
    CatalogEntry("T", "torsade"),
    CatalogEntry("BOCH", "boekjes choco"),
    CatalogEntry("CR", "croissant"),
    CatalogEntry("FPK", "frangipannekoek"),
    CatalogEntry("A", "achtjes"),
    CatalogEntry("B", "berlijnse bol"),
    CatalogEntry("RH", "roomhoorn"),
    # Patisserie
    CatalogEntry("EW", "eclair wit"),
    CatalogEntry("E", "eclair bruin"),
    CatalogEntry("EM", "eclair mokka"),
    CatalogEntry("EB", "eclair banaan"),
    CatalogEntry("MA", "mattetaart"),
    CatalogEntry("R", "rijsttaart"),
    CatalogEntry("KT", "konfituurtaartje"),
    CatalogEntry("KK", "klaaskoeken"),
    CatalogEntry("FP", "frangipanne"),
    # Donuts
    CatalogEntry("DONA", "donuts natuur"),
    CatalogEntry("DOCH", "donuts choco"),
    CatalogEntry("DOPI", "Donut Pinky"),
    CatalogEntry("DOPA", "Donut Party"),
    CatalogEntry("DOHA", "DONUT HAZELNOOT"),
    CatalogEntry("DOCHCH", "DONUT CHOCO CHOCO"),
    # Varia
    CatalogEntry("RS", "roomsoesjes 2 kg"),
    CatalogEntry("RSCH", "roomsoesjes choco"),
    CatalogEntry("PAG", "papier groot P8"),
)



def load_catalog(path: str) -> Tuple[CatalogEntry, ...]:
    """
    Load an ordered catalog from disk.

    Accepts a JSON list of {"code": ..., "description": ...} objects or a
    two-column CSV (an optional "code,description" header is skipped).
    """
    path = Path(path)

    if path.suffix.lower() == ".json":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        entries = tuple(
            CatalogEntry(str(item["code"]).strip(), str(item["description"]).strip())
            for item in data
        )
    else:
        with open(path, "r", encoding="utf-8", newline="") as f:
            rows = [row for row in csv.reader(f) if row and any(cell.strip() for cell in row)]
        if rows and [cell.strip().lower() for cell in rows[0][:2]] == ["code", "description"]:
            rows = rows[1:]
        for row in rows:
            if len(row) < 2:
                raise ValueError(f"Catalog row needs a code and a description: {row}")
        entries = tuple(CatalogEntry(row[0].strip(), row[1].strip()) for row in rows)

    if not entries:
        raise ValueError(f"Catalog is empty: {path}")

    return entries
