#!/usr/bin/env python3
"""
Order Form OCR - reads a photographed bakery order form.

Finds the table grid from its printed lines, reads the quantity, code and
description cells, and corrects codes and descriptions against the ordered
product catalog.

Usage:
    python order_form_ocr.py --input table.jpg --out_dir out
    python order_form_ocr.py --input table.jpg --catalog products.csv --save_cells
"""

import argparse
import sys
from pathlib import Path

from bakery_catalog import PRODUCTS, load_catalog
from core import (
    CellRoleResolver,
    OrderFormPipeline,
    RoleEngines,
    format_table,
)
from core.detection import (
    DEFAULT_CELL_MARGIN,
    DEFAULT_COLUMN_BANDWIDTH,
    DEFAULT_MIN_LINE_WIDTH,
    DEFAULT_ROW_BANDWIDTH,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Grid inference and catalog-corrected OCR for order forms",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Read a form with the built-in bakery catalog
  python order_form_ocr.py --input table.jpg --out_dir out

  # Different catalog and column layout
  python order_form_ocr.py --input form.png --catalog products.json --roles "0=numeric,1=code,2=description"

  # Faster line detection on large photos
  python order_form_ocr.py --input table.jpg --scale 0.5
        """
    )

    parser.add_argument(
        "--input", "-i", required=True,
        help="Path to the photographed order form"
    )
    parser.add_argument(
        "--out_dir", "-o", default="out",
        help="Output directory (default: out)"
    )
    parser.add_argument(
        "--catalog", "-c", default=None,
        help="Ordered catalog as JSON or CSV (default: built-in bakery catalog)"
    )
    parser.add_argument(
        "--engine", "-e", choices=["tesseract", "easyocr"], default="tesseract",
        help="OCR engine (default: tesseract)"
    )
    parser.add_argument(
        "--lang", "-l", default=None,
        help="OCR language (default: eng for tesseract, en for easyocr)"
    )
    parser.add_argument(
        "--min_line_width", type=int, default=DEFAULT_MIN_LINE_WIDTH,
        help=f"Shortest segment counted as a grid line (default: {DEFAULT_MIN_LINE_WIDTH})"
    )
    parser.add_argument(
        "--row_bandwidth", type=int, default=DEFAULT_ROW_BANDWIDTH,
        help=f"Merge distance for horizontal lines (default: {DEFAULT_ROW_BANDWIDTH})"
    )
    parser.add_argument(
        "--column_bandwidth", type=int, default=DEFAULT_COLUMN_BANDWIDTH,
        help=f"Merge distance for vertical lines (default: {DEFAULT_COLUMN_BANDWIDTH})"
    )
    parser.add_argument(
        "--margin", type=int, default=DEFAULT_CELL_MARGIN,
        help=f"Inset from grid lines when cropping cells (default: {DEFAULT_CELL_MARGIN})"
    )
    parser.add_argument(
        "--scale", type=float, default=1.0,
        help="Resize factor for line detection; smaller is faster (default: 1.0)"
    )
    parser.add_argument(
        "--roles", default=None,
        help='Column roles, e.g. "1=numeric,2=code,3=description" (default)'
    )
    parser.add_argument(
        "--header_rows", type=int, default=1,
        help="Grid rows above the first product row (default: 1)"
    )
    parser.add_argument(
        "--max_distance", type=float, default=None,
        help="Reject matches above this normalized edit distance (default: accept all)"
    )
    parser.add_argument(
        "--save_cells", action="store_true",
        help="Save cropped cells to <out_dir>/cells"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Verbose output"
    )
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    input_path = Path(args.input)
    if not input_path.is_file():
        print(f"Error: Input path does not exist: {args.input}")
        sys.exit(1)

    catalog = load_catalog(args.catalog) if args.catalog else PRODUCTS
    roles = CellRoleResolver.from_string(args.roles) if args.roles else CellRoleResolver()

    print(f"[Order Form OCR] Input: {args.input}")
    print(f"[Order Form OCR] Output: {args.out_dir}")
    print(f"[Order Form OCR] Catalog: {len(catalog)} products")
    print(f"[Order Form OCR] Engine: {args.engine}")
    print()

    engines = RoleEngines.for_catalog(catalog, engine_name=args.engine, lang=args.lang)

    pipeline = OrderFormPipeline(
        catalog,
        engines,
        min_line_width=args.min_line_width,
        row_bandwidth=args.row_bandwidth,
        column_bandwidth=args.column_bandwidth,
        cell_margin=args.margin,
        scale=args.scale,
        roles=roles,
        header_rows=args.header_rows,
        max_normalized_distance=args.max_distance,
        save_cells=args.save_cells,
        verbose=args.verbose
    )

    result = pipeline.process_image(str(input_path), args.out_dir)
    summary = pipeline.summary(result)

    print("\n" + "="*60)
    print("ORDER FORM OCR RESULT")
    print("="*60)
    print(f"Rows: {summary['rows']}")
    print(f"Cells read: {summary['cells_read']}")
    print(f"Unreadable descriptions: {summary['unreadable']}")
    print(f"Skipped cells: {summary['skipped']}")
    print("-"*60)
    print(format_table(result))
    print("="*60)


if __name__ == "__main__":
    main()
