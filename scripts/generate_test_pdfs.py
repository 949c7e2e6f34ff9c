#!/usr/bin/env python3
"""
Generate sample PDFs for exercising the preflight service.

Creates one file per common scenario (valid content, odd page count,
spreads, mixed layout, cover with spine, CMYK and low resolution images).

Usage:
    python scripts/generate_test_pdfs.py                  # Into ./test_pdfs
    python scripts/generate_test_pdfs.py --output out/    # Custom directory
    python scripts/generate_test_pdfs.py --only spreads   # Single scenario
"""

import argparse
from io import BytesIO
from pathlib import Path

try:
    from PIL import Image
    from pypdf import PdfWriter
except ImportError:
    print("Pillow and pypdf are required. Run: pip install pillow pypdf")
    exit(1)

MM_TO_PT = 72 / 25.4


def blank_pdf(*sizes_mm: tuple[float, float]) -> bytes:
    """Blank pages, one per (width, height) in mm."""
    writer = PdfWriter()
    for width, height in sizes_mm:
        writer.add_blank_page(width * MM_TO_PT, height * MM_TO_PT)
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def image_pdf(mode: str, color, pixels: int, dpi: int) -> bytes:
    """Single page holding one square image placed at the given DPI."""
    img = Image.new(mode, (pixels, pixels), color)
    buffer = BytesIO()
    img.save(buffer, format="PDF", resolution=dpi)
    return buffer.getvalue()


A4 = (210, 297)
A4_BLEED = (216, 303)

SCENARIOS = {
    # name: (builder, options hint printed for the operator)
    "valid_content": (
        lambda: blank_pdf(*[A4_BLEED] * 8),
        '{"fileType": "content", "orderOptions": {"size": {"width": 210, "height": 297}, "pages": 8, "bleed": 3}}',
    ),
    "odd_pages": (
        lambda: blank_pdf(*[A4] * 3),
        '{"fileType": "content", "orderOptions": {"size": {"width": 210, "height": 297}, "pages": 4}}',
    ),
    "spreads": (
        lambda: blank_pdf(*[(420, 297)] * 4),
        '{"fileType": "content", "orderOptions": {"size": {"width": 210, "height": 297}, "pages": 8}}',
    ),
    "mixed": (
        lambda: blank_pdf(A4_BLEED, *[(432, 303)] * 5),
        '{"fileType": "content", "orderOptions": {"size": {"width": 210, "height": 297}, "pages": 12, "bleed": 3}}',
    ),
    "cover_spine": (
        lambda: blank_pdf((431, 303)),
        '{"fileType": "cover", "orderOptions": {"size": {"width": 210, "height": 297}, "pages": 100, '
        '"bleed": 3, "paperThickness": 0.1}}',
    ),
    "cmyk": (
        lambda: image_pdf("CMYK", (0, 200, 0, 0), 300, 300),
        '{"fileType": "post_process", "orderOptions": {"size": {"width": 25.4, "height": 25.4}, '
        '"pages": 1, "binding": "spring"}}',
    ),
    "low_res": (
        lambda: image_pdf("RGB", (200, 30, 30), 600, 100),
        '{"fileType": "content", "orderOptions": {"size": {"width": 152.4, "height": 152.4}, '
        '"pages": 1, "binding": "spring"}}',
    ),
}


def generate(output_dir: Path, only: str = None) -> list[Path]:
    output_dir.mkdir(parents=True, exist_ok=True)
    written = []

    for name, (builder, options) in SCENARIOS.items():
        if only and name != only:
            continue
        path = output_dir / f"{name}.pdf"
        path.write_bytes(builder())
        written.append(path)
        print(f"Created: {path}")
        print(f"  options: {options}")

    return written


def main():
    parser = argparse.ArgumentParser(description="Generate sample PDFs for preflight testing")
    parser.add_argument("--output", "-o", default="test_pdfs", help="Output directory")
    parser.add_argument("--only", choices=sorted(SCENARIOS), help="Generate a single scenario")
    args = parser.parse_args()

    written = generate(Path(args.output), args.only)

    print()
    print(f"{len(written)} file(s) written. Validate one with:")
    print("  python -m preflight.main --check test_pdfs/odd_pages.pdf --options '<options above>'")


if __name__ == "__main__":
    main()
