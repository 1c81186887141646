"""Write single rendered frames as SVG, PNG or PDF."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

FRAME_FORMATS = (".svg", ".png", ".pdf")


def _cairosvg():
    try:
        import cairosvg
    except ImportError:
        msg = "PNG/PDF export requires cairosvg"
        raise ImportError(msg) from None
    return cairosvg


def svg_to_png(svg: str, output: str | Path, *, size: int = 600, dpi: int = 300) -> None:
    """Rasterise an SVG string to a PNG file."""
    _cairosvg().svg2png(bytestring=svg.encode(), write_to=str(output), output_width=size, dpi=dpi)


def svg_to_pdf(svg: str, output: str | Path) -> None:
    """Convert an SVG string to a PDF file."""
    _cairosvg().svg2pdf(bytestring=svg.encode(), write_to=str(output))


def save_frame(svg: str, output: str | Path, *, size: int = 600) -> None:
    """Write *svg* in the format implied by the file suffix."""
    output = Path(output)
    suffix = output.suffix.lower()
    if suffix == ".svg":
        output.write_text(svg)
    elif suffix == ".png":
        svg_to_png(svg, output, size=size)
    elif suffix == ".pdf":
        svg_to_pdf(svg, output)
    else:
        msg = f"Unsupported frame format {suffix!r} (expected one of {', '.join(FRAME_FORMATS)})"
        raise ValueError(msg)
    logger.info("Wrote %s", output)
