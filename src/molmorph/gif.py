"""GIF animation of a morphing sequence."""

from __future__ import annotations

import logging
import sys
from io import BytesIO
from typing import TYPE_CHECKING

from molmorph.morph import AutoAdvance, MorphController
from molmorph.renderer import render_svg

if TYPE_CHECKING:
    from collections.abc import Sequence

    from molmorph.sequence import SequenceEntry
    from molmorph.types import RenderConfig

logger = logging.getLogger(__name__)


def _progress(current: int, total: int) -> None:
    """Overwrite the current line with a progress indicator."""
    if not logger.isEnabledFor(logging.INFO):
        return
    sys.stderr.write(f"\r  frame {current}/{total}")
    if current == total:
        sys.stderr.write("\n")
    sys.stderr.flush()


def morph_frames(
    sequence: Sequence[SequenceEntry],
    config: RenderConfig,
    *,
    fps: int = 25,
    interval: float = 3.0,
    cycles: int = 1,
    fade_in: bool = True,
) -> list[str]:
    """Render SVG frames for *cycles* passes through the whole sequence.

    The controller is ticked once per frame and :class:`AutoAdvance` runs on
    a frame-count clock, so output is deterministic regardless of speed.
    Every pass ends with the morph back to the first entry.  Without
    *fade_in* the first frame already starts the morph to entry 1, so the
    looped GIF is seamless; with it, one extra interval is rendered after
    the fade-in to fit the final morph back.
    """
    frame = 0
    controller = MorphController(sequence, config, fade_in=fade_in)
    auto = AutoAdvance(controller, interval=interval, clock=lambda: frame / fps)

    per_entry = round(interval * fps)
    total = per_entry * len(sequence) * cycles
    if fade_in:
        total += per_entry
    else:
        controller.begin_transition(1 % len(sequence))
    logger.info("Rendering morph GIF (%d structures, %d frames)", len(sequence), total)
    svgs = []
    for frame in range(total):
        auto.poll()
        svgs.append(render_svg(controller.tick(), config))
        _progress(frame + 1, total)
    return svgs


def render_morph_gif(
    sequence: Sequence[SequenceEntry],
    config: RenderConfig,
    output: str,
    *,
    fps: int = 25,
    interval: float = 3.0,
    cycles: int = 1,
    fade_in: bool = True,
) -> None:
    """Render the sequence morph as an animated, looping GIF."""
    svgs = morph_frames(sequence, config, fps=fps, interval=interval, cycles=cycles, fade_in=fade_in)
    pngs = [_svg_to_png(svg, config.canvas_size) for svg in svgs]
    _stitch_gif(pngs, output, fps)
    logger.info("Wrote %s", output)


def _svg_to_png(svg: str, size: int) -> bytes:
    """Convert SVG string to PNG bytes."""
    try:
        import cairosvg
    except ImportError:
        msg = "GIF generation requires cairosvg"
        raise ImportError(msg) from None

    return cairosvg.svg2png(bytestring=svg.encode(), output_width=size, output_height=size)


def _stitch_gif(pngs: list[bytes], output: str, fps: int) -> None:
    """Stitch PNG frames into an animated GIF."""
    try:
        from PIL import Image
    except ImportError:
        msg = "GIF generation requires Pillow"
        raise ImportError(msg) from None

    images = []
    for png_data in pngs:
        img = Image.open(BytesIO(png_data)).convert("RGBA")
        images.append(img)

    duration = int(1000 / fps)
    logger.debug("Stitching %d frames at %d fps (%d ms/frame)", len(images), fps, duration)
    images[0].save(output, save_all=True, append_images=images[1:], duration=duration, loop=0)
