"""Command-line interface: ``molmorph ergosterol.sdf previtamin.sdf calciferol.sdf``."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from molmorph import configure_logging
from molmorph.align import EIGEN_METHODS
from molmorph.morph import MorphController
from molmorph.renderer import render_svg
from molmorph.sdf import split_records
from molmorph.sequence import ChainSource, DirectorySource, MemorySource, SequenceBuilder
from molmorph.types import RenderConfig, SequenceConfig

logger = logging.getLogger(__name__)


def _basename(path: str | None, *, from_stdin: bool) -> str:
    """Default output stem: the first input's file stem, or ``morph``."""
    if from_stdin or path is None:
        return "morph"
    return Path(path).stem


def _collect_inputs(inputs: list[str]) -> tuple[list[str], dict[str, str]]:
    """Expand file paths (and ``-`` for stdin) into labelled records.

    Inputs that are not existing files are left as identifiers for
    ``--source-dir`` lookup.  Files sharing a stem get ``#2``, ``#3``, ...
    suffixes so every record keeps its own label.
    """
    labels: list[str] = []
    records: dict[str, str] = {}
    for item in inputs:
        if item == "-":
            text, stem = sys.stdin.read(), "stdin"
        elif Path(item).is_file():
            text, stem = Path(item).read_text(), Path(item).stem
        else:
            labels.append(item)
            continue
        chunks = split_records(text)
        for k, chunk in enumerate(chunks):
            base = stem if len(chunks) == 1 else f"{stem}[{k}]"
            label, n = base, 1
            while label in records:
                n += 1
                label = f"{base}#{n}"
            records[label] = chunk
            labels.append(label)
    return labels, records


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="molmorph",
        description="Animate smooth, aligned transitions through a sequence of molecular structures.",
    )
    p.add_argument("inputs", nargs="+", help="SDF/molfile paths, '-' for stdin, or identifiers found in --source-dir")
    p.add_argument("-o", "--output", help="Output file (.gif animates; .svg/.png/.pdf renders one entry)")
    p.add_argument("-d", "--source-dir", help="Directory holding <identifier>.sdf files")

    seq = p.add_argument_group("alignment")
    seq.add_argument("--scale-cap", type=float, default=1.0, help="Largest bounding-box edge after normalising")
    seq.add_argument("--min-pairs", type=int, default=3, help="Matched atoms needed before aligning")
    seq.add_argument("--eigen", choices=EIGEN_METHODS, default="eigh", help="Eigensolver for the Kabsch fit")
    seq.add_argument("--auto-orient", action="store_true", help="PCA-orient the first structure")

    anim = p.add_argument_group("animation")
    anim.add_argument("--fps", type=int, default=25)
    anim.add_argument("--interval", type=float, default=3.0, help="Seconds between transitions")
    anim.add_argument("--cycles", type=int, default=1, help="Passes through the sequence")
    anim.add_argument("--step", type=float, default=0.02, help="Progress per frame")
    anim.add_argument("--no-fade-in", action="store_true", help="Start with the first structure fully shown")
    anim.add_argument("--frame", type=int, default=0, help="Entry to draw for still output")

    style = p.add_argument_group("style")
    style.add_argument("-S", "--canvas-size", type=int, default=600)
    style.add_argument("--background", default="#ffffff")
    style.add_argument("--fog", action="store_true", help="Depth fog toward the background colour")
    style.add_argument("--atom-scale", type=float, default=1.0)

    p.add_argument("-v", "--verbose", action="store_true")
    p.add_argument("--debug", action="store_true")
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(verbose=args.verbose, debug=args.debug)

    seq_cfg = SequenceConfig(
        scale_cap=args.scale_cap,
        min_pairs=args.min_pairs,
        eigen_method=args.eigen,
        auto_orient=args.auto_orient,
    )
    render_cfg = RenderConfig(
        canvas_size=args.canvas_size,
        background=args.background,
        fog=args.fog,
        atom_scale=args.atom_scale,
        step=args.step,
        span=RenderConfig.span * args.scale_cap,
    )

    labels, records = _collect_inputs(args.inputs)
    sources = [MemorySource(records)]
    if args.source_dir:
        sources.append(DirectorySource(args.source_dir))

    builder = SequenceBuilder(seq_cfg)
    builder.load(labels, ChainSource(*sources))
    if len(builder) == 0:
        logger.error("No structures could be loaded")
        return 1
    if builder.skipped:
        logger.warning("Skipped %d of %d inputs", len(builder.skipped), len(labels))

    from_stdin = args.inputs[0] == "-"
    output = args.output or f"{_basename(args.inputs[0], from_stdin=from_stdin)}.gif"

    if output.lower().endswith(".gif"):
        from molmorph.gif import render_morph_gif

        render_morph_gif(
            builder,
            render_cfg,
            output,
            fps=args.fps,
            interval=args.interval,
            cycles=args.cycles,
            fade_in=not args.no_fade_in,
        )
        return 0

    from molmorph.export import save_frame

    controller = MorphController(builder, render_cfg)
    if args.frame != 0:
        controller.begin_transition(args.frame)
        while controller.playing:
            controller.tick()
    save_frame(render_svg(controller.scene(), render_cfg), output, size=args.canvas_size)
    return 0


if __name__ == "__main__":
    sys.exit(main())
