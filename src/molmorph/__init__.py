"""Smoothly morphing animations of molecular conformation sequences."""

import logging

from molmorph.align import kabsch
from molmorph.mapping import compute_atom_mapping
from molmorph.morph import AutoAdvance, MorphController
from molmorph.normalize import normalize
from molmorph.renderer import render_svg
from molmorph.sdf import parse_sdf
from molmorph.sequence import SequenceBuilder, build_sequence
from molmorph.types import AlignmentTransform, Molecule, RenderConfig, SceneUpdate, SequenceConfig

__all__ = [
    "AlignmentTransform",
    "AutoAdvance",
    "Molecule",
    "MorphController",
    "RenderConfig",
    "SceneUpdate",
    "SequenceBuilder",
    "SequenceConfig",
    "build_sequence",
    "compute_atom_mapping",
    "configure_logging",
    "kabsch",
    "normalize",
    "parse_sdf",
    "render_svg",
]


def configure_logging(*, verbose: bool = False, debug: bool = False) -> None:
    """Enable console logging for the molmorph package."""
    pkg_logger = logging.getLogger("molmorph")
    if not pkg_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
        pkg_logger.addHandler(handler)
    if debug:
        pkg_logger.setLevel(logging.DEBUG)
    elif verbose:
        pkg_logger.setLevel(logging.INFO)
    else:
        pkg_logger.setLevel(logging.WARNING)
