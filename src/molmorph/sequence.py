"""Build an ordered sequence of aligned, normalised structures.

Each new structure is matched against the previous *published* entry,
rigidly superimposed onto it in its own frame, and only then normalised.
Entries are published only once fully built, and never change afterwards.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, overload

from molmorph.align import kabsch
from molmorph.errors import NotFound, ParseError, SourceUnavailable
from molmorph.mapping import compute_atom_mapping, matched_pairs
from molmorph.normalize import normalize
from molmorph.sdf import parse_sdf
from molmorph.types import AlignmentTransform, Molecule, SequenceConfig
from molmorph.utils import pca_orient

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data sources
# ---------------------------------------------------------------------------


class DataSource(Protocol):
    """Anything that turns a compound identifier into a raw structure record."""

    def fetch(self, identifier: str) -> str:
        """Return the record text, or raise ``NotFound`` / ``SourceUnavailable``."""
        ...


class DirectorySource:
    """Records stored as ``<root>/<identifier><suffix>`` files."""

    def __init__(self, root: str | Path, suffixes: Sequence[str] = (".sdf", ".mol")) -> None:
        self.root = Path(root)
        self.suffixes = tuple(suffixes)

    def fetch(self, identifier: str) -> str:
        if not self.root.is_dir():
            msg = f"Structure directory {self.root} does not exist"
            raise SourceUnavailable(msg)
        for suffix in self.suffixes:
            path = self.root / f"{identifier}{suffix}"
            if path.is_file():
                try:
                    return path.read_text()
                except OSError as e:
                    msg = f"Could not read {path}: {e}"
                    raise SourceUnavailable(msg) from e
        msg = f"No structure file for {identifier!r} in {self.root}"
        raise NotFound(msg)


class MemorySource:
    """Records held in a mapping, e.g. for tests or pre-fetched data."""

    def __init__(self, records: Mapping[str, str]) -> None:
        self.records = dict(records)

    def fetch(self, identifier: str) -> str:
        try:
            return self.records[identifier]
        except KeyError:
            msg = f"Unknown identifier {identifier!r}"
            raise NotFound(msg) from None


class ChainSource:
    """Try several sources in order; the first that knows the identifier wins."""

    def __init__(self, *sources: DataSource) -> None:
        self.sources = sources

    def fetch(self, identifier: str) -> str:
        for source in self.sources:
            try:
                return source.fetch(identifier)
            except NotFound:
                continue
        msg = f"Unknown identifier {identifier!r}"
        raise NotFound(msg)


# ---------------------------------------------------------------------------
# Sequence
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SequenceEntry:
    """A published structure plus how it relates to its predecessor."""

    molecule: Molecule
    mapping: tuple[int | None, ...]  # atom of this entry -> atom of the previous entry
    transform: AlignmentTransform  # applied to the raw structure before normalising
    identifier: str | None = None

    @property
    def n_matched(self) -> int:
        return sum(1 for j in self.mapping if j is not None)


class SequenceBuilder(Sequence[SequenceEntry]):
    """Append-only list of aligned entries.

    :meth:`append` raises on bad input; :meth:`extend` and :meth:`load` log
    and skip failing elements, recording them in :attr:`skipped`.
    """

    def __init__(self, config: SequenceConfig | None = None) -> None:
        self.config = config or SequenceConfig()
        self._entries: list[SequenceEntry] = []
        self.skipped: list[tuple[str, str]] = []  # (identifier, reason)

    @overload
    def __getitem__(self, index: int) -> SequenceEntry: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[SequenceEntry]: ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return tuple(self._entries[index])
        return self._entries[index]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[SequenceEntry]:
        return iter(tuple(self._entries))

    @property
    def molecules(self) -> list[Molecule]:
        return [entry.molecule for entry in self._entries]

    def build_entry(self, molecule: Molecule, identifier: str | None = None) -> SequenceEntry:
        """Align *molecule* to the current last entry and normalise it, without publishing."""
        cfg = self.config
        if not self._entries:
            if cfg.auto_orient:
                molecule = pca_orient(molecule)
            return SequenceEntry(
                molecule=normalize(molecule, cfg.scale_cap),
                mapping=(None,) * len(molecule),
                transform=AlignmentTransform.identity(),
                identifier=identifier,
            )

        prev = self._entries[-1].molecule
        mapping = compute_atom_mapping(molecule, prev)
        pts_new, pts_prev = matched_pairs(molecule, prev, mapping)
        transform = kabsch(
            pts_new,
            pts_prev,
            min_pairs=cfg.min_pairs,
            eigen_method=cfg.eigen_method,
            iterations=cfg.power_iterations,
            seed=cfg.seed,
        )
        if transform.is_identity:
            aligned = molecule
        else:
            aligned = molecule.with_positions(transform.apply(molecule.positions))
        return SequenceEntry(
            molecule=normalize(aligned, cfg.scale_cap),
            mapping=tuple(mapping),
            transform=transform,
            identifier=identifier,
        )

    def append(self, record: str | Molecule, identifier: str | None = None) -> SequenceEntry:
        """Parse (if needed), align, normalise and publish one structure."""
        molecule = parse_sdf(record, name=identifier) if isinstance(record, str) else record
        entry = self.build_entry(molecule, identifier or molecule.name or None)
        self._entries.append(entry)
        logger.info(
            "Added %s (%d atoms, %d matched to previous)",
            entry.identifier or f"entry {len(self._entries) - 1}",
            len(entry.molecule),
            entry.n_matched,
        )
        return entry

    def _append_or_skip(self, label: str, record: str | Molecule, identifier: str | None = None) -> None:
        try:
            self.append(record, identifier)
        except ParseError as e:
            logger.warning("Skipping %s: %s", label, e)
            self.skipped.append((label, str(e)))

    def extend(self, records: Iterable[str | Molecule]) -> list[SequenceEntry]:
        """Append each record, skipping those that fail to parse."""
        start = len(self._entries)
        for k, record in enumerate(records):
            self._append_or_skip(f"record {k}", record)
        return self._entries[start:]

    def load(self, identifiers: Iterable[str], source: DataSource) -> list[SequenceEntry]:
        """Fetch each identifier from *source* and append it, skipping failures."""
        start = len(self._entries)
        for identifier in identifiers:
            try:
                record = source.fetch(identifier)
            except (NotFound, SourceUnavailable) as e:
                logger.warning("Skipping %s: %s", identifier, e)
                self.skipped.append((identifier, str(e)))
                continue
            self._append_or_skip(identifier, record, identifier)
        return self._entries[start:]


def build_sequence(
    records: Iterable[str | Molecule],
    config: SequenceConfig | None = None,
) -> SequenceBuilder:
    """Convenience wrapper: build a sequence from raw records in one call."""
    builder = SequenceBuilder(config)
    builder.extend(records)
    return builder
