"""Exception types raised by molmorph."""

from __future__ import annotations


class MolmorphError(Exception):
    """Base class for molmorph errors."""


class ParseError(MolmorphError, ValueError):
    """Malformed or truncated structure record."""


class SourceUnavailable(MolmorphError, OSError):
    """The data source could not be reached or read."""


class NotFound(MolmorphError, LookupError):
    """The data source has no record for an identifier."""


class InvalidIndex(MolmorphError, IndexError):
    """A transition was requested for an index outside the sequence."""
