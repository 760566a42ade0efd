"""Exceptions raised by the cross-section pipeline.

Expected "nothing found" outcomes (no peak, no valid track) are not errors and
are returned as ``None`` / empty results. These exceptions are reserved for
violated preconditions.
"""


class CcsFastError(Exception):
    """Base class for all CCSFast errors."""


class DataIntegrityError(CcsFastError):
    """Instrument data is physically impossible (e.g. a 0 V drift voltage)."""


class IncompatibleChromatogramError(CcsFastError):
    """Two chromatograms with different scan counts or m/z cannot be merged."""


class MissingCompositionError(CcsFastError):
    """An operation needs the target's isotopic composition but none is known."""
