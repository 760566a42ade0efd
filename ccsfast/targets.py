"""Search targets for cross-section extraction.

A target is one of three variants, distinguished by :class:`TargetType`:

- ``MOLECULE``: a small molecule given by neutral monoisotopic mass plus an
  ionization adduct, or directly by m/z and charge
- ``PEPTIDE``: a peptide sequence (neutral mass computed from residue masses)
  with a protonation state
- ``DRIFT_TIME``: an ion with a known m/z and an expected pressure-normalized
  drift time (used to re-find previously characterized features)

All variants share one frozen dataclass. Shared capabilities (ion mass, m/z,
charge, descriptor, composition) are module functions that branch on the tag.

Examples
--------
>>> caffeine = molecule_target(194.080376, IonizationAdduct(IonizationMethod.PROTONATED))
>>> round(target_mz(caffeine), 4)
195.0877
>>> peptide = peptide_target("PEPTIDE", charge=2)
>>> target_descriptor(peptide)
'PEPTIDE+2H'
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import numpy as np
from numba import njit

from .constants import (
    AA_MASSES,
    AA_MASSES_DICT,
    ELECTRON_MASS,
    FORMATE_MASS,
    H2O_MASS,
    PROTON_MASS,
    SODIUM_MASS,
)


class TargetType(Enum):
    """Variant tag for :class:`ImsTarget`."""
    MOLECULE = "molecule"
    PEPTIDE = "peptide"
    DRIFT_TIME = "drift_time"


class IonizationMethod(Enum):
    """Ionization adducts with (mass shift per charge, charge sign, label)."""
    PROTONATED = (PROTON_MASS, 1, "+H")
    DEPROTONATED = (-PROTON_MASS, -1, "-H")
    SODIATED = (SODIUM_MASS - ELECTRON_MASS, 1, "+Na")
    FORMATE = (FORMATE_MASS + ELECTRON_MASS, -1, "+HCOO")

    @property
    def mass_shift(self) -> float:
        return self.value[0]

    @property
    def charge_sign(self) -> int:
        return self.value[1]

    @property
    def label(self) -> str:
        return self.value[2]


@dataclass(frozen=True)
class IonizationAdduct:
    """An ionization method applied ``multiplier`` times (e.g. [M+2H]2+)."""

    method: IonizationMethod
    multiplier: int = 1

    def __post_init__(self):
        if self.multiplier < 1:
            raise ValueError(f"Adduct multiplier must be >= 1, got {self.multiplier}")

    @property
    def charge_state(self) -> int:
        return self.method.charge_sign * self.multiplier

    @property
    def mass_shift(self) -> float:
        return self.method.mass_shift * self.multiplier

    @property
    def label(self) -> str:
        prefix = str(self.multiplier) if self.multiplier > 1 else ""
        sign, body = self.method.label[0], self.method.label[1:]
        return f"{sign}{prefix}{body}"


@dataclass(frozen=True)
class TheoreticalIsotopeProfile:
    """Theoretical isotope envelope of the target ion.

    Attributes:
        mz_offsets: m/z offset of each isotope relative to the monoisotopic ion
        relative_heights: Relative abundance of each isotope (any scale)
    """

    mz_offsets: tuple
    relative_heights: tuple

    def __post_init__(self):
        if len(self.mz_offsets) == 0:
            raise ValueError("Isotope profile must contain at least one isotope")
        if len(self.mz_offsets) != len(self.relative_heights):
            raise ValueError(
                f"Isotope profile length mismatch: {len(self.mz_offsets)} offsets, "
                f"{len(self.relative_heights)} heights"
            )
        if any(h < 0 for h in self.relative_heights):
            raise ValueError("Isotope heights must be non-negative")

    @classmethod
    def from_arrays(cls, mz_offsets, relative_heights) -> 'TheoreticalIsotopeProfile':
        return cls(
            tuple(float(x) for x in mz_offsets),
            tuple(float(x) for x in relative_heights),
        )

    def __len__(self) -> int:
        return len(self.mz_offsets)

    def heights_array(self) -> np.ndarray:
        return np.asarray(self.relative_heights, dtype=np.float64)


@dataclass(frozen=True)
class ImsTarget:
    """A search target (tagged union over :class:`TargetType`).

    Use the constructor functions (:func:`molecule_target`,
    :func:`molecule_target_from_mz`, :func:`peptide_target`,
    :func:`drift_time_target`) rather than building instances directly.
    """

    target_type: TargetType
    mass_with_adduct: float
    charge_state: int
    monoisotopic_mass: Optional[float] = None
    adduct: Optional[IonizationAdduct] = None
    empirical_formula: Optional[str] = None
    sequence: Optional[str] = None
    normalized_drift_time_ms: Optional[float] = None
    isotope_profile: Optional[TheoreticalIsotopeProfile] = None
    identifier: str = field(default="")

    def __post_init__(self):
        if self.charge_state == 0:
            raise ValueError("Target charge state cannot be 0")
        if self.mass_with_adduct <= 0:
            raise ValueError(f"Target ion mass must be positive, got {self.mass_with_adduct}")
        if self.target_type == TargetType.DRIFT_TIME and self.normalized_drift_time_ms is None:
            raise ValueError("Drift-time targets need a normalized drift time")
        if self.target_type == TargetType.PEPTIDE and not self.sequence:
            raise ValueError("Peptide targets need a sequence")


# =============================================================================
# Peptide masses
# =============================================================================

def encode_peptide_to_ord(peptide: str) -> np.ndarray:
    """Encode peptide string to ord() array for Numba processing."""
    return np.array([ord(c) for c in peptide], dtype=np.uint8)


@njit
def _residue_sum(peptide_ord: np.ndarray) -> float:
    total = 0.0
    for i in range(len(peptide_ord)):
        total += AA_MASSES[peptide_ord[i]]
    return total


def peptide_neutral_mass(sequence: str) -> float:
    """Neutral monoisotopic peptide mass (residues + H2O).

    Raises:
        ValueError: If the sequence contains non-standard residues
    """
    unknown = sorted(set(sequence) - set(AA_MASSES_DICT))
    if unknown:
        raise ValueError(f"Unknown residues in peptide {sequence}: {unknown}")
    return _residue_sum(encode_peptide_to_ord(sequence)) + H2O_MASS


# =============================================================================
# Constructors
# =============================================================================

def molecule_target(
    monoisotopic_mass: float,
    adduct: IonizationAdduct,
    empirical_formula: Optional[str] = None,
    isotope_profile: Optional[TheoreticalIsotopeProfile] = None,
    identifier: str = "",
) -> ImsTarget:
    """Small-molecule target from neutral mass and adduct."""
    return ImsTarget(
        target_type=TargetType.MOLECULE,
        mass_with_adduct=monoisotopic_mass + adduct.mass_shift,
        charge_state=adduct.charge_state,
        monoisotopic_mass=monoisotopic_mass,
        adduct=adduct,
        empirical_formula=empirical_formula,
        isotope_profile=isotope_profile,
        identifier=identifier,
    )


def molecule_target_from_mz(
    mz: float,
    charge_state: int = 1,
    isotope_profile: Optional[TheoreticalIsotopeProfile] = None,
    identifier: str = "",
) -> ImsTarget:
    """Small-molecule target when only the ion m/z is known."""
    return ImsTarget(
        target_type=TargetType.MOLECULE,
        mass_with_adduct=mz * abs(charge_state),
        charge_state=charge_state,
        isotope_profile=isotope_profile,
        identifier=identifier,
    )


def peptide_target(
    sequence: str,
    charge: int = 1,
    isotope_profile: Optional[TheoreticalIsotopeProfile] = None,
    identifier: str = "",
) -> ImsTarget:
    """Protonated peptide target ([M+zH]z+)."""
    adduct = IonizationAdduct(IonizationMethod.PROTONATED, multiplier=charge)
    neutral = peptide_neutral_mass(sequence)
    return ImsTarget(
        target_type=TargetType.PEPTIDE,
        mass_with_adduct=neutral + adduct.mass_shift,
        charge_state=adduct.charge_state,
        monoisotopic_mass=neutral,
        adduct=adduct,
        sequence=sequence,
        isotope_profile=isotope_profile,
        identifier=identifier,
    )


def drift_time_target(
    mz: float,
    normalized_drift_time_ms: float,
    charge_state: int = 1,
    identifier: str = "",
) -> ImsTarget:
    """Target defined by m/z and expected drift time (normalized to 4 Torr)."""
    if normalized_drift_time_ms <= 0:
        raise ValueError(f"Drift time must be positive, got {normalized_drift_time_ms}")
    return ImsTarget(
        target_type=TargetType.DRIFT_TIME,
        mass_with_adduct=mz * abs(charge_state),
        charge_state=charge_state,
        normalized_drift_time_ms=normalized_drift_time_ms,
        identifier=identifier,
    )


# =============================================================================
# Shared capabilities
# =============================================================================

def target_mz(target: ImsTarget) -> float:
    """m/z of the target ion."""
    return target.mass_with_adduct / abs(target.charge_state)


def has_composition(target: ImsTarget) -> bool:
    """Whether isotopic-profile scoring is possible for this target."""
    return target.isotope_profile is not None


def target_descriptor(target: ImsTarget) -> str:
    """Short human-readable label used in logs and results."""
    if target.target_type == TargetType.PEPTIDE:
        return f"{target.sequence}{target.adduct.label}"
    elif target.target_type == TargetType.MOLECULE:
        if target.empirical_formula and target.adduct is not None:
            return f"{target.empirical_formula}{target.adduct.label}"
        if target.identifier:
            return target.identifier
        return f"mz{target_mz(target):.4f}z{target.charge_state}"
    elif target.target_type == TargetType.DRIFT_TIME:
        return (
            f"mz{target_mz(target):.4f}z{target.charge_state}"
            f"@{target.normalized_drift_time_ms:.2f}ms"
        )
    else:
        raise ValueError(f"Unknown target type: {target.target_type}")
