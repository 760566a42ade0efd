"""Physical constants and instrument defaults for drift-tube IMS calculations.

This module provides the physical constants, ion masses, and drift-tube
instrument defaults used throughout CCSFast. Values are sourced from NIST and
from the established drift-tube cross-section literature.

Residue masses are provided in both dictionary and ord()-indexed array formats
for compatibility with both standard Python and Numba JIT-compiled code.

Key Features
------------
- Correct PROTON_MASS (1.007276466622 Da, not hydrogen atom mass!)
- Standard atmosphere / standard temperature for mobility reduction
- Mason–Schamp CCS prefactor (18459) for Å² from cm²/(V·s)
- Drift-tube defaults (78 cm tube, nitrogen buffer gas)
- Detector saturation ceiling (8-bit digitizer, 255 counts per accumulation)

Sources
-------
- NIST physical constants: https://physics.nist.gov/cgi-bin/cuu/Value
- IUPAC amino acid masses: https://www.unimod.org/masses.html
- Mason & McDaniel, Transport Properties of Ions in Gases (1988)
"""

import numpy as np

# =============================================================================
# Fundamental Physical Constants (NIST values)
# =============================================================================

# Proton mass (NOT hydrogen atom mass!)
# Source: NIST 2018 CODATA
PROTON_MASS = 1.007276466622  # Da

# Electron mass
# Source: NIST 2018 CODATA
ELECTRON_MASS = 0.000548579909  # Da

# Water mass (H2O)
# Calculated: 2*1.007825 + 15.994915 = 18.010564684
H2O_MASS = 18.010564684  # Da

# Sodium atom (23Na)
SODIUM_MASS = 22.989769282  # Da

# Formate anion composition HCOO (neutral radical mass, electron added separately)
FORMATE_MASS = 44.997654276  # Da


# =============================================================================
# Gas Law / Mobility Reduction
# =============================================================================

# Absolute zero in degrees Celsius
ABSOLUTE_ZERO_CELSIUS = -273.15

# Standard temperature used for reduced mobility K0
STANDARD_TEMPERATURE_KELVIN = 273.15  # K

# Standard atmosphere
STANDARD_PRESSURE_PASCAL = 101325.0  # Pa

# 1 Torr = 101325 / 760 Pa
PASCAL_PER_TORR = 133.322368  # Pa

# Pressure that normalized drift times are referenced to
DRIFT_TIME_REFERENCE_PRESSURE_TORR = 4.0  # Torr

# CCS prefactor for Omega[Å²] = 18459 / sqrt(mu * T) * z / K0
# (mu in Da, T in K, K0 in cm²/(V·s))
CCS_PREFACTOR = 18459.0

# =============================================================================
# Drift-Tube Instrument Defaults
# =============================================================================

# Length of the drift tube on the reference Agilent-style instrument
DRIFT_TUBE_LENGTH_CM = 78.0  # cm

# Nitrogen (14N2) buffer gas
NITROGEN_MASS = 28.006148  # Da

# 8-bit ADC: one accumulation saturates at 255 counts
DETECTOR_SATURATION_INTENSITY = 255.0

# Voltage clustering: points closer than this to the group mean always join
MIN_DIFFERENTIAL_VOLTAGE = 5.0  # V

# =============================================================================
# Amino Acid Monoisotopic Masses (Da)
# =============================================================================

# Standard 20 amino acids (unmodified residues)
# Source: IUPAC/Unimod mass tables
AA_MASSES_DICT = {
    'A': 71.037114,   # Alanine
    'R': 156.101111,  # Arginine
    'N': 114.042927,  # Asparagine
    'D': 115.026943,  # Aspartic acid
    'C': 103.009185,  # Cysteine (unmodified)
    'E': 129.042593,  # Glutamic acid
    'Q': 128.058578,  # Glutamine
    'G': 57.021464,   # Glycine
    'H': 137.058912,  # Histidine
    'I': 113.084064,  # Isoleucine
    'L': 113.084064,  # Leucine
    'K': 128.094963,  # Lysine
    'M': 131.040485,  # Methionine
    'F': 147.068414,  # Phenylalanine
    'P': 97.052764,   # Proline
    'S': 87.032028,   # Serine
    'T': 101.047679,  # Threonine
    'W': 186.079313,  # Tryptophan
    'Y': 163.063320,  # Tyrosine
    'V': 99.068414,   # Valine
}

# ord()-indexed lookup array for Numba access
# Access via: AA_MASSES[ord('A')] → 71.037114
AA_MASSES = np.zeros(256, dtype=np.float64)
for aa, mass in AA_MASSES_DICT.items():
    AA_MASSES[ord(aa)] = mass

# =============================================================================
# Default Tolerance Settings
# =============================================================================

# Default precursor mass tolerance in PPM
DEFAULT_MASS_TOLERANCE_PPM = 10.0  # ppm

# Default drift-time tolerance
DEFAULT_DRIFT_TIME_TOLERANCE_MS = 0.5  # ms


def validate_constants():
    """Validate that constants are physically reasonable.

    Raises AssertionError if any constant is out of expected range.
    """
    assert 1.0072 < PROTON_MASS < 1.0073, f"PROTON_MASS is wrong: {PROTON_MASS}"
    assert 0.0005 < ELECTRON_MASS < 0.0006, f"ELECTRON_MASS is wrong: {ELECTRON_MASS}"
    assert abs(PASCAL_PER_TORR * 760.0 - STANDARD_PRESSURE_PASCAL) < 0.01, \
        f"PASCAL_PER_TORR inconsistent: {PASCAL_PER_TORR}"
    assert 28.0 < NITROGEN_MASS < 28.1, f"NITROGEN_MASS is wrong: {NITROGEN_MASS}"

    for aa, mass in AA_MASSES_DICT.items():
        assert 50.0 < mass < 250.0, f"AA {aa} mass is out of range: {mass}"
