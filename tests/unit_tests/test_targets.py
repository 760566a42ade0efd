"""Tests for search targets, constants and unit conversions."""

import unittest

import pytest

from ccsfast.constants import PROTON_MASS, validate_constants
from ccsfast.targets import (
    IonizationAdduct,
    IonizationMethod,
    TargetType,
    TheoreticalIsotopeProfile,
    drift_time_target,
    has_composition,
    molecule_target,
    molecule_target_from_mz,
    peptide_neutral_mass,
    peptide_target,
    target_descriptor,
    target_mz,
)
from ccsfast.units import (
    celsius_to_kelvin,
    denormalize_drift_time,
    dimensionalize_pressure_to_torr,
    dimensionalize_temperature_to_kelvin,
    drift_time_ms_to_scan,
    kelvin_to_celsius,
    nondimensionalize_pressure,
    nondimensionalize_temperature,
    normalize_drift_time,
    pascal_to_torr,
    ppm_error,
    scan_to_drift_time_ms,
    torr_to_pascal,
)


class TestPeptideTargets(unittest.TestCase):
    """Test peptide masses and protonation."""

    def test_peptide_neutral_mass(self):
        self.assertAlmostEqual(peptide_neutral_mass("PEPTIDE"), 799.359964, places=4)

    def test_doubly_protonated_mz(self):
        target = peptide_target("PEPTIDE", charge=2)
        expected = (peptide_neutral_mass("PEPTIDE") + 2 * PROTON_MASS) / 2
        self.assertAlmostEqual(target_mz(target), expected, places=8)
        self.assertEqual(target.charge_state, 2)
        self.assertEqual(target.target_type, TargetType.PEPTIDE)

    def test_descriptor(self):
        self.assertEqual(target_descriptor(peptide_target("PEPTIDE", charge=2)), "PEPTIDE+2H")
        self.assertEqual(target_descriptor(peptide_target("PEPTIDE")), "PEPTIDE+H")

    def test_unknown_residue(self):
        with self.assertRaises(ValueError):
            peptide_neutral_mass("PEPXTIDE")


class TestMoleculeTargets:
    """Test small-molecule and drift-time targets."""

    def test_protonated_caffeine(self):
        caffeine = molecule_target(
            194.080376, IonizationAdduct(IonizationMethod.PROTONATED), empirical_formula="C8H10N4O2"
        )
        assert target_mz(caffeine) == pytest.approx(195.0877, abs=1e-4)
        assert target_descriptor(caffeine) == "C8H10N4O2+H"

    def test_deprotonated_charge_is_negative(self):
        target = molecule_target(300.0, IonizationAdduct(IonizationMethod.DEPROTONATED, multiplier=2))
        assert target.charge_state == -2
        assert target_mz(target) == pytest.approx((300.0 - 2 * PROTON_MASS) / 2)

    def test_from_mz(self):
        target = molecule_target_from_mz(500.25, charge_state=2)
        assert target.mass_with_adduct == pytest.approx(1000.5)
        assert target_mz(target) == pytest.approx(500.25)
        assert target_descriptor(target) == "mz500.2500z2"
        assert not has_composition(target)

    def test_identifier_descriptor(self):
        assert target_descriptor(molecule_target_from_mz(500.25, identifier="feature_17")) == "feature_17"

    def test_composition_from_isotope_profile(self):
        profile = TheoreticalIsotopeProfile.from_arrays([0.0, 1.003355], [1.0, 0.3])
        assert has_composition(molecule_target_from_mz(500.25, isotope_profile=profile))
        assert len(profile) == 2

    def test_drift_time_descriptor(self):
        target = drift_time_target(500.25, 21.5)
        assert target.target_type == TargetType.DRIFT_TIME
        assert target_descriptor(target) == "mz500.2500z1@21.50ms"

    @pytest.mark.parametrize("build", [
        lambda: molecule_target_from_mz(500.0, charge_state=0),
        lambda: molecule_target_from_mz(-5.0),
        lambda: drift_time_target(500.0, 0.0),
        lambda: IonizationAdduct(IonizationMethod.PROTONATED, multiplier=0),
        lambda: TheoreticalIsotopeProfile((0.0, 1.0), (1.0,)),
        lambda: TheoreticalIsotopeProfile((), ()),
    ])
    def test_invalid_targets(self, build):
        with pytest.raises(ValueError):
            build()


class TestUnits:
    """Test unit conversions."""

    def test_pressure_roundtrip(self):
        assert pascal_to_torr(torr_to_pascal(3.95)) == pytest.approx(3.95)
        assert dimensionalize_pressure_to_torr(nondimensionalize_pressure(torr_to_pascal(3.95))) == pytest.approx(3.95)

    def test_temperature_roundtrip(self):
        assert celsius_to_kelvin(25.0) == pytest.approx(298.15)
        assert kelvin_to_celsius(298.15) == pytest.approx(25.0)
        assert dimensionalize_temperature_to_kelvin(nondimensionalize_temperature(301.2)) == pytest.approx(301.2)

    def test_one_atmosphere(self):
        assert nondimensionalize_pressure(torr_to_pascal(760.0)) == pytest.approx(1.0)

    def test_drift_time_scans(self):
        assert scan_to_drift_time_ms(200.0, 1e-4) == pytest.approx(20.0)
        assert drift_time_ms_to_scan(20.0, 1e-4) == pytest.approx(200.0)

    def test_drift_time_normalization(self):
        assert normalize_drift_time(20.0, 4.0) == pytest.approx(20.0)
        assert normalize_drift_time(20.0, 3.8) == pytest.approx(20.0 * 4.0 / 3.8)
        assert denormalize_drift_time(normalize_drift_time(17.3, 3.9), 3.9) == pytest.approx(17.3)

    def test_ppm_error(self):
        assert ppm_error(500.005, 500.0) == pytest.approx(10.0)
        assert ppm_error(499.995, 500.0) == pytest.approx(-10.0)


class TestConstants(unittest.TestCase):

    def test_constants_are_physical(self):
        validate_constants()
