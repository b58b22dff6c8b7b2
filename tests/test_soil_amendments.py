"""
Tests for pH diagnosis and lime/sulfur sizing.
"""
import pytest

from agroadvisor.services.soil_amendments import SeverityEnum, calculate_amendments, diagnose_ph


class TestDiagnosePh:

    @pytest.mark.parametrize("ph,label,severity", [
        (4.2, "strong acid", SeverityEnum.DANGER),
        (4.99, "strong acid", SeverityEnum.DANGER),
        (5.0, "medium acid", SeverityEnum.WARN),
        (5.49, "medium acid", SeverityEnum.WARN),
        (5.5, "mild acid", SeverityEnum.WARN),
        (5.99, "mild acid", SeverityEnum.WARN),
        (6.0, "near-neutral to mildly alkaline", SeverityEnum.GOOD),
        (7.5, "near-neutral to mildly alkaline", SeverityEnum.GOOD),
        (7.51, "moderate alkaline", SeverityEnum.WARN),
        (8.2, "moderate alkaline", SeverityEnum.WARN),
        (8.21, "strong alkaline", SeverityEnum.DANGER),
        (9.5, "strong alkaline", SeverityEnum.DANGER),
    ])
    def test_bands(self, ph, label, severity):
        """Each pH falls in the expected band; lower edges belong to the higher band."""
        diagnostic = diagnose_ph(ph)
        assert diagnostic.label == label
        assert diagnostic.severity == severity


class TestLime:

    def test_no_lime_at_or_above_trigger(self):
        """pH 6.0 and above needs neither lime nor sulfur."""
        for ph in (6.0, 6.5, 7.5):
            plan = calculate_amendments(ph, 3.0, 8.0, 2.0)
            assert plan.lime_t_ha == 0
            assert plan.sulfur_t_ha == 0
            assert not plan.needs_amendment

    def test_base_dose(self):
        """Maize reference soil: (6.5 - 5.6) * 2 = 1.8 t/ha."""
        plan = calculate_amendments(5.6, 3.2, 8.5, 2.1)
        assert plan.lime_t_ha == pytest.approx(1.8)
        assert plan.buffer_proxy == pytest.approx(10.6)
        assert plan.buffer_factor == 1.0
        assert plan.organic_factor == 1.0

    def test_buffer_and_organic_factors_compound(self):
        """High Ca+Mg and high OM each add 10 %."""
        plan = calculate_amendments(5.5, 6.0, 10.0, 3.0)
        assert plan.buffer_factor == pytest.approx(1.1)
        assert plan.organic_factor == pytest.approx(1.1)
        assert plan.lime_t_ha == pytest.approx(2.0 * 1.1 * 1.1)

    def test_buffer_threshold_is_strict(self):
        """Ca+Mg of exactly 12 keeps the base factor."""
        plan = calculate_amendments(5.5, 3.0, 10.0, 2.0)
        assert plan.buffer_factor == 1.0

    def test_capped_at_six(self):
        """Lime never exceeds 6 t/ha."""
        plan = calculate_amendments(3.5, 8.0, 30.0, 10.0)
        assert plan.lime_t_ha == pytest.approx(6.0)

    def test_monotonic_in_ph(self):
        """Lower pH never gets less lime."""
        doses = [calculate_amendments(ph / 10, 3.0, 8.0, 2.0).lime_t_ha for ph in range(35, 60)]
        assert all(a >= b for a, b in zip(doses, doses[1:]))


class TestSulfur:

    def test_base_dose(self):
        """pH 8.0 gets 0.4 t/ha sulfur and no lime."""
        plan = calculate_amendments(8.0, 2.0, 8.0, 2.0)
        assert plan.sulfur_t_ha == pytest.approx(0.4)
        assert plan.lime_t_ha == 0

    def test_organic_factor_does_not_apply(self):
        """High OM is reported but does not scale sulfur."""
        plan = calculate_amendments(8.5, 10.0, 5.0, 1.0)
        assert plan.organic_factor == pytest.approx(1.1)
        assert plan.sulfur_t_ha == pytest.approx(0.8)

    def test_buffer_factor_applies(self):
        """High Ca+Mg scales sulfur by 1.1."""
        plan = calculate_amendments(8.5, 2.0, 15.0, 5.0)
        assert plan.sulfur_t_ha == pytest.approx(0.88)

    def test_capped(self):
        """Sulfur never exceeds 2.5 t/ha."""
        plan = calculate_amendments(11.0, 2.0, 8.0, 2.0)
        assert plan.sulfur_t_ha == pytest.approx(2.5)

    def test_monotonic_in_ph(self):
        """Higher pH never gets less sulfur."""
        doses = [calculate_amendments(ph / 10, 3.0, 8.0, 2.0).sulfur_t_ha for ph in range(76, 96)]
        assert all(a <= b for a, b in zip(doses, doses[1:]))


def test_lime_and_sulfur_are_mutually_exclusive():
    """Across the pH range at most one amendment is nonzero."""
    for tenth in range(35, 96):
        plan = calculate_amendments(tenth / 10, 6.0, 15.0, 5.0)
        assert plan.lime_t_ha == 0 or plan.sulfur_t_ha == 0
        assert plan.lime_t_ha >= 0 and plan.sulfur_t_ha >= 0
