"""
pH diagnosis and soil amendment sizing.

Lime is recommended below pH 6.0 and elemental sulfur above pH 7.5, sized
from the pH deviation and adjusted by a buffering proxy (Ca + Mg) and
organic matter. Doses are capped at practical single-season limits
(6 t/ha lime, 2.5 t/ha sulfur).
"""
from dataclasses import dataclass
from enum import Enum

from agroadvisor.services.soil_advisor_rules import (
    BUFFER_FACTOR_HIGH,
    BUFFER_PROXY_THRESHOLD_MEQ,
    LIME_T_HA_PER_PH_UNIT,
    LIME_TARGET_PH,
    LIME_TRIGGER_PH,
    MAX_LIME_T_HA,
    MAX_SULFUR_T_HA,
    ORGANIC_FACTOR_HIGH,
    ORGANIC_MATTER_THRESHOLD_PCT,
    PH_BANDS,
    PH_TOP_BAND,
    SULFUR_T_HA_PER_PH_UNIT,
    SULFUR_TRIGGER_PH,
)


class SeverityEnum(str, Enum):
    """Severity tag of a pH diagnosis."""
    DANGER = "danger"
    WARN = "warn"
    GOOD = "good"


@dataclass(frozen=True)
class PhDiagnostic:
    label: str
    severity: SeverityEnum


@dataclass(frozen=True)
class AmendmentPlan:
    """Lime or sulfur dose in t/ha; at most one of them is nonzero."""
    lime_t_ha: float
    sulfur_t_ha: float
    buffer_proxy: float
    buffer_factor: float
    organic_factor: float

    @property
    def needs_amendment(self) -> bool:
        return self.lime_t_ha > 0 or self.sulfur_t_ha > 0


def diagnose_ph(ph: float) -> PhDiagnostic:
    """Classify pH into a label/severity band (ascending thresholds, first match wins)."""
    for upper, inclusive, label, severity in PH_BANDS:
        if ph < upper or (inclusive and ph == upper):
            return PhDiagnostic(label=label, severity=SeverityEnum(severity))
    label, severity = PH_TOP_BAND
    return PhDiagnostic(label=label, severity=SeverityEnum(severity))


def calculate_amendments(
    ph: float,
    organic_matter_pct: float,
    calcium_meq: float,
    magnesium_meq: float,
) -> AmendmentPlan:
    """
    Compute lime or sulfur dose (t/ha).

    - pH < 6.0: lime = min(6, (6.5 - pH) * 2 * buffer_factor * organic_factor)
    - pH > 7.5: sulfur = min(2.5, (pH - 7.5) * 0.8 * buffer_factor)
    - otherwise no amendment.

    The organic matter factor only applies to lime.
    """
    buffer_proxy = calcium_meq + magnesium_meq
    buffer_factor = BUFFER_FACTOR_HIGH if buffer_proxy > BUFFER_PROXY_THRESHOLD_MEQ else 1.0
    organic_factor = ORGANIC_FACTOR_HIGH if organic_matter_pct > ORGANIC_MATTER_THRESHOLD_PCT else 1.0

    lime_t_ha = 0.0
    sulfur_t_ha = 0.0
    if ph < LIME_TRIGGER_PH:
        base = max(0.0, (LIME_TARGET_PH - ph) * LIME_T_HA_PER_PH_UNIT)
        lime_t_ha = min(MAX_LIME_T_HA, base * buffer_factor * organic_factor)
    elif ph > SULFUR_TRIGGER_PH:
        base = max(0.0, (ph - SULFUR_TRIGGER_PH) * SULFUR_T_HA_PER_PH_UNIT)
        sulfur_t_ha = min(MAX_SULFUR_T_HA, base * buffer_factor)

    return AmendmentPlan(
        lime_t_ha=lime_t_ha,
        sulfur_t_ha=sulfur_t_ha,
        buffer_proxy=buffer_proxy,
        buffer_factor=buffer_factor,
        organic_factor=organic_factor,
    )
