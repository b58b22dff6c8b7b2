"""
Deterministic agronomic rules and thresholds for the soil advisor.

This module centralizes fixed policy constants so the calculators remain
deterministic, auditable, and consistent across services and tests.
None of these values are tunable per request.
"""

# Input ranges: field -> (min, max, min_inclusive)
INPUT_RANGES = {
    "ph": (3.5, 9.5, True),
    "organic_matter_pct": (0.0, 20.0, True),
    "phosphorus_ppm": (0.0, 200.0, True),
    "potassium_ppm": (0.0, 800.0, True),
    "calcium_meq": (0.0, 40.0, True),
    "magnesium_meq": (0.0, 20.0, True),
    "area_ha": (0.0, 10000.0, False),
}

# pH diagnostic bands, evaluated in ascending order (upper, inclusive, label, severity)
PH_BANDS = [
    (5.0, False, "strong acid", "danger"),
    (5.5, False, "medium acid", "warn"),
    (6.0, False, "mild acid", "warn"),
    (7.5, True, "near-neutral to mildly alkaline", "good"),
    (8.2, True, "moderate alkaline", "warn"),
]
PH_TOP_BAND = ("strong alkaline", "danger")

# Amendments
LIME_TRIGGER_PH = 6.0
LIME_TARGET_PH = 6.5
LIME_T_HA_PER_PH_UNIT = 2.0
MAX_LIME_T_HA = 6.0

SULFUR_TRIGGER_PH = 7.5
SULFUR_T_HA_PER_PH_UNIT = 0.8
MAX_SULFUR_T_HA = 2.5

BUFFER_PROXY_THRESHOLD_MEQ = 12.0
BUFFER_FACTOR_HIGH = 1.10
ORGANIC_MATTER_THRESHOLD_PCT = 5.0
ORGANIC_FACTOR_HIGH = 1.10

# Nitrogen mineralised from organic matter (kg N/ha per % OM, capped)
OM_NITROGEN_KG_HA_PER_PCT = 20.0
MAX_OM_NITROGEN_KG_HA = 140.0

KG_PER_TONNE = 1000.0

# Currency: rough reference rates, not live exchange rates
REFERENCE_CURRENCY = "USD"
DEFAULT_COP_PER_USD = 4200.0
