"""
Soil test input validation.

Checks soil/area values against domain-plausible ranges and returns either
a validated SoilSample or the list of field-level problems. A sample is
accepted only when every field is finite and in range.
"""
import math
from dataclasses import dataclass, field
from typing import Any, List, Optional

from agroadvisor.services.advisory_errors import SoilValidationError
from agroadvisor.services.soil_advisor_rules import INPUT_RANGES

FIELD_LABELS = {
    "ph": "pH",
    "organic_matter_pct": "Organic matter (%)",
    "phosphorus_ppm": "P (ppm)",
    "potassium_ppm": "K (ppm)",
    "calcium_meq": "Ca (meq/100g)",
    "magnesium_meq": "Mg (meq/100g)",
    "area_ha": "Area (ha)",
}


@dataclass(frozen=True)
class SoilSample:
    """Validated soil test values plus treated area."""
    ph: float
    organic_matter_pct: float
    phosphorus_ppm: float
    potassium_ppm: float
    calcium_meq: float
    magnesium_meq: float
    area_ha: float


@dataclass(frozen=True)
class FieldProblem:
    """A single out-of-range or non-numeric field."""
    field: str
    message: str
    value: Any = None


@dataclass
class SoilValidationResult:
    """Either a sample (valid) or a non-empty list of problems (invalid)."""
    sample: Optional[SoilSample] = None
    errors: List[FieldProblem] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.sample is not None and not self.errors

    def raise_for_errors(self) -> SoilSample:
        if not self.is_valid:
            raise SoilValidationError(self.errors)
        return self.sample


def parse_decimal(value: Any) -> float:
    """
    Parse a user-entered number, accepting comma or dot decimal separators.

    Returns NaN for anything that is not a finite number.
    """
    if value is None or isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return math.nan
    elif isinstance(value, str):
        text = value.strip().replace(",", ".", 1)
        # float() also takes "1_0"; only plain decimals are user input
        if "_" in text:
            return math.nan
        try:
            number = float(text)
        except ValueError:
            return math.nan
    else:
        return math.nan
    return number if math.isfinite(number) else math.nan


def _range_message(field_name: str) -> str:
    low, high, low_inclusive = INPUT_RANGES[field_name]
    label = FIELD_LABELS[field_name]
    if low_inclusive:
        return f"{label} must be between {low:g} and {high:g}"
    return f"{label} must be > {low:g} and <= {high:g}"


def _in_range(field_name: str, number: float) -> bool:
    if math.isnan(number):
        return False
    low, high, low_inclusive = INPUT_RANGES[field_name]
    above_low = number >= low if low_inclusive else number > low
    return above_low and number <= high


def validate_soil_inputs(
    ph: Any,
    organic_matter_pct: Any,
    phosphorus_ppm: Any,
    potassium_ppm: Any,
    calcium_meq: Any,
    magnesium_meq: Any,
    area_ha: Any,
) -> SoilValidationResult:
    """
    Validate the seven raw soil/area values.

    Every field is checked so the caller can report all problems at once.
    No partial sample is returned when any field fails.
    """
    raw = {
        "ph": ph,
        "organic_matter_pct": organic_matter_pct,
        "phosphorus_ppm": phosphorus_ppm,
        "potassium_ppm": potassium_ppm,
        "calcium_meq": calcium_meq,
        "magnesium_meq": magnesium_meq,
        "area_ha": area_ha,
    }
    parsed = {}
    errors = []
    for field_name, value in raw.items():
        number = parse_decimal(value)
        if not _in_range(field_name, number):
            errors.append(FieldProblem(field=field_name, message=_range_message(field_name), value=value))
        parsed[field_name] = number

    if errors:
        return SoilValidationResult(errors=errors)
    return SoilValidationResult(sample=SoilSample(**parsed))
