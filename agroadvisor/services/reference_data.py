"""
Reference data for the soil advisor.

Crops, fertilizers, nutrient-use efficiencies, the ppm -> kg/ha conversion
constant and the application calendar are loaded once from
data/soil_advisor_reference.json and shared read-only by every request.
An alternate file (e.g. a regional price set) can be selected through the
SOIL_ADVISOR_REFERENCE_PATH environment variable, or a ReferenceData
instance can be built from a dict and injected into the calculator.
"""
import json
import logging
import os
import re
import unicodedata
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from agroadvisor.services.advisory_errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_REFERENCE_PATH = os.path.join(
    os.path.dirname(__file__), "..", "data", "soil_advisor_reference.json"
)
REFERENCE_PATH = os.environ.get("SOIL_ADVISOR_REFERENCE_PATH", DEFAULT_REFERENCE_PATH)

_reference_data_cache = None


def normalize_slug(name: str) -> str:
    """Normalize a display name or id to slug form ('Cal Agrícola' -> 'cal_agricola')."""
    if not name:
        return ""
    normalized = unicodedata.normalize("NFKD", str(name))
    slug = normalized.encode("ASCII", "ignore").decode("ASCII").lower().strip()
    slug = re.sub(r"[^a-z0-9]+", "_", slug)
    return slug.strip("_")


# Spanish and generic product names accepted as fertilizer ids
FERTILIZER_ALIASES = {
    "cal_agricola": "agricultural_lime",
    "lime": "agricultural_lime",
    "azufre": "elemental_sulfur",
    "sulfur": "elemental_sulfur",
    "potassium_chloride": "kcl",
    "cloruro_de_potasio": "kcl",
    "fosfato_monoamonico": "map",
    "fosfato_diamonico": "dap",
}


@dataclass(frozen=True)
class CropProfile:
    """Crop nitrogen requirement and soil P/K targets."""
    id: str
    display_name: str
    nitrogen_requirement_kg_ha: float
    target_phosphorus_ppm: float
    target_potassium_ppm: float


@dataclass(frozen=True)
class FertilizerProfile:
    """Nutrient content (% by mass) and reference price of a product."""
    id: str
    display_name: str
    nitrogen_pct: float
    phosphate_pct: float
    potash_pct: float
    reference_unit_price_usd_per_kg: float
    handling_guidance: str = ""
    calcium_carbonate_pct: Optional[float] = None
    sulfur_pct: Optional[float] = None

    @property
    def nitrogen_fraction(self) -> float:
        return self.nitrogen_pct / 100.0

    @property
    def phosphate_fraction(self) -> float:
        return self.phosphate_pct / 100.0

    @property
    def potash_fraction(self) -> float:
        return self.potash_pct / 100.0


@dataclass(frozen=True)
class CropCalendar:
    """Orientative split/timing guidance per nutrient for one crop."""
    nitrogen: str
    phosphorus: str
    potassium: str


@dataclass(frozen=True)
class ReferenceData:
    """Read-only bundle of every table the calculators need."""
    crops: Dict[str, CropProfile]
    fertilizers: Dict[str, FertilizerProfile]
    efficiencies: Dict[str, float]
    ppm_to_kg_ha: float
    calendar: Dict[str, CropCalendar] = field(default_factory=dict)
    crop_aliases: Dict[str, str] = field(default_factory=dict)
    roles: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReferenceData":
        crops = {
            crop_id: CropProfile(
                id=crop_id,
                display_name=raw.get("name", crop_id),
                nitrogen_requirement_kg_ha=float(raw["n_requirement_kg_ha"]),
                target_phosphorus_ppm=float(raw["target_p_ppm"]),
                target_potassium_ppm=float(raw["target_k_ppm"]),
            )
            for crop_id, raw in data.get("crops", {}).items()
        }
        fertilizers = {}
        for fert_id, raw in data.get("fertilizers", {}).items():
            caco3 = raw.get("caco3_pct")
            sulfur = raw.get("s_pct")
            fertilizers[fert_id] = FertilizerProfile(
                id=fert_id,
                display_name=raw.get("name", fert_id),
                nitrogen_pct=float(raw.get("n_pct", 0) or 0),
                phosphate_pct=float(raw.get("p2o5_pct", 0) or 0),
                potash_pct=float(raw.get("k2o_pct", 0) or 0),
                reference_unit_price_usd_per_kg=float(raw.get("price_usd_kg", 0) or 0),
                handling_guidance=raw.get("handling", ""),
                calcium_carbonate_pct=float(caco3) if caco3 is not None else None,
                sulfur_pct=float(sulfur) if sulfur is not None else None,
            )
        calendar = {
            crop_id: CropCalendar(
                nitrogen=raw.get("N", ""),
                phosphorus=raw.get("P", ""),
                potassium=raw.get("K", ""),
            )
            for crop_id, raw in data.get("calendar", {}).items()
        }
        efficiencies = {k: float(v) for k, v in data.get("efficiencies", {}).items()}
        for nutrient in ("N", "P2O5", "K2O"):
            value = efficiencies.get(nutrient)
            if value is None or not 0 < value <= 1:
                raise ConfigurationError(
                    f"Efficiency for {nutrient} must be in (0, 1], got {value}",
                    field="efficiencies", value=nutrient,
                )
        return cls(
            crops=crops,
            fertilizers=fertilizers,
            efficiencies=efficiencies,
            ppm_to_kg_ha=float(data.get("ppm_to_kg_ha", 2)),
            calendar=calendar,
            crop_aliases={normalize_slug(k): v for k, v in data.get("crop_aliases", {}).items()},
            roles=dict(data.get("roles", {})),
        )

    def resolve_crop_id(self, crop_id: Optional[str]) -> Optional[str]:
        """Map a crop id or alias (e.g. 'maiz', 'Corn') to its canonical id."""
        key = normalize_slug(crop_id or "")
        if key in self.crops:
            return key
        return self.crop_aliases.get(key)

    def get_crop(self, crop_id: str) -> CropProfile:
        resolved = self.resolve_crop_id(crop_id)
        if resolved is None or resolved not in self.crops:
            raise ConfigurationError(f"Unknown crop '{crop_id}'", field="crop_id", value=crop_id)
        return self.crops[resolved]

    def resolve_fertilizer_id(self, fertilizer_id: Optional[str]) -> Optional[str]:
        key = normalize_slug(fertilizer_id or "")
        if key in self.fertilizers:
            return key
        alias = FERTILIZER_ALIASES.get(key)
        if alias in self.fertilizers:
            return alias
        for fert_id, fert in self.fertilizers.items():
            if normalize_slug(fert.display_name) == key:
                return fert_id
        return None

    def get_fertilizer(self, fertilizer_id: str, field_name: str = "fertilizer_id") -> FertilizerProfile:
        resolved = self.resolve_fertilizer_id(fertilizer_id)
        if resolved is None:
            raise ConfigurationError(
                f"Unknown fertilizer '{fertilizer_id}'", field=field_name, value=fertilizer_id
            )
        return self.fertilizers[resolved]

    def role_fertilizer(self, role: str) -> FertilizerProfile:
        """Product assigned to a fixed role: nitrogen_source, lime or sulfur."""
        fert_id = self.roles.get(role)
        if not fert_id or fert_id not in self.fertilizers:
            raise ConfigurationError(f"No fertilizer configured for role '{role}'", field="roles", value=role)
        return self.fertilizers[fert_id]

    def efficiency(self, nutrient: str) -> float:
        return self.efficiencies[nutrient]

    def calendar_for(self, crop_id: str) -> Optional[CropCalendar]:
        return self.calendar.get(self.resolve_crop_id(crop_id) or "")

    def list_crops(self) -> List[Dict[str, Any]]:
        return [
            {
                "id": crop.id,
                "name": crop.display_name,
                "n_requirement_kg_ha": crop.nitrogen_requirement_kg_ha,
                "target_p_ppm": crop.target_phosphorus_ppm,
                "target_k_ppm": crop.target_potassium_ppm,
            }
            for crop in self.crops.values()
        ]

    def list_fertilizers(self) -> List[Dict[str, Any]]:
        phosphorus_sources = set(self.roles.get("phosphorus_sources", []))
        potassium_sources = set(self.roles.get("potassium_sources", []))
        items = []
        for fert in self.fertilizers.values():
            items.append({
                "id": fert.id,
                "name": fert.display_name,
                "n_pct": fert.nitrogen_pct,
                "p2o5_pct": fert.phosphate_pct,
                "k2o_pct": fert.potash_pct,
                "price_usd_kg": fert.reference_unit_price_usd_per_kg,
                "handling": fert.handling_guidance,
                "phosphorus_source": fert.id in phosphorus_sources,
                "potassium_source": fert.id in potassium_sources,
            })
        return items


def clear_reference_data_cache():
    """Clear the cache to reload reference data on next call."""
    global _reference_data_cache
    _reference_data_cache = None


def load_reference_data(path: Optional[str] = None) -> ReferenceData:
    """
    Load reference data from JSON.

    The default file is read once per process; an explicit path is always
    read fresh and never cached.
    """
    global _reference_data_cache
    if path is None and _reference_data_cache is not None:
        return _reference_data_cache

    source = path or REFERENCE_PATH
    try:
        with open(source, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Error loading soil advisor reference data from {source}: {e}")
        raise ConfigurationError(f"Reference data unavailable: {source}") from e

    reference = ReferenceData.from_dict(raw)
    logger.info(
        f"Loaded soil advisor reference data: {len(reference.crops)} crops, "
        f"{len(reference.fertilizers)} fertilizers"
    )
    if path is None:
        _reference_data_cache = reference
    return reference
