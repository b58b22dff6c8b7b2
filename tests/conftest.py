import copy
import json

import pytest

from agroadvisor.services.reference_data import (
    DEFAULT_REFERENCE_PATH,
    ReferenceData,
    clear_reference_data_cache,
    load_reference_data,
)
from agroadvisor.services.soil_advisor_calculator import AdvisoryRequest, SoilAdvisorCalculator


@pytest.fixture(scope="session")
def raw_reference():
    with open(DEFAULT_REFERENCE_PATH, "r", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def reference_dict(raw_reference):
    """Mutable copy of the shipped reference JSON."""
    return copy.deepcopy(raw_reference)


@pytest.fixture
def reference():
    return load_reference_data()


@pytest.fixture
def tsp_reference(reference_dict):
    """Reference data with a zero-N phosphorus source (TSP 0-46-0)."""
    reference_dict["fertilizers"]["tsp"] = {
        "name": "TSP",
        "n_pct": 0,
        "p2o5_pct": 46,
        "k2o_pct": 0,
        "price_usd_kg": 1.0,
        "handling": "Phosphorus only; place near the seed.",
    }
    reference_dict["roles"]["phosphorus_sources"].append("tsp")
    return ReferenceData.from_dict(reference_dict)


@pytest.fixture
def calculator(reference):
    return SoilAdvisorCalculator(reference=reference)


@pytest.fixture
def maize_request():
    """Acid maize soil on 5 ha, MAP + KCl, priced in USD."""
    return AdvisoryRequest(
        ph=5.6,
        organic_matter_pct=3.2,
        phosphorus_ppm=12,
        potassium_ppm=180,
        calcium_meq=8.5,
        magnesium_meq=2.1,
        area_ha=5,
        crop_id="maize",
        phosphorus_source_id="map",
        potassium_source_id="kcl",
        currency="USD",
    )


@pytest.fixture(autouse=True)
def _fresh_reference_cache():
    yield
    clear_reference_data_cache()
