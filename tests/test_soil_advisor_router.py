"""
API tests for the soil advisor router and report exports.
"""
import io

import pytest
from fastapi.testclient import TestClient
from openpyxl import load_workbook

from agroadvisor.main import create_app
from agroadvisor.routers.soil_advisor import get_calculator
from agroadvisor.services.soil_advisor_calculator import SoilAdvisorCalculator


MAIZE_PAYLOAD = {
    "ph": 5.6,
    "organic_matter_pct": 3.2,
    "phosphorus_ppm": 12,
    "potassium_ppm": 180,
    "calcium_meq": 8.5,
    "magnesium_meq": 2.1,
    "area_ha": 5,
    "crop_id": "maize",
    "phosphorus_source_id": "map",
    "potassium_source_id": "kcl",
    "currency": "USD",
}


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app):
    return TestClient(app)


class TestReferenceEndpoints:

    def test_health(self, client):
        """Health endpoint answers ok."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_list_crops(self, client):
        """All seven crops are listed with their N requirement."""
        response = client.get("/api/soil-advisor/crops")
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 7
        maize = next(c for c in data["items"] if c["id"] == "maize")
        assert maize["n_requirement_kg_ha"] == 150

    def test_list_fertilizers(self, client):
        """Products and the currencies with a rate are listed."""
        response = client.get("/api/soil-advisor/fertilizers")
        assert response.status_code == 200
        data = response.json()
        assert {f["id"] for f in data["items"]} >= {"urea", "map", "dap", "kcl"}
        assert "COP" in data["currencies"]


class TestCalculate:

    def test_success(self, client):
        """Acid maize soil gets lime, a mild-acid diagnosis, K2O and a four-step calendar."""
        response = client.post("/api/soil-advisor/calculate", json=MAIZE_PAYLOAD)
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "success"
        assert data["crop_id"] == "maize"
        assert data["amendment_plan"]["lime_t_ha"] == pytest.approx(1.8)
        assert data["ph_diagnostic"] == {"label": "mild acid", "severity": "warn"}
        assert data["nutrient_plan"]["npk_to_apply"]["K2O"] == pytest.approx(280)
        assert data["cost_summary"]["sum_total"] == pytest.approx(data["cost_summary"]["sum_per_ha"] * 5)
        assert [s["stage"] for s in data["calendar"]["steps"]] == ["pre-sowing", "sowing", "growth", "development"]

    def test_comma_decimal_strings(self, client):
        """Comma decimals typed as strings are accepted."""
        payload = dict(MAIZE_PAYLOAD, ph="5,6", organic_matter_pct="3,2")
        response = client.post("/api/soil-advisor/calculate", json=payload)
        assert response.status_code == 200
        assert response.json()["sample"]["ph"] == pytest.approx(5.6)

    def test_cop_currency(self, client):
        """COP costs are the USD costs times the reported rate."""
        usd = client.post("/api/soil-advisor/calculate", json=MAIZE_PAYLOAD).json()
        cop = client.post("/api/soil-advisor/calculate", json=dict(MAIZE_PAYLOAD, currency="COP")).json()
        rate = cop["cost_summary"]["rate"]
        assert cop["cost_summary"]["currency"] == "COP"
        assert cop["cost_summary"]["sum_per_ha"] == pytest.approx(usd["cost_summary"]["sum_per_ha"] * rate)

    def test_validation_errors(self, client):
        """Out-of-range values return 422 listing each bad field."""
        payload = dict(MAIZE_PAYLOAD, ph=10, area_ha=0)
        response = client.post("/api/soil-advisor/calculate", json=payload)
        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["status"] == "invalid"
        assert [e["field"] for e in detail["validation_errors"]] == ["ph", "area_ha"]

    def test_missing_fields_are_validation_errors(self, client):
        """Omitted soil values are reported by the validator, not by pydantic."""
        response = client.post("/api/soil-advisor/calculate", json={"crop_id": "maize"})
        assert response.status_code == 422
        fields = [e["field"] for e in response.json()["detail"]["validation_errors"]]
        assert len(fields) == 7

    @pytest.mark.parametrize("overrides,field", [
        ({"crop_id": "banana"}, "crop_id"),
        ({"phosphorus_source_id": "kcl"}, "phosphorus_source_id"),
        ({"potassium_source_id": "urea"}, "potassium_source_id"),
        ({"currency": "EUR"}, "currency"),
    ])
    def test_configuration_errors(self, client, overrides, field):
        """Unusable crop, product or currency selections return 400 naming the field."""
        response = client.post("/api/soil-advisor/calculate", json=dict(MAIZE_PAYLOAD, **overrides))
        assert response.status_code == 400
        assert response.json()["detail"]["field"] == field

    @pytest.mark.parametrize("ph", [[5.6], {"value": 5.6}, 10 ** 400])
    def test_non_scalar_or_oversized_values_reach_the_validator(self, client, ph):
        """Lists, objects and oversized integers are reported as field problems."""
        response = client.post("/api/soil-advisor/calculate", json=dict(MAIZE_PAYLOAD, ph=ph))
        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["status"] == "invalid"
        assert detail["validation_errors"][0]["field"] == "ph"

    def test_unexpected_error_is_generic(self, app, client):
        """Internal failures return 500 without leaking the exception text."""
        class BrokenCalculator(SoilAdvisorCalculator):
            def calculate(self, request):
                raise RuntimeError("internal state")

        app.dependency_overrides[get_calculator] = lambda: BrokenCalculator()
        try:
            response = client.post("/api/soil-advisor/calculate", json=MAIZE_PAYLOAD)
        finally:
            app.dependency_overrides.clear()
        assert response.status_code == 500
        assert "internal state" not in response.text

    def test_demo(self, client):
        """Demo runs the worked 5 ha maize example."""
        response = client.get("/api/soil-advisor/demo")
        assert response.status_code == 200
        data = response.json()
        assert data["sample"]["area_ha"] == 5
        assert data["nutrient_plan"]["phosphorus_potassium"]["deficit_p_ppm"] == pytest.approx(13)
        assert data["nutrient_plan"]["phosphorus_potassium"]["deficit_k_ppm"] == pytest.approx(70)


class TestExports:

    def test_excel(self, client):
        """Excel export is an xlsx attachment with four sheets."""
        response = client.post("/api/soil-advisor/excel", json=MAIZE_PAYLOAD)
        assert response.status_code == 200
        assert "spreadsheetml" in response.headers["content-type"]
        assert ".xlsx" in response.headers["content-disposition"]
        workbook = load_workbook(io.BytesIO(response.content))
        assert workbook.sheetnames == ["Summary", "Nutrient Balance", "Costs", "Calendar"]

    def test_pdf(self, client):
        """PDF export returns a PDF document."""
        response = client.post("/api/soil-advisor/pdf", json=MAIZE_PAYLOAD)
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")

    def test_export_rejects_invalid_input(self, client):
        """Exports refuse soil values that fail validation."""
        response = client.post("/api/soil-advisor/pdf", json=dict(MAIZE_PAYLOAD, ph="abc"))
        assert response.status_code == 422
