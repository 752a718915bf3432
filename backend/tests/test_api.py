"""
API Tests

Exercises the routers end to end against an in-memory SQLite database.
"""
import fitz
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.main import app
from app.models import db_models  # noqa: F401


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        Base.metadata.drop_all(bind=engine)


def party(name, party_type="Company", **extra):
    data = {
        "name": name,
        "type": party_type,
        "address_line": "1 High Street",
        "city": "Leeds",
        "county": "West Yorkshire",
        "postcode": "LS1 1AA",
    }
    data.update(extra)
    return data


def claim_payload(claim_id="api-claim-1", **overrides):
    data = {
        "claim_id": claim_id,
        "claimant": party("Acme Widgets Ltd"),
        "defendant": party("Slow Payer Ltd", postcode="YO1 7HH", city="York"),
        "invoice": {
            "amount": "1000.00",
            "date_issued": "2024-01-01",
            "due_date": "2024-01-31",
            "invoice_number": "INV-1001",
            "description": "Supply of widgets",
        },
        "timeline": [
            {"date": "2023-12-01", "type": "contract", "description": "Order placed"},
            {"date": "2024-01-01", "type": "Invoice Sent", "description": "Invoice INV-1001 sent"},
        ],
    }
    data.update(overrides)
    return data


def request_body(claim=None, **extra):
    body = {"claim": claim or claim_payload(), "as_of": "2024-05-10", "base_rate": "4.75"}
    body.update(extra)
    return body


# =============================================================================
# CLAIMS
# =============================================================================

class TestClaimEndpoints:

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"

    def test_interest(self, client):
        response = client.post("/claims/interest", json=request_body())
        assert response.status_code == 200
        data = response.json()
        assert data["total_interest"] == "34.93"
        assert data["compensation"] == "70.00"
        assert data["days_overdue"] == 100

    def test_interest_without_party_type_is_422(self, client):
        claim = claim_payload(defendant=party("Someone", None))
        response = client.post("/claims/interest", json=request_body(claim))
        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["error"] == "indeterminate_basis"
        assert detail["fields"] == ["defendant.type"]

    def test_timeline_check(self, client):
        response = client.post("/claims/timeline/check", json={"events": [
            {"date": "2024-01-10", "type": "contract"},
            {"date": "2024-01-01", "type": "invoice"},
        ]})
        data = response.json()
        assert data["warning"] == "Warning: Contract event typically comes before Invoice"
        assert data["completeness"]["is_complete"] is True
        assert [e["type"] for e in data["events"]] == ["contract", "invoice"]

    def test_viability(self, client):
        data = client.post("/claims/viability", json=request_body()).json()
        assert data["is_viable"] is True
        assert data["court_fee"] == "80.00"
        assert data["interest"]["total_claim"] == "1104.93"

    def test_recommendation(self, client):
        data = client.post("/claims/recommendation", json=request_body()).json()
        assert data["stage"] == "lba_required"
        assert data["primary_document"] == "Letter Before Action"

    def test_recommendation_without_party_types(self, client):
        claim = claim_payload(claimant=party("Acme", None), defendant=party("Slow", None))
        response = client.post("/claims/recommendation", json=request_body(claim))
        assert response.status_code == 200

    def test_generate_document(self, client):
        body = request_body(claim_payload("api-doc-1"), document_type="Letter Before Action")
        response = client.post("/claims/documents", json=body)
        assert response.status_code == 200
        data = response.json()
        assert data["document_type"] == "Letter Before Action"
        assert "£1,104.93" in data["content"]
        assert "demand" in data["sections"]

    def test_generate_without_type_is_422(self, client):
        response = client.post("/claims/documents", json=request_body(claim_payload("api-doc-2")))
        assert response.status_code == 422
        assert response.json()["detail"]["fields"] == ["selected_document_type"]

    def test_generate_with_missing_name_is_422(self, client):
        claim = claim_payload("api-doc-3", defendant=party(""))
        response = client.post("/claims/documents", json=request_body(claim, document_type="Polite Payment Reminder"))
        assert response.status_code == 422
        assert response.json()["detail"]["error"] == "incomplete_data"

    def test_invalid_signature_is_422(self, client):
        claim = claim_payload(signature_png_base64="***")
        response = client.post("/claims/interest", json=request_body(claim))
        assert response.status_code == 422
        assert response.json()["detail"]["fields"] == ["signature_png_base64"]


class TestFormN1Endpoint:

    def test_returns_pdf(self, client, tmp_path, monkeypatch):
        template = tmp_path / "N1.pdf"
        doc = fitz.open()
        for _ in range(5):
            doc.new_page(width=595.28, height=841.89)
        doc.save(str(template))
        doc.close()
        monkeypatch.setattr("app.services.forms.form_filler.N1_TEMPLATE_PATH", str(template))

        response = client.post("/claims/form-n1", json=request_body(claim_payload("api-n1-1")))
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")

    def test_missing_template_is_500(self, client, tmp_path, monkeypatch):
        monkeypatch.setattr("app.services.forms.form_filler.N1_TEMPLATE_PATH", str(tmp_path / "absent.pdf"))
        response = client.post("/claims/form-n1", json=request_body(claim_payload("api-n1-2")))
        assert response.status_code == 500
        assert response.json()["detail"]["error"] == "template_mismatch"


class TestLetterPdfEndpoint:

    def test_returns_pdf(self, client):
        body = request_body(claim_payload("api-letter-1"), document_type="Letter Before Action")
        response = client.post("/claims/letter-pdf", json=body)
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert "LBA-api-letter-1.pdf" in response.headers["content-disposition"]
        with fitz.open(stream=response.content, filetype="pdf") as doc:
            assert "Slow Payer Ltd" in doc[0].get_text()

    def test_court_form_is_422(self, client):
        body = request_body(claim_payload("api-letter-2"), document_type="Form N1 (Claim Form)")
        response = client.post("/claims/letter-pdf", json=body)
        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["error"] == "validation_error"
        assert detail["fields"] == ["document_type"]


# =============================================================================
# DEADLINES
# =============================================================================

class TestDeadlineEndpoints:

    def test_schedule_is_idempotent(self, client):
        first = client.post("/deadlines/schedule", json=request_body()).json()
        assert len(first["scheduled"]) == 5
        second = client.post("/deadlines/schedule", json=request_body()).json()
        assert second["scheduled"] == []
        assert second["deadlines"] == first["deadlines"]

    def test_list_for_claim(self, client):
        client.post("/deadlines/schedule", json=request_body())
        data = client.get("/deadlines/api-claim-1").json()
        assert data["deadlines"][0]["type"] == "payment_due"

    def test_upcoming_and_overdue(self, client):
        client.post("/deadlines/schedule", json=request_body())
        data = client.get("/deadlines/upcoming", params={"as_of": "2024-02-07", "days_ahead": 7}).json()
        assert [d["type"] for d in data["upcoming"]] == ["first_chaser", "final_demand"]
        assert data["overdue"][0]["type"] == "payment_due"
        assert data["overdue"][0]["days_overdue"] == 7

    def test_dismiss_and_complete(self, client):
        scheduled = client.post("/deadlines/schedule", json=request_body()).json()["scheduled"]
        first, second = scheduled[0]["id"], scheduled[1]["id"]
        assert client.post(f"/deadlines/{first}/dismiss").json()["status"] == "dismissed"
        assert client.post(f"/deadlines/{second}/complete").json()["status"] == "done"

    def test_unknown_deadline_is_404(self, client):
        response = client.post("/deadlines/missing/dismiss")
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "not_found"

    def test_lba_without_defendant_type_is_422(self, client):
        claim = claim_payload(
            "api-claim-2",
            defendant=party("Someone", None),
            lba_already_sent=True,
            lba_sent_date="2024-03-01",
        )
        response = client.post("/deadlines/schedule", json=request_body(claim))
        assert response.status_code == 422

    def test_calendar_download(self, client):
        client.post("/deadlines/schedule", json=request_body())
        response = client.get("/deadlines/api-claim-1.ics")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/calendar")
        assert "deadlines-api-claim-1.ics" in response.headers["content-disposition"]
        assert response.text.startswith("BEGIN:VCALENDAR")
        assert response.text.count("BEGIN:VEVENT") == 5

    def test_calendar_for_unknown_claim_is_empty(self, client):
        response = client.get("/deadlines/nothing-here.ics")
        assert response.status_code == 200
        assert "BEGIN:VEVENT" not in response.text
