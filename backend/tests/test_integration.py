"""
Integration tests: HTTP API over a fresh in-memory state.

Each test gets its own AppState and a local identity provider, so tests
never see each other's records or sessions.
"""
import io
from datetime import timedelta

import openpyxl
import pytest
from fastapi.testclient import TestClient

from garage.auth.gateway import IdentityGateway
from garage.auth.providers import LocalIdentityProvider
from garage.auth.tokens import create_access_token, decode_access_token
from garage.main import create_app
from garage.store.state import AppState

OWNER = {"email": "owner@garage.test", "password": "spanner99"}


@pytest.fixture
def app_state():
    return AppState()


@pytest.fixture
def app(app_state):
    gateway = IdentityGateway(LocalIdentityProvider({OWNER["email"]: OWNER["password"]}))
    return create_app(state=app_state, gateway=gateway)


@pytest.fixture
def anon(app):
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c


def _login(c):
    r = c.post("/api/auth/login", json=OWNER)
    assert r.status_code == 200
    c.headers["Authorization"] = f"Bearer {r.json()['access_token']}"
    return c


@pytest.fixture
def client(anon):
    return _login(anon)


def _stock(**kw):
    body = {
        "product_name": "Engine Oil 5W-30",
        "part_number": "EO-5W30-001",
        "hsn_code": "27101980",
        "purchase_price": 450,
        "profit_margin": 25,
        "selling_price": 562.5,
        "gst": 18,
        "category": "Lubricants",
    }
    body.update(kw)
    return body


CUSTOMER = {
    "name": "Rajesh Kumar",
    "phone": "9876543210",
    "vehicle_number": "KA01AB1234",
    "gst_number": "29ABCDE1234F1Z5",
}


class TestHealth:
    def test_health_is_public(self, anon):
        r = anon.get("/api/health")
        assert r.status_code == 200
        data = r.json()
        assert data["status"] == "ok"
        assert data["storage"] == "NullDocumentStore"
        assert data["auth_provider"] == "LocalIdentityProvider"


class TestAuth:
    def test_protected_routes_need_login(self, anon):
        for path in ("/api/views", "/api/stocks", "/api/invoices", "/api/dashboard", "/api/settings/garage"):
            assert anon.get(path).status_code == 401, path

    def test_form_errors(self, anon):
        r = anon.post("/api/auth/login", json={"email": "not-an-email", "password": "123"})
        assert r.status_code == 422
        errors = r.json()["errors"]
        assert errors["email"] == "Email is invalid"
        assert errors["password"] == "Password must be at least 6 characters"

    def test_wrong_password(self, anon):
        r = anon.post("/api/auth/login", json={**OWNER, "password": "wrong-one"})
        assert r.status_code == 401
        assert r.json()["kind"] == "invalid_credentials"

    def test_login_me_logout(self, anon):
        assert anon.get("/api/auth/me").json() == {"authenticated": False, "principal": None}
        r = anon.post("/api/auth/login", json=OWNER)
        body = r.json()
        assert body["authenticated"] is True
        assert body["principal"] == OWNER["email"]
        assert body["token_type"] == "bearer"

        # signing in does not by itself authorise a client that sends no token
        assert anon.get("/api/views").status_code == 401

        anon.headers["Authorization"] = f"Bearer {body['access_token']}"
        assert anon.get("/api/views").status_code == 200
        assert anon.get("/api/auth/me").json()["principal"] == OWNER["email"]

        anon.post("/api/auth/logout")
        assert anon.get("/api/auth/me").json()["authenticated"] is False
        assert anon.get("/api/views").status_code == 401

    def test_bad_tokens_rejected(self, anon):
        anon.headers["Authorization"] = "Bearer not-a-jwt"
        r = anon.get("/api/stocks")
        assert r.status_code == 401
        assert r.headers["www-authenticate"] == "Bearer"

        forged = create_access_token(OWNER["email"], "no-such-session")
        anon.headers["Authorization"] = f"Bearer {forged}"
        assert anon.get("/api/stocks").status_code == 401

    def test_expired_token_rejected(self, anon):
        token = _login(anon).headers["Authorization"].split()[1]
        session_id = decode_access_token(token)["sid"]
        expired = create_access_token(OWNER["email"], session_id, expires_delta=timedelta(seconds=-5))
        anon.headers["Authorization"] = f"Bearer {expired}"
        assert anon.get("/api/stocks").status_code == 401

    def test_views(self, client):
        keys = [v["key"] for v in client.get("/api/views").json()]
        assert keys == ["dashboard", "stocks", "services", "customers", "invoices", "settings"]


class TestSessionIsolation:
    def test_other_clients_stay_anonymous(self, app):
        with TestClient(app) as owner:
            stranger = TestClient(app)
            _login(owner)
            assert owner.get("/api/stocks").status_code == 200
            assert stranger.get("/api/stocks").status_code == 401
            assert stranger.get("/api/auth/me").json()["authenticated"] is False

    def test_logout_ends_only_that_session(self, app):
        with TestClient(app) as first:
            second = TestClient(app)
            _login(first)
            _login(second)
            first.post("/api/auth/logout")
            assert first.get("/api/stocks").status_code == 401
            assert second.get("/api/stocks").status_code == 200

    def test_provider_logout_ends_every_session(self, app):
        with TestClient(app) as first:
            second = TestClient(app)
            _login(first)
            _login(second)
            app.state.identity.provider.expire_session()
            assert first.get("/api/stocks").status_code == 401
            assert second.get("/api/stocks").status_code == 401


class TestCatalogue:
    def test_stock_crud(self, client):
        r = client.post("/api/stocks", json=_stock())
        assert r.status_code == 201
        stock = r.json()
        assert stock["id"]

        r = client.put(f"/api/stocks/{stock['id']}", json=_stock(selling_price=600))
        assert r.status_code == 200
        assert client.get(f"/api/stocks/{stock['id']}").json()["selling_price"] == 600

        assert client.delete(f"/api/stocks/{stock['id']}").json() == {"status": "deleted", "id": stock["id"]}
        assert client.delete(f"/api/stocks/{stock['id']}").status_code == 404
        assert client.get(f"/api/stocks/{stock['id']}").status_code == 404

    def test_update_unknown_is_404(self, client):
        assert client.put("/api/stocks/nope", json=_stock()).status_code == 404
        assert client.put("/api/services/nope", json={"service_name": "Wash"}).status_code == 404
        assert client.put("/api/customers/nope", json=CUSTOMER).status_code == 404

    def test_duplicate_id_is_409(self, client):
        client.post("/api/stocks", json=_stock(id="oil"))
        assert client.post("/api/stocks", json=_stock(id="oil")).status_code == 409

    def test_invalid_gst_rejected(self, client):
        assert client.post("/api/stocks", json=_stock(gst=120)).status_code == 422

    def test_search_and_category_filter(self, client):
        client.post("/api/stocks", json=_stock())
        client.post("/api/stocks", json=_stock(product_name="Brake Pads Front", category="Brake System"))
        r = client.get("/api/stocks", params={"search": "brake"})
        assert r.json()["total"] == 1
        r = client.get("/api/stocks", params={"category": "Lubricants"})
        assert [s["product_name"] for s in r.json()["items"]] == ["Engine Oil 5W-30"]

    def test_pagination(self, client):
        for i in range(5):
            client.post("/api/services", json={"service_name": f"Job {i}", "labour": 100})
        page = client.get("/api/services", params={"page": 2, "page_size": 2}).json()
        assert page["total"] == 5
        assert [s["service_name"] for s in page["items"]] == ["Job 2", "Job 3"]

    def test_price_suggestion(self, client):
        r = client.get("/api/stocks/price-suggestion", params={"purchase_price": 1200, "profit_margin": 30})
        assert r.json()["selling_price"] == 1560

    def test_categories(self, client):
        r = client.post("/api/categories/stocks", json={"name": " Tyres "})
        assert "Tyres" in r.json()["stocks"]
        r = client.delete("/api/categories/stocks/Tyres")
        assert "Tyres" not in r.json()["stocks"]
        assert client.delete("/api/categories/stocks/Tyres").status_code == 404
        assert client.post("/api/categories/vehicles", json={"name": "SUV"}).status_code == 422


def _draft(**kw):
    body = {
        "invoice_date": "2025-10-03",
        "customer": CUSTOMER,
        "is_gst": True,
        "items": [
            {"type": "service", "name": "General Service", "hsn_code": "998599",
             "quantity": 1, "rate": 800, "gst": 18},
            {"type": "stock", "name": "Engine Oil 5W-30", "hsn_code": "27101980",
             "quantity": 2, "rate": 500, "gst": 18},
        ],
        "discount": 100,
        "additional_charges": [{"description": "Towing", "amount": 300}],
    }
    body.update(kw)
    return body


class TestInvoices:
    def test_preview_saves_nothing(self, client, app_state):
        r = client.post("/api/invoices/preview", json=_draft(customer=None))
        assert r.status_code == 200
        totals = r.json()["totals"]
        assert totals["subtotal"] == 1800
        assert totals["gst_amount"] == 324
        assert totals["grand_total"] == 1800 + 324 + 300 - 100
        assert len(r.json()["tax_summary"]) == 2
        assert len(app_state.invoices) == 0

    def test_stored_totals_match_stored_lines(self, client):
        line = {"type": "stock", "name": "Washer", "quantity": 1, "rate": 10.005, "gst": 18}
        draft = _draft(items=[dict(line), dict(line), dict(line)], discount=0, additional_charges=[])
        invoice = client.post("/api/invoices", json=draft).json()

        amounts = [item["amount"] for item in invoice["items"]]
        assert amounts == [10.01, 10.01, 10.01]
        assert invoice["subtotal"] == round(sum(amounts), 2) == 30.03
        gst = round(sum(a * 18 / 100 for a in amounts), 2)
        assert invoice["gst_amount"] == gst
        assert invoice["grand_total"] == round(invoice["subtotal"] + gst, 2)

    def test_create_and_fetch(self, client):
        assert client.get("/api/invoices/next-number").json()["invoice_number"] == "INV000001"
        r = client.post("/api/invoices", json=_draft())
        assert r.status_code == 201
        invoice = r.json()
        assert invoice["invoice_number"] == "INV000001"
        assert invoice["grand_total"] == 2324
        assert invoice["items"][1]["amount"] == 1000

        fetched = client.get(f"/api/invoices/{invoice['id']}").json()
        assert fetched == invoice

        rows = client.get(f"/api/invoices/{invoice['id']}/tax-summary").json()
        assert {row["hsn_code"] for row in rows} == {"998599", "27101980"}
        assert client.get("/api/invoices/next-number").json()["invoice_number"] == "INV000002"

    def test_customer_snapshot(self, client):
        customer = client.post("/api/customers", json=CUSTOMER).json()
        invoice = client.post("/api/invoices", json=_draft(customer=None, customer_id=customer["id"])).json()
        client.put(f"/api/customers/{customer['id']}", json={**CUSTOMER, "phone": "0000000000"})
        assert client.get(f"/api/invoices/{invoice['id']}").json()["customer"]["phone"] == "9876543210"

    def test_customer_required(self, client):
        r = client.post("/api/invoices", json=_draft(customer=None))
        assert r.status_code == 422
        assert "customer" in r.json()["errors"]
        r = client.post("/api/invoices", json=_draft(customer=None, customer_id="missing"))
        assert r.status_code == 404

    def test_bad_line_rejected(self, client, app_state):
        draft = _draft()
        draft["items"][0]["quantity"] = 0
        assert client.post("/api/invoices", json=draft).status_code == 422
        assert len(app_state.invoices) == 0

    def test_duplicate_number_is_409(self, client):
        client.post("/api/invoices", json=_draft(invoice_number="INV000050"))
        r = client.post("/api/invoices", json=_draft(invoice_number="INV000050"))
        assert r.status_code == 409

    def test_update_keeps_number_and_recomputes(self, client):
        invoice = client.post("/api/invoices", json=_draft()).json()
        r = client.put(f"/api/invoices/{invoice['id']}", json=_draft(is_gst=False, discount=0))
        assert r.status_code == 200
        updated = r.json()
        assert updated["invoice_number"] == invoice["invoice_number"]
        assert updated["grand_total"] == 1800 + 300
        assert client.put("/api/invoices/nope", json=_draft()).status_code == 404

    def test_list_filters(self, client):
        client.post("/api/invoices", json=_draft(invoice_date="2025-09-01"))
        client.post("/api/invoices", json=_draft(invoice_date="2025-10-15"))
        r = client.get("/api/invoices", params={"date_from": "2025-10-01"})
        assert r.json()["total"] == 1
        r = client.get("/api/invoices", params={"search": "KA01AB"})
        assert r.json()["total"] == 2
        # newest first
        assert r.json()["items"][0]["invoice_date"] == "2025-10-15"

    def test_delete(self, client):
        invoice = client.post("/api/invoices", json=_draft()).json()
        assert client.delete(f"/api/invoices/{invoice['id']}").status_code == 200
        assert client.delete(f"/api/invoices/{invoice['id']}").status_code == 404

    def test_export_csv(self, client):
        client.post("/api/invoices", json=_draft())
        r = client.get("/api/invoices/export/csv")
        assert r.status_code == 200
        assert "text/csv" in r.headers["content-type"]
        lines = r.text.strip().splitlines()
        assert lines[0].startswith("invoice_number,invoice_date,customer")
        assert lines[1].startswith("INV000001,2025-10-03,Rajesh Kumar")

    def test_export_xlsx(self, client):
        client.post("/api/invoices", json=_draft())
        r = client.get("/api/invoices/export/xlsx")
        assert r.status_code == 200
        wb = openpyxl.load_workbook(io.BytesIO(r.content))
        assert wb.sheetnames == ["Register", "Lines"]
        assert wb["Register"].cell(row=2, column=1).value == "INV000001"
        assert wb["Lines"].max_row == 3


class TestDashboard:
    def test_counts_and_month_profit(self, client):
        client.post("/api/stocks", json=_stock())
        client.post("/api/customers", json=CUSTOMER)
        client.post("/api/invoices", json=_draft())

        stats = client.get("/api/dashboard", params={"today": "2025-10-31", "months": 2}).json()
        assert stats["total_stocks"] == 1
        assert stats["total_customers"] == 1
        assert stats["total_invoices"] == 1
        assert stats["this_month_revenue"] == 2324
        assert [m["year_month"] for m in stats["monthly"]] == ["2025-10", "2025-09"]

        profit = client.get("/api/dashboard/profit/2025-10").json()
        # stock line has no ref_id, so only the service counts
        assert profit["total_profit"] == 800

    def test_bad_month_format(self, client):
        assert client.get("/api/dashboard/profit/2025-1").status_code == 422


class TestGarageSettings:
    PROFILE = {
        "company_name": "Ganesh Auto Works",
        "gst_number": "29ABCDE1234F1Z5",
        "phone_number": "9876500000",
        "full_address": "12 Service Road, Bangalore",
        "address_line_one": "12 Service Road",
        "address_line_two": "Bangalore 560001",
        "bank_name": "SBI",
        "account_number": "00112233",
        "ifsc_code": "SBIN0000001",
        "pan_number": "ABCDE1234F",
    }

    def test_unsaved_profile_is_404(self, client):
        assert client.get("/api/settings/garage").status_code == 404

    def test_all_fields_required(self, client):
        r = client.put("/api/settings/garage", json={**self.PROFILE, "bank_name": "  "})
        assert r.status_code == 422
        assert list(r.json()["errors"]) == ["bank_name"]

    def test_save_and_read(self, client):
        assert client.put("/api/settings/garage", json=self.PROFILE).status_code == 200
        assert client.get("/api/settings/garage").json() == self.PROFILE
