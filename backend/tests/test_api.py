"""API tests through TestClient with database and RPC doubles."""
import pytest

from mbic.dependencies import get_reconciliation_severity
from mbic.main import app
from mbic.models import CategoryCollection, Customer, ProductCategory, SalesRep
from mbic.schemas.sales import SalesRow
from mbic.services.reconciliation import Severity


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_overview_isolates_a_failing_panel(client, fake_rpc):
    fake_rpc.responses.update({
        "sales_org_kpis_v2": [{"revenue": "1000", "unique_dealers": 3}],
        "sales_org_monthly_v2": [{"month": "2025-01", "month_total": "1000"}],
        "sales_org_top_reps": RuntimeError("function sales_org_top_reps does not exist"),
    })

    response = client.get("/api/v1/dashboard/overview", params={"from": "2025-01-01", "to": "2025-04-01"})

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["range_from"] == "2025-01-01"
    assert body["kpis"]["ok"] is True
    assert body["kpis"]["data"]["revenue"] == 1000
    assert body["monthly"]["count"] == 1
    assert body["top_reps"] == {
        "data": [],
        "ok": False,
        "error": "function sales_org_top_reps does not exist",
        "count": 0,
    }
    assert body["top_dealers"]["ok"] is True
    called = {fn for fn, _ in fake_rpc.calls}
    assert len(called) == 7
    assert ("sales_org_kpis_v2", {"from_date": "2025-01-01", "to_date": "2025-04-01"}) in fake_rpc.calls


def test_overview_defaults_to_configured_range(client, fake_rpc):
    response = client.get("/api/v1/dashboard/overview")
    assert response.status_code == 200
    assert response.json()["range_to"] == "2025-10-01"


@pytest.mark.parametrize("params", [{"from": "2025-13"}, {"from": "2025-05-01", "to": "2025-04-01"}])
def test_invalid_range_is_rejected(client, params):
    assert client.get("/api/v1/dashboard/overview", params=params).status_code == 422


@pytest.fixture
def linda_account(db_session, add_sales, linda_rows, fake_rpc):
    db_session.add_all([
        SalesRep(rep_id=7, rep_name="Juan Pedro Boscan"),
        SalesRep(rep_id=8, rep_name="Ana Torres"),
        Customer(customer_id=1, dealer_name="Linda Flooring", rep_id=7),
    ])
    db_session.commit()
    fake_rpc.responses.update({
        "sales_rep_kpis": [{"total_revenue": "358192.14", "invoice_count": 217}],
        "sales_rep_dealers": [{"customer_id": 1, "dealer_name": "Linda Flooring", "invoices": 217, "revenue": "358192.14"}],
        "sales_dealer_monthly": [{"month_label": "2025-01", "month_revenue": "25684.40", "invoice_count": 32}],
    })
    return linda_rows


def test_reps_listing(client, linda_account):
    body = client.get("/api/v1/sales/reps").json()
    assert body["total"] == 2
    assert [rep["rep_name"] for rep in body["reps"]] == ["Ana Torres", "Juan Pedro Boscan"]


def test_performance_reconciles_linda_flooring(client, linda_account, add_sales):
    add_sales(linda_account)

    response = client.get("/api/v1/sales/performance")

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["rep"]["rep_name"] == "Juan Pedro Boscan"
    assert body["selected_dealer_id"] == 1
    assert body["dealer_monthly"]["data"][0]["month_revenue"] == 25684.40
    assert body["reconciliation"]["ok"] is True
    assert body["reconciliation"]["issues"] == []
    assert body["reconciliation"]["severity"] == "fatal"


def test_performance_reconciles_whole_snapshot_for_a_narrow_range(client, linda_account, add_sales):
    add_sales(linda_account)

    response = client.get("/api/v1/sales/performance", params={"from": "2025-01-01", "to": "2025-04-01"})

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["range_to"] == "2025-04-01"
    assert body["reconciliation"]["ok"] is True
    assert round(body["reconciliation"]["grand_total"], 2) == 358192.14


def test_performance_mismatch_is_fatal_outside_production(client, linda_account, add_sales):
    add_sales(linda_account[:-1])

    response = client.get("/api/v1/sales/performance")

    assert response.status_code == 500
    body = response.json()
    assert body["detail"] == "Linda Flooring reconciliation failed"
    assert "Row count mismatch for 2025-09: expected 22, received 21" in body["issues"]


def test_performance_mismatch_is_reported_in_warn_mode(client, linda_account, add_sales):
    add_sales(linda_account[:-1])
    app.dependency_overrides[get_reconciliation_severity] = lambda: Severity.WARN

    response = client.get("/api/v1/sales/performance")

    assert response.status_code == 200
    reconciliation = response.json()["reconciliation"]
    assert reconciliation["ok"] is False
    assert reconciliation["severity"] == "warn"
    assert len(reconciliation["issues"]) == 3


def test_performance_skips_reconciliation_for_other_reps(client, linda_account, fake_rpc):
    response = client.get("/api/v1/sales/performance", params={"rep": "Ana Torres", "dealer": 1})

    assert response.status_code == 200
    assert response.json()["reconciliation"] is None
    assert ("sales_rep_kpis", {"p_rep_id": 8, "p_from": "2025-01-01", "p_to": "2025-10-01"}) in fake_rpc.calls


def test_performance_without_reps_is_404(client):
    assert client.get("/api/v1/sales/performance").status_code == 404


def test_rep_summary(client, linda_account, add_sales):
    add_sales(linda_account)

    response = client.get("/api/v1/sales/reps/7/summary")

    assert response.status_code == 200
    body = response.json()
    assert body["invoice_count"] == len(linda_account)
    assert round(body["grand_total"], 2) == 358192.14
    assert body["dealers"][0]["dealer_name"] == "Linda Flooring"
    assert client.get("/api/v1/sales/reps/999/summary").status_code == 404


FUTURE_SALE = {
    "project_name": "Hotel Lobby",
    "rep_id": 7,
    "dealer_id": "1",
    "expected_qty": "120",
    "expected_unit_price": "3.50",
    "potential_amount": 420,
    "probability_pct": "60",
}


def test_future_sale_form_and_stock_confirmation(client):
    created = client.post("/api/v1/forms/future-sale", json=FUTURE_SALE)
    assert created.status_code == 201, created.text
    body = created.json()
    assert body["ok"] is True
    opportunity_id = body["id"]

    confirmed = client.post(f"/api/v1/ops/future-sales/{opportunity_id}/confirm-stock")
    assert confirmed.status_code == 200
    assert confirmed.json()["ops_stock_confirmed"] is True
    assert confirmed.json()["ops_confirmed_at"] is not None

    again = client.post(f"/api/v1/ops/future-sales/{opportunity_id}/confirm-stock")
    assert again.status_code == 409
    assert client.post("/api/v1/ops/future-sales/999/confirm-stock").status_code == 404


def test_future_sale_form_validation(client):
    response = client.post("/api/v1/forms/future-sale", json={**FUTURE_SALE, "probability_pct": 101, "rep_id": "x"})

    assert response.status_code == 400
    assert response.json()["ok"] is False
    assert response.json()["errors"] == ["rep_id is required", "probability_pct must be between 0 and 100"]


def test_loss_opportunity_form(client):
    payload = {"rep_id": 7, "dealer_id": 1, "requested_qty": 40, "target_price": 2.75, "potential_amount": 110,
               "reason": "competitor"}

    assert client.post("/api/v1/forms/loss-opportunity", json=payload).status_code == 201
    invalid = client.post("/api/v1/forms/loss-opportunity", json={**payload, "reason": "weather"})
    assert invalid.status_code == 400
    assert invalid.json()["errors"] == ["reason is invalid"]


def test_open_future_sales_board(client, fake_rpc):
    fake_rpc.responses["list_future_sale_opps_open"] = [
        {"id": 1, "project_name": "Hotel Lobby", "dealer_name": "Linda Flooring", "ops_stock_confirmed": "f"},
    ]

    body = client.get("/api/v1/ops/future-sales").json()

    assert body["opportunities"]["ok"] is True
    assert body["opportunities"]["data"][0]["dealer"] == "Linda Flooring"
    assert body["opportunities"]["data"][0]["ops_stock_confirmed"] is False


def test_future_sale_detail_update_and_delete(client, linda_account):
    opportunity_id = client.post("/api/v1/forms/future-sale", json=FUTURE_SALE).json()["id"]
    url = f"/api/v1/ops/future-sales/{opportunity_id}"

    detail = client.get(url)
    assert detail.status_code == 200
    assert detail.json()["dealer_name"] == "Linda Flooring"
    assert detail.json()["rep_name"] == "Juan Pedro Boscan"
    assert detail.json()["potential_amount"] == 420

    updated = client.patch(url, json={"status": "in_process", "expected_unit_price": 4, "notes": "Sample sent"})
    assert updated.status_code == 200, updated.text
    assert updated.json()["status"] == "in_process"
    assert updated.json()["potential_amount"] == 480
    assert updated.json()["notes"] == "Sample sent"
    assert updated.json()["updated_at"] is not None

    invalid = client.patch(url, json={"status": "won"})
    assert invalid.status_code == 400
    assert invalid.json()["detail"] == ["Invalid status value"]

    assert client.delete(url).status_code == 204
    assert client.get(url).status_code == 404
    assert client.patch(url, json={"notes": "gone"}).status_code == 404


@pytest.fixture
def catalog_tables(db_session):
    db_session.add_all([
        SalesRep(rep_id=7, rep_name="Juan Pedro Boscan"),
        Customer(customer_id=1, dealer_name="Linda Flooring", rep_id=7),
        ProductCategory(category_key="LVP", display_name="Luxury Vinyl", sort_order=1),
        CategoryCollection(category_key="LVP", collection_key="Oak Classic"),
    ])
    db_session.commit()


def test_catalog_lookups(client, catalog_tables, fake_rpc):
    fake_rpc.responses["get_colors_by_collection_v2"] = [{"color": "Sand"}]

    reps = client.get("/api/v1/forms/catalog/sales-reps").json()
    dealers = client.get("/api/v1/forms/catalog/dealers", params={"repId": 7}).json()
    categories = client.get("/api/v1/forms/catalog/categories").json()
    collections = client.get("/api/v1/forms/catalog/collections", params={"category": "lvp"}).json()
    colors = client.get("/api/v1/forms/catalog/colors", params={"collection": "Oak Classic"}).json()

    assert reps["data"] == [{"id": 7, "name": "Juan Pedro Boscan"}]
    assert dealers["data"] == [{"id": 1, "name": "Linda Flooring", "rep_id": 7}]
    assert categories["data"][0]["name"] == "Luxury Vinyl"
    assert collections == {"data": [{"key": "Oak Classic", "label": "Oak Classic"}], "ok": True, "error": None, "count": 1}
    assert colors["data"] == [{"name": "Sand"}]


@pytest.mark.parametrize(
    "path, detail",
    [
        ("/api/v1/forms/catalog/dealers", "repId is required"),
        ("/api/v1/forms/catalog/collections", "category is required"),
        ("/api/v1/forms/catalog/colors?collection=%20", "collection is required"),
    ],
)
def test_catalog_lookups_require_their_key(client, path, detail):
    response = client.get(path)
    assert response.status_code == 400
    assert response.json()["detail"] == detail


def test_catalog_colors_failure_is_bad_gateway(client):
    response = client.get("/api/v1/forms/catalog/colors", params={"collection": "Oak Classic"})

    assert response.status_code == 502
    assert response.json() == {
        "data": [], "ok": False, "error": 'No colors found for collection "Oak Classic"', "count": 0,
    }


def test_dealer_snapshot_route(client, linda_account, add_sales):
    add_sales([
        SalesRow(invoice_date="2025-02-01", invoice_amount=250, customer_id=1, rep_id=7, collection="Oak Classic"),
        SalesRow(invoice_date="2025-02-03", invoice_amount=750, customer_id=1, rep_id=7, collection="Heritage"),
    ])

    response = client.get("/api/v1/dealers/1/snapshot", params={"collection": "Oak Classic"})

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["dealer_name"] == "Linda Flooring"
    assert body["rep_name"] == "Juan Pedro Boscan"
    assert body["collection_share_pct"] == 25
    assert body["invoice_count"] == 1
    assert client.get("/api/v1/dealers/99/snapshot", params={"collection": "Oak Classic"}).status_code == 404
    assert client.get("/api/v1/dealers/1/snapshot").status_code == 400


def test_dealer_month_details_route(client, fake_rpc):
    fake_rpc.responses.update({
        "dealer_activity_month_details": [{"month_date": "2025-06-01", "active_dealers": 42, "total_dealers": 60}],
        "active_dealers_by_month": [{"customer_id": 1, "dealer_name": "Linda Flooring", "total_revenue": "100"}],
        "inactive_dealers_by_month": RuntimeError("function inactive_dealers_by_month does not exist"),
    })

    response = client.get("/api/v1/dealers/month-details", params={"target_month": "2025-06-01"})

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["summary"]["active_dealers"] == 42
    assert body["active"]["data"][0]["dealer_name"] == "Linda Flooring"
    assert body["reactivated"] == {"data": [], "ok": True, "error": None, "count": 0}
    assert body["inactive"]["ok"] is False
    assert body["inactive"]["data"] == []


def test_dealer_month_details_requires_summary(client, fake_rpc):
    fake_rpc.responses["dealer_activity_month_details"] = RuntimeError("permission denied")

    assert client.get("/api/v1/dealers/month-details").status_code == 400
    assert client.get("/api/v1/dealers/month-details", params={"target_month": "June"}).status_code == 400
    failed = client.get("/api/v1/dealers/month-details", params={"target_month": "2025-06-01"})
    assert failed.status_code == 502
    assert failed.json()["detail"] == "permission denied"


def test_collection_dealers_route(client, fake_rpc):
    fake_rpc.responses["sales_ops_collections_by_dealer"] = [{"dealer": "Linda Flooring", "dealer_id": 1, "revenue": 900}]

    response = client.get("/api/v1/dealers/by-collection", params={"collection": "Oak Classic", "from": "2025-01-01"})

    assert response.status_code == 200
    body = response.json()
    assert body["collection"] == "Oak Classic"
    assert body["dealers"]["data"][0]["revenue"] == 900
    assert fake_rpc.calls[0][1] == {"p_collection": "Oak Classic", "from_date": "2025-01-01", "to_date": "2025-10-01"}
    assert client.get("/api/v1/dealers/by-collection").status_code == 400
