"""Tests for stored-procedure metric mapping."""
import pytest

from conftest import FakeRpcClient
from mbic.schemas.sales import DateRange
from mbic.services import metrics_gateway


RANGE = DateRange(from_="2025-01-01", to="2025-10-01")


def test_org_kpis_coerces_text_numbers():
    rpc = FakeRpcClient({
        "sales_org_kpis_v2": [{
            "revenue": "1500.25",
            "active_dealers": "12",
            "avg_invoice": None,
            "top_dealer": "Linda Flooring",
            "top_dealer_revenue": "abc",
            "growth_rate": None,
        }],
    })

    kpis = metrics_gateway.get_org_kpis(rpc, RANGE)

    assert kpis.revenue == 1500.25
    assert kpis.unique_dealers == 12
    assert kpis.avg_invoice == 0
    assert kpis.top_dealer == "Linda Flooring"
    assert kpis.top_dealer_revenue == 0
    assert kpis.growth_rate is None
    assert rpc.calls == [("sales_org_kpis_v2", {"from_date": "2025-01-01", "to_date": "2025-10-01"})]


def test_org_kpis_without_rows_is_zeroed():
    kpis = metrics_gateway.get_org_kpis(FakeRpcClient(), RANGE)
    assert kpis.revenue == 0
    assert kpis.top_dealer is None


def test_monthly_accepts_alternate_column_names():
    rpc = FakeRpcClient({
        "sales_org_monthly_v2": [
            {"month": "2025-01", "month_total": "100.5"},
            {"month_label": "2025-02", "total": 7},
        ],
    })

    points = metrics_gateway.get_org_monthly(rpc, RANGE)

    assert [(p.month, p.total) for p in points] == [("2025-01", 100.5), ("2025-02", 7)]


def test_top_dealers_placeholder_names_and_paging():
    rpc = FakeRpcClient({
        "sales_org_top_dealers": [
            {"customer_id": "5", "dealer_name": "", "revenue_ytd": "10", "invoices": "2", "share_pct": None},
            {"customer_id": 1, "dealer_name": "Linda Flooring", "revenue": 20, "share_pct": "12.5"},
        ],
    })

    dealers = metrics_gateway.get_top_dealers(rpc, RANGE, limit=2, offset=4)

    assert dealers[0].dealer_name == "Dealer 5"
    assert dealers[0].revenue == 10
    assert dealers[0].share_pct is None
    assert dealers[1].share_pct == 12.5
    assert rpc.calls[0][1]["limit"] == 2
    assert rpc.calls[0][1]["offset"] == 4


def test_top_reps_placeholder():
    rpc = FakeRpcClient({"sales_org_top_reps": [{"rep_id": 3, "rep_name": None, "active_dealers": "4"}]})

    reps = metrics_gateway.get_top_reps(rpc, RANGE)

    assert reps[0].rep_name == "Rep 3"
    assert reps[0].active_customers == 4


def test_categories_and_collections_default_names():
    rpc = FakeRpcClient({
        "sales_category_totals": [{"category_key": None, "display_name": None, "total_sales": "5"}],
        "sales_org_top_collections": [{"collection": None, "revenue": "9", "share_pct": "1.5"}],
    })

    categories = metrics_gateway.get_category_totals(rpc, RANGE)
    collections = metrics_gateway.get_top_collections(rpc, RANGE, limit=3)

    assert categories[0].category_key == "uncategorized"
    assert categories[0].display_name == "Uncategorized"
    assert categories[0].total_sales == 5
    assert collections[0].collection == "Uncategorized"
    assert rpc.calls[-1] == (
        "sales_org_top_collections",
        {"from_date": "2025-01-01", "to_date": "2025-10-01", "top_n": 3},
    )


def test_rep_kpis_zeroed_when_procedure_returns_nothing():
    kpis = metrics_gateway.get_rep_kpis(FakeRpcClient(), 7, RANGE)
    assert kpis.rep_id == 7
    assert kpis.total_revenue == 0
    assert kpis.top_dealer_id is None


def test_rep_procedures_use_rep_parameters():
    rpc = FakeRpcClient({
        "sales_rep_kpis": [{"total_revenue": "250.5", "invoice_count": "3", "top_dealer_id": "1"}],
        "sales_rep_dealers": [{"customer_id": 1, "dealer_name": None, "invoices": "3", "revenue": "250.5"}],
        "sales_dealer_monthly": [{"month_label": "2025-01", "month_revenue": "250.5", "invoice_count": 3}],
    })

    kpis = metrics_gateway.get_rep_kpis(rpc, 7, RANGE)
    dealers = metrics_gateway.get_rep_dealers(rpc, 7, RANGE)
    monthly = metrics_gateway.get_dealer_monthly(rpc, 7, 1, RANGE)

    assert kpis.total_revenue == 250.5
    assert kpis.invoice_count == 3
    assert kpis.top_dealer_id == 1
    assert dealers[0].dealer_name == "Dealer 1"
    assert monthly[0].month_revenue == 250.5
    assert rpc.calls[1][1] == {"p_rep_id": 7, "p_from": "2025-01-01", "p_to": "2025-10-01", "p_limit": 100, "p_offset": 0}
    assert rpc.calls[2][1]["p_customer_id"] == 1


def test_future_opportunities_boolean_coercion():
    rpc = FakeRpcClient({
        "list_future_sale_opps_open": [
            {"id": "4", "project": "Lobby", "sku": "OAK-1", "qty": "120", "stock_confirmed": "t", "dealer_id": 1},
            {"id": 5, "project_name": "Condo", "ops_stock_confirmed": "0", "rep_id": 2},
        ],
    })

    opportunities = metrics_gateway.get_open_future_opportunities(rpc, RANGE)

    assert opportunities[0].id == 4
    assert opportunities[0].project_name == "Lobby"
    assert opportunities[0].expected_qty == 120
    assert opportunities[0].ops_stock_confirmed is True
    assert opportunities[0].dealer == "Dealer 1"
    assert opportunities[1].ops_stock_confirmed is False
    assert opportunities[1].rep == "Rep 2"
    assert opportunities[1].status == "open"


def test_collection_by_dealer_reads_alternate_columns():
    rpc = FakeRpcClient({
        "sales_ops_collections_by_dealer": [
            {"dealer_name": "Linda Flooring", "dealer_id": "1", "gross_revenue": "1200.50", "average_price": "3.1",
             "cogs": "2", "margin_pct": "35.5", "profit": "420", "preferred_color": " Sand ", "buying_power_pct": None},
            {"customer_id": 4, "revenue": 80},
        ],
    })

    rows = metrics_gateway.get_collection_by_dealer(rpc, "Oak Classic", RANGE)

    assert rows[0].dealer == "Linda Flooring"
    assert rows[0].revenue == 1200.50
    assert rows[0].avg_price == 3.1
    assert rows[0].avg_cogs == 2
    assert rows[0].gross_margin == 35.5
    assert rows[0].gross_profit == 420
    assert rows[0].preferred_color == "Sand"
    assert rows[0].buying_power_pct is None
    assert rows[1].dealer == "Dealer 4"
    assert rows[1].dealer_id == 4
    assert rpc.calls == [(
        "sales_ops_collections_by_dealer",
        {"p_collection": "Oak Classic", "from_date": "2025-01-01", "to_date": "2025-10-01"},
    )]


def test_colors_are_trimmed_and_deduplicated():
    rpc = FakeRpcClient({
        "get_colors_by_collection_v2": [{"color": " Sand "}, {"color_name": "Sand"}, {"color": ""}, {"color_name": "Ash"}],
    })

    colors = metrics_gateway.get_colors_by_collection(rpc, " Oak Classic ")

    assert [color.name for color in colors] == ["Sand", "Ash"]
    assert rpc.calls == [("get_colors_by_collection_v2", {"collection_key": "Oak Classic"})]


def test_collection_without_colors_is_an_error():
    with pytest.raises(LookupError, match='No colors found for collection "Oak"'):
        metrics_gateway.get_colors_by_collection(FakeRpcClient(), "Oak")


def test_dealer_month_details_and_lists():
    rpc = FakeRpcClient({
        "dealer_activity_month_details": [{
            "month_date": "2025-06-01", "active_dealers": "42", "total_dealers": 60, "active_pct": "70",
            "total_revenue": "51000.5", "prior_month_date": "2025-05-01", "prior_active_dealers": 40,
            "revenue_change_pct": None, "revenue_trend": "up",
        }],
        "reactivated_dealers_by_month": [{"customer_id": 9, "dealer_name": None, "days_inactive": "120",
                                          "current_month_revenue": "880.25", "current_month_orders": "2"}],
        "inactive_dealers_by_month": [{"customer_id": 3, "dealer_name": "Tile Town", "rep_name": "Ana Torres",
                                       "total_revenue": "0", "order_count": None}],
    })

    summary = metrics_gateway.get_dealer_month_details(rpc, "2025-06-15")
    reactivated = metrics_gateway.get_reactivated_dealers(rpc, "2025-06-15")
    active = metrics_gateway.get_active_dealers(rpc, "2025-06-15")
    inactive = metrics_gateway.get_inactive_dealers(rpc, "2025-06-15")

    assert summary.active_dealers == 42
    assert summary.total_revenue == 51000.5
    assert summary.prior_total_dealers == 0
    assert summary.revenue_change_pct is None
    assert summary.revenue_trend == "up"
    assert reactivated[0].dealer_name == "Dealer 9"
    assert reactivated[0].rep_name == "Unknown"
    assert reactivated[0].days_inactive == 120
    assert reactivated[0].current_month_orders == 2
    assert active == []
    assert inactive[0].order_count == 0
    assert all(params == {"p_target_month": "2025-06-15"} for _, params in rpc.calls)


def test_missing_month_details_is_an_error():
    with pytest.raises(LookupError):
        metrics_gateway.get_dealer_month_details(FakeRpcClient(), "2025-06-01")

def test_procedure_errors_propagate():
    rpc = FakeRpcClient({"sales_org_top_reps": RuntimeError("function does not exist")})

    with pytest.raises(RuntimeError, match="function does not exist"):
        metrics_gateway.get_top_reps(rpc, RANGE)
