"""
Remote Aggregation Gateway

One function per dashboard metric. Each calls a single stored procedure,
passes the date window as named arguments and maps every returned row through
the coercion helpers. Failures from the RPC client propagate untouched;
fallback values are the caller's business (see mbic.utils.safe).
"""
from typing import Any, Dict, List

from mbic.schemas.sales import DateRange
from mbic.schemas.metrics import (
    OrgKpis,
    MonthlyPoint,
    DealerRow,
    RepRow,
    CategoryRow,
    CollectionRow,
    DealerEngagementRow,
    RepKpis,
    RepMonthlyRow,
    RepDealerRow,
    DealerMonthlyRow,
    FutureOpportunityRow,
    CollectionDealerRow,
    DealerActivitySummary,
    ReactivatedDealerRow,
    DealerActivityRow,
)
from mbic.schemas.catalog import ColorOption
from mbic.services.rpc_client import RpcClient
from mbic.utils.coercion import (
    coerce_number,
    coerce_int,
    coerce_optional_number,
    coerce_boolean,
    coerce_display_name,
    coerce_text,
    coerce_optional_text,
    pick_value,
)

UNCATEGORIZED = "Uncategorized"

RawRow = Dict[str, Any]


def _window(date_range: DateRange) -> Dict[str, str]:
    return {"from_date": date_range.from_, "to_date": date_range.to}


def _rep_window(date_range: DateRange) -> Dict[str, str]:
    return {"p_from": date_range.from_, "p_to": date_range.to}


# ─────────────────────────────────────────────────
# ORGANIZATION
# ─────────────────────────────────────────────────


def get_org_kpis(rpc: RpcClient, date_range: DateRange) -> OrgKpis:
    rows = rpc.call("sales_org_kpis_v2", _window(date_range))
    row: RawRow = rows[0] if rows else {}
    top_dealer = row.get("top_dealer")
    return OrgKpis(
        revenue=coerce_number(pick_value(row, ["revenue", "revenue_ytd"]), 0),
        unique_dealers=coerce_number(pick_value(row, ["unique_dealers", "active_dealers"]), 0),
        avg_invoice=coerce_number(row.get("avg_invoice"), 0),
        top_dealer=top_dealer if isinstance(top_dealer, str) else None,
        top_dealer_revenue=coerce_number(row.get("top_dealer_revenue"), 0),
        growth_rate=coerce_optional_number(row.get("growth_rate")),
    )


def get_org_monthly(rpc: RpcClient, date_range: DateRange) -> List[MonthlyPoint]:
    rows = rpc.call("sales_org_monthly_v2", _window(date_range))
    return [
        MonthlyPoint(
            month=coerce_text(pick_value(row, ["month", "month_label"]), ""),
            total=coerce_number(pick_value(row, ["month_total", "total"]), 0),
        )
        for row in rows
    ]


def _dealer_row(row: RawRow) -> DealerRow:
    customer_id = coerce_int(row.get("customer_id"), 0)
    share = row.get("share_pct")
    return DealerRow(
        customer_id=customer_id,
        dealer_name=coerce_display_name(row.get("dealer_name"), f"Dealer {customer_id}"),
        revenue=coerce_number(pick_value(row, ["revenue", "revenue_ytd"]), 0),
        monthly_avg=coerce_number(row.get("monthly_avg"), 0),
        invoices=coerce_number(row.get("invoices"), 0),
        share_pct=None if share is None else coerce_number(share, 0),
        rep_initials=coerce_optional_text(row.get("rep_initials")),
    )


def get_top_dealers(rpc: RpcClient, date_range: DateRange, limit: int = 10, offset: int = 0) -> List[DealerRow]:
    rows = rpc.call("sales_org_top_dealers", {**_window(date_range), "limit": limit, "offset": offset})
    return [_dealer_row(row) for row in rows]


def _rep_row(row: RawRow) -> RepRow:
    rep_id = coerce_int(row.get("rep_id"), 0)
    active_pct = row.get("active_pct")
    return RepRow(
        rep_id=rep_id,
        rep_name=coerce_display_name(row.get("rep_name"), f"Rep {rep_id}"),
        revenue=coerce_number(pick_value(row, ["revenue", "revenue_ytd"]), 0),
        monthly_avg=coerce_number(row.get("monthly_avg"), 0),
        invoices=coerce_number(row.get("invoices"), 0),
        active_customers=coerce_number(pick_value(row, ["active_customers", "active_dealers"]), 0),
        total_customers=coerce_number(row.get("total_customers"), 0),
        active_pct=None if active_pct is None else coerce_number(active_pct, 0),
    )


def get_top_reps(rpc: RpcClient, date_range: DateRange, limit: int = 10, offset: int = 0) -> List[RepRow]:
    rows = rpc.call("sales_org_top_reps", {**_window(date_range), "limit": limit, "offset": offset})
    return [_rep_row(row) for row in rows]


def get_category_totals(rpc: RpcClient, date_range: DateRange) -> List[CategoryRow]:
    rows = rpc.call("sales_category_totals", _window(date_range))
    result = []
    for row in rows:
        key = row.get("category_key")
        key = key if isinstance(key, str) and key else "uncategorized"
        result.append(CategoryRow(
            category_key=key,
            display_name=coerce_display_name(pick_value(row, ["display_name", "category_key"]), UNCATEGORIZED),
            icon_url=row.get("icon_url") if isinstance(row.get("icon_url"), str) else None,
            total_sales=coerce_number(row.get("total_sales"), 0),
            share_pct=coerce_number(row.get("share_pct"), 0),
        ))
    return result


def get_top_collections(rpc: RpcClient, date_range: DateRange, limit: int = 6) -> List[CollectionRow]:
    rows = rpc.call("sales_org_top_collections", {**_window(date_range), "top_n": limit})
    return [
        CollectionRow(
            collection=coerce_display_name(row.get("collection"), UNCATEGORIZED),
            revenue=coerce_number(row.get("revenue"), 0),
            share_pct=coerce_number(row.get("share_pct"), 0),
        )
        for row in rows
    ]


def get_dealer_engagement(rpc: RpcClient, date_range: DateRange) -> List[DealerEngagementRow]:
    rows = rpc.call("sales_org_dealer_engagement_trailing_v3", _window(date_range))
    return [
        DealerEngagementRow(
            month=coerce_text(row.get("month"), ""),
            active_cnt=coerce_number(row.get("active_cnt"), 0),
            inactive_cnt=coerce_number(row.get("inactive_cnt"), 0),
            total_assigned=coerce_number(row.get("total_assigned"), 0),
            active_pct=coerce_number(row.get("active_pct"), 0),
        )
        for row in rows
    ]


# ─────────────────────────────────────────────────
# SALES REP DRILL-DOWN
# ─────────────────────────────────────────────────


def get_rep_kpis(rpc: RpcClient, rep_id: int, date_range: DateRange) -> RepKpis:
    rows = rpc.call("sales_rep_kpis", {"p_rep_id": rep_id, **_rep_window(date_range)})
    if not rows:
        return RepKpis(rep_id=rep_id)
    row = rows[0]
    return RepKpis(
        rep_id=rep_id,
        total_revenue=coerce_number(row.get("total_revenue"), 0),
        invoice_count=coerce_int(row.get("invoice_count"), 0),
        avg_invoice=coerce_number(row.get("avg_invoice"), 0),
        unique_customers=coerce_int(row.get("unique_customers"), 0),
        top_dealer_id=None if row.get("top_dealer_id") is None else coerce_int(row.get("top_dealer_id"), 0),
        top_dealer_name=coerce_optional_text(row.get("top_dealer_name")),
        top_dealer_revenue=coerce_optional_number(row.get("top_dealer_revenue")),
    )


def get_rep_monthly(rpc: RpcClient, rep_id: int, date_range: DateRange) -> List[RepMonthlyRow]:
    rows = rpc.call("sales_rep_monthly", {"p_rep_id": rep_id, **_rep_window(date_range)})
    return [
        RepMonthlyRow(
            month_label=coerce_text(row.get("month_label"), ""),
            month_revenue=coerce_number(row.get("month_revenue"), 0),
            invoice_count=coerce_int(row.get("invoice_count"), 0),
        )
        for row in rows
    ]


def get_rep_dealers(
    rpc: RpcClient,
    rep_id: int,
    date_range: DateRange,
    limit: int = 100,
    offset: int = 0,
) -> List[RepDealerRow]:
    rows = rpc.call("sales_rep_dealers", {
        "p_rep_id": rep_id,
        **_rep_window(date_range),
        "p_limit": limit,
        "p_offset": offset,
    })
    result = []
    for row in rows:
        customer_id = coerce_int(row.get("customer_id"), 0)
        result.append(RepDealerRow(
            customer_id=customer_id,
            dealer_name=coerce_display_name(row.get("dealer_name"), f"Dealer {customer_id}"),
            invoices=coerce_int(row.get("invoices"), 0),
            revenue=coerce_number(row.get("revenue"), 0),
            avg_invoice=coerce_number(row.get("avg_invoice"), 0),
        ))
    return result


def get_dealer_monthly(rpc: RpcClient, rep_id: int, dealer_id: int, date_range: DateRange) -> List[DealerMonthlyRow]:
    rows = rpc.call("sales_dealer_monthly", {
        "p_rep_id": rep_id,
        "p_customer_id": dealer_id,
        **_rep_window(date_range),
    })
    return [
        DealerMonthlyRow(
            month_label=coerce_text(row.get("month_label"), ""),
            month_revenue=coerce_number(row.get("month_revenue"), 0),
            invoice_count=coerce_int(row.get("invoice_count"), 0),
        )
        for row in rows
    ]


# ─────────────────────────────────────────────────
# SALES OPS
# ─────────────────────────────────────────────────


def _future_opportunity_row(row: RawRow) -> FutureOpportunityRow:
    dealer_id = coerce_int(row.get("dealer_id"), 0)
    rep_id = coerce_int(row.get("rep_id"), 0)
    return FutureOpportunityRow(
        id=coerce_int(row.get("id"), 0),
        project_name=coerce_text(pick_value(row, ["project_name", "project"]), ""),
        expected_sku=coerce_text(pick_value(row, ["expected_sku", "sku"]), ""),
        expected_qty=coerce_number(pick_value(row, ["expected_qty", "qty", "quantity"]), 0),
        potential_amount=coerce_number(row.get("potential_amount"), 0),
        probability_pct=coerce_number(row.get("probability_pct"), 0),
        expected_close_date=coerce_optional_text(pick_value(row, ["expected_close_date", "close_date"])),
        dealer=coerce_display_name(pick_value(row, ["dealer", "dealer_name"]), f"Dealer {dealer_id}"),
        dealer_id=dealer_id,
        rep=coerce_display_name(pick_value(row, ["rep", "rep_name"]), f"Rep {rep_id}"),
        rep_id=rep_id,
        status=coerce_text(row.get("status"), "open"),
        ops_stock_confirmed=coerce_boolean(
            pick_value(row, ["ops_stock_confirmed", "stock_confirmed", "is_confirmed"]), False
        ),
        ops_confirmed_at=coerce_optional_text(row.get("ops_confirmed_at")),
    )


def get_open_future_opportunities(rpc: RpcClient, date_range: DateRange) -> List[FutureOpportunityRow]:
    rows = rpc.call("list_future_sale_opps_open", _window(date_range))
    return [_future_opportunity_row(row) for row in rows]


def get_collection_by_dealer(rpc: RpcClient, collection: str, date_range: DateRange) -> List[CollectionDealerRow]:
    rows = rpc.call("sales_ops_collections_by_dealer", {"p_collection": collection, **_window(date_range)})
    result = []
    for row in rows:
        dealer_id = coerce_int(pick_value(row, ["dealer_id", "customer_id"]), 0)
        buying_power = pick_value(row, ["buying_power_pct"])
        result.append(CollectionDealerRow(
            dealer=coerce_display_name(pick_value(row, ["dealer", "dealer_name"]), f"Dealer {dealer_id}"),
            dealer_id=dealer_id,
            revenue=coerce_number(pick_value(row, ["revenue", "gross_revenue"]), 0),
            avg_price=coerce_number(pick_value(row, ["avg_price", "average_price"]), 0),
            avg_cogs=coerce_number(pick_value(row, ["avg_cogs", "average_cogs", "cogs"]), 0),
            gross_margin=coerce_number(pick_value(row, ["gross_margin", "margin_pct", "margin_percent"]), 0),
            gross_profit=coerce_number(pick_value(row, ["gross_profit", "profit"]), 0),
            preferred_color=coerce_optional_text(row.get("preferred_color")),
            buying_power_pct=None if buying_power is None else coerce_number(buying_power, 0),
        ))
    return result


def get_colors_by_collection(rpc: RpcClient, collection_key: str) -> List[ColorOption]:
    """Trimmed, de-duplicated colors; an empty list is an error."""
    normalized = collection_key.strip()
    rows = rpc.call("get_colors_by_collection_v2", {"collection_key": normalized})
    seen = set()
    colors: List[ColorOption] = []
    for row in rows:
        name = coerce_optional_text(pick_value(row, ["color", "color_name"]))
        if not name or name in seen:
            continue
        seen.add(name)
        colors.append(ColorOption(name=name))
    if not colors:
        raise LookupError(f'No colors found for collection "{normalized}"')
    return colors


# ─────────────────────────────────────────────────
# DEALER ACTIVITY
# ─────────────────────────────────────────────────


def get_dealer_month_details(rpc: RpcClient, target_month: str) -> DealerActivitySummary:
    rows = rpc.call("dealer_activity_month_details", {"p_target_month": target_month})
    if not rows:
        raise LookupError(f"No dealer activity recorded for {target_month}")
    row = rows[0]
    return DealerActivitySummary(
        month_date=coerce_text(row.get("month_date"), target_month),
        active_dealers=coerce_int(row.get("active_dealers"), 0),
        total_dealers=coerce_int(row.get("total_dealers"), 0),
        active_pct=coerce_number(row.get("active_pct"), 0),
        total_revenue=coerce_number(row.get("total_revenue"), 0),
        prior_month_date=coerce_optional_text(row.get("prior_month_date")),
        prior_active_dealers=coerce_int(row.get("prior_active_dealers"), 0),
        prior_total_dealers=coerce_int(row.get("prior_total_dealers"), 0),
        prior_active_pct=coerce_number(row.get("prior_active_pct"), 0),
        prior_total_revenue=coerce_number(row.get("prior_total_revenue"), 0),
        revenue_change_pct=coerce_optional_number(row.get("revenue_change_pct")),
        engagement_change_pct=coerce_optional_number(row.get("engagement_change_pct")),
        revenue_trend=coerce_optional_text(row.get("revenue_trend")),
        engagement_trend=coerce_optional_text(row.get("engagement_trend")),
    )


def get_reactivated_dealers(rpc: RpcClient, target_month: str) -> List[ReactivatedDealerRow]:
    rows = rpc.call("reactivated_dealers_by_month", {"p_target_month": target_month})
    result = []
    for row in rows:
        customer_id = coerce_int(row.get("customer_id"), 0)
        result.append(ReactivatedDealerRow(
            customer_id=customer_id,
            dealer_name=coerce_display_name(row.get("dealer_name"), f"Dealer {customer_id}"),
            rep_name=coerce_display_name(row.get("rep_name"), "Unknown"),
            last_purchase_date=coerce_optional_text(row.get("last_purchase_date")),
            days_inactive=coerce_int(row.get("days_inactive"), 0),
            reactivation_period=coerce_optional_text(row.get("reactivation_period")),
            current_month_revenue=coerce_number(row.get("current_month_revenue"), 0),
            current_month_orders=coerce_int(row.get("current_month_orders"), 0),
        ))
    return result


def _dealer_activity_rows(rows: List[RawRow]) -> List[DealerActivityRow]:
    result = []
    for row in rows:
        customer_id = coerce_int(row.get("customer_id"), 0)
        result.append(DealerActivityRow(
            customer_id=customer_id,
            dealer_name=coerce_display_name(row.get("dealer_name"), f"Dealer {customer_id}"),
            rep_name=coerce_display_name(row.get("rep_name"), "Unknown"),
            total_revenue=coerce_number(row.get("total_revenue"), 0),
            order_count=coerce_int(row.get("order_count"), 0),
        ))
    return result


def get_active_dealers(rpc: RpcClient, target_month: str) -> List[DealerActivityRow]:
    return _dealer_activity_rows(rpc.call("active_dealers_by_month", {"p_target_month": target_month}))


def get_inactive_dealers(rpc: RpcClient, target_month: str) -> List[DealerActivityRow]:
    return _dealer_activity_rows(rpc.call("inactive_dealers_by_month", {"p_target_month": target_month}))
