"""
Metric Schemas - typed rows returned by the stored-procedure gateway
"""
from typing import Optional, List
from pydantic import BaseModel


class OrgKpis(BaseModel):
    revenue: float = 0
    unique_dealers: float = 0
    avg_invoice: float = 0
    top_dealer: Optional[str] = None
    top_dealer_revenue: float = 0
    growth_rate: Optional[float] = None  # percent vs. the prior window


class MonthlyPoint(BaseModel):
    month: str
    total: float


class DealerRow(BaseModel):
    customer_id: int
    dealer_name: str
    revenue: float
    monthly_avg: float
    invoices: float
    share_pct: Optional[float] = None
    rep_initials: Optional[str] = None


class RepRow(BaseModel):
    rep_id: int
    rep_name: str
    revenue: float
    monthly_avg: float
    invoices: float
    active_customers: float
    total_customers: float
    active_pct: Optional[float] = None


class CategoryRow(BaseModel):
    category_key: str
    display_name: str
    icon_url: Optional[str] = None
    total_sales: float
    share_pct: float


class CollectionRow(BaseModel):
    collection: str
    revenue: float
    share_pct: float


class DealerEngagementRow(BaseModel):
    month: str
    active_cnt: float
    inactive_cnt: float
    total_assigned: float
    active_pct: float


class RepKpis(BaseModel):
    rep_id: int
    total_revenue: float = 0
    invoice_count: int = 0
    avg_invoice: float = 0
    unique_customers: int = 0
    top_dealer_id: Optional[int] = None
    top_dealer_name: Optional[str] = None
    top_dealer_revenue: Optional[float] = None


class RepMonthlyRow(BaseModel):
    month_label: str
    month_revenue: float
    invoice_count: int


class RepDealerRow(BaseModel):
    customer_id: int
    dealer_name: str
    invoices: int
    revenue: float
    avg_invoice: float


class DealerMonthlyRow(BaseModel):
    month_label: str
    month_revenue: float
    invoice_count: int


class FutureOpportunityRow(BaseModel):
    id: int
    project_name: str
    expected_sku: str
    expected_qty: float
    potential_amount: float
    probability_pct: float
    expected_close_date: Optional[str] = None
    dealer: str
    dealer_id: int
    rep: str
    rep_id: int
    status: str
    ops_stock_confirmed: bool
    ops_confirmed_at: Optional[str] = None


class CollectionDealerRow(BaseModel):
    dealer: str
    dealer_id: int
    revenue: float
    avg_price: float
    avg_cogs: float
    gross_margin: float  # percent
    gross_profit: float
    preferred_color: Optional[str] = None
    buying_power_pct: Optional[float] = None


class DealerActivitySummary(BaseModel):
    month_date: str
    active_dealers: int = 0
    total_dealers: int = 0
    active_pct: float = 0
    total_revenue: float = 0
    prior_month_date: Optional[str] = None
    prior_active_dealers: int = 0
    prior_total_dealers: int = 0
    prior_active_pct: float = 0
    prior_total_revenue: float = 0
    revenue_change_pct: Optional[float] = None
    engagement_change_pct: Optional[float] = None
    revenue_trend: Optional[str] = None  # up, down, flat
    engagement_trend: Optional[str] = None


class ReactivatedDealerRow(BaseModel):
    customer_id: int
    dealer_name: str
    rep_name: str
    last_purchase_date: Optional[str] = None
    days_inactive: int = 0
    reactivation_period: Optional[str] = None
    current_month_revenue: float = 0
    current_month_orders: int = 0


class DealerActivityRow(BaseModel):
    customer_id: int
    dealer_name: str
    rep_name: str
    total_revenue: float = 0
    order_count: int = 0
