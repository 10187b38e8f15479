"""
Dashboard page payloads. Every panel is wrapped in a SafeResult so one
failing procedure leaves the rest of the page intact.
"""
from typing import List, Optional
from pydantic import BaseModel

from mbic.schemas.metrics import DealerActivitySummary
from mbic.schemas.sales import SalesRepOption
from mbic.utils.safe import SafeResult


class DashboardOverview(BaseModel):
    range_from: str
    range_to: str
    kpis: SafeResult
    monthly: SafeResult
    top_dealers: SafeResult
    top_reps: SafeResult
    categories: SafeResult
    collections: SafeResult
    dealer_engagement: SafeResult


class ReconciliationReport(BaseModel):
    account_name: str
    severity: str
    grand_total: float
    ok: bool
    issues: List[str]


class RepPerformance(BaseModel):
    range_from: str
    range_to: str
    rep: SalesRepOption
    reps: List[SalesRepOption]
    kpis: SafeResult
    monthly: SafeResult
    dealers: SafeResult
    selected_dealer_id: Optional[int] = None
    dealer_monthly: SafeResult
    reconciliation: Optional[ReconciliationReport] = None


class FutureSalesBoard(BaseModel):
    range_from: str
    range_to: str
    opportunities: SafeResult


class DealerMonthDetails(BaseModel):
    """Dealer engagement for one month; the dealer lists degrade to [] independently."""
    target_month: str
    summary: DealerActivitySummary
    reactivated: SafeResult
    active: SafeResult
    inactive: SafeResult


class CollectionDealers(BaseModel):
    range_from: str
    range_to: str
    collection: str
    dealers: SafeResult
