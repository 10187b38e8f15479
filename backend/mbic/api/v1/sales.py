"""
Sales rep endpoints: selector, local summary and the performance page
"""
import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from mbic.config import settings
from mbic.database import get_db
from mbic.dependencies import get_date_range, get_expectation, get_reconciliation_severity, get_rpc
from mbic.schemas.dashboard import RepPerformance, ReconciliationReport
from mbic.schemas.metrics import RepKpis
from mbic.schemas.sales import DateRange, RepSalesData, SalesRepList
from mbic.services import metrics_gateway
from mbic.services.reconciliation import (
    AccountExpectation,
    Severity,
    should_reconcile,
    snapshot_window,
    validate_account,
)
from mbic.services.rpc_client import RpcClient
from mbic.services.sales_service import (
    fetch_rep_sales_data,
    fetch_sales_range,
    fetch_sales_reps,
    get_sales_rep,
    select_rep,
)
from mbic.utils.safe import SafeResult, safe_call

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sales"])


@router.get("/reps", response_model=SalesRepList)
async def list_reps(db: Session = Depends(get_db)):
    """Sales reps ordered by name"""
    reps = fetch_sales_reps(db)
    return SalesRepList(reps=reps, total=len(reps))


@router.get("/reps/{rep_id}/summary", response_model=RepSalesData)
async def get_rep_summary(
    rep_id: int,
    date_range: DateRange = Depends(get_date_range),
    db: Session = Depends(get_db),
):
    """Invoice rows for one rep aggregated in-process (monthly, dealers, totals)"""
    if get_sales_rep(db, rep_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Sales rep not found",
        )
    return fetch_rep_sales_data(db, rep_id, date_range.from_, date_range.to)


@router.get("/performance", response_model=RepPerformance)
async def get_performance(
    rep: Optional[str] = Query(None, description="Rep name; defaults to the configured rep"),
    dealer: Optional[int] = Query(None, description="Dealer (customer) id; defaults to the rep's top dealer"),
    date_range: DateRange = Depends(get_date_range),
    db: Session = Depends(get_db),
    rpc: RpcClient = Depends(get_rpc),
    severity: Severity = Depends(get_reconciliation_severity),
    expectation: AccountExpectation = Depends(get_expectation),
):
    """
    Rep KPIs, monthly trend and dealer table, plus the selected dealer's trend.

    For the recorded reconciliation account the rep's raw invoices over the
    snapshot's own months are re-aggregated and checked against it; the
    page range does not narrow the check.
    """
    reps = fetch_sales_reps(db)
    selected = select_rep(reps, rep, settings.DEFAULT_REP_NAME)
    if selected is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No sales reps found",
        )

    kpis, monthly, dealers = await asyncio.gather(
        safe_call("rep kpis", metrics_gateway.get_rep_kpis, rpc, selected.rep_id, date_range,
                  fallback=RepKpis(rep_id=selected.rep_id)),
        safe_call("rep monthly", metrics_gateway.get_rep_monthly, rpc, selected.rep_id, date_range, fallback=[]),
        safe_call("rep dealers", metrics_gateway.get_rep_dealers, rpc, selected.rep_id, date_range, fallback=[]),
    )

    dealer_id = dealer
    if dealer_id is None and dealers.data:
        dealer_id = dealers.data[0].customer_id

    if dealer_id is not None:
        dealer_monthly = await safe_call(
            "dealer monthly", metrics_gateway.get_dealer_monthly, rpc, selected.rep_id, dealer_id, date_range,
            fallback=[],
        )
    else:
        dealer_monthly = SafeResult(data=[], count=0)

    reconciliation = None
    if should_reconcile(selected.rep_name, dealer_id, expectation):
        snapshot_from, snapshot_to = snapshot_window(expectation)
        rows = fetch_sales_range(
            db, snapshot_from, snapshot_to, customer_id=dealer_id, rep_id=selected.rep_id
        )
        result = validate_account(rows, expectation, severity)
        logger.info(
            "Reconciled %s over %d invoices: %d issue(s)", expectation.account_name, len(rows), len(result.issues),
            extra={"account": expectation.account_name, "snapshot_from": snapshot_from, "snapshot_to": snapshot_to},
        )
        reconciliation = ReconciliationReport(
            account_name=expectation.account_name,
            severity=severity.value,
            grand_total=result.grand,
            ok=result.ok,
            issues=result.issues,
        )

    return RepPerformance(
        range_from=date_range.from_,
        range_to=date_range.to,
        rep=selected,
        reps=reps,
        kpis=kpis,
        monthly=monthly,
        dealers=dealers,
        selected_dealer_id=dealer_id,
        dealer_monthly=dealer_monthly,
        reconciliation=reconciliation,
    )
