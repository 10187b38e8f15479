"""
Dealer drill-downs: collection snapshot, monthly engagement and dealers per collection
"""
import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from mbic.database import get_db
from mbic.dependencies import get_date_range, get_rpc
from mbic.schemas.dashboard import CollectionDealers, DealerMonthDetails
from mbic.schemas.sales import DateRange, DealerSnapshot
from mbic.services import metrics_gateway
from mbic.services.forms_service import ensure_iso_date
from mbic.services.rpc_client import RpcClient
from mbic.services.sales_service import fetch_dealer_snapshot
from mbic.utils.safe import safe_call

logger = logging.getLogger(__name__)

router = APIRouter(tags=["dealers"])


def _required_text(value: Optional[str], name: str) -> str:
    if value is None or not value.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{name} is required",
        )
    return value.strip()


@router.get("/month-details", response_model=DealerMonthDetails)
async def get_month_details(
    target_month: Optional[str] = Query(None, description="Any day of the month (YYYY-MM-DD)"),
    rpc: RpcClient = Depends(get_rpc),
):
    """Active/total dealers vs. the prior month, plus reactivated, active and inactive dealer lists"""
    month = ensure_iso_date(_required_text(target_month, "target_month"))
    if month is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="target_month must be formatted as YYYY-MM-DD",
        )

    summary, reactivated, active, inactive = await asyncio.gather(
        safe_call("dealer month details", metrics_gateway.get_dealer_month_details, rpc, month, fallback=None),
        safe_call("reactivated dealers", metrics_gateway.get_reactivated_dealers, rpc, month, fallback=[]),
        safe_call("active dealers", metrics_gateway.get_active_dealers, rpc, month, fallback=[]),
        safe_call("inactive dealers", metrics_gateway.get_inactive_dealers, rpc, month, fallback=[]),
    )
    if not summary.ok:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=summary.error,
        )

    return DealerMonthDetails(
        target_month=month,
        summary=summary.data,
        reactivated=reactivated,
        active=active,
        inactive=inactive,
    )


@router.get("/by-collection", response_model=CollectionDealers)
async def get_collection_dealers(
    collection: Optional[str] = Query(None),
    date_range: DateRange = Depends(get_date_range),
    rpc: RpcClient = Depends(get_rpc),
):
    """Dealer revenue, margin and profit for one collection"""
    name = _required_text(collection, "collection")
    dealers = await safe_call(
        "collection by dealer", metrics_gateway.get_collection_by_dealer, rpc, name, date_range, fallback=[]
    )
    return CollectionDealers(range_from=date_range.from_, range_to=date_range.to, collection=name, dealers=dealers)


@router.get("/{dealer_id}/snapshot", response_model=DealerSnapshot)
async def get_dealer_snapshot(
    dealer_id: int,
    collection: Optional[str] = Query(None),
    date_range: DateRange = Depends(get_date_range),
    db: Session = Depends(get_db),
):
    """Share of one dealer's revenue that came from a collection"""
    name = _required_text(collection, "collection")
    snapshot = fetch_dealer_snapshot(db, dealer_id, name, date_range.from_, date_range.to)
    if snapshot is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Dealer not found",
        )
    logger.debug("Dealer %s snapshot for %s: %d invoices", dealer_id, name, snapshot.invoice_count)
    return snapshot
