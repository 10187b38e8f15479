"""
Sales-ops endpoints: open future sales, opportunity detail/edit and stock confirmation
"""
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from mbic.database import get_db
from mbic.dependencies import get_date_range, get_rpc
from mbic.models.opportunity import FutureSaleOpportunity
from mbic.schemas.dashboard import FutureSalesBoard
from mbic.schemas.forms import FutureSaleDetail, FutureSaleUpdate, StockConfirmationResponse
from mbic.schemas.sales import DateRange
from mbic.services import metrics_gateway
from mbic.services.forms_service import (
    confirm_future_sale_stock,
    delete_future_sale,
    describe_future_sale,
    get_future_sale,
    update_future_sale,
    validate_future_sale_update,
)
from mbic.services.rpc_client import RpcClient
from mbic.utils.safe import safe_call

router = APIRouter(tags=["ops"])


def _require_future_sale(db: Session, opportunity_id: int) -> FutureSaleOpportunity:
    opportunity = get_future_sale(db, opportunity_id)
    if opportunity is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Future sale opportunity not found",
        )
    return opportunity


@router.get("/future-sales", response_model=FutureSalesBoard)
async def list_future_sales(
    date_range: DateRange = Depends(get_date_range),
    rpc: RpcClient = Depends(get_rpc),
):
    opportunities = await safe_call(
        "open future sales", metrics_gateway.get_open_future_opportunities, rpc, date_range, fallback=[]
    )
    return FutureSalesBoard(range_from=date_range.from_, range_to=date_range.to, opportunities=opportunities)


@router.get("/future-sales/{opportunity_id}", response_model=FutureSaleDetail)
async def get_future_sale_detail(opportunity_id: int, db: Session = Depends(get_db)):
    opportunity = _require_future_sale(db, opportunity_id)
    return describe_future_sale(db, opportunity)


@router.patch("/future-sales/{opportunity_id}", response_model=FutureSaleDetail)
async def edit_future_sale(opportunity_id: int, changes: FutureSaleUpdate, db: Session = Depends(get_db)):
    """Update status, notes, quantities, dates or the stock flag of an opportunity"""
    errors = validate_future_sale_update(changes)
    if errors:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=errors,
        )
    opportunity = _require_future_sale(db, opportunity_id)
    opportunity = update_future_sale(db, opportunity, changes)
    return describe_future_sale(db, opportunity)


@router.delete("/future-sales/{opportunity_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_future_sale(opportunity_id: int, db: Session = Depends(get_db)):
    opportunity = _require_future_sale(db, opportunity_id)
    delete_future_sale(db, opportunity)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/future-sales/{opportunity_id}/confirm-stock", response_model=StockConfirmationResponse)
async def confirm_stock(opportunity_id: int, db: Session = Depends(get_db)):
    """Mark stock as confirmed by operations for an open future sale"""
    opportunity = _require_future_sale(db, opportunity_id)
    if opportunity.ops_stock_confirmed:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Stock already confirmed",
        )
    return confirm_future_sale_stock(db, opportunity)
