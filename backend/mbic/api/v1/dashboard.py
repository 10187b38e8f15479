"""
Organization dashboard endpoints
"""
import asyncio

from fastapi import APIRouter, Depends

from mbic.dependencies import get_date_range, get_rpc
from mbic.schemas.dashboard import DashboardOverview
from mbic.schemas.metrics import OrgKpis
from mbic.schemas.sales import DateRange
from mbic.services import metrics_gateway
from mbic.services.rpc_client import RpcClient
from mbic.utils.safe import safe_call

router = APIRouter(tags=["dashboard"])


@router.get("/overview", response_model=DashboardOverview)
async def get_overview(
    date_range: DateRange = Depends(get_date_range),
    rpc: RpcClient = Depends(get_rpc),
):
    """
    Organization KPIs, monthly trend, leaderboards and engagement for one window
    """
    kpis, monthly, dealers, reps, categories, collections, engagement = await asyncio.gather(
        safe_call("org kpis", metrics_gateway.get_org_kpis, rpc, date_range, fallback=OrgKpis()),
        safe_call("org monthly", metrics_gateway.get_org_monthly, rpc, date_range, fallback=[]),
        safe_call("top dealers", metrics_gateway.get_top_dealers, rpc, date_range, fallback=[]),
        safe_call("top reps", metrics_gateway.get_top_reps, rpc, date_range, fallback=[]),
        safe_call("category totals", metrics_gateway.get_category_totals, rpc, date_range, fallback=[]),
        safe_call("top collections", metrics_gateway.get_top_collections, rpc, date_range, fallback=[]),
        safe_call("dealer engagement", metrics_gateway.get_dealer_engagement, rpc, date_range, fallback=[]),
    )

    return DashboardOverview(
        range_from=date_range.from_,
        range_to=date_range.to,
        kpis=kpis,
        monthly=monthly,
        top_dealers=dealers,
        top_reps=reps,
        categories=categories,
        collections=collections,
        dealer_engagement=engagement,
    )
