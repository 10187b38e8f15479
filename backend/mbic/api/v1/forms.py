"""
Sales-ops form submissions and the catalog lookups behind their pickers
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from mbic.api.rate_limit import limiter
from mbic.config import settings
from mbic.database import get_db
from mbic.dependencies import get_rpc
from mbic.schemas.forms import FormSubmissionResponse, FutureSalePayload, LossOpportunityPayload
from mbic.services import catalog_service, metrics_gateway
from mbic.services.forms_service import (
    insert_future_sale,
    insert_loss_opportunity,
    normalize_future_sale,
    normalize_loss_opportunity,
)
from mbic.services.rpc_client import RpcClient
from mbic.utils.safe import SafeResult, safe_call

router = APIRouter(tags=["forms"])


def _invalid(errors) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=FormSubmissionResponse(ok=False, errors=errors).model_dump(),
    )


def _submitted(result: SafeResult):
    if not result.ok:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=FormSubmissionResponse(ok=False, error=result.error).model_dump(),
        )
    return FormSubmissionResponse(ok=True, id=result.data["id"])


@router.post("/future-sale", response_model=FormSubmissionResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.FORMS_RATE_LIMIT)
async def submit_future_sale(request: Request, payload: FutureSalePayload, db: Session = Depends(get_db)):
    normalized, errors = normalize_future_sale(payload)
    if errors:
        return _invalid(errors)
    result = await safe_call("insert future sale", insert_future_sale, db, normalized, fallback=None)
    return _submitted(result)


@router.post("/loss-opportunity", response_model=FormSubmissionResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.FORMS_RATE_LIMIT)
async def submit_loss_opportunity(request: Request, payload: LossOpportunityPayload, db: Session = Depends(get_db)):
    normalized, errors = normalize_loss_opportunity(payload)
    if errors:
        return _invalid(errors)
    result = await safe_call("insert loss opportunity", insert_loss_opportunity, db, normalized, fallback=None)
    return _submitted(result)


def _catalog(result: SafeResult):
    if not result.ok:
        return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content=result.model_dump())
    return result


def _required(value: Optional[str], message: str) -> str:
    if value is None or not value.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=message,
        )
    return value.strip()


@router.get("/catalog/sales-reps", response_model=SafeResult)
async def catalog_sales_reps(db: Session = Depends(get_db)):
    return _catalog(await safe_call("catalog sales reps", catalog_service.get_rep_options, db, fallback=[]))


@router.get("/catalog/dealers", response_model=SafeResult)
async def catalog_dealers(
    rep_id: Optional[int] = Query(None, alias="repId"),
    db: Session = Depends(get_db),
):
    if rep_id is None or rep_id <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="repId is required",
        )
    return _catalog(await safe_call("catalog dealers", catalog_service.get_dealers_by_rep, db, rep_id, fallback=[]))


@router.get("/catalog/categories", response_model=SafeResult)
async def catalog_categories(db: Session = Depends(get_db)):
    return _catalog(await safe_call("catalog categories", catalog_service.get_categories, db, fallback=[]))


@router.get("/catalog/collections", response_model=SafeResult)
async def catalog_collections(
    category: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    category_key = _required(category, "category is required")
    return _catalog(await safe_call(
        "catalog collections", catalog_service.get_collections_by_category, db, category_key, fallback=[]
    ))


@router.get("/catalog/colors", response_model=SafeResult)
async def catalog_colors(
    collection: Optional[str] = Query(None),
    rpc: RpcClient = Depends(get_rpc),
):
    collection_key = _required(collection, "collection is required")
    return _catalog(await safe_call(
        "catalog colors", metrics_gateway.get_colors_by_collection, rpc, collection_key, fallback=[]
    ))
