"""
Common Dependencies for FastAPI Routes
"""
from typing import Optional

from fastapi import HTTPException, Query, Request, status

from mbic.config import settings
from mbic.schemas.sales import DateRange
from mbic.services.reconciliation import (
    AccountExpectation,
    Severity,
    load_expectation,
    resolve_severity,
)
from mbic.services.rpc_client import RpcClient, get_rpc_client
from mbic.services.forms_service import ensure_iso_date


def get_rpc() -> RpcClient:
    """Stored-procedure client for the current process"""
    return get_rpc_client()


def get_date_range(
    from_: Optional[str] = Query(None, alias="from", description="Inclusive start (YYYY-MM-DD)"),
    to: Optional[str] = Query(None, description="Exclusive end (YYYY-MM-DD)"),
) -> DateRange:
    """Reporting window from the query string, defaulting to the configured range"""
    start = settings.DEFAULT_RANGE_FROM if from_ is None else ensure_iso_date(from_)
    end = settings.DEFAULT_RANGE_TO if to is None else ensure_iso_date(to)
    if start is None or end is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Dates must be formatted as YYYY-MM-DD",
        )
    if start >= end:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="'from' must be earlier than 'to'",
        )
    return DateRange(from_=start, to=end)


def get_reconciliation_severity(request: Request) -> Severity:
    severity = getattr(request.app.state, "reconciliation_severity", None)
    return severity or resolve_severity(settings)


def get_expectation(request: Request) -> AccountExpectation:
    expectation = getattr(request.app.state, "reconciliation_expectation", None)
    return expectation or load_expectation(settings.RECONCILIATION_FIXTURE)
