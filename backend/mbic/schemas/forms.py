"""
Sales-ops form schemas.

Payloads are accepted loosely (numbers may be sent as text) and normalized
by mbic.services.forms_service, which reports every problem at once.
"""
import enum
from datetime import date, datetime
from typing import Any, List, Optional
from pydantic import BaseModel


class LossReason(str, enum.Enum):
    NO_STOCK = "no_stock"
    PRICE = "price"
    COMPETITOR = "competitor"
    COLOR_NOT_EXIST = "color_not_exist"
    CANCELLED = "cancelled"
    OTHER = "other"


class FutureSalePayload(BaseModel):
    project_name: Any = None
    rep_id: Any = None
    dealer_id: Any = None
    category_key: Any = None
    collection_key: Any = None
    color_name: Any = None
    expected_qty: Any = None
    expected_unit_price: Any = None
    potential_amount: Any = None
    probability_pct: Any = None
    expected_close_date: Any = None
    needed_by_date: Any = None
    notes: Any = None
    expected_sku: Any = None


class NormalizedFutureSale(BaseModel):
    project_name: str
    rep_id: int
    dealer_id: int
    category_key: Optional[str] = None
    collection_key: Optional[str] = None
    color_name: Optional[str] = None
    expected_qty: float
    expected_unit_price: float
    potential_amount: float
    probability_pct: float
    expected_close_date: Optional[str] = None
    needed_by_date: Optional[str] = None
    notes: Optional[str] = None
    expected_sku: Optional[str] = None


class LossOpportunityPayload(BaseModel):
    rep_id: Any = None
    dealer_id: Any = None
    category_key: Any = None
    collection_key: Any = None
    color_name: Any = None
    requested_qty: Any = None
    target_price: Any = None
    potential_amount: Any = None
    reason: Any = None
    notes: Any = None
    expected_sku: Any = None


class NormalizedLossOpportunity(BaseModel):
    rep_id: int
    dealer_id: int
    category_key: Optional[str] = None
    collection_key: Optional[str] = None
    color_name: Optional[str] = None
    requested_qty: float
    target_price: float
    potential_amount: float
    reason: LossReason
    notes: Optional[str] = None
    expected_sku: Optional[str] = None


class FormSubmissionResponse(BaseModel):
    ok: bool
    id: Optional[int] = None
    error: Optional[str] = None
    errors: List[str] = []


class StockConfirmationResponse(BaseModel):
    id: int
    ops_stock_confirmed: bool
    ops_confirmed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FutureSaleStatus(str, enum.Enum):
    OPEN = "open"
    IN_PROCESS = "in_process"
    CLOSED = "closed"


class FutureSaleUpdate(BaseModel):
    """Partial update; only the fields present in the request are applied."""
    status: Optional[str] = None
    notes: Optional[str] = None
    expected_qty: Optional[float] = None
    expected_unit_price: Optional[float] = None
    probability_pct: Optional[float] = None
    expected_close_date: Optional[date] = None
    needed_by_date: Optional[date] = None
    ops_stock_confirmed: Optional[bool] = None


class FutureSaleDetail(BaseModel):
    id: int
    project_name: str
    dealer_id: int
    dealer_name: str
    rep_id: int
    rep_name: str
    category_key: Optional[str] = None
    collection: Optional[str] = None
    color: Optional[str] = None
    expected_sku: Optional[str] = None
    expected_qty: float
    expected_unit_price: float
    potential_amount: float
    probability_pct: float
    expected_close_date: Optional[date] = None
    needed_by_date: Optional[date] = None
    notes: Optional[str] = None
    status: str
    ops_stock_confirmed: bool
    ops_confirmed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
