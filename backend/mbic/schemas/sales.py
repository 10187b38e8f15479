"""
Sales Row and Aggregate Schemas
"""
from typing import Optional, List, Any
from datetime import date, datetime
from pydantic import BaseModel, Field, field_validator

from mbic.utils.coercion import coerce_number


class SalesRow(BaseModel):
    """One invoice line as fetched from sales_demo"""
    invoice_date: str  # ISO date (YYYY-MM-DD)
    invoice_amount: float = 0
    customer_id: int
    rep_id: Optional[int] = None
    invoice_number: Optional[str] = None
    collection: Optional[str] = None

    @field_validator("invoice_date", mode="before")
    @classmethod
    def _render_date(cls, value: Any) -> str:
        if isinstance(value, datetime):
            return value.date().isoformat()
        if isinstance(value, date):
            return value.isoformat()
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    @field_validator("invoice_amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> float:
        return coerce_number(value, 0)


class MonthlyTotal(BaseModel):
    """One calendar-month bucket"""
    month: str  # YYYY-MM
    total: float
    rows: int


class DealerAggregate(BaseModel):
    """Per-dealer summary within a rep's scope"""
    customer_id: int
    dealer_name: str
    revenue: float
    invoices: int
    average_invoice: float
    revenue_share: float  # percent of the parent total


class RepAggregate(BaseModel):
    """Per-rep summary within an organization scope"""
    rep_id: int
    rep_name: str
    revenue: float
    invoices: int
    average_invoice: float
    revenue_share: float
    unique_customers: int


class RepSalesData(BaseModel):
    """Locally aggregated view of one rep's invoices"""
    rep_id: int
    rows: List[SalesRow]
    monthly_totals: List[MonthlyTotal]
    grand_total: float
    invoice_count: int
    unique_customers: int
    dealers: List[DealerAggregate]


class SalesRepOption(BaseModel):
    """Sales rep selector entry"""
    rep_id: int
    rep_name: str
    email: Optional[str] = None

    class Config:
        from_attributes = True


class DealerSnapshot(BaseModel):
    """One dealer's revenue in a collection against its total over a window"""
    dealer_id: int
    dealer_name: str
    rep_id: Optional[int] = None
    rep_name: str
    collection: str
    collection_revenue: float
    total_revenue: float
    collection_share_pct: float
    invoice_count: int
    range_from: str
    range_to: str


class SalesRepList(BaseModel):
    reps: List[SalesRepOption]
    total: int


class DateRange(BaseModel):
    """Reporting window: from inclusive, to exclusive (YYYY-MM-DD)"""
    from_: str = Field(..., alias="from")
    to: str

    class Config:
        populate_by_name = True
