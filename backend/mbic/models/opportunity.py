"""
Future-sale and loss-opportunity tables written by the sales-ops forms
"""
from sqlalchemy import Column, Integer, BigInteger, String, Date, DateTime, Numeric, Boolean, Text, Index
from datetime import datetime, timezone

from mbic.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class FutureSaleOpportunity(Base):
    __tablename__ = "future_sale_opportunities"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    project_name = Column(String, nullable=False)
    dealer_id = Column(Integer, nullable=False)
    rep_id = Column(Integer, nullable=False)

    category_key = Column(String, nullable=True)
    collection = Column(String, nullable=True)
    color = Column(String, nullable=True)
    expected_sku = Column(String, nullable=True)

    expected_qty = Column(Numeric(14, 2), nullable=False)
    expected_unit_price = Column(Numeric(14, 2), nullable=False)
    potential_amount = Column(Numeric(14, 2), nullable=False)
    probability_pct = Column(Numeric(5, 2), nullable=False)

    expected_close_date = Column(Date, nullable=True)
    needed_by_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)

    # Workflow
    status = Column(String, default="open", nullable=False)  # open, in_process, closed
    ops_stock_confirmed = Column(Boolean, default=False, nullable=False)
    ops_confirmed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_utcnow)

    __table_args__ = (
        Index("idx_future_sales_status", "status"),
    )

    def __repr__(self):
        return f"<FutureSaleOpportunity {self.id} {self.project_name}>"


class LossOpportunity(Base):
    __tablename__ = "loss_opportunities"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    dealer_id = Column(Integer, nullable=False)
    rep_id = Column(Integer, nullable=False)
    lost_date = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    category_key = Column(String, nullable=True)
    collection = Column(String, nullable=True)
    color = Column(String, nullable=True)
    expected_sku = Column(String, nullable=True)

    requested_qty = Column(Numeric(14, 2), nullable=False)
    target_price = Column(Numeric(14, 2), nullable=False)
    potential_amount = Column(Numeric(14, 2), nullable=False)

    due_to_stock = Column(Boolean, default=False, nullable=False)
    lost_reason = Column(String, nullable=False)
    notes = Column(Text, nullable=True)

    def __repr__(self):
        return f"<LossOpportunity {self.id} {self.lost_reason}>"
