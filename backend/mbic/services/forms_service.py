"""
Future-sale and loss-opportunity normalization and inserts.
"""
import logging
import math
import re
from datetime import date, datetime, timezone
from typing import Any, List, Optional, Tuple

from sqlalchemy.orm import Session

from mbic.models.opportunity import FutureSaleOpportunity, LossOpportunity
from mbic.models.sales import Customer, SalesRep
from mbic.schemas.forms import (
    FutureSalePayload,
    NormalizedFutureSale,
    LossOpportunityPayload,
    NormalizedLossOpportunity,
    LossReason,
    FutureSaleDetail,
    FutureSaleStatus,
    FutureSaleUpdate,
)
from mbic.utils.coercion import parse_number_text

logger = logging.getLogger(__name__)

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

FutureSaleValidation = Tuple[Optional[NormalizedFutureSale], List[str]]
LossOpportunityValidation = Tuple[Optional[NormalizedLossOpportunity], List[str]]


def ensure_number(value: Any) -> Optional[float]:
    """Finite number from a number or non-blank numeric text; otherwise None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else None
    if isinstance(value, str) and value.strip():
        parsed = parse_number_text(value)
        return parsed if math.isfinite(parsed) else None
    return None


def ensure_integer(value: Any) -> Optional[int]:
    """Positive integer id, truncating any fraction."""
    numeric = ensure_number(value)
    if numeric is None:
        return None
    whole = math.trunc(numeric)
    return whole if whole > 0 else None


def ensure_string(value: Any) -> Optional[str]:
    if isinstance(value, str):
        trimmed = value.strip()
        return trimmed or None
    return None


def ensure_iso_date(value: Any) -> Optional[str]:
    text = ensure_string(value)
    if text and _ISO_DATE.match(text):
        return text
    return None


def _positive(value: Optional[float]) -> bool:
    return value is not None and value > 0


def normalize_future_sale(payload: FutureSalePayload) -> FutureSaleValidation:
    """Return (normalized, []) or (None, errors) listing every invalid field."""
    errors: List[str] = []

    project_name = ensure_string(payload.project_name)
    if not project_name:
        errors.append("project_name is required")

    rep_id = ensure_integer(payload.rep_id)
    if not rep_id:
        errors.append("rep_id is required")

    dealer_id = ensure_integer(payload.dealer_id)
    if not dealer_id:
        errors.append("dealer_id is required")

    expected_qty = ensure_number(payload.expected_qty)
    if not _positive(expected_qty):
        errors.append("expected_qty must be greater than 0")

    expected_unit_price = ensure_number(payload.expected_unit_price)
    if not _positive(expected_unit_price):
        errors.append("expected_unit_price must be greater than 0")

    potential_amount = ensure_number(payload.potential_amount)
    if not _positive(potential_amount):
        errors.append("potential_amount must be greater than 0")

    probability_pct = ensure_number(payload.probability_pct)
    if probability_pct is None or probability_pct < 0 or probability_pct > 100:
        errors.append("probability_pct must be between 0 and 100")

    if errors:
        return None, errors

    return NormalizedFutureSale(
        project_name=project_name,
        rep_id=rep_id,
        dealer_id=dealer_id,
        category_key=ensure_string(payload.category_key),
        collection_key=ensure_string(payload.collection_key),
        color_name=ensure_string(payload.color_name),
        expected_qty=expected_qty,
        expected_unit_price=expected_unit_price,
        potential_amount=potential_amount,
        probability_pct=probability_pct,
        expected_close_date=ensure_iso_date(payload.expected_close_date),
        needed_by_date=ensure_iso_date(payload.needed_by_date),
        notes=ensure_string(payload.notes),
        expected_sku=ensure_string(payload.expected_sku),
    ), []


def normalize_loss_opportunity(payload: LossOpportunityPayload) -> LossOpportunityValidation:
    errors: List[str] = []

    rep_id = ensure_integer(payload.rep_id)
    if not rep_id:
        errors.append("rep_id is required")

    dealer_id = ensure_integer(payload.dealer_id)
    if not dealer_id:
        errors.append("dealer_id is required")

    requested_qty = ensure_number(payload.requested_qty)
    if not _positive(requested_qty):
        errors.append("requested_qty must be greater than 0")

    target_price = ensure_number(payload.target_price)
    if not _positive(target_price):
        errors.append("target_price must be greater than 0")

    potential_amount = ensure_number(payload.potential_amount)
    if not _positive(potential_amount):
        errors.append("potential_amount must be greater than 0")

    valid_reasons = {reason.value for reason in LossReason}
    reason = payload.reason if isinstance(payload.reason, str) else None
    if reason not in valid_reasons:
        errors.append("reason is invalid")

    if errors:
        return None, errors

    return NormalizedLossOpportunity(
        rep_id=rep_id,
        dealer_id=dealer_id,
        category_key=ensure_string(payload.category_key),
        collection_key=ensure_string(payload.collection_key),
        color_name=ensure_string(payload.color_name),
        requested_qty=requested_qty,
        target_price=target_price,
        potential_amount=potential_amount,
        reason=LossReason(reason),
        notes=ensure_string(payload.notes),
        expected_sku=ensure_string(payload.expected_sku),
    ), []


def _to_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def insert_future_sale(db: Session, sale: NormalizedFutureSale) -> dict:
    row = FutureSaleOpportunity(
        project_name=sale.project_name,
        dealer_id=sale.dealer_id,
        rep_id=sale.rep_id,
        category_key=sale.category_key,
        collection=sale.collection_key,
        color=sale.color_name,
        expected_sku=sale.expected_sku,
        expected_qty=sale.expected_qty,
        expected_unit_price=sale.expected_unit_price,
        potential_amount=sale.potential_amount,
        probability_pct=sale.probability_pct,
        expected_close_date=_to_date(sale.expected_close_date),
        needed_by_date=_to_date(sale.needed_by_date),
        notes=sale.notes,
        status="open",
        ops_stock_confirmed=False,
    )
    try:
        db.add(row)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(row)
    logger.info("future-sale inserted id=%s rep=%s dealer=%s", row.id, sale.rep_id, sale.dealer_id)
    return {"id": row.id}


def insert_loss_opportunity(db: Session, loss: NormalizedLossOpportunity) -> dict:
    row = LossOpportunity(
        dealer_id=loss.dealer_id,
        rep_id=loss.rep_id,
        lost_date=datetime.now(timezone.utc),
        category_key=loss.category_key,
        collection=loss.collection_key,
        color=loss.color_name,
        expected_sku=loss.expected_sku,
        requested_qty=loss.requested_qty,
        target_price=loss.target_price,
        potential_amount=loss.potential_amount,
        due_to_stock=loss.reason is LossReason.NO_STOCK,
        lost_reason=loss.reason.value,
        notes=loss.notes,
    )
    try:
        db.add(row)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(row)
    logger.info("loss-opportunity inserted id=%s reason=%s", row.id, loss.reason.value)
    return {"id": row.id}


def get_future_sale(db: Session, opportunity_id: int) -> Optional[FutureSaleOpportunity]:
    return db.query(FutureSaleOpportunity).filter(FutureSaleOpportunity.id == opportunity_id).first()


def confirm_future_sale_stock(db: Session, opportunity: FutureSaleOpportunity) -> FutureSaleOpportunity:
    """Flag ops stock as confirmed and stamp the confirmation time."""
    opportunity.ops_stock_confirmed = True
    opportunity.ops_confirmed_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(opportunity)
    logger.info("future-sale %s stock confirmed", opportunity.id)
    return opportunity


def describe_future_sale(db: Session, opportunity: FutureSaleOpportunity) -> FutureSaleDetail:
    """Opportunity with dealer and rep names resolved; potential is qty times unit price."""
    dealer_name = (
        db.query(Customer.dealer_name).filter(Customer.customer_id == opportunity.dealer_id).scalar()
    )
    rep_name = db.query(SalesRep.rep_name).filter(SalesRep.rep_id == opportunity.rep_id).scalar()
    qty = float(opportunity.expected_qty or 0)
    unit_price = float(opportunity.expected_unit_price or 0)
    return FutureSaleDetail(
        id=opportunity.id,
        project_name=opportunity.project_name,
        dealer_id=opportunity.dealer_id,
        dealer_name=dealer_name or "Unknown",
        rep_id=opportunity.rep_id,
        rep_name=rep_name or "Unknown",
        category_key=opportunity.category_key,
        collection=opportunity.collection,
        color=opportunity.color,
        expected_sku=opportunity.expected_sku,
        expected_qty=qty,
        expected_unit_price=unit_price,
        potential_amount=qty * unit_price,
        probability_pct=float(opportunity.probability_pct or 0),
        expected_close_date=opportunity.expected_close_date,
        needed_by_date=opportunity.needed_by_date,
        notes=opportunity.notes,
        status=opportunity.status,
        ops_stock_confirmed=opportunity.ops_stock_confirmed,
        ops_confirmed_at=opportunity.ops_confirmed_at,
        created_at=opportunity.created_at,
        updated_at=opportunity.updated_at,
    )


def validate_future_sale_update(changes: FutureSaleUpdate) -> List[str]:
    fields = changes.model_dump(exclude_unset=True)
    errors: List[str] = []
    if "status" in fields and fields["status"] not in {status.value for status in FutureSaleStatus}:
        errors.append("Invalid status value")
    for name in ("expected_qty", "expected_unit_price"):
        if name in fields and not _positive(fields[name]):
            errors.append(f"{name} must be greater than 0")
    probability = fields.get("probability_pct")
    if "probability_pct" in fields and (probability is None or probability < 0 or probability > 100):
        errors.append("probability_pct must be between 0 and 100")
    if "ops_stock_confirmed" in fields and fields["ops_stock_confirmed"] is None:
        errors.append("ops_stock_confirmed must be true or false")
    return errors


def update_future_sale(
    db: Session,
    opportunity: FutureSaleOpportunity,
    changes: FutureSaleUpdate,
) -> FutureSaleOpportunity:
    """Apply the fields present in ``changes``; the caller validates first."""
    fields = changes.model_dump(exclude_unset=True)
    for name, value in fields.items():
        setattr(opportunity, name, value)

    if "ops_stock_confirmed" in fields:
        opportunity.ops_confirmed_at = datetime.now(timezone.utc) if fields["ops_stock_confirmed"] else None
    if "expected_qty" in fields or "expected_unit_price" in fields:
        opportunity.potential_amount = float(opportunity.expected_qty) * float(opportunity.expected_unit_price)
    opportunity.updated_at = datetime.now(timezone.utc)

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(opportunity)
    logger.info("future-sale %s updated: %s", opportunity.id, ", ".join(sorted(fields)) or "no fields")
    return opportunity


def delete_future_sale(db: Session, opportunity: FutureSaleOpportunity) -> None:
    opportunity_id = opportunity.id
    db.delete(opportunity)
    db.commit()
    logger.info("future-sale %s deleted", opportunity_id)
