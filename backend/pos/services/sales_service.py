"""
Sales Service - atomic sale creation with stock deduction

A sale is created in one unit of work: every requested item is resolved,
checked against live stock, snapshotted and deducted, then the sale and
its items are committed together. Any failure rolls the whole session back,
so no stock moves and no sale row exists.

Sale numbers are SL<YYYYMMDD><4-digit sequence>, derived from the last
inserted sale. Two writers can compute the same number; the unique
constraint on sale_number turns that race into an IntegrityError, which is
retried a bounded number of times before surfacing as a conflict.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Product, Sale, SaleItem, User
from ..money import HUNDRED, ONE, ZERO, quantize_money
from ..validation import ConflictError, NotFoundError, ValidationError
from pos.time_utils import day_window, local_today, utcnow
from .concurrency import lock_for_update, run_with_retry
from .pagination import paginate, resolve_sort
from .sale_schemas import SaleItemRequest, SaleRequest

logger = logging.getLogger(__name__)

SALE_NUMBER_PREFIX = "SL"
SEQUENCE_WIDTH = 4
MAX_DAILY_SEQUENCE = 10 ** SEQUENCE_WIDTH - 1

SALE_SORT_COLUMNS = {
    "sale_date": Sale.sale_date,
    "sale_number": Sale.sale_number,
    "total_amount": Sale.total_amount,
    "status": Sale.status,
}


class SaleError(ValidationError):
    """Raised for sale business-rule violations (inactive product, stock, empty sale)."""


class SaleNumberConflict(ConflictError):
    """Another sale was committed with the same number first."""


class SaleNumberExhausted(ConflictError):
    """More than 9999 sales in one calendar day."""


# =============================================================================
# Sale numbering
# =============================================================================

def sale_number_prefix(day: date) -> str:
    return f"{SALE_NUMBER_PREFIX}{day:%Y%m%d}"


def compute_next_sale_number(last_number: str | None, today: date) -> str:
    """
    Next number after last_number for today.

    The sequence continues only when last_number carries today's prefix;
    otherwise (no sales yet, or last sale on another day) it restarts at 1.
    """
    prefix = sale_number_prefix(today)
    sequence = 1
    if last_number and last_number.startswith(prefix):
        sequence = int(last_number[len(prefix):]) + 1

    if sequence > MAX_DAILY_SEQUENCE:
        raise SaleNumberExhausted(
            f"Daily sale number sequence exhausted for {today.isoformat()}"
        )
    return f"{prefix}{sequence:0{SEQUENCE_WIDTH}d}"


def last_sale_number() -> str | None:
    """Number of the most recently inserted sale (by id), any day."""
    return (
        db.session.query(Sale.sale_number)
        .order_by(Sale.id.desc())
        .limit(1)
        .scalar()
    )


def next_sale_number(today: date | None = None) -> str:
    return compute_next_sale_number(last_sale_number(), today or local_today())


# =============================================================================
# Sale creation
# =============================================================================

def calculate_line_total(unit_price: Decimal, quantity: int, discount_percent: Decimal) -> Decimal:
    """unit_price * quantity * (1 - discount_percent / 100), rounded half up to cents."""
    gross = unit_price * quantity
    if discount_percent > 0:
        gross = gross * (ONE - discount_percent / HUNDRED)
    return quantize_money(gross)


def _add_items(sale: Sale, items: list[SaleItemRequest]) -> Decimal:
    """
    Resolve, check, snapshot and deduct each item in request order.

    Stock is deducted as each item is processed, so later lines for the
    same product are checked against the already-reduced quantity.
    """
    subtotal = ZERO
    for item in items:
        product = lock_for_update(
            db.session.query(Product).filter(Product.id == item.product_id)
        ).first()
        if not product:
            raise NotFoundError("Product", "id", item.product_id)

        if not product.is_active:
            raise SaleError(
                f"Product '{product.name}' is not available",
                details={"product_id": product.id},
            )

        if product.stock_quantity < item.quantity:
            raise SaleError(
                f"Insufficient stock for product: {product.name}",
                details={
                    "product_id": product.id,
                    "requested_quantity": item.quantity,
                    "on_hand": product.stock_quantity,
                },
            )

        line_total = calculate_line_total(product.price, item.quantity, item.discount_percent)

        sale.items.append(SaleItem(
            product_id=product.id,
            product_name=product.name,
            product_sku=product.sku,
            quantity=item.quantity,
            unit_price=product.price,
            discount_percent=item.discount_percent,
            line_total=line_total,
        ))
        subtotal += line_total

        product.reduce_stock(item.quantity)

    return subtotal


def _is_sale_number_conflict(exc: IntegrityError) -> bool:
    message = str(exc.orig).lower()
    return "sale_number" in message or "uq_sales_sale_number" in message


def create_sale(request: SaleRequest, user_id: int) -> Sale:
    """
    Create a COMPLETED sale for user_id, deducting stock for every item.

    Raises:
        SaleError: empty item list, inactive product, insufficient stock
        NotFoundError: unknown user or product
        SaleNumberConflict: sale-number race lost on every attempt
        ConflictError: concurrent stock updates outlasted every retry
    """
    logger.info("Creating new sale for user ID: %s", user_id)

    if not request.items:
        raise SaleError("Sale must have at least one item")

    def _op() -> Sale:
        sale_number = None
        try:
            user = db.session.get(User, user_id)
            if not user:
                raise NotFoundError("User", "id", user_id)

            sale_number = next_sale_number()
            tax_amount = quantize_money(request.tax_amount)
            discount_amount = quantize_money(request.discount_amount)

            sale = Sale(
                sale_number=sale_number,
                user_id=user.id,
                customer_name=request.customer_name,
                customer_phone=request.customer_phone,
                payment_method=request.payment_method,
                tax_amount=tax_amount,
                discount_amount=discount_amount,
                notes=request.notes,
                status="COMPLETED",
                sale_date=utcnow(),
            )

            subtotal = _add_items(sale, request.items)
            sale.subtotal = subtotal
            sale.total_amount = subtotal + tax_amount - discount_amount

            db.session.add(sale)
            db.session.commit()
            return sale
        except IntegrityError as exc:
            db.session.rollback()
            if _is_sale_number_conflict(exc):
                logger.warning("Sale number %s already taken, regenerating", sale_number)
                raise SaleNumberConflict(f"Sale number {sale_number} already exists") from exc
            raise
        except Exception:
            db.session.rollback()
            raise

    try:
        sale = run_with_retry(
            _op,
            attempts=current_app.config.get("SALE_NUMBER_RETRY_ATTEMPTS", 3),
            retry_on=(SaleNumberConflict,),
        )
    except (StaleDataError, OperationalError) as exc:
        logger.warning("Sale for user %s abandoned after repeated stock conflicts", user_id)
        raise ConflictError("Stock changed concurrently, retry the sale") from exc
    logger.info("Sale created successfully with number: %s", sale.sale_number)
    return sale


# =============================================================================
# Queries
# =============================================================================

def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise NotFoundError("Sale", "id", sale_id)
    return sale


def get_sale_by_number(sale_number: str) -> Sale:
    sale = db.session.query(Sale).filter_by(sale_number=sale_number).first()
    if not sale:
        raise NotFoundError("Sale", "sale_number", sale_number)
    return sale


def list_sales(
    page: int | None = None,
    per_page: int | None = None,
    sort_by: str | None = None,
    sort_dir: str | None = "desc",
) -> dict:
    query = db.session.query(Sale).order_by(
        resolve_sort(SALE_SORT_COLUMNS, sort_by, sort_dir, "sale_date"), Sale.id.desc()
    )
    return paginate(query, page, per_page, lambda s: s.to_dict())


def list_sales_by_user(user_id: int, page: int | None = None, per_page: int | None = None) -> dict:
    query = (
        db.session.query(Sale)
        .filter(Sale.user_id == user_id)
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
    )
    return paginate(query, page, per_page, lambda s: s.to_dict())


def _date_range_query(start_date: date, end_date: date):
    if start_date > end_date:
        raise ValidationError("start_date must be on or before end_date")
    start, end = day_window(start_date, end_date)
    return db.session.query(Sale).filter(Sale.sale_date >= start, Sale.sale_date < end)


def sales_between(start_date: date, end_date: date) -> list[Sale]:
    """All sales (any status) whose sale_date falls on [start_date, end_date]."""
    return (
        _date_range_query(start_date, end_date)
        .order_by(Sale.sale_date.asc(), Sale.id.asc())
        .all()
    )


def list_sales_by_date_range(
    start_date: date,
    end_date: date,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    query = _date_range_query(start_date, end_date).order_by(Sale.sale_date.desc(), Sale.id.desc())
    return paginate(query, page, per_page, lambda s: s.to_dict())


# =============================================================================
# Status transitions
# =============================================================================

def cancel_sale(sale_id: int) -> Sale:
    """
    Mark a sale CANCELLED. Only status changes; items and stock are untouched.
    """
    logger.info("Cancelling sale with ID: %s", sale_id)

    def _op() -> Sale:
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if not sale:
            raise NotFoundError("Sale", "id", sale_id)

        if sale.status == "CANCELLED":
            raise SaleError("Sale is already cancelled")

        sale.status = "CANCELLED"
        db.session.commit()
        return sale

    sale = run_with_retry(_op)
    logger.info("Sale cancelled successfully with ID: %s", sale_id)
    return sale
