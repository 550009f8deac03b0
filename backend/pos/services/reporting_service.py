# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

"""
Sales reporting.

aggregate_sales() is a pure read-and-reduce over already fetched Sale rows.
Only COMPLETED sales feed the summary figures and rollups; the CSV export
deliberately lists every sale in range regardless of status.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable
from zoneinfo import ZoneInfo

from ..models import PAYMENT_METHODS
from ..money import ZERO, money_str, quantize_money
from ..validation import ValidationError
from pos.time_utils import reporting_zone, to_local
from .sales_service import sales_between

logger = logging.getLogger(__name__)

TOP_PRODUCTS_LIMIT = 10


class ReportError(ValidationError):
    """Raised when report parameters are invalid."""


def require_range(start_date: date, end_date: date) -> None:
    if start_date > end_date:
        raise ReportError("start_date must be on or before end_date")


@dataclass
class DailySalesSummary:
    date: date
    sales_count: int
    revenue: Decimal

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "sales_count": self.sales_count,
            "revenue": money_str(self.revenue),
        }


@dataclass
class TopProductSummary:
    product_id: int
    product_name: str
    quantity_sold: int
    revenue: Decimal

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity_sold": self.quantity_sold,
            "revenue": money_str(self.revenue),
        }


@dataclass
class PaymentMethodSummary:
    payment_method: str
    count: int
    amount: Decimal

    def to_dict(self) -> dict:
        return {
            "payment_method": self.payment_method,
            "count": self.count,
            "amount": money_str(self.amount),
        }


@dataclass
class SalesReportSummary:
    start_date: date
    end_date: date
    total_sales: int = 0
    total_revenue: Decimal = ZERO
    total_tax: Decimal = ZERO
    total_discount: Decimal = ZERO
    average_sale_amount: Decimal = ZERO
    daily_summary: list[DailySalesSummary] = field(default_factory=list)
    top_products: list[TopProductSummary] = field(default_factory=list)
    payment_method_breakdown: list[PaymentMethodSummary] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "total_sales": self.total_sales,
            "total_revenue": money_str(self.total_revenue),
            "total_tax": money_str(self.total_tax),
            "total_discount": money_str(self.total_discount),
            "average_sale_amount": money_str(self.average_sale_amount),
            "daily_summary": [row.to_dict() for row in self.daily_summary],
            "top_products": [row.to_dict() for row in self.top_products],
            "payment_method_breakdown": [row.to_dict() for row in self.payment_method_breakdown],
        }


# =============================================================================
# Aggregation
# =============================================================================

def _build_daily_summary(sales: list, tz: ZoneInfo) -> list[DailySalesSummary]:
    by_date: dict[date, DailySalesSummary] = {}
    for sale in sales:
        day = to_local(sale.sale_date, tz).date()
        row = by_date.get(day)
        if row is None:
            row = by_date[day] = DailySalesSummary(date=day, sales_count=0, revenue=ZERO)
        row.sales_count += 1
        row.revenue += sale.total_amount
    return [by_date[day] for day in sorted(by_date)]


def _build_top_products(sales: list) -> list[TopProductSummary]:
    # Keyed by product id; name comes from the item snapshot, not the catalog
    by_product: dict[int, TopProductSummary] = {}
    for sale in sales:
        for item in sale.items:
            row = by_product.get(item.product_id)
            if row is None:
                by_product[item.product_id] = TopProductSummary(
                    product_id=item.product_id,
                    product_name=item.product_name,
                    quantity_sold=item.quantity,
                    revenue=item.line_total,
                )
            else:
                row.quantity_sold += item.quantity
                row.revenue += item.line_total

    # sorted() is stable: equal quantities keep first-encounter order
    ranked = sorted(by_product.values(), key=lambda row: row.quantity_sold, reverse=True)
    return ranked[:TOP_PRODUCTS_LIMIT]


def _build_payment_breakdown(sales: list) -> list[PaymentMethodSummary]:
    grouped: dict[str, PaymentMethodSummary] = {}
    for sale in sales:
        row = grouped.get(sale.payment_method)
        if row is None:
            row = grouped[sale.payment_method] = PaymentMethodSummary(
                payment_method=sale.payment_method, count=0, amount=ZERO,
            )
        row.count += 1
        row.amount += sale.total_amount

    order = {method: i for i, method in enumerate(PAYMENT_METHODS)}
    return sorted(grouped.values(), key=lambda row: order.get(row.payment_method, len(order)))


def aggregate_sales(
    sales: Iterable,
    start_date: date,
    end_date: date,
    tz: ZoneInfo | None = None,
) -> SalesReportSummary:
    """
    Reduce the sales of a date window into a SalesReportSummary.

    Every figure is computed over COMPLETED sales only.
    """
    tz = tz or reporting_zone()
    completed = [s for s in sales if s.status == "COMPLETED"]

    total_revenue = sum((s.total_amount for s in completed), ZERO)
    total_tax = sum((s.tax_amount for s in completed), ZERO)
    total_discount = sum((s.discount_amount for s in completed), ZERO)
    average = quantize_money(total_revenue / len(completed)) if completed else ZERO

    return SalesReportSummary(
        start_date=start_date,
        end_date=end_date,
        total_sales=len(completed),
        total_revenue=total_revenue,
        total_tax=total_tax,
        total_discount=total_discount,
        average_sale_amount=average,
        daily_summary=_build_daily_summary(completed, tz),
        top_products=_build_top_products(completed),
        payment_method_breakdown=_build_payment_breakdown(completed),
    )


def sales_report(start_date: date, end_date: date) -> SalesReportSummary:
    require_range(start_date, end_date)
    logger.info("Generating sales report from %s to %s", start_date, end_date)
    sales = sales_between(start_date, end_date)
    return aggregate_sales(sales, start_date, end_date)
