from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from ..models import PAYMENT_METHODS
from ..money import HUNDRED, ZERO
from ..validation import ValidationError, to_decimal, to_int

CUSTOMER_NAME_MAX = 100
CUSTOMER_PHONE_MAX = 20
NOTES_MAX = 500


def _to_text(value: Any, field_name: str, max_length: int) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if len(text) > max_length:
        raise ValidationError(f"{field_name} cannot exceed {max_length} characters")
    return text


def _to_amount(value: Any, field_name: str) -> Decimal:
    if value is None or value == "":
        return ZERO
    amount = to_decimal(value, field_name)
    if amount < 0:
        raise ValidationError(f"{field_name} cannot be negative")
    # Stored as Numeric(_, 2); more precision would be rounded away silently
    if amount.normalize().as_tuple().exponent < -2:
        raise ValidationError(f"{field_name} must have at most 2 decimal places")
    return amount


@dataclass
class SaleItemRequest:
    product_id: int
    quantity: int
    discount_percent: Decimal = ZERO


@dataclass
class SaleRequest:
    payment_method: str
    items: list[SaleItemRequest] = field(default_factory=list)
    customer_name: str | None = None
    customer_phone: str | None = None
    tax_amount: Decimal = ZERO
    discount_amount: Decimal = ZERO
    notes: str | None = None


def parse_sale_item(raw: Any, index: int) -> SaleItemRequest:
    if not isinstance(raw, dict):
        raise ValidationError(f"items[{index}] must be an object")

    if raw.get("product_id") is None:
        raise ValidationError(f"items[{index}].product_id is required")
    product_id = to_int(raw["product_id"], f"items[{index}].product_id")

    if raw.get("quantity") is None:
        raise ValidationError(f"items[{index}].quantity is required")
    quantity = to_int(raw["quantity"], f"items[{index}].quantity")
    if quantity < 1:
        raise ValidationError(f"items[{index}].quantity must be at least 1")

    discount_percent = _to_amount(raw.get("discount_percent"), f"items[{index}].discount_percent")
    if discount_percent > HUNDRED:
        raise ValidationError(f"items[{index}].discount_percent cannot exceed 100")

    return SaleItemRequest(product_id=product_id, quantity=quantity, discount_percent=discount_percent)


def parse_sale_request(payload: Any) -> SaleRequest:
    """
    Normalize a sale-creation JSON payload.

    An empty item list is left for the sale builder to reject so the
    business rule lives in one place.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    payment_method = payload.get("payment_method")
    if not payment_method:
        raise ValidationError("payment_method is required")
    payment_method = str(payment_method).strip().upper()
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of {', '.join(PAYMENT_METHODS)}")

    raw_items = payload.get("items")
    if raw_items is None:
        raw_items = []
    if not isinstance(raw_items, list):
        raise ValidationError("items must be a list")

    return SaleRequest(
        payment_method=payment_method,
        items=[parse_sale_item(raw, i) for i, raw in enumerate(raw_items)],
        customer_name=_to_text(payload.get("customer_name"), "customer_name", CUSTOMER_NAME_MAX),
        customer_phone=_to_text(payload.get("customer_phone"), "customer_phone", CUSTOMER_PHONE_MAX),
        tax_amount=_to_amount(payload.get("tax_amount"), "tax_amount"),
        discount_amount=_to_amount(payload.get("discount_amount"), "discount_amount"),
        notes=_to_text(payload.get("notes"), "notes", NOTES_MAX),
    )
