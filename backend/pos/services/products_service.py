# backend/pos/services/products_service.py
"""
Products Service

SKU is globally unique. Products are never hard-deleted: delete_product
flips is_active so historical sale items keep a valid reference, and every
read path below treats inactive products as missing.
"""
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product
from ..validation import NotFoundError, ValidationError
from .pagination import paginate, resolve_sort

logger = logging.getLogger(__name__)

PRODUCT_MUTABLE_FIELDS = {
    "sku", "name", "description", "category", "image_url", "price", "stock_quantity",
}

PRODUCT_SORT_COLUMNS = {
    "name": Product.name,
    "sku": Product.sku,
    "price": Product.price,
    "stock_quantity": Product.stock_quantity,
    "created_at": Product.created_at,
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _require_unique_sku(sku: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Product.id).filter(Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise ValidationError(f"Product with SKU '{sku}' already exists")


def _commit_product(sku: str | None) -> None:
    """Commit, turning a lost SKU race on uq_products_sku into a 400."""
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        if "sku" in str(exc.orig).lower():
            raise ValidationError(f"Product with SKU '{sku}' already exists") from exc
        raise


def get_product(product_id: int) -> Product:
    """Active product by id; soft-deleted products count as missing."""
    p = (
        db.session.query(Product)
        .filter(Product.id == product_id, Product.is_active.is_(True))
        .first()
    )
    if not p:
        raise NotFoundError("Product", "id", product_id)
    return p


def list_products(
    page: int | None = None,
    per_page: int | None = None,
    sort_by: str | None = None,
    sort_dir: str | None = None,
) -> dict:
    """Active products, paginated and sorted (default name ascending)."""
    query = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .order_by(resolve_sort(PRODUCT_SORT_COLUMNS, sort_by, sort_dir, "name"), Product.id.asc())
    )
    return paginate(query, page, per_page, lambda p: p.to_dict())


def search_products(term: str, page: int | None = None, per_page: int | None = None) -> dict:
    """Case-insensitive substring match on name or SKU (active only)."""
    pattern = f"%{(term or '').strip().lower()}%"
    query = (
        db.session.query(Product)
        .filter(
            Product.is_active.is_(True),
            db.or_(
                db.func.lower(Product.name).like(pattern),
                db.func.lower(Product.sku).like(pattern),
            ),
        )
        .order_by(Product.name.asc(), Product.id.asc())
    )
    return paginate(query, page, per_page, lambda p: p.to_dict())


def list_low_stock(threshold: int) -> list[Product]:
    """Active products whose stock is at or below threshold."""
    return (
        db.session.query(Product)
        .filter(Product.is_active.is_(True), Product.stock_quantity <= threshold)
        .order_by(Product.stock_quantity.asc(), Product.name.asc())
        .all()
    )


def create_product(*, patch: dict) -> Product:
    """
    Create product using a validated patch dict.

    Raises:
        ValidationError: missing sku or SKU already in use
    """
    sku = patch.get("sku")
    if not sku:
        raise ValidationError("sku is required")

    logger.info("Creating product with SKU: %s", sku)
    _require_unique_sku(sku)

    p = Product(stock_quantity=0)
    apply_product_patch(p, patch)

    db.session.add(p)
    _commit_product(sku)
    logger.info("Product created successfully with ID: %s", p.id)
    return p


def update_product(*, product_id: int, patch: dict) -> Product:
    """
    Update an active product.

    Raises:
        NotFoundError: unknown or soft-deleted product
        ValidationError: new SKU already in use
    """
    logger.info("Updating product with ID: %s", product_id)
    p = get_product(product_id)

    if "sku" in patch and patch["sku"] != p.sku:
        _require_unique_sku(patch["sku"], exclude_id=p.id)

    apply_product_patch(p, patch)
    _commit_product(p.sku)
    logger.info("Product updated successfully with ID: %s", product_id)
    return p


def delete_product(*, product_id: int) -> Product:
    """Soft-delete: preserve IDs and historical references."""
    logger.info("Deleting product with ID: %s", product_id)
    p = get_product(product_id)
    p.is_active = False
    db.session.commit()
    logger.info("Product soft-deleted successfully with ID: %s", product_id)
    return p
