# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/pos/routes/products.py
"""
Product catalog routes.

SECURITY: All routes require authentication.
- Read operations are open to every role
- Write operations require ADMIN or MANAGER
"""
from flask import Blueprint, request

from ..services import products_service
from ..models import Product, ROLE_ADMIN, ROLE_MANAGER
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    validate_payload,
    enforce_rules_product,
)
from ..decorators import require_auth, require_role

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"sku", "name", "description", "category", "image_url", "price", "stock_quantity"},
    required_on_create={"sku", "name", "price"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    List active products.

    Query params:
    - page: int (optional) - page number (1-indexed)
    - per_page: int (optional) - items per page (default 10, max 100)
    - sort_by: name | sku | price | stock_quantity | created_at
    - sort_dir: asc | desc
    """
    return products_service.list_products(
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
        sort_by=request.args.get("sort_by"),
        sort_dir=request.args.get("sort_dir"),
    )


@products_bp.get("/search")
@require_auth
def search_products():
    """Search active products by name or SKU (?query=)."""
    term = request.args.get("query", "")
    if not term.strip():
        return {"error": "query is required"}, 400

    return products_service.search_products(
        term,
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@products_bp.get("/low-stock")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def low_stock_products():
    threshold = request.args.get("threshold", 5, type=int)
    products = products_service.list_low_stock(threshold)
    return {"items": [p.to_dict() for p in products], "count": len(products), "threshold": threshold}


@products_bp.get("/<int:product_id>")
@require_auth
def get_product(product_id: int):
    return {"product": products_service.get_product(product_id).to_dict()}


@products_bp.post("")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def create_product_route():
    """Create a new product. Duplicate SKU is rejected with 400."""
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)

    created = products_service.create_product(patch=patch)
    return {"message": "Product created successfully", "product": created.to_dict()}, 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)
    if not patch:
        raise ValidationError("No fields to update")

    updated = products_service.update_product(product_id=product_id, patch=patch)
    return {"message": "Product updated successfully", "product": updated.to_dict()}, 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def delete_product_route(product_id: int):
    """Soft delete: the product disappears from listings and sales."""
    products_service.delete_product(product_id=product_id)
    return {"ok": True, "message": "Product deleted successfully"}, 200
