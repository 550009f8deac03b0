# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/pos/routes/sales.py
"""
Sales routes.

Sale creation is open to every authenticated role and is attributed to the
caller. Cancelling a sale requires ADMIN or MANAGER.
"""
from flask import Blueprint, request, g

from ..services import sales_service
from ..services.sale_schemas import parse_sale_request
from ..models import ROLE_ADMIN, ROLE_MANAGER
from ..validation import ValidationError
from ..decorators import require_auth, require_role
from pos.time_utils import parse_iso_date


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _page_args() -> dict:
    return {
        "page": request.args.get("page", type=int),
        "per_page": request.args.get("size", type=int) or request.args.get("per_page", type=int),
    }


def _date_arg(name: str):
    raw = request.args.get(name)
    try:
        value = parse_iso_date(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO date (YYYY-MM-DD)")
    if value is None:
        raise ValidationError(f"{name} is required")
    return value


@sales_bp.post("")
@require_auth
def create_sale_route():
    """
    Create a COMPLETED sale.

    Body:
    {
      "payment_method": "CASH",
      "customer_name": "...", "customer_phone": "...",
      "tax_amount": "1.50", "discount_amount": "0.00", "notes": "...",
      "items": [{"product_id": 1, "quantity": 2, "discount_percent": "10"}]
    }

    Stock for every item is deducted in the same transaction; any failure
    leaves stock and sales untouched.
    """
    sale_request = parse_sale_request(request.get_json(silent=True))
    sale = sales_service.create_sale(sale_request, user_id=g.current_user.id)
    return {"message": "Sale created successfully", "sale": sale.to_dict()}, 201


@sales_bp.get("")
@require_auth
def list_sales_route():
    """
    Paginated sales, newest first by default.

    Query params: page, size, sort_by (sale_date | sale_number | total_amount | status), sort_dir
    """
    return sales_service.list_sales(
        **_page_args(),
        sort_by=request.args.get("sort_by"),
        sort_dir=request.args.get("sort_dir", "desc"),
    )


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    return {"sale": sales_service.get_sale(sale_id).to_dict()}


@sales_bp.get("/number/<string:sale_number>")
@require_auth
def get_sale_by_number_route(sale_number: str):
    return {"sale": sales_service.get_sale_by_number(sale_number).to_dict()}


@sales_bp.get("/date-range")
@require_auth
def sales_by_date_range_route():
    start_date = _date_arg("start_date")
    end_date = _date_arg("end_date")
    return sales_service.list_sales_by_date_range(start_date, end_date, **_page_args())


@sales_bp.get("/user/<int:user_id>")
@require_auth
def sales_by_user_route(user_id: int):
    return sales_service.list_sales_by_user(user_id, **_page_args())


@sales_bp.post("/<int:sale_id>/cancel")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def cancel_sale_route(sale_id: int):
    sale = sales_service.cancel_sale(sale_id)
    return {"message": "Sale cancelled successfully", "sale": sale.to_dict()}, 200
