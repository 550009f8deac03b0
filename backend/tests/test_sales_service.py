"""
Sale creation tests.

Verifies:
- Line totals, subtotal and total arithmetic
- Stock is deducted per item and never goes negative
- Any failing item rolls back the whole sale
- Item snapshots survive later catalog edits
- Cancellation only changes status
"""

from decimal import Decimal

import pytest
from sqlalchemy.orm.exc import StaleDataError

from pos.extensions import db
from pos.models import Sale, SaleItem
from pos.services import products_service, sales_service
from pos.services.sale_schemas import SaleItemRequest, SaleRequest, parse_sale_request
from pos.services.sales_service import SaleError
from pos.validation import ConflictError, NotFoundError, ValidationError


def _request(*items, **kwargs) -> SaleRequest:
    kwargs.setdefault("payment_method", "CASH")
    return SaleRequest(items=list(items), **kwargs)


def _item(product, quantity, discount="0") -> SaleItemRequest:
    return SaleItemRequest(product_id=product.id, quantity=quantity, discount_percent=Decimal(discount))


# =============================================================================
# TOTALS
# =============================================================================


class TestSaleTotals:

    def test_totals_follow_line_items(self, cashier_user, product_a, product_b):
        sale = sales_service.create_sale(
            _request(
                _item(product_a, 2),
                _item(product_b, 1, discount="10"),
                tax_amount=Decimal("1.50"),
                discount_amount=Decimal("2.00"),
            ),
            user_id=cashier_user.id,
        )

        assert sale.status == "COMPLETED"
        assert [i.line_total for i in sale.items] == [Decimal("20.00"), Decimal("4.95")]
        assert sale.subtotal == sum(i.line_total for i in sale.items)
        assert sale.subtotal == Decimal("24.95")
        assert sale.total_amount == sale.subtotal + sale.tax_amount - sale.discount_amount
        assert sale.total_amount == Decimal("24.45")

    def test_tax_and_discount_default_to_zero(self, cashier_user, product_a):
        sale = sales_service.create_sale(_request(_item(product_a, 1)), user_id=cashier_user.id)

        assert sale.tax_amount == Decimal("0")
        assert sale.discount_amount == Decimal("0")
        assert sale.total_amount == Decimal("10.00")

    def test_line_total_rounds_half_up(self, cashier_user, product_factory):
        cheap = product_factory("SKU-CHEAP", "Cheap", price="0.05", stock=5)

        sale = sales_service.create_sale(_request(_item(cheap, 1, discount="50")), user_id=cashier_user.id)

        assert sale.items[0].line_total == Decimal("0.03")

    @pytest.mark.parametrize(
        "price,quantity,discount,expected",
        [
            ("10.00", 3, "0", "30.00"),
            ("3.33", 3, "33.33", "6.66"),
            ("19.99", 1, "100", "0.00"),
            ("0.10", 7, "15", "0.60"),
        ],
    )
    def test_calculate_line_total(self, price, quantity, discount, expected):
        result = sales_service.calculate_line_total(Decimal(price), quantity, Decimal(discount))
        assert result == Decimal(expected)

    def test_discount_larger_than_subtotal_gives_negative_total(self, cashier_user, product_a):
        sale = sales_service.create_sale(
            _request(_item(product_a, 1), discount_amount=Decimal("15.00")),
            user_id=cashier_user.id,
        )
        assert sale.total_amount == Decimal("-5.00")


# =============================================================================
# STOCK
# =============================================================================


class TestStockDeduction:

    def test_stock_is_deducted(self, cashier_user, product_a):
        sales_service.create_sale(_request(_item(product_a, 4)), user_id=cashier_user.id)
        assert product_a.stock_quantity == 6

    def test_insufficient_stock_leaves_stock_unchanged(self, db_session, cashier_user, product_b):
        with pytest.raises(SaleError) as exc:
            sales_service.create_sale(_request(_item(product_b, 4)), user_id=cashier_user.id)

        assert "Insufficient stock for product: Product B" in str(exc.value)
        assert exc.value.details["requested_quantity"] == 4
        assert product_b.stock_quantity == 3
        assert db_session.query(Sale).count() == 0

    def test_same_product_lines_share_stock(self, db_session, cashier_user, product_b):
        # 2 + 2 > 3 although each line alone fits
        with pytest.raises(SaleError):
            sales_service.create_sale(
                _request(_item(product_b, 2), _item(product_b, 2)),
                user_id=cashier_user.id,
            )

        assert product_b.stock_quantity == 3
        assert db_session.query(Sale).count() == 0
        assert db_session.query(SaleItem).count() == 0

    def test_later_failure_rolls_back_earlier_deductions(self, db_session, cashier_user, product_a, product_b):
        with pytest.raises(SaleError):
            sales_service.create_sale(
                _request(_item(product_a, 5), _item(product_b, 10)),
                user_id=cashier_user.id,
            )

        assert product_a.stock_quantity == 10
        assert product_b.stock_quantity == 3

    def test_exact_stock_can_be_sold(self, cashier_user, product_b):
        sales_service.create_sale(_request(_item(product_b, 3)), user_id=cashier_user.id)
        assert product_b.stock_quantity == 0

    def test_stock_conflict_on_every_attempt_is_a_conflict(self, monkeypatch, db_session, cashier_user, product_a):
        monkeypatch.setattr("pos.services.concurrency.time.sleep", lambda seconds: None)
        attempts = {"n": 0}

        def stale_commit():
            attempts["n"] += 1
            raise StaleDataError("UPDATE statement on table 'products' expected to update 1 row(s); 0 were matched.")

        monkeypatch.setattr(db.session, "commit", stale_commit)

        with pytest.raises(ConflictError, match="Stock changed concurrently"):
            sales_service.create_sale(_request(_item(product_a, 2)), user_id=cashier_user.id)

        assert attempts["n"] == 3
        assert product_a.stock_quantity == 10
        assert db_session.query(Sale).count() == 0


# =============================================================================
# REJECTIONS
# =============================================================================


class TestSaleRejections:

    def test_empty_items(self, cashier_user):
        with pytest.raises(SaleError, match="at least one item"):
            sales_service.create_sale(_request(), user_id=cashier_user.id)

    def test_unknown_product(self, cashier_user, product_a):
        with pytest.raises(NotFoundError, match="Product not found with id: 999999"):
            sales_service.create_sale(
                _request(_item(product_a, 1), SaleItemRequest(product_id=999999, quantity=1)),
                user_id=cashier_user.id,
            )
        assert product_a.stock_quantity == 10

    def test_inactive_product(self, db_session, cashier_user, product_a):
        products_service.delete_product(product_id=product_a.id)

        with pytest.raises(SaleError, match="is not available"):
            sales_service.create_sale(_request(_item(product_a, 1)), user_id=cashier_user.id)
        assert db_session.query(Sale).count() == 0

    def test_unknown_user(self, db_session, product_a):
        with pytest.raises(NotFoundError, match="User not found"):
            sales_service.create_sale(_request(_item(product_a, 1)), user_id=424242)
        assert product_a.stock_quantity == 10

    @pytest.mark.parametrize(
        "payload",
        [
            {"items": [{"product_id": 1, "quantity": 1, "discount_percent": "0.005"}]},
            {"items": [{"product_id": 1, "quantity": 1}], "tax_amount": "1.005"},
            {"items": [{"product_id": 1, "quantity": 1}], "discount_amount": "0.125"},
        ],
    )
    def test_amounts_beyond_cents_are_rejected(self, payload):
        with pytest.raises(ValidationError, match="at most 2 decimal places"):
            parse_sale_request({"payment_method": "CASH", **payload})

    def test_two_place_discount_is_kept_exactly(self):
        request = parse_sale_request({
            "payment_method": "CASH",
            "items": [{"product_id": 1, "quantity": 1, "discount_percent": "12.5"}],
        })
        assert request.items[0].discount_percent == Decimal("12.5")


# =============================================================================
# SNAPSHOTS
# =============================================================================


class TestSnapshots:

    def test_catalog_edits_do_not_change_history(self, db_session, cashier_user, product_a):
        sale = sales_service.create_sale(_request(_item(product_a, 2)), user_id=cashier_user.id)

        products_service.update_product(
            product_id=product_a.id,
            patch={"name": "Renamed", "sku": "SKU-NEW", "price": Decimal("99.00")},
        )
        db_session.expire_all()

        item = sales_service.get_sale(sale.id).items[0]
        assert item.product_name == "Product A"
        assert item.product_sku == "SKU-A"
        assert item.unit_price == Decimal("10.00")
        assert item.line_total == Decimal("20.00")


# =============================================================================
# QUERIES AND CANCELLATION
# =============================================================================


class TestSaleQueries:

    def test_get_by_number(self, cashier_user, product_a):
        sale = sales_service.create_sale(_request(_item(product_a, 1)), user_id=cashier_user.id)
        assert sales_service.get_sale_by_number(sale.sale_number).id == sale.id

    def test_get_missing_sale(self, db_session):
        with pytest.raises(NotFoundError, match="Sale not found with sale_number: SL000"):
            sales_service.get_sale_by_number("SL000")

    def test_list_by_user(self, cashier_user, manager_user, product_a):
        sales_service.create_sale(_request(_item(product_a, 1)), user_id=cashier_user.id)
        sales_service.create_sale(_request(_item(product_a, 1)), user_id=manager_user.id)

        result = sales_service.list_sales_by_user(cashier_user.id)
        assert result["pagination"]["total"] == 1
        assert result["items"][0]["user_id"] == cashier_user.id


class TestCancelSale:

    def test_cancel_changes_status_only(self, cashier_user, product_a):
        sale = sales_service.create_sale(_request(_item(product_a, 3)), user_id=cashier_user.id)

        cancelled = sales_service.cancel_sale(sale.id)

        assert cancelled.status == "CANCELLED"
        assert cancelled.total_amount == Decimal("30.00")
        assert len(cancelled.items) == 1
        assert product_a.stock_quantity == 7

    def test_cancel_twice_is_rejected(self, cashier_user, product_a):
        sale = sales_service.create_sale(_request(_item(product_a, 1)), user_id=cashier_user.id)
        sales_service.cancel_sale(sale.id)

        with pytest.raises(SaleError, match="already cancelled"):
            sales_service.cancel_sale(sale.id)

    def test_cancel_missing_sale(self, db_session):
        with pytest.raises(NotFoundError):
            sales_service.cancel_sale(123456)

    def test_deleting_sale_removes_items(self, db_session, cashier_user, product_a):
        sale = sales_service.create_sale(_request(_item(product_a, 1)), user_id=cashier_user.id)

        db.session.delete(sale)
        db.session.commit()

        assert db_session.query(SaleItem).count() == 0
