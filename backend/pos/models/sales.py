from __future__ import annotations

from ..extensions import db
from pos.money import money_str
from pos.time_utils import to_utc_z, utcnow

# Declaration order is the canonical order for payment breakdowns
PAYMENT_METHODS = ("CASH", "CARD", "BANK_TRANSFER", "OTHER")
SALE_STATUSES = ("PENDING", "COMPLETED", "CANCELLED", "REFUNDED")


class Sale(db.Model):
    """
    Sale transaction header.

    Created atomically together with all of its items; afterwards only
    status may change. Invariants:
    - subtotal == sum(item.line_total)
    - total_amount == subtotal + tax_amount - discount_amount
    """
    __tablename__ = "sales"
    __table_args__ = (
        # Duplicate numbers from racing writers surface as IntegrityError
        db.UniqueConstraint("sale_number", name="uq_sales_sale_number"),
        db.Index("ix_sales_status_sale_date", "status", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable number: SL<YYYYMMDD><4-digit sequence>
    sale_number = db.Column(db.String(20), nullable=False)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    customer_name = db.Column(db.String(100), nullable=True)
    customer_phone = db.Column(db.String(20), nullable=True)

    subtotal = db.Column(db.Numeric(12, 2, asdecimal=True), nullable=False)
    tax_amount = db.Column(db.Numeric(10, 2, asdecimal=True), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(10, 2, asdecimal=True), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(12, 2, asdecimal=True), nullable=False)

    payment_method = db.Column(db.String(16), nullable=False)  # CASH, CARD, BANK_TRANSFER, OTHER
    status = db.Column(db.String(16), nullable=False, default="COMPLETED", index=True)

    # Stored UTC-naive; calendar grouping converts to the reporting timezone
    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    notes = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User")
    items = db.relationship(
        "SaleItem",
        cascade="all, delete-orphan",
        order_by="SaleItem.id",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Sale id={self.id} number={self.sale_number!r} status={self.status}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "sale_number": self.sale_number,
            "user_id": self.user_id,
            "user_name": self.user.full_name if self.user else None,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "subtotal": money_str(self.subtotal),
            "tax_amount": money_str(self.tax_amount),
            "discount_amount": money_str(self.discount_amount),
            "total_amount": money_str(self.total_amount),
            "payment_method": self.payment_method,
            "status": self.status,
            "sale_date": to_utc_z(self.sale_date),
            "notes": self.notes,
            "item_count": len(self.items),
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """
    Line item owned by a Sale.

    product_name / product_sku / unit_price are snapshots taken at sale
    time, so later catalog edits never alter historical sales. line_total
    is computed once at creation and never recomputed.
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_sale_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    # Non-owning reference; products are only ever soft-deleted
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    product_name = db.Column(db.String(100), nullable=False)
    product_sku = db.Column(db.String(50), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(10, 2, asdecimal=True), nullable=False)
    discount_percent = db.Column(db.Numeric(5, 2, asdecimal=True), nullable=False, default=0)
    line_total = db.Column(db.Numeric(12, 2, asdecimal=True), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "product_sku": self.product_sku,
            "quantity": self.quantity,
            "unit_price": money_str(self.unit_price),
            "discount_percent": money_str(self.discount_percent),
            "line_total": money_str(self.line_total),
        }
