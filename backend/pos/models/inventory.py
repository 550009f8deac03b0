from __future__ import annotations

from ..extensions import db
from pos.money import money_str
from pos.time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data.

    SKU is the stable external code and is unique across the catalog.
    Products are never hard-deleted: is_active=False hides them from
    listings and sales while historical sale items keep referencing them.

    CONCURRENCY: version_id makes every stock deduction an optimistic
    compare-and-set; a concurrent writer raises StaleDataError on flush.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.Index("ix_products_active_name", "is_active", "name"),
        db.CheckConstraint("stock_quantity >= 0", name="ck_products_stock_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(50), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(500), nullable=True)
    category = db.Column(db.String(50), nullable=True)
    image_url = db.Column(db.String(255), nullable=True)

    price = db.Column(db.Numeric(10, 2, asdecimal=True), nullable=False)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} stock={self.stock_quantity}>"

    @property
    def in_stock(self) -> bool:
        return bool(self.stock_quantity and self.stock_quantity > 0)

    def reduce_stock(self, quantity: int) -> None:
        """Deduct stock; never lets stock_quantity go negative."""
        if self.stock_quantity < quantity:
            raise ValueError(f"Insufficient stock for product: {self.name}")
        self.stock_quantity -= quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "image_url": self.image_url,
            "price": money_str(self.price),
            "stock_quantity": self.stock_quantity,
            "in_stock": self.in_stock,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
