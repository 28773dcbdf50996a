from __future__ import annotations

from ..extensions import db
from medtory.time_utils import to_utc_z, to_iso_date, today


class InventoryBatch(db.Model):
    """
    One physical lot of a product: its own quantity, cost, price and expiry.

    Inventory invariants:
    - Quantity on hand for a product is SUM(quantity) over its batches.
    - A batch's quantity never goes negative.
    - Batches are created on receiving and are never deleted by sales,
      voids or adjustments; quantity may reach zero.
    - FIFO: sales consume the soonest-to-expire batch first.
    - last_updated moves whenever quantity changes; manual adjustments target
      the most recently updated batch.
    """
    __tablename__ = "inventory"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
        db.Index("ix_inventory_product_expiry", "product_id", "expiry_date"),
        db.Index("ix_inventory_product_updated", "product_id", "last_updated"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    expiry_date = db.Column(db.Date, nullable=False)

    # Authoritative storage in cents
    cost_price_cents = db.Column(db.Integer, nullable=False)
    selling_price_cents = db.Column(db.Integer, nullable=False)

    # Manufacturer lot code printed on the box (recalls)
    batch_number = db.Column(db.String(50), nullable=False)

    last_updated = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("batches", lazy=True))

    @property
    def is_expired(self) -> bool:
        return self.expiry_date <= today()

    def __repr__(self) -> str:
        return (
            f"<InventoryBatch id={self.id} product_id={self.product_id} "
            f"qty={self.quantity} expiry={self.expiry_date}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "expiry_date": to_iso_date(self.expiry_date),
            "cost_price_cents": self.cost_price_cents,
            "selling_price_cents": self.selling_price_cents,
            "batch_number": self.batch_number,
            "is_expired": self.is_expired,
            "last_updated": to_utc_z(self.last_updated),
        }


class ItemLog(db.Model):
    """
    Append-only stock audit ledger for manual movements.

    action is "Added" (stock came in / positive correction) or "Removed"
    (damage, expiry write-off, negative correction). Removed entries feed the
    loss figure in reports.
    """
    __tablename__ = "item_logs"
    __table_args__ = (
        db.Index("ix_item_logs_product_logged", "product_id", "logged_at"),
        {"sqlite_autoincrement": True},
    )

    ACTION_ADDED = "Added"
    ACTION_REMOVED = "Removed"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)

    action = db.Column(db.String(16), nullable=False, index=True)

    # Always positive; direction is carried by action
    quantity = db.Column(db.Integer, nullable=False)

    log_reason = db.Column(db.String(255), nullable=False)
    logged_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    product = db.relationship("Product", backref=db.backref("item_logs", lazy=True))
    employee = db.relationship("Employee")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "employee_id": self.employee_id,
            "employee_name": self.employee.employee_name if self.employee else None,
            "action": self.action,
            "quantity": self.quantity,
            "log_reason": self.log_reason,
            "logged_at": to_utc_z(self.logged_at),
        }
