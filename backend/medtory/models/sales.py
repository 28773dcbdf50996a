from __future__ import annotations

from ..extensions import db
from medtory.time_utils import to_utc_z


class Sale(db.Model):
    """
    One POS transaction.

    Status lifecycle:
    - Completed: checked out, stock deducted (FIFO)
    - Pending: held cart, stock untouched; deleted when resumed
    - Refunded: voided Completed sale, stock returned

    WHY lines snapshot price: catalog price changes must never rewrite history.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_status_date", "status", "sales_date"),
        db.Index("ix_transactions_employee_date", "employee_id", "sales_date"),
        {"sqlite_autoincrement": True},
    )

    STATUS_COMPLETED = "Completed"
    STATUS_PENDING = "Pending"
    STATUS_REFUNDED = "Refunded"

    id = db.Column(db.Integer, primary_key=True)

    # Cashier who rang up the sale
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False)

    sales_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    total_amount_cents = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(32), nullable=False)

    # e-wallet / card reference, searchable from the transactions list
    reference_no = db.Column(db.String(64), nullable=True, index=True)

    status = db.Column(db.String(16), nullable=False, default=STATUS_COMPLETED, index=True)

    employee = db.relationship("Employee", backref=db.backref("sales", lazy=True))
    lines = db.relationship(
        "SaleLineItem",
        backref="sale",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="SaleLineItem.id",
    )

    @property
    def item_count(self) -> int:
        return sum(line.quantity_sold for line in self.lines)

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "employee_id": self.employee_id,
            "cashier_name": self.employee.employee_name if self.employee else None,
            "sales_date": to_utc_z(self.sales_date),
            "total_amount_cents": self.total_amount_cents,
            "payment_method": self.payment_method,
            "reference_no": self.reference_no,
            "status": self.status,
            "item_count": self.item_count,
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class SaleLineItem(db.Model):
    """Individual line on a sale. Immutable once written."""
    __tablename__ = "sales_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity_sold = db.Column(db.Integer, nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)

    # Discount amount for the whole line (not per unit)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    # Rate entered at the till, in basis points (1234 = 0.1234)
    discount_rate_bp = db.Column(db.Integer, nullable=False, default=0)

    product = db.relationship("Product", backref=db.backref("sale_lines", lazy=True))

    @property
    def gross_cents(self) -> int:
        return self.price_cents * self.quantity_sold

    @property
    def line_total_cents(self) -> int:
        return self.gross_cents - self.discount_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity_sold": self.quantity_sold,
            "price_cents": self.price_cents,
            "discount_cents": self.discount_cents,
            "discount_rate_bp": self.discount_rate_bp,
            "line_total_cents": self.line_total_cents,
        }


class VoidRecord(db.Model):
    """Append-only audit row: who voided which sale, when, and why."""
    __tablename__ = "void"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)

    # Manager/admin who authorized the void
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)

    voided_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    void_reason = db.Column(db.String(255), nullable=False)

    sale = db.relationship("Sale", backref=db.backref("voids", lazy=True))
    employee = db.relationship("Employee")

    def to_dict(self) -> dict:
        sale = self.sale
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "voided_at": to_utc_z(self.voided_at),
            "void_reason": self.void_reason,
            "manager_id": self.employee_id,
            "manager_name": self.employee.employee_name if self.employee else None,
            "cashier_name": sale.employee.employee_name if sale and sale.employee else None,
            "total_amount_cents": sale.total_amount_cents if sale else None,
        }
