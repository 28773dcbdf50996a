"""
Void/refund and manual stock adjustment tests.
"""

from datetime import date
from decimal import Decimal

import pytest

from medtory.models import InventoryBatch, ItemLog, Sale, VoidRecord
from medtory.services import inventory_service, sales_service
from medtory.services.cart_service import CartLine
from medtory.services.inventory_service import InventoryError, get_quantity_on_hand
from medtory.services.sales_service import SaleError


def _sell(product, quantity, cashier, price=1000):
    return sales_service.checkout(
        lines=[CartLine(product.id, product.name, price, quantity, Decimal("0"))],
        payment_method="Cash",
        cashier_id=cashier.id,
    )


def _batch_quantities(db_session, product):
    rows = db_session.query(InventoryBatch).filter_by(product_id=product.id).order_by(InventoryBatch.id).all()
    return [b.quantity for b in rows]


# =============================================================================
# VOID
# =============================================================================

class TestVoid:
    def test_void_restocks_latest_expiry_batch(self, db_session, cashier, manager, make_product):
        product = make_product(batches=[
            (2, date(2030, 1, 1), 1000, 600),
            (10, date(2030, 6, 1), 1000, 600),
        ])
        sale = _sell(product, 3, cashier)
        assert _batch_quantities(db_session, product) == [0, 9]

        sales_service.void_sale(sale_id=sale.id, employee_id=manager.id, reason="Customer returned item")

        # All 3 go to the 2030-06-01 batch, not back where they came from
        assert _batch_quantities(db_session, product) == [0, 12]
        db_session.refresh(sale)
        assert sale.status == Sale.STATUS_REFUNDED

        records = db_session.query(VoidRecord).filter_by(sale_id=sale.id).all()
        assert len(records) == 1
        assert records[0].employee_id == manager.id
        assert records[0].void_reason == "Customer returned item"

    def test_void_picks_latest_expiry_even_if_empty(self, db_session, cashier, manager, make_product):
        product = make_product(batches=[
            (5, date(2030, 1, 1), 1000, 600),
            (0, date(2031, 1, 1), 1000, 600),
        ])
        sale = _sell(product, 2, cashier)

        sales_service.void_sale(sale_id=sale.id, employee_id=manager.id, reason="Wrong item")

        assert _batch_quantities(db_session, product) == [3, 2]

    def test_voiding_twice_is_rejected(self, db_session, cashier, manager, make_product):
        product = make_product(batches=[(10, date(2030, 1, 1), 1000, 600)])
        sale = _sell(product, 4, cashier)
        sales_service.void_sale(sale_id=sale.id, employee_id=manager.id, reason="Duplicate")

        with pytest.raises(SaleError) as exc:
            sales_service.void_sale(sale_id=sale.id, employee_id=manager.id, reason="Again")

        assert exc.value.status == 409
        assert "Only completed transactions can be voided." in str(exc.value)
        assert get_quantity_on_hand(product.id) == 10
        assert db_session.query(VoidRecord).count() == 1

    def test_voiding_a_pending_sale_changes_nothing(self, db_session, cashier, manager, make_product):
        product = make_product(batches=[(10, date(2030, 1, 1), 1000, 600)])
        held = sales_service.hold_sale(
            lines=[CartLine(product.id, product.name, 1000, 2, Decimal("0"))],
            cashier_id=cashier.id,
        )

        with pytest.raises(SaleError):
            sales_service.void_sale(sale_id=held.id, employee_id=manager.id, reason="Nope")

        db_session.refresh(held)
        assert held.status == Sale.STATUS_PENDING
        assert get_quantity_on_hand(product.id) == 10
        assert db_session.query(VoidRecord).count() == 0

    def test_unknown_sale(self, db_session, manager):
        with pytest.raises(SaleError) as exc:
            sales_service.void_sale(sale_id=999, employee_id=manager.id, reason="Ghost")
        assert exc.value.status == 404

    def test_reason_required(self, db_session, cashier, manager, make_product):
        product = make_product(batches=[(10, date(2030, 1, 1), 1000, 600)])
        sale = _sell(product, 1, cashier)
        with pytest.raises(SaleError):
            sales_service.void_sale(sale_id=sale.id, employee_id=manager.id, reason="   ")
        db_session.refresh(sale)
        assert sale.status == Sale.STATUS_COMPLETED

    def test_failed_restock_rolls_back_whole_void(self, db_session, cashier, manager, make_product):
        syrup = make_product("Tuseran Syrup", batches=[(10, date(2030, 1, 1), 1000, 600)])
        drops = make_product("Eye Drops", batches=[(2, date(2030, 1, 1), 500, 300)])
        sale = sales_service.checkout(
            lines=[
                CartLine(syrup.id, syrup.name, 1000, 3, Decimal("0")),
                CartLine(drops.id, drops.name, 500, 2, Decimal("0")),
            ],
            payment_method="Cash",
            cashier_id=cashier.id,
        )
        sale_id = sale.id
        # Batch written off entirely after the sale
        db_session.query(InventoryBatch).filter_by(product_id=drops.id).delete()
        db_session.commit()

        with pytest.raises(SaleError, match="Void Failed: No inventory batch to restock") as excinfo:
            sales_service.void_sale(sale_id=sale_id, employee_id=manager.id, reason="Wrong items")

        assert excinfo.value.status == 409
        db_session.expire_all()
        assert _batch_quantities(db_session, syrup) == [7]
        assert db_session.get(Sale, sale_id).status == Sale.STATUS_COMPLETED
        assert db_session.query(VoidRecord).count() == 0


# =============================================================================
# MANUAL ADJUSTMENT
# =============================================================================

class TestAdjustment:
    def test_adjustment_targets_most_recently_updated_batch(self, db_session, manager, make_product):
        # Second batch has the newer last_updated (factory staggers them)
        product = make_product(batches=[
            (5, date(2030, 1, 1), 1000, 600),
            (5, date(2031, 1, 1), 1000, 600),
        ])

        batch, log = inventory_service.adjust_stock(
            product_id=product.id, quantity_delta=-2, reason="Damaged", employee_id=manager.id
        )

        assert _batch_quantities(db_session, product) == [5, 3]
        assert batch.expiry_date == date(2031, 1, 1)
        assert log.action == ItemLog.ACTION_REMOVED
        assert log.quantity == 2
        assert log.log_reason == "Damaged"

    def test_positive_adjustment_logs_added(self, db_session, manager, make_product):
        product = make_product(batches=[(5, date(2030, 1, 1), 1000, 600)])

        _, log = inventory_service.adjust_stock(
            product_id=product.id, quantity_delta=4, reason="Recount", employee_id=manager.id
        )

        assert log.action == ItemLog.ACTION_ADDED
        assert log.quantity == 4
        assert get_quantity_on_hand(product.id) == 9

    def test_sale_moves_the_adjustment_target(self, db_session, cashier, manager, make_product):
        product = make_product(batches=[
            (5, date(2030, 1, 1), 1000, 600),
            (5, date(2031, 1, 1), 1000, 600),
        ])
        # FIFO touches the first batch, which becomes the most recently updated
        _sell(product, 1, cashier)

        inventory_service.adjust_stock(
            product_id=product.id, quantity_delta=-1, reason="Expired stock", employee_id=manager.id
        )

        assert _batch_quantities(db_session, product) == [3, 5]

    def test_adjustment_below_zero_is_rejected_without_changes(self, db_session, manager, make_product):
        product = make_product(batches=[
            (50, date(2030, 1, 1), 1000, 600),
            (2, date(2031, 1, 1), 1000, 600),
        ])

        with pytest.raises(InventoryError, match="negative"):
            inventory_service.adjust_stock(
                product_id=product.id, quantity_delta=-3, reason="Lost", employee_id=manager.id
            )

        db_session.expire_all()
        assert _batch_quantities(db_session, product) == [50, 2]
        assert db_session.query(ItemLog).count() == 0

    @pytest.mark.parametrize("delta,reason", [(0, "Recount"), (3, ""), (-1, "   ")])
    def test_zero_delta_or_blank_reason(self, db_session, manager, make_product, delta, reason):
        product = make_product(batches=[(5, date(2030, 1, 1), 1000, 600)])
        with pytest.raises(InventoryError):
            inventory_service.adjust_stock(
                product_id=product.id, quantity_delta=delta, reason=reason, employee_id=manager.id
            )

    def test_product_without_batches(self, db_session, manager, make_product):
        product = make_product(batches=[])
        with pytest.raises(InventoryError, match="no inventory batch"):
            inventory_service.adjust_stock(
                product_id=product.id, quantity_delta=1, reason="Found", employee_id=manager.id
            )
