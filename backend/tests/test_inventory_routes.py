"""
Inventory API tests: product creation, receiving, archive and the stock list.
"""

import re
from datetime import date
from decimal import Decimal

import pytest

from medtory.models import InventoryBatch, ItemLog, Product, PurchaseOrder, Supplier
from medtory.services import sales_service
from medtory.services.cart_service import CartLine


def _product_body(category, supplier=None, **overrides):
    body = {
        "name": "Neozep Forte",
        "description": "Cold relief",
        "manufacturer": "Unilab",
        "category_id": category.id,
        "supplier_id": supplier.id if supplier else None,
        "quantity": 40,
        "cost_price_cents": 450,
        "selling_price_cents": 700,
        "expiry_date": "2030-03-31",
    }
    body.update(overrides)
    return body


class TestCreateProduct:
    def test_creates_product_with_first_batch(self, client, db_session, manager, login, category, supplier):
        response = client.post("/api/inventory/products", headers=login(manager),
                               json=_product_body(category, supplier))

        assert response.status_code == 201
        product = response.get_json()["product"]
        assert product["quantity_on_hand"] == 40
        assert product["selling_price_cents"] == 700
        assert len(product["batches"]) == 1
        assert re.fullmatch(r"B-\d{8}-\d{3}", product["batches"][0]["batch_number"])

    def test_new_supplier_name_creates_supplier(self, client, db_session, manager, login, category):
        body = _product_body(category, new_supplier_name="Zuellig Pharma")
        del body["supplier_id"]
        response = client.post("/api/inventory/products", headers=login(manager), json=body)

        assert response.status_code == 201
        assert response.get_json()["product"]["supplier_name"] == "Zuellig Pharma"
        assert db_session.query(Supplier).filter_by(name="Zuellig Pharma").count() == 1

    def test_missing_supplier(self, client, db_session, manager, login, category, supplier):
        body = _product_body(category, supplier)
        del body["supplier_id"]

        response = client.post("/api/inventory/products", headers=login(manager), json=body)

        assert response.status_code == 400
        assert db_session.query(Product).count() == 0

    def test_unknown_category_writes_nothing(self, client, db_session, manager, login, category, supplier):
        response = client.post("/api/inventory/products", headers=login(manager),
                               json=_product_body(category, supplier, category_id=999))

        assert response.status_code == 404
        assert db_session.query(Product).count() == 0
        assert db_session.query(InventoryBatch).count() == 0

    @pytest.mark.parametrize("overrides", [
        {"quantity": 0},
        {"selling_price_cents": -1},
        {"expiry_date": "31/03/2030"},
        {"name": ""},
        {"manufacturer": None},
    ])
    def test_invalid_fields(self, client, manager, login, category, supplier, overrides):
        response = client.post("/api/inventory/products", headers=login(manager),
                               json=_product_body(category, supplier, **overrides))
        assert response.status_code == 400


class TestReceiveStock:
    def test_receive_writes_batch_order_and_log(self, client, db_session, manager, login, make_product):
        product = make_product(batches=[(5, date(2030, 1, 1), 1000, 600)])

        response = client.post(f"/api/inventory/products/{product.id}/batches", headers=login(manager), json={
            "quantity": 24,
            "cost_price_cents": 620,
            "selling_price_cents": 1050,
            "expiry_date": "2031-01-01",
            "batch_number": "LOT-9",
        })

        assert response.status_code == 201
        assert response.get_json()["batch"]["batch_number"] == "LOT-9"
        order = db_session.query(PurchaseOrder).filter_by(product_id=product.id).one()
        assert order.quantity_received == 24
        assert order.supplier_id == product.supplier_id
        log = db_session.query(ItemLog).filter_by(product_id=product.id).one()
        assert log.action == ItemLog.ACTION_ADDED
        assert log.quantity == 24

    def test_unknown_product(self, client, manager, login):
        response = client.post("/api/inventory/products/999/batches", headers=login(manager), json={
            "quantity": 1, "cost_price_cents": 1, "selling_price_cents": 1, "expiry_date": "2031-01-01",
        })
        assert response.status_code == 404

    def test_archived_product(self, client, manager, login, make_product):
        product = make_product(is_active=False)
        response = client.post(f"/api/inventory/products/{product.id}/batches", headers=login(manager), json={
            "quantity": 1, "cost_price_cents": 1, "selling_price_cents": 1, "expiry_date": "2031-01-01",
        })
        assert response.status_code == 409


class TestArchive:
    def test_product_without_history_is_deleted(self, client, db_session, owner, login, make_product):
        product = make_product(batches=[(5, date(2030, 1, 1), 1000, 600)])
        product_id = product.id

        response = client.post(f"/api/inventory/products/{product_id}/archive", headers=login(owner))

        assert response.get_json()["result"] == "deleted"
        db_session.expire_all()
        assert db_session.get(Product, product_id) is None
        assert db_session.query(InventoryBatch).filter_by(product_id=product_id).count() == 0

    def test_product_with_sales_is_archived(self, client, db_session, owner, cashier, login, make_product):
        product = make_product(batches=[(5, date(2030, 1, 1), 1000, 600)])
        sales_service.checkout(
            lines=[CartLine(product.id, product.name, 1000, 1, Decimal("0"))],
            payment_method="Cash",
            cashier_id=cashier.id,
        )
        headers = login(owner)

        response = client.post(f"/api/inventory/products/{product.id}/archive", headers=headers)

        assert response.get_json()["result"] == "archived"
        assert client.get("/api/inventory", headers=headers).get_json()["items"] == []
        archived = client.get("/api/inventory?archived=true", headers=headers).get_json()["items"]
        assert archived[0]["status"] == "Archived"

        restored = client.post(f"/api/inventory/products/{product.id}/unarchive", headers=headers)
        assert restored.get_json()["product"]["is_active"] is True


class TestInventoryList:
    def test_statuses(self, client, cashier, login, make_product, future):
        make_product("Active", batches=[(50, future(100), 100, 50)])
        make_product("Low", batches=[(5, future(100), 100, 50)])
        make_product("Empty", batches=[(0, future(100), 100, 50)])
        make_product("Stale", batches=[(50, future(-1), 100, 50)])

        items = client.get("/api/inventory", headers=login(cashier)).get_json()["items"]

        assert {row["product_name"]: row["status"] for row in items} == {
            "Active": "Active",
            "Low": "Low Stock",
            "Empty": "Out of Stock",
            "Stale": "Expired",
        }

    def test_sort_by_stock_desc(self, client, cashier, login, make_product, future):
        make_product("A", batches=[(5, future(100), 100, 50)])
        make_product("B", batches=[(50, future(100), 100, 50), (7, future(200), 100, 50)])

        items = client.get("/api/inventory?sort=stock_desc", headers=login(cashier)).get_json()["items"]

        assert [(row["product_name"], row["quantity"]) for row in items] == [("B", 57), ("A", 5)]

    def test_paginates(self, client, cashier, login, make_product, future):
        for i in range(12):
            make_product(f"Item {i:02d}", batches=[(30, future(100), 100, 50)])

        page_two = client.get("/api/inventory?page=2", headers=login(cashier)).get_json()

        assert page_two["count"] == 2
        assert page_two["pagination"]["total"] == 12
        assert page_two["pagination"]["has_prev"] is True
        assert [row["product_name"] for row in page_two["items"]] == ["Item 10", "Item 11"]


class TestAdjustRoute:
    def test_adjust_and_log(self, client, db_session, manager, login, make_product):
        product = make_product(batches=[(5, date(2030, 1, 1), 1000, 600)])
        headers = login(manager)

        response = client.post("/api/inventory/adjust", headers=headers,
                               json={"product_id": product.id, "quantity_delta": -2, "reason": "Damaged"})

        assert response.status_code == 200
        assert response.get_json()["quantity_on_hand"] == 3
        logs = client.get(f"/api/inventory/logs?product_id={product.id}", headers=headers).get_json()
        assert logs["items"][0]["action"] == "Removed"
        assert logs["items"][0]["log_reason"] == "Damaged"

    def test_adjust_below_zero_is_409(self, client, manager, login, make_product):
        product = make_product(batches=[(5, date(2030, 1, 1), 1000, 600)])
        response = client.post("/api/inventory/adjust", headers=login(manager),
                               json={"product_id": product.id, "quantity_delta": -6, "reason": "Count"})
        assert response.status_code == 409

    def test_adjust_unknown_product_is_404(self, client, manager, login):
        response = client.post("/api/inventory/adjust", headers=login(manager),
                               json={"product_id": 999, "quantity_delta": 1, "reason": "Count"})
        assert response.status_code == 404

    def test_adjust_requires_reason(self, client, manager, login, make_product):
        product = make_product(batches=[(5, date(2030, 1, 1), 1000, 600)])
        response = client.post("/api/inventory/adjust", headers=login(manager),
                               json={"product_id": product.id, "quantity_delta": 1})
        assert response.status_code == 400
