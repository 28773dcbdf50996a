"""
POS and transaction history API tests.
"""

from datetime import date

import pytest

from medtory.models import InventoryBatch, Sale, VoidRecord


@pytest.fixture
def stocked(make_product):
    return make_product(batches=[
        (2, date(2030, 1, 1), 1000, 600),
        (10, date(2030, 6, 1), 1000, 600),
    ])


def _quantities(db_session, product):
    db_session.expire_all()
    rows = db_session.query(InventoryBatch).filter_by(product_id=product.id).order_by(InventoryBatch.id).all()
    return [b.quantity for b in rows]


class TestCartRoutes:
    def test_add_and_view_cart(self, client, cashier, login, stocked):
        headers = login(cashier)

        response = client.post("/api/pos/cart/items", headers=headers,
                               json={"product_id": stocked.id, "quantity": 3, "discount_rate": "0.1"})
        assert response.status_code == 200

        cart = client.get("/api/pos/cart", headers=headers).get_json()["cart"]
        assert cart["item_count"] == 3
        assert cart["gross_cents"] == 3000
        assert cart["discount_cents"] == 300
        assert cart["total_cents"] == 2700

    def test_cart_is_per_session(self, client, cashier, login, stocked):
        first, second = login(cashier), login(cashier)
        client.post("/api/pos/cart/items", headers=first, json={"product_id": stocked.id, "quantity": 1})

        assert client.get("/api/pos/cart", headers=second).get_json()["cart"]["lines"] == []

    def test_over_stock_is_rejected(self, client, cashier, login, stocked):
        response = client.post("/api/pos/cart/items", headers=login(cashier),
                               json={"product_id": stocked.id, "quantity": 13})
        assert response.status_code == 400
        assert response.get_json()["error"] == "Not enough stock! Available: 12"

    @pytest.mark.parametrize("body", [
        {"quantity": 1},
        {"product_id": 1, "quantity": 0},
        {"product_id": 1, "quantity": "two"},
        {"product_id": 1, "quantity": 1, "discount_rate": "1.5"},
        {"product_id": 1, "quantity": 1, "discount_rate": "0.12345"},
    ])
    def test_bad_input(self, client, cashier, login, stocked, body):
        response = client.post("/api/pos/cart/items", headers=login(cashier), json=body)
        assert response.status_code == 400

    def test_remove_line(self, client, cashier, login, stocked):
        headers = login(cashier)
        client.post("/api/pos/cart/items", headers=headers, json={"product_id": stocked.id, "quantity": 1})

        response = client.delete(f"/api/pos/cart/items/{stocked.id}", headers=headers)

        assert response.get_json()["cart"]["lines"] == []

    def test_sellable_products_hide_empty_and_archived(self, client, cashier, login, stocked, make_product):
        make_product("Empty", batches=[(0, date(2030, 1, 1), 100, 50)])
        make_product("Archived", batches=[(5, date(2030, 1, 1), 100, 50)], is_active=False)

        items = client.get("/api/pos/products", headers=login(cashier)).get_json()["items"]

        assert [item["name"] for item in items] == [stocked.name]
        assert items[0]["selling_price_cents"] == 1000


class TestCheckoutRoute:
    def test_checkout_deducts_fifo_and_clears_cart(self, client, db_session, cashier, login, stocked):
        headers = login(cashier)
        client.post("/api/pos/cart/items", headers=headers, json={"product_id": stocked.id, "quantity": 3})

        response = client.post("/api/pos/checkout", headers=headers, json={"payment_method": "Cash"})

        assert response.status_code == 201
        sale = response.get_json()["sale"]
        assert sale["total_amount_cents"] == 3000
        assert sale["status"] == "Completed"
        assert len(sale["lines"]) == 1
        assert _quantities(db_session, stocked) == [0, 9]
        assert client.get("/api/pos/cart", headers=headers).get_json()["cart"]["lines"] == []

    def test_checkout_empty_cart(self, client, cashier, login):
        response = client.post("/api/pos/checkout", headers=login(cashier), json={"payment_method": "Cash"})
        assert response.status_code == 400

    def test_failed_checkout_keeps_cart(self, client, db_session, cashier, login, stocked):
        headers = login(cashier)
        client.post("/api/pos/cart/items", headers=headers, json={"product_id": stocked.id, "quantity": 5})

        # Stock disappears after the item went into the cart
        for batch in db_session.query(InventoryBatch).filter_by(product_id=stocked.id):
            batch.quantity = 1
        db_session.commit()

        response = client.post("/api/pos/checkout", headers=headers, json={"payment_method": "Cash"})

        assert response.status_code == 409
        assert db_session.query(Sale).count() == 0
        assert client.get("/api/pos/cart", headers=headers).get_json()["cart"]["item_count"] == 5


class TestHoldResumeRoutes:
    def test_hold_then_resume(self, client, db_session, cashier, login, stocked):
        headers = login(cashier)
        client.post("/api/pos/cart/items", headers=headers, json={"product_id": stocked.id, "quantity": 2})

        held = client.post("/api/pos/hold", headers=headers)
        assert held.status_code == 201
        sale_id = held.get_json()["sale"]["id"]
        assert client.get("/api/pos/cart", headers=headers).get_json()["cart"]["lines"] == []
        assert _quantities(db_session, stocked) == [2, 10]

        resumed = client.post(f"/api/pos/resume/{sale_id}", headers=headers)

        assert resumed.status_code == 200
        assert resumed.get_json()["cart"]["item_count"] == 2
        assert db_session.get(Sale, sale_id) is None

    def test_resume_completed_sale_is_rejected(self, client, cashier, login, stocked):
        headers = login(cashier)
        client.post("/api/pos/cart/items", headers=headers, json={"product_id": stocked.id, "quantity": 1})
        sale_id = client.post("/api/pos/checkout", headers=headers,
                              json={"payment_method": "Cash"}).get_json()["sale"]["id"]

        response = client.post(f"/api/pos/resume/{sale_id}", headers=headers)

        assert response.status_code == 409
        assert response.get_json()["error"] == "Only pending transactions can be resumed."


class TestTransactionsRoutes:
    def _sell(self, client, headers, product, quantity=1):
        client.post("/api/pos/cart/items", headers=headers, json={"product_id": product.id, "quantity": quantity})
        return client.post("/api/pos/checkout", headers=headers, json={"payment_method": "Cash"}).get_json()["sale"]

    def test_cashier_sees_only_own_sales(self, client, make_employee, manager, login, stocked):
        alice, bob = make_employee("Cashier"), make_employee("Cashier")
        alice_headers, bob_headers = login(alice), login(bob)
        alice_sale = self._sell(client, alice_headers, stocked)
        bob_sale = self._sell(client, bob_headers, stocked)

        listed = client.get("/api/transactions", headers=alice_headers).get_json()
        assert [s["id"] for s in listed["items"]] == [alice_sale["id"]]

        assert client.get(f"/api/transactions/{bob_sale['id']}", headers=alice_headers).status_code == 403
        assert client.get(f"/api/transactions/{alice_sale['id']}", headers=alice_headers).status_code == 200

        everyone = client.get("/api/transactions", headers=login(manager)).get_json()
        assert everyone["pagination"]["total"] == 2

    def test_list_is_paged_newest_first(self, client, cashier, login, stocked):
        headers = login(cashier)
        ids = [self._sell(client, headers, stocked)["id"] for _ in range(11)]

        first = client.get("/api/transactions", headers=headers).get_json()
        second = client.get("/api/transactions?page=2", headers=headers).get_json()

        assert first["count"] == 10
        assert first["pagination"]["has_next"] is True
        assert first["items"][0]["id"] == ids[-1]
        assert [s["id"] for s in second["items"]] == [ids[0]]

    def test_search_by_reference(self, client, cashier, login, stocked):
        headers = login(cashier)
        client.post("/api/pos/cart/items", headers=headers, json={"product_id": stocked.id, "quantity": 1})
        client.post("/api/pos/checkout", headers=headers, json={"payment_method": "GCash", "reference_no": "GC-777"})
        self._sell(client, headers, stocked)

        found = client.get("/api/transactions?search=GC-777", headers=headers).get_json()

        assert [s["reference_no"] for s in found["items"]] == ["GC-777"]

    def test_void_route(self, client, db_session, cashier, manager, login, stocked):
        sale = self._sell(client, login(cashier), stocked, quantity=3)

        response = client.post(f"/api/transactions/{sale['id']}/void", headers=login(manager),
                                json={"reason": "Customer returned item"})

        assert response.status_code == 200
        assert response.get_json()["sale"]["status"] == "Refunded"
        assert _quantities(db_session, stocked) == [0, 12]

        voids = client.get("/api/transactions/voids", headers=login(manager)).get_json()
        assert voids["items"][0]["manager_name"] == manager.employee_name
        assert voids["items"][0]["cashier_name"] == cashier.employee_name
        assert voids["items"][0]["total_amount_cents"] == 3000

    def test_void_requires_reason(self, client, db_session, cashier, manager, login, stocked):
        sale = self._sell(client, login(cashier), stocked)

        response = client.post(f"/api/transactions/{sale['id']}/void", headers=login(manager), json={})

        assert response.status_code == 400
        assert db_session.query(VoidRecord).count() == 0

    def test_bad_date_range(self, client, cashier, login):
        response = client.get("/api/transactions?start=2030-02-01&end=2030-01-01", headers=login(cashier))
        assert response.status_code == 400
