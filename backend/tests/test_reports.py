"""
Report aggregation tests (service level and the /api/reports route).
"""

from decimal import Decimal

import pytest

from medtory.services import inventory_service, reporting_service, sales_service
from medtory.services.cart_service import CartLine
from medtory.services.reporting_service import ReportError
from medtory.time_utils import today


def _sell(product, quantity, cashier, price, rate="0"):
    return sales_service.checkout(
        lines=[CartLine(product.id, product.name, price, quantity, Decimal(rate))],
        payment_method="Cash",
        cashier_id=cashier.id,
    )


@pytest.fixture
def sold_day(db_session, cashier, manager, make_product, future):
    """Two products sold today, one sale voided, one damaged write-off."""
    paracetamol = make_product("Paracetamol", batches=[(50, future(200), 1000, 400)])
    amoxicillin = make_product("Amoxicillin", batches=[(5, future(10), 2000, 1500)])

    _sell(paracetamol, 4, cashier, 1000)
    _sell(amoxicillin, 2, cashier, 2000, rate="0.1")
    voided = _sell(paracetamol, 1, cashier, 1000)
    sales_service.void_sale(sale_id=voided.id, employee_id=manager.id, reason="Wrong item")

    inventory_service.adjust_stock(
        product_id=paracetamol.id, quantity_delta=-3, reason="Damaged", employee_id=manager.id
    )
    return paracetamol, amoxicillin


class TestBuildReport:
    def test_summary_counts_completed_sales_only(self, sold_day):
        report = reporting_service.build_report(start=today(), end=today(), show_financials=True)

        summary = report["summary"]
        assert summary["transaction_count"] == 2
        assert summary["items_sold"] == 6
        # 4 x 10.00 + 2 x 20.00 less 10%
        assert summary["total_revenue_cents"] == 4000 + 3600

    def test_profitability_uses_latest_batch_cost(self, sold_day):
        report = reporting_service.build_report(start=today(), end=today(), show_financials=True)

        rows = {row["product_name"]: row for row in report["profitability"]}
        assert rows["Paracetamol"]["cost_cents"] == 4 * 400
        assert rows["Paracetamol"]["profit_cents"] == 4000 - 1600
        assert rows["Paracetamol"]["margin_pct"] == 60.0
        assert rows["Amoxicillin"]["profit_cents"] == 3600 - 3000
        # Highest profit first
        assert report["profitability"][0]["product_name"] == "Paracetamol"

    def test_losses_and_net_profit(self, sold_day):
        report = reporting_service.build_report(start=today(), end=today(), show_financials=True)

        assert len(report["losses"]) == 1
        assert report["summary"]["total_loss_cents"] == 3 * 400
        gross = report["summary"]["gross_profit_cents"]
        assert report["summary"]["net_profit_cents"] == gross - 1200

    def test_void_log(self, sold_day):
        report = reporting_service.build_report(start=today(), end=today())

        assert len(report["voids"]) == 1
        assert report["voids"][0]["void_reason"] == "Wrong item"

    def test_inventory_tab_statuses_and_asset_value(self, sold_day):
        report = reporting_service.build_report(start=today(), end=today(), show_financials=True)

        by_name = {row["product_name"]: row for row in report["inventory"]}
        # 50 - 4 - 1 + 1 (void) - 3 (damaged) = 43
        assert by_name["Paracetamol"]["quantity"] == 43
        assert by_name["Paracetamol"]["status"] == "Good"
        assert by_name["Amoxicillin"]["status"] == "Low Stock"
        assert by_name["Amoxicillin"]["days_until_expiry"] == 10
        # Soonest expiry first
        assert report["inventory"][0]["product_name"] == "Amoxicillin"
        assert report["summary"]["total_asset_value_cents"] == 43 * 400 + 3 * 1500

    def test_inventory_status_filter(self, sold_day):
        report = reporting_service.build_report(inventory_status="Low Stock", show_financials=True)

        assert [row["product_name"] for row in report["inventory"]] == ["Amoxicillin"]
        # Asset value is the whole shelf, not just the filtered tab
        assert report["summary"]["total_asset_value_cents"] == 43 * 400 + 3 * 1500

    def test_financial_fields_hidden_without_permission(self, sold_day):
        report = reporting_service.build_report(start=today(), end=today(), show_financials=False)

        assert report["summary"]["gross_profit_cents"] is None
        assert report["summary"]["total_asset_value_cents"] is None
        assert report["summary"]["total_loss_cents"] is None
        assert report["summary"]["total_revenue_cents"] == 7600
        assert all(row["profit_cents"] is None for row in report["profitability"])
        assert all(row["cost_value_cents"] is None for row in report["inventory"])

    def test_trend_and_categories(self, sold_day):
        report = reporting_service.build_report(start=today(), end=today(), group_by="month")

        assert report["sales_trend"] == [{
            "period": today().strftime("%Y-%m"),
            "sales_count": 2,
            "items_sold": 6,
            "revenue_cents": 7600,
        }]
        assert report["sales_by_category"][0]["category_name"] == "Analgesics"

    def test_search_filters_sales_tab(self, sold_day):
        report = reporting_service.build_report(start=today(), end=today(), search="amox")
        assert {row["product_name"] for row in report["sales"]} == {"Amoxicillin"}

    def test_invalid_grouping(self, db_session):
        with pytest.raises(ReportError):
            reporting_service.build_report(group_by="week")

    def test_start_after_end(self, db_session, future):
        with pytest.raises(ReportError):
            reporting_service.build_report(start=future(2), end=future(1))


class TestReportRoute:
    def test_cashier_cannot_view_reports(self, client, cashier, login):
        response = client.get("/api/reports", headers=login(cashier))
        assert response.status_code == 403

    def test_manager_gets_report_without_financials(self, client, manager, login, sold_day):
        response = client.get("/api/reports", headers=login(manager))

        assert response.status_code == 200
        data = response.get_json()
        assert data["show_financials"] is False
        assert data["summary"]["gross_profit_cents"] is None
        assert data["generated_by"] == manager.employee_name

    def test_owner_sees_financials(self, client, owner, login, sold_day):
        response = client.get("/api/reports?group_by=day", headers=login(owner))

        data = response.get_json()
        assert data["show_financials"] is True
        assert data["summary"]["gross_profit_cents"] is not None

    def test_bad_date_is_400(self, client, owner, login):
        response = client.get("/api/reports?start=yesterday", headers=login(owner))
        assert response.status_code == 400
