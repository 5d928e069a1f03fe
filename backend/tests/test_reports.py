"""Tests for invoice numbering and the dashboard figures."""
from datetime import date

from garage.billing.calculator import build_invoice
from garage.billing.numbering import next_invoice_number
from garage.billing.reports import dashboard_stats, month_profit
from garage.models.domain import Customer, Invoice, InvoiceItem, Stock


class TestNumbering:
    def test_first_number(self):
        assert next_invoice_number([]) == "INV000001"

    def test_one_past_highest(self):
        assert next_invoice_number(["INV000003", "INV000010", "INV000002"]) == "INV000011"

    def test_foreign_numbers_ignored(self):
        assert next_invoice_number(["MANUAL-7", "GRG000099", "INV000004", ""]) == "INV000005"

    def test_custom_prefix_and_width(self):
        assert next_invoice_number(["GRG0009"], prefix="GRG", width=4) == "GRG0010"


def _issue(state, day, *items, is_gst=False):
    invoice = build_invoice(
        Invoice(customer=Customer(name="Walk-in"), invoice_date=day, is_gst=is_gst, items=list(items))
    )
    return state.invoices.add(invoice)


class TestDashboard:
    def _populate(self, state):
        oil = state.stocks.add(Stock(product_name="Engine Oil", purchase_price=450, selling_price=562.5))
        _issue(state, date(2025, 10, 3),
               InvoiceItem(type="service", name="General Service", quantity=1, rate=800))
        _issue(state, date(2025, 10, 20),
               InvoiceItem(type="stock", ref_id=oil.id, name="Engine Oil", quantity=2, rate=562.5))
        _issue(state, date(2025, 8, 11),
               InvoiceItem(type="service", name="AC Repair", quantity=1, rate=1500))
        _issue(state, date(2024, 1, 5),
               InvoiceItem(type="service", name="Old job", quantity=1, rate=100))

    def test_totals_and_buckets(self, state):
        self._populate(state)
        stats = dashboard_stats(state, today=date(2025, 10, 25), months=3)

        assert stats.total_stocks == 1
        assert stats.total_invoices == 4
        assert stats.total_revenue == 800 + 1125 + 1500 + 100
        assert stats.this_month_revenue == 1925

        assert [m.year_month for m in stats.monthly] == ["2025-10", "2025-09", "2025-08"]
        october, september, august = stats.monthly
        assert october.month_name == "October2025"
        assert october.invoice_count == 2
        assert october.profit == 800 + 225
        assert september.invoice_count == 0
        assert september.revenue == 0
        assert august.revenue == 1500

    def test_buckets_cross_year_boundary(self, state):
        stats = dashboard_stats(state, today=date(2025, 1, 31), months=2)
        assert [m.year_month for m in stats.monthly] == ["2025-01", "2024-12"]

    def test_month_profit(self, state):
        self._populate(state)
        profit = month_profit(state, "2025-10")
        assert profit.service_profit == 800
        assert profit.stock_profit == 225
        assert profit.total_profit == 1025
        assert month_profit(state, "2023-01").total_profit == 0
