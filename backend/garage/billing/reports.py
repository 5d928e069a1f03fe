"""Dashboard figures: record counts, revenue and profit per month."""
from __future__ import annotations

from datetime import date
from typing import Optional

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel

from garage.billing.calculator import InvoiceProfit, invoice_profit
from garage.store.state import AppState


class MonthlyRow(BaseModel):
    year_month: str          # "YYYY-MM"
    month_name: str          # "October2025"
    invoice_count: int
    revenue: float
    profit: float


class DashboardStats(BaseModel):
    total_stocks: int
    total_services: int
    total_customers: int
    total_invoices: int
    total_revenue: float
    this_month_revenue: float
    monthly: list[MonthlyRow]


def _year_month(d: date) -> str:
    return d.strftime("%Y-%m")


def _month_name(d: date) -> str:
    return f"{d.strftime('%B')}{d.year}"


def month_profit(state: AppState, year_month: str) -> InvoiceProfit:
    """Sum of per-invoice profit for invoices dated in ``year_month``."""
    stocks = state.stocks.list()
    service_profit = 0.0
    stock_profit = 0.0
    for invoice in state.invoices:
        if _year_month(invoice.invoice_date) != year_month:
            continue
        p = invoice_profit(invoice, stocks)
        service_profit += p.service_profit
        stock_profit += p.stock_profit
    return InvoiceProfit(
        service_profit=round(service_profit, 2),
        stock_profit=round(stock_profit, 2),
        total_profit=round(service_profit + stock_profit, 2),
    )


def dashboard_stats(state: AppState, today: Optional[date] = None, months: int = 6) -> DashboardStats:
    """
    Totals over every invoice plus one row per month for the ``months``
    months ending with the month of ``today`` (newest first, zero-filled).
    """
    today = today or date.today()
    invoices = state.invoices.list()
    stocks = state.stocks.list()

    buckets: dict[str, dict] = {}
    start = today.replace(day=1)
    for offset in range(max(months, 0)):
        month_start = start - relativedelta(months=offset)
        buckets[_year_month(month_start)] = {
            "month_name": _month_name(month_start),
            "invoice_count": 0,
            "revenue": 0.0,
            "profit": 0.0,
        }

    for invoice in invoices:
        bucket = buckets.get(_year_month(invoice.invoice_date))
        if bucket is None:
            continue
        bucket["invoice_count"] += 1
        bucket["revenue"] += invoice.grand_total
        bucket["profit"] += invoice_profit(invoice, stocks).total_profit

    current = _year_month(today)
    return DashboardStats(
        total_stocks=len(state.stocks),
        total_services=len(state.services),
        total_customers=len(state.customers),
        total_invoices=len(invoices),
        total_revenue=round(sum(i.grand_total for i in invoices), 2),
        this_month_revenue=round(
            sum(i.grand_total for i in invoices if _year_month(i.invoice_date) == current), 2
        ),
        monthly=[
            MonthlyRow(
                year_month=ym,
                month_name=b["month_name"],
                invoice_count=b["invoice_count"],
                revenue=round(b["revenue"], 2),
                profit=round(b["profit"], 2),
            )
            for ym, b in buckets.items()
        ],
    )
