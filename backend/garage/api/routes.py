"""
Core REST API routes for the garage back-office.

Endpoints:
  GET    /api/health
  GET    /api/views
  GET    /api/dashboard
  GET    /api/dashboard/profit/{year_month}
  GET    /api/customers
  POST   /api/customers
  GET    /api/customers/{id}
  PUT    /api/customers/{id}
  DELETE /api/customers/{id}
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, status

from garage.api.deps import get_state, paginate, require_user
from garage.billing.calculator import InvoiceProfit
from garage.billing.reports import DashboardStats, dashboard_stats, month_profit
from garage.models.domain import Customer
from garage.schemas.responses import HealthResponse, Page, ViewRead
from garage.store.state import AppState

router = APIRouter(prefix="/api")
protected = APIRouter(prefix="/api", dependencies=[Depends(require_user)])

VIEWS = [
    ViewRead(key="dashboard", title="Dashboard", path="/"),
    ViewRead(key="stocks", title="Stocks", path="/stocks"),
    ViewRead(key="services", title="Services", path="/services"),
    ViewRead(key="customers", title="Customers", path="/customers"),
    ViewRead(key="invoices", title="Invoices", path="/invoices"),
    ViewRead(key="settings", title="Settings", path="/settings"),
]


# ── Health ────────────────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
def health(request: Request):
    state: AppState = request.app.state.garage
    return HealthResponse(
        status="ok",
        storage=type(state.documents).__name__,
        auth_provider=type(request.app.state.identity.provider).__name__,
    )


# ── Navigation / dashboard ────────────────────────────────────────────────────


@protected.get("/views", response_model=list[ViewRead])
def list_views():
    return VIEWS


@protected.get("/dashboard", response_model=DashboardStats)
def get_dashboard(
    months: int = Query(default=6, ge=1, le=36, description="Months of history to include"),
    today: Optional[date] = Query(default=None, description="Reference date (defaults to today)"),
    state: AppState = Depends(get_state),
):
    return dashboard_stats(state, today=today, months=months)


@protected.get("/dashboard/profit/{year_month}", response_model=InvoiceProfit)
def get_month_profit(
    year_month: str = Path(pattern=r"^\d{4}-\d{2}$"),
    state: AppState = Depends(get_state),
):
    return month_profit(state, year_month)


# ── Customers ─────────────────────────────────────────────────────────────────


@protected.get("/customers", response_model=Page[Customer])
def list_customers(
    search: Optional[str] = Query(default=None, description="Name, phone or vehicle"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=500),
    state: AppState = Depends(get_state),
):
    return paginate(state.customers.search(search or ""), page, page_size, Customer)


@protected.post("/customers", response_model=Customer, status_code=status.HTTP_201_CREATED)
def add_customer(body: Customer, state: AppState = Depends(get_state)):
    return state.customers.add(body)


@protected.get("/customers/{customer_id}", response_model=Customer)
def get_customer(customer_id: str, state: AppState = Depends(get_state)):
    customer = state.customers.get(customer_id)
    if customer is None:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


@protected.put("/customers/{customer_id}", response_model=Customer)
def update_customer(customer_id: str, body: Customer, state: AppState = Depends(get_state)):
    record = body.model_copy(update={"id": customer_id})
    if not state.customers.update(record):
        raise HTTPException(status_code=404, detail="Customer not found")
    return record


@protected.delete("/customers/{customer_id}")
def delete_customer(customer_id: str, state: AppState = Depends(get_state)) -> dict:
    if not state.customers.delete(customer_id):
        raise HTTPException(status_code=404, detail="Customer not found")
    return {"status": "deleted", "id": customer_id}
