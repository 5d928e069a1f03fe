"""
Catalogue routes: stocks, services and their category lists.

Endpoints:
  GET    /api/stocks                      – search / filter / paginate
  GET    /api/stocks/price-suggestion     – selling price from purchase price + margin
  POST   /api/stocks                      – add (id assigned when absent)
  GET    /api/stocks/{id}
  PUT    /api/stocks/{id}                 – full replace
  DELETE /api/stocks/{id}
  (same five for /api/services)
  GET    /api/categories
  POST   /api/categories/{kind}           – kind = stocks | services
  DELETE /api/categories/{kind}/{name}    – tagged records keep the old label
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from garage.api.deps import get_state, paginate, require_user
from garage.models.domain import CategoryKind, Service, Stock
from garage.schemas.responses import CategoriesRead, CategoryIn, Page, PriceSuggestion
from garage.store.state import AppState

catalog_router = APIRouter(prefix="/api", tags=["catalogue"], dependencies=[Depends(require_user)])


# ── Stocks ────────────────────────────────────────────────────────────────────


@catalog_router.get("/stocks", response_model=Page[Stock])
def list_stocks(
    search: Optional[str] = Query(default=None, description="Name, part number, category or HSN"),
    category: Optional[str] = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=500),
    state: AppState = Depends(get_state),
):
    records = state.stocks.search(search or "")
    if category:
        records = [s for s in records if s.category == category]
    return paginate(records, page, page_size, Stock)


@catalog_router.get("/stocks/price-suggestion", response_model=PriceSuggestion)
def suggest_price(
    purchase_price: float = Query(ge=0),
    profit_margin: float = Query(default=0.0),
):
    return PriceSuggestion(
        purchase_price=purchase_price,
        profit_margin=profit_margin,
        selling_price=Stock.suggested_selling_price(purchase_price, profit_margin),
    )


@catalog_router.post("/stocks", response_model=Stock, status_code=status.HTTP_201_CREATED)
def add_stock(body: Stock, state: AppState = Depends(get_state)):
    return state.stocks.add(body)


@catalog_router.get("/stocks/{stock_id}", response_model=Stock)
def get_stock(stock_id: str, state: AppState = Depends(get_state)):
    stock = state.stocks.get(stock_id)
    if stock is None:
        raise HTTPException(status_code=404, detail="Stock not found")
    return stock


@catalog_router.put("/stocks/{stock_id}", response_model=Stock)
def update_stock(stock_id: str, body: Stock, state: AppState = Depends(get_state)):
    record = body.model_copy(update={"id": stock_id})
    if not state.stocks.update(record):
        raise HTTPException(status_code=404, detail="Stock not found")
    return record


@catalog_router.delete("/stocks/{stock_id}")
def delete_stock(stock_id: str, state: AppState = Depends(get_state)) -> dict:
    if not state.stocks.delete(stock_id):
        raise HTTPException(status_code=404, detail="Stock not found")
    return {"status": "deleted", "id": stock_id}


# ── Services ──────────────────────────────────────────────────────────────────


@catalog_router.get("/services", response_model=Page[Service])
def list_services(
    search: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=500),
    state: AppState = Depends(get_state),
):
    records = state.services.search(search or "")
    if category:
        records = [s for s in records if s.category == category]
    return paginate(records, page, page_size, Service)


@catalog_router.post("/services", response_model=Service, status_code=status.HTTP_201_CREATED)
def add_service(body: Service, state: AppState = Depends(get_state)):
    return state.services.add(body)


@catalog_router.get("/services/{service_id}", response_model=Service)
def get_service(service_id: str, state: AppState = Depends(get_state)):
    service = state.services.get(service_id)
    if service is None:
        raise HTTPException(status_code=404, detail="Service not found")
    return service


@catalog_router.put("/services/{service_id}", response_model=Service)
def update_service(service_id: str, body: Service, state: AppState = Depends(get_state)):
    record = body.model_copy(update={"id": service_id})
    if not state.services.update(record):
        raise HTTPException(status_code=404, detail="Service not found")
    return record


@catalog_router.delete("/services/{service_id}")
def delete_service(service_id: str, state: AppState = Depends(get_state)) -> dict:
    if not state.services.delete(service_id):
        raise HTTPException(status_code=404, detail="Service not found")
    return {"status": "deleted", "id": service_id}


# ── Categories ────────────────────────────────────────────────────────────────


@catalog_router.get("/categories", response_model=CategoriesRead)
def list_categories(state: AppState = Depends(get_state)):
    return CategoriesRead(
        stocks=list(state.categories["stocks"]),
        services=list(state.categories["services"]),
    )


@catalog_router.post("/categories/{kind}", response_model=CategoriesRead)
def add_category(kind: CategoryKind, body: CategoryIn, state: AppState = Depends(get_state)):
    if not body.name.strip():
        raise HTTPException(status_code=422, detail="Category name is required")
    state.add_category(kind, body.name)
    return list_categories(state)


@catalog_router.delete("/categories/{kind}/{name}", response_model=CategoriesRead)
def delete_category(kind: CategoryKind, name: str, state: AppState = Depends(get_state)):
    if not state.delete_category(kind, name):
        raise HTTPException(status_code=404, detail=f"No {kind} category '{name}'")
    return list_categories(state)
