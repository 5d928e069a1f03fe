"""Pydantic request/response schemas for API endpoints."""
from __future__ import annotations

from datetime import date
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

from garage.billing.calculator import HsnTaxRow, InvoiceTotals
from garage.models.domain import AdditionalCharge, Customer, InvoiceItem

T = TypeVar("T")


class HealthResponse(BaseModel):
    status: str
    version: str = "1.0.0"
    storage: str
    auth_provider: str


class Page(BaseModel, Generic[T]):
    total: int
    page: int
    page_size: int
    items: list[T]


class ViewRead(BaseModel):
    key: str
    title: str
    path: str


# ── Auth ──────────────────────────────────────────────────────────────────────


class LoginRequest(BaseModel):
    # Shape checks happen in the gateway so they surface as form errors
    email: str = ""
    password: str = ""


class PrincipalRead(BaseModel):
    authenticated: bool
    principal: Optional[str] = None


class TokenRead(PrincipalRead):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


# ── Catalogue ─────────────────────────────────────────────────────────────────


class CategoriesRead(BaseModel):
    stocks: list[str]
    services: list[str]


class CategoryIn(BaseModel):
    name: str


class PriceSuggestion(BaseModel):
    purchase_price: float
    profit_margin: float
    selling_price: float


# ── Invoices ──────────────────────────────────────────────────────────────────


class InvoiceDraft(BaseModel):
    """Body for creating/replacing an invoice.

    Either embed ``customer`` or name an existing one by ``customer_id``;
    the customer is copied into the invoice either way.
    """

    invoice_number: str = ""
    invoice_date: date = Field(default_factory=date.today)
    customer_id: Optional[str] = None
    customer: Optional[Customer] = None
    is_gst: bool = True
    items: list[InvoiceItem] = Field(default_factory=list)
    discount: float = Field(default=0.0, ge=0)
    additional_charges: list[AdditionalCharge] = Field(default_factory=list)
    note: str = ""


class InvoicePreview(BaseModel):
    items: list[InvoiceItem]
    totals: InvoiceTotals
    tax_summary: list[HsnTaxRow]


class NextNumberRead(BaseModel):
    invoice_number: str
