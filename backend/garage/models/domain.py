"""Pydantic records for the garage catalogue, customers and invoices."""
from __future__ import annotations

from datetime import date
from typing import Annotated, Literal, Optional

from pydantic import AfterValidator, BaseModel, Field

CategoryKind = Literal["stocks", "services"]
ItemType = Literal["stock", "service"]


def _gst_range(v: float) -> float:
    if not (0 <= v <= 100):
        raise ValueError("gst must be between 0 and 100")
    return v


GstRate = Annotated[float, AfterValidator(_gst_range)]


class Stock(BaseModel):
    """A spare part held in inventory."""

    id: Optional[str] = None
    product_name: str
    part_number: str = ""
    hsn_code: str = ""
    purchase_price: float = Field(default=0.0, ge=0)
    profit_margin: float = 0.0  # percent over purchase price
    selling_price: float = Field(default=0.0, ge=0)
    gst: GstRate = 0.0
    category: str = ""

    @staticmethod
    def suggested_selling_price(purchase_price: float, profit_margin: float) -> float:
        """Selling price implied by a purchase price and a percentage margin."""
        return round(purchase_price * (1 + profit_margin / 100), 2)


class Service(BaseModel):
    """A labour offering (general service, AC repair, …)."""

    id: Optional[str] = None
    service_name: str
    hsn_code: str = ""
    gst: GstRate = 0.0
    labour: float = Field(default=0.0, ge=0)
    category: str = ""


class Customer(BaseModel):
    id: Optional[str] = None
    name: str
    address: str = ""
    phone: str = ""
    gst_number: Optional[str] = None  # absent for cash customers
    vehicle_number: str = ""
    model: str = ""
    make: str = ""
    kilometer: str = ""


class InvoiceItem(BaseModel):
    """One invoice line. ``amount`` is quantity × rate, GST excluded."""

    id: Optional[str] = None
    type: ItemType
    ref_id: Optional[str] = None  # Stock/Service the line was picked from
    name: str
    hsn_code: str = ""
    quantity: float = Field(gt=0)
    rate: float = Field(ge=0)
    gst: GstRate = 0.0
    amount: float = 0.0


class AdditionalCharge(BaseModel):
    description: str
    amount: float


class Invoice(BaseModel):
    """An issued invoice.

    ``customer`` is a snapshot taken when the invoice was built; totals are
    likewise frozen at build time and are not recomputed when catalogue
    records change later.
    """

    id: Optional[str] = None
    invoice_number: str = ""
    invoice_date: date = Field(default_factory=date.today)
    customer: Customer
    is_gst: bool = True
    items: list[InvoiceItem] = Field(default_factory=list)
    discount: float = Field(default=0.0, ge=0)  # absolute amount, not percent
    additional_charges: list[AdditionalCharge] = Field(default_factory=list)
    note: str = ""
    subtotal: float = 0.0
    gst_amount: float = 0.0
    grand_total: float = 0.0


class GarageProfile(BaseModel):
    """The business's own details, printed on invoice headers."""

    company_name: str = ""
    gst_number: str = ""
    phone_number: str = ""
    full_address: str = ""
    address_line_one: str = ""
    address_line_two: str = ""
    bank_name: str = ""
    account_number: str = ""
    ifsc_code: str = ""
    pan_number: str = ""
