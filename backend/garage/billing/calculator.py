"""
Invoice arithmetic.

Policy:
  - line amount      = quantity × rate (GST excluded)
  - subtotal         = Σ line amounts
  - gst_amount       = Σ amount × gst / 100 when the invoice is GST, else 0
  - grand_total      = subtotal + gst_amount + Σ additional charges − discount,
                       never below 0
Money values are rounded to 2 dp on output. Discount is an absolute amount.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Optional, Sequence

from pydantic import BaseModel

from garage.core.errors import FormValidationError
from garage.models.domain import AdditionalCharge, Invoice, InvoiceItem, Stock


class InvoiceTotals(BaseModel):
    subtotal: float
    gst_amount: float
    charges_total: float
    discount: float
    grand_total: float


class HsnTaxRow(BaseModel):
    hsn_code: str
    gst_rate: float
    taxable_value: float
    cgst_rate: float
    cgst_amount: float
    sgst_rate: float
    sgst_amount: float
    total_tax: float


class InvoiceProfit(BaseModel):
    service_profit: float
    stock_profit: float
    total_profit: float


def _money(value: float) -> float:
    return round(value + 0.0, 2)  # + 0.0 folds -0.0 into 0.0


def line_amount(quantity: float, rate: float) -> float:
    return _money(quantity * rate)


def validate_items(items: Sequence[InvoiceItem]) -> None:
    """Reject lines with a non-positive quantity or a negative rate/gst."""
    errors: dict[str, str] = {}
    for idx, item in enumerate(items):
        if item.quantity is None or item.quantity <= 0:
            errors[f"items[{idx}].quantity"] = "quantity must be greater than 0"
        if item.rate is None or item.rate < 0:
            errors[f"items[{idx}].rate"] = "rate must not be negative"
        if item.gst is None or item.gst < 0:
            errors[f"items[{idx}].gst"] = "gst must not be negative"
    if errors:
        raise FormValidationError(errors)


def price_items(items: Sequence[InvoiceItem]) -> list[InvoiceItem]:
    """Copies of ``items`` with ``amount`` recomputed."""
    validate_items(items)
    return [
        item.model_copy(update={"amount": line_amount(item.quantity, item.rate)})
        for item in items
    ]


def compute_totals(
    items: Sequence[InvoiceItem],
    discount: float = 0.0,
    additional_charges: Iterable[AdditionalCharge] = (),
    is_gst: bool = True,
) -> InvoiceTotals:
    validate_items(items)
    if discount is None or discount < 0:
        raise FormValidationError({"discount": "discount must not be negative"})

    # same rounded line amounts that price_items stores on each line
    amounts = [line_amount(item.quantity, item.rate) for item in items]
    subtotal = sum(amounts)
    gst_amount = (
        sum(amount * item.gst / 100 for amount, item in zip(amounts, items))
        if is_gst
        else 0.0
    )
    charges_total = sum(charge.amount for charge in additional_charges)
    grand_total = max(0.0, subtotal + gst_amount + charges_total - discount)

    return InvoiceTotals(
        subtotal=_money(subtotal),
        gst_amount=_money(gst_amount),
        charges_total=_money(charges_total),
        discount=_money(discount),
        grand_total=_money(grand_total),
    )


def build_invoice(invoice: Invoice) -> Invoice:
    """Snapshot copy of ``invoice`` with priced lines and filled-in totals."""
    items = price_items(invoice.items)
    totals = compute_totals(items, invoice.discount, invoice.additional_charges, invoice.is_gst)
    return invoice.model_copy(
        deep=True,
        update={
            "items": items,
            "subtotal": totals.subtotal,
            "gst_amount": totals.gst_amount,
            "grand_total": totals.grand_total,
        },
    )


def hsn_summary(items: Sequence[InvoiceItem], is_gst: bool = True) -> list[HsnTaxRow]:
    """Per (HSN code, GST rate) tax breakdown, split equally into CGST and SGST."""
    if not is_gst:
        return []
    validate_items(items)
    taxable: dict[tuple[str, float], float] = defaultdict(float)
    for item in items:
        taxable[(item.hsn_code or "", item.gst)] += line_amount(item.quantity, item.rate)

    rows = []
    for (hsn_code, rate), value in sorted(taxable.items()):
        half_rate = rate / 2
        half_tax = value * half_rate / 100
        rows.append(
            HsnTaxRow(
                hsn_code=hsn_code,
                gst_rate=rate,
                taxable_value=_money(value),
                cgst_rate=half_rate,
                cgst_amount=_money(half_tax),
                sgst_rate=half_rate,
                sgst_amount=_money(half_tax),
                total_tax=_money(half_tax * 2),
            )
        )
    return rows


def invoice_profit(invoice: Invoice, stocks: Iterable[Stock]) -> InvoiceProfit:
    """Labour lines count in full; parts count their margin over purchase price.

    Stock lines whose source stock is unknown contribute nothing.
    """
    by_id = {s.id: s for s in stocks if s.id is not None}
    service_profit = 0.0
    stock_profit = 0.0
    for item in invoice.items:
        if item.type == "service":
            service_profit += item.quantity * item.rate
            continue
        stock: Optional[Stock] = by_id.get(item.ref_id) if item.ref_id else None
        if stock is not None:
            stock_profit += (item.rate - stock.purchase_price) * item.quantity
    return InvoiceProfit(
        service_profit=_money(service_profit),
        stock_profit=_money(stock_profit),
        total_profit=_money(service_profit + stock_profit),
    )
